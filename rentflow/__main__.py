import os

import uvicorn


def main() -> None:
    uvicorn.run(
        "web.app:app",
        host=os.environ.get("HOST", "0.0.0.0"),
        port=int(os.environ.get("PORT", "5000")),
        log_config=None,
    )


if __name__ == "__main__":
    main()
