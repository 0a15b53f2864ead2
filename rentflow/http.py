from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)


class ResponseTooLargeError(Exception):
    pass


def fetch_bytes(url: str, max_bytes: int, timeout: float = 15.0) -> bytes:
    """Download a remote document, refusing anything larger than max_bytes.

    Raises httpx.HTTPError on transport or status errors and
    ResponseTooLargeError when the body exceeds the cap.
    """
    with httpx.Client(timeout=timeout, follow_redirects=True) as client:
        with client.stream("GET", url) as response:
            response.raise_for_status()
            declared = response.headers.get("content-length")
            if declared and declared.isdigit() and int(declared) > max_bytes:
                raise ResponseTooLargeError(f"{url} declares {declared} bytes, limit is {max_bytes}")
            buf = bytearray()
            for chunk in response.iter_bytes():
                buf.extend(chunk)
                if len(buf) > max_bytes:
                    raise ResponseTooLargeError(f"{url} exceeds {max_bytes} bytes")
    logger.debug("Fetched %s (%d bytes)", url, len(buf))
    return bytes(buf)
