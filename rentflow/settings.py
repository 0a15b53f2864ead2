import logging

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="RENTFLOW_", extra="ignore")

    db_url: str = "sqlite:///./rentflow.db"

    storage_backend: str = "local"
    storage_local_path: str = "./invoices"
    storage_prefix: str = "bills"

    s3_bucket: str = ""
    s3_region: str = "auto"
    s3_access_key_id: str = ""
    s3_secret_access_key: str = ""
    s3_endpoint_url: str = ""
    r2_account_id: str = ""
    s3_presigned_expiry: int = 300  # 5 minutes
    public_pdf_base_url: str = ""
    storage_timeout: int = 15
    max_download_bytes: int = 25 * 1024 * 1024

    frontend_url: str = ""
    backend_url: str = ""

    company_name: str = "Your Company"
    company_logo_url: str = ""
    company_bank_details: str = ""
    company_gst: str = ""
    support_email: str = "no-reply@example.com"
    upi_id: str = ""
    upi_payee_name: str = ""

    currency_code: str = "INR"
    currency_locale: str = "en_IN"
    currency_symbol: str = "₹"

    sendgrid_api_key: str = ""
    sendgrid_api_url: str = "https://api.sendgrid.com/v3/mail/send"
    email_from: str = ""
    email_throttle_seconds: float = 0.4

    default_country_prefix: str = "+91"
    twilio_account_sid: str = ""
    twilio_auth_token: str = ""
    twilio_whatsapp_from: str = ""
    twilio_template_sid: str = ""
    whatsapp_cloud_api_token: str = ""
    whatsapp_phone_id: str = ""
    whatsapp_cloud_api_version: str = "v17.0"
    whatsapp_cloud_template_name: str = ""
    whatsapp_template_language: str = "en"

    razorpay_key_id: str = ""
    razorpay_key_secret: str = ""
    razorpay_api_url: str = "https://api.razorpay.com/v1"

    provider_timeout: float = 15.0

    log_level: str = "INFO"
    log_json: bool = False

    @property
    def backend_base(self) -> str:
        return (self.backend_url or self.frontend_url or "http://localhost:5000").strip().rstrip("/")

    @property
    def frontend_base(self) -> str:
        return (self.frontend_url or self.backend_url or "http://localhost:3000").strip().rstrip("/")

    @property
    def resolved_s3_endpoint(self) -> str:
        if self.s3_endpoint_url:
            return self.s3_endpoint_url.rstrip("/")
        if self.r2_account_id:
            return f"https://{self.r2_account_id}.r2.cloudflarestorage.com"
        return ""

    @property
    def s3_configured(self) -> bool:
        return bool(self.s3_bucket and self.s3_access_key_id and self.s3_secret_access_key)

    @property
    def email_configured(self) -> bool:
        return bool(self.sendgrid_api_key and self.email_from)

    @property
    def twilio_configured(self) -> bool:
        return bool(self.twilio_account_sid and self.twilio_auth_token and self.twilio_whatsapp_from)

    @property
    def whatsapp_cloud_configured(self) -> bool:
        return bool(self.whatsapp_cloud_api_token and self.whatsapp_phone_id)

    @property
    def razorpay_configured(self) -> bool:
        return bool(self.razorpay_key_id and self.razorpay_key_secret)


settings = Settings()
