from typing import Annotated, Any, Literal
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import computed_field, AnyUrl, BeforeValidator


def parse_cors(v: Any) -> list[str] | str:
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",")]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    APP_NAME: str = "Recommate"
    API_PREFIX: str = "/api"
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = "sqlite:///./recommate.db"

    # File storage
    UPLOAD_DIR: str = "./uploads"
    PDF_DIR: str = "./pdfs"
    MAX_FILE_SIZE: int = 10 * 1024 * 1024  # 10 MiB
    MAX_FILES_PER_UPLOAD: int = 10

    # Outgoing mail
    # "smtp" uses aiosmtplib, "gmail" posts to the Gmail API with GMAIL_ACCESS_TOKEN
    MAIL_TRANSPORT: Literal["smtp", "gmail"] = "smtp"
    MAIL_FROM_ADDRESS: str = ""
    MAIL_FROM_NAME: str = "Recommate"

    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_USER: str = ""
    SMTP_PASSWORD: str = ""
    SMTP_USE_TLS: bool = False
    SMTP_TIMEOUT: float = 30.0

    GMAIL_ACCESS_TOKEN: str = ""

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SENDER_ADDRESS(self) -> str:
        """Envelope sender, falling back to the SMTP login."""
        return self.MAIL_FROM_ADDRESS or self.SMTP_USER

    FRONTEND_HOST: str = "http://localhost:5173"
    BACKEND_CORS_ORIGINS: Annotated[list[AnyUrl] | str, BeforeValidator(parse_cors)] = [
        "http://localhost:8000"
    ]

    @computed_field  # type: ignore[prop-decorator]
    @property
    def ALL_CORS_ORIGINS(self) -> list[str]:
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS] + [
            self.FRONTEND_HOST
        ]

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


settings = Settings()
