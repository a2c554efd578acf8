import os
from dataclasses import dataclass
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


@dataclass
class Settings:
    # API settings
    api_base_url: str = os.getenv("LIBRARY_API_URL", "http://localhost:5095/api")
    api_timeout: float = float(os.getenv("LIBRARY_API_TIMEOUT", "15"))

    # Status messages disappear after this many seconds
    message_timeout: float = float(os.getenv("LIBRARY_MESSAGE_TIMEOUT", "5"))

    # Application settings
    app_name: str = os.getenv("APP_NAME", "Biblioteca")
    app_version: str = os.getenv("APP_VERSION", "1.0.0")
    log_level: str = os.getenv("LOG_LEVEL", "WARNING").upper()

    # UI settings
    confirm_deletions: bool = _env_flag("CONFIRM_DELETIONS", "True")


settings = Settings()
