import os
from typing import List, Optional

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
    "AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/114.0.0.0 Safari/537.36"
)

def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]

class Settings:
    # Outbound proxy used when a batch does not name one
    DEFAULT_PROXY: Optional[str] = os.getenv("DEFAULT_PROXY") or None

    # Scraping
    DEFAULT_RATE_LIMIT: int = int(os.getenv("DEFAULT_RATE_LIMIT", "5"))
    REQUEST_TIMEOUT: float = float(os.getenv("REQUEST_TIMEOUT", "30"))
    USER_AGENT: str = os.getenv("USER_AGENT", DEFAULT_USER_AGENT)

    # Server
    HOST: str = os.getenv("HOST", "127.0.0.1")
    PORT: int = int(os.getenv("PORT", "3030"))
    CORS_ORIGINS: List[str] = _split_csv(os.getenv("CORS_ORIGINS", "http://localhost:5173"))
    DISCONNECT_POLL_INTERVAL: float = float(os.getenv("DISCONNECT_POLL_INTERVAL", "0.5"))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

settings = Settings()
