from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # App
    APP_NAME: str = "Receipt Evidence"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"

    # CORS
    ALLOWED_ORIGINS: List[str] = ["http://localhost:3000"]

    # Draft defaults
    DEFAULT_CURRENCY: str = "USD"
    DEFAULT_CATEGORY: str = "other"  # Sentinel: category still untouched

    # MIME decoding
    MAX_MULTIPART_DEPTH: int = 10
    MAX_EML_SIZE_MB: int = 10

    # Extraction
    MAX_EXTRACTED_ITEMS: int = 20
    MAX_PLAUSIBLE_AMOUNT: int = 1_000_000

    # Validation
    MIN_VALID_CONFIDENCE: int = 55

    class Config:
        env_file = ".env"
        case_sensitive = True


settings = Settings()
