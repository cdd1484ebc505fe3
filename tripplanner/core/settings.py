import os

from dotenv import load_dotenv
from pydantic import BaseModel, Field

load_dotenv()


class Settings(BaseModel):
    aisuite_model: str = os.getenv("AISUITE_MODEL", "google-genai:gemini-2.0-flash")
    generation_temperature: float = float(os.getenv("GENERATION_TEMPERATURE", "0.2"))
    generation_max_retries: int = Field(
        default=int(os.getenv("GENERATION_MAX_RETRIES", "3")), ge=1, validate_default=True
    )
    # Seconds; attempt N waits N * generation_retry_delay before the next try
    generation_retry_delay: float = float(os.getenv("GENERATION_RETRY_DELAY", "1.0"))
    default_visit_duration: int = int(os.getenv("DEFAULT_VISIT_DURATION", "60"))
    day_start_time: str = os.getenv("DAY_START_TIME", "09:00")
    google_maps_api_key: str = os.getenv("GOOGLE_MAPS_API_KEY", "")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    allowed_origins: str = os.getenv("ALLOWED_ORIGINS", "")


def get_settings() -> Settings:
    return Settings()
