from functools import lru_cache
from typing import List

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    PIN_LENGTH: int = 4
    PIN_ATTEMPTS: int = 10
    MAX_RESULT_SIZE_BYTES: int = 3000
    STALE_AGE_SECONDS: int = 600
    SWEEP_INTERVAL_SECONDS: float = 10.0
    CORS_ORIGINS: str = "*"
    HOST: str = "0.0.0.0"
    PORT: int = 8080
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "case_sensitive": True, "extra": "ignore"}

    @property
    def cors_origins(self) -> List[str]:
        return [o.strip() for o in self.CORS_ORIGINS.split(",") if o.strip()]


@lru_cache
def get_settings() -> Settings:
    return Settings()
