from typing import List

from pydantic_settings import BaseSettings, SettingsConfigDict


def _split_csv(value: str) -> List[str]:
    return [item.strip() for item in value.split(",") if item.strip()]


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_ignore_empty=True,
        extra="ignore",
    )

    PROJECT_NAME: str = "Tripsmith API"
    VERSION: str = "0.3.0"
    API_V1_STR: str = "/api/v1"

    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    CORS_ORIGINS: str = "http://localhost:5173,http://localhost:3000"

    # Generative model chain
    LLM_PROVIDER: str = "anthropic"
    LLM_MODEL: str = "claude-sonnet-4-20250514"
    LLM_FALLBACK_MODELS: str = "claude-3-5-haiku-20241022"
    ANTHROPIC_API_KEY: str | None = None
    OPENAI_API_KEY: str | None = None
    LLM_MAX_ATTEMPTS: int = 3
    LLM_BACKOFF_BASE_SECONDS: float = 2.0
    LLM_MAX_TOKENS: int = 1000
    LLM_TEMPERATURE: float = 0.7

    # Geocoding
    TWOGIS_API_KEY: str | None = None
    NOMINATIM_URL: str = "https://nominatim.openstreetmap.org"
    NOMINATIM_USER_AGENT: str = "Tripsmith/0.3 (routes@tripsmith.local)"
    GEOCODING_TIMEOUT_SECONDS: float = 10.0
    GEOCODING_CACHE_BACKEND: str = "memory"
    GEOCODING_CACHE_TTL_SECONDS: int = 86400
    REDIS_URL: str = "redis://localhost:6379/0"

    # Routing
    OPENROUTESERVICE_API_KEY: str | None = None
    OPENROUTESERVICE_URL: str = "https://api.openrouteservice.org/v2"
    ROUTING_TIMEOUT_SECONDS: float = 15.0
    ROUTING_DAILY_LIMIT: int = 2000

    # Images
    UNSPLASH_ACCESS_KEY: str | None = None
    IMAGE_TIMEOUT_SECONDS: float = 10.0

    SYNTHESIS_TIMEOUT_SECONDS: float = 120.0

    # Loop-quality heuristic weights
    LOOP_LINEAR_PENALTY: float = 20.0
    LOOP_ROUNDNESS_BONUS: float = 10.0
    LOOP_STRAIGHT_TOLERANCE_DEG: float = 30.0
    LOOP_VARIANCE_THRESHOLD: float = 0.2

    @property
    def cors_origins(self) -> List[str]:
        return _split_csv(self.CORS_ORIGINS)

    @property
    def llm_model_chain(self) -> List[str]:
        chain = [self.LLM_MODEL, *_split_csv(self.LLM_FALLBACK_MODELS)]
        unique: List[str] = []
        for model in chain:
            if model and model not in unique:
                unique.append(model)
        return unique


settings = Settings()
