from pydantic import field_validator
from pydantic_settings import BaseSettings
from slowapi import Limiter
from slowapi.util import get_remote_address


class Settings(BaseSettings):
    """Application settings loaded from environment variables / .env file."""

    # Judge0 execution service
    judge0_url: str = ""
    judge0_key: str = ""
    judge0_rapidapi_host: str = ""
    # Self-hosted Judge0 serves the full catalog at /languages/all, RapidAPI at /languages
    judge0_languages_path: str = "/languages/all"
    judge0_timeout: float = 30.0

    @field_validator("judge0_url", mode="before")
    @classmethod
    def _strip_trailing_slashes(cls, v: object) -> object:
        if isinstance(v, str):
            return v.rstrip("/")
        return v

    # LLM provider configuration (any OpenAI-compatible API, Groq by default)
    groq_api_key: str = ""
    llm_base_url: str = "https://api.groq.com/openai/v1"
    chat_model: str = "llama-3.3-70b-versatile"
    chat_temperature: float = 0.7
    chat_max_tokens: int = 1024
    question_temperature: float = 0.8
    question_max_tokens: int = 1200
    feedback_temperature: float = 0.7
    feedback_max_tokens: int = 500

    # Client-side polling defaults
    poll_interval: float = 0.5
    poll_max_attempts: int = 40

    # Login tokens
    jwt_secret: str = "change-me"
    jwt_ttl_seconds: int = 7 * 24 * 3600

    # Server configuration
    host: str = "0.0.0.0"
    port: int = 3001
    cors_origins: list[str] = ["http://localhost:5173", "http://127.0.0.1:5173"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def _parse_cors(cls, v: object) -> list[str]:
        """Accept both a JSON list and a comma-separated string for CORS_ORIGINS."""
        if isinstance(v, str):
            return [o.strip() for o in v.split(",") if o.strip()]
        return v  # type: ignore[return-value]

    # Error reporting
    sentry_dsn: str = ""
    environment: str = "development"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


settings = Settings()

limiter = Limiter(key_func=get_remote_address)
