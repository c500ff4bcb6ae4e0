"""Configuration from .env file."""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Upstream completion API. Absence is reported as MissingCredential, not at import.
    OPENAI_API_KEY: str | None = None
    API_BASE_URL: str = "https://api.openai.com"
    OPENAI_MODEL: str = "gpt-4"
    REQUEST_TIMEOUT_SECONDS: float = 30.0

    # Where the chat front ends send their turns (the same-origin proxy).
    PROXY_URL: str = "http://localhost:8888/api/chat"
    PROXY_HOST: str = "0.0.0.0"
    PROXY_PORT: int = 8888

    QUIZ_NAME: str = "Personal Growth Quiz"
    QUESTIONS_PATH: str = "data/questions.json"
    EXPORT_DIR: str = "data/exports"
    DEBOUNCE_SECONDS: float = 0.5  # Collapse repeated sends within this window

    ENCRYPTION_KEY: str = "your-encryption-key"
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"
        frozen = True


settings = Settings()
