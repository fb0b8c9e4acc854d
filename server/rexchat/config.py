from functools import lru_cache
from pydantic import AnyHttpUrl
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import List, Optional


MENTOR_PROMPT = "Explain things as if you are a professional career mentor giving advice to someone"
TITLE_PROMPT = (
    "Generate a short title of at most five words for a career-advice conversation "
    "that starts with the following message. Reply with the title only."
)


class Settings(BaseSettings):
    server_port: int = 8000
    # Allow both localhost and 127.0.0.1 for local development
    allowed_origins: List[AnyHttpUrl] = [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ]  # type: ignore
    log_level: str = "INFO"

    # Language model
    openai_api_key: Optional[str] = None
    openai_base_url: str = "https://api.openai.com/v1"
    chat_model: str = "gpt-3.5-turbo"
    model_timeout_seconds: float = 120.0
    assistant_sender_id: str = "Rex"
    mentor_prompt: str = MENTOR_PROMPT
    title_prompt: str = TITLE_PROMPT
    fallback_reply: str = "Sorry, something went wrong"
    reply_rate_limit: int = 30

    # Identity
    firebase_api_key: Optional[str] = None
    auth_secret: str = "rexchat-development-secret-change-me-please"
    token_ttl_minutes: int = 60 * 24

    # Storage: memory_mode keeps everything in-process (dev/tests)
    database_url: str = "sqlite+aiosqlite:///./rexchat.db"
    memory_mode: bool = False

    # pydantic-settings v2 style config: load env from both ../.env (repo root) and .env
    model_config = SettingsConfigDict(
        env_prefix="REXCHAT_",
        case_sensitive=False,
        env_file=("../.env", ".env"),
        extra="ignore",  # ignore env vars not defined as fields
    )


@lru_cache()
def get_settings() -> Settings:
    return Settings()
