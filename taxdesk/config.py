"""Settings via pydantic-settings with TAXDESK_ env prefix.

Provider keys use validation_alias to read the same unprefixed env vars
(GROQ_API_KEY, OPENROUTER_API_KEY) the website backend already uses, so a
single .env file drives both the relay server and the chat client.
"""

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_COMPANY_NAME = "ReturnFilers"
DEFAULT_PHONE = "+91 84471 27264"
DEFAULT_EMAIL = "info@returnfilers.in"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="TAXDESK_", env_file=".env")

    # Chat client
    api_url: str = "http://localhost:5000/api"
    stream_timeout: float = 30.0  # seconds, hard deadline for /chat/stream
    fallback_timeout: float = 15.0  # seconds, independent deadline for /chat
    settings_timeout: float = 5.0
    history_window: int = 8  # entries sent with each submission

    # Business identity (served by GET /settings, used for contact fallback)
    company_name: str = DEFAULT_COMPANY_NAME
    phone: str = DEFAULT_PHONE
    email: str = DEFAULT_EMAIL
    enable_chatbot: bool = True

    log_level: str = "info"

    # Relay server
    host: str = "0.0.0.0"
    port: int = 5000
    site_url: str = "https://returnfilers.in"

    # Providers, tried in order: Groq, then OpenRouter free models
    groq_api_key: str = Field("", validation_alias="GROQ_API_KEY")
    groq_base_url: str = "https://api.groq.com/openai/v1"
    groq_model: str = "llama-3.1-8b-instant"
    openrouter_api_key: str = Field("", validation_alias="OPENROUTER_API_KEY")
    openrouter_base_url: str = "https://openrouter.ai/api/v1"
    openrouter_models: list[str] = [
        "meta-llama/llama-3.2-3b-instruct:free",
        "mistralai/mistral-7b-instruct:free",
        "google/gemma-2-9b-it:free",
    ]
    provider_timeout: float = 30.0
    provider_history_window: int = 10
    max_tokens: int = 500
    temperature: float = 0.7

    @model_validator(mode="after")
    def _validate_limits(self) -> "Settings":
        for name in ("stream_timeout", "fallback_timeout", "settings_timeout", "provider_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be > 0")
        if self.history_window < 0 or self.provider_history_window < 0:
            raise ValueError("history windows must be >= 0")
        return self

    @property
    def chat_url(self) -> str:
        return self.api_url.rstrip("/")
