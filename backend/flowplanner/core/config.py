from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from flowplanner.core.errors import ConfigurationError


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        case_sensitive=False, extra="ignore", populate_by_name=True
    )

    app_name: str = "Flow Planner"
    environment: str = Field("local", validation_alias="ENVIRONMENT")
    log_level: str = Field("INFO", validation_alias="LOG_LEVEL")

    llm_provider: str = Field("gateway", validation_alias="LLM_PROVIDER")
    llm_api_key: Optional[str] = Field(
        None, validation_alias=AliasChoices("LLM_API_KEY", "LOVABLE_API_KEY")
    )
    llm_base_url: str = Field(
        "https://ai.gateway.lovable.dev/v1", validation_alias="LLM_BASE_URL"
    )
    llm_model: str = Field("google/gemini-2.5-flash", validation_alias="LLM_MODEL")
    llm_timeout_seconds: float = Field(30.0, validation_alias="LLM_TIMEOUT_SECONDS")
    ollama_host: str = Field("http://localhost:11434", validation_alias="OLLAMA_HOST")
    ollama_model: str = Field("llama3", validation_alias="OLLAMA_MODEL")

    yelp_api_key: Optional[str] = Field(None, validation_alias="YELP_API_KEY")
    yelp_base_url: str = Field("https://api.yelp.com/v3", validation_alias="YELP_BASE_URL")
    venue_search_timeout_seconds: float = Field(
        8.0, validation_alias="VENUE_SEARCH_TIMEOUT_SECONDS"
    )
    venue_search_limit: int = Field(10, validation_alias="VENUE_SEARCH_LIMIT")
    plan_max_workers: int = Field(5, validation_alias="PLAN_MAX_WORKERS")

    cors_allow_origins: List[str] = Field(["*"], validation_alias="CORS_ALLOW_ORIGINS")

    @property
    def llm_configured(self) -> bool:
        if self.llm_provider.lower() == "ollama":
            return True
        return bool(self.llm_api_key)

    def require_llm_api_key(self) -> str:
        if not self.llm_api_key:
            raise ConfigurationError("LLM_API_KEY is not configured")
        return self.llm_api_key

    def require_yelp_api_key(self) -> str:
        if not self.yelp_api_key:
            raise ConfigurationError("Yelp API not configured")
        return self.yelp_api_key


@lru_cache()
def get_settings() -> Settings:
    load_dotenv(".env")
    return Settings()


settings = get_settings()
