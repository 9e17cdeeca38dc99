## Application settings configuration

from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    env: str = "dev"
    log_level: str = "INFO"
    database_url: str = "sqlite:///./learnpath.db"

    # Supabase project (auth sessions live there)
    supabase_url: str | None = None
    supabase_service_role_key: str | None = None

    # CORS
    frontend_url: str = "http://localhost:3000"

    # Ollama settings
    ollama_base_url: str = "http://localhost:11434/v1"
    ollama_model: str = "llama3.1"

    # Production settings
    LLM_PROVIDER: str = "groq"
    GROQ_API_KEY: str | None = None
    GROQ_BASE_URL: str = "https://api.groq.com/openai/v1"
    GROQ_MODEL: str = "llama-3.3-70b-versatile"
    llm_timeout_seconds: float = 60.0

    # Google Calendar OAuth
    google_client_id: str | None = None
    google_client_secret: str | None = None
    google_redirect_uri: str = "http://localhost:3000/auth/google/callback"
    calendar_timezone: str = "Asia/Jakarta"
    calendar_timeout_seconds: float = 30.0

    # Path validation cache
    validation_cache_ttl_seconds: int = 60 * 60
    validation_cache_max_entries: int = 2048

    # Study schedule defaults
    default_daily_hours: float = 2
    fallback_node_hours: float = 5
    session_start_hour: int = 9


settings = Settings()
