"""Configuration management using Pydantic Settings"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./investments.db"

    # Exchange rates
    rates_source_url: str = "https://www.cursbnr.ro/"
    rates_refresh_enabled: bool = True
    rates_refresh_interval_seconds: float = 24 * 60 * 60

    # Forecasting service (Ollama)
    ollama_host: str = "localhost"
    ollama_port: int = 11434
    ollama_model: str = "llama2"
    forecast_timeout_seconds: float = 120.0

    # Service
    service_name: str = "investment-tracker"
    log_level: str = "INFO"

    # HTTP Client
    http_timeout_seconds: float = 10.0

    @property
    def ollama_base_url(self) -> str:
        return f"http://{self.ollama_host}:{self.ollama_port}"


settings = Settings()
