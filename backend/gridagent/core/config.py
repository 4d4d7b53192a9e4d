"""Application configuration."""
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional
from urllib.parse import urlparse

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Repository root (backend/gridagent/core/config.py is four levels down)
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent
ENV_FILE = PROJECT_ROOT / ".env"

OPENAI_BASE_URL = "https://api.openai.com/v1"
GITHUB_MODELS_ENDPOINT = "https://models.inference.ai.azure.com"


class Settings(BaseSettings):
    """Application settings."""

    # Application
    APP_NAME: str = "Data Grid Agent"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None  # Defaults to PROJECT_ROOT / "logs"

    # CORS - stored as string in env, converted to list
    CORS_ORIGINS: str = "http://localhost:3000,https://localhost:3000"

    @property
    def cors_origins_list(self) -> List[str]:
        """Get CORS origins as a list."""
        origins = [origin.strip() for origin in self.CORS_ORIGINS.split(',') if origin.strip()]
        return origins if origins else ["http://localhost:3000"]

    # Model access. GITHUB_MODELS switches to the GitHub Models endpoint and the GitHub PAT credential.
    OPENAI_API_KEY: str = ""
    OPENAI_BASE_URL: str = OPENAI_BASE_URL
    GITHUB_MODELS: bool = False
    GITHUB_MODELS_ENDPOINT: str = GITHUB_MODELS_ENDPOINT
    MODEL_NAME: str = "gpt-4o"
    MODEL_TIMEOUT: int = 60
    MODEL_MAX_RETRIES: int = 1  # 1 = single attempt, failed model calls surface as cell errors

    # GitHub
    GITHUB_PAT: str = ""
    GITHUB_API_URL: str = "https://api.github.com"
    GITHUB_API_VERSION: str = "2022-11-28"

    # Bing web search
    BING_API_KEY: str = ""
    BING_ENDPOINT: str = "https://api.bing.microsoft.com/v7.0/search"

    # Grid persistence
    GRID_STORE_BACKEND: str = "memory"  # memory or redis
    REDIS_URL: str = "redis://localhost:6379/0"
    REDIS_KEY_PREFIX: str = "grids:"
    REDIS_POOL_SIZE: int = 10

    # Hydration
    HYDRATION_MAX_ITERATIONS: int = 8
    HYDRATION_DELAY_SECONDS: float = 0.2
    HYDRATION_DELAY_GITHUB_MODELS_SECONDS: float = 5.05
    MAX_PRIMARY_ROWS: int = 25

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE.exists() else ".env",
        case_sensitive=True,
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @field_validator('OPENAI_BASE_URL', 'GITHUB_MODELS_ENDPOINT', 'GITHUB_API_URL')
    @classmethod
    def validate_http_url(cls, v: str) -> str:
        """Validate endpoint URL format."""
        if not v.startswith(('http://', 'https://')):
            raise ValueError('Endpoint URLs must start with http:// or https://')
        try:
            urlparse(v)
        except Exception as e:
            raise ValueError(f'Invalid endpoint URL format: {e}')
        return v.rstrip('/')

    @field_validator('REDIS_URL')
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        """Validate Redis URL format."""
        if not v.startswith(('redis://', 'rediss://')):
            raise ValueError('REDIS_URL must start with redis:// or rediss://')
        return v

    @field_validator('GRID_STORE_BACKEND')
    @classmethod
    def validate_store_backend(cls, v: str) -> str:
        """Validate grid store backend name."""
        v = v.lower()
        if v not in ("memory", "redis"):
            raise ValueError('GRID_STORE_BACKEND must be "memory" or "redis"')
        return v

    @field_validator('HYDRATION_MAX_ITERATIONS', 'MAX_PRIMARY_ROWS')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate limits that must allow at least one step."""
        if v < 1:
            raise ValueError('Value must be at least 1')
        return v

    @model_validator(mode='after')
    def warn_missing_credentials(self):
        """Warn when the selected model path has no credential."""
        logger = logging.getLogger(__name__)
        if self.GITHUB_MODELS and not self.GITHUB_PAT:
            logger.warning("GITHUB_MODELS is enabled but GITHUB_PAT is not set")
        elif not self.GITHUB_MODELS and not self.OPENAI_API_KEY:
            logger.warning("OPENAI_API_KEY is not set; model calls will fail")
        return self

    @property
    def hydration_delay(self) -> float:
        """Fixed pause before a cell's first model call."""
        if self.GITHUB_MODELS:
            return self.HYDRATION_DELAY_GITHUB_MODELS_SECONDS
        return self.HYDRATION_DELAY_SECONDS

    @property
    def log_dir(self) -> Path:
        return Path(self.LOG_DIR) if self.LOG_DIR else PROJECT_ROOT / "logs"


@dataclass(frozen=True)
class ModelConfig:
    """Explicit model endpoint configuration injected into the model client."""
    endpoint: str
    api_key: str
    model: str

    @classmethod
    def from_settings(cls, s: Optional[Settings] = None) -> "ModelConfig":
        """Build the model configuration, resolving the GitHub Models switch."""
        s = s or settings
        if s.GITHUB_MODELS:
            return cls(endpoint=s.GITHUB_MODELS_ENDPOINT, api_key=s.GITHUB_PAT, model=s.MODEL_NAME)
        return cls(endpoint=s.OPENAI_BASE_URL, api_key=s.OPENAI_API_KEY, model=s.MODEL_NAME)


settings = Settings()

if settings.DEBUG:
    _logger = logging.getLogger(__name__)
    _logger.info(f"Loaded .env from: {ENV_FILE}")
    _logger.info(f"Model endpoint: {ModelConfig.from_settings().endpoint}")
    _logger.info(f"Grid store backend: {settings.GRID_STORE_BACKEND}")
