"""
Configuration settings for the Desirable Difficulty API.
All environment variables and app settings are centralized here.
"""
import logging
from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings


logger = logging.getLogger(__name__)

# Well-known key of the local Azure Cosmos DB emulator
LOCAL_DATABASE_URL = (
    "AccountEndpoint=https://localhost:8081/;"
    "AccountKey=C2y6yDjf5/R+ob0N8A7Cgv30VRDJIWEHLM+4QDU5DE2nQ9nDuVTqobD4b8mGGyPMbIZnqyMsEcaGQy67XIw/Jw==;"
)
DEV_JWT_SECRET_DEFAULT = "dev-secret-key"


class ConfigurationError(ValueError):
    """Raised when a required production setting is missing"""


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""

    # Application
    APP_NAME: str = "Desirable Difficulty API"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    ENVIRONMENT: str = Field(
        default="development",
        validation_alias=AliasChoices("NODE_ENV", "ENVIRONMENT")
    )  # development, test, production
    PORT: int = 3000

    # API Settings
    API_PREFIX: str = "/api"
    CORS_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:8081",  # Expo dev server
        "http://127.0.0.1:3000",
        "http://127.0.0.1:8081"
    ]

    # AI provider (any OpenAI-compatible chat completions endpoint)
    AI_PROVIDER: str = "openai"  # openai, deepseek
    OPENAI_API_KEY: Optional[str] = None
    DEV_OPENAI_API_KEY: Optional[str] = None
    PROD_OPENAI_API_KEY: Optional[str] = None
    OPENAI_BASE_URL: Optional[str] = None
    OPENAI_MODEL: str = "gpt-3.5-turbo"
    DEEPSEEK_API_KEY: Optional[str] = None
    DEEPSEEK_BASE_URL: str = "https://api.deepseek.com/v1"
    DEEPSEEK_MODEL: str = "deepseek-chat"
    OPENAI_MAX_TOKENS: int = 500
    OPENAI_TEMPERATURE: float = 0.7
    OPENAI_TIMEOUT_SECONDS: float = 45.0

    # Document store (Azure Cosmos DB connection strings)
    DATABASE_URL: Optional[str] = None
    DEV_DATABASE_URL: Optional[str] = None
    PROD_DATABASE_URL: Optional[str] = None
    MONGODB_URI: Optional[str] = None
    COSMOS_DB_DATABASE_NAME: str = "desirable_difficulty"
    COSMOS_DB_INITIALIZE_ON_STARTUP: bool = False
    # Container names
    COSMOS_DB_USERS_CONTAINER: str = "users"
    COSMOS_DB_USER_PROGRESS_CONTAINER: str = "userprogresses"
    COSMOS_DB_PRACTICES_CONTAINER: str = "practices"
    COSMOS_DB_FEEDBACK_CONTAINER: str = "feedbacks"
    COSMOS_DB_INVITATION_CODES_CONTAINER: str = "invitationcodes"

    # JWT Authentication
    JWT_SECRET: Optional[str] = None
    DEV_JWT_SECRET: Optional[str] = None
    PROD_JWT_SECRET: Optional[str] = None
    JWT_ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 7

    # Learning
    DEFAULT_LEARNING_SUBJECT: str = "dutch"
    DEFAULT_MOTHER_LANGUAGE: str = "English"

    # Progression rule
    LEVEL_MIN: float = 1.0
    LEVEL_MAX: float = 10.0
    SKILL_STEP_CORRECT: float = 0.1
    SKILL_STEP_INCORRECT: float = 0.05
    ADJUSTMENT_PRACTICES_COUNT: int = 5
    DEFAULT_BATCH_SIZE: int = 1
    MAX_BATCH_SIZE: int = 5
    PROGRESS_UPDATE_MAX_ATTEMPTS: int = 3

    # Client session
    CLIENT_API_URL: str = "http://localhost:3000"
    CLIENT_PROD_API_URL: str = "https://desirabledifficult-api.herokuapp.com"
    CLIENT_API_TIMEOUT_SECONDS: float = 30.0
    CLIENT_SUBMIT_TIMEOUT_SECONDS: float = 60.0  # AI evaluation can take a while
    CLIENT_HEALTH_TIMEOUT_SECONDS: float = 5.0
    READ_AHEAD_LOW_WATER_MARK: int = 2
    READ_AHEAD_BATCH_SIZE: int = 3

    # Feedback
    FEEDBACK_DAILY_LIMIT: int = 5
    FEEDBACK_HISTORY_LIMIT: int = 20
    FEEDBACK_MESSAGE_MAX_LENGTH: int = 2000

    # Logging
    LOG_LEVEL: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    LOG_FORMAT: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True
        extra = "ignore"

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == "production"

    @property
    def database_url(self) -> Optional[str]:
        """Resolve the connection string for the current environment."""
        if self.is_production:
            return self.PROD_DATABASE_URL or self.MONGODB_URI or self.DATABASE_URL
        return self.DEV_DATABASE_URL or self.DATABASE_URL or LOCAL_DATABASE_URL

    @property
    def jwt_secret(self) -> Optional[str]:
        if self.is_production:
            return self.PROD_JWT_SECRET or self.JWT_SECRET
        return self.DEV_JWT_SECRET or self.JWT_SECRET or DEV_JWT_SECRET_DEFAULT

    @property
    def ai_api_key(self) -> Optional[str]:
        if self.AI_PROVIDER == "deepseek":
            return self.DEEPSEEK_API_KEY
        if self.is_production:
            return self.PROD_OPENAI_API_KEY or self.OPENAI_API_KEY
        return self.DEV_OPENAI_API_KEY or self.OPENAI_API_KEY

    @property
    def ai_base_url(self) -> Optional[str]:
        if self.AI_PROVIDER == "deepseek":
            return self.DEEPSEEK_BASE_URL
        return self.OPENAI_BASE_URL

    @property
    def ai_model(self) -> str:
        if self.AI_PROVIDER == "deepseek":
            return self.DEEPSEEK_MODEL
        return self.OPENAI_MODEL

    @model_validator(mode="after")
    def check_required_values(self) -> "Settings":
        """
        Ensure critical values are present.

        Production refuses to start without them; other environments
        fall back to development defaults and log a warning.
        """
        required = {
            "database_url": self.database_url,
            "jwt_secret": self.jwt_secret,
            "ai_api_key": self.ai_api_key,
        }
        missing = [name for name, value in required.items() if not value]

        if missing:
            if self.is_production:
                raise ConfigurationError(
                    f"Missing required environment variables: {', '.join(missing)}"
                )
            logger.warning(
                f"Missing settings in {self.ENVIRONMENT}: {', '.join(missing)}. "
                "Using development defaults"
            )
        return self


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()


# Singleton instance
settings = get_settings()
