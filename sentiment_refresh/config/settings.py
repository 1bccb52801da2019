from typing import Optional, Union, List
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import field_validator, Field, ValidationInfo
from pathlib import Path

# Root directory of the sentiment_refresh package
SERVICE_ROOT_DIR = Path(__file__).parent.parent.resolve()
# Path to the repository root (one level above the package)
PROJECT_ROOT_DIR = SERVICE_ROOT_DIR.parent


class Settings(BaseSettings):
    # Application settings
    APP_NAME: str = "SentimentRefreshService"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = False
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8002

    # Database settings
    DB_HOST: str = "localhost"
    DB_PORT: int = 5432
    DB_USER: str = "postgres"
    DB_PASSWORD: str = "postgres"
    DB_NAME: str = "sentiment_refresh"
    DATABASE_URL: Optional[str] = Field(default=None, validate_default=True)

    @field_validator("DATABASE_URL", mode="before")
    @classmethod
    def assemble_db_connection(cls, v: Optional[str], info: ValidationInfo) -> str:
        if isinstance(v, str) and v:
            return v
        return (
            f"postgresql+asyncpg://{info.data.get('DB_USER')}:{info.data.get('DB_PASSWORD')}"
            f"@{info.data.get('DB_HOST')}:{info.data.get('DB_PORT')}/{info.data.get('DB_NAME')}"
        )

    # Reddit API credentials
    REDDIT_CLIENT_ID: str = ""
    REDDIT_CLIENT_SECRET: str = ""
    REDDIT_USERNAME: str = ""
    REDDIT_PASSWORD: str = ""
    REDDIT_USER_AGENT: str = "web:sentiment-refresh:v0.1 (by /u/sentimentrefresh)"
    REDDIT_API_BASE: str = "https://oauth.reddit.com"
    REDDIT_TOKEN_URL: str = "https://www.reddit.com/api/v1/access_token"

    # Fetch limits and courtesy delays
    MAX_POSTS: int = 20
    MAX_COMMENTS: int = 10
    REQUEST_DELAY_SECONDS: float = 0.9
    MAX_FETCH_ATTEMPTS: int = 3
    HTTP_TIMEOUT_SECONDS: float = 30.0

    # Communities seeded into the subreddits table (comma-separated in .env)
    SUBREDDITS: Union[str, List[str]] = "openai,chatgpt,chatgptpro,codex"

    # Logging configuration path (can be overridden by env var)
    LOGGING_CONFIG_PATH: str = str(SERVICE_ROOT_DIR / "config" / "logging_config.yaml")

    # Monitoring
    PROMETHEUS_ENABLED: bool = False
    PROMETHEUS_PORT: int = 8001

    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT_DIR / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def model_post_init(self, __context) -> None:
        """Parse the comma-separated subreddit list after initialization."""
        if isinstance(self.SUBREDDITS, str):
            self.SUBREDDITS = [name.strip().lower() for name in self.SUBREDDITS.split(",") if name.strip()]

    @property
    def has_user_credentials(self) -> bool:
        return bool(self.REDDIT_USERNAME and self.REDDIT_PASSWORD)

    def validate_credentials(self) -> List[str]:
        """
        Validate the Reddit credentials needed to start a refresh run.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []
        if not self.REDDIT_CLIENT_ID:
            errors.append("Missing REDDIT_CLIENT_ID in environment")
        if not self.REDDIT_CLIENT_SECRET:
            errors.append("Missing REDDIT_CLIENT_SECRET in environment")
        if bool(self.REDDIT_USERNAME) != bool(self.REDDIT_PASSWORD):
            errors.append("REDDIT_USERNAME and REDDIT_PASSWORD must be set together")
        return errors


# Instantiate settings
settings = Settings()
