"""Client configuration using pydantic-settings."""

from pydantic_settings import BaseSettings, SettingsConfigDict

LIBRARY_NAME = "snooclient"
LIBRARY_VERSION = "0.1.0"


class Settings(BaseSettings):
    """Client settings loaded from environment variables.

    Construct one and hand it to the client; nothing in the package keeps a
    process-wide instance.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Credentials
    reddit_client_id: str = ""
    reddit_client_secret: str = ""
    reddit_username: str = ""
    reddit_password: str = ""

    # Overrides the generated user agent when set
    reddit_user_agent: str = ""

    # Hosts
    reddit_base_url: str = "https://oauth.reddit.com"
    reddit_readonly_base_url: str = "https://reddit.com"
    reddit_token_url: str = "https://www.reddit.com/api/v1/access_token"

    # HTTP
    request_timeout: float = 30.0

    # Refresh this many seconds before the token actually expires
    token_expiry_margin: int = 60
