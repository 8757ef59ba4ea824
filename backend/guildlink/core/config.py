"""Application configuration loaded from environment variables.

Settings for the datastore, the Discord application, the game-server
shared secret, and the verification flow. Uses pydantic-settings for
validation and .env file support.
"""

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Known insecure default password that must not be used in production
# Security: Runtime check in check_production_security() prevents use in production
_INSECURE_DEFAULT_PASSWORD = "guildlink_dev_password"  # nosec B105

# Minimum length for SHARED_SECRET in production (256 bits = 32 bytes)
_MIN_SHARED_SECRET_LENGTH = 32

# Bounds for the linking code length (human-enterable, still unguessable)
_MIN_LINKING_CODE_LENGTH = 4
_MAX_LINKING_CODE_LENGTH = 32


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "guildlink"
    database_user: str = "guildlink_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD
    # Full SQLAlchemy URL; takes precedence over the discrete fields when set
    database_url_override: str = ""

    # API
    # 0.0.0.0 binds to all network interfaces (required for Docker containers)
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000

    # Public base URL of this service. The Discord redirect URI is derived
    # from it and must match the one registered for the application.
    app_url: str = "http://localhost:8000"

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Discord application
    discord_client_id: str = ""
    discord_client_secret: SecretStr = SecretStr("")
    discord_guild_id: str = ""
    discord_base_url: str = "https://discord.com"
    discord_fetch_max_retries: int = 3
    discord_fetch_timeout_ms: int = 5000

    # Game server
    shared_secret: SecretStr = SecretStr("")

    # Verification flow
    verification_flow_ttl_minutes: int = 15
    linking_code_length: int = 8
    linking_code_max_attempts: int = 5

    # Rate Limiting (Security)
    # Format: "count/period" (e.g., "60/minute")
    rate_limit_rpc: str = "60/minute"
    rate_limit_enabled: bool = True  # Disable for testing

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def discord_redirect_uri(self) -> str:
        """OAuth redirect URI registered with the Discord application."""
        return f"{self.app_url.rstrip('/')}/oauth2/discord/"

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Validate configuration invariants.

        Checks:
        - Verification flow TTL must be positive (all environments)
        - Linking code length must stay within bounds (all environments)
        - Database password must not be the default in production
        - SHARED_SECRET must be set and >= 32 chars in production
        - Discord client credentials and guild id must be set in production
        """
        if self.verification_flow_ttl_minutes <= 0:
            msg = (
                "VERIFICATION_FLOW_TTL_MINUTES must be positive. "
                f"Got: {self.verification_flow_ttl_minutes}"
            )
            raise ValueError(msg)

        if not (
            _MIN_LINKING_CODE_LENGTH
            <= self.linking_code_length
            <= _MAX_LINKING_CODE_LENGTH
        ):
            msg = (
                f"LINKING_CODE_LENGTH must be between {_MIN_LINKING_CODE_LENGTH} "
                f"and {_MAX_LINKING_CODE_LENGTH}. Got: {self.linking_code_length}"
            )
            raise ValueError(msg)

        if self.linking_code_max_attempts <= 0:
            msg = (
                "LINKING_CODE_MAX_ATTEMPTS must be positive. "
                f"Got: {self.linking_code_max_attempts}"
            )
            raise ValueError(msg)

        if self.environment == "production":
            if (
                not self.database_url_override
                and self.database_password == _INSECURE_DEFAULT_PASSWORD
            ):
                msg = (
                    "Cannot use default database password in production. "
                    "Set DATABASE_PASSWORD environment variable to a secure value."
                )
                raise ValueError(msg)

            secret_value = self.shared_secret.get_secret_value()
            if len(secret_value) < _MIN_SHARED_SECRET_LENGTH:
                msg = (
                    f"SHARED_SECRET must be at least {_MIN_SHARED_SECRET_LENGTH} "
                    "characters in production. "
                    'Generate with: python -c "import secrets; '
                    'print(secrets.token_hex(32))"'
                )
                raise ValueError(msg)

            missing = [
                name
                for name, value in (
                    ("DISCORD_CLIENT_ID", self.discord_client_id),
                    (
                        "DISCORD_CLIENT_SECRET",
                        self.discord_client_secret.get_secret_value(),
                    ),
                    ("DISCORD_GUILD_ID", self.discord_guild_id),
                )
                if not value
            ]
            if missing:
                msg = f"Missing Discord configuration in production: {', '.join(missing)}"
                raise ValueError(msg)

        return self


settings = Settings()
