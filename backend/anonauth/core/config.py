"""Application configuration loaded from environment variables.

Two settings objects are built at import time:

- ``settings``: process-level settings (database, HTTP surface, delivery
  credentials, registered clients).
- ``options``: the anonymous authorization options that drive code
  issuance. Every value is checked when the object is built, so a missing
  or zero value stops the process before it serves a single request.

Uses pydantic-settings for validation and .env file support.
"""

from typing import Literal

from pydantic import BaseModel, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from anonauth.core.errors import ConfigurationInvalidError
from anonauth.schemas.clients import ClientConfig

# Known insecure default password that must not be used in production
_INSECURE_DEFAULT_PASSWORD = "anonauth_dev_password"  # nosec B105

# Placeholder replaced with the human user code when rendering a message
USER_CODE_PLACEHOLDER = "{user_code}"

# Query parameter carrying the verification code in the "complete" URI
VERIFICATION_CODE_PARAMETER = "verification_code"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Database
    database_host: str = "localhost"
    database_port: int = 5432
    database_name: str = "anonauth"
    database_user: str = "anonauth_user"
    database_password: str = _INSECURE_DEFAULT_PASSWORD

    # API
    api_host: str = "0.0.0.0"  # nosec B104
    api_port: int = 8000
    allowed_origins: list[str] = ["http://localhost:3000"]

    # Public URL used to make relative verification URIs absolute
    public_base_url: str = "http://localhost:8000"

    # Application
    environment: str = "development"
    log_level: str = "INFO"

    # Issuance record storage: "database" (PostgreSQL) or "memory"
    code_store_backend: Literal["database", "memory"] = "database"

    # Email delivery (Resend)
    email_from: str = "noreply@anonauth.local"
    email_subject: str = "Your verification code"
    resend_api_key: SecretStr = SecretStr("")

    # SMS delivery (HTTP gateway)
    sms_gateway_url: str = ""
    sms_gateway_api_key: SecretStr = SecretStr("")
    sms_sender: str = "anonauth"

    # Registered clients, as a JSON list in the CLIENTS env var
    clients: list[ClientConfig] = []

    # Rate limiting
    rate_limit_enabled: bool = True
    rate_limit_authorize: str = "10/minute"

    @property
    def database_url(self) -> str:
        """Async database URL for SQLAlchemy."""
        return (
            f"postgresql+asyncpg://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @property
    def database_url_sync(self) -> str:
        """Sync database URL for Alembic."""
        return (
            f"postgresql://{self.database_user}:{self.database_password}"
            f"@{self.database_host}:{self.database_port}/{self.database_name}"
        )

    @model_validator(mode="after")
    def check_production_security(self) -> "Settings":
        """Reject the development database password in production."""
        if (
            self.environment == "production"
            and self.database_password == _INSECURE_DEFAULT_PASSWORD
        ):
            raise ValueError(
                "Cannot use default database password in production. "
                "Set DATABASE_PASSWORD environment variable."
            )
        return self


class InputLengthRestrictions(BaseModel):
    """Maximum accepted lengths of authorization request fields."""

    client_id: int = 100
    scope: int = 300
    redirect_uri: int = 400
    description: int = 100
    transport: int = 50
    transport_data: int = 250
    provider: int = 100


class AuthorizationOptions(BaseSettings):
    """Options for anonymous authorization code issuance.

    Read from ``ANONYMOUS_``-prefixed environment variables. Construction
    fails with ConfigurationInvalidError when any value is missing, empty,
    or zero.

    Attributes:
        allowed_retries: Default redemption retry budget per record.
        allowed_retries_property_name: Client property overriding
            ``allowed_retries``.
        default_lifetime: Default record lifetime in seconds.
        lifetime_property_name: Client property overriding
            ``default_lifetime``.
        default_user_code_type: User code type used when the client has none.
        user_code_sms_format: System-wide SMS message format.
        user_code_email_format: System-wide email message format.
        user_code_sms_format_property_name: Client property overriding the
            SMS default format.
        user_code_email_format_property_name: Client property overriding the
            email default format.
        interval: Polling interval in seconds returned to clients.
        verification_uri: Where the user enters the user code.
        activation_uri: Where the client polls with the verification code.
        transports: Enabled transport channel names.
        input_length_restrictions: Request field length limits.
    """

    model_config = SettingsConfigDict(
        env_prefix="ANONYMOUS_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    allowed_retries: int = 3
    allowed_retries_property_name: str = "anonymous:allowed_retries"
    default_lifetime: int = 300
    lifetime_property_name: str = "anonymous:lifetime"
    default_user_code_type: str = "numeric"
    user_code_sms_format: str = f"Your verification code is {USER_CODE_PLACEHOLDER}"
    user_code_email_format: str = (
        f"Use the code {USER_CODE_PLACEHOLDER} to complete your sign-in. "
        "If you didn't request this, you can safely ignore this email."
    )
    user_code_sms_format_property_name: str = "user_code_sms_format"
    user_code_email_format_property_name: str = "user_code_email_format"
    interval: int = 5
    verification_uri: str = "/connect/anonymous/verify"
    activation_uri: str = "/connect/anonymous/activate"
    transports: list[str] = ["sms", "email"]
    input_length_restrictions: InputLengthRestrictions = InputLengthRestrictions()

    @model_validator(mode="after")
    def check_required_values(self) -> "AuthorizationOptions":
        """Refuse to build options with unset or zero values.

        Raises:
            ConfigurationInvalidError: Naming the first offending option.
        """
        positive_ints = ("allowed_retries", "default_lifetime", "interval")
        for name in positive_ints:
            if getattr(self, name) <= 0:
                raise ConfigurationInvalidError(name)

        required_strings = (
            "allowed_retries_property_name",
            "lifetime_property_name",
            "default_user_code_type",
            "user_code_sms_format",
            "user_code_email_format",
            "user_code_sms_format_property_name",
            "user_code_email_format_property_name",
            "verification_uri",
            "activation_uri",
        )
        for name in required_strings:
            if not getattr(self, name).strip():
                raise ConfigurationInvalidError(name)

        if not any(t.strip() for t in self.transports):
            raise ConfigurationInvalidError("transports")

        limits = self.input_length_restrictions.model_dump()
        for field_name, limit in limits.items():
            if limit <= 0:
                raise ConfigurationInvalidError(
                    f"input_length_restrictions.{field_name}"
                )

        return self


# Global settings instances
settings = Settings()
options = AuthorizationOptions()
