"""Application configuration using pydantic-settings."""

from typing import Any

from pydantic import field_validator
from pydantic.fields import FieldInfo
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict

from services.credential_manager import CREDENTIAL_KEYS, get_credential

VALID_PROVIDER_ENVIRONMENTS = frozenset({"sandbox", "production"})


class KeychainSettingsSource(PydanticBaseSettingsSource):
    """Load credential fields from the system keychain via ``keyring``.

    Only fields whose uppercase name appears in
    :data:`~services.credential_manager.CREDENTIAL_KEYS` are looked up.
    All other fields return ``None`` so the next source in the chain
    handles them.
    """

    def get_field_value(
        self, field: FieldInfo, field_name: str
    ) -> tuple[Any, str, bool]:
        env_name = field_name.upper()
        if env_name not in CREDENTIAL_KEYS:
            return None, field_name, False
        value = get_credential(env_name)
        return value, field_name, False

    def __call__(self) -> dict[str, Any]:
        d: dict[str, Any] = {}
        for field_name, field_info in self.settings_cls.model_fields.items():
            value, key, is_complex = self.get_field_value(field_info, field_name)
            if value is not None:
                d[key] = value
        return d


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        return (
            init_settings,
            KeychainSettingsSource(settings_cls),
            env_settings,
            dotenv_settings,
            file_secret_settings,
        )

    # Database
    DATABASE_URL: str = "sqlite:///./bankbridge.db"

    # Plaid (account aggregation)
    PLAID_CLIENT_ID: str = ""
    PLAID_SECRET: str = ""
    PLAID_ENVIRONMENT: str = "sandbox"
    PLAID_CLIENT_NAME: str = "BankBridge"

    # Dwolla (payment rail)
    DWOLLA_KEY: str = ""
    DWOLLA_SECRET: str = ""
    DWOLLA_ENVIRONMENT: str = "sandbox"

    # Transaction history
    TRANSACTION_WINDOW_DAYS: int = 30
    TRANSACTION_PAGE_SIZE: int = 100

    @field_validator("PLAID_ENVIRONMENT", mode="before")
    @classmethod
    def normalize_plaid_environment(cls, v: str) -> str:
        """Lowercase PLAID_ENVIRONMENT; unknown values fall back at client creation."""
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("DWOLLA_ENVIRONMENT", mode="before")
    @classmethod
    def validate_dwolla_environment(cls, v: str) -> str:
        """Reject anything other than sandbox or production.

        A misconfigured payment rail is fatal at startup rather than per request.
        """
        normalized = v.strip().lower() if isinstance(v, str) else v
        if normalized not in VALID_PROVIDER_ENVIRONMENTS:
            raise ValueError(
                "DWOLLA_ENVIRONMENT should either be set to `sandbox` or "
                f"`production`, got {v!r}"
            )
        return normalized

    @field_validator("TRANSACTION_WINDOW_DAYS", "TRANSACTION_PAGE_SIZE")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be a positive integer")
        return v

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate and normalize LOG_LEVEL to an uppercase Python logging level."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        if v.upper() not in valid:
            raise ValueError(f"LOG_LEVEL must be one of {valid}, got {v!r}")
        return v.upper()

    # App settings
    ENVIRONMENT: str = "development"
    DEBUG: bool = True
    LOG_LEVEL: str = "INFO"
    CORS_ORIGINS: list[str] = ["http://localhost:3000"]


settings = Settings()
