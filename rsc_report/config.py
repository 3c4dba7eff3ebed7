"""Configuration management for rsc-report."""

from pathlib import Path
from typing import Annotated

import yaml  # type: ignore[import-untyped]
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class RSCSettings(BaseSettings):
    """Rubrik Security Cloud connection settings."""

    model_config = SettingsConfigDict(env_prefix="RSC_")

    url: str = Field(default="", description="RSC instance URL (e.g., https://acme.my.rubrik.com)")
    client_id: str | None = Field(default=None, description="Service account client ID")
    client_secret: str | None = Field(default=None, description="Service account client secret")
    service_account_file: Path | None = Field(
        default=None,
        description="Path to the service account JSON downloaded from RSC",
    )
    access_token: str | None = Field(
        default=None,
        description="Pre-issued bearer token (skips the client_credentials exchange)",
    )
    timeout: float = Field(default=60.0, description="HTTP timeout in seconds")
    page_size: int = Field(default=1000, ge=1, le=1000, description="Default GraphQL page size")
    verify_ssl: bool = Field(default=True, description="Verify TLS certificates")

    @field_validator("url")
    @classmethod
    def normalize_url(cls, v: str) -> str:
        """Strip whitespace and trailing slashes, default to https."""
        url = v.strip()
        if not url:
            return url
        if not url.startswith(("http://", "https://")):
            url = f"https://{url}"
        return url.rstrip("/")


class EmailSettings(BaseSettings):
    """SMTP settings used when a report is emailed."""

    model_config = SettingsConfigDict(env_prefix="RSC_SMTP_")

    server: str | None = Field(default=None, description="SMTP server hostname")
    port: int = Field(default=25, description="SMTP port")
    sender: str | None = Field(default=None, description="From address")
    recipients: Annotated[list[str], NoDecode] = Field(
        default_factory=list, description="To addresses"
    )
    use_tls: bool = Field(default=False, description="Issue STARTTLS after connecting")
    username: str | None = Field(default=None, description="SMTP username")
    password: str | None = Field(default=None, description="SMTP password")

    @field_validator("recipients", mode="before")
    @classmethod
    def split_recipients(cls, v: object) -> object:
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            return [r.strip() for r in v.split(",") if r.strip()]
        return v

    @property
    def configured(self) -> bool:
        """True when enough is set to send mail."""
        return bool(self.server and self.sender and self.recipients)


class AppConfig(BaseSettings):
    """Main application configuration."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    rsc: RSCSettings = Field(default_factory=RSCSettings)
    email: EmailSettings = Field(default_factory=EmailSettings)
    output_dir: Path = Field(default=Path("./output"), description="Report output directory")
    recipes_dir: Path | None = Field(default=None, description="Extra recipes directory")

    @classmethod
    def from_yaml(cls, path: Path) -> "AppConfig":
        """Load configuration from a YAML file."""
        if not path.exists():
            return cls()

        with open(path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load application configuration from environment and optional YAML file."""
    if config_path:
        return AppConfig.from_yaml(config_path)
    return AppConfig()
