"""Configuration management with pydantic-settings."""

from pathlib import Path
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_12_6) AppleWebKit/603.3.8 "
    "(KHTML, like Gecko) Version/10.1.2 Safari/603.3.8"
)


class SynckeeperSettings(BaseSettings):
    """synckeeper application settings loaded from environment variables.

    All settings use the SYNCKEEPER_ prefix for environment variables.
    """

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Interface to bind the HTTP server to")  # noqa: S104
    port: int = Field(default=8080, description="Port to bind the HTTP server to")

    # Logging configuration
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: str = Field(default="console", description="Log format: console or json")
    debug: bool = Field(default=False, description="Force DEBUG logging")

    # TLS termination
    use_https: bool = Field(default=False, description="Serve over HTTPS")
    ssl_certfile: Path | None = Field(default=None, description="TLS certificate chain file")
    ssl_keyfile: Path | None = Field(default=None, description="TLS private key file")

    # Synccheck probe
    user_agent: str = Field(
        default=DEFAULT_USER_AGENT,
        description="User-Agent header sent with every synccheck probe",
    )
    probe_timeout: float | None = Field(
        default=None,
        description="Probe timeout in seconds (None leaves it to the transport)",
    )

    model_config = SettingsConfigDict(
        env_prefix="SYNCKEEPER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    @property
    def effective_log_level(self) -> str:
        """Log level after applying the debug toggle."""
        return "DEBUG" if self.debug else self.log_level

    def ssl_config(self) -> dict[str, Any]:
        """Get uvicorn TLS keyword arguments.

        Returns:
            Empty dict when HTTPS is disabled, otherwise the certificate and
            key file paths as uvicorn expects them.

        Raises:
            ValueError: If HTTPS is enabled without a certificate or key file.
        """
        if not self.use_https:
            return {}

        if not self.ssl_certfile:
            raise ValueError(
                "SYNCKEEPER_SSL_CERTFILE environment variable is required "
                "when SYNCKEEPER_USE_HTTPS is enabled"
            )
        if not self.ssl_keyfile:
            raise ValueError(
                "SYNCKEEPER_SSL_KEYFILE environment variable is required "
                "when SYNCKEEPER_USE_HTTPS is enabled"
            )

        return {
            "ssl_certfile": str(self.ssl_certfile),
            "ssl_keyfile": str(self.ssl_keyfile),
        }


# Global settings instance
_settings: SynckeeperSettings | None = None


def get_settings() -> SynckeeperSettings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = SynckeeperSettings()
    return _settings


def reset_settings() -> None:
    """Reset the global settings instance (useful for testing)."""
    global _settings
    _settings = None
