"""
Configuration management

Uses pydantic-settings, reading from environment variables and a .env file
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from searchsync.core.enums import ClientMode, DeliveryKind, ShutdownPolicy

# Port the embedded cluster listens on
EMBEDDED_HTTP_PORT = 9999


class Settings(BaseSettings):
    """Search subsystem configuration"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ======================
    # Subsystem
    # ======================
    search_enabled: bool = Field(default=True, description="Enable the search subsystem")

    # ======================
    # Elasticsearch
    # ======================
    es_client_mode: ClientMode = Field(
        default=ClientMode.REMOTE, description="Connect to an embedded or a remote cluster"
    )
    es_hosts: str = Field(
        default="localhost:9200", description="Comma separated host:port list or URLs"
    )
    es_username: Optional[str] = Field(default=None, description="ES username")
    es_password: Optional[str] = Field(
        default=None,
        description="ES password",
        validation_alias="ELASTIC_PASSWORD",
    )
    es_timeout: int = Field(default=30, ge=1, description="Request timeout (seconds)")
    es_max_retries: int = Field(default=3, ge=0, description="Max retries per request")
    es_verify_certs: bool = Field(default=False, description="Verify TLS certificates")
    es_index_namespace: str = Field(
        default="", description="Prefix applied to every derived index name"
    )

    # ======================
    # Delivery
    # ======================
    delivery_mode: DeliveryKind = Field(
        default=DeliveryKind.LOCAL, description="Process-wide delivery mode"
    )
    custom_handler: Optional[str] = Field(
        default=None, description="Dotted reference to the CUSTOM index event handler"
    )
    queue_capacity: int = Field(default=1000, ge=1, description="QUEUED mode capacity")
    queue_shutdown: ShutdownPolicy = Field(
        default=ShutdownPolicy.DRAIN, description="Drain or discard queued events on shutdown"
    )

    # ======================
    # Logging
    # ======================
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="json", description="Log format (json/text)")

    @property
    def host_list(self) -> List[str]:
        """Configured hosts, split and stripped"""
        if self.es_client_mode == ClientMode.EMBEDDED:
            return [f"localhost:{EMBEDDED_HTTP_PORT}"]
        return [host.strip() for host in self.es_hosts.split(",") if host.strip()]

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate the log level"""
        allowed = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in allowed:
            raise ValueError(f"log_level must be one of: {', '.join(allowed)}")
        return v.upper()

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        """Validate the log format"""
        if v.lower() not in ("json", "text"):
            raise ValueError("log_format must be json or text")
        return v.lower()


@lru_cache()
def get_settings() -> Settings:
    """Get the settings singleton"""
    return Settings()
