"""Service-level settings using pydantic-settings."""

from typing import Literal

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings


class ServiceSettings(BaseSettings):
    """Settings of the catalog service itself.

    All settings can be configured via environment variables with the
    CATALOG_ prefix, for example ``CATALOG_LOG_LEVEL=DEBUG`` or
    ``CATALOG_LIST_ALL_CAP=500``. Broker and store connections are configured
    separately by :class:`~catalogsync.integrations.rabbitmq.RabbitMQConfiguration`
    and :class:`~catalogsync.integrations.mongodb.MongoConfiguration`.

    Attributes:
        log_level: Level of the ``catalogsync`` logger.
        default_page: Page returned by search when none is requested.
        default_limit: Page size used by search when none is requested.
        max_limit: Largest page size a search may request.
        list_all_cap: Maximum number of records returned by "list all".
    """

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"

    default_page: int = Field(default=1, ge=1)
    default_limit: int = Field(default=4, ge=1)
    max_limit: int = Field(default=100, ge=1)
    list_all_cap: int = Field(default=1000, ge=1)

    model_config = {"env_prefix": "CATALOG_"}

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, value: object) -> object:
        return value.upper() if isinstance(value, str) else value

    @model_validator(mode="after")
    def _default_limit_within_max(self) -> "ServiceSettings":
        if self.default_limit > self.max_limit:
            raise ValueError(
                f"default_limit ({self.default_limit}) must not exceed max_limit ({self.max_limit})"
            )
        return self
