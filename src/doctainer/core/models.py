import re
from typing import Literal
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_STATUS = "running"
DEFAULT_ETCD_URL = "http://127.0.0.1:4001"
SERVICE_KEY_PREFIX = "service"

_FORBIDDEN_NAME_CHARS = re.compile(r"[/?#%]")
_RELATIVE_NAMES = {".", ".."}


def service_key(service: str) -> str:
    """Return the store key holding the status of ``service``."""
    return f"{SERVICE_KEY_PREFIX}/{service}"


def validate_service_name(service: str | None) -> str:
    """Normalize a service name, raising ValueError when it cannot be used as a key."""
    normalized = (service or "").strip()
    if not normalized:
        raise ValueError("missing service name")
    if _FORBIDDEN_NAME_CHARS.search(normalized):
        raise ValueError(f"invalid service name '{normalized}': '/', '?', '#' and '%' are not allowed")
    if normalized in _RELATIVE_NAMES:
        raise ValueError(f"invalid service name '{normalized}': '.' and '..' are path segments")
    return normalized


class FrameworkSettings(BaseSettings):
    """
    Framework-level settings (the 'doctainer' section in doctainer.yaml).
    """
    model_config = SettingsConfigDict(env_prefix='DOCTAINER_', extra='ignore')

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: object) -> object:
        if isinstance(value, str):
            return value.strip().upper()
        return value


class StoreSettings(BaseSettings):
    """
    Coordination store endpoint (the 'store' section in doctainer.yaml).

    ``etcd_url`` is read from the ``ETCD_URL`` environment variable, the
    timeouts from ``DOCTAINER_STORE_*``.
    """
    model_config = SettingsConfigDict(env_prefix='DOCTAINER_STORE_', extra='ignore')

    etcd_url: str = Field(default=DEFAULT_ETCD_URL, validation_alias=AliasChoices("etcd_url", "ETCD_URL"))
    connect_timeout: float = Field(default=5.0, gt=0)
    request_timeout: float = Field(default=10.0, gt=0)

    @field_validator("etcd_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("etcd_url cannot be empty")
        return value.rstrip("/")


class WaitRequest(BaseModel):
    """One `wait` invocation: block until a service reports the expected status."""
    model_config = ConfigDict(extra='forbid', frozen=True)

    service: str = ""
    expected_status: str = DEFAULT_STATUS
    timeout_seconds: int = Field(default=0, ge=0)


class NotifyRequest(BaseModel):
    """One `notify` invocation: publish a status for a service."""
    model_config = ConfigDict(extra='forbid', frozen=True)

    service: str = ""
    status: str = DEFAULT_STATUS
