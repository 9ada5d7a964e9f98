"""Decoding of etcd v2 key-space responses."""

from __future__ import annotations

import json
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from doctainer.utils.diagnostics import MalformedResponseError

ETCD_INDEX_HEADER = "X-Etcd-Index"
SERVER_IDENTITY_MARKER = "etcdserver"

# Actions that leave the key without a value.
VALUELESS_ACTIONS = frozenset({"delete", "expire", "compareAndDelete"})


class EtcdNode(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    key: Optional[str] = None
    value: Optional[str] = None
    dir: bool = False
    modified_index: Optional[int] = Field(default=None, alias="modifiedIndex")
    created_index: Optional[int] = Field(default=None, alias="createdIndex")


class EtcdEvent(BaseModel):
    """Body of a successful get, set or watch response."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    action: str
    node: EtcdNode
    prev_node: Optional[EtcdNode] = Field(default=None, alias="prevNode")

    @property
    def carries_value(self) -> bool:
        return self.action not in VALUELESS_ACTIONS and self.node.value is not None


class EtcdErrorBody(BaseModel):
    """Body of an etcd error response, e.g. errorCode 100 "Key not found"."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    error_code: int = Field(alias="errorCode")
    message: str = ""
    cause: Optional[str] = None
    index: Optional[int] = None


class VersionInfo(BaseModel):
    model_config = ConfigDict(extra="ignore")

    etcdserver: str
    etcdcluster: Optional[str] = None


def decode_json(body: str, what: str) -> Any:
    try:
        return json.loads(body)
    except json.JSONDecodeError as exc:
        raise MalformedResponseError(f"{what} is not valid JSON: {exc}") from exc


def decode_event(body: str, what: str = "store response") -> EtcdEvent:
    payload = decode_json(body, what)
    try:
        return EtcdEvent.model_validate(payload)
    except ValidationError as exc:
        raise MalformedResponseError(f"{what} does not match the etcd event schema: {exc}") from exc


def decode_error(body: str) -> Optional[EtcdErrorBody]:
    """Return the etcd error body, or None when ``body`` is not one."""
    try:
        payload = json.loads(body)
    except json.JSONDecodeError:
        return None
    if not isinstance(payload, dict) or "errorCode" not in payload:
        return None
    try:
        return EtcdErrorBody.model_validate(payload)
    except ValidationError:
        return None


def decode_version(body: str) -> Optional[VersionInfo]:
    """Decode a /version body; older servers answer in plain text, which yields None."""
    try:
        payload = json.loads(body)
        return VersionInfo.model_validate(payload)
    except (json.JSONDecodeError, ValidationError):
        return None


def index_from_headers(headers: Mapping[str, str]) -> Optional[int]:
    """Return the X-Etcd-Index header as an int, or None when missing or not numeric."""
    raw = headers.get(ETCD_INDEX_HEADER)
    if raw is None:
        return None
    raw = raw.strip()
    if not raw.isdigit():
        return None
    return int(raw)
