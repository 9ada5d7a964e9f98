from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

import httpx

from doctainer.core.models import DEFAULT_ETCD_URL, StoreSettings
from doctainer.store.schema import (
    SERVER_IDENTITY_MARKER,
    decode_error,
    decode_event,
    decode_version,
    index_from_headers,
)
from doctainer.utils.diagnostics import MalformedResponseError, StoreUnreachableError

KEY_NOT_FOUND = 100


class ProbeStatus(str, Enum):
    """Classification of the store's answer to a /version request."""

    CONNECTED = "connected"
    UNREACHABLE = "unreachable"
    MALFORMED = "malformed"


@dataclass(frozen=True)
class KeyPresent:
    value: str
    index: int


@dataclass(frozen=True)
class KeyAbsent:
    index: int


@dataclass(frozen=True)
class KeyChanged:
    """One watch event. ``value`` is None for deletions and expiries."""

    value: Optional[str]
    index: int
    action: str


@dataclass(frozen=True)
class WatchTimedOut:
    pass


@dataclass(frozen=True)
class WriteAck:
    index: Optional[int] = None


@dataclass(frozen=True)
class WriteFailed:
    reason: str


KeyRead = Union[KeyPresent, KeyAbsent]
WatchResult = Union[KeyChanged, WatchTimedOut]
WriteResult = Union[WriteAck, WriteFailed]


class StoreClient:
    """Single-key client for the etcd v2 HTTP key space.

    Use as a context manager; the underlying httpx client is closed on exit.
    No operation retries.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_ETCD_URL,
        connect_timeout: float = 5.0,
        request_timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.connect_timeout = connect_timeout
        self.request_timeout = request_timeout
        self.server_version: Optional[str] = None
        self.last_error: Optional[str] = None
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @classmethod
    def from_settings(
        cls,
        settings: StoreSettings,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "StoreClient":
        return cls(
            base_url=settings.etcd_url,
            connect_timeout=settings.connect_timeout,
            request_timeout=settings.request_timeout,
            transport=transport,
        )

    def __enter__(self) -> "StoreClient":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        if self._client is not None:
            return
        self._client = httpx.Client(
            base_url=self.base_url,
            timeout=httpx.Timeout(self.request_timeout, connect=self.connect_timeout),
            follow_redirects=True,
            transport=self._transport,
        )

    def close(self) -> None:
        if self._client is None:
            return
        try:
            self._client.close()
        finally:
            self._client = None

    @property
    def http(self) -> httpx.Client:
        if self._client is None:
            raise RuntimeError("StoreClient is not open. Use it as a context manager.")
        return self._client

    def probe_connectivity(self) -> ProbeStatus:
        """Check that the endpoint answers /version like an etcd server."""
        try:
            response = self.http.get("/version")
        except httpx.HTTPError as exc:
            self.last_error = str(exc) or exc.__class__.__name__
            return ProbeStatus.UNREACHABLE

        body = response.text.strip()
        if not body:
            self.last_error = "empty /version response"
            return ProbeStatus.UNREACHABLE
        if SERVER_IDENTITY_MARKER not in body:
            self.last_error = f"/version response lacks '{SERVER_IDENTITY_MARKER}': {body[:80]}"
            return ProbeStatus.MALFORMED

        info = decode_version(body)
        self.server_version = info.etcdserver if info is not None else body
        self.last_error = None
        return ProbeStatus.CONNECTED

    def read_key(self, key: str) -> KeyRead:
        """Read one key, reporting the store index whether or not the key exists."""
        try:
            response = self.http.get(self._key_path(key))
        except httpx.HTTPError as exc:
            raise StoreUnreachableError(f"Cannot read '{key}': {exc}") from exc

        body = response.text
        header_index = index_from_headers(response.headers)

        error = decode_error(body)
        if error is not None:
            if error.error_code != KEY_NOT_FOUND:
                raise MalformedResponseError(
                    f"Store rejected read of '{key}': {error.message} (errorCode {error.error_code})"
                )
            index = header_index if header_index is not None else error.index
            if index is None:
                raise MalformedResponseError(f"Absence response for '{key}' carries no store index")
            return KeyAbsent(index=index)

        if not response.is_success:
            raise MalformedResponseError(f"Unexpected HTTP {response.status_code} reading '{key}'")

        event = decode_event(body, f"read response for '{key}'")
        if event.node.dir or event.node.value is None:
            raise MalformedResponseError(f"'{key}' holds no status value (is it a directory?)")

        index = header_index if header_index is not None else event.node.modified_index
        if index is None:
            raise MalformedResponseError(f"Read response for '{key}' carries no store index")
        return KeyPresent(value=event.node.value, index=index)

    def watch_key(self, key: str, from_index: int, timeout_seconds: float = 0) -> WatchResult:
        """Long-poll ``key`` for the first change at or after ``from_index``.

        ``timeout_seconds`` of 0 sets no read deadline. A read timeout or an
        empty body means the deadline passed without a change.
        """
        params = {"wait": "true", "waitIndex": str(from_index)}
        try:
            response = self.http.get(
                self._key_path(key),
                params=params,
                timeout=self._watch_timeout(timeout_seconds),
            )
        except httpx.ReadTimeout:
            return WatchTimedOut()
        except httpx.HTTPError as exc:
            raise StoreUnreachableError(f"Watch on '{key}' failed: {exc}") from exc

        body = response.text.strip()
        if not body:
            return WatchTimedOut()

        error = decode_error(body)
        if error is not None:
            raise MalformedResponseError(
                f"Store rejected watch on '{key}' from index {from_index}: "
                f"{error.message} (errorCode {error.error_code})"
            )
        if not response.is_success:
            raise MalformedResponseError(f"Unexpected HTTP {response.status_code} watching '{key}'")

        event = decode_event(body, f"watch response for '{key}'")
        index = event.node.modified_index
        if index is None:
            index = index_from_headers(response.headers)
        if index is None:
            raise MalformedResponseError(f"Watch event for '{key}' carries no index")

        value = event.node.value if event.carries_value else None
        return KeyChanged(value=value, index=index, action=event.action)

    def write_key(self, key: str, value: str) -> WriteResult:
        """Set ``key`` to ``value`` in a single PUT."""
        try:
            response = self.http.put(self._key_path(key), data={"value": value})
        except httpx.HTTPError as exc:
            return WriteFailed(reason=str(exc) or exc.__class__.__name__)

        error = decode_error(response.text)
        if error is not None:
            return WriteFailed(reason=f"{error.message} (errorCode {error.error_code})")
        if not response.is_success:
            return WriteFailed(reason=f"HTTP {response.status_code}")

        return WriteAck(index=index_from_headers(response.headers))

    def _watch_timeout(self, timeout_seconds: float) -> httpx.Timeout:
        if timeout_seconds <= 0:
            return httpx.Timeout(None, connect=self.connect_timeout)
        return httpx.Timeout(timeout_seconds, connect=min(self.connect_timeout, timeout_seconds))

    @staticmethod
    def _key_path(key: str) -> str:
        return f"/v2/keys/{key}"
