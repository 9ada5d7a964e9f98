from __future__ import annotations

from doctainer.cli.formatter import OutputFormatter
from doctainer.core.models import DEFAULT_STATUS, NotifyRequest, service_key, validate_service_name
from doctainer.core.results import CoordinationResult, Outcome
from doctainer.store.client import ProbeStatus, StoreClient, WriteFailed
from doctainer.utils.diagnostics import (
    DoctainerError,
    MalformedResponseError,
    PublishError,
    StoreUnreachableError,
    UsageError,
)


class NotifyPublisher:
    """Publishes a service status with one write.

    Waiters parked on the same key are released by the store's own watch
    fan-out; nothing here knows about them.
    """

    def __init__(self, store: StoreClient) -> None:
        self.store = store

    def publish(self, service: str, status: str = DEFAULT_STATUS) -> CoordinationResult:
        return self.run(NotifyRequest(service=service, status=status))

    def run(self, request: NotifyRequest) -> CoordinationResult:
        try:
            service = validate_service_name(request.service)
        except ValueError as exc:
            return self._failure(request, Outcome.USAGE_ERROR, UsageError(str(exc), service=request.service))

        probe = self.store.probe_connectivity()
        if probe == ProbeStatus.UNREACHABLE:
            error = StoreUnreachableError(
                f"No response from store at {self.store.base_url} ({self.store.last_error}); is etcd running?",
                service=service,
            )
            return self._failure(request, Outcome.CONNECTIVITY_ERROR, error)
        if probe == ProbeStatus.MALFORMED:
            error = MalformedResponseError(
                f"Bad /version response from {self.store.base_url}: {self.store.last_error}",
                service=service,
            )
            return self._failure(request, Outcome.CONNECTIVITY_ERROR, error)
        OutputFormatter.log(f"etcd engine found and working: {self.store.base_url} (version {self.store.server_version})")

        written = self.store.write_key(service_key(service), request.status)
        if isinstance(written, WriteFailed):
            error = PublishError(f"Cannot publish status '{request.status}': {written.reason}", service=service)
            return self._failure(request, Outcome.PUBLISH_ERROR, error)

        OutputFormatter.log(f"service '{service}' notified, value={request.status}", severity="success")
        return CoordinationResult(
            outcome=Outcome.SUCCESS,
            service=service,
            observed_status=request.status,
            index=written.index,
            message=f"service '{service}' notified, value={request.status}",
        )

    @staticmethod
    def _failure(request: NotifyRequest, outcome: Outcome, error: DoctainerError) -> CoordinationResult:
        return CoordinationResult(
            outcome=outcome,
            service=request.service,
            message=error.message,
            diagnostic=error.to_diagnostic(),
        )
