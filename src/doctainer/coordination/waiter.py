from __future__ import annotations

import time
from typing import Callable, List, Optional

from doctainer.cli.formatter import OutputFormatter
from doctainer.coordination.contracts import (
    TERMINAL_OUTCOMES,
    WaitEvent,
    WaitState,
    transition_wait_state,
)
from doctainer.core.models import DEFAULT_STATUS, WaitRequest, service_key, validate_service_name
from doctainer.core.results import CoordinationResult, Outcome
from doctainer.store.client import (
    KeyChanged,
    KeyPresent,
    ProbeStatus,
    StoreClient,
    WatchResult,
    WatchTimedOut,
)
from doctainer.utils.diagnostics import (
    ConnectivityError,
    DoctainerError,
    MalformedResponseError,
    StatusMismatchError,
    StoreUnreachableError,
    UsageError,
)


class WaitCoordinator:
    """Blocks until a service publishes the expected status.

    The key is read once. If it is present the value is evaluated right away;
    if it is absent a single watch is opened from the index reported by that
    same read, so a status written after the read is delivered by the watch
    and one written before it is already visible in the read.

    Instances are single-use: ``history`` records the states one run visited.
    """

    def __init__(self, store: StoreClient, clock: Callable[[], float] = time.monotonic) -> None:
        self.store = store
        self.state = WaitState.CHECKING_STORE
        self.history: List[WaitState] = [self.state]
        self._clock = clock

    def wait(
        self,
        service: str,
        expected_status: str = DEFAULT_STATUS,
        timeout_seconds: int = 0,
    ) -> CoordinationResult:
        return self.run(
            WaitRequest(
                service=service,
                expected_status=expected_status,
                timeout_seconds=timeout_seconds,
            )
        )

    def run(self, request: WaitRequest) -> CoordinationResult:
        if self.state != WaitState.CHECKING_STORE:
            raise RuntimeError("WaitCoordinator has already run; create a new instance per wait.")

        try:
            service = validate_service_name(request.service)
        except ValueError as exc:
            self._advance(WaitEvent.INVALID_SERVICE)
            return self._failure(request, UsageError(str(exc), service=request.service))

        try:
            return self._check_then_watch(request, service)
        except ConnectivityError as exc:
            self._advance(WaitEvent.STORE_UNAVAILABLE)
            return self._failure(request, exc)

    def _check_then_watch(self, request: WaitRequest, service: str) -> CoordinationResult:
        probe = self.store.probe_connectivity()
        if probe == ProbeStatus.UNREACHABLE:
            raise StoreUnreachableError(
                f"No response from store at {self.store.base_url} ({self.store.last_error}); is etcd running?",
                service=service,
            )
        if probe == ProbeStatus.MALFORMED:
            raise MalformedResponseError(
                f"Bad /version response from {self.store.base_url}: {self.store.last_error}",
                service=service,
            )
        self._advance(WaitEvent.STORE_CONNECTED)
        OutputFormatter.log(f"etcd engine found and working: {self.store.base_url} (version {self.store.server_version})")

        key = service_key(service)
        OutputFormatter.log(f"checking for service '{service}'")
        read = self.store.read_key(key)

        if isinstance(read, KeyPresent):
            self._advance(WaitEvent.KEY_PRESENT)
            OutputFormatter.log(f"service '{service}' already there")
            self._advance(WaitEvent.VALUE_OBSERVED)
            return self._evaluate(request, service, read.value, read.index)

        self._advance(WaitEvent.KEY_ABSENT)
        OutputFormatter.log(f"service '{service}' not there -> wait for {request.timeout_seconds} second(s)...")
        OutputFormatter.log(f"etcd event index: {read.index}", severity="debug")

        change = self._watch(key, read.index, request.timeout_seconds)
        if isinstance(change, WatchTimedOut):
            self._advance(WaitEvent.WATCH_TIMED_OUT)
            return CoordinationResult(
                outcome=Outcome.TIMEOUT,
                service=service,
                expected_status=request.expected_status,
                index=read.index,
                message=f"timeout after {request.timeout_seconds} second(s) waiting for service '{service}'",
            )

        self._advance(WaitEvent.VALUE_OBSERVED)
        return self._evaluate(request, service, change.value, change.index, change.action)

    def _watch(self, key: str, from_index: int, timeout_seconds: int) -> WatchResult:
        # waitIndex is inclusive: the removal recorded at from_index can be
        # replayed. It carries no status, so resume past it within the deadline.
        deadline: Optional[float] = None
        if timeout_seconds > 0:
            deadline = self._clock() + timeout_seconds

        resume_index = from_index
        while True:
            remaining: float = 0
            if deadline is not None:
                remaining = deadline - self._clock()
                if remaining <= 0:
                    return WatchTimedOut()

            result = self.store.watch_key(key, resume_index, remaining)
            if isinstance(result, KeyChanged) and result.value is None and result.index <= from_index:
                OutputFormatter.log(
                    f"skipping replayed '{result.action}' event at index {result.index}",
                    severity="debug",
                )
                resume_index = result.index + 1
                continue
            return result

    def _evaluate(
        self,
        request: WaitRequest,
        service: str,
        observed: Optional[str],
        index: int,
        action: Optional[str] = None,
    ) -> CoordinationResult:
        if observed == request.expected_status:
            self._advance(WaitEvent.STATUS_MATCHED)
            OutputFormatter.log(f"service '{service}': {observed}", severity="success")
            return CoordinationResult(
                outcome=Outcome.SUCCESS,
                service=service,
                expected_status=request.expected_status,
                observed_status=observed,
                index=index,
                message=f"service '{service}': {observed}",
            )

        self._advance(WaitEvent.STATUS_DIFFERED)
        if observed is None:
            message = f"service '{service}' was removed ({action}) instead of reporting '{request.expected_status}'"
        else:
            message = f"unknown status: {observed} (expected '{request.expected_status}')"
        error = StatusMismatchError(message, service=service)
        return CoordinationResult(
            outcome=Outcome.STATUS_MISMATCH,
            service=service,
            expected_status=request.expected_status,
            observed_status=observed,
            index=index,
            message=message,
            diagnostic=error.to_diagnostic(),
        )

    def _failure(self, request: WaitRequest, error: DoctainerError) -> CoordinationResult:
        return CoordinationResult(
            outcome=TERMINAL_OUTCOMES[self.state],
            service=request.service,
            expected_status=request.expected_status,
            message=error.message,
            diagnostic=error.to_diagnostic(),
        )

    def _advance(self, event: WaitEvent) -> None:
        self.state = transition_wait_state(self.state, event)
        self.history.append(self.state)
