from __future__ import annotations

from enum import Enum
from typing import Dict

from doctainer.core.results import Outcome


class WaitState(str, Enum):
    """States of one wait invocation."""

    CHECKING_STORE = "checking_store"
    READING_KEY = "reading_key"
    ALREADY_PRESENT = "already_present"
    ABSENT_WATCHING = "absent_watching"
    EVALUATING = "evaluating"
    SUCCESS = "success"
    MISMATCH = "mismatch"
    UNREACHABLE = "unreachable"
    TIMED_OUT = "timed_out"
    USAGE_ERROR = "usage_error"


class WaitEvent(str, Enum):
    """Events that drive wait state transitions."""

    STORE_CONNECTED = "store_connected"
    STORE_UNAVAILABLE = "store_unavailable"
    INVALID_SERVICE = "invalid_service"
    KEY_PRESENT = "key_present"
    KEY_ABSENT = "key_absent"
    VALUE_OBSERVED = "value_observed"
    WATCH_TIMED_OUT = "watch_timed_out"
    STATUS_MATCHED = "status_matched"
    STATUS_DIFFERED = "status_differed"


TERMINAL_WAIT_STATES = frozenset(
    {
        WaitState.SUCCESS,
        WaitState.MISMATCH,
        WaitState.UNREACHABLE,
        WaitState.TIMED_OUT,
        WaitState.USAGE_ERROR,
    }
)

TERMINAL_OUTCOMES: Dict[WaitState, Outcome] = {
    WaitState.SUCCESS: Outcome.SUCCESS,
    WaitState.MISMATCH: Outcome.STATUS_MISMATCH,
    WaitState.UNREACHABLE: Outcome.CONNECTIVITY_ERROR,
    WaitState.TIMED_OUT: Outcome.TIMEOUT,
    WaitState.USAGE_ERROR: Outcome.USAGE_ERROR,
}


def transition_wait_state(current: WaitState, event: WaitEvent) -> WaitState:
    """Compute the next wait state for a given event.

    Connectivity can be lost in any non-terminal state. Terminal states accept
    no events. Invalid transitions raise ValueError.
    """

    if current in TERMINAL_WAIT_STATES:
        raise ValueError(f"Invalid wait transition from terminal state: {current} -> {event}")

    if event == WaitEvent.STORE_UNAVAILABLE:
        return WaitState.UNREACHABLE

    if current == WaitState.CHECKING_STORE:
        if event == WaitEvent.STORE_CONNECTED:
            return WaitState.READING_KEY
        if event == WaitEvent.INVALID_SERVICE:
            return WaitState.USAGE_ERROR
        raise ValueError(f"Invalid wait transition: {current} -> {event}")

    if current == WaitState.READING_KEY:
        if event == WaitEvent.KEY_PRESENT:
            return WaitState.ALREADY_PRESENT
        if event == WaitEvent.KEY_ABSENT:
            return WaitState.ABSENT_WATCHING
        raise ValueError(f"Invalid wait transition: {current} -> {event}")

    if current == WaitState.ALREADY_PRESENT:
        if event == WaitEvent.VALUE_OBSERVED:
            return WaitState.EVALUATING
        raise ValueError(f"Invalid wait transition: {current} -> {event}")

    if current == WaitState.ABSENT_WATCHING:
        if event == WaitEvent.VALUE_OBSERVED:
            return WaitState.EVALUATING
        if event == WaitEvent.WATCH_TIMED_OUT:
            return WaitState.TIMED_OUT
        raise ValueError(f"Invalid wait transition: {current} -> {event}")

    if current == WaitState.EVALUATING:
        if event == WaitEvent.STATUS_MATCHED:
            return WaitState.SUCCESS
        if event == WaitEvent.STATUS_DIFFERED:
            return WaitState.MISMATCH
        raise ValueError(f"Invalid wait transition: {current} -> {event}")

    raise ValueError(f"Unknown wait state: {current}")
