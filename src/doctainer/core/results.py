from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, computed_field

from doctainer.utils.diagnostics import DoctainerDiagnostic


class Outcome(str, Enum):
    """Terminal outcome of a wait or notify invocation."""

    SUCCESS = "success"
    TIMEOUT = "timeout"
    STATUS_MISMATCH = "status_mismatch"
    CONNECTIVITY_ERROR = "connectivity_error"
    USAGE_ERROR = "usage_error"
    PUBLISH_ERROR = "publish_error"

    @property
    def exit_code(self) -> int:
        return EXIT_CODES[self]


EXIT_CODES: dict[Outcome, int] = {
    Outcome.SUCCESS: 0,
    Outcome.TIMEOUT: 1,
    Outcome.STATUS_MISMATCH: 2,
    Outcome.CONNECTIVITY_ERROR: 10,
    Outcome.USAGE_ERROR: 11,
    Outcome.PUBLISH_ERROR: 12,
}


class CoordinationResult(BaseModel):
    """Structured result returned by the wait and notify coordinators."""

    model_config = ConfigDict(frozen=True)

    outcome: Outcome
    service: str
    expected_status: Optional[str] = None
    observed_status: Optional[str] = None
    index: Optional[int] = None
    message: str = ""
    diagnostic: Optional[DoctainerDiagnostic] = None

    @property
    def ok(self) -> bool:
        return self.outcome == Outcome.SUCCESS

    @computed_field
    @property
    def exit_code(self) -> int:
        return self.outcome.exit_code
