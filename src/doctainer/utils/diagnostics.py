from typing import Optional
from pydantic import BaseModel

class DoctainerDiagnostic(BaseModel):
    """
    Standardized description of a failed invocation, suitable for logging.
    """
    service: str
    error_code: str
    message: str
    severity: str = "error" # 'error', 'warning', 'critical'
    suggestion: Optional[str] = None

    def __str__(self) -> str:
        target = self.service or "<missing>"
        return f"[{self.error_code}] {self.message} (service {target})"

class DoctainerError(Exception):
    """
    Base exception for failures raised inside a single wait/notify invocation.
    """
    error_code = "DOCTAINER_ERROR"

    def __init__(self, message: str, service: str = None):
        self.message = message
        self.service = service
        ctx = f" for service '{service}'" if service else ""
        super().__init__(f"{message}{ctx}")

    def to_diagnostic(self, severity: str = "error") -> DoctainerDiagnostic:
        return DoctainerDiagnostic(
            service=self.service or "",
            error_code=self.error_code,
            message=self.message,
            severity=severity,
        )

class UsageError(DoctainerError):
    """Missing or invalid arguments, detected before any network call."""
    error_code = "USAGE_ERROR"

class ConnectivityError(DoctainerError):
    """The store could not be reached or answered with something unusable."""
    error_code = "CONNECTIVITY_ERROR"

class StoreUnreachableError(ConnectivityError):
    error_code = "STORE_UNREACHABLE"

class MalformedResponseError(ConnectivityError):
    error_code = "MALFORMED_RESPONSE"

class PublishError(DoctainerError):
    """The status write was rejected by the store or lost in transport."""
    error_code = "PUBLISH_ERROR"

class StatusMismatchError(DoctainerError):
    """The service reported a status other than the one waited for."""
    error_code = "STATUS_MISMATCH"
