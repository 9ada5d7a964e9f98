from __future__ import annotations

from doctainer.coordination import NotifyPublisher, WaitCoordinator
from doctainer.core.models import NotifyRequest, StoreSettings, WaitRequest
from doctainer.core.results import CoordinationResult, Outcome
from doctainer.store import StoreClient

__version__ = "0.2.0"

__all__ = [
	"CoordinationResult",
	"NotifyPublisher",
	"NotifyRequest",
	"Outcome",
	"StoreClient",
	"StoreSettings",
	"WaitCoordinator",
	"WaitRequest",
]
