"""Wait/notify coordination over the store's watch mechanism."""

from doctainer.coordination.contracts import WaitEvent, WaitState, transition_wait_state
from doctainer.coordination.notifier import NotifyPublisher
from doctainer.coordination.waiter import WaitCoordinator

__all__ = [
	"NotifyPublisher",
	"WaitCoordinator",
	"WaitEvent",
	"WaitState",
	"transition_wait_state",
]
