"""Transport adapter for the etcd v2 key space."""

from doctainer.store.client import (
	KeyAbsent,
	KeyChanged,
	KeyPresent,
	ProbeStatus,
	StoreClient,
	WatchTimedOut,
	WriteAck,
	WriteFailed,
)

__all__ = [
	"KeyAbsent",
	"KeyChanged",
	"KeyPresent",
	"ProbeStatus",
	"StoreClient",
	"WatchTimedOut",
	"WriteAck",
	"WriteFailed",
]
