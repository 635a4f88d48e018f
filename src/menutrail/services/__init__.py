"""MenuTrail services.

- progression: time-driven status resolution for simulated deliveries
- sandbox: in-memory store of simulated DoorDash deliveries
"""

from menutrail.services.progression import (
    STATUS_PROGRESSION,
    DeliveryStatus,
    StatusStage,
    has_dasher,
    resolve_status,
)
from menutrail.services.sandbox import (
    DasherInfo,
    DeliveryEvent,
    DeliveryStatusView,
    DeliveryValidationError,
    ManualStatusResult,
    SandboxDelivery,
    SandboxDeliveryNotFoundError,
    SandboxDeliveryStore,
    SandboxError,
    SandboxQuote,
    SimulatedDeliveryError,
)

__all__ = [
    "STATUS_PROGRESSION",
    "DasherInfo",
    "DeliveryEvent",
    "DeliveryStatus",
    "DeliveryStatusView",
    "DeliveryValidationError",
    "ManualStatusResult",
    "SandboxDelivery",
    "SandboxDeliveryNotFoundError",
    "SandboxDeliveryStore",
    "SandboxError",
    "SandboxQuote",
    "SimulatedDeliveryError",
    "StatusStage",
    "has_dasher",
    "resolve_status",
]
