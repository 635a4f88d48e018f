"""Time-driven status progression for simulated deliveries.

A simulated delivery never stores its current status. Instead the status
is resolved on every read from the time elapsed since creation, walking a
fixed schedule of stages:

    created -> confirmed -> dasher_confirmed -> dasher_at_store -> picked_up
            -> enroute_to_consumer -> arrived_at_consumer -> delivered

Resolution is monotonic: for a fixed creation time the resolved status
never moves backwards as time advances.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import Enum


class DeliveryStatus(str, Enum):
    """Status labels of a simulated DoorDash delivery.

    CANCELLED is off the time schedule; it is only reachable through a
    manual override.
    """

    CREATED = "created"
    CONFIRMED = "confirmed"
    DASHER_CONFIRMED = "dasher_confirmed"
    DASHER_AT_STORE = "dasher_at_store"
    PICKED_UP = "picked_up"
    ENROUTE_TO_CONSUMER = "enroute_to_consumer"
    ARRIVED_AT_CONSUMER = "arrived_at_consumer"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


@dataclass(frozen=True, slots=True)
class StatusStage:
    """One step of the progression schedule.

    Attributes:
        status: Status reported once this stage is reached.
        minutes_from_start: Elapsed minutes after creation at which it is reached.
    """

    status: DeliveryStatus
    minutes_from_start: float

    @property
    def offset(self) -> timedelta:
        """Offset of this stage from the creation time."""
        return timedelta(minutes=self.minutes_from_start)


# Sorted ascending by minutes_from_start, first entry at 0
STATUS_PROGRESSION: tuple[StatusStage, ...] = (
    StatusStage(DeliveryStatus.CREATED, 0),
    StatusStage(DeliveryStatus.CONFIRMED, 2),
    StatusStage(DeliveryStatus.DASHER_CONFIRMED, 5),
    StatusStage(DeliveryStatus.DASHER_AT_STORE, 10),
    StatusStage(DeliveryStatus.PICKED_UP, 15),
    StatusStage(DeliveryStatus.ENROUTE_TO_CONSUMER, 20),
    StatusStage(DeliveryStatus.ARRIVED_AT_CONSUMER, 35),
    StatusStage(DeliveryStatus.DELIVERED, 40),
)

# Courier identity is reported from this stage onwards
DASHER_ASSIGNED_FROM = DeliveryStatus.DASHER_CONFIRMED

_STAGE_INDEX: dict[DeliveryStatus, int] = {
    stage.status: index for index, stage in enumerate(STATUS_PROGRESSION)
}


def resolve_status(created_at: datetime, now: datetime | None = None) -> DeliveryStatus:
    """Resolve the status of a delivery from the time elapsed since creation.

    Returns the last stage whose offset is at or before the elapsed time.
    A creation time in the future (clock skew) resolves to the first stage.

    Args:
        created_at: When the delivery was created.
        now: Reference time; defaults to the current UTC time.

    Returns:
        The status label for the elapsed time.
    """
    if now is None:
        now = datetime.now(UTC)
    elapsed_minutes = (now - created_at) / timedelta(minutes=1)

    current = STATUS_PROGRESSION[0].status
    for stage in STATUS_PROGRESSION:
        if elapsed_minutes < stage.minutes_from_start:
            break
        current = stage.status
    return current


def stage_index(status: DeliveryStatus) -> int | None:
    """Position of a status in the progression schedule, None if off-schedule."""
    return _STAGE_INDEX.get(status)


def has_dasher(status: DeliveryStatus) -> bool:
    """Whether a courier has been assigned once a delivery reaches this status."""
    index = stage_index(status)
    if index is None:
        return False
    return index >= _STAGE_INDEX[DASHER_ASSIGNED_FROM]
