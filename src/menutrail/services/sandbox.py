"""Sandbox DoorDash delivery store.

This module keeps simulated deliveries in process memory so restaurant
owners can test the delivery tracking flow without real couriers:
- Creation with deterministic fee and one-time pickup/dropoff estimates
- Status derived from elapsed time on every read (see progression)
- Synthesized courier identity once a dasher would be assigned
- Manual status override and simulated failures for UI testing
- Lookup of unknown ids that follow the sandbox-{orderId}-{ms} convention

Records live as long as the store instance; nothing is persisted.
"""

from __future__ import annotations

import logging
import re
import threading
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from typing import Any

from menutrail.core.config import SandboxSettings
from menutrail.services.progression import (
    DeliveryStatus,
    has_dasher,
    resolve_status,
    stage_index,
)

logger = logging.getLogger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)
_MILLISECOND = timedelta(milliseconds=1)
_LATEST = datetime.max.replace(tzinfo=UTC)
_LEADING_DIGITS = re.compile(r"\d+")

Clock = Callable[[], datetime]


# ---------------------------------------------------------------------------
# Errors
# ---------------------------------------------------------------------------


class SandboxError(Exception):
    """Base class for sandbox delivery errors."""


class SandboxDeliveryNotFoundError(SandboxError):
    """Raised when a delivery id is neither stored nor synthesizable."""

    def __init__(self, delivery_id: str) -> None:
        self.delivery_id = delivery_id
        super().__init__(f"Sandbox delivery {delivery_id} not found")


class SimulatedDeliveryError(SandboxError):
    """Raised when a caller asks the sandbox to fail on purpose."""

    error_code = "SANDBOX_SIMULATED_ERROR"

    def __init__(self, reason: str, delivery_id: str | None = None) -> None:
        self.reason = reason
        self.delivery_id = delivery_id
        super().__init__(f"Simulated error: {reason}")


class DeliveryValidationError(SandboxError):
    """Raised when delivery input is malformed."""

    def __init__(self, message: str, field: str | None = None) -> None:
        self.message = message
        self.field = field
        super().__init__(message)


# ---------------------------------------------------------------------------
# Records and views
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DeliveryEvent:
    """A status the delivery was observed in or manually set to."""

    status: DeliveryStatus
    timestamp: datetime


@dataclass(frozen=True, slots=True)
class DasherInfo:
    """Courier identity reported once a dasher is assigned."""

    name: str
    phone: str


@dataclass(slots=True)
class SandboxDelivery:
    """A simulated delivery owned by a SandboxDeliveryStore.

    `status` only matters once `status_overridden` is set; otherwise the
    effective status is resolved from `created_at` on every read.

    Attributes:
        id: sandbox-{orderId}-{creation epoch ms}.
        order_id: Order that requested the delivery (not validated here).
        created_at: Creation time, millisecond precision, UTC.
        pickup_address: Single-line pickup address.
        dropoff_address: Single-line dropoff address.
        estimated_pickup_time: One-time estimate made at creation.
        estimated_delivery_time: One-time estimate made at creation.
        fee: Deterministic delivery fee.
        status: Manually set status.
        status_overridden: Whether `status` replaces time-derived resolution.
        events: Append-only status history.
        order_value: Order subtotal, informational only.
        items: Ordered items, informational only.
    """

    id: str
    order_id: str
    created_at: datetime
    pickup_address: str
    dropoff_address: str
    estimated_pickup_time: datetime
    estimated_delivery_time: datetime
    fee: float
    status: DeliveryStatus = DeliveryStatus.CREATED
    status_overridden: bool = False
    events: list[DeliveryEvent] = field(default_factory=list)
    order_value: float | None = None
    items: list[dict[str, Any]] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class DeliveryStatusView:
    """Read model of a delivery with its effective status.

    Synthesized views (unknown id following the naming convention) only
    carry the fields derivable from the id.
    """

    delivery_id: str
    status: DeliveryStatus
    tracking_url: str
    estimated_pickup_time: datetime
    estimated_delivery_time: datetime
    dasher: DasherInfo | None = None
    order_id: str | None = None
    pickup_address: str | None = None
    dropoff_address: str | None = None
    fee: float | None = None
    created_at: datetime | None = None
    events: tuple[DeliveryEvent, ...] = ()
    is_synthesized: bool = False
    is_sandbox: bool = True


@dataclass(frozen=True, slots=True)
class ManualStatusResult:
    """Outcome of a manual status override.

    `applied` is False when the id was unknown and nothing changed.
    """

    delivery_id: str
    status: DeliveryStatus
    applied: bool


@dataclass(frozen=True, slots=True)
class SandboxQuote:
    """Non-persisted fee and timing estimate for a prospective delivery."""

    external_delivery_id: str
    fee: float
    currency: str
    estimated_pickup_time: datetime
    estimated_delivery_time: datetime


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def format_address(address: str | Mapping[str, Any] | None) -> str:
    """Flatten an address into a single line.

    Strings are kept as-is. Structured addresses become
    "street, city, state zip"; missing parts are left blank.
    """
    if address is None:
        return ""
    if isinstance(address, str):
        return address
    if isinstance(address, Mapping):
        street = address.get("street") or ""
        city = address.get("city") or ""
        state = address.get("state") or ""
        zip_code = address.get("zip") or ""
        return f"{street}, {city}, {state} {zip_code}"
    return str(address)


def to_epoch_ms(moment: datetime) -> int:
    """Milliseconds since the Unix epoch."""
    return (moment - _EPOCH) // _MILLISECOND


def from_epoch_ms(value: int) -> datetime:
    """UTC datetime for milliseconds since the Unix epoch."""
    return _EPOCH + value * _MILLISECOND


def _as_utc(moment: datetime) -> datetime:
    # Naive clocks are assumed to report UTC
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def parse_delivery_status(status: str | DeliveryStatus) -> DeliveryStatus:
    """Parse a status label.

    Raises:
        DeliveryValidationError: If the label is not a known status.
    """
    try:
        return DeliveryStatus(status)
    except ValueError as e:
        allowed = ", ".join(s.value for s in DeliveryStatus)
        raise DeliveryValidationError(
            f"Unknown delivery status: {status}. Valid statuses: {allowed}",
            field="status",
        ) from e


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------


class SandboxDeliveryStore:
    """In-memory registry of simulated deliveries.

    One instance is shared by every request of an application; tests create
    a fresh instance each. The clock is injectable so status progression can
    be driven deterministically.

    Example:
        store = SandboxDeliveryStore()
        delivery = store.create("order-1", "1 Main St", "2 Oak Ave")
        view = store.get_status(delivery.id)
        print(view.status.value)  # "created"
    """

    def __init__(
        self,
        settings: SandboxSettings | None = None,
        clock: Clock | None = None,
    ) -> None:
        """Initialize an empty store.

        Args:
            settings: Simulator constants; defaults apply when omitted.
            clock: Returns the current time; defaults to UTC wall-clock time.
        """
        self._settings = settings or SandboxSettings()
        self._clock = clock or (lambda: datetime.now(UTC))
        self._deliveries: dict[str, SandboxDelivery] = {}
        self._lock = threading.Lock()

    @property
    def settings(self) -> SandboxSettings:
        """Simulator constants used by this store."""
        return self._settings

    def __len__(self) -> int:
        with self._lock:
            return len(self._deliveries)

    def __contains__(self, delivery_id: object) -> bool:
        with self._lock:
            return delivery_id in self._deliveries

    def now(self) -> datetime:
        """Current time according to the store's clock, in UTC."""
        return _as_utc(self._clock())

    def tracking_url(self, delivery_id: str) -> str:
        """Customer tracking path for a delivery, flagged as sandbox."""
        path = self._settings.tracking_path.rstrip("/")
        return f"{path}/{delivery_id}?sandbox=true"

    def is_sandbox_id(self, delivery_id: str) -> bool:
        """Whether an id follows the sandbox naming convention."""
        return delivery_id.startswith(f"{self._settings.id_prefix}-")

    def dasher_for(self, status: DeliveryStatus) -> DasherInfo | None:
        """Courier identity for a status, None before a dasher is assigned."""
        if not has_dasher(status):
            return None
        return DasherInfo(
            name=self._settings.dasher_name,
            phone=self._settings.dasher_phone,
        )

    # -- create -------------------------------------------------------------

    def create(
        self,
        order_id: str,
        pickup_address: str | Mapping[str, Any] | None,
        dropoff_address: str | Mapping[str, Any] | None,
        order_value: float | None = None,
        items: Iterable[Mapping[str, Any]] | None = None,
    ) -> SandboxDelivery:
        """Create and register a simulated delivery.

        Args:
            order_id: Order requesting the delivery.
            pickup_address: Pre-formatted string or structured address.
            dropoff_address: Pre-formatted string or structured address.
            order_value: Order subtotal, informational only.
            items: Ordered items, informational only.

        Returns:
            A snapshot of the created delivery.

        Raises:
            DeliveryValidationError: If order_id is missing or order_value negative.
        """
        if not isinstance(order_id, str) or not order_id.strip():
            raise DeliveryValidationError("orderId is required", field="orderId")
        if order_value is not None and order_value < 0:
            raise DeliveryValidationError(
                "orderValue must not be negative", field="orderValue"
            )

        pickup = format_address(pickup_address)
        dropoff = format_address(dropoff_address)
        item_list = [dict(item) for item in items or ()]

        with self._lock:
            created_ms = to_epoch_ms(self.now())
            delivery_id = self._build_id(order_id, created_ms)
            # Same order created twice within a millisecond
            while delivery_id in self._deliveries:
                created_ms += 1
                delivery_id = self._build_id(order_id, created_ms)

            created_at = from_epoch_ms(created_ms)
            delivery = SandboxDelivery(
                id=delivery_id,
                order_id=order_id,
                created_at=created_at,
                pickup_address=pickup,
                dropoff_address=dropoff,
                estimated_pickup_time=created_at
                + timedelta(minutes=self._settings.pickup_eta_minutes),
                estimated_delivery_time=created_at
                + timedelta(minutes=self._settings.delivery_eta_minutes),
                fee=self._settings.total_fee,
                events=[DeliveryEvent(DeliveryStatus.CREATED, created_at)],
                order_value=order_value,
                items=item_list,
            )
            self._deliveries[delivery_id] = delivery
            snapshot = self._snapshot(delivery)

        logger.info(
            "Sandbox delivery created",
            extra={
                "delivery_id": delivery_id,
                "order_id": order_id,
                "fee": snapshot.fee,
            },
        )
        return snapshot

    def quote(
        self,
        order_id: str,
        pickup_address: str | Mapping[str, Any] | None = None,
        dropoff_address: str | Mapping[str, Any] | None = None,
        order_value: float | None = None,
    ) -> SandboxQuote:
        """Estimate fee and timing without creating a delivery.

        Uses the same deterministic fee and offsets as create().

        Raises:
            DeliveryValidationError: If order_id is missing or order_value negative.
        """
        if not isinstance(order_id, str) or not order_id.strip():
            raise DeliveryValidationError("orderId is required", field="orderId")
        if order_value is not None and order_value < 0:
            raise DeliveryValidationError(
                "orderValue must not be negative", field="orderValue"
            )

        quoted_ms = to_epoch_ms(self.now())
        quoted_at = from_epoch_ms(quoted_ms)
        logger.debug(
            "Sandbox quote requested",
            extra={
                "order_id": order_id,
                "pickup_address": format_address(pickup_address),
                "dropoff_address": format_address(dropoff_address),
            },
        )
        return SandboxQuote(
            external_delivery_id=f"quote-{order_id}-{quoted_ms}",
            fee=self._settings.total_fee,
            currency=self._settings.currency,
            estimated_pickup_time=quoted_at
            + timedelta(minutes=self._settings.pickup_eta_minutes),
            estimated_delivery_time=quoted_at
            + timedelta(minutes=self._settings.delivery_eta_minutes),
        )

    # -- read ---------------------------------------------------------------

    def get(self, delivery_id: str) -> SandboxDelivery | None:
        """Snapshot of a stored delivery, None if not stored."""
        with self._lock:
            delivery = self._deliveries.get(delivery_id)
            return self._snapshot(delivery) if delivery else None

    def get_status(self, delivery_id: str, now: datetime | None = None) -> DeliveryStatusView:
        """Get a delivery with its effective status.

        Stored deliveries are resolved from their record. Unknown ids that
        follow the sandbox naming convention are synthesized from the
        timestamp embedded in the id.

        Args:
            delivery_id: Delivery to look up.
            now: Reference time; defaults to the store's clock.

        Returns:
            The delivery view.

        Raises:
            SandboxDeliveryNotFoundError: If the id is unknown and not synthesizable.
        """
        now = _as_utc(now) if now is not None else self.now()

        view = self.lookup_stored(delivery_id, now)
        if view is not None:
            return view

        view = self.synthesize(delivery_id, now)
        if view is not None:
            return view

        logger.info(
            "Sandbox delivery not found",
            extra={"delivery_id": delivery_id},
        )
        raise SandboxDeliveryNotFoundError(delivery_id)

    def lookup_stored(self, delivery_id: str, now: datetime) -> DeliveryStatusView | None:
        """View of a stored delivery, None if the registry does not hold it."""
        with self._lock:
            delivery = self._deliveries.get(delivery_id)
            if delivery is None:
                return None
            status = self._observe(delivery, now)
            return self._view(delivery, status)

    def synthesize(self, delivery_id: str, now: datetime) -> DeliveryStatusView | None:
        """Transient view of an unknown id following the naming convention.

        The creation time is parsed from the trailing segment of the id;
        when that is unusable the delivery is assumed to be a few minutes
        old. Nothing is stored.

        Returns:
            The synthesized view, or None if the id is not a sandbox id.
        """
        if not self.is_sandbox_id(delivery_id):
            return None

        created_at = self._parse_created_at(delivery_id)
        if created_at is None:
            created_at = now - timedelta(minutes=self._settings.unparseable_id_age_minutes)

        status = resolve_status(created_at, now)
        logger.info(
            "Synthesized sandbox delivery from id",
            extra={"delivery_id": delivery_id, "status": status.value},
        )
        return DeliveryStatusView(
            delivery_id=delivery_id,
            status=status,
            tracking_url=self.tracking_url(delivery_id),
            estimated_pickup_time=created_at
            + timedelta(minutes=self._settings.pickup_eta_minutes),
            estimated_delivery_time=created_at
            + timedelta(minutes=self._settings.delivery_eta_minutes),
            dasher=self.dasher_for(status),
            is_synthesized=True,
        )

    def list_deliveries(self, now: datetime | None = None) -> list[DeliveryStatusView]:
        """Every stored delivery with a freshly resolved status, in creation order."""
        now = _as_utc(now) if now is not None else self.now()
        with self._lock:
            return [
                self._view(delivery, self._observe(delivery, now))
                for delivery in self._deliveries.values()
            ]

    # -- write --------------------------------------------------------------

    def set_manual_status(
        self,
        delivery_id: str,
        status: str | DeliveryStatus,
        simulate_error: str | None = None,
    ) -> ManualStatusResult:
        """Force a delivery's status, or simulate a failure.

        Once set, the manual status replaces time-derived resolution for
        that delivery. Unknown ids are accepted and left untouched.

        Args:
            delivery_id: Delivery to update.
            status: New status label.
            simulate_error: If given, fail with this reason and change nothing.

        Returns:
            Result with `applied` False when the id was unknown.

        Raises:
            SimulatedDeliveryError: If simulate_error was given.
            DeliveryValidationError: If status is not a known label.
        """
        if simulate_error:
            logger.warning(
                "Simulated sandbox error requested",
                extra={"delivery_id": delivery_id, "reason": simulate_error},
            )
            raise SimulatedDeliveryError(simulate_error, delivery_id=delivery_id)

        new_status = parse_delivery_status(status)

        with self._lock:
            delivery = self._deliveries.get(delivery_id)
            if delivery is not None:
                delivery.status = new_status
                delivery.status_overridden = True
                delivery.events.append(DeliveryEvent(new_status, self.now()))

        applied = delivery is not None
        logger.info(
            "Sandbox delivery status set manually",
            extra={
                "delivery_id": delivery_id,
                "status": new_status.value,
                "applied": applied,
            },
        )
        return ManualStatusResult(delivery_id=delivery_id, status=new_status, applied=applied)

    def delete(self, delivery_id: str) -> bool:
        """Remove a delivery.

        Returns:
            True if a delivery was removed, False if none was stored.
        """
        with self._lock:
            removed = self._deliveries.pop(delivery_id, None) is not None

        logger.info(
            "Sandbox delivery deleted",
            extra={"delivery_id": delivery_id, "removed": removed},
        )
        return removed

    def clear(self) -> None:
        """Drop every stored delivery."""
        with self._lock:
            self._deliveries.clear()

    # -- internals ----------------------------------------------------------

    def _build_id(self, order_id: str, created_ms: int) -> str:
        return f"{self._settings.id_prefix}-{order_id}-{created_ms}"

    def _parse_created_at(self, delivery_id: str) -> datetime | None:
        trailing = delivery_id.rsplit("-", 1)[-1]
        match = _LEADING_DIGITS.match(trailing)
        if match is None:
            return None
        created_ms = int(match.group())
        if created_ms == 0:
            return None
        horizon = timedelta(
            minutes=max(self._settings.pickup_eta_minutes, self._settings.delivery_eta_minutes)
        )
        try:
            created_at = from_epoch_ms(created_ms)
        except OverflowError:
            return None
        # Estimates derived from created_at must stay representable
        if created_at > _LATEST - horizon:
            return None
        return created_at

    def _observe(self, delivery: SandboxDelivery, now: datetime) -> DeliveryStatus:
        """Effective status of a stored delivery; records newly reached stages.

        Caller must hold the lock.
        """
        if delivery.status_overridden:
            return delivery.status

        status = resolve_status(delivery.created_at, now)
        last = stage_index(delivery.events[-1].status) if delivery.events else None
        current = stage_index(status)
        if current is not None and (last is None or current > last):
            delivery.events.append(DeliveryEvent(status, now))
        return status

    def _view(self, delivery: SandboxDelivery, status: DeliveryStatus) -> DeliveryStatusView:
        return DeliveryStatusView(
            delivery_id=delivery.id,
            status=status,
            tracking_url=self.tracking_url(delivery.id),
            estimated_pickup_time=delivery.estimated_pickup_time,
            estimated_delivery_time=delivery.estimated_delivery_time,
            dasher=self.dasher_for(status),
            order_id=delivery.order_id,
            pickup_address=delivery.pickup_address,
            dropoff_address=delivery.dropoff_address,
            fee=delivery.fee,
            created_at=delivery.created_at,
            events=tuple(delivery.events),
        )

    @staticmethod
    def _snapshot(delivery: SandboxDelivery) -> SandboxDelivery:
        return replace(
            delivery,
            events=list(delivery.events),
            items=[dict(item) for item in delivery.items],
        )
