"""Sandbox delivery API router.

Lets restaurant owners test the DoorDash delivery flow without real
deliveries. Status auto-progresses with time; the dashboard can force a
status or ask for a failure to check its own error handling.

All handlers share the SandboxDeliveryStore held on `app.state`.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request, status

from menutrail.api.middleware.errors import (
    APIError,
    NotFoundError,
    SimulatedErrorAPIError,
    ValidationAPIError,
)
from menutrail.api.schemas.sandbox import (
    AddressInput,
    CreateSandboxDeliveryRequest,
    CreateSandboxDeliveryResponse,
    DeleteSandboxDeliveryResponse,
    ErrorResponse,
    ManualStatusRequest,
    ManualStatusResponse,
    QuoteRequest,
    QuoteResponse,
    SandboxDeliveryListResponse,
    SandboxDeliveryResponse,
)
from menutrail.services.sandbox import (
    DeliveryValidationError,
    SandboxDeliveryNotFoundError,
    SandboxDeliveryStore,
    SandboxError,
    SimulatedDeliveryError,
)

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/sandbox-deliveries",
    tags=["sandbox"],
    responses={
        400: {"description": "Invalid request or simulated error", "model": ErrorResponse},
        404: {"description": "Sandbox delivery not found", "model": ErrorResponse},
    },
)


# ---------------------------------------------------------------------------
# Dependencies and helpers
# ---------------------------------------------------------------------------


def get_sandbox_store(request: Request) -> SandboxDeliveryStore:
    """Get the application's sandbox delivery store."""
    return request.app.state.sandbox_store


Store = Annotated[SandboxDeliveryStore, Depends(get_sandbox_store)]


def _address(value: str | AddressInput | None) -> str | dict[str, Any] | None:
    if isinstance(value, AddressInput):
        return value.model_dump()
    return value


def _to_api_error(exc: SandboxError) -> APIError:
    """Translate a store error into its HTTP representation."""
    if isinstance(exc, SandboxDeliveryNotFoundError):
        return NotFoundError("Sandbox delivery", exc.delivery_id)
    if isinstance(exc, SimulatedDeliveryError):
        return SimulatedErrorAPIError(exc.reason, delivery_id=exc.delivery_id)
    if isinstance(exc, DeliveryValidationError):
        detail = {"field": exc.field} if exc.field else None
        return ValidationAPIError(exc.message, detail=detail)
    return APIError(error="sandbox_error", message=str(exc))


def _get_one(store: SandboxDeliveryStore, delivery_id: str) -> SandboxDeliveryResponse:
    try:
        view = store.get_status(delivery_id)
    except SandboxError as e:
        raise _to_api_error(e) from e
    return SandboxDeliveryResponse.from_view(view)


# ---------------------------------------------------------------------------
# Health Check
# ---------------------------------------------------------------------------


@router.get("/health")
async def health(store: Store) -> dict[str, Any]:
    """Health check for the sandbox namespace."""
    return {"status": "healthy", "namespace": "sandbox", "deliveries": len(store)}


# ---------------------------------------------------------------------------
# Create / quote
# ---------------------------------------------------------------------------


@router.post(
    "",
    response_model=CreateSandboxDeliveryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create sandbox delivery",
    description="Creates a simulated delivery whose status auto-progresses with time.",
)
async def create_delivery(
    body: CreateSandboxDeliveryRequest,
    store: Store,
) -> CreateSandboxDeliveryResponse:
    """Create a sandbox delivery.

    Args:
        body: Order and address details.
        store: Sandbox delivery store.

    Returns:
        The new delivery id, tracking URL, estimates and fee.
    """
    try:
        delivery = store.create(
            order_id=body.order_id,
            pickup_address=_address(body.pickup_address),
            dropoff_address=_address(body.dropoff_address),
            order_value=body.order_value,
            items=body.items,
        )
    except SandboxError as e:
        raise _to_api_error(e) from e

    return CreateSandboxDeliveryResponse.from_delivery(
        delivery, tracking_url=store.tracking_url(delivery.id)
    )


@router.post(
    "/quotes",
    response_model=QuoteResponse,
    summary="Quote sandbox delivery",
    description="Estimates fee and timing without creating a delivery.",
)
async def quote_delivery(body: QuoteRequest, store: Store) -> QuoteResponse:
    """Quote a sandbox delivery."""
    try:
        quote = store.quote(
            order_id=body.order_id,
            pickup_address=_address(body.pickup_address),
            dropoff_address=_address(body.dropoff_address),
            order_value=body.order_value,
        )
    except SandboxError as e:
        raise _to_api_error(e) from e
    return QuoteResponse.from_quote(quote)


# ---------------------------------------------------------------------------
# Read
# ---------------------------------------------------------------------------


@router.get(
    "",
    response_model=SandboxDeliveryListResponse | SandboxDeliveryResponse,
    response_model_exclude_none=True,
    summary="List sandbox deliveries or get one by query",
    description="`?action=list` lists every delivery; `?id=...` looks one up.",
)
async def query_deliveries(
    store: Store,
    action: Annotated[str | None, Query(description="'list' to list deliveries")] = None,
    delivery_id: Annotated[str | None, Query(alias="id", description="Delivery id")] = None,
) -> SandboxDeliveryListResponse | SandboxDeliveryResponse:
    """List deliveries, or look one up with the query-string form.

    Raises:
        ValidationAPIError: If neither action=list nor id is given.
    """
    if action == "list":
        return SandboxDeliveryListResponse(
            deliveries=[SandboxDeliveryResponse.from_view(v) for v in store.list_deliveries()]
        )
    if action is not None:
        raise ValidationAPIError(f"Unknown action: {action}", detail={"field": "action"})
    if not delivery_id:
        raise ValidationAPIError("Delivery ID required", detail={"field": "id"})
    return _get_one(store, delivery_id)


@router.get(
    "/{delivery_id}",
    response_model=SandboxDeliveryResponse,
    response_model_exclude_none=True,
    summary="Get sandbox delivery status",
    description="Returns the delivery with its status resolved from elapsed time.",
)
async def get_delivery(delivery_id: str, store: Store) -> SandboxDeliveryResponse:
    """Get a sandbox delivery.

    Unknown ids following the sandbox-{orderId}-{ms} convention are
    synthesized rather than reported missing.

    Raises:
        NotFoundError: If the id is unknown and not a sandbox id.
    """
    return _get_one(store, delivery_id)


# ---------------------------------------------------------------------------
# Manual override
# ---------------------------------------------------------------------------


@router.put(
    "",
    response_model=ManualStatusResponse,
    summary="Set sandbox delivery status",
    description="Forces a status (replacing time-based progression) or simulates an error.",
)
async def set_status(body: ManualStatusRequest, store: Store) -> ManualStatusResponse:
    """Manually set a delivery's status.

    Raises:
        SimulatedErrorAPIError: If simulateError was given.
        ValidationAPIError: If the status label is unknown.
    """
    try:
        result = store.set_manual_status(
            body.delivery_id,
            body.status,
            simulate_error=body.simulate_error,
        )
    except SandboxError as e:
        raise _to_api_error(e) from e
    return ManualStatusResponse.from_result(result)


# ---------------------------------------------------------------------------
# Delete (cancel)
# ---------------------------------------------------------------------------


def _delete(store: SandboxDeliveryStore, delivery_id: str) -> DeleteSandboxDeliveryResponse:
    deleted = store.delete(delivery_id)
    return DeleteSandboxDeliveryResponse(delivery_id=delivery_id, deleted=deleted)


@router.delete(
    "/{delivery_id}",
    response_model=DeleteSandboxDeliveryResponse,
    summary="Cancel sandbox delivery",
    description="Removes the delivery; succeeds whether or not it existed.",
)
async def delete_delivery(delivery_id: str, store: Store) -> DeleteSandboxDeliveryResponse:
    """Cancel a sandbox delivery."""
    return _delete(store, delivery_id)


@router.delete(
    "",
    response_model=DeleteSandboxDeliveryResponse,
    summary="Cancel sandbox delivery by query",
)
async def delete_delivery_by_query(
    store: Store,
    delivery_id: Annotated[str | None, Query(alias="id", description="Delivery id")] = None,
) -> DeleteSandboxDeliveryResponse:
    """Cancel a sandbox delivery, query-string form.

    Raises:
        ValidationAPIError: If id is missing.
    """
    if not delivery_id:
        raise ValidationAPIError("Delivery ID required", detail={"field": "id"})
    return _delete(store, delivery_id)
