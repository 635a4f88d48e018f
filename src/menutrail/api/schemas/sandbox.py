"""Pydantic schemas for the sandbox delivery API.

These schemas define the request/response models used by the dashboard's
delivery test page and the customer tracking page. Field names are
camelCase on the wire; snake_case input is accepted as well.
"""

from __future__ import annotations

# NOTE: datetime must remain at runtime for Pydantic validation
from datetime import datetime  # noqa: TC003
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from menutrail.services.sandbox import (
    DeliveryStatusView,
    ManualStatusResult,
    SandboxDelivery,
    SandboxQuote,
)


class CamelModel(BaseModel):
    """Base model serializing to camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# -----------------------------------------------------------------------------
# Requests
# -----------------------------------------------------------------------------


class AddressInput(CamelModel):
    """Structured address; flattened to one line at creation."""

    street: str = Field("", description="Street and number")
    city: str = Field("", description="City")
    state: str = Field("", description="State or region code")
    zip: str = Field("", description="Postal code")

    # businessName, phoneNumber, firstName... are sent by the checkout flow
    model_config = ConfigDict(extra="allow")


class CreateSandboxDeliveryRequest(CamelModel):
    """Request schema for creating a sandbox delivery."""

    order_id: str = Field(..., min_length=1, description="Order requesting the delivery")
    pickup_address: str | AddressInput | None = Field(
        None, description="Restaurant address, one line or structured"
    )
    dropoff_address: str | AddressInput | None = Field(
        None, description="Customer address, one line or structured"
    )
    order_value: float | None = Field(None, ge=0, description="Order subtotal")
    items: list[dict[str, Any]] = Field(
        default_factory=list, description="Ordered items (name, quantity)"
    )


class QuoteRequest(CamelModel):
    """Request schema for a sandbox delivery quote."""

    order_id: str = Field(..., min_length=1, description="Order to quote for")
    pickup_address: str | AddressInput | None = Field(None, description="Restaurant address")
    dropoff_address: str | AddressInput | None = Field(None, description="Customer address")
    order_value: float | None = Field(None, ge=0, description="Order subtotal")


class ManualStatusRequest(CamelModel):
    """Request schema for forcing a delivery status or simulating an error."""

    delivery_id: str = Field(..., min_length=1, description="Delivery to update")
    status: str | None = Field(None, description="Status to force")
    simulate_error: str | None = Field(
        None, description="If set, the call fails with this reason and changes nothing"
    )


# -----------------------------------------------------------------------------
# Responses
# -----------------------------------------------------------------------------


class CreateSandboxDeliveryResponse(CamelModel):
    """Response schema for a created sandbox delivery."""

    success: bool = Field(True, description="Always true on creation")
    delivery_id: str = Field(..., description="Generated delivery id")
    tracking_url: str = Field(..., description="Customer tracking path")
    estimated_pickup_time: datetime = Field(..., description="Pickup estimate")
    estimated_delivery_time: datetime = Field(..., description="Delivery estimate")
    fee: float = Field(..., description="Delivery fee")
    is_sandbox: bool = Field(True, description="Marks simulated deliveries")
    message: str = Field(
        "Sandbox delivery created. Status will auto-progress for testing.",
        description="Human-readable confirmation",
    )

    @classmethod
    def from_delivery(
        cls, delivery: SandboxDelivery, tracking_url: str
    ) -> CreateSandboxDeliveryResponse:
        return cls(
            delivery_id=delivery.id,
            tracking_url=tracking_url,
            estimated_pickup_time=delivery.estimated_pickup_time,
            estimated_delivery_time=delivery.estimated_delivery_time,
            fee=delivery.fee,
        )


class DeliveryEventResponse(CamelModel):
    """One entry of a delivery's status history."""

    status: str
    timestamp: datetime


class SandboxDeliveryResponse(CamelModel):
    """Delivery with its effective status.

    Courier fields are only present once a dasher is assigned. Synthesized
    deliveries omit the fields that cannot be derived from the id.
    """

    delivery_id: str = Field(..., description="Delivery id")
    status: str = Field(..., description="Effective status")
    tracking_url: str = Field(..., description="Customer tracking path")
    estimated_pickup_time: datetime = Field(..., description="Pickup estimate")
    estimated_delivery_time: datetime = Field(..., description="Delivery estimate")
    dasher_name: str | None = Field(None, description="Courier name")
    dasher_phone: str | None = Field(None, description="Courier phone number")
    order_id: str | None = Field(None, description="Order that requested the delivery")
    pickup_address: str | None = Field(None, description="Pickup address")
    dropoff_address: str | None = Field(None, description="Dropoff address")
    fee: float | None = Field(None, description="Delivery fee")
    created_at: datetime | None = Field(None, description="Creation time")
    events: list[DeliveryEventResponse] | None = Field(None, description="Status history")
    is_synthesized: bool = Field(False, description="Derived from the id, not stored")
    is_sandbox: bool = Field(True, description="Marks simulated deliveries")

    @classmethod
    def from_view(cls, view: DeliveryStatusView) -> SandboxDeliveryResponse:
        return cls(
            delivery_id=view.delivery_id,
            status=view.status.value,
            tracking_url=view.tracking_url,
            estimated_pickup_time=view.estimated_pickup_time,
            estimated_delivery_time=view.estimated_delivery_time,
            dasher_name=view.dasher.name if view.dasher else None,
            dasher_phone=view.dasher.phone if view.dasher else None,
            order_id=view.order_id,
            pickup_address=view.pickup_address,
            dropoff_address=view.dropoff_address,
            fee=view.fee,
            created_at=view.created_at,
            events=[
                DeliveryEventResponse(status=event.status.value, timestamp=event.timestamp)
                for event in view.events
            ]
            if not view.is_synthesized
            else None,
            is_synthesized=view.is_synthesized,
            is_sandbox=view.is_sandbox,
        )


class SandboxDeliveryListResponse(CamelModel):
    """Every stored sandbox delivery."""

    deliveries: list[SandboxDeliveryResponse]


class ManualStatusResponse(CamelModel):
    """Response schema for a manual status override.

    `applied` is false when the delivery id was unknown.
    """

    success: bool = True
    delivery_id: str
    status: str
    applied: bool
    message: str

    @classmethod
    def from_result(cls, result: ManualStatusResult) -> ManualStatusResponse:
        message = f"Sandbox delivery status set to: {result.status.value}"
        if not result.applied:
            message = f"No sandbox delivery {result.delivery_id}; status not applied"
        return cls(
            delivery_id=result.delivery_id,
            status=result.status.value,
            applied=result.applied,
            message=message,
        )


class DeleteSandboxDeliveryResponse(CamelModel):
    """Response schema for deleting (cancelling) a sandbox delivery."""

    success: bool = True
    delivery_id: str
    deleted: bool = Field(..., description="Whether a stored delivery was removed")
    message: str = "Sandbox delivery cancelled"


class QuoteResponse(CamelModel):
    """Non-persisted delivery estimate."""

    external_delivery_id: str
    fee: float
    currency: str
    estimated_pickup_time: datetime
    estimated_delivery_time: datetime
    is_sandbox: bool = True

    @classmethod
    def from_quote(cls, quote: SandboxQuote) -> QuoteResponse:
        return cls(
            external_delivery_id=quote.external_delivery_id,
            fee=quote.fee,
            currency=quote.currency,
            estimated_pickup_time=quote.estimated_pickup_time,
            estimated_delivery_time=quote.estimated_delivery_time,
        )


class ErrorResponse(BaseModel):
    """Standard error response schema."""

    error: str = Field(..., description="Error code")
    message: str = Field(..., description="Human-readable error message")
    detail: dict[str, Any] | None = Field(None, description="Additional error details")
    request_id: str | None = Field(None, description="Request correlation id")
