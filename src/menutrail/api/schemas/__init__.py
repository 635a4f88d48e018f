"""Pydantic schemas for the MenuTrail API.

This package contains request/response schemas organized by API namespace.
"""

from menutrail.api.schemas.sandbox import (
    AddressInput,
    CreateSandboxDeliveryRequest,
    CreateSandboxDeliveryResponse,
    DeleteSandboxDeliveryResponse,
    DeliveryEventResponse,
    ErrorResponse,
    ManualStatusRequest,
    ManualStatusResponse,
    QuoteRequest,
    QuoteResponse,
    SandboxDeliveryListResponse,
    SandboxDeliveryResponse,
)

__all__ = [
    "AddressInput",
    "CreateSandboxDeliveryRequest",
    "CreateSandboxDeliveryResponse",
    "DeleteSandboxDeliveryResponse",
    "DeliveryEventResponse",
    "ErrorResponse",
    "ManualStatusRequest",
    "ManualStatusResponse",
    "QuoteRequest",
    "QuoteResponse",
    "SandboxDeliveryListResponse",
    "SandboxDeliveryResponse",
]
