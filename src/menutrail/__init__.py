"""MenuTrail - DoorDash delivery sandbox.

An offline simulator of DoorDash Drive deliveries that lets restaurant
owners exercise the delivery tracking experience without real couriers.
Delivery status advances purely with elapsed time since creation.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
