"""MenuTrail API routers.

- sandbox: DoorDash sandbox deliveries (create, status, override, cancel, quote)
"""

from menutrail.api.routers.sandbox import router as sandbox_router

__all__ = [
    "sandbox_router",
]
