from nursery.routers.auth import router as auth_router
from nursery.routers.users import router as users_router
from nursery.routers.species import router as species_router
from nursery.routers.zones import router as zones_router
from nursery.routers.batches import router as batches_router
from nursery.routers.measurements import router as measurements_router
from nursery.routers.analytics import audit_router, router as analytics_router

__all__ = [
    "auth_router", "users_router", "species_router", "zones_router",
    "batches_router", "measurements_router", "analytics_router", "audit_router",
]
