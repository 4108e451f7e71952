"""
API routes - combined router from all domain modules.

Shared infrastructure (limiter, error translation) lives here; every
sub-router imports what it needs from this package.
"""

import os

from fastapi import APIRouter, HTTPException
from slowapi import Limiter
from slowapi.util import get_remote_address

from backend.services.exceptions import PortalError

# ---------------------------------------------------------------------------
# Shared rate limiter
# ---------------------------------------------------------------------------
IS_TEST_ENV = os.getenv("ENV", "").lower() == "test"
if IS_TEST_ENV:
    limiter = Limiter(key_func=get_remote_address)

    def no_op_limit(*args, **kwargs):
        """No-op decorator for test mode - doesn't apply any rate limiting."""
        def decorator(func):
            return func
        return decorator

    limiter.limit = lambda *args, **kwargs: no_op_limit()
else:
    limiter = Limiter(key_func=get_remote_address)


# ---------------------------------------------------------------------------
# Shared error translation
# ---------------------------------------------------------------------------
def service_error(e: ValueError) -> HTTPException:
    """Translate a service-layer ValueError into an HTTPException.

    PortalError subclasses carry their own status code and extra body
    fields (e.g. alreadyOnTeam, reason); plain ValueErrors are 400s.
    """
    if isinstance(e, PortalError):
        return HTTPException(status_code=e.status_code, detail={"message": e.message, **e.extra})
    return HTTPException(status_code=400, detail=str(e))


# ---------------------------------------------------------------------------
# Import sub-routers and combine
# ---------------------------------------------------------------------------
from backend.api.routes.auth import router as auth_router  # noqa: E402
from backend.api.routes.tournaments import router as tournaments_router  # noqa: E402
from backend.api.routes.registrations import router as registrations_router  # noqa: E402
from backend.api.routes.teams import router as teams_router  # noqa: E402
from backend.api.routes.notifications import router as notifications_router  # noqa: E402
from backend.api.routes.cart import router as cart_router  # noqa: E402
from backend.api.routes.requests import router as requests_router  # noqa: E402
from backend.api.routes.dashboard import router as dashboard_router  # noqa: E402
from backend.api.routes.admin import router as admin_router  # noqa: E402

router = APIRouter()
router.include_router(auth_router)
router.include_router(tournaments_router)
router.include_router(registrations_router)
router.include_router(teams_router)
router.include_router(notifications_router)
router.include_router(cart_router)
router.include_router(requests_router)
router.include_router(dashboard_router)
router.include_router(admin_router)
