"""
API Module
FastAPI routers for the DoseRound application
"""

from api.reminders import router as reminders_router

from api.deps import (
    get_reminder_source,
    get_view_registry,
    close_view_registry,
)


__all__ = [
    # Routers
    "reminders_router",
    # Dependencies
    "get_reminder_source",
    "get_view_registry",
    "close_view_registry",
]


def include_routers(app, prefix: str = "/api/v1"):
    """
    Include all API routers in the FastAPI app

    Usage:
        from api import include_routers
        include_routers(app)
    """
    app.include_router(reminders_router, prefix=prefix)
