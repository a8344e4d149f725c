"""Configuration for the venuegate auth core."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

DEFAULT_PUBLIC_ROUTES = ("/", "/login", "/signup", "/about", "/verification", "/add-event")


class FlagBackend(str, Enum):
    """Storage backends for the persisted onboarding flags."""
    AUTO = "auto"
    MEMORY = "memory"
    SQLITE = "sqlite"


class RedirectPaths(BaseModel):
    """Where each route guard sends a visitor it turns away."""
    plain: str = "/login"
    admin: str = "/dashboard"
    super_admin: str = "/admin"


class VenueGateConfig(BaseModel):
    """Top-level configuration for one auth container."""
    debounce_window_s: float = Field(
        default=2.0, ge=0.0, description="Window for suppressing repeated (event, identity) pairs"
    )
    total_events_required: int = Field(
        default=3, ge=1, description="Reported events needed to finish onboarding"
    )
    public_routes: tuple[str, ...] = Field(
        default=DEFAULT_PUBLIC_ROUTES, description="Routes where the onboarding modal never shows"
    )
    redirects: RedirectPaths = Field(default_factory=RedirectPaths)
    flag_backend: FlagBackend = FlagBackend.AUTO
    flag_db_path: str | None = Field(
        default=None, description="SQLite file for persisted flags; default lives in the data dir"
    )
    activity_user_agent: str = "venuegate"

    def is_public_route(self, path: str) -> bool:
        return path in self.public_routes
