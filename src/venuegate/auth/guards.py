"""Route guards built on the access selectors."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from venuegate.auth.models import AuthState
from venuegate.auth.selectors import (
    AccessDecision,
    select_can_access_admin_route,
    select_can_access_route,
    select_can_access_super_admin_route,
    select_is_admin,
)
from venuegate.config import VenueGateConfig


class AccessClass(str, Enum):
    PLAIN = "plain"
    ADMIN = "admin"
    SUPER_ADMIN = "super_admin"


class RouteAction(str, Enum):
    RENDER = "render"
    LOADING = "loading"
    REDIRECT = "redirect"


@dataclass(frozen=True)
class RouteOutcome:
    action: RouteAction
    redirect_to: str | None = None


_SELECTORS = {
    AccessClass.PLAIN: select_can_access_route,
    AccessClass.ADMIN: select_can_access_admin_route,
    AccessClass.SUPER_ADMIN: select_can_access_super_admin_route,
}


def access_decision(state: AuthState, access_class: AccessClass) -> AccessDecision:
    return _SELECTORS[access_class](state)


def resolve_route(state: AuthState, access_class: AccessClass, config: VenueGateConfig) -> RouteOutcome:
    """Decide what a guarded route does for ``state``: render, wait, or redirect.

    A super-admin route sends admins to the admin dashboard and everyone else
    to the plain dashboard.
    """
    decision = access_decision(state, access_class)
    if decision.can_access:
        return RouteOutcome(RouteAction.RENDER)
    if decision.is_loading:
        return RouteOutcome(RouteAction.LOADING)
    if access_class is AccessClass.SUPER_ADMIN and not select_is_admin(state):
        return RouteOutcome(RouteAction.REDIRECT, redirect_to=config.redirects.admin)
    return RouteOutcome(RouteAction.REDIRECT, redirect_to=getattr(config.redirects, access_class.value))
