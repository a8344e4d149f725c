"""Derived, memoized projections over the auth state.

Selectors are pure: they never trigger fetches. Composite selectors built
with :func:`create_selector` cache their last result and only recompute when
one of their input slices changes.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar

from venuegate.auth.models import (
    AdminLevel,
    AuthState,
    ErrorState,
    Identity,
    LoadingState,
    Profile,
)

T = TypeVar("T")

_UNSET: Any = object()


class MemoizedSelector(Generic[T]):
    """Selector that recomputes only when an input slice differs from last call."""

    def __init__(self, inputs: tuple[Callable[[AuthState], Any], ...], combine: Callable[..., T]) -> None:
        self._inputs = inputs
        self._combine = combine
        self._last_args: tuple[Any, ...] | Any = _UNSET
        self._last_result: T | Any = _UNSET
        self.recomputations = 0

    def __call__(self, state: AuthState) -> T:
        args = tuple(select(state) for select in self._inputs)
        if self._last_args is not _UNSET and _same_args(args, self._last_args):
            return self._last_result
        self._last_args = args
        self._last_result = self._combine(*args)
        self.recomputations += 1
        return self._last_result

    def reset_recomputations(self) -> None:
        self.recomputations = 0


def create_selector(*inputs: Callable[[AuthState], Any], combine: Callable[..., T]) -> MemoizedSelector[T]:
    return MemoizedSelector(inputs, combine)


def _same_args(a: tuple[Any, ...], b: tuple[Any, ...]) -> bool:
    return all(x is y or x == y for x, y in zip(a, b))


@dataclass(frozen=True)
class AccessDecision:
    """Route-guard triad for one access class."""

    can_access: bool
    should_redirect: bool
    is_loading: bool


@dataclass(frozen=True)
class AuthStatus:
    is_authenticated: bool
    initialized: bool
    loading: bool
    error: str | None


@dataclass(frozen=True)
class UserInfo:
    identity: Identity | None
    profile: Profile | None
    has_complete_profile: bool
    user_id: str | None
    email: str | None
    full_name: str | None
    role: str | None


@dataclass(frozen=True)
class AdminInfo:
    admin_level: AdminLevel
    is_admin: bool
    is_super_admin: bool
    can_view_admin_dashboard: bool
    can_manage_admins: bool
    loading: bool
    error: str | None


@dataclass(frozen=True)
class AuthView:
    """The auth record exposed to the rest of the application."""

    identity: Identity | None
    is_authenticated: bool
    profile: Profile | None
    has_complete_profile: bool
    admin_level: AdminLevel
    is_admin: bool
    is_super_admin: bool
    loading: LoadingState
    error: ErrorState
    initialized: bool


# ---------------------------------------------------------------------------
# Base selectors
# ---------------------------------------------------------------------------


def select_identity(state: AuthState) -> Identity | None:
    return state.identity


def select_profile(state: AuthState) -> Profile | None:
    return state.profile


def select_admin_level(state: AuthState) -> AdminLevel:
    return state.admin_level


def select_is_authenticated(state: AuthState) -> bool:
    return state.is_authenticated


def select_is_initialized(state: AuthState) -> bool:
    return state.initialized


def select_profile_loaded(state: AuthState) -> bool:
    return state.profile_loaded


def select_loading(state: AuthState) -> LoadingState:
    return state.loading


def select_error(state: AuthState) -> ErrorState:
    return state.error


def select_auth_loading(state: AuthState) -> bool:
    return state.loading.auth


def select_profile_loading(state: AuthState) -> bool:
    return state.loading.profile


def select_admin_loading(state: AuthState) -> bool:
    return state.loading.admin


def select_auth_error(state: AuthState) -> str | None:
    return state.error.auth


def select_profile_error(state: AuthState) -> str | None:
    return state.error.profile


def select_admin_error(state: AuthState) -> str | None:
    return state.error.admin


# ---------------------------------------------------------------------------
# Profile and privilege
# ---------------------------------------------------------------------------

select_has_complete_profile = create_selector(
    select_profile,
    combine=lambda profile: profile is not None and profile.is_complete,
)

select_is_admin = create_selector(
    select_admin_level,
    combine=lambda level: level in (AdminLevel.ADMIN, AdminLevel.SUPER_ADMIN),
)

select_is_super_admin = create_selector(
    select_admin_level,
    combine=lambda level: level is AdminLevel.SUPER_ADMIN,
)

# Dashboard visibility follows any grant, admin management needs super admin.
select_can_view_admin_dashboard = select_is_admin
select_can_manage_admins = select_is_super_admin

# ---------------------------------------------------------------------------
# Readiness
# ---------------------------------------------------------------------------

select_any_loading = create_selector(
    select_auth_loading,
    select_profile_loading,
    select_admin_loading,
    combine=lambda auth, profile, admin: auth or profile or admin,
)

select_is_fully_loaded = create_selector(
    select_is_initialized,
    select_any_loading,
    combine=lambda initialized, any_loading: initialized and not any_loading,
)

select_any_error = create_selector(
    select_auth_error,
    select_profile_error,
    select_admin_error,
    combine=lambda auth, profile, admin: auth or profile or admin,
)

select_needs_onboarding = create_selector(
    select_is_authenticated,
    select_is_fully_loaded,
    select_has_complete_profile,
    combine=lambda authenticated, loaded, complete: authenticated and loaded and not complete,
)

# ---------------------------------------------------------------------------
# Route access
# ---------------------------------------------------------------------------


def _access(granted: bool, loaded: bool) -> AccessDecision:
    return AccessDecision(
        can_access=granted and loaded,
        should_redirect=loaded and not granted,
        is_loading=not loaded,
    )


select_can_access_route = create_selector(
    select_is_authenticated, select_is_fully_loaded, combine=_access
)

select_can_access_admin_route = create_selector(
    select_can_view_admin_dashboard, select_is_fully_loaded, combine=_access
)

select_can_access_super_admin_route = create_selector(
    select_is_super_admin, select_is_fully_loaded, combine=_access
)

# ---------------------------------------------------------------------------
# Combined views
# ---------------------------------------------------------------------------

select_auth_status = create_selector(
    select_is_authenticated,
    select_is_initialized,
    select_any_loading,
    select_any_error,
    combine=AuthStatus,
)


def _user_info(identity: Identity | None, profile: Profile | None, complete: bool) -> UserInfo:
    return UserInfo(
        identity=identity,
        profile=profile,
        has_complete_profile=complete,
        user_id=identity.id if identity else None,
        email=identity.email if identity else None,
        full_name=profile.full_name if profile else None,
        role=profile.role if profile else None,
    )


select_user_info = create_selector(
    select_identity, select_profile, select_has_complete_profile, combine=_user_info
)

select_admin_info = create_selector(
    select_admin_level,
    select_is_admin,
    select_is_super_admin,
    select_can_view_admin_dashboard,
    select_can_manage_admins,
    select_admin_loading,
    select_admin_error,
    combine=AdminInfo,
)

select_auth_view = create_selector(
    select_identity,
    select_is_authenticated,
    select_profile,
    select_has_complete_profile,
    select_admin_level,
    select_is_admin,
    select_is_super_admin,
    select_loading,
    select_error,
    select_is_initialized,
    combine=AuthView,
)
