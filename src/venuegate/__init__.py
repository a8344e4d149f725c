"""venuegate - client-side auth, authorization and onboarding readiness core."""

__all__ = ["AuthContainer", "VenueGateConfig"]
__version__ = "0.1.0"


def __getattr__(name: str):
    """Lazy imports - keep aiosqlite off the import path until a container is built."""
    if name == "VenueGateConfig":
        from venuegate.config import VenueGateConfig

        return VenueGateConfig
    if name == "AuthContainer":
        from venuegate.container import AuthContainer

        return AuthContainer
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
