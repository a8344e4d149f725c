"""Tests for AuthEventReconciler: dedup, concurrent fetches and late arrivals."""

import asyncio

import pytest
from _helpers import make_identity, make_profile, make_session

from venuegate.auth.clock import ManualClock
from venuegate.auth.middleware import AuthEventReconciler
from venuegate.auth.models import AdminLevel, AuthEventKind
from venuegate.auth.selectors import select_is_fully_loaded, select_needs_onboarding
from venuegate.auth.store import AuthStore
from venuegate.backend.memory import InMemoryDataAccess, ScriptedSessionSource
from venuegate.config import VenueGateConfig
from venuegate.errors import NotAuthenticatedError, ProfileFetchError, ProfileUpdateError


def make_reconciler(source=None, data=None, **overrides):
    store = AuthStore()
    source = source or ScriptedSessionSource()
    data = data or InMemoryDataAccess()
    clock = ManualClock()
    reconciler = AuthEventReconciler(store, source, data, config=VenueGateConfig(**overrides), clock=clock)
    return reconciler, store, source, data, clock


async def started(**kwargs):
    reconciler, store, source, data, clock = make_reconciler(**kwargs)
    await reconciler.initialize()
    reconciler.start()
    return reconciler, store, source, data, clock


async def spin(times: int = 10) -> None:
    for _ in range(times):
        await asyncio.sleep(0)


class FailingSignOut(ScriptedSessionSource):
    async def sign_out(self) -> None:
        self.sign_out_calls += 1
        raise RuntimeError("backend unreachable")


class ExplodingSource(ScriptedSessionSource):
    async def get_current_session(self):
        raise ConnectionError("dns failure")


# ---------------------------------------------------------------------------
# Startup
# ---------------------------------------------------------------------------


class TestStartup:
    def test_start_is_idempotent(self):
        reconciler, _, source, _, _ = make_reconciler()
        assert reconciler.start() is True
        assert reconciler.start() is False
        assert source.subscriber_count == 1
        assert reconciler.subscribed

    @pytest.mark.asyncio
    async def test_session_init_error_leaves_unauthenticated_but_initialized(self):
        reconciler, store, _, _, _ = make_reconciler(source=ScriptedSessionSource(startup_error="token expired"))
        await reconciler.initialize()
        state = store.state
        assert state.initialized is True
        assert state.loading.auth is False
        assert state.error.auth == "token expired"
        assert state.is_authenticated is False

    @pytest.mark.asyncio
    async def test_session_init_exception_is_recorded(self):
        reconciler, store, _, _, _ = make_reconciler(source=ExplodingSource())
        await reconciler.initialize()
        assert store.state.initialized is True
        assert store.state.error.auth == "dns failure"

    @pytest.mark.asyncio
    async def test_existing_session_loads_user_data(self):
        data = InMemoryDataAccess()
        data.profiles["u1"] = make_profile("u1")
        data.admin_levels["u1"] = AdminLevel.ADMIN
        reconciler, store, _, _, _ = make_reconciler(source=ScriptedSessionSource(make_session("u1")), data=data)

        await reconciler.initialize()

        state = store.state
        assert state.user_id == "u1"
        assert state.profile_loaded is True
        assert state.admin_level is AdminLevel.ADMIN
        assert state.loading.any is False

    @pytest.mark.asyncio
    async def test_close_unsubscribes(self):
        reconciler, _, source, _, _ = await started()
        await reconciler.close()
        assert source.subscriber_count == 0
        assert not reconciler.subscribed


# ---------------------------------------------------------------------------
# Event suppression
# ---------------------------------------------------------------------------


class TestSuppression:
    @pytest.mark.asyncio
    async def test_repeated_sign_in_fetches_once(self):
        reconciler, store, source, data, _ = await started()
        data.profiles["u1"] = make_profile("u1")

        for _ in range(3):
            await source.sign_in(make_identity("u1"))
        await reconciler.drain()

        assert data.calls["fetch_profile_by_user_id"] == 1
        assert data.calls["fetch_admin_level_by_user_id"] == 1
        assert data.calls["record_activity"] == 1
        assert store.state.profile == make_profile("u1")

    @pytest.mark.asyncio
    async def test_sign_in_for_active_user_is_suppressed_after_window(self):
        reconciler, store, source, data, clock = await started()
        await source.sign_in(make_identity("u1"))
        version = store.version

        clock.advance(60)
        await source.sign_in(make_identity("u1"))
        await reconciler.drain()

        assert store.version == version
        assert data.calls["record_activity"] == 1

    @pytest.mark.asyncio
    async def test_same_event_within_window_is_debounced(self):
        _, store, source, _, clock = await started(debounce_window_s=2.0)
        await source.sign_in(make_identity("u1"))

        refreshed = make_session("u1", token="tok-2")
        await source.emit(AuthEventKind.TOKEN_REFRESHED, refreshed)
        version = store.version

        clock.advance(1.0)
        await source.emit(AuthEventKind.TOKEN_REFRESHED, refreshed)
        assert store.version == version

        clock.advance(2.0)
        await source.emit(AuthEventKind.TOKEN_REFRESHED, refreshed)
        assert store.version == version + 1

    @pytest.mark.asyncio
    async def test_initial_session_during_inflight_fetch_does_not_refetch(self):
        reconciler, store, source, data, _ = await started()
        gate = asyncio.Event()
        data.gates["fetch_profile_by_user_id"] = gate

        sign_in = asyncio.create_task(source.sign_in(make_identity("u1")))
        await spin()
        await source.emit(AuthEventKind.INITIAL_SESSION, make_session("u1"))
        gate.set()
        await sign_in
        await reconciler.drain()

        assert data.calls["fetch_profile_by_user_id"] == 1
        assert data.calls["fetch_admin_level_by_user_id"] == 1
        assert store.state.profile_loaded is True

    @pytest.mark.asyncio
    async def test_initial_session_without_session_is_ignored(self):
        _, store, source, _, _ = await started()
        version = store.version
        await source.emit(AuthEventKind.INITIAL_SESSION, None)
        assert store.version == version


# ---------------------------------------------------------------------------
# Fetch pair
# ---------------------------------------------------------------------------


class TestFetchPair:
    @pytest.mark.asyncio
    async def test_admin_transport_failure_does_not_block_profile(self, data):
        reconciler, store, source, _, _ = await started(data=data)
        data.profiles["u1"] = make_profile("u1")
        data.failures["fetch_admin_level_by_user_id"] = RuntimeError("admin table locked")

        await source.sign_in(make_identity("u1"))
        await reconciler.drain()

        state = store.state
        assert state.profile == make_profile("u1")
        assert state.admin_level is AdminLevel.NONE
        assert state.error.admin == "admin table locked"
        assert state.loading.profile is False
        assert state.loading.admin is False

    @pytest.mark.asyncio
    async def test_profile_failure_does_not_block_admin(self):
        reconciler, store, source, data, _ = await started()
        data.admin_levels["u1"] = AdminLevel.SUPER_ADMIN
        data.failures["fetch_profile_by_user_id"] = RuntimeError("timeout")

        await source.sign_in(make_identity("u1"))
        await reconciler.drain()

        state = store.state
        assert state.admin_level is AdminLevel.SUPER_ADMIN
        assert state.error.profile == "timeout"
        assert state.profile_loaded is True
        assert state.loading.any is False

    @pytest.mark.asyncio
    async def test_missing_admin_grant_is_not_an_error(self):
        reconciler, store, source, _, _ = await started()
        await source.sign_in(make_identity("u1"))
        await reconciler.drain()
        assert store.state.admin_level is AdminLevel.NONE
        assert store.state.error.admin is None

    @pytest.mark.asyncio
    async def test_late_profile_after_sign_out_is_discarded(self):
        reconciler, store, source, data, _ = await started()
        data.profiles["u1"] = make_profile("u1")
        data.admin_levels["u1"] = AdminLevel.ADMIN
        gate = asyncio.Event()
        data.gates["fetch_profile_by_user_id"] = gate

        sign_in = asyncio.create_task(source.sign_in(make_identity("u1")))
        await spin()
        await source.emit(AuthEventKind.SIGNED_OUT, None)
        gate.set()
        await sign_in
        await reconciler.drain()

        state = store.state
        assert state.identity is None
        assert state.profile is None
        assert state.admin_level is AdminLevel.NONE
        assert state.loading.any is False

    @pytest.mark.asyncio
    async def test_resign_in_during_stale_fetch_starts_a_new_fetch(self):
        reconciler, store, source, data, _ = await started()
        data.profiles["u1"] = make_profile("u1")
        gate = asyncio.Event()
        data.gates["fetch_profile_by_user_id"] = gate

        first = asyncio.create_task(source.sign_in(make_identity("u1")))
        await spin()
        await source.emit(AuthEventKind.SIGNED_OUT, None)
        second = asyncio.create_task(source.sign_in(make_identity("u1")))
        await spin()

        assert store.state.user_id == "u1"
        assert store.state.loading.profile is True
        assert select_is_fully_loaded(store.state) is False
        assert select_needs_onboarding(store.state) is False

        gate.set()
        await asyncio.gather(first, second)
        await reconciler.drain()

        assert store.state.profile_loaded is True
        assert store.state.profile is not None
        assert store.state.loading.any is False
        assert data.calls["fetch_profile_by_user_id"] == 2

    @pytest.mark.asyncio
    async def test_switching_user_fetches_for_new_identity(self):
        reconciler, store, source, data, _ = await started()
        data.profiles["u1"] = make_profile("u1")
        data.profiles["u2"] = make_profile("u2", full_name="Sam Booker")

        await source.sign_in(make_identity("u1"))
        await source.sign_in(make_identity("u2"))
        await reconciler.drain()

        assert store.state.user_id == "u2"
        assert store.state.profile.full_name == "Sam Booker"
        assert data.calls["fetch_profile_by_user_id"] == 2


# ---------------------------------------------------------------------------
# Other events
# ---------------------------------------------------------------------------


class TestOtherEvents:
    @pytest.mark.asyncio
    async def test_token_refresh_for_other_identity_is_ignored(self):
        _, store, source, _, _ = await started()
        await source.sign_in(make_identity("u1"))
        await source.emit(AuthEventKind.TOKEN_REFRESHED, make_session("u2", token="tok-9"))
        assert store.state.user_id == "u1"
        assert store.state.identity.token.access_token == "tok-1"

    @pytest.mark.asyncio
    async def test_user_updated_refreshes_identity_fields(self):
        _, store, source, data, _ = await started()
        await source.sign_in(make_identity("u1"))
        await source.emit(AuthEventKind.USER_UPDATED, make_session("u1", token="tok-3"))
        assert store.state.identity.token.access_token == "tok-3"
        assert data.calls["fetch_profile_by_user_id"] == 1

    @pytest.mark.asyncio
    async def test_signed_out_without_identity_is_noop(self):
        _, store, source, _, _ = await started()
        version = store.version
        await source.emit(AuthEventKind.SIGNED_OUT, None)
        assert store.version == version
        assert source.sign_out_calls == 0

    @pytest.mark.asyncio
    async def test_activity_failure_is_swallowed(self):
        reconciler, store, source, data, _ = await started()
        data.failures["record_activity"] = RuntimeError("insert failed")
        await source.sign_in(make_identity("u1"))
        await reconciler.drain()
        assert store.state.user_id == "u1"
        assert data.activity == []

    @pytest.mark.asyncio
    async def test_login_activity_metadata(self):
        reconciler, _, source, data, _ = await started(activity_user_agent="pytest")
        await source.sign_in(make_identity("u1"))
        await reconciler.drain()
        user_id, kind, metadata = data.activity[0]
        assert (user_id, kind) == ("u1", "login")
        assert metadata["event_type"] == "SIGNED_IN"
        assert metadata["user_agent"] == "pytest"
        assert "timestamp" in metadata


# ---------------------------------------------------------------------------
# Caller-initiated operations
# ---------------------------------------------------------------------------


class TestOperations:
    @pytest.mark.asyncio
    async def test_logout_resets_and_signs_out(self):
        reconciler, store, source, _, _ = await started()
        await source.sign_in(make_identity("u1"))
        await reconciler.logout()
        assert source.sign_out_calls == 1
        assert store.state.identity is None
        assert store.state.initialized is True

    @pytest.mark.asyncio
    async def test_logout_sign_out_failure_still_clears_state(self):
        reconciler, store, source, _, _ = await started(source=FailingSignOut())
        await source.sign_in(make_identity("u1"))
        await reconciler.logout()
        assert source.sign_out_calls == 1
        assert store.state.identity is None

    @pytest.mark.asyncio
    async def test_operations_require_identity(self):
        reconciler, _, _, _, _ = await started()
        with pytest.raises(NotAuthenticatedError):
            await reconciler.fetch_profile()
        with pytest.raises(NotAuthenticatedError):
            await reconciler.update_profile({"role": "booker"})

    @pytest.mark.asyncio
    async def test_fetch_profile_failure_raises_and_records(self):
        reconciler, store, source, data, _ = await started()
        await source.sign_in(make_identity("u1"))
        data.failures["fetch_profile_by_user_id"] = RuntimeError("gone")
        with pytest.raises(ProfileFetchError):
            await reconciler.fetch_profile()
        assert store.state.error.profile == "gone"

    @pytest.mark.asyncio
    async def test_refetch_admin_status_picks_up_new_grant(self):
        reconciler, store, source, data, _ = await started()
        await source.sign_in(make_identity("u1"))
        data.admin_levels["u1"] = AdminLevel.ADMIN
        assert await reconciler.refetch_admin_status() is AdminLevel.ADMIN
        assert store.state.admin_level is AdminLevel.ADMIN

    @pytest.mark.asyncio
    async def test_update_profile_merges_into_cache(self):
        reconciler, store, source, data, _ = await started()
        data.profiles["u1"] = make_profile("u1", role=None)
        await source.sign_in(make_identity("u1"))

        await reconciler.update_profile({"role": "venue_manager"})

        assert store.state.profile.role == "venue_manager"
        assert store.state.profile.is_complete
        assert store.state.loading.profile is False

    @pytest.mark.asyncio
    async def test_update_profile_failure_raises(self):
        reconciler, store, source, data, _ = await started()
        await source.sign_in(make_identity("u1"))
        data.failures["update_profile"] = RuntimeError("constraint violated")
        with pytest.raises(ProfileUpdateError):
            await reconciler.update_profile({"role": "booker"})
        assert store.state.error.profile == "constraint violated"
        assert store.state.loading.profile is False
