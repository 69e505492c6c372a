import asyncio
import tempfile
import threading
import unittest
from datetime import date, datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import MagicMock

import httpx

from tesland.client.app import AppContext
from tesland.client.booking import BookingWizard, Step
from tesland.client.identity import SESSION_STORAGE_KEY, AuthEvent, FirebaseIdentityClient
from tesland.client.localization import LANGUAGE_STORAGE_KEY, LocalizationStore
from tesland.client.session import REMEMBER_ME_KEY, AuthErrorKind, AuthState, SessionStore
from tesland.client.storage import JsonFileStorage, LocalStorage, MemoryStorage
from tesland.core.errors import SlotTakenError
from tesland.i18n.translations import get_translations
from tesland.integrations.identity_toolkit import IdentityToolkit
from tesland.schemas.principal import Session

EN = get_translations("en")
HU = get_translations("hu")


def make_session(uid="user-1", expires_in=3600):
    return Session(id_token=f"id-{uid}", refresh_token=f"rt-{uid}",
                   expires_at=datetime.now(timezone.utc) + timedelta(seconds=expires_in),
                   uid=uid, email="anna@tesland.hu")


class FakeFirebase:
    """Identity Toolkit, secure-token and backend /auth/logout behind one MockTransport."""

    def __init__(self, logout_status=200, refresh_status=200, offline=False):
        self.logout_status = logout_status
        self.refresh_status = refresh_status
        self.offline = offline
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if self.offline:
            raise httpx.ConnectError("offline", request=request)
        body = request.content.decode()
        if request.url.path == "/auth/logout":
            return httpx.Response(self.logout_status, json={"detail": "Logged out"})
        if request.url.path == "/v1/token":
            if self.refresh_status != 200:
                return httpx.Response(self.refresh_status, json={"error": {"message": "TOKEN_EXPIRED"}})
            return httpx.Response(200, json={"id_token": "id-new", "refresh_token": "rt-new",
                                              "expires_in": "3600", "user_id": "user-1"})
        if request.url.path.endswith(":signInWithPassword") and '"Abcdef1"' not in body:
            return httpx.Response(400, json={"error": {"message": "INVALID_LOGIN_CREDENTIALS"}})
        if request.url.path.endswith(":signUp") and "taken@" in body:
            return httpx.Response(400, json={"error": {"message": "EMAIL_EXISTS"}})
        return httpx.Response(200, json={"idToken": "id-tok", "refreshToken": "rt-tok", "expiresIn": "3600",
                                         "localId": "user-1", "email": "anna@tesland.hu"})


def build_identity(storage, firebase):
    transport = httpx.MockTransport(firebase)
    return FirebaseIdentityClient(storage, toolkit=IdentityToolkit(api_key="web-key", transport=transport),
                                  api_base_url="http://api.test", transport=transport)


class TestSessionStore(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.storage = MemoryStorage()
        self.firebase = FakeFirebase()
        self.identity = build_identity(self.storage, self.firebase)
        self.admins = set()
        self.store = SessionStore(self.identity, self.storage, lambda uid: uid in self.admins)

    async def asyncTearDown(self):
        await self.store.close()

    async def test_starts_anonymous_without_persisted_session(self):
        self.assertEqual(self.store.state, AuthState.LOADING)
        await self.store.start()
        self.assertEqual(self.store.state, AuthState.ANONYMOUS)
        self.assertIsNone(self.store.principal)

    async def test_restores_persisted_session(self):
        self.storage.set_item(SESSION_STORAGE_KEY, make_session().model_dump_json())
        await self.store.start()
        self.assertEqual(self.store.state, AuthState.AUTHENTICATED)
        self.assertEqual(self.store.principal.uid, "user-1")
        self.assertFalse(self.store.is_admin)

    async def test_expired_session_is_refreshed_on_start(self):
        self.storage.set_item(SESSION_STORAGE_KEY, make_session(expires_in=-10).model_dump_json())
        await self.store.start()
        self.assertEqual(self.store.state, AuthState.AUTHENTICATED)
        self.assertEqual(self.store.session.id_token, "id-new")

    async def test_rejected_refresh_token_signs_out(self):
        self.firebase.refresh_status = 400
        self.storage.set_item(SESSION_STORAGE_KEY, make_session(expires_in=-10).model_dump_json())
        await self.store.start()
        self.assertEqual(self.store.state, AuthState.ANONYMOUS)
        self.assertIsNone(self.storage.get_item(SESSION_STORAGE_KEY))

    async def test_sign_in_success_and_admin_flag(self):
        self.admins.add("user-1")
        await self.store.start()
        result = await self.store.sign_in("anna@tesland.hu", "Abcdef1")
        self.assertTrue(result.ok)
        self.assertEqual(self.store.state, AuthState.AUTHENTICATED)
        self.assertTrue(self.store.is_admin)
        self.assertEqual(self.storage.get_item(REMEMBER_ME_KEY), "true")

    async def test_wrong_password_is_a_result_not_an_exception(self):
        await self.store.start()
        result = await self.store.sign_in("anna@tesland.hu", "wrong", remember_me=False)
        self.assertEqual(result.error, AuthErrorKind.invalid_credentials)
        self.assertEqual(self.store.state, AuthState.ANONYMOUS)
        # Flag is written before the provider call
        self.assertEqual(self.storage.get_item(REMEMBER_ME_KEY), "false")

    async def test_sign_up_with_taken_email(self):
        result = await self.store.sign_up("taken@tesland.hu", "Abcdef1")
        self.assertEqual(result.error, AuthErrorKind.email_taken)

    async def test_network_failure_is_unknown_error(self):
        self.firebase.offline = True
        result = await self.store.sign_in("anna@tesland.hu", "Abcdef1")
        self.assertEqual(result.error, AuthErrorKind.unknown)

    async def test_role_lookup_failure_fails_closed(self):
        def broken(uid):
            raise RuntimeError("firestore down")
        store = SessionStore(self.identity, self.storage, broken)
        await store.start()
        await store.sign_in("anna@tesland.hu", "Abcdef1")
        self.assertEqual(store.state, AuthState.AUTHENTICATED)
        self.assertFalse(store.is_admin)
        await store.close()

    async def test_sign_out_clears_state_even_when_remote_call_fails(self):
        self.firebase.logout_status = 500
        await self.store.start()
        await self.store.sign_in("anna@tesland.hu", "Abcdef1")
        await self.store.sign_out()
        self.assertEqual(self.store.state, AuthState.ANONYMOUS)
        self.assertIsNone(self.store.principal)
        self.assertIsNone(self.store.session)
        self.assertFalse(self.store.is_admin)
        self.assertIsNone(self.storage.get_item(SESSION_STORAGE_KEY))
        self.assertIsNone(self.storage.get_item(REMEMBER_ME_KEY))

    async def test_sign_out_sends_bearer_token_to_backend(self):
        await self.store.start()
        await self.store.sign_in("anna@tesland.hu", "Abcdef1")
        await self.store.sign_out()
        logout = [r for r in self.firebase.requests if r.url.path == "/auth/logout"][0]
        self.assertEqual(logout.headers["authorization"], "Bearer id-tok")

    async def test_unload_without_remember_me_drops_session(self):
        await self.store.start()
        await self.store.sign_in("anna@tesland.hu", "Abcdef1", remember_me=False)
        self.assertIsNotNone(self.storage.get_item(SESSION_STORAGE_KEY))
        self.store.handle_unload()
        self.assertIsNone(self.storage.get_item(SESSION_STORAGE_KEY))

    async def test_unload_with_remember_me_keeps_session(self):
        await self.store.start()
        await self.store.sign_in("anna@tesland.hu", "Abcdef1", remember_me=True)
        self.store.handle_unload()
        self.assertIsNotNone(self.storage.get_item(SESSION_STORAGE_KEY))

    async def test_stale_role_lookup_is_discarded(self):
        started, release = threading.Event(), threading.Event()

        def slow_lookup(uid):
            started.set()
            release.wait(5)
            return True

        store = SessionStore(self.identity, self.storage, slow_lookup)
        pending = asyncio.create_task(store._on_auth_state_change(AuthEvent.SIGNED_IN, make_session()))
        await asyncio.to_thread(started.wait, 5)
        await store._on_auth_state_change(AuthEvent.SIGNED_OUT, None)
        release.set()
        await pending
        self.assertEqual(store.state, AuthState.ANONYMOUS)
        self.assertFalse(store.is_admin)

    async def test_close_unsubscribes(self):
        await self.store.start()
        await self.store.close()
        await self.identity.sign_in_with_password("anna@tesland.hu", "Abcdef1")
        self.assertEqual(self.store.state, AuthState.ANONYMOUS)


class TestLocalizationStore(unittest.TestCase):
    def test_defaults_to_hungarian(self):
        store = LocalizationStore(MemoryStorage())
        self.assertEqual(store.language, "hu")
        self.assertIs(store.t, HU)

    def test_reads_and_persists_preference(self):
        storage = MemoryStorage({LANGUAGE_STORAGE_KEY: "en"})
        store = LocalizationStore(storage)
        self.assertEqual(store.language, "en")
        seen = []
        store.on_change(seen.append)
        store.set_language("hu")
        self.assertEqual(storage.get_item(LANGUAGE_STORAGE_KEY), "hu")
        self.assertEqual(seen, ["hu"])
        self.assertEqual(store.schemas.login.validate({}).first_error("email"), HU["emailRequired"])

    def test_unknown_stored_language_is_ignored(self):
        self.assertEqual(LocalizationStore(MemoryStorage({LANGUAGE_STORAGE_KEY: "de"})).language, "hu")

    def test_rejects_unsupported_language(self):
        with self.assertRaises(ValueError):
            LocalizationStore(MemoryStorage()).set_language("fr")


class TestBookingWizard(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.localization = LocalizationStore(MemoryStorage({LANGUAGE_STORAGE_KEY: "en"}))
        self.insert = MagicMock(side_effect=lambda data: {**data, "id": "appt-1", "status": "pending"})
        self.register_device = MagicMock()
        self.wizard = BookingWizard(self.insert, self.localization, self.register_device)

    def fill(self):
        w = self.wizard
        w.select_service("maintenance")
        w.next()
        w.select_vehicle("model-3")
        w.next()
        w.select_schedule(date(2026, 11, 3), "10:00", "sf")
        w.next()
        w.set_contact("Anna", "Anna@Tesland.hu", "+36301234567")

    def test_next_refuses_incomplete_step(self):
        self.assertFalse(self.wizard.next())
        self.assertEqual(self.wizard.step, Step.SERVICE)
        self.wizard.select_service("battery")
        self.assertTrue(self.wizard.next())
        self.assertEqual(self.wizard.step, Step.VEHICLE)

    def test_back_keeps_earlier_choices(self):
        self.fill()
        self.assertEqual(self.wizard.step, Step.CONTACT)
        self.wizard.back()
        self.wizard.back()
        self.assertEqual(self.wizard.step, Step.VEHICLE)
        self.assertEqual(self.wizard.selection.service, "maintenance")
        self.assertEqual(self.wizard.selection.appointment_time, "10:00")
        self.assertEqual(self.wizard.selection.email, "Anna@Tesland.hu")
        self.assertTrue(self.wizard.next())

    def test_unknown_slot_or_location(self):
        with self.assertRaises(ValueError):
            self.wizard.select_schedule(date(2026, 11, 3), "10:30", "sf")
        with self.assertRaises(ValueError):
            self.wizard.select_schedule(date(2026, 11, 3), "10:00", "budapest")

    async def test_successful_submit(self):
        booked = []
        self.wizard.on_booked(booked.append)
        self.fill()
        self.assertTrue(await self.wizard.submit(device_token="tok", platform="ios"))
        self.assertEqual(self.wizard.step, Step.DONE)
        self.insert.assert_called_once()
        sent = self.insert.call_args.args[0]
        self.assertEqual(sent["email"], "anna@tesland.hu")
        self.assertEqual(sent["language"], "en")
        self.assertEqual(booked, [self.wizard.confirmation])
        self.register_device.assert_called_once_with("appt-1", "tok", "ios")

    async def test_slot_taken_keeps_wizard_on_contact(self):
        self.insert.side_effect = SlotTakenError("Time slot is not available")
        self.fill()
        self.assertFalse(await self.wizard.submit())
        self.assertEqual(self.wizard.step, Step.CONTACT)
        self.assertEqual(self.wizard.error, EN["slotAlreadyTaken"])
        self.assertEqual(self.wizard.selection.service, "maintenance")
        self.assertFalse(self.wizard.submitting)

    async def test_insert_failure_allows_resubmit(self):
        self.insert.side_effect = [RuntimeError("firestore down"), {"id": "appt-2"}]
        self.fill()
        self.assertFalse(await self.wizard.submit())
        self.assertEqual(self.wizard.error, EN["bookingFailed"])
        self.assertTrue(await self.wizard.submit())
        self.assertEqual(self.wizard.confirmation, {"id": "appt-2"})
        self.assertIsNone(self.wizard.error)

    async def test_invalid_email_is_not_sent(self):
        self.fill()
        self.wizard.set_contact("Anna", "not-an-email", "+36301234567")
        self.assertFalse(await self.wizard.submit())
        self.assertEqual(self.wizard.error, EN["invalidEmail"])
        self.insert.assert_not_called()

    async def test_push_registration_failure_keeps_booking(self):
        self.register_device.side_effect = RuntimeError("no fcm")
        self.fill()
        self.assertTrue(await self.wizard.submit(device_token="tok"))
        self.assertEqual(self.wizard.step, Step.DONE)

    async def test_failing_listener_does_not_break_submit(self):
        def broken(saved):
            raise RuntimeError("listener bug")

        booked = []
        self.wizard.on_booked(broken)
        self.wizard.on_booked(booked.append)
        self.fill()
        with self.assertLogs("tesland.client.booking", level="ERROR"):
            self.assertTrue(await self.wizard.submit())
        self.assertEqual(self.wizard.step, Step.DONE)
        self.assertEqual(self.wizard.notice, EN["appointmentBookedSuccess"])
        self.assertEqual(booked, [self.wizard.confirmation])

    async def test_start_over(self):
        self.fill()
        await self.wizard.submit()
        self.wizard.start_over()
        self.assertEqual(self.wizard.step, Step.SERVICE)
        self.assertIsNone(self.wizard.selection.service)


class TestAppContext(unittest.IsolatedAsyncioTestCase):
    async def test_context_lifecycle(self):
        storage = MemoryStorage({LANGUAGE_STORAGE_KEY: "en"})
        identity = build_identity(storage, FakeFirebase())
        async with AppContext(storage, identity=identity, role_lookup=lambda uid: False,
                              insert=lambda data: {**data, "id": "x"}) as ctx:
            self.assertEqual(ctx.session.state, AuthState.ANONYMOUS)
            self.assertEqual(ctx.localization.language, "en")
            await ctx.session.sign_in("anna@tesland.hu", "Abcdef1", remember_me=False)
            self.assertIsInstance(ctx.new_booking(), BookingWizard)
            self.assertIsNotNone(storage.get_item(SESSION_STORAGE_KEY))
        self.assertIsNone(storage.get_item(SESSION_STORAGE_KEY))


class TestJsonFileStorage(unittest.TestCase):
    def test_storage_base_is_abstract(self):
        with self.assertRaises(TypeError):
            LocalStorage()

        class GetOnly(LocalStorage):
            def get_item(self, key):
                return None

        with self.assertRaises(TypeError):
            GetOnly()

    def test_values_survive_a_new_instance(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "state" / "client.json"
            JsonFileStorage(path).set_item(REMEMBER_ME_KEY, "false")
            again = JsonFileStorage(path)
            self.assertEqual(again.get_item(REMEMBER_ME_KEY), "false")
            again.remove_item(REMEMBER_ME_KEY)
            self.assertIsNone(JsonFileStorage(path).get_item(REMEMBER_ME_KEY))

    def test_corrupt_file_reads_as_empty(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = Path(tmp) / "client.json"
            path.write_text("{broken")
            self.assertIsNone(JsonFileStorage(path).get_item("anything"))


if __name__ == "__main__":
    unittest.main()
