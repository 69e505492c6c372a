import unittest
from unittest.mock import AsyncMock, patch

import httpx
from fastapi.testclient import TestClient

from conftest import FakeFirestore
from tesland.config import get_db
from tesland.i18n.translations import get_translations
from tesland.integrations.identity_toolkit import IdentityToolkit
from tesland.main import app
from tesland.routers.auth import get_identity_toolkit

EN = get_translations("en")
HU = get_translations("hu")

TOKENS = {
    "user-token": {"uid": "user-1", "email": "anna@tesland.hu"},
    "admin-token": {"uid": "admin-1", "email": "boss@tesland.hu"},
}


def fake_verify(token, app=None, check_revoked=False):
    if token not in TOKENS:
        raise ValueError("bad token")
    return TOKENS[token]


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def identity_response(request):
    """Minimal Identity Toolkit double keyed on the REST method name."""
    body = request.content.decode()
    method = request.url.path.rsplit(":", 1)[-1]
    if method == "signInWithPassword":
        if '"Abcdef1"' not in body:
            return httpx.Response(400, json={"error": {"message": "INVALID_LOGIN_CREDENTIALS"}})
    if method == "signUp" and "taken@tesland.hu" in body:
        return httpx.Response(400, json={"error": {"message": "EMAIL_EXISTS"}})
    if method == "sendOobCode" and "ghost@tesland.hu" in body:
        return httpx.Response(400, json={"error": {"message": "EMAIL_NOT_FOUND"}})
    if method == "resetPassword" and "expired" in body:
        return httpx.Response(400, json={"error": {"message": "EXPIRED_OOB_CODE"}})
    return httpx.Response(200, json={
        "idToken": "id-tok", "refreshToken": "refresh-tok", "expiresIn": "3600",
        "localId": "user-1", "email": "anna@tesland.hu",
    })


class ApiTestCase(unittest.TestCase):
    def setUp(self):
        self.db = FakeFirestore()
        self.db.seed("user_roles", "role-1", {"user_id": "admin-1", "role": "admin"})
        self.identity_calls = []

        def handler(request):
            self.identity_calls.append(request)
            return identity_response(request)

        toolkit = IdentityToolkit(api_key="web-key", transport=httpx.MockTransport(handler))
        app.dependency_overrides[get_db] = lambda: self.db
        app.dependency_overrides[get_identity_toolkit] = lambda: toolkit
        self.client = TestClient(app)
        for target, kwargs in (
            ("tesland.core.auth.fb_auth.verify_id_token", {"side_effect": fake_verify}),
            ("tesland.core.auth.get_firebase_app", {"return_value": None}),
            ("tesland.routers.auth.get_firebase_app", {"return_value": None}),
        ):
            patcher = patch(target, **kwargs)
            patcher.start()
            self.addCleanup(patcher.stop)
        mail_patcher = patch("tesland.services.appointment_emails.send_email", new_callable=AsyncMock)
        self.send_email = mail_patcher.start()
        self.addCleanup(mail_patcher.stop)

    def tearDown(self):
        app.dependency_overrides.clear()


class TestAuthRoutes(ApiTestCase):
    def test_login_returns_tokens(self):
        resp = self.client.post("/auth/login", json={"email": "anna@tesland.hu", "password": "Abcdef1"})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json(), {
            "id_token": "id-tok", "refresh_token": "refresh-tok", "expires_in": 3600, "user_id": "user-1",
        })
        self.assertEqual(self.identity_calls[0].url.params["key"], "web-key")

    def test_login_with_wrong_password(self):
        resp = self.client.post("/auth/login", json={"email": "anna@tesland.hu", "password": "nope",
                                                     "language": "en"})
        self.assertEqual(resp.status_code, 401)
        self.assertEqual(resp.json(), {"error": EN["invalidCredentials"]})

    def test_login_validation_is_localized(self):
        resp = self.client.post("/auth/login", json={"email": "bad", "password": "x"},
                                headers={"Accept-Language": "en"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["error"], EN["invalidEmail"])
        self.assertEqual(self.identity_calls, [])

    def test_register_rejects_weak_password(self):
        resp = self.client.post("/auth/register", json={"email": "new@tesland.hu", "password": "abc"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["fields"]["password"], [
            HU["passwordTooShort"], HU["passwordNeedsUppercase"], HU["passwordNeedsNumber"],
        ])

    def test_register_success(self):
        resp = self.client.post("/auth/register", json={"email": "anna@tesland.hu", "password": "Abcdef1"})
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(resp.json()["user_id"], "user-1")

    def test_register_taken_email(self):
        resp = self.client.post("/auth/register", json={"email": "taken@tesland.hu", "password": "Abcdef1",
                                                        "language": "en"})
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": EN["emailAlreadyRegistered"]})

    def test_reset_password_answer_is_generic(self):
        known = self.client.post("/auth/reset-password", json={"email": "anna@tesland.hu"})
        unknown = self.client.post("/auth/reset-password", json={"email": "ghost@tesland.hu"})
        self.assertEqual(known.status_code, 200)
        self.assertEqual(known.json(), unknown.json())
        self.assertEqual(self.identity_calls[0].headers["x-firebase-locale"], "hu")

    def test_confirm_reset_mismatch(self):
        resp = self.client.post("/auth/confirm-reset", json={
            "oob_code": "code", "password": "Abcdef1", "confirmPassword": "Abcdef2", "language": "en",
        })
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json()["fields"], {"confirmPassword": [EN["passwordsDoNotMatch"]]})

    def test_confirm_reset_expired_code(self):
        resp = self.client.post("/auth/confirm-reset", json={
            "oob_code": "expired", "password": "Abcdef1", "confirmPassword": "Abcdef1",
        })
        self.assertEqual(resp.status_code, 400)
        self.assertEqual(resp.json(), {"error": HU["passwordResetFailed"]})

    def test_me_reports_admin_flag(self):
        self.assertFalse(self.client.get("/auth/me", headers=bearer("user-token")).json()["is_admin"])
        self.assertTrue(self.client.get("/auth/me", headers=bearer("admin-token")).json()["is_admin"])

    def test_me_without_token(self):
        self.assertEqual(self.client.get("/auth/me").status_code, 401)

    def test_logout_revokes_refresh_tokens(self):
        with patch("tesland.routers.auth.firebase_auth.revoke_refresh_tokens") as revoke:
            resp = self.client.post("/auth/logout", headers=bearer("user-token"))
        self.assertEqual(resp.status_code, 200)
        revoke.assert_called_once_with("user-1", None)


def booking_body(**overrides):
    body = {
        "service": "battery", "vehicle": "model-y", "appointment_date": "2026-11-03",
        "appointment_time": "10:00", "location": "la", "name": "Anna", "email": "Anna@Tesland.hu ",
        "phone": "+36301234567", "language": "en",
    }
    body.update(overrides)
    return body


class TestAppointmentRoutes(ApiTestCase):
    def test_booking_and_duplicate_slot(self):
        first = self.client.post("/appointments/", json=booking_body())
        self.assertEqual(first.status_code, 201)
        self.assertEqual(first.json()["email"], "anna@tesland.hu")
        self.assertEqual(first.json()["status"], "pending")

        second = self.client.post("/appointments/", json=booking_body(email="other@tesland.hu"))
        self.assertEqual(second.status_code, 409)
        self.assertEqual(second.json(), {"error": EN["slotAlreadyTaken"]})

    def test_invalid_time_format(self):
        resp = self.client.post("/appointments/", json=booking_body(appointment_time="25:00"))
        self.assertEqual(resp.status_code, 422)

    def test_history_is_limited_to_own_email(self):
        self.client.post("/appointments/", json=booking_body())
        own = self.client.get("/appointments/history", headers=bearer("user-token"))
        self.assertEqual(own.status_code, 200)
        self.assertEqual(len(own.json()), 1)

        other = self.client.get("/appointments/history", params={"email": "boss@tesland.hu"},
                                headers=bearer("user-token"))
        self.assertEqual(other.status_code, 403)

        as_admin = self.client.get("/appointments/history", params={"email": "ANNA@tesland.hu"},
                                   headers=bearer("admin-token"))
        self.assertEqual(len(as_admin.json()), 1)

    def test_admin_dashboard_requires_admin(self):
        self.assertEqual(self.client.get("/admin/appointments/", headers=bearer("user-token")).status_code, 403)
        self.assertEqual(self.client.get("/admin/appointments/").status_code, 401)

    def test_admin_status_reschedule_and_cancel(self):
        created = self.client.post("/appointments/", json=booking_body()).json()
        self.client.post("/appointments/", json=booking_body(appointment_time="11:00", email="b@tesland.hu"))
        admin = bearer("admin-token")

        confirmed = self.client.patch(f"/admin/appointments/{created['id']}/status",
                                      json={"status": "confirmed"}, headers=admin)
        self.assertEqual(confirmed.json()["status"], "confirmed")

        clash = self.client.post(f"/admin/appointments/{created['id']}/reschedule",
                                 json={"appointment_date": "2026-11-03", "appointment_time": "11:00"},
                                 headers=admin)
        self.assertEqual(clash.status_code, 409)

        moved = self.client.post(f"/admin/appointments/{created['id']}/reschedule",
                                 json={"appointment_date": "2026-11-04", "appointment_time": "10:00"},
                                 headers=admin)
        self.assertEqual(moved.status_code, 200)
        self.assertEqual(moved.json()["status"], "rescheduled")
        self.assertEqual(moved.json()["appointment_date"], "2026-11-04")

        cancelled = self.client.post(f"/admin/appointments/{created['id']}/cancel", headers=admin)
        self.assertEqual(cancelled.json()["status"], "cancelled")

        listed = self.client.get("/admin/appointments/", params={"status": "cancelled"}, headers=admin)
        self.assertEqual([a["id"] for a in listed.json()], [created["id"]])

    def test_booking_sends_confirmation_email(self):
        created = self.client.post("/appointments/", json=booking_body()).json()
        self.send_email.assert_awaited_once()
        to, subject, html = self.send_email.await_args.args
        self.assertEqual(to, "anna@tesland.hu")
        self.assertEqual(subject, "Appointment Confirmed - Battery Service on Tuesday, November 3, 2026")
        self.assertIn("Los Angeles Service Center", html)
        self.assertIn(f"id={created['id']}", html)

    def test_failed_confirmation_email_keeps_booking(self):
        self.send_email.side_effect = RuntimeError("SMTP config incomplete")
        resp = self.client.post("/appointments/", json=booking_body())
        self.assertEqual(resp.status_code, 201)
        self.assertEqual(len(self.db.rows("appointments")), 1)

    def test_slot_clash_sends_no_email(self):
        self.client.post("/appointments/", json=booking_body())
        self.send_email.reset_mock()
        self.client.post("/appointments/", json=booking_body(email="other@tesland.hu"))
        self.send_email.assert_not_awaited()

    def test_reschedule_and_cancel_email_the_customer(self):
        created = self.client.post("/appointments/", json=booking_body(language="hu")).json()
        admin = bearer("admin-token")
        self.send_email.reset_mock()

        self.client.post(f"/admin/appointments/{created['id']}/reschedule",
                         json={"appointment_date": "2026-11-04", "appointment_time": "12:00"}, headers=admin)
        to, subject, html = self.send_email.await_args.args
        self.assertEqual(to, "anna@tesland.hu")
        self.assertTrue(subject.startswith("Időpont átütemezve - Akkumulátor szerviz"))
        self.assertIn("2026. november 3., kedd 10:00", html)

        self.client.post(f"/admin/appointments/{created['id']}/cancel", headers=admin)
        self.assertEqual(self.send_email.await_count, 2)
        self.assertEqual(self.send_email.await_args.args[1], "Időpont lemondva - Akkumulátor szerviz")

    def test_unknown_appointment_is_localized(self):
        admin = bearer("admin-token")
        for method, path, body in (
            ("post", "/admin/appointments/missing/reschedule",
             {"appointment_date": "2026-11-04", "appointment_time": "10:00"}),
            ("post", "/admin/appointments/missing/cancel", None),
        ):
            with self.subTest(path=path):
                resp = self.client.request(method, path, json=body, headers={**admin, "Accept-Language": "en"})
                self.assertEqual(resp.status_code, 404)
                self.assertEqual(resp.json(), {"error": EN["appointmentNotFound"]})
        self.send_email.assert_not_awaited()

    def test_unknown_appointment_status_update(self):
        resp = self.client.patch("/admin/appointments/missing/status", json={"status": "confirmed"},
                                 headers=bearer("admin-token"))
        self.assertEqual(resp.status_code, 404)


class TestPushSubscriptionRoutes(ApiTestCase):
    def test_device_needs_existing_appointment(self):
        resp = self.client.post("/push-subscriptions/", json={
            "appointment_id": "missing", "device_token": "tok", "platform": "ios",
        })
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json(), {"error": HU["appointmentNotFound"]})

    def test_customer_and_admin_registration(self):
        created = self.client.post("/appointments/", json=booking_body()).json()
        resp = self.client.post("/push-subscriptions/", json={
            "appointment_id": created["id"], "device_token": "tok", "platform": "android",
        })
        self.assertEqual(resp.status_code, 201)

        admin = self.client.post("/admin/push-subscriptions/", json={"device_token": "admin-tok", "platform": "ios"},
                                 headers=bearer("admin-token"))
        self.assertEqual(admin.status_code, 201)
        self.assertEqual(self.db.rows("admin_push_subscriptions")["admin-tok"]["user_id"], "admin-1")

        denied = self.client.post("/admin/push-subscriptions/", json={"device_token": "t", "platform": "ios"},
                                  headers=bearer("user-token"))
        self.assertEqual(denied.status_code, 403)


if __name__ == "__main__":
    unittest.main()
