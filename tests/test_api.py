"""End-to-end tests for the exchange HTTP API."""

from __future__ import annotations

import sqlite3
import tempfile
import unittest
from pathlib import Path
from unittest import mock

from fastapi.testclient import TestClient

from kes_exchange.api import create_app
from kes_exchange.database import Database


class _StepClock:
    def __init__(self) -> None:
        self.value = 1_000

    def now(self) -> int:
        self.value += 1
        return self.value


ASHA = {"name": "Asha", "phone_number": "0712345678", "email": "asha@example.com"}
BARAKA = {"name": "Baraka", "phone_number": "0722000111", "email": "baraka@example.com"}


class ExchangeAPITests(unittest.TestCase):
    def setUp(self) -> None:
        self._tempdir = tempfile.TemporaryDirectory()
        self.database = Database(Path(self._tempdir.name) / "exchange.sqlite3")
        self.app = create_app(database=self.database, clock=_StepClock())
        self.client = TestClient(self.app)

    def tearDown(self) -> None:
        self.client.close()
        self._tempdir.cleanup()

    def _create_user(self, payload: dict) -> dict:
        response = self.client.post("/v1/users", json=payload)
        self.assertEqual(response.status_code, 201, response.text)
        return response.json()

    def test_healthcheck(self) -> None:
        response = self.client.get("/healthz")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.json(), {"status": "ok"})

    def test_user_lifecycle(self) -> None:
        created = self._create_user(ASHA)
        self.assertEqual(created["id"], 1)
        self.assertEqual(created["created_at"], 1_001)

        fetched = self.client.get(f"/v1/users/{created['id']}")
        self.assertEqual(fetched.status_code, 200, fetched.text)
        self.assertEqual(fetched.json(), created)

        updated = self.client.put(
            f"/v1/users/{created['id']}",
            json={"name": "Asha W.", "phone_number": "0733000000", "email": "asha@example.com"},
        )
        self.assertEqual(updated.status_code, 200, updated.text)
        body = updated.json()
        self.assertEqual(body["name"], "Asha W.")
        self.assertEqual(body["created_at"], created["created_at"])

    def test_duplicate_email_conflicts(self) -> None:
        self._create_user(ASHA)

        response = self.client.post("/v1/users", json={**BARAKA, "email": ASHA["email"]})

        self.assertEqual(response.status_code, 409)
        self.assertEqual(
            response.json(),
            {"error": {"kind": "AlreadyExists", "message": "Email already exists"}},
        )

    def test_validation_errors_are_reported_by_kind(self) -> None:
        cases = [
            ({**ASHA, "name": ""}, "EmptyFields"),
            ({**ASHA, "email": "asha"}, "InvalidEmail"),
            ({**ASHA, "phone_number": "123"}, "InvalidPhoneNumber"),
        ]
        for payload, kind in cases:
            with self.subTest(kind=kind):
                response = self.client.post("/v1/users", json=payload)
                self.assertEqual(response.status_code, 400, response.text)
                self.assertEqual(response.json()["error"]["kind"], kind)

        search = self.client.get("/v1/users/search", params={"query": "asha@example.com"})
        self.assertEqual(search.status_code, 404)

    def test_missing_user(self) -> None:
        response = self.client.get("/v1/users/42")
        self.assertEqual(response.status_code, 404)
        self.assertEqual(response.json()["error"]["kind"], "UserNotFound")

        update = self.client.put("/v1/users/42", json=ASHA)
        self.assertEqual(update.status_code, 404)

    def test_search(self) -> None:
        asha = self._create_user(ASHA)

        by_email = self.client.get("/v1/users/search", params={"query": "asha@example.com"})
        self.assertEqual(by_email.status_code, 200, by_email.text)
        self.assertEqual(by_email.json(), {"users": [asha]})

        by_phone = self.client.get("/v1/users/search", params={"query": "0712345678"})
        self.assertEqual(by_phone.json(), {"users": [asha]})

        invalid = self.client.get("/v1/users/search", params={"query": "not-an-email-or-phone"})
        self.assertEqual(invalid.status_code, 400)
        self.assertEqual(invalid.json()["error"]["kind"], "InvalidQuery")

    def test_swap_request_flow(self) -> None:
        asha = self._create_user(ASHA)
        baraka = self._create_user(BARAKA)

        listing = self.client.post(
            "/v1/listings",
            json={
                "user_id": asha["id"],
                "title": "Bicycle",
                "author": "Asha",
                "description": "Red, 21 gears",
            },
        )
        self.assertEqual(listing.status_code, 201, listing.text)
        listing_id = listing.json()["id"]
        self.assertEqual(self.client.get(f"/v1/listings/{listing_id}").json(), listing.json())

        own = self.client.post(
            "/v1/swap-requests",
            json={"listing_id": listing_id, "requested_by_id": asha["id"]},
        )
        self.assertEqual(own.status_code, 403)
        self.assertEqual(own.json()["error"]["kind"], "Unauthorized")

        missing = self.client.post(
            "/v1/swap-requests",
            json={"listing_id": 999, "requested_by_id": baraka["id"]},
        )
        self.assertEqual(missing.status_code, 404)
        self.assertEqual(missing.json()["error"]["kind"], "NotFound")

        created = self.client.post(
            "/v1/swap-requests",
            json={"listing_id": listing_id, "requested_by_id": baraka["id"]},
        )
        self.assertEqual(created.status_code, 201, created.text)
        swap_request = created.json()
        self.assertEqual(swap_request["status"], "Pending")
        self.assertEqual(swap_request["id"], 4)

        fetched = self.client.get(f"/v1/swap-requests/{swap_request['id']}")
        self.assertEqual(fetched.json(), swap_request)

        feedback = self.client.post(
            "/v1/feedback",
            json={
                "user_id": asha["id"],
                "swap_request_id": swap_request["id"],
                "rating": 4,
                "comment": "Friendly trade",
            },
        )
        self.assertEqual(feedback.status_code, 201, feedback.text)
        self.assertEqual(self.client.get(f"/v1/feedback/{feedback.json()['id']}").json(), feedback.json())

        bad_rating = self.client.post(
            "/v1/feedback",
            json={"user_id": asha["id"], "swap_request_id": swap_request["id"], "rating": 9},
        )
        self.assertEqual(bad_rating.status_code, 400)
        self.assertEqual(bad_rating.json()["error"]["kind"], "InvalidRating")

    def test_oversized_record(self) -> None:
        response = self.client.post("/v1/users", json={**ASHA, "name": "N" * 2000})
        self.assertEqual(response.status_code, 413)
        self.assertEqual(response.json()["error"]["kind"], "RecordTooLarge")

    def test_storage_failure_is_a_server_error(self) -> None:
        error = sqlite3.OperationalError("disk I/O error")
        with mock.patch.object(self.database, "store_record", side_effect=error):
            response = self.client.post("/v1/users", json=ASHA)

        self.assertEqual(response.status_code, 500)
        self.assertEqual(response.json()["error"]["kind"], "StorageFailed")
        self.assertEqual(self.client.get("/v1/users/1").status_code, 404)

    def test_negative_identifier_is_rejected_by_schema(self) -> None:
        response = self.client.get("/v1/listings/-1")
        self.assertEqual(response.status_code, 422)


if __name__ == "__main__":  # pragma: no cover
    unittest.main()
