import tempfile
import unittest
from datetime import datetime
from pathlib import Path

from facility_booking import (
    Facility,
    InMemoryFacilityCatalog,
    InMemoryReservationStore,
    OperatingWindow,
    ReservationService,
)
from facility_booking.config import Settings
from facility_booking.web_app import create_app

NOW = datetime(2026, 3, 10, 9, 0)
SATURDAY_HOURS = {5: OperatingWindow(480, 1320)}


class WebAppTestCase(unittest.TestCase):
    def setUp(self) -> None:
        self.store = InMemoryReservationStore()
        service = ReservationService(
            facilities=InMemoryFacilityCatalog([Facility("field-1", 10000, SATURDAY_HOURS)]),
            store=self.store,
            clock=lambda: NOW,
        )
        settings = Settings(admin_ids=frozenset({"staff-1"}))
        self.client = create_app(settings, now_provider=lambda: NOW, service=service).test_client()

    def post(self, path: str, actor: str | None = "player-1", **payload):
        headers = {"X-Actor-Id": actor} if actor else {}
        return self.client.post(path, json=payload, headers=headers)

    def book(self, start: str = "10:00", end: str = "12:00", actor: str = "player-1") -> dict:
        response = self.post("/api/reservations", actor=actor, facility_id="field-1", date="2026-03-14", start=start, end=end)
        self.assertEqual(response.status_code, 201, response.get_json())
        return response.get_json()["reservation"]


class TestReservationRoutes(WebAppTestCase):
    def test_create_returns_priced_pending_reservation(self) -> None:
        reservation = self.book()

        self.assertEqual(reservation["status"], "pending")
        self.assertEqual(reservation["requester_id"], "player-1")
        self.assertEqual(reservation["start"], "10:00")
        self.assertEqual(reservation["total_price_cents"], 20000)
        self.assertEqual(reservation["total_price"], "200.00")
        self.assertNotIn("cancellation_reason", reservation)

    def test_overlapping_create_is_conflict(self) -> None:
        self.book()
        response = self.post(
            "/api/reservations", actor="player-2", facility_id="field-1", date="2026-03-14", start="11:00", end="13:00"
        )

        self.assertEqual(response.status_code, 409)
        self.assertEqual(response.get_json(), {"ok": False, "message": "time slot already booked"})

    def test_invalid_range_and_missing_fields_are_bad_requests(self) -> None:
        inverted = self.post("/api/reservations", facility_id="field-1", date="2026-03-14", start="12:00", end="10:00")
        self.assertEqual(inverted.status_code, 400)
        self.assertEqual(inverted.get_json()["message"], "end time must be after start time")

        missing = self.post("/api/reservations", facility_id="field-1", date="2026-03-14")
        self.assertEqual(missing.status_code, 400)
        self.assertIn("start", missing.get_json()["message"])

    def test_unknown_facility_is_not_found(self) -> None:
        response = self.post("/api/reservations", facility_id="field-9", date="2026-03-14", start="10:00", end="12:00")
        self.assertEqual(response.status_code, 404)

    def test_actor_header_is_required(self) -> None:
        response = self.post("/api/reservations", actor=None, facility_id="field-1", date="2026-03-14", start="10:00", end="12:00")
        self.assertEqual(response.status_code, 403)

    def test_confirm_cancel_and_delete_flow(self) -> None:
        reservation_id = self.book()["reservation_id"]

        stranger = self.post(f"/api/reservations/{reservation_id}/confirm", actor="player-2")
        self.assertEqual(stranger.status_code, 403)

        confirmed = self.post(f"/api/reservations/{reservation_id}/confirm")
        self.assertEqual(confirmed.get_json()["reservation"]["status"], "confirmed")
        self.assertEqual(self.post(f"/api/reservations/{reservation_id}/confirm").status_code, 409)

        blocked = self.client.delete(f"/api/reservations/{reservation_id}", headers={"X-Actor-Id": "player-1"})
        self.assertEqual(blocked.status_code, 409)

        cancelled = self.post(f"/api/reservations/{reservation_id}/cancel", reason="rain")
        self.assertEqual(cancelled.status_code, 200)
        self.assertEqual(cancelled.get_json()["reservation"]["cancellation_reason"], "rain")

        deleted = self.client.delete(f"/api/reservations/{reservation_id}", headers={"X-Actor-Id": "staff-1"})
        self.assertEqual(deleted.get_json(), {"ok": True, "reservation_id": reservation_id})
        self.assertIsNone(self.store.get(reservation_id))

        missing = self.client.get(f"/api/reservations/{reservation_id}", headers={"X-Actor-Id": "staff-1"})
        self.assertEqual(missing.status_code, 404)

    def test_patch_updates_notes_only(self) -> None:
        reservation_id = self.book()["reservation_id"]

        response = self.client.patch(
            f"/api/reservations/{reservation_id}",
            json={"notes": "bring bibs", "start": "09:00"},
            headers={"X-Actor-Id": "player-1"},
        )

        self.assertEqual(response.status_code, 200)
        reservation = response.get_json()["reservation"]
        self.assertEqual(reservation["notes"], "bring bibs")
        self.assertEqual(reservation["start"], "10:00")

    def test_non_string_notes_and_group_are_bad_requests(self) -> None:
        for field, value in (("notes", 123), ("notes", ["a"]), ("group_id", {"team": 7}), ("group_id", 7)):
            with self.subTest(field=field, value=value):
                response = self.post(
                    "/api/reservations",
                    facility_id="field-1",
                    date="2026-03-14",
                    start="10:00",
                    end="12:00",
                    **{field: value},
                )
                self.assertEqual(response.status_code, 400)
                self.assertEqual(response.get_json()["message"], f"{field} must be a string")
        self.assertEqual(self.store.list_all(), [])

    def test_patch_rejects_non_string_notes(self) -> None:
        reservation_id = self.book()["reservation_id"]

        for payload in ({"notes": ["a"]}, {"notes": 123}, {"group_id": 5}):
            with self.subTest(payload=payload):
                response = self.client.patch(
                    f"/api/reservations/{reservation_id}", json=payload, headers={"X-Actor-Id": "player-1"}
                )
                self.assertEqual(response.status_code, 400)

        stored = self.store.get(reservation_id)
        self.assertIsNone(stored.notes)
        self.assertIsNone(stored.group_id)
        self.assertEqual(stored.version, 1)

    def test_listing_is_scoped_to_the_actor_unless_admin(self) -> None:
        self.book("10:00", "11:00", actor="player-1")
        self.book("11:00", "12:00", actor="player-2")

        own = self.client.get("/api/reservations?requester_id=player-2", headers={"X-Actor-Id": "player-1"})
        self.assertEqual([row["requester_id"] for row in own.get_json()["reservations"]], ["player-1"])

        everyone = self.client.get("/api/reservations?limit=1&page=2", headers={"X-Actor-Id": "staff-1"})
        payload = everyone.get_json()
        self.assertEqual(payload["pagination"], {"page": 2, "limit": 1, "total": 2, "pages": 2})
        self.assertEqual(payload["reservations"][0]["start"], "11:00")

    def test_listing_rejects_bad_paging(self) -> None:
        for query in ("limit=0", "limit=101", "page=0", "page=two"):
            with self.subTest(query=query):
                response = self.client.get(f"/api/reservations?{query}", headers={"X-Actor-Id": "player-1"})
                self.assertEqual(response.status_code, 400)


class TestAvailabilityRoute(WebAppTestCase):
    def test_availability_lists_booked_and_free_slots(self) -> None:
        self.book()

        response = self.client.get("/api/facilities/field-1/availability?date=2026-03-14")

        self.assertEqual(response.status_code, 200)
        availability = response.get_json()["availability"]
        self.assertEqual(availability["operating_hours"], {"open": "08:00", "close": "22:00"})
        self.assertEqual(availability["booked_slots"], [{"start": "10:00", "end": "12:00"}])
        self.assertEqual(
            availability["free_slots"],
            [{"start": "08:00", "end": "10:00"}, {"start": "12:00", "end": "22:00"}],
        )
        self.assertEqual(availability["hourly_rate"], "100.00")

    def test_availability_requires_a_valid_date(self) -> None:
        self.assertEqual(self.client.get("/api/facilities/field-1/availability").status_code, 400)
        self.assertEqual(self.client.get("/api/facilities/field-1/availability?date=14.03.2026").status_code, 400)
        self.assertEqual(self.client.get("/api/facilities/field-9/availability?date=2026-03-14").status_code, 404)

    def test_unknown_route_is_plain_404(self) -> None:
        self.assertEqual(self.client.get("/api/nothing-here").status_code, 404)


class TestYamlBackedApp(unittest.TestCase):
    def test_default_wiring_reads_facilities_and_persists(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            data_dir = Path(temp_dir) / "data"
            data_dir.mkdir()
            facilities_file = data_dir / "facilities.yaml"
            facilities_file.write_text(
                "- facility_id: court-1\n"
                "  hourly_rate: 60\n"
                "  operating_hours:\n"
                "    saturday: {open: '09:00', close: '21:00'}\n",
                encoding="utf-8",
            )
            settings = Settings(data_dir=data_dir, facilities_file=facilities_file)
            client = create_app(settings, now_provider=lambda: NOW).test_client()

            response = client.post(
                "/api/reservations",
                json={"facility_id": "court-1", "date": "2026-03-14", "start": "09:00", "end": "10:30"},
                headers={"X-Actor-Id": "player-1"},
            )

            self.assertEqual(response.status_code, 201)
            self.assertEqual(response.get_json()["reservation"]["total_price_cents"], 9000)
            self.assertTrue((data_dir / "reservations" / "court-1" / "2026-03-14.yaml").exists())


if __name__ == "__main__":
    unittest.main()
