from __future__ import annotations

from datetime import date
from pathlib import Path
import sys
import tempfile
import traceback

from facility_booking import (
    Actor,
    ConflictError,
    Facility,
    InMemoryFacilityCatalog,
    InvalidStateError,
    OperatingWindow,
    ReservationService,
    ValidationError,
    YamlReservationStore,
)


def main(data_dir: Path) -> int:
    print("[INFO] Facility Booking Quick Check")
    catalog = InMemoryFacilityCatalog(
        [
            Facility(
                facility_id="field-1",
                hourly_rate_cents=10000,
                operating_hours={day: OperatingWindow(8 * 60, 22 * 60) for day in range(7)},
            )
        ]
    )
    store = YamlReservationStore(data_dir)
    service = ReservationService(facilities=catalog, store=store)
    requester = Actor("player-1")
    match_day = date(2026, 3, 14)

    first = service.create_reservation("field-1", match_day, "10:00", "12:00", requester.actor_id)
    print(f"[OK] Created {first.reservation_id}: {first.duration_hours}h, {first.total_price_cents} cents, {first.status.value}")

    try:
        service.create_reservation("field-1", match_day, "11:00", "13:00", "player-2")
        print("[FAIL] Overlapping request was accepted.")
        return 1
    except ConflictError as error:
        print(f"[OK] Overlap rejected: {error.message}")

    try:
        service.create_reservation("field-1", match_day, "12:00", "11:00", requester.actor_id)
        print("[FAIL] Inverted range was accepted.")
        return 1
    except ValidationError as error:
        print(f"[OK] Inverted range rejected: {error.message}")

    cancelled = service.cancel_reservation(first.reservation_id, requester, reason="weather")
    print(f"[OK] Cancelled at {cancelled.cancelled_at} ({cancelled.cancellation_reason})")

    rebooked = service.create_reservation("field-1", match_day, "10:00", "12:00", requester.actor_id)
    service.confirm_reservation(rebooked.reservation_id, requester)
    try:
        service.delete_reservation(rebooked.reservation_id, requester)
        print("[FAIL] Confirmed reservation was deleted.")
        return 1
    except InvalidStateError as error:
        print(f"[OK] Delete of confirmed reservation rejected: {error.message}")

    print(f"[OK] Event Log YAML: {store.log_file.resolve()}")
    print("[DONE] Quick check completed successfully.")
    return 0


if __name__ == "__main__":
    try:
        if len(sys.argv) > 1:
            raise SystemExit(main(Path(sys.argv[1])))
        with tempfile.TemporaryDirectory() as temp_dir:
            raise SystemExit(main(Path(temp_dir) / "data"))
    except Exception:
        print("[ERROR] Quick check failed.")
        traceback.print_exc()
        raise SystemExit(1)
