import itertools
import tempfile
import threading
import unittest
from concurrent.futures import ThreadPoolExecutor
from datetime import date, datetime
from pathlib import Path

from facility_booking import (
    ConflictError,
    Facility,
    InMemoryFacilityCatalog,
    InMemoryReservationStore,
    ReservationEngine,
    ReservationStore,
    YamlReservationStore,
)

MATCH_DAY = date(2026, 3, 14)


def _assert_pairwise_disjoint(test: unittest.TestCase, store: ReservationStore) -> None:
    active = store.list_active_for_day("field-1", MATCH_DAY)
    for first, second in itertools.combinations(active, 2):
        test.assertFalse(first.time_range.overlaps(second.time_range), f"{first} overlaps {second}")


class ConcurrentCreateMixin:
    def make_store(self, temp_dir: Path) -> ReservationStore:
        raise NotImplementedError

    def test_only_one_of_many_identical_requests_wins(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = self.make_store(Path(temp_dir))
            engine = ReservationEngine(
                InMemoryFacilityCatalog([Facility("field-1", 10000)]),
                store,
                clock=lambda: datetime(2026, 3, 1, 9, 0),
            )
            barrier = threading.Barrier(8)

            def attempt(index: int) -> str:
                barrier.wait()
                try:
                    engine.create_reservation("field-1", MATCH_DAY, "10:00", "12:00", f"player-{index}")
                    return "created"
                except ConflictError:
                    return "conflict"

            with ThreadPoolExecutor(max_workers=8) as pool:
                outcomes = list(pool.map(attempt, range(8)))

            self.assertEqual(outcomes.count("created"), 1)
            self.assertEqual(outcomes.count("conflict"), 7)
            self.assertEqual(len(store.list_active_for_day("field-1", MATCH_DAY)), 1)

    def test_staggered_overlapping_requests_keep_invariant(self) -> None:
        with tempfile.TemporaryDirectory() as temp_dir:
            store = self.make_store(Path(temp_dir))
            engine = ReservationEngine(
                InMemoryFacilityCatalog([Facility("field-1", 10000), Facility("field-2", 10000)]),
                store,
                clock=lambda: datetime(2026, 3, 1, 9, 0),
            )
            requests = [(facility, start, start + 90) for facility in ("field-1", "field-2") for start in range(480, 1200, 30)]

            def attempt(item: tuple[str, int, int]) -> bool:
                facility_id, start, end = item
                try:
                    engine.create_reservation(facility_id, MATCH_DAY, start, end, "player")
                    return True
                except ConflictError:
                    return False

            with ThreadPoolExecutor(max_workers=12) as pool:
                created = sum(pool.map(attempt, requests))

            self.assertGreater(created, 0)
            _assert_pairwise_disjoint(self, store)


class TestInMemoryStoreConcurrency(ConcurrentCreateMixin, unittest.TestCase):
    def make_store(self, temp_dir: Path) -> ReservationStore:
        return InMemoryReservationStore()


class TestYamlStoreConcurrency(ConcurrentCreateMixin, unittest.TestCase):
    def make_store(self, temp_dir: Path) -> ReservationStore:
        return YamlReservationStore(temp_dir / "data")


if __name__ == "__main__":
    unittest.main()
