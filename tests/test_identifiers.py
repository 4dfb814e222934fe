import asyncio
import random
import sys
from datetime import datetime
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from services.errors import IdentifierError
from services.identifiers import (
    ALPHANUMERIC,
    SEQUENTIAL,
    TIME_BASED,
    TIMESTAMP,
    UNKNOWN,
    IDService,
    month_letter,
)

OCT_2025 = datetime(2025, 10, 17, 12, 0, 0)


class IdStore:
    def __init__(self, existing=()):
        self.ids = set(existing)

    async def display_id_exists(self, display_id):
        return display_id in self.ids

    async def latest_display_id_with_prefix(self, prefix):
        matches = sorted(i for i in self.ids if i.startswith(prefix))
        return matches[-1] if matches else None


def make_service(**kwargs):
    return IDService(rng=random.Random(7), clock=lambda: OCT_2025, **kwargs)


def test_month_letter():
    assert month_letter(datetime(2025, 1, 1)) == "A"
    assert month_letter(datetime(2025, 12, 1)) == "L"


def test_time_based_shape():
    svc = make_service()
    display_id = svc.generate_time_based_id("TY")
    assert display_id.startswith("MDK-TY-25J")
    assert len(display_id) == len("MDK-TY-25J") + 3
    assert svc.scheme_of(display_id) == TIME_BASED


def test_every_scheme_matches_exactly_one_pattern():
    svc = make_service()
    store = IdStore()
    generated = [
        svc.generate_time_based_id("GB"),
        asyncio.run(svc.generate_sequential_id(store, "CL")),
        svc.generate_timestamp_id(),
        asyncio.run(svc.generate_alphanumeric_id(store)),
    ]
    for display_id in generated:
        hits = [name for name, pattern in svc.patterns.items() if pattern.match(display_id)]
        assert len(hits) == 1, display_id
        assert svc.is_valid_id(display_id)
    assert [svc.scheme_of(i) for i in generated] == [TIME_BASED, SEQUENTIAL, TIMESTAMP, ALPHANUMERIC]


def test_unknown_ids():
    svc = make_service()
    for value in ["", "MDK", "ABC-GB-25J4X2", "MDK-GB-25M4X2", "MDK-gb-25J-0001", "MDK-GB4A2X1"]:
        assert svc.scheme_of(value) == UNKNOWN
        assert not svc.is_valid_id(value)


def test_parse_id():
    svc = make_service()
    parsed = svc.parse_id("MDK-BK-25J-0042")
    assert parsed.scheme == SEQUENTIAL
    assert parsed.category == "BK"
    assert parsed.year == "2025"
    assert parsed.month == "10"
    assert parsed.sequence == 42
    assert svc.parse_id("MDK-GB-25A7Q2").sequence is None
    assert svc.parse_id("MDK-1760000000000-0042").scheme == TIMESTAMP


def test_sequential_continues_after_highest_existing():
    svc = make_service()
    store = IdStore({"MDK-GB-25J-0001", "MDK-GB-25J-0007", "MDK-TY-25J-0100"})
    assert asyncio.run(svc.generate_sequential_id(store, "GB")) == "MDK-GB-25J-0008"
    assert asyncio.run(svc.generate_sequential_id(store, "AC")) == "MDK-AC-25J-0001"


def test_sequential_exhaustion_raises():
    svc = make_service()
    store = IdStore({"MDK-GB-25J-9999"})
    with pytest.raises(IdentifierError):
        asyncio.run(svc.generate_sequential_id(store, "GB"))


def test_unknown_category_is_rejected():
    svc = make_service()
    with pytest.raises(IdentifierError):
        svc.generate_time_based_id("ZZ")


class AlwaysTaken:
    async def display_id_exists(self, display_id):
        return True

    async def latest_display_id_with_prefix(self, prefix):
        return None


def test_congested_time_based_space_falls_back_to_timestamp():
    svc = make_service(max_attempts=3)
    display_id = asyncio.run(svc.generate_unique_time_based_id(AlwaysTaken(), "GB"))
    assert svc.scheme_of(display_id) == TIMESTAMP


def test_alphanumeric_falls_back_to_timestamp():
    svc = make_service(max_attempts=2)
    display_id = asyncio.run(svc.generate_alphanumeric_id(AlwaysTaken()))
    assert svc.scheme_of(display_id) == TIMESTAMP


def test_strategy_dispatch():
    svc = make_service()
    store = IdStore()
    assert svc.scheme_of(asyncio.run(svc.generate_for_strategy("hybrid", store, "GM"))) == SEQUENTIAL
    assert svc.scheme_of(asyncio.run(svc.generate_for_strategy("timestamp", store))) == TIMESTAMP
    assert svc.scheme_of(asyncio.run(svc.generate_for_strategy("alphanumeric", store))) == ALPHANUMERIC


def test_custom_prefix():
    svc = IDService(prefix="KID", clock=lambda: OCT_2025)
    assert svc.generate_time_based_id().startswith("KID-GB-25J")
    assert svc.scheme_of("MDK-GB-25J-0001") == UNKNOWN
