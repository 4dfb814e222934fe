import asyncio
import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from sqlalchemy.exc import IntegrityError

from utils import chunked, retry_async


def conflict():
    return IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed: kids_gift_boxes.display_id"))


def test_retries_listed_errors_until_success():
    calls = []

    @retry_async(retry_on=(IntegrityError,), max_retries=3, base_delay=0, jitter=False)
    async def insert():
        calls.append(1)
        if len(calls) < 3:
            raise conflict()
        return "ok"

    assert asyncio.run(insert()) == "ok"
    assert len(calls) == 3


def test_gives_up_after_max_retries():
    calls = []

    @retry_async(retry_on=(IntegrityError,), max_retries=2, base_delay=0, jitter=False)
    async def insert():
        calls.append(1)
        raise conflict()

    with pytest.raises(IntegrityError):
        asyncio.run(insert())
    assert len(calls) == 3


def test_other_errors_are_not_retried():
    calls = []

    @retry_async(retry_on=(IntegrityError,), base_delay=0)
    async def insert():
        calls.append(1)
        raise ConnectionError("connection refused")

    with pytest.raises(ConnectionError):
        asyncio.run(insert())
    assert len(calls) == 1


def test_retry_on_is_required():
    with pytest.raises(ValueError):
        retry_async(retry_on=())


def test_chunked_keeps_order_and_remainder():
    assert list(chunked(list(range(5)), 2)) == [[0, 1], [2, 3], [4]]
    assert list(chunked([], 3)) == []
    with pytest.raises(ValueError):
        list(chunked([1], 0))
