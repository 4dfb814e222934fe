"""
Identifier Generator
Human-readable, category-tagged display ids for gift boxes.

Schemes (prefix MDK by default):
- time-based   MDK-GB-25J4X2      bulk import; computed locally, 36^3 suffixes per category/month
- sequential   MDK-GB-25J-0001    single create; next sequence after the highest stored one
- timestamp    MDK-1760000000000-0042
- alphanumeric MDK-B08X4N5V       random, re-drawn on collision, timestamp fallback

The four shapes are disjoint, so the scheme of any id can be recovered from the id alone.
"""
import logging
import random
import re
import time
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional, Protocol

from services.errors import IdentifierError
from settings import DEFAULT_CATEGORY, ID_PREFIX, CATEGORY_NAMES

logger = logging.getLogger(__name__)

ALPHABET = "ABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789"

TIME_BASED = "time_based"
SEQUENTIAL = "sequential"
TIMESTAMP = "timestamp"
ALPHANUMERIC = "alphanumeric"
UNKNOWN = "unknown"


class IdentifierStore(Protocol):
    """The slice of the record store identifier generation needs."""

    async def display_id_exists(self, display_id: str) -> bool: ...

    async def latest_display_id_with_prefix(self, prefix: str) -> Optional[str]: ...


@dataclass(frozen=True)
class ParsedID:
    scheme: str
    category: Optional[str] = None
    year: Optional[str] = None
    month: Optional[str] = None
    sequence: Optional[int] = None


def month_letter(moment: datetime) -> str:
    """A=January ... L=December."""
    return chr(ord("A") + moment.month - 1)


class IDService:
    def __init__(self, prefix: str = ID_PREFIX, rng: Optional[random.Random] = None,
                 clock: Optional[Callable[[], datetime]] = None, max_attempts: int = 10):
        self.prefix = prefix
        self.rng = rng or random.SystemRandom()
        self.clock = clock or datetime.now
        self.max_attempts = max_attempts
        p = re.escape(prefix)
        self.patterns = {
            TIME_BASED: re.compile(rf"^{p}-([A-Z]{{2}})-(\d{{2}})([A-L])([A-Z0-9]{{3}})$"),
            SEQUENTIAL: re.compile(rf"^{p}-([A-Z]{{2}})-(\d{{2}})([A-L])-(\d{{4}})$"),
            TIMESTAMP: re.compile(rf"^{p}-\d{{13}}-\d{{4}}$"),
            ALPHANUMERIC: re.compile(rf"^{p}-[A-Z0-9]{{8}}$"),
        }

    # ---------- helpers ----------

    def _random_chars(self, count: int) -> str:
        return "".join(self.rng.choice(ALPHABET) for _ in range(count))

    def _category(self, category: Optional[str]) -> str:
        code = category or DEFAULT_CATEGORY
        if code not in CATEGORY_NAMES:
            raise IdentifierError(f"Unknown category code: {code}")
        return code

    def period_prefix(self, category: Optional[str] = None, moment: Optional[datetime] = None) -> str:
        """PREFIX-{cat}-{yy}{month letter}, shared by time-based and sequential ids."""
        moment = moment or self.clock()
        return f"{self.prefix}-{self._category(category)}-{moment.year % 100:02d}{month_letter(moment)}"

    # ---------- pure schemes ----------

    def generate_time_based_id(self, category: Optional[str] = None) -> str:
        return f"{self.period_prefix(category)}{self._random_chars(3)}"

    def generate_timestamp_id(self) -> str:
        millis = int(time.time() * 1000)
        return f"{self.prefix}-{millis:013d}-{self.rng.randrange(10000):04d}"

    # ---------- store-checked schemes ----------

    async def generate_unique_time_based_id(self, store: IdentifierStore, category: Optional[str] = None) -> str:
        """Time-based id re-drawn on collision; timestamp id once attempts run out."""
        for _ in range(self.max_attempts):
            candidate = self.generate_time_based_id(category)
            if not await store.display_id_exists(candidate):
                return candidate
        fallback = self.generate_timestamp_id()
        logger.warning(f"Time-based id space congested for {category}; falling back to {fallback}")
        return fallback

    async def generate_alphanumeric_id(self, store: IdentifierStore) -> str:
        for _ in range(self.max_attempts):
            candidate = f"{self.prefix}-{self._random_chars(8)}"
            if not await store.display_id_exists(candidate):
                return candidate
        return self.generate_timestamp_id()

    async def generate_sequential_id(self, store: IdentifierStore, category: Optional[str] = None) -> str:
        """
        Next sequence for the current category/month.

        The existence check only narrows the window between read and insert; the
        unique constraint on display_id is what the caller retries against.
        """
        prefix = self.period_prefix(category)
        latest = await store.latest_display_id_with_prefix(f"{prefix}-")
        sequence = 1
        if latest:
            parsed = self.parse_id(latest)
            sequence = (parsed.sequence or 0) + 1

        for _ in range(self.max_attempts):
            if sequence > 9999:
                raise IdentifierError(f"Sequence space exhausted for {prefix}")
            candidate = f"{prefix}-{sequence:04d}"
            if not await store.display_id_exists(candidate):
                return candidate
            sequence += 1
        raise IdentifierError(f"Could not find a free sequence for {prefix}")

    async def generate_for_strategy(self, strategy: str, store: IdentifierStore,
                                    category: Optional[str] = None) -> str:
        if strategy == "alphanumeric":
            return await self.generate_alphanumeric_id(store)
        if strategy == "timestamp":
            return self.generate_timestamp_id()
        return await self.generate_sequential_id(store, category)

    # ---------- recognition ----------

    def scheme_of(self, identifier: str) -> str:
        matches = [name for name, pattern in self.patterns.items() if pattern.match(identifier or "")]
        return matches[0] if len(matches) == 1 else UNKNOWN

    def is_valid_id(self, identifier: str) -> bool:
        return self.scheme_of(identifier) != UNKNOWN

    def parse_id(self, identifier: str) -> ParsedID:
        scheme = self.scheme_of(identifier)
        if scheme in (TIME_BASED, SEQUENTIAL):
            match = self.patterns[scheme].match(identifier)
            category, yy, letter = match.group(1), match.group(2), match.group(3)
            return ParsedID(
                scheme=scheme,
                category=category,
                year=f"20{yy}",
                month=f"{ord(letter) - ord('A') + 1:02d}",
                sequence=int(match.group(4)) if scheme == SEQUENTIAL else None,
            )
        return ParsedID(scheme=scheme)

