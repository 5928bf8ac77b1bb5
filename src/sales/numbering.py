"""Document numbering — ``{PREFIX}-{YYYYMM}-{sequence:04d}`` identifiers.

Numbers restart at 0001 every month for each prefix (``CMD`` for orders,
``FACT`` for invoices). Allocation is optimistic: propose the next sequence
after the highest one already used, re-check it against the known numbers,
and step forward on collision. After ``max_attempts`` collisions a
millisecond-timestamp suffix is used instead, so allocation always ends.
"""

import re
import threading
from collections.abc import Collection
from datetime import UTC, datetime

import structlog

from sales.config import settings

logger = structlog.get_logger(__name__)


def period_of(now: datetime) -> str:
    """The ``YYYYMM`` key numbers are sequenced under."""
    return now.strftime("%Y%m")


def highest_sequence(prefix: str, period: str, existing_numbers: Collection[str]) -> int:
    """Highest sequence already used for ``prefix`` in ``period`` (0 if none).

    Fallback numbers carry a timestamp rather than a sequence and are ignored.
    """
    pattern = re.compile(rf"^{re.escape(prefix)}-{period}-(\d{{4,}})$")
    highest = 0
    for number in existing_numbers:
        match = pattern.match(number or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return highest


def generate_document_number(
    prefix: str,
    existing_numbers: Collection[str],
    now: datetime | None = None,
    max_attempts: int | None = None,
) -> str:
    """Propose the next free document number for the current month.

    Args:
        prefix: Document type prefix, e.g. ``"CMD"`` or ``"FACT"``.
        existing_numbers: Numbers already assigned. Membership is re-checked on
            every attempt, so a live view (a set another worker adds to) works.
        now: Clock reading used for the month and the fallback suffix.
        max_attempts: Sequential candidates to try before falling back.
    """
    now = now or datetime.now(UTC)
    max_attempts = max_attempts or settings.numbering_max_attempts
    period = period_of(now)

    sequence = highest_sequence(prefix, period, existing_numbers) + 1
    for _ in range(max_attempts):
        candidate = f"{prefix}-{period}-{sequence:04d}"
        if candidate not in existing_numbers:
            return candidate
        sequence += 1

    suffix = int(now.timestamp() * 1000)
    candidate = f"{prefix}-{period}-T{suffix}"
    while candidate in existing_numbers:
        suffix += 1
        candidate = f"{prefix}-{period}-T{suffix}"

    logger.warning(
        "Document numbering fell back to timestamp suffix",
        prefix=prefix,
        period=period,
        number=candidate,
    )
    return candidate


class DocumentNumberAllocator:
    """Hands out unique numbers for one prefix within a process.

    Numbers given out are remembered until their month has passed, so two
    callers racing to create documents never receive the same number even
    before either document is persisted.
    """

    def __init__(self, prefix: str):
        self.prefix = prefix
        self._lock = threading.Lock()
        self._issued: set[str] = set()

    def allocate(self, existing_numbers: Collection[str] = (), now: datetime | None = None) -> str:
        now = now or datetime.now(UTC)
        period = period_of(now)

        with self._lock:
            current = f"{self.prefix}-{period}-"
            self._issued = {number for number in self._issued if number.startswith(current)}

            known = self._issued.union(existing_numbers)
            number = generate_document_number(self.prefix, known, now=now)
            self._issued.add(number)

        logger.debug("Allocated document number", prefix=self.prefix, number=number)
        return number

    def reset(self) -> None:
        """Forget numbers handed out so far (useful for testing)."""
        with self._lock:
            self._issued.clear()


order_numbers = DocumentNumberAllocator(settings.order_number_prefix)
invoice_numbers = DocumentNumberAllocator(settings.invoice_number_prefix)
