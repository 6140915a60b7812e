"""Pull reservation references out of transfer narratives.

Each payment provider gets a strategy. The reconciler asks the strategy for
candidate references and uses the first that resolves to a reservation.
"""

import re
from collections.abc import Callable
from typing import NamedTuple, Protocol

from homestay.config import BookingSettings


class ReservationReference(NamedTuple):
    """A reservation ID or lookup code found in a narrative."""

    reservation_id: int | None = None
    lookup_code: str | None = None


class ReferenceExtractor(Protocol):
    def extract(self, narrative: str) -> list[ReservationReference]: ...


class OrderCodeExtractor:
    """Matches ``<ORDER>-<id>-...`` at the start, then ``<CODE>-XXXXXX`` anywhere.

    Candidates come back in that order so a narrative carrying the full order
    code resolves by numeric ID first.
    """

    def __init__(self, order_prefix: str, lookup_code_prefix: str) -> None:
        self._order_re = re.compile(
            rf"^{re.escape(order_prefix.upper())}-(\d+)-", re.IGNORECASE
        )
        self._code_re = re.compile(
            rf"{re.escape(lookup_code_prefix.upper())}-[A-Z0-9]{{6}}", re.IGNORECASE
        )

    def extract(self, narrative: str) -> list[ReservationReference]:
        text = (narrative or "").strip()
        if not text:
            return []
        candidates = []
        order_match = self._order_re.match(text)
        if order_match:
            reservation_id = int(order_match.group(1))
            if reservation_id > 0:
                candidates.append(ReservationReference(reservation_id=reservation_id))
        code_match = self._code_re.search(text)
        if code_match:
            candidates.append(ReservationReference(lookup_code=code_match.group(0).upper()))
        return candidates


ExtractorFactory = Callable[[BookingSettings], ReferenceExtractor]


def _order_code_factory(settings: BookingSettings) -> ReferenceExtractor:
    return OrderCodeExtractor(settings.order_prefix, settings.lookup_code_prefix)


_EXTRACTORS: dict[str, ExtractorFactory] = {
    "sepay": _order_code_factory,
}


def register_extractor(provider: str, factory: ExtractorFactory) -> None:
    """Register (or replace) the extractor used for a provider."""
    _EXTRACTORS[provider.lower()] = factory


def get_extractor(provider: str, settings: BookingSettings) -> ReferenceExtractor:
    """Extractor for a provider; unknown providers use the order-code strategy."""
    factory = _EXTRACTORS.get(provider.lower(), _order_code_factory)
    return factory(settings)
