from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from .errors import FiltersRequired
from .model import Contact

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FilterSettings:
    """Structured criteria from the filter panel. Empty values are inactive."""
    job: str | None = None
    country: str | None = None
    regions: frozenset[str] = field(default_factory=frozenset)
    is_housed: bool = False
    is_local_resident: bool = False
    has_vehicle: bool = False

    def __post_init__(self):
        # Accept any iterable of regions from callers.
        if not isinstance(self.regions, frozenset):
            object.__setattr__(self, "regions", frozenset(self.regions))

    @property
    def is_active(self) -> bool:
        return bool(
            self.job
            or self.country
            or self.regions
            or self.is_housed
            or self.is_local_resident
            or self.has_vehicle
        )


NO_FILTERS = FilterSettings()


def _matches_filters(c: Contact, f: FilterSettings) -> bool:
    if f.job and f.job not in c.job_titles:
        return False
    if f.country and not any(loc.country == f.country for loc in c.locations):
        return False
    if f.regions and not any(loc.region in f.regions for loc in c.locations):
        return False
    if f.is_housed and not any(loc.is_housed for loc in c.locations):
        return False
    if f.is_local_resident and not any(loc.is_local_resident for loc in c.locations):
        return False
    if f.has_vehicle and not any(loc.has_vehicle for loc in c.locations):
        return False
    return True


def _search_haystack(c: Contact) -> Iterable[str]:
    yield c.full_name
    yield from c.job_titles
    if c.phone:
        yield c.phone
    if c.email:
        yield c.email


def _matches_search(c: Contact, needle: str) -> bool:
    return any(needle in s.lower() for s in _search_haystack(c))


def has_active_criteria(filters: FilterSettings | None, search_text: str | None) -> bool:
    return bool((filters and filters.is_active) or (search_text and search_text.strip()))


def select_matching(
    contacts: Sequence[Contact],
    filters: FilterSettings | None = None,
    search_text: str | None = "",
) -> list[Contact]:
    """Contacts passing every active filter and the search text, in order.

    With no active criteria every contact is returned, which is what the
    contact list wants. Callers that must refuse an unfiltered selection
    check :func:`has_active_criteria` themselves.
    """
    f = filters or NO_FILTERS
    needle = (search_text or "").strip().lower()
    selected = [
        c for c in contacts
        if _matches_filters(c, f) and (not needle or _matches_search(c, needle))
    ]
    logger.debug("Selected %d of %d contact(s)", len(selected), len(contacts))
    return selected


def select_for_qr_batch(
    contacts: Sequence[Contact],
    filters: FilterSettings | None,
    search_text: str | None,
) -> list[Contact]:
    """Selection for multi-contact QR export; refuses the whole address book."""
    if not has_active_criteria(filters, search_text):
        raise FiltersRequired("multi-contact QR export requested without filter or search")
    return select_matching(contacts, filters, search_text)
