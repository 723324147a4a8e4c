from __future__ import annotations

import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field

from .errors import UnsupportedDataShape
from .normalize import normalize_job_titles


def _new_id() -> str:
    return uuid.uuid4().hex


def full_name(first_name: str | None, last_name: str | None) -> str:
    """Join first and last name, collapsing empty parts."""
    return " ".join(p.strip() for p in (first_name, last_name) if p and p.strip())


@dataclass
class Location:
    country: str
    region: str | None = None
    is_primary: bool = False
    is_local_resident: bool = False
    has_vehicle: bool = False
    is_housed: bool = False
    id: str = field(default_factory=_new_id)

    @property
    def label(self) -> str:
        return f"{self.region}, {self.country}" if self.region else self.country


def primary_location(locations: Sequence[Location]) -> Location | None:
    """Flagged primary, else the first entry. Read-time only, never stored."""
    for loc in locations:
        if loc.is_primary:
            return loc
    return locations[0] if locations else None


def secondary_locations(locations: Sequence[Location]) -> list[Location]:
    primary = primary_location(locations)
    return [loc for loc in locations if loc is not primary]


def validate_locations(locations: Sequence[Location]) -> None:
    flagged = sum(1 for loc in locations if loc.is_primary)
    if flagged > 1:
        raise UnsupportedDataShape(f"{flagged} locations marked primary, at most one allowed")


class _HasLocations:
    locations: list[Location]

    @property
    def primary_location(self) -> Location | None:
        return primary_location(self.locations)

    @property
    def secondary_locations(self) -> list[Location]:
        return secondary_locations(self.locations)


@dataclass
class Contact(_HasLocations):
    first_name: str
    last_name: str
    job_titles: list[str] = field(default_factory=list)
    phone: str | None = None
    email: str | None = None
    notes: str | None = None
    is_favorite: bool = False
    locations: list[Location] = field(default_factory=list)
    id: str = field(default_factory=_new_id)

    @property
    def full_name(self) -> str:
        return full_name(self.first_name, self.last_name)

    @classmethod
    def from_legacy(cls, *, job_title: str | None = None, **kwargs) -> Contact:
        """Build a contact from a record still carrying the single jobTitle field."""
        kwargs["job_titles"] = normalize_job_titles(kwargs.get("job_titles"), job_title)
        return cls(**kwargs)


@dataclass
class UserProfile(_HasLocations):
    first_name: str
    last_name: str
    job_title: str | None = None
    phone_number: str | None = None
    email: str | None = None
    locations: list[Location] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return full_name(self.first_name, self.last_name)

    # Contact-shaped views so serializers can treat both records alike.
    @property
    def job_titles(self) -> list[str]:
        return [self.job_title] if self.job_title else []

    @property
    def phone(self) -> str | None:
        return self.phone_number

    @property
    def notes(self) -> None:
        return None


# ── Export subject ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Single:
    contact: Contact
    kind = "contact"

    @property
    def records(self) -> list[Contact]:
        return [self.contact]


@dataclass(frozen=True)
class Profile:
    profile: UserProfile
    kind = "profile"

    @property
    def records(self) -> list[UserProfile]:
        return [self.profile]


@dataclass(frozen=True)
class Many:
    contacts: tuple[Contact, ...]
    kind = "contacts"

    @property
    def records(self) -> list[Contact]:
        return list(self.contacts)


ExportSubject = Single | Profile | Many

KINDS = ("contact", "profile", "contacts")


def as_subject(records, kind: str | None = None) -> ExportSubject:
    """Wrap a record, a profile, or a sequence of contacts in an ExportSubject.

    When ``kind`` is given the data must agree with it: ``"contact"`` accepts a
    contact or a one-element sequence, ``"contacts"`` any sequence of contacts.
    """
    if kind is not None and kind not in KINDS:
        raise UnsupportedDataShape(f"Unknown export kind: {kind!r}")

    if isinstance(records, (Single, Profile, Many)):
        subject = records
    elif isinstance(records, Contact):
        subject = Many((records,)) if kind == "contacts" else Single(records)
    elif isinstance(records, UserProfile):
        subject = Profile(records)
    elif isinstance(records, Sequence) and not isinstance(records, (str, bytes)):
        items = tuple(records)
        if not all(isinstance(r, Contact) for r in items):
            raise UnsupportedDataShape("Collections may only contain contacts")
        if kind == "contact":
            if len(items) != 1:
                raise UnsupportedDataShape(f"Kind 'contact' needs exactly one record, got {len(items)}")
            subject = Single(items[0])
        else:
            subject = Many(items)
    else:
        raise UnsupportedDataShape(f"Cannot export {type(records).__name__}")

    if kind is not None and subject.kind != kind:
        raise UnsupportedDataShape(f"Kind {kind!r} does not match {subject.kind!r} data")
    return subject
