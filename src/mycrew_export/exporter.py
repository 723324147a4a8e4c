from __future__ import annotations

import csv
import io
import json
import logging
from datetime import UTC, datetime
from typing import Any

import vobject
from vobject.vcard import Address, Name

from .errors import UnsupportedDataShape
from .formatters import format_phone, infer_region
from .model import (
    KINDS,
    Contact,
    ExportSubject,
    Location,
    Many,
    Profile,
    Single,
    UserProfile,
    as_subject,
    validate_locations,
)

logger = logging.getLogger(__name__)

FORMAT_VERSION = "1.0.0"

# ── Record ↔ dict ──────────────────────────────────────────────────────────────
#
# Keys mirror the record model one for one. Optional fields that are absent on
# the record are left out of the dict entirely; an empty string is kept.

def location_to_dict(loc: Location) -> dict[str, Any]:
    d: dict[str, Any] = {"id": loc.id, "country": loc.country}
    if loc.region is not None:
        d["region"] = loc.region
    d["isPrimary"] = loc.is_primary
    d["isLocalResident"] = loc.is_local_resident
    d["hasVehicle"] = loc.has_vehicle
    d["isHoused"] = loc.is_housed
    return d


def contact_to_dict(c: Contact) -> dict[str, Any]:
    d: dict[str, Any] = {
        "id": c.id,
        "firstName": c.first_name,
        "lastName": c.last_name,
        "jobTitles": list(c.job_titles),
    }
    for key, value in (("phone", c.phone), ("email", c.email), ("notes", c.notes)):
        if value is not None:
            d[key] = value
    d["isFavorite"] = c.is_favorite
    d["locations"] = [location_to_dict(loc) for loc in c.locations]
    return d


def profile_to_dict(p: UserProfile) -> dict[str, Any]:
    d: dict[str, Any] = {"firstName": p.first_name, "lastName": p.last_name}
    for key, value in (("jobTitle", p.job_title), ("phoneNumber", p.phone_number), ("email", p.email)):
        if value is not None:
            d[key] = value
    d["locations"] = [location_to_dict(loc) for loc in p.locations]
    return d


def _str(data: dict, key: str, *, required: bool = False) -> str | None:
    value = data.get(key)
    if value is None:
        if required:
            raise UnsupportedDataShape(f"Missing field {key!r}")
        return None
    if not isinstance(value, str):
        raise UnsupportedDataShape(f"Field {key!r} must be a string, got {type(value).__name__}")
    return value


def _bool(data: dict, key: str) -> bool:
    value = data.get(key, False)
    if not isinstance(value, bool):
        raise UnsupportedDataShape(f"Field {key!r} must be a boolean")
    return value


def _list_of_dicts(data: dict, key: str) -> list[dict]:
    value = data.get(key, [])
    if not isinstance(value, list) or not all(isinstance(v, dict) for v in value):
        raise UnsupportedDataShape(f"Field {key!r} must be a list of objects")
    return value


def location_from_dict(data: dict) -> Location:
    loc = Location(
        country=_str(data, "country", required=True),
        region=_str(data, "region"),
        is_primary=_bool(data, "isPrimary"),
        is_local_resident=_bool(data, "isLocalResident"),
        has_vehicle=_bool(data, "hasVehicle"),
        is_housed=_bool(data, "isHoused"),
    )
    if "id" in data:
        loc.id = _str(data, "id", required=True)
    return loc


def contact_from_dict(data: dict) -> Contact:
    if not isinstance(data, dict):
        raise UnsupportedDataShape("A contact must be a JSON object")
    job_titles = data.get("jobTitles")
    if job_titles is not None and (
        not isinstance(job_titles, list) or not all(isinstance(j, str) for j in job_titles)
    ):
        raise UnsupportedDataShape("Field 'jobTitles' must be a list of strings")
    contact = Contact.from_legacy(
        job_title=_str(data, "jobTitle"),
        job_titles=job_titles,
        first_name=_str(data, "firstName") or "",
        last_name=_str(data, "lastName") or "",
        phone=_str(data, "phone"),
        email=_str(data, "email"),
        notes=_str(data, "notes"),
        is_favorite=_bool(data, "isFavorite"),
        locations=[location_from_dict(loc) for loc in _list_of_dicts(data, "locations")],
    )
    validate_locations(contact.locations)
    if "id" in data:
        contact.id = _str(data, "id", required=True)
    return contact


def profile_from_dict(data: dict) -> UserProfile:
    if not isinstance(data, dict):
        raise UnsupportedDataShape("A profile must be a JSON object")
    return UserProfile(
        first_name=_str(data, "firstName") or "",
        last_name=_str(data, "lastName") or "",
        job_title=_str(data, "jobTitle"),
        phone_number=_str(data, "phoneNumber"),
        email=_str(data, "email"),
        locations=[location_from_dict(loc) for loc in _list_of_dicts(data, "locations")],
    )


# ── JSON ───────────────────────────────────────────────────────────────────────

def to_json(records, kind: str | None = None, *, exported_at: datetime | None = None) -> str:
    subject = as_subject(records, kind)
    match subject:
        case Single(contact=c):
            data: Any = contact_to_dict(c)
        case Profile(profile=p):
            data = profile_to_dict(p)
        case Many(contacts=cs):
            data = [contact_to_dict(c) for c in cs]
    envelope = {
        "version": FORMAT_VERSION,
        "exportDate": (exported_at or datetime.now(UTC)).isoformat(timespec="seconds"),
        "type": subject.kind,
        "data": data,
    }
    logger.debug("JSON export: %s, %d record(s)", subject.kind, len(subject.records))
    return json.dumps(envelope, indent=2, ensure_ascii=False)


def parse_json(text: str) -> ExportSubject:
    """Read a document written by :func:`to_json` back into an ExportSubject."""
    try:
        doc = json.loads(text)
    except (ValueError, RecursionError) as exc:
        raise UnsupportedDataShape(f"Not a JSON document: {exc}") from exc
    if not isinstance(doc, dict) or doc.get("type") not in KINDS or "data" not in doc:
        raise UnsupportedDataShape("Not a MyCrew export document")

    data = doc["data"]
    kind = doc["type"]
    if kind == "contact":
        return Single(contact_from_dict(data))
    if kind == "profile":
        return Profile(profile_from_dict(data))
    if not isinstance(data, list):
        raise UnsupportedDataShape("A 'contacts' document must hold a list")
    return Many(tuple(contact_from_dict(d) for d in data))


# ── CSV ────────────────────────────────────────────────────────────────────────

# Spreadsheet consumers rely on this order, not on the header text.
CSV_COLUMNS = [
    "First Name",
    "Last Name",
    "Jobs",
    "Phone",
    "Email",
    "Country",
    "Region",
    "Local Resident",
    "Vehicle",
    "Housed",
    "Other Locations Count",
    "Other Locations",
    "Notes",
]

JOB_DELIMITER = "; "


def _yes_no(value: bool) -> str:
    return "Yes" if value else "No"


def _csv_row(record: Contact | UserProfile) -> list[str]:
    primary = record.primary_location
    others = record.secondary_locations
    return [
        record.first_name,
        record.last_name,
        JOB_DELIMITER.join(record.job_titles),
        record.phone or "",
        record.email or "",
        primary.country if primary else "",
        (primary.region or "") if primary else "",
        _yes_no(primary.is_local_resident) if primary else "",
        _yes_no(primary.has_vehicle) if primary else "",
        _yes_no(primary.is_housed) if primary else "",
        str(len(others)),
        JOB_DELIMITER.join(loc.label for loc in others),
        record.notes or "",
    ]


def to_csv(records) -> str:
    """One header row, then one row per record. RFC 4180 quoting, bare newline line ends."""
    subject = as_subject(records)
    buf = io.StringIO()
    w = csv.writer(buf, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    w.writerow(CSV_COLUMNS)
    for record in subject.records:
        w.writerow(_csv_row(record))
    return buf.getvalue()


# ── Text ───────────────────────────────────────────────────────────────────────

def _attributes(loc: Location) -> list[str]:
    attrs = []
    if loc.is_local_resident:
        attrs.append("Local resident")
    if loc.has_vehicle:
        attrs.append("Vehicle")
    if loc.is_housed:
        attrs.append("Housed")
    return attrs


def _text_block(record: Contact | UserProfile, default_region: str | None) -> str:
    lines = [f"Name: {record.full_name or 'Unnamed'}"]
    jobs = record.job_titles
    if jobs:
        lines.append(f"{'Jobs' if len(jobs) > 1 else 'Job'}: {', '.join(jobs)}")
    if record.phone:
        region = infer_region(record.locations, default_region)
        lines.append(f"Phone: {format_phone(record.phone, region)}")
    if record.email:
        lines.append(f"Email: {record.email}")
    primary = record.primary_location
    if primary:
        lines.append(f"Location: {primary.label}")
        attrs = _attributes(primary)
        if attrs:
            lines.append(f"Attributes: {', '.join(attrs)}")
    others = record.secondary_locations
    if others:
        lines.append(f"Other locations: {'; '.join(loc.label for loc in others)}")
    if record.notes:
        first, *rest = record.notes.splitlines() or [""]
        lines.append(f"Notes: {first}")
        lines.extend(f"       {line}" for line in rest)
    return "\n".join(lines)


def to_text(records, *, default_region: str | None = None) -> str:
    subject = as_subject(records)
    blocks = [_text_block(r, default_region) for r in subject.records]
    return "\n\n".join(blocks) + "\n" if blocks else ""


# ── vCard ──────────────────────────────────────────────────────────────────────

def _vcard(record: Contact | UserProfile, target_version: str) -> str:
    v = vobject.vCard()
    v.add('version'); v.version.value = target_version
    v.add('fn'); v.fn.value = record.full_name or "Unnamed"
    v.add('n'); v.n.value = Name(family=record.last_name, given=record.first_name)
    for job in record.job_titles:
        it = v.add('title'); it.value = job
    if record.phone:
        it = v.add('tel'); it.value = record.phone
    if record.email:
        it = v.add('email'); it.value = record.email
    if record.notes:
        it = v.add('note'); it.value = record.notes
    primary = record.primary_location
    for loc in record.locations:
        it = v.add('adr')
        it.value = Address(region=loc.region or "", country=loc.country)
        if loc is primary:
            it.pref_param = '1'
    if isinstance(record, Contact):
        it = v.add('uid'); it.value = record.id
    it = v.add('prodid'); it.value = "-//mycrew-export//EN"
    it = v.add('rev'); it.value = datetime.now(UTC).strftime("%Y-%m-%dT%H:%M:%SZ")
    return v.serialize()


def to_vcard(records, target_version: str = "4.0") -> str:
    subject = as_subject(records)
    logger.debug("vCard %s export: %d card(s)", target_version, len(subject.records))
    return "".join(_vcard(r, target_version) for r in subject.records)
