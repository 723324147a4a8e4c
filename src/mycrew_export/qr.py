"""qr.py: compact QR interchange for contacts and the user profile.

A payload is single-line minified JSON. One entity encodes to an object:

    {"firstName":"Ana","lastName":"Roux","jobTitles":["Cadreur.se"],
     "phone":"+33 6 12 34 56 78","email":"ana@example.com",
     "locations":[{"country":"France","region":"Bretagne","isPrimary":true,
                   "isLocalResident":false,"hasVehicle":true,"isHoused":false}]}

A batch payload is a JSON array of such objects. Profiles carry
``phoneNumber`` instead of ``phone``. Absent optional fields are left out.

Payloads must stay under :data:`QR_BUDGET` characters to scan reliably,
and under :data:`QR_BYTE_CEILING` UTF-8 bytes to fit in a symbol at all.
Accented text counts twice against the second limit. An entity that does not
fit sheds data in a fixed order: notes, the boolean attributes of every
non-primary location, the non-primary locations themselves, and as a last
resort the boolean attributes of the primary location.
:class:`QRPayloadTooLarge` is raised only when nothing is left to shed.
"""
from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import qrcode
from qrcode.exceptions import DataOverflowError

from .errors import QRDecodeFailed, QRPayloadTooLarge, UnsupportedDataShape
from .model import Contact, Location, UserProfile, full_name, primary_location
from .normalize import normalize_job_titles

logger = logging.getLogger(__name__)

QR_BUDGET = 2000

# Byte-mode capacity of the largest symbol (version 40) at error correction L.
QR_BYTE_CEILING = 2953

_BOOL_KEYS = ("isLocalResident", "hasVehicle", "isHoused")


def _dumps(obj: Any) -> str:
    return json.dumps(obj, ensure_ascii=False, separators=(",", ":"))


# ── Encoding ───────────────────────────────────────────────────────────────────

def _location_payload(loc: Location) -> dict[str, Any]:
    d: dict[str, Any] = {"country": loc.country}
    if loc.region is not None:
        d["region"] = loc.region
    d["isPrimary"] = loc.is_primary
    d["isLocalResident"] = loc.is_local_resident
    d["hasVehicle"] = loc.has_vehicle
    d["isHoused"] = loc.is_housed
    return d


def _entity_payload(entity: Contact | UserProfile) -> dict[str, Any]:
    if isinstance(entity, Contact):
        phone_field = "phone"
    elif isinstance(entity, UserProfile):
        phone_field = "phoneNumber"
    else:
        raise UnsupportedDataShape(f"Cannot encode {type(entity).__name__} for QR")

    d: dict[str, Any] = {
        "firstName": entity.first_name,
        "lastName": entity.last_name,
        "jobTitles": list(entity.job_titles),
    }
    for key, value in ((phone_field, entity.phone), ("email", entity.email), ("notes", entity.notes)):
        if value is not None:
            d[key] = value
    d["locations"] = [_location_payload(loc) for loc in entity.locations]
    return d


def _without_bools(loc: dict[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in loc.items() if k not in _BOOL_KEYS}


def _reductions(entity: Contact | UserProfile, payload: dict[str, Any]):
    """Yield ever smaller variants of ``payload``, in shedding order."""
    if "notes" in payload:
        payload = {k: v for k, v in payload.items() if k != "notes"}
        yield "notes", payload

    primary = primary_location(entity.locations)
    if len(entity.locations) > 1:
        payload = {
            **payload,
            "locations": [
                _location_payload(loc) if loc is primary else _without_bools(_location_payload(loc))
                for loc in entity.locations
            ],
        }
        yield "secondary location attributes", payload

        payload = {**payload, "locations": [_location_payload(primary)]}
        yield "secondary locations", payload

    if payload["locations"]:
        payload = {**payload, "locations": [_without_bools(loc) for loc in payload["locations"]]}
        yield "primary location attributes", payload


def _fits(encoded: str, budget: int, overhead: int) -> bool:
    return (
        len(encoded) + overhead <= budget
        and len(encoded.encode("utf-8")) + overhead <= QR_BYTE_CEILING
    )


def _fit(entity: Contact | UserProfile, budget: int, overhead: int = 0) -> str:
    """Encode one entity so that it plus ``overhead`` stays within ``budget``."""
    payload = _entity_payload(entity)
    encoded = _dumps(payload)
    if _fits(encoded, budget, overhead):
        return encoded

    dropped: list[str] = []
    for what, reduced in _reductions(entity, payload):
        dropped.append(what)
        encoded = _dumps(reduced)
        if _fits(encoded, budget, overhead):
            logger.warning(
                "QR payload for %s over budget, dropped %s", entity.full_name, ", ".join(dropped)
            )
            return encoded

    raise QRPayloadTooLarge(
        f"{entity.full_name}: {len(encoded) + overhead} characters "
        f"({len(encoded.encode('utf-8')) + overhead} bytes) after dropping optional fields, "
        f"budget is {budget} characters and {QR_BYTE_CEILING} bytes"
    )


def encode_for_qr(entity: Contact | UserProfile, budget: int = QR_BUDGET) -> str:
    """Single contact or profile as one compact QR payload."""
    return _fit(entity, budget)


def encode_batch_for_qr(contacts: Sequence[Contact], budget: int = QR_BUDGET) -> list[str]:
    """Split ``contacts`` into JSON-array payloads, none longer than ``budget``.

    Contacts keep their collection order and fill each payload greedily
    before the next one is opened. Every payload also stays under
    :data:`QR_BYTE_CEILING` UTF-8 bytes.
    """
    payloads: list[str] = []
    current: list[str] = []
    chars = nbytes = 2  # "[" + "]"

    for contact in contacts:
        item = _fit(contact, budget, overhead=2)
        sep = 1 if current else 0
        item_bytes = len(item.encode("utf-8"))
        if current and (
            chars + sep + len(item) > budget or nbytes + sep + item_bytes > QR_BYTE_CEILING
        ):
            payloads.append("[" + ",".join(current) + "]")
            current, chars, nbytes, sep = [], 2, 2, 0
        current.append(item)
        chars += sep + len(item)
        nbytes += sep + item_bytes

    if current:
        payloads.append("[" + ",".join(current) + "]")
    logger.debug("Encoded %d contact(s) into %d QR payload(s)", len(contacts), len(payloads))
    return payloads


# ── Decoding ───────────────────────────────────────────────────────────────────

@dataclass
class ParsedContact:
    """A contact read from a scanned payload, not yet stored anywhere."""
    first_name: str
    last_name: str
    job_titles: list[str] = field(default_factory=list)
    phone: str | None = None
    email: str | None = None
    notes: str | None = None
    locations: list[Location] = field(default_factory=list)

    @property
    def full_name(self) -> str:
        return full_name(self.first_name, self.last_name)

    @property
    def job(self) -> str | None:
        return self.job_titles[0] if self.job_titles else None

    @property
    def primary_location(self) -> Location | None:
        return primary_location(self.locations)

    def to_contact(self) -> Contact:
        """New Contact with fresh ids, for the add-from-scan flow."""
        return Contact(
            first_name=self.first_name,
            last_name=self.last_name,
            job_titles=list(self.job_titles),
            phone=self.phone,
            email=self.email,
            notes=self.notes,
            locations=[
                Location(
                    country=loc.country,
                    region=loc.region,
                    is_primary=loc.is_primary,
                    is_local_resident=loc.is_local_resident,
                    has_vehicle=loc.has_vehicle,
                    is_housed=loc.is_housed,
                )
                for loc in self.locations
            ],
        )


def _opt_str(obj: dict, *keys: str) -> str | None:
    for key in keys:
        if key in obj and obj[key] is not None:
            value = obj[key]
            if not isinstance(value, str):
                raise QRDecodeFailed(f"{key!r} is not a string")
            return value
    return None


def _opt_bool(obj: dict, key: str) -> bool:
    value = obj.get(key, False)
    if not isinstance(value, bool):
        raise QRDecodeFailed(f"{key!r} is not a boolean")
    return value


def _parse_location(obj: Any) -> Location:
    if not isinstance(obj, dict):
        raise QRDecodeFailed("location is not an object")
    country = _opt_str(obj, "country")
    if not country:
        raise QRDecodeFailed("location without a country")
    return Location(
        country=country,
        region=_opt_str(obj, "region"),
        is_primary=_opt_bool(obj, "isPrimary"),
        is_local_resident=_opt_bool(obj, "isLocalResident"),
        has_vehicle=_opt_bool(obj, "hasVehicle"),
        is_housed=_opt_bool(obj, "isHoused"),
    )


def _parse_entity(obj: Any) -> ParsedContact:
    if not isinstance(obj, dict):
        raise QRDecodeFailed("payload is not a JSON object")
    first = _opt_str(obj, "firstName") or ""
    last = _opt_str(obj, "lastName") or ""
    if not first.strip() and not last.strip():
        raise QRDecodeFailed("payload has neither firstName nor lastName")

    job_titles = obj.get("jobTitles")
    if job_titles is not None and (
        not isinstance(job_titles, list) or not all(isinstance(j, str) for j in job_titles)
    ):
        raise QRDecodeFailed("'jobTitles' is not a list of strings")

    locations = obj.get("locations", [])
    if not isinstance(locations, list):
        raise QRDecodeFailed("'locations' is not a list")
    parsed_locations = [_parse_location(loc) for loc in locations]
    if sum(1 for loc in parsed_locations if loc.is_primary) > 1:
        raise QRDecodeFailed("more than one primary location")

    return ParsedContact(
        first_name=first,
        last_name=last,
        job_titles=normalize_job_titles(job_titles, _opt_str(obj, "jobTitle")),
        phone=_opt_str(obj, "phone", "phoneNumber"),
        email=_opt_str(obj, "email"),
        notes=_opt_str(obj, "notes"),
        locations=parsed_locations,
    )


def _loads(raw: Any) -> Any:
    if not isinstance(raw, str):
        raise QRDecodeFailed(f"scanned data is {type(raw).__name__}, not text")
    try:
        return json.loads(raw)
    except (ValueError, RecursionError) as exc:
        raise QRDecodeFailed(f"not JSON: {exc}") from exc


def parse_qr_payload(raw: str) -> ParsedContact:
    """Parse a single-entity payload. Raises QRDecodeFailed, never guesses."""
    return _parse_entity(_loads(raw))


def parse_qr_batch(raw: str) -> list[ParsedContact]:
    """Parse a batch payload. One bad element rejects the whole payload."""
    data = _loads(raw)
    if not isinstance(data, list):
        raise QRDecodeFailed("batch payload is not a JSON array")
    if not data:
        raise QRDecodeFailed("batch payload is empty")
    return [_parse_entity(item) for item in data]


def parse_any(raw: str) -> list[ParsedContact]:
    """Parse either payload shape into a list of contacts."""
    data = _loads(raw)
    if isinstance(data, list):
        return parse_qr_batch(raw)
    return [_parse_entity(data)]


def decode_from_qr(raw: str) -> ParsedContact | None:
    try:
        return parse_qr_payload(raw)
    except QRDecodeFailed as exc:
        logger.warning("Rejected scanned QR payload: %s", exc)
        return None


def decode_batch_from_qr(raw: str) -> list[ParsedContact] | None:
    try:
        return parse_qr_batch(raw)
    except QRDecodeFailed as exc:
        logger.warning("Rejected scanned QR batch: %s", exc)
        return None


# ── Rendering ──────────────────────────────────────────────────────────────────

def render_qr_png(payload: str, path: Path, box_size: int = 8, border: int = 4) -> Path:
    """Write ``payload`` to ``path`` as a PNG QR code.

    Raises QRPayloadTooLarge when the payload does not fit the largest symbol.
    """
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=box_size,
        border=border,
    )
    qr.add_data(payload)
    try:
        qr.make(fit=True)
    except (DataOverflowError, ValueError) as exc:
        raise QRPayloadTooLarge(
            f"{len(payload.encode('utf-8'))} bytes do not fit a QR symbol: {exc}"
        ) from exc
    img = qr.make_image(fill_color="black", back_color="white")
    path.parent.mkdir(parents=True, exist_ok=True)
    img.save(path)
    return path
