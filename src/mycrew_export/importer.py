"""importer.py: read JSON, CSV and vCard exports back into an address book.

Each file is converted to contacts first, then merged one by one. A contact
that :func:`find_duplicate` already finds in the book is counted, not added;
a row or card without any name is skipped.
"""
from __future__ import annotations

import csv
import io
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

import vobject

from .dedupe import find_duplicate
from .errors import ExportIOFailed, UnsupportedDataShape
from .exporter import CSV_COLUMNS, JOB_DELIMITER
from .io import AddressBook, book_from_document
from .model import Contact, Location, _new_id

logger = logging.getLogger(__name__)

_SUFFIXES = {".json": "json", ".csv": "csv", ".vcf": "vcard", ".vcard": "vcard"}


@dataclass
class ImportResult:
    imported: list[Contact] = field(default_factory=list)
    duplicates: int = 0
    skipped: int = 0

    @property
    def success(self) -> bool:
        return bool(self.imported)


def detect_format(filename: str, content: str) -> str:
    """File extension first, then a look at the content."""
    fmt = _SUFFIXES.get(Path(filename).suffix.lower())
    if fmt:
        return fmt
    head = content.lstrip("\ufeff \t\r\n")
    if head.startswith(("{", "[")):
        return "json"
    if "BEGIN:VCARD" in content.upper():
        return "vcard"
    if "," in head.partition("\n")[0]:
        return "csv"
    raise UnsupportedDataShape(f"{filename}: unknown import format")


# ── JSON ───────────────────────────────────────────────────────────────────────

def contacts_from_json(text: str) -> list[Contact]:
    try:
        doc = json.loads(text)
    except (ValueError, RecursionError) as exc:
        raise UnsupportedDataShape(f"Not a JSON document: {exc}") from exc
    contacts, profile = book_from_document(doc)
    if profile is not None:
        logger.info("Ignoring profile %s in import, only contacts are merged", profile.full_name)
    return contacts


# ── CSV ────────────────────────────────────────────────────────────────────────

def _split(value: str | None) -> list[str]:
    return [part.strip() for part in (value or "").split(JOB_DELIMITER.strip()) if part.strip()]


def _location_from_label(label: str) -> Location:
    region, sep, country = label.rpartition(", ")
    return Location(country=country, region=region if sep else None)


def _contact_from_row(row: dict[str, str]) -> Contact:
    locations = []
    country = (row.get("Country") or "").strip()
    if country:
        locations.append(Location(
            country=country,
            region=(row.get("Region") or "").strip() or None,
            is_local_resident=row.get("Local Resident") == "Yes",
            has_vehicle=row.get("Vehicle") == "Yes",
            is_housed=row.get("Housed") == "Yes",
        ))
    locations.extend(_location_from_label(label) for label in _split(row.get("Other Locations")))
    return Contact(
        first_name=(row.get("First Name") or "").strip(),
        last_name=(row.get("Last Name") or "").strip(),
        job_titles=_split(row.get("Jobs")),
        phone=row.get("Phone") or None,
        email=row.get("Email") or None,
        notes=row.get("Notes") or None,
        locations=locations,
    )


def contacts_from_csv(text: str) -> list[Contact]:
    """Rows of a file written by ``to_csv``; columns are matched by header."""
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff"), newline=""))
    header = reader.fieldnames or []
    missing = [col for col in CSV_COLUMNS[:2] if col not in header]
    if missing:
        raise UnsupportedDataShape(f"CSV header lacks {', '.join(missing)}")
    unknown = [col for col in header if col not in CSV_COLUMNS]
    if unknown:
        logger.debug("Ignoring CSV column(s) %s", ", ".join(unknown))
    try:
        return [_contact_from_row(row) for row in reader]
    except csv.Error as exc:
        raise UnsupportedDataShape(f"CSV line {reader.line_num}: {exc}") from exc


# ── vCard ──────────────────────────────────────────────────────────────────────

def _text(value) -> str:
    if isinstance(value, (list, tuple)):
        return " ".join(str(v) for v in value if v).strip()
    return str(value or "").strip()


def _first(vc, name: str) -> str | None:
    for line in getattr(vc, f"{name}_list", []):
        value = _text(line.value)
        if value:
            return value
    return None


def _is_pref(line) -> bool:
    if "PREF" in line.params:
        return True
    return any(t.lower() == "pref" for t in line.params.get("TYPE", []))


def _contact_from_vcard(vc) -> Contact:
    first = last = ""
    if getattr(vc, "n", None) is not None:
        first, last = _text(vc.n.value.given), _text(vc.n.value.family)
    if not first and not last:
        first, _, last = (_first(vc, "fn") or "").partition(" ")

    locations = []
    has_primary = False
    for adr in getattr(vc, "adr_list", []):
        country = _text(adr.value.country)
        if not country:
            continue
        primary = not has_primary and _is_pref(adr)
        has_primary = has_primary or primary
        locations.append(Location(
            country=country, region=_text(adr.value.region) or None, is_primary=primary,
        ))

    return Contact(
        first_name=first.strip(),
        last_name=last.strip(),
        job_titles=[_text(t.value) for t in getattr(vc, "title_list", []) if _text(t.value)],
        phone=_first(vc, "tel"),
        email=_first(vc, "email"),
        notes=_first(vc, "note"),
        locations=locations,
    )


def contacts_from_vcard(text: str) -> list[Contact]:
    try:
        cards = [
            vc for vc in vobject.readComponents(text, ignoreUnreadable=True)
            if vc.name.upper() == "VCARD"
        ]
    except vobject.base.ParseError as exc:
        raise UnsupportedDataShape(f"Not a readable vCard file: {exc}") from exc
    return [_contact_from_vcard(vc) for vc in cards]


# ── Merge ──────────────────────────────────────────────────────────────────────

_READERS = {
    "json": contacts_from_json,
    "csv": contacts_from_csv,
    "vcard": contacts_from_vcard,
}


def import_text(book: AddressBook, text: str, fmt: str) -> ImportResult:
    if fmt not in _READERS:
        raise UnsupportedDataShape(f"Unknown import format: {fmt!r}")
    result = ImportResult()
    for contact in _READERS[fmt](text):
        if not contact.full_name:
            result.skipped += 1
            continue
        if find_duplicate(contact, book.list_contacts()) is not None:
            result.duplicates += 1
            continue
        if book.get_contact(contact.id) is not None:
            contact.id = _new_id()
        book.add_contact(contact)
        result.imported.append(contact)
    logger.info(
        "Imported %d contact(s) from %s, %d duplicate(s), %d skipped",
        len(result.imported), fmt, result.duplicates, result.skipped,
    )
    return result


def import_file(book: AddressBook, path: Path) -> ImportResult:
    try:
        text = path.read_text(encoding="utf-8-sig")
    except UnicodeDecodeError as exc:
        raise UnsupportedDataShape(f"{path}: not UTF-8 text") from exc
    except OSError as exc:
        raise ExportIOFailed(f"{path}: {exc}") from exc
    return import_text(book, text, detect_format(path.name, text))
