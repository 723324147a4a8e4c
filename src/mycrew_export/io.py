from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path

from .errors import ExportIOFailed, UnsupportedDataShape
from .exporter import contact_from_dict, contact_to_dict, profile_from_dict, profile_to_dict
from .model import Contact, UserProfile

logger = logging.getLogger(__name__)

# ── Address book file ──────────────────────────────────────────────────────────
#
# The CLI keeps its records in one JSON file:
#
#   {"profile": {...} | null, "contacts": [{...}, ...]}
#
# Export documents written by exporter.to_json are accepted too, so an export
# can be opened straight away as an address book.

@dataclass
class AddressBook:
    """In-memory store over a JSON file; serves as ContactStore and ProfileStore."""
    contacts: list[Contact] = field(default_factory=list)
    profile: UserProfile | None = None
    path: Path | None = None

    def get_contact(self, contact_id: str) -> Contact | None:
        return next((c for c in self.contacts if c.id == contact_id), None)

    def list_contacts(self) -> list[Contact]:
        return list(self.contacts)

    def get_profile(self) -> UserProfile | None:
        return self.profile

    def add_contact(self, contact: Contact) -> None:
        self.contacts.append(contact)

    def save(self, path: Path | None = None) -> Path:
        target = path or self.path
        if target is None:
            raise ValueError("AddressBook has no path to save to")
        doc = {
            "profile": profile_to_dict(self.profile) if self.profile else None,
            "contacts": [contact_to_dict(c) for c in self.contacts],
        }
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(json.dumps(doc, indent=2, ensure_ascii=False), encoding="utf-8")
        except OSError as exc:
            raise ExportIOFailed(f"{target}: {exc}") from exc
        return target


def book_from_document(doc: object) -> tuple[list[Contact], UserProfile | None]:
    """Contacts and profile from a parsed address book or export document."""
    if isinstance(doc, list):
        return [contact_from_dict(d) for d in doc], None
    if not isinstance(doc, dict):
        raise UnsupportedDataShape("Address book must be a JSON object or list")

    kind = doc.get("type")
    if kind == "contacts":
        return [contact_from_dict(d) for d in doc.get("data") or []], None
    if kind == "contact":
        return [contact_from_dict(doc.get("data"))], None
    if kind == "profile":
        return [], profile_from_dict(doc.get("data"))

    contacts = doc.get("contacts") or []
    if not isinstance(contacts, list):
        raise UnsupportedDataShape("'contacts' must be a list")
    profile = doc.get("profile")
    return (
        [contact_from_dict(d) for d in contacts],
        profile_from_dict(profile) if profile else None,
    )


def load_address_book(path: Path) -> AddressBook:
    """Read an address book file; a missing file is an empty book."""
    if not path.exists():
        logger.info("No address book at %s, starting empty", path)
        return AddressBook(path=path)
    try:
        doc = json.loads(path.read_text(encoding="utf-8"))
    except ValueError as exc:
        raise UnsupportedDataShape(f"{path}: not valid JSON ({exc})") from exc
    contacts, profile = book_from_document(doc)
    logger.debug("%s: %d contact(s), profile %s", path, len(contacts), "yes" if profile else "no")
    return AddressBook(contacts=contacts, profile=profile, path=path)


# ── Save/share ─────────────────────────────────────────────────────────────────

class FileSharer:
    """Sharer that saves each export into ``out_dir``."""

    def __init__(self, out_dir: Path):
        self.out_dir = out_dir
        self.written: list[Path] = []

    def exists(self, filename: str) -> bool:
        return (self.out_dir / filename).exists()

    def share(self, content: str, filename: str, mime_type: str) -> None:
        self.out_dir.mkdir(parents=True, exist_ok=True)
        path = self.out_dir / filename
        # Spreadsheet tools only detect UTF-8 CSV with a BOM.
        encoding = "utf-8-sig" if mime_type == "text/csv" else "utf-8"
        with path.open("w", encoding=encoding, newline="") as f:
            f.write(content)
        if not path.exists() or (content and path.stat().st_size == 0):
            raise OSError(f"{path} was not written")
        self.written.append(path)
        logger.debug("Wrote %s (%s)", path, mime_type)
