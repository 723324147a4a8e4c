"""orchestrator.py: one export gesture, from record selection to save/share.

File exports walk ``IDLE → FORMAT_SELECTED → EXPORTING → DONE | FAILED``.
A failure is recorded, logged and re-raised, and the session drops back to
``IDLE`` so the user can retry without rebuilding anything. QR exports skip
the file formats entirely and may start straight from ``IDLE``.

The store and the share action are collaborators handed in at construction.
"""
from __future__ import annotations

import logging
import threading
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from .errors import (
    ExportBusy,
    ExportError,
    ExportIOFailed,
    NoMatchingContacts,
    RecordNotFound,
    UnsupportedDataShape,
)
from .exporter import to_csv, to_json, to_text, to_vcard
from .filters import FilterSettings, select_for_qr_batch, select_matching
from .model import Contact, ExportSubject, Many, Profile, Single, UserProfile
from .naming import EXTENSIONS, FilenameGenerator
from .qr import QR_BUDGET, encode_batch_for_qr, encode_for_qr

logger = logging.getLogger(__name__)


# ── Collaborators ──────────────────────────────────────────────────────────────

class ContactStore(Protocol):
    def get_contact(self, contact_id: str) -> Contact | None: ...

    def list_contacts(self) -> list[Contact]: ...


class ProfileStore(Protocol):
    def get_profile(self) -> UserProfile | None: ...


class Sharer(Protocol):
    def share(self, content: str, filename: str, mime_type: str) -> None: ...


# ── Formats and states ─────────────────────────────────────────────────────────

class ExportFormat(str, Enum):
    JSON = "json"
    CSV = "csv"
    TEXT = "text"
    VCARD = "vcard"

    @property
    def mime_type(self) -> str:
        return _MIME_TYPES[self]

    @property
    def extension(self) -> str:
        return EXTENSIONS[self.value]


_MIME_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.CSV: "text/csv",
    ExportFormat.TEXT: "text/plain",
    ExportFormat.VCARD: "text/vcard",
}


class ExportState(str, Enum):
    IDLE = "idle"
    FORMAT_SELECTED = "format_selected"
    EXPORTING = "exporting"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ExportArtifact:
    content: str
    filename: str
    mime_type: str
    count: int


def render(subject: ExportSubject, fmt: ExportFormat, *, default_region: str | None = None) -> str:
    match fmt:
        case ExportFormat.JSON:
            return to_json(subject)
        case ExportFormat.CSV:
            return to_csv(subject)
        case ExportFormat.TEXT:
            return to_text(subject, default_region=default_region)
        case ExportFormat.VCARD:
            return to_vcard(subject)
    raise UnsupportedDataShape(f"Unknown export format: {fmt!r}")


# ── Session ────────────────────────────────────────────────────────────────────

class ExportSession:
    def __init__(
        self,
        contacts: ContactStore,
        profiles: ProfileStore,
        sharer: Sharer,
        *,
        namer: FilenameGenerator | None = None,
        qr_budget: int = QR_BUDGET,
        default_region: str | None = None,
    ):
        self.contacts = contacts
        self.profiles = profiles
        self.sharer = sharer
        self.namer = namer or FilenameGenerator()
        self.qr_budget = qr_budget
        self.default_region = default_region

        self.state = ExportState.IDLE
        self.format: ExportFormat | None = None
        self.last_error: ExportError | None = None
        self.history: list[ExportState] = [ExportState.IDLE]
        self._lock = threading.Lock()

    def _enter(self, state: ExportState) -> None:
        logger.debug("Export session %s -> %s", self.state.value, state.value)
        self.state = state
        self.history.append(state)

    def reset(self) -> None:
        if self.state is ExportState.EXPORTING:
            raise ExportBusy("cannot reset while exporting")
        if self.state is not ExportState.IDLE:
            self.format = None
            self._enter(ExportState.IDLE)

    def select_format(self, fmt: ExportFormat | str) -> None:
        if self.state is ExportState.EXPORTING:
            raise ExportBusy("format change while exporting")
        if self.state in (ExportState.DONE, ExportState.FAILED):
            self.reset()
        try:
            self.format = ExportFormat(fmt)
        except ValueError as exc:
            raise UnsupportedDataShape(f"Unknown export format: {fmt!r}") from exc
        if self.state is not ExportState.FORMAT_SELECTED:
            self._enter(ExportState.FORMAT_SELECTED)

    # ── Record loading ─────────────────────────────────────────────────────────

    def _load_contact(self, contact_id: str) -> Contact:
        contact = self.contacts.get_contact(contact_id)
        if contact is None:
            raise RecordNotFound(f"No contact with id {contact_id!r}")
        return contact

    def _load_profile(self) -> UserProfile:
        profile = self.profiles.get_profile()
        if profile is None:
            raise RecordNotFound("No user profile has been created")
        return profile

    # ── File exports ───────────────────────────────────────────────────────────

    def export_contact(self, contact_id: str) -> ExportArtifact:
        return self._run(lambda: Single(self._load_contact(contact_id)))

    def export_profile(self) -> ExportArtifact:
        return self._run(lambda: Profile(self._load_profile()))

    def export_contacts(
        self,
        filters: FilterSettings | None = None,
        search_text: str = "",
    ) -> ExportArtifact:
        """Export the listed contacts. No criteria means the whole list."""
        def _select() -> Many:
            selected = select_matching(self.contacts.list_contacts(), filters, search_text)
            return Many(tuple(selected))
        return self._run(_select)

    def _run(self, select) -> ExportArtifact:
        if not self._lock.acquire(blocking=False):
            raise ExportBusy("another export is running")
        try:
            if self.state is not ExportState.FORMAT_SELECTED or self.format is None:
                raise UnsupportedDataShape(f"No export format selected (state: {self.state.value})")
            self._enter(ExportState.EXPORTING)
            try:
                artifact = self._build_and_share(select)
            except ExportError as exc:
                self._fail(exc)
                raise
            except Exception as exc:
                error = UnsupportedDataShape(str(exc))
                self._fail(error)
                raise error from exc
            self._enter(ExportState.DONE)
            logger.info("Exported %d record(s) to %s", artifact.count, artifact.filename)
            return artifact
        finally:
            self._lock.release()

    def _build_and_share(self, select) -> ExportArtifact:
        subject = select()
        fmt = self.format
        content = render(subject, fmt, default_region=self.default_region)
        filename = self.namer.filename(fmt.value, subject.kind)
        try:
            self.sharer.share(content, filename, fmt.mime_type)
        except Exception as exc:
            raise ExportIOFailed(f"{filename}: {exc}") from exc
        return ExportArtifact(content, filename, fmt.mime_type, len(subject.records))

    def _fail(self, error: ExportError) -> None:
        self.last_error = error
        self._enter(ExportState.FAILED)
        logger.warning("Export failed: %s", error)
        self._enter(ExportState.IDLE)

    # ── QR exports ─────────────────────────────────────────────────────────────

    def _check_not_busy(self) -> None:
        if self.state is ExportState.EXPORTING:
            raise ExportBusy("QR export requested while a file export is running")

    def qr_contact(self, contact_id: str) -> str:
        self._check_not_busy()
        return encode_for_qr(self._load_contact(contact_id), self.qr_budget)

    def qr_profile(self) -> str:
        self._check_not_busy()
        return encode_for_qr(self._load_profile(), self.qr_budget)

    def qr_batch(
        self,
        filters: FilterSettings | None,
        search_text: str = "",
    ) -> list[str]:
        """Batch QR payloads for the filtered selection.

        Raises FiltersRequired when neither a filter nor a search is active;
        the session state is left untouched.
        """
        self._check_not_busy()
        selected: Sequence[Contact] = select_for_qr_batch(
            self.contacts.list_contacts(), filters, search_text
        )
        if not selected:
            raise NoMatchingContacts("filters matched no contact")
        return encode_batch_for_qr(selected, self.qr_budget)
