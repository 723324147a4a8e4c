from __future__ import annotations

from datetime import UTC, datetime

import pytest

from mycrew_export.errors import UnsupportedDataShape
from mycrew_export.naming import FilenameGenerator
from mycrew_export.orchestrator import ExportFormat

_NOW = datetime(2026, 3, 1, 12, 30, 5, tzinfo=UTC)


def _gen(**kwargs) -> FilenameGenerator:
    return FilenameGenerator(clock=lambda: _NOW, **kwargs)


def test_filename_format():
    gen = _gen()
    assert gen.filename("json", "contacts") == "mycrew_contacts_2026-03-01T12-30-05.json"
    assert gen.filename("text", "profile") == "mycrew_profile_2026-03-01T12-30-05.txt"
    assert gen.filename(ExportFormat.VCARD, "contact") == "mycrew_contact_2026-03-01T12-30-05.vcf"


def test_same_second_gets_suffix():
    gen = _gen()
    names = [gen.filename("csv", "contacts") for _ in range(3)]
    assert names == [
        "mycrew_contacts_2026-03-01T12-30-05.csv",
        "mycrew_contacts_2026-03-01T12-30-05-2.csv",
        "mycrew_contacts_2026-03-01T12-30-05-3.csv",
    ]


def test_existing_file_is_not_reused():
    taken = {"crew_contact_2026-03-01T12-30-05.json"}
    gen = _gen(prefix="crew", exists=taken.__contains__)
    assert gen.filename("json", "contact") == "crew_contact_2026-03-01T12-30-05-2.json"


def test_bad_format_or_kind():
    gen = _gen()
    with pytest.raises(UnsupportedDataShape):
        gen.filename("pdf", "contact")
    with pytest.raises(UnsupportedDataShape):
        gen.filename("json", "everyone")
