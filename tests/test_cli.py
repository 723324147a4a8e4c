from __future__ import annotations

import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from mycrew_export.cli import app
from mycrew_export.exporter import to_csv
from mycrew_export.io import AddressBook, load_address_book
from mycrew_export.model import Contact, Location
from mycrew_export.qr import encode_for_qr

runner = CliRunner()


@pytest.fixture
def book_file(tmp_path: Path, monkeypatch) -> Path:
    monkeypatch.chdir(tmp_path)
    book = AddressBook(contacts=[
        Contact("Ana", "Roux", phone="0612345678", locations=[Location("France", has_vehicle=True)]),
        Contact("Bob", "Smith", locations=[Location("Spain")]),
    ])
    return book.save(tmp_path / "book.json")


def test_export_json(tmp_path: Path, book_file: Path):
    out = tmp_path / "out"
    result = runner.invoke(app, ["export", "--format", "json", "--book", str(book_file), "--out", str(out)])
    assert result.exit_code == 0, result.output
    files = list(out.glob("mycrew_contacts_*.json"))
    assert len(files) == 1
    assert len(json.loads(files[0].read_text(encoding="utf-8"))["data"]) == 2


def test_export_filtered_csv(tmp_path: Path, book_file: Path):
    out = tmp_path / "out"
    result = runner.invoke(app, ["export", "-f", "csv", "--country", "Spain", "--book", str(book_file), "-o", str(out)])
    assert result.exit_code == 0, result.output
    (csv_file,) = out.glob("*.csv")
    assert "Bob" in csv_file.read_text(encoding="utf-8-sig")


def test_export_missing_contact_fails(book_file: Path):
    result = runner.invoke(app, ["export", "--contact", "nobody", "--book", str(book_file)])
    assert result.exit_code == 1


def test_qr_needs_filter(book_file: Path):
    assert runner.invoke(app, ["qr", "--book", str(book_file)]).exit_code == 1
    result = runner.invoke(app, ["qr", "--vehicle", "--png", "--book", str(book_file)])
    assert result.exit_code == 0, result.output
    assert list((book_file.parent / "exports").glob("mycrew_contacts_*.png"))


def test_scan_adds_new_contacts_once(tmp_path: Path, book_file: Path):
    payload = encode_for_qr(Contact("Zoé", "Blanc", email="zoe@example.com"))
    result = runner.invoke(app, ["scan", payload, "--add", "--book", str(book_file)])
    assert result.exit_code == 0, result.output
    assert [c.first_name for c in load_address_book(book_file).list_contacts()] == ["Ana", "Bob", "Zoé"]

    runner.invoke(app, ["scan", payload, "--add", "--book", str(book_file)])
    assert len(load_address_book(book_file).list_contacts()) == 3


def test_scan_rejects_garbage(book_file: Path):
    assert runner.invoke(app, ["scan", "hello", "--book", str(book_file)]).exit_code == 1


def test_stats(book_file: Path):
    result = runner.invoke(app, ["stats", "--book", str(book_file)])
    assert result.exit_code == 0, result.output


def test_scan_unreadable_file(tmp_path: Path, book_file: Path):
    scanned = tmp_path / "scan.txt"
    scanned.write_bytes(b"\xff\xfe{garbage")
    result = runner.invoke(app, ["scan", "--file", str(scanned), "--book", str(book_file)])
    assert result.exit_code == 1
    assert not isinstance(result.exception, UnicodeDecodeError)
    missing = runner.invoke(app, ["scan", "--file", str(tmp_path / "nope.txt"), "--book", str(book_file)])
    assert missing.exit_code == 1


def test_qr_png_with_accented_notes(tmp_path: Path, book_file: Path):
    book = load_address_book(book_file)
    book.add_contact(Contact("Zoé", "Blanc", notes="é" * 1800, locations=[Location("France", has_vehicle=True)]))
    book.save()
    result = runner.invoke(app, ["qr", "--search", "zoé", "--png", "--book", str(book_file)])
    assert result.exit_code == 0, result.output
    assert len(list((tmp_path / "exports").glob("mycrew_contacts_*.png"))) == 1


def test_import_csv_export(tmp_path: Path, book_file: Path):
    source = tmp_path / "crew.csv"
    source.write_text(to_csv([Contact("Zoé", "Blanc", phone="0699999999"), Contact("Ana", "Roux", phone="0612345678")]),
                      encoding="utf-8")
    result = runner.invoke(app, ["import", str(source), "--book", str(book_file)])
    assert result.exit_code == 0, result.output
    names = [c.full_name for c in load_address_book(book_file).list_contacts()]
    assert names == ["Ana Roux", "Bob Smith", "Zoé Blanc"]


def test_import_unknown_file(tmp_path: Path, book_file: Path):
    source = tmp_path / "notes.txt"
    source.write_text("nothing to see", encoding="utf-8")
    assert runner.invoke(app, ["import", str(source), "--book", str(book_file)]).exit_code == 1
