from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel

from .config import ensure_workspace
from .dedupe import find_duplicate
from .errors import ExportError, QRDecodeFailed
from .filters import FilterSettings
from .importer import import_file
from .io import FileSharer, load_address_book
from .naming import FilenameGenerator
from .orchestrator import ExportFormat, ExportSession
from .qr import parse_any, render_qr_png
from .report import (
    export_stats,
    print_export_summary,
    print_import_summary,
    print_parsed,
    print_qr_payloads,
    print_stats,
)

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="mycrew-export: export crew contacts to JSON, CSV, text, vCard or QR codes, and import them back.",
)
console = Console()


@app.callback()
def main(verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging")) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
    )


# ── Shared setup ───────────────────────────────────────────────────────────────

def _session(book_path: Path | None, out_dir: Path | None):
    paths, settings = ensure_workspace()
    book = load_address_book(book_path or paths.book_file)
    sharer = FileSharer(out_dir or paths.exports_dir)
    namer = FilenameGenerator(prefix=settings.filename_prefix, exists=sharer.exists)
    session = ExportSession(
        book, book, sharer,
        namer=namer,
        qr_budget=settings.qr_budget,
        default_region=settings.default_region,
    )
    return session, book, sharer, settings


def _filters(
    job: str | None,
    country: str | None,
    region: list[str] | None,
    housed: bool,
    resident: bool,
    vehicle: bool,
) -> FilterSettings:
    return FilterSettings(
        job=job,
        country=country,
        regions=frozenset(region or ()),
        is_housed=housed,
        is_local_resident=resident,
        has_vehicle=vehicle,
    )


def _fail(exc: ExportError) -> NoReturn:
    console.print(f"[bold red]{exc.user_message}[/bold red]")
    if exc.detail:
        console.print(f"[dim]{exc.detail}[/dim]")
    raise typer.Exit(code=1)


def _read_scan(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as exc:
        raise QRDecodeFailed(f"{path}: {exc}") from exc


# ── `export` command ───────────────────────────────────────────────────────────

@app.command()
def export(
    fmt: ExportFormat = typer.Option(ExportFormat.JSON, "--format", "-f", help="Output format"),
    contact: str | None = typer.Option(None, "--contact", "-c", help="Export one contact by id"),
    profile: bool = typer.Option(False, "--profile", help="Export your own profile"),
    job: str | None = typer.Option(None, "--job", help="Only contacts with this job"),
    country: str | None = typer.Option(None, "--country", help="Only contacts working in this country"),
    region: list[str] | None = typer.Option(None, "--region", help="Accepted region (repeatable)"),
    housed: bool = typer.Option(False, "--housed", help="Only contacts housed somewhere"),
    resident: bool = typer.Option(False, "--resident", help="Only local residents"),
    vehicle: bool = typer.Option(False, "--vehicle", help="Only contacts with a vehicle"),
    search: str = typer.Option("", "--search", "-s", help="Free-text search"),
    book: Path | None = typer.Option(None, "--book", "-b", help="Address book JSON file"),
    out_dir: Path | None = typer.Option(None, "--out", "-o", help="Output folder (default: exports/)"),
) -> None:
    """Export a contact, your profile, or the (filtered) contact list to a file."""
    try:
        session, _, sharer, _ = _session(book, out_dir)
        session.select_format(fmt)
        if contact:
            artifact = session.export_contact(contact)
        elif profile:
            artifact = session.export_profile()
        else:
            artifact = session.export_contacts(
                _filters(job, country, region, housed, resident, vehicle), search
            )
    except ExportError as exc:
        _fail(exc)
    print_export_summary(artifact.count, sharer.out_dir / artifact.filename, artifact.mime_type)


# ── `qr` command ───────────────────────────────────────────────────────────────

@app.command()
def qr(
    contact: str | None = typer.Option(None, "--contact", "-c", help="QR code for one contact"),
    profile: bool = typer.Option(False, "--profile", help="QR code for your own profile"),
    job: str | None = typer.Option(None, "--job"),
    country: str | None = typer.Option(None, "--country"),
    region: list[str] | None = typer.Option(None, "--region"),
    housed: bool = typer.Option(False, "--housed"),
    resident: bool = typer.Option(False, "--resident"),
    vehicle: bool = typer.Option(False, "--vehicle"),
    search: str = typer.Option("", "--search", "-s"),
    png: bool = typer.Option(False, "--png", help="Also render each payload as a PNG image"),
    book: Path | None = typer.Option(None, "--book", "-b"),
    out_dir: Path | None = typer.Option(None, "--out", "-o"),
) -> None:
    """Build QR payloads. Several contacts need at least one filter or a search.

    \b
    Examples:
      mycrew-export qr --profile --png
      mycrew-export qr --country France --vehicle
    """
    try:
        session, _, sharer, settings = _session(book, out_dir)
        if contact:
            payloads, kind = [session.qr_contact(contact)], "contact"
        elif profile:
            payloads, kind = [session.qr_profile()], "profile"
        else:
            payloads = session.qr_batch(
                _filters(job, country, region, housed, resident, vehicle), search
            )
            kind = "contacts"
    except ExportError as exc:
        _fail(exc)

    print_qr_payloads(payloads, settings.qr_budget)
    if png:
        for payload in payloads:
            try:
                path = render_qr_png(payload, sharer.out_dir / session.namer.filename("png", kind))
            except ExportError as exc:
                _fail(exc)
            console.print(f"[dim]QR image → {path}[/dim]")


# ── `scan` command ─────────────────────────────────────────────────────────────

@app.command()
def scan(
    payload: str | None = typer.Argument(None, help="Scanned QR text"),
    file: Path | None = typer.Option(None, "--file", help="Read the scanned text from a file"),
    add: bool = typer.Option(False, "--add", help="Add new contacts to the address book"),
    book: Path | None = typer.Option(None, "--book", "-b"),
) -> None:
    """Decode a scanned QR payload and optionally add it to the address book."""
    if payload is None and file is None:
        console.print("[bold red]Pass the scanned text or --file.[/bold red]")
        raise typer.Exit(code=2)
    paths, _ = ensure_workspace()
    try:
        raw = payload if payload is not None else _read_scan(file)
        address_book = load_address_book(book or paths.book_file)
        parsed = parse_any(raw)
    except ExportError as exc:
        _fail(exc)

    existing = address_book.list_contacts()
    duplicates = [find_duplicate(p, existing) for p in parsed]
    print_parsed(parsed, duplicates)

    if add:
        new = [p for p, dup in zip(parsed, duplicates, strict=True) if dup is None]
        for p in new:
            address_book.add_contact(p.to_contact())
        try:
            path = address_book.save()
        except ExportError as exc:
            _fail(exc)
        console.print(f"[bold green]✓ Added {len(new)} contact(s) → {path}[/bold green]")


# ── `import` command ───────────────────────────────────────────────────────────

@app.command("import")
def import_(
    source: Path = typer.Argument(..., help="JSON, CSV or vCard file to import"),
    book: Path | None = typer.Option(None, "--book", "-b"),
) -> None:
    """Merge contacts from an exported JSON, CSV or vCard file into the address book."""
    paths, _ = ensure_workspace()
    try:
        address_book = load_address_book(book or paths.book_file)
        result = import_file(address_book, source)
        path = address_book.save() if result.imported else address_book.path
    except ExportError as exc:
        _fail(exc)
    print_import_summary(result, path)


# ── `stats` command ────────────────────────────────────────────────────────────

@app.command()
def stats(book: Path | None = typer.Option(None, "--book", "-b")) -> None:
    """Show address book statistics."""
    paths, settings = ensure_workspace()
    try:
        address_book = load_address_book(book or paths.book_file)
    except ExportError as exc:
        _fail(exc)
    print_stats(export_stats(address_book.list_contacts()), settings.owner_name)
    if address_book.profile is None:
        console.print(Panel("[dim]No profile yet. Profile exports will fail.[/dim]", border_style="#2a3347"))


if __name__ == "__main__":
    app()
