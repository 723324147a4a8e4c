from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path

from rich.columns import Columns
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .importer import ImportResult
from .model import Contact
from .qr import ParsedContact

console = Console()

# ── Palette ────────────────────────────────────────────────────────────────────
_ACCENT  = "#4d9fff"
_GREEN   = "#3ecf8e"
_AMBER   = "#f0a500"
_TEXT    = "#c9d1e0"
_MID     = "#8896af"
_DIM     = "#546075"
_BORDER  = "#2a3347"


@dataclass
class ExportStats:
    total_contacts: int
    favorite_contacts: int
    contacts_with_locations: int
    unique_countries: int
    unique_jobs: int


def export_stats(contacts: Sequence[Contact]) -> ExportStats:
    countries = {loc.country for c in contacts for loc in c.locations}
    jobs = {job for c in contacts for job in c.job_titles}
    return ExportStats(
        total_contacts=len(contacts),
        favorite_contacts=sum(1 for c in contacts if c.is_favorite),
        contacts_with_locations=sum(1 for c in contacts if c.locations),
        unique_countries=len(countries),
        unique_jobs=len(jobs),
    )


def _stat_panel(value: str, label: str, colour: str) -> Panel:
    body = Text()
    body.append(f"{value}\n", style=f"bold {colour}")
    body.append(label, style=f"dim {_DIM}")
    return Panel(body, border_style=_BORDER, padding=(0, 2), expand=True)


def print_stats(stats: ExportStats, owner_name: str | None = None) -> None:
    heading = f"  ADDRESS BOOK  ·  {owner_name.upper()}" if owner_name else "  ADDRESS BOOK"
    console.print()
    console.print(Text(heading, style=f"dim {_DIM}"))
    console.print()
    console.print(Columns([
        _stat_panel(str(stats.total_contacts),          "contacts",        _ACCENT),
        _stat_panel(str(stats.favorite_contacts),       "favorites",       _GREEN),
        _stat_panel(str(stats.contacts_with_locations), "with locations",  _TEXT),
    ], equal=True, expand=True))
    console.print(Columns([
        _stat_panel(str(stats.unique_countries), "countries", _TEXT),
        _stat_panel(str(stats.unique_jobs),      "jobs",      _TEXT),
    ], equal=True, expand=True))
    console.print()


def print_export_summary(count: int, path: Path, mime_type: str) -> None:
    body = Text()
    body.append(f"✓  Exported {count} record(s)\n", style=f"bold {_GREEN}")
    body.append(f"{path}  ", style=f"dim {_MID}")
    body.append(mime_type, style=f"dim {_DIM}")
    console.print(Panel(body, border_style=_GREEN, padding=(0, 2)))


def print_qr_payloads(payloads: Sequence[str], budget: int) -> None:
    for i, payload in enumerate(payloads, start=1):
        title = Text(f"QR {i}/{len(payloads)}  ·  {len(payload)}/{budget} chars", style=f"dim {_DIM}")
        console.print(Panel(payload, title=title, title_align="left", border_style=_BORDER))


def print_parsed(parsed: Sequence[ParsedContact], duplicates: Sequence[Contact | None]) -> None:
    table = Table(title=f"Scanned {len(parsed)} contact(s)", show_lines=True)
    table.add_column("#", justify="right", style="cyan", no_wrap=True)
    table.add_column("Name", style="bold")
    table.add_column("Jobs")
    table.add_column("Phone / Email")
    table.add_column("Location")
    table.add_column("Status")
    for idx, (p, dup) in enumerate(zip(parsed, duplicates, strict=True), start=1):
        loc = p.primary_location
        status = (
            Text(f"already saved as {dup.full_name}", style=_AMBER)
            if dup else Text("new", style=_GREEN)
        )
        table.add_row(
            str(idx),
            p.full_name,
            "\n".join(p.job_titles),
            "\n".join(filter(None, [p.phone, p.email])),
            loc.label if loc else "",
            status,
        )
    console.print(table)


def print_import_summary(result: ImportResult, path: Path | None) -> None:
    colour = _GREEN if result.success else _AMBER
    body = Text()
    body.append(f"✓  Imported {len(result.imported)} contact(s)\n", style=f"bold {colour}")
    body.append(f"{result.duplicates} already saved  ·  {result.skipped} without a name", style=f"dim {_MID}")
    if path:
        body.append(f"\n{path}", style=f"dim {_DIM}")
    console.print(Panel(body, border_style=colour, padding=(0, 2)))
