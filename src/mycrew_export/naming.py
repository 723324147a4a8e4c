from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime

from .errors import UnsupportedDataShape
from .model import KINDS

EXTENSIONS = {
    "json": "json",
    "csv": "csv",
    "text": "txt",
    "vcard": "vcf",
    "png": "png",
}


class FilenameGenerator:
    """Export filenames: ``<prefix>_<kind>_<UTC timestamp>.<ext>``.

    The timestamp has second resolution. A name this generator already handed
    out, or one ``exists`` reports as taken, gets a ``-2``, ``-3``… suffix
    instead of overwriting.
    """

    def __init__(
        self,
        prefix: str = "mycrew",
        clock: Callable[[], datetime] | None = None,
        exists: Callable[[str], bool] | None = None,
    ):
        self.prefix = prefix
        self._clock = clock or (lambda: datetime.now(UTC))
        self._exists = exists
        self._issued: set[str] = set()

    def _taken(self, name: str) -> bool:
        return name in self._issued or bool(self._exists and self._exists(name))

    def filename(self, fmt: str, kind: str) -> str:
        fmt = getattr(fmt, "value", fmt)
        if fmt not in EXTENSIONS:
            raise UnsupportedDataShape(f"No file extension for format {fmt!r}")
        if kind not in KINDS:
            raise UnsupportedDataShape(f"Unknown export kind: {kind!r}")

        stamp = self._clock().strftime("%Y-%m-%dT%H-%M-%S")
        stem = f"{self.prefix}_{kind}_{stamp}"
        ext = EXTENSIONS[fmt]
        name = f"{stem}.{ext}"
        counter = 1
        while self._taken(name):
            counter += 1
            name = f"{stem}-{counter}.{ext}"
        self._issued.add(name)
        return name
