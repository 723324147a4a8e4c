from __future__ import annotations

import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path

from .qr import QR_BUDGET

logger = logging.getLogger(__name__)


@dataclass
class Paths:
    root: Path
    exports_dir: Path
    local_dir: Path
    conf_file: Path
    book_file: Path


@dataclass
class Settings:
    owner_name: str = "Me"
    default_region: str = "FR"
    qr_budget: int = QR_BUDGET
    filename_prefix: str = "mycrew"


DEFAULT_CONF = f"""# mycrew-export local config (TOML)
owner_name = "Me"
default_region = "FR"     # phone region used when a contact has no location
qr_budget = {QR_BUDGET}         # max characters per QR code
filename_prefix = "mycrew"
"""


def load_settings(conf: Path) -> Settings:
    settings = Settings()
    try:
        data = tomllib.loads(conf.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError) as exc:
        logger.warning("Ignoring unreadable config %s: %s", conf, exc)
        return settings

    settings.owner_name = str(data.get("owner_name", settings.owner_name))
    settings.default_region = str(data.get("default_region", settings.default_region)).upper()
    settings.filename_prefix = str(data.get("filename_prefix", settings.filename_prefix))
    budget = data.get("qr_budget", settings.qr_budget)
    if isinstance(budget, int) and budget > 2:
        settings.qr_budget = budget
    else:
        logger.warning("Ignoring invalid qr_budget %r in %s", budget, conf)
    return settings


def ensure_workspace(base: Path | None = None) -> tuple[Paths, Settings]:
    root = Path(base or os.getcwd())
    exports = root / "exports"
    local = root / "local"
    conf = local / "mycrew.conf"

    for d in (exports, local):
        d.mkdir(parents=True, exist_ok=True)

    if not conf.exists():
        conf.write_text(DEFAULT_CONF, encoding="utf-8")

    return (
        Paths(
            root=root,
            exports_dir=exports,
            local_dir=local,
            conf_file=conf,
            book_file=local / "addressbook.json",
        ),
        load_settings(conf),
    )
