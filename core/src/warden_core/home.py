from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class WardenPaths:
    home: Path
    db_dir: Path
    logs_dir: Path
    config_dir: Path
    run_dir: Path

    @property
    def core_config_path(self) -> Path:
        return self.config_dir / "core.json"

    @property
    def runtime_path(self) -> Path:
        return self.run_dir / "core.json"


def resolve_warden_home(environ: dict[str, str] | None = None) -> Path:
    env = os.environ if environ is None else environ

    raw = (env.get("WARDEN_HOME") or "").strip()
    if raw:
        candidate = Path(raw).expanduser()
        # Relative homes are anchored at the user's home, never the CWD.
        if not candidate.is_absolute():
            candidate = (Path.home() / candidate).resolve()
        else:
            candidate = candidate.resolve()
        return candidate

    def default_home() -> Path:
        if sys.platform.startswith("win"):
            base = os.environ.get("LOCALAPPDATA") or os.environ.get("APPDATA")
            if base:
                return Path(base) / "Warden"
            return Path.home() / "AppData" / "Local" / "Warden"

        if sys.platform == "darwin":
            return Path.home() / "Library" / "Application Support" / "Warden"

        xdg = os.environ.get("XDG_DATA_HOME")
        if xdg:
            return Path(xdg) / "warden"
        return Path.home() / ".local" / "share" / "warden"

    return default_home().resolve()


def ensure_warden_layout(home: Path) -> WardenPaths:
    home.mkdir(parents=True, exist_ok=True)

    db_dir = home / "db"
    logs_dir = home / "logs"
    config_dir = home / "config"
    run_dir = home / "run"

    for path in (db_dir, logs_dir, config_dir, run_dir):
        path.mkdir(parents=True, exist_ok=True)

    return WardenPaths(
        home=home,
        db_dir=db_dir,
        logs_dir=logs_dir,
        config_dir=config_dir,
        run_dir=run_dir,
    )
