from __future__ import annotations

import json
import os
from pathlib import Path

from warden_core.home import ensure_warden_layout, resolve_warden_home
from warden_core.runtime import (
    RuntimeInfo,
    read_runtime_file,
    remove_runtime_file,
    write_runtime_file,
)


def test_resolve_warden_home_from_env(tmp_path: Path) -> None:
    home = resolve_warden_home({"WARDEN_HOME": str(tmp_path)})
    assert home == tmp_path.resolve()


def test_ensure_warden_layout_creates_required_dirs(tmp_path: Path) -> None:
    paths = ensure_warden_layout(tmp_path)

    assert paths.home.exists()
    assert paths.db_dir.is_dir()
    assert paths.logs_dir.is_dir()
    assert paths.config_dir.is_dir()
    assert paths.run_dir.is_dir()
    assert paths.core_config_path == tmp_path / "config" / "core.json"


def test_runtime_file_round_trip(tmp_path: Path) -> None:
    paths = ensure_warden_layout(tmp_path)
    assert read_runtime_file(paths) is None

    written = write_runtime_file(paths, host="127.0.0.1", port=8790)
    assert paths.runtime_path == tmp_path / "run" / "core.json"
    assert written.pid == os.getpid()
    assert read_runtime_file(paths) == written

    remove_runtime_file(paths)
    assert not paths.runtime_path.exists()
    # Removing twice is harmless.
    remove_runtime_file(paths)


def test_runtime_file_of_another_process_is_kept(tmp_path: Path) -> None:
    paths = ensure_warden_layout(tmp_path)
    paths.runtime_path.write_text(
        json.dumps({"pid": os.getpid() + 1, "host": "0.0.0.0", "port": 9000}), encoding="utf-8"
    )

    remove_runtime_file(paths)
    assert paths.runtime_path.exists()
    assert read_runtime_file(paths) == RuntimeInfo(pid=os.getpid() + 1, host="0.0.0.0", port=9000)
