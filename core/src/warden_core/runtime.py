from __future__ import annotations

import json
import os
from dataclasses import dataclass
from typing import Any

from warden_core.home import WardenPaths


@dataclass(frozen=True)
class RuntimeInfo:
    pid: int
    host: str
    port: int


def read_runtime_file(paths: WardenPaths) -> RuntimeInfo | None:
    """Read ${WARDEN_HOME}/run/core.json, or None when no server has registered."""

    path = paths.runtime_path
    if not path.exists():
        return None
    with path.open("r", encoding="utf-8") as f:
        data: Any = json.load(f)
    if not isinstance(data, dict):
        raise ValueError(f"Invalid runtime file format at {path}")
    return RuntimeInfo(pid=int(data["pid"]), host=str(data["host"]), port=int(data["port"]))


def write_runtime_file(paths: WardenPaths, *, host: str, port: int) -> RuntimeInfo:
    paths.run_dir.mkdir(parents=True, exist_ok=True)
    info = RuntimeInfo(pid=os.getpid(), host=host, port=port)
    with paths.runtime_path.open("w", encoding="utf-8") as f:
        payload = {"pid": info.pid, "host": info.host, "port": info.port}
        json.dump(payload, f, indent=2, sort_keys=True)
        f.write("\n")
    return info


def remove_runtime_file(paths: WardenPaths) -> None:
    # Another process may have taken over the file; only remove our own.
    current = read_runtime_file(paths)
    if current is not None and current.pid == os.getpid():
        paths.runtime_path.unlink(missing_ok=True)
