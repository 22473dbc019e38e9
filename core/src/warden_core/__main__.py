from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler

import uvicorn

from warden_core.app import create_app
from warden_core.config import load_core_config, resolve_configured_paths
from warden_core.home import ensure_warden_layout, resolve_warden_home
from warden_core.runtime import remove_runtime_file, write_runtime_file


def main() -> None:
    home = resolve_warden_home()
    paths = ensure_warden_layout(home)
    config = load_core_config(paths)
    paths = resolve_configured_paths(paths, config)

    logging.basicConfig(
        level=config.logging.level.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            RotatingFileHandler(
                paths.logs_dir / "core.log",
                maxBytes=config.logging.max_size_mb * 1024 * 1024,
                backupCount=config.logging.backup_count,
                encoding="utf-8",
            ),
            logging.StreamHandler(),
        ],
    )

    host = os.environ.get("WARDEN_BIND") or config.network.bind_host
    env_port = os.environ.get("WARDEN_PORT")
    port = int(env_port) if env_port else config.network.core_port

    write_runtime_file(paths, host=host, port=port)
    try:
        uvicorn.run(create_app(), host=host, port=port)
    finally:
        remove_runtime_file(paths)


if __name__ == "__main__":
    main()
