from warden_core.config import CoreConfig, load_core_config
from warden_core.home import WardenPaths, ensure_warden_layout, resolve_warden_home
from warden_core.runtime import RuntimeInfo, read_runtime_file, write_runtime_file

__version__ = "0.1.0"

__all__ = [
    "CoreConfig",
    "RuntimeInfo",
    "WardenPaths",
    "__version__",
    "ensure_warden_layout",
    "load_core_config",
    "read_runtime_file",
    "resolve_warden_home",
    "write_runtime_file",
]
