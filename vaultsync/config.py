"""Config management for vaultsync.

Reads `config.ini` from DATA_DIR (env var, defaults to the project root).
"""

from __future__ import annotations

import configparser
import dataclasses
import os
import pathlib
import sys
from typing import Optional

from .logging_config import get_logger

logger = get_logger(__name__)


def _get_project_root() -> pathlib.Path:
    if getattr(sys, "frozen", False):
        return pathlib.Path(sys.executable).resolve().parent
    return pathlib.Path(__file__).resolve().parents[1]


PROJECT_ROOT = _get_project_root()

DATA_DIR = pathlib.Path(os.environ.get("DATA_DIR", str(PROJECT_ROOT)))
DEFAULT_CONFIG_PATH = DATA_DIR / "config.ini"

DEFAULT_API_BASE_URL = "http://localhost:23119/api/users/0"
DEFAULT_STORAGE_PATH = "~/Zotero/storage"
UNSORTED_FOLDER = "_Unsorted"


@dataclasses.dataclass
class CatalogConfig:
    base_url: str = DEFAULT_API_BASE_URL
    # Seconds; None disables the timeout.
    timeout: Optional[float] = 30.0


@dataclasses.dataclass
class StorageConfig:
    path: pathlib.Path = dataclasses.field(
        default_factory=lambda: pathlib.Path(DEFAULT_STORAGE_PATH).expanduser()
    )


@dataclasses.dataclass
class LibraryConfig:
    vault_path: pathlib.Path
    folder: str = "Library"
    ignore_patterns: tuple[str, ...] = (".DS_Store", "Thumbs.db", ".trash")


@dataclasses.dataclass
class MonitoringConfig:
    enabled: bool = True
    debounce_seconds: float = 5.0
    poll_seconds: float = 30.0


@dataclasses.dataclass
class VaultSyncConfig:
    catalog: CatalogConfig
    storage: StorageConfig
    library: LibraryConfig
    monitoring: MonitoringConfig

    @property
    def storage_path(self) -> pathlib.Path:
        return self.storage.path

    @property
    def vault_path(self) -> pathlib.Path:
        return self.library.vault_path

    @property
    def library_path(self) -> pathlib.Path:
        """Absolute path of the mirrored library folder inside the vault."""
        return self.library.vault_path / self.library.folder

    @property
    def unsorted_path(self) -> pathlib.Path:
        return self.library_path / UNSORTED_FOLDER


def _parse_bool(value: str, default: bool) -> bool:
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _parse_timeout(value: str) -> Optional[float]:
    timeout = float(value)
    return timeout if timeout > 0 else None


def load_config(config_path: Optional[pathlib.Path] = None) -> VaultSyncConfig:
    """Load configuration from config.ini.

    Defaults to `config.ini` in DATA_DIR.
    """
    path = config_path or DEFAULT_CONFIG_PATH
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    parser = configparser.ConfigParser()
    parser.read(path)

    catalog = CatalogConfig(
        base_url=parser.get("catalog", "base_url", fallback=DEFAULT_API_BASE_URL)
        .strip()
        .rstrip("/"),
        timeout=_parse_timeout(parser.get("catalog", "timeout", fallback="30")),
    )

    storage = StorageConfig(
        path=pathlib.Path(
            parser.get("storage", "path", fallback=DEFAULT_STORAGE_PATH)
        ).expanduser()
    )

    library = LibraryConfig(
        vault_path=pathlib.Path(
            parser.get("library", "vault_path", fallback="~/vault")
        ).expanduser(),
        folder=parser.get("library", "folder", fallback="Library").strip().strip("/")
        or "Library",
        ignore_patterns=tuple(
            p.strip()
            for p in parser.get(
                "library",
                "ignore_patterns",
                fallback=".DS_Store,Thumbs.db,.trash",
            ).split(",")
            if p.strip()
        ),
    )

    monitoring = MonitoringConfig(
        enabled=_parse_bool(
            parser.get("monitoring", "enabled", fallback="true"), True
        ),
        debounce_seconds=parser.getfloat(
            "monitoring", "debounce_seconds", fallback=5.0
        ),
        poll_seconds=parser.getfloat("monitoring", "poll_seconds", fallback=30.0),
    )

    logger.debug(f"Loaded config from {path}")

    return VaultSyncConfig(
        catalog=catalog,
        storage=storage,
        library=library,
        monitoring=monitoring,
    )


_cached_config: Optional[VaultSyncConfig] = None


def get_config() -> VaultSyncConfig:
    """Return the cached config. Loads from disk on first call."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reset_config_cache() -> None:
    """Clear the cached config (useful for tests and config reloads)."""
    global _cached_config
    _cached_config = None
