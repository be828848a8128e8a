"""vaultsync CLI entry point."""

from __future__ import annotations

import configparser
import logging
import threading
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.tree import Tree

from vaultsync.client import CatalogClient
from vaultsync.config import (
    DEFAULT_API_BASE_URL,
    DEFAULT_CONFIG_PATH,
    DEFAULT_STORAGE_PATH,
    VaultSyncConfig,
    load_config,
)
from vaultsync.coordinator import SyncCoordinator, watch_config_file
from vaultsync.errors import CatalogUnavailable
from vaultsync.hierarchy import build_collection_tree
from vaultsync.logging_config import setup_logging
from vaultsync.models import CollectionTreeNode
from vaultsync.reconciler import LibraryReconciler


__version__ = "0.1.0"

app = typer.Typer(add_completion=False, help="Mirror catalog PDFs into a vault library")
logger = logging.getLogger("vaultsync")


def _ensure_config() -> VaultSyncConfig:
    try:
        return load_config(DEFAULT_CONFIG_PATH)
    except FileNotFoundError:
        typer.echo("[ERROR] config.ini not found. Run: vaultsync init --vault /path/to/vault")
        raise typer.Exit(code=1)


def _make_client(config: VaultSyncConfig) -> CatalogClient:
    return CatalogClient(config.catalog.base_url, timeout=config.catalog.timeout)


def _write_config(
    config_path: Path,
    vault_path: Path,
    storage_path: str,
    api_url: str,
    folder: str,
) -> None:
    parser = configparser.ConfigParser()

    parser["catalog"] = {
        "base_url": api_url,
        "timeout": "30",
    }
    parser["storage"] = {
        "path": storage_path,
    }
    parser["library"] = {
        "vault_path": str(vault_path.expanduser()),
        "folder": folder,
        "ignore_patterns": ".DS_Store,Thumbs.db,.trash",
    }
    parser["monitoring"] = {
        "enabled": "true",
        "debounce_seconds": "5",
        "poll_seconds": "30",
    }

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w") as handle:
        parser.write(handle)


@app.command()
def init(
    vault: Path = typer.Option(..., "--vault", help="Path to your notes vault"),
    storage: str = typer.Option(DEFAULT_STORAGE_PATH, "--storage", help="Catalog storage folder"),
    api: str = typer.Option(DEFAULT_API_BASE_URL, "--api", help="Catalog API base URL"),
    folder: str = typer.Option("Library", "--folder", help="Library folder inside the vault"),
) -> None:
    """Initialize config.ini with default settings."""
    _write_config(DEFAULT_CONFIG_PATH, vault, storage, api, folder)
    typer.echo(f"[OK] Config created at {DEFAULT_CONFIG_PATH}")


@app.command()
def sync() -> None:
    """Run one reconciliation pass and exit."""
    setup_logging()

    config = _ensure_config()
    reconciler = LibraryReconciler(config, _make_client(config))
    try:
        result = reconciler.sync(lambda message: logger.debug(message))
    except CatalogUnavailable as exc:
        typer.echo(f"[ERROR] {exc}")
        raise typer.Exit(code=1)

    typer.echo(
        "✓ Sync completed: "
        f"{result.synced}/{result.total} papers synced, "
        f"{result.removed} orphaned PDFs removed."
    )


@app.command()
def watch(
    no_initial: bool = typer.Option(False, "--no-initial", help="Skip the initial sync"),
) -> None:
    """Sync continuously: watch catalog storage and poll the catalog."""
    setup_logging()

    config = _ensure_config()
    if not config.monitoring.enabled:
        typer.echo("[ERROR] Monitoring is disabled in config.ini. Use `vaultsync sync`.")
        raise typer.Exit(code=1)

    reconciler = LibraryReconciler(config, _make_client(config))
    coordinator = SyncCoordinator(config, reconciler)

    if not no_initial:
        logger.info("Running initial sync...")
        coordinator.trigger_sync("startup")

    def reload_config() -> None:
        try:
            new_config = load_config(DEFAULT_CONFIG_PATH)
        except (FileNotFoundError, configparser.Error, ValueError) as exc:
            logger.error(f"✗ Ignoring config change: {exc}")
            return
        logger.info("Config changed, restarting watcher")
        coordinator.update_config(new_config)

    coordinator.start()
    config_observer = watch_config_file(DEFAULT_CONFIG_PATH, reload_config)

    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        config_observer.stop()
        config_observer.join()
        coordinator.stop()


@app.command()
def check() -> None:
    """Check that the catalog API is reachable."""
    config = _ensure_config()
    if _make_client(config).test_connection():
        typer.echo(f"[OK] Catalog API reachable at {config.catalog.base_url}")
    else:
        typer.echo(f"[ERROR] Cannot connect to catalog API at {config.catalog.base_url}")
        raise typer.Exit(code=1)


def _add_nodes(branch: Tree, nodes: list[CollectionTreeNode]) -> None:
    for node in nodes:
        child = branch.add(f"{escape(node.name)} [dim]({node.item_count})[/dim]")
        _add_nodes(child, node.children)


@app.command()
def tree(
    folder: Optional[str] = typer.Option(None, "--folder", help="Override library folder"),
) -> None:
    """Show the collection tree as it will be mirrored."""
    config = _ensure_config()
    root = folder or config.library.folder
    try:
        collections = _make_client(config).fetch_collections()
    except CatalogUnavailable as exc:
        typer.echo(f"[ERROR] {exc}")
        raise typer.Exit(code=1)

    display = Tree(f"[bold]{escape(root)}[/bold]")
    _add_nodes(display, build_collection_tree(collections, root))
    Console().print(display)


if __name__ == "__main__":
    app()
