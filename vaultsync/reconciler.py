"""Library reconciliation for vaultsync.

Mirrors catalog PDFs into the library folder of the vault.

One pass:
- fetch collections and items, build the folder tree and filenames
- create every folder (library root, collections, _Unsorted)
- copy, rename or skip each item's PDF in every folder it belongs to
- delete library PDFs that no longer match a catalog item
"""

from __future__ import annotations

import os
import shutil
import threading
from pathlib import Path
from typing import Callable, Container, Iterable, Iterator, NamedTuple, Optional, Tuple

from .client import CatalogClient, select_pdf_attachment
from .config import VaultSyncConfig
from .errors import DestinationWriteFailure, SourceFileMissing
from .hierarchy import build_collection_tree, collection_path_map, flatten_collection_tree
from .logging_config import get_logger
from .models import Item
from .naming import PDF_EXTENSION, assign_filenames
from .path_utils import short_path, to_absolute, to_relative

logger = get_logger(__name__)

ProgressSink = Callable[[str], None]


class SyncResult(NamedTuple):
    synced: int
    total: int
    removed: int = 0


def _no_progress(message: str) -> None:
    pass


def is_pdf_file(path: Path) -> bool:
    return path.suffix.lower() == PDF_EXTENSION


def _should_ignore(name: str, ignore_patterns: Iterable[str]) -> bool:
    """Check if file/folder should be ignored based on patterns or macOS temp files."""
    if name.startswith("._"):
        return True
    return name in ignore_patterns


def walk_library(
    root: Path,
    ignore_patterns: Tuple[str, ...],
) -> Iterator[Tuple[Path, list[Path]]]:
    """Yield (directory, pdf_files) under root, respecting ignore patterns."""
    for dirpath, dirnames, filenames in os.walk(root):
        dir_path = Path(dirpath)

        # Filter out ignored directories in-place so os.walk doesn't descend
        dirnames[:] = [d for d in dirnames if not _should_ignore(d, ignore_patterns)]

        pdf_files = [
            dir_path / f
            for f in filenames
            if not _should_ignore(f, ignore_patterns) and is_pdf_file(Path(f))
        ]
        yield dir_path, pdf_files


def ensure_folder(path: Path) -> bool:
    """Create a folder if it is missing. Returns True if it was created."""
    if path.is_dir():
        return False
    path.mkdir(parents=True, exist_ok=True)
    logger.debug(f"[+] Created folder: {path}")
    return True


def resolve_destinations(
    item: Item,
    path_map: dict[str, str],
    vault_root: Path,
    unsorted: Path,
) -> list[Path]:
    """Return every folder an item's PDF belongs in.

    Memberships that do not resolve to a known collection are ignored; an
    item left with no folder goes to ``unsorted``.
    """
    folders = []
    for key in item.collections:
        rel_path = path_map.get(key)
        if rel_path is not None:
            folders.append(to_absolute(rel_path, vault_root))
    return folders or [unsorted]


def place_pdf(
    source: Path,
    source_size: int,
    dest: Path,
    original_filename: str,
    claimed: Container[Path] = (),
) -> str:
    """Make ``dest`` hold the source PDF.

    Returns the action taken: "skipped" when a same-size file is already
    there, "renamed" when an old copy under the original attachment filename
    was moved into place, "copied" otherwise. Files in ``claimed`` belong to
    other destinations of the pass and are never renamed.
    """
    try:
        if dest.is_file():
            if dest.stat().st_size == source_size:
                return "skipped"
        else:
            old_path = dest.parent / original_filename
            if old_path != dest and old_path not in claimed and old_path.is_file():
                old_path.rename(dest)
                return "renamed"

        shutil.copyfile(source, dest)
        return "copied"
    except OSError as exc:
        raise DestinationWriteFailure(dest, exc) from exc


def remove_orphans(
    library_root: Path,
    expected_paths: set[Path],
    ignore_patterns: Tuple[str, ...] = (),
) -> int:
    """Delete every PDF under library_root that is not expected. Returns count."""
    if not library_root.is_dir():
        return 0

    orphans = [
        pdf_path
        for _, pdf_files in walk_library(library_root, ignore_patterns)
        for pdf_path in pdf_files
        if pdf_path not in expected_paths
    ]

    removed = 0
    for orphan in orphans:
        try:
            orphan.unlink()
            removed += 1
            logger.info(f"[-] Removed: {short_path(orphan)}")
        except FileNotFoundError:
            continue
        except OSError as exc:
            logger.error(f"✗ Failed to remove {short_path(orphan)}: {exc}")
    return removed


class LibraryReconciler:
    """Runs reconciliation passes, at most one at a time.

    ``sync`` may be called from any thread. A call that arrives while a pass
    is in flight returns ``SyncResult(0, 0)`` at once and does not schedule
    a follow-up pass.
    """

    def __init__(
        self,
        config: VaultSyncConfig,
        client: Optional[CatalogClient] = None,
    ) -> None:
        self.config = config
        self.client = client or CatalogClient(
            config.catalog.base_url, timeout=config.catalog.timeout
        )
        self._busy = threading.Lock()

    @property
    def is_syncing(self) -> bool:
        return self._busy.locked()

    def update_config(self, config: VaultSyncConfig) -> None:
        """Use new settings from the next pass on."""
        self.config = config

    def sync(self, progress: Optional[ProgressSink] = None) -> SyncResult:
        """Run one reconciliation pass.

        Raises CatalogUnavailable if the catalog cannot be read; nothing is
        deleted in that case.
        """
        if not self._busy.acquire(blocking=False):
            logger.debug("Sync already in progress, skipping")
            return SyncResult(0, 0)
        try:
            return self._run(progress or _no_progress)
        finally:
            self._busy.release()

    def _run(self, progress: ProgressSink) -> SyncResult:
        config = self.config
        self.client.set_base_url(config.catalog.base_url)
        self.client.timeout = config.catalog.timeout
        vault_root = config.vault_path
        library_root = config.library_path
        unsorted = config.unsorted_path

        progress("Fetching collections from catalog...")
        collections = self.client.fetch_collections()
        tree = build_collection_tree(collections, config.library.folder)
        nodes = flatten_collection_tree(tree)
        path_map = collection_path_map(tree)

        progress("Fetching items from catalog...")
        items = self.client.fetch_all_items()
        filenames = assign_filenames(items)

        ensure_folder(library_root)
        for node in nodes:
            ensure_folder(to_absolute(node.path, vault_root))
        ensure_folder(unsorted)

        total = len(items)
        synced = 0
        expected_paths: set[Path] = set()

        logger.info(
            f"[SYNC] {total} items, {len(nodes)} collections -> {library_root}"
        )

        for index, item in enumerate(items, start=1):
            progress(f"Syncing {index}/{total}: {item.title[:50]}...")
            try:
                if self._sync_item(config, item, filenames[item.key], path_map, expected_paths):
                    synced += 1
            except SourceFileMissing as exc:
                logger.debug(f"✗ {item.key} - {exc}")
            except (DestinationWriteFailure, OSError) as exc:
                logger.error(f"✗ {item.key} - {exc}")

        progress("Cleaning up removed papers...")
        removed = remove_orphans(
            library_root, expected_paths, config.library.ignore_patterns
        )
        if removed:
            progress(f"Removed {removed} orphaned PDF(s)")

        progress(f"Sync complete: {synced}/{total} papers synced")
        logger.info(f"Sync complete: {synced}/{total} synced, {removed} removed.")
        return SyncResult(synced, total, removed)

    def _sync_item(
        self,
        config: VaultSyncConfig,
        item: Item,
        filename: str,
        path_map: dict[str, str],
        expected_paths: set[Path],
    ) -> bool:
        """Place one item's PDF in all its folders. Returns True when synced.

        Destinations populated before a failure stay in ``expected_paths``.
        """
        attachment = select_pdf_attachment(self.client.fetch_attachments(item.key))
        if attachment is None:
            logger.debug(f"{item.key} has no PDF attachment")
            return False

        source = config.storage_path / attachment.key / attachment.filename
        try:
            source_size = source.stat().st_size
        except FileNotFoundError as exc:
            raise SourceFileMissing(source) from exc

        folders = resolve_destinations(
            item, path_map, config.vault_path, config.unsorted_path
        )

        for folder in folders:
            dest = folder / filename
            action = place_pdf(
                source, source_size, dest, attachment.filename, expected_paths
            )
            expected_paths.add(dest)
            if action == "copied":
                logger.info(f"[+] Copied: {to_relative(dest, config.vault_path)}")
            elif action == "renamed":
                logger.info(f"[→] Renamed: {attachment.filename} → {short_path(dest)}")

        return True
