"""Collection hierarchy -> library folder tree."""

from __future__ import annotations

import locale
import re
from typing import Iterator

from .models import Collection, CollectionTreeNode

_UNSAFE_CHARS = re.compile(r'[/\\:*?"<>|]')
_RESERVED_FOLDER_NAMES = frozenset({"", ".", ".."})


def sanitize_name(name: str) -> str:
    """Replace characters that are unsafe in file and folder names with '-'."""
    return _UNSAFE_CHARS.sub("-", name).strip()


def folder_name(name: str) -> str:
    """Sanitized folder name that always stays inside its parent folder."""
    name = sanitize_name(name)
    if name in _RESERVED_FOLDER_NAMES:
        return "-"
    return name


def _sorted_by_name(collections: list[Collection]) -> list[Collection]:
    return sorted(collections, key=lambda c: locale.strxfrm(c.name))


def build_collection_tree(
    collections: list[Collection],
    root_path: str,
) -> list[CollectionTreeNode]:
    """Build the folder tree for a flat list of collections.

    Each node's path is its parent's path plus the sanitized collection name.
    Siblings are sorted by name so the traversal order is the same on every
    run. Collections whose parent is not in the list are unreachable and are
    left out. Parent references must be acyclic.
    """
    children_by_parent: dict[str, list[Collection]] = {}
    roots: list[Collection] = []

    for collection in collections:
        if collection.parent_key is None:
            roots.append(collection)
        else:
            children_by_parent.setdefault(collection.parent_key, []).append(collection)

    def build_node(collection: Collection, parent_path: str) -> CollectionTreeNode:
        path = f"{parent_path}/{folder_name(collection.name)}"
        children = [
            build_node(child, path)
            for child in _sorted_by_name(children_by_parent.get(collection.key, []))
        ]
        return CollectionTreeNode(
            key=collection.key,
            name=collection.name,
            path=path,
            item_count=collection.item_count,
            children=children,
        )

    root_path = root_path.rstrip("/")
    return [build_node(root, root_path) for root in _sorted_by_name(roots)]


def iter_collection_tree(nodes: list[CollectionTreeNode]) -> Iterator[CollectionTreeNode]:
    """Yield nodes depth-first, parents before children."""
    for node in nodes:
        yield node
        yield from iter_collection_tree(node.children)


def flatten_collection_tree(nodes: list[CollectionTreeNode]) -> list[CollectionTreeNode]:
    return list(iter_collection_tree(nodes))


def collection_path_map(nodes: list[CollectionTreeNode]) -> dict[str, str]:
    """Map each collection key to its vault-relative folder path."""
    return {node.key: node.path for node in iter_collection_tree(nodes)}
