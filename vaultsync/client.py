"""Catalog HTTP client.

Talks to a Zotero-style JSON API (by default the local API of a running
desktop client). Every endpoint is a GET returning a JSON array of records;
records are validated into the models of :mod:`vaultsync.models` here so the
rest of the sync never sees raw dictionaries.

There is no retry logic at this layer: a failed request raises
``CatalogUnavailable`` and the next coordinator trigger acts as the retry.
"""

from __future__ import annotations

from typing import Any, Callable, Optional, TypeVar

import requests
from pydantic import ValidationError

from .config import DEFAULT_API_BASE_URL
from .errors import CatalogUnavailable
from .logging_config import get_logger
from .models import EXCLUDED_ITEM_TYPES, Attachment, Collection, Item

logger = get_logger(__name__)

PAGE_SIZE = 100
_TOP_LEVEL_FILTER = "-attachment || -note"

T = TypeVar("T")


def select_pdf_attachment(attachments: list[Attachment]) -> Optional[Attachment]:
    """Return the PDF to mirror for one item, or None.

    When an item has several PDFs the last one observed wins.
    """
    selected = None
    for attachment in attachments:
        if attachment.is_pdf:
            selected = attachment
    return selected


def _parse_records(
    records: list[dict[str, Any]],
    parse: Callable[[dict[str, Any]], T],
    kind: str,
) -> list[T]:
    parsed = []
    for raw in records:
        try:
            parsed.append(parse(raw))
        except (ValidationError, AttributeError, TypeError) as exc:
            key = raw.get("key") if isinstance(raw, dict) else None
            logger.warning(f"Skipping malformed {kind} record {key!r}: {exc}")
    return parsed


class CatalogClient:
    """Read-only client for collections, items and attachments."""

    def __init__(
        self,
        base_url: str = DEFAULT_API_BASE_URL,
        timeout: Optional[float] = 30.0,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    def set_base_url(self, base_url: str) -> None:
        self.base_url = base_url.rstrip("/")

    # -- HTTP --

    def _get_json(self, path: str, params: Optional[dict[str, str]] = None) -> Any:
        url = f"{self.base_url}{path}"
        try:
            resp = requests.get(url, params=params, timeout=self.timeout)
        except requests.exceptions.RequestException as exc:
            raise CatalogUnavailable(None, url, type(exc).__name__) from exc

        if resp.status_code != 200:
            raise CatalogUnavailable(resp.status_code, resp.url or url)

        try:
            return resp.json()
        except ValueError as exc:
            raise CatalogUnavailable(200, resp.url or url, "invalid JSON") from exc

    def _get_records(
        self, path: str, params: Optional[dict[str, str]] = None
    ) -> list[dict[str, Any]]:
        body = self._get_json(path, params)
        if not isinstance(body, list):
            raise CatalogUnavailable(
                200, f"{self.base_url}{path}", "expected a JSON array"
            )
        return body

    def _get_all_pages(
        self, path: str, params: Optional[dict[str, str]] = None
    ) -> list[dict[str, Any]]:
        """Follow `start`/`limit` pagination until a short page comes back."""
        records: list[dict[str, Any]] = []
        start = 0
        while True:
            page_params = {
                **(params or {}),
                "format": "json",
                "limit": str(PAGE_SIZE),
                "start": str(start),
            }
            batch = self._get_records(path, page_params)
            records.extend(batch)
            if len(batch) < PAGE_SIZE:
                break
            start += PAGE_SIZE
        return records

    # -- Connection --

    def test_connection(self) -> bool:
        """Return True if the catalog answers a minimal item query."""
        try:
            self._get_json("/items", {"limit": "1", "format": "json"})
        except CatalogUnavailable as exc:
            logger.debug(f"Connection test failed: {exc}")
            return False
        return True

    # -- Collections --

    def fetch_collections(self) -> list[Collection]:
        records = self._get_records("/collections", {"format": "json"})
        return _parse_records(records, Collection.from_api, "collection")

    # -- Items --

    def fetch_items(self, query: Optional[str] = None) -> list[Item]:
        """Fetch one page of top-level items, optionally matching a search query."""
        params = {
            "format": "json",
            "limit": str(PAGE_SIZE),
            "itemType": _TOP_LEVEL_FILTER,
        }
        if query:
            params["q"] = query
            params["qmode"] = "titleCreatorYear"
        records = self._get_records("/items", params)
        return self._to_items(records)

    def fetch_all_items(self) -> list[Item]:
        """Fetch every top-level item in catalog order."""
        records = self._get_all_pages("/items", {"itemType": _TOP_LEVEL_FILTER})
        return self._to_items(records)

    def fetch_collection_items(self, collection_key: str) -> list[Item]:
        records = self._get_all_pages(
            f"/collections/{collection_key}/items",
            {"itemType": _TOP_LEVEL_FILTER},
        )
        return self._to_items(records)

    def fetch_items_with_attachments(
        self, collection_key: Optional[str] = None
    ) -> tuple[list[Item], dict[str, Attachment]]:
        """Fetch items and their PDFs in a single paginated sweep.

        Returns ``(items, attachment_map)`` where ``attachment_map`` maps a
        parent item key to its PDF attachment (last one observed wins).
        """
        path = f"/collections/{collection_key}/items" if collection_key else "/items"
        records = self._get_all_pages(path)

        items: list[Item] = []
        attachment_map: dict[str, Attachment] = {}

        for raw in records:
            if not isinstance(raw, dict) or not isinstance(raw.get("data"), dict):
                logger.warning(f"Skipping malformed record: {raw!r:.80}")
                continue
            item_type = raw["data"].get("itemType")
            try:
                if item_type == "attachment":
                    attachment = Attachment.from_api(raw)
                    if attachment.is_pdf:
                        attachment_map[attachment.parent_key] = attachment
                elif item_type != "note":
                    items.append(Item.from_api(raw))
            except (ValidationError, AttributeError, TypeError) as exc:
                logger.warning(f"Skipping malformed record {raw.get('key')!r}: {exc}")

        return items, attachment_map

    def _to_items(self, records: list[dict[str, Any]]) -> list[Item]:
        items = _parse_records(records, Item.from_api, "item")
        return [item for item in items if item.item_type not in EXCLUDED_ITEM_TYPES]

    # -- Attachments --

    def fetch_attachments(self, parent_key: str) -> list[Attachment]:
        records = self._get_records(
            f"/items/{parent_key}/children",
            {"itemType": "attachment", "format": "json"},
        )
        attachments = _parse_records(records, Attachment.from_api, "attachment")
        for attachment in attachments:
            if attachment.parent_key is None:
                attachment.parent_key = parent_key
        return attachments
