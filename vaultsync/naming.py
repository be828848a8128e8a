"""Human-readable PDF filenames for catalog items.

A filename looks like ``"Smith et al. 2024.pdf"``. Items without authors fall
back to the first 40 characters of their title. Collisions across the item
set get a ``" (N)"`` suffix, numbered in catalog order starting at 2.
"""

from __future__ import annotations

import re
from typing import Iterable

from .hierarchy import sanitize_name
from .models import Creator, Item

PDF_EXTENSION = ".pdf"
TITLE_FALLBACK_LENGTH = 40

_YEAR = re.compile(r"\d{4}")


def get_author_last_names(creators: Iterable[Creator]) -> list[str]:
    """Return last names (or full names) of creators whose role is author."""
    names = []
    for creator in creators:
        if creator.creator_type != "author":
            continue
        name = creator.last_name or creator.name or ""
        if name:
            names.append(name)
    return names


def extract_year(date: str) -> str:
    """Return the first 4-digit run in a date string, or ''."""
    if not date:
        return ""
    match = _YEAR.search(date)
    return match.group(0) if match else ""


def build_pdf_display_name(authors: list[str], year: str, title: str) -> str:
    if authors:
        base = f"{authors[0]} et al."
    else:
        base = title[:TITLE_FALLBACK_LENGTH].strip()

    if year:
        base = f"{base} {year}"

    return sanitize_name(base)


def build_pdf_filename(authors: list[str], year: str, title: str) -> str:
    return build_pdf_display_name(authors, year, title) + PDF_EXTENSION


def item_base_filename(item: Item) -> str:
    return build_pdf_filename(
        get_author_last_names(item.creators),
        extract_year(item.date),
        item.title,
    )


def assign_filenames(items: Iterable[Item]) -> dict[str, str]:
    """Map item keys to unique filenames.

    The first item with a given base name keeps it; the Nth gets
    ``"<base> (N).pdf"``. Suffixes follow the order of ``items``, so the same
    ordered input always yields the same mapping.
    """
    assignments: dict[str, str] = {}
    counts: dict[str, int] = {}

    for item in items:
        base_name = item_base_filename(item)
        count = counts.get(base_name, 0) + 1
        counts[base_name] = count

        if count == 1:
            assignments[item.key] = base_name
        else:
            stem = base_name[: -len(PDF_EXTENSION)]
            assignments[item.key] = f"{stem} ({count}){PDF_EXTENSION}"

    return assignments
