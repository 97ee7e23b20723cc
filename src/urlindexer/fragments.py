"""Decomposition of request URLs into searchable fragments.

A URL such as ``https://domain.com/api?a=b&c=d`` is indexed as:

    https://domain.com/api?a=b&c=d   (full URL, flagged ``is_full_url``)
    domain.com/api?a=b&c=d           (authority + path + query)
    /api?a=b&c=d                     (path + query)
    a=b&c=d                          (query string, when not empty)
    a=b, b, c=d, d                   (each parameter as pair and bare value)

Fragments are diffed against the entries already stored for the owner so
that re-indexing an unchanged URL touches nothing, and entries the new URL
no longer produces are reported for deletion.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import httpx

from urlindexer.models.index import IndexEntry

if TYPE_CHECKING:
    from urlindexer.models.records import OwnerRecord

ID_SEPARATOR = "::"


@dataclass
class FragmentDiff:
    to_insert: list[IndexEntry] = field(default_factory=list)
    to_delete: list[IndexEntry] = field(default_factory=list)


def new_entry_id(lower_fragment: str, category: str) -> str:
    return f"{lower_fragment}{ID_SEPARATOR}{category}{ID_SEPARATOR}{uuid.uuid4()}"


def fragment_key(entry_id: str) -> str:
    """Return the lowercase fragment part of an entry id.

    The category and uuid suffix never contain the separator, so splitting
    from the right keeps fragments such as ``http://[::1]/`` intact.
    """
    return entry_id.rsplit(ID_SEPARATOR, 2)[0]


def build_fragments(url: str) -> list[str] | None:
    """Return the candidate fragments of ``url``, full URL first.

    Returns ``None`` when the URL cannot be parsed or is not absolute.
    """
    try:
        parsed = httpx.URL(url)
    except (httpx.InvalidURL, TypeError, ValueError):
        return None
    if not parsed.is_absolute_url:
        return None

    query = parsed.query.decode("ascii")
    path = parsed.raw_path.decode("ascii").partition("?")[0]
    search = f"?{query}" if query else ""
    authority = parsed.netloc.decode("ascii")

    fragments = [url, authority + path + search, path + search]
    if query:
        fragments.append(query)
    for name, value in parsed.params.multi_items():
        fragments.append(f"{name}={value}")
        fragments.append(value)
    return fragments


def diff_fragments(record: OwnerRecord, indexed: list[IndexEntry]) -> FragmentDiff:
    """Compute the entries to add and remove for ``record``.

    ``indexed`` holds what the store currently has for ``record.id``; it is
    not modified. Matching is case-insensitive and each stored entry can
    satisfy a single candidate.
    """
    remaining = list(indexed)
    diff = FragmentDiff()
    fragments = build_fragments(record.url) or []

    for position, fragment in enumerate(fragments):
        lower = fragment.lower()
        match = next(
            (i for i, entry in enumerate(remaining) if entry.fragment.lower() == lower),
            None,
        )
        if match is not None:
            del remaining[match]
            continue
        diff.to_insert.append(
            IndexEntry(
                id=new_entry_id(lower, record.category),
                fragment=fragment,
                owner_id=record.id,
                category=record.category,
                is_full_url=position == 0,
            )
        )

    diff.to_delete = remaining
    return diff
