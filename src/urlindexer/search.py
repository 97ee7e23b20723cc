"""Query algorithms over the URL index.

``search_substring`` only looks at full-URL entries and matches the query
anywhere in them. ``search_prefix`` walks every entry in key order but
jumps over key ranges that cannot start with the query, so it is much
faster on large indexes while finding mostly prefix matches: a query for
``api`` finds ``api.domain.com`` but not ``https://domain.com/api``.

Both return ``{owner_id: category}``; the first matching entry of an owner
decides its category.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from urlindexer.fragments import fragment_key

if TYPE_CHECKING:
    from collections.abc import AsyncIterable

    from urlindexer.models.index import IndexEntry
    from urlindexer.protocols import OrderedCursor


def _upper(text: str) -> str:
    # Characters whose upper case is longer (e.g. "ß") would shift offsets
    return "".join(c.upper() if len(c.upper()) == 1 else c for c in text)


def next_casing(key: str, upper_needle: str, lower_needle: str) -> str | None:
    """Return the smallest key after ``key`` that may start with the needle.

    ``key`` is a lowercase fragment. Index ids are lowercase, and upper case
    letters sort before lower case ones, so the upper-cased needle is the
    lowest spelling a matching key can have. ``None`` means no later key
    can match.
    """
    length = min(len(key), len(lower_needle))
    for i in range(length):
        if key[i] == lower_needle[i]:
            continue
        if key[i] < upper_needle[i]:
            return key[:i] + upper_needle[i] + upper_needle[i + 1 :]
        if key[i] < lower_needle[i]:
            return key[:i] + lower_needle[i] + upper_needle[i + 1 :]
        return None
    if length < len(lower_needle):
        return key + upper_needle[length:]
    return None


async def search_prefix(
    cursor: OrderedCursor, query: str, category: str | None = None
) -> dict[str, str]:
    lower_needle = query.lower()
    upper_needle = _upper(lower_needle)
    results: dict[str, str] = {}

    entry = await cursor.next()
    while entry is not None:
        if category and entry.category != category:
            entry = await cursor.next()
            continue
        key = fragment_key(entry.id)
        if lower_needle in key:
            results.setdefault(entry.owner_id, entry.category)
            entry = await cursor.next()
            continue
        target = next_casing(key, upper_needle, lower_needle)
        if target is None:
            break
        entry = await cursor.seek(target)
    return results


async def search_substring(
    entries: AsyncIterable[IndexEntry], query: str, category: str | None = None
) -> dict[str, str]:
    lower_needle = query.lower()
    results: dict[str, str] = {}
    async for entry in entries:
        if category and entry.category != category:
            continue
        if lower_needle in fragment_key(entry.id):
            results.setdefault(entry.owner_id, entry.category)
    return results
