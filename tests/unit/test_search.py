"""Unit tests for urlindexer.search and UrlIndexer.query."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from urlindexer.models.records import OwnerRecord
from urlindexer.search import next_casing

if TYPE_CHECKING:
    from urlindexer.indexer import UrlIndexer

# ---------------------------------------------------------------------------
# next_casing
# ---------------------------------------------------------------------------


class TestNextCasing:
    def test_jumps_to_upper_case_needle(self) -> None:
        assert next_casing("/", "API", "api") == "API"

    def test_jumps_to_lower_case_character(self) -> None:
        assert next_casing("api.mulesoft.com/", "DOMAIN.COM", "domain.com") == "dOMAIN.COM"

    def test_keeps_matched_prefix(self) -> None:
        assert next_casing("/api/test1", "/API/TEST4", "/api/test4") == "/api/test4"

    def test_no_later_key_can_match(self) -> None:
        assert next_casing("https://domain.com/", "API", "api") is None

    def test_key_shorter_than_needle(self) -> None:
        assert next_casing("/", "/API", "/api") == "/API"

    def test_non_letters_have_single_spelling(self) -> None:
        assert next_casing("/api/test1", "178", "178") == "178"


# ---------------------------------------------------------------------------
# Query algorithms
# ---------------------------------------------------------------------------

REQUESTS = [
    OwnerRecord(id="test-id-1", url="https://domain.com/Api/Path?p1=1&p2=2", category="saved"),
    OwnerRecord(id="test-id-2", url="https://domain.com/", category="saved"),
    OwnerRecord(id="test-id-3", url="https://api.domain.com/", category="history"),
    OwnerRecord(id="test-id-4", url="https://api.mulesoft.com/path/to?param=1", category="history"),
]

IP_REQUESTS = [
    OwnerRecord(id="test-id-1", url="https://178.1.2.5/api/test1", category="history"),
    OwnerRecord(id="test-id-2", url="https://178.1.2.5/api/test2", category="history"),
    OwnerRecord(id="test-id-3", url="https://178.1.2.5/api/test3", category="history"),
    OwnerRecord(id="test-id-4", url="https://128.1.2.5/api/test4", category="history"),
]

GROUP_MATCH = {"test-id-1": "history", "test-id-2": "history", "test-id-3": "history"}
PATH_MATCH = {**GROUP_MATCH, "test-id-4": "history"}


class TestPrefixSearch:
    @pytest.mark.parametrize(
        ("text", "total", "saved", "history"),
        [
            ("https:", 4, 2, 2),
            ("api", 2, 0, 2),
            ("domain.com", 3, 2, 1),
            ("mulesoft.com", 0, 0, 0),
        ],
    )
    async def test_result_counts(
        self, indexer: UrlIndexer, text: str, total: int, saved: int, history: int
    ) -> None:
        await indexer.index(REQUESTS)
        assert len(await indexer.query(text)) == total
        assert len(await indexer.query(text, category="saved")) == saved
        assert len(await indexer.query(text, category="history")) == history

    async def test_is_case_insensitive(self, indexer: UrlIndexer) -> None:
        await indexer.index(REQUESTS)
        assert set(await indexer.query("API.DOMAIN")) == {"test-id-3"}

    async def test_returns_owner_categories(self, indexer: UrlIndexer) -> None:
        await indexer.index(REQUESTS)
        assert await indexer.query("https:") == {
            "test-id-1": "saved",
            "test-id-2": "saved",
            "test-id-3": "history",
            "test-id-4": "history",
        }

    async def test_category_alias(self, indexer: UrlIndexer) -> None:
        await indexer.index(REQUESTS)
        result = await indexer.query("https:", category="saved-requests")
        assert set(result.values()) == {"saved"}

    async def test_empty_index(self, indexer: UrlIndexer) -> None:
        assert await indexer.query("api") == {}

    async def test_root_path_key_does_not_end_scan(self, indexer: UrlIndexer) -> None:
        await indexer.index(
            [
                OwnerRecord(id="root", url="https://domain.com/", category="saved"),
                OwnerRecord(id="api", url="https://domain.com/api/users", category="saved"),
            ]
        )
        assert set(await indexer.query("/api")) == {"api"}


class TestSubstringSearch:
    @pytest.mark.parametrize(
        ("text", "total", "saved", "history"),
        [
            ("https:", 4, 2, 2),
            ("api", 3, 1, 2),
            ("domain.com", 3, 2, 1),
            ("mulesoft.com", 1, 0, 1),
        ],
    )
    async def test_result_counts(
        self, indexer: UrlIndexer, text: str, total: int, saved: int, history: int
    ) -> None:
        await indexer.index(REQUESTS)
        assert len(await indexer.query(text, detailed=True)) == total
        assert len(await indexer.query(text, category="saved", detailed=True)) == saved
        assert len(await indexer.query(text, category="history", detailed=True)) == history

    async def test_finds_more_than_prefix_search(self, indexer: UrlIndexer) -> None:
        await indexer.index(REQUESTS)
        prefix = await indexer.query("api")
        substring = await indexer.query("api", detailed=True)
        assert set(prefix) < set(substring)


class TestIpAddressSearch:
    @pytest.mark.parametrize("text", ["178", "178.1", "178.1.2", "178.1.2.5"])
    async def test_partial_ip_address(self, indexer: UrlIndexer, text: str) -> None:
        await indexer.index(IP_REQUESTS)
        assert await indexer.query(text, category="history") == GROUP_MATCH

    @pytest.mark.parametrize("text", ["/api", "api"])
    @pytest.mark.parametrize("detailed", [False, True])
    async def test_matches_path(self, indexer: UrlIndexer, text: str, detailed: bool) -> None:
        await indexer.index(IP_REQUESTS)
        result = await indexer.query(text, category="history", detailed=detailed)
        assert result == PATH_MATCH

    @pytest.mark.parametrize("text", ["/api/test4", "api/test4"])
    @pytest.mark.parametrize("detailed", [False, True])
    async def test_matches_specific_path(
        self, indexer: UrlIndexer, text: str, detailed: bool
    ) -> None:
        await indexer.index(IP_REQUESTS)
        result = await indexer.query(text, category="history", detailed=detailed)
        assert result["test-id-4"] == "history"
