import pytest

from core.models import User
from core.pagination import (
    MAX_PAGE_SIZE,
    RESULT_LABELS,
    build_page,
    labels_for,
    normalize_page_options,
    paginate,
)
from core.pipeline import Pipeline, Sort


def numbered(count):
    return [{"id": f"{n:02d}", "n": n} for n in range(1, count + 1)]


class TestNormalizePageOptions:
    """Test lenient coercion of page options."""

    def test_defaults(self):
        assert normalize_page_options(None, None) == {"page": 1, "page_size": 10}

    def test_string_numbers(self):
        assert normalize_page_options("3", " 25 ") == {"page": 3, "page_size": 25}

    @pytest.mark.parametrize("value", ["abc", "0", "-4", "", "1.5", True, None])
    def test_invalid_values_fall_back(self, value):
        assert normalize_page_options(value, value) == {"page": 1, "page_size": 10}

    def test_page_size_is_capped(self):
        assert normalize_page_options(1, 10_000)["page_size"] == MAX_PAGE_SIZE


class TestBuildPage:
    """Test page slicing and metadata."""

    def test_middle_page(self):
        page = build_page(numbered(25), page=2, page_size=10)

        assert [d["n"] for d in page["items"]] == list(range(11, 21))
        assert page["totalCount"] == 25
        assert page["totalPages"] == 3
        assert page["hasNext"] is True
        assert page["hasPrev"] is True
        assert page["nextPage"] == 3
        assert page["prevPage"] == 1

    def test_last_partial_page(self):
        page = build_page(numbered(25), page=3, page_size=10)

        assert len(page["items"]) == 5
        assert page["hasNext"] is False
        assert page["nextPage"] is None

    def test_page_beyond_end_is_empty(self):
        page = build_page(numbered(5), page=4, page_size=2)

        assert page["items"] == []
        assert page["totalCount"] == 5
        assert page["totalPages"] == 3
        assert page["hasNext"] is False
        assert page["hasPrev"] is True

    def test_empty_result(self):
        page = build_page([], page=1, page_size=10)

        assert page["items"] == []
        assert page["totalCount"] == 0
        assert page["totalPages"] == 0
        assert page["hasNext"] is False
        assert page["hasPrev"] is False
        assert page["prevPage"] is None

    def test_empty_result_past_first_page(self):
        page = build_page([], page=2, page_size=10)

        assert page["page"] == 2
        assert page["hasPrev"] is False
        assert page["prevPage"] is None
        assert page["hasNext"] is False
        assert page["nextPage"] is None

    def test_labels_rename_keys(self):
        page = build_page(numbered(3), labels=labels_for("comments"))

        assert "comments" in page
        assert page["totalComments"] == 3
        assert "items" not in page

    def test_every_resource_has_labels(self):
        for resource, labels in RESULT_LABELS.items():
            assert labels.items == resource
            assert labels.total.startswith("total")

    def test_unknown_resource(self):
        with pytest.raises(KeyError):
            labels_for("unknown")


class TestPaginate:
    """Test paginate against the store."""

    async def test_paginates_pipeline_results(self, store):
        for n in range(3):
            await store.add(
                User(
                    username=f"user{n}",
                    email=f"user{n}@example.com",
                    full_name=f"User {n}",
                    password_hash="x",
                )
            )

        page = await paginate(store, Pipeline("users", [Sort("username", "asc")]), page=2, page_size=2)

        assert [d["username"] for d in page["items"]] == ["user2"]
        assert page["totalCount"] == 3
        assert page["totalPages"] == 2
