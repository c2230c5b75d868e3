"""
Tests for pagination helpers.
"""

from __future__ import annotations

from core.helpers import calculate_pagination, paginate_sequence, validate_uuid


class TestCalculatePagination:
    def test_middle_page(self):
        meta = calculate_pagination(total=25, page=2, per_page=10)

        assert meta["total_pages"] == 3
        assert meta["has_next"] is True
        assert meta["has_previous"] is True
        assert meta["start_index"] == 10
        assert meta["end_index"] == 20

    def test_empty_result_has_one_page(self):
        meta = calculate_pagination(total=0, page=1, per_page=10)

        assert meta["total_pages"] == 1
        assert meta["has_next"] is False
        assert meta["has_previous"] is False


class TestPaginateSequence:
    def test_last_partial_page(self):
        items, pagination = paginate_sequence(list(range(25)), page=3, per_page=10)

        assert items == [20, 21, 22, 23, 24]
        assert pagination == {
            "currentPage": 3,
            "totalPages": 3,
            "totalItems": 25,
            "itemsPerPage": 10,
            "hasNextPage": False,
            "hasPreviousPage": True,
        }

    def test_page_past_end_is_empty(self):
        items, pagination = paginate_sequence([1, 2, 3], page=5, per_page=10)

        assert items == []
        assert pagination["totalPages"] == 1
        assert pagination["hasNextPage"] is False


def test_validate_uuid():
    assert validate_uuid("550e8400-e29b-41d4-a716-446655440000") is True
    assert validate_uuid("not-a-uuid") is False
    assert validate_uuid(None) is False
