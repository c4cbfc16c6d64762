import pytest

from finengine.domain import InvalidPayload
from finengine.sorting import sort_large_dataset


def sort(items, sort_by, direction="asc"):
    return sort_large_dataset({"items": items, "sortBy": sort_by, "direction": direction})


def test_dates_chronological_and_reversed():
    items = [{"date": "2024-03-01"}, {"date": "2024-01-01"}, {"date": "2024-02-01"}]
    assert [i["date"] for i in sort(items, "date")] == ["2024-01-01", "2024-02-01", "2024-03-01"]
    assert [i["date"] for i in sort(items, "date", "desc")] == ["2024-03-01", "2024-02-01", "2024-01-01"]


def test_invalid_dates_trail_in_both_directions():
    items = [{"date": "invalid"}, {"date": "2024-02-01"}, {"date": None}, {"date": "2024-01-01"}]
    assert [i["date"] for i in sort(items, "date")] == ["2024-01-01", "2024-02-01", "invalid", None]
    assert [i["date"] for i in sort(items, "date", "desc")] == ["2024-02-01", "2024-01-01", "invalid", None]


def test_numeric_strings_compare_as_numbers():
    items = [{"amount": "10"}, {"amount": "2"}, {"amount": 33}, {"amount": None}]
    assert [i["amount"] for i in sort(items, "amount")] == [None, "2", "10", 33]


def test_strings_case_insensitive():
    items = [{"name": "banana"}, {"name": "Apple"}, {"name": "cherry"}, {"name": 7}]
    assert [i["name"] for i in sort(items, "name")] == [7, "Apple", "banana", "cherry"]
    assert [i["name"] for i in sort(items, "name", "desc")] == ["cherry", "banana", "Apple", 7]


def test_integer_too_large_for_float_sorts_as_text():
    items = [{"amount": 5}, {"amount": 10**400}, {"amount": 40}]
    assert [i["amount"] for i in sort(items, "amount")] == [10**400, 40, 5]


def test_ties_keep_input_order_in_both_directions():
    items = [{"amount": 5, "id": "a"}, {"amount": 1, "id": "b"}, {"amount": 5, "id": "c"}, {"amount": 1, "id": "d"}]
    assert [i["id"] for i in sort(items, "amount")] == ["b", "d", "a", "c"]
    assert [i["id"] for i in sort(items, "amount", "desc")] == ["a", "c", "b", "d"]


def test_anything_but_asc_is_descending():
    items = [{"amount": 1}, {"amount": 3}, {"amount": 2}]
    assert [i["amount"] for i in sort(items, "amount", None)] == [3, 2, 1]


def test_input_list_is_not_reordered():
    items = [{"amount": 3}, {"amount": 1}]
    result = sort(items, "amount")
    assert [i["amount"] for i in items] == [3, 1]
    assert result is not items


def test_empty_items():
    assert sort([], "date") == []


def test_sort_by_required():
    with pytest.raises(InvalidPayload, match="sortBy"):
        sort_large_dataset({"items": [], "direction": "asc"})
