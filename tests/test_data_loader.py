"""Tests for seed loading and schema coercion."""

from datetime import date, datetime

import pytest

from config.helpers import clamp_rating, coerce_from_schema, coerce_value, format_visit_date
from config.schema import CAFE_SCHEMA
from services.cafe_store import Specialty
from services.data_loader import load_seed_cafes

NOW = datetime(2025, 10, 10, 8, 0)


def test_seed_cafes():
    """The three seed records load with dates relative to now."""
    cafes = load_seed_cafes(now=NOW).list()

    assert [c.name for c in cafes] == ["Hvala", "September Coffee", "Syip"]
    assert [c.rating for c in cafes] == [5, 3, 4]
    assert [c.specialty for c in cafes] == [Specialty.DRINKS, Specialty.FOOD, Specialty.MUSIC]
    assert [c.favourite for c in cafes] == [False, False, True]
    assert cafes[0].date_visited == datetime(2025, 10, 5, 8, 0)
    assert cafes[2].date_visited == datetime(2025, 9, 10, 8, 0)
    assert all(c.coordinate is None for c in cafes)


def test_each_load_gets_new_ids():
    """Every load generates fresh record ids."""
    first = {c.id for c in load_seed_cafes(now=NOW)}
    second = {c.id for c in load_seed_cafes(now=NOW)}

    assert len(first) == 3
    assert first.isdisjoint(second)


def test_custom_seeds():
    """Missing seed fields fall back to schema defaults."""
    store = load_seed_cafes(now=NOW, seeds=[{"name": "Only One", "rating": 2}])

    (cafe,) = store.list()
    assert cafe.name == "Only One"
    assert cafe.rating == 2
    assert cafe.date_visited == NOW


@pytest.mark.parametrize(
    "value, type_decl, expected",
    [
        ("4", "int", 4),
        ("four", "int", None),
        (True, "int", None),
        (4.0, "int", 4),
        (4.9, "int", None),
        ("1.5", "float", 1.5),
        ("yes", "bool", True),
        ("false", "bool", False),
        (0, "bool", False),
        ("2025-10-05T09:30:00", "datetime", datetime(2025, 10, 5, 9, 30)),
        (date(2025, 10, 5), "datetime", datetime(2025, 10, 5)),
        ("yesterday", "datetime", None),
        (None, "str", None),
    ],
)
def test_coerce_value(value, type_decl, expected):
    """Values coerce by their declared type, or to None when they cannot."""
    assert coerce_value(value, type_decl) == expected


def test_coerce_from_schema_falls_back_to_default():
    """Missing or uncoercible fields take the schema default."""
    assert coerce_from_schema({"rating": "bad"}, CAFE_SCHEMA, "rating") == 3
    assert coerce_from_schema({}, CAFE_SCHEMA, "favourite") is False
    assert coerce_from_schema({}, CAFE_SCHEMA, "lat") is None


def test_clamp_rating():
    """Ratings clamp into the allowed range."""
    assert [clamp_rating(v) for v in (-3, 1, 3, 5, 8)] == [1, 1, 3, 5, 5]


def test_format_visit_date():
    """Visit dates use the medium date style."""
    assert format_visit_date(datetime(2025, 10, 5, 9, 30)) == "Oct 5, 2025"
    assert format_visit_date(None) == ""
