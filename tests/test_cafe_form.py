"""Tests for the add/edit cafe form."""

from datetime import date, datetime

import pytest

from services.cafe_form import MISSING_NAME_NOTICE, CafeForm, FormMode
from services.cafe_store import Cafe, Coordinate, Place, Specialty
from services.exceptions import FormClosedError, ValidationError

NOW = datetime(2025, 10, 10, 15, 45)


@pytest.fixture
def existing():
    return Cafe(
        name="Hvala",
        date_visited=datetime(2025, 10, 5, 9, 30),
        rating=5,
        specialty=Specialty.DRINKS,
        notes="Excellent coffee and service",
        favourite=True,
        location="23 Duxton Rd, Singapore",
    )


def test_add_mode_defaults():
    """Add mode starts from blank fields, rating 3 and drinks."""
    form = CafeForm(now=NOW)

    assert form.mode is FormMode.ADD
    assert form.title == "Add Cafe"
    assert form.working_values() == {
        "name": "",
        "date_visited": NOW,
        "rating": 3,
        "specialty": Specialty.DRINKS,
        "notes": "",
        "favourite": False,
        "location": "",
        "coordinate": None,
    }


def test_edit_mode_copies_every_field(existing):
    """Edit mode starts from the record's current values."""
    form = CafeForm(existing)

    assert form.mode is FormMode.EDIT
    assert form.title == "Edit Cafe"
    assert form.working_values() == {
        "name": existing.name,
        "date_visited": existing.date_visited,
        "rating": existing.rating,
        "specialty": existing.specialty,
        "notes": existing.notes,
        "favourite": existing.favourite,
        "location": existing.location,
        "coordinate": existing.coordinate,
    }


def test_add_submit_emits_new_record(mocker):
    """Submitting in add mode hands a new record to on_added."""
    on_added = mocker.Mock()
    on_updated = mocker.Mock()
    form = CafeForm(on_added=on_added, on_updated=on_updated, now=NOW)
    form.fill(name="Test Cafe", rating=5, specialty="food", notes="Great toast")

    cafe = form.submit()

    on_added.assert_called_once_with(cafe)
    on_updated.assert_not_called()
    assert form.closed
    assert cafe.name == "Test Cafe"
    assert cafe.rating == 5
    assert cafe.specialty is Specialty.FOOD
    assert cafe.notes == "Great toast"
    assert cafe.date_visited == NOW
    assert cafe.favourite is False


def test_edit_submit_emits_updated_copy_with_same_id(existing, mocker):
    """Submitting in edit mode hands a copy with the same id to on_updated."""
    on_updated = mocker.Mock()
    form = CafeForm(existing, on_updated=on_updated)
    form.set_rating(2)

    cafe = form.submit()

    on_updated.assert_called_once_with(cafe)
    assert cafe.id == existing.id
    assert cafe.rating == 2
    assert cafe.name == existing.name
    assert cafe.notes == existing.notes
    assert cafe.date_visited == existing.date_visited
    # the original is never mutated
    assert existing.rating == 5


@pytest.mark.parametrize("name", ["", "   "])
def test_submit_rejects_blank_name(name, mocker):
    """A blank name raises the missing-name notice and keeps the form open."""
    on_added = mocker.Mock()
    form = CafeForm(on_added=on_added)
    form.set_name(name)

    assert form.submit() is None

    on_added.assert_not_called()
    assert form.notice == MISSING_NAME_NOTICE
    assert form.notice.title == "Missing Name"
    assert not form.closed


def test_submit_after_fixing_name_succeeds(mocker):
    """After the notice, fixing the name lets the submit through."""
    on_added = mocker.Mock()
    form = CafeForm(on_added=on_added)
    form.submit()
    form.dismiss_notice()
    form.set_name("Hvala")

    cafe = form.submit()

    assert cafe.name == "Hvala"
    assert form.notice is None
    on_added.assert_called_once_with(cafe)


def test_edit_with_blanked_name_is_rejected(existing, mocker):
    """Blanking the name of an existing cafe is rejected too."""
    on_updated = mocker.Mock()
    form = CafeForm(existing, on_updated=on_updated)
    form.set_name("  ")

    assert form.submit() is None
    on_updated.assert_not_called()


@pytest.mark.parametrize(
    "requested, expected",
    [(0, 1), (-10, 1), (1, 1), (4, 4), (5, 5), (6, 5), (99, 5)],
)
def test_rating_is_clamped(requested, expected):
    """Out-of-range ratings clamp to the nearest bound."""
    form = CafeForm()

    assert form.set_rating(requested) == expected
    assert form.rating == expected


def test_step_rating_stops_at_bounds():
    """Stepping never leaves the 1..5 range."""
    form = CafeForm()

    for _ in range(5):
        form.step_rating(1)
    assert form.rating == 5
    for _ in range(10):
        form.step_rating(-1)
    assert form.rating == 1


def test_rating_must_be_integer():
    """A non-integer rating is rejected."""
    with pytest.raises(ValidationError):
        CafeForm().set_rating("five")


def test_specialty_is_restricted():
    """Only known specialties can be selected; a bad one keeps the old value."""
    form = CafeForm()

    assert form.set_specialty("ambience") is Specialty.AMBIENCE
    assert form.set_specialty(Specialty.MUSIC) is Specialty.MUSIC
    with pytest.raises(ValidationError):
        form.set_specialty("cold brew")
    assert form.specialty is Specialty.MUSIC


def test_select_location_sets_address_and_coordinate_together():
    """A picked place sets address and coordinate in one step."""
    form = CafeForm()
    place = Place("Hvala, 23 Duxton Rd, Singapore", Coordinate(1.2797, 103.8434))

    form.select_location(place)

    assert form.location == place.address
    assert form.coordinate == place.coordinate


def test_select_location_requires_a_place():
    """Anything other than a Place is rejected without touching the location."""
    form = CafeForm()

    with pytest.raises(ValidationError):
        form.select_location(("Somewhere", None))
    assert form.location == ""
    assert form.coordinate is None


def test_picked_location_lands_on_record():
    """The picked place ends up on the submitted record."""
    form = CafeForm(now=NOW)
    form.fill(name="Hvala", place=Place("Hvala, Duxton", Coordinate(1.28, 103.84)))

    cafe = form.submit()

    assert cafe.location == "Hvala, Duxton"
    assert cafe.coordinate == Coordinate(1.28, 103.84)


def test_set_date_keeps_time_of_day_for_bare_dates(existing):
    """A bare date keeps the working time of day; a full timestamp replaces it."""
    form = CafeForm(existing)

    form.set_date_visited("2025-10-05")
    assert form.date_visited == existing.date_visited

    form.set_date_visited(date(2025, 10, 1))
    assert form.date_visited == datetime(2025, 10, 1, 9, 30)

    form.set_date_visited("2025-09-30T18:00:00")
    assert form.date_visited == datetime(2025, 9, 30, 18, 0)


def test_set_date_rejects_garbage():
    """An unparseable date is rejected."""
    with pytest.raises(ValidationError):
        CafeForm().set_date_visited("not a date")


def test_cancel_emits_nothing_and_leaves_original(existing, mocker):
    """Cancelling fires no callback and leaves the record as it was."""
    on_updated = mocker.Mock()
    form = CafeForm(existing, on_updated=on_updated)
    form.fill(name="Renamed", rating=1, favourite=False)

    form.cancel()

    on_updated.assert_not_called()
    assert form.closed
    assert existing.name == "Hvala"
    assert existing.rating == 5
    assert existing.favourite is True


def test_closed_form_cannot_be_reused(mocker):
    """A submitted form refuses any further use."""
    on_added = mocker.Mock()
    form = CafeForm(on_added=on_added)
    form.set_name("Once")
    form.submit()

    with pytest.raises(FormClosedError):
        form.submit()
    with pytest.raises(FormClosedError):
        form.set_name("Twice")
    with pytest.raises(FormClosedError):
        form.cancel()
    on_added.assert_called_once()


def test_fill_rejects_unknown_fields():
    """fill() refuses fields the form does not have."""
    with pytest.raises(TypeError):
        CafeForm().fill(colour="brown")


@pytest.mark.parametrize("value", [5, 4.5, ["Hvala"]])
def test_text_fields_reject_non_strings(value):
    """Name and notes only take text; the working value stays as it was."""
    form = CafeForm()
    form.set_name("Hvala")

    with pytest.raises(ValidationError):
        form.set_name(value)
    with pytest.raises(ValidationError):
        form.set_notes(value)
    assert form.name == "Hvala"
    assert form.notes == ""


def test_text_fields_treat_none_as_empty():
    """None clears a text field, which then fails the name check on submit."""
    form = CafeForm()
    form.set_name(None)
    form.set_notes(None)

    assert form.submit() is None
    assert form.notice == MISSING_NAME_NOTICE
    assert form.notes == ""
