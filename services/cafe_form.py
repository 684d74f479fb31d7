"""Add/edit form for a single cafe record."""

import logging
from dataclasses import dataclass
from datetime import date, datetime
from enum import Enum
from typing import Callable

from config.helpers import clamp_rating, coerce_value
from services.cafe_store import Cafe, Place, Specialty
from services.exceptions import FormClosedError, ValidationError

logger = logging.getLogger(__name__)

CafeCallback = Callable[[Cafe], None]

DEFAULT_RATING = 3
DEFAULT_SPECIALTY = Specialty.DRINKS


class FormMode(Enum):
    ADD = 'add'
    EDIT = 'edit'


@dataclass(frozen=True)
class FormNotice:
    """A blocking notice the user must dismiss before continuing."""

    title: str
    message: str


MISSING_NAME_NOTICE = FormNotice("Missing Name", "Please enter a cafe name")


def _text_value(field, text):
    if text is None:
        return ''
    if not isinstance(text, str):
        raise ValidationError(f"{field} must be text, got {text!r}")
    return text


class CafeForm:
    """Collects the fields of one cafe and hands the result back on submit.

    The mode is fixed at construction: without `cafe` the form adds a new
    record, with `cafe` it edits that record. Edits are made on working
    values only; the original record is never mutated. On a successful
    submit the form fires exactly one of `on_added` / `on_updated` and
    closes itself.
    """

    def __init__(
        self,
        cafe: Cafe | None = None,
        *,
        on_added: CafeCallback | None = None,
        on_updated: CafeCallback | None = None,
        now: datetime | None = None,
    ):
        self._original = cafe
        self.mode = FormMode.ADD if cafe is None else FormMode.EDIT
        self.on_added = on_added
        self.on_updated = on_updated
        self.notice = None
        self.closed = False

        if cafe is None:
            self.name = ''
            self.date_visited = now or datetime.now()
            self.rating = DEFAULT_RATING
            self.specialty = DEFAULT_SPECIALTY
            self.notes = ''
            self.favourite = False
            self.location = ''
            self.coordinate = None
        else:
            self.name = cafe.name
            self.date_visited = cafe.date_visited
            self.rating = cafe.rating
            self.specialty = cafe.specialty
            self.notes = cafe.notes
            self.favourite = cafe.favourite
            self.location = cafe.location
            self.coordinate = cafe.coordinate

    @property
    def title(self) -> str:
        return "Add Cafe" if self.mode is FormMode.ADD else "Edit Cafe"

    @property
    def original(self) -> Cafe | None:
        return self._original

    def _ensure_open(self):
        if self.closed:
            raise FormClosedError("This form has already been submitted or cancelled")

    # Field setters

    def set_name(self, text):
        self._ensure_open()
        self.name = _text_value('name', text)

    def set_notes(self, text):
        self._ensure_open()
        self.notes = _text_value('notes', text)

    def set_favourite(self, flag):
        self._ensure_open()
        self.favourite = bool(flag)

    def set_date_visited(self, value):
        """Set the visit date from a datetime, a date or an ISO string.

        A bare date keeps the time of day of the current working value, so
        re-submitting the same calendar day leaves the timestamp untouched.
        """
        self._ensure_open()
        if isinstance(value, datetime):
            self.date_visited = value
            return
        if isinstance(value, str):
            parsed = coerce_value(value, 'datetime')
            if parsed is None:
                raise ValidationError(f"Invalid visit date: {value!r}")
            if 'T' in value or ' ' in value.strip():
                self.date_visited = parsed
                return
            value = parsed.date()
        if not isinstance(value, date):
            raise ValidationError(f"Invalid visit date: {value!r}")
        if value != self.date_visited.date():
            self.date_visited = datetime.combine(value, self.date_visited.time())

    def set_rating(self, value) -> int:
        """Set the rating, clamping out-of-range requests into [1, 5]."""
        self._ensure_open()
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValidationError(f"Rating must be an integer, got {value!r}")
        self.rating = clamp_rating(value)
        return self.rating

    def step_rating(self, delta: int) -> int:
        return self.set_rating(self.rating + delta)

    def set_specialty(self, value) -> Specialty:
        self._ensure_open()
        self.specialty = Specialty.parse(value)
        return self.specialty

    def select_location(self, place: Place) -> None:
        """Take the address and coordinate of a picked place together."""
        self._ensure_open()
        if not isinstance(place, Place):
            raise ValidationError("A location can only be set from a picked Place")
        self.location = place.address
        self.coordinate = place.coordinate

    def fill(self, **values) -> None:
        """Apply several working values at once via their setters."""
        setters = {
            'name': self.set_name,
            'notes': self.set_notes,
            'favourite': self.set_favourite,
            'date_visited': self.set_date_visited,
            'rating': self.set_rating,
            'specialty': self.set_specialty,
            'place': self.select_location,
        }
        for key, value in values.items():
            if key not in setters:
                raise TypeError(f"Unknown form field: {key}")
            if key == 'place' and value is None:
                continue
            setters[key](value)

    def working_values(self) -> dict:
        return {
            'name': self.name,
            'date_visited': self.date_visited,
            'rating': self.rating,
            'specialty': self.specialty,
            'notes': self.notes,
            'favourite': self.favourite,
            'location': self.location,
            'coordinate': self.coordinate,
        }

    # Actions

    def dismiss_notice(self) -> None:
        self.notice = None

    def cancel(self) -> None:
        """Close the form without emitting anything."""
        self._ensure_open()
        self.closed = True
        logger.debug("%s cancelled", self.title)

    def submit(self) -> Cafe | None:
        """Validate and hand the record back through the mode's callback.

        Returns the added or updated record, or None when the name is missing
        (the form then stays open with `notice` set).
        """
        self._ensure_open()
        if not self.name.strip():
            self.notice = MISSING_NAME_NOTICE
            logger.info("%s rejected: missing name", self.title)
            return None

        self.notice = None
        if self.mode is FormMode.EDIT:
            cafe = self._original.replace(**self.working_values())
            self.closed = True
            logger.info("Updated cafe %s (%r)", cafe.id, cafe.name)
            if self.on_updated:
                self.on_updated(cafe)
        else:
            cafe = Cafe(**self.working_values())
            self.closed = True
            logger.info("Added cafe %s (%r)", cafe.id, cafe.name)
            if self.on_added:
                self.on_added(cafe)
        return cafe
