"""Cafe records and the in-memory store that owns them."""

import dataclasses
import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from config.helpers import coerce_from_schema, coerce_value, normalize_lat_lon
from config.schema import CAFE_SCHEMA, MAX_RATING, MIN_RATING
from services.exceptions import CafeNotFoundError, ValidationError

logger = logging.getLogger(__name__)


class Specialty(str, Enum):
    """What a cafe is best at. The set of values is fixed."""

    DRINKS = 'drinks'
    FOOD = 'food'
    MUSIC = 'music'
    AMBIENCE = 'ambience'

    @property
    def label(self) -> str:
        return self.value.capitalize()

    @classmethod
    def parse(cls, value) -> 'Specialty':
        """Return the member for `value`, accepting members or their string values."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            allowed = ', '.join(s.value for s in cls)
            raise ValidationError(f"Unknown specialty {value!r}; expected one of: {allowed}") from None


@dataclass(frozen=True)
class Coordinate:
    """A resolved geographic position."""

    latitude: float
    longitude: float

    def __post_init__(self):
        lat, lon = normalize_lat_lon(self.latitude, self.longitude)
        if lat is None or lon is None:
            raise ValidationError(f"Coordinate needs numeric latitude and longitude, got {self.latitude!r}, {self.longitude!r}")
        if not -90.0 <= lat <= 90.0:
            raise ValidationError(f"Latitude out of range: {lat}")
        if not -180.0 <= lon <= 180.0:
            raise ValidationError(f"Longitude out of range: {lon}")
        object.__setattr__(self, 'latitude', lat)
        object.__setattr__(self, 'longitude', lon)

    def as_list(self) -> list[float]:
        """[lat, lon], the order dash-leaflet expects for positions and centers."""
        return [self.latitude, self.longitude]


@dataclass(frozen=True)
class Place:
    """An address together with the coordinate it was resolved to."""

    address: str
    coordinate: Coordinate


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class Cafe:
    """One saved cafe visit.

    Records are immutable; use `replace` to derive an updated copy that keeps
    the same `id`. Two records are the same entity only when their ids match.
    """

    name: str
    date_visited: datetime = field(default_factory=datetime.now)
    rating: int = 3
    specialty: Specialty = Specialty.DRINKS
    notes: str = ''
    favourite: bool = False
    location: str = ''
    coordinate: Coordinate | None = None
    id: str = field(default_factory=_new_id)

    def __post_init__(self):
        if not isinstance(self.name, str) or not self.name.strip():
            raise ValidationError("Cafe name must not be empty")
        if isinstance(self.rating, bool) or not isinstance(self.rating, int):
            raise ValidationError(f"Rating must be an integer, got {self.rating!r}")
        if not MIN_RATING <= self.rating <= MAX_RATING:
            raise ValidationError(f"Rating must be between {MIN_RATING} and {MAX_RATING}, got {self.rating}")
        if not isinstance(self.date_visited, datetime):
            raise ValidationError(f"date_visited must be a datetime, got {self.date_visited!r}")
        if self.coordinate is not None and not isinstance(self.coordinate, Coordinate):
            raise ValidationError("coordinate must be a Coordinate or None")
        if not self.id:
            raise ValidationError("Cafe id must not be empty")
        object.__setattr__(self, 'specialty', Specialty.parse(self.specialty))
        object.__setattr__(self, 'notes', self.notes or '')
        object.__setattr__(self, 'location', self.location or '')
        object.__setattr__(self, 'favourite', bool(self.favourite))

    @property
    def stars(self) -> str:
        return '⭐️' * self.rating

    @property
    def has_coordinate(self) -> bool:
        return self.coordinate is not None

    def replace(self, **changes) -> 'Cafe':
        """Return a copy with `changes` applied and re-validated. The id never changes."""
        if 'id' in changes and changes['id'] != self.id:
            raise ValidationError("A cafe's id cannot be changed")
        return dataclasses.replace(self, **changes)

    def to_record(self) -> dict:
        """JSON-safe dict for the session store."""
        record = {
            'id': self.id,
            'name': self.name,
            'date_visited': self.date_visited.isoformat(),
            'rating': self.rating,
            'specialty': self.specialty.value,
            'notes': self.notes,
            'favourite': self.favourite,
            'location': self.location,
            'lat': None,
            'lon': None,
        }
        if self.coordinate is not None:
            record['lat'] = self.coordinate.latitude
            record['lon'] = self.coordinate.longitude
        return record

    @classmethod
    def from_record(cls, record: dict) -> 'Cafe':
        """Build a Cafe from a session-store dict (see CAFE_SCHEMA)."""
        coerce_cafe_schema = lambda key: coerce_from_schema(record, CAFE_SCHEMA, key)

        lat, lon = coerce_cafe_schema('lat'), coerce_cafe_schema('lon')
        if (lat is None) != (lon is None):
            raise ValidationError("A cafe record needs both 'lat' and 'lon' or neither")
        raw_rating = record.get('rating')
        if raw_rating is not None and coerce_value(raw_rating, 'int') is None:
            raise ValidationError(f"Rating must be an integer, got {raw_rating!r}")
        coordinate = Coordinate(lat, lon) if lat is not None else None

        kwargs = {
            'name': coerce_cafe_schema('name'),
            'rating': coerce_cafe_schema('rating'),
            'specialty': coerce_cafe_schema('specialty'),
            'notes': coerce_cafe_schema('notes'),
            'favourite': coerce_cafe_schema('favourite'),
            'location': coerce_cafe_schema('location'),
            'coordinate': coordinate,
        }
        date_visited = coerce_cafe_schema('date_visited')
        if date_visited is not None:
            kwargs['date_visited'] = date_visited
        cafe_id = coerce_cafe_schema('id')
        if cafe_id:
            kwargs['id'] = cafe_id
        return cls(**kwargs)


class CafeStore:
    """Ordered, in-memory collection of cafe records.

    The store is the only source of truth for records; screens hand changes
    back to it through callbacks. It has a single consumer and is mutated
    synchronously.
    """

    def __init__(self, cafes=()):
        self._cafes = list(cafes)

    @classmethod
    def from_records(cls, records) -> 'CafeStore':
        return cls(Cafe.from_record(r) for r in (records or []))

    def to_records(self) -> list[dict]:
        return [cafe.to_record() for cafe in self._cafes]

    def __len__(self):
        return len(self._cafes)

    def __iter__(self):
        return iter(tuple(self._cafes))

    def list(self) -> tuple[Cafe, ...]:
        """All records in insertion order."""
        return tuple(self._cafes)

    def index_of(self, cafe_id: str) -> int:
        for index, cafe in enumerate(self._cafes):
            if cafe.id == cafe_id:
                return index
        raise CafeNotFoundError(f"No cafe with id {cafe_id!r}")

    def get(self, cafe_id: str) -> Cafe:
        return self._cafes[self.index_of(cafe_id)]

    def insert(self, cafe: Cafe) -> None:
        """Append a record to the end. Names need not be unique."""
        if not isinstance(cafe, Cafe):
            raise TypeError(f"Expected a Cafe, got {type(cafe).__name__}")
        self._cafes.append(cafe)
        logger.debug("Inserted cafe %s (%r); %d records", cafe.id, cafe.name, len(self._cafes))

    def update(self, cafe: Cafe) -> None:
        """Replace the record that has the same id as `cafe`."""
        index = self.index_of(cafe.id)
        self._cafes[index] = cafe
        logger.debug("Updated cafe %s (%r) at index %d", cafe.id, cafe.name, index)

    def delete(self, index: int) -> Cafe:
        """Remove and return the record at `index`."""
        if isinstance(index, bool) or not isinstance(index, int):
            raise TypeError(f"Index must be an integer, got {index!r}")
        if not 0 <= index < len(self._cafes):
            raise IndexError(f"Cafe index {index} out of range for {len(self._cafes)} records")
        cafe = self._cafes.pop(index)
        logger.debug("Deleted cafe %s (%r) from index %d", cafe.id, cafe.name, index)
        return cafe
