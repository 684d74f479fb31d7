"""Location search for the cafe form, backed by OpenStreetMap Nominatim."""

import logging
from dataclasses import dataclass
from typing import Callable

import requests

from config.helpers import normalize_lat_lon
from services.cafe_store import Coordinate, Place
from services.exceptions import GeocodingError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_GEOCODER_URL = "https://nominatim.openstreetmap.org"
DEFAULT_SEARCH_LIMIT = 8

_OSM_TYPE_PREFIX = {'node': 'N', 'way': 'W', 'relation': 'R'}


@dataclass(frozen=True)
class SearchRegion:
    """Area that search results are biased towards (not restricted to)."""

    latitude: float
    longitude: float
    span: float = 0.5

    @classmethod
    def parse(cls, text):
        """Parses 'lat,lon' or 'lat,lon,span'."""
        parts = [p.strip() for p in str(text).split(',') if p.strip()]
        if len(parts) not in (2, 3):
            raise ValueError(f"Expected 'lat,lon[,span]', got {text!r}")
        return cls(*(float(p) for p in parts))

    def viewbox(self) -> str:
        half = self.span / 2
        # Nominatim order: left,top,right,bottom
        return f"{self.longitude - half},{self.latitude + half},{self.longitude + half},{self.latitude - half}"


# Singapore, as the app's seed data
DEFAULT_SEARCH_REGION = SearchRegion(1.3521, 103.8198, 0.5)


@dataclass(frozen=True)
class Candidate:
    """A search suggestion, before it is resolved to a final place."""

    title: str
    subtitle: str
    coordinate: Coordinate | None
    reference: str | None

    def to_record(self) -> dict:
        return {
            'title': self.title,
            'subtitle': self.subtitle,
            'lat': self.coordinate.latitude if self.coordinate else None,
            'lon': self.coordinate.longitude if self.coordinate else None,
            'reference': self.reference,
        }

    @classmethod
    def from_record(cls, record: dict) -> 'Candidate':
        lat, lon = normalize_lat_lon(record.get('lat'), record.get('lon'))
        coordinate = None
        if lat is not None:
            try:
                coordinate = Coordinate(lat, lon)
            except ValidationError:
                coordinate = None
        return cls(
            title=record.get('title') or '',
            subtitle=record.get('subtitle') or '',
            coordinate=coordinate,
            reference=record.get('reference'),
        )


def place_to_record(place: Place | None) -> dict | None:
    if place is None:
        return None
    return {
        'address': place.address,
        'lat': place.coordinate.latitude,
        'lon': place.coordinate.longitude,
    }


def place_from_record(record: dict | None) -> Place | None:
    if not record:
        return None
    return Place(record.get('address') or '', Coordinate(record.get('lat'), record.get('lon')))


def _split_display_name(item):
    """Splits a Nominatim result into (title, subtitle), like a search completion."""
    display_name = item.get('display_name') or ''
    parts = [p.strip() for p in display_name.split(',') if p.strip()]
    title = (item.get('name') or '').strip() or (parts[0] if parts else '')
    if parts and parts[0] == title:
        parts = parts[1:]
    return title, ', '.join(parts)


class NominatimGeocoder:
    """Search and lookup against a Nominatim server."""

    def __init__(
        self,
        base_url: str = DEFAULT_GEOCODER_URL,
        user_agent: str = "cafe-log",
        *,
        region: SearchRegion | None = None,
        timeout: float = 10,
        session: requests.Session | None = None,
    ):
        self.base_url = base_url.rstrip('/')
        self.region = region
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({'User-Agent': user_agent})

    def _get(self, path, params):
        url = f"{self.base_url}/{path}"
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as exc:
            raise GeocodingError(f"Geocoding request to {url} failed: {exc}") from exc
        except ValueError as exc:
            raise GeocodingError(f"Geocoding response from {url} was not valid JSON") from exc
        if not isinstance(payload, list):
            raise GeocodingError(f"Unexpected geocoding response from {url}")
        return payload

    def search(self, query: str, limit: int = DEFAULT_SEARCH_LIMIT) -> list[Candidate]:
        """Return suggestions for a free-text query."""
        query = (query or '').strip()
        if not query:
            return []
        params = {'q': query, 'format': 'jsonv2', 'limit': limit}
        if self.region is not None:
            params['viewbox'] = self.region.viewbox()
            params['bounded'] = 0
        results = self._get('search', params)

        candidates = []
        for item in results or []:
            title, subtitle = _split_display_name(item)
            if not title:
                continue
            lat, lon = normalize_lat_lon(item.get('lat'), item.get('lon'))
            try:
                coordinate = Coordinate(lat, lon) if lat is not None else None
            except ValidationError:
                coordinate = None
            prefix = _OSM_TYPE_PREFIX.get(item.get('osm_type'))
            osm_id = item.get('osm_id')
            reference = f"{prefix}{osm_id}" if prefix and osm_id is not None else None
            candidates.append(Candidate(title, subtitle, coordinate, reference))
        logger.debug("Search %r returned %d candidates", query, len(candidates))
        return candidates

    def resolve(self, candidate: Candidate) -> Place | None:
        """Resolve a candidate to its final address and coordinate, or None."""
        if not candidate.reference:
            return None
        results = self._get('lookup', {'osm_ids': candidate.reference, 'format': 'jsonv2'})
        if not results:
            return None
        item = results[0]
        lat, lon = normalize_lat_lon(item.get('lat'), item.get('lon'))
        if lat is None:
            return None
        try:
            coordinate = Coordinate(lat, lon)
        except ValidationError:
            return None
        address = f"{candidate.title}, {candidate.subtitle}" if candidate.subtitle else candidate.title
        return Place(address, coordinate)


class LocationPicker:
    """Search-then-choose flow that yields one address/coordinate pair.

    Results replace each other in the order they complete; there is no
    cancellation of a superseded search. Failures are logged and otherwise
    silent: the picker simply keeps no candidates or no selection.
    """

    def __init__(
        self,
        geocoder,
        *,
        on_location_selected: Callable[[Place], None] | None = None,
        selection: Place | None = None,
    ):
        self.geocoder = geocoder
        self.on_location_selected = on_location_selected
        self.candidates = []
        self.selection = selection
        self.closed = False

    @property
    def can_confirm(self) -> bool:
        return self.selection is not None and not self.closed

    def search(self, query: str) -> list[Candidate]:
        if self.closed:
            return self.candidates
        try:
            self.candidates = self.geocoder.search(query)
        except GeocodingError as exc:
            logger.warning("Location search failed: %s", exc)
            self.candidates = []
        return self.candidates

    def choose(self, candidate: Candidate) -> Place | None:
        if self.closed:
            return None
        try:
            place = self.geocoder.resolve(candidate)
        except GeocodingError as exc:
            logger.warning("Location lookup failed for %r: %s", candidate.title, exc)
            return None
        if place is None:
            logger.info("No resolution for candidate %r", candidate.title)
            return None
        self.selection = place
        return place

    def confirm(self) -> Place | None:
        if not self.can_confirm:
            return None
        self.closed = True
        if self.on_location_selected:
            self.on_location_selected(self.selection)
        return self.selection

    def cancel(self) -> None:
        self.closed = True
