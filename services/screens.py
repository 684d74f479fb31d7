"""List and detail screens, and how updates flow between them and the store."""

import logging

from config.helpers import format_visit_date
from services.cafe_form import CafeCallback, CafeForm
from services.cafe_store import Cafe, CafeStore

logger = logging.getLogger(__name__)

DIRECTIONS_URL = "https://www.google.com/maps/dir/?api=1&destination={lat},{lon}"


class CafeDetailScreen:
    """Read-only view of one cafe with an edit entry point.

    Updates coming back from the edit form replace the displayed record and
    are passed on, unchanged, to `on_updated`.
    """

    def __init__(self, cafe: Cafe, *, on_updated: CafeCallback | None = None):
        self.cafe = cafe
        self.on_updated = on_updated

    @property
    def title(self) -> str:
        return self.cafe.name

    def rows(self):
        """Returns [(section header, [(label, value), ...]), ...]."""
        cafe = self.cafe
        sections = [
            ("CAFE INFORMATION", [("☕️ Name", cafe.name)]),
            ("EXPERIENCE", [
                ("⭐️ Rating", cafe.stars),
                ("✨ Specialty", cafe.specialty.label),
            ]),
            ("VISIT DETAILS", [
                ("📅 Date Visited", format_visit_date(cafe.date_visited)),
                ("📍 Location", cafe.location),
            ]),
        ]
        if cafe.coordinate is not None:
            sections.append(("LOCATION MAP", [
                ("Coordinate", f"{cafe.coordinate.latitude:.5f}, {cafe.coordinate.longitude:.5f}"),
            ]))
        else:
            # map slot without a header
            sections.append((None, [("No location data", "")]))
        sections.append(("PERSONAL NOTES", [("📝 Notes", cafe.notes or "No notes")]))
        return sections

    def directions_url(self) -> str | None:
        if self.cafe.coordinate is None:
            return None
        return DIRECTIONS_URL.format(lat=self.cafe.coordinate.latitude, lon=self.cafe.coordinate.longitude)

    def edit(self) -> CafeForm:
        return CafeForm(self.cafe, on_updated=self._handle_updated)

    def _handle_updated(self, cafe: Cafe) -> None:
        self.cafe = cafe
        if self.on_updated:
            self.on_updated(cafe)


class CafeListScreen:
    """Front screen over the store: opens details, starts adds, applies deletes."""

    def __init__(self, store: CafeStore):
        self.store = store

    def rows(self) -> tuple[Cafe, ...]:
        return self.store.list()

    def add(self, **form_kwargs) -> CafeForm:
        return CafeForm(on_added=self._handle_added, **form_kwargs)

    def open(self, index: int) -> CafeDetailScreen:
        return CafeDetailScreen(self.store.list()[index], on_updated=self._handle_updated)

    def open_cafe(self, cafe_id: str) -> CafeDetailScreen:
        return CafeDetailScreen(self.store.get(cafe_id), on_updated=self._handle_updated)

    def delete(self, index: int) -> Cafe:
        cafe = self.store.delete(index)
        logger.info("Deleted cafe %s (%r)", cafe.id, cafe.name)
        return cafe

    def _handle_added(self, cafe: Cafe) -> None:
        self.store.insert(cafe)

    def _handle_updated(self, cafe: Cafe) -> None:
        self.store.update(cafe)
