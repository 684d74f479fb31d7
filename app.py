import dash
from dash import html, dcc, Output, Input, State, ALL, no_update
import dash_leaflet as dl
import logging
import os
from config.helpers import *
from config.schema import MAX_RATING, MIN_RATING
from services.cafe_form import MISSING_NAME_NOTICE
from services.cafe_store import CafeStore, Specialty
from services.data_loader import load_seed_cafes
from services.exceptions import CafeNotFoundError
from services.location_picker import (
    DEFAULT_GEOCODER_URL,
    DEFAULT_SEARCH_REGION,
    Candidate,
    LocationPicker,
    NominatimGeocoder,
    SearchRegion,
    place_from_record,
    place_to_record,
)
from services.screens import CafeListScreen
from flask_caching import Cache

from dotenv import load_dotenv
load_dotenv()


def _env_number(name, default, cast=float):
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return cast(raw)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be a number, got {raw!r}") from None


# Geocoder and app settings from environment variables
GEOCODER_URL = os.getenv('GEOCODER_URL', DEFAULT_GEOCODER_URL)
GEOCODER_USER_AGENT = os.getenv('GEOCODER_USER_AGENT', 'cafe-log/0.1')
GEOCODER_TIMEOUT = _env_number('GEOCODER_TIMEOUT', 10.0)
SEARCH_CACHE_TIMEOUT = _env_number('SEARCH_CACHE_TIMEOUT', 300, int)
DEBUG = os.getenv('CAFE_LOG_DEBUG', 'false').strip().lower() == 'true'
LOG_LEVEL = os.getenv('CAFE_LOG_LOG_LEVEL', 'INFO').strip().upper()

try:
    SEARCH_REGION = SearchRegion.parse(os.environ['SEARCH_REGION']) if os.getenv('SEARCH_REGION') else DEFAULT_SEARCH_REGION
except ValueError as exc:
    raise RuntimeError(f"Invalid SEARCH_REGION: {exc}") from exc

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

MAP_ZOOM = 16
MAP_TILE_URL = "https://{s}.basemaps.cartocdn.com/rastertiles/voyager/{z}/{x}/{y}{r}.png"
MAP_ATTRIBUTION = '&copy; <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors &copy; <a href="https://carto.com/attributions">CARTO</a>'
LOCATION_PLACEHOLDER = "Tap to select location"

HIDDEN = {'display': 'none'}
SHOWN = {}


app = dash.Dash(__name__, suppress_callback_exceptions=True)

cache = Cache(app.server, config={"CACHE_TYPE": "SimpleCache", "CACHE_DEFAULT_TIMEOUT": SEARCH_CACHE_TIMEOUT})

geocoder = NominatimGeocoder(
    GEOCODER_URL,
    GEOCODER_USER_AGENT,
    region=SEARCH_REGION,
    timeout=GEOCODER_TIMEOUT,
)


@cache.memoize()
def cached_location_search(query):
    # Candidates are cached as plain dicts; failures raise and are not cached
    return [c.to_record() for c in geocoder.search(query)]


class CachedGeocoder:
    """Geocoder facade whose searches go through the flask cache."""

    def search(self, query):
        return [Candidate.from_record(r) for r in cached_location_search((query or '').strip())]

    def resolve(self, candidate):
        return geocoder.resolve(candidate)


def build_map(coordinate, children=None, height='200px'):
    return dl.Map(
        center=coordinate.as_list(),
        zoom=MAP_ZOOM,
        style={'height': height, 'width': '100%'},
        children=[
            dl.TileLayer(url=MAP_TILE_URL, attribution=MAP_ATTRIBUTION),
            dl.Marker(position=coordinate.as_list(), children=children),
        ]
    )


def serve_layout():
    # A fresh session starts with the seeded cafes
    seeded = load_seed_cafes()
    return html.Div([
        html.Div([
            html.Div([
                html.H1("My Cafes"),
                html.P("Cafes you have visited, and what you thought of them", className="subtitle")
            ], className="header-meta"),
            html.Div([
                html.Button("＋ Add Cafe", id='add-cafe-btn', className="header-cta filter-pill active", n_clicks=0),
            ], className="header-cta-container")
        ], className="header-container"),

        # Hidden stores
        dcc.Store(id='cafes-store', data=seeded.to_records()),
        dcc.Store(id='selected-cafe-store', data=None),
        dcc.Store(id='form-store', data=None),
        dcc.Store(id='form-rating-store', data=None),
        dcc.Store(id='form-location-store', data=None),
        dcc.Store(id='picker-candidates-store', data=[]),
        dcc.Store(id='picker-selection-store', data=None),

        # List screen
        html.Div([
            html.P(id="results-info", className="results-info"),
            html.Div(id="cafe-list", className="resource-list-scroll")
        ], id='list-panel', className="resource-list-container"),

        # Detail screen
        html.Div([
            html.Div([
                html.Button("‹ My Cafes", id='detail-back-btn', className="filter-pill", n_clicks=0),
                html.H2(id='detail-title', className="detail-title"),
                html.Button("Edit", id='detail-edit-btn', className="filter-pill active", n_clicks=0),
            ], className="detail-header"),
            html.Div(id='detail-body', className="detail-body"),
        ], id='detail-panel', className="detail-container", style=HIDDEN),

        # Add/edit form (modal)
        html.Div([
            html.Div([
                html.Div([
                    html.Button("Cancel", id='form-cancel-btn', className="filter-pill", n_clicks=0),
                    html.H3(id='form-title'),
                    html.Button("Save", id='form-save-btn', className="filter-pill active", n_clicks=0),
                ], className="modal-header"),
                html.H5("Basic Information", className="detail-section-title"),
                dcc.Input(id='form-name', type='text', placeholder="Enter cafe name", className="form-input"),
                html.H5("Visit Details", className="detail-section-title"),
                dcc.DatePickerSingle(id='form-date', display_format='MMM D, YYYY'),
                html.H5("Location", className="detail-section-title"),
                html.Button(LOCATION_PLACEHOLDER, id='form-location-btn', className="location-preset-btn", n_clicks=0),
                html.H5("Cafe Specialty", className="detail-section-title"),
                dcc.RadioItems(
                    id='form-specialty',
                    options=[{'label': s.label, 'value': s.value} for s in Specialty],
                    className="specialty-options"
                ),
                html.H5("Your Rating", className="detail-section-title"),
                html.Div([
                    html.Button("−", id='form-rating-down', className="filter-pill", n_clicks=0),
                    html.Span(id='form-rating-display', className="cafe-rating"),
                    html.Button("+", id='form-rating-up', className="filter-pill", n_clicks=0),
                ], className="rating-stepper"),
                dcc.Checklist(
                    id='form-favourite',
                    options=[{'label': ' Favourite', 'value': 'favourite'}],
                    value=[]
                ),
                html.H5("Additional Notes", className="detail-section-title"),
                dcc.Textarea(id='form-notes', className="form-notes", style={'width': '100%', 'minHeight': '100px'}),
            ], className="modal-content")
        ], id='form-panel', className="modal-overlay", style=HIDDEN),

        # Location picker (modal over the form)
        html.Div([
            html.Div([
                html.Div([
                    html.Button("Cancel", id='picker-cancel-btn', className="filter-pill", n_clicks=0),
                    html.H3("Select Location"),
                    html.Button("Done", id='picker-done-btn', className="filter-pill active", n_clicks=0, disabled=True),
                ], className="modal-header"),
                dcc.Input(id='picker-query', type='search', placeholder="Search for a location", debounce=True, className="form-input"),
                html.Div(id='picker-results', className="resource-list-scroll"),
                html.Div(id='picker-preview'),
            ], className="modal-content")
        ], id='picker-panel', className="modal-overlay modal-overlay--top", style=HIDDEN),

        dcc.ConfirmDialog(id='missing-name-dialog', message=MISSING_NAME_NOTICE.message),
    ], className="_dash-container")


app.title = "My Cafes"
app.layout = serve_layout


def _clicked(ctx):
    # Pattern-matching buttons fire on (re-)render with n_clicks 0; only real clicks count
    return bool(ctx.triggered_id) and bool(ctx.triggered and ctx.triggered[0].get('value'))


# List screen
@app.callback(
    [Output('cafe-list', 'children'),
     Output('results-info', 'children')],
    Input('cafes-store', 'data')
)
def render_cafe_list(cafes_data):
    screen = CafeListScreen(CafeStore.from_records(cafes_data))
    rows = screen.rows()
    items = [build_cafe_list_item(cafe, index) for index, cafe in enumerate(rows)]
    if not rows:
        return items, "No cafes yet. Add the first one you visited."
    return items, f"{len(rows)} cafe{'s' if len(rows) != 1 else ''} visited"


@app.callback(
    Output('selected-cafe-store', 'data'),
    [Input({'type': 'cafe-open', 'index': ALL}, 'n_clicks'),
     Input('detail-back-btn', 'n_clicks')],
    State('cafes-store', 'data'),
    prevent_initial_call=True
)
def navigate(open_clicks, back_clicks, cafes_data):
    ctx = dash.callback_context
    if not _clicked(ctx):
        return no_update
    if ctx.triggered_id == 'detail-back-btn':
        return None

    index = ctx.triggered_id.get('index')
    screen = CafeListScreen(CafeStore.from_records(cafes_data))
    return screen.open(index).cafe.id


@app.callback(
    Output('cafes-store', 'data', allow_duplicate=True),
    Input({'type': 'cafe-delete', 'index': ALL}, 'n_clicks'),
    State('cafes-store', 'data'),
    prevent_initial_call=True
)
def delete_cafe(delete_clicks, cafes_data):
    ctx = dash.callback_context
    if not _clicked(ctx):
        return no_update
    store = CafeStore.from_records(cafes_data)
    CafeListScreen(store).delete(ctx.triggered_id.get('index'))
    return store.to_records()


# Detail screen
@app.callback(
    [Output('list-panel', 'style'),
     Output('detail-panel', 'style'),
     Output('detail-title', 'children'),
     Output('detail-body', 'children')],
    [Input('selected-cafe-store', 'data'),
     Input('cafes-store', 'data')]
)
def render_detail(selected_id, cafes_data):
    if not selected_id:
        return SHOWN, HIDDEN, None, None
    try:
        detail = CafeListScreen(CafeStore.from_records(cafes_data)).open_cafe(selected_id)
    except CafeNotFoundError:
        return SHOWN, HIDDEN, None, None

    body = build_detail_sections(detail.rows())
    cafe = detail.cafe
    if cafe.coordinate is not None:
        # map goes between the visit details and the notes
        body.insert(len(body) - 1, html.Div([
            html.H5("LOCATION MAP", className="detail-section-title"),
            build_map(cafe.coordinate, dl.Popup(build_popup_content(cafe))),
            html.A(
                '🧭 Get directions',
                href=detail.directions_url(),
                target='_blank',
                className="google-maps-link google-maps-link--small"
            ),
        ], className="detail-section"))
    return HIDDEN, SHOWN, detail.title, body


# Form screen
@app.callback(
    [Output('form-store', 'data'),
     Output('form-title', 'children'),
     Output('form-name', 'value'),
     Output('form-date', 'date'),
     Output('form-specialty', 'value'),
     Output('form-notes', 'value'),
     Output('form-favourite', 'value'),
     Output('form-rating-store', 'data'),
     Output('form-location-store', 'data')],
    [Input('add-cafe-btn', 'n_clicks'),
     Input('detail-edit-btn', 'n_clicks')],
    [State('selected-cafe-store', 'data'),
     State('cafes-store', 'data')],
    prevent_initial_call=True
)
def open_form(add_clicks, edit_clicks, selected_id, cafes_data):
    ctx = dash.callback_context
    if not _clicked(ctx):
        return [no_update] * 9

    screen = CafeListScreen(CafeStore.from_records(cafes_data))
    if ctx.triggered_id == 'detail-edit-btn':
        if not selected_id:
            return [no_update] * 9
        form = screen.open_cafe(selected_id).edit()
        form_state = {'mode': form.mode.value, 'cafe_id': selected_id}
    else:
        form = screen.add()
        form_state = {'mode': form.mode.value, 'cafe_id': None}

    return (
        form_state,
        form.title,
        form.name,
        form.date_visited.date().isoformat(),
        form.specialty.value,
        form.notes,
        ['favourite'] if form.favourite else [],
        form.rating,
        # only places picked in this form session live here
        None,
    )


@app.callback(
    Output('form-panel', 'style'),
    Input('form-store', 'data')
)
def toggle_form(form_state):
    return SHOWN if form_state else HIDDEN


@app.callback(
    Output('form-rating-store', 'data', allow_duplicate=True),
    [Input('form-rating-down', 'n_clicks'),
     Input('form-rating-up', 'n_clicks')],
    State('form-rating-store', 'data'),
    prevent_initial_call=True
)
def step_rating(down_clicks, up_clicks, rating):
    ctx = dash.callback_context
    if not _clicked(ctx) or rating is None:
        return no_update
    delta = -1 if ctx.triggered_id == 'form-rating-down' else 1
    return clamp_rating(rating + delta)


@app.callback(
    [Output('form-rating-display', 'children'),
     Output('form-rating-down', 'disabled'),
     Output('form-rating-up', 'disabled')],
    Input('form-rating-store', 'data')
)
def render_rating(rating):
    if rating is None:
        return None, True, True
    return "⭐️" * rating, rating <= MIN_RATING, rating >= MAX_RATING


@app.callback(
    Output('form-location-btn', 'children'),
    [Input('form-location-store', 'data'),
     Input('form-store', 'data')],
    State('cafes-store', 'data')
)
def render_location_label(location_data, form_state, cafes_data):
    if location_data:
        return location_data.get('address') or LOCATION_PLACEHOLDER
    if form_state and form_state.get('cafe_id'):
        try:
            cafe = CafeStore.from_records(cafes_data).get(form_state['cafe_id'])
        except CafeNotFoundError:
            return LOCATION_PLACEHOLDER
        return cafe.location or LOCATION_PLACEHOLDER
    return LOCATION_PLACEHOLDER


@app.callback(
    [Output('cafes-store', 'data', allow_duplicate=True),
     Output('form-store', 'data', allow_duplicate=True),
     Output('missing-name-dialog', 'displayed')],
    [Input('form-save-btn', 'n_clicks'),
     Input('form-cancel-btn', 'n_clicks')],
    [State('form-store', 'data'),
     State('form-name', 'value'),
     State('form-date', 'date'),
     State('form-specialty', 'value'),
     State('form-notes', 'value'),
     State('form-favourite', 'value'),
     State('form-rating-store', 'data'),
     State('form-location-store', 'data'),
     State('cafes-store', 'data')],
    prevent_initial_call=True
)
def close_form(save_clicks, cancel_clicks, form_state, name, date_visited, specialty, notes,
               favourite, rating, location_data, cafes_data):
    ctx = dash.callback_context
    if not _clicked(ctx) or not form_state:
        return no_update, no_update, no_update

    store = CafeStore.from_records(cafes_data)
    screen = CafeListScreen(store)
    if form_state.get('mode') == 'edit':
        form = screen.open_cafe(form_state['cafe_id']).edit()
    else:
        form = screen.add()

    if ctx.triggered_id == 'form-cancel-btn':
        form.cancel()
        return no_update, None, False

    values = {
        'name': name,
        'notes': notes,
        'favourite': 'favourite' in (favourite or []),
        'place': place_from_record(location_data),
    }
    if date_visited:
        values['date_visited'] = date_visited
    if rating is not None:
        values['rating'] = rating
    if specialty:
        values['specialty'] = specialty
    form.fill(**values)

    if form.submit() is None:
        return no_update, no_update, True
    return store.to_records(), None, False


# Location picker
@app.callback(
    [Output('picker-panel', 'style'),
     Output('picker-query', 'value'),
     Output('picker-candidates-store', 'data'),
     Output('picker-selection-store', 'data'),
     Output('form-location-store', 'data', allow_duplicate=True)],
    [Input('form-location-btn', 'n_clicks'),
     Input('picker-cancel-btn', 'n_clicks'),
     Input('picker-done-btn', 'n_clicks')],
    State('picker-selection-store', 'data'),
    prevent_initial_call=True
)
def handle_picker_buttons(location_clicks, cancel_clicks, done_clicks, selection_data):
    ctx = dash.callback_context
    if not _clicked(ctx):
        return [no_update] * 5

    if ctx.triggered_id == 'form-location-btn':
        return SHOWN, '', [], None, no_update

    picked = []
    picker = LocationPicker(
        CachedGeocoder(),
        on_location_selected=picked.append,
        selection=place_from_record(selection_data),
    )
    if ctx.triggered_id == 'picker-cancel-btn':
        picker.cancel()
        return HIDDEN, no_update, no_update, no_update, no_update

    if picker.confirm() is None:
        return [no_update] * 5
    return HIDDEN, no_update, no_update, no_update, place_to_record(picked[0])


@app.callback(
    [Output('picker-candidates-store', 'data', allow_duplicate=True),
     Output('picker-selection-store', 'data', allow_duplicate=True)],
    Input('picker-query', 'value'),
    prevent_initial_call=True
)
def search_locations(query):
    picker = LocationPicker(CachedGeocoder())
    candidates = picker.search(query)
    # a new query starts a new selection
    return [c.to_record() for c in candidates], None


@app.callback(
    Output('picker-selection-store', 'data', allow_duplicate=True),
    Input({'type': 'picker-candidate', 'index': ALL}, 'n_clicks'),
    State('picker-candidates-store', 'data'),
    prevent_initial_call=True
)
def choose_location(candidate_clicks, candidates_data):
    ctx = dash.callback_context
    if not _clicked(ctx):
        return no_update
    index = ctx.triggered_id.get('index')
    if index is None or index >= len(candidates_data or []):
        return no_update

    picker = LocationPicker(CachedGeocoder())
    place = picker.choose(Candidate.from_record(candidates_data[index]))
    if place is None:
        return no_update
    return place_to_record(place)


@app.callback(
    [Output('picker-results', 'children'),
     Output('picker-results', 'style'),
     Output('picker-preview', 'children'),
     Output('picker-done-btn', 'disabled')],
    [Input('picker-candidates-store', 'data'),
     Input('picker-selection-store', 'data')]
)
def render_picker(candidates_data, selection_data):
    place = place_from_record(selection_data)
    picker = LocationPicker(CachedGeocoder(), selection=place)
    results = [build_candidate_item(Candidate.from_record(c), i) for i, c in enumerate(candidates_data or [])]
    if place is None:
        return results, SHOWN, None, not picker.can_confirm

    preview = html.Div([
        html.P(place.address, className="results-info"),
        build_map(place.coordinate, dl.Tooltip(place.address), height='50vh'),
    ])
    return results, HIDDEN, preview, not picker.can_confirm


if __name__ == '__main__':
    port = int(os.environ.get('PORT', 8050))
    logger.info("Starting cafe-log on port %d (geocoder: %s)", port, GEOCODER_URL)
    app.run(debug=DEBUG, host='0.0.0.0', port=port)
