from datetime import date, datetime

from config.schema import MAX_RATING, MIN_RATING
from dash import html, dcc

# Helper: normalize/coerce values by type (based on the data type specified on the schema)
def coerce_value(value, type_decl):
    if value is None:
        return None
    if type_decl == 'str':
        try:
            return str(value)
        except Exception:
            return None
    if type_decl == 'int':
        if isinstance(value, bool):
            return None
        if isinstance(value, float) and not value.is_integer():
            return None
        try:
            return int(value)
        except (TypeError, ValueError):
            return None
    if type_decl == 'float':
        try:
            return float(value)
        except (TypeError, ValueError):
            return None
    if type_decl == 'bool':
        if isinstance(value, str):
            return value.strip().lower() in ('true', '1', 'yes', 'on')
        return bool(value)
    if type_decl == 'datetime':
        if isinstance(value, datetime):
            return value
        if isinstance(value, date):
            return datetime.combine(value, datetime.min.time())
        try:
            return datetime.fromisoformat(str(value))
        except ValueError:
            return None
    return value

def coerce_from_schema(fields, schema, key):
    value = fields.get(key)
    type_decl = schema[key]['type']
    default = schema[key]['default']
    coerced = coerce_value(value, type_decl)
    return coerced if coerced is not None else default


# Utility helpers for consistent rendering
def normalize_lat_lon(lat, lon):
    try:
        return float(lat), float(lon)
    except (TypeError, ValueError):
        return None, None


def clamp_rating(value):
    """Clamps a requested rating into [MIN_RATING, MAX_RATING].

    Args:
        value (int): The requested rating; may be out of range.

    Returns:
        int: The nearest allowed rating.
    """
    return max(MIN_RATING, min(MAX_RATING, value))


def format_visit_date(value):
    # medium style, e.g. 'Oct 5, 2025'
    if not value:
        return ''
    return f"{value:%b} {value.day}, {value.year}"


def build_specialty_badge(specialty):
    return html.Span(f"✨ {specialty.label}", className="type-badge specialty-badge")


def build_popup_content(cafe):
    return html.Div([
        html.H4(cafe.name, className="popup-title"),
        html.Div(cafe.location, className="popup-address") if cafe.location else None,
    ], className="popup-content")


def build_cafe_list_item(cafe, index):
    """Builds one row of the cafe list.

    Args:
        cafe (Cafe): The record to render.
        index (int): Position of the record in the store; used as the
            pattern-matching index of the row's buttons.

    Returns:
        html.Div: The row, with 'cafe-open' and 'cafe-delete' buttons.
    """
    return html.Div([
        html.Div([
            html.H4([
                cafe.name,
                html.Span(" ♥", className="favourite-mark") if cafe.favourite else None,
            ], className="resource-item-title"),
            html.Div(f"📅 {format_visit_date(cafe.date_visited)}", className="cafe-date"),
            html.Div(cafe.stars, className="cafe-rating"),
            html.Div(build_specialty_badge(cafe.specialty), className="type-badges"),
        ], className="cafe-item-body"),
        html.Div([
            html.Button(
                "Open",
                id={'type': 'cafe-open', 'index': index},
                className="filter-pill",
                n_clicks=0
            ),
            html.Button(
                "Delete",
                id={'type': 'cafe-delete', 'index': index},
                className="filter-pill filter-pill--danger",
                n_clicks=0
            ),
        ], className="cafe-item-actions"),
    ], className='resource-item')


def build_detail_sections(rows):
    """Renders the (header, [(label, value), ...]) sections of a detail screen.

    The 'LOCATION MAP' section is skipped here; the caller places the map.
    A section without a header is rendered as bare rows.
    """
    sections = []
    for header, items in rows:
        if header == 'LOCATION MAP':
            continue
        sections.append(html.Div([
            html.H5(header, className="detail-section-title") if header else None,
            html.Div([
                html.Div([
                    html.Span(label, className="detail-label"),
                    (dcc.Markdown(value, className="notes notes--compact") if header == 'PERSONAL NOTES'
                     else html.Span(value, className="detail-value")),
                ], className="detail-row")
                for label, value in items
            ])
        ], className="detail-section"))
    return sections


def build_candidate_item(candidate, index):
    return html.Button([
        html.Div(candidate.title, className="candidate-title"),
        html.Div(candidate.subtitle, className="candidate-subtitle") if candidate.subtitle else None,
    ], id={'type': 'picker-candidate', 'index': index}, className="candidate-item", n_clicks=0)
