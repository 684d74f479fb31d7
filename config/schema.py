# Schema for cafe records as they are held in the browser session (dcc.Store)
CAFE_SCHEMA = {
    'id': {
        'type': 'str',
        'default': None,
    },
    'name': {
        'type': 'str',
        'default': '',
    },
    'date_visited': {
        # ISO-8601 string, e.g. '2025-10-05T14:30:00'
        'type': 'datetime',
        'default': None,
    },
    'rating': {
        'type': 'int',
        'default': 3,
    },
    'specialty': {
        'type': 'str',
        'default': 'drinks',
    },
    'notes': {
        'type': 'str',
        'default': '',
    },
    'favourite': {
        'type': 'bool',
        'default': False,
    },
    'location': {
        'type': 'str',
        'default': '',
    },
    'lat': {
        'type': 'float',
        'default': None,
    },
    'lon': {
        'type': 'float',
        'default': None,
    },
}

MIN_RATING = 1
MAX_RATING = 5

# Seed records loaded on every page load; 'days_ago' is relative to load time
SEED_CAFES = [
    {
        'name': 'Hvala',
        'days_ago': 5,
        'rating': 5,
        'specialty': 'drinks',
        'notes': 'Excellent coffee and service',
        'favourite': False,
        'location': '23 Duxton Rd, Singapore',
    },
    {
        'name': 'September Coffee',
        'days_ago': 10,
        'rating': 3,
        'specialty': 'food',
        'notes': 'Tasty pastries, friendly staff',
        'favourite': False,
        'location': '45 Kampong Glam Rd, Singapore',
    },
    {
        'name': 'Syip',
        'days_ago': 30,
        'rating': 4,
        'specialty': 'music',
        'notes': 'Live music on weekends',
        'favourite': True,
        'location': '12 Tanjong Pagar Rd, Singapore',
    },
]
