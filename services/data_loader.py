from datetime import datetime, timedelta

from config.schema import SEED_CAFES
from services.cafe_store import Cafe, CafeStore


def load_seed_cafes(now=None, seeds=SEED_CAFES):
    """
    Builds the records a fresh session starts with.

    Args:
        now (datetime, optional): Reference time for the 'days_ago' offsets.
            Defaults to the current time.
        seeds (list[dict], optional): Seed definitions. Each dict holds the
            record fields of CAFE_SCHEMA plus 'days_ago' (int), the age of the
            visit relative to `now`. Defaults to SEED_CAFES.

    Returns:
        CafeStore: A store holding one Cafe per seed, in seed order. Every
            call returns new records with new ids.
    """
    if now is None:
        now = datetime.now()

    cafes = []
    for seed in seeds:
        fields = {k: v for k, v in seed.items() if k != 'days_ago'}
        fields['date_visited'] = now - timedelta(days=seed.get('days_ago', 0))
        cafes.append(Cafe.from_record(fields))
    return CafeStore(cafes)
