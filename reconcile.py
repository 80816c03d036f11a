"""
reconcile.py — Keeps a user's visited provinces consistent with their places.

A province counts as visited exactly when at least one logged place
references it. The rules run in two places:

  * incrementally, after a place is created, moved or deleted
    (after_place_created / after_place_removed), and
  * in bulk, via reconcile() / apply_reconciliation(), which repairs any
    drift left behind by older clients or manual province toggles.

reconcile() and merge_with_catalogue() work on plain dicts so they can be
tested without a database; the remaining helpers take a SQLAlchemy session
and leave committing to the caller.
"""

import logging
from datetime import datetime, timezone
from typing import NamedTuple

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.orm import Session

import province_catalog
from province_catalog import resolve, slugify
from models import Place, UserProvince

logger = logging.getLogger(__name__)


class Upsert(NamedTuple):
    province_id: str
    province_name: str
    visited: bool


# ---------------------------------------------------------------------------
# Pure reconciliation
# ---------------------------------------------------------------------------

def reconcile(places: list[dict], provinces: list[dict]) -> tuple[list[dict], list[Upsert]]:
    """
    Bidirectional sync between places and province rows.

    places    — place dicts (only 'location' is read), newest first
    provinces — [{'id', 'name', 'visited'}, ...]

    Returns (reconciled_provinces, upserts). The input lists are not mutated.
    """
    locations = [p['location'] for p in places if p.get('location')]
    place_names = {loc.lower() for loc in locations}
    place_ids = set()
    for loc in locations:
        place_ids.add(slugify(loc))
        place_ids.add(resolve(loc)[0])

    upserts: list[Upsert] = []

    # 1. Reverse: unmark visited provinces that no place references
    reconciled = []
    for prov in provinces:
        prov = dict(prov)
        if prov['visited']:
            has_place = prov['name'].lower() in place_names or prov['id'] in place_ids
            if not has_place:
                prov['visited'] = False
                upserts.append(Upsert(prov['id'], prov['name'], False))
        reconciled.append(prov)

    # 2. Forward: mark every referenced province visited
    unique_locations: dict[str, str] = {}
    for loc in locations:
        province_id, province_name = resolve(loc)
        unique_locations.setdefault(province_id, province_name)

    by_id = {p['id']: p for p in reconciled}
    visited_names = {p['name'].lower() for p in reconciled if p['visited']}

    for province_id, province_name in unique_locations.items():
        if province_id in by_id and province_name.lower() in visited_names:
            continue
        upserts.append(Upsert(province_id, province_name, True))
        existing = by_id.get(province_id)
        if existing is not None:
            existing['visited'] = True
            existing['name'] = province_name
        else:
            entry = {'id': province_id, 'name': province_name, 'visited': True}
            reconciled.append(entry)
            by_id[province_id] = entry

    return reconciled, upserts


def merge_with_catalogue(user_provinces: list[dict], signed_in: bool = True) -> list[dict]:
    """
    Overlay a user's province rows onto the full catalogue.

    A row belongs to a catalogue entry when its id is the entry's id or its
    name resolves to it. An entry is visited when any of its rows is.
    Entries without rows are unvisited for signed-in users and fall back to
    the demo flags otherwise. Rows that belong to no entry are appended.
    """
    owners = [
        up['id'] if province_catalog.get(up['id']) else resolve(up['name'])[0]
        for up in user_provinces
    ]

    merged = []
    for prov in province_catalog.PROVINCES:
        rows = [up for up, owner in zip(user_provinces, owners) if owner == prov.id]
        if rows:
            visited = any(up['visited'] for up in rows)
        else:
            visited = False if signed_in else prov.demo_visited
        merged.append({
            'id':      prov.id,
            'name':    prov.name,
            'region':  prov.region,
            'visited': visited,
        })

    for up, owner in zip(user_provinces, owners):
        if province_catalog.get(owner):
            continue
        merged.append({
            'id':      up['id'],
            'name':    up['name'],
            'region':  None,
            'visited': bool(up['visited']),
        })
    return merged


# ---------------------------------------------------------------------------
# Database helpers
# ---------------------------------------------------------------------------

# ON CONFLICT upserts; both dialects key on the uq_user_province columns.
_INSERTS = {
    'sqlite':     sqlite_insert,
    'postgresql': postgresql_insert,
}


def upsert_province(db: Session, user_id: str, province_id: str,
                    province_name: str, visited: bool) -> UserProvince:
    """
    Insert or overwrite the (user, province) row. Last write wins.

    Runs as a single INSERT ... ON CONFLICT DO UPDATE, so two writers racing
    on the same province never trip the unique constraint.
    """
    dialect = db.get_bind().dialect.name
    try:
        insert = _INSERTS[dialect]
    except KeyError:
        raise RuntimeError(f'province upsert is not supported on {dialect!r}')

    stmt = insert(UserProvince).values(
        user_id=user_id,
        province_id=province_id,
        province_name=province_name,
        visited=visited,
        updated_at=datetime.now(timezone.utc),
    )
    stmt = stmt.on_conflict_do_update(
        index_elements=['user_id', 'province_id'],
        set_={
            'province_name': stmt.excluded.province_name,
            'visited':       stmt.excluded.visited,
            'updated_at':    stmt.excluded.updated_at,
        },
    )
    db.execute(stmt)
    return (
        db.query(UserProvince)
        .filter_by(user_id=user_id, province_id=province_id)
        .populate_existing()
        .one()
    )


def after_place_created(db: Session, user_id: str, location: str) -> UserProvince | None:
    """Mark the province a new place belongs to as visited."""
    if not location:
        return None
    province_id, province_name = resolve(location)
    return upsert_province(db, user_id, province_id, province_name, True)


def after_place_removed(db: Session, user_id: str, location: str) -> UserProvince | None:
    """
    Unmark the province a place belonged to, unless another of the user's
    places still references it. Returns the updated row, or None if the
    province is still visited.
    """
    if not location:
        return None
    db.flush()   # the session does not autoflush; the removed place must be gone

    province_id, province_name = resolve(location)
    remaining = db.query(Place.location).filter_by(user_id=user_id).all()
    for (loc,) in remaining:
        if not loc:
            continue
        if (loc.lower() == province_name.lower()
                or slugify(loc) == province_id
                or resolve(loc)[0] == province_id):
            return None
    return upsert_province(db, user_id, province_id, province_name, False)


def apply_reconciliation(db: Session, user_id: str) -> tuple[list[dict], int]:
    """Run reconcile() over the user's rows and persist the result."""
    places = (
        db.query(Place)
        .filter_by(user_id=user_id)
        .order_by(Place.created_at.desc())
        .all()
    )
    rows = db.query(UserProvince).filter_by(user_id=user_id).all()

    reconciled, upserts = reconcile(
        [p.to_dict() for p in places],
        [r.to_dict() for r in rows],
    )
    for u in upserts:
        upsert_province(db, user_id, u.province_id, u.province_name, u.visited)
    db.commit()

    if upserts:
        logger.info("Reconciled provinces for user %s: %d change(s)", user_id, len(upserts))
    return reconciled, len(upserts)
