"""
provinces.py — Visited-province routes for Thailand Tracker (FastAPI)

Routes:
  GET  /api/provinces          — the caller's province rows
  PUT  /api/provinces/{id}     — set visited / not visited (upsert)
  POST /api/provinces/sync     — run the places ↔ provinces reconciliation
  GET  /api/journey            — full catalogue with visited flags, places and
                                 progress; works signed out (demo journey)
"""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

import province_catalog
import reconcile
from auth import get_current_user, get_optional_user
from database import get_db
from demo_data import DEMO_PLACES
from models import AppUser, Place, UserProvince
from schemas import ProvinceUpdate

logger = logging.getLogger(__name__)

provinces_router = APIRouter(prefix='/api/provinces', tags=['provinces'])
journey_router   = APIRouter(prefix='/api', tags=['journey'])


def _user_rows(db: Session, user_id: str) -> list[UserProvince]:
    return db.query(UserProvince).filter_by(user_id=user_id).all()


def load_journey(db: Session, user: AppUser | None) -> tuple[list[dict], list[dict]]:
    """(merged_provinces, places) for a user, or the demo journey when signed out."""
    if user is None:
        return reconcile.merge_with_catalogue([], signed_in=False), list(DEMO_PLACES)

    rows = _user_rows(db, user.id)
    places = (
        db.query(Place)
        .filter_by(user_id=user.id)
        .order_by(Place.created_at.desc())
        .all()
    )
    merged = reconcile.merge_with_catalogue([r.to_dict() for r in rows], signed_in=True)
    return merged, [p.to_dict() for p in places]


# ── Routes ────────────────────────────────────────────────────────────────────

@provinces_router.get('')
async def list_provinces(
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user),
):
    """GET /api/provinces — [{id, name, visited}, ...]"""
    rows = await run_in_threadpool(lambda: _user_rows(db, current_user.id))
    return [r.to_dict() for r in rows]


@provinces_router.post('/sync')
async def sync_provinces(
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user),
):
    """POST /api/provinces/sync — repair drift between places and provinces."""
    provinces, changed = await run_in_threadpool(
        lambda: reconcile.apply_reconciliation(db, current_user.id)
    )
    return {'provinces': provinces, 'changed': changed}


@provinces_router.put('/{province_id}')
async def set_province(
    province_id: str,
    body: ProvinceUpdate,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user),
):
    """
    PUT /api/provinces/{id} — { provinceName, visited }.

    Upsert keyed on (user, province id); the last write wins. A missing
    provinceName falls back to the catalogue name, then to the id itself.
    """
    province_id = province_id.strip().lower()

    def _upsert():
        name = body.province_name
        if not name:
            known = province_catalog.get(province_id)
            name = known.name if known else province_id
        row = reconcile.upsert_province(db, current_user.id, province_id, name, body.visited)
        db.commit()
        db.refresh(row)
        return row

    row = await run_in_threadpool(_upsert)
    logger.info("Province %s visited=%s for user %s", row.province_id, row.visited, current_user.id)
    return row.to_dict()


@journey_router.get('/journey')
async def journey(
    db: Session = Depends(get_db),
    current_user: AppUser | None = Depends(get_optional_user),
):
    """GET /api/journey — merged provinces, places and overall progress."""
    provinces, places = await run_in_threadpool(lambda: load_journey(db, current_user))
    visited_count = sum(1 for p in provinces if p['visited'])
    return {
        'signedIn':       current_user is not None,
        'provinces':      provinces,
        'places':         places,
        'visitedCount':   visited_count,
        'totalProvinces': province_catalog.TOTAL_PROVINCES,
        'percentage':     province_catalog.progress(visited_count),
    }
