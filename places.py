"""
places.py — Place log router for Thailand Tracker (FastAPI)

Routes (all require authentication, all scoped to the caller):
  GET    /api/places         — list places, newest first
  POST   /api/places         — log a new place
  PUT    /api/places/{id}    — partial update
  DELETE /api/places/{id}    — delete a place

Every write keeps the caller's visited provinces in step: logging a place
marks its province visited, and removing the last place in a province
(by delete or by moving it elsewhere) unmarks it. See reconcile.py.
"""

import logging
from datetime import date

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

import reconcile
from auth import get_current_user
from database import get_db
from models import AppUser, Place
from schemas import PlaceCreate, PlaceUpdate

logger = logging.getLogger(__name__)

places_router = APIRouter(prefix='/api/places', tags=['places'])


# ── Helpers ───────────────────────────────────────────────────────────────────

def _place_or_404(db: Session, user_id: str, place_id: str) -> Place:
    place = db.query(Place).filter_by(id=place_id, user_id=user_id).one_or_none()
    if place is None:
        raise HTTPException(status_code=404, detail='Place not found')
    return place


def display_date(day: date | None = None) -> str:
    """'17 Oct 2026' — day without zero padding, short month."""
    day = day or date.today()
    return f"{day.day} {day.strftime('%b %Y')}"


# ── Routes ────────────────────────────────────────────────────────────────────

@places_router.get('')
async def list_places(
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user),
):
    """GET /api/places — the caller's places, newest first."""
    def _query():
        return (
            db.query(Place)
            .filter_by(user_id=current_user.id)
            .order_by(Place.created_at.desc())
            .all()
        )

    places = await run_in_threadpool(_query)
    return [p.to_dict() for p in places]


@places_router.post('', status_code=201)
async def create_place(
    body: PlaceCreate,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user),
):
    """POST /api/places — log a place and mark its province visited."""
    def _create():
        place = Place(
            user_id     = current_user.id,
            name        = body.name,
            location    = body.location,
            date_added  = body.date_added or display_date(),
            image       = body.image or '',
            is_marked   = body.is_marked,
            category    = body.category,
            description = body.description,
        )
        db.add(place)
        reconcile.after_place_created(db, current_user.id, place.location)
        db.commit()
        db.refresh(place)
        return place

    place = await run_in_threadpool(_create)
    logger.info("Place created: id=%s %r in %r by user %s",
                place.id, place.name, place.location, current_user.id)
    return place.to_dict()


@places_router.put('/{place_id}')
async def update_place(
    place_id: str,
    body: PlaceUpdate,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user),
):
    """
    PUT /api/places/{id} — partial update.

    Only keys present in the body are applied. Moving a place to another
    province marks the new one visited and releases the old one.
    """
    def _update():
        place = _place_or_404(db, current_user.id, place_id)
        sent = body.model_fields_set
        old_location = place.location

        if 'name' in sent:
            if not body.name:
                raise HTTPException(status_code=400, detail='Place name cannot be empty')
            place.name = body.name
        if 'location' in sent:
            if not body.location:
                raise HTTPException(status_code=400, detail='Place location cannot be empty')
            place.location = body.location
        if 'date_added' in sent and body.date_added:
            place.date_added = body.date_added
        if 'image' in sent:
            place.image = body.image or ''
        if 'is_marked' in sent and body.is_marked is not None:
            place.is_marked = body.is_marked
        if 'category' in sent:
            place.category = body.category
        if 'description' in sent:
            place.description = body.description

        if place.location != old_location:
            reconcile.after_place_created(db, current_user.id, place.location)
            reconcile.after_place_removed(db, current_user.id, old_location)

        db.commit()
        db.refresh(place)
        return place

    place = await run_in_threadpool(_update)
    logger.info("Place updated: id=%s by user %s", place.id, current_user.id)
    return place.to_dict()


@places_router.delete('/{place_id}')
async def delete_place(
    place_id: str,
    db: Session = Depends(get_db),
    current_user: AppUser = Depends(get_current_user),
):
    """DELETE /api/places/{id} — remove a place; release its province if it was the last one."""
    def _delete():
        place = _place_or_404(db, current_user.id, place_id)
        location = place.location
        db.delete(place)
        released = reconcile.after_place_removed(db, current_user.id, location)
        db.commit()
        return released

    released = await run_in_threadpool(_delete)
    logger.info("Place deleted: id=%s by user %s", place_id, current_user.id)
    if released is not None:
        logger.info("Province %s unmarked for user %s (no places left)",
                    released.province_id, current_user.id)
    return {'success': True}
