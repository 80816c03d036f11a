"""
geo.py — Province boundary dataset and visited-status annotation.

The map client draws the provinces from a public GeoJSON file. This module
fetches the same file once per process and reports, for every feature,
whether the caller has visited it. Feature names in the dataset do not
always match our province names ("Bangkok Metropolis", "Chon Buri"), so
matching goes through province_catalog.names_match.

Route:
  GET /api/map   (optional auth; signed-out callers get the demo journey)
"""

import os
import logging

import httpx
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

import province_catalog
from auth import get_optional_user
from database import get_db
from models import AppUser
from provinces import load_journey

logger = logging.getLogger(__name__)

map_router = APIRouter(prefix='/api', tags=['map'])

GEOJSON_URL     = os.getenv(
    'GEOJSON_URL',
    'https://raw.githubusercontent.com/apisit/thailand.json/master/thailand.json',
)
GEOJSON_TIMEOUT = 10   # seconds

# ---------------------------------------------------------------------------
# HTTP client singleton (shared across requests, closed on shutdown)
# ---------------------------------------------------------------------------

_http_client: httpx.AsyncClient | None = None
_geojson: dict | None = None


def get_http_client() -> httpx.AsyncClient:
    global _http_client
    if _http_client is None:
        _http_client = httpx.AsyncClient(
            timeout=GEOJSON_TIMEOUT,
            headers={'User-Agent': 'ThailandTracker/1.0'},
            follow_redirects=True,
        )
    return _http_client


async def close_http_client() -> None:
    global _http_client
    if _http_client is not None:
        await _http_client.aclose()
        _http_client = None


# ---------------------------------------------------------------------------
# Dataset
# ---------------------------------------------------------------------------

async def load_geojson() -> dict:
    """
    Return the province FeatureCollection, fetching it on first use.

    Raises httpx.HTTPError on network failure and ValueError when the body
    is not a FeatureCollection.
    """
    global _geojson
    if _geojson is not None:
        return _geojson

    resp = await get_http_client().get(GEOJSON_URL)
    resp.raise_for_status()
    data = resp.json()
    if not isinstance(data, dict) or not isinstance(data.get('features'), list):
        raise ValueError('GeoJSON response has no feature list')

    logger.info("Loaded %d province features from %s", len(data['features']), GEOJSON_URL)
    _geojson = data
    return data


def clear_geojson() -> None:
    global _geojson
    _geojson = None


def feature_name(feature: dict) -> str | None:
    props = feature.get('properties') or {}
    return props.get('name') or props.get('NAME_1')


def annotate_features(features: list[dict], provinces: list[dict]) -> list[dict]:
    """[{name, visited}] for every named feature."""
    visited = [p for p in provinces if p['visited']]
    annotated = []
    for feature in features:
        name = feature_name(feature)
        if not name:
            continue
        annotated.append({
            'name': name,
            'visited': any(province_catalog.names_match(name, p['id'], p['name']) for p in visited),
        })
    return annotated


# ---------------------------------------------------------------------------
# Route
# ---------------------------------------------------------------------------

@map_router.get('/map')
async def province_map(
    db: Session = Depends(get_db),
    current_user: AppUser | None = Depends(get_optional_user),
):
    """GET /api/map — visited flag per GeoJSON feature plus progress."""
    try:
        data = await load_geojson()
    except (httpx.HTTPError, ValueError) as exc:
        logger.warning("Province GeoJSON unavailable: %s", exc)
        raise HTTPException(status_code=502, detail='Map data is unavailable. Please try again later.')

    provinces, _ = await run_in_threadpool(lambda: load_journey(db, current_user))
    features = annotate_features(data['features'], provinces)
    visited_count = sum(1 for f in features if f['visited'])
    return {
        'features':       features,
        'visitedCount':   visited_count,
        'totalProvinces': province_catalog.TOTAL_PROVINCES,
        'percentage':     province_catalog.progress(visited_count),
    }
