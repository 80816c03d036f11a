"""
lookup.py — AI-assisted place lookup for Thailand Tracker

Route:
  POST /api/lookup   { query, language: 'EN' | 'TH' | 'CN' }

Turns a free-text query ("white temple chiang rai") into a structured place
plus a ready-to-save draft for POST /api/places. The model is told to answer
with JSON only, or the literal null when the place is unknown or outside
Thailand.
"""

import hashlib
import json
import logging
import os
from urllib.parse import quote

import anthropic
from anthropic import AsyncAnthropic
from fastapi import APIRouter, Depends, HTTPException

import province_catalog
from auth import check_user_rate_limit, get_current_user
from models import AppUser
from places import display_date
from redis_client import cache_get, cache_set
from schemas import LookupRequest

logger = logging.getLogger(__name__)

lookup_router = APIRouter(prefix='/api', tags=['lookup'])

LOOKUP_MODEL      = os.getenv('LOOKUP_MODEL', 'claude-haiku-4-5-20251001')
LOOKUP_MAX_TOKENS = 400

LANGUAGE_NAMES = {'EN': 'English', 'TH': 'Thai', 'CN': 'Chinese'}

NOT_FOUND_MESSAGE  = 'Place not found or not in Thailand.'
RATE_LIMIT_MESSAGE = 'API rate limit exceeded. Please wait a moment and try again.'
FAILED_MESSAGE     = 'Search failed. Please try again.'

_anthropic_client: AsyncAnthropic | None = None


def get_anthropic() -> AsyncAnthropic:
    global _anthropic_client
    if _anthropic_client is None:
        _anthropic_client = AsyncAnthropic()
    return _anthropic_client


def _cache_key(query: str, language: str) -> str:
    raw = json.dumps(['lookup', query.lower(), language])
    return hashlib.md5(raw.encode()).hexdigest()


def build_prompt(query: str, language: str) -> str:
    return f"""Identify the place from this query: "{query}".
Return a JSON object with the following fields:
- name: The name of the place (in {LANGUAGE_NAMES[language]})
- location: The province name in Thailand where it is located, in English (e.g. "Phuket", "Chiang Mai")
- description: A short description (max 1 sentence)
- lat: Latitude
- lng: Longitude

If the place is not found or not in Thailand, return null.
Respond with the JSON only. No markdown, no other text."""


def parse_lookup(raw_text: str) -> dict | None:
    """
    Parse the model's answer. Returns None for a 'not found' answer and
    raises ValueError when the text is not a usable place object.
    """
    text = (raw_text or '').strip()
    if text.startswith('```'):
        parts = text.split('```', 2)
        inner = parts[1] if len(parts) >= 2 else text
        if inner.startswith('json'):
            inner = inner[4:]
        text = inner.strip()

    if not text or text == 'null':
        return None

    try:
        data = json.loads(text)
    except json.JSONDecodeError as exc:
        raise ValueError(f'unparseable lookup answer: {exc}')
    if data is None:
        return None
    if not isinstance(data, dict):
        raise ValueError('lookup answer is not an object')

    name = str(data.get('name') or '').strip()
    location = str(data.get('location') or '').strip()
    if not name or not location:
        return None

    province_id, province_name = province_catalog.resolve(location)
    return {
        'name':        name,
        'location':    province_name,
        'provinceId':  province_id,
        'description': str(data.get('description') or '').strip() or None,
        'lat':         _coord(data.get('lat')),
        'lng':         _coord(data.get('lng')),
    }


def _coord(value) -> float | None:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def image_for(name: str) -> str:
    return 'https://source.unsplash.com/800x600/?' + quote(f'{name} thailand', safe="!'()*~")


def build_draft(place: dict) -> dict:
    """A place body that can be posted to /api/places unchanged."""
    return {
        'name':        place['name'],
        'location':    place['location'],
        'dateAdded':   display_date(),
        'image':       image_for(place['name']),
        'isMarked':    True,
        'description': place['description'],
    }


def _is_quota_error(exc: anthropic.APIStatusError) -> bool:
    """Status 429, or a billing error whose message mentions quota or credit."""
    if exc.status_code == 429:
        return True
    message = str(exc).lower()
    return 'quota' in message or 'credit' in message


def cached_lookup(query: str, language: str) -> dict | None:
    """The stored answer for (query, language), or None if it was never asked."""
    return cache_get(_cache_key(query, language))


async def identify_place(query: str, language: str) -> dict | None:
    """Ask the model and cache the answer, including 'not found'."""
    message = await get_anthropic().messages.create(
        model=LOOKUP_MODEL,
        max_tokens=LOOKUP_MAX_TOKENS,
        messages=[{'role': 'user', 'content': build_prompt(query, language)}],
    )

    raw_text = ''
    for block in message.content:
        block_text = getattr(block, 'text', None)
        if block_text:
            raw_text = str(block_text)
            break

    place = parse_lookup(raw_text)
    cache_set(_cache_key(query, language), {'place': place})
    logger.info('Lookup: %r -> %s', query[:60], place['location'] if place else 'not found')
    return place


@lookup_router.post('/lookup')
async def lookup_place(
    body: LookupRequest,
    current_user: AppUser = Depends(get_current_user),
):
    """POST /api/lookup — identify a place from free text."""
    cached = cached_lookup(body.query, body.language)
    if cached is not None:
        logger.info('Lookup: cache hit for %r', body.query[:60])
        place = cached.get('place')
    else:
        # only model calls count against the budget
        allowed, retry_after = check_user_rate_limit(current_user.id, 'lookup')
        if not allowed:
            logger.warning('Rate limit hit: user_id=%s /lookup retry_after=%ds',
                           current_user.id, retry_after)
            raise HTTPException(
                status_code=429,
                detail=f'Too many requests. Please wait {retry_after} seconds before trying again.',
            )

        try:
            place = await identify_place(body.query, body.language)
        except anthropic.APIStatusError as exc:
            if _is_quota_error(exc):
                logger.warning('Lookup provider rate limit or quota: %s', exc)
                raise HTTPException(status_code=429, detail=RATE_LIMIT_MESSAGE)
            logger.error('Lookup provider error: %s', exc, exc_info=True)
            raise HTTPException(status_code=502, detail=FAILED_MESSAGE)
        except anthropic.APIError as exc:
            logger.error('Lookup provider error: %s', exc, exc_info=True)
            raise HTTPException(status_code=502, detail=FAILED_MESSAGE)
        except ValueError as exc:
            logger.warning('Lookup answer rejected for %r: %s', body.query[:60], exc)
            raise HTTPException(status_code=502, detail=FAILED_MESSAGE)

    if place is None:
        raise HTTPException(status_code=404, detail=NOT_FOUND_MESSAGE)
    return {'place': place, 'draft': build_draft(place)}
