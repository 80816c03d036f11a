#!/usr/bin/env python3
"""
Thailand Tracker — Backend API (FastAPI)

Thin REST layer for the province map client:
- places.py     logged places (CRUD), keeps visited provinces in step
- provinces.py  visited provinces, reconciliation, journey summary
- geo.py        visited flags for the province GeoJSON features
- lookup.py     AI place lookup
- auth.py       bearer-token accounts

Blocking SQLAlchemy work runs through run_in_threadpool in each router.
"""

import os
import logging

from dotenv import load_dotenv

# Load env files before any module reads its settings at import time.
BASE_DIR = os.path.dirname(os.path.abspath(__file__))
load_dotenv(os.path.join(BASE_DIR, '.env.local'))
load_dotenv(os.path.join(BASE_DIR, '.env'))

from fastapi import FastAPI, Request  # noqa: E402
from fastapi.exceptions import RequestValidationError  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from fastapi.responses import JSONResponse  # noqa: E402
from starlette.concurrency import run_in_threadpool  # noqa: E402
from starlette.exceptions import HTTPException as StarletteHTTPException  # noqa: E402

from auth import auth_router  # noqa: E402
from database import init_db  # noqa: E402
from geo import close_http_client, map_router  # noqa: E402
from lookup import lookup_router  # noqa: E402
from places import places_router  # noqa: E402
from provinces import journey_router, provinces_router  # noqa: E402
from redis_client import get_redis  # noqa: E402

# ---------------------------------------------------------------------------
# Bootstrap
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=os.getenv('LOG_LEVEL', 'INFO'),
    format='%(asctime)s [%(levelname)s] %(name)s: %(message)s',
)
logger = logging.getLogger(__name__)

IS_PRODUCTION = os.getenv('APP_ENV', 'development') == 'production'

# ---------------------------------------------------------------------------
# FastAPI application
# ---------------------------------------------------------------------------

app = FastAPI(title='Thailand Tracker API', docs_url=None if IS_PRODUCTION else '/docs', redoc_url=None)

# ── CORS ─────────────────────────────────────────────────────────────────────
_cors_origins = [
    o.strip()
    for o in os.getenv(
        'CORS_ORIGINS', 'http://localhost:3000,http://127.0.0.1:3000'
    ).split(',')
    if o.strip()
]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=['*'],
    allow_headers=['*'],
)


# ── Security headers ──────────────────────────────────────────────────────────
@app.middleware('http')
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers['X-Content-Type-Options'] = 'nosniff'
    response.headers['X-Frame-Options']        = 'DENY'
    response.headers['Referrer-Policy']        = 'strict-origin-when-cross-origin'
    if IS_PRODUCTION:
        response.headers['Strict-Transport-Security'] = 'max-age=31536000; includeSubDomains'
    return response


# ── Error shape: { "error": "..." } ──────────────────────────────────────────
# FastAPI's default is { "detail": ... }; the client reads "error".
@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={'error': exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = '.'.join(str(p) for p in first.get('loc', ()) if p != 'body')
        message = first.get('msg', 'Invalid request')
        detail = f'{field}: {message}' if field else message
    else:
        detail = 'Invalid request'
    return JSONResponse(status_code=422, content={'error': detail})


# ── Router registration ───────────────────────────────────────────────────────
app.include_router(auth_router)
app.include_router(places_router)
app.include_router(provinces_router)
app.include_router(journey_router)
app.include_router(map_router)
app.include_router(lookup_router)

# ---------------------------------------------------------------------------
# Startup / shutdown
# ---------------------------------------------------------------------------

@app.on_event('startup')
async def startup():
    await run_in_threadpool(init_db)

    r = get_redis()
    if r is not None:
        logger.warning('Redis connected and ready (cache, rate limiters active)')
    else:
        logger.warning('Redis unavailable — using in-memory fallbacks (set REDIS_URL to enable)')


@app.on_event('shutdown')
async def shutdown():
    await close_http_client()


# ---------------------------------------------------------------------------
# Routes
# ---------------------------------------------------------------------------

@app.get('/health')
async def health():
    return {'status': 'ok', 'message': 'Thailand Tracker API is running'}


if __name__ == '__main__':
    import uvicorn
    uvicorn.run('app:app', host='0.0.0.0', port=int(os.getenv('PORT', '3002')), reload=not IS_PRODUCTION)
