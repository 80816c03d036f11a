"""
auth.py — Authentication router for Thailand Tracker (FastAPI)

Provides:
  - JWT helpers (issue / decode)
  - get_current_user / get_optional_user dependencies
  - Rate limiters (failed logins per IP, expensive endpoints per user)
  - Routes: POST /api/auth/signup, POST /api/auth/login, GET /api/auth/user

Tokens are HS256 JWTs sent as `Authorization: Bearer <token>`. They carry
the same claims as the managed auth provider's access tokens
(aud='authenticated', sub=<user uuid>, email, user_metadata), so when
JWT_SECRET is set to the provider's signing secret, tokens it issues are
accepted as-is and the account row is created on first use.
"""

import os
import time
import logging
import threading
from collections import defaultdict
from datetime import datetime, timezone, timedelta

import bcrypt
import jwt
import redis
from fastapi import APIRouter, Depends, HTTPException, Request
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from database import get_db
from models import AppUser
from redis_client import get_redis
from schemas import LoginRequest, SignupRequest

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix='/api/auth', tags=['auth'])

# ── Constants ────────────────────────────────────────────────────────────────

TOKEN_TTL_H   = int(os.getenv('TOKEN_TTL_H', '8'))
JWT_AUDIENCE  = 'authenticated'
JWT_ALGORITHM = 'HS256'
BCRYPT_ROUNDS = 12

_DEV_SECRET = 'dev-only-secret-change-me'


def _secret() -> str:
    secret = os.getenv('JWT_SECRET') or os.getenv('SUPABASE_JWT_SECRET')
    if not secret:
        if os.getenv('APP_ENV') == 'production':
            raise RuntimeError('JWT_SECRET must be set in production')
        return _DEV_SECRET
    return secret


# ── Password hashing ─────────────────────────────────────────────────────────

def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode('utf-8')


def check_password(password: str, password_hash: str | None) -> bool:
    if not password_hash:
        return False   # provider-managed account: no local password
    try:
        return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
    except ValueError as exc:
        logger.warning("bcrypt check error: %s", exc)
        return False


# ── Login rate limiting ───────────────────────────────────────────────────────
# Failed attempts per IP. After LOGIN_MAX_ATTEMPTS failures within
# LOGIN_WINDOW_SECONDS further attempts are refused.
#
# Redis path:  sorted set  ratelimit:login:{ip}   (score = timestamp)
# Fallback:    in-memory dict per worker.
LOGIN_MAX_ATTEMPTS   = 10
LOGIN_WINDOW_SECONDS = 300

_login_attempts: dict = defaultdict(list)  # ip -> [timestamp, ...]
_login_lock = threading.Lock()


def _check_login_rate_limit(ip: str) -> bool:
    """Return True if the request should be allowed."""
    now = time.time()
    r = get_redis()

    if r is not None:
        try:
            key = f"ratelimit:login:{ip}"
            pipe = r.pipeline()
            pipe.zremrangebyscore(key, '-inf', now - LOGIN_WINDOW_SECONDS)
            pipe.zcard(key)
            pipe.expire(key, LOGIN_WINDOW_SECONDS)
            _, count, _ = pipe.execute()
            return count < LOGIN_MAX_ATTEMPTS
        except redis.RedisError as exc:
            logger.warning("Redis login rate-limit check error: %s — falling back", exc)

    with _login_lock:
        _login_attempts[ip] = [t for t in _login_attempts[ip] if now - t < LOGIN_WINDOW_SECONDS]
        return len(_login_attempts[ip]) < LOGIN_MAX_ATTEMPTS


def _record_login_failure(ip: str):
    now = time.time()
    r = get_redis()

    if r is not None:
        try:
            key = f"ratelimit:login:{ip}"
            pipe = r.pipeline()
            pipe.zadd(key, {str(now): now})
            pipe.expire(key, LOGIN_WINDOW_SECONDS)
            pipe.execute()
            return
        except redis.RedisError as exc:
            logger.warning("Redis login failure record error: %s — falling back", exc)

    with _login_lock:
        _login_attempts[ip].append(now)


# ── Per-user rate limiting ────────────────────────────────────────────────────
# Keyed by (user_id, endpoint) so each expensive endpoint has its own budget.

RATE_LIMIT_RULES: dict[str, tuple[int, int]] = {
    # endpoint_key -> (max_requests, window_seconds)
    'lookup': (30, 600),
}

_user_requests: dict = defaultdict(list)  # (user_id, endpoint) -> [timestamp, ...]
_user_rate_lock = threading.Lock()


def check_user_rate_limit(user_id: str, endpoint: str) -> tuple[bool, int]:
    """
    Check whether user_id is within their budget for the endpoint key.

    Returns (allowed, retry_after_seconds). An allowed call is recorded.
    """
    rule = RATE_LIMIT_RULES.get(endpoint)
    if rule is None:
        return True, 0

    max_requests, window = rule
    now = time.time()
    r = get_redis()

    if r is not None:
        try:
            rkey = f"ratelimit:user:{user_id}:{endpoint}"
            pipe = r.pipeline()
            pipe.zremrangebyscore(rkey, '-inf', now - window)
            pipe.zrange(rkey, 0, -1, withscores=True)
            pipe.expire(rkey, window)
            _, entries, _ = pipe.execute()

            if len(entries) >= max_requests:
                oldest_score = min(score for _, score in entries)
                return False, int(window - (now - oldest_score)) + 1

            r.zadd(rkey, {str(now): now})
            r.expire(rkey, window)
            return True, 0
        except redis.RedisError as exc:
            logger.warning("Redis user rate-limit error: %s — falling back", exc)

    mem_key = (user_id, endpoint)
    with _user_rate_lock:
        _user_requests[mem_key] = [t for t in _user_requests[mem_key] if now - t < window]

        if len(_user_requests[mem_key]) >= max_requests:
            oldest = min(_user_requests[mem_key])
            return False, int(window - (now - oldest)) + 1

        _user_requests[mem_key].append(now)
        return True, 0


def reset_rate_limits() -> None:
    """Clear the in-memory limiter state."""
    with _login_lock:
        _login_attempts.clear()
    with _user_rate_lock:
        _user_requests.clear()


# ── JWT helpers ──────────────────────────────────────────────────────────────

def issue_token(user: AppUser) -> str:
    now = datetime.now(timezone.utc)
    payload = {
        'sub':   user.id,
        'email': user.email,
        'aud':   JWT_AUDIENCE,
        'role':  'authenticated',
        'user_metadata': {
            'full_name':  user.full_name,
            'avatar_url': user.avatar_url,
        },
        'iat':   now,
        'exp':   now + timedelta(hours=TOKEN_TTL_H),
    }
    return jwt.encode(payload, _secret(), algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Raise jwt.PyJWTError if invalid or expired."""
    return jwt.decode(token, _secret(), algorithms=[JWT_ALGORITHM], audience=JWT_AUDIENCE)


def _token_response(user: AppUser) -> dict:
    return {
        'user':        user.to_dict(),
        'accessToken': issue_token(user),
        'tokenType':   'bearer',
        'expiresIn':   TOKEN_TTL_H * 3600,
    }


def _bearer_token(request: Request) -> str | None:
    header = request.headers.get('Authorization', '')
    if not header.startswith('Bearer '):
        return None
    return header.split(' ', 1)[1].strip() or None


def _user_from_claims(db: Session, claims: dict) -> AppUser | None:
    """Load the account for a token, provisioning provider-issued subjects."""
    user_id = str(claims.get('sub') or '')
    if not user_id:
        return None

    user = db.get(AppUser, user_id)
    if user is not None:
        return user if user.is_active else None

    email = str(claims.get('email') or '').strip().lower()
    if not email:
        return None
    if db.query(AppUser).filter_by(email=email).first() is not None:
        logger.warning("Token subject %s clashes with an existing account email", user_id)
        return None

    meta = claims.get('user_metadata') or {}
    user = AppUser(
        id=user_id,
        email=email,
        full_name=meta.get('full_name'),
        avatar_url=meta.get('avatar_url'),
    )
    db.add(user)
    try:
        db.commit()
    except IntegrityError:
        # another request provisioned this subject, or took the email, first
        db.rollback()
        user = db.get(AppUser, user_id)
        if user is None:
            logger.warning("Token subject %s lost a race for email %s", user_id, email)
        return user if user is not None and user.is_active else None
    logger.info("Provisioned account for provider user %s", user_id)
    return user


# ── Dependencies ─────────────────────────────────────────────────────────────

def get_current_user(request: Request, db: Session = Depends(get_db)) -> AppUser:
    """
    Validate the Bearer token and return the caller's account.

    Usage:
        @router.get('')
        async def route(current_user: AppUser = Depends(get_current_user)):
            ...
    """
    token = _bearer_token(request)
    if not token:
        raise HTTPException(status_code=401, detail='Missing authorization token')

    try:
        claims = decode_token(token)
    except jwt.PyJWTError:
        raise HTTPException(status_code=401, detail='Invalid or expired token')

    user = _user_from_claims(db, claims)
    if user is None:
        raise HTTPException(status_code=401, detail='Invalid or expired token')
    return user


def get_optional_user(request: Request, db: Session = Depends(get_db)) -> AppUser | None:
    """Like get_current_user, but signed-out callers get None instead of 401."""
    if not _bearer_token(request):
        return None
    return get_current_user(request, db)


# ── Routes ───────────────────────────────────────────────────────────────────

@auth_router.post('/signup', status_code=201)
async def signup(body: SignupRequest, db: Session = Depends(get_db)):
    """POST /api/auth/signup — { email, password, fullName? } → access token."""
    def _create():
        if db.query(AppUser).filter_by(email=body.email).first() is not None:
            raise HTTPException(status_code=409, detail='An account with this email already exists')
        user = AppUser(
            email=body.email,
            full_name=body.full_name,
            avatar_url=body.avatar_url,
            password_hash=hash_password(body.password),
            last_login_at=datetime.now(timezone.utc),
        )
        db.add(user)
        try:
            db.commit()
        except IntegrityError:
            db.rollback()
            raise HTTPException(status_code=409, detail='An account with this email already exists')
        db.refresh(user)
        return user

    user = await run_in_threadpool(_create)
    logger.info("Signup: user_id=%s", user.id)
    return _token_response(user)


@auth_router.post('/login')
async def login(body: LoginRequest, request: Request, db: Session = Depends(get_db)):
    """POST /api/auth/login — { email, password } → access token."""
    client_ip = request.client.host if request.client else '0.0.0.0'
    if not _check_login_rate_limit(client_ip):
        logger.warning("Login rate limit exceeded for IP %s", client_ip)
        raise HTTPException(status_code=429, detail='Too many login attempts. Please wait and try again.')

    def _authenticate():
        user = db.query(AppUser).filter_by(email=body.email).first()
        # Same message either way: don't reveal whether the email exists
        if not user or not user.is_active or not check_password(body.password, user.password_hash):
            return None
        user.last_login_at = datetime.now(timezone.utc)
        db.commit()
        return user

    user = await run_in_threadpool(_authenticate)
    if user is None:
        _record_login_failure(client_ip)
        raise HTTPException(status_code=401, detail='Invalid email or password')

    logger.info("Login: user_id=%s", user.id)
    return _token_response(user)


@auth_router.get('/user')
async def me(current_user: AppUser = Depends(get_current_user)):
    """GET /api/auth/user — the caller's profile."""
    return current_user.to_dict()
