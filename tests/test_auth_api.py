from __future__ import annotations

import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta, timezone

import jwt
from sqlalchemy import event

import auth
from database import SessionLocal, engine
from models import AppUser


def _provider_token(**overrides) -> str:
    now = datetime.now(timezone.utc)
    claims = {
        'sub': str(uuid.uuid4()),
        'email': 'oauth@example.com',
        'aud': 'authenticated',
        'role': 'authenticated',
        'user_metadata': {'full_name': 'OAuth Person', 'avatar_url': 'https://example.com/a.png'},
        'iat': now,
        'exp': now + timedelta(hours=1),
    }
    claims.update(overrides)
    return jwt.encode(claims, 'test-secret', algorithm='HS256')


@contextmanager
def _competing_insert(**values):
    """Commit an app_users row from another connection just before the next flush."""
    fired = []

    def _insert_first(session, flush_context, instances):
        if fired:
            return
        fired.append(True)
        with engine.begin() as conn:
            conn.execute(AppUser.__table__.insert().values(**values))

    event.listen(SessionLocal, 'before_flush', _insert_first)
    try:
        yield fired
    finally:
        event.remove(SessionLocal, 'before_flush', _insert_first)


def test_signup_returns_a_usable_token(client) -> None:
    resp = client.post('/api/auth/signup', json={
        'email': '  Traveller@Example.com ',
        'password': 'secret123',
        'fullName': 'Tom Traveller',
    })

    assert resp.status_code == 201
    body = resp.json()
    assert body['tokenType'] == 'bearer'
    assert body['expiresIn'] == auth.TOKEN_TTL_H * 3600
    assert body['user']['email'] == 'traveller@example.com'

    me = client.get('/api/auth/user', headers={'Authorization': f"Bearer {body['accessToken']}"})
    assert me.status_code == 200
    assert me.json() == {
        'id': body['user']['id'],
        'email': 'traveller@example.com',
        'name': 'Tom Traveller',
        'avatar': None,
    }


def test_user_name_falls_back_to_email(client, signup) -> None:
    headers = signup('nameless@example.com', full_name=None)

    assert client.get('/api/auth/user', headers=headers).json()['name'] == 'nameless@example.com'


def test_signup_rejects_duplicates_and_short_passwords(client, signup) -> None:
    signup('taken@example.com')

    resp = client.post('/api/auth/signup', json={'email': 'TAKEN@example.com', 'password': 'secret123'})
    assert resp.status_code == 409
    assert resp.json() == {'error': 'An account with this email already exists'}

    resp = client.post('/api/auth/signup', json={'email': 'new@example.com', 'password': '123'})
    assert resp.status_code == 422
    assert resp.json()['error'].startswith('password:')


def test_login_checks_the_password(client, signup) -> None:
    signup('login@example.com', password='correct-horse')

    ok = client.post('/api/auth/login', json={'email': 'LOGIN@example.com', 'password': 'correct-horse'})
    assert ok.status_code == 200
    assert ok.json()['user']['email'] == 'login@example.com'

    bad = client.post('/api/auth/login', json={'email': 'login@example.com', 'password': 'wrong'})
    assert bad.status_code == 401
    assert bad.json() == {'error': 'Invalid email or password'}

    missing = client.post('/api/auth/login', json={'email': 'nobody@example.com', 'password': 'wrong'})
    assert missing.status_code == 401
    assert missing.json() == bad.json()


def test_login_is_rate_limited_after_repeated_failures(client, signup) -> None:
    signup('target@example.com', password='correct-horse')

    for _ in range(auth.LOGIN_MAX_ATTEMPTS):
        resp = client.post('/api/auth/login', json={'email': 'target@example.com', 'password': 'guess'})
        assert resp.status_code == 401

    resp = client.post('/api/auth/login', json={'email': 'target@example.com', 'password': 'correct-horse'})
    assert resp.status_code == 429


def test_provider_tokens_provision_an_account(client) -> None:
    token = _provider_token()
    headers = {'Authorization': f'Bearer {token}'}

    me = client.get('/api/auth/user', headers=headers)
    assert me.status_code == 200
    assert me.json()['name'] == 'OAuth Person'
    assert me.json()['avatar'] == 'https://example.com/a.png'

    # second request finds the same account
    assert client.get('/api/auth/user', headers=headers).json() == me.json()

    # provisioned accounts have no local password
    resp = client.post('/api/auth/login', json={'email': 'oauth@example.com', 'password': 'anything'})
    assert resp.status_code == 401


def test_provider_token_cannot_take_over_an_existing_email(client, signup) -> None:
    signup('oauth@example.com')

    resp = client.get('/api/auth/user', headers={'Authorization': f'Bearer {_provider_token()}'})

    assert resp.status_code == 401


def test_expired_and_foreign_tokens_are_rejected(client) -> None:
    past = datetime.now(timezone.utc) - timedelta(hours=2)
    expired = _provider_token(iat=past, exp=past + timedelta(minutes=5))
    wrong_audience = _provider_token(aud='anon')
    wrong_secret = jwt.encode({'sub': 'x', 'aud': 'authenticated'}, 'other-secret', algorithm='HS256')

    for token in (expired, wrong_audience, wrong_secret):
        resp = client.get('/api/auth/user', headers={'Authorization': f'Bearer {token}'})
        assert resp.status_code == 401
        assert resp.json() == {'error': 'Invalid or expired token'}


def test_user_rate_limit_budget() -> None:
    auth.reset_rate_limits()
    max_requests, _ = auth.RATE_LIMIT_RULES['lookup']

    for _ in range(max_requests):
        assert auth.check_user_rate_limit('user-1', 'lookup') == (True, 0)

    allowed, retry_after = auth.check_user_rate_limit('user-1', 'lookup')
    assert allowed is False
    assert retry_after > 0
    assert auth.check_user_rate_limit('user-2', 'lookup') == (True, 0)
    assert auth.check_user_rate_limit('user-1', 'unknown-endpoint') == (True, 0)


def test_signup_losing_a_race_is_a_conflict(client) -> None:
    with _competing_insert(email='race@example.com') as fired:
        resp = client.post('/api/auth/signup', json={'email': 'race@example.com', 'password': 'secret123'})

    assert fired
    assert resp.status_code == 409
    assert resp.json() == {'error': 'An account with this email already exists'}


def test_concurrent_provisioning_of_one_subject(client) -> None:
    sub = str(uuid.uuid4())
    headers = {'Authorization': f'Bearer {_provider_token(sub=sub)}'}

    with _competing_insert(id=sub, email='oauth@example.com', full_name='First Writer') as fired:
        resp = client.get('/api/auth/user', headers=headers)

    assert fired
    assert resp.status_code == 200
    assert resp.json()['id'] == sub
    assert resp.json()['name'] == 'First Writer'


def test_provisioning_loses_the_email_to_a_concurrent_signup(client) -> None:
    with _competing_insert(email='oauth@example.com') as fired:
        resp = client.get('/api/auth/user', headers={'Authorization': f'Bearer {_provider_token()}'})

    assert fired
    assert resp.status_code == 401
