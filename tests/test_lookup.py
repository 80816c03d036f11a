from __future__ import annotations

from types import SimpleNamespace

import anthropic
import httpx
import pytest

import auth
import lookup
from lookup import image_for, parse_lookup
from places import display_date


class FakeMessages:
    def __init__(self, answer: str | Exception) -> None:
        self.answer = answer
        self.calls: list[dict] = []

    async def create(self, **kwargs):
        self.calls.append(kwargs)
        if isinstance(self.answer, Exception):
            raise self.answer
        return SimpleNamespace(content=[SimpleNamespace(type='text', text=self.answer)])


@pytest.fixture
def model(monkeypatch):
    """Replace the model client; set .answer before calling the route."""
    fake = FakeMessages('null')
    monkeypatch.setattr(lookup, 'get_anthropic', lambda: SimpleNamespace(messages=fake))
    return fake


WHITE_TEMPLE = (
    '{"name": "Wat Rong Khun", "location": "chiang rai", '
    '"description": "The White Temple.", "lat": 19.8243, "lng": "99.7630"}'
)


def test_parse_lookup_reads_fenced_json() -> None:
    place = parse_lookup(f'```json\n{WHITE_TEMPLE}\n```')

    assert place == {
        'name': 'Wat Rong Khun',
        'location': 'Chiang Rai',
        'provinceId': 'chiang-rai',
        'description': 'The White Temple.',
        'lat': 19.8243,
        'lng': 99.763,
    }


@pytest.mark.parametrize('raw', ['null', '  ', '```\nnull\n```', '{"name": "Somewhere"}'])
def test_parse_lookup_not_found_answers(raw: str) -> None:
    assert parse_lookup(raw) is None


@pytest.mark.parametrize('raw', ['I could not find it.', '["Wat Arun"]'])
def test_parse_lookup_rejects_unusable_answers(raw: str) -> None:
    with pytest.raises(ValueError):
        parse_lookup(raw)


def test_image_for_encodes_the_name() -> None:
    assert image_for("Wat Phra That Doi Suthep") == (
        'https://source.unsplash.com/800x600/?Wat%20Phra%20That%20Doi%20Suthep%20thailand'
    )


def test_lookup_requires_sign_in(client, model) -> None:
    assert client.post('/api/lookup', json={'query': 'white temple'}).status_code == 401
    assert model.calls == []


def test_lookup_returns_place_and_draft(client, headers, model) -> None:
    model.answer = WHITE_TEMPLE

    resp = client.post('/api/lookup', json={'query': 'white temple', 'language': 'TH'}, headers=headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body['place']['provinceId'] == 'chiang-rai'
    assert body['draft'] == {
        'name': 'Wat Rong Khun',
        'location': 'Chiang Rai',
        'dateAdded': display_date(),
        'image': image_for('Wat Rong Khun'),
        'isMarked': True,
        'description': 'The White Temple.',
    }
    assert 'Thai' in model.calls[0]['messages'][0]['content']

    # the draft is accepted by the places endpoint as-is
    created = client.post('/api/places', json=body['draft'], headers=headers)
    assert created.status_code == 201


def test_lookup_caches_answers(client, headers, model) -> None:
    model.answer = WHITE_TEMPLE

    first = client.post('/api/lookup', json={'query': 'White Temple'}, headers=headers)
    second = client.post('/api/lookup', json={'query': 'white temple'}, headers=headers)

    assert first.json() == second.json()
    assert len(model.calls) == 1


def test_lookup_not_found(client, headers, model) -> None:
    resp = client.post('/api/lookup', json={'query': 'eiffel tower'}, headers=headers)

    assert resp.status_code == 404
    assert resp.json() == {'error': 'Place not found or not in Thailand.'}


def test_lookup_validates_the_request(client, headers, model) -> None:
    resp = client.post('/api/lookup', json={'query': 'krabi', 'language': 'FR'}, headers=headers)
    assert resp.status_code == 422
    assert resp.json()['error'].startswith('language:')

    resp = client.post('/api/lookup', json={'query': '   '}, headers=headers)
    assert resp.status_code == 422
    assert model.calls == []


def test_lookup_maps_provider_errors(client, headers, model) -> None:
    request = httpx.Request('POST', 'https://api.anthropic.com/v1/messages')

    model.answer = anthropic.RateLimitError(
        'slow down', response=httpx.Response(429, request=request), body=None,
    )
    resp = client.post('/api/lookup', json={'query': 'maya bay'}, headers=headers)
    assert resp.status_code == 429
    assert resp.json() == {'error': lookup.RATE_LIMIT_MESSAGE}

    model.answer = anthropic.BadRequestError(
        'Your credit balance is too low to access the API',
        response=httpx.Response(400, request=request), body=None,
    )
    resp = client.post('/api/lookup', json={'query': 'maya bay'}, headers=headers)
    assert resp.status_code == 429
    assert resp.json() == {'error': lookup.RATE_LIMIT_MESSAGE}

    model.answer = anthropic.PermissionDeniedError(
        'Monthly quota exceeded', response=httpx.Response(403, request=request), body=None,
    )
    assert client.post('/api/lookup', json={'query': 'maya bay'}, headers=headers).status_code == 429

    model.answer = anthropic.BadRequestError(
        'max_tokens is too large', response=httpx.Response(400, request=request), body=None,
    )
    resp = client.post('/api/lookup', json={'query': 'maya bay'}, headers=headers)
    assert resp.status_code == 502
    assert resp.json() == {'error': lookup.FAILED_MESSAGE}

    model.answer = anthropic.APIConnectionError(request=request)
    resp = client.post('/api/lookup', json={'query': 'maya bay'}, headers=headers)
    assert resp.status_code == 502
    assert resp.json() == {'error': lookup.FAILED_MESSAGE}

    model.answer = 'Sorry, I am not sure.'
    resp = client.post('/api/lookup', json={'query': 'maya bay'}, headers=headers)
    assert resp.status_code == 502


def test_lookup_per_user_rate_limit(client, headers, model, monkeypatch) -> None:
    monkeypatch.setitem(auth.RATE_LIMIT_RULES, 'lookup', (1, 600))

    assert client.post('/api/lookup', json={'query': 'a'}, headers=headers).status_code == 404
    # answered from the cache, so the budget is not charged again
    assert client.post('/api/lookup', json={'query': 'a'}, headers=headers).status_code == 404

    resp = client.post('/api/lookup', json={'query': 'b'}, headers=headers)

    assert resp.status_code == 429
    assert resp.json()['error'].startswith('Too many requests.')
    assert len(model.calls) == 1
