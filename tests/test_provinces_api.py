from __future__ import annotations

from database import SessionLocal
from models import Place


def test_put_province_upserts_last_write_wins(client, headers) -> None:
    resp = client.put('/api/provinces/krabi', json={'provinceName': 'Krabi', 'visited': True}, headers=headers)
    assert resp.status_code == 200
    assert resp.json() == {'id': 'krabi', 'name': 'Krabi', 'visited': True}

    resp = client.put('/api/provinces/krabi', json={'provinceName': 'Krabi', 'visited': False}, headers=headers)
    assert resp.json() == {'id': 'krabi', 'name': 'Krabi', 'visited': False}

    assert client.get('/api/provinces', headers=headers).json() == [
        {'id': 'krabi', 'name': 'Krabi', 'visited': False},
    ]


def test_put_province_name_falls_back_to_catalogue_then_id(client, headers) -> None:
    resp = client.put('/api/provinces/mae-hong-son', json={'visited': True}, headers=headers)
    assert resp.json() == {'id': 'mae-hong-son', 'name': 'Mae Hong Son', 'visited': True}

    resp = client.put('/api/provinces/koh-lipe', json={'visited': True}, headers=headers)
    assert resp.json() == {'id': 'koh-lipe', 'name': 'koh-lipe', 'visited': True}


def test_put_province_requires_visited_flag(client, headers) -> None:
    resp = client.put('/api/provinces/krabi', json={'provinceName': 'Krabi'}, headers=headers)

    assert resp.status_code == 422
    assert resp.json()['error'].startswith('visited:')


def test_provinces_are_scoped_to_the_caller(client, signup) -> None:
    alice = signup('alice@example.com')
    bob = signup('bob@example.com')
    client.put('/api/provinces/trat', json={'provinceName': 'Trat', 'visited': True}, headers=alice)

    assert client.get('/api/provinces', headers=bob).json() == []


def test_sync_repairs_drift_in_both_directions(client, headers) -> None:
    client.put('/api/provinces/tak', json={'provinceName': 'Tak', 'visited': True}, headers=headers)
    user_id = client.get('/api/auth/user', headers=headers).json()['id']

    # a place written behind the API's back, with no province row
    with SessionLocal() as session:
        session.add(Place(user_id=user_id, name='Khao Yai', location='Nakhon Ratchasima',
                          date_added='22 Aug 2023'))
        session.commit()

    resp = client.post('/api/provinces/sync', headers=headers)

    assert resp.status_code == 200
    body = resp.json()
    assert body['changed'] == 2
    assert sorted(body['provinces'], key=lambda p: p['id']) == [
        {'id': 'nakhon-ratchasima', 'name': 'Nakhon Ratchasima', 'visited': True},
        {'id': 'tak', 'name': 'Tak', 'visited': False},
    ]
    stored = {p['id']: p['visited'] for p in client.get('/api/provinces', headers=headers).json()}
    assert stored == {'nakhon-ratchasima': True, 'tak': False}

    assert client.post('/api/provinces/sync', headers=headers).json()['changed'] == 0


def test_journey_signed_out_shows_demo(client) -> None:
    resp = client.get('/api/journey')

    assert resp.status_code == 200
    body = resp.json()
    assert body['signedIn'] is False
    assert len(body['provinces']) == 77
    assert len(body['places']) == 10
    assert body['visitedCount'] == 9
    assert body['totalProvinces'] == 77
    assert body['percentage'] == 12


def test_journey_signed_in_uses_only_the_users_data(client, headers) -> None:
    client.post('/api/places', json={'name': 'Pattaya Beach', 'location': 'Chon Buri'}, headers=headers)

    body = client.get('/api/journey', headers=headers).json()

    assert body['signedIn'] is True
    assert [p['name'] for p in body['places']] == ['Pattaya Beach']
    assert [p['id'] for p in body['provinces'] if p['visited']] == ['chonburi']
    assert body['visitedCount'] == 1
    assert body['percentage'] == 1


def test_journey_rejects_a_bad_token(client) -> None:
    resp = client.get('/api/journey', headers={'Authorization': 'Bearer nope'})

    assert resp.status_code == 401
