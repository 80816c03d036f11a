"""
province_catalog.py — The 77 provinces of Thailand and the name heuristics
used to tie free-text place locations and GeoJSON feature names to them.

Place locations are typed by people ("Chon Buri", "chiang mai") and the
GeoJSON dataset has its own spellings ("Bangkok Metropolis",
"Phra Nakhon Si Ayutthaya"), so every comparison goes through the helpers
below rather than plain equality.
"""

import math
import re
from typing import NamedTuple

TOTAL_PROVINCES = 77


class Province(NamedTuple):
    id: str
    name: str
    region: str
    demo_visited: bool = False


# Regions follow the six-region grouping used by the tourism authority.
PROVINCES: tuple[Province, ...] = (
    # ── Northern ──────────────────────────────────────────────────────────────
    Province('chiang-mai',          'Chiang Mai',          'Northern'),
    Province('chiang-rai',          'Chiang Rai',          'Northern', True),
    Province('lampang',             'Lampang',             'Northern'),
    Province('lamphun',             'Lamphun',             'Northern'),
    Province('mae-hong-son',        'Mae Hong Son',        'Northern'),
    Province('nan',                 'Nan',                 'Northern'),
    Province('phayao',              'Phayao',              'Northern'),
    Province('phrae',               'Phrae',               'Northern', True),
    Province('uttaradit',           'Uttaradit',           'Northern'),
    # ── Northeastern ─────────────────────────────────────────────────────────
    Province('amnat-charoen',       'Amnat Charoen',       'Northeastern'),
    Province('bueng-kan',           'Bueng Kan',           'Northeastern'),
    Province('buriram',             'Buriram',             'Northeastern'),
    Province('chaiyaphum',          'Chaiyaphum',          'Northeastern'),
    Province('kalasin',             'Kalasin',             'Northeastern'),
    Province('khon-kaen',           'Khon Kaen',           'Northeastern', True),
    Province('loei',                'Loei',                'Northeastern'),
    Province('maha-sarakham',       'Maha Sarakham',       'Northeastern'),
    Province('mukdahan',            'Mukdahan',            'Northeastern'),
    Province('nakhon-phanom',       'Nakhon Phanom',       'Northeastern'),
    Province('nakhon-ratchasima',   'Nakhon Ratchasima',   'Northeastern'),
    Province('nong-bua-lamphu',     'Nong Bua Lamphu',     'Northeastern'),
    Province('nong-khai',           'Nong Khai',           'Northeastern'),
    Province('roi-et',              'Roi Et',              'Northeastern'),
    Province('sakon-nakhon',        'Sakon Nakhon',        'Northeastern'),
    Province('sisaket',             'Sisaket',             'Northeastern'),
    Province('surin',               'Surin',               'Northeastern'),
    Province('ubon-ratchathani',    'Ubon Ratchathani',    'Northeastern'),
    Province('udon-thani',          'Udon Thani',          'Northeastern'),
    Province('yasothon',            'Yasothon',            'Northeastern'),
    # ── Central ──────────────────────────────────────────────────────────────
    Province('bangkok',             'Bangkok',             'Central', True),
    Province('ang-thong',           'Ang Thong',           'Central'),
    Province('ayutthaya',           'Ayutthaya',           'Central', True),
    Province('chai-nat',            'Chai Nat',            'Central'),
    Province('kamphaeng-phet',      'Kamphaeng Phet',      'Central'),
    Province('lopburi',             'Lopburi',             'Central'),
    Province('nakhon-nayok',        'Nakhon Nayok',        'Central'),
    Province('nakhon-pathom',       'Nakhon Pathom',       'Central'),
    Province('nakhon-sawan',        'Nakhon Sawan',        'Central'),
    Province('nonthaburi',          'Nonthaburi',          'Central'),
    Province('pathum-thani',        'Pathum Thani',        'Central'),
    Province('phetchabun',          'Phetchabun',          'Central'),
    Province('phichit',             'Phichit',             'Central'),
    Province('phitsanulok',         'Phitsanulok',         'Central', True),
    Province('samut-prakan',        'Samut Prakan',        'Central'),
    Province('samut-sakhon',        'Samut Sakhon',        'Central'),
    Province('samut-songkhram',     'Samut Songkhram',     'Central'),
    Province('saraburi',            'Saraburi',            'Central'),
    Province('sing-buri',           'Sing Buri',           'Central'),
    Province('sukhothai',           'Sukhothai',           'Central'),
    Province('suphan-buri',         'Suphan Buri',         'Central'),
    Province('uthai-thani',         'Uthai Thani',         'Central'),
    # ── Eastern ──────────────────────────────────────────────────────────────
    Province('chachoengsao',        'Chachoengsao',        'Eastern'),
    Province('chanthaburi',         'Chanthaburi',         'Eastern'),
    Province('chonburi',            'Chonburi',            'Eastern'),
    Province('prachinburi',         'Prachinburi',         'Eastern'),
    Province('rayong',              'Rayong',              'Eastern'),
    Province('sa-kaeo',             'Sa Kaeo',             'Eastern'),
    Province('trat',                'Trat',                'Eastern'),
    # ── Western ──────────────────────────────────────────────────────────────
    Province('kanchanaburi',        'Kanchanaburi',        'Western'),
    Province('phetchaburi',         'Phetchaburi',         'Western'),
    Province('prachuap-khiri-khan', 'Prachuap Khiri Khan', 'Western', True),
    Province('ratchaburi',          'Ratchaburi',          'Western'),
    Province('tak',                 'Tak',                 'Western'),
    # ── Southern ─────────────────────────────────────────────────────────────
    Province('chumphon',            'Chumphon',            'Southern'),
    Province('krabi',               'Krabi',               'Southern'),
    Province('nakhon-si-thammarat', 'Nakhon Si Thammarat', 'Southern'),
    Province('narathiwat',          'Narathiwat',          'Southern'),
    Province('pattani',             'Pattani',             'Southern'),
    Province('phang-nga',           'Phang Nga',           'Southern'),
    Province('phatthalung',         'Phatthalung',         'Southern'),
    Province('phuket',              'Phuket',              'Southern', True),
    Province('ranong',              'Ranong',              'Southern'),
    Province('satun',               'Satun',               'Southern'),
    Province('songkhla',            'Songkhla',            'Southern'),
    Province('surat-thani',         'Surat Thani',         'Southern', True),
    Province('trang',               'Trang',               'Southern'),
    Province('yala',                'Yala',                'Southern'),
)

_BY_ID     = {p.id: p for p in PROVINCES}
_BY_NAME   = {p.name.lower(): p for p in PROVINCES}
_BY_SQUASH = {p.name.lower().replace(' ', ''): p for p in PROVINCES}

# Official and dataset spellings that no normalisation rule can reach,
# keyed by squashed name.
_ALIASES = {
    'phranakhonsiayutthaya': 'ayutthaya',
    'krungthepmahanakhon':   'bangkok',
    'korat':                 'nakhon-ratchasima',
}


# ---------------------------------------------------------------------------
# Normalisation
# ---------------------------------------------------------------------------

def slugify(text: str) -> str:
    """'Chiang Mai' -> 'chiang-mai'. Runs of whitespace become one hyphen."""
    return re.sub(r'\s+', '-', (text or '').lower())


def squash(text: str) -> str:
    """'Chon Buri' -> 'chonburi'."""
    return re.sub(r'\s+', '', (text or '').lower())


def get(province_id: str) -> Province | None:
    return _BY_ID.get(province_id)


def find(location: str) -> Province | None:
    """Catalogue entry for a free-text location, or None."""
    if not location:
        return None
    return (
        _BY_NAME.get(location.lower())
        or _BY_ID.get(slugify(location))
        or _BY_SQUASH.get(squash(location))
        or _BY_ID.get(_ALIASES.get(squash(location), ''))
    )


def resolve(location: str) -> tuple[str, str]:
    """
    Return (province_id, province_name) for a place location.

    Known provinces resolve to their catalogue id and canonical name; anything
    else is kept as typed with a slug id so it can still be tracked.
    """
    match = find(location)
    if match is not None:
        return match.id, match.name
    return slugify(location), location


# ---------------------------------------------------------------------------
# GeoJSON name matching
# ---------------------------------------------------------------------------

def names_match(geo_name: str, province_id: str, province_name: str) -> bool:
    """
    Loose match between a GeoJSON feature name and a province record.

    Accepts: same name ignoring case; id equal to the slugged geo name; one
    name a prefix of the other ("Bangkok" / "Bangkok Metropolis"); names
    equal once whitespace is dropped; the id without hyphens equal to the
    whitespace-free geo name ("chonburi" / "Chon Buri"); or the geo name
    being a known alias of the province ("Phra Nakhon Si Ayutthaya").
    """
    geo_lower = (geo_name or '').lower()
    p_lower   = (province_name or '').lower()
    p_norm    = (province_id or '').lower()
    if not geo_lower or not p_lower:
        return False

    if p_lower == geo_lower:
        return True
    if p_norm == slugify(geo_name):
        return True
    if geo_lower.startswith(p_lower) or p_lower.startswith(geo_lower):
        return True

    geo_no_space = squash(geo_name)
    if geo_no_space == squash(province_name) or p_norm.replace('-', '') == geo_no_space:
        return True
    return _ALIASES.get(geo_no_space) == p_norm


def progress(visited_count: int, total: int = TOTAL_PROVINCES) -> int:
    """Whole-number percentage, halves rounded up."""
    if total <= 0:
        return 0
    return int(math.floor(visited_count * 100 / total + 0.5))
