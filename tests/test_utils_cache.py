import hashlib
import json
from datetime import datetime
from types import SimpleNamespace

import pytest

from utils.cache import cached_json, latest_change, prepare_cache


@pytest.fixture()
def professions():
    return [
        {"id": 1, "name": "Alchimie", "priceRanges": {}},
        {"id": 2, "name": "Forge", "priceRanges": {"300": {"min": 10, "max": 20}}},
    ]


def _expected_etag(data):
    payload = json.dumps(list(data), ensure_ascii=False, sort_keys=True)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def test_prepare_cache_generates_headers(app, professions):
    with app.test_request_context():
        etag, last_modified = prepare_cache(
            professions, datetime(2024, 1, 1, 12, 0, 0, 123456)
        )

    assert etag == _expected_etag(professions)
    assert last_modified == "Mon, 01 Jan 2024 12:00:00 GMT"


def test_prepare_cache_matching_etag(app, professions):
    etag = _expected_etag(professions)
    with app.test_request_context(headers={"If-None-Match": etag}):
        resp = prepare_cache(professions, datetime(2024, 1, 2))

    assert resp.status_code == 304
    assert resp.headers["ETag"] == etag


def test_prepare_cache_if_modified_since(app, professions):
    headers = {"If-Modified-Since": "Wed, 03 Jan 2024 15:00:00 GMT"}
    with app.test_request_context(headers=headers):
        resp = prepare_cache(professions, datetime(2024, 1, 3, 15, 0, 0))
    assert resp.status_code == 304

    with app.test_request_context(headers=headers):
        result = prepare_cache(professions, datetime(2024, 1, 4))
    assert isinstance(result, tuple)


def test_prepare_cache_ignores_bad_date(app, professions):
    with app.test_request_context(headers={"If-Modified-Since": "hier"}):
        result = prepare_cache(professions, datetime(2024, 1, 3))
    assert isinstance(result, tuple)


def test_cached_json_sets_headers(app, professions):
    with app.test_request_context():
        resp = cached_json(professions, datetime(2024, 1, 3))

    assert resp.status_code == 200
    assert resp.get_json() == professions
    assert resp.headers["Cache-Control"] == "private, no-cache"
    assert resp.headers["ETag"] == _expected_etag(professions)


def test_latest_change():
    rows = [
        SimpleNamespace(created_at=datetime(2024, 1, 1), updated_at=None),
        SimpleNamespace(created_at=datetime(2024, 1, 2), updated_at=datetime(2024, 2, 1)),
    ]
    assert latest_change(rows, "created_at", "updated_at") == datetime(2024, 2, 1)
    assert latest_change([], "created_at") == datetime(1970, 1, 1)
