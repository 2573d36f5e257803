"""Conditional GET support for catalogue listings.

ETag/If-None-Match and Last-Modified/If-Modified-Since on lists that change
rarely (professions, material categories).
"""

from __future__ import annotations

import hashlib
import json
from datetime import datetime, timezone
from email.utils import format_datetime, parsedate_to_datetime
from typing import Any, Iterable, Optional, Sequence

from flask import Response, jsonify, request


def latest_change(rows: Iterable[Any], *attrs: str) -> datetime:
    """Most recent of the given timestamp attributes across rows."""
    stamps = [
        getattr(row, attr)
        for row in rows
        for attr in attrs
        if getattr(row, attr, None) is not None
    ]
    return max(stamps) if stamps else datetime(1970, 1, 1)


def _not_modified(etag: str, last_modified_str: str) -> Response:
    resp = Response(status=304)
    resp.headers["ETag"] = etag
    resp.headers["Last-Modified"] = last_modified_str
    return resp


def prepare_cache(
    data: Sequence[Any], last_modified: datetime
) -> Response | tuple[str, str]:
    """Compare conditional headers with the payload.

    Returns a 304 ``Response`` when the client copy is current, otherwise
    ``(etag, last_modified_str)`` to set on the full response.
    """
    if last_modified.tzinfo is None:
        last_modified = last_modified.replace(tzinfo=timezone.utc)
    last_modified = last_modified.replace(microsecond=0)

    etag_source = json.dumps(list(data), ensure_ascii=False, sort_keys=True).encode(
        "utf-8"
    )
    etag = hashlib.sha256(etag_source).hexdigest()
    last_modified_str = format_datetime(last_modified, usegmt=True)

    if request.headers.get("If-None-Match") == etag:
        return _not_modified(etag, last_modified_str)

    ims = request.headers.get("If-Modified-Since")
    if ims and not request.headers.get("If-None-Match"):
        try:
            if parsedate_to_datetime(ims) >= last_modified:
                return _not_modified(etag, last_modified_str)
        except (TypeError, ValueError):
            pass

    return etag, last_modified_str


def cached_json(
    data: Sequence[Any], last_modified: Optional[datetime] = None
) -> Response:
    """jsonify(data) with ETag/Last-Modified, or a bare 304."""
    cache = prepare_cache(data, last_modified or datetime(1970, 1, 1))
    if isinstance(cache, Response):
        return cache
    etag, last_modified_str = cache
    resp = jsonify(list(data))
    resp.headers["ETag"] = etag
    resp.headers["Last-Modified"] = last_modified_str
    resp.headers["Cache-Control"] = "private, no-cache"
    return resp
