"""API-Gateway style entry point: `handler(event, store=..., config=...)` returns a response dict."""

from __future__ import annotations

import json
import re
from typing import Any, Dict, Optional

from utr_review.config import ReviewConfig
from utr_review.logging_utils import _dbg, _log_step
from utr_review.review import build_review
from utr_review.store import ReviewStore, StoreError
from utr_review.utr_client import error_code_from

_PROFILE_ID_RE = re.compile(r"^\d{4,10}$")

CORS_HEADERS = {
    "Content-Type": "application/json",
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "GET, POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization",
    "Access-Control-Max-Age": "86400",
}


class BadRequest(ValueError):
    pass


def _response(status: int, body: Any) -> Dict[str, Any]:
    return {
        "statusCode": status,
        "headers": dict(CORS_HEADERS),
        "body": body if isinstance(body, str) else json.dumps(body, ensure_ascii=False),
    }


def _error_response(ex: Exception) -> Dict[str, Any]:
    code = error_code_from(ex) or type(ex).__name__
    return _response(500, {"success": False, "error": str(ex), "code": code})


def _method(event: Dict[str, Any]) -> str:
    ctx = event.get("requestContext") or {}
    raw = event.get("httpMethod") or (ctx.get("http") or {}).get("method") or ctx.get("httpMethod") or ""
    return str(raw).upper()


def _profile_id(raw: Any) -> str:
    pid = str(raw or "").strip()
    if not pid:
        raise BadRequest("Missing required field: profileId")
    if not _PROFILE_ID_RE.match(pid):
        raise BadRequest("Invalid profile ID: must be 4 to 10 digits")
    return pid


def _year(raw: Any, default: int) -> int:
    if raw in (None, ""):
        return default
    try:
        return int(raw)
    except Exception as ex:
        raise BadRequest(f"Invalid year: {raw!r}") from ex


def _body(event: Dict[str, Any]) -> Dict[str, Any]:
    raw = event.get("body")
    if raw in (None, ""):
        return {}
    if isinstance(raw, dict):
        return raw
    try:
        parsed = json.loads(raw)
    except ValueError as ex:
        raise BadRequest(f"Invalid JSON in request body: {ex}") from ex
    if not isinstance(parsed, dict):
        raise BadRequest("Request body must be a JSON object")
    return parsed


def handler(event: Dict[str, Any], *, store: ReviewStore, config: Optional[ReviewConfig] = None) -> Dict[str, Any]:
    cfg = config or ReviewConfig.from_env()
    method = _method(event)
    if method == "OPTIONS":
        return _response(200, "")
    try:
        if method == "GET":
            query = event.get("queryStringParameters") or {}
            pid = _profile_id(query.get("profileId"))
            year = _year(query.get("year"), cfg.season)
            record = store.get(pid, year)
            if record is None:
                return _response(404, {"success": False, "error": f"No review for profile {pid} in {year}"})
            return _response(200, {"success": True, **record})
        if method != "POST":
            return _response(405, {"success": False, "error": f"Method not allowed: {method or '-'}"})
        body = _body(event)
        pid = _profile_id(body.get("profileId"))
        year = _year(body.get("year"), cfg.season)
        fragments = body.get("fragments")
        if not isinstance(fragments, list):
            raise BadRequest("Missing required field: fragments (list)")
    except BadRequest as ex:
        return _response(400, {"success": False, "error": str(ex)})
    except StoreError as ex:
        return _error_response(ex)

    _log_step(f"http: review profile={pid} year={year} fragments={len(fragments)}")
    try:
        store.mark_pending(pid, year)
        doc = build_review(pid, year, body, config=cfg)
        record = store.mark_completed(pid, year, doc)
    except Exception as ex:
        _dbg(f"http: review failed profile={pid} error={ex}")
        try:
            store.mark_failed(pid, year, str(ex))
        except StoreError as store_ex:
            _dbg(f"http: could not record failure: {store_ex}")
        return _error_response(ex)
    return _response(200, {"success": True, **record})
