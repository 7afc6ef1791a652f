"""Built-in API mappings: ``fetch('/api/...')`` routes → ``kintone.api`` calls.

Query-string values arrive as text; kintone expects typed parameters,
so each request transform coerces them (``app=1`` → ``1``,
``ids=1,2`` → ``[1, 2]``, ``totalCount=true`` → ``True``).
"""

import json
import re
from typing import Any, Callable, Dict, List

from .models import (
    ApiMapping,
    MappingExample,
    PlatformRequest,
    WebRequest,
    WebResponse,
)


# ── Parameter coercion ───────────────────────────────────────────────

_INT_RE = re.compile(r"-?[0-9]+")


def _to_int(raw: str) -> Any:
    raw = raw.strip()
    return int(raw) if _INT_RE.fullmatch(raw) else raw


def _to_int_list(raw: str) -> List[Any]:
    return [_to_int(part) for part in raw.split(",") if part.strip()]


def _to_str_list(raw: str) -> List[str]:
    return [part.strip() for part in raw.split(",") if part.strip()]


def _to_bool(raw: str) -> Any:
    lowered = raw.strip().lower()
    if lowered in ("true", "1"):
        return True
    if lowered in ("false", "0"):
        return False
    return raw


def _default_coerce(raw: str) -> Any:
    return int(raw) if _INT_RE.fullmatch(raw) else raw


_PARAM_COERCERS: Dict[str, Callable[[str], Any]] = {
    "app": _to_int,
    "id": _to_int,
    "revision": _to_int,
    "ids": _to_int_list,
    "fields": _to_str_list,
    "totalCount": _to_bool,
    "query": str,
}


def coerce_query_params(request: WebRequest) -> Dict[str, Any]:
    """Typed kintone parameters from the request's query string.

    Repeated keys keep the last value.
    """
    params: Dict[str, Any] = {}
    for key, values in request.query.items():
        coerce = _PARAM_COERCERS.get(key, _default_coerce)
        params[key] = coerce(values[-1])
    return params


def _unwrap_json_body(body: Any) -> Any:
    """``JSON.stringify(x)`` bodies contribute ``x``; kintone.api serializes itself."""
    if isinstance(body, str):
        try:
            return json.loads(body)
        except ValueError:
            return body
    return body


# ── Request transforms ───────────────────────────────────────────────


def _query_request(platform_path: str) -> Callable[[WebRequest], PlatformRequest]:
    def transform(request: WebRequest) -> PlatformRequest:
        return PlatformRequest(
            path=platform_path,
            method=request.method.upper(),
            params=coerce_query_params(request),
        )

    return transform


def _record_write_request(platform_path: str) -> Callable[[WebRequest], PlatformRequest]:
    def transform(request: WebRequest) -> PlatformRequest:
        params = coerce_query_params(request)
        if request.body is not None:
            params["record"] = _unwrap_json_body(request.body)
        return PlatformRequest(path=platform_path, method=request.method.upper(), params=params)

    return transform


def _record_delete_request(request: WebRequest) -> PlatformRequest:
    params = coerce_query_params(request)
    if "id" in params and "ids" not in params:
        params["ids"] = [params.pop("id")]
    return PlatformRequest(path="/k/v1/records.json", method="DELETE", params=params)


# ── Response transforms ──────────────────────────────────────────────


def flatten_record(record: Dict[str, Any]) -> Dict[str, Any]:
    """``{"title": {"type": ..., "value": "x"}}`` → ``{"title": "x"}``."""
    flat: Dict[str, Any] = {}
    for field_code, field_value in (record or {}).items():
        if isinstance(field_value, dict) and "value" in field_value:
            flat[field_code] = field_value["value"]
        else:
            flat[field_code] = field_value
    return flat


def _records_response(response: Dict[str, Any]) -> WebResponse:
    payload: Dict[str, Any] = {
        "records": [flatten_record(r) for r in response.get("records", [])],
    }
    total = response.get("totalCount")
    if total is not None:
        payload["totalCount"] = int(total)
    return WebResponse(status=200, body=json.dumps(payload, ensure_ascii=False))


def _record_response(response: Dict[str, Any]) -> WebResponse:
    payload = {"record": flatten_record(response.get("record", {}))}
    return WebResponse(status=200, body=json.dumps(payload, ensure_ascii=False))


def _write_response(response: Dict[str, Any]) -> WebResponse:
    return WebResponse(status=200, body=json.dumps(response, ensure_ascii=False))


def _created_response(response: Dict[str, Any]) -> WebResponse:
    return WebResponse(status=201, body=json.dumps(response, ensure_ascii=False))


# ── Registry data ────────────────────────────────────────────────────


API_MAPPINGS: List[ApiMapping] = [
    ApiMapping(
        name="records.get",
        web_method="GET",
        path_prefix="/api/records",
        platform_path="/k/v1/records.json",
        description="Fetch a list of records",
        request_transform=_query_request("/k/v1/records.json"),
        response_transform=_records_response,
        example=MappingExample(
            web="const response = await fetch('/api/records?app=1');\n",
            platform="const response = await kintone.api('/k/v1/records.json', 'GET', { app: 1 });\n",
        ),
    ),
    ApiMapping(
        name="record.get",
        web_method="GET",
        path_prefix="/api/record",
        platform_path="/k/v1/record.json",
        description="Fetch a single record",
        request_transform=_query_request("/k/v1/record.json"),
        response_transform=_record_response,
        example=MappingExample(
            web="const response = await fetch('/api/record?app=1&id=5');\n",
            platform="const response = await kintone.api('/k/v1/record.json', 'GET', { app: 1, id: 5 });\n",
        ),
    ),
    ApiMapping(
        name="record.post",
        web_method="POST",
        path_prefix="/api/record",
        platform_path="/k/v1/record.json",
        description="Create a record",
        request_transform=_record_write_request("/k/v1/record.json"),
        response_transform=_created_response,
        example=MappingExample(
            web=(
                "await fetch('/api/record?app=1', {\n"
                "  method: 'POST',\n"
                "  body: JSON.stringify(record),\n"
                "});\n"
            ),
            platform="await kintone.api('/k/v1/record.json', 'POST', { app: 1, record: record });\n",
        ),
    ),
    ApiMapping(
        name="record.put",
        web_method="PUT",
        path_prefix="/api/record",
        platform_path="/k/v1/record.json",
        description="Update a record",
        request_transform=_record_write_request("/k/v1/record.json"),
        response_transform=_write_response,
        example=MappingExample(
            web=(
                "await fetch('/api/record?app=1&id=123', {\n"
                "  method: 'PUT',\n"
                "  body: JSON.stringify(changes),\n"
                "});\n"
            ),
            platform="await kintone.api('/k/v1/record.json', 'PUT', { app: 1, id: 123, record: changes });\n",
        ),
    ),
    ApiMapping(
        name="record.delete",
        web_method="DELETE",
        path_prefix="/api/record",
        platform_path="/k/v1/records.json",
        description="Delete records",
        request_transform=_record_delete_request,
        response_transform=_write_response,
        example=MappingExample(
            web="await fetch('/api/record?app=1&ids=123,124', { method: 'DELETE' });\n",
            platform="await kintone.api('/k/v1/records.json', 'DELETE', { app: 1, ids: [123, 124] });\n",
        ),
    ),
]
