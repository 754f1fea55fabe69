"""Turns (method, path, body) into a ready-to-send httpx.Request."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import httpx
from pydantic import BaseModel
from pydantic_core import PydanticSerializationError

from snooclient.errors import InternalError

MEDIA_TYPE_JSON = "application/json"
MEDIA_TYPE_FORM = "application/x-www-form-urlencoded"

HEADER_ACCEPT = "Accept"
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_MODHASH = "X-Modhash"

# Query params may be a plain mapping or an options model
Params = Mapping[str, Any] | BaseModel


def encode_form(values: Mapping[str, Any]) -> bytes:
    """Encode a mapping as an application/x-www-form-urlencoded body."""
    return str(httpx.QueryParams({k: v for k, v in values.items() if v is not None})).encode()


def _query_values(params: Params) -> dict[str, Any]:
    if isinstance(params, BaseModel):
        values = params.model_dump(mode="json", by_alias=True, exclude_none=True)
    else:
        values = dict(params)
    # Unset and empty values are left out
    return {k: v for k, v in values.items() if v is not None and v != ""}


def _encode_json(body: Any) -> bytes:
    if isinstance(body, BaseModel):
        return body.model_dump_json(by_alias=True).encode()
    return json.dumps(body).encode()


def _append_json_extension(url: httpx.URL) -> httpx.URL:
    path = url.path.rstrip("/")
    if path.endswith(".json"):
        return url
    if not path.startswith("/"):
        path = f"/{path}"
    return url.copy_with(path=f"{path}.json")


def build_request(
    method: str,
    path: str,
    body: Any = None,
    *,
    base_url: str | httpx.URL,
    readonly_base_url: str | httpx.URL,
    params: Params | None = None,
    modhash: str | None = None,
    headers: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> httpx.Request:
    """Build an API request.

    Args:
        method: HTTP method.
        path: Path relative to ``base_url``, without a leading slash.
        body: ``bytes`` are sent as a form-urlencoded body, anything else that
            is not None is JSON-encoded.
        base_url: Host the path is resolved against.
        readonly_base_url: The read-only host. Requests resolved onto it get
            ``.json`` appended to their path, since it renders HTML otherwise.
        params: Query parameters merged over any query already in ``path``.
        modhash: Value for the X-Modhash header on mutating requests.
        headers: Extra headers. ``Accept`` is always ``application/json``.
        timeout: Per-request timeout in seconds.

    Returns:
        The built request.

    Raises:
        InternalError: If the path cannot be resolved or the body encoded.
    """
    try:
        url = httpx.URL(base_url).join(path)
        if params is not None:
            url = url.copy_merge_params(_query_values(params))
        if url.host == httpx.URL(readonly_base_url).host:
            url = _append_json_extension(url)
    except (httpx.InvalidURL, TypeError, ValueError) as e:
        raise InternalError(f"Invalid request path {path!r}: {e}", method=method) from e

    request_headers = httpx.Headers(headers)
    content: bytes | None = None

    if isinstance(body, bytes | bytearray):
        content = bytes(body)
        request_headers[HEADER_CONTENT_TYPE] = MEDIA_TYPE_FORM
    elif body is not None:
        try:
            content = _encode_json(body)
        except (TypeError, ValueError, PydanticSerializationError) as e:
            raise InternalError(
                f"Could not encode request body: {e}", method=method, url=str(url)
            ) from e
        request_headers[HEADER_CONTENT_TYPE] = MEDIA_TYPE_JSON

    if modhash:
        request_headers[HEADER_MODHASH] = modhash
    # Callers cannot negotiate away from JSON
    request_headers[HEADER_ACCEPT] = MEDIA_TYPE_JSON

    extensions = {}
    if timeout is not None:
        extensions["timeout"] = httpx.Timeout(timeout).as_dict()

    try:
        return httpx.Request(
            method.upper(),
            url,
            headers=request_headers,
            content=content,
            extensions=extensions,
        )
    except (httpx.InvalidURL, TypeError, ValueError) as e:
        raise InternalError(f"Could not build request: {e}", method=method, url=str(url)) from e
