"""Core shared logic for the daemon client.

Pure helpers used by ``AgentlabClient``: request headers, URL path
construction and response decoding.
"""

import json
from typing import Any, Optional
from urllib.parse import quote

import httpx

from agentlab.cli.client.errors import APIError
from agentlab.cli.errors import CLIError
from agentlab.version import user_agent

MAX_ERROR_BODY = 512

_FORBIDDEN_SEGMENT_CHARS = ("/", "\\", "\x00", "\n", "\r")


def build_headers(token: str = "", has_body: bool = False) -> dict[str, str]:
    """Headers sent with every request.

    ``token`` is only passed by the remote substrate.
    """
    headers = {
        "User-Agent": user_agent(),
        "Accept": "application/json",
    }
    if has_body:
        headers["Content-Type"] = "application/json"
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def endpoint_path(prefix: str, *segments: Any) -> str:
    """Join ``prefix`` and percent-escaped path segments.

    Raises:
        ValueError: a segment is empty, ``.``/``..``, or contains a path
            separator, NUL or newline.
    """
    parts = [prefix.rstrip("/")]
    for segment in segments:
        value = str(segment).strip()
        if not value or value in (".", ".."):
            raise ValueError(f"invalid path segment {value!r}")
        if any(ch in value for ch in _FORBIDDEN_SEGMENT_CHARS):
            raise ValueError(f"invalid path segment {value!r}")
        parts.append(quote(value, safe=""))
    return "/".join(parts)


def query_escape(value: str) -> str:
    """Percent-encode a query value; spaces become %20 and ``+`` becomes %2B."""
    return quote(value, safe="")


def _trim_body(body: bytes) -> str:
    text = body.decode("utf-8", errors="replace").strip()
    if len(text) > MAX_ERROR_BODY:
        text = text[:MAX_ERROR_BODY] + "..."
    return text


def decode_error(status_code: int, body: bytes) -> APIError:
    """Build an APIError from an error response body.

    Understands ``{"error": "..."}`` and ``{"code": "...", "message": "..."}``
    envelopes (``error`` may itself be such an object).
    """
    payload: Optional[Any] = None
    try:
        payload = json.loads(body) if body else None
    except ValueError:
        payload = None

    message = ""
    code = ""
    if isinstance(payload, dict):
        error = payload.get("error")
        if isinstance(error, dict):
            message = str(error.get("message") or "").strip()
            code = str(error.get("code") or "")
        elif isinstance(error, str):
            message = error.strip()
        if not message and isinstance(payload.get("message"), str):
            message = payload["message"].strip()
        code = code or str(payload.get("code") or "")

    if message:
        return APIError(
            message=message,
            status_code=status_code,
            details=payload if isinstance(payload, dict) else {},
            code=code,
        )

    raw = _trim_body(body)
    text = f"request failed with status {status_code}"
    if raw:
        text = f"{text}: {raw}"
    return APIError(message=text, status_code=status_code, details={"raw": raw})


def parse_response(response: httpx.Response) -> bytes:
    """Return the body of a 2xx response; raise APIError otherwise."""
    if 200 <= response.status_code < 300:
        return response.content
    raise decode_error(response.status_code, response.content)


def decode_json(payload: bytes, what: str = "response") -> Any:
    """Decode a JSON payload from the daemon."""
    try:
        return json.loads(payload) if payload else {}
    except ValueError as e:
        raise CLIError(f"invalid {what} from agentlabd: {e}") from e
