from __future__ import annotations

import json
from typing import Tuple

from .errors import InvalidRequest
from .schemas import MediaKind, TranscriptionRequest


def _unwrap_nested_audio(value: str) -> str:
    """Some clients send `audio_base64` as a JSON object wrapping the real
    payload under the same key. Only that exact shape is unwrapped."""
    stripped = value.lstrip()
    if not stripped.startswith("{"):
        return value
    try:
        inner = json.loads(stripped)
    except (json.JSONDecodeError, RecursionError):
        return value
    if isinstance(inner, dict):
        nested = inner.get("audio_base64")
        if isinstance(nested, str) and nested:
            return nested
    return value


def validate_request(req: TranscriptionRequest) -> Tuple[MediaKind, str]:
    """Return the media kind and its raw base64 payload, or raise InvalidRequest."""
    if not req.media_type:
        raise InvalidRequest("media_type is required (audio, video, image)")
    try:
        kind = MediaKind(req.media_type)
    except ValueError:
        raise InvalidRequest("invalid media_type (must be audio, video or image)")

    field = kind.payload_field
    payload = getattr(req, field)
    if not payload:
        raise InvalidRequest(f"{field} is required for media_type {kind.value}")
    if kind is MediaKind.audio:
        payload = _unwrap_nested_audio(payload)
    return kind, payload
