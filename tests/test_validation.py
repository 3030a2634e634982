import json

import pytest

from transcription_api.errors import InvalidRequest
from transcription_api.schemas import MediaKind, TranscriptionRequest
from transcription_api.validation import validate_request


def test_missing_media_type():
    with pytest.raises(InvalidRequest) as exc:
        validate_request(TranscriptionRequest(audio_base64="aGk="))
    assert "media_type is required" in exc.value.message


def test_unknown_media_type():
    with pytest.raises(InvalidRequest) as exc:
        validate_request(TranscriptionRequest(media_type="pdf", audio_base64="aGk="))
    assert "invalid media_type" in exc.value.message


@pytest.mark.parametrize("kind", ["audio", "video", "image"])
def test_missing_payload_names_the_field(kind):
    # a payload for a different kind does not count
    other = "image_base64" if kind != "image" else "audio_base64"
    req = TranscriptionRequest(media_type=kind, **{other: "aGk="})
    with pytest.raises(InvalidRequest) as exc:
        validate_request(req)
    assert exc.value.message == f"{kind}_base64 is required for media_type {kind}"


@pytest.mark.parametrize("kind", ["audio", "video", "image"])
def test_payload_selected_by_kind(kind):
    kinds = {"audio_base64": "YQ==", "video_base64": "dg==", "image_base64": "aQ=="}
    got_kind, payload = validate_request(TranscriptionRequest(media_type=kind, **kinds))
    assert got_kind is MediaKind(kind)
    assert payload == kinds[f"{kind}_base64"]


def test_nested_audio_payload_is_unwrapped():
    wrapped = json.dumps({"audio_base64": "aGVsbG8="})
    _, payload = validate_request(TranscriptionRequest(media_type="audio", audio_base64=wrapped))
    assert payload == "aGVsbG8="


def test_nested_shape_only_applies_to_audio():
    wrapped = json.dumps({"video_base64": "aGVsbG8="})
    _, payload = validate_request(TranscriptionRequest(media_type="video", video_base64=wrapped))
    assert payload == wrapped


def test_nested_without_inner_value_is_left_alone():
    wrapped = json.dumps({"something": "else"})
    _, payload = validate_request(TranscriptionRequest(media_type="audio", audio_base64=wrapped))
    assert payload == wrapped
    _, payload = validate_request(TranscriptionRequest(media_type="audio", audio_base64="{not json"))
    assert payload == "{not json"


def test_deeply_nested_audio_value_is_left_alone():
    wrapped = '{"audio_base64": ' + "[" * 100000 + "]" * 100000 + "}"
    _, payload = validate_request(TranscriptionRequest(media_type="audio", audio_base64=wrapped))
    assert payload == wrapped
