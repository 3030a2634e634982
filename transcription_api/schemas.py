from __future__ import annotations

from enum import Enum
from typing import Any, Dict, Optional

from pydantic import BaseModel


class MediaKind(str, Enum):
    audio = "audio"
    video = "video"
    image = "image"

    @property
    def payload_field(self) -> str:
        return f"{self.value}_base64"

    @property
    def input_suffix(self) -> str:
        # downstream tools pick demuxers from the extension
        return {"audio": ".ogg", "video": ".mp4", "image": ".png"}[self.value]


class TranscriptionRequest(BaseModel):
    # Everything is optional here; the validator reports missing fields in
    # the response body instead of letting the framework answer 422.
    media_type: Optional[str] = None
    audio_base64: Optional[str] = None
    video_base64: Optional[str] = None
    image_base64: Optional[str] = None


class TranscriptionResponse(BaseModel):
    transcription: str = ""
    language: str = ""
    audio_response_base64: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def failure(cls, message: str) -> "TranscriptionResponse":
        return cls(error=message)

    def to_payload(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {"transcription": self.transcription, "language": self.language}
        if self.audio_response_base64:
            out["audio_response_base64"] = self.audio_response_base64
        if self.error:
            out["error"] = self.error
        return out
