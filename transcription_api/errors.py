"""Failure taxonomy for the transcription pipeline.

Every step raises one of these; the API layer turns them into the error
payload. `status_code` is used only when typed status codes are enabled.
"""

from __future__ import annotations

from typing import Optional, Sequence


class TranscriptionError(Exception):
    kind = "internal"
    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequest(TranscriptionError):
    kind = "validation"
    status_code = 400


class PayloadDecodeError(TranscriptionError):
    kind = "decoding"
    status_code = 400


class WorkspaceError(TranscriptionError):
    kind = "filesystem"
    status_code = 500


class ToolError(TranscriptionError):
    """An external tool failed, timed out, or produced unusable output."""

    kind = "tool"
    status_code = 502

    def __init__(self, tool: str, message: str, command: Optional[Sequence[str]] = None, output: str = "") -> None:
        super().__init__(message)
        self.tool = tool
        self.command = list(command) if command else None
        self.output = output


class ReplyOutputError(TranscriptionError):
    kind = "output"
    status_code = 500
