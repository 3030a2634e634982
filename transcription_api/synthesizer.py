from __future__ import annotations

import base64
from pathlib import Path
from typing import Any, Dict

from .config_loader import Toolchain
from .errors import ReplyOutputError, ToolError
from .logging_utils import get_logger
from .runner import format_command, run_tool
from .workspace import non_empty_file


log = get_logger("transcription-api.synthesizer")


def select_voice(language: str, voices: Dict[str, Any]) -> str:
    if language == voices["primary_language"]:
        return str(voices["primary"])
    return str(voices["fallback"])


def reply_text(prefix: str, transcription: str) -> str:
    return f"{prefix}{transcription}"


def synthesize_reply(
    tools: Toolchain,
    workdir: Path,
    text: str,
    voice: str,
    include_command: bool = False,
) -> str:
    """Render `text` with piper and return the waveform as base64."""
    out = workdir / "response.wav"
    try:
        run_tool(tools.piper, ["--model", voice, "--output_file", str(out)], stdin=text.encode("utf-8"))
    except ToolError as e:
        msg = f"failed to generate reply audio: {e.message}"
        if e.output:
            msg += f" - output: {e.output}"
        if include_command and e.command:
            msg += f" - command: {format_command(e.command)}"
        raise ToolError(e.tool, msg, command=e.command, output=e.output)

    if not non_empty_file(out):
        raise ReplyOutputError("reply audio file is missing or empty")
    try:
        data = out.read_bytes()
    except OSError as e:
        raise ReplyOutputError(f"failed to read reply audio: {e}")
    log.info("tts.done", extra={"voice": voice, "bytes": len(data)})
    return base64.b64encode(data).decode("ascii")
