from __future__ import annotations

import base64
import binascii
import json
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .config_loader import Toolchain
from .errors import PayloadDecodeError, ToolError
from .logging_utils import get_logger
from .runner import run_tool
from .schemas import MediaKind
from .workspace import non_empty_file, write_file


log = get_logger("transcription-api.media")


@dataclass
class ProbeResult:
    format_name: str
    duration_s: Optional[float]


def decode_payload(data: str) -> bytes:
    # Line breaks are tolerated, any other non-alphabet character is not.
    compact = data.replace("\r", "").replace("\n", "")
    try:
        return base64.b64decode(compact, validate=True)
    except (binascii.Error, ValueError):
        raise PayloadDecodeError("invalid base64 payload")


def save_input(workdir: Path, kind: MediaKind, blob: bytes) -> Path:
    path = workdir / f"input{kind.input_suffix}"
    write_file(path, blob)
    return path


def _as_float(value) -> Optional[float]:
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def probe(tools: Toolchain, path: Path) -> ProbeResult:
    args = ["-v", "error", "-show_entries", "format=format_name,duration:stream=duration", "-of", "json", str(path)]
    try:
        proc = run_tool(tools.ffprobe, args)
    except ToolError as e:
        raise ToolError(e.tool, f"failed to identify input format: {e.output or e.message}", command=e.command, output=e.output)
    try:
        data = json.loads(proc.stdout.decode("utf-8", errors="ignore") or "null")
    except json.JSONDecodeError as e:
        raise ToolError("ffprobe", f"failed to parse ffprobe output: {e}")
    if not isinstance(data, dict):
        raise ToolError("ffprobe", "failed to parse ffprobe output: not a JSON object")
    fmt = data.get("format") or {}
    if not isinstance(fmt, dict):
        raise ToolError("ffprobe", "failed to parse ffprobe output: format is not an object")
    streams = data.get("streams") or []
    if not isinstance(streams, list):
        raise ToolError("ffprobe", "failed to parse ffprobe output: streams is not a list")
    duration = _as_float(fmt.get("duration"))
    if duration is None:
        # fall back to the longest stream when the container has no duration
        durations = [_as_float(s.get("duration")) for s in streams if isinstance(s, dict)]
        known = [d for d in durations if d is not None]
        duration = max(known) if known else None
    result = ProbeResult(format_name=str(fmt.get("format_name", "")), duration_s=duration)
    log.info("media.probe", extra={"format": result.format_name, "duration_s": duration})
    return result


def clamp_duration(duration_s: Optional[float], ceiling_s: float) -> Optional[float]:
    """Return the truncation length to pass to the transcoder, or None.

    Unknown durations are truncated too, so the ceiling always holds.
    """
    if duration_s is None or duration_s > ceiling_s:
        return ceiling_s
    return None


def transcode_args(tools: Toolchain, src: Path, dst: Path, limit_s: Optional[float]) -> List[str]:
    args = ["-y", "-i", str(src), "-vn", "-map", "0:a", "-ar", str(tools.sample_rate), "-ac", "1"]
    if tools.denoise:
        args += ["-af", "afftdn"]
    if limit_s is not None:
        args += ["-t", f"{limit_s:g}"]
    args.append(str(dst))
    return args


def normalize_waveform(tools: Toolchain, workdir: Path, src: Path, max_duration_s: float) -> Path:
    """Probe `src`, then transcode it to a mono waveform at the configured rate.

    Shared by audio and video inputs.
    """
    info = probe(tools, src)
    limit = clamp_duration(info.duration_s, max_duration_s)
    if limit is not None:
        log.info("media.clamped", extra={"duration_s": info.duration_s, "limit_s": limit})
    dst = workdir / "audio.wav"
    try:
        run_tool(tools.ffmpeg, transcode_args(tools, src, dst, limit))
    except ToolError as e:
        raise ToolError(e.tool, f"failed to convert audio: {e.message}", command=e.command, output=e.output)
    if not dst.exists():
        raise ToolError("ffmpeg", "converted audio file not found")
    if not non_empty_file(dst):
        raise ToolError("ffmpeg", "converted audio file is empty")
    return dst
