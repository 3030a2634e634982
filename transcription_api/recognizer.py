from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, List

from .config_loader import Toolchain
from .errors import ToolError
from .logging_utils import get_logger
from .runner import run_tool


log = get_logger("transcription-api.recognizer")


@dataclass
class Recognition:
    text: str
    language: str


def whisper_args(tools: Toolchain, wav: Path) -> List[str]:
    return [
        str(wav),
        "--model", tools.whisper_model,
        "--language", "auto",
        "--output-json",
        "--threads", str(tools.whisper_threads),
        "--best-of", str(tools.whisper_best_of),
        "--no-timestamps",
    ]


def parse_whisper_json(raw: str) -> Recognition:
    """Extract transcript and language from whisper's JSON result.

    Expected shape: {"result": {"language": "xx"}, "transcription": [{"text": "..."}]}
    """
    try:
        data: Any = json.loads(raw)
    except json.JSONDecodeError as e:
        raise ToolError("whisper", f"failed to parse whisper JSON: {e}")
    if not isinstance(data, dict):
        raise ToolError("whisper", "failed to parse whisper JSON: not an object")
    segments = data.get("transcription")
    if not isinstance(segments, list) or not segments:
        raise ToolError("whisper", "no transcription found in whisper output")
    texts = []
    for s in segments:
        t = s.get("text") if isinstance(s, dict) else None
        if isinstance(t, str):
            texts.append(t.strip())
    text = " ".join(t for t in texts if t)
    if not text:
        raise ToolError("whisper", "no transcription found in whisper output")
    result = data.get("result") or {}
    language = str(result.get("language", "")) if isinstance(result, dict) else ""
    return Recognition(text=text, language=language)


def transcribe_speech(tools: Toolchain, wav: Path) -> Recognition:
    try:
        proc = run_tool(tools.whisper, whisper_args(tools, wav))
    except ToolError as e:
        raise ToolError(e.tool, f"failed to transcribe audio: {e.message}", command=e.command, output=e.output)
    stderr = proc.stderr.decode("utf-8", errors="ignore")
    if stderr:
        log.debug("whisper.stderr", extra={"output": stderr[-2000:]})

    if tools.whisper_output == "stdout":
        raw = proc.stdout.decode("utf-8", errors="ignore")
    else:
        json_file = Path(str(wav) + ".json")
        try:
            raw = json_file.read_text(encoding="utf-8")
        except OSError as e:
            raise ToolError("whisper", f"failed to read whisper JSON file: {e}")
    rec = parse_whisper_json(raw)
    log.info("whisper.result", extra={"language": rec.language, "chars": len(rec.text)})
    return rec


def recognize_image(tools: Toolchain, image: Path, language_code: str) -> Recognition:
    """OCR the image; the language is the configured code, never detected."""
    try:
        proc = run_tool(tools.tesseract, [str(image), "stdout", "-l", tools.ocr_language])
    except ToolError as e:
        raise ToolError(e.tool, f"OCR failed: {e.output or e.message}", command=e.command, output=e.output)
    text = proc.stdout.decode("utf-8", errors="ignore").strip()
    log.info("ocr.result", extra={"chars": len(text)})
    return Recognition(text=text, language=language_code)
