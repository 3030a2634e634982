from __future__ import annotations

from typing import Any, Dict, Tuple

from .config_loader import toolchain_from_config
from .errors import TranscriptionError
from .logging_utils import get_logger
from .media import decode_payload, normalize_waveform, save_input
from .metrics import metrics
from .recognizer import recognize_image, transcribe_speech
from .schemas import MediaKind, TranscriptionRequest, TranscriptionResponse
from .synthesizer import reply_text, select_voice, synthesize_reply
from .validation import validate_request
from .workspace import request_workspace


log = get_logger("transcription-api.pipeline")


def run_pipeline(req: TranscriptionRequest, cfg: Dict[str, Any]) -> TranscriptionResponse:
    """Validate, prepare, recognize and synthesize for one request.

    Raises a TranscriptionError subclass on the first failing step; the
    working directory is gone by the time this returns or raises.
    """
    kind, payload = validate_request(req)
    tools = toolchain_from_config(cfg)
    metrics.inc(f"transcriptions_total:{kind.value}")

    with request_workspace(cfg["work_root"]) as workdir:
        blob = decode_payload(payload)
        src = save_input(workdir, kind, blob)
        log.info("pipeline.input_saved", extra={"media_type": kind.value, "bytes": len(blob)})

        if kind is MediaKind.image:
            rec = recognize_image(tools, src, str(cfg["ocr_language_code"]))
        else:
            wav = normalize_waveform(tools, workdir, src, float(cfg["max_duration_s"]))
            rec = transcribe_speech(tools, wav)

        voice = select_voice(rec.language, cfg["voices"])
        audio_b64 = synthesize_reply(
            tools,
            workdir,
            reply_text(str(cfg["reply_prefix"]), rec.text),
            voice,
            include_command=bool(cfg["errors"]["include_command"]),
        )
        return TranscriptionResponse(
            transcription=rec.text,
            language=rec.language,
            audio_response_base64=audio_b64,
        )


def handle(req: TranscriptionRequest, cfg: Dict[str, Any]) -> Tuple[TranscriptionResponse, int]:
    """Run the pipeline and map failures to the error payload and a status code."""
    try:
        return run_pipeline(req, cfg), 200
    except TranscriptionError as e:
        metrics.inc(f"transcription_errors_total:{e.kind}")
        log.warning("pipeline.failed", extra={"kind": e.kind, "error": e.message, "media_type": req.media_type})
        status = e.status_code if cfg["errors"]["typed_status_codes"] else 200
        return TranscriptionResponse.failure(e.message), status
