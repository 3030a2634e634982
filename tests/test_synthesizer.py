import base64

import pytest

from transcription_api.config_loader import toolchain_from_config
from transcription_api.errors import ReplyOutputError, ToolError
from transcription_api.synthesizer import reply_text, select_voice, synthesize_reply


def test_voice_selection(cfg):
    voices = cfg["voices"]
    assert select_voice("pt", voices) == "pt_BR-faber-medium"
    for lang in ("en", "es", "", "pt-BR"):
        assert select_voice(lang, voices) == "en_US-lessac-medium"


def test_reply_text_prefix():
    assert reply_text("Transcrição: ", "olá") == "Transcrição: olá"


def test_synthesize_pipes_text_and_encodes_output(cfg, fake_tools, tmp_path):
    out = synthesize_reply(toolchain_from_config(cfg), tmp_path, "Transcrição: oi", "pt_BR-faber-medium")
    assert base64.b64decode(out) == b"RIFF" + "Transcrição: oi".encode("utf-8")
    call = fake_tools.call("piper")
    assert call["cmd"][1:] == ["--model", "pt_BR-faber-medium", "--output_file", str(tmp_path / "response.wav")]
    assert call["input"] == "Transcrição: oi".encode("utf-8")
    assert call["timeout"] == 120


def test_failure_hides_command_by_default(cfg, fake_tools, tmp_path):
    fake_tools.fail["piper"] = (1, "Unable to find voice")
    with pytest.raises(ToolError) as exc:
        synthesize_reply(toolchain_from_config(cfg), tmp_path, "x", "missing-voice")
    assert "Unable to find voice" in exc.value.message
    assert "command:" not in exc.value.message


def test_failure_includes_command_when_enabled(cfg, fake_tools, tmp_path):
    fake_tools.fail["piper"] = (1, "Unable to find voice")
    with pytest.raises(ToolError) as exc:
        synthesize_reply(toolchain_from_config(cfg), tmp_path, "x", "missing-voice", include_command=True)
    assert "command: piper --model missing-voice --output_file" in exc.value.message


def test_missing_output_is_output_error(cfg, fake_tools, tmp_path, monkeypatch):
    monkeypatch.setattr(fake_tools, "_piper", lambda cmd, _in: fake_tools._ok(cmd))
    with pytest.raises(ReplyOutputError):
        synthesize_reply(toolchain_from_config(cfg), tmp_path, "x", "pt_BR-faber-medium")
