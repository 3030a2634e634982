import json
import os
import subprocess
from pathlib import Path

import pytest


ENV_VARS = [
    "TRANSCRIPTION_CONFIG", "PORT", "HOST", "WORK_ROOT", "MAX_DURATION_S",
    "FFPROBE_BIN", "FFMPEG_BIN", "WHISPER_BIN", "WHISPER_MODEL", "TESSERACT_BIN", "PIPER_BIN",
    "RATE_LIMIT_ENABLED", "RATE_LIMIT_RPS", "RATE_LIMIT_BURST",
]


class FakeTools:
    """Stand-in for subprocess.run that mimics the external CLIs.

    ffmpeg copies its input to the output path, whisper transcribes the
    waveform as its own UTF-8 content, tesseract does the same for images
    and piper writes a RIFF header followed by the text it received.
    """

    def __init__(self) -> None:
        self.calls = []
        self.duration = "12.5"
        self.format_name = "ogg"
        self.language = "pt"
        self.segments = None
        self.fail = {}
        self.hang = set()
        self.ffmpeg_output = True

    def names(self):
        return [c["name"] for c in self.calls]

    def call(self, name):
        return next(c for c in self.calls if c["name"] == name)

    def __call__(self, cmd, input=None, capture_output=False, timeout=None, **kwargs):
        name = os.path.basename(cmd[0])
        record = {"name": name, "cmd": list(cmd), "input": input, "timeout": timeout}
        src = self._source(name, cmd)
        if src is not None:
            record["src_bytes"] = Path(src).read_bytes()
        self.calls.append(record)
        if name in self.hang:
            raise subprocess.TimeoutExpired(cmd, timeout)
        if name in self.fail:
            code, err = self.fail[name]
            return subprocess.CompletedProcess(cmd, code, stdout=b"", stderr=err.encode())
        return getattr(self, "_" + name)(cmd, input)

    @staticmethod
    def _source(name, cmd):
        if name == "ffprobe":
            return cmd[-1]
        if name == "ffmpeg":
            return cmd[cmd.index("-i") + 1]
        if name == "tesseract":
            return cmd[1]
        return None

    def _ok(self, cmd, stdout=b""):
        return subprocess.CompletedProcess(cmd, 0, stdout=stdout, stderr=b"")

    def _ffprobe(self, cmd, _input):
        doc = {"format": {"format_name": self.format_name}}
        if self.duration is not None:
            doc["format"]["duration"] = self.duration
        return self._ok(cmd, json.dumps(doc).encode())

    def _ffmpeg(self, cmd, _input):
        src = Path(cmd[cmd.index("-i") + 1])
        if self.ffmpeg_output:
            Path(cmd[-1]).write_bytes(src.read_bytes())
        return self._ok(cmd)

    def _whisper(self, cmd, _input):
        wav = Path(cmd[1])
        segments = self.segments
        if segments is None:
            segments = [{"text": " " + wav.read_bytes().decode("utf-8")}]
        doc = {"result": {"language": self.language}, "transcription": segments}
        Path(str(wav) + ".json").write_text(json.dumps(doc), encoding="utf-8")
        return self._ok(cmd, json.dumps(doc).encode())

    def _tesseract(self, cmd, _input):
        image = Path(cmd[1])
        return self._ok(cmd, b"\n  " + image.read_bytes() + b"  \n\n")

    def _piper(self, cmd, stdin):
        out = Path(cmd[cmd.index("--output_file") + 1])
        out.write_bytes(b"RIFF" + (stdin or b""))
        return self._ok(cmd)


@pytest.fixture
def fake_tools(monkeypatch):
    import transcription_api.runner as runner

    fake = FakeTools()
    monkeypatch.setattr(runner.subprocess, "run", fake)
    return fake


@pytest.fixture
def cfg(tmp_path, monkeypatch):
    from transcription_api.config_loader import build_effective_config

    for var in ENV_VARS:
        monkeypatch.delenv(var, raising=False)
    c = build_effective_config(path=tmp_path / "absent.yaml")
    work = tmp_path / "work"
    work.mkdir()
    c["work_root"] = str(work)
    return c


@pytest.fixture
def client(cfg):
    from fastapi.testclient import TestClient
    from transcription_api.app import create_app
    from transcription_api.metrics import metrics

    metrics.reset()
    return TestClient(create_app(cfg))
