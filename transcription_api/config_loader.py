from __future__ import annotations

import copy
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml


ROOT = Path(__file__).resolve().parents[1]

DEFAULTS: Dict[str, Any] = {
    "server": {"host": "0.0.0.0", "port": 3200},
    # working directories are created under this root, one per request
    "work_root": ".",
    "max_duration_s": 120,
    "tools": {
        "ffprobe": {"bin": "ffprobe", "timeout_s": 30},
        "ffmpeg": {"bin": "ffmpeg", "timeout_s": 120, "sample_rate": 16000, "denoise": True},
        "whisper": {
            "bin": "whisper",
            "model": "/usr/local/share/whisper-models/ggml-small.bin",
            "threads": 2,
            "best_of": 5,
            "output": "json_file",
            "timeout_s": 300,
        },
        "tesseract": {"bin": "tesseract", "language": "por", "timeout_s": 60},
        "piper": {"bin": "piper", "timeout_s": 120},
    },
    "ocr_language_code": "pt",
    "voices": {
        "primary_language": "pt",
        "primary": "pt_BR-faber-medium",
        "fallback": "en_US-lessac-medium",
    },
    "reply_prefix": "Transcrição: ",
    "errors": {"typed_status_codes": True, "include_command": False},
    "rate_limit": {"enabled": False, "rps": 20.0, "burst": 40},
}

WHISPER_OUTPUT_CHANNELS = ("json_file", "stdout")


def config_path() -> Path:
    p = os.getenv("TRANSCRIPTION_CONFIG")
    if p:
        return Path(p)
    return ROOT / "configs" / "transcription.yaml"


def _load_yaml(path: Path) -> Dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise RuntimeError(f"Failed to parse {path}: {e}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: top level must be a mapping")
    return data


def _merge_known(base: Dict[str, Any], override: Dict[str, Any], where: str = "") -> Dict[str, Any]:
    """Overlay `override` onto `base`, rejecting keys `base` does not define."""
    out = dict(base)
    for key, value in override.items():
        name = f"{where}.{key}" if where else str(key)
        if key not in base:
            raise ValueError(f"unknown config option: {name}")
        if isinstance(base[key], dict):
            if not isinstance(value, dict):
                raise ValueError(f"config option {name} must be a mapping")
            out[key] = _merge_known(base[key], value, name)
        else:
            out[key] = value
    return out


def _envf(name: str, cast):
    v = os.getenv(name)
    if v is None:
        return None
    try:
        return cast(v)
    except ValueError:
        return None


def _env_bool(v: str) -> bool:
    return v.lower() in ("1", "true", "on", "yes")


def apply_env_overrides(cfg: Dict[str, Any]) -> Dict[str, Any]:
    port = _envf("PORT", int)
    if port is not None:
        cfg["server"]["port"] = port
    host = os.getenv("HOST")
    if host:
        cfg["server"]["host"] = host
    work_root = os.getenv("WORK_ROOT")
    if work_root:
        cfg["work_root"] = work_root
    max_dur = _envf("MAX_DURATION_S", float)
    if max_dur is not None:
        cfg["max_duration_s"] = max_dur

    for tool in ("ffprobe", "ffmpeg", "whisper", "tesseract", "piper"):
        b = os.getenv(f"{tool.upper()}_BIN")
        if b:
            cfg["tools"][tool]["bin"] = b
    model = os.getenv("WHISPER_MODEL")
    if model:
        cfg["tools"]["whisper"]["model"] = model

    rl = cfg["rate_limit"]
    enabled = os.getenv("RATE_LIMIT_ENABLED")
    if enabled is not None:
        rl["enabled"] = _env_bool(enabled)
    for key, cast in (("rps", float), ("burst", int)):
        val = _envf(f"RATE_LIMIT_{key.upper()}", cast)
        if val is not None:
            rl[key] = val
    return cfg


def build_effective_config(path: Optional[Path] = None) -> Dict[str, Any]:
    """Merge order: env overrides -> config file -> defaults.

    The config file is optional; when absent the defaults apply unchanged.
    """
    cfg = copy.deepcopy(DEFAULTS)
    path = path or config_path()
    if path.exists():
        cfg = _merge_known(cfg, _load_yaml(path))
    cfg = apply_env_overrides(cfg)

    channel = cfg["tools"]["whisper"]["output"]
    if channel not in WHISPER_OUTPUT_CHANNELS:
        raise ValueError(f"tools.whisper.output must be one of {WHISPER_OUTPUT_CHANNELS}, got {channel!r}")
    if float(cfg["max_duration_s"]) <= 0:
        raise ValueError("max_duration_s must be positive")
    cfg["config_path"] = str(path)
    return cfg


@dataclass(frozen=True)
class ToolSpec:
    name: str
    bin: str
    timeout_s: float


@dataclass(frozen=True)
class Toolchain:
    ffprobe: ToolSpec
    ffmpeg: ToolSpec
    whisper: ToolSpec
    tesseract: ToolSpec
    piper: ToolSpec
    sample_rate: int
    denoise: bool
    whisper_model: str
    whisper_threads: int
    whisper_best_of: int
    whisper_output: str
    ocr_language: str

    def all(self) -> list[ToolSpec]:
        return [self.ffprobe, self.ffmpeg, self.whisper, self.tesseract, self.piper]


def toolchain_from_config(cfg: Dict[str, Any]) -> Toolchain:
    tools = cfg["tools"]

    def tool(name: str) -> ToolSpec:
        t = tools[name]
        return ToolSpec(name=name, bin=str(t["bin"]), timeout_s=float(t["timeout_s"]))

    return Toolchain(
        ffprobe=tool("ffprobe"),
        ffmpeg=tool("ffmpeg"),
        whisper=tool("whisper"),
        tesseract=tool("tesseract"),
        piper=tool("piper"),
        sample_rate=int(tools["ffmpeg"]["sample_rate"]),
        denoise=bool(tools["ffmpeg"]["denoise"]),
        whisper_model=str(tools["whisper"]["model"]),
        whisper_threads=int(tools["whisper"]["threads"]),
        whisper_best_of=int(tools["whisper"]["best_of"]),
        whisper_output=str(tools["whisper"]["output"]),
        ocr_language=str(tools["tesseract"]["language"]),
    )
