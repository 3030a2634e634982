#!/usr/bin/env python3
"""Preflight checklist for the transcription service (console only).

Returns lists of (name, ok, detail) and prints them with a mark per line.
"""
from __future__ import annotations

import importlib
import shutil
import sys
from pathlib import Path
from typing import Callable, List, Tuple

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


Result = Tuple[str, bool, str]


def _ok(name: str, detail: str = "") -> Result:
    return (name, True, detail)


def _fail(name: str, detail: str = "") -> Result:
    return (name, False, detail)


def check_python() -> Result:
    ver = sys.version.split()[0]
    if sys.version_info[:2] >= (3, 9):
        return _ok("Python >= 3.9", ver)
    return _fail("Python >= 3.9", ver)


def check_requirements() -> Result:
    mods = ["fastapi", "uvicorn", "pydantic", "yaml", "httpx"]
    missing = []
    for m in mods:
        try:
            importlib.import_module(m)
        except ImportError:
            missing.append(m)
    if not missing:
        return _ok("Dependencies importable", ", ".join(mods))
    return _fail("Dependencies importable", "missing: " + ", ".join(missing))


def check_config() -> Result:
    from transcription_api.config_loader import build_effective_config

    try:
        cfg = build_effective_config()
    except (ValueError, RuntimeError) as e:
        return _fail("Config loads", str(e))
    return _ok("Config loads", cfg["config_path"])


def _tool_checks() -> List[Callable[[], Result]]:
    from transcription_api.config_loader import build_effective_config, toolchain_from_config

    tools = toolchain_from_config(build_effective_config())

    def make(name: str, binary: str) -> Callable[[], Result]:
        def check() -> Result:
            found = shutil.which(binary)
            return _ok(f"{name} available", found) if found else _fail(f"{name} available", f"{binary} not on PATH")
        return check

    checks = [make(t.name, t.bin) for t in tools.all()]

    def check_model() -> Result:
        p = Path(tools.whisper_model)
        return _ok("whisper model present", str(p)) if p.exists() else _fail("whisper model present", str(p))

    checks.append(check_model)
    return checks


def run_checks(checks: List[Callable[[], Result]]) -> List[Result]:
    return [fn() for fn in checks]


def main() -> int:
    checks = [check_python, check_requirements, check_config]
    res = run_checks(checks)
    if all(ok for _, ok, _ in res):
        res += run_checks(_tool_checks())
    for name, ok, detail in res:
        mark = "[✔]" if ok else "[✖]"
        print(f" {mark} {name}" + (f": {detail}" if detail else ""))
    return 0 if all(ok for _, ok, _ in res) else 2


if __name__ == "__main__":
    raise SystemExit(main())
