from __future__ import annotations

import shlex
import shutil
import subprocess
import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from .config_loader import Toolchain, ToolSpec
from .errors import ToolError
from .logging_utils import get_logger
from .metrics import metrics


log = get_logger("transcription-api.runner")


def _text(data: Optional[bytes]) -> str:
    return (data or b"").decode("utf-8", errors="ignore")


def format_command(cmd: Sequence[str]) -> str:
    return " ".join(shlex.quote(str(c)) for c in cmd)


def run_tool(
    tool: ToolSpec,
    args: Sequence[str],
    stdin: Optional[bytes] = None,
) -> subprocess.CompletedProcess:
    """Run `tool.bin` with `args`, capturing stdout and stderr.

    Raises ToolError when the binary is missing, exceeds its timeout, or
    exits non-zero. The error carries the command line and the captured
    output so callers can decide how much of it to surface.
    """
    cmd: List[str] = [tool.bin] + [str(a) for a in args]
    t0 = time.time()
    try:
        proc = subprocess.run(cmd, input=stdin, capture_output=True, timeout=tool.timeout_s)
    except subprocess.TimeoutExpired as e:
        raise ToolError(tool.name, f"{tool.name} timed out after {tool.timeout_s:g}s", command=cmd, output=_text(e.stderr))
    except OSError as e:
        raise ToolError(tool.name, f"{tool.name} could not be started: {e}", command=cmd)
    finally:
        dur = (time.time() - t0) * 1000.0
        metrics.observe_duration(f"tool:{tool.name}", dur)
    log.info("tool.run", extra={"tool": tool.name, "returncode": proc.returncode, "dur_ms": round(dur, 2)})
    if proc.returncode != 0:
        output = (_text(proc.stderr) + _text(proc.stdout)).strip()
        log.warning("tool.failed", extra={"tool": tool.name, "returncode": proc.returncode, "output": output[:2000]})
        raise ToolError(tool.name, f"{tool.name} exited with status {proc.returncode}", command=cmd, output=output)
    return proc


def readiness(tools: Toolchain) -> Dict[str, Any]:
    items = []
    for t in tools.all():
        found = shutil.which(t.bin)
        items.append({"name": t.name, "bin": t.bin, "present": bool(found), "path": found})
    model_ok = Path(tools.whisper_model).exists()
    return {
        "tools": items,
        "whisper_model": {"path": tools.whisper_model, "present": model_ok},
        "ready": model_ok and all(i["present"] for i in items),
    }
