from __future__ import annotations

import os
import shutil
import time
import uuid
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from .errors import WorkspaceError
from .logging_utils import get_logger


log = get_logger("transcription-api.workspace")


def workspace_name() -> str:
    return f"temp-{time.time_ns()}-{uuid.uuid4().hex[:8]}"


@contextmanager
def request_workspace(root: str) -> Iterator[Path]:
    """Create a private working directory under `root` and remove it on exit.

    Removal runs on every exit path; a failure to remove is logged and does
    not replace the outcome of the request.
    """
    path = Path(root) / workspace_name()
    try:
        path.mkdir(parents=False, exist_ok=False)
    except OSError as e:
        raise WorkspaceError(f"failed to create working directory: {e}")
    log.info("workspace.created", extra={"path": str(path)})
    try:
        yield path
    finally:
        try:
            shutil.rmtree(path)
        except OSError as e:
            log.warning("workspace.cleanup_failed", extra={"path": str(path), "error": str(e)})


def write_file(path: Path, data: bytes) -> None:
    try:
        with open(path, "wb") as f:
            f.write(data)
    except OSError as e:
        raise WorkspaceError(f"failed to save input file: {e}")


def non_empty_file(path: Path) -> bool:
    return path.is_file() and os.path.getsize(path) > 0
