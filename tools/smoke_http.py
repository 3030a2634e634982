#!/usr/bin/env python3
"""Lightweight HTTP smoke test without requiring the external tools.

Starts a uvicorn server from the in-process FastAPI app and checks key endpoints.
"""
import os
import threading
import time
import sys
import httpx
from pathlib import Path

# Ensure repository root is on sys.path when running from tools/
ROOT = str(Path(__file__).resolve().parents[1])
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)


def main() -> int:
    os.environ.setdefault("RATE_LIMIT_ENABLED", "0")
    port = int(os.getenv("SMOKE_PORT", "8091"))

    from transcription_api.app import create_app
    import uvicorn

    app = create_app()
    config = uvicorn.Config(app, host="127.0.0.1", port=port, log_level="info")
    server = uvicorn.Server(config)

    th = threading.Thread(target=server.run, daemon=True)
    th.start()

    base = f"http://127.0.0.1:{port}"
    ok = False
    for _ in range(60):
        try:
            r = httpx.get(base + "/health", timeout=0.5)
            if r.status_code == 200:
                ok = True
                break
        except httpx.HTTPError:
            pass
        time.sleep(0.25)
    if not ok:
        print("Server did not become ready", file=sys.stderr)
        server.should_exit = True
        th.join(timeout=2.0)
        return 1

    def _check(method: str, path: str, allow=(200,), **kwargs):
        r = httpx.request(method, base + path, timeout=1.0, **kwargs)
        if r.status_code not in allow:
            raise RuntimeError(f"{method} {path} -> {r.status_code}")
        print(method, path, "->", r.status_code)
        return r

    try:
        _check("GET", "/health")
        _check("GET", "/readyz")
        _check("GET", "/metrics")
        _check("GET", "/transcription", allow=(405,))
        r = _check("POST", "/transcription", allow=(200, 400), json={})
        if "error" not in r.json():
            raise RuntimeError("empty request did not produce an error payload")
    finally:
        server.should_exit = True
        th.join(timeout=2.0)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
