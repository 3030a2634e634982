"""Application initialization and middleware.

Provides:
- `create_app()`: builds the FastAPI app with the transcription router and `/metrics`.
- Request context middleware: IDs, structured access logs, metrics, and
  optional per-client rate limiting.

Google-style docstrings to ease automatic documentation.
"""

import threading
import time
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .api import router as api_router
from .config_loader import build_effective_config
from .logging_utils import get_logger, new_request_id, set_request_id
from .metrics import metrics


class _RateLimiter:
    """Simple per-client IP token bucket.

    Args:
        rps (float): Tokens per second (allowed average).
        burst (int): Maximum accumulated burst.
    """

    def __init__(self, rps: float, burst: int) -> None:
        self.rps = max(0.0, float(rps))
        self.burst = max(1, int(burst))
        self._lock = threading.Lock()
        self._buckets: dict[str, tuple[float, float]] = {}  # key -> (tokens, last_ts)
        self._last_sweep = 0.0

    def _sweep(self, now: float) -> None:
        """Drop buckets idle long enough to have refilled completely."""
        idle_s = self.burst / self.rps
        if now - self._last_sweep < idle_s:
            return
        self._last_sweep = now
        for key in [k for k, (_, last) in self._buckets.items() if now - last >= idle_s]:
            del self._buckets[key]

    def allow(self, key: str, now: float) -> bool:
        """Consume 1 token and return True if allowed.

        Args:
            key (str): Client identifier (e.g., IP).
            now (float): Current timestamp.

        Returns:
            bool: True if the request is allowed, False if rate limited.
        """
        if self.rps <= 0:
            return True
        with self._lock:
            self._sweep(now)
            tokens, last = self._buckets.get(key, (self.burst, now))
            elapsed = max(0.0, now - last)
            tokens = min(self.burst, tokens + elapsed * self.rps)
            if tokens < 1.0:
                self._buckets[key] = (tokens, now)
                return False
            tokens -= 1.0
            self._buckets[key] = (tokens, now)
            return True


def create_app(cfg: Optional[Dict[str, Any]] = None) -> FastAPI:
    """Create and initialize the application.

    Args:
        cfg (dict, optional): Effective configuration. Built from the config
            file and environment when omitted.

    Returns:
        FastAPI: The configured application.
    """
    cfg = cfg if cfg is not None else build_effective_config()
    app = FastAPI(title="transcription-api", version="0.1.0")
    log = get_logger("transcription-api")

    rl_cfg = cfg["rate_limit"]
    limiter = _RateLimiter(rps=rl_cfg["rps"], burst=rl_cfg["burst"]) if rl_cfg["enabled"] else None

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        if limiter is not None:
            client = getattr(request, "client", None)
            ip = getattr(client, "host", "?")
            if not limiter.allow(ip, time.time()):
                metrics.inc("rate_limited_total", 1)
                log.info("rate_limit", extra={"ip": ip, "method": request.method, "path": request.url.path})
                return JSONResponse({"detail": "rate limit exceeded"}, status_code=429)

        rid = request.headers.get("x-request-id") or new_request_id()
        request.state.request_id = rid
        set_request_id(rid)
        start = time.time()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
            response.headers["X-Request-Id"] = rid
            return response
        finally:
            dur = (time.time() - start) * 1000.0
            route = request.scope.get("route")
            path_label = getattr(route, "path", None) or request.url.path
            method = request.method.upper()

            metrics.inc("requests_total", 1)
            metrics.inc(f"requests_total:{method} {path_label}", 1)
            if status >= 500:
                metrics.inc("errors_total", 1)
                metrics.inc(f"errors_total:{method} {path_label}", 1)
            metrics.observe_duration("http_request", dur)
            metrics.observe_duration(f"http_request:{method} {path_label}", dur)
            log.info(
                "request",
                extra={
                    "method": request.method,
                    "path": request.url.path,
                    "route": path_label,
                    "dur_ms": round(dur, 2),
                    "request_id": rid,
                    "status": status,
                },
            )
            set_request_id(None)

    @app.get("/metrics")
    def metrics_endpoint():
        return JSONResponse(metrics.snapshot())

    app.include_router(api_router)
    app.state.config = cfg
    log.info("app.created", extra={"config_path": cfg.get("config_path"), "work_root": cfg["work_root"]})
    return app
