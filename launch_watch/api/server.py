"""HTTP trigger surface: cron run, manual check and read-only status."""

from __future__ import annotations

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from threading import Lock
from typing import Any, Callable

import structlog
from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .. import __version__
from ..orchestrator import CHECK_SAMPLE_SIZE, RunState
from ..runtime import Runtime, build_runtime

SERVICE_NAME = "launch-watch token monitor"
CRON_SAMPLE_SIZE = 3
STATUS_RECENT_RUNS = 10
NOT_CONFIGURED = "BOT_TOKEN or CHAT_ID not configured"

ENDPOINTS = {
    "cron": "/api/cron - Scheduled run",
    "check": "/api/check - Manual check",
    "status": "/api/status - This status page",
}


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _server_error(exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=500,
        content={"success": False, "error": str(exc), "timestamp": _now()},
    )


class _RuntimeHolder:
    """Build the runtime on first use and keep it for the process lifetime."""

    def __init__(self, factory: Callable[[], Runtime]) -> None:
        self.factory = factory
        self._runtime: Runtime | None = None
        self._lock = Lock()

    def get(self) -> Runtime:
        with self._lock:
            if self._runtime is None:
                self._runtime = self.factory()
            return self._runtime

    def close(self) -> None:
        with self._lock:
            if self._runtime is not None:
                self._runtime.close()
                self._runtime = None


def create_app(runtime_factory: Callable[[], Runtime] | None = None) -> FastAPI:
    holder = _RuntimeHolder(runtime_factory or build_runtime)
    started = time.monotonic()
    logger = structlog.get_logger("launch_watch.api").bind(component="api")

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        holder.close()

    app = FastAPI(title="launch-watch", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    @app.api_route("/api/cron", methods=["GET", "POST"])
    def cron(secret: str | None = Query(default=None)) -> JSONResponse:
        try:
            runtime = holder.get()
        except Exception as exc:  # noqa: BLE001
            logger.error("runtime_unavailable", error=str(exc))
            return _server_error(exc)
        expected = runtime.config.api.cron_secret
        if expected and secret != expected:
            return JSONResponse(status_code=401, content={"error": "Unauthorized"})
        if runtime.notifier is None:
            return JSONResponse(
                status_code=500,
                content={"success": False, "error": NOT_CONFIGURED, "timestamp": _now()},
            )
        try:
            summary = runtime.orchestrator.run(commit=not runtime.dry_run)
        except Exception as exc:  # noqa: BLE001
            logger.error("cron_failed", error=str(exc))
            return _server_error(exc)
        if summary.state is RunState.FAILED:
            return JSONResponse(
                status_code=500,
                content={"success": False, "error": summary.error, "timestamp": _now()},
            )
        return JSONResponse(
            content={
                "success": True,
                "timestamp": _now(),
                "tokens_scraped": summary.extracted,
                "tokens_new": summary.new,
                "tokens_sent": summary.sent,
                "tokens": [record.to_dict() for record in summary.dispatched[:CRON_SAMPLE_SIZE]],
                "message": f"Checked {summary.extracted} tokens, sent {summary.sent} new ones",
            }
        )

    @app.get("/api/check")
    def check() -> JSONResponse:
        try:
            runtime = holder.get()
        except Exception as exc:  # noqa: BLE001
            logger.error("runtime_unavailable", error=str(exc))
            return _server_error(exc)
        if runtime.notifier is None:
            return JSONResponse(status_code=400, content={"error": NOT_CONFIGURED})
        try:
            result = runtime.orchestrator.check()
        except Exception as exc:  # noqa: BLE001
            logger.error("manual_check_failed", error=str(exc))
            return JSONResponse(status_code=500, content={"success": False, "error": str(exc)})
        return JSONResponse(
            content={
                "success": True,
                "manual_check": True,
                "tokens_found": result.tokens_found,
                "tokens": [record.to_dict() for record in result.sample(CHECK_SAMPLE_SIZE)],
                "timestamp": result.timestamp.isoformat(),
            }
        )

    @app.get("/api/status")
    def status() -> JSONResponse:
        bot_configured = chat_configured = False
        try:
            runtime = holder.get()
            config = runtime.config
            bot_configured = bool(config.telegram.bot_token)
            chat_configured = bool(config.telegram.chat_id)
            stats = runtime.stats.get_stats()
            payload: dict[str, Any] = {
                "service": SERVICE_NAME,
                "status": "operational",
                "timestamp": _now(),
                "environment": {
                    "bot_configured": bot_configured,
                    "chat_configured": chat_configured,
                    "redis_configured": config.redis.enabled,
                    "environment": config.environment.value,
                },
                "endpoints": ENDPOINTS,
                "statistics": {
                    "total_checks": stats["total_checks"],
                    "total_tokens_sent": stats["total_tokens_sent"],
                    "last_execution": stats["last_execution"] or "Never",
                    "uptime": round(time.monotonic() - started, 3),
                },
                "recent_executions": runtime.stats.recent_runs(STATUS_RECENT_RUNS),
                "storage": runtime.seen_store.info(),
                "version": __version__,
            }
        except Exception as exc:  # noqa: BLE001
            logger.error("status_failed", error=str(exc))
            payload = {
                "service": SERVICE_NAME,
                "status": "error",
                "error": str(exc),
                "timestamp": _now(),
                "environment": {
                    "bot_configured": bot_configured,
                    "chat_configured": chat_configured,
                },
            }
        return JSONResponse(content=payload)

    return app


__all__ = ["create_app"]
