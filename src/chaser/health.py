"""Health and readiness endpoints for container orchestration.

Provides two top-level routes:

- ``GET /health`` -- Liveness probe.  Returns 200 if the process is alive.
- ``GET /ready``  -- Readiness probe.  Returns 200 only when the database
  answers **and** the mail gateway and language model service are
  configured.  Returns 503 with per-check details otherwise.
"""

from __future__ import annotations

import asyncio
import sqlite3
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse


def register_health_routes(app: FastAPI) -> None:
    """Register ``/health`` and ``/ready`` endpoints on *app*.

    Args:
        app: The FastAPI application instance.
    """

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Liveness probe -- always returns 200 if the process is running."""
        return {"status": "healthy"}

    @app.get("/ready")
    async def ready(request: Request) -> JSONResponse:
        """Readiness probe -- checks the database, mail gateway, and LLM service."""
        services: dict[str, Any] = request.app.state.services
        checks: dict[str, str] = {}

        # Check 1: database connection
        conn = services.get("conn")
        if conn is not None:
            try:
                await asyncio.to_thread(conn.execute, "SELECT 1")
                checks["database"] = "ok"
            except sqlite3.Error:
                checks["database"] = "fail"
        else:
            checks["database"] = "fail"

        # Check 2: mail gateway initialized
        checks["mail"] = "ok" if services.get("mail") is not None else "fail"

        # Check 3: language model service initialized
        checks["llm"] = "ok" if services.get("llm") is not None else "fail"

        all_ok = all(v == "ok" for v in checks.values())
        status = "ready" if all_ok else "not_ready"
        code = 200 if all_ok else 503

        return JSONResponse(content={"status": status, "checks": checks}, status_code=code)
