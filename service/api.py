# service/api.py
"""
HTTP trigger for the job tracker.

Routes
------
GET|POST /api/scrape[?company=slug]
    One ingestion cycle for every source (or one). Answers the cycle summary.
POST /api/sweep[?threshold_days=N]
    Close postings not seen for N days.
GET /api/sources
    Registered sources.
GET /health
    Liveness.

Setup failures (bad config, store auth, deadline) answer 500 with
{"success": false, "error": ..., "timestamp": ...}; an unknown company is a 400.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from fastapi import FastAPI, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from modules.job_tracker.lib import engine
from modules.job_tracker.lib.config import Settings
from modules.job_tracker.lib.scrapers import all_sources
from modules.job_tracker.lib.utils import now_iso
from service import logging_utils

LOG = logging.getLogger("service.api")

SettingsFactory = Callable[[dict[str, Any]], Settings]


def _failure(status: int, error: str) -> JSONResponse:
    return JSONResponse(
        status_code=status,
        content={"success": False, "error": error, "timestamp": now_iso()},
    )


def _record_error(where: str, e: Exception, **fields: Any) -> None:
    try:
        logging_utils.write_error_log({"ts": now_iso(), "where": where, "error": repr(e), **fields})
    except OSError:
        LOG.debug("write_error_log failed", exc_info=True)


def create_app(
    settings_factory: SettingsFactory | None = None,
    *,
    engine_kwargs: dict[str, Any] | None = None,
) -> FastAPI:
    """
    Build the app. `settings_factory` maps request overrides to Settings
    (default: Settings.from_env_and_kwargs); `engine_kwargs` are passed to
    every engine call (tests inject `sleep`, `clock`, `store`).
    """
    make_settings = settings_factory or Settings.from_env_and_kwargs
    extra = dict(engine_kwargs or {})

    app = FastAPI(title="Job Tracker", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type"],
    )

    async def scrape(company: str | None = Query(default=None)) -> Any:
        try:
            settings = make_settings({})
            result = await engine.execute(settings, company=company or None, **extra)
        except engine.UnknownSourceError:
            return _failure(400, f"Unknown company: {company}")
        except Exception as e:
            LOG.error("Scrape request failed: %r", e, exc_info=True)
            _record_error("api.scrape", e, company=company)
            return _failure(500, str(e) or type(e).__name__)
        return result.to_dict()

    app.add_api_route("/api/scrape", scrape, methods=["GET", "POST"])

    @app.post("/api/sweep")
    async def sweep(threshold_days: int | None = Query(default=None, ge=1)) -> Any:
        try:
            settings = make_settings({})
            days = threshold_days or settings.stale_threshold_days
            closed = await engine.sweep_async(
                settings,
                threshold_days=days,
                **{k: v for k, v in extra.items() if k in ("store", "clock")},
            )
        except Exception as e:
            LOG.error("Sweep request failed: %r", e, exc_info=True)
            _record_error("api.sweep", e, threshold_days=threshold_days)
            return _failure(500, str(e) or type(e).__name__)
        return {"success": True, "closed": closed, "thresholdDays": days, "timestamp": now_iso()}

    @app.get("/api/sources")
    async def sources() -> dict[str, Any]:
        return {
            "sources": [
                {
                    "slug": slug,
                    "name": cls.employer.name,
                    "careerPageUrl": cls.employer.career_page_url,
                }
                for slug, cls in all_sources().items()
            ]
        }

    @app.get("/health")
    async def health() -> dict[str, str]:
        return {"status": "ok", "timestamp": now_iso()}

    return app
