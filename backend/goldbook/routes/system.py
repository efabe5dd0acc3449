# backend/goldbook/routes/system.py
"""
Health and version endpoints.

/health answers two questions for the counter: can we reach the database,
and is today's rate board complete. A metal priced from a previous day's
rate still bills, so it only degrades health; a metal with no rate at all
is listed separately because every line of that metal will be rejected.
"""

import sys
import time
from flask import Blueprint, current_app
from sqlalchemy import text
from ..extensions import db
from ..services.rate_service import (
    RATE_SOURCE_PREVIOUS,
    RATE_SOURCE_UNRESOLVED,
    rates_for_date,
)
from goldbook.time_utils import today, to_utc_z, utcnow

system_bp = Blueprint("system", __name__)

API_VERSION = "1.0.0"


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


def check_database_health() -> dict:
    started = time.perf_counter()
    try:
        db.session.execute(text("SELECT 1"))
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {"status": "unhealthy", "latency_ms": _elapsed_ms(started), "error": "Database error"}
    return {"status": "healthy", "latency_ms": _elapsed_ms(started)}


def check_rate_board_health() -> dict:
    started = time.perf_counter()
    business_date = today()
    try:
        board = rates_for_date(business_date)
    except Exception:
        current_app.logger.exception("Rate board health check failed")
        return {"status": "unhealthy", "latency_ms": _elapsed_ms(started), "error": "Rate board error"}

    stale = sorted(m for m, r in board.items() if r.source == RATE_SOURCE_PREVIOUS)
    unresolved = sorted(m for m, r in board.items() if r.source == RATE_SOURCE_UNRESOLVED)
    check = {
        "status": "degraded" if stale or unresolved else "healthy",
        "latency_ms": _elapsed_ms(started),
        "rate_date": business_date.isoformat(),
    }
    if stale:
        check["stale"] = stale
    if unresolved:
        check["unresolved"] = unresolved
    return check


@system_bp.get("/health")
def health():
    """200 while the database answers (healthy or degraded), 503 otherwise."""
    started = time.perf_counter()
    checks = {
        "database": check_database_health(),
        "rate_board": check_rate_board_health(),
    }
    statuses = {check["status"] for check in checks.values()}

    if "unhealthy" in statuses:
        overall, http_status = "unhealthy", 503
    elif "degraded" in statuses:
        overall, http_status = "degraded", 200
    else:
        overall, http_status = "healthy", 200

    return {
        "status": overall,
        "timestamp": to_utc_z(utcnow()),
        "total_latency_ms": _elapsed_ms(started),
        "checks": checks,
    }, http_status


@system_bp.get("/version")
def version():
    return {
        "api_version": API_VERSION,
        "environment": "development" if current_app.debug else "production",
        "python_version": sys.version.split()[0],
        "default_gst_rate_bps": current_app.config["GST_RATE_BPS"],
    }
