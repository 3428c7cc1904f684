# backend/backoffice/routes/system.py
"""
System health endpoint. Unauthenticated; used by load balancers and the SPA.
"""

import time

from flask import Blueprint, current_app
from sqlalchemy import text

from ..extensions import db
from ..responses import failure, success
from . import API_PREFIX

system_bp = Blueprint("system", __name__, url_prefix=API_PREFIX)


def check_database_health() -> dict:
    start_time = time.time()
    try:
        db.session.execute(text("SELECT 1"))
        return {
            "status": "healthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
        }
    except Exception:
        current_app.logger.exception("Database health check failed")
        return {
            "status": "unhealthy",
            "latency_ms": round((time.time() - start_time) * 1000, 2),
            "error": "Database error",
        }


@system_bp.get("/health")
def health():
    database = check_database_health()
    if database["status"] != "healthy":
        return failure("Database unavailable", 503)
    return success({"status": "ok", "database": database})
