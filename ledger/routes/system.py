# ledger/routes/system.py
"""Health endpoint: this app plus reachability of the ledger backend."""

import time

from flask import Blueprint, current_app, jsonify

from ..api import MemoryTokenStore
from ..extensions import backend
from ..time_utils import to_utc_z, utcnow


system_bp = Blueprint("system", __name__)


def check_backend_health() -> dict:
    start_time = time.time()
    api = backend.api_for(MemoryTokenStore())
    try:
        reachable = api.client.ping()
    finally:
        api.close()
    elapsed_ms = (time.time() - start_time) * 1000
    if not reachable:
        current_app.logger.warning("Ledger backend at %s is unreachable", backend.base_url)
    return {
        "status": "healthy" if reachable else "unreachable",
        "latency_ms": round(elapsed_ms, 2),
        "url": backend.base_url,
    }


@system_bp.get("/health")
def health():
    backend_health = check_backend_health()
    healthy = backend_health["status"] == "healthy"
    return jsonify({
        "status": "ok" if healthy else "degraded",
        "timestamp": to_utc_z(utcnow()),
        "timezone": current_app.config["LEDGER_TIMEZONE"],
        "checks": {"backend": backend_health},
    }), 200 if healthy else 503
