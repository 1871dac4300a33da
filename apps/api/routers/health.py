"""
Health check endpoint.
GET /health - Returns 200 if the model store is reachable, 503 otherwise.
"""

import time
from typing import Any

from fastapi import APIRouter, Depends, Response, status

from apps.api.dependencies import get_model_store
from apps.api.registry.store import ModelStore

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check(
    response: Response,
    store: ModelStore = Depends(get_model_store),
) -> dict[str, Any]:
    """
    Health check endpoint.

    Returns:
        200 + {"status": "ok", ...} if the database answers (or none is used)
        503 + {"status": "degraded", ...} if it does not
    """
    result: dict[str, Any] = {"status": "ok", "db": "ok"}

    if store.backend_name != "sql":
        result["db"] = "skipped"
        return result

    # --- Check database (SELECT 1) ---
    start = time.perf_counter()
    if store.ping():
        result["db_latency_ms"] = round((time.perf_counter() - start) * 1000, 2)
    else:
        result["db"] = "fail"
        result["status"] = "degraded"
        response.status_code = status.HTTP_503_SERVICE_UNAVAILABLE

    return result
