"""
Health check endpoints.
Used for monitoring, deployment readiness checks, and basic connectivity tests.
"""

from datetime import datetime, timezone

from fastapi import APIRouter, Depends, HTTPException, Request

from fillahole.core.context import AppContext, get_context


router = APIRouter(prefix="/health", tags=["Health"])


@router.get("")
async def health_check(request: Request):
    """
    Basic health check endpoint.
    Returns 200 if the process is up, whether or not the backend is ready.
    """
    app_settings = request.app.state.settings
    return {
        "status": "healthy",
        "service": app_settings.APP_NAME,
        "version": app_settings.APP_VERSION,
        "backend_ready": getattr(request.app.state, "context", None) is not None,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@router.get("/db")
def database_health(ctx: AppContext = Depends(get_context)):
    """
    Database connectivity check.
    Lists top-level collections, which needs a working connection.
    """
    try:
        collections = list(ctx.db.collections())
    except Exception as e:
        raise HTTPException(status_code=503, detail=f"Database connection failed: {str(e)}")

    return {
        "status": "healthy",
        "database": "firestore-mock" if ctx.settings.USE_MOCK_DB else "firestore",
        "connected": True,
        "collections_count": len(collections),
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
