"""Health check endpoints."""

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError

from solswap import __version__
from solswap.api.deps import Services, get_services
from solswap.chain.rpc import RpcError
from solswap.storage.database import check_db

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
async def health_check():
    """Liveness check."""
    return {"status": "healthy", "service": "solswap"}


@router.get("/health/detailed")
async def detailed_health(services: Services = Depends(get_services)):
    """Readiness with RPC node and state database checks.

    Reports "degraded" when either dependency is unavailable.
    """
    checks = {}

    try:
        checks["rpc"] = await services.rpc.get_health()
    except RpcError as e:
        logger.warning(f"RPC health check failed: {e}")
        checks["rpc"] = f"error: {e}"

    try:
        await check_db()
        checks["database"] = "ok"
    except SQLAlchemyError as e:
        logger.warning(f"Database health check failed: {e}")
        checks["database"] = f"error: {e}"

    wallet = services.local_wallet()
    return {
        "status": "healthy" if all(v == "ok" for v in checks.values()) else "degraded",
        "service": "solswap",
        "version": __version__,
        "checks": checks,
        "local_wallet": wallet.public_key if wallet else None,
        "config": services.settings.get_safe_dict(),
    }
