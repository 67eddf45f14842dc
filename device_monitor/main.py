"""
Device Status Monitor - Backend API

FastAPI application that provides:
- The scheduled status check trigger (offline / battery / recovery alerts)
- A health endpoint

Run with:
    uvicorn device_monitor.main:app
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .common.exceptions import DeviceMonitorError
from .common.logging_setup import get_service_logger
from .common.settings import get_settings
from .routers import device_status

logger = get_service_logger("api")


# ============================================
# ENVIRONMENT CONFIGURATION
# ============================================

ENVIRONMENT = os.getenv("ENVIRONMENT", "development")


# ============================================
# APPLICATION LIFESPAN
# ============================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application startup and shutdown events.

    Startup:
    - Log environment and the active alerting policy
    """
    settings = get_settings()
    policy = settings.to_policy()
    logger.info(
        f"Starting Device Status Monitor API ({ENVIRONMENT})",
        extra={
            "environment": ENVIRONMENT,
            "store_backend": settings.store_backend,
            "fcm_configured": settings.fcm_configured,
            "offline_threshold_s": policy.offline_threshold.total_seconds(),
            "offline_cooldown_s": policy.offline_cooldown.total_seconds(),
            "battery_low_threshold": policy.battery_low_threshold,
            "battery_recovery_threshold": policy.battery_recovery_threshold,
            "battery_cooldown_s": policy.battery_cooldown.total_seconds(),
            "recovery_window_s": policy.recovery_window.total_seconds(),
        },
    )

    yield

    logger.info("Shutting down API...")


# ============================================
# CREATE APPLICATION
# ============================================

app = FastAPI(
    title="Device Status Monitor API",
    description="""
    Polling-based alerting for deployed hardware units.

    ## Alerts
    - **Offline**: no heartbeat for the offline threshold (re-sent once per cooldown)
    - **Battery low**: under the low threshold, with hysteresis + cooldown
    - **Back online**: heartbeating again after an offline alert
    """,
    version="1.0.0",
    lifespan=lifespan,
)


@app.exception_handler(DeviceMonitorError)
async def device_monitor_error_handler(request: Request, exc: DeviceMonitorError):
    """Configuration/wiring failures surface as a 500 with the message"""
    logger.error(f"Request failed: {exc.message}")
    return JSONResponse(status_code=500, content={"error": exc.message})


# ============================================
# INCLUDE ROUTERS
# ============================================

app.include_router(
    device_status.router,
    prefix="/api/device-status",
    tags=["Device Status"]
)


# ============================================
# HEALTH CHECK
# ============================================

@app.get("/health")
async def health_check():
    """Liveness probe for the API process."""
    return {"status": "healthy"}
