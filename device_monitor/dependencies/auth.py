"""
Trigger Authentication

The status check is invoked by an external scheduler. When CRON_SECRET is
set, the caller must send it as a bearer token:

    Authorization: Bearer <CRON_SECRET>

Usage:
    @router.post("/check", dependencies=[Depends(require_cron_secret)])
    async def run_check():
        ...
"""

import secrets

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..common.settings import MonitorSettings, get_settings

# This tells FastAPI to look for "Authorization: Bearer <token>" header
security = HTTPBearer(auto_error=False)


async def require_cron_secret(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    settings: MonitorSettings = Depends(get_settings),
) -> None:
    """
    Reject the request unless it carries the configured cron secret.

    Raises:
        HTTPException 401: If a secret is configured and missing/wrong
    """
    expected = settings.cron_secret
    if not expected:
        return

    if credentials is None or not secrets.compare_digest(credentials.credentials, expected):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or missing trigger credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
