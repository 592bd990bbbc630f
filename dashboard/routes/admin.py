from fastapi import HTTPException, Header
from typing import Optional
import os


def require_admin_if_configured(x_admin_token: Optional[str] = Header(None)) -> None:
    """Dependency: enforce X-Admin-Token only when ADMIN_TOKEN is set."""
    expected = os.getenv("ADMIN_TOKEN")
    if expected and x_admin_token != expected:
        raise HTTPException(status_code=401, detail="unauthorized")
