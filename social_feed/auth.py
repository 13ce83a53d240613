"""
Auth guard for FastAPI endpoints.

Token verification happens upstream (API gateway); by the time a request
reaches this service the caller's id is carried in the X-User-Id header and
is trusted as-is.
"""
from typing import Optional

from fastapi import Header, HTTPException, status


def _parse_user_id(raw: Optional[str]) -> Optional[int]:
    if raw is None or not raw.strip():
        return None
    try:
        user_id = int(raw.strip())
    except ValueError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_user_id")
    if user_id < 1:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="invalid_user_id")
    return user_id


async def require_viewer(x_user_id: Optional[str] = Header(default=None)) -> int:
    user_id = _parse_user_id(x_user_id)
    if user_id is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="missing_user")
    return user_id


async def optional_viewer(x_user_id: Optional[str] = Header(default=None)) -> Optional[int]:
    return _parse_user_id(x_user_id)
