"""
Caller identity.

Authentication happens upstream; the gateway forwards the resolved user as
an opaque id in the header named by settings.USER_ID_HEADER.
"""
from fastapi import Request

from assessment.core.config import settings
from assessment.core.error_responses import ErrorMessages, raise_unauthorized


def get_current_user_id(request: Request) -> str:
    """
    FastAPI dependency returning the caller's opaque user id.

    Raises:
        HTTPException: 401 if the identity header is missing or blank
    """
    user_id = request.headers.get(settings.USER_ID_HEADER, "").strip()
    if not user_id:
        raise_unauthorized(ErrorMessages.USER_ID_MISSING)
    request.state.user_id = user_id
    return user_id
