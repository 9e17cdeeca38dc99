## Caller identity
# Sign-in happens against Supabase; the frontend forwards the user id it got
# from its session in the x-user-id header.
from fastapi import Request

USER_ID_HEADER = "x-user-id"

class NotAuthenticated(Exception):
    pass

def get_optional_user_id(request: Request) -> str | None:
    raw = request.headers.get(USER_ID_HEADER)
    if not raw or not raw.strip():
        return None
    return raw.strip()

def get_current_user_id(request: Request) -> str:
    user_id = get_optional_user_id(request)
    if not user_id:
        raise NotAuthenticated()
    return user_id

def require_user_id(*candidates: str | None) -> str:
    """First non-blank id among header/body values, else NotAuthenticated."""
    for candidate in candidates:
        if candidate and candidate.strip():
            return candidate.strip()
    raise NotAuthenticated()
