import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import ExpiredSignatureError, JWTError
from jose import jwt as jose_jwt

from .config import ADMIN_EMAILS, SUPABASE_JWT_AUDIENCE, SUPABASE_JWT_SECRET

logger = logging.getLogger(__name__)

security = HTTPBearer()
optional_security = HTTPBearer(auto_error=False)

ALGORITHM = "HS256"


@dataclass
class CurrentUser:
    id: str
    email: Optional[str] = None


def verify_supabase_token(token: str) -> dict:
    """Verify a Supabase access token and return its claims"""
    if not SUPABASE_JWT_SECRET:
        logger.error("❌ SUPABASE_JWT_SECRET not configured")
        raise HTTPException(status_code=500, detail="Authentication not configured")

    try:
        payload = jose_jwt.decode(
            token,
            SUPABASE_JWT_SECRET,
            algorithms=[ALGORITHM],
            audience=SUPABASE_JWT_AUDIENCE,
        )
    except ExpiredSignatureError:
        logger.warning("⚠️ Expired access token")
        raise HTTPException(status_code=401, detail="Token has expired")
    except JWTError as e:
        logger.warning(f"⚠️ Invalid access token: {e}")
        raise HTTPException(status_code=401, detail="Invalid authentication token")

    if not payload.get("sub"):
        raise HTTPException(status_code=401, detail="Invalid authentication token")

    return payload


def _user_from_claims(claims: dict) -> CurrentUser:
    email = claims.get("email")
    return CurrentUser(id=claims["sub"], email=email.lower() if email else None)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
) -> CurrentUser:
    """Resolve the authenticated storefront user from the bearer token"""
    claims = verify_supabase_token(credentials.credentials)
    return _user_from_claims(claims)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security),
) -> Optional[CurrentUser]:
    if not credentials:
        return None
    claims = verify_supabase_token(credentials.credentials)
    return _user_from_claims(claims)


def is_admin_email(email: Optional[str]) -> bool:
    return bool(email) and email.lower() in ADMIN_EMAILS


async def require_admin(user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
    """Only allow users listed in ADMIN_EMAILS"""
    if not is_admin_email(user.email):
        logger.warning(f"🚫 Admin access denied for {user.email}")
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
