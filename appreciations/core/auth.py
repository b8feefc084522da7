"""
Auth utilities for the appreciations API.

Validates Supabase access tokens and extracts the user from request context.
Tokens are verified locally (HS256 + SUPABASE_JWT_SECRET) when the secret is
configured, otherwise by asking Supabase Auth (/auth/v1/user).
"""
from fastapi import Depends, Request
from typing import Optional
from appreciations.core.config import settings
from appreciations.core.errors import AuthRequiredError, PermissionError
from appreciations.features.profiles.service import ensure_profile
from appreciations.models.profile import AuthenticatedUser
import jwt
import httpx
import logging

logger = logging.getLogger("appreciations")

SUPABASE_AUTH_TIMEOUT_SECONDS = 5.0


def extract_bearer_token(request: Request) -> Optional[str]:
    auth_header = request.headers.get("Authorization", "")
    if not auth_header.startswith("Bearer "):
        return None
    token = auth_header[7:].strip()
    return token or None


def verify_supabase_jwt(token: str) -> AuthenticatedUser:
    """
    Verify a Supabase JWT locally and extract the user.

    Args:
        token: JWT from Authorization header (Bearer {token})

    Returns:
        AuthenticatedUser built from the 'sub' and 'email' claims

    Raises:
        AuthRequiredError: Invalid, expired or incomplete token
    """
    try:
        payload = jwt.decode(
            token,
            settings.SUPABASE_JWT_SECRET,
            algorithms=["HS256"],
            audience=settings.SUPABASE_JWT_AUDIENCE,
            options={"verify_signature": True, "verify_exp": True},
        )
    except jwt.ExpiredSignatureError:
        raise AuthRequiredError("Session expirée, veuillez vous reconnecter")
    except jwt.InvalidTokenError as e:
        logger.debug(f"Invalid token: {e}")
        raise AuthRequiredError("Session invalide. Veuillez vous reconnecter.")

    user_id = payload.get("sub")
    if not user_id:
        raise AuthRequiredError("Session invalide. Veuillez vous reconnecter.")

    return AuthenticatedUser(id=user_id, email=payload.get("email"))


async def fetch_supabase_user(token: str) -> AuthenticatedUser:
    """Ask Supabase Auth who owns the token."""
    if not settings.SUPABASE_URL:
        raise AuthRequiredError("Authentification indisponible")

    url = f"{settings.SUPABASE_URL.rstrip('/')}/auth/v1/user"
    headers = {"Authorization": f"Bearer {token}"}
    if settings.SUPABASE_ANON_KEY:
        headers["apikey"] = settings.SUPABASE_ANON_KEY

    try:
        async with httpx.AsyncClient(timeout=SUPABASE_AUTH_TIMEOUT_SECONDS) as client:
            response = await client.get(url, headers=headers)
    except httpx.HTTPError as e:
        logger.warning(f"Supabase auth lookup failed: {e}")
        raise AuthRequiredError("Session invalide. Veuillez vous reconnecter.")

    if response.status_code != 200:
        raise AuthRequiredError("Session invalide. Veuillez vous reconnecter.")

    data = response.json()
    user_id = data.get("id")
    if not user_id:
        raise AuthRequiredError("Session invalide. Veuillez vous reconnecter.")
    return AuthenticatedUser(id=user_id, email=data.get("email"))


async def authenticate_token(token: str) -> AuthenticatedUser:
    if settings.SUPABASE_JWT_SECRET:
        return verify_supabase_jwt(token)
    return await fetch_supabase_user(token)


async def get_current_user(request: Request) -> AuthenticatedUser:
    """
    Resolve the authenticated user for a request.

    After successful auth, upsert the profile so credits exist.

    Raises:
        AuthRequiredError: Missing or invalid bearer token
    """
    token = extract_bearer_token(request)
    if not token:
        raise AuthRequiredError("Connexion requise")

    user = await authenticate_token(token)
    request.state.user_id = user.id

    ensure_profile(user.id, user.email)

    return user


async def get_optional_user(request: Request) -> Optional[AuthenticatedUser]:
    """Same as get_current_user but returns None instead of raising."""
    try:
        return await get_current_user(request)
    except AuthRequiredError:
        return None


async def require_admin(user: AuthenticatedUser = Depends(get_current_user)) -> AuthenticatedUser:
    if user.id not in settings.admin_user_ids():
        raise PermissionError("Accès réservé aux administrateurs")
    return user
