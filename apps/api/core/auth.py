"""Authentication dependencies and Supabase client factories.

Callers of the HTTP API prove who they are with a Supabase JWT; imports
themselves run with the service-role client because they write to
``finance_transactions`` for any organisation.
"""

from fastapi import Depends, Header, HTTPException
from supabase import Client, create_client

from apps.api.core.config import Settings, get_settings
from packages.statement_ingestion.errors import ConfigurationError


async def get_user_token(authorization: str = Header(default="")) -> str:
    """Extract Bearer token from Authorization header.

    Returns the raw JWT string.
    """
    if not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=401,
            detail="Missing or invalid Authorization header. Expected: Bearer <token>",
        )

    token = authorization[7:].strip()
    if not token:
        raise HTTPException(
            status_code=401,
            detail="Missing bearer token",
        )
    return token


async def get_user_client(token: str = Depends(get_user_token)) -> Client:
    """Provide a Supabase client authenticated with the user's JWT.

    The token is verified against Supabase Auth up front; an expired or
    forged token is a 401 here rather than an empty result later.
    """
    settings = get_settings()
    if not settings.SUPABASE_ANON_KEY:
        raise ConfigurationError("SUPABASE_ANON_KEY is not configured")

    client = create_client(settings.SUPABASE_URL, settings.SUPABASE_ANON_KEY)
    try:
        response = client.auth.get_user(token)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    if response is None or response.user is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")

    # Stateless API: every request carries a fresh token, so there is no
    # refresh token to keep.
    client.postgrest.auth(token)
    return client


def get_service_client(settings: Settings = None) -> Client:
    """Provide a service-role Supabase client (bypasses RLS).

    Raises:
        ConfigurationError: URL or service key missing.
    """
    settings = settings or get_settings()
    if not settings.SUPABASE_URL or not settings.SUPABASE_SERVICE_KEY:
        raise ConfigurationError("Supabase URL or service key is not configured")
    return create_client(settings.SUPABASE_URL, settings.SUPABASE_SERVICE_KEY)
