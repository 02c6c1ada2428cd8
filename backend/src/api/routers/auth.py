"""Sign-in, session and profile endpoints."""
import logging
from typing import Any
from urllib.parse import urlencode

import httpx
from authlib.common.errors import AuthlibBaseError
from authlib.integrations.httpx_client import AsyncOAuth2Client
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from api.dependencies import (
    get_async_session,
    get_current_session,
    get_optional_session,
    get_settings,
)
from core.auth import resolve_landing
from core.config import Settings
from schemas.auth import (
    AvatarUpdate,
    LandingResponse,
    PasswordChange,
    ProfileResponse,
    ProfileUpdate,
    RegisterRequest,
    RegisterResponse,
    RoleRequest,
    RoleResponse,
    SignInRequest,
    SuccessResponse,
)
from schemas.session import SessionPatch, SessionResponse, SessionSnapshot, TokenResponse
from services import auth_service, session_service

router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)

GOOGLE_DISCOVERY_URL = "https://accounts.google.com/.well-known/openid-configuration"
GOOGLE_PROVIDER = "google"
OAUTH_STATE_COOKIE = "oauth_state"

_google_metadata: dict[str, Any] | None = None


async def _get_google_metadata() -> dict[str, Any]:
    """Fetch and cache the Google OpenID Connect discovery document."""
    global _google_metadata
    if _google_metadata is None:
        async with httpx.AsyncClient() as http:
            resp = await http.get(GOOGLE_DISCOVERY_URL)
            resp.raise_for_status()
            _google_metadata = resp.json()
    return _google_metadata


def _sign_in_failed(settings: Settings, error: str) -> RedirectResponse:
    """Send the browser back to the sign-in page with the provider's error code."""
    query = urlencode({"error": error})
    response = RedirectResponse(
        url=f"{settings.frontend_url}/auth/signin?{query}", status_code=302,
    )
    response.delete_cookie(OAUTH_STATE_COOKIE)
    return response


def _oauth_client(settings: Settings, **kwargs: Any) -> AsyncOAuth2Client:
    return AsyncOAuth2Client(
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        redirect_uri=settings.google_redirect_uri,
        **kwargs,
    )


async def fetch_google_userinfo(request: Request, settings: Settings, state: str) -> dict[str, Any]:
    """Exchange the authorization code and return the provider's userinfo claims."""
    metadata = await _get_google_metadata()
    async with _oauth_client(settings, state=state) as client:
        await client.fetch_token(
            metadata["token_endpoint"],
            authorization_response=str(request.url),
        )
        resp = await client.get(metadata["userinfo_endpoint"])
        resp.raise_for_status()
        return resp.json()


# ─── Credentials ─────────────────────────────────────────────────


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(
    data: RegisterRequest,
    db: AsyncSession = Depends(get_async_session),
) -> RegisterResponse:
    """Create a password account with a chosen role."""
    user = await auth_service.register(db, data)
    return RegisterResponse(id=user.id, email=user.email, role=user.role)


@router.post("/signin", response_model=TokenResponse)
async def sign_in(
    data: SignInRequest,
    db: AsyncSession = Depends(get_async_session),
) -> TokenResponse:
    """Exchange email and password for a session token."""
    identity = await auth_service.verify_credentials(db, data.email, data.password)
    user = await auth_service.get_user_or_raise(db, identity.id)
    return session_service.issue_token(session_service.snapshot_from_user(user))


# ─── Google OAuth ────────────────────────────────────────────────


@router.get("/google/login")
async def google_login(settings: Settings = Depends(get_settings)) -> RedirectResponse:
    """Redirect to Google's OAuth consent screen."""
    if not settings.google_enabled:
        raise HTTPException(status_code=501, detail="Google OAuth not configured")

    metadata = await _get_google_metadata()
    client = _oauth_client(settings, scope="openid email profile")
    uri, state = client.create_authorization_url(metadata["authorization_endpoint"])

    response = RedirectResponse(url=uri)
    response.set_cookie(
        OAUTH_STATE_COOKIE, state, httponly=True, max_age=600, samesite="lax",
    )
    return response


@router.get("/google/callback")
async def google_callback(
    request: Request,
    settings: Settings = Depends(get_settings),
    db: AsyncSession = Depends(get_async_session),
) -> RedirectResponse:
    """Resolve the Google identity to a user and hand a session token to the frontend."""
    if not settings.google_enabled:
        raise HTTPException(status_code=501, detail="Google OAuth not configured")

    stored_state = request.cookies.get(OAUTH_STATE_COOKIE)
    if not stored_state or stored_state != request.query_params.get("state"):
        raise HTTPException(status_code=400, detail="Invalid OAuth state")

    # Set when the user declines consent
    provider_error = request.query_params.get("error")
    if provider_error:
        logger.info("Google sign-in cancelled: %s", provider_error)
        return _sign_in_failed(settings, provider_error)

    try:
        userinfo = await fetch_google_userinfo(request, settings, stored_state)
    except AuthlibBaseError as e:
        logger.warning("Google token exchange failed: %s", e.error)
        return _sign_in_failed(settings, e.error or "oauth_failed")

    email = userinfo.get("email")
    if not email:
        raise HTTPException(status_code=400, detail="Provider did not supply an email")

    user = await auth_service.resolve_oauth_identity(
        db,
        provider=GOOGLE_PROVIDER,
        email=email,
        name=userinfo.get("name"),
        provider_account_id=userinfo.get("sub"),
    )
    issued = session_service.issue_token(session_service.snapshot_from_user(user))

    response = RedirectResponse(
        url=f"{settings.frontend_url}/auth/callback#token={issued.access_token}",
        status_code=302,
    )
    response.delete_cookie(OAUTH_STATE_COOKIE)
    return response


# ─── Session ─────────────────────────────────────────────────────


@router.get("/session", response_model=SessionResponse | None)
async def get_session(
    session: SessionSnapshot | None = Depends(get_optional_session),
) -> SessionResponse | None:
    """Materialize the token as-is. Never touches storage."""
    if session is None:
        return None
    return session_service.materialize(session)


@router.post("/session/update", response_model=TokenResponse)
async def update_session(
    patch: SessionPatch | None = None,
    session: SessionSnapshot = Depends(get_current_session),
    db: AsyncSession = Depends(get_async_session),
) -> TokenResponse:
    """
    Explicit update trigger.

    Call after any mutation that changed role, onboarding, name or avatar. Sent
    fields are applied first, then name, avatar, role and onboarded are
    re-read from storage and win.
    """
    resynced = await session_service.resync(db, session, patch)
    return session_service.issue_token(resynced)


@router.get("/landing", response_model=LandingResponse)
async def landing(
    session: SessionSnapshot | None = Depends(get_optional_session),
    db: AsyncSession = Depends(get_async_session),
) -> LandingResponse:
    """Where a page request should go, based on stored role and onboarding."""
    destination = await resolve_landing(db, session)
    return LandingResponse(destination=destination.value)


# ─── Profile ─────────────────────────────────────────────────────


@router.post("/role", response_model=RoleResponse)
async def set_role(
    data: RoleRequest,
    session: SessionSnapshot = Depends(get_current_session),
    db: AsyncSession = Depends(get_async_session),
) -> RoleResponse:
    """Choose a role and complete onboarding. Follow with /auth/session/update."""
    role = await auth_service.set_role(db, session.id, data.role)
    return RoleResponse(role=role)


@router.get("/profile", response_model=ProfileResponse)
async def get_profile(
    session: SessionSnapshot = Depends(get_current_session),
    db: AsyncSession = Depends(get_async_session),
) -> ProfileResponse:
    """Read the signed-in user's profile."""
    return await auth_service.get_profile(db, session.id)


@router.patch("/profile", response_model=SuccessResponse)
async def update_profile(
    data: ProfileUpdate,
    session: SessionSnapshot = Depends(get_current_session),
    db: AsyncSession = Depends(get_async_session),
) -> SuccessResponse:
    """Change the display name."""
    await auth_service.update_name(db, session.id, data.name)
    return SuccessResponse()


@router.put("/profile/avatar", response_model=SuccessResponse)
async def update_avatar(
    data: AvatarUpdate,
    session: SessionSnapshot = Depends(get_current_session),
    db: AsyncSession = Depends(get_async_session),
) -> SuccessResponse:
    """Set the avatar to an already-stored image URL, or clear it with null."""
    await auth_service.update_image(db, session.id, data.image)
    return SuccessResponse()


@router.post("/password", response_model=SuccessResponse)
async def change_password(
    data: PasswordChange,
    session: SessionSnapshot = Depends(get_current_session),
    db: AsyncSession = Depends(get_async_session),
) -> SuccessResponse:
    """Set a first password, or change an existing one."""
    await auth_service.change_password(db, session.id, data)
    return SuccessResponse()
