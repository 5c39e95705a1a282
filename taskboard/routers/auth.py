# PURPOSE: /auth/register, /auth/login, /auth/profile, /auth/logout

from fastapi import APIRouter, Depends, status

from ..api.deps import get_auth_service, get_current_identity
from ..auth import AuthService
from ..models import (
    AuthResponse,
    Identity,
    LoginRequest,
    MessageResponse,
    ProfileResponse,
    ProfileUpdate,
    RegisterRequest,
    UserPublic,
)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
async def register_user(payload: RegisterRequest, auth: AuthService = Depends(get_auth_service)):
    user, token = await auth.register(
        payload.username, payload.password, payload.email, payload.full_name
    )
    return AuthResponse(token=token, user=user)


@router.post("/login", response_model=AuthResponse)
async def login(payload: LoginRequest, auth: AuthService = Depends(get_auth_service)):
    user, token = await auth.login(payload.username, payload.password)
    return AuthResponse(token=token, user=user)


@router.get("/profile", response_model=UserPublic)
async def get_profile(
    identity: Identity = Depends(get_current_identity),
    auth: AuthService = Depends(get_auth_service),
):
    return auth.get_profile(identity.id)


@router.put("/profile", response_model=ProfileResponse)
async def update_profile(
    payload: ProfileUpdate,
    identity: Identity = Depends(get_current_identity),
    auth: AuthService = Depends(get_auth_service),
):
    user = await auth.update_profile(identity.id, payload)
    return ProfileResponse(message="Profile updated successfully", user=user)


@router.post("/logout", response_model=MessageResponse)
async def logout():
    # Tokens are stateless: nothing is held server-side, so nothing is revoked.
    # The client discards its token; it stays valid until it expires.
    return MessageResponse(message="Logged out successfully")
