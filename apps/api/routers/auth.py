"""Authentication routes, proxied to the identity backend."""

from fastapi import APIRouter, Depends, status

from apps.api.auth.dependencies import get_access_token
from apps.api.auth.schemas import (
    ChallengeResponse,
    ChangePassword,
    ConfirmSignup,
    ForgotPasswordRequest,
    LoginResponse,
    MessageResponse,
    ProfileUpdate,
    RegisterResponse,
    ResendConfirmation,
    ResetPasswordRequest,
    TokenRefresh,
    TokenResponse,
    UserLogin,
    UserProfile,
    UserRegister,
)
from apps.api.auth.service import IdentityProxy
from apps.api.dependencies import get_identity

router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post("/login", response_model=LoginResponse | ChallengeResponse)
async def login(
    data: UserLogin,
    identity: IdentityProxy = Depends(get_identity),
) -> LoginResponse | ChallengeResponse:
    """Login with email and password.

    When the identity backend asks for a second factor the challenge is
    returned instead of tokens.
    """
    return await identity.login(data.email, data.password)


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
)
async def register(
    data: UserRegister,
    identity: IdentityProxy = Depends(get_identity),
) -> RegisterResponse:
    """Register a new user account."""
    return await identity.register(data)


@router.post("/refresh", response_model=TokenResponse)
async def refresh(
    data: TokenRefresh,
    identity: IdentityProxy = Depends(get_identity),
) -> TokenResponse:
    return await identity.refresh(data.refresh_token)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    token: str = Depends(get_access_token),
    identity: IdentityProxy = Depends(get_identity),
) -> MessageResponse:
    """Logout everywhere. Repeated logouts with a dead token still succeed."""
    return await identity.logout(token)


@router.get("/profile", response_model=UserProfile)
async def get_profile(
    token: str = Depends(get_access_token),
    identity: IdentityProxy = Depends(get_identity),
) -> UserProfile:
    return await identity.get_profile(token)


@router.put("/profile", response_model=UserProfile)
async def update_profile(
    data: ProfileUpdate,
    token: str = Depends(get_access_token),
    identity: IdentityProxy = Depends(get_identity),
) -> UserProfile:
    return await identity.update_profile(token, data)


@router.put("/change-password", response_model=MessageResponse)
async def change_password(
    data: ChangePassword,
    token: str = Depends(get_access_token),
    identity: IdentityProxy = Depends(get_identity),
) -> MessageResponse:
    return await identity.change_password(token, data.current_password, data.new_password)


# =============================================================================
# Unauthenticated recovery and confirmation
# =============================================================================


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    data: ForgotPasswordRequest,
    identity: IdentityProxy = Depends(get_identity),
) -> MessageResponse:
    """Request a password reset.

    The response is identical whether or not the email is registered.
    """
    return await identity.forgot_password(data.email)


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    data: ResetPasswordRequest,
    identity: IdentityProxy = Depends(get_identity),
) -> MessageResponse:
    return await identity.reset_password(
        data.email, data.confirmation_code, data.new_password
    )


@router.post("/confirm-signup", response_model=MessageResponse)
async def confirm_signup(
    data: ConfirmSignup,
    identity: IdentityProxy = Depends(get_identity),
) -> MessageResponse:
    return await identity.confirm_signup(data.email, data.confirmation_code)


@router.post("/resend-confirmation", response_model=MessageResponse)
async def resend_confirmation(
    data: ResendConfirmation,
    identity: IdentityProxy = Depends(get_identity),
) -> MessageResponse:
    return await identity.resend_confirmation(data.email)
