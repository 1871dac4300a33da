"""
Identity proxy over a Cognito user pool.

Every operation is forwarded to the identity backend exactly once. The
proxy only extracts tokens, reshapes responses, and translates backend
error codes into the small set of errors below.
"""

import logging
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

import aioboto3
from botocore.exceptions import BotoCoreError, ClientError
from fastapi import status

from apps.api.auth.permissions import Capability, has_capability
from apps.api.auth.schemas import (
    ChallengeResponse,
    LoginResponse,
    MessageResponse,
    ProfileUpdate,
    RegisterResponse,
    TokenResponse,
    UserProfile,
    UserRegister,
)
from packages.shared.exceptions import AppException, ForbiddenError

logger = logging.getLogger(__name__)

FORGOT_PASSWORD_MESSAGE = "If the email exists, password reset instructions will be sent"


class AuthError(AppException):
    """Base authentication error."""

    http_status = status.HTTP_400_BAD_REQUEST
    default_message = "Authentication request failed"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(
            message=message or self.default_message,
            status_code=self.http_status,
        )


class InvalidCredentialsError(AuthError):
    """Invalid email or password."""

    http_status = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid email or password"


class InvalidTokenError(AuthError):
    """Missing, invalid or expired token."""

    http_status = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid or expired access token"


class UserNotConfirmedError(AuthError):
    """Account exists but signup was never confirmed."""

    http_status = status.HTTP_403_FORBIDDEN
    default_message = (
        "User account not confirmed. Please check your email for "
        "confirmation instructions."
    )


class RateLimitedError(AuthError):
    """Identity backend throttled the caller."""

    http_status = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests. Please try again later."


class CodeMismatchError(AuthError):
    default_message = "Invalid confirmation code"


class ExpiredCodeError(AuthError):
    default_message = "Confirmation code has expired"


class InvalidPasswordError(AuthError):
    default_message = "Password does not meet requirements"


class UserExistsError(AuthError):
    default_message = "User with this email already exists"


class InvalidUserDataError(AuthError):
    default_message = "Invalid user data provided"


# Backend error code -> error raised to the client
ERROR_TRANSLATIONS: dict[str, type[AuthError]] = {
    "NotAuthorizedException": InvalidCredentialsError,
    "UserNotFoundException": InvalidCredentialsError,
    "UserNotConfirmedException": UserNotConfirmedError,
    "TooManyRequestsException": RateLimitedError,
    "LimitExceededException": RateLimitedError,
    "TooManyFailedAttemptsException": RateLimitedError,
    "CodeMismatchException": CodeMismatchError,
    "ExpiredCodeException": ExpiredCodeError,
    "InvalidPasswordException": InvalidPasswordError,
    "UsernameExistsException": UserExistsError,
    "InvalidParameterException": InvalidUserDataError,
}


def error_code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def translate_error(
    error: ClientError,
    operation: str,
    fallback: AuthError,
    overrides: Mapping[str, AuthError] | None = None,
) -> AuthError:
    """
    Map a backend error to a client-facing error.

    Per-operation overrides win over the shared table; codes found in
    neither become the fallback.
    """
    code = error_code(error)
    logger.warning(f"Identity backend rejected {operation}: {code or 'unknown'}")
    if overrides and code in overrides:
        return overrides[code]
    error_class = ERROR_TRANSLATIONS.get(code)
    if error_class is not None:
        return error_class()
    return fallback


def profile_from_user(result: Mapping[str, Any]) -> UserProfile:
    """Build a profile from a ``GetUser`` response."""
    attributes = {
        attr["Name"]: attr["Value"] for attr in result.get("UserAttributes", [])
    }
    now = datetime.now(timezone.utc).isoformat()
    return UserProfile(
        id=result["Username"],
        username=result["Username"],
        email=attributes.get("email"),
        full_name=attributes.get("name") or attributes.get("email"),
        role=attributes.get("custom:role") or "viewer",
        created_at=attributes.get("created_at") or now,
        last_login=now,
    )


class IdentityProxy:
    """Forwards account operations to a Cognito user pool app client."""

    def __init__(
        self,
        client_id: str,
        region: str,
        session: aioboto3.Session | None = None,
    ):
        self.client_id = client_id
        self.region = region
        self._session = session or aioboto3.Session()

    def _client(self):
        return self._session.client("cognito-idp", region_name=self.region)

    # =========================================================================
    # Sessions
    # =========================================================================

    async def login(self, email: str, password: str) -> LoginResponse | ChallengeResponse:
        """Password login. Challenges are passed through unresolved."""
        async with self._client() as cognito:
            try:
                result = await cognito.initiate_auth(
                    AuthFlow="USER_PASSWORD_AUTH",
                    ClientId=self.client_id,
                    AuthParameters={"USERNAME": email, "PASSWORD": password},
                )
            except ClientError as e:
                raise translate_error(
                    e,
                    "login",
                    fallback=AuthError("Invalid credentials"),
                    overrides={
                        "TooManyRequestsException": RateLimitedError(
                            "Too many login attempts. Please try again later."
                        )
                    },
                ) from None

            if result.get("ChallengeName"):
                logger.info(f"Login for {email} requires {result['ChallengeName']}")
                return ChallengeResponse(
                    challenge=result["ChallengeName"],
                    session=result.get("Session"),
                    challenge_parameters=result.get("ChallengeParameters") or {},
                )

            tokens = result["AuthenticationResult"]
            try:
                user = await cognito.get_user(AccessToken=tokens["AccessToken"])
            except ClientError as e:
                raise translate_error(
                    e, "login", fallback=AuthError("Invalid credentials")
                ) from None

        return LoginResponse(
            user=profile_from_user(user),
            access_token=tokens["AccessToken"],
            refresh_token=tokens.get("RefreshToken"),
            id_token=tokens.get("IdToken"),
        )

    async def refresh(self, refresh_token: str) -> TokenResponse:
        async with self._client() as cognito:
            try:
                result = await cognito.initiate_auth(
                    AuthFlow="REFRESH_TOKEN_AUTH",
                    ClientId=self.client_id,
                    AuthParameters={"REFRESH_TOKEN": refresh_token},
                )
            except ClientError as e:
                logger.warning(f"Token refresh rejected: {error_code(e)}")
                raise InvalidTokenError("Invalid or expired refresh token") from None

        tokens = result["AuthenticationResult"]
        return TokenResponse(
            access_token=tokens["AccessToken"],
            id_token=tokens.get("IdToken"),
        )

    async def logout(self, access_token: str) -> MessageResponse:
        """Sign out everywhere. Succeeds even when the token is already invalid."""
        try:
            async with self._client() as cognito:
                await cognito.global_sign_out(AccessToken=access_token)
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Logout ignored backend failure: {e}")
            return MessageResponse(message="Logged out")
        return MessageResponse(message="Logged out successfully")

    # =========================================================================
    # Registration
    # =========================================================================

    async def register(self, data: UserRegister) -> RegisterResponse:
        async with self._client() as cognito:
            try:
                result = await cognito.sign_up(
                    ClientId=self.client_id,
                    Username=data.email,
                    Password=data.password,
                    UserAttributes=[
                        {"Name": "email", "Value": data.email},
                        {"Name": "name", "Value": data.full_name},
                        {"Name": "custom:role", "Value": data.role.value},
                    ],
                )
            except ClientError as e:
                raise translate_error(
                    e, "register", fallback=AuthError("Registration failed")
                ) from None

        logger.info(f"Registered user {result['UserSub']}")
        return RegisterResponse(
            message=(
                "User registered successfully. Please check your email for "
                "confirmation instructions."
            ),
            user_id=result["UserSub"],
            confirmation_required=not result.get("UserConfirmed", False),
        )

    async def confirm_signup(self, email: str, confirmation_code: str) -> MessageResponse:
        async with self._client() as cognito:
            try:
                await cognito.confirm_sign_up(
                    ClientId=self.client_id,
                    Username=email,
                    ConfirmationCode=confirmation_code,
                )
            except ClientError as e:
                raise translate_error(
                    e, "confirm_signup", fallback=AuthError("Failed to confirm account")
                ) from None
        return MessageResponse(message="Account confirmed successfully. You can now log in.")

    async def resend_confirmation(self, email: str) -> MessageResponse:
        async with self._client() as cognito:
            try:
                await cognito.resend_confirmation_code(
                    ClientId=self.client_id,
                    Username=email,
                )
            except ClientError as e:
                raise translate_error(
                    e,
                    "resend_confirmation",
                    fallback=AuthError("Failed to resend confirmation code"),
                ) from None
        return MessageResponse(message="Confirmation code sent to your email")

    # =========================================================================
    # Profile
    # =========================================================================

    async def get_profile(self, access_token: str) -> UserProfile:
        async with self._client() as cognito:
            try:
                user = await cognito.get_user(AccessToken=access_token)
            except ClientError as e:
                logger.warning(f"Profile lookup rejected: {error_code(e)}")
                raise InvalidTokenError() from None
        return profile_from_user(user)

    async def update_profile(self, access_token: str, data: ProfileUpdate) -> UserProfile:
        """
        Update name and/or role, then return the refreshed profile.

        Changing a role requires the caller's current role to grant
        ``manage_users``.
        """
        attributes = []
        if data.full_name:
            attributes.append({"Name": "name", "Value": data.full_name})
        if data.role is not None:
            attributes.append({"Name": "custom:role", "Value": data.role.value})
        if not attributes:
            raise AuthError("No valid attributes to update")

        if data.role is not None:
            caller = await self.get_profile(access_token)
            if not has_capability(caller.role, Capability.MANAGE_USERS):
                raise ForbiddenError("Insufficient permissions to change role")

        async with self._client() as cognito:
            try:
                await cognito.update_user_attributes(
                    AccessToken=access_token,
                    UserAttributes=attributes,
                )
            except ClientError as e:
                logger.warning(f"Profile update rejected: {error_code(e)}")
                raise AuthError("Failed to update profile") from None

        return await self.get_profile(access_token)

    # =========================================================================
    # Passwords
    # =========================================================================

    async def change_password(
        self,
        access_token: str,
        current_password: str,
        new_password: str,
    ) -> MessageResponse:
        async with self._client() as cognito:
            try:
                await cognito.change_password(
                    AccessToken=access_token,
                    PreviousPassword=current_password,
                    ProposedPassword=new_password,
                )
            except ClientError as e:
                raise translate_error(
                    e,
                    "change_password",
                    fallback=AuthError("Failed to change password"),
                    overrides={
                        "NotAuthorizedException": AuthError("Current password is incorrect"),
                        "InvalidPasswordException": InvalidPasswordError(
                            "New password does not meet requirements"
                        ),
                    },
                ) from None
        return MessageResponse(message="Password changed successfully")

    async def forgot_password(self, email: str) -> MessageResponse:
        """Start a reset. The reply never reveals whether the account exists."""
        try:
            async with self._client() as cognito:
                await cognito.forgot_password(ClientId=self.client_id, Username=email)
        except (ClientError, BotoCoreError) as e:
            logger.warning(f"Forgot password suppressed backend failure: {e}")
        return MessageResponse(message=FORGOT_PASSWORD_MESSAGE)

    async def reset_password(
        self,
        email: str,
        confirmation_code: str,
        new_password: str,
    ) -> MessageResponse:
        async with self._client() as cognito:
            try:
                await cognito.confirm_forgot_password(
                    ClientId=self.client_id,
                    Username=email,
                    ConfirmationCode=confirmation_code,
                    Password=new_password,
                )
            except ClientError as e:
                raise translate_error(
                    e, "reset_password", fallback=AuthError("Failed to reset password")
                ) from None
        return MessageResponse(message="Password reset successfully")
