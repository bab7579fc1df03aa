"""
Identity provider client.

Wraps the sign-up, log-in and token refresh endpoints and maps provider
error codes to messages fit for display.
"""

import logging
import time
from typing import Any, Dict, Optional

import httpx

from ..config.loader import FirebaseConfig
from ..storage.models import Session

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

NETWORK_ERROR_MESSAGE = "Network error. Please try again."

PROVIDER_ERROR_MESSAGES = {
    "EMAIL_EXISTS": "An account with this email already exists",
    "EMAIL_NOT_FOUND": "No account found with this email",
    "INVALID_PASSWORD": "Incorrect password",
    "INVALID_EMAIL": "Please enter a valid email address",
    "WEAK_PASSWORD": "Password must be at least 6 characters",
    "INVALID_LOGIN_CREDENTIALS": "Invalid email or password",
    "TOO_MANY_ATTEMPTS_TRY_LATER": "Too many attempts. Please try again later",
}


class AuthError(Exception):
    """Base class for failures surfaced on the auth form."""
    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code


class AuthValidationError(AuthError):
    """Raised by client-side checks before any network call."""


class ProviderAuthError(AuthError):
    """Raised when the identity provider rejects the request."""


class AuthNetworkError(AuthError):
    """Raised when the provider could not be reached."""
    def __init__(self, message: str = NETWORK_ERROR_MESSAGE):
        super().__init__(message, code="NETWORK_ERROR")


def map_provider_error(raw_message: str) -> str:
    """Map a provider error message to a friendly string.

    Provider messages may carry detail after the code
    (``"WEAK_PASSWORD : Password should be..."``); only the code is
    looked up. Unknown codes pass through unchanged.
    """
    code = raw_message.split(" : ", 1)[0].strip()
    return PROVIDER_ERROR_MESSAGES.get(code, raw_message)


def validate_credentials(password: str, confirm_password: Optional[str] = None) -> None:
    """Fast-fail checks run before contacting the provider.

    Args:
        password: Password as entered
        confirm_password: Confirmation, given only on sign-up

    Raises:
        AuthValidationError: If passwords differ or the password is too short
    """
    if confirm_password is not None and password != confirm_password:
        raise AuthValidationError("Passwords do not match", code="PASSWORD_MISMATCH")
    if len(password or "") < MIN_PASSWORD_LENGTH:
        raise AuthValidationError(
            "Password must be at least 6 characters", code="PASSWORD_TOO_SHORT"
        )


class AuthClient:
    """Client for the identity provider's REST endpoints.

    No request is retried; every failure surfaces as an AuthError.
    """

    def __init__(
        self,
        config: FirebaseConfig,
        http_client: Optional[httpx.Client] = None,
        timeout: float = 10.0,
    ):
        """Initialize auth client.

        Args:
            config: Provider endpoints and API key
            http_client: Optional preconfigured httpx client
            timeout: Request timeout in seconds when creating a client
        """
        self.config = config
        self.client = http_client or httpx.Client(
            headers={"Content-Type": "application/json"},
            timeout=timeout,
        )

    def _post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.client.post(url, json=payload)
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Auth request failed: %s", e)
            raise AuthNetworkError()

        if not isinstance(data, dict):
            raise AuthNetworkError()

        error = data.get("error")
        if error:
            raw = str(error.get("message") or "") if isinstance(error, dict) else str(error)
            code = raw.split(" : ", 1)[0].strip()
            raise ProviderAuthError(map_provider_error(raw), code=code)
        return data

    def _password_grant(self, url: str, email: str, password: str) -> Session:
        issued_at = int(time.time() * 1000)
        data = self._post(url, {
            "email": email,
            "password": password,
            "returnSecureToken": True,
        })
        try:
            return Session.issued(
                id_token=data["idToken"],
                refresh_token=data["refreshToken"],
                local_id=data["localId"],
                email=data.get("email", email),
                expires_in=data["expiresIn"],
                issued_at_ms=issued_at,
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Unexpected auth response: %s", e)
            raise AuthNetworkError()

    def sign_up(self, email: str, password: str, confirm_password: str) -> Session:
        """Create an account and return its session.

        Raises:
            AuthValidationError: If the passwords differ or are too short
            ProviderAuthError: If the provider rejects the sign-up
            AuthNetworkError: If the provider cannot be reached
        """
        validate_credentials(password, confirm_password)
        return self._password_grant(self.config.signup_url, email, password)

    def log_in(self, email: str, password: str) -> Session:
        """Log in with email and password.

        Raises:
            AuthValidationError: If the password is too short
            ProviderAuthError: If the provider rejects the credentials
            AuthNetworkError: If the provider cannot be reached
        """
        validate_credentials(password)
        return self._password_grant(self.config.login_url, email, password)

    def refresh(self, refresh_token: str) -> Session:
        """Exchange a refresh token for a new session.

        The response carries no email; the returned session has an empty
        email for the caller to fill in.

        Raises:
            ProviderAuthError: If the token is rejected
            AuthNetworkError: If the provider cannot be reached
        """
        issued_at = int(time.time() * 1000)
        data = self._post(self.config.refresh_url, {
            "grant_type": "refresh_token",
            "refresh_token": refresh_token,
        })
        if not data.get("id_token"):
            raise ProviderAuthError("Session expired", code="REFRESH_FAILED")
        try:
            return Session.issued(
                id_token=data["id_token"],
                refresh_token=data["refresh_token"],
                local_id=data["user_id"],
                email="",
                expires_in=data["expires_in"],
                issued_at_ms=issued_at,
            )
        except (KeyError, TypeError, ValueError) as e:
            logger.warning("Unexpected refresh response: %s", e)
            raise ProviderAuthError("Session expired", code="REFRESH_FAILED")

    def close(self) -> None:
        self.client.close()
