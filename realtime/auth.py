# realtime/auth.py
from dataclasses import dataclass
from typing import Optional

from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.settings import api_settings
from rest_framework_simplejwt.tokens import AccessToken


class AuthenticationFailure(Exception):
    """Missing, malformed, expired or otherwise unusable handshake token."""


@dataclass(frozen=True)
class Claims:
    user_id: int
    email: Optional[str]
    role: Optional[str]
    issued_at: Optional[int]
    expires_at: Optional[int]


class TokenVerifier:
    """Checks a SimpleJWT access token and returns its decoded claims."""

    def verify(self, raw: Optional[str]) -> Claims:
        if not raw:
            raise AuthenticationFailure("no token provided")
        try:
            token = AccessToken(raw)
        except TokenError as e:
            raise AuthenticationFailure(str(e)) from e

        subject = token.get(api_settings.USER_ID_CLAIM)
        # the subject may arrive as a string
        try:
            user_id = int(subject)
        except (TypeError, ValueError):
            raise AuthenticationFailure(f"token subject {subject!r} is not a user id")

        return Claims(
            user_id=user_id,
            email=token.get("email"),
            role=token.get("role"),
            issued_at=token.get("iat"),
            expires_at=token.get("exp"),
        )
