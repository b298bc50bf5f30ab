"""
Security helpers
JWT bearer verification and role checks.

Credentials are issued elsewhere; this service only verifies the token and
trusts the (user id, role) pair it carries.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .exceptions import AuthenticationError, ForbiddenError
from ..config.settings import settings
from ..models.user import Principal, Role


class SecurityManager:
    """Token encoding and decoding"""

    def __init__(self, secret: Optional[str] = None, algorithm: Optional[str] = None,
                 expire_hours: Optional[int] = None):
        self.secret = secret or settings.jwt_secret_key
        self.algorithm = algorithm or settings.jwt_algorithm
        self.expire_hours = expire_hours or settings.jwt_expire_hours

    def create_jwt_token(self, user_id: int, role: Role,
                         additional_claims: Dict[str, Any] = None) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "role": Role(role).value,
            "iat": now,
            "exp": now + timedelta(hours=self.expire_hours),
        }
        if additional_claims:
            payload.update(additional_claims)
        return jwt.encode(payload, self.secret, algorithm=self.algorithm)

    def decode_jwt_token(self, token: str) -> Dict[str, Any]:
        try:
            return jwt.decode(token, self.secret, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            raise AuthenticationError("Token has expired")
        except jwt.InvalidTokenError as e:
            raise AuthenticationError(f"Invalid token: {e}")

    def get_principal_from_token(self, token: str) -> Principal:
        payload = self.decode_jwt_token(token)
        try:
            return Principal(user_id=int(payload["sub"]), role=Role(payload["role"]))
        except (KeyError, TypeError, ValueError):
            raise AuthenticationError("Token is missing a valid subject or role")


security_manager = SecurityManager()

_bearer = HTTPBearer(auto_error=False)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer)
) -> Principal:
    """FastAPI dependency: the authenticated caller"""
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Missing bearer token")
    return security_manager.get_principal_from_token(credentials.credentials)


def require_role(principal: Principal, roles, action: str):
    """Raise ForbiddenError unless the caller has one of the roles"""
    if not principal.has_role(roles):
        raise ForbiddenError(
            f"Role {principal.role.value} may not {action}",
            role=principal.role.value,
            action=action,
        )
