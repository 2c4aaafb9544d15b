"""
Authentication & authorization helpers.

Passwords are hashed with bcrypt. Credentials are HS256 JWTs: user tokens carry
``userId``/``email``, admin tokens additionally carry ``role`` and
``permissions``. Admin endpoints are gated through the role -> capability table
in ``schemas.ROLE_CAPABILITIES``.
"""

import logging
from datetime import timedelta
from typing import Optional

import bcrypt
import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

import settings
from database import utcnow
from errors import AuthenticationException, InvalidCredentialException, PermissionDeniedException
from schemas import ROLE_CAPABILITIES, Capability, Role

logger = logging.getLogger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

HIDE_PASSWORD = {"password": 0}


def public_user(user: dict) -> dict:
    return {
        "id": str(user["_id"]),
        "name": user.get("name"),
        "email": user.get("email"),
        "phone": user.get("phone"),
        "address": user.get("address"),
    }


def public_admin(admin: dict) -> dict:
    return {
        "id": str(admin["_id"]),
        "username": admin.get("username"),
        "email": admin.get("email"),
        "role": admin.get("role"),
        "permissions": admin.get("permissions", []),
        "isActive": admin.get("isActive", True),
        "tags": admin.get("tags", []),
    }


# --------------- Password hashing -----------------------------------------

def hash_password(plain: str) -> str:
    hashed = bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt(rounds=settings.BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(plain: str, hashed: Optional[str]) -> bool:
    if not hashed:
        return False
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        # stored value is not a bcrypt hash
        return False


# --------------- Tokens ---------------------------------------------------

def create_token(claims: dict, expires_in: Optional[timedelta] = None) -> str:
    payload = dict(claims)
    payload["exp"] = utcnow() + (expires_in or timedelta(days=settings.JWT_EXPIRES_DAYS))
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def create_user_token(user: dict) -> str:
    return create_token({"userId": str(user["_id"]), "email": user["email"]})


def create_admin_token(admin: dict) -> str:
    return create_token({
        "id": str(admin["_id"]),
        "email": admin["email"],
        "role": admin["role"],
        "permissions": admin.get("permissions", []),
    })


def decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise InvalidCredentialException("Token expired")
    except jwt.InvalidTokenError:
        raise InvalidCredentialException("Invalid token")


# --------------- Roles ----------------------------------------------------

def capabilities_for(role) -> frozenset:
    try:
        return ROLE_CAPABILITIES[Role(role)]
    except ValueError:
        return frozenset()


def has_capability(role, capability: Capability) -> bool:
    return capability in capabilities_for(role)


def default_permissions(role) -> list:
    return sorted(c.value for c in capabilities_for(role))


# --------------- FastAPI dependencies -------------------------------------

def _claims(credentials: Optional[HTTPAuthorizationCredentials]) -> dict:
    if credentials is None or not credentials.credentials:
        raise AuthenticationException()
    return decode_token(credentials.credentials)


def get_current_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> dict:
    claims = _claims(credentials)
    if not claims.get("userId"):
        raise InvalidCredentialException()
    return claims


def get_current_admin(credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme)) -> dict:
    claims = _claims(credentials)
    try:
        claims["role"] = Role(claims.get("role"))
    except ValueError:
        raise PermissionDeniedException("Admin access required")
    return claims


def require(capability: Capability):
    """Dependency factory: the caller must be an admin whose role grants ``capability``."""

    def dependency(admin: dict = Depends(get_current_admin)) -> dict:
        if not has_capability(admin["role"], capability):
            logger.warning(f"Admin {admin.get('email')} ({admin['role'].value}) denied {capability.value}")
            raise PermissionDeniedException(f"{capability.value} requires a higher role")
        return admin

    return dependency
