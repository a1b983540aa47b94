import uuid
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import jwt
from fastapi import Depends, HTTPException
from fastapi.security import OAuth2PasswordBearer
from passlib.context import CryptContext

from daansetu.core.config import Settings
from daansetu.core.errors import AuthError
from daansetu.deps import get_app_settings, get_repo
from daansetu.schemas import UserProfile
from daansetu.services.documents import parse

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token", auto_error=False)


def hash_password(password: str) -> str:
    return pwd_context.hash(password or "")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return pwd_context.verify(password or "", hashed)
    except (ValueError, TypeError):
        # empty or unknown hash format
        return False


def create_token(settings: Settings, sub: str, role: str, purpose: str = "access",
                 minutes: int | None = None) -> str:
    now = datetime.now(timezone.utc)
    ttl = minutes if minutes is not None else settings.access_ttl_min
    payload = {
        "sub": sub,
        "role": role,
        "purpose": purpose,
        "jti": uuid.uuid4().hex,
        "iat": now,
        "exp": now + timedelta(minutes=ttl),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_alg)


def decode_token(settings: Settings, token: str, purpose: str = "access") -> Dict[str, Any]:
    try:
        data = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_alg])
    except jwt.ExpiredSignatureError:
        raise AuthError("Token expired")
    except jwt.InvalidTokenError:
        raise AuthError("Invalid token")
    if data.get("purpose") != purpose:
        raise AuthError("Invalid token")
    return data


async def user_from_token(repo, settings: Settings, token: str) -> tuple[UserProfile, Dict[str, Any]]:
    claims = decode_token(settings, token)
    if await repo.get("revokedTokens", claims["jti"]):
        raise AuthError("Session has been signed out")
    doc = await repo.get("users", claims["sub"])
    if not doc:
        raise AuthError("User not found")
    return parse(UserProfile, doc), claims


async def get_session(token: str | None = Depends(oauth2_scheme), repo=Depends(get_repo),
                      settings: Settings = Depends(get_app_settings)):
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated",
                            headers={"WWW-Authenticate": "Bearer"})
    try:
        return await user_from_token(repo, settings, token)
    except AuthError as ex:
        raise HTTPException(status_code=401, detail=ex.message, headers={"WWW-Authenticate": "Bearer"})


async def get_current_user(session=Depends(get_session)) -> UserProfile:
    return session[0]


def require_roles(*roles: str):
    allowed: List[str] = list(roles)

    async def checker(user: UserProfile = Depends(get_current_user)) -> UserProfile:
        if allowed and user.role not in allowed:
            raise HTTPException(
                status_code=403,
                detail=f"This area is restricted to {' or '.join(allowed)} users",
            )
        return user
    return checker


async def require_verified_ngo(user: UserProfile = Depends(require_roles("ngo"))) -> UserProfile:
    if user.verification_status != "verified":
        raise HTTPException(status_code=403, detail="Your NGO account must be verified first")
    return user
