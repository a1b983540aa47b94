"""Identity layer: credentials, sessions, Google sign-in, password reset.

Login identities live in ``credentials`` (keyed by the same id as the
``users`` profile). Sessions are stateless JWTs; signing out records the
token id in ``revokedTokens``.
"""
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx
from pymongo.errors import DuplicateKeyError

from daansetu.core.config import Settings
from daansetu.core.errors import AuthError, ConflictError
from daansetu.core.security import create_token, decode_token, hash_password, verify_password
from daansetu.schemas import GoogleLoginIn, SignupIn, TokenOut, UserProfile
from daansetu.services.documents import utcnow
from daansetu.services.users import create_user_profile, get_user_profile

logger = logging.getLogger(__name__)

CREDENTIALS = "credentials"
REVOKED = "revokedTokens"


class GoogleTokenVerifier:
    """Checks Google ID tokens against Google's tokeninfo endpoint."""

    def __init__(self, client_id: str, tokeninfo_url: str):
        self.client_id = client_id
        self.tokeninfo_url = tokeninfo_url

    async def verify(self, id_token: str) -> Dict[str, Any]:
        if not self.client_id:
            raise AuthError("Google sign-in is not configured")
        try:
            async with httpx.AsyncClient(timeout=10) as client:
                r = await client.get(self.tokeninfo_url, params={"id_token": id_token})
        except httpx.HTTPError as ex:
            logger.warning("google tokeninfo unreachable: %s", ex)
            raise AuthError("Google sign-in is unavailable")
        if r.status_code != 200:
            raise AuthError("Invalid Google token")
        info = r.json()
        if info.get("aud") != self.client_id:
            raise AuthError("Google token was issued for another application")
        if str(info.get("email_verified")).lower() != "true":
            raise AuthError("Google account email is not verified")
        return info


def _session(settings: Settings, profile: UserProfile) -> TokenOut:
    return TokenOut(access_token=create_token(settings, profile.id, profile.role), user=profile)


async def _find_credential(repo, email: str) -> Optional[dict]:
    return await repo.find_one(CREDENTIALS, {"email": email.lower()})


async def _insert_credential(repo, email: str, provider: str, password_hash: Optional[str] = None) -> str:
    uid = uuid.uuid4().hex
    try:
        await repo.insert(CREDENTIALS, {
            "id": uid,
            "email": email.lower(),
            "password_hash": password_hash,
            "provider": provider,
            "created_at": utcnow(),
        })
    except DuplicateKeyError:
        raise ConflictError("Email already registered")
    return uid


async def signup(repo, settings: Settings, data: SignupIn) -> TokenOut:
    if await _find_credential(repo, data.email):
        raise ConflictError("Email already registered")
    uid = await _insert_credential(repo, data.email, "password", hash_password(data.password))
    profile = await create_user_profile(repo, uid, data.email.lower(), data.display_name, data.role)
    logger.info("signup %s as %s", uid, data.role)
    return _session(settings, profile)


async def login(repo, settings: Settings, email: str, password: str) -> TokenOut:
    cred = await _find_credential(repo, email)
    if not cred or not cred.get("password_hash") or not verify_password(password, cred["password_hash"]):
        logger.info("failed login for %s", email)
        raise AuthError("Invalid credentials")
    return _session(settings, await get_user_profile(repo, cred["id"]))


async def google_login(repo, settings: Settings, verifier, data: GoogleLoginIn) -> TokenOut:
    info = await verifier.verify(data.id_token)
    email = info["email"].lower()
    cred = await _find_credential(repo, email)
    if cred:
        return _session(settings, await get_user_profile(repo, cred["id"]))
    uid = await _insert_credential(repo, email, "google")
    profile = await create_user_profile(
        repo, uid, email, info.get("name") or email.split("@")[0], data.role, photo_url=info.get("picture"),
    )
    logger.info("google signup %s as %s", uid, data.role)
    return _session(settings, profile)


async def logout(repo, claims: Dict[str, Any]) -> None:
    await repo.insert(REVOKED, {
        "id": claims["jti"],
        "sub": claims["sub"],
        "expires_at": datetime.fromtimestamp(claims["exp"], tz=timezone.utc),
    })


async def request_password_reset(repo, settings: Settings, email: str) -> Optional[str]:
    """Issue a reset token for a password account; None when there is nothing to reset."""
    cred = await _find_credential(repo, email)
    if not cred or cred.get("provider") != "password":
        logger.info("password reset requested for unknown account %s", email)
        return None
    profile = await get_user_profile(repo, cred["id"])
    token = create_token(settings, cred["id"], profile.role, purpose="reset", minutes=settings.reset_ttl_min)
    logger.info("password reset token issued for %s", cred["id"])
    return token


async def confirm_password_reset(repo, settings: Settings, token: str, new_password: str) -> None:
    claims = decode_token(settings, token, purpose="reset")
    if await repo.get(REVOKED, claims["jti"]):
        raise AuthError("Reset link was already used")
    updated = await repo.update(CREDENTIALS, claims["sub"], {"password_hash": hash_password(new_password)})
    if updated is None:
        raise AuthError("Account no longer exists")
    await logout(repo, claims)


async def change_password(repo, user: UserProfile, current_password: str, new_password: str) -> None:
    cred = await repo.get(CREDENTIALS, user.id)
    if not cred or not cred.get("password_hash") or not verify_password(current_password, cred["password_hash"]):
        raise AuthError("Current password is incorrect")
    await repo.update(CREDENTIALS, user.id, {"password_hash": hash_password(new_password)})
