import logging

from fastapi import APIRouter, Depends, Response, status
from fastapi.security import OAuth2PasswordRequestForm

from daansetu.core.config import Settings
from daansetu.core.security import get_current_user, get_session
from daansetu.deps import get_app_settings, get_google_verifier, get_repo
from daansetu.schemas import (
    GoogleLoginIn,
    LoginIn,
    PasswordChangeIn,
    PasswordResetConfirm,
    PasswordResetIn,
    SignupIn,
    TokenOut,
    UserProfile,
)
from daansetu.services import auth as auth_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/signup", response_model=TokenOut, status_code=status.HTTP_201_CREATED)
async def signup(body: SignupIn, repo=Depends(get_repo), settings: Settings = Depends(get_app_settings)):
    return await auth_service.signup(repo, settings, body)


@router.post("/login", response_model=TokenOut)
async def login(body: LoginIn, repo=Depends(get_repo), settings: Settings = Depends(get_app_settings)):
    return await auth_service.login(repo, settings, body.email, body.password)


# OAuth2 password flow (form fields username/password), used by the docs UI
@router.post("/token")
async def token(form: OAuth2PasswordRequestForm = Depends(), repo=Depends(get_repo),
                settings: Settings = Depends(get_app_settings)):
    session = await auth_service.login(repo, settings, form.username, form.password)
    return {"access_token": session.access_token, "token_type": "bearer"}


@router.post("/google", response_model=TokenOut)
async def google(body: GoogleLoginIn, repo=Depends(get_repo), settings: Settings = Depends(get_app_settings),
                 verifier=Depends(get_google_verifier)):
    return await auth_service.google_login(repo, settings, verifier, body)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(session=Depends(get_session), repo=Depends(get_repo)):
    _, claims = session
    await auth_service.logout(repo, claims)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/me", response_model=UserProfile)
async def me(user: UserProfile = Depends(get_current_user)):
    return user


@router.post("/password-reset", status_code=status.HTTP_202_ACCEPTED)
async def password_reset(body: PasswordResetIn, repo=Depends(get_repo),
                         settings: Settings = Depends(get_app_settings)):
    token = await auth_service.request_password_reset(repo, settings, body.email)
    # same answer whether or not the account exists
    out = {"ok": True}
    if token and settings.debug:
        out["reset_token"] = token
    elif token:
        # no mail transport; operators hand the link over
        logger.info("password reset token for %s: %s", body.email, token)
    return out


@router.post("/password-reset/confirm")
async def password_reset_confirm(body: PasswordResetConfirm, repo=Depends(get_repo),
                                 settings: Settings = Depends(get_app_settings)):
    await auth_service.confirm_password_reset(repo, settings, body.token, body.new_password)
    return {"ok": True}


@router.post("/change-password")
async def change_password(body: PasswordChangeIn, user: UserProfile = Depends(get_current_user),
                          repo=Depends(get_repo)):
    await auth_service.change_password(repo, user, body.current_password, body.new_password)
    return {"ok": True}
