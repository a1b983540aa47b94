from fastapi import Request

from daansetu.core.config import Settings


# Everything below lives on app.state, built by create_app() and its lifespan.

def get_repo(request: Request):
    return request.app.state.repo


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_google_verifier(request: Request):
    return request.app.state.google_verifier
