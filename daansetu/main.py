# daansetu/main.py
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from daansetu.core.config import Settings, get_settings
from daansetu.core.errors import DomainError
from daansetu.core.events import ChangeFeed
from daansetu.core.log import configure_logging
from daansetu.middleware.access_log import AccessLogMiddleware
from daansetu.repos.inmemory import InMemoryRepo
from daansetu.routers import auth, donations, live, notifications, reports, requests, users, verification
from daansetu.services.auth import GoogleTokenVerifier

logger = logging.getLogger(__name__)


def build_repo(settings: Settings, feed: ChangeFeed):
    if settings.use_mongo:
        from daansetu.repos.mongo import MongoRepo
        return MongoRepo(settings.mongo_uri, settings.mongo_db, feed=feed)
    return InMemoryRepo(feed=feed)


async def domain_error_handler(request: Request, exc: DomainError):
    logger.warning("%s %s -> %d %s", request.method, request.url.path, exc.status_code, exc.message)
    return JSONResponse({"detail": exc.message}, status_code=exc.status_code)


def create_app(settings: Optional[Settings] = None, repo=None, google_verifier=None) -> FastAPI:
    """Build the API with its own settings, store and change feed.

    ``repo`` and ``google_verifier`` may be injected (tests do); otherwise
    they are built from ``settings``.
    """
    settings = settings or get_settings()
    configure_logging(settings.log_level)

    feed = ChangeFeed()
    if repo is None:
        repo = build_repo(settings, feed)
    else:
        repo.feed = feed

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await app.state.repo.ensure_indexes()
        logger.info("%s started (%s store)", settings.app_name, type(app.state.repo).__name__)
        yield
        await app.state.repo.close()

    app = FastAPI(lifespan=lifespan, title=settings.app_name)
    app.state.settings = settings
    app.state.feed = feed
    app.state.repo = repo
    app.state.google_verifier = google_verifier or GoogleTokenVerifier(
        settings.google_client_id, settings.google_tokeninfo_url,
    )

    app.add_exception_handler(DomainError, domain_error_handler)

    app.add_middleware(AccessLogMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ---------------- Include routers ----------------
    app.include_router(auth.router)             # /auth
    app.include_router(users.router)            # /users, /dashboard
    app.include_router(donations.router)        # /donations
    app.include_router(requests.router)         # /requests
    app.include_router(verification.router)     # /verification, /admin/verifications
    app.include_router(notifications.router)    # /notifications
    app.include_router(reports.router)          # /reports, /contact
    app.include_router(live.router)             # /ws

    @app.get("/health")
    def health():
        return {"ok": True}

    return app


app = create_app()
