from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "DaanSetu API"
    debug: bool = False
    log_level: str = "INFO"

    # store
    use_mongo: bool = False
    mongo_uri: str = "mongodb://localhost:27017"
    mongo_db: str = "daansetu"

    # sessions
    jwt_secret: str = "dev"
    jwt_alg: str = "HS256"
    access_ttl_min: int = 60
    reset_ttl_min: int = 30

    # google sign-in
    google_client_id: str = ""
    google_tokeninfo_url: str = "https://oauth2.googleapis.com/tokeninfo"

    cors_origins: list[str] = ["*"]

    nearby_donations_radius_km: float = 10.0
    nearby_requests_radius_km: float = 20.0

    # live subscriptions must deliver their first snapshot within this window
    subscription_timeout_s: float = 10.0

    model_config = SettingsConfigDict(env_prefix="DAANSETU_", env_file=".env", extra="ignore")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
