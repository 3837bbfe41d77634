"""CORS for the web client. The mobile apps send no Origin header."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from movibeers.config import Settings

ALLOWED_HEADERS = ["Authorization", "Content-Type", "X-Request-Id"]


def setup_cors(app: FastAPI, settings: Settings) -> None:
    """Allow the configured web origins; no middleware when none are configured."""
    if not settings.cors_origins:
        return
    # Browsers refuse credentialed responses for a wildcard origin.
    wildcard = "*" in settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=not wildcard,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=ALLOWED_HEADERS,
        expose_headers=["X-Request-Id"],
        max_age=600,
    )
