"""
CORS for the three frontends of a table: diner phones, the kitchen display
and the waiter app. Each is served from its own origin.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from shared.config.settings import settings


# Vite dev servers, one port per frontend
LOCAL_FRONTEND_PORTS = {
    "diner": 5173,
    "kitchen": 5174,
    "waiter": 5175,
}


def get_cors_origins() -> list[str]:
    """ALLOWED_ORIGINS when set, otherwise every local frontend on localhost and 127.0.0.1."""
    if settings.allowed_origins:
        return [origin.strip() for origin in settings.allowed_origins.split(",") if origin.strip()]
    return [
        f"http://{host}:{port}"
        for port in LOCAL_FRONTEND_PORTS.values()
        for host in ("localhost", "127.0.0.1")
    ]


def configure_cors(app: FastAPI) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=get_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "Accept", "Accept-Language", "X-Request-ID"],
        expose_headers=["X-Request-ID"],
        # No preflight caching while origins are being changed locally
        max_age=600 if settings.is_production else 0,
    )
