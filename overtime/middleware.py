from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi.middleware.cors import CORSMiddleware

if TYPE_CHECKING:
    from fastapi import FastAPI

    from overtime.config import Settings

# Identity headers set by the auth proxy in front of the service.
IDENTITY_HEADERS = ["X-User-Email", "X-Roles"]


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Configure application middleware."""
    app.add_middleware(
        CORSMiddleware,  # ty: ignore[invalid-argument-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE"],
        allow_headers=["Content-Type", *IDENTITY_HEADERS],
        expose_headers=["Content-Disposition"],
    )
