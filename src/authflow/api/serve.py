"""App factories and runners for the mock provider and the callback relay.

The mock provider stands in for Google/GitHub during development. The
callback relay listens on the redirect URI while a real-path login waits for
the provider to send the browser back.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from authflow.api.backend import MockProviderBackend
from authflow.oauth.flow import OAuthFlowController

logger = logging.getLogger(__name__)


def create_mock_app(backend: MockProviderBackend | None = None) -> FastAPI:
    """Build the mock OAuth provider application."""
    from authflow.api.mock_provider import router

    app = FastAPI(
        title="authflow mock OAuth provider",
        description="Fake Google/GitHub OAuth endpoints. Development only.",
        version="0.1.0",
    )
    app.state.backend = backend or MockProviderBackend()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    app.include_router(router)
    return app


def create_callback_app(controller: OAuthFlowController) -> FastAPI:
    """Build the loopback app that relays provider redirects to *controller*."""
    from authflow.api.callback import router

    app = FastAPI(title="authflow callback relay", docs_url=None, redoc_url=None)
    app.state.controller = controller
    app.include_router(router)
    return app


def run_mock_server(host: str = "127.0.0.1", port: int = 3001) -> None:
    """Start the mock provider (blocking)."""
    import uvicorn

    print("\n" + "=" * 50)
    print("MOCK OAUTH SERVER")
    print("=" * 50)
    print(f"\n  Health check:  http://{host}:{port}/health")
    print(f"  Google OAuth:  http://{host}:{port}/oauth/google/authorize")
    print(f"  GitHub OAuth:  http://{host}:{port}/oauth/github/authorize")
    print("\n  Development only. Use real providers in production.\n")

    uvicorn.run(create_mock_app(), host=host, port=port)


def build_callback_server(controller: OAuthFlowController, host: str, port: int):
    """Uvicorn server for the callback relay; the caller runs ``serve()`` as a task."""
    import uvicorn

    config = uvicorn.Config(
        create_callback_app(controller), host=host, port=port, log_level="warning"
    )
    return uvicorn.Server(config)
