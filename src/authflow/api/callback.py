# Callback relay: loopback route that forwards the provider redirect to the flow controller.
# Created: 2026-10-10

from __future__ import annotations

import html
import logging

from fastapi import APIRouter, Query, Request
from fastapi.responses import HTMLResponse

from authflow.oauth.flow import CallbackMessage, OAuthFlowController

logger = logging.getLogger(__name__)

router = APIRouter(tags=["OAuth callback"])

_PAGE = (
    "<html><body><h3>{title}</h3><p>{body}</p>"
    "<script>window.close()</script></body></html>"
)


@router.get("/oauth/{provider}/callback")
async def oauth_callback(
    provider: str,
    request: Request,
    code: str = Query(""),
    state: str = Query(""),
    error: str = Query(""),
):
    """Deliver ``code``/``state``/``error`` to the attempt waiting on ``state``."""
    controller: OAuthFlowController = request.app.state.controller

    if not state:
        return HTMLResponse(
            "<html><body><h3>Missing state parameter.</h3></body></html>", status_code=400
        )

    delivered = controller.deliver(
        CallbackMessage(provider=provider, state=state, code=code or None, error=error or None)
    )
    if not delivered:
        return HTMLResponse(
            "<html><body><h3>OAuth flow expired or not found.</h3></body></html>",
            status_code=400,
        )

    if error:
        page = _PAGE.format(title="Sign-in cancelled", body=html.escape(error))
    else:
        page = _PAGE.format(
            title="Signed in!", body="You can close this window and return to the terminal."
        )
    return HTMLResponse(page)
