"""Google OAuth consent flow used once to obtain a calendar refresh token."""

import asyncio
import html
import logging

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from google_auth_oauthlib.flow import Flow

from ..config import Settings
from ..tools.calendar_agent import CALENDAR_SCOPES, TOKEN_URI

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth/google", tags=["auth"])

AUTH_URI = "https://accounts.google.com/o/oauth2/auth"


class GoogleAuthFlow:
    def __init__(self, client_id: str | None, client_secret: str | None, redirect_uri: str):
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        if not client_id or not client_secret:
            logger.warning("Google OAuth credentials not configured")

    @classmethod
    def from_settings(cls, settings: Settings) -> "GoogleAuthFlow":
        return cls(settings.google_client_id, settings.google_client_secret, settings.google_redirect_uri)

    def _client_config(self) -> dict:
        return {
            "web": {
                "client_id": self.client_id,
                "client_secret": self.client_secret,
                "auth_uri": AUTH_URI,
                "token_uri": TOKEN_URI,
                "redirect_uris": [self.redirect_uri],
            }
        }

    def _flow(self) -> Flow:
        return Flow.from_client_config(
            self._client_config(),
            scopes=CALENDAR_SCOPES,
            redirect_uri=self.redirect_uri,
        )

    def authorization_url(self) -> str:
        url, _ = self._flow().authorization_url(access_type="offline", prompt="consent")
        return url

    def exchange_code(self, code: str) -> dict:
        flow = self._flow()
        flow.fetch_token(code=code)
        credentials = flow.credentials
        return {
            "access_token": credentials.token,
            "refresh_token": credentials.refresh_token,
        }


def get_auth_flow(request: Request) -> GoogleAuthFlow:
    return request.app.state.auth_flow


@router.get("")
async def google_auth(request: Request):
    return RedirectResponse(get_auth_flow(request).authorization_url())


@router.get("/callback", response_class=HTMLResponse)
async def google_auth_callback(request: Request, code: str | None = None):
    if not code:
        return HTMLResponse("Authentication failed", status_code=500)
    try:
        tokens = await asyncio.to_thread(get_auth_flow(request).exchange_code, code)
    except Exception as e:
        logger.exception("Error getting tokens: %s", e)
        return HTMLResponse("Authentication failed", status_code=500)

    refresh_token = tokens.get("refresh_token")
    logger.info("Obtained Google refresh token (present=%s)", bool(refresh_token))
    return HTMLResponse(
        "<h2>Authentication successful!</h2>"
        "<p>You can now close this window and return to your voice assistant.</p>"
        "<p><strong>Save this refresh token to your .env file:</strong></p>"
        f"<code>GOOGLE_REFRESH_TOKEN={html.escape(refresh_token or '')}</code>"
    )
