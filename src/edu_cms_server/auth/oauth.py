"""
OAuth Provider Clients

Minimal authorization-code clients for linking Google and Discord accounts.
Each client builds the consent URL and exchanges a callback code for the
provider's view of the user (id, email, display name, avatar).

Network and protocol failures surface as OAuthProviderError (502); the raw
provider response is logged, never returned.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional
from urllib.parse import urlencode

import httpx

from ..config import settings
from ..core.errors import APIError

logger = logging.getLogger("edu.auth.oauth")


class OAuthProviderError(APIError):
    status_code = 502
    title = "OAUTH_PROVIDER_ERROR"


@dataclass
class OAuthIdentity:
    """The linked user as reported by the provider."""
    provider_id: str
    email: Optional[str]
    name: Optional[str] = None
    image_url: Optional[str] = None


class OAuthClient:
    provider: str
    authorize_url: str
    token_url: str
    userinfo_url: str
    scope: str

    def __init__(
        self,
        client_id: str,
        client_secret: str,
        redirect_uri: str,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        """
        Parameters
        ----------
        client_id, client_secret : str
            OAuth application credentials.
        redirect_uri : str
            Callback URL registered with the provider.
        timeout : float
            HTTP timeout per request.
        transport : Optional[httpx.AsyncBaseTransport]
            Custom transport (tests use ``httpx.MockTransport``).
        """
        self.client_id = client_id
        self.client_secret = client_secret
        self.redirect_uri = redirect_uri
        self.timeout = timeout
        self._transport = transport

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def authorization_url(self) -> str:
        params = {
            "client_id": self.client_id,
            "redirect_uri": self.redirect_uri,
            "response_type": "code",
            "scope": self.scope,
            **self._extra_authorize_params(),
        }
        return f"{self.authorize_url}?{urlencode(params)}"

    async def fetch_identity(self, code: str) -> OAuthIdentity:
        """
        Exchange an authorization code and load the user's profile.

        Raises
        ------
        OAuthProviderError
            If either request fails or the responses are malformed.
        """
        form = {
            "client_id": self.client_id,
            "client_secret": self.client_secret,
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.redirect_uri,
        }

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            try:
                token_response = await client.post(
                    self.token_url,
                    data=form,
                    headers={"Accept": "application/json"},
                )
                token_response.raise_for_status()
                access_token = token_response.json().get("access_token")
                if not access_token:
                    raise OAuthProviderError(f"{self.provider} did not return an access token")

                profile_response = await client.get(
                    self.userinfo_url,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
                profile_response.raise_for_status()
                profile = profile_response.json()
            except (httpx.HTTPError, ValueError) as exc:
                logger.error(
                    "%s OAuth exchange failed (%s): %s",
                    self.provider,
                    type(exc).__name__,
                    str(exc),
                )
                raise OAuthProviderError(
                    f"Could not complete {self.provider} sign-in"
                ) from exc

        try:
            return self._identity_from_profile(profile)
        except (KeyError, TypeError) as exc:
            logger.error("%s returned an unexpected profile: %s", self.provider, exc)
            raise OAuthProviderError(f"Unexpected {self.provider} profile response") from exc

    # ------------------------------------------------------------------
    # Provider specifics
    # ------------------------------------------------------------------

    def _extra_authorize_params(self) -> Dict[str, str]:
        return {}

    def _identity_from_profile(self, profile: Dict[str, Any]) -> OAuthIdentity:
        raise NotImplementedError


class GoogleOAuthClient(OAuthClient):
    provider = "google"
    authorize_url = "https://accounts.google.com/o/oauth2/v2/auth"
    token_url = "https://oauth2.googleapis.com/token"
    userinfo_url = "https://openidconnect.googleapis.com/v1/userinfo"
    scope = "openid profile email"

    def _extra_authorize_params(self) -> Dict[str, str]:
        return {"access_type": "offline"}

    def _identity_from_profile(self, profile: Dict[str, Any]) -> OAuthIdentity:
        return OAuthIdentity(
            provider_id=str(profile["sub"]),
            email=profile.get("email"),
            name=profile.get("name"),
            image_url=profile.get("picture"),
        )


class DiscordOAuthClient(OAuthClient):
    provider = "discord"
    authorize_url = "https://discord.com/api/oauth2/authorize"
    token_url = "https://discord.com/api/oauth2/token"
    userinfo_url = "https://discord.com/api/users/@me"
    scope = "identify email"

    def _identity_from_profile(self, profile: Dict[str, Any]) -> OAuthIdentity:
        user_id = str(profile["id"])
        avatar = profile.get("avatar")
        return OAuthIdentity(
            provider_id=user_id,
            email=profile.get("email"),
            name=profile.get("username"),
            image_url=f"https://cdn.discordapp.com/avatars/{user_id}/{avatar}.png" if avatar else None,
        )


def google_client() -> GoogleOAuthClient:
    return GoogleOAuthClient(
        client_id=settings.google_oauth_client_id,
        client_secret=settings.google_oauth_client_secret.get_secret_value(),
        redirect_uri=settings.google_oauth_redirect_for_linking,
    )


def discord_client() -> DiscordOAuthClient:
    return DiscordOAuthClient(
        client_id=settings.discord_oauth_client_id,
        client_secret=settings.discord_oauth_client_secret.get_secret_value(),
        redirect_uri=settings.discord_oauth_redirect_for_linking,
    )
