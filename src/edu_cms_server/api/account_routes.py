"""
Linked Account Routes

OAuth account linking for the session user under ``/auth/accounts``.
"""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import RedirectResponse

from .dependencies import get_account_service, get_discord_client, get_google_client
from ..auth.accounts import AccountService
from ..auth.models import SessionUser
from ..auth.oauth import DiscordOAuthClient, GoogleOAuthClient, OAuthClient
from ..auth.session import require_user
from ..core.responses import respond
from ..users.models import Provider, UserOut

router = APIRouter(prefix="/auth/accounts", tags=["accounts"])

Service = Annotated[AccountService, Depends(get_account_service)]
CurrentUser = Annotated[SessionUser, Depends(require_user)]


async def _redirect(current: SessionUser, service: AccountService, provider: Provider, client: OAuthClient):
    await service.ensure_not_linked(current.id, provider)
    return RedirectResponse(client.authorization_url(), status_code=302)


async def _callback(
    request: Request,
    current: SessionUser,
    service: AccountService,
    provider: Provider,
    client: OAuthClient,
    code: str,
):
    identity = await client.fetch_identity(code)
    user = await service.link_from_identity(current, provider, identity)
    request.state.user = SessionUser.model_validate(user, from_attributes=True)
    return respond(f"{provider.value} account linked successfully", UserOut.model_validate(user))


# ---------------------------------------------------------------------
# Google
# ---------------------------------------------------------------------

@router.get("/google", summary="Redirect to Google consent")
async def google_redirect(
    current: CurrentUser,
    service: Service,
    client: Annotated[GoogleOAuthClient, Depends(get_google_client)],
):
    return await _redirect(current, service, Provider.GOOGLE, client)


@router.get("/google/callback", summary="Link the Google account")
async def google_callback(
    request: Request,
    current: CurrentUser,
    service: Service,
    client: Annotated[GoogleOAuthClient, Depends(get_google_client)],
    code: str = Query(..., min_length=1),
):
    return await _callback(request, current, service, Provider.GOOGLE, client, code)


# ---------------------------------------------------------------------
# Discord
# ---------------------------------------------------------------------

@router.get("/discord", summary="Redirect to Discord consent")
async def discord_redirect(
    current: CurrentUser,
    service: Service,
    client: Annotated[DiscordOAuthClient, Depends(get_discord_client)],
):
    return await _redirect(current, service, Provider.DISCORD, client)


@router.get("/discord/callback", summary="Link the Discord account")
async def discord_callback(
    request: Request,
    current: CurrentUser,
    service: Service,
    client: Annotated[DiscordOAuthClient, Depends(get_discord_client)],
    code: str = Query(..., min_length=1),
):
    return await _callback(request, current, service, Provider.DISCORD, client, code)


# ---------------------------------------------------------------------
# Unlink
# ---------------------------------------------------------------------

@router.delete("/unlink", summary="Unlink a provider account")
async def unlink_account(
    current: CurrentUser,
    service: Service,
    provider: Optional[str] = Query(None),
):
    parsed = service.verify_provider(provider)
    await service.unlink(current.id, parsed)
    return respond(f"{parsed.value} account unlinked successfully")
