"""
User Routes

Registration, lifecycle, identity and profile endpoints under ``/users``.

Every route except registration works on the session user. Routes that
change claims carried by the session token (verification, identity, image)
replace ``request.state.user`` so the refreshed cookies reflect the change.
"""

from typing import Annotated, Any, Dict

from fastapi import APIRouter, Body, Depends, Request

from .dependencies import get_user_service
from ..auth.models import SessionUser
from ..auth.session import require_user
from ..core.responses import respond
from ..db.models import User
from ..users.models import PreferencesOut, UserOut
from ..users.service import UserService

router = APIRouter(prefix="/users", tags=["users"])

Service = Annotated[UserService, Depends(get_user_service)]
CurrentUser = Annotated[SessionUser, Depends(require_user)]


def _sign_in(request: Request, user: User) -> None:
    request.state.user = SessionUser.model_validate(user, from_attributes=True)


# ---------------------------------------------------------------------
# Registration & lifecycle
# ---------------------------------------------------------------------

@router.post("/register", status_code=201, summary="Register a new user")
async def register(request: Request, service: Service, payload: Dict[str, Any] = Body(...)):
    user = await service.register(payload)
    _sign_in(request, user)
    return respond("User registered successfully", UserOut.model_validate(user), status_code=201)


@router.post("/verify", summary="Mark the session user as verified")
async def verify_user(request: Request, current: CurrentUser, service: Service):
    user = await service.verify_user(current.id)
    _sign_in(request, user)
    return respond("User verified successfully", UserOut.model_validate(user))


@router.post("/deactivate", summary="Deactivate the session user")
async def deactivate_user(current: CurrentUser, service: Service):
    user = await service.deactivate_user(current.id)
    return respond("User deactivated successfully", UserOut.model_validate(user))


@router.post("/activate", summary="Reactivate the session user")
async def activate_user(request: Request, current: CurrentUser, service: Service):
    user = await service.activate_user(current.email)
    _sign_in(request, user)
    return respond("User activated successfully", UserOut.model_validate(user))


# ---------------------------------------------------------------------
# Identity
# ---------------------------------------------------------------------

@router.put("/update", summary="Update identity fields")
async def update_user(
    request: Request,
    current: CurrentUser,
    service: Service,
    payload: Dict[str, Any] = Body(...),
):
    user = await service.update_user(current.id, payload)
    _sign_in(request, user)
    return respond("User updated successfully", UserOut.model_validate(user))


@router.put("/change-image", summary="Change the profile image URL")
async def change_image(
    request: Request,
    current: CurrentUser,
    service: Service,
    payload: Dict[str, Any] = Body(...),
):
    user = await service.change_image_url(current.id, payload)
    _sign_in(request, user)
    return respond("Image updated successfully", UserOut.model_validate(user))


@router.post("/email", summary="Find a user by email")
async def get_user_by_email(current: CurrentUser, service: Service, payload: Dict[str, Any] = Body(...)):
    user = await service.get_user_by_email(payload)
    return respond("User fetched successfully", UserOut.model_validate(user))


# ---------------------------------------------------------------------
# Profile & preferences
# ---------------------------------------------------------------------

@router.get("/profile", summary="Get the session user's role profile")
async def get_profile(current: CurrentUser, service: Service):
    profile = await service.get_profile(current.id, current.role)
    out = service.profile_store(current.role).profile_out
    return respond("Profile fetched successfully", out.model_validate(profile))


@router.put("/profile/update", summary="Update the session user's role profile")
async def update_profile(current: CurrentUser, service: Service, payload: Dict[str, Any] = Body(...)):
    profile = await service.update_profile(current.id, current.role, payload)
    out = service.profile_store(current.role).profile_out
    return respond("Profile updated successfully", out.model_validate(profile))


@router.get("/preferences", summary="Get the session user's preferences")
async def get_preferences(current: CurrentUser, service: Service):
    preferences = await service.get_preferences(current.id, current.role)
    return respond("Preferences fetched successfully", PreferencesOut.model_validate(preferences))


@router.put("/preferences/update", summary="Update the session user's preferences")
async def update_preferences(current: CurrentUser, service: Service, payload: Dict[str, Any] = Body(...)):
    preferences = await service.update_preferences(current.id, current.role, payload)
    return respond("Preferences updated successfully", PreferencesOut.model_validate(preferences))


# Declared last so the fixed paths above are matched first
@router.get("/{user_id}", summary="Get a user by id")
async def get_user(user_id: str, current: CurrentUser, service: Service):
    user = await service.get_user_by_id(user_id)
    return respond("User fetched successfully", UserOut.model_validate(user))
