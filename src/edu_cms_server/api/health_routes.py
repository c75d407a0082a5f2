from fastapi import APIRouter

from ..core.responses import respond

router = APIRouter(tags=["health"])


@router.get("/")
def root():
    return respond("Server is up and running")


@router.get("/health")
def health():
    return respond("ok", {"status": "ok"})
