from fastapi import APIRouter

from app.api.admin import router as admin_router

router = APIRouter()

router.include_router(admin_router)


@router.get("/", tags=["root"])
def read_root() -> dict[str, str]:
    return {"message": "Welcome to the Relay API"}
