from fastapi import APIRouter

router = APIRouter()


@router.get("/health")
def health() -> dict:
    """Liveness probe; does not touch the database."""
    return {"status": "ok"}
