from __future__ import annotations

from fastapi import APIRouter

from interviewiq.api.deps import get_available_models
from interviewiq.models.schemas import ModelInfo, ModelsResponse

router = APIRouter(prefix="/api/models", tags=["models"])


@router.get("", response_model=ModelsResponse)
async def list_models():
    """List question-generation models in fallback order."""
    models = get_available_models()
    return ModelsResponse(models=[ModelInfo(**m) for m in models])
