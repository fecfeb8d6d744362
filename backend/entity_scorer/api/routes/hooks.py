"""Hook endpoints called by the host narrative application."""

from fastapi import APIRouter

from entity_scorer.api.schemas.hooks import HookRequest, HookResponse
from entity_scorer.services.hook_service import run_hook

router = APIRouter(prefix="/api/stories/{story_id}/hooks", tags=["hooks"])


@router.post("/{hook}", response_model=HookResponse)
async def invoke_hook(story_id: str, hook: str, req: HookRequest):
    """Run an input/output hook. Unknown hooks return the text unchanged."""
    result = await run_hook(story_id, hook, req.text)
    return HookResponse(**result.model_dump())
