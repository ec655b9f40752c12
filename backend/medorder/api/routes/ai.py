"""Admin AI insights: forwards a prompt and its data to Groq and returns the text."""
import logging

from fastapi import APIRouter, Depends
from starlette.concurrency import run_in_threadpool

from medorder.ai.groq_client import GroqClient, build_prompt, get_groq_client
from medorder.api.deps import require_admin
from medorder.core.exceptions import ApiError
from medorder.schemas.ai import GenerateRequest, GenerateResponse

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(require_admin)])


@router.post("/generate", response_model=GenerateResponse)
async def generate_insight(
    request: GenerateRequest,
    client: GroqClient = Depends(get_groq_client),
):
    if not request.prompt or request.context is None:
        raise ApiError.bad_request("Missing prompt or context")
    if not client.is_available():
        raise ApiError.unavailable("AI service is not configured")

    text = await run_in_threadpool(client.generate, build_prompt(request.prompt, request.context))
    if text is None:
        logger.error("[AI] Generation failed")
        raise ApiError.upstream_failed("Failed to generate content")
    return {"text": text}
