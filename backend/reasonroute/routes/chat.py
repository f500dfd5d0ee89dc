"""
Classification and generation endpoints.

POST /route/classify
POST /chat/generate
"""
import time
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field

from reasonroute.core.logging import get_logger
from reasonroute.services.errors import GenerationError
from reasonroute.services.routing.models import ClassificationResult

logger = get_logger(__name__)

router = APIRouter()


class ContextMessage(BaseModel):
    """One prior conversation turn."""
    role: str
    content: str


class ReferenceItem(BaseModel):
    """Retrieved reference snippet."""
    content: str
    metadata: Dict[str, Any] = Field(default_factory=dict)


class ClassifyRequest(BaseModel):
    message: str = Field(..., description="User message to classify")
    context: List[ContextMessage] = Field(default_factory=list)
    options: Dict[str, Any] = Field(default_factory=dict)


class GenerateRequest(BaseModel):
    message: str = Field(..., min_length=1, description="User message")
    context: List[ContextMessage] = Field(default_factory=list)
    rag_context: List[ReferenceItem] = Field(default_factory=list)


class GenerationMetadata(BaseModel):
    reasoning_type: Optional[str] = None
    enhanced: bool = False
    samples_count: Optional[int] = None
    selected_sample: Optional[int] = None
    finish_reason: Optional[str] = None
    usage: Dict[str, Any] = Field(default_factory=dict)


class GenerateResponse(BaseModel):
    content: str
    model: Optional[str] = None
    provider: Optional[str] = None
    metadata: GenerationMetadata
    latency_ms: int


@router.post("/route/classify", response_model=ClassificationResult)
async def classify(request: Request, body: ClassifyRequest):
    """Classify a message into a route. Never fails on classifier errors."""
    selector = request.app.state.route_selector
    context = [m.model_dump() for m in body.context]
    return await selector.select_route(body.message, context, body.options)


@router.post("/chat/generate", response_model=GenerateResponse)
async def generate(request: Request, body: GenerateRequest):
    """
    Generate an answer with reasoning enhancement.

    Complex requests are answered by self-consistency sampling, others by a
    chain-of-thought prompt. Metadata reports which strategy produced the answer.
    """
    start_time = time.time()
    message = body.message.strip()
    if not message:
        raise HTTPException(status_code=400, detail="Field 'message' must not be blank")

    orchestrator = request.app.state.reasoning_orchestrator
    context = [m.model_dump() for m in body.context]
    rag_context = [item.model_dump() for item in body.rag_context]

    try:
        response = await orchestrator.enhance(message, context, rag_context)
    except GenerationError as e:
        logger.error(
            "chat_generation_failed",
            error=str(e),
            error_type=type(e).__name__,
            attempts=e.attempts,
        )
        raise HTTPException(status_code=502, detail=f"Generation failed: {e}")

    if not response.success or response.data is None:
        logger.warning("chat_generation_unsuccessful", error=response.error)
        raise HTTPException(status_code=502, detail=response.error or "Generation failed")

    data = response.data
    latency_ms = int((time.time() - start_time) * 1000)
    logger.info(
        "chat_generation_completed",
        reasoning_type=data.reasoning_type,
        samples_count=data.samples_count,
        latency_ms=latency_ms,
    )

    return GenerateResponse(
        content=data.content,
        model=response.model,
        provider=response.provider,
        metadata=GenerationMetadata(
            reasoning_type=data.reasoning_type,
            enhanced=bool(data.enhanced),
            samples_count=data.samples_count,
            selected_sample=data.selected_sample,
            finish_reason=data.finish_reason,
            usage=data.usage,
        ),
        latency_ms=latency_ms,
    )
