"""
Pydantic models for generation responses and reasoning settings.

GenerationResponse is the contract between the generation client, the
reasoning orchestrator and the HTTP layer. Reasoning annotations on
GenerationData stay None for direct (un-enhanced) generations.
"""
import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


def _env_flag(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class GenerationData(BaseModel):
    """Completion payload plus optional reasoning annotations."""

    content: str = ""
    finish_reason: Optional[str] = None
    usage: Dict[str, Any] = Field(default_factory=dict)

    reasoning_type: Optional[str] = Field(
        None, description="chain-of-thought | self-consistency"
    )
    enhanced: Optional[bool] = None
    samples_count: Optional[int] = Field(
        None, description="Number of successful self-consistency samples"
    )
    selected_sample: Optional[int] = Field(
        None, description="Request-order index of the chosen sample"
    )


class GenerationResponse(BaseModel):
    """Outcome of one generation call (or one orchestrated reasoning run)."""

    success: bool
    data: Optional[GenerationData] = None
    error: Optional[str] = None
    provider: Optional[str] = None
    model: Optional[str] = None

    @classmethod
    def ok(
        cls,
        content: str,
        model: Optional[str] = None,
        provider: Optional[str] = None,
        **data: Any,
    ) -> "GenerationResponse":
        return cls(
            success=True,
            data=GenerationData(content=content, **data),
            provider=provider,
            model=model,
        )

    @classmethod
    def failure(
        cls,
        error: str,
        model: Optional[str] = None,
        provider: Optional[str] = None,
    ) -> "GenerationResponse":
        return cls(success=False, error=error, provider=provider, model=model)

    @property
    def content(self) -> str:
        return self.data.content if self.data else ""


class ReasoningConfig(BaseModel):
    """
    Reasoning strategy switches.

    Environment configuration:
    - ENABLE_CHAIN_OF_THOUGHT: default true
    - ENABLE_SELF_CONSISTENCY: default true
    - SELF_CONSISTENCY_SAMPLES: default 3
    - SHOW_REASONING_PROCESS: default false (production mode hides reasoning)
    """

    enable_chain_of_thought: bool = True
    enable_self_consistency: bool = True
    self_consistency_samples: int = Field(3, ge=1)
    show_reasoning_process: bool = False
    base_temperature: float = 0.7
    temperature_step: float = 0.1
    max_tokens: int = Field(2000, gt=0)

    @classmethod
    def from_env(cls) -> "ReasoningConfig":
        samples = int(os.getenv("SELF_CONSISTENCY_SAMPLES", "3") or "3")
        return cls(
            enable_chain_of_thought=_env_flag("ENABLE_CHAIN_OF_THOUGHT", True),
            enable_self_consistency=_env_flag("ENABLE_SELF_CONSISTENCY", True),
            self_consistency_samples=samples,
            show_reasoning_process=_env_flag("SHOW_REASONING_PROCESS", False),
        )
