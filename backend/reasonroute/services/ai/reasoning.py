"""
Reasoning orchestration (chain-of-thought and self-consistency).

Turns a routing decision into a generation strategy:

- SELF_CONSISTENCY for complex requests: N prompt variations sampled
  concurrently at increasing temperatures; the answer of median length wins.
- CHAIN_OF_THOUGHT otherwise: a single structured-reasoning prompt.
- DIRECT when both strategies are disabled.

Any failure inside a strategy degrades to one plain generation with the
original inputs. GenerationError reaches the caller only when that
fallback fails as well.
"""
import asyncio
import re
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Protocol, Sequence

from reasonroute.core.logging import get_logger
from reasonroute.core.metrics import (
    record_reasoning_fallback,
    record_reasoning_strategy,
    record_self_consistency,
)
from reasonroute.services.ai.prompts import (
    build_chain_of_thought_prompt,
    build_self_consistency_prompt,
)
from reasonroute.services.ai.schema import GenerationResponse, ReasoningConfig
from reasonroute.services.errors import GenerationError
from reasonroute.services.routing.models import ClassificationResult
from reasonroute.services.routing.selector import RouteSelector

logger = get_logger(__name__)

REASONING_SUMMARY_CHARS = 200

# Analytical cues that mark a request as complex, matched as whole words
COMPLEXITY_INDICATORS = [
    "analyze", "analyse", "analysis", "compare", "comparison", "evaluate", "assess",
    "decide", "decision", "choose", "choice", "judge",
    "plan", "strategy", "approach", "solution", "recommend", "suggest", "advice",
    "how", "why", "when should", "which one", "which is better",
    "pros and cons", "trade-off", "advantages", "disadvantages",
    "risk", "risks", "opportunity", "opportunities", "challenge", "challenges",
]
COMPLEXITY_PATTERN = re.compile(
    r"\b(?:" + "|".join(re.escape(indicator) for indicator in COMPLEXITY_INDICATORS) + r")\b"
)
LONG_QUESTION_CHARS = 50
QUESTION_MARKS = ("?", "？")


class Generator(Protocol):
    async def generate(
        self,
        message: str,
        context: Optional[Sequence[Dict[str, Any]]] = None,
        rag_context: Optional[Sequence[Dict[str, Any]]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> GenerationResponse:
        ...


class StrategyType(str, Enum):
    DIRECT = "direct"
    CHAIN_OF_THOUGHT = "chain-of-thought"
    SELF_CONSISTENCY = "self-consistency"


@dataclass
class ReasoningSample:
    """One successful self-consistency sample."""

    index: int
    content: str
    reasoning: str


class ReasoningOrchestrator:
    """
    Chooses and runs a reasoning strategy for each request.

    Args:
        route_selector: Classifier deciding whether a request is complex
        config: Strategy switches (defaults to ReasoningConfig.from_env())
        generator: Default generation capability; enhance() may override it
    """

    def __init__(
        self,
        route_selector: RouteSelector,
        config: Optional[ReasoningConfig] = None,
        generator: Optional[Generator] = None,
    ):
        self.route_selector = route_selector
        self.config = config or ReasoningConfig.from_env()
        self.generator = generator

        logger.info(
            "reasoning_orchestrator_initialized",
            enable_chain_of_thought=self.config.enable_chain_of_thought,
            enable_self_consistency=self.config.enable_self_consistency,
            self_consistency_samples=self.config.self_consistency_samples,
            show_reasoning_process=self.config.show_reasoning_process,
        )

    async def enhance(
        self,
        message: str,
        context: Optional[Sequence[Dict[str, Any]]] = None,
        rag_context: Optional[Sequence[Dict[str, Any]]] = None,
        generator: Optional[Generator] = None,
    ) -> GenerationResponse:
        """
        Classify the request, run the matching strategy and annotate the result.

        Raises:
            GenerationError: when the strategy and the direct fallback both fail.
        """
        generator = generator or self.generator
        if generator is None:
            raise GenerationError("No generation capability configured")
        context = list(context or [])
        rag_context = list(rag_context or [])

        try:
            classification = await self.route_selector.select_route(message, context)
            strategy = self.choose_strategy(message, classification)
            record_reasoning_strategy(strategy.value)
            logger.info(
                "reasoning_strategy_selected",
                strategy=strategy.value,
                route=classification.selected_route,
                confidence=classification.confidence,
                message=message[:100],
            )

            if strategy is StrategyType.SELF_CONSISTENCY:
                return await self.apply_self_consistency(message, context, rag_context, generator)
            if strategy is StrategyType.CHAIN_OF_THOUGHT:
                return await self.apply_chain_of_thought(message, context, rag_context, generator)
            return await generator.generate(message, context, rag_context)

        except Exception as exc:
            logger.error(
                "reasoning_enhancement_failed",
                message=message[:100],
                error=str(exc),
                error_type=type(exc).__name__,
            )
            record_reasoning_fallback()
            return await self._direct_fallback(message, context, rag_context, generator)

    async def _direct_fallback(
        self,
        message: str,
        context: List[Dict[str, Any]],
        rag_context: List[Dict[str, Any]],
        generator: Generator,
    ) -> GenerationResponse:
        try:
            response = await generator.generate(message, context, rag_context)
        except Exception as exc:
            raise GenerationError(f"Fallback generation failed: {exc}") from exc

        if not response.success:
            raise GenerationError(f"Fallback generation failed: {response.error}")
        return response

    def choose_strategy(self, message: str, classification: ClassificationResult) -> StrategyType:
        if classification.selected_route == self.route_selector.complex_route:
            needs_complex = True
        else:
            needs_complex = self.should_use_self_consistency(message)

        if needs_complex and self.config.enable_self_consistency:
            return StrategyType.SELF_CONSISTENCY
        if self.config.enable_chain_of_thought:
            return StrategyType.CHAIN_OF_THOUGHT
        return StrategyType.DIRECT

    def should_use_self_consistency(self, message: str) -> bool:
        """Heuristic: analytical wording, or a long message asking several questions."""
        lowered = message.lower()
        has_indicators = COMPLEXITY_PATTERN.search(lowered) is not None
        is_long = len(message) > LONG_QUESTION_CHARS
        question_count = sum(message.count(mark) for mark in QUESTION_MARKS)
        needs_complex = has_indicators or (is_long and question_count > 1)

        logger.debug(
            "complexity_analysis",
            has_indicators=has_indicators,
            is_long=is_long,
            question_count=question_count,
            needs_complex=needs_complex,
        )
        return needs_complex

    async def apply_chain_of_thought(
        self,
        message: str,
        context: Sequence[Dict[str, Any]],
        rag_context: Sequence[Dict[str, Any]],
        generator: Generator,
    ) -> GenerationResponse:
        prompt = build_chain_of_thought_prompt(
            message, rag_context, self.config.show_reasoning_process
        )
        # Reference snippets are already part of the prompt
        response = await generator.generate(prompt, context, [])

        if response.success and response.data:
            return _annotate(response, reasoning_type=StrategyType.CHAIN_OF_THOUGHT.value, enhanced=True)
        return response

    async def apply_self_consistency(
        self,
        message: str,
        context: Sequence[Dict[str, Any]],
        rag_context: Sequence[Dict[str, Any]],
        generator: Generator,
    ) -> GenerationResponse:
        """
        Sample N answers concurrently and keep the one of median length.

        Raises:
            GenerationError: when no sample succeeds.
        """
        base_prompt = build_chain_of_thought_prompt(
            message, rag_context, self.config.show_reasoning_process
        )
        sample_count = self.config.self_consistency_samples
        start = time.perf_counter()

        tasks = [
            asyncio.create_task(
                generator.generate(
                    build_self_consistency_prompt(base_prompt, i),
                    context,
                    [],
                    {"model_params": self._sample_params(i)},
                )
            )
            for i in range(sample_count)
        ]
        responses = await asyncio.gather(*tasks, return_exceptions=True)

        samples: List[ReasoningSample] = []
        for i, response in enumerate(responses):
            if isinstance(response, BaseException):
                logger.warning(
                    "self_consistency_sample_failed",
                    sample=i,
                    error=str(response),
                    error_type=type(response).__name__,
                )
                continue
            if response.success and response.data and response.data.content:
                samples.append(
                    ReasoningSample(
                        index=i,
                        content=response.data.content,
                        reasoning=self.extract_reasoning(response.data.content),
                    )
                )

        failed = sample_count - len(samples)
        record_self_consistency(time.perf_counter() - start, failed)

        if not samples:
            raise GenerationError("All self-consistency samples failed", attempts=sample_count)

        best = self.select_best_response(samples)
        final = _annotate(
            responses[best.index],
            reasoning_type=StrategyType.SELF_CONSISTENCY.value,
            enhanced=True,
            samples_count=len(samples),
            selected_sample=best.index,
        )

        logger.info(
            "self_consistency_completed",
            samples_generated=sample_count,
            samples_successful=len(samples),
            selected_index=best.index,
        )
        return final

    def _sample_params(self, index: int) -> Dict[str, Any]:
        return {
            "temperature": round(self.config.base_temperature + index * self.config.temperature_step, 2),
            "max_tokens": self.config.max_tokens,
        }

    @staticmethod
    def extract_reasoning(content: str) -> str:
        return content[:REASONING_SUMMARY_CHARS].strip()

    @staticmethod
    def select_best_response(samples: Sequence[ReasoningSample]) -> ReasoningSample:
        """
        Pick the sample of median content length.

        Stable sort by length, then index len // 2 (the upper middle for an
        even count). The input sequence is left untouched.
        """
        if len(samples) == 1:
            return samples[0]

        ordered = sorted(samples, key=lambda sample: len(sample.content))
        selected = ordered[len(ordered) // 2]

        logger.debug(
            "self_consistency_selection",
            total_samples=len(ordered),
            selected_index=selected.index,
            selected_length=len(selected.content),
        )
        return selected

    def reasoning_config(self) -> Dict[str, Any]:
        return {
            "enable_chain_of_thought": self.config.enable_chain_of_thought,
            "enable_self_consistency": self.config.enable_self_consistency,
            "self_consistency_samples": self.config.self_consistency_samples,
            "show_reasoning_process": self.config.show_reasoning_process,
        }


def _annotate(response: GenerationResponse, **annotations: Any) -> GenerationResponse:
    data = response.data.model_copy(update=annotations)
    return response.model_copy(update={"data": data})
