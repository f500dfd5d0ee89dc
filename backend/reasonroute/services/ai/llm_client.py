"""
Async generation client over an OpenAI-compatible /chat/completions API.

Uses httpx directly (no provider SDKs). Two downstream models are
configured: a general chat model and a work-assistant model for task and
analysis requests. Which one serves a call is decided per message by the
route selector.

Failures never raise: HTTP errors, timeouts and malformed payloads come back
as GenerationResponse(success=False, error=...).

Environment configuration:
- LLM_API_BASE: Base URL for API (default: https://api.openai.com/v1)
- LLM_API_KEY: API key / bearer token
- LLM_CHAT_MODEL: Model for general chat (default: gpt-3.5-turbo)
- LLM_WORK_ASSISTANT_MODEL: Model for work/analysis requests (default: LLM_CHAT_MODEL)
- LLM_TIMEOUT_SECONDS: Request timeout in seconds (default: 30.0)
- LLM_WORK_ASSISTANT_TIMEOUT_SECONDS: Work-assistant timeout (default: 60.0)
"""
import os
import time
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Sequence

import httpx

from reasonroute.core.logging import get_logger
from reasonroute.core.metrics import record_llm_error, record_llm_request
from reasonroute.services.ai.schema import GenerationResponse

if TYPE_CHECKING:
    from reasonroute.services.routing.selector import RouteSelector

logger = get_logger(__name__)

ENDPOINT_CHAT = "chat"
ENDPOINT_WORK_ASSISTANT = "work_assistant"

# Routes served by the work-assistant model
WORK_ASSISTANT_ROUTES = frozenset({"work_assistant", "complex_reasoning"})

# Used only when the route selector itself fails
FALLBACK_WORK_KEYWORDS = ["work", "task", "project", "plan", "schedule", "meeting", "report", "analy"]

DEFAULT_MODEL_PARAMS: Dict[str, Any] = {
    "temperature": 0.7,
    "max_tokens": 2000,
    "top_p": 1.0,
    "frequency_penalty": 0,
    "presence_penalty": 0,
}

REFERENCE_TEMPLATE_PREFIX = "Reference template:"


class LLMClient:
    """Async HTTP client implementing the generation capability."""

    provider = "openai-compatible"

    def __init__(
        self,
        api_base: str,
        api_key: Optional[str],
        chat_model: str,
        work_assistant_model: Optional[str] = None,
        timeout_seconds: float = 30.0,
        work_assistant_timeout_seconds: float = 60.0,
        route_selector: Optional["RouteSelector"] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_base = api_base.rstrip("/")
        self.api_key = api_key
        self.models = {
            ENDPOINT_CHAT: chat_model,
            ENDPOINT_WORK_ASSISTANT: work_assistant_model or chat_model,
        }
        self.timeouts = {
            ENDPOINT_CHAT: timeout_seconds,
            ENDPOINT_WORK_ASSISTANT: work_assistant_timeout_seconds,
        }
        self.route_selector = route_selector
        self._transport = transport

    @classmethod
    def from_env(cls, route_selector: Optional["RouteSelector"] = None) -> "LLMClient":
        chat_model = os.getenv("LLM_CHAT_MODEL", "gpt-3.5-turbo")
        return cls(
            api_base=os.getenv("LLM_API_BASE", "https://api.openai.com/v1"),
            api_key=os.getenv("LLM_API_KEY"),
            chat_model=chat_model,
            work_assistant_model=os.getenv("LLM_WORK_ASSISTANT_MODEL") or chat_model,
            timeout_seconds=float(os.getenv("LLM_TIMEOUT_SECONDS", "30.0") or "30.0"),
            work_assistant_timeout_seconds=float(
                os.getenv("LLM_WORK_ASSISTANT_TIMEOUT_SECONDS", "60.0") or "60.0"
            ),
            route_selector=route_selector,
        )

    # ------------------------------------------------------------------
    # Endpoint selection
    # ------------------------------------------------------------------

    @staticmethod
    def endpoint_for_route(route: str) -> str:
        return ENDPOINT_WORK_ASSISTANT if route in WORK_ASSISTANT_ROUTES else ENDPOINT_CHAT

    def route_endpoint(self, route: str) -> str:
        """Model identifier serving the given route."""
        return self.models[self.endpoint_for_route(route)]

    async def _select_endpoint(self, message: str, options: Dict[str, Any]) -> str:
        endpoint_type = options.get("endpoint_type")
        if endpoint_type:
            return ENDPOINT_WORK_ASSISTANT if endpoint_type == ENDPOINT_WORK_ASSISTANT else ENDPOINT_CHAT

        try:
            if self.route_selector is None:
                raise RuntimeError("No route selector configured")
            result = await self.route_selector.select_route(
                message, [], {"default_route": ENDPOINT_CHAT}
            )
            return self.endpoint_for_route(result.selected_route)
        except Exception as exc:
            logger.warning(
                "llm_endpoint_routing_failed",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            lowered = message.lower()
            if any(keyword in lowered for keyword in FALLBACK_WORK_KEYWORDS):
                return ENDPOINT_WORK_ASSISTANT
            return ENDPOINT_CHAT

    # ------------------------------------------------------------------
    # Request building
    # ------------------------------------------------------------------

    @staticmethod
    def build_messages(
        message: str,
        context: Optional[Sequence[Dict[str, Any]]] = None,
        rag_context: Optional[Sequence[Dict[str, Any]]] = None,
    ) -> List[Dict[str, str]]:
        """
        OpenAI-style message list: prior turns, then the user message.

        Context entries without a role or content are skipped. Reference
        templates are prepended to the user message.
        """
        messages = [
            {"role": item["role"], "content": item["content"]}
            for item in (context or [])
            if item.get("role") and item.get("content")
        ]

        user_message = message
        if rag_context:
            templates = "\n\n".join(
                f"{REFERENCE_TEMPLATE_PREFIX} {item.get('content', '')}" for item in rag_context
            )
            user_message = f"{templates}\n\nUser question: {message}"

        messages.append({"role": "user", "content": user_message})
        return messages

    async def _post(self, path: str, json_payload: Dict[str, Any], timeout: float) -> httpx.Response:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        url = f"{self.api_base}{path}"
        async with httpx.AsyncClient(timeout=timeout, transport=self._transport) as client:
            return await client.post(url, headers=headers, json=json_payload)

    # ------------------------------------------------------------------
    # Generation
    # ------------------------------------------------------------------

    async def generate(
        self,
        message: str,
        context: Optional[Sequence[Dict[str, Any]]] = None,
        rag_context: Optional[Sequence[Dict[str, Any]]] = None,
        options: Optional[Dict[str, Any]] = None,
    ) -> GenerationResponse:
        """
        Generate a completion for a user message.

        Args:
            message: User message (or a fully built reasoning prompt)
            context: Prior conversation turns
            rag_context: Reference templates to prepend
            options: "endpoint_type" forces chat/work_assistant;
                "model_params" overrides sampling parameters

        Returns:
            GenerationResponse (success=False on any failure)
        """
        options = options or {}
        endpoint = await self._select_endpoint(message, options)
        model = self.models[endpoint]

        payload: Dict[str, Any] = {
            "model": model,
            "messages": self.build_messages(message, context, rag_context),
            **DEFAULT_MODEL_PARAMS,
            **(options.get("model_params") or {}),
        }

        start = time.time()
        success = False
        try:
            response = await self._post("/chat/completions", payload, self.timeouts[endpoint])
            response.raise_for_status()
            result = self._parse_response(response.json(), model)
            success = result.success
            return result
        except httpx.TimeoutException as exc:
            record_llm_error("timeout")
            logger.warning("llm_timeout", model=model, error=str(exc), error_type=type(exc).__name__)
            return GenerationResponse.failure(f"Request timed out: {exc}", model=model, provider=self.provider)
        except httpx.HTTPStatusError as exc:
            record_llm_error("http_status")
            logger.warning(
                "llm_http_status_error",
                model=model,
                status_code=exc.response.status_code,
                error=str(exc),
            )
            return GenerationResponse.failure(
                f"API error {exc.response.status_code}: {exc.response.text[:200]}",
                model=model,
                provider=self.provider,
            )
        except httpx.HTTPError as exc:
            record_llm_error("http_error")
            logger.warning("llm_http_error", model=model, error=str(exc), error_type=type(exc).__name__)
            return GenerationResponse.failure(f"Network error: {exc}", model=model, provider=self.provider)
        except ValueError as exc:
            record_llm_error("invalid_response")
            logger.warning("llm_invalid_response", model=model, error=str(exc))
            return GenerationResponse.failure(f"Invalid response body: {exc}", model=model, provider=self.provider)
        finally:
            # Recorded for failed requests too
            record_llm_request(model, success, time.time() - start)

    def _parse_response(self, data: Any, model: str) -> GenerationResponse:
        choices = (data.get("choices") if isinstance(data, dict) else None) or []
        if not choices:
            record_llm_error("invalid_response")
            logger.warning("llm_response_without_choices", model=model)
            return GenerationResponse.failure(
                "Response processing error: no valid choices found",
                model=model,
                provider=self.provider,
            )

        choice = choices[0]
        content = (choice.get("message") or {}).get("content") or choice.get("text") or ""
        return GenerationResponse.ok(
            content=content,
            finish_reason=choice.get("finish_reason"),
            usage=data.get("usage") or {},
            model=data.get("model") or model,
            provider=self.provider,
        )
