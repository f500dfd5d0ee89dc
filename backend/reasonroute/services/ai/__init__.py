"""
Generation and reasoning services.

LLMClient talks to an OpenAI-compatible completions API. ReasoningOrchestrator
wraps any generation capability with chain-of-thought and self-consistency
strategies chosen from the route selector's decision.
"""
