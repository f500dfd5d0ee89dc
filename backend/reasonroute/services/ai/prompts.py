"""
Prompt templates for reasoning strategies.

Chain-of-thought prompts embed the retrieved reference snippets as a
numbered list followed by either a hidden-reasoning instruction (production)
or an explicit five-step analysis instruction (show_reasoning_process).
"""
from typing import Any, Dict, List, Optional, Sequence

REFERENCE_HEADER = "Reference information:"

PRODUCTION_INSTRUCTIONS = (
    "Think through this question step by step, but reply with only a clear, "
    "concise and practical final answer.\n"
    "Requirements:\n"
    "- Base the answer on logical reasoning without showing the reasoning steps\n"
    "- Keep the answer accurate, useful and easy to understand\n"
    "- When suggestions are needed, give concrete and actionable options\n"
    "- Stay professional and friendly\n"
)

VERBOSE_STEPS: List[str] = [
    "First identify the core points of the question",
    "Analyze the relevant background and constraints",
    "Reason step by step towards possible solutions",
    "Weigh the pros and cons of each option",
    "Give the final recommendation and conclusion",
]

# Phrasing prefixes cycled across self-consistency samples
SELF_CONSISTENCY_VARIATIONS: List[str] = [
    "Think about this question from a different angle:",
    "Let's analyze this in another way:",
    "Consider other possible paths to a solution:",
]


def format_reference_block(rag_context: Optional[Sequence[Dict[str, Any]]]) -> str:
    """Numbered reference snippets, or an empty string when there are none."""
    if not rag_context:
        return ""
    lines = [REFERENCE_HEADER]
    for i, item in enumerate(rag_context, start=1):
        lines.append(f"{i}. {item.get('content', '')}")
    return "\n".join(lines) + "\n\n"


def build_chain_of_thought_prompt(
    message: str,
    rag_context: Optional[Sequence[Dict[str, Any]]] = None,
    show_reasoning_process: bool = False,
) -> str:
    prompt = format_reference_block(rag_context)

    if show_reasoning_process:
        prompt += "Analyze and answer the question by following these steps:\n"
        for i, step in enumerate(VERBOSE_STEPS, start=1):
            prompt += f"{i}. {step}\n"
        prompt += "\n"
        prompt += f"User question: {message}\n\n"
        prompt += "Work through the steps above in detail:"
    else:
        prompt += PRODUCTION_INSTRUCTIONS + "\n"
        prompt += f"User question: {message}\n\n"
        prompt += "Provide the final answer:"

    return prompt


def build_self_consistency_prompt(base_prompt: str, sample_index: int) -> str:
    """Prefix the base prompt with the phrasing variation for this sample."""
    variation = SELF_CONSISTENCY_VARIATIONS[sample_index % len(SELF_CONSISTENCY_VARIATIONS)]
    return f"{variation}\n\n{base_prompt}"
