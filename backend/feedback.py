"""Short, help-level-aware coding hints for the candidate's current code."""

import logging

from config import Settings
from errors import ConfigurationError, ValidationError
from llm import LLM

logger = logging.getLogger(__name__)

HELP_INSTRUCTIONS = {
    "easy": (
        "Provide detailed, encouraging feedback with specific suggestions and explanations "
        "(2-3 sentences). Be very helpful and guide them step by step."
    ),
    "medium": (
        "Provide balanced feedback in 1-2 sentences - point out issues and give helpful hints "
        "without solving it for them."
    ),
    "hard": (
        "Provide minimal, subtle hints in 1 sentence only. Only point out critical errors or "
        "misconceptions. Let them figure it out mostly on their own."
    ),
}

SENTENCE_LIMITS = {
    "easy": "Keep your response to 2-3 sentences maximum.",
    "medium": "Keep your response to 1-2 sentences maximum and don't give away the solution.",
    "hard": "Keep your response to EXACTLY 1 sentence and only hint at a next step",
}

DEFAULT_HELP_LEVEL = "medium"
FALLBACK_SUGGESTION = "Looking good so far!"


def resolve_help_level(help_level: str | None) -> str:
    return help_level if help_level in HELP_INSTRUCTIONS else DEFAULT_HELP_LEVEL


def render_conversation(conversation: str | list | None) -> str:
    """Flatten a conversation into text; message dicts become ``role: content`` lines."""
    if not conversation:
        return "No previous conversation"
    if isinstance(conversation, str):
        return conversation
    lines = []
    for msg in conversation:
        if isinstance(msg, dict):
            lines.append(f"{msg.get('role', 'user')}: {msg.get('content', '')}")
        else:
            lines.append(str(msg))
    return "\n".join(lines)


def build_feedback_prompt(
    code: str,
    conversation: str | list | None,
    language: str | None,
    help_level: str,
) -> str:
    return f"""You are a helpful coding assistant. The user is working on a coding problem in {language or 'an unknown language'}.

Current code:
```
{code}
```

Recent conversation:
{render_conversation(conversation)}

Help Level Instructions: {HELP_INSTRUCTIONS[help_level]}

Provide a brief, helpful suggestion about potential bugs, improvements, logic errors, or better approaches.

IMPORTANT: {SENTENCE_LIMITS[help_level]}"""


class FeedbackAdvisor:
    def __init__(self, llm: LLM, *, temperature: float = 0.7, max_tokens: int = 500) -> None:
        self.llm = llm
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: Settings) -> "FeedbackAdvisor":
        return cls(
            LLM.from_settings(settings),
            temperature=settings.feedback_temperature,
            max_tokens=settings.feedback_max_tokens,
        )

    async def suggest(
        self,
        code: str | None,
        conversation: str | list | None = None,
        language: str | None = None,
        help_level: str | None = None,
    ) -> str:
        if not code:
            raise ValidationError("Code is required")
        if not self.llm.configured:
            raise ConfigurationError("Groq API key not configured")

        level = resolve_help_level(help_level)
        system = (
            f"You are a concise coding assistant. {HELP_INSTRUCTIONS[level]} "
            "Always stay within the sentence limit specified."
        )
        suggestion = await self.llm.complete(
            [
                {"role": "system", "content": system},
                {"role": "user", "content": build_feedback_prompt(code, conversation, language, level)},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        suggestion = suggestion or FALLBACK_SUGGESTION
        logger.info("AI feedback generated (%s level): %s...", level, suggestion[:50])
        return suggestion
