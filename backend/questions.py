"""Interview question generation with embedded stdin/stdout test cases."""

import json
import logging
import re

from pydantic import BaseModel, ValidationError as PydanticValidationError

from batch_runner import TestCase
from config import Settings
from errors import ConfigurationError
from llm import LLM

logger = logging.getLogger(__name__)

QUESTION_SYSTEM_PROMPT = "You are a technical interviewer creating coding problems with test cases."

QUESTION_PROMPT = """You are a technical interviewer creating coding problems.
- Generate a problem description for topic: {topic} and difficulty: {difficulty}.
- Include: problem statement, example input/output, and constraints.
- STRICTLY DO NOT provide the solution, hints, or explanation.
- Format as markdown with sections: **Question Title**, **Problem**, **Example**, **Constraints**.

After the problem, provide 3-5 test cases in the following JSON format:
```json
{{
  "testCases": [
    {{"input": "example input", "expectedOutput": "expected output"}},
    {{"input": "edge case input", "expectedOutput": "edge case output"}}
  ]
}}
```"""

GENERATION_FAILED = "Failed to generate question"

_JSON_BLOCK = re.compile(r"```json\s*([\s\S]*?)\s*```")


class Question(BaseModel):
    question: str
    testCases: list[TestCase] = []


def extract_test_cases(markdown: str) -> list[TestCase]:
    """
    Pull the test cases out of the first ```json fenced block in *markdown*.

    Accepts ``{"testCases": [...]}`` or a bare list. Anything missing or
    malformed yields an empty list; this never raises.
    """
    match = _JSON_BLOCK.search(markdown or "")
    if not match:
        return []

    try:
        parsed = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse test cases: %s", e)
        return []

    raw = parsed.get("testCases", []) if isinstance(parsed, dict) else parsed
    if not isinstance(raw, list):
        return []

    try:
        return [TestCase.model_validate(item) for item in raw]
    except PydanticValidationError as e:
        logger.warning("Test cases have an unexpected shape: %s", e)
        return []


class QuestionGenerator:
    def __init__(self, llm: LLM, *, temperature: float = 0.8, max_tokens: int = 1200) -> None:
        self.llm = llm
        self.temperature = temperature
        self.max_tokens = max_tokens

    @classmethod
    def from_settings(cls, settings: Settings) -> "QuestionGenerator":
        return cls(
            LLM.from_settings(settings),
            temperature=settings.question_temperature,
            max_tokens=settings.question_max_tokens,
        )

    async def generate(self, topic: str | None = None, difficulty: str | None = None) -> Question:
        if not self.llm.configured:
            raise ConfigurationError("Groq API key not configured")

        prompt = QUESTION_PROMPT.format(topic=topic or "general", difficulty=difficulty or "medium")
        text = await self.llm.complete(
            [
                {"role": "system", "content": QUESTION_SYSTEM_PROMPT},
                {"role": "user", "content": prompt},
            ],
            temperature=self.temperature,
            max_tokens=self.max_tokens,
        )
        text = text or GENERATION_FAILED
        test_cases = extract_test_cases(text)
        logger.info("Generated question (%s/%s) with %d test cases", topic, difficulty, len(test_cases))
        return Question(question=text, testCases=test_cases)
