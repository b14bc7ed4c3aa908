"""Tests for question generation and test-case extraction."""

import pytest

from conftest import FakeLLM
from errors import ConfigurationError
from questions import GENERATION_FAILED, QuestionGenerator, extract_test_cases

GENERATED = """**Question Title**: Sum Two Numbers

**Problem**
Read two integers and print their sum.

```json
{
  "testCases": [
    {"input": "3\\n4\\n", "expectedOutput": "7"},
    {"input": "0\\n0\\n", "expectedOutput": 0}
  ]
}
```
"""


def test_extracts_cases_from_fenced_block():
    cases = extract_test_cases(GENERATED)
    assert [(c.input, c.expectedOutput) for c in cases] == [("3\n4\n", "7"), ("0\n0\n", "0")]


def test_bare_list_is_accepted():
    text = 'Here:\n```json\n[{"input": "1", "expectedOutput": "1"}]\n```'
    assert len(extract_test_cases(text)) == 1


def test_first_json_block_wins():
    text = (
        '```json\n{"testCases": [{"input": "a", "expectedOutput": "A"}]}\n```\n'
        '```json\n{"testCases": []}\n```'
    )
    assert [c.input for c in extract_test_cases(text)] == ["a"]


@pytest.mark.parametrize(
    "text",
    [
        "",
        "No test cases here.",
        "```python\nprint('not json')\n```",
        '```json\n{"testCases": [{"input": "1", \n```',
        '```json\n{"testCases": "nope"}\n```',
        '```json\n{"testCases": ["just a string"]}\n```',
        '```json\n"scalar"\n```',
        '```json\n{"other": 1}\n```',
    ],
)
def test_malformed_or_missing_block_yields_empty_list(text):
    assert extract_test_cases(text) == []


@pytest.mark.asyncio
async def test_generate_returns_markdown_and_cases():
    llm = FakeLLM([GENERATED])
    question = await QuestionGenerator(llm).generate("arrays", "easy")

    assert question.question == GENERATED
    assert len(question.testCases) == 2
    prompt = llm.calls[0]["messages"][1]["content"]
    assert "topic: arrays and difficulty: easy" in prompt
    assert llm.calls[0]["temperature"] == 0.8


@pytest.mark.asyncio
async def test_generate_defaults_topic_and_difficulty():
    llm = FakeLLM(["no cases"])
    question = await QuestionGenerator(llm).generate()
    assert "topic: general and difficulty: medium" in llm.calls[0]["messages"][1]["content"]
    assert question.testCases == []


@pytest.mark.asyncio
async def test_generate_placeholder_on_empty_completion():
    question = await QuestionGenerator(FakeLLM([])).generate()
    assert question.question == GENERATION_FAILED


@pytest.mark.asyncio
async def test_generate_requires_key():
    llm = FakeLLM(configured=False)
    with pytest.raises(ConfigurationError):
        await QuestionGenerator(llm).generate()
    assert llm.calls == []
