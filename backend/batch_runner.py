"""Run a solution against a list of stdin/stdout test cases through Judge0."""

import json
import logging

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from errors import UpstreamError
from judge0 import Judge0Client, Submission

logger = logging.getLogger(__name__)

SUBMISSION_FAILED = "Submission failed"


class TestCase(BaseModel):
    """One input/expected-output pair. Non-string values are rendered as JSON text."""

    __test__ = False  # not a pytest class

    model_config = ConfigDict(populate_by_name=True)

    input: str = ""
    expectedOutput: str = Field("", validation_alias=AliasChoices("expectedOutput", "expected_output"))

    @field_validator("input", "expectedOutput", mode="before")
    @classmethod
    def _coerce_text(cls, v: object) -> str:
        if v is None:
            return ""
        if isinstance(v, str):
            return v
        if isinstance(v, float) and v.is_integer():
            return str(int(v))
        if isinstance(v, (bool, list, dict)):
            return json.dumps(v)
        return str(v)


class TestResult(BaseModel):
    __test__ = False

    passed: bool
    input: str
    expectedOutput: str
    actualOutput: str | None = None
    stderr: str | None = None
    error: str | None = None


def outputs_match(actual: str, expected: str) -> bool:
    """Exact, case-sensitive comparison after trimming surrounding whitespace."""
    return actual.strip() == expected.strip()


class BatchTestRunner:
    """Drives Judge0 once per test case, sequentially, waiting on each result."""

    def __init__(self, client: Judge0Client) -> None:
        self.client = client

    async def run_case(self, source_code: str, language_id: int, case: TestCase) -> TestResult:
        submission = Submission(source_code=source_code, language_id=language_id, stdin=case.input)
        try:
            result = await self.client.submit_and_wait(submission)
        except UpstreamError as e:
            logger.warning("Test case submission failed: %s", e)
            return TestResult(
                passed=False,
                input=case.input,
                expectedOutput=case.expectedOutput,
                actualOutput=None,
                error=SUBMISSION_FAILED,
            )

        actual = (result.stdout or "").strip()
        return TestResult(
            passed=outputs_match(actual, case.expectedOutput),
            input=case.input,
            expectedOutput=case.expectedOutput,
            actualOutput=actual,
            stderr=result.stderr or None,
        )

    async def run_all(
        self,
        source_code: str,
        language_id: int,
        test_cases: list[TestCase],
    ) -> list[TestResult]:
        self.client.require_url()
        results: list[TestResult] = []
        for case in test_cases:
            results.append(await self.run_case(source_code, language_id, case))

        passed = sum(1 for r in results if r.passed)
        logger.info("Ran %d test cases: %d passed", len(results), passed)
        return results
