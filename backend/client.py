"""Async HTTP client for this backend's API, the counterpart of the browser UI's calls."""

import json
import logging
from collections.abc import AsyncGenerator

import httpx
import pydantic

from batch_runner import TestCase, TestResult
from chat import ChatMessage
from errors import UpstreamError
from judge0 import ExecutionResult
from questions import Question

logger = logging.getLogger(__name__)


class BackendClient:
    def __init__(
        self,
        base_url: str = "http://localhost:3001",
        *,
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout, transport=self.transport)

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        if response.is_success:
            return
        try:
            message = response.json().get("error") or response.text
        except (ValueError, AttributeError):
            message = response.text
        raise UpstreamError(message or f"HTTP {response.status_code}", upstream_status=response.status_code)

    async def _request(self, method: str, path: str, **kwargs):
        async with self._client() as client:
            response = await client.request(method, path, **kwargs)
        self._raise_for_error(response)
        try:
            return response.json()
        except ValueError:
            raise UpstreamError(
                f"Invalid JSON from {path}: {response.text[:200]}",
                upstream_status=response.status_code,
            )

    async def health(self) -> dict:
        return await self._request("GET", "/api/health")

    async def list_languages(self) -> list[dict]:
        return await self._request("GET", "/api/languages")

    async def submit(self, source_code: str, language_id: int, stdin: str = "") -> str:
        data = await self._request(
            "POST",
            "/api/submissions",
            json={"source_code": source_code, "language_id": language_id, "stdin": stdin},
        )
        token = data.get("token")
        if not token:
            raise UpstreamError("No token returned from server")
        return token

    async def fetch_result(self, token: str) -> ExecutionResult:
        data = await self._request("GET", f"/api/submissions/{token}")
        try:
            return ExecutionResult.model_validate(data)
        except pydantic.ValidationError as e:
            raise UpstreamError(f"Unexpected submission payload: {e}")

    async def run_tests(
        self,
        source_code: str,
        language_id: int,
        test_cases: list[TestCase],
    ) -> list[TestResult]:
        data = await self._request(
            "POST",
            "/api/run-tests",
            json={
                "source_code": source_code,
                "language_id": language_id,
                "testCases": [tc.model_dump() for tc in test_cases],
            },
        )
        return [TestResult.model_validate(r) for r in data["results"]]

    async def chat(
        self,
        messages: list[ChatMessage],
        code: str = "",
        output: str = "",
        language: str | None = None,
    ) -> str:
        data = await self._request(
            "POST",
            "/api/chat",
            json={
                "messages": [m.model_dump() for m in messages],
                "code": code,
                "output": output,
                "language": language,
            },
        )
        return data["message"]

    async def chat_stream(
        self,
        messages: list[ChatMessage],
        code: str = "",
        output: str = "",
        language: str | None = None,
    ) -> AsyncGenerator[str, None]:
        """Yield content fragments from ``/api/chat/stream`` until the ``[DONE]`` sentinel."""
        body = {
            "messages": [m.model_dump() for m in messages],
            "code": code,
            "output": output,
            "language": language,
        }
        async with self._client() as client:
            async with client.stream("POST", "/api/chat/stream", json=body) as response:
                if not response.is_success:
                    await response.aread()
                    self._raise_for_error(response)
                async for line in response.aiter_lines():
                    if not line.startswith("data: "):
                        continue
                    data = line[len("data: "):]
                    if data == "[DONE]":
                        return
                    try:
                        content = json.loads(data).get("content", "")
                    except (json.JSONDecodeError, AttributeError):
                        logger.warning("Skipping malformed stream event: %s", data[:100])
                        continue
                    if content:
                        yield content

    async def generate_question(self, topic: str | None = None, difficulty: str | None = None) -> Question:
        data = await self._request(
            "POST",
            "/api/generate-question",
            json={"topic": topic, "difficulty": difficulty},
        )
        return Question.model_validate(data)
