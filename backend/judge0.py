"""Judge0 execution relay.

Forwards source code to a Judge0 instance (self-hosted or via RapidAPI),
returns the submission token, and fetches/decodes results. All text crosses
the wire base64-encoded.
"""

import base64
import binascii
import logging

import httpx
from pydantic import BaseModel, ConfigDict

from config import Settings
from errors import ConfigurationError, UpstreamError, ValidationError

logger = logging.getLogger(__name__)

# Judge0 status ids: 1 In Queue, 2 Processing, 3 Accepted, 4+ terminal failures
TERMINAL_STATUS_THRESHOLD = 3

ENCODED_FIELDS = ("stdout", "stderr", "compile_output", "message")


def build_headers(api_key: str = "", rapidapi_host: str = "") -> dict[str, str]:
    """Headers for every Judge0 call. RapidAPI wants a key/host pair, self-hosted an auth token."""
    headers = {"Content-Type": "application/json"}
    if api_key:
        if rapidapi_host:
            headers["X-RapidAPI-Key"] = api_key
            headers["X-RapidAPI-Host"] = rapidapi_host
        else:
            headers["X-Auth-Token"] = api_key
    return headers


def encode_text(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_text(value: str) -> str:
    """Decode a base64 field. Judge0 wraps long payloads across lines, so non-alphabet bytes are ignored."""
    try:
        raw = base64.b64decode(value)
    except (binascii.Error, ValueError) as e:
        raise UpstreamError(f"Malformed base64 in Judge0 response: {e}")
    return raw.decode("utf-8", errors="replace")


def decode_result(payload: dict) -> dict:
    """Return a copy of *payload* with the text fields decoded. Empty or missing fields are left alone."""
    decoded = dict(payload)
    for key in ENCODED_FIELDS:
        value = decoded.get(key)
        if isinstance(value, str) and value:
            decoded[key] = decode_text(value)
    return decoded


class ExecutionStatus(BaseModel):
    id: int
    description: str = ""


class ExecutionResult(BaseModel):
    """A decoded Judge0 submission. Unknown upstream fields (time, memory, ...) are kept."""

    model_config = ConfigDict(extra="allow")

    token: str | None = None
    status: ExecutionStatus | None = None
    stdout: str | None = None
    stderr: str | None = None
    compile_output: str | None = None
    message: str | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status is not None and self.status.id >= TERMINAL_STATUS_THRESHOLD


class Submission(BaseModel):
    source_code: str
    language_id: int
    stdin: str | None = None
    command_line_arguments: str | None = None

    def to_payload(self) -> dict:
        payload = {
            "source_code": encode_text(self.source_code),
            "language_id": self.language_id,
            "stdin": encode_text(self.stdin) if self.stdin else "",
        }
        if self.command_line_arguments:
            payload["command_line_arguments"] = self.command_line_arguments
        return payload


class Language(BaseModel):
    model_config = ConfigDict(extra="allow")

    id: int
    name: str
    is_archived: bool = False


class Judge0Client:
    """
    Thin async client for the Judge0 REST API.

    One outbound request per call; nothing is cached between calls. Pass an
    ``httpx`` transport to route requests somewhere other than the network.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        rapidapi_host: str = "",
        *,
        languages_path: str = "/languages/all",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = (base_url or "").rstrip("/")
        self.api_key = api_key
        self.rapidapi_host = rapidapi_host
        self.languages_path = languages_path
        self.timeout = timeout
        self.transport = transport

    @classmethod
    def from_settings(cls, settings: Settings, **kwargs) -> "Judge0Client":
        return cls(
            settings.judge0_url,
            settings.judge0_key,
            settings.judge0_rapidapi_host,
            languages_path=settings.judge0_languages_path,
            timeout=settings.judge0_timeout,
            **kwargs,
        )

    @property
    def headers(self) -> dict[str, str]:
        return build_headers(self.api_key, self.rapidapi_host)

    def require_url(self) -> None:
        if not self.base_url:
            raise ConfigurationError("Judge0 URL not configured")

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        self.require_url()
        url = f"{self.base_url}{path}"
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(method, url, headers=self.headers, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Judge0 %s %s failed: %s", method, path, e)
            raise UpstreamError(f"Judge0 request failed: {e}")
        return response

    @staticmethod
    def _json(response: httpx.Response):
        try:
            return response.json()
        except ValueError:
            raise UpstreamError(
                f"Judge0 returned invalid JSON: {response.text[:200]}",
                upstream_status=response.status_code,
            )

    @classmethod
    def _result(cls, response: httpx.Response) -> ExecutionResult:
        data = cls._json(response)
        if not isinstance(data, dict):
            raise UpstreamError("Judge0 returned an unexpected submission payload")
        return ExecutionResult.model_validate(decode_result(data))

    @staticmethod
    def _validate(submission: Submission) -> None:
        if not submission.source_code or not submission.language_id:
            raise ValidationError("Missing required fields")

    async def submit(self, submission: Submission) -> str:
        """Queue *submission* and return its token without waiting for execution."""
        self._validate(submission)
        self.require_url()
        logger.info(
            "Submitting to Judge0: language_id=%s code_length=%d",
            submission.language_id,
            len(submission.source_code),
        )
        response = await self._request(
            "POST",
            "/submissions?base64_encoded=true&wait=false",
            json=submission.to_payload(),
        )
        if not response.is_success:
            logger.error("Judge0 error %s: %s", response.status_code, response.text)
            raise UpstreamError(
                f"Judge0 responded with {response.status_code}: {response.text}",
                upstream_status=response.status_code,
            )

        data = self._json(response)
        token = data.get("token") if isinstance(data, dict) else None
        if not token:
            logger.error("No token in Judge0 response: %s", data)
            raise UpstreamError("No token returned from Judge0")
        logger.info("Submission accepted, token=%s", token)
        return token

    async def submit_and_wait(self, submission: Submission) -> ExecutionResult:
        """Submit with ``wait=true`` so Judge0 holds the request until the run finishes."""
        self._validate(submission)
        self.require_url()
        response = await self._request(
            "POST",
            "/submissions?base64_encoded=true&wait=true",
            json=submission.to_payload(),
        )
        if not response.is_success:
            raise UpstreamError(
                f"Judge0 responded with {response.status_code}: {response.text}",
                upstream_status=response.status_code,
            )
        return self._result(response)

    async def fetch_result(self, token: str) -> ExecutionResult:
        self.require_url()
        response = await self._request("GET", f"/submissions/{token}?base64_encoded=true")
        if not response.is_success:
            logger.error("Failed to fetch result for %s: %s", token, response.text)
            raise UpstreamError(
                f"Failed to fetch result: {response.status_code}",
                upstream_status=response.status_code,
            )
        return self._result(response)

    async def list_languages(self) -> list[Language]:
        self.require_url()
        response = await self._request("GET", self.languages_path)
        if not response.is_success:
            logger.error("Failed to fetch languages: %s", response.text)
            raise UpstreamError(
                "Failed to fetch languages", upstream_status=response.status_code
            )
        data = self._json(response)
        if not isinstance(data, list):
            raise UpstreamError("Judge0 language catalog is not a list")
        return [Language.model_validate(item) for item in data]
