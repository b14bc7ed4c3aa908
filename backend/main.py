"""InterviewAI backend: FastAPI relay in front of Judge0 and the LLM chat API."""

import logging

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.starlette import StarletteIntegration

from fastapi import Depends, FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from config import limiter, settings

logger = logging.getLogger(__name__)

# Ensure logger outputs to console
if not logger.handlers:
    console_handler = logging.StreamHandler()
    console_handler.setLevel(logging.INFO)
    formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)
    logger.setLevel(logging.INFO)

if settings.sentry_dsn:
    sentry_sdk.init(
        dsn=settings.sentry_dsn,
        integrations=[
            StarletteIntegration(transaction_style="endpoint"),
            FastApiIntegration(transaction_style="endpoint"),
        ],
        traces_sample_rate=0.1,
        environment=settings.environment,
    )

from auth import router as auth_router
from batch_runner import BatchTestRunner, TestCase
from chat import ChatMessage, ChatRelay
from errors import AppError, ValidationError
from feedback import FeedbackAdvisor
from judge0 import Judge0Client, Submission
from llm import LLM
from questions import QuestionGenerator
from sse import STREAM_HEADERS, event_stream, open_stream

# ---------------------------------------------------------------------------
# App setup
# ---------------------------------------------------------------------------

app = FastAPI(title="InterviewAI", version="0.1.0")

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)


@app.exception_handler(AppError)
async def _app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def _request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    return JSONResponse(
        status_code=400,
        content={"error": "Invalid request body", "details": jsonable_encoder(exc.errors())},
    )


@app.on_event("startup")
def _log_configuration() -> None:
    logger.info("Judge0 URL: %s", settings.judge0_url or "NOT CONFIGURED")
    logger.info("Judge0 Key: %s", "configured" if settings.judge0_key else "NOT CONFIGURED")
    logger.info("RapidAPI Host: %s", settings.judge0_rapidapi_host or "Not using RapidAPI")
    logger.info("LLM: %s", f"{settings.chat_model} via {settings.llm_base_url}" if settings.groq_api_key else "NOT CONFIGURED")


# Shared relay instances, built once from settings; swapped out in tests via dependency_overrides
judge0 = Judge0Client.from_settings(settings)
llm = LLM.from_settings(settings)
chat_relay = ChatRelay(llm)
question_generator = QuestionGenerator.from_settings(settings)
feedback_advisor = FeedbackAdvisor.from_settings(settings)


def get_execution_relay() -> Judge0Client:
    return judge0


def get_test_runner(relay: Judge0Client = Depends(get_execution_relay)) -> BatchTestRunner:
    return BatchTestRunner(relay)


def get_chat_relay() -> ChatRelay:
    return chat_relay


def get_question_generator() -> QuestionGenerator:
    return question_generator


def get_feedback_advisor() -> FeedbackAdvisor:
    return feedback_advisor


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------
# Required fields are optional here so that a missing field yields our own
# 400 body rather than FastAPI's validation error.


class SubmissionRequest(BaseModel):
    source_code: str | None = None
    language_id: int | None = None
    stdin: str | None = None
    command_line_arguments: str | None = None


class ChatRequest(BaseModel):
    messages: list[ChatMessage] | None = None
    code: str | None = None
    output: str | None = None
    language: str | None = None


class RunTestsRequest(BaseModel):
    source_code: str | None = None
    language_id: int | None = None
    testCases: list[TestCase] | None = None


class GenerateQuestionRequest(BaseModel):
    topic: str | None = None
    difficulty: str | None = None


class FeedbackRequest(BaseModel):
    code: str | None = None
    conversation: str | list | None = None
    language: str | None = None
    helpLevel: str | None = "medium"


# ---------------------------------------------------------------------------
# Health check
# ---------------------------------------------------------------------------


@app.get("/api/health")
async def health():
    return {"status": "ok", "message": "Server is running"}


# ---------------------------------------------------------------------------
# Judge0 relay
# ---------------------------------------------------------------------------


@app.post("/api/submissions")
async def create_submission(req: SubmissionRequest, relay: Judge0Client = Depends(get_execution_relay)):
    """Queue code on Judge0 and return the token the client polls with."""
    submission = Submission(
        source_code=req.source_code or "",
        language_id=req.language_id or 0,
        stdin=req.stdin,
        command_line_arguments=req.command_line_arguments,
    )
    token = await relay.submit(submission)
    return {"token": token}


@app.get("/api/submissions/{token}")
async def get_submission(token: str, relay: Judge0Client = Depends(get_execution_relay)):
    result = await relay.fetch_result(token)
    return result.model_dump(exclude_unset=True)


@app.get("/api/languages")
async def list_languages(exclude_archived: bool = False, relay: Judge0Client = Depends(get_execution_relay)):
    languages = await relay.list_languages()
    return [
        lang.model_dump(exclude_unset=True)
        for lang in languages
        if not (exclude_archived and lang.is_archived)
    ]


@app.post("/api/run-tests")
@limiter.limit("10/minute")
async def run_tests(
    request: Request,
    req: RunTestsRequest,
    runner: BatchTestRunner = Depends(get_test_runner),
):
    """Run the code once per test case, in order, and compare trimmed stdout."""
    if not req.source_code or not req.language_id or req.testCases is None:
        raise ValidationError("Missing required fields")
    results = await runner.run_all(req.source_code, req.language_id, req.testCases)
    return {"results": [r.model_dump() for r in results]}


# ---------------------------------------------------------------------------
# LLM endpoints
# ---------------------------------------------------------------------------


@app.post("/api/chat")
@limiter.limit("30/minute")
async def chat(request: Request, req: ChatRequest, relay: ChatRelay = Depends(get_chat_relay)):
    if req.messages is None:
        raise ValidationError("Messages array required")
    message = await relay.complete(req.messages, req.code, req.output, req.language)
    return {"message": message}


@app.post("/api/chat/stream")
@limiter.limit("30/minute")
async def chat_stream(request: Request, req: ChatRequest, relay: ChatRelay = Depends(get_chat_relay)):
    """
    Stream the interviewer's reply as Server-Sent Events.
    Failures before the first fragment come back as a normal JSON error.
    """
    if req.messages is None:
        raise ValidationError("Messages array required")
    fragments = await open_stream(
        relay.complete_streaming(req.messages, req.code, req.output, req.language)
    )
    return StreamingResponse(
        event_stream(fragments, is_disconnected=request.is_disconnected),
        media_type="text/event-stream",
        headers=STREAM_HEADERS,
    )


@app.post("/api/generate-question")
@limiter.limit("5/minute")
async def generate_question(
    request: Request,
    req: GenerateQuestionRequest,
    generator: QuestionGenerator = Depends(get_question_generator),
):
    question = await generator.generate(req.topic, req.difficulty)
    return question.model_dump()


@app.post("/api/ai-feedback")
@limiter.limit("10/minute")
async def ai_feedback(
    request: Request,
    req: FeedbackRequest,
    advisor: FeedbackAdvisor = Depends(get_feedback_advisor),
):
    suggestion = await advisor.suggest(req.code, req.conversation, req.language, req.helpLevel)
    return {"suggestion": suggestion}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host=settings.host, port=settings.port)
