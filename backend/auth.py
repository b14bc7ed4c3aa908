"""Email/password login with HS256 JWT access tokens."""

import logging
import time

import jwt
from fastapi import APIRouter, Depends, Request
from pydantic import BaseModel

import users
from config import settings
from errors import AuthenticationError, ConflictError, ValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/auth", tags=["auth"])

_ALGORITHM = "HS256"


class RegisterRequest(BaseModel):
    email: str | None = None
    password: str | None = None
    username: str | None = None


class LoginRequest(BaseModel):
    email: str | None = None
    password: str | None = None


def issue_token(user: users.User) -> str:
    now = int(time.time())
    payload = {
        "sub": user.id,
        "email": user.email,
        "iat": now,
        "exp": now + settings.jwt_ttl_seconds,
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=_ALGORITHM)


def _decode_token(token: str) -> dict:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[_ALGORITHM])
    except jwt.ExpiredSignatureError:
        raise AuthenticationError("Token has expired.")
    except jwt.PyJWTError as e:
        logger.warning("JWT validation failed: %s", e)
        raise AuthenticationError("Invalid token.")


def _extract_bearer_token(request: Request) -> str | None:
    """Extract the Bearer token from the Authorization header."""
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth[7:]
    return None


async def get_current_user(request: Request) -> users.User:
    """FastAPI dependency: validate the JWT and return the account it names."""
    token = _extract_bearer_token(request)
    if not token:
        raise AuthenticationError("Not authenticated.")
    payload = _decode_token(token)
    user = users.get_user(payload.get("sub", ""))
    if user is None:
        raise AuthenticationError("Unknown user.")
    return user


@router.post("/register")
async def register(req: RegisterRequest):
    if not req.email or not req.password or not req.username:
        raise ValidationError("Email, password and username are required")
    user = users.create_user(req.email, req.password, req.username)
    if user is None:
        raise ConflictError("Email is already registered")
    logger.info("Registered user %s", user.id)
    return {"token": issue_token(user), "user": user}


@router.post("/login")
async def login(req: LoginRequest):
    if not req.email or not req.password:
        raise ValidationError("Email and password are required")
    user = users.verify_credentials(req.email, req.password)
    if user is None:
        raise AuthenticationError("Invalid email or password")
    return {"token": issue_token(user), "user": user}


@router.get("/me")
async def me(user: users.User = Depends(get_current_user)):
    return {"user": user}
