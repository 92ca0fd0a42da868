from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict, Field

from src.clinical_records.errors import AccountLockedError, AuthenticationError
from src.clinical_records.ratelimit import auth_rate_limiter
from src.clinical_records.services.auth.service import LoginResult, auth_service

router = APIRouter(
    prefix="/auth",
    tags=["auth"],
    dependencies=[Depends(auth_rate_limiter)],
)


class LoginRequest(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(min_length=3)
    password: str = Field(min_length=6)


@router.post("/login", response_model=LoginResult)
async def login(payload: LoginRequest, request: Request) -> LoginResult:
    try:
        return auth_service.login(payload.username, payload.password, request=request)
    except AccountLockedError as exc:
        raise HTTPException(status_code=status.HTTP_423_LOCKED, detail=str(exc))
    except AuthenticationError as exc:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(exc))
