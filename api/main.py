"""FastAPI server for the quota ledger."""

from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional, Dict, Any

from fastapi import FastAPI, HTTPException, Header, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from quotaledger import (
    AuthContext,
    LedgerError,
    LedgerServices,
    Tier,
    Unauthenticated,
    open_sqlite,
)
from quotaledger.config import get_db_path


ERROR_STATUS: Dict[str, int] = {
    "unauthenticated": 401,
    "invalid_argument": 400,
    "quota_not_configured": 500,
    "quota_exceeded": 429,
    "task_already_completed": 409,
    "share_limit_reached": 429,
    "internal": 500,
}


def _get_api_key() -> Optional[str]:
    return os.getenv("QUOTALEDGER_API_KEY")


def _require_api_key(x_api_key: Optional[str] = Header(default=None)) -> None:
    api_key = _get_api_key()
    if api_key and x_api_key != api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")


def _require_admin_key(x_api_key: Optional[str] = Header(default=None)) -> None:
    api_key = _get_api_key()
    if not api_key:
        raise HTTPException(status_code=403, detail="Admin routes are disabled")
    if x_api_key != api_key:
        raise HTTPException(status_code=401, detail="Invalid API key")


@lru_cache(maxsize=1)
def _services() -> LedgerServices:
    return open_sqlite(get_db_path())


def _caller(
    x_user_id: Optional[str] = Header(default=None),
    x_auth_provider: Optional[str] = Header(default=None),
) -> AuthContext:
    if not x_user_id or not x_user_id.strip():
        raise Unauthenticated("Authentication is required")
    return AuthContext(user_id=x_user_id, provider=x_auth_provider or "anonymous")


app = FastAPI(title="Quota Ledger API", version="1.0.0")


@app.exception_handler(LedgerError)
def ledger_error_handler(request: Request, exc: LedgerError) -> JSONResponse:
    return JSONResponse(
        status_code=ERROR_STATUS.get(exc.code, 500),
        content={"error": exc.to_dict()},
    )


class QuotaRequest(BaseModel):
    requested: float = 1
    request_id: Optional[str] = Field(None, max_length=128)


class TaskRequest(BaseModel):
    task_id: str = Field(..., min_length=1)
    count: Optional[float] = None


class UpgradeRequest(BaseModel):
    tier: Tier


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/quota/consume", dependencies=[Depends(_require_api_key)])
def consume_quota(
    req: QuotaRequest,
    caller: AuthContext = Depends(_caller),
    services: LedgerServices = Depends(_services),
) -> Dict[str, Any]:
    result = services.quota.check_and_consume(
        caller.user_id,
        requested=req.requested,
        auth=caller,
        request_id=req.request_id,
    )
    return result.to_dict()


@app.post("/quota/check", dependencies=[Depends(_require_api_key)])
def check_quota(
    req: QuotaRequest,
    caller: AuthContext = Depends(_caller),
    services: LedgerServices = Depends(_services),
) -> Dict[str, Any]:
    return services.quota.check_only(caller.user_id, requested=req.requested, auth=caller).to_dict()


@app.get("/quota/usage", dependencies=[Depends(_require_api_key)])
def get_usage(
    date: Optional[str] = None,
    caller: AuthContext = Depends(_caller),
    services: LedgerServices = Depends(_services),
) -> Dict[str, Any]:
    return services.quota.get_usage(caller.user_id, day=date).to_dict()


@app.post("/profile/ensure", dependencies=[Depends(_require_api_key)])
def ensure_profile(
    caller: AuthContext = Depends(_caller),
    services: LedgerServices = Depends(_services),
) -> Dict[str, Any]:
    return services.profiles.ensure_profile(caller.user_id, caller).to_dict()


@app.post("/admin/users/{user_id}/upgrade", dependencies=[Depends(_require_admin_key)])
def upgrade_tier(
    user_id: str,
    req: UpgradeRequest,
    services: LedgerServices = Depends(_services),
) -> Dict[str, Any]:
    return services.profiles.upgrade_tier(user_id, req.tier).to_dict()


@app.post("/tasks/complete", dependencies=[Depends(_require_api_key)])
def complete_task(
    req: TaskRequest,
    caller: AuthContext = Depends(_caller),
    services: LedgerServices = Depends(_services),
) -> Dict[str, Any]:
    profile = services.tasks.complete_task(
        caller.user_id,
        req.task_id,
        count=req.count,
        auth=caller,
    )
    return profile.to_dict()
