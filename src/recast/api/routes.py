"""API routes for Recast."""

import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Request
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, ValidationError

from ..errors import InvalidRequestError, ProviderError
from ..pipeline import RewriteRequest, analyze, plan_directives
from ..pipeline.orchestrator import RewritePipeline
from .auth import resolve_account

logger = logging.getLogger(__name__)

router = APIRouter()


def get_pipeline(request: Request) -> RewritePipeline:
    """Get the pipeline built at application start."""
    return request.app.state.pipeline


class AnalyzeRequest(BaseModel):
    """Request model for the analyze endpoint."""

    text: str


def _validation_message(error: ValidationError) -> str:
    """First human-readable message of a pydantic validation error."""
    first = error.errors()[0]
    location = ".".join(str(part) for part in first.get("loc", ()))
    message = first.get("msg", "Invalid request")
    return f"{location}: {message}" if location else message


def _user_facing_provider_error(error: ProviderError) -> str:
    """Map provider errors to messages safe to show the caller."""
    message = str(error)
    if "credentials not configured" in message:
        return "AI service configuration error. Please contact support."
    if "API error" in message:
        return "AI service temporarily unavailable. Please try again."
    if "connection" in message.lower() or "stream" in message.lower():
        return "Connection error. Please check your internet and try again."
    return "Rewrite failed"


# Rewrite endpoints


@router.post("/rewrite")
async def rewrite(
    request: Request,
    body: dict = Body(...),
    account_id: str = Depends(resolve_account),
    pipeline: RewritePipeline = Depends(get_pipeline),
):
    """Rewrite text and stream the result as plain text."""
    try:
        rewrite_request = RewriteRequest.model_validate(body)
        pipeline.validate(rewrite_request)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=_validation_message(e))
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))

    # Pre-flight credit check; the actual debit happens after the stream
    balance = await pipeline.ledger.get_balance(account_id)
    if balance is None:
        raise HTTPException(status_code=401, detail="Account not found")
    if balance < request.app.state.settings.min_credits_to_start:
        raise HTTPException(status_code=402, detail="Insufficient credits")

    try:
        stream = await pipeline.start(account_id, rewrite_request)
    except InvalidRequestError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except ProviderError as e:
        logger.error(f"Rewrite failed before first chunk: {e}")
        raise HTTPException(status_code=500, detail=_user_facing_provider_error(e))

    return StreamingResponse(
        stream,
        media_type="text/plain",
        headers={"X-Model-Identifier": stream.model_identifier},
    )


@router.post("/analyze")
async def analyze_text(
    request: AnalyzeRequest,
    account_id: str = Depends(resolve_account),
):
    """Run diagnostics only, without a model call or billing."""
    diagnostics = analyze(request.text)
    return {
        "diagnostics": diagnostics.to_dict(),
        "directives": {d.dimension: d.tier.value for d in plan_directives(diagnostics)},
    }


# Account endpoints


@router.get("/credits")
async def get_credits(
    account_id: str = Depends(resolve_account),
    pipeline: RewritePipeline = Depends(get_pipeline),
):
    """Get the caller's credit balance."""
    balance = await pipeline.ledger.get_balance(account_id)
    if balance is None:
        raise HTTPException(status_code=404, detail="Account not found")
    return {"account_id": account_id, "credits": balance}


@router.get("/history")
async def get_history(
    limit: int = 50,
    account_id: str = Depends(resolve_account),
    pipeline: RewritePipeline = Depends(get_pipeline),
):
    """List the caller's usage log, newest first."""
    limit = max(1, min(limit, 200))
    entries = await pipeline.ledger.get_usage_logs(account_id, limit=limit)
    return {
        "entries": [entry.model_dump(mode="json") for entry in entries],
        "count": len(entries),
    }


# Health check


@router.get("/health")
async def health_check(request: Request):
    """Health check endpoint with diagnostics."""
    settings = request.app.state.settings

    # Gather non-secret diagnostics
    config = {
        "low_cost_model": settings.low_cost_model,
        "high_reasoning_model": settings.high_reasoning_model,
        "anthropic_key_present": bool(settings.anthropic_api_key),
        "cloudflare_configured": bool(
            settings.cloudflare_api_token and settings.cloudflare_account_id
        ),
        "database_path": str(settings.database_path),
        "call_logging_enabled": settings.enable_call_logging,
    }

    return {
        "status": "ok",
        "service": "recast",
        "config": config,
    }


@router.get("/relay/summary")
async def relay_summary(pipeline: RewritePipeline = Depends(get_pipeline)):
    """Summary of relay calls made by this process."""
    call_logger = pipeline.relay.call_logger
    if call_logger is None:
        return {"status": "ok", "total_calls": 0}
    return {
        "status": "ok",
        **call_logger.get_session_summary(),
        "pending_billing": pipeline.finalizer.pending_count,
    }
