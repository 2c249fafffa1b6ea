"""Caller identity resolution for API requests."""

from typing import Optional

from fastapi import Header, HTTPException, Request


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=401,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


async def resolve_account(
    request: Request,
    authorization: Optional[str] = Header(default=None),
) -> str:
    """Resolve the bearer API key to a ledger account ID.

    Keys configured in settings take precedence over keys registered in the
    ledger.
    """
    if not authorization:
        raise _unauthorized("Unauthorized")

    scheme, _, token = authorization.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        raise _unauthorized("Unauthorized")

    account_id = request.app.state.settings.api_keys.get(token)
    if account_id is None:
        account_id = await request.app.state.pipeline.ledger.resolve_api_key(token)
    if account_id is None:
        raise _unauthorized("Unauthorized")

    return account_id
