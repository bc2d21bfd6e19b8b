from fastapi import Header, Request

from app.core.config import DEFAULT_ACTOR


async def get_actor(
    request: Request,
    x_actor: str | None = Header(None, max_length=150),
) -> str:
    actor = (x_actor or "").strip() or DEFAULT_ACTOR
    request.state.actor = actor
    return actor
