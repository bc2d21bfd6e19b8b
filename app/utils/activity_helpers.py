from sqlalchemy.ext.asyncio import AsyncSession
from app.models.support.activity_models import ActivityLog
from app.constants.activity_templates import ACTIVITY_TEMPLATES
from app.constants.activity_codes import ActivityCode


def render_activity(code: ActivityCode, actor: str, context: dict) -> str:
    template = ACTIVITY_TEMPLATES.get(code)
    if not template:
        raise ValueError(f"No activity template for code {code}")

    try:
        return template.format(actor=actor, **context)
    except KeyError as e:
        raise ValueError(f"Missing activity context key: {e.args[0]} for {code}")


async def emit_activity(
    db: AsyncSession,
    *,
    actor: str,
    code: ActivityCode,
    **context,
) -> ActivityLog:
    """
    Stage an audit row in the caller's transaction. Never commits, so the row
    is only kept when the ledger change it describes is committed.

    ``target_name`` (document number or item name) doubles as the row's
    reference, which is what the activity listing filters on.
    """
    entry = ActivityLog(
        actor=actor,
        code=code.value,
        reference=context.get("target_name"),
        message=render_activity(code, actor, context),
    )
    db.add(entry)
    return entry
