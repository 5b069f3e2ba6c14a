from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from duty_scheduler.core.exceptions import RuleNotConfigurableError
from duty_scheduler.db.models.rules import ScheduleRule
from duty_scheduler.db.session import get_db_session
from duty_scheduler.repositories import rules as rules_repo
from duty_scheduler.schemas.rules import ScheduleRuleRead, ScheduleRuleUpdate
from duty_scheduler.services.rules import RuleCode, load_rule_catalog

router = APIRouter()


def _map_rule(rule: ScheduleRule) -> ScheduleRuleRead:
    definition = load_rule_catalog().get(RuleCode(rule.rule_code))
    return ScheduleRuleRead(
        id=rule.id,
        rule_code=rule.rule_code,
        name=rule.name,
        description=rule.description,
        kind=definition.kind,
        weight=definition.weight,
        is_enabled=rule.is_enabled,
        is_configurable=rule.is_configurable,
        updated_at=rule.updated_at,
    )


@router.get("/", response_model=list[ScheduleRuleRead])
async def list_rules(
    session: Annotated[AsyncSession, Depends(get_db_session)]
) -> list[ScheduleRuleRead]:
    rules = await rules_repo.ensure_default_rules(session)
    await session.commit()
    return [_map_rule(rule) for rule in rules]


@router.put("/{rule_id}", response_model=ScheduleRuleRead)
async def update_rule(
    rule_id: int,
    payload: ScheduleRuleUpdate,
    session: Annotated[AsyncSession, Depends(get_db_session)],
) -> ScheduleRuleRead:
    rule = await rules_repo.get_rule(session, rule_id)
    if not rule:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Rule not found")
    if not rule.is_configurable:
        raise RuleNotConfigurableError(
            f"Rule {rule.rule_code} cannot be changed",
            details={"rule_code": rule.rule_code},
        )
    rule = await rules_repo.set_rule_enabled(session, rule, payload.is_enabled)
    await session.commit()
    return _map_rule(rule)
