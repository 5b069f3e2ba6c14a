from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from duty_scheduler.db.models.rules import ScheduleRule
from duty_scheduler.services.rules import RuleCatalog, RuleSet, load_rule_catalog


async def ensure_default_rules(session: AsyncSession, catalog: RuleCatalog | None = None) -> list[ScheduleRule]:
    """Insert catalogue rules missing from storage and return every stored rule."""

    catalog = catalog or load_rule_catalog()
    existing = {rule.rule_code for rule in await list_rules(session)}
    for definition in catalog.rules:
        if definition.code.value in existing:
            continue
        session.add(
            ScheduleRule(
                rule_code=definition.code.value,
                name=definition.name,
                description=definition.description,
                is_enabled=definition.is_enabled,
                is_configurable=definition.is_configurable,
            )
        )
    await session.flush()
    return await list_rules(session)


async def list_rules(session: AsyncSession) -> list[ScheduleRule]:
    result = await session.execute(select(ScheduleRule).order_by(ScheduleRule.rule_code))
    return list(result.scalars().all())


async def get_rule(session: AsyncSession, rule_id: int) -> ScheduleRule | None:
    return await session.get(ScheduleRule, rule_id)


async def set_rule_enabled(session: AsyncSession, rule: ScheduleRule, is_enabled: bool) -> ScheduleRule:
    rule.is_enabled = is_enabled
    await session.flush()
    await session.refresh(rule)
    return rule


async def load_rule_set(session: AsyncSession) -> RuleSet:
    rows = await ensure_default_rules(session)
    return RuleSet.from_overrides(load_rule_catalog(), {row.rule_code: row.is_enabled for row in rows})
