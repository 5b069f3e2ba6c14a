from typing import Annotated

from fastapi import APIRouter, Depends

from duty_scheduler.core.config import Settings, get_settings
from duty_scheduler.schemas.system import SystemSettingsRead
from duty_scheduler.services.rules import load_rule_catalog

router = APIRouter()


@router.get("/settings", response_model=SystemSettingsRead)
async def read_settings(
    settings: Annotated[Settings, Depends(get_settings)]
) -> SystemSettingsRead:
    """Expose runtime scheduling policy for diagnostics."""
    return SystemSettingsRead(
        environment=settings.environment,
        version=settings.version,
        solver_time_limit_seconds=settings.solver_time_limit_seconds,
        publish_min_fill_rate=settings.publish_min_fill_rate,
        default_page_size=settings.default_page_size,
        max_page_size=settings.max_page_size,
        rule_catalog_version=load_rule_catalog().version,
    )
