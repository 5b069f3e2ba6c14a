from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict


class ScheduleRuleRead(BaseModel):
    id: int
    rule_code: str
    name: str
    description: str | None = None
    kind: Literal["hard", "soft"] = "soft"
    weight: int = 0
    is_enabled: bool
    is_configurable: bool
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ScheduleRuleUpdate(BaseModel):
    is_enabled: bool
