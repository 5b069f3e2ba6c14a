from pydantic import BaseModel


class SystemSettingsRead(BaseModel):
    environment: str
    version: str
    solver_time_limit_seconds: float
    publish_min_fill_rate: float
    default_page_size: int
    max_page_size: int
    rule_catalog_version: str
