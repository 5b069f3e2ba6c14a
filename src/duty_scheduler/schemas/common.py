from pydantic import BaseModel, Field, model_validator

CLOCK_PATTERN = r"^([01]\d|2[0-3]):[0-5]\d$"


class TimeRange(BaseModel):
    start_time: str = Field(pattern=CLOCK_PATTERN)
    end_time: str = Field(pattern=CLOCK_PATTERN)

    @model_validator(mode="after")
    def validate_range(self) -> "TimeRange":
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self
