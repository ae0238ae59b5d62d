from datetime import date

from pydantic import BaseModel, Field, field_validator, model_validator

from campus_timetable.schemas.timetable import TIME_PATTERN, normalize_day, parse_time_to_minutes


class VenueBase(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    location: str | None = Field(default=None, max_length=200)
    capacity: int = Field(default=30, ge=1, le=5000)
    is_available: bool = Field(default=True, alias="isAvailable")

    model_config = {"populate_by_name": True}


class VenueCreate(VenueBase):
    pass


class VenueUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    location: str | None = Field(default=None, max_length=200)
    capacity: int | None = Field(default=None, ge=1, le=5000)
    is_available: bool | None = Field(default=None, alias="isAvailable")

    model_config = {"populate_by_name": True}


class VenueOut(BaseModel):
    id: str
    name: str
    location: str | None
    capacity: int
    is_available: bool = Field(serialization_alias="isAvailable")

    model_config = {"from_attributes": True}


class AvailabilityQuery(BaseModel):
    day_of_week: str
    start_time: str
    end_time: str
    term: str = Field(min_length=1, max_length=100)
    week_start: date | None = None
    class_id: str | None = None

    @field_validator("day_of_week")
    @classmethod
    def validate_day(cls, value: str) -> str:
        day = normalize_day(value)
        if day is None:
            raise ValueError("Invalid day value")
        return day

    @field_validator("start_time", "end_time")
    @classmethod
    def validate_time_format(cls, value: str) -> str:
        if not TIME_PATTERN.match(value):
            raise ValueError("Time must be in HH:MM 24-hour format")
        return value

    @model_validator(mode="after")
    def validate_order(self) -> "AvailabilityQuery":
        if parse_time_to_minutes(self.end_time) <= parse_time_to_minutes(self.start_time):
            raise ValueError("endTime must be after startTime")
        return self


class VenueAssignRequest(BaseModel):
    timetable_id: str = Field(alias="timetableId", min_length=1, max_length=36)
    venue_id: str = Field(alias="venueId", min_length=1, max_length=36)

    model_config = {"populate_by_name": True}
