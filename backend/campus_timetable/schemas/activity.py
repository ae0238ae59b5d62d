from datetime import datetime

from pydantic import BaseModel, Field


class ActivityLogOut(BaseModel):
    id: str
    actor_id: str | None = Field(serialization_alias="actorId")
    department: str | None
    action: str
    target_type: str = Field(serialization_alias="targetType")
    target_id: str | None = Field(serialization_alias="targetId")
    details: dict
    created_at: datetime = Field(serialization_alias="createdAt")

    model_config = {"from_attributes": True}
