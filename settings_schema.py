from typing import Literal, Optional

from pydantic import BaseModel, Field, ValidationError


class SettingsSchema(BaseModel):
    weight_unit: Literal["kg", "lb"] = "kg"
    current_plan_id: Optional[str] = "plan-a"
    current_week: int = Field(default=1, ge=1, le=12)
    current_phase: int = Field(default=1, ge=1, le=3)
    log_level: str = "INFO"
    app_version: str = "1.0.0"


def validate_settings(data: dict) -> None:
    try:
        SettingsSchema(**data)
    except ValidationError as e:
        raise ValueError(str(e))
