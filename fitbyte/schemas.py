"""
Pydantic schemas for the FitByte API.

Bodies use camelCase keys on the wire; snake_case is accepted on input too.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import (
    AwareDatetime,
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel

from fitbyte.activities import ActivityType
from fitbyte.db import ActivityRecord, UserRecord

IMAGE_URI_PATTERN = re.compile(r"^https?://[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}(/[^\s]*)?$")


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AuthRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=32)


class AuthResponse(BaseModel):
    email: str
    token: str


class ProfileResponse(CamelModel):
    preference: Optional[str] = None
    weight_unit: Optional[str] = None
    height_unit: Optional[str] = None
    weight: Optional[float] = None
    height: Optional[float] = None
    email: str
    name: Optional[str] = None
    image_uri: Optional[str] = None

    @classmethod
    def from_record(cls, user: UserRecord) -> "ProfileResponse":
        return cls(
            preference=user.preference,
            weight_unit=user.weight_unit,
            height_unit=user.height_unit,
            weight=user.weight,
            height=user.height,
            email=user.email,
            name=user.name,
            image_uri=user.image_uri,
        )


class ProfileUpdateRequest(CamelModel):
    preference: Literal["CARDIO", "WEIGHT"]
    weight_unit: Literal["KG", "LBS"]
    height_unit: Literal["CM", "INCH"]
    weight: Optional[float] = Field(default=None, ge=10, le=1000)
    height: Optional[float] = Field(default=None, ge=3, le=250)
    name: Optional[str] = Field(default=None, min_length=2, max_length=60)
    image_uri: Optional[str] = None

    @field_validator("image_uri")
    @classmethod
    def _check_image_uri(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and not IMAGE_URI_PATTERN.match(value):
            raise ValueError("Invalid URI. It should be URI")
        return value

    def changes(self) -> dict[str, Any]:
        """Columns to write: the required units plus any optional field sent."""
        changes = {
            "preference": self.preference,
            "weight_unit": self.weight_unit,
            "height_unit": self.height_unit,
        }
        for name in ("weight", "height", "name", "image_uri"):
            if name in self.model_fields_set:
                changes[name] = getattr(self, name)
        return changes


class ActivityCreateRequest(CamelModel):
    activity_type: ActivityType
    done_at: AwareDatetime
    duration_in_minutes: int = Field(..., ge=1, strict=True)


class ActivityUpdateRequest(CamelModel):
    activity_type: Optional[ActivityType] = None
    done_at: Optional[AwareDatetime] = None
    duration_in_minutes: Optional[int] = Field(default=None, ge=1, strict=True)

    @model_validator(mode="after")
    def _reject_nulls(self) -> "ActivityUpdateRequest":
        for name in sorted(self.model_fields_set):
            if getattr(self, name) is None:
                raise ValueError(f"{to_camel(name)} cannot be null")
        return self


class ActivityResponse(CamelModel):
    activity_id: uuid.UUID
    activity_type: str
    done_at: datetime
    duration_in_minutes: int
    calories_burned: int
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, activity: ActivityRecord) -> "ActivityResponse":
        return cls(
            activity_id=activity.activity_id,
            activity_type=activity.activity_type,
            done_at=activity.done_at,
            duration_in_minutes=activity.duration_in_minutes,
            calories_burned=activity.calories_burned,
            created_at=activity.created_at,
            updated_at=activity.updated_at,
        )


class FileUploadResponse(BaseModel):
    uri: str


class MessageResponse(BaseModel):
    message: str
