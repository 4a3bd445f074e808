from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class RateLimitFeature(str, Enum):
    filterizer = "filterizer"
    ticket_creator = "ticket_creator"
    analyzer = "analyzer"


class StoreErrorPolicy(str, Enum):
    allow = "allow"   # fail open
    deny = "deny"     # fail closed


class RateLimitWindow(BaseModel):
    """One counter row per (user, feature, minute). Expiry is housekeeping's job."""

    model_config = ConfigDict(use_enum_values=True)

    user_id: str
    feature: RateLimitFeature
    window_start: datetime
    count: int = Field(ge=0)


class RateLimitResult(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    allowed: bool
    retry_after_seconds: Optional[int] = None
    current_count: Optional[int] = None


class RateLimitCheckRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    user_id: Optional[str] = None
    feature: RateLimitFeature
    max_per_minute: int = Field(gt=0)
