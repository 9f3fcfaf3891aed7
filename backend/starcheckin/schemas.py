from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional
from datetime import datetime

# Fields a webhook update may overwrite on an existing attendee
WEBHOOK_MERGE_FIELDS = ("name", "email", "status", "checked_in", "answers", "event_id")

# A roster pull leaves the webhook-owned status alone
ROSTER_MERGE_FIELDS = ("name", "email", "checked_in", "answers", "event_id")


class Credential(BaseModel):
    access_token: str
    refresh_token: Optional[str] = None
    issued_at: datetime

    model_config = ConfigDict(frozen=True)


class AttendeeUpdate(BaseModel):
    """
    Canonical attendee change, independent of where it came from.
    None means "not carried by this update" and never overwrites stored data.
    """
    id: str
    name: Optional[str] = None
    email: Optional[str] = None
    status: Optional[str] = None
    checked_in: Optional[bool] = None
    answers: Optional[Dict[str, Any]] = None
    event_id: Optional[str] = None

    def present_fields(self) -> Dict[str, Any]:
        return {
            key: value
            for key, value in self.model_dump(exclude={"id"}).items()
            if value is not None
        }


class AttendeeResult(BaseModel):
    id: str
    name: str
    email: str
    status: str
    checked_in: Optional[bool] = None
    answers: Optional[Dict[str, Any]] = None
    event_id: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TokenExchangeRequest(BaseModel):
    code: Optional[str] = None


class WebhookAck(BaseModel):
    received: bool = True


class EventListResponse(BaseModel):
    events: List[Dict[str, Any]] = Field(default_factory=list)
