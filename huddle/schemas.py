"""
Pydantic schemas for the Huddle API. Bodies use camelCase on the wire.
"""

from __future__ import annotations

import datetime as dt
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from huddle.records import (
    AttendanceStatus,
    EventType,
    MemberStatus,
    RecipientType,
    UserRole,
)

HEX_COLOR = r"^#[0-9a-fA-F]{6}$"
CLOCK_TIME = r"^([01]\d|2[0-3]):[0-5]\d$"


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def updates(self) -> dict:
        """Fields the client actually sent, JSON-ready, snake_case."""
        return self.model_dump(exclude_unset=True, mode="json")


# Auth


class SignupRequest(CamelModel):
    email: str = Field(..., min_length=3, max_length=254, pattern=r"^[^@\s]+@[^@\s]+$")
    password: str = Field(..., max_length=128)
    role: UserRole
    first_name: str = Field(..., min_length=1, max_length=64)
    last_name: str = Field(..., min_length=1, max_length=64)
    phone: Optional[str] = Field(None, max_length=32)
    nickname: Optional[str] = Field(None, max_length=64)


class SigninRequest(CamelModel):
    email: str
    password: str


# Teams and members


class CreateTeamRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    logo_url: Optional[str] = None
    color: Optional[str] = Field(None, pattern=HEX_COLOR)


class UpdateTeamRequest(CamelModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    logo_url: Optional[str] = None
    color: Optional[str] = Field(None, pattern=HEX_COLOR)


class PlayerInfoPayload(CamelModel):
    position: str = ""
    jersey_number: int = Field(0, ge=0, le=999)
    birth_month: Optional[int] = Field(None, ge=1, le=12)
    birth_year: Optional[int] = Field(None, ge=1900, le=2100)
    parent_id: Optional[str] = None


class ParentInfoPayload(CamelModel):
    children_ids: list[str] = Field(default_factory=list)


class JoinRequestPayload(CamelModel):
    team_code: str = Field(..., pattern=r"^\d{8}$")
    role: Optional[UserRole] = None


class ApproveRequestPayload(CamelModel):
    player_info: Optional[PlayerInfoPayload] = None
    parent_info: Optional[ParentInfoPayload] = None


class UpdateMemberRequest(CamelModel):
    role: Optional[UserRole] = None
    status: Optional[MemberStatus] = None
    notes: Optional[str] = Field(None, max_length=2000)
    player_info: Optional[PlayerInfoPayload] = None
    parent_info: Optional[ParentInfoPayload] = None


# Messages


class SendMessageRequest(CamelModel):
    team_id: str
    subject: str = Field(..., min_length=1, max_length=200)
    body: str = Field(..., max_length=10000)
    recipient_type: RecipientType = RecipientType.EVERYONE
    recipient_ids: list[str] = Field(default_factory=list)
    forward_to_parent: bool = False
    reply_to_id: Optional[str] = None


# Events and attendance


class CreateEventRequest(CamelModel):
    team_id: str
    type: EventType = EventType.PRACTICE
    title: str = Field(..., min_length=1, max_length=200)
    date: dt.date
    time: str = Field(..., pattern=CLOCK_TIME)
    location: str = Field("", max_length=200)
    details: str = Field("", max_length=5000)
    opponent: Optional[str] = None
    home_score: Optional[int] = Field(None, ge=0)
    away_score: Optional[int] = Field(None, ge=0)
    is_home: Optional[bool] = None


class UpdateEventRequest(CamelModel):
    type: Optional[EventType] = None
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    date: Optional[dt.date] = None
    time: Optional[str] = Field(None, pattern=CLOCK_TIME)
    location: Optional[str] = Field(None, max_length=200)
    details: Optional[str] = Field(None, max_length=5000)
    opponent: Optional[str] = None
    home_score: Optional[int] = Field(None, ge=0)
    away_score: Optional[int] = Field(None, ge=0)
    is_home: Optional[bool] = None


class IndicateAttendanceRequest(CamelModel):
    event_id: str
    player_id: str
    indicated_status: AttendanceStatus
    indicated_by: Optional[str] = None


class UpdateAttendanceRequest(CamelModel):
    actual_status: Optional[AttendanceStatus] = None
    indicated_status: Optional[AttendanceStatus] = None


# Users and uploads


class UpdateUserRequest(CamelModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=64)
    last_name: Optional[str] = Field(None, min_length=1, max_length=64)
    nickname: Optional[str] = Field(None, max_length=64)
    phone: Optional[str] = Field(None, max_length=32)
    photo_url: Optional[str] = None


class SignUploadRequest(CamelModel):
    kind: Literal["photo", "logo"]
    team_id: Optional[str] = None
    content_type: str = Field("image/png", pattern=r"^image/[a-z0-9.+-]+$")


# Responses


class SuccessResponse(CamelModel):
    success: Literal[True] = True


class UserResponse(SuccessResponse):
    user: dict


class SigninResponse(SuccessResponse):
    access_token: str
    user: dict


class TeamResponse(SuccessResponse):
    team: dict


class CreateTeamResponse(TeamResponse):
    code: str


class TeamsResponse(SuccessResponse):
    teams: list[dict]


class JoinRequestResponse(SuccessResponse):
    request: dict


class JoinRequestsResponse(SuccessResponse):
    requests: list[dict]


class MemberResponse(SuccessResponse):
    member: dict


class MembersResponse(SuccessResponse):
    members: list[dict]


class MessageResponse(SuccessResponse):
    message: dict


class MessagesResponse(SuccessResponse):
    messages: list[dict]


class MessageThread(CamelModel):
    message: dict
    replies: list[dict]


class ThreadResponse(SuccessResponse):
    thread: MessageThread


class EventResponse(SuccessResponse):
    event: dict


class EventsResponse(SuccessResponse):
    events: list[dict]


class AttendanceResponse(SuccessResponse):
    attendance: dict


class AttendanceListResponse(SuccessResponse):
    attendance: list[dict]


class StatsResponse(SuccessResponse):
    stats: dict


class SignUploadResponse(SuccessResponse):
    path: str
    upload_url: str
    url: str
