"""
Records stored in the key-value store.

Records are dataclasses with snake_case attributes; they are persisted and
served as camelCase JSON via ``as_dict``/``from_dict``.
"""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any, List, Optional, Type, TypeVar

from dacite import Config, from_dict

from huddle.json_utils import convert_keys


class UserRole(StrEnum):
    COACH = "coach"
    PLAYER = "player"
    PARENT = "parent"


class MemberStatus(StrEnum):
    ACTIVE = "active"
    PENDING = "pending"
    REJECTED = "rejected"


class RequestStatus(StrEnum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class RecipientType(StrEnum):
    EVERYONE = "everyone"
    PLAYERS = "players"
    PARENTS = "parents"
    COACHES = "coaches"
    INDIVIDUAL = "individual"


class EventType(StrEnum):
    PRACTICE = "practice"
    GAME = "game"
    MEETING = "meeting"
    OTHER = "other"


class AttendanceStatus(StrEnum):
    ATTEND = "attend"
    LATE = "late"
    INJURED = "injured"
    ABSENT = "absent"
    PENDING = "pending"


DEFAULT_TEAM_COLOR = "#3b82f6"

_DACITE_CONFIG = Config(
    cast=[UserRole, MemberStatus, RequestStatus, RecipientType, EventType, AttendanceStatus]
)

R = TypeVar("R", bound="Record")


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_id(kind: str) -> str:
    return f"{kind}_{uuid.uuid4().hex}"


class Record:
    """Mixin giving dataclass records their camelCase JSON form."""

    def as_dict(self) -> dict:
        return convert_keys(asdict(self), "snake_to_camel")

    @classmethod
    def from_dict(cls: Type[R], data: dict) -> R:
        return from_dict(
            data_class=cls,
            data=convert_keys(data, "camel_to_snake"),
            config=_DACITE_CONFIG,
        )


@dataclass
class User(Record):
    id: str
    email: str
    role: UserRole
    first_name: str
    last_name: str
    nickname: str = ""
    phone: str = ""
    photo_url: str = ""
    created_at: str = field(default_factory=now_iso)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


@dataclass
class Credential(Record):
    user_id: str
    password_hash: str


@dataclass
class Team(Record):
    id: str
    name: str
    code: str
    created_by: str
    logo_url: str = ""
    color: str = DEFAULT_TEAM_COLOR
    created_at: str = field(default_factory=now_iso)


@dataclass
class PlayerInfo(Record):
    position: str = ""
    jersey_number: int = 0
    birth_month: Optional[int] = None
    birth_year: Optional[int] = None
    parent_id: Optional[str] = None


@dataclass
class ParentInfo(Record):
    children_ids: List[str] = field(default_factory=list)


@dataclass
class TeamMember(Record):
    id: str
    team_id: str
    user_id: str
    role: UserRole
    status: MemberStatus = MemberStatus.ACTIVE
    joined_at: Optional[str] = field(default_factory=now_iso)
    notes: str = ""
    player_info: Optional[PlayerInfo] = None
    parent_info: Optional[ParentInfo] = None


@dataclass
class JoinRequest(Record):
    id: str
    team_id: str
    user_id: str
    user_name: str
    user_email: str
    user_role: UserRole
    status: RequestStatus = RequestStatus.PENDING
    requested_at: str = field(default_factory=now_iso)
    reviewed_at: Optional[str] = None
    reviewed_by: Optional[str] = None


@dataclass
class Message(Record):
    id: str
    team_id: str
    sender_id: str
    sender_name: str
    sender_role: UserRole
    subject: str
    body: str
    recipient_type: RecipientType
    recipient_ids: List[str] = field(default_factory=list)
    forward_to_parent: bool = False
    created_at: str = field(default_factory=now_iso)
    reply_to_id: Optional[str] = None


@dataclass
class Event(Record):
    id: str
    team_id: str
    type: EventType
    title: str
    date: str
    time: str
    location: str
    created_by: str
    details: str = ""
    created_at: str = field(default_factory=now_iso)
    opponent: Optional[str] = None
    home_score: Optional[int] = None
    away_score: Optional[int] = None
    is_home: Optional[bool] = None


@dataclass
class Attendance(Record):
    id: str
    event_id: str
    user_id: str
    indicated_status: Optional[AttendanceStatus] = None
    indicated_at: Optional[str] = None
    indicated_by: Optional[str] = None
    actual_status: Optional[AttendanceStatus] = None
    recorded_at: Optional[str] = None
    recorded_by: Optional[str] = None


def load(record_cls: Type[R], data: Optional[Any]) -> Optional[R]:
    """Build a record from stored JSON, passing through missing entries."""
    if not data:
        return None
    return record_cls.from_dict(data)
