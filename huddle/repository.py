"""
Team, membership, messaging, event and attendance operations over a KvStore.

Every operation is a short read-modify-write against record keys and the
hand-maintained index lists in ``huddle.keys``. Multi-step writes run under
one re-entrant lock so concurrent requests in this process cannot drop index
updates; separate processes sharing a store are not coordinated.
"""

from __future__ import annotations

import functools
import logging
import random
import threading
from datetime import date
from typing import Any, Callable, Iterable, Optional, Type

from dacite import DaciteError

from huddle import keys
from huddle.errors import (
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
)
from huddle.json_utils import convert_keys
from huddle.kv import KvStore
from huddle.records import (
    Attendance,
    AttendanceStatus,
    Credential,
    Event,
    JoinRequest,
    MemberStatus,
    Message,
    ParentInfo,
    PlayerInfo,
    RecipientType,
    Record,
    R,
    RequestStatus,
    Team,
    TeamMember,
    User,
    UserRole,
    load,
    new_id,
    now_iso,
)

logger = logging.getLogger(__name__)

TEAM_CODE_ATTEMPTS = 20
EVENT_WINDOWS = ("upcoming", "past")


def generate_team_code() -> str:
    return str(random.randint(10_000_000, 99_999_999))


def _serialized(method):
    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        with self._lock:
            return method(self, *args, **kwargs)

    return wrapper


def _build(record_cls: Type[R], data: dict) -> R:
    try:
        return record_cls.from_dict(data)
    except (DaciteError, ValueError) as e:
        raise InvalidRequestError(f"Invalid {record_cls.__name__.lower()} data: {e}") from e


def _merge(record: R, updates: dict) -> R:
    """Apply snake_case updates to a record, re-validating the result."""
    merged = record.as_dict()
    merged.update(convert_keys(updates, "snake_to_camel"))
    return _build(type(record), merged)


def _contains(value: Optional[Any], needle: str) -> bool:
    return value is not None and needle in str(value).lower()


class TeamRepository:
    """All reads and writes the HTTP handlers perform."""

    def __init__(
        self,
        store: KvStore,
        code_generator: Callable[[], str] = generate_team_code,
    ):
        self.store = store
        self._generate_code = code_generator
        self._lock = threading.RLock()

    # ------------------------------------------------------------------ helpers

    def _get(self, record_cls: Type[R], key: str) -> Optional[R]:
        return load(record_cls, self.store.get(key))

    def _put(self, key: str, record: Record) -> None:
        self.store.set(key, record.as_dict())

    def _index(self, key: str) -> list[str]:
        return list(self.store.get(key) or [])

    def _add_to_index(self, key: str, item_id: str, *, front: bool = False) -> None:
        ids = self._index(key)
        if item_id in ids:
            return
        if front:
            ids.insert(0, item_id)
        else:
            ids.append(item_id)
        self.store.set(key, ids)

    def _remove_from_index(self, key: str, item_id: str) -> None:
        ids = self._index(key)
        if item_id in ids:
            self.store.set(key, [i for i in ids if i != item_id])

    def _load_many(
        self, record_cls: Type[R], key_fn: Callable[[str], str], ids: Iterable[str]
    ) -> list[R]:
        values = self.store.mget([key_fn(i) for i in ids])
        # Index entries whose record has gone are skipped.
        return [record_cls.from_dict(v) for v in values if v]

    # -------------------------------------------------------------------- users

    def get_credential(self, email: str) -> Optional[Credential]:
        return self._get(Credential, keys.auth_email(email))

    @_serialized
    def create_user(
        self,
        *,
        email: str,
        password_hash: str,
        role: UserRole,
        first_name: str,
        last_name: str,
        nickname: str = "",
        phone: str = "",
    ) -> User:
        email = email.strip().lower()
        if self.get_credential(email):
            raise InvalidRequestError("A user with this email address has already been registered")
        user = User(
            id=new_id("user"),
            email=email,
            role=UserRole(role),
            first_name=first_name,
            last_name=last_name,
            nickname=nickname or "",
            phone=phone or "",
        )
        self._put(keys.user(user.id), user)
        self._put(
            keys.auth_email(email),
            Credential(user_id=user.id, password_hash=password_hash),
        )
        logger.info("Created user %s (%s)", user.id, user.role)
        return user

    def find_user(self, user_id: str) -> Optional[User]:
        return self._get(User, keys.user(user_id))

    def get_user(self, user_id: str) -> User:
        user = self.find_user(user_id)
        if not user:
            raise NotFoundError("User not found")
        return user

    @_serialized
    def update_user(self, actor_id: str, user_id: str, updates: dict) -> User:
        if actor_id != user_id:
            raise PermissionDeniedError("Forbidden")
        user = _merge(self.get_user(user_id), updates)
        self._put(keys.user(user_id), user)
        return user

    def list_user_teams(self, actor_id: str, user_id: str) -> list[Team]:
        if actor_id != user_id:
            raise PermissionDeniedError("Forbidden")
        return self._load_many(Team, keys.team, self._index(keys.user_teams(user_id)))

    # -------------------------------------------------------------------- teams

    def _allocate_code(self) -> str:
        for _ in range(TEAM_CODE_ATTEMPTS):
            code = self._generate_code()
            if self.store.get(keys.team_code(code)) is None:
                return code
        raise ConflictError("Could not allocate a unique team code")

    @_serialized
    def create_team(
        self,
        actor_id: str,
        *,
        name: str,
        logo_url: Optional[str] = None,
        color: Optional[str] = None,
    ) -> Team:
        self.get_user(actor_id)
        team = Team(
            id=new_id("team"),
            name=name,
            code=self._allocate_code(),
            created_by=actor_id,
        )
        if logo_url:
            team.logo_url = logo_url
        if color:
            team.color = color
        self._put(keys.team(team.id), team)
        self.store.set(keys.team_code(team.code), team.id)

        coach = TeamMember(
            id=new_id("member"),
            team_id=team.id,
            user_id=actor_id,
            role=UserRole.COACH,
        )
        self._put(keys.member(coach.id), coach)
        self._add_to_index(keys.team_members(team.id), coach.id)
        self._add_to_index(keys.user_teams(actor_id), team.id)
        logger.info("User %s created team %s with code %s", actor_id, team.id, team.code)
        return team

    def get_team(self, team_id: str) -> Team:
        team = self._get(Team, keys.team(team_id))
        if not team:
            raise NotFoundError("Team not found")
        return team

    def get_team_by_code(self, code: str) -> Team:
        team_id = self.store.get(keys.team_code(code.strip()))
        if not team_id:
            raise NotFoundError("Invalid team code")
        return self.get_team(team_id)

    @_serialized
    def update_team(self, actor_id: str, team_id: str, updates: dict) -> Team:
        team = self.get_team(team_id)
        if team.created_by != actor_id:
            raise PermissionDeniedError("Only team creator can update team")
        team = _merge(team, updates)
        self._put(keys.team(team_id), team)
        return team

    # -------------------------------------------------------------- memberships

    def team_members(self, team_id: str) -> list[TeamMember]:
        return self._load_many(
            TeamMember, keys.member, self._index(keys.team_members(team_id))
        )

    def membership_of(self, team_id: str, user_id: str) -> Optional[TeamMember]:
        """The user's membership record on the team, whatever its status."""
        for member in self.team_members(team_id):
            if member.user_id == user_id:
                return member
        return None

    def find_membership(self, team_id: str, user_id: str) -> Optional[TeamMember]:
        member = self.membership_of(team_id, user_id)
        if member and member.status == MemberStatus.ACTIVE:
            return member
        return None

    def require_member(self, team_id: str, user_id: str) -> TeamMember:
        member = self.find_membership(team_id, user_id)
        if not member:
            raise PermissionDeniedError("Not a member of this team")
        return member

    def require_coach(self, team_id: str, user_id: str) -> TeamMember:
        member = self.find_membership(team_id, user_id)
        if not member or member.role != UserRole.COACH:
            raise PermissionDeniedError("Only coaches of this team can do that")
        return member

    def require_player(self, team_id: str, player_id: str) -> TeamMember:
        member = self.find_membership(team_id, player_id)
        if not member or member.role != UserRole.PLAYER:
            raise NotFoundError("Player is not on this team")
        return member

    def get_member(self, member_id: str) -> TeamMember:
        member = self._get(TeamMember, keys.member(member_id))
        if not member:
            raise NotFoundError("Member not found")
        return member

    def list_members(
        self,
        actor_id: str,
        team_id: str,
        *,
        role: Optional[UserRole] = None,
        query: Optional[str] = None,
    ) -> list[tuple[TeamMember, Optional[User]]]:
        self.get_team(team_id)
        self.require_member(team_id, actor_id)
        members = self.team_members(team_id)
        if role:
            members = [m for m in members if m.role == role]
        users = {m.user_id: self.find_user(m.user_id) for m in members}
        if query and query.strip():
            needle = query.strip().lower()
            members = [
                m
                for m in members
                if self._member_matches(m, users.get(m.user_id), needle)
            ]
        return [(m, users.get(m.user_id)) for m in members]

    @staticmethod
    def _member_matches(member: TeamMember, user: Optional[User], needle: str) -> bool:
        if user and (_contains(user.first_name, needle) or _contains(user.last_name, needle)):
            return True
        info = member.player_info
        if info and (_contains(info.jersey_number, needle) or _contains(info.position, needle)):
            return True
        return False

    @_serialized
    def update_member(self, actor_id: str, member_id: str, updates: dict) -> TeamMember:
        member = self.get_member(member_id)
        self.require_coach(member.team_id, actor_id)
        updated = _merge(member, updates)
        team = self._get(Team, keys.team(member.team_id))
        if (
            team
            and member.user_id == team.created_by
            and (updated.role != UserRole.COACH or updated.status != MemberStatus.ACTIVE)
        ):
            raise ConflictError("The team creator must stay an active coach")
        self._put(keys.member(member_id), updated)
        # Only active memberships are listed among the user's teams.
        if updated.status == MemberStatus.ACTIVE:
            self._add_to_index(keys.user_teams(member.user_id), member.team_id)
        else:
            self._remove_from_index(keys.user_teams(member.user_id), member.team_id)
        return updated

    @_serialized
    def delete_member(self, actor_id: str, member_id: str) -> None:
        member = self.get_member(member_id)
        team = self._get(Team, keys.team(member.team_id))
        if not team or team.created_by != actor_id:
            raise PermissionDeniedError("Only team creator can delete members")
        if member.user_id == team.created_by:
            raise ConflictError("The team creator cannot be removed from the team")
        self._remove_from_index(keys.team_members(member.team_id), member_id)
        self._remove_from_index(keys.user_teams(member.user_id), member.team_id)
        self.store.delete(keys.member(member_id))
        logger.info("Removed member %s from team %s", member_id, member.team_id)

    # ------------------------------------------------------------ join requests

    def team_requests(self, team_id: str) -> list[JoinRequest]:
        return self._load_many(
            JoinRequest, keys.request, self._index(keys.team_requests(team_id))
        )

    @_serialized
    def create_join_request(
        self, actor_id: str, team_code: str, role: Optional[UserRole] = None
    ) -> JoinRequest:
        team = self.get_team_by_code(team_code)
        user = self.get_user(actor_id)
        if self.find_membership(team.id, actor_id):
            raise ConflictError("Already a member of this team")
        for existing in self.team_requests(team.id):
            if existing.user_id == actor_id and existing.status == RequestStatus.PENDING:
                raise ConflictError("A join request for this team is already pending")

        request = JoinRequest(
            id=new_id("request"),
            team_id=team.id,
            user_id=actor_id,
            user_name=user.full_name,
            user_email=user.email,
            user_role=UserRole(role) if role else user.role,
        )
        self._put(keys.request(request.id), request)
        self._add_to_index(keys.team_requests(team.id), request.id)
        logger.info("User %s requested to join team %s", actor_id, team.id)
        return request

    def list_pending_requests(self, actor_id: str, team_id: str) -> list[JoinRequest]:
        self.get_team(team_id)
        self.require_coach(team_id, actor_id)
        return [r for r in self.team_requests(team_id) if r.status == RequestStatus.PENDING]

    def _review(self, actor_id: str, request_id: str, status: RequestStatus) -> JoinRequest:
        request = self._get(JoinRequest, keys.request(request_id))
        if not request:
            raise NotFoundError("Request not found")
        self.require_coach(request.team_id, actor_id)
        if request.status != RequestStatus.PENDING:
            raise ConflictError(f"Request has already been {request.status}")
        request.status = status
        request.reviewed_at = now_iso()
        request.reviewed_by = actor_id
        self._put(keys.request(request_id), request)
        return request

    @_serialized
    def approve_request(
        self,
        actor_id: str,
        request_id: str,
        *,
        player_info: Optional[dict] = None,
        parent_info: Optional[dict] = None,
    ) -> TeamMember:
        request = self._review(actor_id, request_id, RequestStatus.APPROVED)
        player = load(PlayerInfo, convert_keys(player_info, "snake_to_camel"))
        parent = load(ParentInfo, convert_keys(parent_info, "snake_to_camel"))
        existing = self.membership_of(request.team_id, request.user_id)
        if existing and existing.status == MemberStatus.ACTIVE:
            logger.warning(
                "Request %s approved for existing member %s", request_id, existing.id
            )
            return existing

        if existing:
            member = existing
            member.status = MemberStatus.ACTIVE
            member.role = request.user_role
            member.joined_at = now_iso()
            member.player_info = player or member.player_info
            member.parent_info = parent or member.parent_info
            logger.info("Reactivating member %s on team %s", member.id, member.team_id)
        else:
            member = TeamMember(
                id=new_id("member"),
                team_id=request.team_id,
                user_id=request.user_id,
                role=request.user_role,
                player_info=player,
                parent_info=parent,
            )
        self._put(keys.member(member.id), member)
        self._add_to_index(keys.user_teams(request.user_id), request.team_id)
        self._add_to_index(keys.team_members(request.team_id), member.id)
        logger.info(
            "Coach %s approved request %s; member %s joined team %s",
            actor_id,
            request_id,
            member.id,
            request.team_id,
        )
        return member

    @_serialized
    def reject_request(self, actor_id: str, request_id: str) -> JoinRequest:
        request = self._review(actor_id, request_id, RequestStatus.REJECTED)
        logger.info("Coach %s rejected request %s", actor_id, request_id)
        return request

    # ----------------------------------------------------------------- messages

    def _children_of(self, parent_id: str, members: list[TeamMember]) -> set[str]:
        children: set[str] = set()
        for member in members:
            if member.user_id == parent_id and member.parent_info:
                children.update(member.parent_info.children_ids)
            if member.player_info and member.player_info.parent_id == parent_id:
                children.add(member.user_id)
        return children

    @staticmethod
    def _can_see(
        message: Message, viewer: TeamMember, children: set[str]
    ) -> bool:
        if viewer.role == UserRole.COACH or message.sender_id == viewer.user_id:
            return True
        kind = message.recipient_type
        if kind == RecipientType.EVERYONE:
            return True
        if kind == RecipientType.PLAYERS and viewer.role == UserRole.PLAYER:
            return True
        if kind == RecipientType.PARENTS and viewer.role == UserRole.PARENT:
            return True
        if kind == RecipientType.INDIVIDUAL and viewer.user_id in message.recipient_ids:
            return True
        if message.forward_to_parent and viewer.role == UserRole.PARENT:
            if kind == RecipientType.PLAYERS:
                return True
            return bool(children.intersection(message.recipient_ids))
        return False

    def _visible_filter(self, team_id: str, viewer_id: str) -> Callable[[Message], bool]:
        members = self.team_members(team_id)
        viewer = next(
            (
                m
                for m in members
                if m.user_id == viewer_id and m.status == MemberStatus.ACTIVE
            ),
            None,
        )
        if not viewer:
            raise PermissionDeniedError("Not a member of this team")
        children = self._children_of(viewer_id, members)
        return lambda message: self._can_see(message, viewer, children)

    def get_message(self, message_id: str) -> Message:
        message = self._get(Message, keys.message(message_id))
        if not message:
            raise NotFoundError("Message not found")
        return message

    @_serialized
    def send_message(
        self,
        actor_id: str,
        *,
        team_id: str,
        subject: str,
        body: str,
        recipient_type: RecipientType,
        recipient_ids: Optional[list[str]] = None,
        forward_to_parent: bool = False,
        reply_to_id: Optional[str] = None,
    ) -> Message:
        self.get_team(team_id)
        member = self.require_member(team_id, actor_id)
        user = self.get_user(actor_id)
        recipient_type = RecipientType(recipient_type)
        if recipient_type == RecipientType.INDIVIDUAL and not recipient_ids:
            raise InvalidRequestError("Individual messages need at least one recipient")
        if reply_to_id:
            parent = self._get(Message, keys.message(reply_to_id))
            if not parent or parent.team_id != team_id:
                raise NotFoundError("Message being replied to not found")

        message = Message(
            id=new_id("message"),
            team_id=team_id,
            sender_id=actor_id,
            sender_name=user.full_name,
            sender_role=member.role,
            subject=subject,
            body=body,
            recipient_type=recipient_type,
            recipient_ids=list(recipient_ids or []),
            forward_to_parent=bool(forward_to_parent),
            reply_to_id=reply_to_id,
        )
        self._put(keys.message(message.id), message)
        self._add_to_index(keys.team_messages(team_id), message.id, front=True)
        logger.info("User %s sent message %s to team %s", actor_id, message.id, team_id)
        return message

    def list_messages(
        self, actor_id: str, team_id: str, *, query: Optional[str] = None
    ) -> list[Message]:
        self.get_team(team_id)
        visible = self._visible_filter(team_id, actor_id)
        messages = self._load_many(
            Message, keys.message, self._index(keys.team_messages(team_id))
        )
        messages = [m for m in messages if visible(m)]
        if query and query.strip():
            needle = query.strip().lower()
            messages = [
                m
                for m in messages
                if _contains(m.subject, needle)
                or _contains(m.sender_name, needle)
                or _contains(m.body, needle)
            ]
        return messages

    def get_thread(self, actor_id: str, message_id: str) -> tuple[Message, list[Message]]:
        message = self.get_message(message_id)
        visible = self._visible_filter(message.team_id, actor_id)
        if not visible(message):
            raise PermissionDeniedError("Forbidden")
        replies = [
            m
            for m in self._load_many(
                Message, keys.message, self._index(keys.team_messages(message.team_id))
            )
            if m.reply_to_id == message_id and visible(m)
        ]
        replies.sort(key=lambda m: m.created_at)
        return message, replies

    # ------------------------------------------------------------------- events

    def get_event(self, event_id: str) -> Event:
        event = self._get(Event, keys.event(event_id))
        if not event:
            raise NotFoundError("Event not found")
        return event

    def team_events(self, team_id: str) -> list[Event]:
        return self._load_many(Event, keys.event, self._index(keys.team_events(team_id)))

    @_serialized
    def create_event(self, actor_id: str, team_id: str, fields: dict) -> Event:
        self.get_team(team_id)
        self.require_coach(team_id, actor_id)
        data = convert_keys(fields, "snake_to_camel")
        data.update(
            {
                "id": new_id("event"),
                "teamId": team_id,
                "createdBy": actor_id,
                "createdAt": now_iso(),
            }
        )
        event = _build(Event, data)
        self._put(keys.event(event.id), event)
        self._add_to_index(keys.team_events(team_id), event.id)
        logger.info("Coach %s created %s event %s", actor_id, event.type, event.id)
        return event

    def list_events(
        self,
        actor_id: str,
        team_id: str,
        *,
        when: Optional[str] = None,
        today: Optional[date] = None,
    ) -> list[Event]:
        self.get_team(team_id)
        self.require_member(team_id, actor_id)
        events = self.team_events(team_id)
        if when is None:
            return events
        if when not in EVENT_WINDOWS:
            raise InvalidRequestError(f"when must be one of {', '.join(EVENT_WINDOWS)}")
        cutoff = (today or date.today()).isoformat()
        if when == "upcoming":
            events = [e for e in events if e.date >= cutoff]
            events.sort(key=lambda e: (e.date, e.time))
        else:
            events = [e for e in events if e.date < cutoff]
            events.sort(key=lambda e: (e.date, e.time), reverse=True)
        return events

    @_serialized
    def update_event(self, actor_id: str, event_id: str, updates: dict) -> Event:
        event = self.get_event(event_id)
        self.require_coach(event.team_id, actor_id)
        event = _merge(event, updates)
        self._put(keys.event(event_id), event)
        return event

    @_serialized
    def delete_event(self, actor_id: str, event_id: str) -> None:
        event = self.get_event(event_id)
        self.require_coach(event.team_id, actor_id)
        prefix = keys.event_attendance_prefix(event_id)
        for index_key, attendance_id in self.store.get_by_prefix(prefix).items():
            self.store.delete(keys.attendance(attendance_id))
            self.store.delete(index_key)
        self._remove_from_index(keys.team_events(event.team_id), event_id)
        self.store.delete(keys.event(event_id))
        logger.info("Coach %s deleted event %s", actor_id, event_id)

    # --------------------------------------------------------------- attendance

    def _require_can_indicate(self, team_id: str, actor_id: str, player_id: str) -> None:
        self.require_player(team_id, player_id)
        if actor_id == player_id:
            return
        members = self.team_members(team_id)
        actor = next(
            (m for m in members if m.user_id == actor_id and m.status == MemberStatus.ACTIVE),
            None,
        )
        if actor and actor.role == UserRole.COACH:
            return
        if actor and actor.role == UserRole.PARENT and player_id in self._children_of(
            actor_id, members
        ):
            return
        raise PermissionDeniedError("Only the player, their parent or a coach can do that")

    @_serialized
    def indicate_attendance(
        self,
        actor_id: str,
        *,
        event_id: str,
        player_id: str,
        indicated_status: AttendanceStatus,
        indicated_by: Optional[str] = None,
    ) -> Attendance:
        event = self.get_event(event_id)
        self._require_can_indicate(event.team_id, actor_id, player_id)

        index_key = keys.event_attendance(event_id, player_id)
        attendance_id = self.store.get(index_key)
        attendance = (
            self._get(Attendance, keys.attendance(attendance_id)) if attendance_id else None
        )
        if not attendance:
            attendance = Attendance(id=new_id("attendance"), event_id=event_id, user_id=player_id)
        attendance.indicated_status = AttendanceStatus(indicated_status)
        attendance.indicated_at = now_iso()
        attendance.indicated_by = indicated_by or actor_id
        self._put(keys.attendance(attendance.id), attendance)
        self.store.set(index_key, attendance.id)
        return attendance

    def event_attendance(self, event_id: str) -> list[Attendance]:
        ids = self.store.get_by_prefix(keys.event_attendance_prefix(event_id)).values()
        return self._load_many(Attendance, keys.attendance, ids)

    def list_attendance(self, actor_id: str, event_id: str) -> list[Attendance]:
        event = self.get_event(event_id)
        self.require_member(event.team_id, actor_id)
        return self.event_attendance(event_id)

    @_serialized
    def update_attendance(self, actor_id: str, attendance_id: str, updates: dict) -> Attendance:
        attendance = self._get(Attendance, keys.attendance(attendance_id))
        if not attendance:
            raise NotFoundError("Attendance not found")
        event = self.get_event(attendance.event_id)
        self.require_coach(event.team_id, actor_id)
        attendance = _merge(attendance, updates)
        attendance.recorded_at = now_iso()
        attendance.recorded_by = actor_id
        self._put(keys.attendance(attendance_id), attendance)
        return attendance

    def player_attendance(self, team_id: str, player_id: str) -> list[tuple[Event, Attendance]]:
        """Pairs of (event, the player's attendance record) across the team's events."""
        pairs: list[tuple[Event, Attendance]] = []
        for event in self.team_events(team_id):
            attendance_id = self.store.get(keys.event_attendance(event.id, player_id))
            attendance = (
                self._get(Attendance, keys.attendance(attendance_id)) if attendance_id else None
            )
            if attendance:
                pairs.append((event, attendance))
        return pairs
