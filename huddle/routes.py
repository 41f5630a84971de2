"""
HTTP routes for the Huddle API.

Handlers authenticate the caller, delegate to ``TeamRepository`` and shape
the JSON body. Domain errors propagate to the handlers in ``huddle.app``.
"""

from __future__ import annotations

import logging
import mimetypes
from typing import Literal, Optional
from uuid import uuid4

from fastapi import APIRouter, Depends, Query

from huddle import stats as team_stats
from huddle.auth import AuthService
from huddle.dependencies import (
    get_auth_service,
    get_current_user_id,
    get_repository,
    get_storage_client,
)
from huddle.errors import InvalidRequestError, PermissionDeniedError
from huddle.records import UserRole
from huddle.repository import TeamRepository
from huddle.schemas import (
    ApproveRequestPayload,
    AttendanceListResponse,
    AttendanceResponse,
    CreateEventRequest,
    CreateTeamRequest,
    CreateTeamResponse,
    EventResponse,
    EventsResponse,
    IndicateAttendanceRequest,
    JoinRequestPayload,
    JoinRequestResponse,
    JoinRequestsResponse,
    MemberResponse,
    MembersResponse,
    MessageResponse,
    MessagesResponse,
    MessageThread,
    SendMessageRequest,
    SigninRequest,
    SigninResponse,
    SignupRequest,
    SignUploadRequest,
    SignUploadResponse,
    StatsResponse,
    SuccessResponse,
    TeamResponse,
    TeamsResponse,
    ThreadResponse,
    UpdateAttendanceRequest,
    UpdateEventRequest,
    UpdateMemberRequest,
    UpdateTeamRequest,
    UpdateUserRequest,
    UserResponse,
)
from huddle.storage import StorageClient

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health")
def health():
    return {"status": "ok"}


# ========== AUTH ==========


@router.post("/auth/signup", response_model=UserResponse)
def signup(payload: SignupRequest, auth: AuthService = Depends(get_auth_service)):
    user = auth.signup(
        email=payload.email,
        password=payload.password,
        role=payload.role,
        first_name=payload.first_name,
        last_name=payload.last_name,
        phone=payload.phone,
        nickname=payload.nickname,
    )
    return UserResponse(user=user.as_dict())


@router.post("/auth/signin", response_model=SigninResponse)
def signin(payload: SigninRequest, auth: AuthService = Depends(get_auth_service)):
    token, user = auth.signin(payload.email, payload.password)
    return SigninResponse(access_token=token, user=user.as_dict())


# ========== TEAMS ==========


@router.post("/teams", response_model=CreateTeamResponse)
def create_team(
    payload: CreateTeamRequest,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    team = repo.create_team(
        user_id, name=payload.name, logo_url=payload.logo_url, color=payload.color
    )
    return CreateTeamResponse(team=team.as_dict(), code=team.code)


@router.get("/teams/code/{code}", response_model=TeamResponse)
def get_team_by_code(
    code: str,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    team = repo.get_team_by_code(code)
    return TeamResponse(team=team.as_dict())


@router.get("/teams/{team_id}", response_model=TeamResponse)
def get_team(
    team_id: str,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    return TeamResponse(team=repo.get_team(team_id).as_dict())


@router.patch("/teams/{team_id}", response_model=TeamResponse)
def update_team(
    team_id: str,
    payload: UpdateTeamRequest,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    team = repo.update_team(user_id, team_id, payload.updates())
    return TeamResponse(team=team.as_dict())


@router.get("/users/{target_user_id}/teams", response_model=TeamsResponse)
def get_user_teams(
    target_user_id: str,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    teams = repo.list_user_teams(user_id, target_user_id)
    return TeamsResponse(teams=[t.as_dict() for t in teams])


@router.get("/teams/{team_id}/stats", response_model=StatsResponse)
def get_team_stats(
    team_id: str,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    repo.get_team(team_id)
    repo.require_member(team_id, user_id)
    result = team_stats.team_stats(repo.team_events(team_id), repo.team_members(team_id))
    return StatsResponse(stats=result.as_dict())


@router.get("/teams/{team_id}/players/{player_id}/stats", response_model=StatsResponse)
def get_player_stats(
    team_id: str,
    player_id: str,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    repo.get_team(team_id)
    repo.require_member(team_id, user_id)
    repo.require_player(team_id, player_id)
    result = team_stats.player_stats(player_id, repo.player_attendance(team_id, player_id))
    return StatsResponse(stats=result.as_dict())


# ========== JOIN REQUESTS ==========


@router.post("/join-requests", response_model=JoinRequestResponse)
def create_join_request(
    payload: JoinRequestPayload,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    request = repo.create_join_request(user_id, payload.team_code, payload.role)
    return JoinRequestResponse(request=request.as_dict())


@router.get("/teams/{team_id}/join-requests", response_model=JoinRequestsResponse)
def get_join_requests(
    team_id: str,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    requests = repo.list_pending_requests(user_id, team_id)
    return JoinRequestsResponse(requests=[r.as_dict() for r in requests])


@router.post("/join-requests/{request_id}/approve", response_model=MemberResponse)
def approve_join_request(
    request_id: str,
    payload: Optional[ApproveRequestPayload] = None,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    payload = payload or ApproveRequestPayload()
    member = repo.approve_request(
        user_id,
        request_id,
        player_info=payload.player_info.updates() if payload.player_info else None,
        parent_info=payload.parent_info.updates() if payload.parent_info else None,
    )
    return MemberResponse(member=member.as_dict())


@router.post("/join-requests/{request_id}/reject", response_model=SuccessResponse)
def reject_join_request(
    request_id: str,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    repo.reject_request(user_id, request_id)
    return SuccessResponse()


# ========== MEMBERS ==========


@router.get("/teams/{team_id}/members", response_model=MembersResponse)
def get_team_members(
    team_id: str,
    role: Optional[UserRole] = Query(None),
    q: Optional[str] = Query(None, max_length=100),
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    members = repo.list_members(user_id, team_id, role=role, query=q)
    payload = []
    for member, user in members:
        entry = member.as_dict()
        entry["user"] = user.as_dict() if user else None
        payload.append(entry)
    return MembersResponse(members=payload)


@router.patch("/members/{member_id}", response_model=MemberResponse)
def update_member(
    member_id: str,
    payload: UpdateMemberRequest,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    member = repo.update_member(user_id, member_id, payload.updates())
    return MemberResponse(member=member.as_dict())


@router.delete("/members/{member_id}", response_model=SuccessResponse)
def delete_member(
    member_id: str,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    repo.delete_member(user_id, member_id)
    return SuccessResponse()


# ========== MESSAGES ==========


@router.post("/messages", response_model=MessageResponse)
def send_message(
    payload: SendMessageRequest,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    message = repo.send_message(
        user_id,
        team_id=payload.team_id,
        subject=payload.subject,
        body=payload.body,
        recipient_type=payload.recipient_type,
        recipient_ids=payload.recipient_ids,
        forward_to_parent=payload.forward_to_parent,
        reply_to_id=payload.reply_to_id,
    )
    return MessageResponse(message=message.as_dict())


@router.get("/teams/{team_id}/messages", response_model=MessagesResponse)
def get_team_messages(
    team_id: str,
    q: Optional[str] = Query(None, max_length=100),
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    messages = repo.list_messages(user_id, team_id, query=q)
    return MessagesResponse(messages=[m.as_dict() for m in messages])


@router.get("/messages/{message_id}", response_model=ThreadResponse)
def get_message_thread(
    message_id: str,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    message, replies = repo.get_thread(user_id, message_id)
    return ThreadResponse(
        thread=MessageThread(
            message=message.as_dict(), replies=[r.as_dict() for r in replies]
        )
    )


# ========== EVENTS ==========


@router.post("/events", response_model=EventResponse)
def create_event(
    payload: CreateEventRequest,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    fields = payload.model_dump(mode="json", exclude={"team_id"})
    event = repo.create_event(user_id, payload.team_id, fields)
    return EventResponse(event=event.as_dict())


@router.get("/teams/{team_id}/events", response_model=EventsResponse)
def get_team_events(
    team_id: str,
    when: Optional[Literal["upcoming", "past"]] = Query(None),
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    events = repo.list_events(user_id, team_id, when=when)
    return EventsResponse(events=[e.as_dict() for e in events])


@router.patch("/events/{event_id}", response_model=EventResponse)
def update_event(
    event_id: str,
    payload: UpdateEventRequest,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    event = repo.update_event(user_id, event_id, payload.updates())
    return EventResponse(event=event.as_dict())


@router.delete("/events/{event_id}", response_model=SuccessResponse)
def delete_event(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    repo.delete_event(user_id, event_id)
    return SuccessResponse()


# ========== ATTENDANCE ==========


@router.post("/attendance", response_model=AttendanceResponse)
def indicate_attendance(
    payload: IndicateAttendanceRequest,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    attendance = repo.indicate_attendance(
        user_id,
        event_id=payload.event_id,
        player_id=payload.player_id,
        indicated_status=payload.indicated_status,
        indicated_by=payload.indicated_by,
    )
    return AttendanceResponse(attendance=attendance.as_dict())


@router.get("/events/{event_id}/attendance", response_model=AttendanceListResponse)
def get_event_attendance(
    event_id: str,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    records = repo.list_attendance(user_id, event_id)
    return AttendanceListResponse(attendance=[a.as_dict() for a in records])


@router.patch("/attendance/{attendance_id}", response_model=AttendanceResponse)
def update_attendance(
    attendance_id: str,
    payload: UpdateAttendanceRequest,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    attendance = repo.update_attendance(user_id, attendance_id, payload.updates())
    return AttendanceResponse(attendance=attendance.as_dict())


# ========== USERS ==========


@router.get("/users/{target_user_id}", response_model=UserResponse)
def get_user(
    target_user_id: str,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    return UserResponse(user=repo.get_user(target_user_id).as_dict())


@router.patch("/users/{target_user_id}", response_model=UserResponse)
def update_user(
    target_user_id: str,
    payload: UpdateUserRequest,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
):
    user = repo.update_user(user_id, target_user_id, payload.updates())
    return UserResponse(user=user.as_dict())


# ========== UPLOADS ==========


@router.post("/uploads/sign", response_model=SignUploadResponse)
def sign_upload(
    payload: SignUploadRequest,
    user_id: str = Depends(get_current_user_id),
    repo: TeamRepository = Depends(get_repository),
    storage: StorageClient = Depends(get_storage_client),
):
    """
    Presign an upload for a profile photo or team logo. The client PUTs the
    image to ``uploadUrl`` and then saves ``url`` on the profile or team.
    """
    extension = mimetypes.guess_extension(payload.content_type) or ""
    name = f"{uuid4().hex}{extension}"
    if payload.kind == "photo":
        path = f"users/{user_id}/photo/{name}"
    else:
        if not payload.team_id:
            raise InvalidRequestError("teamId is required for logo uploads")
        team = repo.get_team(payload.team_id)
        if team.created_by != user_id:
            raise PermissionDeniedError("Only team creator can update team")
        path = f"teams/{team.id}/logo/{name}"

    upload_url = storage.presign_put(path, payload.content_type)
    logger.info("Signed %s upload for user %s at %s", payload.kind, user_id, path)
    return SignUploadResponse(path=path, upload_url=upload_url, url=storage.public_url(path))
