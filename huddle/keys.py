"""
Key names for records and the hand-maintained index lists.
"""

USER_KEY = "user:{user_id}"
USER_TEAMS_KEY = "user:{user_id}:teams"  # list of team ids
AUTH_EMAIL_KEY = "auth:email:{email}"  # credential record

TEAM_KEY = "team:{team_id}"
TEAM_CODE_KEY = "team:code:{code}"  # team id
TEAM_MEMBERS_KEY = "team:{team_id}:members"  # list of member ids
TEAM_REQUESTS_KEY = "team:{team_id}:requests"  # list of request ids
TEAM_MESSAGES_KEY = "team:{team_id}:messages"  # list of message ids, newest first
TEAM_EVENTS_KEY = "team:{team_id}:events"  # list of event ids

MEMBER_KEY = "member:{member_id}"
REQUEST_KEY = "request:{request_id}"
MESSAGE_KEY = "message:{message_id}"
EVENT_KEY = "event:{event_id}"
ATTENDANCE_KEY = "attendance:{attendance_id}"
EVENT_ATTENDANCE_PREFIX = "event:{event_id}:attendance:"
EVENT_ATTENDANCE_KEY = EVENT_ATTENDANCE_PREFIX + "{player_id}"  # attendance id


def user(user_id: str) -> str:
    return USER_KEY.format(user_id=user_id)


def user_teams(user_id: str) -> str:
    return USER_TEAMS_KEY.format(user_id=user_id)


def auth_email(email: str) -> str:
    return AUTH_EMAIL_KEY.format(email=email.strip().lower())


def team(team_id: str) -> str:
    return TEAM_KEY.format(team_id=team_id)


def team_code(code: str) -> str:
    return TEAM_CODE_KEY.format(code=code)


def team_members(team_id: str) -> str:
    return TEAM_MEMBERS_KEY.format(team_id=team_id)


def team_requests(team_id: str) -> str:
    return TEAM_REQUESTS_KEY.format(team_id=team_id)


def team_messages(team_id: str) -> str:
    return TEAM_MESSAGES_KEY.format(team_id=team_id)


def team_events(team_id: str) -> str:
    return TEAM_EVENTS_KEY.format(team_id=team_id)


def member(member_id: str) -> str:
    return MEMBER_KEY.format(member_id=member_id)


def request(request_id: str) -> str:
    return REQUEST_KEY.format(request_id=request_id)


def message(message_id: str) -> str:
    return MESSAGE_KEY.format(message_id=message_id)


def event(event_id: str) -> str:
    return EVENT_KEY.format(event_id=event_id)


def attendance(attendance_id: str) -> str:
    return ATTENDANCE_KEY.format(attendance_id=attendance_id)


def event_attendance_prefix(event_id: str) -> str:
    return EVENT_ATTENDANCE_PREFIX.format(event_id=event_id)


def event_attendance(event_id: str, player_id: str) -> str:
    return EVENT_ATTENDANCE_KEY.format(event_id=event_id, player_id=player_id)
