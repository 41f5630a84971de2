"""
Team and player statistics computed from events, memberships and attendance.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from huddle.records import (
    Attendance,
    AttendanceStatus,
    Event,
    EventType,
    MemberStatus,
    Record,
    TeamMember,
    UserRole,
)

PRESENT_STATUSES = (AttendanceStatus.ATTEND, AttendanceStatus.LATE)


@dataclass
class TeamStats(Record):
    total_games: int
    wins: int
    losses: int
    win_rate: float
    total_players: int
    active_players: int


@dataclass
class PlayerStats(Record):
    player_id: str
    games_played: int
    events_recorded: int
    events_attended: int
    attendance: float


def _percent(part: int, whole: int) -> float:
    if not whole:
        return 0.0
    return round(part * 100.0 / whole, 1)


def is_played_game(event: Event) -> bool:
    return (
        event.type == EventType.GAME
        and event.home_score is not None
        and event.away_score is not None
    )


def is_win(event: Event) -> bool:
    if event.is_home:
        return event.home_score > event.away_score
    return event.away_score > event.home_score


def team_stats(events: Iterable[Event], members: Iterable[TeamMember]) -> TeamStats:
    games = [e for e in events if is_played_game(e)]
    wins = sum(1 for g in games if is_win(g))
    players = [m for m in members if m.role == UserRole.PLAYER]
    return TeamStats(
        total_games=len(games),
        wins=wins,
        # Draws count against the record, as on the dashboard.
        losses=len(games) - wins,
        win_rate=_percent(wins, len(games)),
        total_players=len(players),
        active_players=sum(1 for p in players if p.status == MemberStatus.ACTIVE),
    )


def player_stats(
    player_id: str, records: Iterable[tuple[Event, Attendance]]
) -> PlayerStats:
    recorded = [(e, a) for e, a in records if a.actual_status is not None]
    attended = [(e, a) for e, a in recorded if a.actual_status in PRESENT_STATUSES]
    return PlayerStats(
        player_id=player_id,
        games_played=sum(1 for e, _ in attended if e.type == EventType.GAME),
        events_recorded=len(recorded),
        events_attended=len(attended),
        attendance=_percent(len(attended), len(recorded)),
    )
