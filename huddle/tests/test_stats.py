import unittest

from huddle.records import (
    Attendance,
    AttendanceStatus,
    Event,
    EventType,
    MemberStatus,
    TeamMember,
    UserRole,
)
from huddle.stats import is_win, player_stats, team_stats


def _event(event_type=EventType.GAME, home=None, away=None, is_home=True, event_id="e"):
    return Event(
        id=event_id,
        team_id="t",
        type=event_type,
        title="Game",
        date="2030-01-01",
        time="19:00",
        location="Gym",
        created_by="c",
        home_score=home,
        away_score=away,
        is_home=is_home,
    )


def _member(role, status=MemberStatus.ACTIVE):
    return TeamMember(id="m", team_id="t", user_id="u", role=role, status=status)


def _attendance(actual):
    return Attendance(id="a", event_id="e", user_id="p", actual_status=actual)


class TeamStatsTests(unittest.TestCase):
    def test_wins_from_either_side(self):
        self.assertTrue(is_win(_event(home=60, away=50, is_home=True)))
        self.assertFalse(is_win(_event(home=60, away=50, is_home=False)))
        self.assertTrue(is_win(_event(home=40, away=50, is_home=False)))

    def test_record_and_roster(self):
        events = [
            _event(home=60, away=50),
            _event(home=55, away=61, is_home=False),
            _event(home=70, away=71),
            _event(home=50, away=50),
            _event(home=None, away=None),
            _event(EventType.PRACTICE),
        ]
        members = [
            _member(UserRole.COACH),
            _member(UserRole.PLAYER),
            _member(UserRole.PLAYER, MemberStatus.PENDING),
            _member(UserRole.PARENT),
        ]
        stats = team_stats(events, members)
        self.assertEqual(stats.total_games, 4)
        self.assertEqual(stats.wins, 2)
        self.assertEqual(stats.losses, 2)
        self.assertEqual(stats.win_rate, 50.0)
        self.assertEqual(stats.total_players, 2)
        self.assertEqual(stats.active_players, 1)

    def test_no_games(self):
        stats = team_stats([], [])
        self.assertEqual(stats.win_rate, 0.0)
        self.assertEqual(
            stats.as_dict(),
            {
                "totalGames": 0,
                "wins": 0,
                "losses": 0,
                "winRate": 0.0,
                "totalPlayers": 0,
                "activePlayers": 0,
            },
        )


class PlayerStatsTests(unittest.TestCase):
    def test_attendance_rate_counts_late_as_present(self):
        pairs = [
            (_event(), _attendance(AttendanceStatus.ATTEND)),
            (_event(EventType.PRACTICE), _attendance(AttendanceStatus.LATE)),
            (_event(EventType.PRACTICE), _attendance(AttendanceStatus.ABSENT)),
            (_event(), _attendance(None)),
        ]
        stats = player_stats("p", pairs)
        self.assertEqual(stats.games_played, 1)
        self.assertEqual(stats.events_recorded, 3)
        self.assertEqual(stats.events_attended, 2)
        self.assertEqual(stats.attendance, 66.7)

    def test_nothing_recorded(self):
        stats = player_stats("p", [])
        self.assertEqual(stats.attendance, 0.0)
        self.assertEqual(stats.games_played, 0)


if __name__ == "__main__":
    unittest.main()
