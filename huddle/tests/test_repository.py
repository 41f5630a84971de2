import unittest
from datetime import date

from huddle import keys
from huddle.errors import (
    ConflictError,
    InvalidRequestError,
    NotFoundError,
    PermissionDeniedError,
)
from huddle.kv import InMemoryKvStore
from huddle.records import AttendanceStatus, RecipientType, UserRole
from huddle.repository import TEAM_CODE_ATTEMPTS, TeamRepository


def _codes(*values):
    remaining = list(values)
    return lambda: remaining.pop(0)


class RepositoryTestCase(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryKvStore()
        self.repo = TeamRepository(self.store)

    def make_user(self, name, role):
        return self.repo.create_user(
            email=f"{name}@example.com",
            password_hash="x",
            role=role,
            first_name=name.title(),
            last_name="Test",
        )

    def add_member(self, team, user, **approve_kwargs):
        request = self.repo.create_join_request(user.id, team.code)
        return self.repo.approve_request(team.created_by, request.id, **approve_kwargs)


class TeamCodeTests(RepositoryTestCase):
    def test_retries_on_collision(self):
        repo = TeamRepository(self.store, code_generator=_codes("11111111", "11111111", "22222222"))
        coach = self.make_user("coach", UserRole.COACH)
        first = repo.create_team(coach.id, name="A")
        second = repo.create_team(coach.id, name="B")
        self.assertEqual(first.code, "11111111")
        self.assertEqual(second.code, "22222222")
        self.assertEqual(self.store.get(keys.team_code("22222222")), second.id)

    def test_gives_up_after_repeated_collisions(self):
        repo = TeamRepository(self.store, code_generator=lambda: "33333333")
        coach = self.make_user("coach", UserRole.COACH)
        repo.create_team(coach.id, name="A")
        with self.assertRaises(ConflictError):
            repo.create_team(coach.id, name="B")
        self.assertEqual(TEAM_CODE_ATTEMPTS, 20)

    def test_generated_codes_are_eight_digits(self):
        coach = self.make_user("coach", UserRole.COACH)
        for i in range(5):
            team = self.repo.create_team(coach.id, name=f"Team {i}")
            self.assertRegex(team.code, r"^[1-9]\d{7}$")


class MembershipTests(RepositoryTestCase):
    def setUp(self):
        super().setUp()
        self.coach = self.make_user("coach", UserRole.COACH)
        self.team = self.repo.create_team(self.coach.id, name="Warriors")

    def test_duplicate_email_rejected(self):
        with self.assertRaises(InvalidRequestError):
            self.repo.create_user(
                email=" COACH@example.com ",
                password_hash="y",
                role=UserRole.PARENT,
                first_name="X",
                last_name="Y",
            )

    def test_member_of_team_cannot_request_again(self):
        player = self.make_user("player", UserRole.PLAYER)
        self.add_member(self.team, player)
        with self.assertRaises(ConflictError):
            self.repo.create_join_request(player.id, self.team.code)

    def test_rejected_member_is_reactivated_on_approval(self):
        player = self.make_user("player", UserRole.PLAYER)
        member = self.add_member(self.team, player)
        self.repo.update_member(self.coach.id, member.id, {"status": "rejected"})
        self.assertIsNone(self.repo.find_membership(self.team.id, player.id))
        self.assertEqual(self.store.get(keys.user_teams(player.id)), [])

        again = self.add_member(self.team, player, player_info={"jersey_number": 9})
        self.assertEqual(again.id, member.id)
        self.assertEqual(again.status, "active")
        self.assertEqual(again.player_info.jersey_number, 9)
        self.assertEqual(
            [m.id for m in self.repo.team_members(self.team.id) if m.user_id == player.id],
            [member.id],
        )
        self.assertEqual(self.store.get(keys.user_teams(player.id)), [self.team.id])

    def test_creator_membership_cannot_be_demoted(self):
        own = self.repo.find_membership(self.team.id, self.coach.id)
        with self.assertRaises(ConflictError):
            self.repo.update_member(self.coach.id, own.id, {"role": "parent"})
        self.assertEqual(self.repo.get_member(own.id).role, UserRole.COACH)

    def test_indexes_are_not_duplicated(self):
        player = self.make_user("player", UserRole.PLAYER)
        self.add_member(self.team, player)
        self.repo._add_to_index(keys.user_teams(player.id), self.team.id)
        self.assertEqual(self.store.get(keys.user_teams(player.id)), [self.team.id])

    def test_member_without_user_record_is_tolerated(self):
        player = self.make_user("player", UserRole.PLAYER)
        member = self.add_member(self.team, player)
        self.store.delete(keys.user(player.id))
        members = self.repo.list_members(self.coach.id, self.team.id)
        self.assertIn((member, None), members)

    def test_dangling_index_entries_are_skipped(self):
        self.repo._add_to_index(keys.team_members(self.team.id), "member_gone")
        members = self.repo.team_members(self.team.id)
        self.assertEqual([m.user_id for m in members], [self.coach.id])

    def test_update_team_rejects_bad_values(self):
        with self.assertRaises(NotFoundError):
            self.repo.update_team(self.coach.id, "team_missing", {"name": "x"})
        updated = self.repo.update_team(self.coach.id, self.team.id, {"color": "#000000"})
        self.assertEqual(updated.color, "#000000")
        self.assertEqual(updated.code, self.team.code)


class MessageVisibilityTests(RepositoryTestCase):
    def setUp(self):
        super().setUp()
        self.coach = self.make_user("coach", UserRole.COACH)
        self.team = self.repo.create_team(self.coach.id, name="Warriors")
        self.parent = self.make_user("parent", UserRole.PARENT)
        self.player = self.make_user("player", UserRole.PLAYER)
        self.add_member(self.team, self.parent)
        self.add_member(self.team, self.player, player_info={"parent_id": self.parent.id})

    def send(self, subject, recipient_type, **kwargs):
        return self.repo.send_message(
            self.coach.id,
            team_id=self.team.id,
            subject=subject,
            body="",
            recipient_type=recipient_type,
            **kwargs,
        )

    def subjects(self, user):
        return [m.subject for m in self.repo.list_messages(user.id, self.team.id)]

    def test_role_targeted_messages(self):
        self.send("players", RecipientType.PLAYERS)
        self.send("parents", RecipientType.PARENTS)
        self.send("coaches", RecipientType.COACHES)
        self.assertEqual(self.subjects(self.player), ["players"])
        self.assertEqual(self.subjects(self.parent), ["parents"])
        self.assertEqual(self.subjects(self.coach), ["coaches", "parents", "players"])

    def test_forward_to_parent(self):
        self.send("to child", RecipientType.INDIVIDUAL, recipient_ids=[self.player.id])
        self.send(
            "to child, cc parent",
            RecipientType.INDIVIDUAL,
            recipient_ids=[self.player.id],
            forward_to_parent=True,
        )
        self.send("all players, cc parents", RecipientType.PLAYERS, forward_to_parent=True)
        self.assertEqual(
            self.subjects(self.parent), ["all players, cc parents", "to child, cc parent"]
        )

    def test_thread_hides_invisible_message(self):
        message = self.send("coaches", RecipientType.COACHES)
        with self.assertRaises(PermissionDeniedError):
            self.repo.get_thread(self.player.id, message.id)

    def test_non_member_cannot_list(self):
        outsider = self.make_user("outsider", UserRole.PLAYER)
        with self.assertRaises(PermissionDeniedError):
            self.repo.list_messages(outsider.id, self.team.id)


class EventAndAttendanceTests(RepositoryTestCase):
    def setUp(self):
        super().setUp()
        self.coach = self.make_user("coach", UserRole.COACH)
        self.team = self.repo.create_team(self.coach.id, name="Warriors")
        self.parent = self.make_user("parent", UserRole.PARENT)
        self.player = self.make_user("player", UserRole.PLAYER)
        self.add_member(self.team, self.parent, parent_info={"children_ids": [self.player.id]})
        self.add_member(self.team, self.player)

    def event(self, title, day, time="10:00"):
        return self.repo.create_event(
            self.coach.id,
            self.team.id,
            {"type": "practice", "title": title, "date": day, "time": time},
        )

    def test_event_windows(self):
        self.event("early", "2030-01-10", "09:00")
        self.event("late", "2030-01-10", "18:00")
        self.event("today", "2030-01-05")
        self.event("old", "2029-12-01")
        self.event("older", "2029-11-01")
        today = date(2030, 1, 5)

        upcoming = self.repo.list_events(self.player.id, self.team.id, when="upcoming", today=today)
        self.assertEqual([e.title for e in upcoming], ["today", "early", "late"])
        past = self.repo.list_events(self.player.id, self.team.id, when="past", today=today)
        self.assertEqual([e.title for e in past], ["old", "older"])

        with self.assertRaises(InvalidRequestError):
            self.repo.list_events(self.player.id, self.team.id, when="someday")

    def test_invalid_event_fields(self):
        with self.assertRaises(InvalidRequestError):
            self.repo.create_event(
                self.coach.id,
                self.team.id,
                {"type": "scrimmage", "title": "x", "date": "2030-01-01", "time": "10:00"},
            )

    def test_parent_indicates_for_child(self):
        event = self.event("practice", "2030-01-10")
        record = self.repo.indicate_attendance(
            self.parent.id,
            event_id=event.id,
            player_id=self.player.id,
            indicated_status=AttendanceStatus.INJURED,
        )
        self.assertEqual(record.indicated_by, self.parent.id)
        self.assertEqual(record.indicated_status, AttendanceStatus.INJURED)

    def test_other_players_cannot_indicate(self):
        other = self.make_user("other", UserRole.PLAYER)
        self.add_member(self.team, other)
        event = self.event("practice", "2030-01-10")
        with self.assertRaises(PermissionDeniedError):
            self.repo.indicate_attendance(
                other.id,
                event_id=event.id,
                player_id=self.player.id,
                indicated_status=AttendanceStatus.ATTEND,
            )

    def test_only_players_have_attendance(self):
        event = self.event("practice", "2030-01-10")
        with self.assertRaises(NotFoundError):
            self.repo.indicate_attendance(
                self.coach.id,
                event_id=event.id,
                player_id=self.parent.id,
                indicated_status=AttendanceStatus.ATTEND,
            )

    def test_delete_event_removes_attendance_keys(self):
        event = self.event("practice", "2030-01-10")
        record = self.repo.indicate_attendance(
            self.player.id,
            event_id=event.id,
            player_id=self.player.id,
            indicated_status=AttendanceStatus.ATTEND,
        )
        self.repo.delete_event(self.coach.id, event.id)
        self.assertIsNone(self.store.get(keys.attendance(record.id)))
        self.assertEqual(self.store.get_by_prefix(keys.event_attendance_prefix(event.id)), {})
        self.assertEqual(self.store.get(keys.team_events(self.team.id)), [])

    def test_player_attendance_pairs(self):
        first = self.event("one", "2030-01-10")
        self.event("two", "2030-01-11")
        self.repo.indicate_attendance(
            self.player.id,
            event_id=first.id,
            player_id=self.player.id,
            indicated_status=AttendanceStatus.LATE,
        )
        pairs = self.repo.player_attendance(self.team.id, self.player.id)
        self.assertEqual([(e.id, a.indicated_status) for e, a in pairs], [(first.id, "late")])


if __name__ == "__main__":
    unittest.main()
