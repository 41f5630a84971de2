import importlib.util
import unittest
from datetime import date
from pathlib import Path
from unittest.mock import patch

from huddle.auth import AuthService
from huddle.errors import InvalidRequestError
from huddle.kv import InMemoryKvStore
from huddle.repository import TeamRepository

SCRIPT = Path(__file__).resolve().parents[2] / "scripts" / "seed_demo_data.py"


def _load_script():
    spec = importlib.util.spec_from_file_location("seed_demo_data", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class SeedDemoDataTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.script = _load_script()

    def setUp(self):
        self.repo = TeamRepository(InMemoryKvStore())
        self.auth = AuthService(self.repo, secret="test-secret")

    def _seed(self):
        return self.script.seed(
            self.auth,
            self.repo,
            email="demo@example.com",
            password="demo-pass",
            team_name="Warriors Basketball",
            today=date(2030, 3, 1),
        )

    def test_seeds_team_events_and_welcome(self):
        team = self._seed()
        self.assertIsNotNone(team)
        coach_id = team.created_by

        upcoming = self.repo.list_events(
            coach_id, team.id, when="upcoming", today=date(2030, 3, 1)
        )
        self.assertEqual([e.title for e in upcoming], ["Team Practice", "Championship Game"])
        past = self.repo.list_events(coach_id, team.id, when="past", today=date(2030, 3, 1))
        self.assertEqual([(e.home_score, e.away_score) for e in past], [(54, 61)])

        messages = self.repo.list_messages(coach_id, team.id)
        self.assertEqual(len(messages), 1)
        self.assertIn(team.code, messages[0].body)

    def test_second_run_is_a_no_op(self):
        self.assertIsNotNone(self._seed())
        self.assertIsNone(self._seed())

    def test_wrong_password_for_existing_coach(self):
        self._seed()
        with self.assertRaises(InvalidRequestError) as ctx:
            self.script.seed(
                self.auth,
                self.repo,
                email="demo@example.com",
                password="not-the-password",
                team_name="Other",
            )
        self.assertEqual(ctx.exception.message, "Invalid login credentials")

    def test_cli_exits_cleanly_on_bad_password(self):
        team = self._seed()
        argv = ["seed_demo_data.py", "--email", "demo@example.com", "--password", "nope12"]
        with patch("sys.argv", argv), patch.object(
            self.script, "get_auth_service", return_value=self.auth
        ), patch.object(self.script, "get_repository", return_value=self.repo):
            self.assertEqual(self.script.main(), 1)
        coach_id = team.created_by
        self.assertEqual(len(self.repo.list_user_teams(coach_id, coach_id)), 1)


if __name__ == "__main__":
    unittest.main()
