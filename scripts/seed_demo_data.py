"""
CLI helper to seed a demo team into the configured key-value store.

Signs the coach up if the email is unknown, then creates a team with a
practice, an upcoming home game, a finished game and a welcome message.
Does nothing when the coach already belongs to a team.
"""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import date, timedelta
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from huddle.auth import AuthService
from huddle.config import get_settings
from huddle.dependencies import get_auth_service, get_repository
from huddle.errors import InvalidRequestError
from huddle.records import RecipientType, Team, UserRole
from huddle.repository import TeamRepository

logger = logging.getLogger(__name__)


def _demo_events(today: date) -> list[dict]:
    return [
        {
            "type": "practice",
            "title": "Team Practice",
            "date": (today + timedelta(days=1)).isoformat(),
            "time": "16:00",
            "location": "Main Gym",
            "details": "Focus on defensive drills and team plays",
        },
        {
            "type": "game",
            "title": "Championship Game",
            "date": (today + timedelta(days=7)).isoformat(),
            "time": "19:00",
            "location": "Home Court",
            "details": "Final game of the season",
            "opponent": "Central High",
            "is_home": True,
        },
        {
            "type": "game",
            "title": "Away Game",
            "date": (today - timedelta(days=7)).isoformat(),
            "time": "18:00",
            "location": "Eastside Arena",
            "opponent": "Eastside Eagles",
            "is_home": False,
            "home_score": 54,
            "away_score": 61,
        },
    ]


def seed(
    auth: AuthService,
    repo: TeamRepository,
    *,
    email: str,
    password: str,
    team_name: str,
    today: date | None = None,
) -> Team | None:
    if repo.get_credential(email):
        _, coach = auth.signin(email, password)
    else:
        coach = auth.signup(
            email=email,
            password=password,
            role=UserRole.COACH,
            first_name="Demo",
            last_name="Coach",
        )

    existing = repo.list_user_teams(coach.id, coach.id)
    if existing:
        logger.info("Coach %s already has team %s; skipping", coach.email, existing[0].id)
        return None

    team = repo.create_team(coach.id, name=team_name, color="#3b82f6")
    for fields in _demo_events(today or date.today()):
        repo.create_event(coach.id, team.id, fields)
    repo.send_message(
        coach.id,
        team_id=team.id,
        subject="Welcome to the team!",
        body=f"Share code {team.code} with players and parents so they can join.",
        recipient_type=RecipientType.EVERYONE,
    )
    return team


def main() -> int:
    parser = argparse.ArgumentParser(description="Seed a demo team")
    parser.add_argument("--email", required=True, help="Coach email address")
    parser.add_argument("--password", required=True, help="Coach password")
    parser.add_argument(
        "--team-name",
        default="Warriors Basketball",
        help="Name of the demo team",
    )
    args = parser.parse_args()

    logging.basicConfig(level=get_settings().log_level.upper())
    try:
        team = seed(
            get_auth_service(),
            get_repository(),
            email=args.email,
            password=args.password,
            team_name=args.team_name,
        )
    except InvalidRequestError as e:
        logger.error("Could not seed demo data for %s: %s", args.email, e.message)
        return 1
    if team:
        print(f"Created team {team.name} ({team.id}) with code {team.code}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
