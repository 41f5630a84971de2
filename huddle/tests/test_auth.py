import unittest

import jwt

from huddle.auth import AuthService, pwd_context
from huddle.errors import AuthenticationError, InvalidRequestError
from huddle.kv import InMemoryKvStore
from huddle.records import UserRole
from huddle.repository import TeamRepository


class AuthServiceTests(unittest.TestCase):
    def setUp(self):
        self.repo = TeamRepository(InMemoryKvStore())
        self.auth = AuthService(self.repo, secret="test-secret")
        self.user = self.auth.signup(
            email="Coach@Example.com",
            password="secret123",
            role=UserRole.COACH,
            first_name="Casey",
            last_name="Jones",
        )

    def test_password_is_hashed(self):
        credential = self.repo.get_credential("coach@example.com")
        self.assertNotEqual(credential.password_hash, "secret123")
        self.assertTrue(pwd_context.verify("secret123", credential.password_hash))

    def test_short_password_rejected(self):
        with self.assertRaises(InvalidRequestError):
            self.auth.signup(
                email="short@example.com",
                password="abc",
                role=UserRole.PLAYER,
                first_name="A",
                last_name="B",
            )

    def test_signin_issues_verifiable_token(self):
        token, user = self.auth.signin("COACH@example.com", "secret123")
        self.assertEqual(user.id, self.user.id)
        self.assertEqual(self.auth.verify_token(token), self.user.id)

        claims = jwt.decode(token, "test-secret", algorithms=["HS256"])
        self.assertEqual(claims["sub"], self.user.id)
        self.assertEqual(claims["role"], "coach")

    def test_signin_failures_share_one_message(self):
        for email, password in [
            ("coach@example.com", "wrong-password"),
            ("nobody@example.com", "secret123"),
        ]:
            with self.assertRaises(InvalidRequestError) as ctx:
                self.auth.signin(email, password)
            self.assertEqual(ctx.exception.message, "Invalid login credentials")

    def test_expired_token(self):
        expired = AuthService(self.repo, secret="test-secret", expiry_hours=-1)
        token = expired.create_token(self.user)
        with self.assertRaises(AuthenticationError) as ctx:
            self.auth.verify_token(token)
        self.assertEqual(ctx.exception.message, "Token expired")

    def test_token_signed_with_other_secret(self):
        other = AuthService(self.repo, secret="another-secret")
        with self.assertRaises(AuthenticationError) as ctx:
            self.auth.verify_token(other.create_token(self.user))
        self.assertEqual(ctx.exception.message, "Invalid token")

    def test_token_for_unknown_user(self):
        token = jwt.encode({"sub": "user_missing"}, "test-secret", algorithm="HS256")
        with self.assertRaises(AuthenticationError):
            self.auth.verify_token(token)


if __name__ == "__main__":
    unittest.main()
