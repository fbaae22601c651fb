import unittest
from datetime import datetime, timedelta, timezone

import jwt

from fitbyte.errors import InvalidTokenError, TokenExpiredError
from fitbyte.security import TokenService, hash_password, verify_password


class PasswordTests(unittest.TestCase):
    def test_hash_and_verify(self):
        hashed = hash_password("correct horse")
        self.assertNotEqual(hashed, "correct horse")
        self.assertTrue(hashed.startswith("pbkdf2:sha256"))
        self.assertTrue(verify_password("correct horse", hashed))
        self.assertFalse(verify_password("wrong horse", hashed))

    def test_hashes_are_salted(self):
        self.assertNotEqual(hash_password("same"), hash_password("same"))

    def test_verify_against_empty_hash(self):
        self.assertFalse(verify_password("anything", ""))


class TokenServiceTests(unittest.TestCase):
    def setUp(self):
        self.tokens = TokenService(secret="s3cret", expires_in_seconds=3600)

    def test_round_trip_claims(self):
        now = datetime.now(timezone.utc)
        claims = self.tokens.decode(self.tokens.issue("a@example.com", now=now))
        self.assertEqual(claims.sub, "a@example.com")
        self.assertEqual(claims.exp, int((now + timedelta(hours=1)).timestamp()))

    def test_expired_token(self):
        token = self.tokens.issue(
            "a@example.com", now=datetime.now(timezone.utc) - timedelta(hours=2)
        )
        with self.assertRaises(TokenExpiredError):
            self.tokens.decode(token)

    def test_wrong_secret(self):
        token = TokenService(secret="other").issue("a@example.com")
        with self.assertRaises(InvalidTokenError):
            self.tokens.decode(token)

    def test_garbage_token(self):
        with self.assertRaises(InvalidTokenError):
            self.tokens.decode("abc.def.ghi")

    def test_token_without_subject(self):
        token = jwt.encode(
            {"exp": int(datetime.now(timezone.utc).timestamp()) + 60},
            "s3cret",
            algorithm="HS256",
        )
        with self.assertRaises(InvalidTokenError):
            self.tokens.decode(token)

    def test_empty_secret_rejected(self):
        with self.assertRaises(ValueError):
            TokenService(secret="")


if __name__ == "__main__":
    unittest.main()
