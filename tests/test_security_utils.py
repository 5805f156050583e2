import os
import sys
import time
import unittest
from datetime import timedelta
from unittest.mock import patch

from jose import jwt

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))
import env
from models.users import Session
from util.security_utils import create_session_token, decode_session_token, get_password_hash, verify_password


class TestPasswords(unittest.TestCase):

    def test_hash_verifies_only_the_original_password(self):
        hashed = get_password_hash("s3cret!")
        self.assertNotEqual(hashed, "s3cret!")
        self.assertTrue(verify_password("s3cret!", hashed))
        self.assertFalse(verify_password("wrong", hashed))

    def test_unrecognised_hash_does_not_verify(self):
        self.assertFalse(verify_password("s3cret!", "s3cret!"))
        self.assertFalse(verify_password("s3cret!", ""))


class TestSessionTokens(unittest.TestCase):

    def setUp(self):
        self.session = Session(id="64b7f0c2a1b2c3d4e5f60718", name="Ayesha", email="ayesha@example.com", role="admin")

    def test_claims_round_trip(self):
        decoded = decode_session_token(create_session_token(self.session))
        self.assertEqual(decoded, self.session)

    def test_default_expiry_is_session_expire_days(self):
        token = create_session_token(self.session)
        claims = jwt.get_unverified_claims(token)
        issued_window = claims["exp"] - jwt.get_unverified_claims(
            create_session_token(self.session, expires_in=timedelta(0)))["exp"]
        self.assertAlmostEqual(issued_window, env.SESSION_EXPIRE_DAYS * 24 * 3600, delta=5)

    def test_zero_lifetime_expires_immediately(self):
        before = int(time.time())
        claims = jwt.get_unverified_claims(create_session_token(self.session, expires_in=timedelta(0)))
        self.assertLessEqual(claims["exp"] - before, 1)

    def test_expired_token_is_rejected(self):
        token = create_session_token(self.session, expires_in=timedelta(seconds=-60))
        self.assertIsNone(decode_session_token(token))

    def test_token_signed_with_another_secret_is_rejected(self):
        token = create_session_token(self.session)
        with patch.object(env, "SESSION_SECRET", "another-secret"):
            self.assertIsNone(decode_session_token(token))

    def test_missing_or_garbage_token(self):
        self.assertIsNone(decode_session_token(None))
        self.assertIsNone(decode_session_token("not-a-jwt"))


if __name__ == "__main__":
    unittest.main()
