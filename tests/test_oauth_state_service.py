import importlib
import os
import time
import unittest
from unittest.mock import patch

import jwt

from app.config import settings
from app.services.oauth_state_service import (
    STATE_TTL_SECONDS,
    InvalidStateError,
    create_state_token,
    verify_state_token,
)

SECRET = "state-test-secret-with-enough-bytes"


class TestOAuthState(unittest.TestCase):
    def test_fresh_state_verifies(self):
        state = create_state_token(secret=SECRET)
        payload = verify_state_token(state, state, secret=SECRET)
        self.assertIn("nonce", payload)

    def test_each_flow_gets_its_own_state(self):
        self.assertNotEqual(create_state_token(secret=SECRET), create_state_token(secret=SECRET))

    def test_state_is_single_use(self):
        state = create_state_token(secret=SECRET)
        verify_state_token(state, state, secret=SECRET)
        with self.assertRaises(InvalidStateError) as ctx:
            verify_state_token(state, state, secret=SECRET)
        self.assertIn("already used", str(ctx.exception))

    def test_state_must_match_cookie(self):
        state = create_state_token(secret=SECRET)
        other = create_state_token(secret=SECRET)
        for cookie in (None, "", other):
            with self.assertRaises(InvalidStateError):
                verify_state_token(state, cookie, secret=SECRET)
        # 沒通過 cookie 檢查的 state 不會被消耗掉
        verify_state_token(state, state, secret=SECRET)

    def test_expired_state_is_rejected(self):
        issued = int(time.time()) - STATE_TTL_SECONDS - 60
        state = create_state_token(secret=SECRET, now=issued)
        with self.assertRaises(InvalidStateError):
            verify_state_token(state, state, secret=SECRET)

    def test_state_signed_with_other_key_is_rejected(self):
        state = create_state_token(secret="someone-else-with-a-long-enough-key")
        with self.assertRaises(InvalidStateError):
            verify_state_token(state, state, secret=SECRET)

    def test_missing_or_garbage_state_is_rejected(self):
        for state in (None, "", "not-a-jwt"):
            with self.assertRaises(InvalidStateError):
                verify_state_token(state, state, secret=SECRET)

    def test_other_jwt_purpose_is_rejected(self):
        token = jwt.encode({"user_id": "u1", "exp": int(time.time()) + 60}, SECRET, algorithm="HS256")
        with self.assertRaises(InvalidStateError):
            verify_state_token(token, token, secret=SECRET)


class TestStateSecretDefault(unittest.TestCase):
    def tearDown(self):
        importlib.reload(settings)

    def test_unset_secret_is_random_per_process(self):
        env = {k: v for k, v in os.environ.items() if k != "STATE_SECRET"}
        env["ENVIRONMENT"] = "production"  # 不讀 .env

        with patch.dict(os.environ, env, clear=True):
            first = importlib.reload(settings).STATE_SECRET
            second = importlib.reload(settings).STATE_SECRET

        self.assertNotEqual(first, "PLEASE_SET_SECRET")
        self.assertGreaterEqual(len(first), 32)
        self.assertNotEqual(first, second)


if __name__ == "__main__":
    unittest.main()
