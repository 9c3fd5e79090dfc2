import unittest

from app.models.token_model import SpotifyToken
from app.services.spotify_client import SpotifyApiError
from app.services.spotify_token_service import (
    InMemoryTokenStore,
    NotAuthenticatedError,
    TokenRefreshError,
    token_from_response,
)
from spotify_fakes import FakeSpotifyClient

NOW = 1_700_000_000


class TestTokenFromResponse(unittest.TestCase):
    def test_computes_expires_at(self):
        token = token_from_response(
            {"access_token": "a", "refresh_token": "r", "expires_in": 3600},
            now=NOW,
        )
        self.assertEqual(token.access_token, "a")
        self.assertEqual(token.refresh_token, "r")
        self.assertEqual(token.expires_at, NOW + 3600)

    def test_keeps_previous_refresh_token_when_missing(self):
        previous = SpotifyToken(access_token="old", refresh_token="keep-me", expires_at=NOW)
        token = token_from_response({"access_token": "a", "expires_in": 60}, previous=previous, now=NOW)
        self.assertEqual(token.refresh_token, "keep-me")


class TestInMemoryTokenStore(unittest.TestCase):
    def setUp(self):
        self.client = FakeSpotifyClient()

    def make_store(self, token):
        return InMemoryTokenStore(self.client, token=token, refresh_margin=30, clock=lambda: NOW)

    def test_fresh_token_is_used_without_refresh(self):
        store = self.make_store(SpotifyToken(access_token="a", refresh_token="r", expires_at=NOW + 600))
        self.assertEqual(store.get_valid_access_token(), "a")
        self.assertEqual(self.client.called("refresh_access_token"), [])

    def test_token_near_expiry_is_refreshed(self):
        store = self.make_store(SpotifyToken(access_token="a", refresh_token="r", expires_at=NOW + 10))

        self.assertEqual(store.get_valid_access_token(), "refreshed-access")
        self.assertEqual(self.client.called("refresh_access_token"), [("refresh_access_token", "r")])

        token = store.get()
        self.assertEqual(token.refresh_token, "r")
        self.assertEqual(token.expires_at, NOW + 3600)

    def test_refresh_rotates_refresh_token_when_returned(self):
        self.client.refresh_response = {"access_token": "x", "refresh_token": "r2", "expires_in": 60}
        store = self.make_store(SpotifyToken(access_token="a", refresh_token="r", expires_at=NOW))
        store.refresh()
        self.assertEqual(store.get().refresh_token, "r2")

    def test_seeded_token_without_expiry_is_refreshed(self):
        store = self.make_store(SpotifyToken(access_token="", refresh_token="seed"))
        self.assertEqual(store.get_valid_access_token(), "refreshed-access")

    def test_access_only_seed_is_used_as_is(self):
        store = self.make_store(SpotifyToken(access_token="only-access"))
        self.assertEqual(store.get_valid_access_token(), "only-access")
        self.assertEqual(self.client.called("refresh_access_token"), [])

    def test_refresh_failure_raises_and_keeps_state(self):
        self.client.errors["refresh_access_token"] = SpotifyApiError(400, "Refresh token revoked")
        original = SpotifyToken(access_token="a", refresh_token="r", expires_at=NOW - 5)
        store = self.make_store(original)

        with self.assertRaises(TokenRefreshError) as ctx:
            store.get_valid_access_token()

        self.assertIn("Refresh token revoked", ctx.exception.message)
        self.assertEqual(store.get(), original)

    def test_empty_store_is_not_authenticated(self):
        store = self.make_store(None)
        with self.assertRaises(NotAuthenticatedError):
            store.get_valid_access_token()
        with self.assertRaises(NotAuthenticatedError):
            store.refresh()

    def test_set_replaces_token(self):
        store = self.make_store(None)
        token = SpotifyToken(access_token="a", refresh_token="r", expires_at=NOW + 3600)
        store.set(token)
        self.assertEqual(store.get(), token)


if __name__ == "__main__":
    unittest.main()
