"""
Tests for Identity Resolution

Static token, JWT subject, and every way of ending up anonymous.
"""

from datetime import timedelta

import pytest
from jose import jwt

from library_catalog.services.identity import (
    MAX_USER_ID,
    Identity,
    IdentityResolver,
    extract_bearer_token,
    hash_user_id,
)
from library_catalog.services.security import ALGORITHM, create_access_token

SECRET = "unit-test-secret"


@pytest.fixture
def resolver() -> IdentityResolver:
    return IdentityResolver(auth_token="static-token", auth_username="admin", jwt_secret=SECRET)


class TestHashUserId:
    def test_deterministic(self):
        assert hash_user_id("maria") == hash_user_id("maria")

    def test_distinct_subjects_differ(self):
        assert hash_user_id("maria") != hash_user_id("joao")

    @pytest.mark.parametrize("subject", ["admin", "x", "a" * 300, "", None])
    def test_in_positive_range(self, subject):
        value = hash_user_id(subject)
        assert 1 <= value < MAX_USER_ID

    def test_missing_subject_uses_placeholder(self):
        assert hash_user_id(None) == hash_user_id("user")


class TestExtractBearerToken:
    @pytest.mark.parametrize(
        ("header", "expected"),
        [
            ("Bearer abc", "abc"),
            ("Bearer   abc  ", "abc"),
            ("Bearer ", None),
            ("Basic abc", None),
            ("bearer abc", None),
            ("", None),
            (None, None),
        ],
    )
    def test_extract(self, header, expected):
        assert extract_bearer_token(header) == expected


class TestIdentityResolver:
    def test_static_token_maps_to_admin(self, resolver):
        identity = resolver.resolve("Bearer static-token")

        assert identity == Identity(user_id=hash_user_id("admin"), username="admin")

    def test_jwt_subject(self, resolver):
        token = create_access_token("maria", secret=SECRET)

        identity = resolver.resolve(f"Bearer {token}")

        assert identity.username == "maria"
        assert identity.user_id == hash_user_id("maria")

    def test_jwt_id_claim_when_no_subject(self, resolver):
        token = jwt.encode({"id": 42}, SECRET, algorithm=ALGORITHM)

        identity = resolver.resolve(f"Bearer {token}")

        assert identity.username == "42"

    def test_jwt_wrong_secret_is_anonymous(self, resolver):
        token = create_access_token("maria", secret="other-secret")

        assert resolver.resolve(f"Bearer {token}") is None

    def test_expired_jwt_is_anonymous(self, resolver):
        token = create_access_token("maria", expires_delta=timedelta(seconds=-10), secret=SECRET)

        assert resolver.resolve(f"Bearer {token}") is None

    def test_garbage_token_is_anonymous(self, resolver):
        assert resolver.resolve("Bearer not.a.jwt") is None

    def test_no_header_is_anonymous(self, resolver):
        assert resolver.resolve(None) is None

    def test_jwt_ignored_without_secret(self):
        resolver = IdentityResolver(auth_token="static-token", auth_username="admin", jwt_secret="")
        token = create_access_token("maria", secret=SECRET)

        assert resolver.resolve(f"Bearer {token}") is None

    def test_static_token_without_username(self):
        resolver = IdentityResolver(auth_token="static-token", auth_username="", jwt_secret="")

        assert resolver.resolve("Bearer static-token").username == "token-user"

    def test_enabled(self):
        assert IdentityResolver("t", "admin", "").enabled
        assert IdentityResolver("", "admin", "s").enabled
        assert not IdentityResolver("", "admin", "").enabled
