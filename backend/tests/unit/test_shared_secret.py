"""Tests for the game-server shared secret check."""

from pydantic import SecretStr

from guildlink.core.shared_secret import compare_shared_secret

_SECRET = SecretStr("correct horse battery staple")


class TestCompareSharedSecret:
    """compare_shared_secret()"""

    def test_matching_secret(self):
        assert compare_shared_secret("correct horse battery staple", _SECRET) is True

    def test_wrong_secret(self):
        assert compare_shared_secret("correct horse battery stapler", _SECRET) is False

    def test_empty_provided(self):
        assert compare_shared_secret("", _SECRET) is False

    def test_unset_expected_never_matches(self):
        """An unconfigured server rejects even an empty secret."""
        assert compare_shared_secret("", SecretStr("")) is False

    def test_non_ascii(self):
        secret = SecretStr("clé-secrète")
        assert compare_shared_secret("clé-secrète", secret) is True
        assert compare_shared_secret("cle-secrete", secret) is False
