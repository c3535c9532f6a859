"""Unit tests for PBKDF2 password hashing."""

from change_monitor.auth import Pbkdf2CredentialHasher


class TestPbkdf2CredentialHasher:
    def test_hash_and_verify(self):
        hasher = Pbkdf2CredentialHasher(iterations=1000)
        encoded = hasher.hash("correct horse")

        assert encoded.startswith("pbkdf2_sha256$1000$")
        assert hasher.verify("correct horse", encoded)
        assert not hasher.verify("wrong horse", encoded)

    def test_salted(self):
        hasher = Pbkdf2CredentialHasher(iterations=1000)
        assert hasher.hash("same password") != hasher.hash("same password")

    def test_verify_with_older_iteration_count(self):
        old_hash = Pbkdf2CredentialHasher(iterations=1000).hash("correct horse")
        assert Pbkdf2CredentialHasher(iterations=2000).verify("correct horse", old_hash)

    def test_malformed_hash_rejected(self):
        hasher = Pbkdf2CredentialHasher(iterations=1000)

        assert not hasher.verify("password", "not-a-hash")
        assert not hasher.verify("password", "md5$1000$c2FsdA==$aGFzaA==")
        assert not hasher.verify("password", "pbkdf2_sha256$many$c2FsdA==$aGFzaA==")
