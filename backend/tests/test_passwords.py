import pytest

from clinica.exceptions import ValidationError


class TestCredentialVerifier:

    def test_hash_then_verify_round_trip(self, verifier):
        stored = verifier.hash("admin123")
        assert stored != "admin123"
        assert verifier.verify("admin123", stored) is True

    def test_different_plaintext_does_not_verify(self, verifier):
        stored = verifier.hash("admin123")
        assert verifier.verify("admin124", stored) is False
        assert verifier.verify("", stored) is False

    def test_hashes_are_salted(self, verifier):
        assert verifier.hash("same") != verifier.hash("same")

    def test_malformed_hash_raises_validation_error(self, verifier):
        with pytest.raises(ValidationError):
            verifier.verify("admin123", "admin123")
        with pytest.raises(ValidationError):
            verifier.verify("admin123", None)

    def test_empty_password_cannot_be_hashed(self, verifier):
        with pytest.raises(ValidationError):
            verifier.hash("")
