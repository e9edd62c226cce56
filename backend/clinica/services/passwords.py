"""
Credential verifier: salted one-way hashing of user secrets with Argon2id.

The hash string embeds its own salt and cost parameters, so a verifier built
with different costs can still check hashes produced by another one.
"""

import logging
from typing import Optional

from argon2 import PasswordHasher, Type
from argon2.exceptions import InvalidHashError, VerificationError, VerifyMismatchError

from clinica.exceptions import ValidationError

logger = logging.getLogger(__name__)


class CredentialVerifier:
    def __init__(self, hasher: Optional[PasswordHasher] = None):
        self._hasher = hasher or PasswordHasher(type=Type.ID)

    def hash(self, plaintext: str) -> str:
        if not isinstance(plaintext, str) or not plaintext:
            raise ValidationError("Password must be a non-empty string", fields=["password"])
        return self._hasher.hash(plaintext)

    def verify(self, plaintext: str, stored_hash: str) -> bool:
        """
        Return True if ``plaintext`` matches ``stored_hash``.

        A mismatch is a plain False. Only a stored hash that cannot be parsed
        raises ValidationError.
        """
        if not isinstance(stored_hash, str) or not stored_hash:
            raise ValidationError("Stored password hash is missing", fields=["password"])
        if not isinstance(plaintext, str):
            return False
        try:
            return self._hasher.verify(stored_hash, plaintext)
        except VerifyMismatchError:
            return False
        except InvalidHashError as e:
            raise ValidationError("Stored password hash is malformed", fields=["password"]) from e
        except VerificationError as e:
            logger.warning("Password verification failed on a malformed hash: %s", e)
            raise ValidationError("Stored password hash is malformed", fields=["password"]) from e
