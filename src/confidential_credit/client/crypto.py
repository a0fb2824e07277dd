"""
Opaque value codec: plaintext integers in, fixed-length opaque blobs out.
"""
from typing import List, Optional, Union

from loguru import logger

from confidential_credit.client.backends import (
    EncryptionBackend,
    PaillierBackend,
    SimulatedBackend,
    create_backend,
)
from confidential_credit.shared.errors import DecryptionUnavailable, MalformedCiphertext
from confidential_credit.shared.protocol import OpaqueValue


class OpaqueCodec:
    """
    Boundary between plaintext integers and opaque values.

    Responsible for:
    - Encrypting non-negative integers into OpaqueValues
    - Decrypting (only when the backend holds the private key)
    - Validating blobs before any engine operation touches them
    """

    def __init__(self, backend: EncryptionBackend):
        """
        Initialize codec.

        Args:
            backend: Encryption backend doing the actual work
        """
        self.backend = backend

    @property
    def ciphertext_size(self) -> int:
        return self.backend.ciphertext_size

    @property
    def has_private_key(self) -> bool:
        return self.backend.has_private_key

    def encrypt(self, plaintext: int) -> OpaqueValue:
        """
        Encrypt a non-negative integer.

        Args:
            plaintext: Value in [0, 2**256)

        Returns:
            OpaqueValue of ``ciphertext_size`` bytes
        """
        return OpaqueValue(self.backend.encrypt_int(plaintext))

    def encrypt_many(self, plaintexts: List[int]) -> List[OpaqueValue]:
        return [self.encrypt(p) for p in plaintexts]

    def decrypt(self, value: OpaqueValue) -> int:
        """
        Decrypt an opaque value.

        Args:
            value: OpaqueValue produced by this codec or the engine

        Returns:
            Plaintext integer
        """
        if not self.has_private_key:
            raise DecryptionUnavailable("Cannot decrypt without private key")
        self.validate(value)
        return self.backend.decrypt_int(value.blob)

    def validate(self, value: OpaqueValue) -> OpaqueValue:
        """Raise MalformedCiphertext unless ``value`` is a well-formed blob."""
        if not isinstance(value, OpaqueValue):
            raise MalformedCiphertext(
                f"Expected OpaqueValue, got {type(value).__name__}"
            )
        self.backend.validate(value.blob)
        return value

    def from_hex(self, value: str) -> OpaqueValue:
        """Parse and validate a hex-encoded blob received over the wire."""
        try:
            opaque = OpaqueValue.from_hex(value)
        except ValueError as e:
            raise MalformedCiphertext(f"Invalid hex encoding: {e}") from e
        return self.validate(opaque)

    @classmethod
    def simulated(cls, seed: Union[str, bytes] = b"confidential-credit") -> "OpaqueCodec":
        """Codec over the reversible simulation (tests and demos only)."""
        return cls(SimulatedBackend(seed))

    @classmethod
    def paillier(
        cls,
        key_size: int = PaillierBackend.DEFAULT_KEY_SIZE,
        keys: Optional[dict] = None,
    ) -> "OpaqueCodec":
        """Codec over a Paillier key pair (or public key only)."""
        return cls(PaillierBackend(key_size=key_size, keys=keys))

    @classmethod
    def from_settings(cls, settings) -> "OpaqueCodec":
        """
        Create codec from application settings.

        Args:
            settings: confidential_credit.config.Settings

        Returns:
            OpaqueCodec instance
        """
        backend = create_backend(
            settings.BACKEND,
            seed=settings.SIMULATION_SEED,
            key_size=settings.PAILLIER_KEY_SIZE,
        )
        logger.info(
            f"Codec ready: backend={backend.name}, ciphertext_size={backend.ciphertext_size}"
        )
        return cls(backend)
