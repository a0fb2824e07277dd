"""
Encryption backends behind the opaque value codec.

Supports two implementations:
1. PaillierBackend - additively homomorphic Paillier via LightPHE
2. SimulatedBackend - reversible keyed encoding, for tests and demos only

Both produce fixed-length ciphertexts, so blob length never reveals
plaintext magnitude.
"""
import hashlib
import hmac
from abc import ABC, abstractmethod
from typing import Optional, Union

from loguru import logger

from confidential_credit.shared.errors import (
    DecryptionUnavailable,
    MalformedCiphertext,
    PlaintextOutOfRange,
)

# Plaintext width accepted by every backend.
PLAINTEXT_BITS = 256
MAX_PLAINTEXT = (1 << PLAINTEXT_BITS) - 1


def check_plaintext(value: int) -> int:
    """Reject anything that is not an int in [0, 2**256)."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise PlaintextOutOfRange(f"Expected an int, got {type(value).__name__}")
    if value < 0 or value > MAX_PLAINTEXT:
        raise PlaintextOutOfRange(f"Plaintext outside [0, 2**{PLAINTEXT_BITS})")
    return value


def check_scalar(k: int) -> int:
    """Public scalars must be non-negative ints."""
    if isinstance(k, bool) or not isinstance(k, int):
        raise PlaintextOutOfRange(f"Scalar must be an int, got {type(k).__name__}")
    if k < 0:
        raise PlaintextOutOfRange("Scalar must be non-negative")
    return k


class EncryptionBackend(ABC):
    """Abstract base class for encryption backends."""

    name: str = "abstract"

    @property
    @abstractmethod
    def ciphertext_size(self) -> int:
        """Byte length of every ciphertext this backend produces."""
        pass

    @property
    @abstractmethod
    def has_private_key(self) -> bool:
        """Whether this backend can decrypt."""
        pass

    @abstractmethod
    def encrypt_int(self, plaintext: int) -> bytes:
        """Encrypt a non-negative integer."""
        pass

    @abstractmethod
    def decrypt_int(self, ciphertext: bytes) -> int:
        """Decrypt a validated ciphertext."""
        pass

    @abstractmethod
    def add(self, a: bytes, b: bytes) -> bytes:
        """Ciphertext of plaintext(a) + plaintext(b)."""
        pass

    @abstractmethod
    def multiply(self, a: bytes, k: int) -> bytes:
        """Ciphertext of plaintext(a) * k for a public scalar k."""
        pass

    def validate(self, ciphertext: bytes) -> None:
        """Raise MalformedCiphertext if the blob cannot have come from this backend."""
        if not isinstance(ciphertext, (bytes, bytearray)):
            raise MalformedCiphertext(
                f"Expected bytes, got {type(ciphertext).__name__}"
            )
        if len(ciphertext) != self.ciphertext_size:
            raise MalformedCiphertext(
                f"Expected {self.ciphertext_size} bytes, got {len(ciphertext)}"
            )


class SimulatedBackend(EncryptionBackend):
    """
    Reversible simulation of a homomorphic scheme.

    A ciphertext is the plaintext XOR-masked with a keyed pad, followed by a
    truncated HMAC tag over the masked value. Arithmetic decrypts, operates
    and re-encrypts. Deterministic for a given seed, which lets tests compare
    ciphertexts for equality.

    NOT secure: anyone holding the seed recovers every value.
    """

    name = "simulated"
    VALUE_BYTES = PLAINTEXT_BITS // 8
    TAG_BYTES = 16

    def __init__(self, seed: Union[str, bytes] = b"confidential-credit"):
        if isinstance(seed, str):
            seed = seed.encode("utf-8")
        self._key = hashlib.sha256(b"confidential-credit/simulated/" + seed).digest()
        self._pad = int.from_bytes(
            hmac.new(self._key, b"pad", hashlib.sha256).digest(), "big"
        )

    @property
    def ciphertext_size(self) -> int:
        return self.VALUE_BYTES + self.TAG_BYTES

    @property
    def has_private_key(self) -> bool:
        return True

    def _tag(self, body: bytes) -> bytes:
        return hmac.new(self._key, b"tag" + body, hashlib.sha256).digest()[: self.TAG_BYTES]

    def encrypt_int(self, plaintext: int) -> bytes:
        check_plaintext(plaintext)
        body = (plaintext ^ self._pad).to_bytes(self.VALUE_BYTES, "big")
        return body + self._tag(body)

    def decrypt_int(self, ciphertext: bytes) -> int:
        self.validate(ciphertext)
        body = bytes(ciphertext[: self.VALUE_BYTES])
        return int.from_bytes(body, "big") ^ self._pad

    def add(self, a: bytes, b: bytes) -> bytes:
        return self.encrypt_int(self.decrypt_int(a) + self.decrypt_int(b))

    def multiply(self, a: bytes, k: int) -> bytes:
        return self.encrypt_int(self.decrypt_int(a) * check_scalar(k))

    def validate(self, ciphertext: bytes) -> None:
        super().validate(ciphertext)
        body = bytes(ciphertext[: self.VALUE_BYTES])
        tag = bytes(ciphertext[self.VALUE_BYTES:])
        if not hmac.compare_digest(tag, self._tag(body)):
            raise MalformedCiphertext("Integrity tag mismatch")


class PaillierBackend(EncryptionBackend):
    """
    Paillier backend using LightPHE.

    Addition is ciphertext multiplication mod n^2 and scalar multiplication
    is exponentiation mod n^2, so the engine never needs the private key for
    arithmetic. Ciphertexts are serialized big-endian, zero-padded to the
    byte length of n^2.

    Plaintexts live modulo n, so results are bounded the same way the
    simulated backend bounds them:
    - a scalar may not exceed ``max_scalar`` = n // 2**256, so one
      multiply of an in-range value never reaches n
    - n is at least 2**257, so one add of two in-range values never
      reaches n
    - decryption rejects anything at or above 2**256

    A chain that keeps operating on intermediates above 2**256 can still
    wrap undetected once a value reaches n.
    """

    name = "paillier"
    DEFAULT_KEY_SIZE = 1024  # bits

    def __init__(
        self,
        key_size: int = DEFAULT_KEY_SIZE,
        keys: Optional[dict] = None,
    ):
        """
        Initialize Paillier backend.

        Args:
            key_size: Paillier key size in bits
            keys: Pre-existing key dict (public-only keys cannot decrypt)
        """
        try:
            from lightphe import LightPHE
        except ImportError:
            raise ImportError("lightphe is required. Install with: pip install lightphe")

        self.key_size = key_size
        self._cs = LightPHE(algorithm_name="Paillier", keys=keys, key_size=key_size)

        self._n = int(self._cs.cs.keys["public_key"]["n"])
        self._n2 = self._n * self._n
        self._size = (self._n2.bit_length() + 7) // 8

        if self.max_scalar < 2:
            raise ValueError(
                f"Key size {key_size} is too small for {PLAINTEXT_BITS}-bit plaintexts"
            )

    @property
    def public_key(self) -> dict:
        """Public key portion, for building encrypt-only backends."""
        return {"public_key": self._cs.cs.keys.get("public_key", {})}

    @property
    def ciphertext_size(self) -> int:
        return self._size

    @property
    def max_scalar(self) -> int:
        """Largest public scalar whose product with any plaintext stays below n."""
        return self._n // (MAX_PLAINTEXT + 1)

    @property
    def has_private_key(self) -> bool:
        return self._cs.cs.keys.get("private_key") is not None

    def _to_bytes(self, c: int) -> bytes:
        return c.to_bytes(self._size, "big")

    def _to_int(self, ciphertext: bytes) -> int:
        return int.from_bytes(ciphertext, "big")

    def encrypt_int(self, plaintext: int) -> bytes:
        check_plaintext(plaintext)
        return self._to_bytes(int(self._cs.cs.encrypt(plaintext)))

    def decrypt_int(self, ciphertext: bytes) -> int:
        if not self.has_private_key:
            raise DecryptionUnavailable("Cannot decrypt without private key")
        self.validate(ciphertext)
        value = int(self._cs.cs.decrypt(self._to_int(ciphertext)))
        if value > MAX_PLAINTEXT:
            raise PlaintextOutOfRange(f"Result exceeds 2**{PLAINTEXT_BITS}")
        return value

    def add(self, a: bytes, b: bytes) -> bytes:
        return self._to_bytes((self._to_int(a) * self._to_int(b)) % self._n2)

    def multiply(self, a: bytes, k: int) -> bytes:
        check_scalar(k)
        if k > self.max_scalar:
            raise PlaintextOutOfRange(
                f"Scalar exceeds {self.max_scalar.bit_length()} bits and could wrap modulo n"
            )
        return self._to_bytes(pow(self._to_int(a), k, self._n2))

    def validate(self, ciphertext: bytes) -> None:
        super().validate(ciphertext)
        c = self._to_int(ciphertext)
        if not 0 < c < self._n2:
            raise MalformedCiphertext("Ciphertext outside the Paillier group")

    @classmethod
    def from_public_key(cls, public_key: dict) -> "PaillierBackend":
        """Encrypt-only backend from a shared public key."""
        if "public_key" in public_key:
            keys = public_key
        else:
            keys = {"public_key": public_key}
        return cls(keys=keys)


def create_backend(
    name: str = "simulated",
    seed: Union[str, bytes] = b"confidential-credit",
    key_size: int = PaillierBackend.DEFAULT_KEY_SIZE,
) -> EncryptionBackend:
    """
    Factory for encryption backends.

    Args:
        name: "simulated" or "paillier"
        seed: Seed for the simulated backend
        key_size: Key size for the Paillier backend

    Returns:
        EncryptionBackend instance
    """
    if name == "simulated":
        logger.warning("Using the simulated backend: ciphertexts are NOT secure")
        return SimulatedBackend(seed)
    if name == "paillier":
        logger.info(f"Generating {key_size}-bit Paillier keys")
        return PaillierBackend(key_size=key_size)
    raise ValueError(f"Unsupported backend: {name}")
