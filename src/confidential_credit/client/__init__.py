"""Client-side components: the opaque value codec and the borrower flow."""
from confidential_credit.client.crypto import OpaqueCodec
from confidential_credit.client.backends import (
    EncryptionBackend,
    PaillierBackend,
    SimulatedBackend,
    create_backend,
)
from confidential_credit.client.borrower import BorrowerClient

__all__ = [
    "OpaqueCodec",
    "EncryptionBackend",
    "PaillierBackend",
    "SimulatedBackend",
    "create_backend",
    "BorrowerClient",
]
