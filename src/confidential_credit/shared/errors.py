"""
Error taxonomy for the confidential credit engine.

Every error is a synchronous precondition violation. Nothing here is
transient, so nothing is retried by the engine.
"""


class ConfidentialCreditError(Exception):
    """Base class for all engine errors."""


class UnauthorizedCaller(ConfidentialCreditError, PermissionError):
    """Caller lacks the grant or ownership required for the operation."""

    def __init__(self, caller: str, action: str):
        self.caller = caller
        self.action = action
        super().__init__(f"{caller!r} is not authorized to {action}")


class MalformedCiphertext(ConfidentialCreditError, ValueError):
    """Opaque value has the wrong length or fails backend validation."""


class PlaintextOutOfRange(ConfidentialCreditError, ValueError):
    """Plaintext (or public scalar) cannot be represented by the codec."""


class DecryptionUnavailable(ConfidentialCreditError, PermissionError):
    """Backend holds no private key, so decryption is impossible."""


class ProfileNotFound(ConfidentialCreditError, LookupError):
    """No credit profile has been submitted for this owner."""

    def __init__(self, owner: str):
        self.owner = owner
        super().__init__(f"No credit profile for {owner!r}")


class InvalidPool(ConfidentialCreditError, LookupError):
    """Pool id is outside the registry."""

    def __init__(self, pool_id: int):
        self.pool_id = pool_id
        super().__init__(f"Pool {pool_id} does not exist")


class PoolInactive(ConfidentialCreditError, LookupError):
    """Pool exists but has been deactivated."""

    def __init__(self, pool_id: int):
        self.pool_id = pool_id
        super().__init__(f"Pool {pool_id} is inactive")
