"""
Homomorphic arithmetic engine.

Adds, scales and compares opaque values on behalf of authorized callers.
Comparison decrypts inside the engine; the plaintexts never leave this
module and are never logged.
"""
from typing import Optional

from loguru import logger

from confidential_credit.client.crypto import OpaqueCodec
from confidential_credit.server.audit import AuditSink, emit_audit
from confidential_credit.server.gate import AuthorizationGate
from confidential_credit.shared.clock import Clock, SystemClock
from confidential_credit.shared.protocol import (
    AuditRecord,
    Capability,
    Identity,
    OpaqueValue,
)
from confidential_credit.shared.utils import Timer


class HomomorphicEngine:
    """
    Server-side computation engine for opaque values.

    Every operation checks the caller's ENGINE grant first, then validates
    each operand, then computes. Failed calls leave no audit trail.
    """

    def __init__(
        self,
        codec: OpaqueCodec,
        gate: AuthorizationGate,
        audit_sink: Optional[AuditSink] = None,
        clock: Optional[Clock] = None,
    ):
        """
        Initialize compute engine.

        Args:
            codec: Codec whose backend performs the arithmetic
            gate: Authorization gate consulted on every call
            audit_sink: Optional sink for audit records
            clock: Time source for audit timestamps
        """
        self.codec = codec
        self.gate = gate
        self.audit_sink = audit_sink
        self.clock = clock or SystemClock()

    @property
    def backend(self):
        return self.codec.backend

    def _audit(self, operation: str, caller: Identity, payload: Optional[bytes]) -> None:
        emit_audit(
            self.audit_sink,
            AuditRecord(
                operation=operation,
                caller=caller,
                payload=payload,
                timestamp=self.clock.now(),
            ),
        )

    def add(self, caller: Identity, a: OpaqueValue, b: OpaqueValue) -> OpaqueValue:
        """
        Homomorphic addition.

        Args:
            caller: Identity invoking the engine
            a: First operand
            b: Second operand

        Returns:
            OpaqueValue decrypting to plaintext(a) + plaintext(b)
        """
        self.gate.require(caller, Capability.ENGINE)
        self.codec.validate(a)
        self.codec.validate(b)

        result = OpaqueValue(self.backend.add(a.blob, b.blob))
        self._audit("add", caller, result.blob)
        return result

    def scalar_multiply(self, caller: Identity, a: OpaqueValue, k: int) -> OpaqueValue:
        """
        Multiply an opaque value by a public scalar.

        Args:
            caller: Identity invoking the engine
            a: Opaque operand
            k: Public non-negative integer

        Returns:
            OpaqueValue decrypting to plaintext(a) * k
        """
        self.gate.require(caller, Capability.ENGINE)
        self.codec.validate(a)

        result = OpaqueValue(self.backend.multiply(a.blob, k))
        self._audit("scalar_multiply", caller, result.blob)
        return result

    def compare_at_least(self, caller: Identity, a: OpaqueValue, b: OpaqueValue) -> bool:
        """
        Order comparison without exposing either operand.

        Args:
            caller: Identity invoking the engine
            a: Left operand
            b: Right operand

        Returns:
            True iff plaintext(a) >= plaintext(b)
        """
        self.gate.require(caller, Capability.ENGINE)
        self.codec.validate(a)
        self.codec.validate(b)

        with Timer() as t:
            result = self.backend.decrypt_int(a.blob) >= self.backend.decrypt_int(b.blob)
        logger.trace(f"compare_at_least for {caller} in {t.elapsed_ms:.2f}ms")

        self._audit("compare_at_least", caller, None)
        return result

    def decrypt(self, caller: Identity, a: OpaqueValue) -> int:
        """
        Privileged decryption for audit and testing.

        Requires both ENGINE and DECRYPT grants. Never used by scoring or
        matching.
        """
        self.gate.require(caller, Capability.ENGINE)
        self.gate.require(caller, Capability.DECRYPT)
        self.codec.validate(a)

        value = self.codec.decrypt(a)
        logger.warning(f"Privileged decrypt by {caller} of {a!r}")
        self._audit("decrypt", caller, None)
        return value
