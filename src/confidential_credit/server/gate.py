"""
Authorization gate.

Identities move from unauthorized to authorized per capability, never
back. The deploying owner holds every capability implicitly.
"""
import threading
from typing import Dict, Set

from loguru import logger

from confidential_credit.shared.errors import UnauthorizedCaller
from confidential_credit.shared.protocol import Capability, Identity


class AuthorizationGate:
    """Grow-only capability list consulted by the engine, store and registry."""

    def __init__(self, owner: Identity):
        """
        Args:
            owner: Deploying identity, implicitly authorized for everything
        """
        self.owner = owner
        self._grants: Dict[Capability, Set[Identity]] = {c: set() for c in Capability}
        self._lock = threading.Lock()

    def is_authorized(
        self,
        identity: Identity,
        capability: Capability = Capability.ENGINE,
    ) -> bool:
        if identity == self.owner:
            return True
        with self._lock:
            return identity in self._grants[capability]

    def require(self, identity: Identity, capability: Capability = Capability.ENGINE) -> None:
        if not self.is_authorized(identity, capability):
            raise UnauthorizedCaller(identity, f"use capability {capability.value}")

    def grant(
        self,
        granter: Identity,
        grantee: Identity,
        capability: Capability = Capability.ENGINE,
    ) -> bool:
        """
        Authorize ``grantee`` for ``capability``.

        The granter must be the owner or already hold the capability.
        Granting twice is a no-op.

        Returns:
            True if this call added a new grant
        """
        if not self.is_authorized(granter, capability):
            raise UnauthorizedCaller(granter, f"grant {capability.value}")

        with self._lock:
            if grantee == self.owner or grantee in self._grants[capability]:
                return False
            self._grants[capability].add(grantee)

        logger.info(f"Granted {capability.value} to {grantee} (by {granter})")
        return True

    def holders(self, capability: Capability) -> Set[Identity]:
        """Explicit grantees for ``capability`` (the owner is implicit)."""
        with self._lock:
            return set(self._grants[capability])
