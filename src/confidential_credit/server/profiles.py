"""
Credit profile store.

In-memory map of owner -> CreditProfile. Profiles are immutable and
swapped whole under a per-owner lock, so a reader sees either the previous
submission or the new one, never a mix.
"""
import threading
from dataclasses import replace
from typing import Dict, List, Optional

from loguru import logger

from confidential_credit.client.crypto import OpaqueCodec
from confidential_credit.shared.clock import Clock, SystemClock
from confidential_credit.shared.errors import ProfileNotFound, UnauthorizedCaller
from confidential_credit.shared.protocol import CreditProfile, Identity, OpaqueValue


class ProfileStore:
    """Per-owner store of encrypted financial attributes."""

    def __init__(self, codec: OpaqueCodec, clock: Optional[Clock] = None):
        """
        Args:
            codec: Validates incoming blobs and encrypts the default utilization
            clock: Time source for ``updated_at``
        """
        self.codec = codec
        self.clock = clock or SystemClock()
        self._profiles: Dict[Identity, CreditProfile] = {}
        self._owner_locks: Dict[Identity, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def _lock_for(self, owner: Identity) -> threading.Lock:
        with self._locks_guard:
            lock = self._owner_locks.get(owner)
            if lock is None:
                lock = self._owner_locks[owner] = threading.Lock()
            return lock

    def submit(
        self,
        caller: Identity,
        owner: Identity,
        income: OpaqueValue,
        assets: OpaqueValue,
        debts: OpaqueValue,
        payment_history: OpaqueValue,
        credit_utilization: Optional[OpaqueValue] = None,
    ) -> CreditProfile:
        """
        Overwrite ``owner``'s profile with new opaque attributes.

        Self-service only: ``caller`` must be ``owner``. Any previously
        computed score is kept but becomes stale.

        Args:
            caller: Identity performing the write
            owner: Profile owner
            income: Encrypted income
            assets: Encrypted assets
            debts: Encrypted debts
            payment_history: Encrypted payment history score
            credit_utilization: Encrypted utilization; encrypted 0 if omitted

        Returns:
            The stored profile
        """
        if caller != owner:
            raise UnauthorizedCaller(caller, f"write the profile of {owner!r}")

        for value in (income, assets, debts, payment_history):
            self.codec.validate(value)
        if credit_utilization is None:
            credit_utilization = self.codec.encrypt(0)
        else:
            self.codec.validate(credit_utilization)

        with self._lock_for(owner):
            previous = self._profiles.get(owner)
            profile = CreditProfile(
                owner=owner,
                income=income,
                assets=assets,
                debts=debts,
                payment_history=payment_history,
                credit_utilization=credit_utilization,
                updated_at=self.clock.now(),
                revision=previous.revision + 1 if previous else 1,
                computed_score=previous.computed_score if previous else None,
                score_revision=previous.score_revision if previous else None,
            )
            self._profiles[owner] = profile

        logger.debug(f"Profile for {owner} stored (revision {profile.revision})")
        return profile

    def get(self, owner: Identity) -> CreditProfile:
        profile = self._profiles.get(owner)
        if profile is None or not profile.exists:
            raise ProfileNotFound(owner)
        return profile

    def exists(self, owner: Identity) -> bool:
        profile = self._profiles.get(owner)
        return profile is not None and profile.exists

    def attach_score(
        self,
        owner: Identity,
        score: OpaqueValue,
        revision: int,
    ) -> CreditProfile:
        """
        Record a computed score against the revision it was derived from.

        If the owner resubmitted while the score was being computed, the
        stored profile keeps its newer attributes and the score is marked
        stale.
        """
        with self._lock_for(owner):
            profile = self.get(owner)
            profile = replace(profile, computed_score=score, score_revision=revision)
            self._profiles[owner] = profile
        return profile

    def owners(self) -> List[Identity]:
        return [owner for owner, p in list(self._profiles.items()) if p.exists]

    def __len__(self) -> int:
        return len(self.owners())
