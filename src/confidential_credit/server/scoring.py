"""
Scoring pipeline.

Combines a profile's opaque attributes into an opaque credit score using
only engine operations. Weights are fixed so identical inputs give
identical scores under a deterministic backend.
"""
from typing import Optional

from loguru import logger

from confidential_credit.server.engine import HomomorphicEngine
from confidential_credit.server.profiles import ProfileStore
from confidential_credit.shared.protocol import CreditProfile, Identity, OpaqueValue
from confidential_credit.shared.utils import (
    ASSET_WEIGHT,
    INCOME_WEIGHT,
    PAYMENT_HISTORY_WEIGHT,
    SCORE_SCALE,
    UTILIZATION_WEIGHT,
    Timer,
)


class ScoringPipeline:
    """
    Weighted combination of encrypted attributes.

    The pipeline acts on the engine under its own service identity, which
    must hold the ENGINE grant.
    """

    def __init__(
        self,
        engine: HomomorphicEngine,
        store: ProfileStore,
        identity: Identity,
    ):
        self.engine = engine
        self.store = store
        self.identity = identity

    def score_profile(self, profile: CreditProfile) -> OpaqueValue:
        """
        Compute the opaque score for ``profile`` without storing it.

        Returns:
            OpaqueValue decrypting to
            (35*history + 3*income + 20*utilization + 15*assets) * SCORE_SCALE
        """
        engine, me = self.engine, self.identity

        payment_term = engine.scalar_multiply(me, profile.payment_history, PAYMENT_HISTORY_WEIGHT)
        income_term = engine.scalar_multiply(me, profile.income, INCOME_WEIGHT)
        utilization_term = engine.scalar_multiply(me, profile.credit_utilization, UTILIZATION_WEIGHT)
        asset_term = engine.scalar_multiply(me, profile.assets, ASSET_WEIGHT)

        total = engine.add(
            me,
            engine.add(me, engine.add(me, payment_term, income_term), utilization_term),
            asset_term,
        )
        return engine.scalar_multiply(me, total, SCORE_SCALE)

    def compute_score(self, owner: Identity, caller: Optional[Identity] = None) -> OpaqueValue:
        """
        Compute and store ``owner``'s credit score.

        Args:
            owner: Profile owner
            caller: Requesting identity, for logging only

        Returns:
            The opaque score, also attached to the profile
        """
        profile = self.store.get(owner)

        with Timer() as t:
            score = self.score_profile(profile)
        self.store.attach_score(owner, score, profile.revision)

        logger.info(
            f"Score computed for {owner} (revision {profile.revision}, "
            f"requested by {caller or owner}) in {t.elapsed_ms:.2f}ms"
        )
        return score
