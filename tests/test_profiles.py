"""Tests for the credit profile store."""
import threading

import pytest

from confidential_credit.server.profiles import ProfileStore
from confidential_credit.shared.errors import (
    MalformedCiphertext,
    ProfileNotFound,
    UnauthorizedCaller,
)
from confidential_credit.shared.protocol import OpaqueValue

from conftest import ALICE, BOB


def encrypt_profile(codec, income=50_000, assets=100_000, debts=20_000, history=85, utilization=30):
    return dict(
        income=codec.encrypt(income),
        assets=codec.encrypt(assets),
        debts=codec.encrypt(debts),
        payment_history=codec.encrypt(history),
        credit_utilization=codec.encrypt(utilization),
    )


class TestProfileStore:
    """Wholesale, self-service profile writes."""

    def setup_method(self):
        from confidential_credit.client.crypto import OpaqueCodec
        from confidential_credit.shared.clock import FixedClock

        self.codec = OpaqueCodec.simulated(seed="profiles")
        self.clock = FixedClock()
        self.store = ProfileStore(self.codec, self.clock)

    def test_submit_and_get(self):
        fields = encrypt_profile(self.codec)
        self.store.submit(ALICE, ALICE, **fields)

        profile = self.store.get(ALICE)
        assert profile.exists
        assert profile.owner == ALICE
        assert profile.income == fields["income"]
        assert self.codec.decrypt(profile.credit_utilization) == 30
        assert profile.updated_at == self.clock.now()
        assert profile.revision == 1
        assert profile.computed_score is None

    def test_get_missing(self):
        with pytest.raises(ProfileNotFound):
            self.store.get(BOB)
        assert not self.store.exists(BOB)

    def test_only_owner_can_write(self):
        with pytest.raises(UnauthorizedCaller):
            self.store.submit(BOB, ALICE, **encrypt_profile(self.codec))
        assert not self.store.exists(ALICE)

    def test_utilization_defaults_to_zero(self):
        fields = encrypt_profile(self.codec)
        del fields["credit_utilization"]
        self.store.submit(ALICE, ALICE, **fields)
        assert self.codec.decrypt(self.store.get(ALICE).credit_utilization) == 0

    def test_malformed_input_leaves_no_state(self):
        """Validation happens before any write."""
        fields = encrypt_profile(self.codec)
        fields["debts"] = OpaqueValue(b"short")
        with pytest.raises(MalformedCiphertext):
            self.store.submit(ALICE, ALICE, **fields)
        assert not self.store.exists(ALICE)

    def test_resubmission_overwrites_wholesale(self):
        self.store.submit(ALICE, ALICE, **encrypt_profile(self.codec, income=1))
        self.clock.advance(60)
        self.store.submit(ALICE, ALICE, **encrypt_profile(self.codec, income=2, assets=3))

        profile = self.store.get(ALICE)
        assert self.codec.decrypt(profile.income) == 2
        assert self.codec.decrypt(profile.assets) == 3
        assert profile.revision == 2
        assert profile.updated_at == self.clock.now()
        assert len(self.store) == 1

    def test_resubmission_marks_score_stale(self):
        """The old score is kept but flagged as stale."""
        self.store.submit(ALICE, ALICE, **encrypt_profile(self.codec))
        score = self.codec.encrypt(1234)
        self.store.attach_score(ALICE, score, revision=1)
        assert not self.store.get(ALICE).is_score_stale

        self.store.submit(ALICE, ALICE, **encrypt_profile(self.codec, income=99))
        profile = self.store.get(ALICE)
        assert profile.computed_score == score
        assert profile.is_score_stale

    def test_concurrent_submissions_never_mix(self):
        """Readers only ever see complete profiles."""
        a = encrypt_profile(self.codec, income=1, assets=1, debts=1, history=1, utilization=1)
        b = encrypt_profile(self.codec, income=2, assets=2, debts=2, history=2, utilization=2)
        self.store.submit(ALICE, ALICE, **a)

        seen = []
        stop = threading.Event()

        def writer(fields):
            for _ in range(200):
                self.store.submit(ALICE, ALICE, **fields)

        def reader():
            while not stop.is_set():
                p = self.store.get(ALICE)
                seen.append({p.income, p.assets, p.debts, p.payment_history, p.credit_utilization})

        threads = [threading.Thread(target=writer, args=(f,)) for f in (a, b)]
        watcher = threading.Thread(target=reader)
        watcher.start()
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        stop.set()
        watcher.join()

        for fields in seen:
            assert len(fields) == 1
        assert self.store.get(ALICE).revision == 401
