"""Tests for builds/ledger.py module."""

import threading

import pytest

from clib_build.builds.ledger import BuildLedger
from clib_build.errors import LedgerError
from clib_build.types import BuildOutcome


class TestTryClaim:
    """Tests for BuildLedger.try_claim."""

    def test_first_claim_wins(self):
        ledger = BuildLedger()
        assert ledger.try_claim("/deps/list") is False
        assert ledger.try_claim("/deps/list") is True

    def test_distinct_paths(self):
        ledger = BuildLedger()
        assert ledger.try_claim("/deps/a") is False
        assert ledger.try_claim("/deps/b") is False
        assert len(ledger) == 2

    def test_concurrent_claims_have_one_winner(self):
        """Exactly one of many racing threads should win a path."""
        ledger = BuildLedger()
        barrier = threading.Barrier(16)
        winners = []
        lock = threading.Lock()

        def worker():
            barrier.wait()
            if not ledger.try_claim("/deps/shared"):
                with lock:
                    winners.append(threading.get_ident())

        threads = [threading.Thread(target=worker) for _ in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(winners) == 1


class TestRecord:
    """Tests for BuildLedger.record."""

    def test_record_claimed(self):
        ledger = BuildLedger()
        ledger.try_claim("/deps/a")
        ledger.record("/deps/a", BuildOutcome.BUILT)
        assert ledger.snapshot() == {"/deps/a": BuildOutcome.BUILT}

    def test_record_unclaimed(self):
        ledger = BuildLedger()
        with pytest.raises(LedgerError):
            ledger.record("/deps/a", BuildOutcome.BUILT)

    def test_write_once(self):
        """A finalized entry is never overwritten."""
        ledger = BuildLedger()
        ledger.try_claim("/deps/a")
        ledger.record("/deps/a", BuildOutcome.SKIPPED)
        with pytest.raises(LedgerError):
            ledger.record("/deps/a", BuildOutcome.BUILT)
        assert ledger.snapshot()["/deps/a"] is BuildOutcome.SKIPPED

    def test_claimed_entries_not_in_snapshot(self):
        ledger = BuildLedger()
        ledger.try_claim("/deps/pending")
        assert "/deps/pending" in ledger
        assert ledger.snapshot() == {}


class TestCounts:
    """Tests for count_built and count_skipped."""

    def test_counts(self):
        ledger = BuildLedger()
        for path, outcome in [
            ("/a", BuildOutcome.BUILT),
            ("/b", BuildOutcome.SKIPPED),
            ("/c", BuildOutcome.BUILT),
        ]:
            ledger.try_claim(path)
            ledger.record(path, outcome)
        ledger.try_claim("/d")

        assert ledger.count_built() == 2
        assert ledger.count_skipped() == 1
