import unittest
from datetime import datetime, timedelta, timezone

from evatlottery.draw import canonical_timestamp, commit, generate_seed, receipt_hash, verify

RECEIPT = "GRA-VAT-2025-AB12-CD34-EF56"
PHONE = "0241234567"
AT = datetime(2025, 1, 14, 15, 30, 12, 123456, tzinfo=timezone.utc)
SEED = "0f" * 16


class CommitmentTestCase(unittest.TestCase):
    def test_commit_is_deterministic_hex(self):
        digest = commit(RECEIPT, PHONE, AT, SEED)
        self.assertEqual(digest, commit(RECEIPT, PHONE, AT, SEED))
        self.assertEqual(len(digest), 64)
        int(digest, 16)

    def test_every_input_changes_the_hash(self):
        base = commit(RECEIPT, PHONE, AT, SEED)
        variants = [
            commit(RECEIPT + "X", PHONE, AT, SEED),
            commit(RECEIPT, "0551234567", AT, SEED),
            commit(RECEIPT, PHONE, AT + timedelta(microseconds=1), SEED),
            commit(RECEIPT, PHONE, AT, "1f" * 16),
        ]
        self.assertNotIn(base, variants)
        self.assertEqual(len(set(variants)), len(variants))

    def test_field_boundaries_are_unambiguous(self):
        self.assertNotEqual(commit("ab", "c", AT, SEED), commit("a", "bc", AT, SEED))

    def test_naive_and_aware_utc_timestamps_agree(self):
        naive = AT.replace(tzinfo=None)
        self.assertEqual(canonical_timestamp(naive), canonical_timestamp(AT))
        self.assertEqual(canonical_timestamp(AT), "2025-01-14T15:30:12.123456+00:00")
        plus_two = AT.astimezone(timezone(timedelta(hours=2)))
        self.assertEqual(commit(RECEIPT, PHONE, plus_two, SEED), commit(RECEIPT, PHONE, AT, SEED))

    def test_verify(self):
        digest = commit(RECEIPT, PHONE, AT, SEED)
        self.assertTrue(verify(RECEIPT, PHONE, AT, SEED, digest))
        self.assertTrue(verify(RECEIPT, PHONE, canonical_timestamp(AT), SEED, digest.upper()))
        self.assertFalse(verify(RECEIPT, PHONE, AT, "00" * 16, digest))

    def test_seeds_are_fresh(self):
        seeds = {generate_seed() for _ in range(100)}
        self.assertEqual(len(seeds), 100)
        self.assertTrue(all(len(seed) == 32 for seed in seeds))

    def test_receipt_hash_is_short_prefix(self):
        self.assertEqual(len(receipt_hash(RECEIPT)), 16)
        self.assertEqual(receipt_hash(RECEIPT, 8), receipt_hash(RECEIPT)[:8])


if __name__ == "__main__":
    unittest.main()
