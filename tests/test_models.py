import hashlib
import unittest
from datetime import datetime, timezone

from sqlalchemy import create_engine, event
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import sessionmaker

from evatlottery.models import Admin, Base, Participant, RedemptionEntry, badge_for_scans

NOW = datetime(2025, 1, 14, 12, 0, tzinfo=timezone.utc)


def _entry(participant, receipt="GRA-VAT-2025-AB12-CD34-EF56", **overrides):
    values = dict(
        participant=participant,
        receipt_unique_id=receipt,
        receipt_variant="token",
        redeemed_at=NOW,
        outcome="LOSE",
        transaction_hash=hashlib.sha256(receipt.encode()).hexdigest(),
        random_seed="seed",
    )
    values.update(overrides)
    return RedemptionEntry(**values)


class BadgeTestCase(unittest.TestCase):
    def test_thresholds(self):
        self.assertIsNone(badge_for_scans(0))
        self.assertIsNone(badge_for_scans(9))
        self.assertEqual(badge_for_scans(10), "Bronze")
        self.assertEqual(badge_for_scans(24), "Bronze")
        self.assertEqual(badge_for_scans(25), "Silver")
        self.assertEqual(badge_for_scans(49), "Silver")
        self.assertEqual(badge_for_scans(50), "Gold")


class ModelTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)

        @event.listens_for(self.engine, "connect")
        def _fk_on(dbapi_connection, _record):
            dbapi_connection.execute("PRAGMA foreign_keys=ON")

        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self):
        self.engine.dispose()

    def test_participant_get_or_create(self):
        with self.Session.begin() as session:
            first = Participant.get_or_create(session, "0241234567", now=NOW)
            again = Participant.get_or_create(session, "0241234567")
            self.assertIs(first, again)
            self.assertIsNotNone(first.id)
            self.assertEqual(first.scan_count, 0)

    def test_record_redemption_updates_aggregates(self):
        participant = Participant(phone="0241234567")
        participant.record_redemption(False, at=NOW)
        participant.record_redemption(True, at=NOW)
        self.assertEqual((participant.scan_count, participant.win_count), (2, 1))
        self.assertEqual(participant.updated_at, NOW)

        payload = participant.to_json()
        self.assertEqual(payload["phone_masked"], "024****567")
        self.assertIsNone(payload["badge"])

    def test_receipt_unique_index(self):
        with self.assertRaises(IntegrityError):
            with self.Session.begin() as session:
                participant = Participant(phone="0241234567")
                session.add(participant)
                session.add(_entry(participant))
                session.add(_entry(participant, transaction_hash="f" * 64))

    def test_prize_only_on_wins(self):
        for overrides in (
            {"outcome": "WIN"},
            {"outcome": "LOSE", "prize_tier": "GH₵5 Airtime"},
            {"outcome": "MAYBE"},
        ):
            with self.assertRaises(IntegrityError, msg=str(overrides)):
                with self.Session.begin() as session:
                    participant = Participant(phone="0241234567")
                    session.add(participant)
                    session.add(_entry(participant, **overrides))

    def test_deleting_participant_cascades_to_entries(self):
        with self.Session.begin() as session:
            participant = Participant(phone="0241234567")
            session.add(participant)
            session.add(_entry(participant))

        with self.Session.begin() as session:
            session.delete(Participant.get_by_phone(session, "0241234567"))

        with self.Session() as session:
            self.assertEqual(session.query(RedemptionEntry).count(), 0)

    def test_entry_lookup_and_admin_view(self):
        with self.Session.begin() as session:
            participant = Participant(phone="0241234567")
            session.add(participant)
            session.add(
                _entry(
                    participant,
                    outcome="WIN",
                    prize_tier="GH₵10 Airtime",
                    prize_value=10,
                )
            )

        with self.Session() as session:
            entry = RedemptionEntry.get_by_receipt(session, "GRA-VAT-2025-AB12-CD34-EF56")
            self.assertTrue(entry.is_win)
            self.assertEqual(entry.redeemed_at_utc, NOW)
            payload = entry.to_json()
            self.assertEqual(payload["phone"], "0241234567")
            self.assertEqual(payload["prize"], "GH₵10 Airtime")
            self.assertIsNone(RedemptionEntry.get_by_receipt(session, "missing"))

    def test_admin_email_and_reset_capability(self):
        with self.Session.begin() as session:
            session.add(Admin(email="  Root@Example.com ", password_hash="x", role="superuser"))
            session.add(Admin(email="staff@example.com", password_hash="x", role="staff"))

        with self.Session() as session:
            root = Admin.get_by_email(session, "ROOT@example.com")
            staff = Admin.get_by_email(session, "staff@example.com")
            self.assertEqual(root.email, "root@example.com")
            self.assertTrue(root.can_reset_data)
            self.assertFalse(staff.can_reset_data)


if __name__ == "__main__":
    unittest.main()
