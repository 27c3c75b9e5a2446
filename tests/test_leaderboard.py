import hashlib
import unittest
from datetime import datetime, timedelta, timezone

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from evatlottery.leaderboard import (
    ALL_TIME,
    WEEKLY,
    Leaderboard,
    leaderboard_for,
    rank,
)
from evatlottery.models import Base, Participant, RedemptionEntry

NOW = datetime(2025, 1, 20, 12, 0, tzinfo=timezone.utc)


def _add_scans(session, participant, count, *, at, wins=0, start=0):
    for i in range(count):
        won = i < wins
        receipt = f"{participant.phone}-{start + i}"
        session.add(
            RedemptionEntry(
                participant=participant,
                receipt_unique_id=receipt,
                receipt_variant="token",
                redeemed_at=at - timedelta(minutes=i),
                outcome="WIN" if won else "LOSE",
                prize_tier="GH₵5 Airtime" if won else None,
                prize_value=5 if won else 0,
                transaction_hash=hashlib.sha256(receipt.encode()).hexdigest(),
                random_seed="seed",
            )
        )
        participant.record_redemption(won, at=at)


class LeaderboardTestCase(unittest.TestCase):
    def setUp(self):
        self.engine = create_engine("sqlite+pysqlite:///:memory:", future=True)
        Base.metadata.create_all(self.engine)
        self.Session = sessionmaker(
            bind=self.engine, future=True, expire_on_commit=False
        )

    def tearDown(self):
        self.engine.dispose()

    def _seed_demo(self):
        with self.Session.begin() as session:
            for phone, scans in (
                ("0501234567", 22),
                ("0241234567", 45),
                ("0271234567", 28),
                ("0551234567", 38),
                ("0201234567", 32),
            ):
                participant = Participant(phone=phone)
                session.add(participant)
                _add_scans(session, participant, scans, at=NOW - timedelta(days=1))

    def test_all_time_orders_by_scans_descending(self):
        self._seed_demo()
        with self.Session() as session:
            rows = rank(session, ALL_TIME)

        self.assertEqual([row.scans for row in rows], [45, 38, 32, 28, 22])
        self.assertEqual([row.rank for row in rows], [1, 2, 3, 4, 5])
        self.assertEqual(rows[0].masked_participant_id, "024****567")
        self.assertEqual(
            [row.badge for row in rows],
            ["Silver", "Silver", "Silver", "Silver", "Bronze"],
        )

    def test_ties_are_broken_by_participant_id(self):
        with self.Session.begin() as session:
            for phone in ("0551111111", "0241111111"):
                participant = Participant(phone=phone)
                session.add(participant)
                _add_scans(session, participant, 3, at=NOW)

        with self.Session() as session:
            rows = rank(session, ALL_TIME)
        self.assertEqual(
            [row.participant_id for row in rows], ["0241111111", "0551111111"]
        )

    def test_participants_without_scans_are_not_ranked(self):
        with self.Session.begin() as session:
            session.add(Participant(phone="0241234567"))
        with self.Session() as session:
            self.assertEqual(rank(session, ALL_TIME), [])

    def test_weekly_counts_only_the_trailing_seven_days(self):
        with self.Session.begin() as session:
            veteran = Participant(phone="0241234567")
            newcomer = Participant(phone="0551234567")
            session.add_all([veteran, newcomer])
            _add_scans(session, veteran, 30, at=NOW - timedelta(days=10))
            _add_scans(session, veteran, 2, at=NOW - timedelta(hours=1), start=100)
            _add_scans(session, newcomer, 5, at=NOW - timedelta(days=2), wins=2)

        with self.Session() as session:
            weekly = rank(session, WEEKLY, now=NOW)
            all_time = rank(session, ALL_TIME, now=NOW)

        self.assertEqual(
            [(row.participant_id, row.scans, row.wins) for row in weekly],
            [("0551234567", 5, 2), ("0241234567", 2, 0)],
        )
        self.assertEqual(all_time[0].participant_id, "0241234567")
        self.assertEqual(all_time[0].scans, 32)

    def test_leaderboard_for_includes_own_rank_outside_top(self):
        self._seed_demo()
        with self.Session() as session:
            board = leaderboard_for(session, "0501234567", ALL_TIME, limit=3)

        self.assertEqual(len(board.rows), 3)
        self.assertEqual(board.user_rank, 5)
        self.assertEqual(board.user_scans, 22)

        payload = board.to_json()
        self.assertEqual(
            set(payload),
            {"period", "leaderboard", "user_rank", "user_scans", "user_wins"},
        )
        self.assertNotIn("phone", payload["leaderboard"][0])
        self.assertEqual(payload["leaderboard"][0]["phone_masked"], "024****567")

    def test_unknown_participant_has_no_rank(self):
        self._seed_demo()
        with self.Session() as session:
            board = leaderboard_for(session, "0209999999", ALL_TIME)
        self.assertIsNone(board.user_rank)
        self.assertEqual(board.user_scans, 0)

    def test_unknown_period_is_rejected(self):
        with self.Session() as session:
            with self.assertRaises(ValueError):
                rank(session, "monthly")

    def test_leaderboard_from_webhook_payload(self):
        board = Leaderboard.from_json(
            {
                "leaderboard": [
                    {
                        "rank": 1,
                        "phone_masked": "024****567",
                        "scans": 45,
                        "wins": 3,
                        "badge": {"name": "Silver", "emoji": "S"},
                    },
                    {"rank": 2, "phone_masked": "055****567", "scans": 12, "wins": 0},
                ],
                "user_rank": 2,
                "user_scans": 12,
                "user_wins": 0,
            },
            WEEKLY,
        )

        self.assertEqual(board.period, WEEKLY)
        self.assertEqual(board.rows[0].badge, "Silver")
        self.assertEqual(board.rows[1].badge, "Bronze")
        self.assertEqual(board.user_rank, 2)


if __name__ == "__main__":
    unittest.main()
