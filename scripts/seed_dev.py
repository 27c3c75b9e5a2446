"""Reset the development ledger and fill it with demo data.

Creates a superuser admin and five participants whose scan totals give the
leaderboard a visible spread (45/38/32/28/22). Entries are written straight
to the ledger, spread over the past weeks, so the hourly scan cap does not
apply.
"""

from __future__ import annotations

import logging
import random
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import sessionmaker

from evatlottery.config import load_settings
from evatlottery.db.engine import make_engine
from evatlottery.draw import DrawEngine, commit, generate_seed
from evatlottery.models import Admin, Base, Participant, RedemptionEntry
from evatlottery.receipts import generate_codes, parse

logger = logging.getLogger(__name__)

DEMO_PARTICIPANTS = {
    "0241234567": 45,
    "0551234567": 38,
    "0201234567": 32,
    "0271234567": 28,
    "0501234567": 22,
}


def main() -> None:
    """Seed the development database with sample data."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    settings = load_settings()
    engine = make_engine(settings.database_url)

    with engine.connect() as conn:
        conn.exec_driver_sql("PRAGMA foreign_keys=OFF")
        Base.metadata.drop_all(bind=conn)
        conn.exec_driver_sql("PRAGMA foreign_keys=ON")
        conn.commit()
    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)

    rng = random.Random(2025)
    draw_engine = DrawEngine(settings.win_percentage, settings.prize_table, rng=rng)
    now = datetime.now(timezone.utc)

    with Session.begin() as session:
        session.add(
            Admin(
                email="admin@example.com",
                password_hash="dev-hash",
                name="evat_admin",
                role="superuser",
            )
        )

        for phone, scans in DEMO_PARTICIPANTS.items():
            participant = Participant(
                phone=phone, created_at=now - timedelta(days=30), updated_at=now
            )
            session.add(participant)
            codes = generate_codes(scans, settings.qr_format, rng=rng, now=now)
            for offset, code in enumerate(codes):
                # A few hours apart so only the most recent ones count as weekly.
                redeemed_at = now - timedelta(hours=6 * (offset + 1))
                parsed = parse(code.code, settings.receipt_patterns)
                outcome = draw_engine.draw()
                seed = generate_seed()
                session.add(
                    RedemptionEntry(
                        participant=participant,
                        receipt_unique_id=parsed.unique_id,
                        receipt_variant=parsed.variant,
                        redeemed_at=redeemed_at,
                        outcome=outcome.outcome,
                        prize_tier=outcome.prize_label,
                        prize_value=outcome.prize.value if outcome.prize else 0,
                        transaction_hash=commit(parsed.unique_id, phone, redeemed_at, seed),
                        random_seed=seed,
                    )
                )
                participant.record_redemption(outcome.is_win, at=now)
            logger.info(
                "Seeded %s with %d scans (%d wins)",
                participant.masked_phone,
                participant.scan_count,
                participant.win_count,
            )

    engine.dispose()


if __name__ == "__main__":
    main()
