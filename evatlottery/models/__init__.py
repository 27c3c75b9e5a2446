from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .admin import Admin  # noqa: F401
from .participant import Participant, badge_for_scans  # noqa: F401
from .redemption import RedemptionEntry  # noqa: F401

__all__ = [
    "Base",
    "Admin",
    "Participant",
    "RedemptionEntry",
    "badge_for_scans",
]
