"""ORM Models — SQLAlchemy declarative models for all domain entities.

Invariants:
    - All models inherit from Base (db/base.py)
    - Worker aggregate columns are written only by services/reference_ledger.py
    - Reference rows are never deleted

Design Decisions:
    - One file per entity for locality
    - All models imported here so Base.metadata is complete before
      create_all() or Alembic autogenerate runs
"""

from vouch.models.community import Community  # noqa: F401
from vouch.models.membership import Membership  # noqa: F401
from vouch.models.verification_code import VerificationCode  # noqa: F401
from vouch.models.worker import Worker  # noqa: F401
from vouch.models.booking import Booking  # noqa: F401
from vouch.models.reference import Reference  # noqa: F401
