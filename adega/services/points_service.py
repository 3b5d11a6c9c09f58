# adega/services/points_service.py
from __future__ import annotations
import logging
import math
from collections import namedtuple

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.sql import func

from ..extensions import db
from ..model import UserPoints, PointsHistory
from ..utils.money import D
from ..utils.notify import Notifier

logger = logging.getLogger(__name__)

POINTS_PER_CURRENCY_UNIT = 10

Tier = namedtuple("Tier", "name min_points next_min")

# (name, lower bound); upper bound is the next tier's lower bound - 1
TIERS = (
    ("Bronze", 0),
    ("Prata", 2000),
    ("Ouro", 5000),
    ("Diamante", 10000),
)


def tier_for(points: int) -> Tier:
    points = max(0, int(points or 0))
    idx = 0
    for i, (_, lower) in enumerate(TIERS):
        if points >= lower:
            idx = i
    name, lower = TIERS[idx]
    next_min = TIERS[idx + 1][1] if idx + 1 < len(TIERS) else None
    return Tier(name, lower, next_min)

def points_to_next_tier(points: int) -> int:
    t = tier_for(points)
    if t.next_min is None:
        return 0
    return t.next_min - max(0, int(points or 0))

def calculate_points_from_purchase(total_amount) -> int:
    # 10 points per R$ 1,00
    return math.floor(D(total_amount) * POINTS_PER_CURRENCY_UNIT)


def add_user_points(user_id, points: int, description: str | None = None):
    """
    Atomic award: the balance moves with a single ``points = points + :delta``
    UPDATE, so concurrent awards never lose each other. The history row is
    written in the same transaction.
    """
    if not db.session.query(UserPoints.id).filter_by(user_id=user_id).first():
        db.session.add(UserPoints(user_id=user_id, points=0))
        try:
            db.session.flush()
        except IntegrityError:
            # created concurrently; the UPDATE below still applies
            db.session.rollback()

    db.session.execute(
        update(UserPoints)
        .where(UserPoints.user_id == user_id)
        .values(points=UserPoints.points + int(points), updated_at=func.now())
    )
    db.session.add(PointsHistory(user_id=user_id, points=int(points), description=description))
    db.session.commit()

def get_balance(user_id) -> int:
    row = db.session.query(UserPoints.points).filter_by(user_id=user_id).first()
    return int(row[0]) if row else 0

def points_history(user_id, limit=50):
    return (
        PointsHistory.query.filter_by(user_id=user_id)
        .order_by(PointsHistory.created_at.desc(), PointsHistory.id.desc())
        .limit(limit)
        .all()
    )


class LoyaltyLedger:
    """Points balance of one shopper, as last read from the database."""

    def __init__(self, user_id, notifier: Notifier | None = None):
        self.user_id = user_id
        self.notifier = notifier or Notifier()
        self.points = 0

    @property
    def tier(self) -> Tier:
        return tier_for(self.points)

    def load_points(self) -> int:
        if not self.user_id:
            return self.points
        try:
            self.points = get_balance(self.user_id)
        except SQLAlchemyError:
            logger.exception("Error loading points for %s", self.user_id)
            db.session.rollback()
        return self.points

    def add_points(self, amount: int, source: str, description: str | None = None, order_id=None) -> bool:
        if not self.user_id:
            return False
        description = description or f"Pontos de {source}"
        try:
            add_user_points(self.user_id, amount, description)
        except SQLAlchemyError:
            logger.exception("Error adding %s points to %s (order=%s)", amount, self.user_id, order_id)
            db.session.rollback()
            return False

        self.load_points()
        self.notifier.notify(f"🎉 Você ganhou {amount} pontos!", description)
        return True

    calculate_points_from_purchase = staticmethod(calculate_points_from_purchase)

    def as_api(self):
        t = self.tier
        return {
            "points": self.points,
            "tier": t.name,
            "tier_min_points": t.min_points,
            "next_tier_min_points": t.next_min,
            "points_to_next_tier": points_to_next_tier(self.points),
        }
