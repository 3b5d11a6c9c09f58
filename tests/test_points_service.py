"""Tests for the loyalty ledger and tiers."""

from __future__ import annotations

from decimal import Decimal

import pytest
from sqlalchemy.exc import OperationalError

from adega.model import PointsHistory, UserPoints
from adega.services import points_service
from adega.services.points_service import (
    LoyaltyLedger,
    add_user_points,
    calculate_points_from_purchase,
    points_to_next_tier,
    tier_for,
)


class TestCalculatePoints:
    @pytest.mark.parametrize("total,expected", [
        (Decimal("29.90"), 299),
        (0, 0),
        (Decimal("10.005"), 100),
        (29.9, 299),
        (Decimal("12.38"), 123),
    ])
    def test_floor_ten_per_unit(self, total, expected) -> None:
        assert calculate_points_from_purchase(total) == expected


class TestTiers:
    @pytest.mark.parametrize("points,name", [
        (0, "Bronze"),
        (1999, "Bronze"),
        (2000, "Prata"),
        (4999, "Prata"),
        (5000, "Ouro"),
        (9999, "Ouro"),
        (10000, "Diamante"),
        (250000, "Diamante"),
    ])
    def test_breakpoints(self, points: int, name: str) -> None:
        assert tier_for(points).name == name

    def test_points_to_next_tier(self) -> None:
        assert points_to_next_tier(0) == 2000
        assert points_to_next_tier(1500) == 500
        assert points_to_next_tier(9999) == 1
        assert points_to_next_tier(10000) == 0
        assert points_to_next_tier(12345) == 0


class TestAddUserPoints:
    def test_creates_balance_and_history(self, user) -> None:
        add_user_points(user.id, 150, "Bônus de boas-vindas")
        add_user_points(user.id, 50, "Compra")
        row = UserPoints.query.filter_by(user_id=user.id).one()
        assert row.points == 200
        history = PointsHistory.query.filter_by(user_id=user.id).all()
        assert sorted(h.points for h in history) == [50, 150]


class TestLoyaltyLedger:
    def test_missing_row_is_zero(self, user) -> None:
        ledger = LoyaltyLedger(user.id)
        assert ledger.load_points() == 0
        assert ledger.tier.name == "Bronze"

    def test_add_points_refreshes_and_notifies(self, user) -> None:
        ledger = LoyaltyLedger(user.id)
        assert ledger.add_points(2100, "compra", description="Compra #abc")
        assert ledger.points == 2100
        assert ledger.tier.name == "Prata"
        notice = ledger.notifier.drain()[0]
        assert notice["title"] == "🎉 Você ganhou 2100 pontos!"
        assert notice["description"] == "Compra #abc"

    def test_default_description(self, user) -> None:
        LoyaltyLedger(user.id).add_points(10, "avaliação")
        assert PointsHistory.query.one().description == "Pontos de avaliação"

    def test_failure_returns_false_and_keeps_balance(self, user, monkeypatch) -> None:
        ledger = LoyaltyLedger(user.id)
        ledger.add_points(300, "compra")

        def boom(*a, **kw):
            raise OperationalError("UPDATE", {}, Exception("rpc failed"))

        monkeypatch.setattr(points_service, "add_user_points", boom)
        assert ledger.add_points(100, "compra") is False
        assert ledger.points == 300

    def test_anonymous_cannot_earn(self, app) -> None:
        assert LoyaltyLedger(None).add_points(10, "compra") is False

    def test_as_api(self, user) -> None:
        ledger = LoyaltyLedger(user.id)
        ledger.add_points(5200, "compra")
        data = ledger.as_api()
        assert data["tier"] == "Ouro"
        assert data["points_to_next_tier"] == 4800
