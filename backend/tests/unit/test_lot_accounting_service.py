"""Tests for the LotAccountingService."""

import pytest
from datetime import datetime, timedelta, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from models import (
    LOT_STATUS_ACTIVE,
    LOT_STATUS_SOLD,
    TRANSACTION_TYPE_BUY,
    TRANSACTION_TYPE_SELL,
    ShareLot,
    Stock,
    Transaction,
    User,
)
from services.exceptions import ConflictError, NotFoundError, ValidationError
from services.lot_accounting_service import LotAccountingService
from tests.fixtures import buy, create_stock


def _active_shares(db: Session, stock: Stock) -> int:
    lots = db.query(ShareLot).filter_by(stock_id=stock.id, status=LOT_STATUS_ACTIVE).all()
    return sum(lot.shares for lot in lots)


def _bought_shares(db: Session, stock: Stock) -> int:
    txns = db.query(Transaction).filter_by(
        stock_id=stock.id, transaction_type=TRANSACTION_TYPE_BUY
    ).all()
    return sum(t.shares for t in txns)


def _sold_shares(db: Session, stock: Stock) -> int:
    txns = db.query(Transaction).filter_by(
        stock_id=stock.id, transaction_type=TRANSACTION_TYPE_SELL
    ).all()
    return sum(t.shares for t in txns)


# --- record_buy ---


class TestRecordBuy:
    def test_creates_transaction_and_one_active_lot(self, db: Session, stock: Stock):
        result = LotAccountingService.record_buy(
            db, stock.user_id, stock.id, 10, Decimal("100"), datetime(2024, 3, 5)
        )
        db.commit()

        txn = result.transaction
        assert txn.transaction_type == TRANSACTION_TYPE_BUY
        assert txn.shares == 10
        assert txn.price_per_share == Decimal("100")
        assert txn.total_amount == Decimal("1000")

        lots = db.query(ShareLot).filter_by(stock_id=stock.id).all()
        assert len(lots) == 1
        lot = lots[0]
        assert lot.id == result.lot.id
        assert lot.buy_transaction_id == txn.id
        assert lot.status == LOT_STATUS_ACTIVE
        assert lot.shares == 10
        assert lot.buy_price_per_share == Decimal("100")
        assert lot.buy_date == datetime(2024, 3, 5)
        assert lot.sell_transaction_id is None
        assert lot.sell_price_per_share is None
        assert lot.sell_date is None

    def test_buy_date_defaults_to_now(self, db: Session, stock: Stock):
        before = datetime.now(timezone.utc).replace(tzinfo=None)
        result = buy(db, stock, 1, "5")
        after = datetime.now(timezone.utc).replace(tzinfo=None)

        assert before <= result.lot.buy_date <= after
        assert result.transaction.transaction_date == result.lot.buy_date

    def test_aware_buy_date_is_stored_as_utc(self, db: Session, stock: Stock):
        eastern = timezone(timedelta(hours=-5))
        result = buy(db, stock, 1, "5", datetime(2024, 12, 31, 22, 0, tzinfo=eastern))

        assert result.lot.buy_date == datetime(2025, 1, 1, 3, 0)

    @pytest.mark.parametrize("shares", [0, -3])
    def test_rejects_non_positive_shares(self, db: Session, stock: Stock, shares):
        with pytest.raises(ValidationError, match="Shares must be positive"):
            LotAccountingService.record_buy(db, stock.user_id, stock.id, shares, Decimal("10"))
        assert db.query(Transaction).count() == 0
        assert db.query(ShareLot).count() == 0

    def test_rejects_non_positive_price(self, db: Session, stock: Stock):
        with pytest.raises(ValidationError, match="Price per share must be positive"):
            LotAccountingService.record_buy(db, stock.user_id, stock.id, 5, Decimal("0"))
        assert db.query(Transaction).count() == 0

    def test_rejects_price_finer_than_stored_precision(self, db: Session, stock: Stock):
        with pytest.raises(ValidationError, match="at most 6 decimal places"):
            LotAccountingService.record_buy(
                db, stock.user_id, stock.id, 10, Decimal("0.0000001")
            )
        assert db.query(Transaction).count() == 0
        assert db.query(ShareLot).count() == 0

    def test_rejects_total_too_large_to_store(self, db: Session, stock: Stock):
        with pytest.raises(ValidationError, match="Total amount must be less than"):
            LotAccountingService.record_buy(
                db, stock.user_id, stock.id, 1_000_000, Decimal("2000000")
            )
        assert db.query(Transaction).count() == 0

    def test_stored_amounts_match_inputs(self, db: Session, stock: Stock):
        result = buy(db, stock, 1_000_000, "1.000004")
        db.expire_all()

        lot = db.get(ShareLot, result.lot.id)
        txn = db.get(Transaction, result.transaction.id)
        assert lot.buy_price_per_share == Decimal("1.000004")
        assert txn.total_amount == Decimal("1000004")

    def test_rejects_float_price(self, db: Session, stock: Stock):
        with pytest.raises(ValidationError, match="decimal amount"):
            LotAccountingService.record_buy(db, stock.user_id, stock.id, 5, 10.5)

    def test_unknown_stock(self, db: Session, user: User):
        with pytest.raises(NotFoundError, match="Stock not found"):
            LotAccountingService.record_buy(db, user.id, "missing", 5, Decimal("10"))

    def test_other_users_stock(self, db: Session, stock: Stock, other_user: User):
        with pytest.raises(NotFoundError):
            LotAccountingService.record_buy(db, other_user.id, stock.id, 5, Decimal("10"))
        assert db.query(Transaction).count() == 0


# --- record_sell ---


class TestRecordSell:
    def test_sells_selected_lots_at_one_price(self, db: Session, stock: Stock):
        first = buy(db, stock, 5, "10", datetime(2024, 1, 2))
        second = buy(db, stock, 5, "20", datetime(2024, 1, 3))

        result = LotAccountingService.record_sell(
            db,
            stock.user_id,
            stock.id,
            [first.lot.id, second.lot.id],
            Decimal("15"),
            datetime(2024, 6, 1),
        )
        db.commit()

        assert result.total_shares == 10
        assert result.total_amount == Decimal("150")
        assert result.lot_ids == [first.lot.id, second.lot.id]

        txn = result.transaction
        assert txn.transaction_type == TRANSACTION_TYPE_SELL
        assert txn.shares == 10
        assert txn.price_per_share == Decimal("15")
        assert txn.total_amount == Decimal("150")
        assert txn.transaction_date == datetime(2024, 6, 1)

        lots = db.query(ShareLot).filter_by(stock_id=stock.id).all()
        assert all(lot.status == LOT_STATUS_SOLD for lot in lots)
        assert all(lot.sell_transaction_id == txn.id for lot in lots)
        assert all(lot.sell_date == datetime(2024, 6, 1) for lot in lots)
        gains = sorted(lot.realized_gain for lot in lots)
        assert gains == [Decimal("-25"), Decimal("25")]
        assert sum(gains) == Decimal("0")

    def test_leaves_unselected_lots_active(self, db: Session, stock: Stock):
        first = buy(db, stock, 5, "10")
        second = buy(db, stock, 7, "12")

        LotAccountingService.record_sell(
            db, stock.user_id, stock.id, [first.lot.id], Decimal("11")
        )
        db.commit()

        db.refresh(second.lot)
        assert second.lot.status == LOT_STATUS_ACTIVE
        assert _active_shares(db, stock) == 7

    def test_duplicate_lot_ids_count_once(self, db: Session, stock: Stock):
        lot = buy(db, stock, 4, "10").lot

        result = LotAccountingService.record_sell(
            db, stock.user_id, stock.id, [lot.id, lot.id], Decimal("12")
        )

        assert result.total_shares == 4
        assert result.lot_ids == [lot.id]

    def test_empty_selection(self, db: Session, stock: Stock):
        with pytest.raises(ValidationError, match="Please select at least one lot to sell"):
            LotAccountingService.record_sell(db, stock.user_id, stock.id, [], Decimal("10"))

    def test_non_positive_price(self, db: Session, stock: Stock):
        lot = buy(db, stock, 4, "10").lot
        with pytest.raises(ValidationError, match="Sell price must be positive"):
            LotAccountingService.record_sell(
                db, stock.user_id, stock.id, [lot.id], Decimal("-1")
            )

    def test_already_sold_lot_fails_whole_sell(self, db: Session, stock: Stock):
        sold = buy(db, stock, 4, "10").lot
        fresh = buy(db, stock, 6, "10").lot
        LotAccountingService.record_sell(db, stock.user_id, stock.id, [sold.id], Decimal("12"))
        db.commit()

        with pytest.raises(ConflictError, match="not available for sale"):
            LotAccountingService.record_sell(
                db, stock.user_id, stock.id, [sold.id, fresh.id], Decimal("13")
            )
        db.rollback()

        db.refresh(fresh)
        assert fresh.status == LOT_STATUS_ACTIVE
        assert _sold_shares(db, stock) == 4

    def test_lot_of_another_stock(self, db: Session, stock: Stock, user: User):
        other_stock = create_stock(db, user, "OTHER")
        lot = buy(db, other_stock, 3, "10").lot

        with pytest.raises(ConflictError):
            LotAccountingService.record_sell(
                db, user.id, stock.id, [lot.id], Decimal("12")
            )

    def test_lot_of_another_user(self, db: Session, stock: Stock, other_user: User):
        theirs = create_stock(db, other_user, "ACME")
        lot = buy(db, theirs, 3, "10").lot

        with pytest.raises(ConflictError):
            LotAccountingService.record_sell(
                db, stock.user_id, stock.id, [lot.id], Decimal("12")
            )

    def test_lost_race_rolls_back_sell_transaction(self, db: Session, stock: Stock, monkeypatch):
        """A lot sold between the locking read and the update fails the sell."""
        lot = buy(db, stock, 5, "10").lot
        LotAccountingService.record_sell(db, stock.user_id, stock.id, [lot.id], Decimal("11"))
        db.commit()

        # Simulate a read that happened before the competing sell committed
        monkeypatch.setattr(
            LotAccountingService,
            "_fetch_sellable_lots",
            staticmethod(lambda db, user_id, stock_id, lot_ids: [lot]),
        )
        with pytest.raises(ConflictError, match="not available for sale"):
            LotAccountingService.record_sell(
                db, stock.user_id, stock.id, [lot.id], Decimal("99")
            )
        db.rollback()

        sells = db.query(Transaction).filter_by(transaction_type=TRANSACTION_TYPE_SELL).all()
        assert len(sells) == 1
        db.refresh(lot)
        assert lot.sell_price_per_share == Decimal("11")


# --- edit_lot ---


class TestEditLot:
    def test_resyncs_buy_transaction(self, db: Session, stock: Stock):
        result = buy(db, stock, 10, "100", datetime(2024, 1, 1))

        lot = LotAccountingService.edit_lot(
            db, stock.user_id, result.lot.id, datetime(2024, 2, 1), Decimal("90"), 12
        )
        db.commit()

        assert lot.shares == 12
        assert lot.buy_price_per_share == Decimal("90")
        assert lot.buy_date == datetime(2024, 2, 1)

        txn = db.get(Transaction, result.transaction.id)
        assert txn.shares == 12
        assert txn.price_per_share == Decimal("90")
        assert txn.total_amount == Decimal("1080")
        assert txn.transaction_date == datetime(2024, 2, 1)

    def test_orphaned_lot_is_edited_alone(self, db: Session, stock: Stock):
        result = buy(db, stock, 10, "100")
        LotAccountingService.delete_transactions(db, stock.user_id, [result.transaction.id])
        db.commit()

        lot = LotAccountingService.edit_lot(
            db, stock.user_id, result.lot.id, datetime(2024, 2, 1), Decimal("90"), 3
        )
        db.commit()

        assert lot.shares == 3
        assert db.query(Transaction).count() == 0

    def test_sold_lot_cannot_be_edited(self, db: Session, stock: Stock):
        lot = buy(db, stock, 10, "100").lot
        LotAccountingService.record_sell(db, stock.user_id, stock.id, [lot.id], Decimal("110"))
        db.commit()

        with pytest.raises(ConflictError, match="Sold share lots cannot be edited"):
            LotAccountingService.edit_lot(
                db, stock.user_id, lot.id, datetime(2024, 2, 1), Decimal("90"), 3
            )

    def test_missing_date(self, db: Session, stock: Stock):
        lot = buy(db, stock, 10, "100").lot
        with pytest.raises(ValidationError, match="Valid buy date, price, and shares"):
            LotAccountingService.edit_lot(db, stock.user_id, lot.id, None, Decimal("90"), 3)

    def test_zero_shares(self, db: Session, stock: Stock):
        lot = buy(db, stock, 10, "100").lot
        with pytest.raises(ValidationError):
            LotAccountingService.edit_lot(
                db, stock.user_id, lot.id, datetime(2024, 2, 1), Decimal("90"), 0
            )

    def test_total_too_large_to_store(self, db: Session, stock: Stock):
        result = buy(db, stock, 10, "100")
        with pytest.raises(ValidationError, match="Total amount"):
            LotAccountingService.edit_lot(
                db,
                stock.user_id,
                result.lot.id,
                datetime(2024, 2, 1),
                Decimal("999999"),
                10_000_000,
            )
        db.rollback()
        assert db.get(ShareLot, result.lot.id).shares == 10

    def test_lot_sold_after_read_is_not_edited(self, db: Session, stock: Stock, monkeypatch):
        """A lot sold between the active check and the write is left untouched."""
        result = buy(db, stock, 10, "100", datetime(2024, 1, 1))
        lot = result.lot
        LotAccountingService.record_sell(db, stock.user_id, stock.id, [lot.id], Decimal("110"))
        db.commit()

        # Simulate an active check that ran before the sell committed
        monkeypatch.setattr(
            LotAccountingService,
            "_get_active_lot",
            staticmethod(lambda db, user_id, lot_id, action: lot),
        )
        with pytest.raises(ConflictError, match="Sold share lots cannot be edited"):
            LotAccountingService.edit_lot(
                db, stock.user_id, lot.id, datetime(2024, 2, 1), Decimal("90"), 3
            )
        db.rollback()

        db.refresh(lot)
        assert lot.status == LOT_STATUS_SOLD
        assert lot.shares == 10
        txn = db.get(Transaction, result.transaction.id)
        assert txn.shares == 10
        assert txn.transaction_date == datetime(2024, 1, 1)

    def test_other_users_lot(self, db: Session, stock: Stock, other_user: User):
        lot = buy(db, stock, 10, "100").lot
        with pytest.raises(NotFoundError, match="Share lot not found"):
            LotAccountingService.edit_lot(
                db, other_user.id, lot.id, datetime(2024, 2, 1), Decimal("90"), 3
            )


# --- delete_lot ---


class TestDeleteLot:
    def test_deleting_only_lot_deletes_buy_transaction(self, db: Session, stock: Stock):
        result = buy(db, stock, 10, "100")

        deleted = LotAccountingService.delete_lot(db, stock.user_id, result.lot.id)
        db.commit()

        assert deleted.deleted_shares == 10
        assert deleted.transaction_deleted is True
        assert db.query(ShareLot).count() == 0
        assert db.query(Transaction).count() == 0

    def test_shrinks_transaction_using_its_own_price(self, db: Session, stock: Stock):
        """The transaction total drops by lot shares times the transaction's price."""
        result = buy(db, stock, 10, "100")
        txn = db.get(Transaction, result.transaction.id)
        # Two buys were merged into one transaction by an earlier edit
        txn.shares = 15
        txn.total_amount = Decimal("1500")
        db.commit()

        deleted = LotAccountingService.delete_lot(db, stock.user_id, result.lot.id)
        db.commit()

        assert deleted.transaction_deleted is False
        txn = db.get(Transaction, result.transaction.id)
        assert txn.shares == 5
        assert txn.total_amount == Decimal("500")

    def test_orphaned_lot(self, db: Session, stock: Stock):
        result = buy(db, stock, 10, "100")
        LotAccountingService.delete_transactions(db, stock.user_id, [result.transaction.id])
        db.commit()

        deleted = LotAccountingService.delete_lot(db, stock.user_id, result.lot.id)
        db.commit()

        assert deleted.transaction_deleted is False
        assert db.query(ShareLot).count() == 0

    def test_sold_lot_cannot_be_deleted(self, db: Session, stock: Stock):
        lot = buy(db, stock, 10, "100").lot
        LotAccountingService.record_sell(db, stock.user_id, stock.id, [lot.id], Decimal("110"))
        db.commit()

        with pytest.raises(ConflictError, match="Sold share lots cannot be deleted"):
            LotAccountingService.delete_lot(db, stock.user_id, lot.id)

    def test_unknown_lot(self, db: Session, user: User):
        with pytest.raises(NotFoundError):
            LotAccountingService.delete_lot(db, user.id, "missing")

    def test_lot_sold_after_read_is_not_deleted(self, db: Session, stock: Stock, monkeypatch):
        """A lot sold between the active check and the delete survives."""
        result = buy(db, stock, 10, "100")
        lot = result.lot
        sell = LotAccountingService.record_sell(
            db, stock.user_id, stock.id, [lot.id], Decimal("110")
        )
        db.commit()

        # Simulate an active check that ran before the sell committed
        monkeypatch.setattr(
            LotAccountingService,
            "_get_active_lot",
            staticmethod(lambda db, user_id, lot_id, action: lot),
        )
        with pytest.raises(ConflictError, match="Sold share lots cannot be deleted"):
            LotAccountingService.delete_lot(db, stock.user_id, lot.id)
        db.rollback()

        sold = db.query(ShareLot).filter_by(sell_transaction_id=sell.transaction.id).all()
        assert [sold_lot.id for sold_lot in sold] == [lot.id]
        assert db.get(Transaction, result.transaction.id).shares == 10
        assert db.get(Transaction, sell.transaction.id).shares == sum(
            sold_lot.shares for sold_lot in sold
        )


# --- delete_transactions ---


class TestDeleteTransactions:
    def test_deleting_sell_reactivates_its_lots(self, db: Session, stock: Stock):
        first = buy(db, stock, 5, "10").lot
        second = buy(db, stock, 5, "20").lot
        sell = LotAccountingService.record_sell(
            db, stock.user_id, stock.id, [first.id, second.id], Decimal("15")
        )
        db.commit()

        count = LotAccountingService.delete_transactions(
            db, stock.user_id, [sell.transaction.id]
        )
        db.commit()

        assert count == 1
        for lot in (first, second):
            db.refresh(lot)
            assert lot.status == LOT_STATUS_ACTIVE
            assert lot.sell_transaction_id is None
            assert lot.sell_price_per_share is None
            assert lot.sell_date is None
        assert _active_shares(db, stock) == 10
        assert db.get(Transaction, sell.transaction.id) is None

    def test_deleting_buy_orphans_lot(self, db: Session, stock: Stock):
        result = buy(db, stock, 5, "10")

        LotAccountingService.delete_transactions(db, stock.user_id, [result.transaction.id])
        db.commit()

        lot = db.get(ShareLot, result.lot.id)
        assert lot is not None
        assert lot.status == LOT_STATUS_ACTIVE
        assert lot.buy_transaction_id == result.transaction.id

    def test_mixed_batch(self, db: Session, stock: Stock):
        result = buy(db, stock, 5, "10")
        sell = LotAccountingService.record_sell(
            db, stock.user_id, stock.id, [result.lot.id], Decimal("15")
        )
        db.commit()

        count = LotAccountingService.delete_transactions(
            db, stock.user_id, [result.transaction.id, sell.transaction.id]
        )
        db.commit()

        assert count == 2
        assert db.query(Transaction).count() == 0
        assert db.get(ShareLot, result.lot.id).status == LOT_STATUS_ACTIVE

    def test_foreign_id_deletes_nothing(self, db: Session, stock: Stock, other_user: User):
        mine = buy(db, stock, 5, "10").transaction
        theirs = buy(db, create_stock(db, other_user, "ACME"), 1, "1").transaction

        with pytest.raises(ValidationError, match="not found or not accessible"):
            LotAccountingService.delete_transactions(
                db, stock.user_id, [mine.id, theirs.id]
            )
        db.rollback()

        assert db.query(Transaction).count() == 2

    def test_empty_batch(self, db: Session, user: User):
        with pytest.raises(ValidationError, match="Please select at least one transaction"):
            LotAccountingService.delete_transactions(db, user.id, [])


# --- delete_stock ---


class TestDeleteStock:
    def test_cascades_to_lots_and_transactions(self, db: Session, stock: Stock, user: User):
        keep = create_stock(db, user, "KEEP")
        buy(db, keep, 1, "1")
        lot = buy(db, stock, 5, "10").lot
        buy(db, stock, 5, "11")
        LotAccountingService.record_sell(db, user.id, stock.id, [lot.id], Decimal("12"))
        db.commit()

        LotAccountingService.delete_stock(db, user.id, stock.id)
        db.commit()

        assert db.get(Stock, stock.id) is None
        assert db.query(ShareLot).filter_by(stock_id=stock.id).count() == 0
        assert db.query(Transaction).filter_by(stock_id=stock.id).count() == 0
        assert db.query(ShareLot).filter_by(stock_id=keep.id).count() == 1
        assert db.query(Transaction).filter_by(stock_id=keep.id).count() == 1

    def test_other_users_stock(self, db: Session, stock: Stock, other_user: User):
        with pytest.raises(NotFoundError):
            LotAccountingService.delete_stock(db, other_user.id, stock.id)
        assert db.get(Stock, stock.id) is not None


# --- get_active_lots ---


class TestGetActiveLots:
    def test_oldest_first_and_only_active(self, db: Session, stock: Stock):
        late = buy(db, stock, 1, "10", datetime(2024, 5, 1)).lot
        early = buy(db, stock, 2, "10", datetime(2024, 1, 1)).lot
        sold = buy(db, stock, 3, "10", datetime(2023, 1, 1)).lot
        LotAccountingService.record_sell(db, stock.user_id, stock.id, [sold.id], Decimal("10"))
        db.commit()

        lots = LotAccountingService.get_active_lots(db, stock.user_id, stock.id)

        assert [lot.id for lot in lots] == [early.id, late.id]


# --- Conservation ---


class TestConservation:
    """Active shares always equal shares bought minus shares sold."""

    def test_holds_through_buys_sells_and_unsells(self, db: Session, stock: Stock):
        lots = [buy(db, stock, n, "10").lot for n in (3, 4, 5)]
        assert _active_shares(db, stock) == _bought_shares(db, stock) - _sold_shares(db, stock)

        sell = LotAccountingService.record_sell(
            db, stock.user_id, stock.id, [lots[0].id, lots[2].id], Decimal("11")
        )
        db.commit()
        assert _active_shares(db, stock) == 4
        assert _active_shares(db, stock) == _bought_shares(db, stock) - _sold_shares(db, stock)

        LotAccountingService.delete_transactions(db, stock.user_id, [sell.transaction.id])
        db.commit()
        assert _active_shares(db, stock) == 12
        assert _active_shares(db, stock) == _bought_shares(db, stock) - _sold_shares(db, stock)

        LotAccountingService.edit_lot(
            db, stock.user_id, lots[1].id, datetime(2024, 1, 1), Decimal("10"), 9
        )
        db.commit()
        assert _active_shares(db, stock) == _bought_shares(db, stock) - _sold_shares(db, stock)

        LotAccountingService.delete_lot(db, stock.user_id, lots[1].id)
        db.commit()
        assert _active_shares(db, stock) == 8
        assert _active_shares(db, stock) == _bought_shares(db, stock) - _sold_shares(db, stock)
