# inventory/tests/test_valuation_guard.py

import uuid
from decimal import Decimal

from django.test import TestCase

from accounting.models import Account, JournalEntry
from accounting.services.exceptions import (
    ConflictError,
    DuplicateCodeError,
    InsufficientStockError,
    InvalidInputError,
    ItemNotFoundError,
)
from accounting.services.journal_entry_service import JournalPostingEngine
from accounting.services.ledger_store import LedgerStore
from inventory.models import InventoryItem, StockMovement, ValuationClass
from inventory.services.valuation_guard import InventoryValuationGuard, aggregate_quantities


class GuardTestBase(TestCase):
    def setUp(self):
        self.store = LedgerStore()
        self.store.initialize_default_chart()
        self.engine = JournalPostingEngine(ledger=self.store)
        self.guard = InventoryValuationGuard(engine=self.engine)

        self.item = self.guard.create_item(
            product_code="SKU-1",
            name="Widget",
            sales_price="25.00",
            purchase_price="10.00",
        )
        InventoryItem.objects.filter(pk=self.item.pk).update(available_quantity=5)
        self.item.refresh_from_db()

    def quantity(self, item=None):
        item = item or self.item
        item.refresh_from_db()
        return item.available_quantity


class ReservationTests(GuardTestBase):
    # ======================================================
    # SUFFICIENCY
    # ======================================================

    def test_second_sale_sees_remaining_quantity(self):
        self.guard.consume_stock([(self.item.pk, 3)])
        self.assertEqual(self.quantity(), 2)

        with self.assertRaises(InsufficientStockError) as ctx:
            self.guard.consume_stock([(self.item.pk, 3)])

        self.assertEqual(ctx.exception.requested, 3)
        self.assertEqual(ctx.exception.available, 2)
        self.assertEqual(self.quantity(), 2)

    def test_reserve_does_not_mutate(self):
        reservation = self.guard.reserve_for_sale([(self.item.pk, 2)])

        self.assertEqual(self.quantity(), 5)
        self.assertEqual(reservation.lines[0].version, self.item.version)
        self.assertEqual(reservation.total_cost, Decimal("20.00"))

    def test_duplicate_items_are_summed(self):
        with self.assertRaises(InsufficientStockError) as ctx:
            self.guard.reserve_for_sale([(self.item.pk, 3), (str(self.item.pk), 3)])

        self.assertEqual(ctx.exception.requested, 6)

        reservation = self.guard.reserve_for_sale([(self.item.pk, 2), (self.item.pk, 2)])
        self.assertEqual(len(reservation.lines), 1)
        self.assertEqual(reservation.line_for(self.item.pk).quantity, 4)

    def test_unknown_item(self):
        with self.assertRaises(ItemNotFoundError):
            self.guard.reserve_for_sale([(uuid.uuid4(), 1)])
        with self.assertRaises(ItemNotFoundError):
            self.guard.reserve_for_sale([("not-a-uuid", 1)])

    def test_inactive_item_cannot_be_sold(self):
        InventoryItem.objects.filter(pk=self.item.pk).update(is_active=False)

        with self.assertRaises(ItemNotFoundError):
            self.guard.reserve_for_sale([(self.item.pk, 1)])

    def test_quantity_must_be_positive_integer(self):
        for bad in (0, -1, 1.5, "two", True):
            with self.assertRaises(InvalidInputError):
                aggregate_quantities([(self.item.pk, bad)])

    def test_all_or_nothing_across_items(self):
        other = self.guard.create_item(product_code="SKU-2", name="Gadget", purchase_price="4.00")

        with self.assertRaises(InsufficientStockError):
            self.guard.consume_stock([(self.item.pk, 1), (other.pk, 1)])

        self.assertEqual(self.quantity(), 5)
        self.assertFalse(StockMovement.objects.filter(reason=StockMovement.Reason.SALE).exists())

    # ======================================================
    # COMPARE-AND-SWAP
    # ======================================================

    def test_stale_reservation_conflicts(self):
        first = self.guard.reserve_for_sale([(self.item.pk, 1)])
        second = self.guard.reserve_for_sale([(self.item.pk, 1)])

        self.guard.commit_reservation(first, reference="A")
        with self.assertRaises(ConflictError):
            self.guard.commit_reservation(second, reference="B")

        self.assertEqual(self.quantity(), 4)
        self.assertEqual(StockMovement.objects.filter(reference="B").count(), 0)

    def test_last_unit_sold_once(self):
        InventoryItem.objects.filter(pk=self.item.pk).update(available_quantity=1)
        first = self.guard.reserve_for_sale([(self.item.pk, 1)])
        second = self.guard.reserve_for_sale([(self.item.pk, 1)])

        self.guard.commit_reservation(first)
        with self.assertRaises(ConflictError):
            self.guard.commit_reservation(second)

        self.assertEqual(self.quantity(), 0)

    def test_commit_records_out_movement(self):
        self.guard.consume_stock([(self.item.pk, 2)], reference="INV-AR-00001")

        movement = StockMovement.objects.get(reference="INV-AR-00001")
        self.assertEqual(movement.movement_type, StockMovement.MovementType.OUT)
        self.assertEqual(movement.quantity, 2)
        self.assertEqual(movement.unit_cost_snapshot, Decimal("10.00"))


class ReceiveAndValuationTests(GuardTestBase):
    def test_receive_uses_weighted_average_cost(self):
        # 5 on hand @ 10.00 + 5 received @ 14.00 -> 10 @ 12.00
        self.guard.receive_stock([(self.item.pk, 5, "14.00")], reference="INV-AP-00001")

        self.item.refresh_from_db()
        self.assertEqual(self.item.available_quantity, 10)
        self.assertEqual(self.item.purchase_price, Decimal("12.00"))
        self.assertEqual(self.item.version, 1)

    def test_receive_rejects_negative_cost(self):
        with self.assertRaises(InvalidInputError):
            self.guard.receive_stock([(self.item.pk, 1, "-1")])

    def test_release_puts_stock_back(self):
        self.guard.consume_stock([(self.item.pk, 4)])
        self.guard.release_stock([(self.item.pk, 4)], reference="INV-AR-00001")

        self.assertEqual(self.quantity(), 5)
        self.assertTrue(
            StockMovement.objects.filter(reason=StockMovement.Reason.RELEASE, quantity=4).exists()
        )

    def test_cost_of_goods_sold(self):
        self.assertEqual(self.guard.cost_of_goods_sold([(self.item.pk, 3)]), Decimal("30.00"))

    def test_cogs_lines_default_accounts(self):
        reservation = self.guard.reserve_for_sale([(self.item.pk, 3)])

        lines = self.guard.cogs_lines(reservation)

        self.assertEqual(len(lines), 2)
        self.assertEqual(lines[0].account_id, Account.objects.get(code="6001").pk)
        self.assertEqual(lines[0].side, "DEBIT")
        self.assertEqual(lines[1].account_id, Account.objects.get(code="1003").pk)
        self.assertEqual(lines[1].amount, Decimal("30.00"))

    def test_cogs_lines_follow_valuation_class(self):
        stock = self.store.create_account(code="1010", name="Finished Goods", account_type=Account.ASSET)
        cogs = self.store.create_account(code="6010", name="COGS Finished", account_type=Account.COGS)
        vc = ValuationClass.objects.create(
            class_code="FG", name="Finished goods", inventory_account=stock, cogs_account=cogs
        )
        InventoryItem.objects.filter(pk=self.item.pk).update(valuation_class=vc)

        lines = self.guard.cogs_lines(self.guard.reserve_for_sale([(self.item.pk, 1)]))

        self.assertEqual([l.account_id for l in lines], [cogs.pk, stock.pk])

    def test_zero_cost_items_post_no_cogs(self):
        free = self.guard.create_item(product_code="FREE", name="Sample")
        InventoryItem.objects.filter(pk=free.pk).update(available_quantity=3)

        lines = self.guard.cogs_lines(self.guard.reserve_for_sale([(free.pk, 1)]))

        self.assertEqual(lines, [])


class CreateItemTests(GuardTestBase):
    def test_opening_stock_posts_inventory_against_capital(self):
        item = self.guard.create_item(
            product_code="SKU-OPEN",
            name="Opening",
            purchase_price="2.50",
            opening_quantity=8,
        )

        self.assertEqual(item.available_quantity, 8)
        entry = JournalEntry.objects.get(reference="OPENING_STOCK:SKU-OPEN")
        self.assertEqual(entry.total_debits, Decimal("20.00"))
        self.assertEqual(Account.objects.get(code="1003").balance, Decimal("20.00"))
        self.assertEqual(Account.objects.get(code="3001").balance, Decimal("20.00"))
        self.assertTrue(
            StockMovement.objects.filter(item=item, reason=StockMovement.Reason.OPENING).exists()
        )

    def test_duplicate_product_code(self):
        with self.assertRaises(DuplicateCodeError):
            self.guard.create_item(product_code="SKU-1", name="Again")

    def test_search_and_low_stock(self):
        self.guard.create_item(product_code="SKU-9", name="Gizmo", opening_quantity=50)

        self.assertEqual([i.product_code for i in self.guard.search("gizmo")], ["SKU-9"])
        self.assertEqual([i.product_code for i in self.guard.low_stock(5)], ["SKU-1"])
