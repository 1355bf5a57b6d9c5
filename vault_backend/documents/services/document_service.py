# documents/services/document_service.py

"""
DOCUMENT SERVICE

Building blocks used by the transaction orchestrator:
- document numbering (INV-AR-00001 / INV-AP-00001)
- line pricing + totals against the item master
- journal lines for sales invoices and purchase receipts
- document row creation and entry links
- compensating reversals for cancelled / deleted documents

No function here opens its own business transaction; callers own the unit.
"""

from __future__ import annotations

from collections import OrderedDict
from dataclasses import dataclass
from decimal import Decimal

from django.conf import settings
from django.db import IntegrityError, transaction

from accounting.models.journal import JournalEntry
from accounting.services import account_resolver, sequences
from accounting.services.exceptions import ConflictError, InvalidInputError, ItemNotFoundError
from accounting.services.journal_entry_service import JournalPostingEngine, LineSpec
from accounting.services.money import ZERO, money
from documents.models import BusinessDocument, DocumentEntry, DocumentLine
from documents.services.totals import (
    DocumentLineInput,
    DocumentTotals,
    LineAmounts,
    document_totals,
    line_amounts,
)
from inventory.models.item import InventoryItem
from partners import services as partner_services
from partners.models import BusinessPartner


@dataclass(frozen=True)
class PricedLine:
    line: DocumentLineInput
    item: InventoryItem
    unit_price: Decimal
    amounts: LineAmounts


def next_document_number(kind: str) -> str:
    if kind == BusinessDocument.KIND_SALE:
        prefix = getattr(settings, "SALE_NUMBER_PREFIX", "INV-AR")
    else:
        prefix = getattr(settings, "PURCHASE_NUMBER_PREFIX", "INV-AP")
    return sequences.next_number(f"document:{kind}", prefix, width=5)


def find_document(kind: str, document_number: str | None) -> BusinessDocument | None:
    if not document_number:
        return None
    return BusinessDocument.objects.filter(kind=kind, document_number=document_number).first()


def price_lines(kind: str, lines: list[DocumentLineInput]) -> tuple[list[PricedLine], DocumentTotals]:
    ids = {line.item_id for line in lines}
    items = {
        str(i.pk): i
        for i in InventoryItem.objects.filter(pk__in=list(ids)).select_related("valuation_class")
    }

    priced = []
    for line in lines:
        item = items.get(str(line.item_id))
        if item is None:
            raise ItemNotFoundError(item_id=line.item_id)

        if line.unit_price is not None:
            unit_price = money(line.unit_price)
        elif kind == BusinessDocument.KIND_SALE:
            unit_price = money(item.sales_price)
        else:
            unit_price = money(item.purchase_price)

        priced.append(
            PricedLine(
                line=line,
                item=item,
                unit_price=unit_price,
                amounts=line_amounts(line.quantity, unit_price, line.tax_rate, line.discount_percent),
            )
        )

    return priced, document_totals(p.amounts for p in priced)


def require_partner_role(partner: BusinessPartner, kind: str) -> None:
    if kind == BusinessDocument.KIND_SALE and not partner.is_customer:
        raise InvalidInputError(field="partner_id", message=f"{partner.partner_code} is not a customer")
    if kind == BusinessDocument.KIND_PURCHASE and not partner.is_vendor:
        raise InvalidInputError(field="partner_id", message=f"{partner.partner_code} is not a vendor")


# ============================================================
# POSTING LINES
# ============================================================


def sale_revenue_lines(partner: BusinessPartner, totals: DocumentTotals, number: str) -> list[LineSpec]:
    """Dr receivable (total) / Cr revenue (net of discount) / Cr output tax."""
    memo = f"Sales invoice {number}"
    receivable = partner_services.receivable_account_for(partner)
    specs = [LineSpec.debit(receivable.pk, totals.total, memo)]
    if totals.net > ZERO:
        specs.append(LineSpec.credit(account_resolver.get_sales_revenue_account().pk, totals.net, memo))
    if totals.tax > ZERO:
        specs.append(LineSpec.credit(account_resolver.get_output_tax_account().pk, totals.tax, memo))
    return specs


def purchase_receipt_lines(
    partner: BusinessPartner,
    priced: list[PricedLine],
    totals: DocumentTotals,
    number: str,
    inventory_account_for,
) -> list[LineSpec]:
    """Dr inventory (net, per valuation account) / Dr input tax / Cr payable (total)."""
    memo = f"Purchase receipt {number}"
    by_account: "OrderedDict[int, Decimal]" = OrderedDict()
    for p in priced:
        if p.amounts.net <= ZERO:
            continue
        account_id = inventory_account_for(p.item)
        by_account[account_id] = by_account.get(account_id, ZERO) + p.amounts.net

    specs = [LineSpec.debit(account_id, money(amount), memo) for account_id, amount in by_account.items()]
    if totals.tax > ZERO:
        specs.append(LineSpec.debit(account_resolver.get_input_tax_account().pk, totals.tax, memo))
    payable = partner_services.payable_account_for(partner)
    specs.append(LineSpec.credit(payable.pk, totals.total, memo))
    return specs


# ============================================================
# RECORDS
# ============================================================


def create_document_record(
    *,
    kind: str,
    document_number: str,
    partner: BusinessPartner,
    priced: list[PricedLine],
    totals: DocumentTotals,
    document_date,
    due_date=None,
    memo: str = "",
    unit_costs: dict | None = None,
) -> BusinessDocument:
    try:
        with transaction.atomic():
            document = BusinessDocument.objects.create(
                kind=kind,
                document_number=document_number,
                partner=partner,
                document_date=document_date,
                due_date=due_date,
                status=BusinessDocument.STATUS_DRAFT,
                subtotal_amount=totals.subtotal,
                discount_amount=totals.discount,
                tax_amount=totals.tax,
                total_amount=totals.total,
                memo=memo or "",
            )
    except IntegrityError as exc:
        raise ConflictError(resource="document", resource_id=document_number) from exc

    unit_costs = unit_costs or {}
    DocumentLine.objects.bulk_create(
        [
            DocumentLine(
                document=document,
                item=p.item,
                description=p.line.description or p.item.name,
                quantity=p.line.quantity,
                unit_price=p.unit_price,
                tax_rate=p.line.tax_rate,
                discount_percent=p.line.discount_percent,
                subtotal=p.amounts.subtotal,
                discount_amount=p.amounts.discount,
                tax_amount=p.amounts.tax,
                line_total=p.amounts.total,
                unit_cost_snapshot=unit_costs.get(str(p.item.pk)),
                position=position,
            )
            for position, p in enumerate(priced, start=1)
        ]
    )
    return document


def link_entry(document: BusinessDocument, entry: JournalEntry, purpose: str) -> DocumentEntry:
    return DocumentEntry.objects.create(document=document, journal_entry=entry, purpose=purpose)


def stock_quantities(document: BusinessDocument) -> list[tuple[str, int]]:
    return [(str(line.item_id), line.quantity) for line in document.lines.all()]


def reverse_document_postings(
    engine: JournalPostingEngine,
    document: BusinessDocument,
    *,
    memo: str,
    posting_date=None,
) -> list[JournalEntry]:
    """Reverse every not-yet-reversed POSTING entry of the document."""
    reversals = []
    links = document.entry_links.filter(purpose=DocumentEntry.PURPOSE_POSTING).select_related("journal_entry")
    for link in links:
        if link.journal_entry.is_reversed:
            continue
        reversal = engine.reverse(
            link.journal_entry_id,
            memo=f"{memo} ({link.journal_entry.entry_number})",
            posting_date=posting_date,
        )
        link_entry(document, reversal, DocumentEntry.PURPOSE_REVERSAL)
        reversals.append(reversal)
    return reversals
