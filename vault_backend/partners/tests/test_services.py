# partners/tests/test_services.py

import uuid
from decimal import Decimal

from django.contrib.auth import get_user_model
from django.test import TestCase
from rest_framework.test import APIClient

from accounting.models import Account
from accounting.services.exceptions import (
    DuplicateCodeError,
    InvalidInputError,
    PartnerNotFoundError,
)
from accounting.services.ledger_store import LedgerStore
from documents.models import BusinessDocument
from partners import services
from partners.models import BusinessPartner

User = get_user_model()


class PartnerServiceTests(TestCase):
    def setUp(self):
        LedgerStore().initialize_default_chart()

    def test_codes_follow_partner_type(self):
        first = services.create_partner(name="Acme Retail", partner_type=BusinessPartner.CUSTOMER)
        second = services.create_partner(name="Beta Retail", partner_type=BusinessPartner.CUSTOMER)
        vendor = services.create_partner(name="Supply Co", partner_type=BusinessPartner.VENDOR)

        self.assertEqual(first.partner_code, "CUS0001")
        self.assertEqual(second.partner_code, "CUS0002")
        self.assertEqual(vendor.partner_code, "VEN0001")

    def test_explicit_code_must_be_unique(self):
        services.create_partner(name="Acme", partner_type=BusinessPartner.BOTH, partner_code="ACME")

        with self.assertRaises(DuplicateCodeError):
            services.create_partner(name="Acme 2", partner_type=BusinessPartner.BOTH, partner_code="ACME")

    def test_validation(self):
        with self.assertRaises(InvalidInputError):
            services.create_partner(name="  ", partner_type=BusinessPartner.CUSTOMER)
        with self.assertRaises(InvalidInputError):
            services.create_partner(name="X", partner_type="EMPLOYEE")

    def test_get_partner_handles_bad_ids(self):
        with self.assertRaises(PartnerNotFoundError):
            services.get_partner(uuid.uuid4())
        with self.assertRaises(PartnerNotFoundError):
            services.get_partner("not-a-uuid")

    def test_adjust_balance(self):
        partner = services.create_partner(name="Acme", partner_type=BusinessPartner.CUSTOMER)

        services.adjust_balance(partner.pk, "150.00")
        services.adjust_balance(partner.pk, "-40.00")

        partner.refresh_from_db()
        self.assertEqual(partner.balance, Decimal("110.00"))
        self.assertIsNotNone(partner.last_transaction_date)

    def test_reconcile_balance_from_documents(self):
        partner = services.create_partner(name="Acme", partner_type=BusinessPartner.CUSTOMER)
        BusinessDocument.objects.create(
            kind=BusinessDocument.KIND_SALE,
            document_number="INV-AR-09001",
            partner=partner,
            total_amount=Decimal("100.00"),
            paid_amount=Decimal("30.00"),
        )
        BusinessDocument.objects.create(
            kind=BusinessDocument.KIND_SALE,
            document_number="INV-AR-09002",
            partner=partner,
            status=BusinessDocument.STATUS_CANCELLED,
            total_amount=Decimal("500.00"),
        )
        BusinessPartner.objects.filter(pk=partner.pk).update(balance=Decimal("1.00"))

        expected = services.reconcile_partner_balance(partner.pk)

        partner.refresh_from_db()
        self.assertEqual(expected, Decimal("70.00"))
        self.assertEqual(partner.balance, Decimal("70.00"))

    def test_customer_and_vendor_nets_receivables_against_payables(self):
        partner = services.create_partner(name="Two Way Trading", partner_type=BusinessPartner.BOTH)
        sale = BusinessDocument.objects.create(
            kind=BusinessDocument.KIND_SALE,
            document_number="INV-AR-09003",
            partner=partner,
            total_amount=Decimal("100.00"),
            paid_amount=Decimal("30.00"),
        )
        purchase = BusinessDocument.objects.create(
            kind=BusinessDocument.KIND_PURCHASE,
            document_number="INV-AP-09001",
            partner=partner,
            total_amount=Decimal("50.00"),
        )

        services.adjust_for_document(sale, "70.00")
        services.adjust_for_document(purchase, "50.00")
        partner.refresh_from_db()
        self.assertEqual(partner.balance, Decimal("20.00"))

        self.assertEqual(services.reconcile_partner_balance(partner.pk), Decimal("20.00"))

    def test_account_overrides(self):
        special_ar = Account.objects.create(code="1099", name="AR - Key Accounts", account_type=Account.ASSET)
        partner = services.create_partner(
            name="Key Account", partner_type=BusinessPartner.BOTH, account=special_ar
        )

        self.assertEqual(services.receivable_account_for(partner), special_ar)
        self.assertEqual(services.payable_account_for(partner).code, "2001")

    def test_search(self):
        services.create_partner(name="Acme Retail", partner_type=BusinessPartner.CUSTOMER, email="ops@acme.test")
        services.create_partner(name="Supply Co", partner_type=BusinessPartner.VENDOR)

        self.assertEqual([p.name for p in services.search("acme")], ["Acme Retail"])
        self.assertEqual(
            [p.name for p in services.search("", partner_type=BusinessPartner.VENDOR)],
            ["Supply Co"],
        )


class PartnerApiTests(TestCase):
    def setUp(self):
        self.user = User.objects.create_user(username="clerk", password="pass")
        self.client = APIClient()
        self.client.force_authenticate(user=self.user)

    def test_create_and_list(self):
        res = self.client.post(
            "/api/partners/",
            {"name": "Acme Retail", "partner_type": "CUSTOMER"},
            format="json",
        )

        self.assertEqual(res.status_code, 201)
        self.assertEqual(res.data["partner_code"], "CUS0001")

        listing = self.client.get("/api/partners/")
        self.assertEqual(listing.status_code, 200)
        self.assertEqual(listing.data["count"], 1)

    def test_unknown_partner_is_404(self):
        res = self.client.post(f"/api/partners/{uuid.uuid4()}/reconcile/")
        self.assertEqual(res.status_code, 404)
        self.assertEqual(res.data["error"], "PARTNER_NOT_FOUND")

    def test_requires_authentication(self):
        res = APIClient().get("/api/partners/")
        self.assertIn(res.status_code, (401, 403))
