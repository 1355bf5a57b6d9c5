# accounting/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from accounting.api.views.accounts import AccountViewSet
from accounting.api.views.journal_entries import JournalEntryViewSet
from accounting.api.views.trial_balance import ReconciliationView, TrialBalanceView

router = DefaultRouter()
router.register("accounts", AccountViewSet, basename="account")
router.register("journal-entries", JournalEntryViewSet, basename="journal-entry")

urlpatterns = [
    # Router endpoints
    path("", include(router.urls)),
    # Reports
    path("trial-balance/", TrialBalanceView.as_view(), name="trial-balance"),
    path("reconciliation/", ReconciliationView.as_view(), name="reconciliation"),
]
