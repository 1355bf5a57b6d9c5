# inventory/api/urls.py

from django.urls import include, path
from rest_framework.routers import DefaultRouter

from inventory.api.views import InventoryItemViewSet, UnitViewSet, ValuationClassViewSet

router = DefaultRouter()
router.register("items", InventoryItemViewSet, basename="inventory-item")
router.register("valuation-classes", ValuationClassViewSet, basename="valuation-class")
router.register("units", UnitViewSet, basename="unit")

urlpatterns = [
    path("", include(router.urls)),
]
