# partners/api/urls.py

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from partners.api.views import BusinessPartnerViewSet

router = SimpleRouter()
router.register("", BusinessPartnerViewSet, basename="partner")

urlpatterns = [
    path("", include(router.urls)),
]
