# documents/api/urls.py

from django.urls import include, path
from rest_framework.routers import SimpleRouter

from documents.api.views import BusinessDocumentViewSet

router = SimpleRouter()
router.register("", BusinessDocumentViewSet, basename="document")

urlpatterns = [
    path("", include(router.urls)),
]
