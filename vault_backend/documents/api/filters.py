# documents/api/filters.py

import django_filters

from documents.models import BusinessDocument


class BusinessDocumentFilter(django_filters.FilterSet):
    kind = django_filters.ChoiceFilter(choices=BusinessDocument.KIND_CHOICES)
    status = django_filters.ChoiceFilter(choices=BusinessDocument.STATUS_CHOICES)
    partner = django_filters.UUIDFilter(field_name="partner_id")
    date_from = django_filters.DateFilter(field_name="document_date", lookup_expr="gte")
    date_to = django_filters.DateFilter(field_name="document_date", lookup_expr="lte")

    class Meta:
        model = BusinessDocument
        fields = ("kind", "status", "partner", "date_from", "date_to")
