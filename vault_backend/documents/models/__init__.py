from .document import BusinessDocument, DocumentLine
from .payment import DocumentEntry, DocumentPayment

__all__ = [
    "BusinessDocument",
    "DocumentLine",
    "DocumentPayment",
    "DocumentEntry",
]
