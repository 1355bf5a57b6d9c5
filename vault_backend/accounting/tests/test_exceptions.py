# accounting/tests/test_exceptions.py

from django.test import SimpleTestCase

from accounting.services.exceptions import (
    EntryLockedError,
    ErrorCategory,
    ErrorKind,
    InvalidInputError,
    StoreUnavailableError,
)


class ErrorConstructionTests(SimpleTestCase):
    def test_message_is_a_structured_field(self):
        error = InvalidInputError(field="status", message="Unknown status 'BOGUS'")

        self.assertEqual(error.kind, ErrorKind.INVALID_INPUT)
        self.assertEqual(error.message, "Unknown status 'BOGUS'")
        self.assertEqual(str(error), "status: Unknown status 'BOGUS'")
        self.assertEqual(
            error.as_dict(),
            {
                "error": "INVALID_INPUT",
                "category": "validation",
                "detail": "status: Unknown status 'BOGUS'",
                "fields": {"field": "status", "message": "Unknown status 'BOGUS'"},
            },
        )

    def test_store_unavailable_carries_its_message(self):
        error = StoreUnavailableError(message="disk I/O error")

        self.assertEqual(error.category, ErrorCategory.FATAL)
        self.assertEqual(str(error), "Store unavailable: disk I/O error")

    def test_detail_overrides_template(self):
        error = EntryLockedError(detail="Entry JE-0001 belongs to SALE INV-AR-00001", entry_id=1)

        self.assertEqual(str(error), "Entry JE-0001 belongs to SALE INV-AR-00001")
        self.assertEqual(error.entry_id, 1)

    def test_fields_must_match_declaration(self):
        with self.assertRaises(TypeError):
            InvalidInputError(field="status")
        with self.assertRaises(TypeError):
            StoreUnavailableError(message="x", extra="y")
