from __future__ import annotations

import unittest

from app.validators.mapping_validator import MappingValidator, SchemaMappingError


class TestMappingValidator(unittest.TestCase):
    def setUp(self) -> None:
        self.validator = MappingValidator(
            required_fields=("period", "amount"),
            identity_fields=("customer_id", "customer_name"),
        )

    def test_accepts_complete_mapping(self) -> None:
        self.validator.validate(
            mapping={"customer_name": 0, "period": 1, "amount": 2},
            source_headers=("name", "month", "mrr"),
        )

    def test_raises_on_missing_required_fields(self) -> None:
        with self.assertRaises(SchemaMappingError) as ctx:
            self.validator.validate(
                mapping={"customer_id": 0, "period": 1},
                source_headers=("id", "month"),
            )

        codes = {error.code for error in ctx.exception.errors}
        self.assertIn("required_field_unmapped", codes)
        self.assertIn("amount", ctx.exception.message)

    def test_raises_when_no_identity_column(self) -> None:
        with self.assertRaises(SchemaMappingError) as ctx:
            self.validator.validate(
                mapping={"period": 0, "amount": 1},
                source_headers=("month", "mrr"),
            )

        codes = [error.code for error in ctx.exception.errors]
        self.assertEqual(codes, ["identity_unmapped"])

    def test_raises_on_index_outside_header_row(self) -> None:
        with self.assertRaises(SchemaMappingError) as ctx:
            self.validator.validate(
                mapping={"customer_id": 0, "period": 1, "amount": 7},
                source_headers=("id", "month", "mrr"),
            )

        codes = [error.code for error in ctx.exception.errors]
        self.assertIn("unknown_source_column", codes)
        self.assertEqual(ctx.exception.to_dict()["errors"][0]["context"], {"index": 7})


if __name__ == "__main__":
    unittest.main()
