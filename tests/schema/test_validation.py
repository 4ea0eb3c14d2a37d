"""
Unit tests for the validation engine.

Covers per-entry and field-level validators on map fields, required fields,
scoped validation and the ValidationResult helpers.
"""
import unittest

from arangomap.document import DocMap, EmbeddedDocument
from arangomap.errors import CastError, ValidationError, ValidatorError
from arangomap.schema import Field, Map, Number, Schema, String
from arangomap.schema.validation import ValidationResult, validate_document


class TestValidationResult(unittest.TestCase):
    """Test cases for ValidationResult class."""

    def test_boolean_conversion(self):
        self.assertTrue(bool(ValidationResult()))
        self.assertFalse(bool(ValidationResult({"v.x": ValidatorError("v.x", 5)})))

    def test_format_errors(self):
        self.assertEqual(ValidationResult().format_errors(), "No validation errors")

        result = ValidationResult(
            {"v.y": ValidatorError("v.y", 5, "too big")},
            document_key="abc"
        )
        formatted = result.format_errors()
        self.assertIn("Validation errors for document abc:", formatted)
        self.assertIn("v.y: too big", formatted)

    def test_raise_for_errors(self):
        ValidationResult().raise_for_errors()
        result = ValidationResult({"v.y": ValidatorError("v.y", 5)})
        with self.assertRaises(ValidationError) as ctx:
            result.raise_for_errors("MapTest")
        self.assertIn("v.y", ctx.exception.errors)
        self.assertEqual(ctx.exception.model_name, "MapTest")
        self.assertEqual(ctx.exception.name, "ValidationError")


class TestMapValidation(unittest.TestCase):
    """Entry-level and field-level validators on map fields."""

    def setUp(self):
        self.entry_calls = []
        self.field_calls = []

        def entry_validator(v):
            self.entry_calls.append(v)
            return v < 4

        def field_validator(v):
            self.field_calls.append(v)
            return True

        self.schema = Schema({
            "v": Field(Map, of=Field(Number, validate=entry_validator), validate=field_validator)
        })

    def build(self, data):
        errors = {}
        document = EmbeddedDocument(data, schema=self.schema, errors=errors)
        return document, errors

    def test_valid_document(self):
        document, errors = self.build({"v": {"x": 1}})
        result = validate_document(document, cast_errors=errors)
        self.assertTrue(result.is_valid)
        self.assertEqual(self.entry_calls, [1])
        self.assertEqual(len(self.field_calls), 1)

    def test_field_validator_receives_live_container(self):
        document, _ = self.build({"v": {"x": 1}})
        validate_document(document)
        self.assertIsInstance(self.field_calls[0], DocMap)
        self.assertEqual(self.field_calls[0].get("x"), 1)

    def test_entry_failures_are_reported_at_entry_path(self):
        document, _ = self.build({"v": {"x": 1, "y": 5, "z": 7}})
        result = validate_document(document)
        self.assertEqual(sorted(result.errors), ["v.y", "v.z"])
        self.assertNotIn("v", result.errors)
        # Every entry was checked and the field validator still ran
        self.assertEqual(self.entry_calls, [1, 5, 7])
        self.assertEqual(len(self.field_calls), 1)

    def test_field_and_entry_failures_are_independent(self):
        schema = Schema({
            "v": Field(
                Map,
                of=Field(Number, validate=lambda v: v < 4),
                validate=(lambda m: m.size < 2, "{PATH} has too many entries"),
            )
        })
        document = EmbeddedDocument({"v": {"a": 1, "b": 9}}, schema=schema)
        result = validate_document(document)
        self.assertIn("v", result.errors)
        self.assertIn("v.b", result.errors)
        self.assertEqual(result.errors["v"].message, "v has too many entries")

    def test_cast_errors_are_reported_at_exact_path(self):
        document, errors = self.build({"v": {"x": 1, "notA": "number"}})
        self.assertIn("v.notA", errors)
        self.assertNotIn("notA", document.v)

        result = validate_document(document, cast_errors=errors)
        self.assertNotIn("v", result.errors)
        self.assertIsInstance(result.errors["v.notA"], CastError)
        self.assertEqual(result.errors["v.notA"].name, "CastError")

    def test_scoped_validation(self):
        document, _ = self.build({"v": {"x": 1, "y": 9}})
        result = validate_document(document, paths=["v.x"])
        self.assertTrue(result.is_valid)

        result = validate_document(document, paths=["v.y"])
        self.assertEqual(list(result.errors), ["v.y"])

        result = validate_document(document, paths=[])
        self.assertTrue(result.is_valid)


class TestValidatorForms(unittest.TestCase):
    """Required fields, messages and raising validators."""

    def test_required(self):
        schema = Schema({"name": Field(String, required=True), "n": Number})
        result = validate_document(EmbeddedDocument({"n": 1}, schema=schema))
        self.assertEqual(result.errors["name"].kind, "required")
        self.assertEqual(result.errors["name"].message, "Path `name` is required.")

    def test_message_placeholders(self):
        schema = Schema({"n": Field(Number, validate={"validator": lambda v: v > 0, "message": "{PATH} got {VALUE}"})})
        result = validate_document(EmbeddedDocument({"n": -1}, schema=schema))
        self.assertEqual(result.errors["n"].message, "n got -1")

    def test_raising_validator(self):
        def check(value):
            raise ValueError("nope")

        schema = Schema({"n": Field(Number, validate=check)})
        result = validate_document(EmbeddedDocument({"n": 1}, schema=schema))
        self.assertIsInstance(result.errors["n"], ValidatorError)
        self.assertEqual(result.errors["n"].message, "nope")

    def test_nested_embedded_values(self):
        schema = Schema({"m": Field(Map, of=Schema({"n": Field(Number, validate=lambda v: v < 10)}))})
        result = validate_document(EmbeddedDocument({"m": {"bacon": {"n": 2}, "eggs": {"n": 12}}}, schema=schema))
        self.assertEqual(list(result.errors), ["m.eggs.n"])

    def test_array_elements(self):
        schema = Schema({"scores": Field([Field(Number, validate=lambda v: v >= 0)])})
        result = validate_document(EmbeddedDocument({"scores": [1, -2, 3]}, schema=schema))
        self.assertEqual(list(result.errors), ["scores.1"])


if __name__ == "__main__":
    unittest.main()
