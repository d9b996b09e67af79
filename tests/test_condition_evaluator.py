"""
Unit tests for source condition evaluation.
"""

import pytest

from app.services.condition_evaluator import ConditionEvaluator
from app.services.rule_compiler import compile_condition

from conftest import make_product


class TestConditionEvaluator:
    """Test cases for ConditionEvaluator."""

    @pytest.fixture
    def evaluator(self):
        return ConditionEvaluator()

    @pytest.fixture
    def compile(self, field_catalog):
        def _compile(field, operator, value=None):
            return compile_condition({"field": field, "operator": operator, "value": value}, field_catalog)
        return _compile

    @pytest.fixture
    def shelf(self):
        return make_product(
            "shelf-1", "Steel Shelf 100",
            price=149.9, stock=12, available=True,
            categoryNames=["Shelves", "Storage"],
            manufacturerName="Acme",
            dimensions={"width": 100, "height": 40, "length": 30},
            customFields={"regalSystem": "Pro", "loadCapacity": "80", "outdoor": False},
        )

    def test_matches_dimensions_example(self, evaluator, compile):
        condition = compile("dimensions", "matchesDimensions", {"width": 100})

        assert evaluator.matches(make_product("a", dimensions={"width": 100, "height": 40, "depth": 30}), condition)
        assert not evaluator.matches(make_product("b", dimensions={"width": 101, "height": 40, "depth": 30}), condition)

    def test_matches_dimensions_range_and_alias(self, evaluator, compile, shelf):
        assert evaluator.matches(shelf, compile("dimensions", "matchesDimensions",
                                                {"height": {"min": 40, "max": 50}, "depth": 30}))
        assert evaluator.matches(shelf, compile("dimensions", "matchesDimensions", {"length": {"max": 30}}))
        assert not evaluator.matches(shelf, compile("dimensions", "matchesDimensions", {"height": {"min": 41}}))

    def test_matches_dimensions_skips_axes_the_product_lacks(self, evaluator, compile):
        condition = compile("dimensions", "matchesDimensions", {"width": 100, "height": 40})

        assert evaluator.matches(make_product("deep", dimensions={"height": 40, "depth": 30}), condition)
        assert not evaluator.matches(make_product("tall", dimensions={"height": 41, "depth": 30}), condition)
        assert not evaluator.matches(make_product("none"), condition)

    def test_equals_is_case_insensitive_for_text(self, evaluator, compile, shelf):
        assert evaluator.matches(shelf, compile("manufacturerName", "equals", "ACME"))
        assert evaluator.matches(shelf, compile("manufacturer.name", "equals", "acme"))
        assert not evaluator.matches(shelf, compile("manufacturerName", "equals", "Acme Corp"))

    def test_equals_on_multi_valued_field_is_membership(self, evaluator, compile, shelf):
        assert evaluator.matches(shelf, compile("category", "equals", "storage"))
        assert not evaluator.matches(shelf, compile("category", "equals", "Lamps"))
        # Liste contre liste: mêmes éléments, ordre indifférent
        assert evaluator.matches(shelf, compile("category", "equals", ["storage", "Shelves"]))
        assert not evaluator.matches(shelf, compile("category", "equals", ["Lamps", "Shelves"]))
        assert evaluator.matches(shelf, compile("category", "contains", ["Lamps", "Shelves"]))

    def test_list_equality_counts_repeated_elements(self, evaluator, compile):
        doubled = make_product("dup", categoryNames=["Lamps", "Lamps"])
        mixed = make_product("mix", categoryNames=["Lamps", "Shelves"])

        assert not evaluator.matches(doubled, compile("category", "equals", ["Lamps", "Shelves"]))
        assert not evaluator.matches(mixed, compile("category", "equals", ["Lamps", "Lamps"]))
        assert evaluator.matches(doubled, compile("category", "equals", ["lamps", "Lamps"]))

    def test_non_finite_product_value_does_not_match(self, evaluator, compile):
        for raw in ("NaN", "inf", float("nan")):
            product = make_product("odd", price=raw)

            assert not evaluator.matches(product, compile("price", "lessThan", 50))
            assert not evaluator.matches(product, compile("price", "equals", 10))

    def test_list_literal_on_scalar_field_is_any_of(self, evaluator, compile, shelf):
        assert evaluator.matches(shelf, compile("manufacturerName", "equals", ["Other", "Acme"]))
        assert not evaluator.matches(shelf, compile("manufacturerName", "notEquals", ["Other", "Acme"]))

    def test_custom_enum_is_case_sensitive(self, evaluator, compile, shelf):
        assert evaluator.matches(shelf, compile("customFields.regalSystem", "equals", "Pro"))
        assert not evaluator.matches(shelf, compile("customFields.regalSystem", "equals", "pro"))

    def test_not_equals(self, evaluator, compile, shelf):
        assert evaluator.matches(shelf, compile("manufacturerName", "notEquals", "Other"))
        assert not evaluator.matches(shelf, compile("manufacturerName", "notEquals", "acme"))

    def test_numeric_comparisons(self, evaluator, compile, shelf):
        assert evaluator.matches(shelf, compile("price", "equals", 149.90000001))
        assert evaluator.matches(shelf, compile("price", "greaterThan", 100))
        assert not evaluator.matches(shelf, compile("price", "greaterThan", 149.9))
        assert evaluator.matches(shelf, compile("price", "greaterThanOrEqual", "149.90"))
        assert evaluator.matches(shelf, compile("stock", "lessThan", 13))
        assert evaluator.matches(shelf, compile("stock", "lessThanOrEqual", 12))
        assert not evaluator.matches(shelf, compile("stock", "lessThan", 12))

    def test_custom_number_stored_as_string(self, evaluator, compile, shelf):
        assert evaluator.matches(shelf, compile("customFields.loadCapacity", "greaterThanOrEqual", 80))

    def test_boolean_fields(self, evaluator, compile, shelf):
        assert evaluator.matches(shelf, compile("available", "equals", True))
        assert evaluator.matches(shelf, compile("customFields.outdoor", "equals", "false"))

    def test_contains(self, evaluator, compile, shelf):
        assert evaluator.matches(shelf, compile("name", "contains", "shelf"))
        assert not evaluator.matches(shelf, compile("name", "contains", "lamp"))
        assert evaluator.matches(shelf, compile("name", "notContains", "lamp"))
        assert evaluator.matches(shelf, compile("categoryNames", "contains", "Storage"))
        assert not evaluator.matches(shelf, compile("categoryNames", "contains", "Stor"))

    def test_missing_value_does_not_match(self, evaluator, compile):
        product = make_product("bare")

        assert not evaluator.matches(product, compile("price", "greaterThan", 0))
        assert not evaluator.matches(product, compile("manufacturerName", "equals", "Acme"))

    def test_uncoercible_product_value_does_not_match(self, evaluator, compile):
        product = make_product("odd", stock="lots")

        assert not evaluator.matches(product, compile("stock", "greaterThan", 1))

    def test_invalid_condition_never_matches(self, evaluator, compile, shelf):
        assert not evaluator.matches(shelf, compile("colour", "equals", "red"))
        assert not evaluator.matches(shelf, compile("price", "contains", "1"))

    def test_matches_all_is_logical_and(self, evaluator, compile, shelf):
        lamp_rule = [compile("category", "equals", "Shelves"), compile("price", "lessThan", 100)]
        shelf_rule = [compile("category", "equals", "Shelves"), compile("price", "lessThan", 200)]

        assert not evaluator.matches_all(shelf, lamp_rule)
        assert evaluator.matches_all(shelf, shelf_rule)

    def test_empty_conditions_match_everything(self, evaluator, shelf):
        assert evaluator.matches_all(shelf, [])

    def test_tolerance_follows_configured_decimals(self, compile):
        product = make_product("p", price=10.004)
        condition = compile("price", "equals", 10)

        assert ConditionEvaluator(numeric_decimals=2).matches(product, condition)
        assert not ConditionEvaluator(numeric_decimals=3).matches(product, condition)
