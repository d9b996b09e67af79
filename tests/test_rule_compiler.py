"""
Unit tests for rule value conversion and rule compilation.
"""

import json
from types import SimpleNamespace

import pytest

from app.services.field_catalog import FieldCatalog, FieldType, MatchType
from app.services.rule_compiler import compile_condition, compile_criterion, compile_rule
from app.services.rule_values import (
    DimensionValue, ListValue, NumberValue, StringValue, numbers_equal, rule_value, to_dimension_bounds,
)


def stored_rule(conditions, criteria, active=True):
    return SimpleNamespace(id="rule-1", name="Test Rule", active=active,
                           source_conditions=conditions, target_criteria=criteria)


class TestRuleValues:
    """Test cases for typed rule values."""

    def test_numbers_equal_on_scaled_integers(self):
        assert numbers_equal(0.1 + 0.2, 0.3, 2)
        assert numbers_equal(19.999, 20.0, 2)
        assert not numbers_equal(19.98, 19.99, 2)
        assert not numbers_equal(100, 101, 2)

    def test_number_from_string(self):
        assert rule_value("12,5", FieldType.NUMBER) == NumberValue(12.5)

    def test_boolean_is_not_a_number(self):
        with pytest.raises(ValueError):
            rule_value(True, FieldType.NUMBER)

    @pytest.mark.parametrize("raw", ["NaN", "inf", "-Infinity", float("nan"), float("inf"), 10 ** 400])
    def test_non_finite_numbers_are_rejected(self, raw):
        with pytest.raises(ValueError):
            rule_value(raw, FieldType.NUMBER)

    def test_numbers_equal_on_huge_values(self):
        assert numbers_equal(1e308, 1e308, 2)
        assert not numbers_equal(1e308, 1.5e308, 2)

    def test_list_literal_means_any_of(self):
        value = rule_value(["Lamps", "Spots"], FieldType.ENUM)

        assert value == ListValue((StringValue("Lamps"), StringValue("Spots")))

    def test_list_refused_for_ordering(self):
        with pytest.raises(ValueError):
            rule_value([1, 2], FieldType.NUMBER, allow_list=False)

    def test_dimension_bounds_accept_length_alias(self):
        value = to_dimension_bounds({"width": 100, "length": {"min": 20, "max": 40}, "unit": "cm"})

        axes = value.axes()
        assert set(axes) == {"width", "depth"}
        assert axes["width"].exact == 100
        assert axes["depth"].minimum == 20 and axes["depth"].maximum == 40

    @pytest.mark.parametrize("raw", [
        {},
        {"weight": 3},
        {"depth": 10, "length": 10},
        {"width": {"min": 50, "max": 10}},
        {"width": {}},
        {"width": "inf"},
        {"height": {"max": float("nan")}},
        "100x40",
    ])
    def test_invalid_dimension_values(self, raw):
        with pytest.raises(ValueError):
            to_dimension_bounds(raw)


class TestRuleCompiler:
    """Test cases for compile_rule."""

    @pytest.fixture
    def catalog(self):
        return FieldCatalog()

    def test_valid_condition(self, catalog):
        condition = compile_condition({"field": "price", "operator": "greaterThan", "value": "10"}, catalog)

        assert condition.is_valid
        assert condition.value == NumberValue(10.0)

    def test_non_finite_literal_is_a_configuration_error(self, catalog):
        condition = compile_condition({"field": "price", "operator": "lessThan", "value": "NaN"}, catalog)

        assert not condition.is_valid
        assert "finite" in condition.error

    def test_unknown_field_is_kept_with_error(self, catalog):
        condition = compile_condition({"field": "colour", "operator": "equals", "value": "red"}, catalog)

        assert not condition.is_valid
        assert "Unknown field 'colour'" in condition.error

    def test_operator_illegal_for_field_type(self, catalog):
        condition = compile_condition({"field": "stock", "operator": "contains", "value": "1"}, catalog)

        assert not condition.is_valid
        assert "not valid for number field" in condition.error

    def test_unknown_operator(self, catalog):
        condition = compile_condition({"field": "name", "operator": "startsWith", "value": "A"}, catalog)

        assert not condition.is_valid

    def test_criterion_without_value_is_relational(self, catalog):
        criterion = compile_criterion({"field": "manufacturerName", "matchType": "exact"}, catalog)

        assert criterion.is_valid
        assert criterion.is_relational

    def test_empty_string_value_is_relational(self, catalog):
        criterion = compile_criterion({"field": "manufacturerName", "matchType": "exact", "value": ""}, catalog)

        assert criterion.is_relational

    def test_same_dimensions_ignores_literal(self, catalog):
        criterion = compile_criterion(
            {"field": "dimensions", "matchType": "sameDimensions", "value": {"width": 3}}, catalog
        )

        assert criterion.is_valid
        assert criterion.match_type == MatchType.SAME_DIMENSIONS
        assert criterion.value is None

    def test_compile_rule_collects_warnings(self, catalog):
        rule = stored_rule(
            [{"field": "category", "operator": "equals", "value": "Lamps"},
             {"field": "colour", "operator": "equals", "value": "red"}],
            [{"field": "price", "matchType": "sameDimensions"}],
        )

        compiled = compile_rule(rule, catalog)

        assert len(compiled.conditions) == 2
        assert compiled.warnings == (
            "Source condition #2: Unknown field 'colour'",
            "Target criterion #1: Match type 'sameDimensions' is not valid for number field 'price'",
        )
        assert compiled.criterion_paths == ()

    def test_compile_rule_accepts_json_strings(self, catalog):
        rule = stored_rule(
            json.dumps([{"field": "dimensions", "operator": "matchesDimensions", "value": {"width": 100}}]),
            json.dumps([{"field": "category", "matchType": "exact", "value": "LightBulbs"}]),
        )

        compiled = compile_rule(rule, catalog)

        assert compiled.warnings == ()
        assert isinstance(compiled.conditions[0].value, DimensionValue)
        assert compiled.criterion_paths == ("categoryNames",)

    def test_unreadable_conditions_select_nothing(self, catalog):
        rule = stored_rule("{not json", [])

        compiled = compile_rule(rule, catalog)

        assert len(compiled.conditions) == 1
        assert not compiled.conditions[0].is_valid
        assert "sourceConditions is not valid JSON" in compiled.warnings[0]
