"""
Tests for the rule and association repositories (in-memory SQLite).
"""

import pytest

from app.core.exceptions import AssociationAlreadyExistsError


class TestRuleRepository:
    """Test cases for RuleRepository."""

    def test_create_rule_strips_and_requires_name(self, rule_repo):
        rule = rule_repo.create_rule({"name": "  Lamps  ", "source_conditions": [], "target_criteria": []})

        assert rule.name == "Lamps"
        assert rule.active is True
        assert len(rule.id) == 32
        with pytest.raises(ValueError):
            rule_repo.create_rule({"name": "   "})

    def test_json_columns_round_trip(self, rule_repo):
        conditions = [{"field": "dimensions", "operator": "matchesDimensions", "value": {"width": {"min": 10}}}]
        rule = rule_repo.create_rule({"name": "Dims", "source_conditions": conditions, "target_criteria": []})

        assert rule_repo.get_rule(rule.id).source_conditions == conditions

    def test_active_rules_only(self, make_rule, rule_repo):
        active = make_rule("Active")
        make_rule("Inactive", active=False)

        assert [r.id for r in rule_repo.get_active_rules()] == [active.id]
        assert len(rule_repo.get_all_rules()) == 2

    def test_activate_and_deactivate(self, make_rule, rule_repo):
        rule = make_rule("Toggle", active=False)

        assert rule_repo.activate_rule(rule.id)
        assert rule_repo.get_rule(rule.id).active is True
        assert rule_repo.deactivate_rule(rule.id)
        assert rule_repo.get_rule(rule.id).active is False
        assert not rule_repo.activate_rule("missing")

    def test_to_dict_is_camel_case(self, make_rule):
        rule = make_rule("Lamps", [{"field": "name", "operator": "contains", "value": "lamp"}])

        data = rule.to_dict()

        assert data["sourceConditions"] == [{"field": "name", "operator": "contains", "value": "lamp"}]
        assert data["targetCriteria"] == []
        assert data["createdAt"] is not None


class TestAssociationRepository:
    """Test cases for AssociationRepository."""

    def test_exists_is_keyed_on_ordered_pair(self, association_repo):
        association_repo.create_association("a", "b")

        assert association_repo.exists_association("a", "b")
        assert not association_repo.exists_association("b", "a")

    def test_duplicate_pair_raises_already_exists(self, association_repo, make_rule):
        first = make_rule("First")
        second = make_rule("Second")
        association_repo.create_association("a", "b", first.id)

        with pytest.raises(AssociationAlreadyExistsError):
            association_repo.create_association("a", "b", second.id)

        # la session reste utilisable après le rollback
        assert association_repo.count() == 1
        assert association_repo.count_for_rule(first.id) == 1

    def test_get_for_source(self, association_repo):
        association_repo.create_association("a", "b")
        association_repo.create_association("a", "c")
        association_repo.create_association("x", "a")

        targets = sorted(a.target_product_id for a in association_repo.get_for_source("a"))

        assert targets == ["b", "c"]

    def test_delete_for_rule(self, association_repo, make_rule):
        rule = make_rule("Purge me")
        association_repo.create_association("a", "b", rule.id)
        association_repo.create_association("a", "c", rule.id)
        association_repo.create_association("a", "d")

        assert association_repo.delete_for_rule(rule.id) == 2
        assert association_repo.count() == 1
