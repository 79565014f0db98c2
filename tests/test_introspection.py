"""
Unit tests for weave/introspection.py - GrammarInspector class.
"""

import pytest

from weave.introspection import GrammarInspector, GrammarReport


class TestGrammarInspector:
    """Tests for static grammar reports."""

    @pytest.fixture
    def rules(self):
        return {
            "origin": "#[hero:#name#]story# #title.capitalize#",
            "story": ["#hero# met #villain.a#", "#hero# stayed home"],
            "name": ["Ada", "Grace"],
            "weather": {"handler": "discrete-distribution", "values": ["rain", "#season# sun"], "weights": [1, 1]},
        }

    def test_report_type(self, rules):
        """The report is a pydantic model."""
        assert isinstance(GrammarInspector(rules).report(), GrammarReport)

    def test_rules_in_order(self, rules):
        assert GrammarInspector(rules).report().rules == ["origin", "story", "name", "weather"]

    def test_references(self, rules):
        """References are collected per rule without duplicates."""
        references = GrammarInspector(rules).report().references
        assert references["origin"] == ["story", "name", "title"]
        assert references["story"] == ["hero", "villain"]
        assert references["name"] == []

    def test_handler_values_are_searched(self, rules):
        assert GrammarInspector(rules).report().references["weather"] == ["season"]

    def test_bound_keys(self, rules):
        assert GrammarInspector(rules).report().bound_keys == ["hero"]

    def test_undefined(self, rules):
        """Keys bound by actions do not count as undefined."""
        assert GrammarInspector(rules).report().undefined == ["title", "villain", "season"]

    def test_empty_grammar(self):
        report = GrammarInspector({}).report()
        assert report.rules == []
        assert report.undefined == []

    def test_dump(self, rules):
        """Reports serialize to plain data."""
        dumped = GrammarInspector(rules).report().model_dump()
        assert set(dumped) == {"rules", "references", "bound_keys", "undefined"}
