"""
Taleweave grammar introspection.

Walks the static rules of a grammar and reports which rules reference
which, which keys actions bind, and which references can never resolve.
Only text reachable without expanding is inspected; handler objects are
searched through their "values" list.
"""

from typing import Dict, List

from pydantic import BaseModel

from weave.patterns import find_action_keys, find_rule_names


class GrammarReport(BaseModel):
    """Static summary of a grammar."""
    rules: List[str]
    references: Dict[str, List[str]]
    bound_keys: List[str]
    undefined: List[str]


class GrammarInspector:
    """Extracts reference information from a rule mapping."""

    def __init__(self, rules):
        self.rules = rules

    def _texts(self, content):
        """Every string that can become fragment text for a rule."""
        if isinstance(content, str):
            yield content
        elif isinstance(content, list):
            for item in content:
                yield from self._texts(item)
        elif isinstance(content, dict):
            yield from self._texts(content.get("values", []))

    def report(self):
        references = {}
        bound = []
        for name, content in self.rules.items():
            names = []
            for text in self._texts(content):
                for ref in find_rule_names(text):
                    if ref not in names:
                        names.append(ref)
                for key in find_action_keys(text):
                    if key not in bound:
                        bound.append(key)
            references[name] = names

        undefined = []
        for names in references.values():
            for ref in names:
                if ref not in self.rules and ref not in bound and ref not in undefined:
                    undefined.append(ref)

        return GrammarReport(
            rules=list(self.rules),
            references=references,
            bound_keys=bound,
            undefined=undefined,
        )
