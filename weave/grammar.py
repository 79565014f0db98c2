"""
The Grammar facade.

A Grammar owns the static rules, the randomness source and the modifier
and object handler registries. Register modifiers and handlers before
expanding; after that the grammar is only read, and any number of Trees
can be built from it.
"""

import random
from collections.abc import Mapping

from weave.errors import UnexpectedTypeError
from weave.handlers import base_object_handlers
from weave.modifiers import ModifierKind, as_modifier
from weave.selector import RandomSelector
from weave.tree import Tree


class Grammar:
    """
    Rules plus the registries used to expand them.

    Args:
        rules: Mapping of rule name to content (string, list of
            alternatives, or handler object). None means no rules.
        rng: Randomness source with the `random.Random` interface.
        modifiers: Initial modifier mapping (name -> callable or Modifier).
        handlers: Object handler mapping; defaults to the built-in handlers.
        strict_modifiers: Raise on unknown modifiers instead of warning.
        strict_rules: Raise on undefined rules instead of a placeholder.
    """

    def __init__(self, rules=None, rng=None, modifiers=None, handlers=None,
                 strict_modifiers=False, strict_rules=False):
        if rules is None:
            rules = {}
        if not isinstance(rules, Mapping):
            raise UnexpectedTypeError(
                f"A grammar must be an object of rules, got {type(rules).__name__}",
                suggestion='Use {"origin": "..."}',
            )
        self.rules = dict(rules)
        self.rng = rng if rng is not None else random.Random()
        self.selector = RandomSelector(self.rng)
        self.modifiers = {}
        self.handlers = base_object_handlers() if handlers is None else dict(handlers)
        self.strict_modifiers = strict_modifiers
        self.strict_rules = strict_rules
        if modifiers:
            self.add_modifiers(modifiers)

    @classmethod
    def seeded(cls, rules=None, seed=None, **kwargs):
        """Grammar with its own `random.Random(seed)`."""
        return cls(rules, rng=random.Random(seed), **kwargs)

    def add_modifier(self, name, fn, kind=ModifierKind.TEXT, arity=None):
        self.modifiers[name] = as_modifier(fn, kind=kind, arity=arity)

    def add_modifiers(self, modifiers):
        for name, fn in modifiers.items():
            self.add_modifier(name, fn)

    def add_object_handler(self, name, fn):
        self.handlers[name] = fn

    def get_tree(self, text):
        return Tree(text, self)

    def expand_fully(self, tree):
        return tree.expand_fully()

    def flatten(self, text):
        """Build, fully expand and flatten `text` in one go."""
        return self.get_tree(text).expand_fully().flatten()

    def __repr__(self):
        return f"Grammar({len(self.rules)} rules, {len(self.modifiers)} modifiers, {len(self.handlers)} handlers)"
