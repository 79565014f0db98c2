"""
Modifier registry and dispatch.

A modifier post-processes a node's flattened text (`#animal.s#`) or, for
tree and node modifiers, acts on the expansion itself (`#subject.pop!!#`).
Each one declares its input kind and how many literal parameters it takes.
"""

import inspect
import re
from enum import Enum


class ModifierKind(str, Enum):
    """What a modifier receives as its input."""
    TEXT = "text"
    TREE = "tree"
    NODE = "node"


class Modifier:
    """
    A registered modifier function.

    Text modifiers are called as ``fn(text, *params)``. Tree and node
    modifiers are called as ``fn(target, rule_name, *params)`` where the
    target is the owning Tree or TreeNode; they usually return "" and exist
    for their effect on the symbol table.
    """

    def __init__(self, fn, kind=ModifierKind.TEXT, arity=None):
        self.fn = fn
        self.kind = ModifierKind(kind)
        self.arity = arity if arity is not None else self._infer_arity(fn, self.kind)

    @staticmethod
    def _infer_arity(fn, kind):
        """Positional parameters after the inputs; None when variadic."""
        inputs = 1 if kind is ModifierKind.TEXT else 2
        try:
            signature = inspect.signature(fn)
        except (TypeError, ValueError):
            return 0
        positional = 0
        for param in signature.parameters.values():
            if param.kind is inspect.Parameter.VAR_POSITIONAL:
                return None
            if param.kind in (inspect.Parameter.POSITIONAL_ONLY, inspect.Parameter.POSITIONAL_OR_KEYWORD):
                positional += 1
        return max(positional - inputs, 0)

    def accepts(self, count):
        return self.arity is None or self.arity == count

    def apply(self, text, params, tree=None, node=None, rule=None):
        """Dispatch on kind; a missing input for this kind yields ""."""
        if self.kind is ModifierKind.TEXT:
            if text is None:
                return ""
            return self.fn(text, *params)

        target = tree if self.kind is ModifierKind.TREE else node
        if target is None:
            return ""
        result = self.fn(target, rule, *params)
        return "" if result is None else str(result)

    def __repr__(self):
        return f"Modifier({getattr(self.fn, '__name__', self.fn)!r}, kind={self.kind.value}, arity={self.arity})"


def as_modifier(fn, kind=ModifierKind.TEXT, arity=None):
    """Wrap a bare callable; Modifier instances pass through unchanged."""
    if isinstance(fn, Modifier):
        return fn
    return Modifier(fn, kind=kind, arity=arity)


# ==========================================
# ENGLISH MODIFIERS
# ==========================================

def _is_vowel(letter):
    return letter.lower() in "aeiou"


def article(text):
    """Prefix the indefinite article: `a fish`, `an albatross`, `a union`."""
    if not text:
        return text
    if len(text) > 2 and text[0].lower() == 'u' and text[2].lower() == 'i':
        return "a " + text
    if _is_vowel(text[0]):
        return "an " + text
    return "a " + text


def pluralize(text):
    if not text:
        return text
    last = text[-1]
    if last in "shx":
        return text + "es"
    if last == "y":
        if len(text) > 1 and _is_vowel(text[-2]):
            return text + "s"
        return text[:-1] + "ies"
    return text + "s"


def past_tense(text):
    if not text:
        return text
    last = text[-1]
    if last == "e":
        return text + "d"
    if last in "shx":
        return text + "ed"
    if last == "y":
        # `monkey` -> `monkeyd`, vowel + y keeps the y
        if len(text) > 1 and _is_vowel(text[-2]):
            return text + "d"
        return text[:-1] + "ied"
    return text + "ed"


def capitalize(text):
    return text[:1].upper() + text[1:]


def capitalize_all(text):
    """Capitalize the first character of every alphanumeric run."""
    chars = []
    cap_next = True
    for char in text:
        if char.isalnum():
            chars.append(char.upper() if cap_next else char)
            cap_next = False
        else:
            cap_next = True
            chars.append(char)
    return "".join(chars)


def replace(text, target, replacement):
    """Regex substitution of `target` with `replacement`."""
    return re.sub(target, replacement, text)


def base_english_modifiers():
    """Fresh mapping of the built-in English text modifiers."""
    return {
        "a": Modifier(article),
        "s": Modifier(pluralize),
        "ed": Modifier(past_tense),
        "capitalize": Modifier(capitalize),
        "capitalizeAll": Modifier(capitalize_all),
        "replace": Modifier(replace),
    }


# ==========================================
# EXTENDED MODIFIERS
# ==========================================

def pop_binding(tree, rule):
    """Drop the innermost binding of the rule's key from the tree."""
    tree.symbols.pop(rule)
    return ""


def base_extended_modifiers():
    """Fresh mapping of the built-in tree modifiers."""
    return {
        "pop!!": Modifier(pop_binding, kind=ModifierKind.TREE),
    }
