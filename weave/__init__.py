# Taleweave - Core Engine Components
"""
Core modules for the taleweave generative-grammar engine:
- syntax: Lark grammar for rule fragments
- patterns: Fragment classification and modifier token parsing
- symbols: Scoped runtime symbol table
- tree: Parse tree nodes and the step-wise expansion engine
- modifiers: Modifier registry, dispatch and the built-in modifier sets
- handlers: Object handlers (binomial and discrete distributions)
- grammar: The Grammar facade
- errors / result / diagnostics: Error types, handler results, stderr logging
- config: Settings and grammar file loading
- introspection: Static grammar reports
"""

from .errors import (
    BadHandlerError,
    GrammarLoadError,
    ModifierArityError,
    UndefinedRuleError,
    UnexpectedTypeError,
    UnknownModifierError,
    WeaveError,
)
from .grammar import Grammar
from .handlers import base_object_handlers
from .modifiers import Modifier, ModifierKind, base_english_modifiers, base_extended_modifiers
from .symbols import SymbolTable
from .tree import Tree, TreeNode

__all__ = [
    'WeaveError',
    'BadHandlerError',
    'GrammarLoadError',
    'ModifierArityError',
    'UndefinedRuleError',
    'UnexpectedTypeError',
    'UnknownModifierError',
    'Grammar',
    'Modifier',
    'ModifierKind',
    'base_english_modifiers',
    'base_extended_modifiers',
    'base_object_handlers',
    'SymbolTable',
    'Tree',
    'TreeNode',
]
