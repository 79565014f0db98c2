"""
Taleweave Pattern Recognizer - classifies grammar fragments.

This module parses a fragment of rule text with the Lark fragment grammar,
turns the parse tree into segment records with FragmentTransformer, and
decides which expansion production the fragment belongs to.
"""

import re
from enum import Enum
from functools import lru_cache
from typing import List, Optional, Union

from lark import Lark, Token, Transformer
from lark.exceptions import UnexpectedInput
from pydantic import BaseModel, ConfigDict

from weave.diagnostics import debug_log
from weave.syntax import fragment_grammar


class FragmentKind(str, Enum):
    """Expansion productions, in classification priority order."""
    ONLY_RULE = "only-rule"
    ONLY_RULE_WITH_ACTIONS = "only-rule-with-actions"
    KEYLESS_RULE_ACTION = "keyless-rule-action"
    KEY_WITH_RULE_ACTION = "key-with-rule-action"
    KEY_WITH_TEXT_ACTION = "key-with-text-action"
    ONLY_ACTIONS = "only-actions"
    MIXED_TEXT = "mixed-text"
    LITERAL = "literal"


class Text(BaseModel):
    """Literal text between rule references and actions."""
    model_config = ConfigDict(frozen=True)

    text: str

    @property
    def source(self) -> str:
        return self.text


class Action(BaseModel):
    """A bracketed action group, `[key:body]` or `[body]`."""
    model_config = ConfigDict(frozen=True)

    key: Optional[str] = None
    items: List["Segment"] = []

    @property
    def body(self) -> str:
        return "".join(item.source for item in self.items)

    @property
    def source(self) -> str:
        prefix = f"{self.key}:" if self.key is not None else ""
        return f"[{prefix}{self.body}]"

    def is_text_only(self) -> bool:
        return all(isinstance(item, Text) for item in self.items)


class RuleRef(BaseModel):
    """A rule reference, `#[actions]name.mod1.mod2#`."""
    model_config = ConfigDict(frozen=True)

    name: str
    modifiers: List[str] = []
    actions: List[Action] = []

    @property
    def reference(self) -> str:
        """The rule reference without its leading actions."""
        mods = "".join(f".{mod}" for mod in self.modifiers)
        return f"#{self.name}{mods}#"

    @property
    def actions_source(self) -> str:
        return "".join(action.source for action in self.actions)

    @property
    def source(self) -> str:
        return "#" + self.actions_source + self.reference[1:]


Segment = Union[Text, RuleRef, Action]
Action.model_rebuild()
RuleRef.model_rebuild()


class Fragment(BaseModel):
    """A classified fragment: its production and top-level segments."""
    model_config = ConfigDict(frozen=True)

    kind: FragmentKind
    segments: List[Segment] = []

    @property
    def first(self) -> Segment:
        return self.segments[0]


class ModifierCall(BaseModel):
    """A modifier token split into its name and literal parameters."""
    model_config = ConfigDict(frozen=True)

    name: str
    params: List[str] = []


class FragmentTransformer(Transformer):
    """
    Transforms a fragment parse tree into segment records.

    Every record can reproduce the exact text it was parsed from, so the
    expansion engine can build child nodes out of sub-fragments.
    """

    def start(self, items):
        """Top-level segments, left to right."""
        return list(items)

    def text(self, args):
        return Text(text=str(args[0]))

    def body_text(self, args):
        return Text(text=str(args[0]))

    def modifiers(self, args):
        return [str(token) for token in args]

    def rule(self, args):
        """Leading actions, then the name token, then the modifier list."""
        *actions, name, mods = args
        return RuleRef(name=str(name), modifiers=mods, actions=actions)

    def action_body(self, args):
        return list(args)

    def action(self, args):
        """Optional KEY token (with its trailing colon), then the body items."""
        if isinstance(args[0], Token):
            return Action(key=str(args[0])[:-1], items=args[1])
        return Action(items=args[0])


_PARSER = None


def get_parser():
    """Build the fragment parser once and reuse it."""
    global _PARSER
    if _PARSER is None:
        _PARSER = Lark(fragment_grammar, parser='lalr')
    return _PARSER


_RULE_REFERENCE = re.compile(r'#([A-Za-z0-9_-]+)((?:\.[^.#\[\]]+)*)#')


def _parse_chunk(text):
    try:
        return FragmentTransformer().transform(get_parser().parse(text))
    except UnexpectedInput:
        return [Text(text=text)]


def _scan_rules(text):
    """Split out well-formed rule references; the text around them parses on its own or stays literal."""
    segments = []
    position = 0
    for match in _RULE_REFERENCE.finditer(text):
        if match.start() > position:
            segments.extend(_parse_chunk(text[position:match.start()]))
        mods = match.group(2)
        segments.append(RuleRef(name=match.group(1), modifiers=mods[1:].split(".") if mods else []))
        position = match.end()
    if position < len(text):
        segments.extend(_parse_chunk(text[position:]))
    return segments


@lru_cache(maxsize=4096)
def parse_fragment(text):
    """
    Parse a fragment into top-level segments.

    When the fragment grammar rejects the text (a stray '#' in prose, an
    unclosed bracket), rule references are still found by scanning for
    `#name.mod#` and everything between them is kept as it parses.
    """
    if not text:
        return ()
    try:
        tree = get_parser().parse(text)
    except UnexpectedInput as e:
        debug_log(f"Scanning fragment for rule references ({type(e).__name__}): {text!r}")
        return tuple(_scan_rules(text))
    return tuple(FragmentTransformer().transform(tree))


@lru_cache(maxsize=4096)
def classify(text):
    """Classify a fragment into exactly one expansion production."""
    segments = list(parse_fragment(text))

    if len(segments) == 1:
        only = segments[0]
        if isinstance(only, RuleRef):
            kind = FragmentKind.ONLY_RULE_WITH_ACTIONS if only.actions else FragmentKind.ONLY_RULE
            return Fragment(kind=kind, segments=segments)
        if isinstance(only, Action):
            if only.key is None:
                kind = FragmentKind.KEYLESS_RULE_ACTION
            elif only.is_text_only():
                kind = FragmentKind.KEY_WITH_TEXT_ACTION
            else:
                kind = FragmentKind.KEY_WITH_RULE_ACTION
            return Fragment(kind=kind, segments=segments)

    if len(segments) > 1 and all(isinstance(segment, Action) for segment in segments):
        return Fragment(kind=FragmentKind.ONLY_ACTIONS, segments=segments)

    if any(not isinstance(segment, Text) for segment in segments):
        return Fragment(kind=FragmentKind.MIXED_TEXT, segments=segments)

    return Fragment(kind=FragmentKind.LITERAL, segments=segments)


def is_expandable(text):
    """True if the fragment holds a rule reference or an action group."""
    return any(not isinstance(segment, Text) for segment in parse_fragment(text))


def _walk(segments):
    for segment in segments:
        yield segment
        if isinstance(segment, RuleRef):
            yield from _walk(segment.actions)
        elif isinstance(segment, Action):
            yield from _walk(segment.items)


def contains_rule(text):
    """True if a rule reference appears anywhere in the fragment."""
    return any(isinstance(segment, RuleRef) for segment in _walk(parse_fragment(text)))


def find_rule_names(text):
    """Every rule name referenced in the fragment, in document order."""
    return [segment.name for segment in _walk(parse_fragment(text)) if isinstance(segment, RuleRef)]


def find_action_keys(text):
    """Every key bound by an action in the fragment, in document order."""
    return [segment.key for segment in _walk(parse_fragment(text))
            if isinstance(segment, Action) and segment.key is not None]


_PARAMETRIC_MODIFIER = re.compile(r'^([^(]+)\((.*)\)$')


def parse_modifier(token):
    """Split `name(p1,p2)` into name and parameters; `name()` has none."""
    match = _PARAMETRIC_MODIFIER.match(token)
    if not match:
        return ModifierCall(name=token)
    name, params = match.group(1), match.group(2)
    return ModifierCall(name=name, params=params.split(',') if params else [])
