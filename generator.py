from weave.config import EngineSettings
from weave.diagnostics import debug_log, set_verbose, warn_log
from weave.grammar import Grammar
from weave.introspection import GrammarInspector
from weave.modifiers import base_english_modifiers, base_extended_modifiers

__all__ = ["build_grammar", "report_warnings", "start_text", "generate", "trace", "inspect_grammar", "set_verbose"]


def build_grammar(rules, settings=None):
    """Grammar configured from settings: seed, built-in modifiers, strictness."""
    settings = settings or EngineSettings()
    grammar = Grammar.seeded(
        rules,
        seed=settings.seed,
        strict_modifiers=settings.strict_modifiers,
        strict_rules=settings.strict_rules,
    )
    if settings.english_modifiers:
        grammar.add_modifiers(base_english_modifiers())
    if settings.extended_modifiers:
        grammar.add_modifiers(base_extended_modifiers())
    debug_log(f"Built {grammar!r}")
    return grammar


def report_warnings(tree):
    """Show the non-fatal problems a tree collected."""
    for message in tree.warnings:
        warn_log(message)


def start_text(symbol):
    """`origin` -> `#origin#`; text already holding '#' or '[' is used as is."""
    if "#" in symbol or "[" in symbol:
        return symbol
    return f"#{symbol}#"


def generate(rules, start=None, count=1, settings=None):
    """Generate `count` independent outputs from one grammar."""
    settings = settings or EngineSettings()
    grammar = build_grammar(rules, settings)
    text = start_text(start or settings.start)
    outputs = []
    for i in range(count):
        tree = grammar.get_tree(text).expand_fully()
        outputs.append(tree.flatten())
        debug_log(f"Output {i + 1}: {len(tree.warnings)} warning(s)")
        report_warnings(tree)
    return outputs


def trace(rules, start=None, settings=None):
    """
    Step through one expansion.

    Returns the raw partially expanded text after each step (modifiers not
    applied, hidden nodes left out) and the final flattened output.
    """
    settings = settings or EngineSettings()
    grammar = build_grammar(rules, settings)
    tree = grammar.get_tree(start_text(start or settings.start))
    snapshots = [(0, tree.preview())]
    while not tree.finished:
        tree.step()
        snapshots.append((len(snapshots), tree.preview()))
    output = tree.flatten()
    report_warnings(tree)
    return snapshots, output


def inspect_grammar(rules):
    return GrammarInspector(rules).report()
