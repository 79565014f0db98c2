# ==========================================
# CONFIGURATION & GRAMMAR FILES
# ==========================================
import json
import os
import sys
from typing import Optional

from pydantic import BaseModel, ValidationError

from weave.diagnostics import debug_log, warn_log
from weave.errors import GrammarLoadError, get_line_context

SETTINGS_FILE = "taleweave.json"
USER_SETTINGS_FILE = os.path.join("~", ".taleweave", "settings.json")


class EngineSettings(BaseModel):
    """How grammars are built and expanded."""
    start: str = "origin"
    seed: Optional[int] = None
    english_modifiers: bool = True
    extended_modifiers: bool = True
    strict_modifiers: bool = False
    strict_rules: bool = False


def settings_paths():
    return [SETTINGS_FILE, os.path.expanduser(USER_SETTINGS_FILE)]


def load_settings(path=None):
    """Load engine settings from `path`, taleweave.json or ~/.taleweave/settings.json."""
    paths = [path] if path else settings_paths()
    for p in paths:
        if not os.path.exists(p):
            continue
        try:
            with open(p, "r") as f:
                settings = EngineSettings.model_validate(json.load(f))
            debug_log(f"Loaded settings from {p}")
            return settings
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            warn_log(f"Ignoring settings file {p}: {e}")
            return EngineSettings()
    return EngineSettings()


def load_grammar(path):
    """Read a JSON grammar file ('-' reads stdin) into a rule mapping."""
    if path is None or path == "-":
        source = sys.stdin.read()
        path = "<stdin>"
    elif not os.path.exists(path):
        raise GrammarLoadError(
            "Grammar file not found",
            path=path,
            suggestion="Check the path, or pass '-' to read the grammar from stdin",
        )
    else:
        with open(path, "r") as f:
            source = f.read()

    try:
        rules = json.loads(source)
    except json.JSONDecodeError as e:
        raise GrammarLoadError(
            f"Invalid JSON: {e.msg}",
            path=path,
            line_number=e.lineno,
            column=e.colno,
            context=get_line_context(source, e.lineno),
            suggestion="Grammars are JSON objects mapping rule names to text, lists or handler objects",
        )

    if not isinstance(rules, dict):
        raise GrammarLoadError(
            f"Expected a JSON object of rules, got {type(rules).__name__}",
            path=path,
            suggestion='Wrap the rules in an object: {"origin": "..."}',
        )
    return rules
