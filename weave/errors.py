"""
Error types for the taleweave engine.

Structural grammar problems (bad modifier calls, broken handler objects)
abort the enclosing expansion or flatten and surface here. Each error keeps
the fragment that triggered it and collects the enclosing fragments as it
propagates, so the final report traces the whole nesting.
"""


class WeaveError(Exception):
    """Base exception for grammar expansion errors, with context and hints."""
    def __init__(self, message, rule=None, fragment=None, suggestion=None):
        self.message = message
        self.rule = rule
        self.fragment = fragment  # The node text that raised
        self.suggestion = suggestion  # How to fix it
        self.trace = []  # Enclosing fragments, innermost first
        super().__init__(self._format_error())

    def add_context(self, fragment):
        """Record one enclosing fragment and refresh the formatted message."""
        self.trace.append(fragment)
        self.args = (self._format_error(),)
        return self

    def _format_error(self):
        """Format the error message with rule, fragment, trace and suggestion."""
        lines = [f"\n❌ {type(self).__name__}"]
        if self.rule:
            lines.append(f" in rule '{self.rule}'")
        lines.append(":\n")

        lines.append(f"   {self.message}\n")

        if self.fragment is not None:
            lines.append(f"   > {self.fragment}\n")

        for outer in self.trace:
            lines.append(f"     in {outer}\n")

        if self.suggestion:
            lines.append(f"   💡 {self.suggestion}\n")

        return "".join(lines)

    def __str__(self):
        return self._format_error()


class ModifierArityError(WeaveError):
    """A modifier was called with the wrong number of parameters."""
    def __init__(self, modifier, expected, received, rule=None, fragment=None):
        self.modifier = modifier
        self.expected = expected
        self.received = received
        super().__init__(
            f"Modifier '{modifier}' takes {expected} parameter(s) but got {received}",
            rule=rule,
            fragment=fragment,
            suggestion=f"Call it as '{modifier}(" + ",".join(["..."] * expected) + ")'"
            if expected else f"Call it as '{modifier}' without parameters",
        )


class BadHandlerError(WeaveError):
    """Rule content object names no handler, an unknown one, or returned a non-string."""


class UnexpectedTypeError(WeaveError):
    """A value had the wrong structured-value type for the operation."""


class UnknownModifierError(WeaveError):
    """A modifier name is not registered (strict grammars only)."""


class UndefinedRuleError(WeaveError):
    """A rule is referenced but neither bound nor defined (strict grammars only)."""


class GrammarLoadError(WeaveError):
    """A grammar file could not be read or decoded."""
    def __init__(self, message, path=None, line_number=None, column=None, context=None, suggestion=None):
        self.path = path
        self.line_number = line_number
        self.column = column
        location = path or "<grammar>"
        if line_number:
            location += f" at line {line_number}"
            if column:
                location += f", column {column}"
        super().__init__(f"{message} ({location})", fragment=context, suggestion=suggestion)


def get_line_context(source_text, line_number):
    """Extract the line of text from source by line number (1-based)."""
    if not source_text or line_number is None:
        return None
    source_lines = source_text.split('\n')
    if 0 < line_number <= len(source_lines):
        return source_lines[line_number - 1].strip()
    return None
