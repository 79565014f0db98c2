"""
Scoped runtime symbol table.

Each key maps to a stack of structured values. Binding pushes, `pop!!`
unwinds, and a key whose stack empties disappears so lookups fall back to
the grammar's static rule of the same name.
"""


class SymbolTable:
    """Map from key name to a stack of bound values, over a static fallback."""

    def __init__(self, fallback=None):
        self._stacks = {}
        self._fallback = fallback if fallback is not None else {}

    def push(self, key, value):
        self._stacks.setdefault(key, []).append(value)

    def pop(self, key):
        """Remove and return the current binding of `key`, or None if unbound."""
        stack = self._stacks.get(key)
        if not stack:
            return None
        value = stack.pop()
        if not stack:
            del self._stacks[key]
        return value

    def peek(self, key):
        stack = self._stacks.get(key)
        return stack[-1] if stack else None

    def lookup(self, key):
        """Current binding of `key`, else the static rule, else None."""
        if key in self._stacks:
            return self._stacks[key][-1]
        return self._fallback.get(key)

    def depth(self, key):
        return len(self._stacks.get(key, ()))

    def keys(self):
        return list(self._stacks)

    def snapshot(self):
        return {key: list(stack) for key, stack in self._stacks.items()}

    def __contains__(self, key):
        return key in self._stacks

    def __repr__(self):
        return f"SymbolTable({self.snapshot()!r})"
