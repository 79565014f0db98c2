"""
Shared pytest fixtures: scripted randomness sources.
"""
import random

import pytest


class FixedRandom(random.Random):
    """Always selects `value` (mod the option count); optionally flips 0/1 after each pick."""

    def __init__(self, value, alternate=False):
        super().__init__(0)
        self.value = value
        self.alternate = alternate

    def randrange(self, start, stop=None, step=1):
        count = start if stop is None else stop - start
        picked = self.value % count
        if self.alternate:
            self.value = (self.value + 1) % 2
        return picked


class ScriptedRandom(random.Random):
    """`random()` returns the scripted floats in order, cycling."""

    def __init__(self, values):
        super().__init__(0)
        self.values = list(values)
        self.calls = 0

    def random(self):
        value = self.values[self.calls % len(self.values)]
        self.calls += 1
        return value


@pytest.fixture
def fixed_rng():
    """Factory for FixedRandom instances."""
    return FixedRandom


@pytest.fixture
def scripted_rng():
    """Factory for ScriptedRandom instances."""
    return ScriptedRandom
