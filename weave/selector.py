"""Uniform selection over rule alternatives."""
import random


class RandomSelector:
    """
    Picks one alternative uniformly.

    `rng` is anything with the `random.Random` interface, so tests can pass
    a subclass with a scripted `randrange`.
    """

    def __init__(self, rng=None):
        self.rng = rng if rng is not None else random.Random()

    def pick(self, options):
        if not options:
            return ""
        return options[self.rng.randrange(len(options))]
