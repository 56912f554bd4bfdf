"""Seeded linear-congruential generator used by every randomized routine."""

LCG_MULTIPLIER = 1103515245
LCG_INCREMENT = 12345
LCG_MASK = 0x7FFFFFFF


class SeededRandom:
    """
    Deterministic generator: ``state = (state * 1103515245 + 12345) & 0x7fffffff``.

    Each optimizer run owns its own instance, so concurrent runs with the
    same seed produce identical results.

    Usage:
        rng = SeededRandom(42)
        x = rng()          # float in [0, 1]
        i = rng.index(10)  # int in [0, 10)
    """

    def __init__(self, seed: int = 42):
        self.seed = seed
        self.state = seed

    def next_state(self) -> int:
        # The product is formed in double precision before masking
        product = float(self.state) * LCG_MULTIPLIER + LCG_INCREMENT
        self.state = int(product) & LCG_MASK
        return self.state

    def random(self) -> float:
        """Next value in [0, 1]."""
        return self.next_state() / LCG_MASK

    def index(self, upper: int) -> int:
        """Uniform index in [0, upper); ``upper`` must be positive."""
        return min(int(self.random() * upper), upper - 1)

    __call__ = random
