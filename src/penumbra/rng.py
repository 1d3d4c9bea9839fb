from __future__ import annotations

import hashlib
import json
import logging
import random
from typing import Any, Dict, List, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_SEED = 2**64 - 1


def _to_stable_json(value: Any) -> str:
    """Stable JSON encoding for hashing.

    Ensures consistent ordering and representation across runs and Python versions
    (for basic types). This is critical to make seed derivation deterministic.
    """
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def validate_seed(seed: int) -> int:
    if isinstance(seed, bool) or not isinstance(seed, int):
        raise TypeError("Unsupported seed type: %r" % (type(seed),))
    if not 0 <= seed <= MAX_SEED:
        raise ValueError("seed must be an unsigned 64-bit integer")
    return seed


def derive_seed(master_seed: int, domain: str, *identifiers: Any) -> int:
    """Derive a 64-bit integer seed from the master seed and a domain name.

    Domain examples: "generation", "simulation". Each domain gets its own
    independent stream so that consuming numbers in one never shifts another.
    """
    payload = {
        "domain": domain,
        "ids": identifiers,
        "master": validate_seed(master_seed),
        "algo": "blake2b-64",
        "version": 1,
    }
    data = _to_stable_json(payload).encode("utf-8")
    h = hashlib.blake2b(data, digest_size=8)
    seed_int = int.from_bytes(h.digest(), "big", signed=False)
    logger.debug("Derived seed for domain=%s ids=%s -> %d", domain, identifiers, seed_int)
    return seed_int


class RandomSource:
    """
    A thin wrapper around random.Random that counts every draw.

    Every helper consumes exactly one underlying ``random()`` call, so the
    complete state of the stream is ``(seed, draws)``: a fresh source with the
    same seed fast-forwarded by ``draws`` continues bit-identically. This is
    what run snapshots store instead of pickled generator state.
    """

    def __init__(self, seed: int, draws: int = 0) -> None:
        self.seed = validate_seed(seed)
        self._rng = random.Random(self.seed)
        self._draws = 0
        if draws < 0:
            raise ValueError("draws must be >= 0")
        self.fast_forward(draws)
        logger.debug("Initialized RandomSource seed=%d draws=%d", self.seed, self._draws)

    @property
    def draws(self) -> int:
        return self._draws

    def fast_forward(self, count: int) -> None:
        for _ in range(count):
            self.random()

    def random(self) -> float:
        self._draws += 1
        return self._rng.random()

    def randrange(self, n: int) -> int:
        """Uniform integer in [0, n)."""
        if n <= 0:
            raise ValueError("randrange() requires n > 0")
        return min(n - 1, int(self.random() * n))

    def randint(self, a: int, b: int) -> int:
        """Uniform integer in [a, b], both inclusive."""
        if b < a:
            raise ValueError("randint() requires a <= b")
        return a + self.randrange(b - a + 1)

    def chance(self, probability: float) -> bool:
        return self.random() < probability

    def choice(self, seq: Sequence[T]) -> T:
        if not seq:
            raise ValueError("RandomSource.choice() received an empty sequence")
        return seq[self.randrange(len(seq))]

    def weighted_choice(self, weights: Dict[Any, float]) -> Any:
        """
        Select a key from a dictionary of weights where values are non-negative numbers.
        If all weights are zero, raises ValueError.
        """
        if not weights:
            raise ValueError("weighted_choice requires a non-empty weights mapping")

        keys: List[Any] = []
        cumulative: List[float] = []
        total = 0.0
        for k, w in weights.items():
            if w < 0:
                raise ValueError(f"Weight for {k!r} must be non-negative, got {w}")
            if w == 0:
                continue
            total += w
            keys.append(k)
            cumulative.append(total)

        if total == 0:
            raise ValueError("All weights are zero; cannot make a weighted choice")

        r = self.random() * total
        for i, c in enumerate(cumulative):
            if r < c:
                return keys[i]
        return keys[-1]

    def state(self) -> Dict[str, int]:
        return {"seed": self.seed, "draws": self._draws}

    @classmethod
    def from_state(cls, data: Dict[str, int]) -> "RandomSource":
        return cls(int(data["seed"]), draws=int(data["draws"]))

    def __repr__(self) -> str:
        return f"RandomSource(seed={self.seed}, draws={self._draws})"


__all__ = ["RandomSource", "derive_seed", "validate_seed", "MAX_SEED"]
