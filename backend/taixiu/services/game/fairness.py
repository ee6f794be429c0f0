"""Commit-reveal round seeds and the dice randomizer.

Each round opens with a fresh secret seed. Only ``sha256(seed)`` is shown
to players while bets are open; the seed itself is revealed in the round
result, so anyone can recompute the hash and check it was fixed up front.
"""
import hashlib
import hmac
import secrets
from dataclasses import dataclass
from typing import Callable, Tuple

SEED_BYTES = 16
DICE_COUNT = 3
DICE_FACES = 6

_U32_RANGE = 2 ** 32


def sha256_hex(value: str) -> str:
    return hashlib.sha256(value.encode('utf-8')).hexdigest()


def verify_commitment(seed: str, commit: str) -> bool:
    """Recompute the commitment for a revealed seed, as a client would."""
    return hmac.compare_digest(sha256_hex(seed), commit)


@dataclass(frozen=True)
class FairnessCommitment:
    seed: str
    commit: str

    @classmethod
    def open(cls) -> 'FairnessCommitment':
        seed = secrets.token_hex(SEED_BYTES)
        return cls(seed=seed, commit=sha256_hex(seed))

    def reveal(self) -> str:
        return self.seed


class Randomizer:
    """Uniform integers from a 32-bit secure random draw.

    Plain modulo reduction is slightly biased when the span does not divide
    2**32; with ``rejection_sampling`` the draws in the uneven tail are
    thrown away and redrawn.
    """

    def __init__(self, rejection_sampling: bool = False, source: Callable[[int], bytes] = None):
        self.rejection_sampling = rejection_sampling
        self._source = source or secrets.token_bytes

    def _draw_u32(self) -> int:
        return int.from_bytes(self._source(4), 'big')

    def uniform_int(self, lo: int, hi: int) -> int:
        if hi < lo:
            raise ValueError(f"empty range [{lo}, {hi}]")
        span = hi - lo + 1
        n = self._draw_u32()
        if self.rejection_sampling:
            limit = _U32_RANGE - (_U32_RANGE % span)
            while n >= limit:
                n = self._draw_u32()
        return lo + (n % span)

    def roll_dice(self, count: int = DICE_COUNT, faces: int = DICE_FACES) -> Tuple[int, ...]:
        return tuple(self.uniform_int(1, faces) for _ in range(count))
