"""
Uniform pseudo-random generators used to draw spectral phases.

Three classical generators share the same small interface:
- next()    -> float in the open interval (0, 1), advancing the state
- draw(n)   -> the next n values as a float array, in draw order

All state transitions use Python integers and a single double division,
so a (kind, seed) pair always reproduces the same sequence.
"""

import math
import numpy as np


class ParkMiller:
    """
    Lehmer "minimal standard" generator, state <- 16807 * state mod (2^31 - 1).
    """

    M = 2147483647
    A = 16807

    def __init__(self, seed: int = 1):
        # Map the seed into [1, M-1] so the state never locks at 0
        self.state = (abs(math.floor(seed)) % (self.M - 1)) + 1

    def next(self) -> float:
        self.state = (self.A * self.state) % self.M
        return self.state / self.M

    def draw(self, n: int) -> np.ndarray:
        n = int(n)
        return np.fromiter((self.next() for _ in range(n)), dtype=float, count=n)


class BaysDurham:
    """
    Park-Miller output passed through a Bays-Durham shuffle table.

    The table breaks the short-range serial correlation of the underlying LCG:
    each call picks a slot from a fresh inner draw, returns the stored value and
    refills the slot with another inner draw.
    """

    def __init__(self, seed: int = 1, n: int = 32):
        self.pm = ParkMiller(seed)
        self.n = int(n)
        self.table = [self.pm.next() for _ in range(self.n)]

    def next(self) -> float:
        j = math.floor(self.pm.next() * self.n)
        r = self.table[j]
        self.table[j] = self.pm.next()
        return r

    def draw(self, n: int) -> np.ndarray:
        n = int(n)
        return np.fromiter((self.next() for _ in range(n)), dtype=float, count=n)


class Lecuyer:
    """
    L'Ecuyer combined multiplicative congruential generator with a
    Bays-Durham style shuffle (the "ran2" construction).

    Two sequences with moduli IM1, IM2 are advanced with Schrage's method
    (no intermediate product exceeds the modulus range). Their difference,
    routed through a 32-entry table, is the output. Values are clamped below
    RNMX so 1.0 is never returned.

    Notes
    -----
    - The seed is mapped into [1, IM1-1] before the warm-up, so any integer is
      accepted.
    - The second sequence always starts from 123456789; only the first one is
      seeded.
    - The table is filled by a warm-up of NTAB + 8 steps of the first sequence,
      and the first sequence continues from the warmed-up state.
    """

    IM1 = 2147483563
    IM2 = 2147483399
    AM = 1.0 / IM1
    IA1 = 40014
    IA2 = 40692
    IQ1 = 53668
    IQ2 = 52774
    IR1 = 12211
    IR2 = 3791
    NTAB = 32
    NDIV = 1 + (IM1 - 1) // NTAB
    EPS = 1.2e-7
    RNMX = 1.0 - EPS

    def __init__(self, seed: int = 1):
        idum = (abs(math.floor(seed)) % (self.IM1 - 1)) + 1
        self.idum2 = 123456789
        self.iv = [0] * self.NTAB

        for j in range(self.NTAB + 7, -1, -1):
            k = idum // self.IQ1
            idum = self.IA1 * (idum - k * self.IQ1) - k * self.IR1
            if idum < 0:
                idum += self.IM1
            if j < self.NTAB:
                self.iv[j] = idum

        self.iy = self.iv[0]
        self.idum = idum

    def next(self) -> float:
        k = self.idum // self.IQ1
        self.idum = self.IA1 * (self.idum - k * self.IQ1) - k * self.IR1
        if self.idum < 0:
            self.idum += self.IM1

        k2 = self.idum2 // self.IQ2
        self.idum2 = self.IA2 * (self.idum2 - k2 * self.IQ2) - k2 * self.IR2
        if self.idum2 < 0:
            self.idum2 += self.IM2

        # iy <= IM1 - 1 keeps j below NTAB
        j = self.iy // self.NDIV
        self.iy = self.iv[j] - self.idum2
        self.iv[j] = self.idum
        if self.iy < 1:
            self.iy += self.IM1 - 1

        t = self.AM * self.iy
        return self.RNMX if t > self.RNMX else t

    def draw(self, n: int) -> np.ndarray:
        n = int(n)
        return np.fromiter((self.next() for _ in range(n)), dtype=float, count=n)


RNG_KINDS = {
    "parkmiller": ParkMiller,
    "baysdurham": BaysDurham,
    "bays-durham": BaysDurham,
    "lecuyer": Lecuyer,
    "l'ecuyer": Lecuyer,
}


def canonical_rng_kind(kind: str | None) -> str:
    """Return the canonical generator name for `kind` (unknown names map to 'parkmiller')."""
    cls = RNG_KINDS.get(str(kind or "parkmiller").strip().lower(), ParkMiller)
    return {ParkMiller: "parkmiller", BaysDurham: "baysdurham", Lecuyer: "lecuyer"}[cls]


def make_rng(kind: str | None, seed: int) -> ParkMiller | BaysDurham | Lecuyer:
    """
    Build a fresh generator selected by name.

    Parameters
    ----------
    kind : str | None
        'parkmiller', 'baysdurham' / 'bays-durham' or 'lecuyer' / "l'ecuyer"
        (case-insensitive). None and unrecognized names fall back to Park-Miller.
    seed : int
        Any integer; each generator normalizes it internally.

    Returns
    -------
    ParkMiller | BaysDurham | Lecuyer
        A new generator owning its own state.
    """
    cls = RNG_KINDS.get(str(kind or "parkmiller").strip().lower(), ParkMiller)
    return cls(seed)
