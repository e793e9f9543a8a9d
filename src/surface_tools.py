import math
import numbers
from dataclasses import dataclass, field, fields, asdict
from typing import Any, Mapping

import numpy as np

import rng_tools as rng_t
import fft_tools as fft
import spectrum_tools as spt
import statistics_tools as st


@dataclass
class SurfaceConfig:
    """
    Inputs of one surface synthesis run. Every field has a default.

    Attributes
    ----------
    nx, ny : int
        Grid points along x (columns) and y (rows); powers of two.
    L : float
        Side length of the square domain.
    D : float
        Fractal dimension, 2 < D < 3 (Hurst exponent H = 3 - D).
    sigma : float
        Target RMS height of the output.
    anisotropy : float
        Stretch factor ax on the rotated x wavenumber (ay is fixed to 1).
    theta_deg : float
        Rotation of the wavevector frame, in degrees.
    rng_kind : str
        'parkmiller', 'baysdurham' or 'lecuyer' (aliases accepted).
    seed : int
        Generator seed; any integer.
    """

    nx: int = 512
    ny: int = 512
    L: float = 0.1
    D: float = 2.1
    sigma: float = 0.01
    anisotropy: float = 1.0
    theta_deg: float = 0.0
    rng_kind: str = "parkmiller"
    seed: int = 799753397

    # Alternative spellings accepted by `resolve_keys`
    _ALIASES = {
        "thetadeg": "theta_deg",
        "rngkind": "rng_kind",
    }

    @classmethod
    def resolve_keys(cls, values: Mapping[str, Any]) -> dict:
        """
        Map the keys of `values` to field names, accepting the camelCase keys
        'thetaDeg' and 'rngKind' as well. Unknown keys and a field given under
        both spellings raise a ValueError.
        """
        names = {f.name for f in fields(cls)}
        kwargs = {}
        seen = {}
        unknown = []
        duplicated = []
        for key, value in dict(values).items():
            name = key if key in names else cls._ALIASES.get(str(key).lower())
            if name is None:
                unknown.append(str(key))
                continue
            if name in seen:
                duplicated.append(f"{seen[name]}/{key}")
                continue
            seen[name] = key
            kwargs[name] = value

        problems = []
        if unknown:
            problems.append(f"unknown field(s) {', '.join(sorted(unknown))}")
        if duplicated:
            problems.append(f"field(s) given more than once {', '.join(duplicated)}")
        if problems:
            raise ValueError("Invalid surface configuration: " + "; ".join(problems) + ".")
        return kwargs

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "SurfaceConfig":
        """Build a config from a dict; missing keys keep their defaults."""
        return cls(**cls.resolve_keys(values))

    @property
    def H(self) -> float:
        return 3.0 - float(self.D)

    def validate(self) -> "SurfaceConfig":
        """
        Check every field and raise a single ValueError listing all problems.

        Returns the config itself so calls can be chained.
        """
        problems = []

        for name in ("nx", "ny"):
            v = getattr(self, name)
            if isinstance(v, bool) or not isinstance(v, numbers.Integral):
                problems.append(f"{name} must be an integer (got {v!r})")
            elif v < 2 or not fft.is_power_of_two(v):
                problems.append(f"{name} must be a power of two >= 2 (got {v})")

        def _real(name: str) -> float | None:
            v = getattr(self, name)
            if isinstance(v, bool) or not isinstance(v, numbers.Real) or not math.isfinite(v):
                problems.append(f"{name} must be a finite number (got {v!r})")
                return None
            return float(v)

        L = _real("L")
        if L is not None and L <= 0:
            problems.append(f"L must be > 0 (got {L})")

        D = _real("D")
        if D is not None and not (2.0 < D < 3.0):
            problems.append(f"D must lie strictly between 2 and 3 (got {D}, H = {3.0 - D})")

        sigma = _real("sigma")
        if sigma is not None and sigma < 0:
            problems.append(f"sigma must be >= 0 (got {sigma})")

        ax = _real("anisotropy")
        if ax is not None and ax <= 0:
            problems.append(f"anisotropy must be > 0 (got {ax})")

        _real("theta_deg")

        if self.rng_kind is not None and not isinstance(self.rng_kind, str):
            problems.append(f"rng_kind must be a string (got {self.rng_kind!r})")

        seed = self.seed
        if isinstance(seed, bool) or not (
                isinstance(seed, numbers.Integral)
                or (isinstance(seed, numbers.Real) and float(seed).is_integer())
        ):
            problems.append(f"seed must be an integer (got {seed!r})")

        if problems:
            raise ValueError("Invalid surface configuration: " + "; ".join(problems) + ".")
        return self


@dataclass(frozen=True)
class SurfaceResult:
    """
    Output of `generate_surface`.

    Z    : (ny, nx) read-only height grid
    meta : {nx, ny, L, D, H, sigma, anisotropy, thetaDeg, rngKind, seed}
    """

    Z: np.ndarray
    meta: dict = field(default_factory=dict)

    def to_surface(self) -> "Surface":
        return Surface.from_height_map(self.Z, self.meta["L"], self.meta["L"])


class Surface:
    """
    Rectilinear height field Z(X, Y) on a (ny, nx) grid, rows along y and
    columns along x, with helpers for heights and forward-difference slopes.

    Inputs are sanitized to finite numbers and divisions are guarded by a
    tiny epsilon.
    """

    _EPS = 1e-12

    @staticmethod
    def _safe_div(n: np.ndarray, d: np.ndarray, eps: float) -> np.ndarray:
        """Elementwise safe division n/d with zero/near-zero guards."""
        d_safe = np.where(np.isfinite(d), d, 0.0)
        d_safe = np.where(np.abs(d_safe) > eps, d_safe, np.where(d_safe >= 0.0, eps, -eps))
        out = n / d_safe
        return np.nan_to_num(out, nan=0.0, posinf=0.0, neginf=0.0)

    @staticmethod
    def _sanitize(arr: np.ndarray) -> np.ndarray:
        """
        Replace NaN with the finite mean (or 0 if no finite values),
        and clip +-Inf to the finite min/max of the array.
        """
        arr = np.asarray(arr, dtype=float)
        finite_mask = np.isfinite(arr)
        if not np.any(finite_mask):
            return np.zeros_like(arr, dtype=float)
        if np.all(finite_mask):
            return arr.copy()
        finite_vals = arr[finite_mask]
        mean = float(np.mean(finite_vals))
        amin = float(np.min(finite_vals))
        amax = float(np.max(finite_vals))
        out = np.nan_to_num(arr, nan=mean, posinf=amax, neginf=amin)
        return np.clip(out, amin, amax)

    def __init__(self, X: np.ndarray, Y: np.ndarray, Z: np.ndarray):
        """
        Parameters
        ----------
        X, Y, Z : np.ndarray
            2D arrays of identical shape (ny, nx). X[j, i], Y[j, i] are the
            coordinates of grid point (i, j); Z[j, i] is its height.

        Raises
        ------
        ValueError
            If inputs are not 2D or shapes do not match.
        """
        X = np.asarray(X, dtype=float)
        Y = np.asarray(Y, dtype=float)
        Z = np.asarray(Z, dtype=float)

        if X.ndim != 2 or Y.ndim != 2 or Z.ndim != 2:
            raise ValueError("X, Y, Z must be 2D arrays.")
        if X.shape != Y.shape or X.shape != Z.shape:
            raise ValueError("X, Y, Z must have identical shapes.")

        self.X = self._sanitize(X)
        self.Y = self._sanitize(Y)
        self.Z = self._sanitize(Z)

    @classmethod
    def from_height_map(cls, Z: np.ndarray, Lx: float, Ly: float) -> "Surface":
        """
        Place a (ny, nx) height map on a grid centred on the domain, with
        spacing Lx/(nx-1), Ly/(ny-1) (the mesh exporter's layout).
        """
        Z = np.asarray(Z, dtype=float)
        if Z.ndim != 2 or min(Z.shape) < 2:
            raise ValueError("Z must be a 2D array with at least 2 points per axis.")
        ny, nx = Z.shape
        x = np.arange(nx) * (Lx / (nx - 1)) - Lx / 2
        y = np.arange(ny) * (Ly / (ny - 1)) - Ly / 2
        X, Y = np.meshgrid(x, y, indexing="xy")
        return cls(X, Y, Z)

    def get_heights(self) -> np.ndarray:
        """Flattened heights relative to the mean."""
        return (self.Z - np.average(self.Z)).ravel()

    def get_slopes_x(self) -> np.ndarray:
        """
        Forward-difference dZ/dX along the columns, flattened from (ny, nx-1).
        """
        dZ = self.Z[:, 1:] - self.Z[:, :-1]
        dX = self.X[:, 1:] - self.X[:, :-1]
        return self._safe_div(dZ, dX, self._EPS).ravel()

    def get_slopes_y(self) -> np.ndarray:
        """
        Forward-difference dZ/dY along the rows, flattened from (ny-1, nx).
        """
        dZ = self.Z[1:, :] - self.Z[:-1, :]
        dY = self.Y[1:, :] - self.Y[:-1, :]
        return self._safe_div(dZ, dY, self._EPS).ravel()

    def rms_height(self) -> float:
        return float(np.sqrt(np.mean(self.get_heights() ** 2)))

    def rms_slope(self) -> float:
        """sqrt(<(dZ/dX)^2> + <(dZ/dY)^2>)"""
        sx = self.get_slopes_x()
        sy = self.get_slopes_y()
        return float(np.sqrt(np.mean(sx ** 2) + np.mean(sy ** 2)))


def generate_surface(
        config: SurfaceConfig | Mapping[str, Any] | None = None,
        verbose: bool = False,
        **overrides: Any,
) -> SurfaceResult:
    """
    Synthesize one self-affine rough surface with the Spectral Representation
    Method.

    Steps
      1) validate the configuration (nothing is computed if it is invalid)
      2) H = 3 - D; one phase generator for this call
      3) power-law spectrum with random phases
      4) conjugate symmetry, in place
      5) 2D inverse FFT (real part)
      6) rescale to zero mean and RMS sigma

    Parameters
    ----------
    config : SurfaceConfig | Mapping | None
        Configuration object or dict of fields; None uses all defaults.
    verbose : bool, default False
        Print a line per stage.
    **overrides
        Field values applied on top of `config` (e.g. nx=256, seed=1).

    Returns
    -------
    SurfaceResult
        Height grid Z (ny, nx) and the metadata describing how it was made.
        Identical configurations give bit-identical Z.

    Raises
    ------
    ValueError
        If the configuration is invalid (one message listing every problem).
    """
    if config is None:
        cfg = SurfaceConfig()
    elif isinstance(config, SurfaceConfig):
        cfg = SurfaceConfig(**asdict(config))
    else:
        cfg = SurfaceConfig.from_mapping(config)
    if overrides:
        cfg = SurfaceConfig(**{**asdict(cfg), **SurfaceConfig.resolve_keys(overrides)})
    cfg.validate()

    nx, ny = int(cfg.nx), int(cfg.ny)
    L = float(cfg.L)
    D = float(cfg.D)
    H = cfg.H
    ax, ay = float(cfg.anisotropy), 1.0
    Lx, Ly = L, L
    kind = rng_t.canonical_rng_kind(cfg.rng_kind)

    rng = rng_t.make_rng(kind, cfg.seed)
    if verbose:
        print(f"[generate_surface] {ny}x{nx} grid, L={L}, D={D} (H={H:.4f}), "
              f"sigma={cfg.sigma}, rng={kind}, seed={cfg.seed}")

    Re, Im = spt.make_spectrum(nx, ny, Lx, Ly, H, ax, ay, float(cfg.theta_deg), rng, verbose=verbose)
    spt.enforce_hermitian(Re, Im)

    Z = fft.ifft_2d(Re, Im)
    Z = st.rescale(Z, float(cfg.sigma))
    Z.setflags(write=False)

    if verbose:
        print(f"[generate_surface] done: mean={float(np.mean(Z)):.3e}, std={float(np.std(Z)):.6e}")

    meta = {
        "nx": nx,
        "ny": ny,
        "L": L,
        "D": D,
        "H": H,
        "sigma": float(cfg.sigma),
        "anisotropy": float(cfg.anisotropy),
        "thetaDeg": float(cfg.theta_deg),
        "rngKind": kind,
        "seed": int(cfg.seed),
    }
    return SurfaceResult(Z=Z, meta=meta)
