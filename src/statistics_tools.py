import numpy as np
from scipy import stats

import spectrum_tools as spt


def rescale(z: np.ndarray, target_std: float) -> np.ndarray:
    """
    Shift and scale a height field to zero mean and a target standard deviation.

    Parameters
    ----------
    z : np.ndarray
        Real height field of any shape.
    target_std : float
        Desired (population) standard deviation of the output.

    Returns
    -------
    np.ndarray
        New array (z - mean) * target_std / std, same shape as `z`.

    Notes
    -----
    The variance is taken as E[z^2] - E[z]^2 and floored at 1e-20, so a flat
    input returns zeros instead of dividing by ~0.
    """
    z = np.asarray(z, dtype=float)
    n = z.size
    s = float(np.sum(z))
    s2 = float(np.sum(z * z))
    m = s / n
    sd = np.sqrt(max(1e-20, s2 / n - m * m))
    r = target_std / sd
    return (z - m) * r


def radially_averaged_psd(
        power: np.ndarray,
        kx: np.ndarray,
        ky: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Average a 2D power map over annuli of equal |k|.

    Parameters
    ----------
    power : np.ndarray
        (ny, nx) power values |F(kx, ky)|^2.
    kx, ky : np.ndarray
        Wavenumber axes of length nx and ny (FFT-natural ordering).

    Returns
    -------
    (np.ndarray, np.ndarray)
        Shell wavenumbers (multiples of the coarsest axis spacing, DC shell
        excluded) and the mean power in each non-empty shell.
    """
    power = np.asarray(power, dtype=float)
    kx = np.asarray(kx, dtype=float)
    ky = np.asarray(ky, dtype=float)
    if power.shape != (ky.size, kx.size):
        raise ValueError(f"power must have shape (len(ky), len(kx)) = {(ky.size, kx.size)}, got {power.shape}.")

    steps = [abs(a[1] - a[0]) for a in (kx, ky) if a.size > 1]
    if not steps:
        raise ValueError("At least one axis needs two or more wavenumbers.")
    dk = max(steps)

    K = np.sqrt(kx[None, :] ** 2 + ky[:, None] ** 2)
    shell = np.rint(K / dk).astype(int).ravel()
    nb = int(shell.max()) + 1

    sums = np.bincount(shell, weights=power.ravel(), minlength=nb)
    cnts = np.bincount(shell, minlength=nb)
    keep = (cnts > 0) & (np.arange(nb) > 0)

    k_shell = np.arange(nb)[keep] * dk
    psd = sums[keep] / cnts[keep]
    return k_shell, psd


def spectrum_psd(Re: np.ndarray, Im: np.ndarray, Lx: float, Ly: float) -> tuple[np.ndarray, np.ndarray]:
    """Radial PSD of a synthetic complex spectrum (before the inverse transform)."""
    ny, nx = np.shape(Re)
    kx = spt.wavenumber_axis(nx, 2 * np.pi / Lx)
    ky = spt.wavenumber_axis(ny, 2 * np.pi / Ly)
    power = np.asarray(Re, dtype=float) ** 2 + np.asarray(Im, dtype=float) ** 2
    return radially_averaged_psd(power, kx, ky)


def surface_psd(Z: np.ndarray, Lx: float, Ly: float) -> tuple[np.ndarray, np.ndarray]:
    """Radial PSD of a periodic height map, via numpy's FFT."""
    Z = np.asarray(Z, dtype=float)
    if Z.ndim != 2:
        raise ValueError("Z must be a 2D array.")
    ny, nx = Z.shape
    F = np.fft.fft2(Z - float(np.mean(Z)))
    kx = spt.wavenumber_axis(nx, 2 * np.pi / Lx)
    ky = spt.wavenumber_axis(ny, 2 * np.pi / Ly)
    return radially_averaged_psd(np.abs(F) ** 2, kx, ky)


def fit_power_law(
        k: np.ndarray,
        psd: np.ndarray,
        k_range: tuple[float, float] | None = None,
) -> tuple[float, float]:
    """
    Least-squares line through log10(psd) vs log10(k).

    Parameters
    ----------
    k, psd : np.ndarray
        Shell wavenumbers and powers (non-positive entries are ignored).
    k_range : (float, float) | None
        Inclusive wavenumber window used for the fit; None uses everything.

    Returns
    -------
    (float, float)
        Slope and intercept of the log-log fit.
    """
    k = np.asarray(k, dtype=float)
    psd = np.asarray(psd, dtype=float)
    mask = np.isfinite(k) & np.isfinite(psd) & (k > 0) & (psd > 0)
    if k_range is not None:
        kmin, kmax = k_range
        mask &= (k >= kmin) & (k <= kmax)
    if np.count_nonzero(mask) < 3:
        raise ValueError("Need at least 3 valid (k, psd) points inside k_range to fit a power law.")

    res = stats.linregress(np.log10(k[mask]), np.log10(psd[mask]))
    return float(res.slope), float(res.intercept)


def estimate_fractal_dimension(
        Z: np.ndarray,
        Lx: float,
        Ly: float | None = None,
        band: tuple[float, float] = (0.05, 0.5),
) -> tuple[float, float]:
    """
    Estimate the fractal dimension of a height map from its PSD slope.

    S(k) ~ k^-2(H+1)  ->  H = -slope / 2 - 1,  D = 3 - H.

    Parameters
    ----------
    Z : np.ndarray
        (ny, nx) height map.
    Lx, Ly : float
        Domain side lengths (Ly defaults to Lx).
    band : (float, float), default (0.05, 0.5)
        Fit window as fractions of the largest shell wavenumber, which keeps
        clear of the lowest shells (few samples) and the corner shells
        (partially filled annuli).

    Returns
    -------
    (float, float)
        (D, H) estimates.
    """
    Ly = Lx if Ly is None else Ly
    k, psd = surface_psd(Z, Lx, Ly)
    kmax = float(np.max(k))
    slope, _ = fit_power_law(k, psd, k_range=(band[0] * kmax, band[1] * kmax))
    H = -slope / 2.0 - 1.0
    return 3.0 - H, H
