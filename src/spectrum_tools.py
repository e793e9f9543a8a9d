"""
Wavenumber-domain construction for self-affine surfaces (Spectral
Representation Method).

Every grid cell (kx, ky) of the spectrum stands for one plane wave
cos(kx*x + ky*y + phi). Giving each wave an amplitude |k|^-(H+1) and a
uniform random phase, and then superposing them all, yields a surface whose
power spectrum follows S(k) ~ |k|^-2(H+1), the signature of a self-affine
surface with fractal dimension D = 3 - H.

Pipeline stages provided here:
    make_spectrum      -> (Re, Im) with power-law amplitude and random phase
    enforce_hermitian  -> in-place conjugate symmetry so the IFFT is real
"""

import math
import numpy as np

# Cells with a (scaled) squared wavenumber below this are the DC term
K2_MIN = 1e-30


def wavenumber_axis(n: int, dk: float) -> np.ndarray:
    """
    FFT-natural wavenumber ordering: [0, 1, ..., n//2, n//2+1-n, ..., -1] * dk.
    """
    n = int(n)
    h = n // 2
    i = np.arange(n)
    return np.where(i <= h, i, i - n) * float(dk)


def rotated_squared_wavenumber(
        kx: np.ndarray,
        ky: np.ndarray,
        theta: float,
        ax: float,
        ay: float = 1.0,
) -> np.ndarray:
    """
    Rotate wavevectors by `theta`, then scale them elliptically.

        | xr |   |  cos t  sin t | | kx |
        | yr | = | -sin t  cos t | | ky |

        k^2 = (xr / ax)^2 + (yr / ay)^2

    ax > 1 lowers the effective wavenumber along the rotated x axis, which
    raises the amplitude of waves travelling in that direction: the surface
    gets steeper, shorter features along x than along y.

    Parameters
    ----------
    kx, ky : np.ndarray
        Wavevector components (broadcastable against each other).
    theta : float
        Rotation angle in radians.
    ax, ay : float
        Anisotropy factors on the rotated components.

    Returns
    -------
    np.ndarray
        Scaled squared wavenumber, broadcast shape of (kx, ky).
    """
    c = math.cos(theta)
    s = math.sin(theta)
    xr = c * kx + s * ky
    yr = -s * kx + c * ky
    xa = xr / ax
    ya = yr / ay
    return xa * xa + ya * ya


def make_spectrum(
        nx: int,
        ny: int,
        Lx: float,
        Ly: float,
        H: float,
        ax: float,
        ay: float,
        theta_deg: float,
        rng,
        verbose: bool = False,
) -> tuple[np.ndarray, np.ndarray]:
    """
    Build a complex wavenumber-domain field with power-law amplitude and
    random phase.

    Parameters
    ----------
    nx, ny : int
        Grid size along x (columns) and y (rows).
    Lx, Ly : float
        Physical domain side lengths; wavenumber spacing is 2*pi/L per axis.
    H : float
        Hurst exponent; amplitudes scale as k^-(H+1).
    ax, ay : float
        Elliptical anisotropy factors applied after rotation.
    theta_deg : float
        Rotation of the wavevector frame, in degrees.
    rng : object with next()/draw(n)
        Phase source. One value is consumed per non-DC cell, in row-major
        order (row j outer, column i inner).
    verbose : bool, default False
        Print a one-line summary.

    Returns
    -------
    (np.ndarray, np.ndarray)
        (Re, Im), each of shape (ny, nx). The DC cell(s) are left at zero.
        The field is NOT yet Hermitian-symmetric; see `enforce_hermitian`.
    """
    th = (theta_deg * math.pi) / 180
    dkx = (2 * math.pi) / Lx
    dky = (2 * math.pi) / Ly
    kx = wavenumber_axis(nx, dkx)
    ky = wavenumber_axis(ny, dky)

    # Row index is ky, column index is kx
    k2 = rotated_squared_wavenumber(kx[None, :], ky[:, None], th, ax, ay)
    active = k2 >= K2_MIN

    Re = np.zeros((ny, nx), dtype=float)
    Im = np.zeros((ny, nx), dtype=float)

    alpha = H + 1
    amp = np.power(np.sqrt(k2[active]), -alpha)
    # Boolean indexing walks the grid in C order, matching the draw order
    phi = 2 * math.pi * rng.draw(int(np.count_nonzero(active)))
    Re[active] = amp * np.cos(phi)
    Im[active] = amp * np.sin(phi)

    if verbose:
        print(f"[make_spectrum] {ny}x{nx} cells, {phi.size} phases drawn, "
              f"H={H:.4f}, theta={theta_deg:.2f} deg, ax={ax}, ay={ay}")
    return Re, Im


def mirror_indices(n: int) -> np.ndarray:
    """Index of the conjugate partner along one axis: (n - i) % n."""
    i = np.arange(int(n))
    return (n - i) % n


def enforce_hermitian(Re: np.ndarray, Im: np.ndarray) -> None:
    """
    Make a complex spectrum conjugate-symmetric, in place:
        F(-k) = conj(F(k))  ->  the inverse transform is purely real.

    For each cell, the one coming first in row-major order keeps its value and
    its mirror ((ny-j) % ny, (nx-i) % nx) receives the conjugate. Cells that
    are their own mirror (the Nyquist row/column crossings) keep their real
    part and get a zero imaginary part. The origin is forced to (0, 0) so the
    surface has zero mean.

    Running it again on a symmetric field changes nothing.

    Parameters
    ----------
    Re, Im : np.ndarray
        (ny, nx) float arrays, modified in place.
    """
    if Re.ndim != 2 or Re.shape != Im.shape:
        raise ValueError("Re and Im must be 2D arrays of identical shape (ny, nx).")
    ny, nx = Re.shape

    jj = mirror_indices(ny)
    ii = mirror_indices(nx)
    Re_m = Re[jj][:, ii]
    Im_m = Im[jj][:, ii]

    flat = np.arange(ny * nx).reshape(ny, nx)
    flat_m = flat[jj][:, ii]
    later = flat > flat_m
    self_mirror = flat == flat_m

    Re[later] = Re_m[later]
    Im[later] = -Im_m[later]
    Im[self_mirror] = 0.0

    Re[0, 0] = 0.0
    Im[0, 0] = 0.0
