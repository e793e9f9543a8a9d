"""
Radix-2 FFT / IFFT used to bring the synthetic spectrum back to real space.

The 1D transform is the iterative Cooley-Tukey scheme (bit-reversal reorder,
then butterfly passes of doubling length). It runs along the last axis of the
input arrays; any leading axes are treated as a batch of independent
sequences, each one going through exactly the same sequence of floating-point
operations as a lone 1D transform would.

Sign convention
    forward : twiddle angle +2*pi/len
    inverse : twiddle angle -2*pi/len, result divided by n
so `ifft_1d(x)` equals `numpy.fft.fft(x) / n` and `fft_1d(x)` equals
`numpy.fft.ifft(x) * n`. Each one undoes the other.
"""

import math
import numpy as np


def is_power_of_two(n: int) -> bool:
    """True for n = 1, 2, 4, 8, ..."""
    try:
        n = int(n)
    except (TypeError, ValueError):
        return False
    return n > 0 and (n & (n - 1)) == 0


def bit_reversal(n: int) -> np.ndarray:
    """
    Bit-reversal permutation for a power-of-two length.

    Parameters
    ----------
    n : int
        Sequence length (power of two).

    Returns
    -------
    np.ndarray
        Integer array `r` with r[i] = i with its log2(n) bits reversed,
        e.g. n=8: 3 (011) -> 6 (110).
    """
    if not is_power_of_two(n):
        raise ValueError(f"Length must be a power of two, got {n}.")
    bits = int(n).bit_length() - 1
    r = np.empty(n, dtype=np.intp)
    for i in range(n):
        x, y = i, 0
        for _ in range(bits):
            y = (y << 1) | (x & 1)
            x >>= 1
        r[i] = y
    return r


def fft_1d(re: np.ndarray, im: np.ndarray, inverse: bool = False) -> tuple[np.ndarray, np.ndarray]:
    """
    Complex radix-2 FFT (or IFFT) along the last axis.

    Parameters
    ----------
    re, im : np.ndarray
        Real and imaginary parts, identical shapes (..., n), n a power of two.
        Inputs are not modified.
    inverse : bool, default False
        Use the inverse twiddle sign and divide the result by n.

    Returns
    -------
    (np.ndarray, np.ndarray)
        Real and imaginary parts of the transform, same shape as the input.

    Raises
    ------
    ValueError
        If shapes differ or the last-axis length is not a power of two.
    """
    re = np.array(re, dtype=float, copy=True)
    im = np.array(im, dtype=float, copy=True)
    if re.shape != im.shape:
        raise ValueError(f"re and im must have identical shapes, got {re.shape} and {im.shape}.")
    if re.ndim == 0:
        raise ValueError("re and im must have at least one axis.")

    n = re.shape[-1]
    if not is_power_of_two(n):
        raise ValueError(f"Transform length must be a power of two, got {n}.")

    # Reorder into bit-reversed index order (the permutation is its own inverse)
    rev = bit_reversal(n)
    re = re[..., rev]
    im = im[..., rev]

    length = 2
    while length <= n:
        half = length >> 1
        ang = ((-2 if inverse else 2) * math.pi) / length
        wr = math.cos(ang)
        wi = math.sin(ang)
        ur, ui = 1.0, 0.0
        # Same twiddle for butterfly index j in every block of this pass
        for j in range(half):
            top = np.s_[..., j:n:length]
            bot = np.s_[..., j + half:n:length]
            ar = re[top].copy()
            ai = im[top].copy()
            br = re[bot] * ur - im[bot] * ui
            bi = re[bot] * ui + im[bot] * ur
            re[top] = ar + br
            im[top] = ai + bi
            re[bot] = ar - br
            im[bot] = ai - bi
            tr = ur * wr - ui * wi
            ui = ur * wi + ui * wr
            ur = tr
        length <<= 1

    if inverse:
        re /= n
        im /= n
    return re, im


def ifft_1d(re: np.ndarray, im: np.ndarray) -> tuple[np.ndarray, np.ndarray]:
    """Inverse transform along the last axis (see `fft_1d`)."""
    return fft_1d(re, im, inverse=True)


def fft_2d(Re: np.ndarray, Im: np.ndarray, inverse: bool = False) -> tuple[np.ndarray, np.ndarray]:
    """
    Separable 2D transform of a (ny, nx) complex field: every row first,
    then every column of the intermediate result.
    """
    Re = np.asarray(Re, dtype=float)
    Im = np.asarray(Im, dtype=float)
    if Re.ndim != 2 or Re.shape != Im.shape:
        raise ValueError("Re and Im must be 2D arrays of identical shape (ny, nx).")

    # Rows
    tRe, tIm = fft_1d(Re, Im, inverse=inverse)
    # Columns (transpose so the column index becomes the last axis)
    cRe, cIm = fft_1d(tRe.T, tIm.T, inverse=inverse)
    return np.ascontiguousarray(cRe.T), np.ascontiguousarray(cIm.T)


def ifft_2d(Re: np.ndarray, Im: np.ndarray) -> np.ndarray:
    """
    2D inverse transform of a Hermitian-symmetric spectrum.

    Parameters
    ----------
    Re, Im : np.ndarray
        (ny, nx) real and imaginary parts; ny, nx powers of two.

    Returns
    -------
    np.ndarray
        (ny, nx) real part of the inverse transform. The imaginary part
        vanishes for a symmetric input and is dropped without checking.
    """
    Z, _ = fft_2d(Re, Im, inverse=True)
    return Z
