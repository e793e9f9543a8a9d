import os
import numpy as np
import matplotlib.pyplot as plt
from matplotlib import gridspec
from mpl_toolkits.mplot3d import Axes3D  # noqa: F401 (needed for 3D)
from typing import Mapping, Any

import surface_tools as surf
import statistics_tools as st


def _num(v: float) -> str:
    """Shortest round-trip text for a float."""
    return repr(float(v))


def grid_to_stl(
        Z: np.ndarray,
        Lx: float,
        Ly: float,
        name: str = "surface"
) -> str:
    """
    Triangulate a height grid into an ASCII STL solid.

    Layout
    ------
    - Z has shape (ny, nx); grid point (i, j) sits at
        x = i * Lx/(nx-1) - Lx/2,   y = j * Ly/(ny-1) - Ly/2,   z = Z[j, i]
      so the mesh is centred on the domain.
    - Each cell gives two triangles (p00, p10, p11) and (p00, p11, p01).
    - Facet normal = (p2 - p1) x (p3 - p1), not normalized.

    Returns
    -------
    str
        Text starting with 'solid <name>' and ending with 'endsolid <name>',
        lines joined by '\\n'.
    """
    Z = np.asarray(Z, dtype=float)
    if Z.ndim != 2:
        raise ValueError("Z must be a 2D array (ny, nx).")
    ny, nx = Z.shape
    if nx < 2 or ny < 2:
        raise ValueError("Z needs at least 2 points per axis to form triangles.")

    dx = Lx / (nx - 1)
    dy = Ly / (ny - 1)

    # Cell corners, each (ny-1, nx-1, 3)
    x0 = np.arange(nx - 1) * dx - Lx / 2
    x1 = (np.arange(nx - 1) + 1) * dx - Lx / 2
    y0 = np.arange(ny - 1) * dy - Ly / 2
    y1 = (np.arange(ny - 1) + 1) * dy - Ly / 2
    X0, Y0 = np.meshgrid(x0, y0)
    X1, Y1 = np.meshgrid(x1, y1)
    p00 = np.stack([X0, Y0, Z[:-1, :-1]], axis=-1)
    p10 = np.stack([X1, Y0, Z[:-1, 1:]], axis=-1)
    p01 = np.stack([X0, Y1, Z[1:, :-1]], axis=-1)
    p11 = np.stack([X1, Y1, Z[1:, 1:]], axis=-1)

    # Interleave the two triangles of each cell in row-major cell order
    tri_a = np.stack([p00, p10, p11], axis=-2)
    tri_b = np.stack([p00, p11, p01], axis=-2)
    tris = np.stack([tri_a, tri_b], axis=2).reshape(-1, 3, 3)

    u = tris[:, 1] - tris[:, 0]
    v = tris[:, 2] - tris[:, 0]
    normals = np.cross(u, v)

    lines = [f"solid {name}"]
    for n, (a, b, c) in zip(normals, tris):
        lines.append(f"  facet normal {_num(n[0])} {_num(n[1])} {_num(n[2])}")
        lines.append("    outer loop")
        lines.append(f"      vertex {_num(a[0])} {_num(a[1])} {_num(a[2])}")
        lines.append(f"      vertex {_num(b[0])} {_num(b[1])} {_num(b[2])}")
        lines.append(f"      vertex {_num(c[0])} {_num(c[1])} {_num(c[2])}")
        lines.append("    endloop")
        lines.append("  endfacet")
    lines.append(f"endsolid {name}")
    return "\n".join(lines)


def export_surface_as_stl(
        folder_name: str,
        file_name: str,
        Z: np.ndarray,
        Lx: float,
        Ly: float,
        name: str = "surface",
        verbose: bool = False
) -> str:
    """
    Write `grid_to_stl(Z, Lx, Ly, name)` to <folder_name>/<file_name>.stl
    and return the path.
    """
    os.makedirs(folder_name, exist_ok=True)
    out_path = os.path.join(
        folder_name, file_name if file_name.lower().endswith(".stl") else f"{file_name}.stl"
    )
    text = grid_to_stl(Z, Lx, Ly, name=name)
    with open(out_path, "w", encoding="utf-8") as f:
        f.write(text)

    if verbose:
        ny, nx = np.shape(Z)
        print(f"[export_surface_as_stl] Saved {2 * (nx - 1) * (ny - 1)} triangles to {out_path} (ASCII STL).")
    return out_path


def export_height_map(
        folder_name: str,
        file_name: str,
        Z: np.ndarray,
        meta: Mapping[str, Any] | None = None,
        verbose: bool = False
) -> str:
    """
    Export a height grid as whitespace-separated text.

    The file starts with '# key = value' lines (one per metadata entry),
    followed by ny rows of nx heights written with full double precision.
    `import_tools.import_height_map` reads it back.
    """
    Z = np.asarray(Z, dtype=float)
    if Z.ndim != 2:
        raise ValueError("Z must be a 2D array (ny, nx).")

    os.makedirs(folder_name, exist_ok=True)
    out_path = os.path.join(
        folder_name, file_name if file_name.lower().endswith(".txt") else f"{file_name}.txt"
    )

    header = ["surface height map"]
    header += [f"{k} = {v}" for k, v in (meta or {}).items()]
    np.savetxt(out_path, Z, fmt="%.17g", header="\n".join(header), comments="# ")

    if verbose:
        print(f"[export_height_map] Wrote {Z.shape[0]}x{Z.shape[1]} heights to {out_path}")
    return out_path


def plot_surface_data(
        folder_name: str,
        file_name: str,
        result: "surf.SurfaceResult",
        max_points: int = 128,
        verbose: bool = False
) -> str:
    """
    Save a JPG summary of a generated surface.
    Top: 3D height field. Bottom: height PDF and radially averaged PSD
    against the target power law k^-2(H+1).
    """
    os.makedirs(folder_name, exist_ok=True)
    if not file_name.lower().endswith(".jpg"):
        file_name += ".jpg"
    out_path = os.path.join(folder_name, file_name)

    meta = result.meta
    L = float(meta["L"])
    H = float(meta["H"])
    surface = result.to_surface()
    X, Y, Z = surface.X, surface.Y, surface.Z

    # Thin out large grids for the 3D view only
    stride = max(1, int(np.ceil(max(Z.shape) / max(2, int(max_points)))))
    Xs, Ys, Zs = X[::stride, ::stride], Y[::stride, ::stride], Z[::stride, ::stride]

    heights = surface.get_heights()
    k, psd = st.surface_psd(Z, L, L)
    kmax = float(np.max(k))
    k_mid = np.sqrt(0.05 * 0.5) * kmax
    try:
        slope, intercept = st.fit_power_law(k, psd, k_range=(0.05 * kmax, 0.5 * kmax))
    except ValueError:
        # Too few shells (tiny grid) or a flat surface: no fit, anchor on the data
        slope, intercept = np.nan, np.log10(max(float(np.median(psd)), 1e-300))
        D_est = np.nan
        k_mid = float(np.median(k))
    else:
        D_est = 3.0 - (-slope / 2.0 - 1.0)

    # Target line anchored at the window centre
    anchor = intercept + slope * np.log10(k_mid) if np.isfinite(slope) else intercept
    target = 10 ** anchor * (k / k_mid) ** (-2.0 * (H + 1.0))

    plt.rcParams.update({
        "font.size": 10, "axes.labelsize": 10, "axes.titlesize": 11,
        "legend.fontsize": 9, "xtick.direction": "in", "ytick.direction": "in",
    })
    fig = plt.figure(figsize=(10.5, 8.0))
    gs = gridspec.GridSpec(2, 2, wspace=0.28, hspace=0.34, height_ratios=[1.3, 1.0])

    ax1 = fig.add_subplot(gs[0, :], projection="3d")
    ax1.plot_surface(Xs, Ys, Zs, rstride=1, cstride=1, linewidth=0, antialiased=True, alpha=0.96, cmap="viridis")
    ax1.set_title(f"Surface {meta['ny']}x{meta['nx']} (rms={surface.rms_height():.3e})")
    ax1.set_xlabel("x")
    ax1.set_ylabel("y")
    ax1.set_zlabel("z")
    rz = float(np.ptp(Zs)) or 1.0
    ax1.set_box_aspect((1.0, 1.0, max(0.15, min(1.0, rz / L))))
    ax1.view_init(elev=45, azim=-60)

    ax2 = fig.add_subplot(gs[1, 0])
    ax2.hist(heights, bins=70, density=True, histtype="step", lw=1.6, label="generated")
    ax2.set_title("Height PDF")
    ax2.set_xlabel("height")
    ax2.set_ylabel("density")
    ax2.grid(alpha=0.25)
    ax2.legend(loc="best")

    ax3 = fig.add_subplot(gs[1, 1])
    ax3.loglog(k, psd, ".", ms=3, label="radial PSD")
    ax3.loglog(k, target, "--", lw=1.4, label=f"k^-{2 * (H + 1):.2f} (target)")
    ax3.set_title(f"PSD (D={meta['D']}, fitted D={D_est:.3f})")
    ax3.set_xlabel("k")
    ax3.set_ylabel("|F(k)|^2")
    ax3.grid(alpha=0.25, which="both")
    ax3.legend(loc="best")

    fig.suptitle(f"rng={meta['rngKind']}, seed={meta['seed']}, "
                 f"anisotropy={meta['anisotropy']}, theta={meta['thetaDeg']} deg", y=0.99)
    fig.savefig(out_path, format="jpg", bbox_inches="tight", dpi=200)
    plt.close(fig)

    if verbose:
        print(f"[plot_surface_data] Saved figure to {out_path} (fitted D={D_est:.3f})")
    return out_path
