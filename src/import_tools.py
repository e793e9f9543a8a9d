import os
import numpy as np
from typing import Dict, Any, Tuple

import surface_tools as surf  # must provide SurfaceConfig


# Inputs.txt key -> SurfaceConfig field
SURFACE_KEYS = {
    "grid points x": "nx",
    "grid points y": "ny",
    "sample size": "L",
    "fractal dimension": "D",
    "rms height": "sigma",
    "anisotropy": "anisotropy",
    "rotation angle": "theta_deg",
    "random generator": "rng_kind",
    "seed": "seed",
}

EXPORT_DEFAULTS = {
    "surface_name": "surface",
    "export_stl": True,
    "export_height_map": True,
    "plot_surface": False,
}


def import_inputs(project_folder: str, inputs_file: str = "Inputs.txt") -> Tuple["surf.SurfaceConfig", Dict[str, Any]]:
    """
    Parse a surface project file.

    Expected layout (comments start with '#', keys are case-insensitive):

        Surface inputs
        grid points x     = 512
        grid points y     = 512
        sample size       = 0.1
        fractal dimension = 2.1
        rms height        = 0.01
        anisotropy        = 1.0
        rotation angle    = 0        # degrees
        random generator  = parkmiller
        seed              = 799753397

        Exporting inputs
        surface name        = surface
        export stl?         = true
        export height map?  = true
        plot surface?       = false

    Missing keys keep the SurfaceConfig / export defaults.

    Returns
    -------
    (SurfaceConfig, dict)
        The validated configuration and the export options
        {surface_name, export_stl, export_height_map, plot_surface}.

    Raises
    ------
    FileNotFoundError
        If the inputs file does not exist.
    ValueError
        On malformed values, an invalid configuration or a surface name
        containing whitespace (it names the output files and the STL solid).
    """

    # ---------- helpers ----------
    def _clean(line: str) -> str | None:
        s = line.split("#", 1)[0].strip()
        return s or None

    def _as_bool(v: str | None, default=False) -> bool:
        if v is None:
            return default
        return v.strip().lower() in {"1", "true", "t", "yes", "y"}

    def _as_float(v: str, name: str) -> float:
        try:
            return float(v)
        except ValueError as e:
            raise ValueError(f"Invalid float for '{name}': {v}") from e

    def _as_int(v: str, name: str) -> int:
        try:
            return int(v)
        except ValueError:
            pass
        x = _as_float(v, name)
        if not x.is_integer():
            raise ValueError(f"Invalid integer for '{name}': {v}")
        return int(x)

    def _get(block: Dict[str, str], key: str) -> str | None:
        return block.get(key.lower())

    # ---------- read & sectionize ----------
    path = os.path.join(os.path.abspath(project_folder), inputs_file)
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Inputs file not found: {path}")

    srf, exp = {}, {}
    cur = None
    with open(path, "r", encoding="utf-8") as f:
        for raw in f:
            s = _clean(raw)
            if not s:
                continue
            low = s.lower()
            if "surface inputs" in low:
                cur = srf; continue
            if "exporting inputs" in low:
                cur = exp; continue
            if cur is None or "=" not in s:
                continue
            k, v = map(str.strip, s.split("=", 1))
            cur[k.lower()] = v

    # ---------- Surface ----------
    values: Dict[str, Any] = {}
    for key, name in SURFACE_KEYS.items():
        v = _get(srf, key)
        if v is None:
            continue
        if name in ("nx", "ny", "seed"):
            values[name] = _as_int(v, key)
        elif name == "rng_kind":
            values[name] = v.strip().lower()
        else:
            values[name] = _as_float(v, key)

    config = surf.SurfaceConfig(**values).validate()

    # ---------- Exporting flags ----------
    options = dict(EXPORT_DEFAULTS)
    name = _get(exp, "surface name")
    if name:
        if any(c.isspace() for c in name):
            raise ValueError(f"surface name must not contain whitespace: {name!r}")
        options["surface_name"] = name
    options["export_stl"] = _as_bool(_get(exp, "export stl?"), EXPORT_DEFAULTS["export_stl"])
    options["export_height_map"] = _as_bool(_get(exp, "export height map?"), EXPORT_DEFAULTS["export_height_map"])
    options["plot_surface"] = _as_bool(_get(exp, "plot surface?"), EXPORT_DEFAULTS["plot_surface"])

    return config, options


def import_height_map(path: str) -> Tuple[np.ndarray, Dict[str, Any]]:
    """
    Read a height map written by `export_tools.export_height_map`.

    Returns
    -------
    (np.ndarray, dict)
        Z with shape (ny, nx) and the metadata found in the '# key = value'
        header (numbers parsed as int/float where possible).
    """
    if not os.path.isfile(path):
        raise FileNotFoundError(f"Height map not found: {path}")

    def _parse(v: str) -> Any:
        for cast in (int, float):
            try:
                return cast(v)
            except ValueError:
                continue
        return v

    meta: Dict[str, Any] = {}
    with open(path, "r", encoding="utf-8") as f:
        for line in f:
            if not line.startswith("#"):
                break
            body = line[1:].strip()
            if "=" in body:
                k, v = map(str.strip, body.split("=", 1))
                meta[k] = _parse(v)

    try:
        Z = np.loadtxt(path, comments="#", ndmin=2)
    except ValueError as e:
        raise ValueError(f"Failed to parse '{path}': {e}") from e
    return Z, meta
