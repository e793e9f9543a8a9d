import surface_tools as surf
import statistics_tools as stat
import export_tools as ex
import import_tools as impt
import os
import argparse
from typing import Dict, Any


class SurfaceGenerator:
    """
    Project-folder driver for rough surface synthesis.

    This class:
      - Loads the surface configuration and export options from Inputs.txt.
      - Generates one self-affine surface.
      - Writes the requested outputs into <project>/results/.

    Outputs
    -------
    - <name>.stl             ASCII STL mesh of the height field
    - <name>_heights.txt     height grid with a metadata header
    - <name>.jpg             surface / height PDF / PSD figure
    """

    def __init__(self, project_folder: str, inputs_file: str = "Inputs.txt"):
        """
        Parameters
        ----------
        project_folder : str
            Path of the project folder containing the inputs file.
        inputs_file : str, default 'Inputs.txt'
            Name of the inputs file inside the project folder.
        """
        self.project_folder = project_folder
        self.result = None
        self.output_paths: Dict[str, str] = {}

        try:
            self.config, self.options = impt.import_inputs(project_folder, inputs_file)
        except ValueError as e:
            raise ValueError(f"import_inputs failed: {e}") from e

        self.results_dir = os.path.join(self.project_folder, "results")

    def run(self, verbose: bool = False) -> "surf.SurfaceResult":
        """
        Generate the surface and export everything enabled in the options.

        Returns
        -------
        SurfaceResult
            The generated surface (also kept on `self.result`).
        """
        self.result = surf.generate_surface(self.config, verbose=verbose)
        meta = self.result.meta
        name = self.options["surface_name"]
        L = meta["L"]

        if self.options["export_stl"]:
            self.output_paths["stl"] = ex.export_surface_as_stl(
                self.results_dir, name, self.result.Z, L, L, name=name, verbose=verbose
            )
        if self.options["export_height_map"]:
            self.output_paths["height_map"] = ex.export_height_map(
                self.results_dir, f"{name}_heights", self.result.Z, meta, verbose=verbose
            )
        if self.options["plot_surface"]:
            self.output_paths["plot"] = ex.plot_surface_data(
                self.results_dir, name, self.result, verbose=verbose
            )

        if verbose:
            print(f"[SurfaceGenerator] {self.summary()}")
        return self.result

    def summary(self) -> Dict[str, Any]:
        """rms height/slope and fitted fractal dimension of the last result."""
        if self.result is None:
            raise ValueError("No surface generated yet. Call run() first.")
        surface = self.result.to_surface()
        out = {
            "rms_height": surface.rms_height(),
            "rms_slope": surface.rms_slope(),
            "D_target": self.result.meta["D"],
        }
        try:
            out["D_fitted"], _ = stat.estimate_fractal_dimension(self.result.Z, self.result.meta["L"])
        except ValueError:
            # Grid too small (or surface flat) for a PSD fit
            out["D_fitted"] = float("nan")
        return out


def main():
    """
    CLI entry point.

    Expects a single positional argument `project_name` pointing to the project
    folder containing Inputs.txt.
    """
    parser = argparse.ArgumentParser(description="Generate a self-affine fractal rough surface.")
    parser.add_argument(
        "project_name",
        type=str,
        help="Project folder name (e.g. 'test_project')."
    )
    parser.add_argument(
        "--inputs",
        type=str,
        default="Inputs.txt",
        help="Inputs file inside the project folder (default: Inputs.txt)."
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Print progress messages.")
    args = parser.parse_args()

    gen = SurfaceGenerator(args.project_name, args.inputs)
    gen.run(verbose=args.verbose)


if __name__ == "__main__":
    main()
