"""
3-Axis RoPE Demo -- Frequency bands, LOD-sampled encoding grid, and sampling budget.

Generates:
- viz/*.png -- Individual visualization files
- report.pdf -- Combined PDF report
"""

import logging
import os
import sys
from pathlib import Path

import matplotlib

matplotlib.use("Agg")
import matplotlib.pyplot as plt
import numpy as np
from matplotlib.backends.backend_pdf import PdfPages

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "src"))
from grid_sampler import GridSampler
from position_grid import position_grid
from rope_config import TensorDescriptor
from rope_engine import RopeEncodingEngine
from rope_frequencies import frequency_band

VIZ_DIR = Path(__file__).parent / "viz"

COLORS = {
    "t": "#e74c3c",
    "h": "#27ae60",
    "w": "#3498db",
    "dark": "#2c3e50",
}


# ---------------------------------------------------------------------------
# Example 1: Per-axis frequency bands
# ---------------------------------------------------------------------------

def example_1_frequency_bands(descriptor):
    fig, ax = plt.subplots(figsize=(9, 5))
    for name, width in zip("thw", descriptor.axes_dim):
        band = frequency_band(width, descriptor.base)
        ax.semilogy(np.arange(len(band)), band, "o-", color=COLORS[name],
                    label=f"{name} (width {width})", markersize=4)
    ax.set_xlabel("Frequency index")
    ax.set_ylabel("omega (log scale)")
    ax.set_title(f"Frequency bands, base={descriptor.base:g}")
    ax.grid(True, alpha=0.3)
    ax.legend()
    fig.tight_layout()
    return fig


# ---------------------------------------------------------------------------
# Example 2: LOD-sampled encoding grid
# ---------------------------------------------------------------------------

def example_2_encoding_grid(engine, descriptor):
    records = engine.compute_encoding(descriptor)
    positions = np.array([r.position for r in records])
    n_t = records[0].axis_lengths[0]
    # angle of the fastest time-axis rotation, wrapped for display
    first_t = np.array([r.embedding[0] for r in records])
    angles = np.arctan2(first_t[:, 1, 0], first_t[:, 0, 0])

    fig = plt.figure(figsize=(9, 7))
    ax = fig.add_subplot(111, projection="3d")
    sc = ax.scatter(positions[:, 2], positions[:, 1], positions[:, 0],
                    c=angles, cmap="twilight", s=18)
    ax.set_xlabel("w")
    ax.set_ylabel("h")
    ax.set_zlabel("t")
    ax.set_title(
        f"{len(records)} of {descriptor.total_points} positions, "
        f"{descriptor.embedding_length} matrices each ({n_t} on t)"
    )
    fig.colorbar(sc, ax=ax, shrink=0.6, label="first t-axis angle (rad)")
    fig.tight_layout()
    return fig


# ---------------------------------------------------------------------------
# Example 3: Sample size vs grid size
# ---------------------------------------------------------------------------

def example_3_sampling_budget(sampler):
    sides = np.arange(4, 61, 4)
    totals, kept = [], []
    for side in sides:
        grid = position_grid(side, side, side)
        totals.append(len(grid))
        kept.append(len(sampler.apply_level_of_detail(grid)))

    fig, ax = plt.subplots(figsize=(9, 5))
    ax.loglog(totals, totals, "--", color="gray", label="no sampling")
    ax.loglog(totals, kept, "o-", color=COLORS["dark"], label="LOD sample")
    ax.set_xlabel("Grid points N")
    ax.set_ylabel("Rendered points")
    ax.set_title("Level-of-detail budget for cubic grids")
    ax.grid(True, which="both", alpha=0.3)
    ax.legend()
    fig.tight_layout()
    return fig


def main():
    logging.basicConfig(level=logging.INFO, format="%(name)s: %(message)s")
    VIZ_DIR.mkdir(exist_ok=True)

    engine = RopeEncodingEngine()
    descriptor = TensorDescriptor(t_len=16, h_len=24, w_len=24, time_offset=0.0)

    figures = {
        "01_frequency_bands": example_1_frequency_bands(descriptor),
        "02_encoding_grid": example_2_encoding_grid(engine, descriptor),
        "03_sampling_budget": example_3_sampling_budget(engine.sampler),
    }

    report = Path(__file__).parent / "report.pdf"
    with PdfPages(report) as pdf:
        for name, fig in figures.items():
            fig.savefig(VIZ_DIR / f"{name}.png", dpi=120)
            pdf.savefig(fig)
            plt.close(fig)
            print(f"  saved viz/{name}.png")
    print(f"Report: {report}")
    print(f"Cache: {engine.cache.stats()['size']} entries, "
          f"{engine.cache.stats()['hits']} hits")


if __name__ == "__main__":
    main()
