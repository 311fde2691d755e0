"""
Optional QC figures.

Needs the ``plotting`` extra (matplotlib and seaborn):
pip install tmtquant[plotting]
"""

from importlib.util import find_spec
from typing import TYPE_CHECKING

PLOTTING_PACKAGES = ("matplotlib", "seaborn")


def is_plotting_available() -> bool:
    """True when every package in ``PLOTTING_PACKAGES`` is importable."""
    return all(find_spec(package) is not None for package in PLOTTING_PACKAGES)


def __getattr__(name):
    # figures are imported on first use so the core package never loads matplotlib
    if name != "plot_correction_report":
        raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
    if not is_plotting_available():
        raise ImportError(
            "The correction report needs matplotlib and seaborn. "
            "Install them with: pip install tmtquant[plotting]"
        )
    from tmtquant.plotting.correction import plot_correction_report

    return plot_correction_report


if TYPE_CHECKING:
    from tmtquant.plotting.correction import plot_correction_report


__all__ = [
    "is_plotting_available",
    "plot_correction_report",
]
