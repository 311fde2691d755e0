"""
QC plot of the impurity correction.
"""

from typing import Optional

import pandas as pd
import seaborn as sns
from matplotlib import pyplot as plt
from matplotlib.figure import Figure


def plot_correction_report(
    report: pd.DataFrame,
    title: str = "Impurity correction",
    width: float = 10,
    output: Optional[str] = None,
) -> Figure:
    """
    Bar plot of the total intensity per channel before and after correction.

    Parameters
    ----------
    report : pd.DataFrame
        Output of :meth:`ImpurityCorrector.report` with ``channel``,
        ``total_before`` and ``total_after`` columns.
    title : str, optional
        Title of the plot.
    width : float, optional
        Width of the figure.
    output : str, optional
        File the figure is saved to.

    Returns
    -------
    Figure
        Matplotlib figure object.
    """
    long = report.melt(
        id_vars="channel",
        value_vars=["total_before", "total_after"],
        var_name="stage",
        value_name="total intensity",
    )
    long["stage"] = long["stage"].str.replace("total_", "", regex=False)

    fig, ax = plt.subplots(figsize=(width, 6))
    sns.barplot(data=long, x="channel", y="total intensity", hue="stage", palette="Paired", ax=ax)
    sns.despine(ax=ax, top=True, right=True)
    ax.set_title(title)
    ax.set_xlabel("channel")
    fig.tight_layout()

    if output is not None:
        fig.savefig(output, dpi=300)
    return fig
