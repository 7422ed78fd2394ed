from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import pandas as pd  # noqa: E402
import seaborn as sns  # noqa: E402
from matplotlib import pyplot as plt  # noqa: E402
from matplotlib import rcParams  # noqa: E402

# ------------------------------
# Plot styling
# ------------------------------
rcParams.update({
    "font.size": 12,
})

LABELS = {
    "regioncov": "Region",
    "funccov": "Function",
    "linecov": "Line",
    "branchcov": "Branch",
}


def plot_file_coverage(frame: pd.DataFrame, output, column: str = "linecov") -> Path:
    """Horizontal bar per source file, lowest coverage on top."""
    if column not in LABELS:
        raise ValueError(f"Unsupported coverage column {column}")
    data = frame.dropna(subset=[column]).sort_values(column)
    if data.empty:
        raise ValueError(f"No {LABELS[column].lower()} coverage to plot")

    height = max(3.0, 0.35 * len(data) + 1.5)
    fig, ax = plt.subplots(figsize=(10, height))
    sns.barplot(data=data, x=column, y="filename", color="#4b858e", errorbar=None, ax=ax)
    ax.set_xlim(0, 100)
    ax.set_xlabel(f"{LABELS[column]} coverage (%)")
    ax.set_ylabel("")
    fig.tight_layout()

    output = Path(output)
    output.parent.mkdir(parents=True, exist_ok=True)
    fig.savefig(output)
    plt.close(fig)
    return output
