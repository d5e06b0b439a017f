from __future__ import annotations

import argparse
import json
from pathlib import Path
from typing import Dict, List

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
import numpy as np
import pandas as pd


METRICS = ["n_clusters", "noise", "silhouette", "ari", "runtime_sec"]

ALGORITHM_NAMES = {
    "kmeans_medoid": "K-Means (medoid)",
    "dbscan": "DBSCAN",
    "sklearn_kmeans": "K-Means (scikit-learn)",
}


def _mean_or_none(series: pd.Series) -> float | None:
    clean = series.dropna()
    return None if clean.empty else float(clean.mean())


def _format_mean_std(mean_val: float | None, std_val: float | None, precision: int = 3) -> str:
    if mean_val is None:
        return "N/A"
    if std_val is None:
        # a single run per group (deterministic DBSCAN) has no spread
        return f"{mean_val:.{precision}f}"
    fmt = f"{{:.{precision}f}} ± {{:.{precision}f}}"
    return fmt.format(mean_val, std_val)


def _load_raw(raw_root: Path) -> pd.DataFrame:
    parts: List[pd.DataFrame] = []
    parquet_files = sorted(raw_root.glob("*.parquet"))
    if not parquet_files:
        raise FileNotFoundError(
            f"No Parquet files found under {raw_root}. "
            f"Make sure experiments completed successfully and generated result files."
        )
    print(f"Loading {len(parquet_files)} result files from {raw_root}")
    for p in parquet_files:
        try:
            parts.append(pd.read_parquet(p))
        except Exception as e:
            print(f"Warning: Failed to load {p}: {e}")
            continue
    if not parts:
        raise FileNotFoundError(f"Could not load any Parquet files from {raw_root}")
    return pd.concat(parts, ignore_index=True)


def _aggregate(df: pd.DataFrame) -> pd.DataFrame:
    group_cols = ["dataset_id", "algorithm", "metric_p", "eps", "min_pts"]

    agg = df.groupby(group_cols, dropna=False)[METRICS].agg(["mean", "std"])
    # Flatten MultiIndex columns
    agg.columns = [f"{m}_{stat}" for m, stat in agg.columns]
    agg = agg.reset_index()
    return agg


def _metric_cells(rows: pd.DataFrame) -> Dict[str, str]:
    return {
        "Clusters": _format_mean_std(
            _mean_or_none(rows["n_clusters_mean"]), _mean_or_none(rows["n_clusters_std"]), precision=1
        ),
        "Noise": _format_mean_std(
            _mean_or_none(rows["noise_mean"]), _mean_or_none(rows["noise_std"]), precision=1
        ),
        "Silhouette": _format_mean_std(
            _mean_or_none(rows["silhouette_mean"]), _mean_or_none(rows["silhouette_std"])
        ),
        "ARI": _format_mean_std(_mean_or_none(rows["ari_mean"]), _mean_or_none(rows["ari_std"])),
        "Runtime (s)": _format_mean_std(
            _mean_or_none(rows["runtime_sec_mean"]),
            _mean_or_none(rows["runtime_sec_std"]),
            precision=4,
        ),
    }


def _create_algorithm_comparison_table(summary: pd.DataFrame) -> pd.DataFrame:
    """Create table comparing algorithms aggregated over all datasets."""
    rows = []
    for alg in sorted(summary["algorithm"].unique()):
        alg_data = summary[summary["algorithm"] == alg]
        row = {"Algorithm": ALGORITHM_NAMES.get(alg, alg)}
        row.update(_metric_cells(alg_data))
        rows.append(row)
    return pd.DataFrame(rows)


def _create_dbscan_parameter_table(summary: pd.DataFrame) -> pd.DataFrame:
    """Create table showing how eps and min_pts affect DBSCAN."""
    density = summary[summary["algorithm"] == "dbscan"]
    if len(density) == 0:
        return pd.DataFrame()

    rows = []
    for (eps, min_pts), grp in density.groupby(["eps", "min_pts"]):
        row = {"eps": f"{eps:g}", "min_pts": int(min_pts)}
        row.update(_metric_cells(grp))
        rows.append(row)
    return pd.DataFrame(rows)


def _write_table(table: pd.DataFrame, output_root: Path, name: str) -> None:
    latex = table.to_latex(index=False, escape=False, float_format=None)
    latex = latex.replace(" ± ", " $\\pm$ ")
    (output_root / f"{name}.tex").write_text(latex, encoding="utf-8")
    table.to_csv(output_root / f"{name}.csv", index=False)


def _save_table_artifacts(summary: pd.DataFrame, output_root: Path) -> None:
    output_root.mkdir(parents=True, exist_ok=True)

    # Save full detailed summary (for reference)
    summary.to_parquet(output_root / "summary.parquet", index=False)
    summary.to_csv(output_root / "summary.csv", index=False)

    _write_table(_create_algorithm_comparison_table(summary), output_root, "table_algorithm_comparison")
    dbscan_table = _create_dbscan_parameter_table(summary)
    if not dbscan_table.empty:
        _write_table(dbscan_table, output_root, "table_dbscan_parameters")

    txt_lines = [
        "Concise summary tables for the clustering study.\n",
        "Tables:\n",
        "- table_algorithm_comparison: Comparison of algorithms aggregated over all datasets\n",
        "- table_dbscan_parameters: Effect of eps/min_pts on DBSCAN\n",
    ]
    (output_root / "summary.txt").write_text("".join(txt_lines), encoding="utf-8")

    meta: Dict = {
        "tables": ["table_algorithm_comparison", "table_dbscan_parameters"],
        "description": "Aggregated results for medoid K-Means and DBSCAN.",
    }
    (output_root / "summary.json").write_text(json.dumps(meta, indent=2), encoding="utf-8")


def _plot_and_describe(
    summary: pd.DataFrame,
    output_root: Path,
    metric: str,
    ylabel: str,
) -> None:
    """Create bar plot per algorithm for a given metric and save sidecar text/JSON."""
    plot_df = (
        summary.groupby(["algorithm", "metric_p"], dropna=False)[f"{metric}_mean"]
        .mean()
        .reset_index()
    )

    fig, ax = plt.subplots(figsize=(8, 4))
    algorithms = plot_df["algorithm"].unique()
    x = np.arange(len(algorithms))
    width = 0.25

    p_values = plot_df["metric_p"].unique()
    for i, p_val in enumerate(p_values):
        sub = plot_df[plot_df["metric_p"] == p_val]
        heights = [sub[sub["algorithm"] == alg][f"{metric}_mean"].mean() for alg in algorithms]
        ax.bar(x + i * width, heights, width=width, label=f"p={p_val:g}")

    ax.set_xticks(x + width * (len(p_values) - 1) / 2)
    ax.set_xticklabels([ALGORITHM_NAMES.get(a, a) for a in algorithms], rotation=45, ha="right")
    ax.set_ylabel(ylabel)
    ax.set_title(f"{metric} by algorithm and Minkowski order")
    ax.legend()
    fig.tight_layout()

    fname = f"{metric}_by_algorithm"
    img_path = output_root / f"{fname}.png"
    fig.savefig(img_path, dpi=200)
    plt.close(fig)

    description = (
        f"Bar chart of {metric} (averaged over datasets and parameters) comparing "
        f"algorithms for each Minkowski order p."
    )
    (output_root / f"{fname}.txt").write_text(description, encoding="utf-8")

    meta = {
        "figure": img_path.name,
        "metric": metric,
        "ylabel": ylabel,
        "group_by": ["algorithm", "metric_p"],
        "description": description,
    }
    (output_root / f"{fname}.json").write_text(json.dumps(meta, indent=2), encoding="utf-8")


def summarize(raw_root: Path, output_root: Path) -> pd.DataFrame:
    """Aggregate raw results and write tables and plots to `output_root`."""
    summary = _aggregate(_load_raw(raw_root))
    _save_table_artifacts(summary, output_root)

    _plot_and_describe(summary, output_root, metric="ari", ylabel="Adjusted Rand index")
    _plot_and_describe(summary, output_root, metric="silhouette", ylabel="Silhouette score")
    _plot_and_describe(summary, output_root, metric="runtime_sec", ylabel="Runtime (s)")
    return summary


def main(argv: List[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Aggregate clustering experiment results.")
    parser.add_argument(
        "--raw",
        type=Path,
        required=True,
        help="Directory containing raw Parquet logs.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        required=True,
        help="Directory for summary tables and plots.",
    )

    args = parser.parse_args(argv)
    summarize(args.raw, args.output)


if __name__ == "__main__":
    main()
