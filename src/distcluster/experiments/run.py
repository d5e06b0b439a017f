from __future__ import annotations

import argparse
import logging
import time
import traceback
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, Tuple

import numpy as np
import pandas as pd
from sklearn.cluster import KMeans
from sklearn.metrics import adjusted_rand_score, silhouette_score
from tqdm.auto import tqdm

from distcluster.algorithms import (
    DBSCANClusterer,
    DBSCANConfig,
    KMeansClusterer,
    KMeansConfig,
)
from distcluster.distances import VectorPoint, points_from_array

logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

NOISE_LABEL = -1


def _iter_datasets(roots: Iterable[Path]) -> Iterable[Tuple[str, Path, Path]]:
    """Yield (dataset_id, features_path, labels_path) over all dataset folders."""
    for root in roots:
        for sub in sorted(root.rglob("features.parquet")):
            labels = sub.with_name("labels.parquet")
            if not labels.exists():
                continue
            rel_id = sub.parent.relative_to(root)
            dataset_id = f"{root.name}/{rel_id.as_posix()}"
            yield dataset_id, sub, labels


def _load_dataset(features_path: Path, labels_path: Path) -> Tuple[np.ndarray, np.ndarray]:
    X = pd.read_parquet(features_path).to_numpy(dtype=float)
    y = pd.read_parquet(labels_path)["label"].to_numpy()
    return X, y


def _safe_dataset_name(dataset_id: str) -> str:
    return dataset_id.replace("/", "_").replace("\\", "_")


def _append_results(
    output_root: Path, dataset_id: str, rows: List[Dict], label: str
) -> None:
    if not rows:
        return
    written = len(rows)
    df = pd.DataFrame(rows)
    safe_name = _safe_dataset_name(dataset_id)
    output_path = output_root / f"{safe_name}.parquet"
    if output_path.exists():
        existing_df = pd.read_parquet(output_path)
        df = pd.concat([existing_df, df], ignore_index=True)
    df.to_parquet(output_path, index=False)
    logger.info(f"  Saved {written} results for {label} to {output_path}")
    rows.clear()


def _save_partial_results(output_root: Path, dataset_id: str, rows: List[Dict]) -> None:
    if not rows:
        return
    df = pd.DataFrame(rows)
    safe_name = _safe_dataset_name(dataset_id)
    output_path = output_root / f"{safe_name}_partial.parquet"
    df.to_parquet(output_path, index=False)
    logger.info(f"  Saved {len(rows)} partial results to {output_path}")
    rows.clear()


def clusters_to_labels(
    points: Sequence[VectorPoint], clusters: Sequence[Sequence[VectorPoint]]
) -> np.ndarray:
    """Turn a clustering result into one label per point, in dataset order.

    Points absent from every cluster (noise) get ``NOISE_LABEL``. Equal
    points share the label of the cluster that holds them.
    """
    label_of: Dict[VectorPoint, int] = {}
    for label, members in enumerate(clusters):
        for member in members:
            label_of.setdefault(member, label)
    return np.array([label_of.get(p, NOISE_LABEL) for p in points], dtype=int)


def _silhouette(X: np.ndarray, labels: np.ndarray, p: float) -> float:
    """Silhouette over clustered samples only; NaN when it is undefined."""
    mask = labels != NOISE_LABEL
    X_in, labels_in = X[mask], labels[mask]
    n_labels = np.unique(labels_in).size
    if n_labels < 2 or n_labels >= labels_in.size:
        return float("nan")
    if p == 1:
        return float(silhouette_score(X_in, labels_in, metric="manhattan"))
    if p == 2:
        return float(silhouette_score(X_in, labels_in, metric="euclidean"))
    return float(silhouette_score(X_in, labels_in, metric="minkowski", p=p))


def _result_row(
    dataset_id: str,
    algorithm: str,
    p: float,
    params: Dict,
    labels: np.ndarray,
    X: np.ndarray,
    y: np.ndarray,
    runtime: float,
) -> Dict:
    clustered = labels[labels != NOISE_LABEL]
    row = {
        "dataset_id": dataset_id,
        "algorithm": algorithm,
        "metric_name": "minkowski",
        "metric_p": float(p),
        "n_clusters": int(np.unique(clustered).size),
        "noise": int(labels.size - clustered.size),
        "silhouette": _silhouette(X, labels, p),
        "ari": float(adjusted_rand_score(y, labels)),
        "runtime_sec": float(runtime),
    }
    row.update({"k": np.nan, "seed": np.nan, "eps": np.nan, "min_pts": np.nan})
    row.update(params)
    return row


def _run_partition_suite(
    dataset_id: str,
    X: np.ndarray,
    y: np.ndarray,
    points: List[VectorPoint],
    p: float,
    k: int,
    repetitions: int,
) -> List[Dict]:
    rows: List[Dict] = []

    for rep in tqdm(range(repetitions), desc="Partition reps", leave=False):
        seed = rep
        try:
            algo = KMeansClusterer(KMeansConfig(random_state=seed))
            t0 = time.perf_counter()
            clusters = algo.cluster(points, k)
            t1 = time.perf_counter()

            labels = clusters_to_labels(points, clusters)
            rows.append(
                _result_row(
                    dataset_id, "kmeans_medoid", p, {"k": k, "seed": seed}, labels, X, y, t1 - t0
                )
            )
        except Exception as exc:
            logger.warning(f"  Error in medoid K-Means (p={p}, rep={rep}): {exc}")
            continue

    return rows


def _run_density_suite(
    dataset_id: str,
    X: np.ndarray,
    y: np.ndarray,
    points: List[VectorPoint],
    p: float,
    eps_values: List[float],
    min_pts_values: List[int],
) -> List[Dict]:
    rows: List[Dict] = []

    grid = [(eps, min_pts) for eps in eps_values for min_pts in min_pts_values]
    for eps, min_pts in tqdm(grid, desc="DBSCAN grid", leave=False):
        try:
            algo = DBSCANClusterer(DBSCANConfig(eps=eps, min_pts=min_pts))
            t0 = time.perf_counter()
            clusters = algo.cluster(points, 0)
            t1 = time.perf_counter()

            labels = clusters_to_labels(points, clusters)
            rows.append(
                _result_row(
                    dataset_id,
                    "dbscan",
                    p,
                    {"eps": float(eps), "min_pts": int(min_pts)},
                    labels,
                    X,
                    y,
                    t1 - t0,
                )
            )
        except Exception as exc:
            logger.warning(f"  Error in DBSCAN (p={p}, eps={eps}, min_pts={min_pts}): {exc}")
            continue

    return rows


def _run_sklearn_suite(
    dataset_id: str, X: np.ndarray, y: np.ndarray, k: int, repetitions: int
) -> List[Dict]:
    rows: List[Dict] = []

    for rep in tqdm(range(repetitions), desc="sklearn KMeans reps", leave=False):
        try:
            seed = rep
            km = KMeans(n_clusters=k, n_init="auto", random_state=seed)
            t0 = time.perf_counter()
            labels_km = km.fit_predict(X)
            t1 = time.perf_counter()

            rows.append(
                _result_row(
                    dataset_id, "sklearn_kmeans", 2.0, {"k": k, "seed": seed}, labels_km, X, y, t1 - t0
                )
            )
        except Exception as exc:
            logger.warning(f"  Error in sklearn K-Means (rep={rep}): {exc}")
            continue

    return rows


def run_experiments(
    dataset_roots: List[Path],
    output_root: Path,
    repetitions: int = 5,
    eps_values: List[float] | None = None,
    min_pts_values: List[int] | None = None,
    p_values: List[float] | None = None,
    max_samples: int | None = 2000,
    test_mode: bool = False,
    verbose: bool = False,
) -> None:
    """Run both clustering algorithms (plus a scikit-learn baseline) on datasets.

    Args:
        dataset_roots: Root directories containing dataset subfolders
        output_root: Directory to save result Parquet files
        repetitions: Number of seeded repetitions for the partition algorithms
        eps_values: DBSCAN neighborhood radii to try
        min_pts_values: DBSCAN minimum neighborhood sizes to try
        p_values: Minkowski orders used for the point distance
        max_samples: Maximum number of samples per dataset (None = no limit)
        test_mode: If True, process only first 3 datasets
        verbose: If True, enable DEBUG logging
    """
    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    eps_values = eps_values or [0.5, 1.0]
    min_pts_values = min_pts_values or [3, 5]
    p_values = p_values or [1.0, 2.0]

    # Fail on a bad grid before touching any dataset.
    for eps in eps_values:
        for min_pts in min_pts_values:
            DBSCANConfig(eps=eps, min_pts=min_pts)

    output_root.mkdir(parents=True, exist_ok=True)

    dataset_iter = list(_iter_datasets(dataset_roots))
    logger.info(f"Found {len(dataset_iter)} datasets to process")

    if test_mode:
        dataset_iter = dataset_iter[:3]
        logger.info(f"Test mode: Processing only first {len(dataset_iter)} datasets")

    if max_samples is not None:
        logger.info(f"Filtering datasets: max_samples={max_samples}")

    skipped_count = 0
    processed_count = 0

    for dataset_id, feat_path, lab_path in tqdm(
        dataset_iter, desc="Datasets", unit="dataset"
    ):
        pending_rows: List[Dict] = []
        try:
            logger.info(f"Processing dataset: {dataset_id}")
            X, y = _load_dataset(feat_path, lab_path)
            n_samples = X.shape[0]
            k = int(np.unique(y).size)
            logger.info(f"  Dataset shape: {X.shape}, k={k}")

            if max_samples is not None and n_samples > max_samples:
                logger.warning(
                    f"  SKIPPING {dataset_id}: {n_samples} samples exceeds max_samples={max_samples} "
                    f"(both algorithms are quadratic in the number of samples)"
                )
                skipped_count += 1
                continue

            for p in tqdm(p_values, desc="Metrics", leave=False):
                try:
                    points = points_from_array(X, p=p)
                    pending_rows = _run_partition_suite(dataset_id, X, y, points, p, k, repetitions)
                    pending_rows += _run_density_suite(
                        dataset_id, X, y, points, p, eps_values, min_pts_values
                    )
                except Exception as exc:
                    logger.error(f"  Error processing p={p} for {dataset_id}: {exc}")
                    logger.error(traceback.format_exc())
                    continue

                _append_results(output_root, dataset_id, pending_rows, f"minkowski p={p}")

            pending_rows = _run_sklearn_suite(dataset_id, X, y, k, repetitions)
            _append_results(output_root, dataset_id, pending_rows, "sklearn_kmeans")

            safe_name = _safe_dataset_name(dataset_id)
            output_path = output_root / f"{safe_name}.parquet"
            if output_path.exists():
                df_check = pd.read_parquet(output_path)
                logger.info(f"  ✓ Dataset {dataset_id} complete: {len(df_check)} total results saved")
                processed_count += 1
            else:
                logger.warning(f"  ✗ No result file created for {dataset_id}")

        except Exception as exc:
            logger.error(f"Error processing dataset {dataset_id}: {exc}")
            logger.error(traceback.format_exc())
            _save_partial_results(output_root, dataset_id, pending_rows)
            continue

    logger.info("=" * 60)
    logger.info("Experiment summary:")
    logger.info(f"  Processed: {processed_count} datasets")
    logger.info(f"  Skipped: {skipped_count} datasets (size limit)")
    logger.info(f"  Result files in: {output_root}")
    logger.info("=" * 60)


def main(argv: List[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Run medoid K-Means and DBSCAN experiments.")
    parser.add_argument(
        "--datasets",
        type=Path,
        nargs="+",
        required=True,
        help="One or more root folders containing dataset subfolders.",
    )
    parser.add_argument(
        "--output",
        type=Path,
        required=True,
        help="Directory where raw result Parquet files will be stored.",
    )
    parser.add_argument(
        "--repetitions",
        type=int,
        default=5,
        help="Number of seeded repetitions for the partition algorithms.",
    )
    parser.add_argument(
        "--eps",
        type=float,
        nargs="+",
        default=[0.5, 1.0],
        help="DBSCAN neighborhood radii to try.",
    )
    parser.add_argument(
        "--min-pts",
        type=int,
        nargs="+",
        default=[3, 5],
        help="DBSCAN minimum neighborhood sizes to try.",
    )
    parser.add_argument(
        "--p",
        type=float,
        nargs="+",
        default=[1.0, 2.0],
        help="Minkowski orders for the point distance (p >= 1).",
    )
    parser.add_argument(
        "--max-samples",
        type=int,
        default=2000,
        help="Maximum number of samples per dataset (skip larger ones). Use 0 for no limit.",
    )
    parser.add_argument(
        "--test",
        action="store_true",
        help="Test mode: process only first 3 datasets.",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Enable verbose (DEBUG) logging.",
    )

    args = parser.parse_args(argv)
    max_samples = None if args.max_samples == 0 else args.max_samples
    run_experiments(
        args.datasets,
        args.output,
        repetitions=args.repetitions,
        eps_values=args.eps,
        min_pts_values=args.min_pts,
        p_values=args.p,
        max_samples=max_samples,
        test_mode=args.test,
        verbose=args.verbose,
    )


if __name__ == "__main__":
    main()
