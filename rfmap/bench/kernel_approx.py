from __future__ import annotations

import argparse
import csv
import logging
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from rfmap.core.kernels import approximate_kernel, rbf_kernel
from rfmap.core.random_feature import RandomFeature, RandomFeatureConfig

logger = logging.getLogger(__name__)


def configure_logging(quiet: bool = False, verbose: bool = False) -> None:
    """Root logging for the bench run; --quiet wins over --verbose."""
    level = logging.WARNING if quiet else (logging.DEBUG if verbose else logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def parse_feature_counts(text: str) -> list[int]:
    """Feature counts from "64,256" or an inclusive "start:stop:step" range.

    Returns the distinct positive counts in increasing order.
    """
    words = [w.strip() for w in text.split(",") if w.strip()]
    if not words:
        raise ValueError(f"no feature counts in {text!r}")

    counts: set[int] = set()
    for word in words:
        if ":" not in word:
            counts.add(int(word))
            continue
        bounds = [int(p) for p in word.split(":")]
        if len(bounds) != 3 or bounds[2] <= 0:
            raise ValueError(f"feature range must be start:stop:step with step > 0, got {word!r}")
        start, stop, step = bounds
        counts.update(range(start, stop + 1, step))

    out = sorted(c for c in counts if c > 0)
    if not out:
        raise ValueError(f"no positive feature counts in {text!r}")
    return out


@dataclass(frozen=True, slots=True)
class Row:
    dim: int
    features: int
    gamma: float
    samples: int
    input_std: float
    seed: int
    mean_abs_err: float
    max_abs_err: float


def measure_approximation(
    rf: RandomFeature,
    X: np.ndarray,
) -> tuple[float, float]:
    """Mean and max absolute error of the feature-based kernel on X."""
    K = rbf_kernel(X, X, rf.gamma)
    Z = rf.transform_batch(X)
    err = np.abs(approximate_kernel(Z, Z) - K)
    return float(np.mean(err)), float(np.max(err))


def main(argv: list[str] | None = None) -> int:
    ap = argparse.ArgumentParser(description="rfmap: RBF kernel approximation error vs feature count")
    ap.add_argument("--dim", type=int, default=8, help="input dimension (domain size)")
    ap.add_argument(
        "--features",
        type=str,
        default="16,64,256,1024",
        help="feature counts (co-domain sizes), e.g. '64,256' or '100:1000:100'",
    )
    ap.add_argument("--gamma", type=float, default=0.5)
    ap.add_argument("--samples", type=int, default=200, help="number of random input vectors")
    ap.add_argument("--input-std", type=float, default=0.5, help="std of the gaussian inputs")
    ap.add_argument("--seed", type=int, default=0, help="input + basis seed")
    ap.add_argument("--out", type=str, default="outputs/kernel_approx.csv")
    ap.add_argument("--state-out", type=str, default="", help="write the last transformer state here")
    ap.add_argument("--quiet", action="store_true")
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args(argv)

    configure_logging(quiet=bool(args.quiet), verbose=bool(args.verbose))

    features = parse_feature_counts(args.features)
    if int(args.samples) <= 0:
        raise ValueError("samples must be > 0")

    out_path = Path(args.out)
    out_path.parent.mkdir(parents=True, exist_ok=True)

    rng = np.random.default_rng(int(args.seed))
    X = float(args.input_std) * rng.standard_normal((int(args.samples), int(args.dim)))

    rows: list[Row] = []
    rf: RandomFeature | None = None
    for m in features:
        cfg = RandomFeatureConfig(
            domain_size=int(args.dim),
            co_domain_size=int(m),
            gamma=float(args.gamma),
            seed=int(args.seed),
        )
        rf = cfg.build()
        mean_err, max_err = measure_approximation(rf, X)
        logger.info("features=%d mean_abs_err=%.5f max_abs_err=%.5f", m, mean_err, max_err)
        rows.append(
            Row(
                dim=int(args.dim),
                features=int(m),
                gamma=float(args.gamma),
                samples=int(args.samples),
                input_std=float(args.input_std),
                seed=int(args.seed),
                mean_abs_err=mean_err,
                max_abs_err=max_err,
            )
        )

    fieldnames = list(Row.__annotations__.keys())
    write_header = not out_path.exists()
    with out_path.open("a", newline="", encoding="utf-8") as f:
        w = csv.DictWriter(f, fieldnames=fieldnames)
        if write_header:
            w.writeheader()
        for row in rows:
            w.writerow({k: getattr(row, k) for k in fieldnames})

    if args.state_out and rf is not None:
        state_path = Path(args.state_out)
        state_path.parent.mkdir(parents=True, exist_ok=True)
        state_path.write_text(rf.to_string() + "\n", encoding="utf-8")
        print("Wrote state:", state_path)

    best = rows[-1]
    print(f"features={best.features} mean_abs_err={best.mean_abs_err:.5f} (runs={len(rows)})")
    print("Wrote:", out_path)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
