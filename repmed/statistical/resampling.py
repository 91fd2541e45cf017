"""Case resampling of the indirect-effect statistic.

Replications are split into fixed-size blocks. Block ``i`` draws its indices
from the ``i``-th child of ``SeedSequence(seed)`` and writes into its own
arrays; blocks are merged in block order. The resulting distribution is
therefore identical for a given seed, dataset and replication count no matter
how many workers run the blocks.
"""

from __future__ import annotations

import logging
import math
import os
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import List, Optional

import numpy as np
from tqdm import tqdm

from ..errors import (
    DegenerateDistributionError,
    InsufficientValidResamplesError,
    InvalidInputError,
    SingularDesignError,
)
from ..utils.determinism import SeedLike, block_generators
from ..utils.logging_config import log_performance
from ..utils.validation import validate_matrix
from .derived import derive_arrays
from .paths import PathCoefficients, VarianceEstimator, estimate_indirect, estimate_paths

logger = logging.getLogger(__name__)

SINGULAR_POLICIES = ("discard", "abort")


@dataclass
class BootstrapDistribution:
    """Empirical distribution of the indirect effect over valid resamples."""
    estimate: float
    values: np.ndarray
    requested: int
    discarded: int = 0
    truncated: bool = False
    stderrs: Optional[np.ndarray] = None
    estimate_stderr: Optional[float] = None

    @property
    def replications(self) -> int:
        return int(self.values.shape[0])

    @property
    def attempted(self) -> int:
        return self.replications + self.discarded


@dataclass
class _BlockResult:
    index: int
    values: np.ndarray
    stderrs: Optional[np.ndarray]
    discarded: int


def _run_block(
    index: int,
    raw: np.ndarray,
    n_resamples: int,
    rng: np.random.Generator,
    variance_estimator: Optional[VarianceEstimator],
    abort_on_singular: bool,
    deadline: Optional[float],
) -> Optional[_BlockResult]:
    # The first block always runs so a truncated run still has a distribution
    if index > 0 and deadline is not None and time.monotonic() > deadline:
        return None

    n = raw.shape[0]
    with_stderr = variance_estimator is not None
    values = np.empty(n_resamples, dtype=float)
    stderrs = np.empty(n_resamples, dtype=float) if with_stderr else None
    keep = np.ones(n_resamples, dtype=bool)

    for i in range(n_resamples):
        idx = rng.integers(0, n, size=n)
        try:
            paths = estimate_paths(derive_arrays(raw[idx]), with_stderr=with_stderr)
        except SingularDesignError:
            if abort_on_singular:
                raise
            keep[i] = False
            continue
        values[i] = paths.indirect
        if with_stderr:
            stderrs[i] = math.sqrt(variance_estimator(paths))

    logger.debug("Block %d finished: %d valid, %d discarded", index, int(keep.sum()), int((~keep).sum()))
    return _BlockResult(
        index=index,
        values=values[keep],
        stderrs=stderrs[keep] if with_stderr else None,
        discarded=int((~keep).sum()),
    )


def _block_sizes(replications: int, block_size: int) -> List[int]:
    full, rest = divmod(replications, block_size)
    return [block_size] * full + ([rest] if rest else [])


@log_performance(logger)
def bootstrap_distribution(
    raw: np.ndarray,
    replications: int,
    seed: SeedLike,
    *,
    point: Optional[PathCoefficients] = None,
    variance_estimator: Optional[VarianceEstimator] = None,
    singular_policy: str = "discard",
    max_discard_fraction: float = 0.05,
    block_size: int = 1000,
    max_workers: Optional[int] = None,
    deadline_seconds: Optional[float] = None,
    progress: bool = False,
) -> BootstrapDistribution:
    """
    Bootstrap the indirect effect by resampling subjects with replacement.

    Args:
        raw: Validated ``(n, 4)`` matrix ordered M1, M2, Y1, Y2.
        replications: Number of resamples to draw.
        seed: Root seed; identical seeds reproduce identical distributions.
        point: Full-sample path coefficients, computed here when omitted.
        variance_estimator: Optional ``PathCoefficients -> variance`` used to
            attach a standard error to every resample (studentized intervals).
        singular_policy: "discard" (skip and count) or "abort" (raise).
        max_discard_fraction: Largest tolerated share of discarded resamples.
        block_size: Resamples per seeded block.
        max_workers: Thread pool size (default: min(8, CPU count)).
        deadline_seconds: Skip blocks not started within this many seconds.
        progress: Show a tqdm progress bar over blocks.

    Returns:
        BootstrapDistribution

    Raises:
        SingularDesignError: Full-sample design is singular, or a resample is
            singular under the "abort" policy.
        InsufficientValidResamplesError: Too many resamples were discarded.
        InvalidInputError: Malformed matrix, seed or options.
    """
    if singular_policy not in SINGULAR_POLICIES:
        raise InvalidInputError(f"Unknown singular_policy: {singular_policy}")
    if block_size < 1:
        raise InvalidInputError(f"block_size must be >= 1, got {block_size}")
    raw = validate_matrix(raw)

    if point is None:
        point = estimate_paths(derive_arrays(raw), with_stderr=variance_estimator is not None)

    sizes = _block_sizes(replications, block_size)
    generators = block_generators(seed, len(sizes))
    deadline = time.monotonic() + deadline_seconds if deadline_seconds is not None else None
    workers = max_workers or min(8, (os.cpu_count() or 1))

    results: List[_BlockResult] = []
    skipped = 0
    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures = [
            executor.submit(
                _run_block,
                i,
                raw,
                size,
                rng,
                variance_estimator,
                singular_policy == "abort",
                deadline,
            )
            for i, (size, rng) in enumerate(zip(sizes, generators))
        ]
        try:
            for future in tqdm(as_completed(futures), total=len(futures), disable=not progress,
                               desc="bootstrap", unit="block"):
                block = future.result()
                if block is None:
                    skipped += 1
                else:
                    results.append(block)
        except BaseException:
            # queued blocks are dropped, running blocks finish on exit
            executor.shutdown(wait=False, cancel_futures=True)
            raise

    results.sort(key=lambda r: r.index)
    values = np.concatenate([r.values for r in results]) if results else np.empty(0)
    stderrs = None
    if variance_estimator is not None:
        stderrs = np.concatenate([r.stderrs for r in results]) if results else np.empty(0)
    discarded = sum(r.discarded for r in results)
    attempted = values.shape[0] + discarded
    truncated = skipped > 0

    if truncated:
        logger.warning(
            "Deadline of %.3gs exceeded: %d of %d blocks skipped, %d resamples attempted",
            deadline_seconds, skipped, len(sizes), attempted,
        )
    if values.shape[0] == 0:
        raise InsufficientValidResamplesError(
            "No valid resamples were produced", discarded=discarded, requested=replications
        )
    if discarded > max_discard_fraction * attempted:
        raise InsufficientValidResamplesError(
            f"{discarded} of {attempted} resamples had singular designs "
            f"(limit {max_discard_fraction:.1%})",
            discarded=discarded,
            requested=replications,
        )

    estimate_stderr = None
    if variance_estimator is not None:
        estimate_stderr = math.sqrt(variance_estimator(point))

    return BootstrapDistribution(
        estimate=point.indirect,
        values=values,
        requested=replications,
        discarded=discarded,
        truncated=truncated,
        stderrs=stderrs,
        estimate_stderr=estimate_stderr,
    )


def jackknife_replicates(raw: np.ndarray) -> np.ndarray:
    """Leave-one-subject-out values of the indirect effect on the original sample.

    Raises:
        DegenerateDistributionError: If fewer than two subjects are available or
            a leave-one-out sample has a singular design
        InvalidInputError: If ``raw`` is not a finite ``(n, 4)`` matrix
    """
    raw = validate_matrix(raw)
    n = raw.shape[0]
    if n < 2:
        raise DegenerateDistributionError("Jackknife needs at least two observations")
    replicates = np.empty(n, dtype=float)
    mask = np.ones(n, dtype=bool)
    for i in range(n):
        mask[i] = False
        try:
            replicates[i] = estimate_indirect(raw[mask])
        except SingularDesignError as e:
            raise DegenerateDistributionError(
                f"Jackknife replicate {i} has a singular design: {e}"
            ) from e
        mask[i] = True
    return replicates
