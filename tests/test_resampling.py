"""Tests for seeded block resampling and jackknife replicates."""

import time
import unittest
from unittest import mock

import numpy as np
import pytest

from conftest import make_synthetic_frame
from repmed.errors import (
    DegenerateDistributionError,
    InsufficientValidResamplesError,
    InvalidInputError,
    SingularDesignError,
)
from repmed.statistical.paths import estimate_indirect, sobel_variance
from repmed.statistical.resampling import _block_sizes, bootstrap_distribution, jackknife_replicates


class TestBootstrapDistribution(unittest.TestCase):
    """Resampling determinism, discard policy and deadline handling."""

    def setUp(self):
        self.raw = make_synthetic_frame(n=40, seed=3)[["M1", "M2", "Y1", "Y2"]].to_numpy()
        self.three = np.array(
            [[1.0, 2.0, 1.0, 2.0], [2.0, 4.0, 1.0, 3.0], [3.0, 3.5, 2.0, 5.0]]
        )

    def test_same_seed_is_bit_identical(self):
        first = bootstrap_distribution(self.raw, 300, seed=11, block_size=64)
        second = bootstrap_distribution(self.raw, 300, seed=11, block_size=64)
        np.testing.assert_array_equal(first.values, second.values)

    def test_different_seed_differs(self):
        first = bootstrap_distribution(self.raw, 200, seed=1)
        second = bootstrap_distribution(self.raw, 200, seed=2)
        self.assertFalse(np.array_equal(first.values, second.values))

    def test_worker_count_does_not_change_result(self):
        serial = bootstrap_distribution(self.raw, 400, seed=5, block_size=50, max_workers=1)
        parallel = bootstrap_distribution(self.raw, 400, seed=5, block_size=50, max_workers=4)
        np.testing.assert_array_equal(serial.values, parallel.values)

    def test_estimate_and_counts(self):
        dist = bootstrap_distribution(self.raw, 250, seed=0, block_size=100)
        self.assertAlmostEqual(dist.estimate, estimate_indirect(self.raw), places=12)
        self.assertEqual(dist.replications, 250)
        self.assertEqual(dist.requested, 250)
        self.assertEqual(dist.discarded, 0)
        self.assertFalse(dist.truncated)
        self.assertIsNone(dist.stderrs)

    def test_variance_estimator_attaches_stderrs(self):
        dist = bootstrap_distribution(self.raw, 120, seed=0, variance_estimator=sobel_variance)
        self.assertEqual(dist.stderrs.shape, dist.values.shape)
        self.assertTrue(np.all(dist.stderrs > 0))
        self.assertGreater(dist.estimate_stderr, 0)

    def test_singular_resamples_are_discarded_and_counted(self):
        dist = bootstrap_distribution(self.three, 200, seed=9, max_discard_fraction=1.0)
        self.assertGreater(dist.discarded, 0)
        self.assertEqual(dist.attempted, 200)
        self.assertEqual(dist.replications + dist.discarded, 200)

    def test_discard_threshold(self):
        with self.assertRaises(InsufficientValidResamplesError) as ctx:
            bootstrap_distribution(self.three, 200, seed=9, max_discard_fraction=0.05)
        self.assertGreater(ctx.exception.discarded, 10)
        self.assertEqual(ctx.exception.requested, 200)

    def test_abort_policy(self):
        with self.assertRaises(SingularDesignError):
            bootstrap_distribution(self.three, 200, seed=9, singular_policy="abort")

    def test_unknown_policy(self):
        with self.assertRaises(InvalidInputError):
            bootstrap_distribution(self.raw, 10, seed=0, singular_policy="retry")

    def test_malformed_matrix(self):
        with_nan = self.raw.copy()
        with_nan[3, 2] = np.nan
        for raw in (with_nan, self.raw[:, :3], np.hstack([self.raw, self.raw[:, :1]])):
            with self.assertRaises(InvalidInputError):
                bootstrap_distribution(raw, 20, seed=0)
            with self.assertRaises(InvalidInputError):
                jackknife_replicates(raw)

    def test_negative_seed(self):
        with self.assertRaises(InvalidInputError):
            bootstrap_distribution(self.raw, 20, seed=-5)

    def test_abort_cancels_queued_blocks(self):
        calls = []

        def fake_block(index, *args):
            calls.append(index)
            if index == 0:
                raise SingularDesignError("singular", rank=2)
            time.sleep(0.05)
            return None

        with mock.patch("repmed.statistical.resampling._run_block", side_effect=fake_block):
            with self.assertRaises(SingularDesignError):
                bootstrap_distribution(
                    self.raw, 400, seed=0, block_size=10, max_workers=1, singular_policy="abort"
                )
        self.assertLess(len(calls), 40)

    def test_deadline_truncates_after_first_block(self):
        dist = bootstrap_distribution(
            self.raw, 50, seed=0, block_size=10, max_workers=1, deadline_seconds=0
        )
        self.assertTrue(dist.truncated)
        self.assertEqual(dist.replications, 10)
        self.assertEqual(dist.requested, 50)

    def test_progress_bar(self):
        dist = bootstrap_distribution(self.raw, 30, seed=0, block_size=10, progress=True)
        self.assertEqual(dist.replications, 30)


class TestBlockSizes:
    @pytest.mark.parametrize(
        "replications,block_size,expected",
        [(10, 4, [4, 4, 2]), (8, 4, [4, 4]), (3, 1000, [3])],
    )
    def test_partition(self, replications, block_size, expected):
        assert _block_sizes(replications, block_size) == expected


class TestJackknife:
    def test_leave_one_out_values(self, worked_raw):
        reps = jackknife_replicates(worked_raw)
        assert reps.shape == (10,)
        assert reps[8] == pytest.approx(estimate_indirect(np.delete(worked_raw, 8, axis=0)))

    def test_singular_leave_one_out(self, three_subject_raw):
        with pytest.raises(DegenerateDistributionError):
            jackknife_replicates(three_subject_raw)

    def test_too_small(self):
        with pytest.raises(DegenerateDistributionError):
            jackknife_replicates(np.array([[1.0, 2.0, 3.0, 4.0]]))
