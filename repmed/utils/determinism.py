from __future__ import annotations

from typing import List, Optional, Union

import numpy as np

from .validation import validate_seed

SeedLike = Union[int, np.random.SeedSequence, None]


def make_seed_sequence(seed: SeedLike = None) -> np.random.SeedSequence:
    """Return a fresh ``SeedSequence`` for one analysis run.

    - An int seed is used as entropy directly
    - An existing ``SeedSequence`` is passed through unchanged
    - ``None`` draws fresh OS entropy (non-reproducible)
    """
    if isinstance(seed, np.random.SeedSequence):
        return seed
    return np.random.SeedSequence(None if seed is None else validate_seed(seed))


def block_generators(seed: SeedLike, n_blocks: int) -> List[np.random.Generator]:
    """Independent generators, one per resample block, indexed deterministically.

    Block ``i`` always receives the ``i``-th spawned child of the root
    sequence, so the draws of a block do not depend on how blocks are
    scheduled across workers.
    """
    root = make_seed_sequence(seed)
    return [np.random.Generator(np.random.PCG64(child)) for child in root.spawn(n_blocks)]


def resolve_seed(seed: Optional[int]) -> int:
    """Turn ``None`` into a concrete seed so the run can be reproduced later."""
    if seed is not None:
        return int(seed)
    return int(np.random.SeedSequence().generate_state(1)[0])
