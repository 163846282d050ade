from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

import numpy as np

# A sampler takes an output shape and returns float64 draws of that shape,
# filled in C (row-major) order.
Sampler = Callable[[tuple[int, ...]], np.ndarray]


@dataclass(slots=True)
class NormalSampler:
    """Standard normal draws (mean 0, variance 1)."""

    rng: np.random.Generator

    def __call__(self, shape: tuple[int, ...]) -> np.ndarray:
        return self.rng.standard_normal(shape, dtype=np.float64)


@dataclass(slots=True)
class UniformSampler:
    """Uniform draws on [0, 1)."""

    rng: np.random.Generator

    def __call__(self, shape: tuple[int, ...]) -> np.ndarray:
        return self.rng.random(shape, dtype=np.float64)


def make_samplers(
    seed: int | np.random.SeedSequence | np.random.Generator | None = None,
) -> tuple[NormalSampler, UniformSampler]:
    """Build the (normal, uniform) sampler pair used for basis generation.

    - int / SeedSequence / None: two independent child streams are spawned, so
      normal and uniform draws never share state. None uses OS entropy.
    - Generator: both samplers read from that one shared stream.
    """
    if isinstance(seed, np.random.Generator):
        return NormalSampler(seed), UniformSampler(seed)

    ss = seed if isinstance(seed, np.random.SeedSequence) else np.random.SeedSequence(seed)
    ss_normal, ss_uniform = ss.spawn(2)
    return (
        NormalSampler(np.random.default_rng(ss_normal)),
        UniformSampler(np.random.default_rng(ss_uniform)),
    )
