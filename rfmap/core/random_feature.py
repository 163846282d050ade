from __future__ import annotations

import logging
import math
import numbers
from dataclasses import dataclass
from typing import Any, Iterable, Mapping

import numpy as np

from rfmap.core.errors import InvalidParameterError, MalformedStreamError
from rfmap.core.samplers import Sampler, make_samplers
from rfmap.core.token_stream import Token, TokenReader, TokenWriter, dumps, loads
from rfmap.core.transformer import FixedSizeTransformer

logger = logging.getLogger(__name__)

TWO_PI = 2.0 * math.pi


def check_gamma(value: Any) -> float:
    if isinstance(value, bool) or not isinstance(value, numbers.Real):
        raise InvalidParameterError(f"gamma must be a real number, got {value!r}")
    g = float(value)
    # 2 * gamma feeds the projection scale and must stay finite too.
    if not math.isfinite(2.0 * g) or g < 0.0:
        raise InvalidParameterError(f"gamma must be finite and >= 0, got {g}")
    return g


def _is_real_option(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


class RandomFeature:
    """Random Fourier feature map approximating the RBF kernel.

    Maps x in R^n to z(x) in R^m with

        z(x) = cos(W x + b) / sqrt(m)

    where W[r, c] ~ N(0, 2 * gamma) and b[i] ~ U[0, 2*pi). For two inputs,
    2 * z(x) . z(y) is an unbiased estimate of exp(-gamma * ||x - y||^2).

    Changing the domain size, co-domain size or gamma regenerates W and b.
    Each setter resets on its own, so to change several parameters at once
    build a new instance instead.

    Not synchronised: concurrent `transform` calls are fine as long as no
    setter, `configure` or `deserialize_state` runs at the same time.
    """

    def __init__(
        self,
        domain_size: int = 1,
        co_domain_size: int = 1,
        gamma: float = 1.0,
        *,
        seed: int | np.random.SeedSequence | np.random.Generator | None = None,
        normal: Sampler | None = None,
        uniform: Sampler | None = None,
    ):
        self._gamma = check_gamma(gamma)
        self.base = FixedSizeTransformer("RandomFeature", domain_size, co_domain_size)

        default_normal, default_uniform = make_samplers(seed)
        self._normal: Sampler = normal if normal is not None else default_normal
        self._uniform: Sampler = uniform if uniform is not None else default_uniform

        self.W = np.zeros((0, 0), dtype=np.float64)
        self.b = np.zeros((0,), dtype=np.float64)
        self.reset()

    @property
    def domain_size(self) -> int:
        return self.base.domain_size

    @property
    def co_domain_size(self) -> int:
        return self.base.co_domain_size

    @property
    def gamma(self) -> float:
        return self._gamma

    @property
    def sample_count(self) -> int:
        return self.base.sample_count

    def set_domain_size(self, size: int) -> None:
        self.base.set_domain_size(size)
        self.reset()

    def set_co_domain_size(self, size: int) -> None:
        self.base.set_co_domain_size(size)
        self.reset()

    def set_gamma(self, gamma: float) -> None:
        self._gamma = check_gamma(gamma)
        self.reset()

    def reset(self) -> None:
        """Draw a fresh projection matrix and phase vector.

        W is drawn first, in row-major order, then b.
        """
        self.base.reset()

        m = self.co_domain_size
        n = self.domain_size
        scale = math.sqrt(2.0 * self._gamma)

        W = np.asarray(self._normal((m, n)), dtype=np.float64).reshape(m, n)
        b = np.asarray(self._uniform((m,)), dtype=np.float64).reshape(m)
        self.W = scale * W
        self.b = TWO_PI * b
        logger.debug("regenerated random basis: W=%dx%d gamma=%g", m, n, self._gamma)

    def transform(self, x: np.ndarray) -> np.ndarray:
        x = self.base.transform(x)
        m = self.co_domain_size
        if m == 0:
            return np.zeros((0,), dtype=np.float64)
        return np.cos(self.W @ x + self.b) / math.sqrt(m)

    def transform_batch(self, X: np.ndarray) -> np.ndarray:
        """Row-wise `transform`: X [B, n] -> Z [B, m]."""
        X = self.base.transform_batch(X)
        m = self.co_domain_size
        if m == 0:
            return np.zeros((X.shape[0], 0), dtype=np.float64)
        return np.cos(X @ self.W.T + self.b) / math.sqrt(m)

    def serialize_state(self, writer: TokenWriter) -> None:
        writer.push_float(self._gamma)

        writer.push_floats(self.b)
        writer.push_int(self.b.shape[0])

        writer.push_floats(self.W.ravel(order="C"))
        writer.push_int(self.W.shape[0])
        writer.push_int(self.W.shape[1])

        self.base.serialize_state(writer)

    def deserialize_state(self, reader: TokenReader) -> None:
        """Restore state written by `serialize_state`.

        Fields are popped in reverse write order. Gamma is assigned directly:
        going through `set_gamma` would reset and discard the restored basis.
        On `MalformedStreamError` the previous configuration is kept.
        """
        prev_dims = (self.base.domain_size, self.base.co_domain_size)
        try:
            self.base.deserialize_state(reader)
            W, b, gamma = self._read_basis(reader)
        except MalformedStreamError:
            self.base.set_domain_size(prev_dims[0])
            self.base.set_co_domain_size(prev_dims[1])
            raise

        self.W = W
        self.b = b
        self._gamma = gamma
        logger.debug("restored random basis: W=%dx%d gamma=%g", W.shape[0], W.shape[1], gamma)

    def _read_basis(self, reader: TokenReader) -> tuple[np.ndarray, np.ndarray, float]:
        cols = reader.pop_count("projection column count")
        rows = reader.pop_count("projection row count")
        if (rows, cols) != (self.co_domain_size, self.domain_size):
            raise MalformedStreamError(
                f"projection shape {rows}x{cols} does not match sizes "
                f"{self.co_domain_size}x{self.domain_size}"
            )
        # Entries, phase length and gamma must all still be in the stream.
        if reader.remaining < rows * cols + 2:
            raise MalformedStreamError(
                f"stream too short for a {rows}x{cols} projection: {reader.remaining} token(s) left"
            )
        flat = np.empty(rows * cols, dtype=np.float64)
        for i in range(flat.size - 1, -1, -1):
            flat[i] = reader.pop_float("projection entry")

        m = reader.pop_count("phase length")
        if m != rows:
            raise MalformedStreamError(f"phase length {m} does not match co-domain size {rows}")
        if reader.remaining < m + 1:
            raise MalformedStreamError(f"stream too short for {m} phase entries")
        b = np.empty(m, dtype=np.float64)
        for i in range(m - 1, -1, -1):
            b[i] = reader.pop_float("phase entry")

        gamma = reader.pop_float("gamma")
        if not math.isfinite(2.0 * gamma) or gamma < 0.0:
            raise MalformedStreamError(f"invalid gamma in stream: {gamma}")
        return flat.reshape(rows, cols), b, gamma

    def to_tokens(self) -> list[Token]:
        writer = TokenWriter()
        self.serialize_state(writer)
        return writer.tokens

    def to_string(self) -> str:
        return dumps(self.to_tokens())

    @classmethod
    def from_tokens(
        cls,
        tokens: Iterable[Token],
        *,
        seed: int | np.random.SeedSequence | np.random.Generator | None = None,
    ) -> RandomFeature:
        """Rebuild a transformer from a complete token stream.

        `seed` only affects bases drawn by later resets.
        """
        out = cls(0, 0, 0.0, seed=seed)
        reader = TokenReader(tokens)
        out.deserialize_state(reader)
        if reader.remaining:
            raise MalformedStreamError(f"{reader.remaining} unread token(s) left in stream")
        return out

    @classmethod
    def from_string(cls, text: str, **kwargs: Any) -> RandomFeature:
        return cls.from_tokens(loads(text), **kwargs)

    def describe(self) -> str:
        return self.base.describe() + f"Gamma: {self._gamma}\n"

    def configuration_help(self) -> str:
        return self.base.configuration_help() + "  gamma val             Sets the kernel bandwidth parameter\n"

    def configure(self, options: Mapping[str, Any]) -> bool:
        """Apply `dom`, `cod` and `gamma` options.

        Returns True if at least one option was recognised. The basis is
        regenerated once if anything changed.
        """
        gamma = options.get("gamma")
        use_gamma = _is_real_option(gamma)
        if use_gamma:
            # Fail before the base applies any sizes.
            check_gamma(gamma)

        success = self.base.configure(options)
        if use_gamma:
            self.set_gamma(gamma)
        elif success:
            self.reset()
        return success or use_gamma


@dataclass(frozen=True, slots=True)
class RandomFeatureConfig:
    domain_size: int
    co_domain_size: int
    gamma: float = 1.0
    seed: int | None = None

    def build(self) -> RandomFeature:
        return RandomFeature(
            self.domain_size,
            self.co_domain_size,
            self.gamma,
            seed=self.seed,
        )
