from __future__ import annotations

import numbers
from typing import Any, Mapping

import numpy as np

from rfmap.core.errors import DimensionMismatchError, InvalidParameterError
from rfmap.core.token_stream import TokenReader, TokenWriter


def check_size(value: Any, what: str) -> int:
    """Validate a domain/co-domain size: a non-negative integer."""
    if isinstance(value, bool) or not isinstance(value, numbers.Integral):
        raise InvalidParameterError(f"{what} must be an integer, got {value!r}")
    n = int(value)
    if n < 0:
        raise InvalidParameterError(f"{what} must be >= 0, got {n}")
    return n


def _is_int_option(value: Any) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


class FixedSizeTransformer:
    """Bookkeeping shared by transformers with fixed input/output sizes.

    Holds the domain size (input length), co-domain size (output length) and a
    counter of transformed samples. `transform` only validates and passes the
    input through; concrete transformers hold one of these and call it before
    applying their own mapping.
    """

    def __init__(self, name: str, domain_size: int = 1, co_domain_size: int = 1):
        self.name = str(name)
        self._domain_size = check_size(domain_size, "domain size")
        self._co_domain_size = check_size(co_domain_size, "co-domain size")
        self.sample_count = 0

    @property
    def domain_size(self) -> int:
        return self._domain_size

    @property
    def co_domain_size(self) -> int:
        return self._co_domain_size

    def set_domain_size(self, size: int) -> None:
        self._domain_size = check_size(size, "domain size")

    def set_co_domain_size(self, size: int) -> None:
        self._co_domain_size = check_size(size, "co-domain size")

    def reset(self) -> None:
        self.sample_count = 0

    def transform(self, x: np.ndarray) -> np.ndarray:
        x = np.asarray(x, dtype=np.float64)
        if x.ndim == 2 and x.shape[0] == 1:
            x = x[0]
        if x.ndim != 1:
            raise DimensionMismatchError(f"x must be a vector [domain_size], got shape {x.shape}")
        if x.shape[0] != self._domain_size:
            raise DimensionMismatchError(
                f"input length mismatch: expected {self._domain_size}, got {x.shape[0]}"
            )
        self.sample_count += 1
        return x

    def transform_batch(self, X: np.ndarray) -> np.ndarray:
        X = np.asarray(X, dtype=np.float64)
        if X.ndim != 2:
            raise DimensionMismatchError("X must be 2D [B, domain_size]")
        if X.shape[1] != self._domain_size:
            raise DimensionMismatchError(
                f"input width mismatch: expected {self._domain_size}, got {X.shape[1]}"
            )
        self.sample_count += int(X.shape[0])
        return X

    def serialize_state(self, writer: TokenWriter) -> None:
        writer.push_int(self._domain_size)
        writer.push_int(self._co_domain_size)

    def deserialize_state(self, reader: TokenReader) -> None:
        # Reverse of serialize_state.
        co_domain_size = reader.pop_count("co-domain size")
        domain_size = reader.pop_count("domain size")
        self._co_domain_size = co_domain_size
        self._domain_size = domain_size

    def describe(self) -> str:
        return (
            f"Type: {self.name}\n"
            f"Domain size: {self._domain_size}\n"
            f"Co-domain size: {self._co_domain_size}\n"
            f"Sample count: {self.sample_count}\n"
        )

    def configuration_help(self) -> str:
        return (
            f"Transformer configuration options for {self.name}\n"
            "  dom size              Domain size\n"
            "  cod size              Co-domain size\n"
        )

    def configure(self, options: Mapping[str, Any]) -> bool:
        """Apply integer `dom` / `cod` options. Returns True if any was used.

        Both values are validated before either is applied.
        """
        dom = options.get("dom")
        cod = options.get("cod")
        dom = check_size(dom, "domain size") if _is_int_option(dom) else None
        cod = check_size(cod, "co-domain size") if _is_int_option(cod) else None

        if dom is not None:
            self._domain_size = dom
        if cod is not None:
            self._co_domain_size = cod
        return dom is not None or cod is not None
