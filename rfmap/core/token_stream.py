from __future__ import annotations

import re
from typing import Iterable, Union

from rfmap.core.errors import MalformedStreamError

Token = Union[int, float]

_INT_RE = re.compile(r"^[+-]?\d+$")


class TokenWriter:
    """Append-only token list.

    Fields are pushed in a fixed order; a `TokenReader` over the result pops
    them back in exactly the reverse order.
    """

    def __init__(self) -> None:
        self._tokens: list[Token] = []

    def push_int(self, value: int) -> None:
        self._tokens.append(int(value))

    def push_float(self, value: float) -> None:
        self._tokens.append(float(value))

    def push_floats(self, values: Iterable[float]) -> None:
        self._tokens.extend(float(v) for v in values)

    @property
    def tokens(self) -> list[Token]:
        return list(self._tokens)

    def __len__(self) -> int:
        return len(self._tokens)


class TokenReader:
    """Stack-style reader over an ordered token list.

    Reads start at the last token and move towards the first. The list itself
    is never mutated; only the cursor index moves.
    """

    def __init__(self, tokens: Iterable[Token]):
        self._tokens: list[Token] = list(tokens)
        self._pos = len(self._tokens)

    @property
    def remaining(self) -> int:
        return self._pos

    def _pop(self, what: str) -> Token:
        if self._pos <= 0:
            raise MalformedStreamError(f"token stream exhausted while reading {what}")
        self._pos -= 1
        return self._tokens[self._pos]

    def pop_int(self, what: str = "int") -> int:
        tok = self._pop(what)
        if isinstance(tok, bool) or not isinstance(tok, int):
            raise MalformedStreamError(f"expected int token for {what}, got {tok!r}")
        return tok

    def pop_float(self, what: str = "float") -> float:
        tok = self._pop(what)
        if isinstance(tok, bool) or not isinstance(tok, (int, float)):
            raise MalformedStreamError(f"expected numeric token for {what}, got {tok!r}")
        return float(tok)

    def pop_count(self, what: str) -> int:
        """Pop an int that must be a non-negative size."""
        n = self.pop_int(what)
        if n < 0:
            raise MalformedStreamError(f"negative {what}: {n}")
        return n


def dumps(tokens: Iterable[Token]) -> str:
    """Space-separated text form. Floats use repr so they parse back exactly."""
    words = []
    for tok in tokens:
        if isinstance(tok, bool):
            raise TypeError("bool is not a valid token")
        if isinstance(tok, int):
            words.append(str(int(tok)))
        else:
            words.append(repr(float(tok)))
    return " ".join(words)


def loads(text: str) -> list[Token]:
    out: list[Token] = []
    for word in text.split():
        if _INT_RE.match(word):
            out.append(int(word))
            continue
        try:
            out.append(float(word))
        except ValueError:
            raise MalformedStreamError(f"not a numeric token: {word!r}") from None
    return out
