"""Aesthetic mappings: channel → column reference or derived expression.

A mapping term is a tagged union of :class:`ColumnRef` (one column by name)
and :class:`DerivedExpr` (an operator applied to terms and numeric constants).
Terms are resolved against a DataFrame only at render time through
:meth:`evaluate`, so a specification may reference columns that do not exist
yet. Nothing is evaluated from strings.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from numbers import Real
from typing import Any, Iterable, Iterator, Union

import numpy as np
import pandas as pd

from .errors import MissingColumnError, PlotSpecError
from .schema import canonical_channel


def _factor(values: pd.Series) -> pd.Series:
    return pd.Series(pd.Categorical(values), index=values.index)


_BINARY = {
    "+": np.add,
    "-": np.subtract,
    "*": np.multiply,
    "/": np.divide,
    "**": np.power,
}

_UNARY = {
    "log": np.log,
    "log10": np.log10,
    "log2": np.log2,
    "sqrt": np.sqrt,
    "exp": np.exp,
    "abs": np.abs,
    "neg": np.negative,
    "factor": _factor,
}

OPERATORS: tuple[str, ...] = tuple(_BINARY) + tuple(_UNARY)


class _Term:
    """Arithmetic on terms builds :class:`DerivedExpr` trees."""

    def __add__(self, other):
        return DerivedExpr("+", (self, other))

    def __radd__(self, other):
        return DerivedExpr("+", (other, self))

    def __sub__(self, other):
        return DerivedExpr("-", (self, other))

    def __rsub__(self, other):
        return DerivedExpr("-", (other, self))

    def __mul__(self, other):
        return DerivedExpr("*", (self, other))

    def __rmul__(self, other):
        return DerivedExpr("*", (other, self))

    def __truediv__(self, other):
        return DerivedExpr("/", (self, other))

    def __rtruediv__(self, other):
        return DerivedExpr("/", (other, self))

    def __pow__(self, other):
        return DerivedExpr("**", (self, other))

    def __neg__(self):
        return DerivedExpr("neg", (self,))


@dataclass(frozen=True)
class ColumnRef(_Term):
    """Reference to one dataset column by name."""

    name: str

    def columns(self) -> tuple[str, ...]:
        return (self.name,)

    def label(self) -> str:
        return self.name

    def evaluate(self, frame: pd.DataFrame, channel: str) -> pd.Series:
        """Return the referenced column or raise :class:`MissingColumnError`."""
        if self.name not in frame.columns:
            raise MissingColumnError(channel, self.name, frame.columns)
        return frame[self.name]


Operand = Union[ColumnRef, "DerivedExpr", float, int]


@dataclass(frozen=True)
class DerivedExpr(_Term):
    """An operator applied to column references, expressions or constants.

    Attributes:
        operator (str): One of :data:`OPERATORS`. Binary operators take two
            operands; the named functions (``log10``, ``factor``...) take one.
        operands (tuple): Terms or numeric constants. Plain strings are taken
            as column names.
    """

    operator: str
    operands: tuple

    def __post_init__(self) -> None:
        if self.operator not in OPERATORS:
            raise ValueError(
                f"Unknown operator '{self.operator}'. Expected one of {OPERATORS}."
            )
        operands = tuple(_coerce_operand(op) for op in self.operands)
        arity = 2 if self.operator in _BINARY else 1
        if len(operands) != arity:
            raise ValueError(
                f"Operator '{self.operator}' takes {arity} operand(s), got {len(operands)}"
            )
        object.__setattr__(self, "operands", operands)

    def columns(self) -> tuple[str, ...]:
        names: list[str] = []
        for op in self.operands:
            if isinstance(op, _Term):
                names.extend(n for n in op.columns() if n not in names)
        return tuple(names)

    def label(self) -> str:
        parts = [_operand_label(op) for op in self.operands]
        if self.operator in _BINARY:
            return f"{parts[0]} {self.operator} {parts[1]}"
        if self.operator == "neg":
            return f"-{parts[0]}"
        return f"{self.operator}({parts[0]})"

    def evaluate(self, frame: pd.DataFrame, channel: str) -> pd.Series:
        """Evaluate the expression column-wise against ``frame``.

        Raises:
            MissingColumnError: If any referenced column is absent.
            PlotSpecError: If the operands cannot be combined (for example
                arithmetic on text columns).
        """
        values = [
            op.evaluate(frame, channel) if isinstance(op, _Term) else op
            for op in self.operands
        ]
        try:
            with np.errstate(divide="ignore", invalid="ignore"):
                if self.operator in _BINARY:
                    result = _BINARY[self.operator](values[0], values[1])
                else:
                    result = _UNARY[self.operator](values[0])
        except TypeError as exc:
            raise PlotSpecError(
                f"Cannot evaluate '{self.label()}' for channel '{channel}': {exc}"
            ) from exc
        if not isinstance(result, pd.Series):
            result = pd.Series(np.broadcast_to(result, len(frame)), index=frame.index)
        return result


Term = Union[ColumnRef, DerivedExpr]


def _coerce_operand(value: Any) -> Any:
    if isinstance(value, _Term):
        return value
    if isinstance(value, str):
        return ColumnRef(value)
    if isinstance(value, Real) and not isinstance(value, bool):
        return float(value)
    raise TypeError(f"Unsupported expression operand: {value!r}")


def _operand_label(op: Any) -> str:
    if isinstance(op, DerivedExpr) and op.operator in _BINARY:
        return f"({op.label()})"
    if isinstance(op, _Term):
        return op.label()
    return f"{op:g}"


def col(name: str) -> ColumnRef:
    """Return a :class:`ColumnRef` for ``name``."""
    return ColumnRef(str(name))


def expr(operator: str, *operands) -> DerivedExpr:
    """Build a :class:`DerivedExpr`, e.g. ``expr("/", "gdp", "pop")``."""
    return DerivedExpr(operator, tuple(operands))


def factor(term) -> DerivedExpr:
    """Treat a column (or expression) as categorical."""
    return DerivedExpr("factor", (term,))


def as_term(value: Any) -> Term:
    """Coerce a mapping value to a term; strings are column names."""
    if isinstance(value, _Term):
        return value
    if isinstance(value, str):
        return ColumnRef(value)
    raise TypeError(
        f"Aesthetic values must be column names or expressions, got {value!r}; "
        "use a fixed layer parameter for constants"
    )


class AestheticMapping(Mapping):
    """Immutable, ordered channel → term mapping.

    ``None`` values are only meaningful inside a layer override, where they
    remove the inherited channel.
    """

    __slots__ = ("_items",)

    def __init__(self, items: Iterable[tuple[str, Any]] = ()):
        ordered: dict[str, Any] = {}
        for channel, value in items:
            ordered[canonical_channel(channel)] = None if value is None else as_term(value)
        self._items = ordered

    def __getitem__(self, key: str):
        return self._items[canonical_channel(key)]

    def __iter__(self) -> Iterator[str]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        body = ", ".join(
            f"{k}={'None' if v is None else v.label()!r}" for k, v in self._items.items()
        )
        return f"aes({body})"

    def without(self, channels: Iterable[str]) -> "AestheticMapping":
        """Return a copy with ``channels`` removed."""
        drop = {canonical_channel(c) for c in channels}
        return AestheticMapping((k, v) for k, v in self._items.items() if k not in drop)


def aes(mapping: Mapping | None = None, **channels) -> AestheticMapping:
    """Build an :class:`AestheticMapping` from a dict and/or keyword channels.

    Example:
        ``aes(x="gdp_per_cap", y="life_exp", color="continent")``
    """
    items = list((mapping or {}).items()) + list(channels.items())
    return AestheticMapping(items)


def merge_mappings(default: Mapping, override: Mapping) -> AestheticMapping:
    """Overlay ``override`` on ``default`` channel by channel.

    Overridden channels keep their position; new channels are appended; a
    ``None`` override removes the channel.

    Args:
        default (Mapping): Plot-level default mapping.
        override (Mapping): Layer-level partial mapping.

    Returns:
        AestheticMapping: The effective mapping for the layer.
    """
    merged: dict[str, Any] = {k: v for k, v in default.items() if v is not None}
    for channel, term in override.items():
        key = canonical_channel(channel)
        if term is None:
            merged.pop(key, None)
        else:
            merged[key] = term
    return AestheticMapping(merged.items())
