"""Parameter sets and fit candidates.

A ``Candidate`` pairs an expression tree with the ``Params`` it refers to.
The fit engine mutates the parameter values in place; everything else treats
them as read-only and takes a ``copy()`` when it needs to keep a snapshot.
"""

from __future__ import annotations

import random
from collections.abc import Iterable
from collections.abc import Iterator
from collections.abc import Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

import numpy as np

from .expression_tree import ExpressionNode
from .generator import generate
from .parser import parse

if TYPE_CHECKING:
    from ..config import SearchConfig


@dataclass
class Param:
    name: str
    value: float


class Params(Mapping[str, float]):
    """Ordered set of uniquely named parameters.

    Behaves as a read-only mapping of name to value (so it can be handed to
    ``ExpressionNode.evaluate`` directly); values are updated with
    ``params[name] = value`` and new parameters appended with ``add``.
    """

    def __init__(self, items: Iterable[Param] | None = None):
        self._items: list[Param] = []
        self._index: dict[str, int] = {}
        for item in items or ():
            self.add(item.name, item.value)

    @classmethod
    def from_dict(cls, values: Mapping[str, float]) -> Params:
        return cls(Param(name, float(value)) for name, value in values.items())

    def add(self, name: str, value: float) -> None:
        if name in self._index:
            raise ValueError(f"duplicate parameter name: {name}")
        self._index[name] = len(self._items)
        self._items.append(Param(name, float(value)))

    def __getitem__(self, name: str) -> float:
        return self._items[self._index[name]].value

    def __setitem__(self, name: str, value: float) -> None:
        self._items[self._index[name]].value = float(value)

    def __iter__(self) -> Iterator[str]:
        return (item.name for item in self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name: object) -> bool:
        return name in self._index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Params):
            return NotImplemented
        return self._items == other._items

    def __repr__(self) -> str:
        inner = ", ".join(f"{item.name}={item.value!r}" for item in self._items)
        return f"Params({inner})"

    def to_list(self) -> list[Param]:
        """Detached copies of the parameters in declared order."""
        return [Param(item.name, item.value) for item in self._items]

    def names(self) -> list[str]:
        return [item.name for item in self._items]

    def value_array(self) -> np.ndarray:
        return np.array([item.value for item in self._items], dtype=np.float64)

    def set_values(self, values: Iterable[float]) -> None:
        """Overwrite all values in declared order."""
        values = list(values)
        if len(values) != len(self._items):
            raise ValueError(f"expected {len(self._items)} values, got {len(values)}")
        for item, value in zip(self._items, values):
            item.value = float(value)

    def as_dict(self) -> dict[str, float]:
        return {item.name: item.value for item in self._items}

    def copy(self) -> Params:
        return Params(self.to_list())

    def clamp(self, lower: float, upper: float) -> None:
        """Clip every value into ``[lower, upper]``."""
        for item in self._items:
            item.value = min(max(item.value, lower), upper)

    def within(self, lower: float, upper: float) -> bool:
        return all(lower <= item.value <= upper for item in self._items)


@dataclass
class Candidate:
    """An expression together with the parameters it references."""

    expression: ExpressionNode
    params: Params

    @classmethod
    def sentinel(cls) -> Candidate:
        """The plain ``x`` candidate used before any fit succeeds."""
        return cls(ExpressionNode.variable(), Params())

    @classmethod
    def generate(
        cls,
        rng: random.Random,
        config: SearchConfig,
        complexity_budget: int | None = None,
    ) -> Candidate:
        """Random candidate; the budget is drawn from the config range when omitted."""
        if complexity_budget is None:
            complexity_budget = rng.randint(config.complexity_min, config.complexity_max)
        params = Params()
        expression = generate(complexity_budget, rng, config, params)
        return cls(expression, params)

    @classmethod
    def from_template(
        cls,
        text: str,
        config: SearchConfig,
        values: Mapping[str, float] | None = None,
        rng: random.Random | None = None,
    ) -> Candidate:
        """Candidate from expression text.

        Parameters listed in ``values`` start there; the others start at a
        uniform random point of the domain when ``rng`` is given, or at its
        midpoint otherwise.

        Raises:
            ParseError: If the text is malformed
            ValueError: If ``values`` names an unknown parameter or a value
                outside the parameter domain
        """
        values = dict(values or {})
        expression = parse(text)
        names = expression.parameter_names()
        unknown = sorted(set(values) - set(names))
        if unknown:
            raise ValueError(f"template has no parameter(s): {', '.join(unknown)}")

        lower, upper = config.param_value_min, config.param_value_max
        params = Params()
        for name in names:
            if name in values:
                value = float(values[name])
                if not lower <= value <= upper:
                    raise ValueError(
                        f"initial value {name}={value} is outside [{lower}, {upper}]"
                    )
            elif rng is not None:
                value = rng.uniform(lower, upper)
            else:
                value = (lower + upper) / 2
            params.add(name, value)
        return cls(expression, params)

    @property
    def param_count(self) -> int:
        return len(self.params)

    def simplify(self) -> Candidate:
        from .simplifier import simplify

        return simplify(self)

    def copy(self) -> Candidate:
        return Candidate(self.expression.copy(), self.params.copy())

    def evaluate(self, x):
        return self.expression.evaluate(x, self.params)

    def to_string(self) -> str:
        return self.expression.to_string()

    def to_string_for_plot(self) -> str:
        return self.expression.to_string_for_plot(self.params)

    def to_pretty_string(self) -> str:
        return self.expression.to_pretty_string(self.params.as_dict())

    def __str__(self) -> str:
        return self.to_string()
