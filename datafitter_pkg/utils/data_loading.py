from __future__ import annotations

import logging
import math
from collections.abc import Iterable
from collections.abc import Iterator
from dataclasses import dataclass

import numpy as np

from ..errors import DataFormatError

logger = logging.getLogger(__name__)


def _readonly(values) -> np.ndarray:
    array = np.array(values, dtype=np.float64)
    array.setflags(write=False)
    return array


@dataclass(frozen=True, eq=False)
class Dataset:
    """Immutable ordered (x, y) samples.

    Attributes:
        x: Read-only float64 array of inputs
        y: Read-only float64 array of observed outputs, same length as ``x``
        source: Where the samples came from (file path), if known
    """

    x: np.ndarray
    y: np.ndarray
    source: str | None = None

    def __post_init__(self):
        x = _readonly(self.x)
        y = _readonly(self.y)
        if x.ndim != 1 or y.ndim != 1:
            raise ValueError("dataset columns must be one-dimensional")
        if x.shape != y.shape:
            raise ValueError(f"x has {x.size} samples but y has {y.size}")
        if x.size == 0:
            raise ValueError("dataset must contain at least one sample")
        object.__setattr__(self, "x", x)
        object.__setattr__(self, "y", y)

    @classmethod
    def from_pairs(cls, pairs: Iterable[tuple[float, float]], source: str | None = None) -> Dataset:
        pairs = list(pairs)
        return cls([p[0] for p in pairs], [p[1] for p in pairs], source)

    def __len__(self) -> int:
        return int(self.x.size)

    def pairs(self) -> Iterator[tuple[float, float]]:
        return zip(self.x.tolist(), self.y.tolist())


def load_dataset(path: str) -> Dataset:
    """
    Load (x, y) samples from a whitespace-separated text file.

    Each non-blank line holds two real numbers. Blank lines and lines starting
    with ``#`` are skipped.

    Args:
        path: Path to the dataset file.

    Returns:
        The loaded Dataset.

    Raises:
        DataFormatError: If the file cannot be read, a line is malformed or
            the file holds no samples.
    """
    try:
        with open(path, encoding="utf-8") as handle:
            lines = handle.readlines()
    except OSError as exc:
        raise DataFormatError(f"cannot read dataset ({exc.strerror or exc})", path=path) from exc

    xs: list[float] = []
    ys: list[float] = []
    for line_no, raw in enumerate(lines, start=1):
        line = raw.strip()
        if not line or line.startswith("#"):
            continue
        fields = line.split()
        if len(fields) != 2:
            raise DataFormatError(
                f"expected 2 fields, found {len(fields)}", path=path, line_no=line_no
            )
        try:
            x, y = float(fields[0]), float(fields[1])
        except ValueError as exc:
            raise DataFormatError(
                f"non-numeric value in {line!r}", path=path, line_no=line_no
            ) from exc
        if not (math.isfinite(x) and math.isfinite(y)):
            raise DataFormatError(f"non-finite value in {line!r}", path=path, line_no=line_no)
        xs.append(x)
        ys.append(y)

    if not xs:
        raise DataFormatError("dataset contains no samples", path=path)

    logger.info("Loaded %d samples from '%s'", len(xs), path)
    return Dataset(xs, ys, source=path)
