"""
Static reachability between the routers of the lab network.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from .errors import ConfigError, InvalidRouterId
from . import limits

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class AdjacencyTopology:
  """
  Immutable N x N direct-link relation, indexed by 1-based router ids.

  The relation is not required to be symmetric.  Diagonal entries are always
  true because a router trivially reaches itself.
  """

  matrix: Tuple[Tuple[bool, ...], ...]

  @classmethod
  def from_rows(cls, rows: Iterable[Sequence[object]]) -> "AdjacencyTopology":
    parsed: List[Tuple[bool, ...]] = []
    for index, row in enumerate(rows):
      if isinstance(row, (str, bytes)) or not isinstance(row, Sequence):
        raise ConfigError(f"adjacency row {index + 1} must be a list")
      cells: List[bool] = []
      for column, value in enumerate(row):
        if isinstance(value, bool):
          cells.append(value)
        elif isinstance(value, int) and value in (0, 1):
          cells.append(bool(value))
        else:
          raise ConfigError(
              f"adjacency entry R{index + 1}/R{column + 1} must be 0 or 1, got {value!r}"
          )
      parsed.append(tuple(cells))

    size = len(parsed)
    if size == 0:
      raise ConfigError("adjacency matrix must contain at least one router")
    for index, row in enumerate(parsed):
      if len(row) != size:
        raise ConfigError(f"adjacency row {index + 1} has {len(row)} entries, expected {size}")

    fixed = []
    for index, row in enumerate(parsed):
      if not row[index]:
        LOGGER.warning("adjacency R%d/R%d was 0, forcing self link", index + 1, index + 1)
        row = row[:index] + (True,) + row[index + 1:]
      fixed.append(row)
    return cls(matrix=tuple(fixed))

  @classmethod
  def reference(cls) -> "AdjacencyTopology":
    return cls.from_rows(limits.REFERENCE_ADJACENCY)

  @property
  def router_count(self) -> int:
    return len(self.matrix)

  def routers(self) -> range:
    return range(1, self.router_count + 1)

  def contains(self, router_id: object) -> bool:
    return (
        isinstance(router_id, int)
        and not isinstance(router_id, bool)
        and 1 <= router_id <= self.router_count
    )

  def check(self, router_id: object) -> int:
    if not self.contains(router_id):
      raise InvalidRouterId(router_id, self.router_count)
    return router_id  # type: ignore[return-value]

  def is_adjacent(self, a: int, b: int) -> bool:
    return self.matrix[self.check(a) - 1][self.check(b) - 1]

  def neighbors(self, router_id: int) -> List[int]:
    """Routers reachable in one hop from ``router_id``, excluding itself."""
    row = self.matrix[self.check(router_id) - 1]
    return [other for other in self.routers() if other != router_id and row[other - 1]]

  def rows(self) -> List[List[int]]:
    return [[int(cell) for cell in row] for row in self.matrix]
