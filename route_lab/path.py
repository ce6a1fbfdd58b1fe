"""
Typed router paths and route keys.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator, NamedTuple, Tuple

from .topology import AdjacencyTopology


class RouteKey(NamedTuple):
  """Directional cache key: ``(a, b)`` and ``(b, a)`` are different routes."""

  source: str
  destination: str

  def __str__(self) -> str:
    return f"{self.source} -> {self.destination}"


@dataclass(frozen=True)
class Path:
  hops: Tuple[int, ...]

  def __post_init__(self) -> None:
    if not self.hops:
      raise ValueError("path must contain at least one router")

  @property
  def source(self) -> int:
    return self.hops[0]

  @property
  def destination(self) -> int:
    return self.hops[-1]

  @property
  def intermediates(self) -> Tuple[int, ...]:
    return self.hops[1:-1]

  def is_valid(self, topology: AdjacencyTopology) -> bool:
    """True when every consecutive pair of hops has a direct link."""
    if not all(topology.contains(hop) for hop in self.hops):
      return False
    return all(topology.is_adjacent(a, b) for a, b in zip(self.hops, self.hops[1:]))

  def legacy_code(self) -> int:
    """
    Decimal concatenation of the router ids, e.g. ``(1, 2, 3) -> 123``.

    Display only: the encoding is ambiguous once ids reach 10.
    """
    return int("".join(str(hop) for hop in self.hops))

  def __iter__(self) -> Iterator[int]:
    return iter(self.hops)

  def __len__(self) -> int:
    return len(self.hops)

  def __str__(self) -> str:
    return " -> ".join(f"R{hop}" for hop in self.hops)
