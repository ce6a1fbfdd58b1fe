"""
Route history: previously resolved paths keyed by directional address pairs.

The store is write-once per key and capacity bounded.  Once full it refuses
new keys instead of evicting old ones, matching the behaviour students see in
the console version of the lab.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Tuple

from .errors import CacheFull
from .path import Path, RouteKey
from . import limits

LOGGER = logging.getLogger(__name__)


class RouteCache:
  """
  Append-only mapping ``RouteKey -> Path``.
  """

  def __init__(self, capacity: int = limits.MAX_ROUTE_HISTORY) -> None:
    if capacity < 0:
      raise ValueError("capacity must be non-negative")
    self.capacity = capacity
    self._routes: Dict[RouteKey, Path] = {}

  def lookup(self, key: RouteKey) -> Optional[Path]:
    return self._routes.get(key)

  def insert(self, key: RouteKey, path: Path) -> bool:
    """
    Store ``path`` under ``key``.

    Returns ``True`` when the entry was added and ``False`` when ``key`` was
    already present (the existing path is kept).  Raises :class:`CacheFull`
    when the history is at capacity and ``key`` is new.
    """
    if key in self._routes:
      LOGGER.debug("route %s already recorded, keeping first path", key)
      return False
    if len(self._routes) >= self.capacity:
      raise CacheFull(self.capacity)
    self._routes[key] = path
    LOGGER.debug("recorded route %s = %s (%d/%d)", key, path, len(self._routes), self.capacity)
    return True

  @property
  def full(self) -> bool:
    return len(self._routes) >= self.capacity

  def snapshot(self) -> List[Tuple[RouteKey, Path]]:
    """
    Entries in insertion order.
    """
    return list(self._routes.items())

  def __len__(self) -> int:
    return len(self._routes)

  def __contains__(self, key: object) -> bool:
    return key in self._routes
