"""
Query orchestration: endpoint lookup, route history and manual sessions.

A query either finishes immediately (same router, or a path already in the
history) or opens a :class:`~route_lab.builder.PathBuilder` session that the
front end feeds with choices and hops.  Finalized paths are committed to the
history; abandoned sessions are dropped without leaving anything behind.

Only one session per route key may be open at a time.  A second ``start`` for
the same key blocks until the first one finishes and then reads the history
again, so concurrent front ends never build the same route twice.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Iterator, List, Optional, Tuple

from .builder import HopResult, PathBuilder, SessionState
from .cache import RouteCache
from .directory import RouterDirectory, is_valid_address
from .errors import (
    AddressNotFound,
    CacheFull,
    InvalidAddressFormat,
    InvalidTransition,
    SessionBusy,
)
from .path import Path, RouteKey
from .topology import AdjacencyTopology

LOGGER = logging.getLogger(__name__)


class Resolution(str, Enum):
  SAME_ROUTER = "same-router"
  CACHED = "cached"
  RESOLVED = "resolved"
  ABANDONED = "abandoned"


@dataclass(frozen=True)
class Outcome:
  key: RouteKey
  source_router: int
  destination_router: int
  resolution: Resolution
  path: Optional[Path] = None
  stored: bool = False
  warning: Optional[str] = None

  @property
  def cache_hit(self) -> bool:
    return self.resolution == Resolution.CACHED


@dataclass
class Query:
  """Handle for one in-progress resolution."""

  key: RouteKey
  source_router: int
  destination_router: int
  builder: Optional[PathBuilder] = None
  outcome: Optional[Outcome] = None

  @property
  def pending(self) -> bool:
    return self.outcome is None


class Driver:
  """
  Supplies the operator's decisions to a manual session.
  """

  def choose_direct(self, builder: PathBuilder) -> bool:
    raise NotImplementedError

  def next_hop(self, builder: PathBuilder) -> Optional[object]:
    """Return the next proposed hop, or ``None`` to abandon the session."""
    raise NotImplementedError

  def report(self, result: HopResult) -> None:
    pass


class ScriptedDriver(Driver):
  """
  Driver backed by a finite list of hops, for tests and batch runs.
  """

  def __init__(self, hops: Iterable[object] = (), *, direct: bool = False) -> None:
    self.direct = direct
    self._hops: Iterator[object] = iter(hops)
    self.results: List[HopResult] = []

  def choose_direct(self, builder: PathBuilder) -> bool:
    return self.direct

  def next_hop(self, builder: PathBuilder) -> Optional[object]:
    return next(self._hops, None)

  def report(self, result: HopResult) -> None:
    self.results.append(result)


class RouteResolver:
  def __init__(
      self,
      topology: AdjacencyTopology,
      directory: RouterDirectory,
      cache: Optional[RouteCache] = None,
      *,
      max_steps: Optional[int] = None,
      session_timeout: Optional[float] = None,
      wait_timeout: Optional[float] = None,
      clock=time.monotonic,
  ) -> None:
    self.topology = topology
    self.directory = directory
    self.cache = cache if cache is not None else RouteCache()
    self.max_steps = max_steps
    self.session_timeout = session_timeout
    self.wait_timeout = wait_timeout
    self._clock = clock
    self._cond = threading.Condition()
    self._inflight: Dict[RouteKey, PathBuilder] = {}

  # ------------------------------------------------------------------ queries
  def endpoints(self, source: str, destination: str) -> Tuple[int, int]:
    """
    Validate both addresses and map them to router ids.
    """
    if not is_valid_address(source):
      raise InvalidAddressFormat(source, which="source")
    if not is_valid_address(destination):
      raise InvalidAddressFormat(destination, which="destination")
    source_router = self.directory.resolve(source)
    if source_router is None:
      raise AddressNotFound("source", source)
    destination_router = self.directory.resolve(destination)
    if destination_router is None:
      raise AddressNotFound("destination", destination)
    return source_router, destination_router

  def start(self, source: str, destination: str) -> Query:
    source_router, destination_router = self.endpoints(source, destination)
    key = RouteKey(source, destination)
    query = Query(key=key, source_router=source_router, destination_router=destination_router)
    LOGGER.debug("query %s resolved to R%d -> R%d", key, source_router, destination_router)

    if source_router == destination_router:
      query.outcome = self._outcome(query, Resolution.SAME_ROUTER, Path((source_router,)))
      return query

    with self._cond:
      self._wait_for_inflight(key)
      cached = self.cache.lookup(key)
      if cached is not None:
        LOGGER.debug("history hit for %s: %s", key, cached)
        query.outcome = self._outcome(query, Resolution.CACHED, cached)
        return query
      builder = PathBuilder(
          self.topology,
          source_router,
          destination_router,
          max_steps=self.max_steps,
          clock=self._clock,
      )
      builder.begin()
      self._inflight[key] = builder

    LOGGER.debug("history miss for %s, session opened in %s state", key, builder.state.value)
    query.builder = builder
    return query

  def complete(self, query: Query) -> Outcome:
    """
    Commit a finalized session to the history and return its outcome.

    A full history is reported through :attr:`Outcome.warning`; the path is
    still returned.
    """
    if query.outcome is not None:
      return query.outcome
    builder = query.builder
    if builder is None or builder.state != SessionState.FINALIZED:
      state = builder.state.value if builder else "none"
      raise InvalidTransition(f"cannot complete query {query.key} in {state} state")

    path = builder.path_so_far
    stored = False
    warning = None
    with self._cond:
      if self._inflight.get(query.key) is not builder:
        # Expired while a last hop was finishing on another thread.
        LOGGER.warning("session %s expired before commit, path %s discarded", query.key, path)
        query.outcome = self._outcome(query, Resolution.ABANDONED, warning="session expired")
        return query.outcome
      try:
        stored = self.cache.insert(query.key, path)
      except CacheFull as exc:
        warning = str(exc)
        LOGGER.warning("%s, route %s not recorded", exc, query.key)
      finally:
        self._release(query.key, builder)

    if stored:
      LOGGER.info("new route recorded: %s via %s", query.key, path)
    query.outcome = self._outcome(query, Resolution.RESOLVED, path, stored=stored, warning=warning)
    return query.outcome

  def abandon(self, query: Query, reason: str = "cancelled") -> Outcome:
    """
    Close a pending session without touching the history.
    """
    if query.outcome is not None:
      return query.outcome
    builder = query.builder
    if builder is not None:
      builder.abandon(reason)
      with self._cond:
        self._release(query.key, builder)
    query.outcome = self._outcome(query, Resolution.ABANDONED, warning=reason)
    return query.outcome

  def resolve(self, source: str, destination: str, driver: Driver) -> Outcome:
    """
    Run a whole query, asking ``driver`` for every decision.
    """
    query = self.start(source, destination)
    if query.outcome is not None:
      return query.outcome
    builder = query.builder
    assert builder is not None
    try:
      if builder.state == SessionState.OFFER_DIRECT:
        if driver.choose_direct(builder):
          builder.choose_direct()
        else:
          builder.choose_manual()
      while builder.state == SessionState.MANUAL:
        hop = driver.next_hop(builder)
        if hop is None:
          return self.abandon(query, "no further hops")
        driver.report(builder.propose_hop(hop))
    except BaseException:
      self.abandon(query, "driver error")
      raise

    if builder.state == SessionState.ABANDONED:
      return self.abandon(query, builder.abandon_reason or "abandoned")
    return self.complete(query)

  # ----------------------------------------------------------------- sessions
  def expire_sessions(self, now: Optional[float] = None) -> List[RouteKey]:
    """
    Abandon every session idle for longer than ``session_timeout``.

    Finalized sessions waiting for :meth:`complete` are left alone.  A session
    expired here is never committed, even if its last hop lands afterwards.
    Returns the keys of the expired sessions.
    """
    if self.session_timeout is None:
      return []
    now = self._clock() if now is None else now
    expired: List[RouteKey] = []
    with self._cond:
      for key, builder in list(self._inflight.items()):
        if builder.state == SessionState.FINALIZED:
          continue
        if builder.idle_for(now) <= self.session_timeout:
          continue
        builder.abandon(f"idle for more than {self.session_timeout:g}s")
        self._release(key, builder)
        expired.append(key)
    return expired

  def in_flight(self) -> List[RouteKey]:
    with self._cond:
      return list(self._inflight)

  # ---------------------------------------------------------------- internals
  def _wait_for_inflight(self, key: RouteKey) -> None:
    deadline = None if self.wait_timeout is None else time.monotonic() + self.wait_timeout
    while key in self._inflight:
      if deadline is None:
        self._cond.wait()
        continue
      remaining = deadline - time.monotonic()
      if remaining <= 0 or not self._cond.wait(remaining):
        if key in self._inflight:
          raise SessionBusy(f"route {key} is being resolved by another session")

  def _release(self, key: RouteKey, builder: PathBuilder) -> None:
    if self._inflight.get(key) is builder:
      del self._inflight[key]
      self._cond.notify_all()

  @staticmethod
  def _outcome(
      query: Query,
      resolution: Resolution,
      path: Optional[Path] = None,
      *,
      stored: bool = False,
      warning: Optional[str] = None,
  ) -> Outcome:
    return Outcome(
        key=query.key,
        source_router=query.source_router,
        destination_router=query.destination_router,
        resolution=resolution,
        path=path,
        stored=stored,
        warning=warning,
    )
