"""
Hop-by-hop path construction for a single routing query.

A session starts at the source router and only moves along direct links.  When
the source is already linked to the destination the operator is first offered
the direct path; otherwise (or after declining) the session enters manual mode
and accepts proposed hops until the path reaches the destination.

Proposed hops are checked in a fixed order:

1. ``0`` asks to finalize from the current router;
2. ids outside ``[1, N]`` are rejected;
3. the destination itself is accepted only over a direct link;
4. a hop to the current router is a self loop;
5. any other router needs a direct link from the current router.

Rejections leave the session untouched so the caller can simply try again.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from .errors import InvalidTransition, SessionClosed
from .path import Path
from .topology import AdjacencyTopology
from . import limits

LOGGER = logging.getLogger(__name__)


class SessionState(str, Enum):
  INIT = "init"
  OFFER_DIRECT = "offer-direct"
  MANUAL = "manual"
  FINALIZED = "finalized"
  ABANDONED = "abandoned"

  @property
  def terminal(self) -> bool:
    return self in (SessionState.FINALIZED, SessionState.ABANDONED)


class HopStatus(str, Enum):
  ACCEPTED = "accepted"
  FINALIZED = "finalized"
  CANNOT_FINALIZE_YET = "cannot-finalize-yet"
  INVALID_ROUTER_ID = "invalid-router-id"
  DESTINATION_NOT_YET_REACHABLE = "destination-not-yet-reachable"
  SELF_LOOP_REJECTED = "self-loop-rejected"
  NO_DIRECT_LINK = "no-direct-link"
  ABANDONED = "abandoned"

  @property
  def rejected(self) -> bool:
    return self not in (HopStatus.ACCEPTED, HopStatus.FINALIZED, HopStatus.ABANDONED)


@dataclass(frozen=True)
class HopResult:
  status: HopStatus
  hop: int
  current: int
  destination: int
  router_count: int
  advisory: bool = False  # destination became directly reachable

  @property
  def message(self) -> str:
    status, hop, cur, dst = self.status, self.hop, self.current, self.destination
    if status == HopStatus.ACCEPTED:
      text = f"hop added, now at R{cur}"
      if self.advisory:
        text += f"; R{cur} is directly connected to destination R{dst}, enter 0 to finalize"
      return text
    if status == HopStatus.FINALIZED:
      return f"destination R{dst} reached"
    if status == HopStatus.CANNOT_FINALIZE_YET:
      return f"cannot finalize yet, R{cur} has no direct link to destination R{dst}"
    if status == HopStatus.INVALID_ROUTER_ID:
      return f"invalid router id, must be between 1 and {self.router_count}"
    if status == HopStatus.DESTINATION_NOT_YET_REACHABLE:
      return (
          f"R{dst} is the destination but R{cur} has no direct link to it, "
          "choose an intermediate router first"
      )
    if status == HopStatus.SELF_LOOP_REJECTED:
      return f"cannot route from R{cur} to itself"
    if status == HopStatus.NO_DIRECT_LINK:
      return f"R{cur} has no direct link to R{hop}"
    return "session abandoned"


def parse_hop(value: object) -> int:
  """
  Convert operator input to a hop number.

  Anything that is not an integer maps to the invalid sentinel so it flows
  into the ``INVALID_ROUTER_ID`` branch instead of raising.
  """
  if isinstance(value, bool):
    return limits.INVALID_HOP
  if isinstance(value, int):
    return value
  try:
    return int(str(value).strip())
  except ValueError:
    return limits.INVALID_HOP


def parse_choice(value: object) -> bool:
  """``1`` selects the direct path; anything else means manual routing."""
  return parse_hop(value) == 1


class PathBuilder:
  """
  State machine for one manual routing session.
  """

  def __init__(
      self,
      topology: AdjacencyTopology,
      source: int,
      destination: int,
      *,
      max_steps: Optional[int] = None,
      clock=time.monotonic,
  ) -> None:
    if max_steps is not None and max_steps < 0:
      raise ValueError("max_steps must be non-negative")
    self.topology = topology
    self.source = topology.check(source)
    self.destination = topology.check(destination)
    self.max_steps = max_steps
    self.state = SessionState.INIT
    self.current = self.source
    self.hops: List[int] = [self.source]
    self.steps = 0
    self.abandon_reason: Optional[str] = None
    self._clock = clock
    self.last_activity = clock()

  # ---------------------------------------------------------------- lifecycle
  def begin(self) -> SessionState:
    """
    Leave ``INIT``: offer the direct link when one exists, else go manual.
    """
    if self.state != SessionState.INIT:
      raise InvalidTransition(f"session already started ({self.state.value})")
    if self.topology.is_adjacent(self.source, self.destination):
      self._move(SessionState.OFFER_DIRECT)
    else:
      self._enter_manual()
    return self.state

  def choose_direct(self) -> Path:
    self._require(SessionState.OFFER_DIRECT)
    return self._finalize()

  def choose_manual(self) -> SessionState:
    self._require(SessionState.OFFER_DIRECT)
    self._enter_manual()
    return self.state

  def abandon(self, reason: str = "cancelled") -> None:
    if self.state.terminal:
      return
    self.abandon_reason = reason
    self._move(SessionState.ABANDONED)
    LOGGER.warning(
        "session R%d -> R%d abandoned (%s), partial path %s discarded",
        self.source,
        self.destination,
        reason,
        self.hops,
    )

  # -------------------------------------------------------------- manual loop
  def propose_hop(self, value: object) -> HopResult:
    self._require(SessionState.MANUAL)
    hop = parse_hop(value)
    if self.max_steps is not None and self.steps >= self.max_steps:
      self.abandon(f"step limit {self.max_steps} reached")
      return self._result(HopStatus.ABANDONED, hop)
    self.steps += 1
    self.last_activity = self._clock()

    topo = self.topology
    if hop == limits.FINALIZE_HOP:
      if topo.is_adjacent(self.current, self.destination):
        self._finalize()
        return self._result(HopStatus.FINALIZED, hop)
      return self._result(HopStatus.CANNOT_FINALIZE_YET, hop)

    if not topo.contains(hop):
      return self._result(HopStatus.INVALID_ROUTER_ID, hop)

    if hop == self.destination:
      if topo.is_adjacent(self.current, self.destination):
        self._finalize()
        return self._result(HopStatus.FINALIZED, hop)
      return self._result(HopStatus.DESTINATION_NOT_YET_REACHABLE, hop)

    if hop == self.current:
      return self._result(HopStatus.SELF_LOOP_REJECTED, hop)

    if not topo.is_adjacent(self.current, hop):
      return self._result(HopStatus.NO_DIRECT_LINK, hop)

    self.hops.append(hop)
    self.current = hop
    advisory = topo.is_adjacent(self.current, self.destination)
    LOGGER.log(limits.TRACE_LEVEL, "hop accepted, path so far %s", self.hops)
    return self._result(HopStatus.ACCEPTED, hop, advisory=advisory)

  # ------------------------------------------------------------------- views
  @property
  def path_so_far(self) -> Path:
    return Path(tuple(self.hops))

  @property
  def path(self) -> Optional[Path]:
    """Completed path, available once the session is finalized."""
    if self.state != SessionState.FINALIZED:
      return None
    return self.path_so_far

  def idle_for(self, now: float) -> float:
    return now - self.last_activity

  # ---------------------------------------------------------------- internals
  def _finalize(self) -> Path:
    self.hops.append(self.destination)
    self.current = self.destination
    self._move(SessionState.FINALIZED)
    return self.path_so_far

  def _enter_manual(self) -> None:
    self.current = self.source
    self.hops = [self.source]
    self._move(SessionState.MANUAL)

  def _move(self, state: SessionState) -> None:
    LOGGER.debug(
        "session R%d -> R%d: %s -> %s",
        self.source,
        self.destination,
        self.state.value,
        state.value,
    )
    self.state = state
    self.last_activity = self._clock()

  def _require(self, state: SessionState) -> None:
    if self.state.terminal:
      raise SessionClosed(f"session already {self.state.value}")
    if self.state != state:
      raise InvalidTransition(f"expected {state.value} state, session is {self.state.value}")

  def _result(self, status: HopStatus, hop: int, *, advisory: bool = False) -> HopResult:
    return HopResult(
        status=status,
        hop=hop,
        current=self.current,
        destination=self.destination,
        router_count=self.topology.router_count,
        advisory=advisory,
    )
