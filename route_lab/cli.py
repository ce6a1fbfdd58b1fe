"""
Interactive console for the route resolution lab.

The shell only translates operator input into resolver calls and reports the
results; adjacency and history rules live in the core modules.
"""

from __future__ import annotations

import logging
import threading
from typing import Callable, Dict, Iterable, List, Optional

from .builder import HopResult, PathBuilder, parse_choice, parse_hop
from .directory import is_valid_address
from .errors import RouteLabError
from .resolver import Driver, Outcome, Resolution, RouteResolver
from .topology import AdjacencyTopology

LOGGER = logging.getLogger(__name__)

InputFunc = Callable[[str], str]

_ABANDON_WORDS = {"q", "quit", "abort", "cancel"}


class ConsoleDriver(Driver):
  """
  Asks the operator for the direct/manual choice and every hop.
  """

  def __init__(self, input_func: InputFunc = input) -> None:
    self._input = input_func

  def choose_direct(self, builder: PathBuilder) -> bool:
    LOGGER.info("direct link found between R%d and R%d", builder.source, builder.destination)
    answer = self._ask("use the direct path? (1=yes, 0=define manually): ")
    if answer is None:
      return False
    return parse_choice(answer)

  def next_hop(self, builder: PathBuilder) -> Optional[object]:
    answer = self._ask(
        f"current router R{builder.current}, path {builder.path_so_far}. "
        f"next router (1-{builder.topology.router_count}, 0 to finalize, q to abort): "
    )
    if answer is None or answer.strip().lower() in _ABANDON_WORDS:
      return None
    return parse_hop(answer)

  def report(self, result: HopResult) -> None:
    if result.status.rejected:
      LOGGER.warning("%s", result.message)
    else:
      LOGGER.info("%s", result.message)

  def _ask(self, prompt: str) -> Optional[str]:
    try:
      return self._input(prompt)
    except EOFError:
      return None


class CliShell:
  def __init__(self, resolver: RouteResolver, *, input_func: InputFunc = input) -> None:
    self.resolver = resolver
    self._input = input_func
    self._running = threading.Event()
    self._running.set()
    self._query_count = 0
    self._commands = {
        "route": self._cmd_route,
        "show": self._cmd_show,
        "quit": self._cmd_quit,
        "exit": self._cmd_quit,
        "help": self._cmd_help,
    }

  def run(self) -> None:
    while self._running.is_set():
      try:
        line = self._input("> ").strip()
      except EOFError:
        break
      if not line:
        continue
      self.execute(line)

  def execute(self, line: str) -> None:
    tokens = line.split()
    command = tokens[0]
    handler = self._commands.get(command)
    if handler is None:
      LOGGER.warning("unknown command: %s", command)
      return
    try:
      handler(tokens[1:])
    except RouteLabError as exc:
      LOGGER.error("%s", exc)
    except Exception:  # pragma: no cover - interactive diagnostics
      LOGGER.exception("command failed")

  def stop(self) -> None:
    self._running.clear()

  @property
  def running(self) -> bool:
    return self._running.is_set()

  # ----------------------------------------------------------------- commands
  def _cmd_route(self, args: Iterable[str]) -> Optional[Outcome]:
    sub = list(args)
    if len(sub) != 2:
      LOGGER.info("usage: route <source-ip> <destination-ip>")
      return None
    self._query_count += 1
    LOGGER.info("--- routing query %d ---", self._query_count)
    outcome = self.resolver.resolve(sub[0], sub[1], ConsoleDriver(self._input))
    report_outcome(outcome)
    return outcome

  def _cmd_show(self, args: Iterable[str]) -> None:
    sub = list(args)
    if not sub:
      LOGGER.info("usage: show <topology|networks|history [legacy]>")
      return
    topic = sub[0]
    if topic == "topology":
      for line in format_topology(self.resolver.topology):
        LOGGER.info("%s", line)
    elif topic == "networks":
      self._show_networks()
    elif topic == "history":
      self._show_history(legacy="legacy" in sub[1:])
    else:
      LOGGER.warning("unsupported show topic: %s", topic)

  def _cmd_quit(self, _: Iterable[str]) -> None:
    LOGGER.info("simulation ended")
    self.stop()

  def _cmd_help(self, _: Iterable[str]) -> None:
    LOGGER.info(
        "commands: route <src> <dst>, show topology|networks|history [legacy], quit/exit"
    )

  # -------------------------------------------------------------------- views
  def _show_networks(self) -> None:
    for router_id, addresses in self.resolver.directory.snapshot().items():
      LOGGER.info("R%d: %s", router_id, ", ".join(addresses) or "-")

  def _show_history(self, *, legacy: bool) -> None:
    entries = self.resolver.cache.snapshot()
    if not entries:
      LOGGER.info("no routes logged yet")
      return
    for key, path in entries:
      if legacy:
        LOGGER.info("%s: %s (%d)", key, path, path.legacy_code())
      else:
        LOGGER.info("%s: %s", key, path)
    LOGGER.info("%d/%d history slots used", len(entries), self.resolver.cache.capacity)


def report_outcome(outcome: Outcome) -> None:
  LOGGER.info(
      "source %s -> R%d, destination %s -> R%d",
      outcome.key.source,
      outcome.source_router,
      outcome.key.destination,
      outcome.destination_router,
  )
  if outcome.resolution == Resolution.SAME_ROUTER:
    LOGGER.info("source and destination are on the same router (R%d), no routing needed", outcome.source_router)
  elif outcome.resolution == Resolution.CACHED:
    LOGGER.info("history found: %s", outcome.path)
  elif outcome.resolution == Resolution.RESOLVED:
    LOGGER.info("path established: %s", outcome.path)
    if outcome.warning:
      LOGGER.warning("%s, route not saved", outcome.warning)
  else:
    LOGGER.warning("query abandoned: %s", outcome.warning)


def format_topology(topology: AdjacencyTopology) -> List[str]:
  """Render the adjacency matrix the way it is printed on the lab sheet."""
  ids = list(topology.routers())
  width = len(str(ids[-1]))
  lines = [" " * (width + 1) + " ".join(str(rid).rjust(width) for rid in ids)]
  for rid, row in zip(ids, topology.rows()):
    lines.append(str(rid).rjust(width) + " " + " ".join(str(cell).rjust(width) for cell in row))
  return lines


def prompt_networks(
    topology: AdjacencyTopology,
    max_networks: int,
    input_func: InputFunc = input,
) -> Dict[int, List[str]]:
  """
  Ask the operator for every router's network addresses.

  Counts are re-requested until they fall in ``[0, max_networks]`` and each
  address until it is a valid, not yet used dotted quad.
  """
  counts: Dict[int, int] = {}
  for router_id in topology.routers():
    while True:
      count = parse_hop(input_func(
          f"how many networks are joined to router {router_id} (max {max_networks}): "
      ))
      if 0 <= count <= max_networks:
        counts[router_id] = count
        break
      LOGGER.warning("network count must be between 0 and %d", max_networks)
  LOGGER.info("total networks defined: %d", sum(counts.values()))

  seen = set()
  networks: Dict[int, List[str]] = {}
  for router_id in topology.routers():
    addresses: List[str] = []
    for index in range(1, counts[router_id] + 1):
      while True:
        address = input_func(f"enter router {router_id} network address {index}: ").strip()
        if not is_valid_address(address):
          LOGGER.warning("invalid address format, please re-enter")
          continue
        if address in seen:
          LOGGER.warning("address %s already assigned, addresses must be unique", address)
          continue
        break
      seen.add(address)
      addresses.append(address)
    networks[router_id] = addresses
  LOGGER.info("address configuration loaded")
  return networks
