"""
Topology file loading.

The lab reads a single YAML document at startup::

    limits:
      max_networks_per_router: 4
      max_route_history: 20
    adjacency:
      - [1, 1, 0, 1]
      - [1, 1, 1, 0]
      - [0, 1, 1, 1]
      - [1, 0, 1, 1]
    networks:
      1: [10.0.0.1]
      4: [10.0.0.4]

``adjacency`` falls back to the reference four-router matrix and ``networks``
may be left out when the operator enters addresses interactively.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from .cache import RouteCache
from .directory import RouterDirectory
from .errors import ConfigError
from .resolver import RouteResolver
from .topology import AdjacencyTopology
from . import limits

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class LabConfig:
  topology: AdjacencyTopology
  networks: Dict[int, Tuple[str, ...]] = field(default_factory=dict)
  max_networks_per_router: int = limits.MAX_NETWORKS_PER_ROUTER
  max_route_history: int = limits.MAX_ROUTE_HISTORY

  @property
  def has_networks(self) -> bool:
    return any(self.networks.values())

  def with_networks(self, networks: Mapping[int, List[str]]) -> "LabConfig":
    return LabConfig(
        topology=self.topology,
        networks={rid: tuple(addrs) for rid, addrs in networks.items()},
        max_networks_per_router=self.max_networks_per_router,
        max_route_history=self.max_route_history,
    )

  def build_directory(self) -> RouterDirectory:
    return RouterDirectory(
        self.networks,
        self.topology.router_count,
        max_networks=self.max_networks_per_router,
    )

  def build_resolver(
      self,
      *,
      max_steps: Optional[int] = None,
      session_timeout: Optional[float] = None,
  ) -> RouteResolver:
    return RouteResolver(
        self.topology,
        self.build_directory(),
        RouteCache(self.max_route_history),
        max_steps=max_steps,
        session_timeout=session_timeout,
    )


def read_yaml(path: Path) -> Dict[str, Any]:
  if not path.exists():
    raise FileNotFoundError(f"config file not found: {path}")
  with path.open("r", encoding="utf-8") as stream:
    try:
      data = yaml.safe_load(stream)
    except yaml.YAMLError as exc:
      raise ConfigError(f"{path}: {exc}") from exc
  if data is None:
    return {}
  if not isinstance(data, dict):
    raise ConfigError(f"{path}: root node must be a mapping")
  return data


def load_config(path: Path) -> LabConfig:
  config = parse_config(read_yaml(path))
  LOGGER.info(
      "loaded %s: %d routers, %d addresses",
      path,
      config.topology.router_count,
      sum(len(addrs) for addrs in config.networks.values()),
  )
  return config


def parse_config(data: Mapping[str, Any]) -> LabConfig:
  limits_cfg = data.get("limits") or {}
  if not isinstance(limits_cfg, dict):
    raise ConfigError("'limits' must be a mapping")
  max_networks = _limit(limits_cfg, "max_networks_per_router", limits.MAX_NETWORKS_PER_ROUTER)
  max_history = _limit(limits_cfg, "max_route_history", limits.MAX_ROUTE_HISTORY)

  rows = data.get("adjacency")
  if rows is None:
    topology = AdjacencyTopology.reference()
  elif isinstance(rows, list):
    topology = AdjacencyTopology.from_rows(rows)
  else:
    raise ConfigError("'adjacency' must be a list of rows")

  networks_cfg = data.get("networks") or {}
  if not isinstance(networks_cfg, dict):
    raise ConfigError("'networks' must map router ids to address lists")
  networks: Dict[int, Tuple[str, ...]] = {}
  for raw_id, addresses in networks_cfg.items():
    router_id = _router_id(raw_id)
    if router_id in networks:
      raise ConfigError(f"R{router_id} configured more than once")
    if addresses is None:
      addresses = []
    if not isinstance(addresses, list):
      raise ConfigError(f"networks of R{router_id} must be a list")
    networks[router_id] = tuple(str(addr) for addr in addresses)

  config = LabConfig(
      topology=topology,
      networks=networks,
      max_networks_per_router=max_networks,
      max_route_history=max_history,
  )
  # Fail early on bad addresses, duplicates or unknown routers.
  config.build_directory()
  return config


def load_script(path: Path) -> List[Dict[str, Any]]:
  """
  Read a batch file: a list of ``{source, destination, direct, hops}`` items.
  """
  data = read_yaml(path)
  queries = data.get("queries")
  if not isinstance(queries, list):
    raise ConfigError(f"{path}: expected a 'queries' list")
  parsed: List[Dict[str, Any]] = []
  for index, item in enumerate(queries, start=1):
    if not isinstance(item, dict):
      raise ConfigError(f"query {index} must be a mapping")
    source = item.get("source")
    destination = item.get("destination")
    if not source or not destination:
      raise ConfigError(f"query {index} requires source and destination")
    hops = item.get("hops") or []
    if not isinstance(hops, list):
      raise ConfigError(f"query {index}: hops must be a list")
    direct = item.get("direct", False)
    if not isinstance(direct, bool):
      raise ConfigError(f"query {index}: direct must be true or false, got {direct!r}")
    parsed.append(
        {
            "source": str(source),
            "destination": str(destination),
            "direct": direct,
            "hops": list(hops),
        }
    )
  return parsed


def _router_id(raw: object) -> int:
  text = str(raw).strip()
  if text[:1] in ("R", "r"):
    text = text[1:]
  if not text.isdigit():
    raise ConfigError(f"invalid router id in networks: {raw!r}")
  return int(text)


def _limit(cfg: Mapping[str, Any], name: str, default: int) -> int:
  value = cfg.get(name, default)
  if isinstance(value, bool) or not isinstance(value, int) or value < 0:
    raise ConfigError(f"limits.{name} must be a non-negative integer")
  return value
