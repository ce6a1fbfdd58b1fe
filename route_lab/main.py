#!/usr/bin/env python3
"""
Entry point of the route resolution lab.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from .cli import CliShell, format_topology, prompt_networks, report_outcome
from .config import LabConfig, load_config, load_script
from .errors import RouteLabError
from .resolver import RouteResolver, ScriptedDriver
from . import limits

LOGGER = logging.getLogger("route_lab")


def parse_args(argv: List[str]) -> argparse.Namespace:
  parser = argparse.ArgumentParser(
      description="Resolve paths between router networks from history or hop by hop.",
  )
  parser.add_argument("--config", default="topo.sample.yaml", help="Topology definition file (YAML)")
  parser.add_argument("--log-level", default="info", choices=["trace", "debug", "info", "warning", "error"])
  parser.add_argument("--script", help="Run the queries listed in this YAML file instead of prompting")
  parser.add_argument(
      "--max-steps",
      type=int,
      default=None,
      help="Abandon a manual session after this many proposed hops",
  )
  return parser.parse_args(argv)


def setup_logging(level_name: str) -> None:
  logging.addLevelName(limits.TRACE_LEVEL, "TRACE")
  level = logging.getLevelName(level_name.upper())
  if isinstance(level, str):
    level = logging.INFO

  logging.basicConfig(
      level=level,
      format="%(asctime)s %(levelname)-5s [%(threadName)s] %(name)s: %(message)s",
  )


def run_script(resolver: RouteResolver, path: Path) -> int:
  """
  Replay every query of a batch file.  Returns the number of failed queries.
  """
  failures = 0
  for number, item in enumerate(load_script(path), start=1):
    LOGGER.info("--- routing query %d ---", number)
    driver = ScriptedDriver(item["hops"], direct=item["direct"])
    try:
      outcome = resolver.resolve(item["source"], item["destination"], driver)
    except RouteLabError as exc:
      LOGGER.error("query %d failed: %s", number, exc)
      failures += 1
      continue
    for result in driver.results:
      if result.status.rejected:
        LOGGER.warning("%s", result.message)
    report_outcome(outcome)
    if outcome.path is None:
      failures += 1
  return failures


def build_config(args: argparse.Namespace) -> LabConfig:
  config = load_config(Path(args.config))
  if not config.has_networks:
    if args.script:
      raise RouteLabError(f"{args.config} defines no networks, cannot run a script")
    networks = prompt_networks(config.topology, config.max_networks_per_router)
    config = config.with_networks(networks)
  return config


def main(argv: Optional[List[str]] = None) -> int:
  args = parse_args(sys.argv[1:] if argv is None else argv)
  setup_logging(args.log_level)

  try:
    config = build_config(args)
    resolver = config.build_resolver(max_steps=args.max_steps)
  except (OSError, RouteLabError) as exc:
    LOGGER.error("%s", exc)
    return 2
  except (KeyboardInterrupt, EOFError):
    LOGGER.warning("setup interrupted")
    return 1

  LOGGER.info("routers are connected like this (1 = direct link):")
  for line in format_topology(config.topology):
    LOGGER.info("%s", line)

  if args.script:
    try:
      failures = run_script(resolver, Path(args.script))
    except (OSError, RouteLabError) as exc:
      LOGGER.error("%s", exc)
      return 2
    return 1 if failures else 0

  shell = CliShell(resolver)
  try:
    shell.run()
  except KeyboardInterrupt:
    LOGGER.warning("interrupt received, shutting down")
  finally:
    shell.stop()
  return 0


if __name__ == "__main__":
  sys.exit(main())
