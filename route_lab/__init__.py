"""
Route resolution lab for a small, statically configured router network.

Main components:
- `AdjacencyTopology`: which routers share a direct link;
- `RouterDirectory`: which router owns a network address;
- `RouteCache`: history of resolved paths per (source, destination) pair;
- `PathBuilder`: hop-by-hop path construction for one query;
- `RouteResolver`: runs a query against all of the above;
- `CliShell`: interactive console used during the lab.
"""

from .builder import HopResult, HopStatus, PathBuilder, SessionState
from .cache import RouteCache
from .cli import CliShell
from .config import LabConfig, load_config
from .directory import RouterDirectory, is_valid_address
from .path import Path, RouteKey
from .resolver import Driver, Outcome, Query, Resolution, RouteResolver, ScriptedDriver
from .topology import AdjacencyTopology

__all__ = [
    "AdjacencyTopology",
    "CliShell",
    "Driver",
    "HopResult",
    "HopStatus",
    "LabConfig",
    "Outcome",
    "Path",
    "PathBuilder",
    "Query",
    "Resolution",
    "RouteCache",
    "RouteKey",
    "RouteResolver",
    "RouterDirectory",
    "ScriptedDriver",
    "SessionState",
    "is_valid_address",
    "load_config",
]
