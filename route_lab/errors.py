"""
Exception hierarchy shared by the route resolution lab.

Everything raised by the core derives from :class:`RouteLabError` so front ends
can report a failed command and keep going.  Hop rejections inside a manual
session are *not* exceptions; see :class:`route_lab.builder.HopStatus`.
"""

from __future__ import annotations

from typing import Optional


class RouteLabError(ValueError):
  """Base class for every recoverable error reported by the lab."""


class ConfigError(RouteLabError):
  """Raised when the topology file violates the expected schema."""


class InvalidAddressFormat(RouteLabError):
  """Address is not a dotted-quad IPv4 string."""

  def __init__(self, address: str, which: Optional[str] = None) -> None:
    self.address = address
    self.which = which
    label = f"{which} address" if which else "address"
    super().__init__(f"invalid {label} format: {address!r}")


class AddressNotFound(RouteLabError):
  """Address is syntactically valid but not assigned to any router."""

  def __init__(self, which: str, address: str) -> None:
    self.which = which
    self.address = address
    super().__init__(f"{which} address {address} not found in any router's network list")


class InvalidRouterId(RouteLabError):
  """Router id outside ``[1, count]``."""

  def __init__(self, router_id: object, count: int) -> None:
    self.router_id = router_id
    self.count = count
    super().__init__(f"invalid router id {router_id!r}, must be between 1 and {count}")


class DuplicateAddressAssignment(RouteLabError):
  """Same address configured more than once."""

  def __init__(self, address: str, first: int, second: int) -> None:
    self.address = address
    self.first = first
    self.second = second
    super().__init__(f"address {address} assigned to R{first} and again to R{second}")


class CacheFull(RouteLabError):
  """Route history reached capacity; new keys are no longer stored."""

  def __init__(self, capacity: int) -> None:
    self.capacity = capacity
    super().__init__(f"route history full ({capacity} entries)")


class SessionBusy(RouteLabError):
  """Another session for the same route key did not finish in time."""


class SessionClosed(RouteLabError):
  """Operation attempted on a session that already reached a terminal state."""


class InvalidTransition(RouteLabError):
  """Session operation not allowed in the current state."""
