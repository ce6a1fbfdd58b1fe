"""
Address to router lookup for the lab network.

Addresses are matched as exact strings.  There is no prefix or subnet logic:
``10.0.0.1`` and ``10.0.0.0/24`` are unrelated keys as far as the directory is
concerned.
"""

from __future__ import annotations

import ipaddress
import logging
from typing import Dict, Iterable, List, Mapping, Optional, Tuple

from .errors import ConfigError, DuplicateAddressAssignment, InvalidAddressFormat
from . import limits

LOGGER = logging.getLogger(__name__)


def is_valid_address(text: object) -> bool:
  """
  Return ``True`` for a dotted-quad IPv4 address such as ``192.168.1.1``.

  Every octet must be plain decimal digits in the range 0-255.  Signs,
  whitespace, leading zeros and CIDR suffixes are rejected.
  """
  if not isinstance(text, str) or not text or len(text) > limits.MAX_ADDRESS_LEN:
    return False
  octets = text.split(".")
  if len(octets) != 4 or not all(octet.isascii() and octet.isdigit() for octet in octets):
    return False
  if any(len(octet) > 1 and octet[0] == "0" for octet in octets):
    return False
  try:
    ipaddress.IPv4Address(text)
  except ValueError:
    return False
  return True


class RouterDirectory:
  """
  Read-only mapping from configured address to owning router id.
  """

  def __init__(
      self,
      networks: Mapping[int, Iterable[str]],
      router_count: int,
      *,
      max_networks: int = limits.MAX_NETWORKS_PER_ROUTER,
  ) -> None:
    self.router_count = router_count
    self.max_networks = max_networks
    self._owner: Dict[str, int] = {}
    self._by_router: Dict[int, Tuple[str, ...]] = {}

    for router_id in sorted(networks):
      if isinstance(router_id, bool) or not isinstance(router_id, int) or not 1 <= router_id <= router_count:
        raise ConfigError(f"networks refer to unknown router {router_id!r}")
      addresses = list(networks[router_id] or [])
      if len(addresses) > max_networks:
        raise ConfigError(
            f"R{router_id} has {len(addresses)} networks, at most {max_networks} allowed"
        )
      for address in addresses:
        self._assign(router_id, address)
      self._by_router[router_id] = tuple(addresses)
      LOGGER.debug("R%d networks: %s", router_id, addresses)

  def _assign(self, router_id: int, address: str) -> None:
    if not is_valid_address(address):
      raise InvalidAddressFormat(str(address), which=f"R{router_id}")
    owner = self._owner.get(address)
    if owner is not None:
      raise DuplicateAddressAssignment(address, owner, router_id)
    self._owner[address] = router_id

  def resolve(self, address: str) -> Optional[int]:
    return self._owner.get(address)

  def addresses(self, router_id: int) -> Tuple[str, ...]:
    return self._by_router.get(router_id, ())

  def snapshot(self) -> Dict[int, List[str]]:
    """
    Return ``{router_id: [addresses]}`` for every router, including empty ones.
    """
    return {rid: list(self.addresses(rid)) for rid in range(1, self.router_count + 1)}

  def __len__(self) -> int:
    return len(self._owner)

  def __contains__(self, address: object) -> bool:
    return address in self._owner
