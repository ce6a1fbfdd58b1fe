import os
import tempfile
import unittest
from pathlib import Path

from route_lab.config import load_config, load_script, parse_config
from route_lab.errors import ConfigError, DuplicateAddressAssignment, InvalidAddressFormat
from route_lab.resolver import Resolution, ScriptedDriver

TOPOLOGY_YAML = """
limits:
  max_networks_per_router: 2
  max_route_history: 5
adjacency:
  - [1, 1, 0]
  - [1, 1, 1]
  - [0, 1, 1]
networks:
  1: [10.0.0.1]
  R2: [10.0.0.2, 10.0.1.2]
  "3": [10.0.0.3]
"""


class ConfigFileTest(unittest.TestCase):
  def setUp(self):
    self._tmp = tempfile.TemporaryDirectory()
    self.addCleanup(self._tmp.cleanup)
    self.dir = Path(self._tmp.name)

  def _write(self, name, text):
    path = self.dir / name
    path.write_text(text, encoding="utf-8")
    return path

  def test_load_topology_file(self):
    config = load_config(self._write("topo.yaml", TOPOLOGY_YAML))
    self.assertEqual(3, config.topology.router_count)
    self.assertEqual(2, config.max_networks_per_router)
    self.assertEqual(5, config.max_route_history)
    self.assertEqual(("10.0.0.2", "10.0.1.2"), config.networks[2])

    resolver = config.build_resolver()
    self.assertEqual(5, resolver.cache.capacity)
    outcome = resolver.resolve("10.0.0.1", "10.0.0.3", ScriptedDriver([2, 0]))
    self.assertEqual(Resolution.RESOLVED, outcome.resolution)
    self.assertEqual((1, 2, 3), outcome.path.hops)

  def test_missing_file(self):
    with self.assertRaises(FileNotFoundError):
      load_config(self.dir / "missing.yaml")

  def test_root_must_be_mapping(self):
    with self.assertRaises(ConfigError):
      load_config(self._write("list.yaml", "- 1\n- 2\n"))

  def test_empty_file_uses_reference_topology(self):
    config = load_config(self._write("empty.yaml", ""))
    self.assertEqual(4, config.topology.router_count)
    self.assertFalse(config.has_networks)

  def test_load_script(self):
    path = self._write(
        "queries.yaml",
        "queries:\n"
        "  - {source: 10.0.0.1, destination: 10.0.0.3, hops: [2, 0]}\n"
        "  - {source: 10.0.0.1, destination: 10.0.0.2, direct: true}\n",
    )
    queries = load_script(path)
    self.assertEqual(2, len(queries))
    self.assertEqual([2, 0], queries[0]["hops"])
    self.assertFalse(queries[0]["direct"])
    self.assertTrue(queries[1]["direct"])

  def test_script_requires_endpoints(self):
    path = self._write("bad.yaml", "queries:\n  - {source: 10.0.0.1}\n")
    with self.assertRaises(ConfigError):
      load_script(path)

  def test_malformed_yaml(self):
    with self.assertRaises(ConfigError):
      load_config(self._write("broken.yaml", "networks: [1: {\n"))

  def test_script_direct_must_be_bool(self):
    path = self._write(
        "quoted.yaml",
        'queries:\n  - {source: 10.0.0.1, destination: 10.0.0.4, direct: "false"}\n',
    )
    with self.assertRaises(ConfigError):
      load_script(path)


class ParseConfigTest(unittest.TestCase):
  def test_defaults(self):
    config = parse_config({"networks": {1: ["10.0.0.1"]}})
    self.assertEqual(4, config.topology.router_count)
    self.assertEqual(20, config.max_route_history)
    self.assertTrue(config.has_networks)

  def test_duplicate_address(self):
    with self.assertRaises(DuplicateAddressAssignment):
      parse_config({"networks": {1: ["10.0.0.1"], 2: ["10.0.0.1"]}})

  def test_bad_address(self):
    with self.assertRaises(InvalidAddressFormat):
      parse_config({"networks": {1: ["10.0.0.256"]}})

  def test_unknown_router(self):
    with self.assertRaises(ConfigError):
      parse_config({"networks": {7: ["10.0.0.7"]}})
    with self.assertRaises(ConfigError):
      parse_config({"networks": {"core": ["10.0.0.7"]}})

  def test_router_listed_twice(self):
    with self.assertRaises(ConfigError):
      parse_config({"networks": {1: ["10.0.0.1"], "R1": ["10.0.0.9"]}})

  def test_bad_sections(self):
    for data in (
        {"limits": [1]},
        {"limits": {"max_route_history": -1}},
        {"adjacency": "1101"},
        {"networks": ["10.0.0.1"]},
        {"networks": {1: "10.0.0.1"}},
    ):
      with self.assertRaises(ConfigError, msg=repr(data)):
        parse_config(data)

  def test_with_networks(self):
    config = parse_config({})
    updated = config.with_networks({1: ["10.0.0.1"], 3: ["10.0.0.3"]})
    self.assertEqual(3, updated.build_directory().resolve("10.0.0.3"))
    self.assertFalse(config.has_networks)


class SampleFileTest(unittest.TestCase):
  def test_sample_topology_loads(self):
    root = Path(__file__).resolve().parent.parent
    sample = root / "topo.sample.yaml"
    if not os.path.exists(sample):
      self.skipTest("sample topology not shipped")
    config = load_config(sample)
    self.assertEqual(1, config.build_directory().resolve("10.0.0.1"))


if __name__ == "__main__":
  unittest.main()
