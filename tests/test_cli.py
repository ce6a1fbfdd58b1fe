import tempfile
import unittest
from pathlib import Path

from route_lab.cache import RouteCache
from route_lab.cli import CliShell, ConsoleDriver, format_topology, prompt_networks
from route_lab.directory import RouterDirectory
from route_lab.main import main
from route_lab.path import RouteKey
from route_lab.resolver import RouteResolver
from route_lab.topology import AdjacencyTopology


def _scripted_input(lines):
  remaining = iter(lines)

  def read(prompt):
    try:
      return next(remaining)
    except StopIteration:
      raise EOFError

  return read


def _resolver():
  return RouteResolver(
      AdjacencyTopology.reference(),
      RouterDirectory({1: ["10.0.0.1"], 2: ["10.0.0.2"], 3: ["10.0.0.3"], 4: ["10.0.0.4"]}, 4),
      RouteCache(),
  )


class CliShellTest(unittest.TestCase):
  def setUp(self):
    self.resolver = _resolver()

  def _shell(self, *lines):
    return CliShell(self.resolver, input_func=_scripted_input(lines))

  def test_route_direct(self):
    shell = self._shell("1")
    with self.assertLogs("route_lab.cli", level="INFO") as logs:
      shell.execute("route 10.0.0.1 10.0.0.4")
    self.assertEqual((1, 4), self.resolver.cache.lookup(RouteKey("10.0.0.1", "10.0.0.4")).hops)
    self.assertTrue(any("path established: R1 -> R4" in line for line in logs.output))

  def test_route_manual_with_bad_input(self):
    shell = self._shell("x", "3", "2", "0")
    with self.assertLogs("route_lab.cli", level="INFO") as logs:
      shell.execute("route 10.0.0.1 10.0.0.3")
    self.assertEqual((1, 2, 3), self.resolver.cache.lookup(RouteKey("10.0.0.1", "10.0.0.3")).hops)
    self.assertTrue(any("invalid router id" in line for line in logs.output))
    self.assertTrue(any("choose an intermediate router first" in line for line in logs.output))

  def test_route_abort(self):
    shell = self._shell("2", "q")
    with self.assertLogs("route_lab.cli", level="WARNING") as logs:
      shell.execute("route 10.0.0.1 10.0.0.3")
    self.assertEqual(0, len(self.resolver.cache))
    self.assertTrue(any("query abandoned" in line for line in logs.output))

  def test_route_errors_are_reported(self):
    shell = self._shell()
    with self.assertLogs("route_lab.cli", level="ERROR") as logs:
      shell.execute("route 10.0.0 10.0.0.3")
      shell.execute("route 10.0.0.9 10.0.0.3")
    self.assertIn("invalid source address format", logs.output[0])
    self.assertIn("not found", logs.output[1])

  def test_history_views(self):
    shell = self._shell("1")
    shell.execute("route 10.0.0.1 10.0.0.4")
    with self.assertLogs("route_lab.cli", level="INFO") as logs:
      shell.execute("show history legacy")
    self.assertTrue(any("R1 -> R4 (14)" in line for line in logs.output))

  def test_run_until_quit(self):
    shell = self._shell("route 10.0.0.1 10.0.0.4", "1", "", "show networks", "quit", "help")
    with self.assertLogs("route_lab.cli", level="INFO") as logs:
      shell.run()
    self.assertFalse(shell.running)
    self.assertFalse(any("commands:" in line for line in logs.output))
    self.assertTrue(any("R2: 10.0.0.2" in line for line in logs.output))

  def test_unknown_command(self):
    with self.assertLogs("route_lab.cli", level="WARNING"):
      self._shell().execute("traceroute 10.0.0.1")

  def test_eof_declines_direct(self):
    driver = ConsoleDriver(_scripted_input([]))
    self.assertFalse(driver.choose_direct(self.resolver.start("10.0.0.1", "10.0.0.4").builder))


class ConsoleHelpersTest(unittest.TestCase):
  def test_format_topology(self):
    lines = format_topology(AdjacencyTopology.reference())
    self.assertEqual("  1 2 3 4", lines[0])
    self.assertEqual("1 1 1 0 1", lines[1])
    self.assertEqual(5, len(lines))

  def test_prompt_networks(self):
    answers = _scripted_input([
        "9", "abc", "1",   # R1: rejected counts, then one network
        "0",               # R2
        "2",               # R3
        "1",               # R4
        "10.0.0",          # R1, invalid
        "10.0.0.1",
        "10.0.0.1",        # R3, already used by R1
        "10.0.0.3",
        "172.16.0.3",
        "10.0.0.4",
    ])
    with self.assertLogs("route_lab.cli", level="INFO"):
      networks = prompt_networks(AdjacencyTopology.reference(), 4, answers)
    self.assertEqual(
        {1: ["10.0.0.1"], 2: [], 3: ["10.0.0.3", "172.16.0.3"], 4: ["10.0.0.4"]},
        networks,
    )


class BatchModeTest(unittest.TestCase):
  def test_script_run(self):
    with tempfile.TemporaryDirectory() as tmp:
      topo = Path(tmp) / "topo.yaml"
      topo.write_text(
          "networks:\n  1: [10.0.0.1]\n  3: [10.0.0.3]\n  4: [10.0.0.4]\n",
          encoding="utf-8",
      )
      script = Path(tmp) / "queries.yaml"
      script.write_text(
          "queries:\n"
          "  - {source: 10.0.0.1, destination: 10.0.0.4, direct: true}\n"
          "  - {source: 10.0.0.1, destination: 10.0.0.3, hops: [2, 0]}\n"
          "  - {source: 10.0.0.1, destination: 10.0.0.4}\n",
          encoding="utf-8",
      )
      self.assertEqual(0, main(["--config", str(topo), "--script", str(script)]))

  def test_script_failure_exit_code(self):
    with tempfile.TemporaryDirectory() as tmp:
      topo = Path(tmp) / "topo.yaml"
      topo.write_text("networks:\n  1: [10.0.0.1]\n  3: [10.0.0.3]\n", encoding="utf-8")
      script = Path(tmp) / "queries.yaml"
      script.write_text(
          "queries:\n  - {source: 10.0.0.1, destination: 10.0.0.3, hops: [4]}\n",
          encoding="utf-8",
      )
      self.assertEqual(1, main(["--config", str(topo), "--script", str(script)]))

  def test_missing_config(self):
    self.assertEqual(2, main(["--config", "/nonexistent/topo.yaml", "--script", "q.yaml"]))

  def test_malformed_config(self):
    with tempfile.TemporaryDirectory() as tmp:
      topo = Path(tmp) / "topo.yaml"
      topo.write_text("networks: [1: {\n", encoding="utf-8")
      self.assertEqual(2, main(["--config", str(topo), "--script", "q.yaml"]))


if __name__ == "__main__":
  unittest.main()
