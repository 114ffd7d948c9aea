import sys
import tempfile
import unittest
from pathlib import Path
from typing import Optional
from unittest.mock import patch

from setup_orchestrator.context import ExecutionContext
from setup_orchestrator.dependencies import DependencyStatus
from setup_orchestrator.lib.command import CmdResult
from setup_orchestrator.pipeline import LineStatus, run_setup_file, run_setup_lines
from setup_orchestrator.restriction_config import parse_restriction_config
from setup_orchestrator.setup_file import LineKind

RECORDING_SCRIPT = """
import pathlib, sys
log = pathlib.Path(sys.argv[0]).parent / "calls.log"
with log.open("a", encoding="utf-8") as f:
    f.write(pathlib.Path(sys.argv[0]).name + " " + " ".join(sys.argv[1:]) + "\\n")
sys.exit({code})
"""


class TestExecutionLoop(unittest.TestCase):
    def setUp(self) -> None:
        self._td = tempfile.TemporaryDirectory()
        self.root = Path(self._td.name).resolve()

    def tearDown(self) -> None:
        self._td.cleanup()

    def context(self, *, files=None, commands=None, platform: str = "linux", dry_run: bool = False):
        cfg = parse_restriction_config(
            {
                "platforms": {"Linux": "linux", "Windows_NT": "windows"},
                "files": {"*.py": {"interpreter": sys.executable}, **(files or {})},
                "commands": commands or {},
            }
        )
        return ExecutionContext(repo_root=self.root, platform=platform, config=cfg, dry_run=dry_run)

    def script(self, name: str, code: int = 0) -> Path:
        p = self.root / name
        p.parent.mkdir(parents=True, exist_ok=True)
        p.write_text(RECORDING_SCRIPT.format(code=code), encoding="utf-8")
        return p

    def calls(self, directory: Optional[Path] = None) -> list:
        log = (directory or self.root) / "calls.log"
        return log.read_text(encoding="utf-8").splitlines() if log.exists() else []

    def test_blank_and_comment_lines_invoke_nothing(self) -> None:
        (self.root / "tool.ps1").write_text("Write-Host hi\n", encoding="utf-8")
        ctx = self.context()

        with patch("setup_orchestrator.pipeline.run_cmd") as run_cmd, patch(
            "setup_orchestrator.pipeline.rejection_reason", return_value=None
        ) as reason:
            run_cmd.side_effect = lambda argv, **kw: CmdResult(argv=list(argv), returncode=0, stdout="", stderr="")
            result = run_setup_lines(["# note", "", "tool.ps1 --flag"], ctx)

        self.assertEqual(run_cmd.call_count, 1)
        argv = run_cmd.call_args.args[0]
        self.assertEqual(argv, [str(self.root / "tool.ps1"), "--flag"])
        self.assertEqual(reason.call_count, 1)

        statuses = [o.status for o in result.outcomes]
        self.assertEqual(statuses, [LineStatus.SKIPPED, LineStatus.SKIPPED, LineStatus.SUCCEEDED])
        self.assertEqual(result.admitted_lines, [3])

    def test_script_runs_with_configured_interpreter(self) -> None:
        self.script("scripts/hello.py")
        ctx = self.context()

        result = run_setup_lines(["scripts/hello.py  one   two"], ctx)

        self.assertIs(result.outcomes[0].status, LineStatus.SUCCEEDED)
        self.assertEqual(result.outcomes[0].exit_status, 0)
        self.assertEqual(self.calls(self.root / "scripts"), ["hello.py one two"])

    def test_rejected_line_never_runs(self) -> None:
        ctx = self.context(commands={"winget": {"platform": "windows", "version": False}})

        with patch("setup_orchestrator.pipeline.run_shell") as run_shell:
            with self.assertLogs("setup_orchestrator.pipeline", level="WARNING") as cm:
                result = run_setup_lines(["winget install Git.Git"], ctx)

        run_shell.assert_not_called()
        self.assertIs(result.outcomes[0].status, LineStatus.REJECTED)
        self.assertFalse(result.outcomes[0].admitted)
        self.assertTrue(any("requires platform windows" in m for m in cm.output))

    def test_failures_do_not_stop_the_run(self) -> None:
        self.script("fail.py", code=4)
        self.script("ok.py")
        ctx = self.context()

        result = run_setup_lines(["fail.py", "false", "missing.py", "ok.py after"], ctx)

        statuses = [o.status for o in result.outcomes]
        self.assertEqual(statuses, [LineStatus.FAILED, LineStatus.FAILED, LineStatus.ERROR, LineStatus.SUCCEEDED])
        self.assertEqual(result.outcomes[0].exit_status, 4)
        self.assertEqual(self.calls(), ["fail.py ", "ok.py after"])

    def test_missing_dependency_still_attempts_command(self) -> None:
        ctx = self.context(commands={"false": {"linux_dependency": "deps/absent.py"}})

        with self.assertLogs("setup_orchestrator", level="WARNING") as cm:
            result = run_setup_lines(["false", "true"], ctx)

        first, second = result.outcomes
        self.assertIs(first.dependency, DependencyStatus.MISSING)
        self.assertTrue(first.admitted)
        self.assertIs(first.status, LineStatus.FAILED)
        self.assertEqual(first.exit_status, 1)
        self.assertIs(second.status, LineStatus.SUCCEEDED)
        self.assertTrue(any("not found" in m for m in cm.output))

    def test_dependency_runs_once_for_many_lines(self) -> None:
        self.script("deps/setup_true.py")
        ctx = self.context(commands={"true": {"linux_dependency": "deps/setup_true.py"}})

        result = run_setup_lines(["true", "true again", "true and again"], ctx)

        self.assertEqual(self.calls(self.root / "deps"), ["setup_true.py "])
        self.assertEqual(
            [o.dependency for o in result.outcomes],
            [DependencyStatus.SATISFIED, DependencyStatus.CACHED, DependencyStatus.CACHED],
        )

    def test_failed_dependency_is_retried_by_later_lines(self) -> None:
        self.script("deps/broken.py", code=2)
        ctx = self.context(commands={"true": {"linux_dependency": "deps/broken.py"}})

        result = run_setup_lines(["true", "true"], ctx)

        self.assertEqual(len(self.calls(self.root / "deps")), 2)
        self.assertEqual([o.dependency for o in result.outcomes], [DependencyStatus.FAILED] * 2)
        self.assertEqual([o.status for o in result.outcomes], [LineStatus.SUCCEEDED] * 2)

    def test_admitted_order_follows_file_order(self) -> None:
        for name in ("a.py", "b.py", "c.py"):
            self.script(name)
        ctx = self.context(commands={"winget": {"platform": "windows"}})

        lines = ["c.py", "# skip", "winget install x", "a.py", "b.py"]
        result = run_setup_lines(lines, ctx)

        self.assertEqual(result.admitted_lines, [1, 4, 5])
        self.assertEqual(self.calls(), ["c.py ", "a.py ", "b.py "])

    def test_missing_exit_status_counts_as_success(self) -> None:
        ctx = self.context()
        with patch("setup_orchestrator.pipeline.run_shell") as run_shell:
            run_shell.return_value = CmdResult(argv=["tool"], returncode=None, stdout="", stderr="")
            result = run_setup_lines(["tool --go"], ctx)
        self.assertIs(result.outcomes[0].status, LineStatus.SUCCEEDED)
        self.assertIsNone(result.outcomes[0].exit_status)

    def test_dry_run_executes_nothing(self) -> None:
        self.script("hello.py")
        ctx = self.context(dry_run=True)

        result = run_setup_lines(["hello.py", "false"], ctx)

        self.assertEqual(self.calls(), [])
        self.assertEqual([o.status for o in result.outcomes], [LineStatus.SUCCEEDED] * 2)
        self.assertEqual(result.outcomes[0].message, "dry run")

    def test_unexpected_exception_is_isolated(self) -> None:
        ctx = self.context()
        with patch(
            "setup_orchestrator.pipeline.rejection_reason",
            side_effect=[RuntimeError("boom"), None],
        ):
            with self.assertLogs("setup_orchestrator.pipeline", level="ERROR"):
                result = run_setup_lines(["true", "true"], ctx)

        first, second = result.outcomes
        self.assertIs(first.status, LineStatus.ERROR)
        self.assertIs(first.kind, LineKind.COMMAND)
        self.assertEqual(first.message, "boom")
        self.assertIs(second.status, LineStatus.SUCCEEDED)

    def test_undecodable_line_is_isolated(self) -> None:
        marker = self.root / "after.txt"
        with self.assertLogs("setup_orchestrator.pipeline", level="ERROR"):
            result = run_setup_lines([b"echo \xff", f"touch {marker}".encode("utf-8")], self.context())

        first, second = result.outcomes
        self.assertIs(first.status, LineStatus.ERROR)
        self.assertIsNone(first.kind)
        self.assertIn("not valid UTF-8", first.message)
        self.assertIs(second.status, LineStatus.SUCCEEDED)
        self.assertTrue(marker.exists())

    def test_run_setup_file_and_counts(self) -> None:
        self.script("ok.py")
        setup = self.root / "setup.txt"
        setup.write_text("# header\n\nok.py\nfalse\n", encoding="utf-8")

        result = run_setup_file(setup, self.context())

        counts = result.counts()
        self.assertEqual(counts["skipped"], 2)
        self.assertEqual(counts["succeeded"], 1)
        self.assertEqual(counts["failed"], 1)
        self.assertEqual([o.line_number for o in result.outcomes], [1, 2, 3, 4])
        self.assertEqual(result.outcomes[3].to_dict()["status"], "failed")


if __name__ == "__main__":
    unittest.main()
