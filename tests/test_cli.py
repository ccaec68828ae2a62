import io
import os
import subprocess
import sys
import unittest
from contextlib import redirect_stderr, redirect_stdout
from unittest import mock
from pathlib import Path
from tempfile import TemporaryDirectory

REPO_ROOT = Path(__file__).resolve().parent.parent
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

try:
    from zfpe.main import cli, zfpe
except ModuleNotFoundError as exc:  # pragma: no cover - dependency missing
    zfpe = None
    _IMPORT_ERROR = exc
else:
    _IMPORT_ERROR = None


@unittest.skipIf(zfpe is None, f"dependency unavailable: {_IMPORT_ERROR}")
class CliTests(unittest.TestCase):
    """Smoke tests for `python -m zfpe`."""

    def setUp(self) -> None:
        self.tmpdir = TemporaryDirectory()
        self.repo_root = REPO_ROOT

    def tearDown(self) -> None:
        self.tmpdir.cleanup()

    def _run_cli(self, *args: str, stdin: str | None = None, **env_overrides: str) -> subprocess.CompletedProcess:
        env = os.environ.copy()
        for name in ("ZFPE_KEY", "ZFPE_TWEAK", "ZFPE_SELFTEST_RANGE", "ZFPE_PROGRESS_EVERY"):
            env.pop(name, None)
        env.update(env_overrides)
        env["PYTHONPATH"] = os.pathsep.join(
            filter(None, [str(self.repo_root), env.get("PYTHONPATH")])
        )
        return subprocess.run(
            [sys.executable, "-m", "zfpe", *args],
            cwd=self.tmpdir.name,
            input=stdin,
            capture_output=True,
            text=True,
            env=env,
        )

    def test_encrypt_decrypt(self):
        result = self._run_cli("encrypt", "53", "-n", "100", "-k", "Here is my secret key!", "-t", "tweak")
        self.assertEqual(result.returncode, 0, msg=result.stderr + result.stdout)
        self.assertEqual(result.stdout.strip(), "0")

        result = self._run_cli("decrypt", "0", "-n", "100", "-k", "Here is my secret key!", "-t", "tweak")
        self.assertEqual(result.returncode, 0, msg=result.stderr + result.stdout)
        self.assertEqual(result.stdout.strip(), "53")

    def test_key_and_tweak_from_environment(self):
        result = self._run_cli(
            "encrypt", "123456789", "--modulus", "1000000000",
            ZFPE_KEY="Here is my secret key!",
            ZFPE_TWEAK="tweak",
        )
        self.assertEqual(result.returncode, 0, msg=result.stderr + result.stdout)
        self.assertEqual(result.stdout.strip(), "583514435")

    def test_missing_key(self):
        result = self._run_cli("encrypt", "5", "-n", "100")
        self.assertEqual(result.returncode, 1)
        self.assertIn("Key required", result.stderr)

    def test_out_of_range_value(self):
        result = self._run_cli("encrypt", "100", "-n", "100", "-k", "k")
        self.assertEqual(result.returncode, 1)
        self.assertIn("outside [0, 100)", result.stderr)

    def test_oversized_modulus(self):
        result = self._run_cli("decrypt", "5", "-n", str(2 ** 128), "-k", "k")
        self.assertEqual(result.returncode, 1)
        self.assertIn("too large", result.stderr)

    def test_non_integer_value_is_usage_error(self):
        result = self._run_cli("encrypt", "abc", "-n", "100", "-k", "k")
        self.assertEqual(result.returncode, 2)

    def test_factor(self):
        result = self._run_cli("factor", "1000")
        self.assertEqual(result.returncode, 0, msg=result.stderr + result.stdout)
        self.assertEqual(result.stdout.strip(), "250 4")

    def test_selftest_quiet(self):
        result = self._run_cli("selftest", "--range", "200", "--quiet")
        self.assertEqual(result.returncode, 0, msg=result.stderr + result.stdout)
        self.assertEqual(result.stdout.strip(), "SUCCESS!")

    def test_selftest_range_from_environment(self):
        result = self._run_cli("selftest", ZFPE_SELFTEST_RANGE="300", ZFPE_PROGRESS_EVERY="100")
        self.assertEqual(result.returncode, 0, msg=result.stderr + result.stdout)
        lines = result.stdout.strip().splitlines()
        self.assertEqual(lines[:3], ["100/300 ok", "200/300 ok", "300/300 ok"])
        self.assertEqual(lines[-1], "SUCCESS!")

    def test_interactive(self):
        result = self._run_cli(
            "interactive", "-k", "Here is my secret key!", "-t", "tweak",
            stdin="100\n53\nexit\n",
        )
        self.assertEqual(result.returncode, 0, msg=result.stderr + result.stdout)
        self.assertIn("Plain: 53 Enc: 0 Dec: 53", result.stdout)

    def test_interactive_key_and_tweak_from_environment(self):
        result = self._run_cli(
            "interactive",
            stdin="100\n53\nexit\n",
            ZFPE_KEY="Here is my secret key!",
            ZFPE_TWEAK="tweak",
        )
        self.assertEqual(result.returncode, 0, msg=result.stderr + result.stdout)
        self.assertNotIn("Enter key:", result.stdout)
        self.assertNotIn("Enter tweak:", result.stdout)
        self.assertIn("Plain: 53 Enc: 0 Dec: 53", result.stdout)


@unittest.skipIf(zfpe is None, f"dependency unavailable: {_IMPORT_ERROR}")
class CliInProcessTests(unittest.TestCase):
    """cli() called directly, sharing class state with later calls."""

    def setUp(self) -> None:
        self._orig_silent = zfpe._SILENT_MODE
        self._env = mock.patch.dict(os.environ, {}, clear=False)
        self._env.start()
        for name in ("ZFPE_KEY", "ZFPE_TWEAK"):
            os.environ.pop(name, None)

    def tearDown(self) -> None:
        self._env.stop()
        zfpe._SILENT_MODE = self._orig_silent

    def test_quiet_selftest_restores_silent_flag(self):
        buffer = io.StringIO()
        with redirect_stdout(buffer):
            code = cli(["selftest", "--range", "10", "--quiet"])
        self.assertEqual(code, 0)
        self.assertEqual(buffer.getvalue().strip(), "SUCCESS!")
        self.assertFalse(zfpe._SILENT_MODE)

        progress = io.StringIO()
        self.assertEqual(zfpe.selftest(10, "k", "t", progress_every=5, stream=progress), "SUCCESS!")
        self.assertIn("5/10 ok", progress.getvalue())
        self.assertIn("10/10 ok", progress.getvalue())

    def test_quiet_selftest_restores_flag_when_start_fails(self):
        with redirect_stdout(io.StringIO()), redirect_stderr(io.StringIO()) as err:
            code = cli(["selftest", "--range", "0", "--quiet"])
        self.assertEqual(code, 1)
        self.assertIn("Self-test failed to start", err.getvalue())
        self.assertFalse(zfpe._SILENT_MODE)

    def test_interactive_uses_environment_secrets(self):
        os.environ["ZFPE_KEY"] = "Here is my secret key!"
        os.environ["ZFPE_TWEAK"] = "tweak"
        buffer = io.StringIO()
        with mock.patch("sys.stdin", io.StringIO("100\n53\nexit\n")), redirect_stdout(buffer):
            code = cli(["interactive"])
        self.assertEqual(code, 0)
        self.assertNotIn("Enter key:", buffer.getvalue())
        self.assertIn("Plain: 53 Enc: 0 Dec: 53", buffer.getvalue())


if __name__ == "__main__":
    unittest.main()
