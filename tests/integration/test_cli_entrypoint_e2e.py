from __future__ import annotations

import os
import subprocess
import sys
from pathlib import Path


def _env_with_pythonpath() -> dict[str, str]:
    env = dict(os.environ)
    env.pop("GCM_API_KEY", None)
    existing = env.get("PYTHONPATH", "")
    src_path = str(Path(__file__).resolve().parents[2] / "src")
    env["PYTHONPATH"] = f"{src_path}{os.pathsep}{existing}" if existing else src_path
    return env


def test_cli_module_reports_invalid_args_via_exit_code() -> None:
    completed = subprocess.run(
        [sys.executable, "-m", "gcmsender", "--retries", "many", "device-1"],
        capture_output=True,
        text=True,
        check=False,
        env=_env_with_pythonpath(),
    )

    assert completed.returncode == 2
    assert "expected an integer" in completed.stderr


def test_cli_module_reports_missing_api_key(tmp_path: Path) -> None:
    completed = subprocess.run(
        [
            sys.executable,
            "-m",
            "gcmsender",
            "--config",
            str(tmp_path / "missing.toml"),
            "--log-file",
            str(tmp_path / "gcmsender.log"),
            "device-1",
        ],
        capture_output=True,
        text=True,
        check=False,
        env=_env_with_pythonpath(),
    )

    assert completed.returncode == 3
    assert "API key" in completed.stderr
    assert (tmp_path / "gcmsender.log").exists()
