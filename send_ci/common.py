"""
Script: send_ci/common.py
What: Shared helper functions used by all `send_ci` modules.
Doing: Wraps env reads, command execution, docker CLI calls, and dotenv report writes.
Why: Avoids duplicated helper code.
Goal: Keep behavior consistent across all pipeline job modules.
"""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Mapping, Sequence


class CiToolError(RuntimeError):
    """Raised when a pipeline helper hits a known error condition."""


DEFAULT_DOTENV_REPORT = Path("build.env")


def require_env(name: str) -> str:
    """Return a required environment variable or raise a clear error."""
    value = os.environ.get(name)
    if value is None or value == "":
        raise CiToolError(f"Missing required environment variable: {name}")
    return value


def optional_env(name: str, default: str = "") -> str:
    """Return an environment variable with a fallback default."""
    return os.environ.get(name, default)


def run_cmd(
    args: Sequence[str],
    *,
    capture_output: bool = True,
    cwd: str | None = None,
    input_text: str | None = None,
) -> str:
    """
    Run a command and return stdout, raising a readable error on failure.

    `input_text` is written to the command's stdin. It is used for secrets
    (registry passwords), so it is never included in error messages.
    """
    try:
        result = subprocess.run(
            list(args),
            check=True,
            text=True,
            capture_output=capture_output,
            cwd=cwd,
            input=input_text,
        )
    except FileNotFoundError as exc:
        raise CiToolError(f"Command not found: {args[0]}") from exc
    except subprocess.CalledProcessError as exc:
        stderr = (exc.stderr or "").strip()
        stdout = (exc.stdout or "").strip()
        details = stderr or stdout or str(exc)
        raise CiToolError(f"Command failed: {' '.join(args)}\n{details}") from exc

    if not capture_output:
        return ""
    return result.stdout


def write_dotenv_report(values: Mapping[str, str], path: Path | None = None) -> Path:
    """
    Append job outputs to a GitLab dotenv report.

    GitLab reads `KEY=value` lines from the file listed under
    `artifacts:reports:dotenv` and exposes them as variables in later jobs.
    The path comes from `ARTIFACT_REPORT` when not given explicitly.
    """
    report_path = path or Path(optional_env("ARTIFACT_REPORT", str(DEFAULT_DOTENV_REPORT)))
    with report_path.open("a", encoding="utf-8") as handle:
        for key, value in values.items():
            if "\n" in value:
                raise CiToolError(f"Dotenv value for {key} must be a single line")
            handle.write(f"{key}={value}\n")
    return report_path


def check_job_variables(expected: Mapping[str, str]) -> None:
    """
    Compare CI job variables with the names a job computed itself.

    `.gitlab-ci.yml` declares `IMG_*` variables for artifact paths and the job
    log. A job whose variable disagrees with its own naming would publish under
    a name the pipeline file does not show, so that fails the job. Unset
    variables are skipped, which keeps local runs working.
    """
    for name, value in expected.items():
        declared = optional_env(name)
        if declared and declared != value:
            raise CiToolError(f"Job variable {name}={declared} does not match computed name {value}")


def docker_login(registry: str, user: str, password: str) -> None:
    """
    Log in to a container registry.

    The password goes through stdin (`--password-stdin`) so it does not show
    up in the process list or in job logs.
    """
    run_cmd(
        ["docker", "login", registry, "-u", user, "--password-stdin"],
        input_text=password,
    )


def docker_build(image: str, context: str = ".") -> None:
    """Build the Dockerfile in `context` and tag the result as `image`."""
    run_cmd(["docker", "build", "-t", image, context], capture_output=False)


def docker_image_save(path: str, image: str) -> None:
    """Serialize one local image into a tar file."""
    run_cmd(["docker", "image", "save", "-o", path, image], capture_output=False)


def docker_image_load(path: str) -> None:
    """Load images from a tar file produced by `docker image save`."""
    run_cmd(["docker", "image", "load", "-i", path], capture_output=False)


def docker_tag(source: str, target: str) -> None:
    """Add `target` as another name for the local image `source`."""
    run_cmd(["docker", "tag", source, target])


def docker_push(image: str) -> None:
    """Push one tagged image to its registry."""
    run_cmd(["docker", "push", image], capture_output=False)
