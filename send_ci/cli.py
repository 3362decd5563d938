from __future__ import annotations

import argparse
import sys
from collections.abc import Callable, Mapping

from send_ci.common import CiToolError


def command_map() -> dict[str, Callable[[], None]]:
    """
    Map CLI command names to Python entry functions.

    Each value is a `main()` function from one pipeline job module. Command
    names match the job names in `.gitlab-ci.yml` where a job exists.
    """
    from send_ci.artifact_docker import main as artifact_docker
    from send_ci.npm_checks import main as npm_checks
    from send_ci.pipeline_plan import main as pipeline_plan
    from send_ci.release_docker import main as release_docker
    from send_ci.release_docker_master import main as release_docker_master
    from send_ci.render_ci import main as render_ci

    return {
        "test": npm_checks,
        "artifact-docker": artifact_docker,
        "release-docker-master": release_docker_master,
        "release-docker": release_docker,
        "pipeline-plan": pipeline_plan,
        "render-ci": render_ci,
    }


def build_parser(commands: Mapping[str, Callable[[], None]]) -> argparse.ArgumentParser:
    """Build argument parser with one positional command choice."""
    parser = argparse.ArgumentParser(
        prog="python3 -m send_ci.cli",
        description="Run one Send pipeline job.",
    )
    parser.add_argument("command", choices=sorted(commands.keys()))
    return parser


def run_command(command: str, commands: Mapping[str, Callable[[], None]]) -> None:
    """
    Run one registered command.

    `commands` is passed in to keep this function easy to test.
    """
    commands[command]()


def main(argv: list[str] | None = None) -> None:
    # Build command registry once so parser and dispatcher use the same keys.
    commands = command_map()
    parser = build_parser(commands)
    args = parser.parse_args(argv)

    try:
        run_command(args.command, commands)
    except CiToolError as exc:
        # Keep failures short and readable in job logs.
        print(str(exc), file=sys.stderr)
        raise SystemExit(1) from exc


if __name__ == "__main__":
    main()
