"""
Script: send_ci/npm_checks.py
What: Runs the `test` job of the pipeline.
Doing: Installs locked npm dependencies, runs the linter, then runs the test suite.
Why: Stops a broken commit before any image is built or published.
Goal: Gate the artifact and release stages on a clean lint and test run.
"""

from __future__ import annotations

from send_ci.common import optional_env, run_cmd


NPM_STEPS: tuple[tuple[str, ...], ...] = (
    ("npm", "ci"),
    ("npm", "run", "lint"),
    ("npm", "test"),
)


def main() -> None:
    # CI_PROJECT_DIR is the checkout root on GitLab runners.
    project_dir = optional_env("CI_PROJECT_DIR") or None

    # Order matters: lint and tests need the installed node_modules.
    # run_cmd raises on the first failing step, which fails the job.
    for step in NPM_STEPS:
        print(f"Running: {' '.join(step)}")
        run_cmd(step, cwd=project_dir, capture_output=False)


if __name__ == "__main__":
    main()
