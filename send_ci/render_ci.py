"""
Script: send_ci/render_ci.py
What: Writes `.gitlab-ci.yml` from the pipeline model.
Doing: Renders stages, jobs, trigger rules, and artifacts with PyYAML.
Why: The CI file must not drift from the rules the Python jobs enforce.
Goal: Regenerate the CI file with one command after changing `send_ci/pipeline.py`.
"""

from __future__ import annotations

from pathlib import Path

from send_ci.common import optional_env
from send_ci.pipeline import dump_gitlab_ci


HEADER = "# Generated by `python3 -m send_ci.cli render-ci`; edit send_ci/pipeline.py instead.\n"


def main() -> None:
    output_path = Path(optional_env("GITLAB_CI_FILE", ".gitlab-ci.yml"))
    output_path.write_text(HEADER + dump_gitlab_ci(), encoding="utf-8")
    print(f"Wrote {output_path}")


if __name__ == "__main__":
    main()
