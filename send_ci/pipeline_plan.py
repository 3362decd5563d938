"""
Script: send_ci/pipeline_plan.py
What: Shows which pipeline jobs the current ref triggers.
Doing: Applies the job trigger rules to `CI_COMMIT_REF_NAME` and prints jobs stage by stage.
Why: Makes it obvious in job logs why a release did or did not happen.
Goal: Explain the pipeline shape for one ref without reading CI YAML.
"""

from __future__ import annotations

from send_ci.common import optional_env, require_env, write_dotenv_report
from send_ci.pipeline import STAGES, Job, jobs_for_ref, validate_pipeline


def format_plan(jobs: list[Job]) -> list[str]:
    lines = []
    for stage in STAGES:
        names = [job.name for job in jobs if job.stage == stage]
        lines.append(f"{stage}: {', '.join(names) if names else '(no jobs)'}")
    return lines


def main() -> None:
    ref_name = require_env("CI_COMMIT_REF_NAME")
    is_tag = bool(optional_env("CI_COMMIT_TAG"))

    validate_pipeline()
    jobs = jobs_for_ref(ref_name, is_tag=is_tag)

    ref_kind = "tag" if is_tag else "branch"
    print(f"Pipeline for {ref_kind} {ref_name}:")
    for line in format_plan(jobs):
        print(f"  {line}")

    write_dotenv_report({"PIPELINE_JOBS": ",".join(job.name for job in jobs)})


if __name__ == "__main__":
    main()
