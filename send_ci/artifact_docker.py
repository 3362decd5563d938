"""
Script: send_ci/artifact_docker.py
What: Runs the `artifact-docker` job of the pipeline.
Doing: Builds the Send image as `send:git-<sha>` and saves it to `send:git-<sha>.tar`.
Why: Release jobs publish exactly the image that was built here instead of rebuilding it.
Goal: Produce one image tar artifact per commit for the release stage.
"""

from __future__ import annotations

from send_ci.common import (
    check_job_variables,
    docker_build,
    docker_image_save,
    optional_env,
    require_env,
    write_dotenv_report,
)
from send_ci.images import ARTIFACT_EXPIRE_IN, artifact_file_name, local_image_name


def build_artifact_names(short_sha: str) -> dict[str, str]:
    """
    Return the artifact job's naming variables.

    Keys match the CI variables of the job:
    - `IMG_NAME`: local image name, e.g. `send:git-1a2b3c4d`
    - `IMG_FILE`: saved tar file, e.g. `send:git-1a2b3c4d.tar`
    """
    return {
        "IMG_NAME": local_image_name(short_sha),
        "IMG_FILE": artifact_file_name(short_sha),
    }


def main() -> None:
    # GitLab sets this to the first 8 characters of the commit SHA.
    short_sha = require_env("CI_COMMIT_SHORT_SHA")
    build_context = optional_env("DOCKER_BUILD_CONTEXT", ".")
    names = build_artifact_names(short_sha)
    check_job_variables(names)

    docker_build(names["IMG_NAME"], build_context)
    docker_image_save(names["IMG_FILE"], names["IMG_NAME"])

    # Report keys differ from the IMG_* job variables so they never shadow them in release jobs.
    report_path = write_dotenv_report(
        {
            "SEND_ARTIFACT_NAME": names["IMG_NAME"],
            "SEND_ARTIFACT_FILE": names["IMG_FILE"],
        }
    )
    print(f"Saved image {names['IMG_NAME']} to {names['IMG_FILE']}")
    print(f"Artifact kept for {ARTIFACT_EXPIRE_IN}; names written to {report_path}")


if __name__ == "__main__":
    main()
