"""
Script: send_ci/release.py
What: Shared release flow for the `release-docker*` jobs.
Doing: Reads release inputs, checks the image artifact, then runs login, load, tag, and push.
Why: Master and version releases differ only in which remote names they publish.
Goal: Keep both release jobs on one tested publish path.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from send_ci.common import (
    CiToolError,
    check_job_variables,
    docker_image_load,
    docker_login,
    docker_push,
    docker_tag,
    optional_env,
    require_env,
)
from send_ci.images import (
    DEFAULT_REGISTRY_IMAGE,
    RELEASE_VERSION,
    artifact_file_name,
    local_image_name,
    registry_host,
    release_image_names,
)


@dataclass(frozen=True)
class ReleaseInputs:
    short_sha: str
    ref_name: str
    is_tag: bool
    registry_image: str
    docker_user: str
    docker_pass: str


def read_release_inputs() -> ReleaseInputs:
    # CI_COMMIT_TAG is only set for tag pipelines, so it tells tags from branches.
    return ReleaseInputs(
        short_sha=require_env("CI_COMMIT_SHORT_SHA"),
        ref_name=require_env("CI_COMMIT_REF_NAME"),
        is_tag=bool(optional_env("CI_COMMIT_TAG")),
        registry_image=optional_env("SEND_REGISTRY_IMAGE", DEFAULT_REGISTRY_IMAGE),
        docker_user=require_env("DOCKER_USER"),
        docker_pass=require_env("DOCKER_PASS"),
    )


def plan_release(kind: str, inputs: ReleaseInputs) -> tuple[str, str, list[str]]:
    """
    Return `(import_file, import_name, remote_names)` for one release.

    `import_file` and `import_name` are the artifact job's outputs for the
    same commit; `remote_names` are pushed in order.
    """
    import_file = artifact_file_name(inputs.short_sha)
    import_name = local_image_name(inputs.short_sha)
    remote_names = release_image_names(
        kind,
        short_sha=inputs.short_sha,
        ref_name=inputs.ref_name,
        registry_image=inputs.registry_image,
    )
    return import_file, import_name, remote_names


def release_job_variables(
    kind: str, import_file: str, import_name: str, remote_names: list[str]
) -> dict[str, str]:
    """Map the release job's `IMG_*` CI variables to the planned names."""
    variables = {
        "IMG_IMPORT_FILE": import_file,
        "IMG_IMPORT_NAME": import_name,
        "IMG_NAME": remote_names[0],
    }
    if kind == RELEASE_VERSION:
        variables["IMG_NAME_LATEST"] = remote_names[1]
    return variables


def pull_instructions(remote_names: list[str]) -> list[str]:
    """Log lines telling users how to fetch the published image."""
    lines = ["Docker image artifact published, available as:"]
    # Most general name first, matching how the version release announces `latest`.
    for name in reversed(remote_names):
        lines.append(f"  docker pull {name}")
    return lines


def publish(kind: str, inputs: ReleaseInputs, *, workdir: Path = Path(".")) -> list[str]:
    import_file, import_name, remote_names = plan_release(kind, inputs)
    check_job_variables(release_job_variables(kind, import_file, import_name, remote_names))

    # The artifact job's tar comes in through job dependencies; a missing file
    # means the artifact expired or the artifact job did not run.
    artifact_path = workdir / import_file
    if not artifact_path.exists():
        raise CiToolError(f"Image artifact not found: {artifact_path}")

    docker_login(registry_host(inputs.registry_image), inputs.docker_user, inputs.docker_pass)

    # Load the saved image, then give it every remote name before pushing.
    docker_image_load(str(artifact_path))
    for remote_name in remote_names:
        docker_tag(import_name, remote_name)
    for remote_name in remote_names:
        docker_push(remote_name)

    for line in pull_instructions(remote_names):
        print(line)
    return remote_names
