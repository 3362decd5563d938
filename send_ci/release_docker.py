"""
Script: send_ci/release_docker.py
What: Runs the `release-docker` job of the pipeline.
Doing: Publishes the commit's image artifact as `<registry>:<tag>` and moves `<registry>:latest`.
Why: Version tags are the only refs allowed to change what `latest` points to.
Goal: Publish a versioned, pullable image for each release tag.
"""

from __future__ import annotations

from send_ci.common import CiToolError
from send_ci.images import RELEASE_VERSION, is_version_tag
from send_ci.release import ReleaseInputs, publish, read_release_inputs


def check_version_tag_ref(inputs: ReleaseInputs) -> None:
    """Refuse to publish unless the pipeline runs for a tag like `v1.2.3`."""
    if not inputs.is_tag:
        raise CiToolError(
            f"release-docker only runs for version tags, but {inputs.ref_name!r} is a branch"
        )
    if not is_version_tag(inputs.ref_name):
        raise CiToolError(
            f"Tag {inputs.ref_name!r} is not a version tag (expected vX[.Y[.Z...]])"
        )


def main() -> None:
    inputs = read_release_inputs()
    check_version_tag_ref(inputs)
    publish(RELEASE_VERSION, inputs)


if __name__ == "__main__":
    main()
