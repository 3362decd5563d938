"""
Script: send_ci/release_docker_master.py
What: Runs the `release-docker-master` job of the pipeline.
Doing: Publishes the commit's image artifact as `<registry>:master-<sha>`.
Why: Every master commit gets a pullable image without touching `latest`.
Goal: Make master builds available for testing straight from the registry.
"""

from __future__ import annotations

from send_ci.common import CiToolError
from send_ci.images import MASTER_BRANCH, RELEASE_MASTER
from send_ci.release import ReleaseInputs, publish, read_release_inputs


def check_master_ref(inputs: ReleaseInputs) -> None:
    """Refuse to publish from anything but the master branch."""
    if inputs.is_tag or inputs.ref_name != MASTER_BRANCH:
        raise CiToolError(
            f"release-docker-master only runs on the {MASTER_BRANCH} branch, "
            f"not on ref {inputs.ref_name!r}"
        )


def main() -> None:
    inputs = read_release_inputs()
    check_master_ref(inputs)
    publish(RELEASE_MASTER, inputs)


if __name__ == "__main__":
    main()
