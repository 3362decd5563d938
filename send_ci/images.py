"""
Script: send_ci/images.py
What: Naming rules for the Send container image and its saved artifact.
Doing: Builds local names, artifact file names, and registry names from commit SHAs and ref names.
Why: Artifact and release jobs must agree on names without passing them around by hand.
Goal: Keep every image name deterministic and registry-compatible.
"""

from __future__ import annotations

import re

from send_ci.common import CiToolError


LOCAL_IMAGE_REPO = "send"
DEFAULT_REGISTRY_IMAGE = "registry.gitlab.com/timvisee/send"
MASTER_BRANCH = "master"
LATEST_TAG = "latest"
ARTIFACT_EXPIRE_IN = "1 week"

# Version tags look like `v1`, `v1.2`, `v1.2.3` (no suffixes like `-beta`).
VERSION_TAG_RE = re.compile(r"^v(\d+\.)*\d+$")
# Docker tag grammar: first char is a word char, then up to 127 of `[\w.-]`.
VALID_TAG_RE = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")

RELEASE_MASTER = "master"
RELEASE_VERSION = "version"


def validate_tag(tag: str) -> str:
    """Return `tag` unchanged when it is a valid image tag, else raise."""
    if not VALID_TAG_RE.match(tag):
        raise CiToolError(f"Invalid container image tag: {tag!r}")
    return tag


def is_version_tag(ref_name: str) -> bool:
    """True for release tags such as `v1.2.3` or `v10`."""
    return VERSION_TAG_RE.match(ref_name) is not None


def local_image_name(short_sha: str) -> str:
    """
    Name of the image built by the artifact job.

    Example: `send:git-1a2b3c4d`.
    """
    return f"{LOCAL_IMAGE_REPO}:{validate_tag(f'git-{short_sha}')}"


def artifact_file_name(short_sha: str) -> str:
    """File the artifact job saves the image into, e.g. `send:git-1a2b3c4d.tar`."""
    return f"{local_image_name(short_sha)}.tar"


def master_image_name(short_sha: str, registry_image: str = DEFAULT_REGISTRY_IMAGE) -> str:
    return f"{registry_image}:{validate_tag(f'{MASTER_BRANCH}-{short_sha}')}"


def version_image_name(tag_name: str, registry_image: str = DEFAULT_REGISTRY_IMAGE) -> str:
    return f"{registry_image}:{validate_tag(tag_name)}"


def latest_image_name(registry_image: str = DEFAULT_REGISTRY_IMAGE) -> str:
    return f"{registry_image}:{LATEST_TAG}"


def registry_host(registry_image: str) -> str:
    """
    Return the registry host part of an image repository.

    `registry.gitlab.com/timvisee/send` -> `registry.gitlab.com`.
    A first path component only counts as a host when it looks like one
    (contains `.` or `:`, or is `localhost`); otherwise Docker Hub is implied.
    """
    first, sep, _rest = registry_image.partition("/")
    if sep and ("." in first or ":" in first or first == "localhost"):
        return first
    return "docker.io"


def release_image_names(
    kind: str,
    *,
    short_sha: str,
    ref_name: str,
    registry_image: str = DEFAULT_REGISTRY_IMAGE,
) -> list[str]:
    """
    Return the ordered remote names one release publishes.

    - `master` releases publish only `master-<sha>`.
    - `version` releases publish `<tag>` and then `latest`.
    `latest` is never moved by a master build.
    """
    if kind == RELEASE_MASTER:
        return [master_image_name(short_sha, registry_image)]
    if kind == RELEASE_VERSION:
        if not is_version_tag(ref_name):
            raise CiToolError(f"Ref {ref_name!r} is not a version tag")
        return [
            version_image_name(ref_name, registry_image),
            latest_image_name(registry_image),
        ]
    raise CiToolError(f"Unknown release kind: {kind}")
