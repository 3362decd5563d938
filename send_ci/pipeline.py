"""
Script: send_ci/pipeline.py
What: Declares the stages and jobs of the Send pipeline and when each job runs.
Doing: Models jobs as data, filters them for one ref, validates ordering, and renders `.gitlab-ci.yml`.
Why: Trigger rules and stage order live in one testable place instead of only in CI YAML.
Goal: Make "which jobs run for this ref" answerable from Python and keep the CI file in sync.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Pattern, Sequence

from send_ci.common import CiToolError
from send_ci.images import (
    ARTIFACT_EXPIRE_IN,
    DEFAULT_REGISTRY_IMAGE,
    LATEST_TAG,
    LOCAL_IMAGE_REPO,
    MASTER_BRANCH,
    VERSION_TAG_RE,
)


STAGES = ("test", "artifact", "release")

DEFAULT_IMAGE = "node:15-slim"
DOCKER_IMAGE = "docker:latest"
DOCKER_SERVICE = "docker:dind"
CLI_PREFIX = "python3 -m send_ci.cli"

# GitLab expands these at job start. The `IMG_*` job variables built from them
# name the artifact path and show up in the job log; the Python jobs compute
# the same names from `send_ci.images` and fail if a variable disagrees.
SHA_VAR = "$CI_COMMIT_SHORT_SHA"
LOCAL_IMAGE_TEMPLATE = f"{LOCAL_IMAGE_REPO}:git-{SHA_VAR}"
ARTIFACT_FILE_TEMPLATE = f"{LOCAL_IMAGE_TEMPLATE}.tar"

# Default before_script for jobs on the node image: build deps plus Chrome
# for the puppeteer browser tests.
NODE_BEFORE_SCRIPT = [
    "apt-get update",
    "apt-get install -y git python3 build-essential libxtst6",
    "apt-get install -y wget gnupg",
    "wget -q -O - https://dl-ssl.google.com/linux/linux_signing_key.pub | apt-key add -",
    "sh -c 'echo \"deb [arch=amd64] http://dl.google.com/linux/chrome/deb/ stable main\""
    " >> /etc/apt/sources.list.d/google.list'",
    "apt-get update",
    "apt-get install -y google-chrome-stable fonts-ipafont-gothic fonts-wqy-zenhei"
    " fonts-thai-tlwg fonts-kacst fonts-freefont-ttf libxss1 --no-install-recommends",
]
# The docker image is Alpine based and ships without Python.
DOCKER_BEFORE_SCRIPT = ["apk add --no-cache python3"]


@dataclass(frozen=True)
class OnlyRule:
    """
    Restricts a job to some refs.

    `branches` are exact branch names. `tag_pattern` is matched against tag
    names only, so a branch that happens to be called `v1.2` never releases.
    """

    branches: tuple[str, ...] = ()
    tag_pattern: Pattern[str] | None = None

    def matches(self, ref_name: str, *, is_tag: bool) -> bool:
        if is_tag:
            return self.tag_pattern is not None and self.tag_pattern.match(ref_name) is not None
        return ref_name in self.branches

    def to_gitlab(self) -> list[str]:
        refs = list(self.branches)
        if self.tag_pattern is not None:
            refs.append(f"/{self.tag_pattern.pattern}/")
        return refs


@dataclass(frozen=True)
class Job:
    name: str
    stage: str
    command: str
    image: str | None = None
    services: tuple[str, ...] = ()
    needs: tuple[str, ...] | None = None
    dependencies: tuple[str, ...] = ()
    only: OnlyRule | None = None
    variables: dict[str, str] = field(default_factory=dict)
    before_script: tuple[str, ...] | None = None
    artifact_paths: tuple[str, ...] = ()
    artifact_reports: dict[str, str] = field(default_factory=dict)


JOBS: tuple[Job, ...] = (
    Job(
        name="test",
        stage="test",
        command="test",
    ),
    Job(
        name="artifact-docker",
        stage="artifact",
        command="artifact-docker",
        image=DOCKER_IMAGE,
        services=(DOCKER_SERVICE,),
        needs=(),
        variables={
            "IMG_FILE": ARTIFACT_FILE_TEMPLATE,
            "IMG_NAME": LOCAL_IMAGE_TEMPLATE,
        },
        before_script=tuple(DOCKER_BEFORE_SCRIPT),
        artifact_paths=("$IMG_FILE",),
        artifact_reports={"dotenv": "build.env"},
    ),
    Job(
        name="release-docker-master",
        stage="release",
        command="release-docker-master",
        image=DOCKER_IMAGE,
        services=(DOCKER_SERVICE,),
        dependencies=("artifact-docker",),
        only=OnlyRule(branches=(MASTER_BRANCH,)),
        variables={
            "IMG_IMPORT_FILE": ARTIFACT_FILE_TEMPLATE,
            "IMG_IMPORT_NAME": LOCAL_IMAGE_TEMPLATE,
            "IMG_NAME": f"{DEFAULT_REGISTRY_IMAGE}:{MASTER_BRANCH}-{SHA_VAR}",
        },
        before_script=tuple(DOCKER_BEFORE_SCRIPT),
    ),
    Job(
        name="release-docker",
        stage="release",
        command="release-docker",
        image=DOCKER_IMAGE,
        services=(DOCKER_SERVICE,),
        dependencies=("artifact-docker",),
        only=OnlyRule(tag_pattern=VERSION_TAG_RE),
        variables={
            "IMG_IMPORT_FILE": ARTIFACT_FILE_TEMPLATE,
            "IMG_IMPORT_NAME": LOCAL_IMAGE_TEMPLATE,
            "IMG_NAME": f"{DEFAULT_REGISTRY_IMAGE}:$CI_COMMIT_REF_NAME",
            "IMG_NAME_LATEST": f"{DEFAULT_REGISTRY_IMAGE}:{LATEST_TAG}",
        },
        before_script=tuple(DOCKER_BEFORE_SCRIPT),
    ),
)


def job_runs_for_ref(job: Job, ref_name: str, *, is_tag: bool) -> bool:
    """A job without an `only` rule runs for every ref."""
    if job.only is None:
        return True
    return job.only.matches(ref_name, is_tag=is_tag)


def jobs_for_ref(
    ref_name: str,
    *,
    is_tag: bool,
    jobs: Sequence[Job] = JOBS,
) -> list[Job]:
    """Return the jobs triggered by one ref, in stage order."""
    selected = [job for job in jobs if job_runs_for_ref(job, ref_name, is_tag=is_tag)]
    # sorted() is stable, so jobs keep declaration order inside a stage.
    return sorted(selected, key=lambda job: STAGES.index(job.stage))


def validate_pipeline(jobs: Sequence[Job] = JOBS) -> None:
    """
    Check that the job list forms a runnable pipeline.

    Rules:
    - job names are unique
    - every stage is one of `STAGES`
    - `dependencies` and `needs` only name existing jobs from earlier stages
    """
    stage_of: dict[str, str] = {}
    for job in jobs:
        if job.name in stage_of:
            raise CiToolError(f"Duplicate job name: {job.name}")
        if job.stage not in STAGES:
            raise CiToolError(f"Job {job.name} uses unknown stage {job.stage}")
        stage_of[job.name] = job.stage

    for job in jobs:
        for upstream in (*job.dependencies, *(job.needs or ())):
            if upstream not in stage_of:
                raise CiToolError(f"Job {job.name} depends on unknown job {upstream}")
            if STAGES.index(stage_of[upstream]) >= STAGES.index(job.stage):
                raise CiToolError(
                    f"Job {job.name} depends on {upstream}, which is not in an earlier stage"
                )


def _render_job(job: Job) -> dict:
    # Key order follows the hand-written CI file so diffs stay readable.
    entry: dict = {"stage": job.stage}
    if job.image is not None:
        entry["image"] = job.image
    if job.needs is not None:
        entry["needs"] = list(job.needs)
    if job.dependencies:
        entry["dependencies"] = list(job.dependencies)
    if job.services:
        entry["services"] = list(job.services)
    if job.only is not None:
        entry["only"] = job.only.to_gitlab()
    if job.variables:
        entry["variables"] = dict(job.variables)
    if job.before_script is not None:
        entry["before_script"] = list(job.before_script)
    entry["script"] = [f"{CLI_PREFIX} {job.command}"]
    if job.artifact_paths or job.artifact_reports:
        artifacts: dict = {"name": job.name}
        if job.artifact_paths:
            artifacts["paths"] = list(job.artifact_paths)
        if job.artifact_reports:
            artifacts["reports"] = dict(job.artifact_reports)
        artifacts["expire_in"] = ARTIFACT_EXPIRE_IN
        entry["artifacts"] = artifacts
    return entry


def render_gitlab_ci(jobs: Sequence[Job] = JOBS) -> dict:
    """Build the `.gitlab-ci.yml` document for `jobs`."""
    validate_pipeline(jobs)
    document: dict = {
        "image": DEFAULT_IMAGE,
        "stages": list(STAGES),
        "before_script": list(NODE_BEFORE_SCRIPT),
    }
    for job in jobs:
        document[job.name] = _render_job(job)
    return document


def dump_gitlab_ci(jobs: Sequence[Job] = JOBS) -> str:
    # Imported here: the job images run the other commands on a bare python3
    # without PyYAML, and only `render-ci` needs it.
    import yaml

    return yaml.safe_dump(render_gitlab_ci(jobs), sort_keys=False, width=1000)
