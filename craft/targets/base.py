"""Distribution target abstraction.

A target is one place a release gets published to. Concrete targets supply
the primitive steps (changelog, draft, upload, finalize); ``BaseTarget.publish``
composes them:

    changelog -> list artifacts -> download all (parallel)
              -> create draft -> upload all (parallel) -> publish draft

Every download finishes before the draft exists, and every upload finishes
(successfully or not) before the draft is published.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import ClassVar, TypeVar

from craft.artifacts.base import Artifact, ArtifactProvider, LocalArtifact
from craft.core.config import ProjectConfig, TargetConfig
from craft.core.context import ExecutionContext
from craft.core.result import Err, Ok, Result
from craft.release.changelog import Changeset
from craft.release.errors import ReleaseError

__all__ = ["BaseTarget", "DraftRelease", "MAX_PARALLEL_TRANSFERS", "run_parallel"]

MAX_PARALLEL_TRANSFERS = 5

T = TypeVar("T")
R = TypeVar("R")


@dataclass(frozen=True, slots=True)
class DraftRelease:
    """A release container not yet visible to users.

    Attributes:
        id: Remote identifier (0 for a simulated draft)
        tag_name: Git tag the release points at
        upload_url: Endpoint assets are sent to
    """

    id: int
    tag_name: str
    upload_url: str


def run_parallel(
    items: Sequence[T],
    fn: Callable[[T], Result[R, ReleaseError]],
    *,
    max_workers: int = MAX_PARALLEL_TRANSFERS,
) -> Result[list[R], ReleaseError]:
    """Apply ``fn`` to every item concurrently and join.

    All items run to completion even if some fail; the first failure in item
    order is returned. Successful results keep the order of ``items``.
    """
    if not items:
        return Ok([])
    with ThreadPoolExecutor(max_workers=min(max_workers, len(items))) as pool:
        results = list(pool.map(fn, items))

    values: list[R] = []
    for result in results:
        if isinstance(result, Err):
            return result
        values.append(result.value)
    return Ok(values)


class BaseTarget(ABC):
    """Base class for publishing backends.

    Subclasses set ``name`` and implement the abstract primitives. They are
    constructed from one ``[[targets]]`` entry plus the shared project config.
    """

    name: ClassVar[str]

    def __init__(
        self,
        *,
        config: TargetConfig,
        project: ProjectConfig,
        artifact_provider: ArtifactProvider,
        ctx: ExecutionContext,
    ) -> None:
        self.config = config
        self.project = project
        self.artifact_provider = artifact_provider
        self.ctx = ctx

    @abstractmethod
    def fetch_changelog(self, version: str) -> Changeset:
        """Best-effort changeset for ``version``; never fails."""

    @abstractmethod
    def create_draft_release(
        self, version: str, revision: str, changeset: Changeset
    ) -> Result[DraftRelease, ReleaseError]: ...

    @abstractmethod
    def upload_asset(
        self, release: DraftRelease, path: Path, mime_type: str | None = None
    ) -> Result[str | None, ReleaseError]:
        """Upload one file; returns the asset location (None under dry-run)."""

    @abstractmethod
    def publish_release(self, release: DraftRelease) -> Result[None, ReleaseError]:
        """Flip the draft to published."""

    def list_artifacts(self, revision: str) -> Result[list[Artifact], ReleaseError]:
        result = self.artifact_provider.list_artifacts(revision)
        if isinstance(result, Ok):
            self.ctx.debug(f"Found {len(result.value)} artifacts for {revision}")
        return result

    def download_artifacts(self, artifacts: Sequence[Artifact]) -> Result[list[LocalArtifact], ReleaseError]:
        def download(artifact: Artifact) -> Result[LocalArtifact, ReleaseError]:
            path = self.artifact_provider.download_artifact(artifact)
            if isinstance(path, Err):
                return path
            return Ok(LocalArtifact(artifact=artifact, path=path.value))

        return run_parallel(artifacts, download)

    def upload_assets(
        self, release: DraftRelease, local: Sequence[LocalArtifact]
    ) -> Result[list[str | None], ReleaseError]:
        return run_parallel(local, lambda a: self.upload_asset(release, a.path, a.mime_type))

    def publish(self, version: str, revision: str) -> Result[DraftRelease, ReleaseError]:
        """Publish ``version`` built from ``revision`` to this target."""
        self.ctx.console.header(f"Publishing to {self.name}")
        changeset = self.fetch_changelog(version)

        artifacts = self.list_artifacts(revision)
        if isinstance(artifacts, Err):
            return artifacts
        if not artifacts.value:
            self.ctx.console.warning(f"No artifacts found for revision {revision}")

        local = self.download_artifacts(artifacts.value)
        if isinstance(local, Err):
            return local

        draft = self.create_draft_release(version, revision, changeset)
        if isinstance(draft, Err):
            return draft

        uploaded = self.upload_assets(draft.value, local.value)
        if isinstance(uploaded, Err):
            return uploaded

        published = self.publish_release(draft.value)
        if isinstance(published, Err):
            return published
        return Ok(draft.value)
