from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, runtime_checkable

from craft.core.result import Result
from craft.release.errors import ReleaseError

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class Artifact:
    """A build output known to a provider.

    Attributes:
        name: File name, also used as the uploaded asset name
        mime_type: Content type, None if unknown
        location: Provider-specific address (path, URL, object key)
    """

    name: str
    location: str
    mime_type: str | None = None


@dataclass(frozen=True, slots=True)
class LocalArtifact:
    artifact: Artifact
    path: Path

    @property
    def mime_type(self) -> str:
        return self.artifact.mime_type or DEFAULT_MIME_TYPE


@runtime_checkable
class ArtifactProvider(Protocol):
    """Source of the artifacts built for a revision."""

    def list_artifacts(self, revision: str) -> Result[list[Artifact], ReleaseError]:
        """List the artifacts built for ``revision`` (empty if none)."""
        ...

    def download_artifact(self, artifact: Artifact) -> Result[Path, ReleaseError]:
        """Materialize ``artifact`` to a local file and return its path."""
        ...

    def cleanup(self) -> None:
        """Remove the local copies made by ``download_artifact``."""
        ...
