"""Artifact providers: where release build outputs come from."""

from craft.artifacts.base import Artifact, ArtifactProvider, LocalArtifact
from craft.artifacts.local import FilesystemArtifactProvider

__all__ = ["Artifact", "ArtifactProvider", "FilesystemArtifactProvider", "LocalArtifact"]
