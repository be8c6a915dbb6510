"""Artifacts stored on the local filesystem, one directory per revision.

    <root>/<revision>/app.zip
    <root>/<revision>/app.sig
"""

from __future__ import annotations

import mimetypes
import shutil
import tempfile
from pathlib import Path

from craft.artifacts.base import Artifact
from craft.core.result import Err, Ok, Result
from craft.release.errors import ReleaseError


class FilesystemArtifactProvider:
    """Copy artifacts out of ``<root>/<revision>/`` into ``download_dir``.

    Without an explicit ``download_dir`` a temporary directory is created,
    and ``cleanup()`` removes it whole. A caller-supplied directory is kept
    and only the copied files are removed.
    """

    def __init__(self, root: Path, download_dir: Path | None = None) -> None:
        self.root = root
        self.owns_download_dir = download_dir is None
        self.download_dir = download_dir or Path(tempfile.mkdtemp(prefix="craft-"))
        self.downloaded: list[Path] = []

    def list_artifacts(self, revision: str) -> Result[list[Artifact], ReleaseError]:
        base = self.root / revision
        if not base.is_dir():
            return Ok([])
        try:
            files = sorted(p for p in base.iterdir() if p.is_file())
        except OSError as e:
            return Err(
                ReleaseError(
                    kind="artifact_failed",
                    message=f"cannot list artifacts for {revision}",
                    hint=str(e),
                )
            )
        return Ok(
            [
                Artifact(name=p.name, location=str(p), mime_type=mimetypes.guess_type(p.name)[0])
                for p in files
            ]
        )

    def download_artifact(self, artifact: Artifact) -> Result[Path, ReleaseError]:
        dest = self.download_dir / artifact.name
        try:
            dest.parent.mkdir(parents=True, exist_ok=True)
            shutil.copyfile(artifact.location, dest)
        except OSError as e:
            return Err(
                ReleaseError(
                    kind="artifact_failed",
                    message=f"cannot download artifact {artifact.name}",
                    hint=str(e),
                )
            )
        self.downloaded.append(dest)
        return Ok(dest)

    def cleanup(self) -> None:
        if self.owns_download_dir:
            shutil.rmtree(self.download_dir)
        else:
            for path in self.downloaded:
                path.unlink(missing_ok=True)
        self.downloaded.clear()
