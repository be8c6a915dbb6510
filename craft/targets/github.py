"""GitHub Releases target.

Publishes a version as a GitHub release: a draft is created on the tag,
every artifact is attached as a release asset, then the draft is made
public.

Asset uploads recover from one specific failure. When an earlier upload was
interrupted, GitHub may keep a half-finished asset under the same name and
refuse the new upload with 422 ``ReleaseAsset/already_exists/name``. Since an
asset is identified by its name within the release, deleting the leftover
and uploading again is safe. This is attempted at most ``UPLOAD_ATTEMPTS``
times in total; every other API error is returned untouched.
"""

from __future__ import annotations

from pathlib import Path

from craft.artifacts.base import DEFAULT_MIME_TYPE, ArtifactProvider
from craft.core.config import ProjectConfig, TargetConfig
from craft.core.context import ExecutionContext
from craft.core.result import Err, Ok, Result
from craft.core.structured import StrDict, get_int, get_str
from craft.github.client import ASSETS_PER_PAGE, GitHubApiError, GitHubClient
from craft.release.changelog import Changeset, default_changeset, find_changeset
from craft.release.errors import ReleaseError
from craft.release.version import is_preview_release, version_to_tag
from craft.targets.base import BaseTarget, DraftRelease

UPLOAD_ATTEMPTS = 3


def _api_failed(message: str, error: GitHubApiError) -> Err[ReleaseError]:
    return Err(ReleaseError(kind="remote_api_failed", message=message, hint=str(error)))


class GitHubTarget(BaseTarget):
    name = "github"

    def __init__(
        self,
        *,
        config: TargetConfig,
        project: ProjectConfig,
        artifact_provider: ArtifactProvider,
        ctx: ExecutionContext,
        client: GitHubClient,
    ) -> None:
        super().__init__(
            config=config, project=project, artifact_provider=artifact_provider, ctx=ctx
        )
        owner = config.owner or (project.github.owner if project.github else None)
        repo = config.repo or (project.github.repo if project.github else None)
        if not owner or not repo:
            raise ValueError("github target requires [github] owner and repo")
        self.owner = owner
        self.repo = repo
        self.client = client

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"

    def fetch_changelog(self, version: str) -> Changeset:
        if self.project.changelog_policy == "none":
            # no changelog: the release is named after its tag
            return Changeset(title=version_to_tag(version, self.config.tag_prefix), body="")

        path = self.ctx.repo_root / self.project.changelog
        try:
            text = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            self.ctx.console.error(f"Cannot read changelog, moving on without one: {e}")
            return default_changeset(version)

        changes = find_changeset(text, version) or default_changeset(version)
        self.ctx.debug(f"Changes extracted from changelog: {changes.title}")
        return changes

    def create_draft_release(
        self, version: str, revision: str, changeset: Changeset
    ) -> Result[DraftRelease, ReleaseError]:
        tag = version_to_tag(version, self.config.tag_prefix)
        self.ctx.console.info(f'Git tag: "{tag}"')
        if self.ctx.dry_run:
            self.ctx.skip("Not creating the draft release")
            return Ok(DraftRelease(id=0, tag_name=tag, upload_url=""))

        payload: StrDict = {
            "tag_name": tag,
            "target_commitish": revision,
            "name": changeset.title or tag,
            "body": changeset.body,
            "draft": True,
            "prerelease": self.config.preview_releases and is_preview_release(version),
        }
        created = self.client.create_release(self.owner, self.repo, payload)
        if isinstance(created, Err):
            return _api_failed(f"failed to create release {tag} on {self.slug}", created.error)

        data = created.value
        release_id = get_int(data, "id")
        upload_url = get_str(data, "upload_url")
        if release_id is None or upload_url is None:
            return Err(
                ReleaseError(
                    kind="remote_api_failed",
                    message=f"unexpected create release payload for {tag}",
                )
            )
        return Ok(
            DraftRelease(
                id=release_id,
                tag_name=get_str(data, "tag_name") or tag,
                upload_url=upload_url,
            )
        )

    def list_assets(self, release_id: int) -> Result[list[StrDict], ReleaseError]:
        """All assets of a release, unfinished uploads included."""
        result = self.client.list_release_assets(
            self.owner, self.repo, release_id, per_page=ASSETS_PER_PAGE
        )
        if isinstance(result, Err):
            return _api_failed(f"failed to list assets of release {release_id}", result.error)
        return Ok(result.value)

    def delete_asset(self, asset: StrDict) -> Result[bool, ReleaseError]:
        """Delete one asset; also usable to clean up orphaned uploads."""
        name = get_str(asset, "name") or "?"
        asset_id = get_int(asset, "id")
        self.ctx.debug(f'Deleting asset: "{name}"...')
        if self.ctx.dry_run:
            self.ctx.skip(f'Not deleting "{name}"')
            return Ok(False)
        if asset_id is None:
            return Err(ReleaseError(kind="asset_not_found", message=f'asset "{name}" has no id'))

        result = self.client.delete_release_asset(self.owner, self.repo, asset_id)
        if isinstance(result, Err):
            return _api_failed(f'failed to delete asset "{name}"', result.error)
        return Ok(True)

    def delete_asset_by_name(self, release_id: int, name: str) -> Result[bool, ReleaseError]:
        assets = self.list_assets(release_id)
        if isinstance(assets, Err):
            return assets

        for asset in assets.value:
            if get_str(asset, "name") == name:
                return self.delete_asset(asset)

        available = ", ".join(get_str(a, "name") or "?" for a in assets.value) or "(none)"
        return Err(
            ReleaseError(
                kind="asset_not_found",
                message=f'No such asset with the name "{name}"',
                hint=f"We have these instead: {available}",
            )
        )

    def upload_asset(
        self, release: DraftRelease, path: Path, mime_type: str | None = None
    ) -> Result[str | None, ReleaseError]:
        name = path.name
        content_type = mime_type or DEFAULT_MIME_TYPE
        try:
            size = path.stat().st_size
        except OSError as e:
            return Err(
                ReleaseError(kind="artifact_failed", message=f"cannot read {path}", hint=str(e))
            )
        self.ctx.debug(f"Upload parameters: name={name} size={size} content_type={content_type}")

        if self.ctx.dry_run:
            self.ctx.skip(f'Not uploading asset "{name}"')
            return Ok(None)

        self.ctx.console.print(f'Uploading asset "{name}" to {self.slug}:{release.tag_name}')
        try:
            data = path.read_bytes()
        except OSError as e:
            return Err(
                ReleaseError(kind="artifact_failed", message=f"cannot read {path}", hint=str(e))
            )

        uploaded = self._upload_with_retry(release, name, data, content_type)
        if isinstance(uploaded, Err):
            self.ctx.console.error(f'Cannot upload asset "{name}".')
            return uploaded

        remote_size = get_int(uploaded.value, "size")
        if remote_size != size:
            self.ctx.console.error(f'Cannot upload asset "{name}".')
            return Err(
                ReleaseError(
                    kind="upload_size_mismatch",
                    message=(
                        f"Uploaded asset size ({remote_size} bytes) does not match "
                        f'local asset size ({size} bytes) for "{name}".'
                    ),
                )
            )

        self.ctx.console.success(f'Uploaded asset "{name}".')
        return Ok(get_str(uploaded.value, "browser_download_url") or get_str(uploaded.value, "url"))

    def _upload_with_retry(
        self, release: DraftRelease, name: str, data: bytes, content_type: str
    ) -> Result[StrDict, ReleaseError]:
        for attempt in range(1, UPLOAD_ATTEMPTS + 1):
            result = self.client.upload_release_asset(release.upload_url, name, data, content_type)
            if isinstance(result, Ok):
                return result

            error = result.error
            if not error.is_asset_name_conflict:
                return _api_failed(f'failed to upload asset "{name}"', error)
            if attempt == UPLOAD_ATTEMPTS:
                break

            self.ctx.console.info('Got "asset already exists" error, deleting and retrying...')
            deleted = self.delete_asset_by_name(release.id, name)
            if isinstance(deleted, Err):
                return deleted

        return Err(
            ReleaseError(
                kind="max_retries_reached",
                message=f'Reached maximum retries for trying to upload asset "{name}".',
                hint="Delete the asset from the draft release and run publish again.",
            )
        )

    def publish_release(self, release: DraftRelease) -> Result[None, ReleaseError]:
        if self.ctx.dry_run:
            self.ctx.skip("Not publishing the draft release")
            return Ok(None)

        result = self.client.update_release(self.owner, self.repo, release.id, {"draft": False})
        if isinstance(result, Err):
            return _api_failed(f"failed to publish release {release.tag_name}", result.error)
        self.ctx.console.success(f"Published release {release.tag_name} on {self.slug}")
        return Ok(None)
