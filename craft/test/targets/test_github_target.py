"""Tests for craft.targets.github module."""

from __future__ import annotations

from pathlib import Path

import pytest

from craft.artifacts.local import FilesystemArtifactProvider
from craft.core.config import GitHubConfig, ProjectConfig, TargetConfig
from craft.core.context import ExecutionContext
from craft.core.result import Err, Ok
from craft.github.client import GitHubApiError, MockGitHubClient, asset_name_conflict
from craft.output.console import MockConsole
from craft.release.changelog import Changeset
from craft.targets.base import DraftRelease
from craft.targets.github import UPLOAD_ATTEMPTS, GitHubTarget


def _target(
    tmp_path: Path,
    client: MockGitHubClient,
    *,
    dry_run: bool = False,
    config: TargetConfig | None = None,
    project: ProjectConfig | None = None,
) -> tuple[GitHubTarget, MockConsole]:
    console = MockConsole()
    target = GitHubTarget(
        config=config or TargetConfig(name="github"),
        project=project or ProjectConfig(github=GitHubConfig("acme", "widget")),
        artifact_provider=FilesystemArtifactProvider(tmp_path / "artifacts", tmp_path / "dl"),
        ctx=ExecutionContext(repo_root=tmp_path, console=console, dry_run=dry_run),
        client=client,
    )
    return target, console


def _draft(client: MockGitHubClient) -> DraftRelease:
    created = client.create_release("acme", "widget", {"tag_name": "1.4.0", "draft": True})
    assert isinstance(created, Ok)
    return DraftRelease(
        id=int(created.value["id"]),  # type: ignore[arg-type]
        tag_name="1.4.0",
        upload_url=str(created.value["upload_url"]),
    )


def _asset(tmp_path: Path, name: str = "app.zip", data: bytes = b"0123456789") -> Path:
    path = tmp_path / name
    path.write_bytes(data)
    return path


class TestConstruction:
    def test_requires_owner_and_repo(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="owner and repo"):
            _target(tmp_path, MockGitHubClient(), project=ProjectConfig())

    def test_target_overrides_project_repo(self, tmp_path: Path) -> None:
        target, _ = _target(
            tmp_path,
            MockGitHubClient(),
            config=TargetConfig(name="github", owner="other", repo="mirror"),
        )
        assert target.slug == "other/mirror"


class TestUploadRetry:
    @pytest.mark.parametrize("conflicts", [0, 1, 2])
    def test_recovers_from_orphaned_assets(self, tmp_path: Path, conflicts: int) -> None:
        client = MockGitHubClient(upload_errors=[asset_name_conflict("app.zip")] * conflicts)
        target, _ = _target(tmp_path, client)
        draft = _draft(client)

        result = target.upload_asset(draft, _asset(tmp_path), "application/zip")

        assert result == Ok("https://example.test/download/app.zip")
        assert client.count("upload_release_asset") == conflicts + 1
        assert client.count("delete_release_asset") == conflicts
        assert [a["name"] for a in client.assets[draft.id]] == ["app.zip"]

    def test_gives_up_after_max_attempts(self, tmp_path: Path) -> None:
        client = MockGitHubClient(upload_errors=[asset_name_conflict("app.zip")] * 3)
        target, console = _target(tmp_path, client)
        draft = _draft(client)

        result = target.upload_asset(draft, _asset(tmp_path))

        assert isinstance(result, Err)
        assert result.error.kind == "max_retries_reached"
        assert client.count("upload_release_asset") == UPLOAD_ATTEMPTS
        assert client.count("delete_release_asset") == UPLOAD_ATTEMPTS - 1
        assert console.find('Cannot upload asset "app.zip".')

    def test_other_errors_are_not_retried(self, tmp_path: Path) -> None:
        client = MockGitHubClient(
            upload_errors=[GitHubApiError(url="u", status=500, message="Server Error")]
        )
        target, _ = _target(tmp_path, client)
        draft = _draft(client)

        result = target.upload_asset(draft, _asset(tmp_path))

        assert isinstance(result, Err)
        assert result.error.kind == "remote_api_failed"
        assert client.count("upload_release_asset") == 1
        assert client.count("delete_release_asset") == 0

    def test_size_mismatch_is_not_retried(self, tmp_path: Path) -> None:
        client = MockGitHubClient(reported_sizes={"app.zip": 3})
        target, _ = _target(tmp_path, client)
        draft = _draft(client)

        result = target.upload_asset(draft, _asset(tmp_path))

        assert isinstance(result, Err)
        assert result.error.kind == "upload_size_mismatch"
        assert "(3 bytes)" in result.error.message
        assert "(10 bytes)" in result.error.message
        assert client.count("upload_release_asset") == 1

    def test_delete_failure_aborts_retry(self, tmp_path: Path) -> None:
        client = MockGitHubClient(upload_errors=[asset_name_conflict("app.zip")])
        client.fail["delete_release_asset"] = GitHubApiError(url="u", status=403, message="Forbidden")
        target, _ = _target(tmp_path, client)
        draft = _draft(client)

        result = target.upload_asset(draft, _asset(tmp_path))

        assert isinstance(result, Err)
        assert result.error.kind == "remote_api_failed"
        assert client.count("upload_release_asset") == 1

    def test_missing_file(self, tmp_path: Path) -> None:
        client = MockGitHubClient()
        target, _ = _target(tmp_path, client)

        result = target.upload_asset(_draft(client), tmp_path / "nope.zip")

        assert isinstance(result, Err)
        assert result.error.kind == "artifact_failed"

    def test_dry_run_does_not_upload(self, tmp_path: Path) -> None:
        client = MockGitHubClient()
        target, console = _target(tmp_path, client, dry_run=True)

        result = target.upload_asset(DraftRelease(0, "1.4.0", ""), _asset(tmp_path))

        assert result == Ok(None)
        assert client.calls == []
        assert console.find('[dry-run] Not uploading asset "app.zip"')


class TestAssetCleanup:
    def test_delete_by_name(self, tmp_path: Path) -> None:
        client = MockGitHubClient()
        target, _ = _target(tmp_path, client)
        draft = _draft(client)
        target.upload_asset(draft, _asset(tmp_path, "a.zip"))
        target.upload_asset(draft, _asset(tmp_path, "b.zip"))

        assert target.delete_asset_by_name(draft.id, "a.zip") == Ok(True)
        assert [a["name"] for a in client.assets[draft.id]] == ["b.zip"]

    def test_delete_unknown_name(self, tmp_path: Path) -> None:
        client = MockGitHubClient()
        target, _ = _target(tmp_path, client)
        draft = _draft(client)
        target.upload_asset(draft, _asset(tmp_path, "b.zip"))

        result = target.delete_asset_by_name(draft.id, "a.zip")

        assert isinstance(result, Err)
        assert result.error.kind == "asset_not_found"
        assert result.error.message == 'No such asset with the name "a.zip"'
        assert result.error.hint == "We have these instead: b.zip"

    def test_dry_run_delete(self, tmp_path: Path) -> None:
        client = MockGitHubClient()
        target, _ = _target(tmp_path, client, dry_run=True)

        assert target.delete_asset({"id": 5, "name": "a.zip"}) == Ok(False)
        assert client.count("delete_release_asset") == 0


class TestDraftRelease:
    def test_payload(self, tmp_path: Path) -> None:
        client = MockGitHubClient()
        target, _ = _target(tmp_path, client, config=TargetConfig(name="github", tag_prefix="v"))

        result = target.create_draft_release("1.4.0-rc.1", "abc", Changeset("1.4.0-rc.1", "notes"))

        assert isinstance(result, Ok)
        assert result.value.tag_name == "v1.4.0-rc.1"
        release = client.releases[result.value.id]
        assert release["target_commitish"] == "abc"
        assert release["body"] == "notes"
        assert release["draft"] is True
        assert release["prerelease"] is True

    def test_preview_releases_disabled(self, tmp_path: Path) -> None:
        client = MockGitHubClient()
        target, _ = _target(
            tmp_path, client, config=TargetConfig(name="github", preview_releases=False)
        )

        result = target.create_draft_release("1.4.0-rc.1", "abc", Changeset("1.4.0-rc.1"))

        assert isinstance(result, Ok)
        assert client.releases[result.value.id]["prerelease"] is False

    def test_api_failure(self, tmp_path: Path) -> None:
        client = MockGitHubClient()
        client.fail["create_release"] = GitHubApiError(url="u", status=422, message="tag exists")
        target, _ = _target(tmp_path, client)

        result = target.create_draft_release("1.4.0", "abc", Changeset("1.4.0"))

        assert isinstance(result, Err)
        assert result.error.kind == "remote_api_failed"

    def test_dry_run_draft(self, tmp_path: Path) -> None:
        client = MockGitHubClient()
        target, _ = _target(tmp_path, client, dry_run=True)

        result = target.create_draft_release("1.4.0", "abc", Changeset("1.4.0"))

        assert result == Ok(DraftRelease(id=0, tag_name="1.4.0", upload_url=""))
        assert client.calls == []


class TestFetchChangelog:
    def test_policy_none(self, tmp_path: Path) -> None:
        (tmp_path / "CHANGELOG.md").write_text("## 1.4.0\n\nnotes\n", encoding="utf-8")
        target, _ = _target(tmp_path, MockGitHubClient())

        assert target.fetch_changelog("1.4.0") == Changeset("1.4.0", "")

    def test_policy_none_names_release_after_tag(self, tmp_path: Path) -> None:
        client = MockGitHubClient()
        target, _ = _target(tmp_path, client, config=TargetConfig(name="github", tag_prefix="v"))

        result = target.create_draft_release("1.4.0", "abc", target.fetch_changelog("1.4.0"))

        assert isinstance(result, Ok)
        release = client.releases[result.value.id]
        assert release["name"] == "v1.4.0"
        assert release["tag_name"] == "v1.4.0"

    def test_policy_simple(self, tmp_path: Path) -> None:
        (tmp_path / "CHANGELOG.md").write_text("## 1.4.0\n\nnotes\n", encoding="utf-8")
        project = ProjectConfig(github=GitHubConfig("acme", "widget"), changelog_policy="simple")
        target, _ = _target(tmp_path, MockGitHubClient(), project=project)

        assert target.fetch_changelog("1.4.0") == Changeset("1.4.0", "notes")

    def test_unreadable_changelog_falls_back(self, tmp_path: Path) -> None:
        project = ProjectConfig(github=GitHubConfig("acme", "widget"), changelog_policy="simple")
        target, console = _target(tmp_path, MockGitHubClient(), project=project)

        assert target.fetch_changelog("1.4.0") == Changeset("1.4.0", "")
        assert console.has_error()


class TestPublish:
    def test_publish_uploads_every_artifact(self, tmp_path: Path) -> None:
        revision = "d" * 40
        folder = tmp_path / "artifacts" / revision
        folder.mkdir(parents=True)
        (folder / "app.zip").write_bytes(b"zip")
        (folder / "app.sig").write_bytes(b"sig")
        client = MockGitHubClient()
        target, _ = _target(tmp_path, client)

        result = target.publish("1.4.0", revision)

        assert isinstance(result, Ok)
        release = client.releases[result.value.id]
        assert release["draft"] is False
        assert sorted(a["name"] for a in client.assets[result.value.id]) == ["app.sig", "app.zip"]
        by_name = {a["name"]: a for a in client.assets[result.value.id]}
        assert by_name["app.zip"]["content_type"] == "application/zip"

    def test_failed_upload_leaves_draft_unpublished(self, tmp_path: Path) -> None:
        revision = "d" * 40
        folder = tmp_path / "artifacts" / revision
        folder.mkdir(parents=True)
        (folder / "app.zip").write_bytes(b"zip")
        client = MockGitHubClient(upload_errors=[asset_name_conflict("app.zip")] * 3)
        target, _ = _target(tmp_path, client)

        result = target.publish("1.4.0", revision)

        assert isinstance(result, Err)
        assert result.error.kind == "max_retries_reached"
        assert client.count("update_release") == 0
        assert client.releases[1]["draft"] is True
