"""Project configuration (``.craft.toml``).

The file lives at the repository root. Every key is optional; a missing file
yields the defaults below.

    default_branch = "main"
    changelog = "CHANGELOG.md"
    changelog_policy = "simple"
    pre_release_command = "python scripts/bump.py"

    [github]
    owner = "acme"
    repo = "widget"

    [artifacts]
    path = ".artifacts"

    [[targets]]
    name = "github"
    tag_prefix = "v"
    preview_releases = true
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from .result import Err, Ok, Result
from .structured import (
    StrDict,
    as_str_dict,
    get_bool,
    get_list,
    get_str,
    get_table,
)

__all__ = [
    "CONFIG_FILE_NAME",
    "DEFAULT_CHANGELOG_PATH",
    "DEFAULT_ARTIFACTS_PATH",
    "ArtifactsConfig",
    "ChangelogPolicy",
    "ConfigError",
    "GitHubConfig",
    "ProjectConfig",
    "TargetConfig",
    "load_project_config",
    "load_project_config_or_default",
]

CONFIG_FILE_NAME = ".craft.toml"
DEFAULT_CHANGELOG_PATH = "CHANGELOG.md"
DEFAULT_ARTIFACTS_PATH = ".artifacts"

ChangelogPolicy = Literal["none", "simple"]
_CHANGELOG_POLICIES: tuple[ChangelogPolicy, ...] = ("none", "simple")


@dataclass(frozen=True, slots=True)
class ConfigError:
    """Error when the project config cannot be loaded or parsed."""

    message: str
    path: Path | None = None


@dataclass(frozen=True, slots=True)
class GitHubConfig:
    owner: str
    repo: str

    @property
    def slug(self) -> str:
        return f"{self.owner}/{self.repo}"


@dataclass(frozen=True, slots=True)
class TargetConfig:
    """One ``[[targets]]`` entry.

    Attributes:
        name: Registry name of the target backend (e.g. "github")
        owner: Overrides ``github.owner`` for this target
        repo: Overrides ``github.repo`` for this target
        tag_prefix: Prepended to the version to form the git tag
        preview_releases: Mark pre-release versions as such on the remote
    """

    name: str
    owner: str | None = None
    repo: str | None = None
    tag_prefix: str = ""
    preview_releases: bool = True


@dataclass(frozen=True, slots=True)
class ArtifactsConfig:
    path: str = DEFAULT_ARTIFACTS_PATH


@dataclass(frozen=True, slots=True)
class ProjectConfig:
    """Parsed ``.craft.toml``."""

    github: GitHubConfig | None = None
    default_branch: str | None = None
    changelog: str = DEFAULT_CHANGELOG_PATH
    changelog_policy: ChangelogPolicy = "none"
    pre_release_command: str | None = None
    targets: tuple[TargetConfig, ...] = ()
    artifacts: ArtifactsConfig = field(default_factory=ArtifactsConfig)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ProjectConfig:
        """Build a config from a parsed TOML mapping.

        Raises:
            ValueError: If a value has the wrong shape.
        """
        github: GitHubConfig | None = None
        github_tbl = get_table(data, "github")
        if github_tbl is not None:
            owner = get_str(github_tbl, "owner")
            repo = get_str(github_tbl, "repo")
            if owner is None or repo is None:
                raise ValueError("[github] requires both 'owner' and 'repo'")
            github = GitHubConfig(owner=owner, repo=repo)

        policy = get_str(data, "changelog_policy") or "none"
        if policy not in _CHANGELOG_POLICIES:
            raise ValueError(
                f"changelog_policy must be one of {', '.join(_CHANGELOG_POLICIES)}: {policy}"
            )

        artifacts_tbl: StrDict = get_table(data, "artifacts") or {}

        return cls(
            github=github,
            default_branch=get_str(data, "default_branch"),
            changelog=get_str(data, "changelog") or DEFAULT_CHANGELOG_PATH,
            changelog_policy=policy,  # type: ignore[arg-type]
            pre_release_command=get_str(data, "pre_release_command"),
            targets=_parse_targets(data),
            artifacts=ArtifactsConfig(
                path=get_str(artifacts_tbl, "path") or DEFAULT_ARTIFACTS_PATH
            ),
        )


def _parse_targets(data: Mapping[str, object]) -> tuple[TargetConfig, ...]:
    raw = data.get("targets")
    if raw is None:
        return ()
    items = get_list(data, "targets")
    if items is None:
        raise ValueError("'targets' must be an array of tables")

    targets: list[TargetConfig] = []
    for item in items:
        tbl = as_str_dict(item)
        if tbl is None:
            raise ValueError("each [[targets]] entry must be a table")
        name = get_str(tbl, "name")
        if name is None:
            raise ValueError("each [[targets]] entry requires a 'name'")
        preview = get_bool(tbl, "preview_releases")
        targets.append(
            TargetConfig(
                name=name,
                owner=get_str(tbl, "owner"),
                repo=get_str(tbl, "repo"),
                tag_prefix=get_str(tbl, "tag_prefix") or "",
                preview_releases=True if preview is None else preview,
            )
        )
    return tuple(targets)


def _parse_toml(path: Path) -> Result[StrDict, ConfigError]:
    import tomllib

    try:
        data_obj: object = tomllib.loads(path.read_bytes().decode("utf-8"))
    except FileNotFoundError:
        return Err(ConfigError(f"Config file not found: {path}", path=path))
    except PermissionError:
        return Err(ConfigError(f"Permission denied reading: {path}", path=path))
    except tomllib.TOMLDecodeError as e:
        return Err(ConfigError(f"Invalid TOML syntax: {e}", path=path))
    except UnicodeDecodeError as e:
        return Err(ConfigError(f"Error reading config: {e}", path=path))

    data = as_str_dict(data_obj)
    if data is None:
        return Err(ConfigError("Config root must be a TOML table", path=path))
    return Ok(data)


def load_project_config(path: Path) -> Result[ProjectConfig, ConfigError]:
    """Load and validate ``.craft.toml``.

    Args:
        path: Path to the config file

    Returns:
        Ok(ProjectConfig) on success, Err(ConfigError) on failure
    """
    result = _parse_toml(path)
    if isinstance(result, Err):
        return result

    try:
        return Ok(ProjectConfig.from_dict(result.value))
    except (KeyError, TypeError, ValueError) as e:
        return Err(ConfigError(f"Invalid config structure: {e}", path=path))


def load_project_config_or_default(path: Path) -> Result[ProjectConfig, ConfigError]:
    """Like ``load_project_config`` but a missing file means defaults."""
    if not path.exists():
        return Ok(ProjectConfig())
    return load_project_config(path)
