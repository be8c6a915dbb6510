"""Distribution targets and their registry."""

from __future__ import annotations

from collections.abc import Callable

from craft.artifacts.base import ArtifactProvider
from craft.core.config import ProjectConfig, TargetConfig
from craft.core.context import ExecutionContext
from craft.core.result import Err, Ok, Result
from craft.github.client import GitHubClient
from craft.release.errors import ReleaseError
from craft.targets.base import BaseTarget, DraftRelease
from craft.targets.github import GitHubTarget

__all__ = [
    "BaseTarget",
    "DraftRelease",
    "GitHubTarget",
    "TARGET_FACTORIES",
    "build_targets",
]

TargetFactory = Callable[
    [TargetConfig, ProjectConfig, ArtifactProvider, ExecutionContext, GitHubClient], BaseTarget
]


def _github(
    cfg: TargetConfig,
    project: ProjectConfig,
    provider: ArtifactProvider,
    ctx: ExecutionContext,
    client: GitHubClient,
) -> BaseTarget:
    return GitHubTarget(
        config=cfg, project=project, artifact_provider=provider, ctx=ctx, client=client
    )


TARGET_FACTORIES: dict[str, TargetFactory] = {
    GitHubTarget.name: _github,
}


def _target_configs(project: ProjectConfig) -> tuple[TargetConfig, ...]:
    if project.targets:
        return project.targets
    if project.github is not None:
        return (TargetConfig(name=GitHubTarget.name),)
    return ()


def build_targets(
    *,
    project: ProjectConfig,
    artifact_provider: ArtifactProvider,
    ctx: ExecutionContext,
    client: GitHubClient,
) -> Result[list[BaseTarget], ReleaseError]:
    """Instantiate the configured targets in configuration order.

    Without a ``[[targets]]`` table, a ``[github]`` section implies the
    github target.
    """
    configs = _target_configs(project)
    if not configs:
        return Err(
            ReleaseError(
                kind="config_invalid",
                message="no publish targets configured",
                hint="Add a [[targets]] entry or a [github] section to .craft.toml",
            )
        )

    targets: list[BaseTarget] = []
    for cfg in configs:
        factory = TARGET_FACTORIES.get(cfg.name)
        if factory is None:
            return Err(
                ReleaseError(
                    kind="config_invalid",
                    message=f"unknown target: {cfg.name}",
                    hint=f"Available: {', '.join(sorted(TARGET_FACTORIES))}",
                )
            )
        try:
            targets.append(factory(cfg, project, artifact_provider, ctx, client))
        except ValueError as e:
            return Err(ReleaseError(kind="config_invalid", message=str(e)))
    return Ok(targets)
