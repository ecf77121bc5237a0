"""Artifact rendering orchestration.

The CLI delegates rendering, self-checking and writing to these helpers so
the same flow is reusable from tests or other entry points, and printing
stays out of the core logic (UI layers plug in through `PipelineHooks`).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Sequence

from adapters.renderers import (
    DjangoSettingsRenderer,
    NginxSiteRenderer,
    RequirementsRenderer,
    ServiceUnitRenderer,
    SocketUnitRenderer,
)
from core.config import AppSettings
from core.domain.models import CheckReport, DeploymentSpec, RenderedArtifact
from core.errors import ArtifactExistsError, ArtifactIOError, InconsistentArtifactsError
from core.interfaces.renderer import ArtifactRenderer
from core.services.consistency import bundle_from_artifacts, check_artifacts

logger = logging.getLogger(__name__)

STATUS_CREATED = "created"
STATUS_UPDATED = "updated"
STATUS_UNCHANGED = "unchanged"


@dataclass
class PipelineHooks:
    """Optional callbacks for UI layers."""

    artifact_written: Callable[[RenderedArtifact, Path, str], None] | None = None


@dataclass
class WrittenArtifact:
    artifact: RenderedArtifact
    path: Path
    status: str


@dataclass
class RenderResult:
    """Output of a pipeline invocation."""

    artifacts: list[RenderedArtifact]
    report: CheckReport
    written: list[WrittenArtifact] = field(default_factory=list)


def default_renderers(settings: AppSettings | None = None) -> list[ArtifactRenderer]:
    settings = settings or AppSettings()
    return [
        SocketUnitRenderer(settings),
        ServiceUnitRenderer(settings),
        NginxSiteRenderer(settings),
        DjangoSettingsRenderer(),
        RequirementsRenderer(),
    ]


def render_all(
    spec: DeploymentSpec,
    renderers: Sequence[ArtifactRenderer] | None = None,
    *,
    settings: AppSettings | None = None,
) -> list[RenderedArtifact]:
    renderers = renderers if renderers is not None else default_renderers(settings)
    artifacts = [renderer.render(spec) for renderer in renderers]
    logger.debug("rendered %d artifact(s) for %s", len(artifacts), spec.repo_name)
    return artifacts


def verify_artifacts(artifacts: Sequence[RenderedArtifact], spec: DeploymentSpec) -> CheckReport:
    """Checks rendered text against itself and the spec; raises on errors."""

    report = check_artifacts(bundle_from_artifacts(artifacts), expected=spec)
    if not report.ok:
        raise InconsistentArtifactsError(report)
    return report


def output_path_for(artifact: RenderedArtifact, output_dir: Path, *, mirror_layout: bool = True) -> Path:
    """`/etc/systemd/system/app.service` -> `<output_dir>/etc/systemd/system/app.service`."""

    if mirror_layout:
        return output_dir / artifact.install_path.lstrip("/")
    return output_dir / artifact.filename


def _status_for(path: Path, content: bytes) -> str:
    if not path.exists():
        return STATUS_CREATED
    try:
        existing = path.read_bytes()
    except OSError as exc:
        raise ArtifactIOError(str(path), exc) from exc
    return STATUS_UNCHANGED if existing == content else STATUS_UPDATED


def write_artifacts(
    artifacts: Sequence[RenderedArtifact],
    output_dir: Path,
    *,
    mirror_layout: bool = True,
    overwrite: bool = False,
    hooks: PipelineHooks | None = None,
) -> list[WrittenArtifact]:
    hooks = hooks or PipelineHooks()

    planned = [(a, output_path_for(a, output_dir, mirror_layout=mirror_layout)) for a in artifacts]
    # Compared as bytes; no decoding of existing files.
    statuses = [_status_for(path, artifact.content.encode("utf-8")) for artifact, path in planned]
    # Conflicts are detected before anything is written.
    if not overwrite:
        for (artifact, path), status in zip(planned, statuses):
            if status == STATUS_UPDATED:
                raise ArtifactExistsError(str(path))

    written: list[WrittenArtifact] = []
    for (artifact, path), status in zip(planned, statuses):
        if status != STATUS_UNCHANGED:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_bytes(artifact.content.encode("utf-8"))
            except OSError as exc:
                raise ArtifactIOError(str(path), exc, action="write") from exc
        logger.info("%s %s", status, path)
        written.append(WrittenArtifact(artifact=artifact, path=path, status=status))
        if hooks.artifact_written:
            hooks.artifact_written(artifact, path, status)
    return written


def run_render(
    spec: DeploymentSpec,
    *,
    output_dir: Path | None = None,
    mirror_layout: bool = True,
    overwrite: bool = False,
    settings: AppSettings | None = None,
    hooks: PipelineHooks | None = None,
) -> RenderResult:
    """Render, self-check and (when `output_dir` is given) write all artifacts."""

    artifacts = render_all(spec, settings=settings)
    report = verify_artifacts(artifacts, spec)
    result = RenderResult(artifacts=artifacts, report=report)
    if output_dir is not None:
        result.written = write_artifacts(
            artifacts,
            output_dir,
            mirror_layout=mirror_layout,
            overwrite=overwrite,
            hooks=hooks,
        )
    return result
