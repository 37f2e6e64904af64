"""Project detector -- classifies a directory by framework and gathers its basic facts.

Each ``FrameworkSignature`` in ``FRAMEWORK_SIGNATURES`` is scored against the
directory:

- +20 per file indicator present
- +15 per folder indicator present
- with a readable ``package.json``: +25 per dependency, +15 per dev-dependency
  and +10 per script that the signature lists

The raw score is multiplied by ``base_confidence`` and ``priority`` is added.
Only signatures with evidence of their own take part.  A signature that
``extends`` another also counts the base signature's evidence once one of
its own file or dependency indicators matched, so a Next.js project outranks
the plain React reading of the same folder.  Folder and script matches
(``pages``, ``dev``) are too generic to claim a specialisation.  Equal scores
go to the lower ``tie_break_rank``.

Detection never raises: unexpected failures produce an ``unknown`` result
carrying a ``detection`` error.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import re
from dataclasses import dataclass, field
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from pde.models import (
    DetectedFramework,
    ErrorKind,
    FrameworkSignature,
    GitInfo,
    ProjectCategory,
    ProjectCommands,
    ProjectDetection,
    ProjectError,
    ProjectIndicators,
    ProjectStatus,
    ProjectType,
)
from pde.services.directory_prober import gather_indicators

logger = logging.getLogger(__name__)

FILE_WEIGHT = 20
FOLDER_WEIGHT = 15
DEPENDENCY_WEIGHT = 25
DEV_DEPENDENCY_WEIGHT = 15
SCRIPT_WEIGHT = 10
CONFIDENCE_SCALE = 100

# Children whose presence moves a project from "proposed" to "development".
DEVELOPMENT_MARKERS = frozenset({"package.json", "deno.json", "deno.jsonc", "index.html"})

# Ordered from most to least specific; the position doubles as the tie-break rank.
FRAMEWORK_SIGNATURES: tuple[FrameworkSignature, ...] = tuple(
    signature.model_copy(update={"tie_break_rank": rank})
    for rank, signature in enumerate(
        (
            FrameworkSignature(
                type=ProjectType.NEXT,
                file_indicators=("next.config.js", "next.config.ts", "next.config.mjs"),
                folder_indicators=("pages", "app"),
                dependency_indicators=("next",),
                script_indicators=("dev", "build"),
                base_confidence=0.95,
                priority=10,
                primary_dependency="next",
                extends=ProjectType.REACT,
            ),
            FrameworkSignature(
                type=ProjectType.NUXT,
                file_indicators=("nuxt.config.js", "nuxt.config.ts"),
                folder_indicators=("pages", "components"),
                dependency_indicators=("nuxt", "@nuxt/"),
                base_confidence=0.95,
                priority=9,
                primary_dependency="nuxt",
                extends=ProjectType.VUE,
            ),
            FrameworkSignature(
                type=ProjectType.REACT,
                folder_indicators=("src",),
                dependency_indicators=("react", "react-dom"),
                dev_dependency_indicators=("@types/react", "vite", "create-react-app"),
                base_confidence=0.85,
                priority=8,
                primary_dependency="react",
            ),
            FrameworkSignature(
                type=ProjectType.VUE,
                file_indicators=("vue.config.js", "vite.config.ts"),
                folder_indicators=("src",),
                dependency_indicators=("vue",),
                dev_dependency_indicators=("@vitejs/plugin-vue", "@vue/cli"),
                base_confidence=0.85,
                priority=7,
                primary_dependency="vue",
            ),
            FrameworkSignature(
                type=ProjectType.SVELTE,
                file_indicators=("svelte.config.js", "vite.config.js"),
                folder_indicators=("src",),
                dependency_indicators=("svelte",),
                dev_dependency_indicators=("@sveltejs/", "vite"),
                base_confidence=0.85,
                priority=6,
                primary_dependency="svelte",
            ),
            FrameworkSignature(
                type=ProjectType.ANGULAR,
                file_indicators=("angular.json", "ng-package.json"),
                folder_indicators=("src/app",),
                dependency_indicators=("@angular/core",),
                dev_dependency_indicators=("@angular/cli",),
                base_confidence=0.90,
                priority=5,
                primary_dependency="@angular/core",
            ),
            FrameworkSignature(
                type=ProjectType.DENO,
                file_indicators=("deno.json", "deno.jsonc", "deps.ts", "mod.ts"),
                base_confidence=0.90,
                priority=4,
            ),
            FrameworkSignature(
                type=ProjectType.NODE,
                file_indicators=("package.json",),
                folder_indicators=("node_modules",),
                script_indicators=("start", "dev"),
                base_confidence=0.70,
                priority=3,
                primary_dependency="node",
            ),
            FrameworkSignature(
                type=ProjectType.STATIC,
                file_indicators=("index.html",),
                folder_indicators=("css", "js", "images", "assets"),
                base_confidence=0.60,
                priority=2,
            ),
            FrameworkSignature(
                type=ProjectType.WORDPRESS,
                file_indicators=("wp-config.php", "index.php"),
                folder_indicators=("wp-content", "wp-includes", "wp-admin"),
                base_confidence=0.95,
                priority=1,
            ),
        )
    )
)


@dataclass
class _Evidence:
    """Raw score and matched indicators for one signature."""

    raw_score: float = 0.0
    distinctive: bool = False
    matched: list[str] = field(default_factory=list)


@dataclass
class _Manifest:
    """Parsed ``package.json`` contents."""

    dependencies: dict[str, Any]
    dev_dependencies: dict[str, Any]
    scripts: dict[str, Any]
    display_name: str | None

    @classmethod
    def from_json(cls, data: Any) -> _Manifest:
        if not isinstance(data, dict):
            raise ValueError("package.json is not an object")
        display_name = data.get("displayName") or data.get("name")
        return cls(
            dependencies=_as_dict(data.get("dependencies")),
            dev_dependencies=_as_dict(data.get("devDependencies")),
            scripts=_as_dict(data.get("scripts")),
            display_name=display_name if isinstance(display_name, str) else None,
        )


class ProjectDetector:
    """Stateless classifier for project directories.

    Attributes:
        projects_root: Optional scan root; when set, category/domain/subdomain
            are read from the path relative to it.
    """

    def __init__(
        self,
        projects_root: Path | None = None,
        signatures: tuple[FrameworkSignature, ...] = FRAMEWORK_SIGNATURES,
    ) -> None:
        self.projects_root = Path(projects_root).expanduser().resolve() if projects_root else None
        self.signatures = signatures

    async def detect_project(self, project_path: str | Path) -> ProjectDetection:
        """Classify *project_path* and collect its basic information.

        Args:
            project_path: Directory to analyse.

        Returns:
            A ``ProjectDetection``.  On unexpected failure the result has type
            ``unknown``, confidence 0 and a ``detection`` error attached.
        """
        return await asyncio.to_thread(self.detect_project_sync, project_path)

    def detect_project_sync(self, project_path: str | Path) -> ProjectDetection:
        """Blocking implementation of :meth:`detect_project`."""
        path = Path(project_path)
        logger.info("Analyzing project at %s", path)
        try:
            indicators = gather_indicators(path)
            manifest = _read_manifest(path) if indicators.package_json else None
            framework = self.classify(path, indicators, manifest)

            detection = self._basic_info(path)
            detection.type = framework.type
            detection.framework = framework
            detection.indicators = indicators
            detection.git = _read_git_info(path)
            if manifest is not None:
                detection.display_name = manifest.display_name
                detection.commands = ProjectCommands(
                    build_command=_str_or_none(manifest.scripts.get("build")),
                    dev_command=_str_or_none(manifest.scripts.get("dev") or manifest.scripts.get("start")),
                )
        except Exception as exc:
            logger.exception("Error analyzing project %s", path)
            return ProjectDetection(
                name=path.name,
                path=str(path),
                type=ProjectType.UNKNOWN,
                framework=DetectedFramework(type=ProjectType.UNKNOWN, confidence=0.0),
                indicators=ProjectIndicators(),
                last_error=ProjectError(message=str(exc), kind=ErrorKind.DETECTION),
            )

        logger.info(
            "Detected %s project with %.0f%% confidence",
            framework.type.value,
            framework.confidence * 100,
        )
        return detection

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def classify(
        self,
        path: Path,
        indicators: ProjectIndicators,
        manifest: _Manifest | None = None,
    ) -> DetectedFramework:
        """Score every signature against *path* and pick the best match.

        Args:
            path: Directory being classified.
            indicators: Indicator set already gathered for *path*.
            manifest: Parsed ``package.json``, or ``None`` when absent or invalid.

        Returns:
            The winning ``DetectedFramework``, or an ``unknown`` result when no
            signature found any evidence.
        """
        if not indicators.package_json:
            manifest = None
        evidence = {signature.type: self._collect_evidence(path, signature, manifest) for signature in self.signatures}

        best: tuple[float, FrameworkSignature, list[str]] | None = None
        for signature in self.signatures:
            own = evidence[signature.type]
            if own.raw_score <= 0:
                continue

            raw_score = own.raw_score
            matched = list(own.matched)
            base = evidence.get(signature.extends) if signature.extends else None
            if base is not None and own.distinctive:
                raw_score += base.raw_score
                matched.extend(item for item in base.matched if item not in matched)

            final_score = raw_score * signature.base_confidence + signature.priority
            if (
                best is None
                or final_score > best[0]
                or (final_score == best[0] and signature.tie_break_rank < best[1].tie_break_rank)
            ):
                best = (final_score, signature, matched)

        if best is None:
            return DetectedFramework(type=ProjectType.UNKNOWN, confidence=0.0)

        final_score, signature, matched = best
        return DetectedFramework(
            type=signature.type,
            confidence=min(final_score / CONFIDENCE_SCALE, 1.0),
            matched_indicators=matched,
            version=_framework_version(path, signature, manifest),
        )

    @staticmethod
    def _collect_evidence(path: Path, signature: FrameworkSignature, manifest: _Manifest | None) -> _Evidence:
        evidence = _Evidence()

        for file_name in signature.file_indicators:
            if _is_file(path / file_name):
                evidence.raw_score += FILE_WEIGHT
                evidence.distinctive = True
                evidence.matched.append(file_name)

        for folder_name in signature.folder_indicators:
            if _is_dir(path / folder_name):
                evidence.raw_score += FOLDER_WEIGHT
                evidence.matched.append(folder_name)

        if manifest is not None:
            for dependency in signature.dependency_indicators:
                if _has_package(manifest.dependencies, dependency):
                    evidence.raw_score += DEPENDENCY_WEIGHT
                    evidence.distinctive = True
                    evidence.matched.append(f"dependency: {dependency}")

            for dev_dependency in signature.dev_dependency_indicators:
                if _has_package(manifest.dev_dependencies, dev_dependency):
                    evidence.raw_score += DEV_DEPENDENCY_WEIGHT
                    evidence.matched.append(f"devDependency: {dev_dependency}")

            for script in signature.script_indicators:
                if manifest.scripts.get(script):
                    evidence.raw_score += SCRIPT_WEIGHT
                    evidence.matched.append(f"script: {script}")

        return evidence

    # ------------------------------------------------------------------
    # Basic information
    # ------------------------------------------------------------------

    def _basic_info(self, path: Path) -> ProjectDetection:
        category, domain, subdomain = self.location_labels(path)
        file_count, total_size, last_modified = _shallow_file_stats(path)
        return ProjectDetection(
            name=path.name,
            path=str(path),
            category=category,
            domain=domain,
            subdomain=subdomain,
            file_count=file_count,
            size=total_size,
            last_modified=last_modified,
            status=determine_status(path),
            last_scanned=datetime.now(tz=UTC),
        )

    def location_labels(self, path: Path) -> tuple[ProjectCategory, str | None, str | None]:
        """Derive category, domain and subdomain from where *path* sits in the tree.

        The first ``personal``/``professional`` segment (case-insensitive) sets
        the category; the next two segments are the domain and subdomain.
        Without such a segment the category defaults to ``personal``.

        Args:
            path: Project directory.

        Returns:
            ``(category, domain, subdomain)``.
        """
        parts = path.parts
        if self.projects_root is not None:
            try:
                parts = path.expanduser().resolve().relative_to(self.projects_root).parts
            except ValueError:
                pass

        for index, part in enumerate(parts):
            category = _category_of(part)
            if category is None:
                continue
            domain = parts[index + 1] if index + 1 < len(parts) else None
            subdomain = parts[index + 2] if domain and index + 2 < len(parts) else None
            return category, domain, subdomain

        return ProjectCategory.PERSONAL, None, None


def determine_status(path: Path) -> ProjectStatus:
    """Return the coarse status of a project directory.

    An empty directory is ``proposed``; one containing a manifest, a Deno
    config or an ``index.html`` is in ``development``; anything else stays
    ``proposed``.

    Args:
        path: Project directory.

    Returns:
        The derived ``ProjectStatus``.
    """
    try:
        with os.scandir(path) as entries:
            names = [entry.name.lower() for entry in entries]
    except OSError as exc:
        logger.warning("Could not determine status for %s: %s", path, exc)
        return ProjectStatus.PROPOSED

    if any(name in DEVELOPMENT_MARKERS for name in names):
        return ProjectStatus.DEVELOPMENT
    return ProjectStatus.PROPOSED


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _category_of(segment: str) -> ProjectCategory | None:
    try:
        return ProjectCategory(segment.lower())
    except ValueError:
        return None


def _read_manifest(path: Path) -> _Manifest | None:
    """Parse ``package.json``; a missing or malformed manifest yields ``None``."""
    manifest_path = path / "package.json"
    try:
        return _Manifest.from_json(json.loads(manifest_path.read_text(encoding="utf-8")))
    except (OSError, ValueError) as exc:
        logger.warning("Ignoring unreadable manifest %s: %s", manifest_path, exc)
        return None


def _read_json_object(file_path: Path) -> dict[str, Any] | None:
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return None
    return data if isinstance(data, dict) else None


def _framework_version(path: Path, signature: FrameworkSignature, manifest: _Manifest | None) -> str | None:
    """Read the framework version from ``deno.json`` or the manifest."""
    if signature.type == ProjectType.DENO:
        config = _read_json_object(path / "deno.json")
        version = config.get("version") if config else None
        return str(version) if version is not None else None

    if manifest is None or not signature.primary_dependency:
        return None

    packages = {**manifest.dependencies, **manifest.dev_dependencies}
    raw_version = packages.get(signature.primary_dependency)
    if not isinstance(raw_version, str):
        return None
    return re.sub(r"[^0-9.]", "", raw_version) or None


def _read_git_info(path: Path) -> GitInfo:
    git_dir = path / ".git"
    if not _is_dir(git_dir):
        return GitInfo(has_repo=False)

    branch = None
    try:
        head = (git_dir / "HEAD").read_text(encoding="utf-8")
    except OSError:
        head = ""
    match = re.search(r"ref: refs/heads/(.+)", head)
    if match:
        branch = match.group(1).strip()
    return GitInfo(has_repo=True, current_branch=branch)


def _shallow_file_stats(path: Path) -> tuple[int, int, datetime | None]:
    """Count, total size and newest mtime of the immediate files in *path*."""
    file_count = 0
    total_size = 0
    newest: float | None = None
    try:
        with os.scandir(path) as entries:
            for entry in entries:
                try:
                    if not entry.is_file():
                        continue
                    stat = entry.stat()
                except OSError:
                    continue
                file_count += 1
                total_size += stat.st_size
                if newest is None or stat.st_mtime > newest:
                    newest = stat.st_mtime
    except OSError as exc:
        logger.warning("Could not count files in %s: %s", path, exc)

    last_modified = datetime.fromtimestamp(newest, tz=UTC) if newest is not None else None
    return file_count, total_size, last_modified


def _has_package(packages: dict[str, Any], name: str) -> bool:
    """Exact or prefix match, so ``@nuxt/`` matches ``@nuxt/kit``."""
    return any(key == name or key.startswith(name) for key in packages)


def _as_dict(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _str_or_none(value: Any) -> str | None:
    return value if isinstance(value, str) and value else None


def _is_file(path: Path) -> bool:
    try:
        return path.is_file()
    except OSError:
        return False


def _is_dir(path: Path) -> bool:
    try:
        return path.is_dir()
    except OSError:
        return False
