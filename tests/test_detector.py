"""Tests for the project detector.

Each test lays out a small project folder and checks the detected framework,
confidence, version, status, and basic facts.
"""

import json
from pathlib import Path

import pytest

from pde.models import ErrorKind, ProjectCategory, ProjectStatus, ProjectType
from pde.services import detector as detector_module
from pde.services.detector import ProjectDetector, determine_status


def _write_manifest(path: Path, **fields: object) -> None:
    (path / "package.json").write_text(json.dumps(fields))


@pytest.fixture()
def detector(tmp_path: Path) -> ProjectDetector:
    """Create a detector rooted at the temporary directory.

    Args:
        tmp_path: Pytest-provided temporary directory.

    Returns:
        A ``ProjectDetector`` instance.
    """
    return ProjectDetector(projects_root=tmp_path)


def test_react_project(tmp_path: Path, detector: ProjectDetector) -> None:
    """React dependencies plus a ``src`` folder detect as React.

    Args:
        tmp_path: Pytest-provided temporary directory.
        detector: Fixture-provided detector.
    """
    _write_manifest(tmp_path, name="shop-ui", dependencies={"react": "^18.2.0", "react-dom": "^18.2.0"})
    (tmp_path / "src").mkdir()

    detection = detector.detect_project_sync(tmp_path)

    assert detection.type == ProjectType.REACT
    assert detection.framework.confidence == pytest.approx(0.6325)
    assert detection.framework.version == "18.2.0"
    assert "src" in detection.framework.matched_indicators
    assert "dependency: react" in detection.framework.matched_indicators
    assert detection.status == ProjectStatus.DEVELOPMENT
    assert detection.display_name == "shop-ui"


def test_vite_scripts_do_not_turn_react_into_next(tmp_path: Path, detector: ProjectDetector) -> None:
    """Generic ``dev``/``build`` scripts are not enough to claim Next.js.

    Args:
        tmp_path: Pytest-provided temporary directory.
        detector: Fixture-provided detector.
    """
    _write_manifest(
        tmp_path,
        dependencies={"react": "^18.2.0", "react-dom": "^18.2.0"},
        scripts={"dev": "vite", "build": "vite build"},
    )
    (tmp_path / "src").mkdir()

    assert detector.detect_project_sync(tmp_path).type == ProjectType.REACT


def test_pages_folder_does_not_turn_react_into_next(tmp_path: Path, detector: ProjectDetector) -> None:
    """A bare ``pages`` folder without a Next.js config or dependency stays React.

    Args:
        tmp_path: Pytest-provided temporary directory.
        detector: Fixture-provided detector.
    """
    _write_manifest(tmp_path, dependencies={"react": "^18.2.0", "react-dom": "^18.2.0"})
    (tmp_path / "src").mkdir()
    (tmp_path / "pages").mkdir()

    detection = detector.detect_project_sync(tmp_path)

    assert detection.type == ProjectType.REACT
    assert detection.framework.confidence == pytest.approx(0.6325)


def test_components_folder_does_not_turn_vue_into_nuxt(tmp_path: Path, detector: ProjectDetector) -> None:
    """A ``components`` folder alone does not make a Vue app a Nuxt app.

    Args:
        tmp_path: Pytest-provided temporary directory.
        detector: Fixture-provided detector.
    """
    _write_manifest(tmp_path, dependencies={"vue": "^3.4.0"})
    (tmp_path / "src").mkdir()
    (tmp_path / "components").mkdir()

    assert detector.detect_project_sync(tmp_path).type == ProjectType.VUE


def test_next_config_outranks_react(tmp_path: Path, detector: ProjectDetector) -> None:
    """A Next.js config file turns a React project into a Next.js project.

    Args:
        tmp_path: Pytest-provided temporary directory.
        detector: Fixture-provided detector.
    """
    _write_manifest(tmp_path, dependencies={"react": "^18.2.0", "react-dom": "^18.2.0"})
    (tmp_path / "src").mkdir()
    (tmp_path / "next.config.js").write_text("module.exports = {};")

    detection = detector.detect_project_sync(tmp_path)

    assert detection.type == ProjectType.NEXT
    assert detection.framework.confidence == pytest.approx(0.9075)
    assert "next.config.js" in detection.framework.matched_indicators
    assert "dependency: react" in detection.framework.matched_indicators


def test_next_confidence_is_capped(tmp_path: Path, detector: ProjectDetector) -> None:
    """Scores above the scale clamp to a confidence of 1.0.

    Args:
        tmp_path: Pytest-provided temporary directory.
        detector: Fixture-provided detector.
    """
    _write_manifest(tmp_path, dependencies={"next": "14.1.0", "react": "^18.2.0", "react-dom": "^18.2.0"})
    (tmp_path / "next.config.js").write_text("module.exports = {};")

    detection = detector.detect_project_sync(tmp_path)

    assert detection.type == ProjectType.NEXT
    assert detection.framework.confidence == 1.0
    assert detection.framework.version == "14.1.0"


def test_deno_project_version(tmp_path: Path, detector: ProjectDetector) -> None:
    """Deno projects read their version from ``deno.json``.

    Args:
        tmp_path: Pytest-provided temporary directory.
        detector: Fixture-provided detector.
    """
    (tmp_path / "deno.json").write_text(json.dumps({"version": "1.2.3"}))

    detection = detector.detect_project_sync(tmp_path)

    assert detection.type == ProjectType.DENO
    assert detection.framework.version == "1.2.3"
    assert detection.status == ProjectStatus.DEVELOPMENT


def test_static_site(tmp_path: Path, detector: ProjectDetector) -> None:
    """An ``index.html`` with asset folders is a static site.

    Args:
        tmp_path: Pytest-provided temporary directory.
        detector: Fixture-provided detector.
    """
    (tmp_path / "index.html").write_text("<html></html>")
    (tmp_path / "css").mkdir()

    detection = detector.detect_project_sync(tmp_path)

    assert detection.type == ProjectType.STATIC
    assert detection.framework.matched_indicators == ["index.html", "css"]


def test_empty_directory_is_unknown_and_proposed(tmp_path: Path, detector: ProjectDetector) -> None:
    """No evidence at all yields ``unknown`` with zero confidence.

    Args:
        tmp_path: Pytest-provided temporary directory.
        detector: Fixture-provided detector.
    """
    detection = detector.detect_project_sync(tmp_path)

    assert detection.type == ProjectType.UNKNOWN
    assert detection.framework.confidence == 0.0
    assert detection.framework.matched_indicators == []
    assert detection.status == ProjectStatus.PROPOSED
    assert detection.file_count == 0
    assert detection.last_error is None


def test_readme_only_is_unknown(tmp_path: Path, detector: ProjectDetector) -> None:
    """A README alone is not framework evidence.

    Args:
        tmp_path: Pytest-provided temporary directory.
        detector: Fixture-provided detector.
    """
    (tmp_path / "README.md").write_text("# Idea")

    detection = detector.detect_project_sync(tmp_path)

    assert detection.type == ProjectType.UNKNOWN
    assert detection.indicators.readme
    assert detection.status == ProjectStatus.PROPOSED


def test_malformed_manifest_falls_back_to_node(tmp_path: Path, detector: ProjectDetector) -> None:
    """An unparseable ``package.json`` still counts as a file indicator.

    Args:
        tmp_path: Pytest-provided temporary directory.
        detector: Fixture-provided detector.
    """
    (tmp_path / "package.json").write_text("{not json")

    detection = detector.detect_project_sync(tmp_path)

    assert detection.type == ProjectType.NODE
    assert detection.framework.confidence == pytest.approx(0.17)
    assert detection.framework.version is None
    assert detection.last_error is None


def test_commands_and_git_branch(tmp_path: Path, detector: ProjectDetector) -> None:
    """Build/dev commands come from scripts and the branch from ``.git/HEAD``.

    Args:
        tmp_path: Pytest-provided temporary directory.
        detector: Fixture-provided detector.
    """
    _write_manifest(tmp_path, name="api", scripts={"build": "tsc", "start": "node index.js"})
    (tmp_path / ".git").mkdir()
    (tmp_path / ".git" / "HEAD").write_text("ref: refs/heads/main\n")

    detection = detector.detect_project_sync(tmp_path)

    assert detection.commands.build_command == "tsc"
    assert detection.commands.dev_command == "node index.js"
    assert detection.git.has_repo
    assert detection.git.current_branch == "main"
    assert detection.file_count == 1
    assert detection.size > 0
    assert detection.last_modified is not None


def test_unexpected_failure_returns_unknown(
    tmp_path: Path, detector: ProjectDetector, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Any exception during detection is reported on the result, not raised.

    Args:
        tmp_path: Pytest-provided temporary directory.
        detector: Fixture-provided detector.
        monkeypatch: Pytest monkeypatch fixture.
    """

    def _boom(path: object) -> None:
        raise RuntimeError("boom")

    monkeypatch.setattr(detector_module, "gather_indicators", _boom)

    detection = detector.detect_project_sync(tmp_path)

    assert detection.type == ProjectType.UNKNOWN
    assert detection.framework.confidence == 0.0
    assert detection.last_error is not None
    assert detection.last_error.kind == ErrorKind.DETECTION
    assert detection.last_error.message == "boom"


@pytest.mark.asyncio()
async def test_async_detect(tmp_path: Path, detector: ProjectDetector) -> None:
    """The async entry point returns the same classification.

    Args:
        tmp_path: Pytest-provided temporary directory.
        detector: Fixture-provided detector.
    """
    (tmp_path / "index.html").write_text("<html></html>")
    detection = await detector.detect_project(str(tmp_path))
    assert detection.type == ProjectType.STATIC


def test_location_labels_relative_to_root(tmp_path: Path, detector: ProjectDetector) -> None:
    """Category, domain and subdomain come from the path under the root.

    Args:
        tmp_path: Pytest-provided temporary directory.
        detector: Fixture-provided detector.
    """
    project = tmp_path / "personal" / "example.com" / "api"
    project.mkdir(parents=True)

    assert detector.location_labels(project) == (ProjectCategory.PERSONAL, "example.com", "api")


def test_location_labels_outside_root(detector: ProjectDetector) -> None:
    """Paths outside the root are matched on their category segment.

    Args:
        detector: Fixture-provided detector.
    """
    labels = detector.location_labels(Path("/srv/Professional/acme/site"))
    assert labels == (ProjectCategory.PROFESSIONAL, "acme", "site")


def test_location_labels_default(detector: ProjectDetector) -> None:
    """Without a category segment the project is personal and unlabelled.

    Args:
        detector: Fixture-provided detector.
    """
    assert detector.location_labels(Path("/srv/misc/thing")) == (ProjectCategory.PERSONAL, None, None)


def test_determine_status_missing_directory(tmp_path: Path) -> None:
    """An unreadable directory is treated as proposed.

    Args:
        tmp_path: Pytest-provided temporary directory.
    """
    assert determine_status(tmp_path / "missing") == ProjectStatus.PROPOSED
