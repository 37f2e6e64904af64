"""Tests for the JSON-backed metadata store.

Covers initialisation, record merging, filtering, statistics, import/export,
and timestamped backups.
"""

import json
from pathlib import Path

import pytest

from pde.models import (
    ErrorKind,
    ProjectCategory,
    ProjectError,
    ProjectInfo,
    ProjectStatus,
    ProjectType,
    ScanResult,
)
from pde.services.metadata_store import MetadataError, MetadataStore


def _project(project_id: str, **fields: object) -> ProjectInfo:
    values: dict[str, object] = {"name": project_id, "path": f"/projects/personal/{project_id}"}
    values.update(fields)
    return ProjectInfo(id=project_id, **values)


@pytest.fixture()
def store(tmp_path: Path) -> MetadataStore:
    """Create an initialised store in a temporary directory.

    Args:
        tmp_path: Pytest-provided temporary directory.

    Returns:
        A ``MetadataStore`` with a freshly written metadata file.
    """
    metadata_store = MetadataStore(tmp_path / "metadata" / "pde-metadata.json", max_backups=2)
    metadata_store.initialize(projects_path="/projects")
    return metadata_store


def test_initialize_creates_file(store: MetadataStore) -> None:
    """A missing file is created with an empty document.

    Args:
        store: Fixture-provided store.
    """
    assert store.is_loaded
    assert store.metadata_path.is_file()
    data = json.loads(store.metadata_path.read_text())
    assert data["projects"] == {}
    assert data["config"]["projects_path"] == "/projects"


def test_initialize_loads_existing(store: MetadataStore) -> None:
    """A second store on the same file sees the saved records.

    Args:
        store: Fixture-provided store.
    """
    store.add_or_update_project(_project("blog"))

    reopened = MetadataStore(store.metadata_path)
    reopened.initialize()

    assert reopened.get_project("blog") is not None
    assert reopened.metadata.total_projects == 1


def test_load_invalid_file_raises(tmp_path: Path) -> None:
    """Invalid JSON surfaces as ``MetadataError``.

    Args:
        tmp_path: Pytest-provided temporary directory.
    """
    path = tmp_path / "pde-metadata.json"
    path.write_text("{broken")
    with pytest.raises(MetadataError):
        MetadataStore(path).load()


def test_add_then_update_preserves_hand_edited_fields(store: MetadataStore) -> None:
    """Rescans keep notes and tags while refreshing detected fields.

    Args:
        store: Fixture-provided store.
    """
    assert store.add_or_update_project(_project("blog", notes="keep me", tags=["writing"]))

    is_new = store.add_or_update_project(_project("blog", type=ProjectType.STATIC))

    assert not is_new
    stored = store.get_project("blog")
    assert stored is not None
    assert stored.type == ProjectType.STATIC
    assert stored.notes == "keep me"
    assert stored.tags == ["writing"]


def test_update_replaces_stale_error(store: MetadataStore) -> None:
    """A clean rescan clears the error recorded by an earlier failure.

    Args:
        store: Fixture-provided store.
    """
    failed = _project("blog", last_error=ProjectError(message="boom", kind=ErrorKind.DETECTION))
    store.add_or_update_project(failed)
    store.add_or_update_project(_project("blog"))

    stored = store.get_project("blog")
    assert stored is not None
    assert stored.last_error is None


def test_remove_project(store: MetadataStore) -> None:
    """Removing a record reports whether anything matched.

    Args:
        store: Fixture-provided store.
    """
    store.add_or_update_project(_project("blog"))
    assert store.remove_project("blog")
    assert not store.remove_project("blog")
    assert store.get_all_projects() == []


def test_get_project_by_path_normalises_separators(store: MetadataStore) -> None:
    """Backslash and forward-slash paths refer to the same record.

    Args:
        store: Fixture-provided store.
    """
    store.add_or_update_project(_project("blog"))
    found = store.get_project_by_path("\\projects\\personal\\blog")
    assert found is not None
    assert found.id == "blog"


def test_find_projects_filters(store: MetadataStore) -> None:
    """Every criterion must match; search covers names, notes and tags.

    Args:
        store: Fixture-provided store.
    """
    store.add_or_update_project(_project("blog", type=ProjectType.STATIC, tags=["Writing"]))
    store.add_or_update_project(
        _project(
            "api",
            category=ProjectCategory.PROFESSIONAL,
            domain="example.com",
            type=ProjectType.NODE,
            status=ProjectStatus.DEVELOPMENT,
        )
    )

    assert [p.id for p in store.find_projects(category=ProjectCategory.PROFESSIONAL)] == ["api"]
    assert [p.id for p in store.find_projects(project_type=ProjectType.STATIC)] == ["blog"]
    assert [p.id for p in store.find_projects(status=ProjectStatus.DEVELOPMENT)] == ["api"]
    assert [p.id for p in store.find_projects(domain="example.com")] == ["api"]
    assert [p.id for p in store.find_projects(search="writing")] == ["blog"]
    assert store.find_projects(category=ProjectCategory.PERSONAL, project_type=ProjectType.NODE) == []
    assert len(store.find_projects()) == 2


def test_stats_follow_mutations(store: MetadataStore) -> None:
    """Per-type/category/status counts are recomputed on every change.

    Args:
        store: Fixture-provided store.
    """
    store.add_or_update_project(_project("blog", type=ProjectType.STATIC))
    store.add_or_update_project(_project("shop", type=ProjectType.STATIC))
    store.remove_project("shop")

    stats = store.get_stats()
    assert stats is not None
    assert stats.total_projects == 1
    assert stats.projects_by_type == {"static": 1}
    assert stats.projects_by_category == {"personal": 1}
    assert stats.projects_by_status == {"proposed": 1}


def test_scan_results_running_average(store: MetadataStore) -> None:
    """Scan durations fold into a running average.

    Args:
        store: Fixture-provided store.
    """
    store.update_scan_results(ScanResult(success=True, scan_duration=100))
    store.update_scan_results(ScanResult(success=True, scan_duration=300))

    stats = store.get_stats()
    assert stats is not None
    assert stats.total_scans == 2
    assert stats.last_scan_duration == 300
    assert stats.average_scan_duration == 200


def test_stats_before_load(tmp_path: Path) -> None:
    """Statistics are unavailable until the store is loaded.

    Args:
        tmp_path: Pytest-provided temporary directory.
    """
    assert MetadataStore(tmp_path / "pde-metadata.json").get_stats() is None


def test_export_and_import(store: MetadataStore, tmp_path: Path) -> None:
    """An exported document can replace or merge into another store.

    Args:
        store: Fixture-provided store.
        tmp_path: Pytest-provided temporary directory.
    """
    store.add_or_update_project(_project("blog"))
    exported = store.export_metadata()

    other = MetadataStore(tmp_path / "other.json")
    other.initialize()
    other.add_or_update_project(_project("shop"))
    other.import_metadata(exported, merge=True)
    assert sorted(p.id for p in other.get_all_projects()) == ["blog", "shop"]

    other.import_metadata(exported)
    assert [p.id for p in other.get_all_projects()] == ["blog"]


def test_import_invalid_document(store: MetadataStore) -> None:
    """Importing something that is not a metadata document raises.

    Args:
        store: Fixture-provided store.
    """
    with pytest.raises(MetadataError):
        store.import_metadata('{"projects": 5}')


def test_backups_are_pruned(store: MetadataStore) -> None:
    """Every save backs up the previous file, keeping only ``max_backups``.

    Args:
        store: Fixture-provided store.
    """
    for name in ("a", "b", "c", "d"):
        store.add_or_update_project(_project(name))

    backups = store.list_backups()
    assert len(backups) == 2
    assert store.metadata.backup is not None
    assert store.metadata.backup.backup_count >= 4


def test_restore_from_backup(store: MetadataStore) -> None:
    """Restoring a backup reloads the older document.

    Args:
        store: Fixture-provided store.
    """
    store.add_or_update_project(_project("blog"))
    backup = store.create_backup()
    store.remove_project("blog")

    store.restore_from_backup(backup)

    assert store.get_project("blog") is not None
