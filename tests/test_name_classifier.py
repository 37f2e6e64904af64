"""Tests for the folder-name heuristics used by the scanner."""

import pytest

from pde.services.name_classifier import is_domain_like, is_subdomain_like, looks_like_project_folder


@pytest.mark.parametrize(
    "name",
    ["example.com", "my-site.dev", "shop.co.uk", "Example.COM", "tool.io"],
)
def test_domain_like_names(name: str) -> None:
    """Names ending in a recognised TLD are domain-like, regardless of case.

    Args:
        name: Folder name under test.
    """
    assert is_domain_like(name)


@pytest.mark.parametrize(
    "name",
    ["example", "v1.2", "archive.zip", "notes.txt", "example.", ""],
)
def test_non_domain_names(name: str) -> None:
    """Undotted names and unknown extensions are not domains.

    Args:
        name: Folder name under test.
    """
    assert not is_domain_like(name)


@pytest.mark.parametrize("name", ["api", "www", "Blog", "en", "staging", "vanlife"])
def test_subdomain_patterns(name: str) -> None:
    """Known service and region labels are treated as sibling projects.

    Args:
        name: Folder name under test.
    """
    assert is_subdomain_like(name)


@pytest.mark.parametrize("name", ["src", "static", "docs", "test", "node_modules", "Public"])
def test_project_internal_folders_are_never_subdomains(name: str) -> None:
    """Exclusions win even over names that also appear as service labels.

    Args:
        name: Folder name under test.
    """
    assert not is_subdomain_like(name)


def test_dotted_subdomain_delegates_to_domain_check() -> None:
    """A dotted child name counts only if it is itself domain-like."""
    assert is_subdomain_like("api.example.com")
    assert not is_subdomain_like("backup.old")


def test_ordinary_folder_is_not_subdomain() -> None:
    """Arbitrary folder names are not promoted to projects."""
    assert not is_subdomain_like("random-folder")


@pytest.mark.parametrize(
    "name",
    ["my-portfolio", "client-acme", "react-playground", "LandingPage", "work-tracker"],
)
def test_project_like_names(name: str) -> None:
    """Substring and prefix patterns flag project-like folder names.

    Args:
        name: Folder name under test.
    """
    assert looks_like_project_folder(name)


def test_prefix_patterns_only_match_at_start() -> None:
    """Patterns ending in a hyphen do not match mid-name."""
    assert not looks_like_project_folder("xmy-thing")
    assert not looks_like_project_folder("xwork-log")
