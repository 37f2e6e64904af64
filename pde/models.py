"""Pydantic models for all PDE API contracts and internal data structures.

This module defines every request body, response body, and internal record used by the
dashboard service.  All structured data flows through these models -- no loose dicts.
"""

from __future__ import annotations

import enum
from datetime import UTC, datetime

from pydantic import BaseModel, Field, model_validator


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------


class ProjectCategory(enum.StrEnum):
    """Top-level folder a project lives under."""

    PERSONAL = "personal"
    PROFESSIONAL = "professional"


class ProjectStatus(enum.StrEnum):
    """Lifecycle status of a project.

    The detector only ever assigns ``proposed`` or ``development``; the other
    values are set by hand through the metadata file.
    """

    PROPOSED = "proposed"
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"
    DEVELOPMENT = "development"
    PRODUCTION = "production"


class ProjectType(enum.StrEnum):
    """Framework / tooling stack a project was classified as."""

    REACT = "react"
    VUE = "vue"
    SVELTE = "svelte"
    ANGULAR = "angular"
    NEXT = "next"
    NUXT = "nuxt"
    DENO = "deno"
    NODE = "node"
    STATIC = "static"
    WORDPRESS = "wordpress"
    UNKNOWN = "unknown"


class FileSystemEventType(enum.StrEnum):
    """Kinds of change the filesystem watcher republishes."""

    CREATE = "create"
    MODIFY = "modify"
    DELETE = "delete"
    RENAME = "rename"


class ErrorKind(enum.StrEnum):
    """Where a recorded project error originated."""

    SCAN = "scan"
    DETECTION = "detection"
    SERVER = "server"
    BUILD = "build"


class TemplateCategory(enum.StrEnum):
    """Grouping used by the template picker."""

    FRONTEND = "frontend"
    FULLSTACK = "fullstack"
    BACKEND = "backend"
    STATIC = "static"


# ---------------------------------------------------------------------------
# Scanner
# ---------------------------------------------------------------------------


class DiscoveredLocation(BaseModel):
    """A candidate project directory found by one scan pass.

    ``subdomain`` is only ever set together with ``domain``.
    """

    path: str = Field(description="Absolute path to the candidate directory")
    category: ProjectCategory = Field(description="Category folder the candidate was found under")
    domain: str | None = Field(default=None, description="Second-level folder name")
    subdomain: str | None = Field(default=None, description="Third-level folder name, nested under a domain")

    @model_validator(mode="after")
    def _subdomain_requires_domain(self) -> DiscoveredLocation:
        if self.subdomain is not None and self.domain is None:
            raise ValueError("subdomain can only be set when domain is set")
        return self


class ScanError(BaseModel):
    """A single failure recorded while scanning or processing a path."""

    path: str = Field(description="Path the failure relates to")
    error: str = Field(description="Human-readable error message")
    timestamp: datetime = Field(default_factory=_utcnow, description="When the failure happened")


class ScanResult(BaseModel):
    """Outcome of one scan.

    ``success`` only reports whether the projects root itself was scannable;
    ``errors`` is supplementary diagnostic detail.
    """

    success: bool = Field(default=False, description="True when the projects root could be scanned")
    projects_found: int = Field(default=0, description="Number of discovered locations")
    projects_added: int = Field(default=0, description="Records newly added to the metadata store")
    projects_updated: int = Field(default=0, description="Existing records refreshed in the metadata store")
    projects_removed: int = Field(default=0, description="Records removed from the metadata store")
    errors: list[ScanError] = Field(default_factory=list, description="Non-fatal failures encountered")
    scan_duration: int = Field(default=0, description="Elapsed wall-clock time in milliseconds")
    timestamp: datetime = Field(default_factory=_utcnow, description="When the scan started")


class ScannerStats(BaseModel):
    """Snapshot of the scanner's state."""

    is_scanning: bool
    is_watching: bool
    last_scan_time: datetime | None = None
    projects_path: str


class FileSystemEvent(BaseModel):
    """A typed change notification published by the filesystem watcher."""

    type: FileSystemEventType = Field(description="Kind of change")
    path: str = Field(description="Path the change relates to")
    timestamp: datetime = Field(default_factory=_utcnow, description="When the change was observed")
    is_directory: bool = Field(default=False, description="True when the path is a directory")


# ---------------------------------------------------------------------------
# Detection
# ---------------------------------------------------------------------------


class FrameworkSignature(BaseModel):
    """Weighted indicator set used to score a directory against one project type.

    ``tie_break_rank`` makes table order explicit: when two signatures reach
    the same final score, the lower rank wins.  ``extends`` names a more
    generic signature whose evidence also counts for this one.
    """

    model_config = {"frozen": True}

    type: ProjectType
    file_indicators: tuple[str, ...] = ()
    folder_indicators: tuple[str, ...] = ()
    dependency_indicators: tuple[str, ...] = ()
    dev_dependency_indicators: tuple[str, ...] = ()
    script_indicators: tuple[str, ...] = ()
    base_confidence: float = Field(gt=0, le=1)
    priority: int = 0
    tie_break_rank: int = 0
    primary_dependency: str | None = None
    extends: ProjectType | None = None


class ProjectIndicators(BaseModel):
    """Marker files and folders found directly inside a directory."""

    package_json: bool = False
    deno_json: bool = False
    index_html: bool = False
    readme: bool = False
    git_repo: bool = False
    node_modules: bool = False
    src_folder: bool = False
    public_folder: bool = False
    build_folder: bool = False


class DetectedFramework(BaseModel):
    """Classification result for one directory."""

    type: ProjectType = Field(default=ProjectType.UNKNOWN, description="Best-matching project type")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0, description="Normalised score in [0, 1]")
    matched_indicators: list[str] = Field(default_factory=list, description="Evidence in discovery order")
    version: str | None = Field(default=None, description="Framework version, when it could be read")


class GitInfo(BaseModel):
    """Version-control facts read from a project's ``.git`` folder."""

    has_repo: bool = False
    current_branch: str | None = None


class ProjectCommands(BaseModel):
    """Commands taken from the manifest's script map."""

    build_command: str | None = None
    dev_command: str | None = None


class ProjectError(BaseModel):
    """Last error recorded against a project."""

    message: str
    timestamp: datetime = Field(default_factory=_utcnow)
    kind: ErrorKind


class ProjectDetection(BaseModel):
    """Everything the detector derives for a single directory."""

    name: str = Field(default="", description="Directory name")
    path: str = Field(default="", description="Absolute path to the directory")
    category: ProjectCategory = Field(default=ProjectCategory.PERSONAL)
    domain: str | None = None
    subdomain: str | None = None
    type: ProjectType = Field(default=ProjectType.UNKNOWN)
    framework: DetectedFramework = Field(default_factory=DetectedFramework)
    indicators: ProjectIndicators = Field(default_factory=ProjectIndicators)
    status: ProjectStatus = Field(default=ProjectStatus.PROPOSED)
    file_count: int = 0
    size: int = Field(default=0, description="Aggregate size in bytes of the directory's immediate files")
    last_modified: datetime | None = None
    last_scanned: datetime = Field(default_factory=_utcnow)
    git: GitInfo = Field(default_factory=GitInfo)
    display_name: str | None = None
    commands: ProjectCommands = Field(default_factory=ProjectCommands)
    last_error: ProjectError | None = None


class ProjectInfo(ProjectDetection):
    """Persisted project record, keyed by ``id`` in the metadata store."""

    id: str = Field(description="Stable project identifier")
    relative_path: str = Field(default="", description="Path relative to the projects root")
    tags: list[str] = Field(default_factory=list)
    notes: str | None = None


# ---------------------------------------------------------------------------
# Metadata document
# ---------------------------------------------------------------------------


class MetadataStats(BaseModel):
    """Aggregate counters kept alongside the project records."""

    total_scans: int = 0
    last_scan_duration: int = 0
    average_scan_duration: int = 0
    projects_by_type: dict[str, int] = Field(default_factory=dict)
    projects_by_category: dict[str, int] = Field(default_factory=dict)
    projects_by_status: dict[str, int] = Field(default_factory=dict)


class MetadataConfig(BaseModel):
    """Configuration snapshot stored in the metadata file."""

    projects_path: str = "./projects"
    last_config_update: datetime = Field(default_factory=_utcnow)
    version: str = "1.0.0"


class BackupInfo(BaseModel):
    """Bookkeeping for metadata file backups."""

    last_backup: datetime
    backup_count: int = 0
    auto_backup_enabled: bool = True


class PDEMetadata(BaseModel):
    """The whole JSON document written by the metadata store."""

    version: str = "1.0.0"
    last_update: datetime = Field(default_factory=_utcnow)
    total_projects: int = 0
    projects: dict[str, ProjectInfo] = Field(default_factory=dict)
    stats: MetadataStats = Field(default_factory=MetadataStats)
    config: MetadataConfig = Field(default_factory=MetadataConfig)
    backup: BackupInfo | None = None


class MetadataSummary(MetadataStats):
    """Response payload for ``GET /api/stats``."""

    total_projects: int = 0
    last_update: datetime | None = None


# ---------------------------------------------------------------------------
# Templates
# ---------------------------------------------------------------------------


class TemplateFile(BaseModel):
    """A file written when a project is created from a template."""

    path: str = Field(description="Path relative to the project folder")
    content: str = Field(description="File body")
    is_template: bool = Field(default=False, description="Whether {{variables}} are substituted")


class ProjectTemplate(BaseModel):
    """Scaffolding for a new project."""

    id: str
    name: str
    description: str
    category: TemplateCategory
    technologies: list[str] = Field(default_factory=list)
    folders: list[str] = Field(default_factory=list)
    files: list[TemplateFile] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# API payloads
# ---------------------------------------------------------------------------


class CreateProjectRequest(BaseModel):
    """Request body for ``POST /api/projects``."""

    name: str = Field(description="Project name")
    category: ProjectCategory = Field(description="Category folder to create the project under")
    template: str = Field(description="Template identifier")
    domain: str | None = Field(default=None, description="Domain folder, e.g. 'example.com'")
    subdomain: str | None = Field(default=None, description="Subdomain label, e.g. 'api'")
    description: str | None = Field(default=None, description="Free-text description for the template")


class CreateProjectResponse(BaseModel):
    """Response payload for ``POST /api/projects``."""

    success: bool = True
    message: str
    path: str = Field(description="Absolute path to the created project folder")
    project: ProjectInfo


class DeleteProjectResponse(BaseModel):
    """Response payload for ``DELETE /api/projects/{project_id}``."""

    success: bool = True
    message: str


class RemovedProject(BaseModel):
    """Identity of a record dropped by cleanup."""

    id: str
    name: str
    path: str


class CleanupResponse(BaseModel):
    """Response payload for ``POST /api/cleanup``."""

    success: bool = True
    message: str
    removed_count: int
    removed_projects: list[RemovedProject] = Field(default_factory=list)


class TemplatesResponse(BaseModel):
    """Response payload for ``GET /api/templates``."""

    success: bool = True
    templates: list[ProjectTemplate]
    total_count: int
    filtered_count: int


class HealthResponse(BaseModel):
    """Response payload for ``GET /api/health``."""

    status: str = Field(description="Health status string, e.g. 'ok'")
    timestamp: datetime = Field(default_factory=_utcnow)
    scanner: ScannerStats
    metadata_loaded: bool
    projects: int
