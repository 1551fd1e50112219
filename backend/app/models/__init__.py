"""Models package."""
from app.models.profile import ADMIN_ROLES, Profile, UserRole
from app.models.tags import CharacterTag, HookTag, Industry, ProfileListItem
from app.models.analysis import (
    PRIORITY_RANK,
    SHOOT_POSSIBILITY_VALUES,
    AnalysisStatus,
    PostingPlatform,
    Priority,
    ProductionStage,
    ViralAnalysis,
    analysis_character_tags,
    analysis_hook_tags,
)
from app.models.assignment import AssignmentRole, ProjectAssignment
from app.models.production_file import (
    EDITED_FILE_TYPES,
    RAW_FILE_TYPES,
    FileType,
    ProductionFile,
    normalize_file_type,
)
from app.models.project_skip import ProjectSkip
from app.models.audit import ActionAuditLog

__all__ = [
    "ADMIN_ROLES",
    "ActionAuditLog",
    "AnalysisStatus",
    "AssignmentRole",
    "CharacterTag",
    "EDITED_FILE_TYPES",
    "FileType",
    "HookTag",
    "Industry",
    "PRIORITY_RANK",
    "PostingPlatform",
    "Priority",
    "ProductionFile",
    "ProductionStage",
    "Profile",
    "ProfileListItem",
    "ProjectAssignment",
    "ProjectSkip",
    "RAW_FILE_TYPES",
    "SHOOT_POSSIBILITY_VALUES",
    "UserRole",
    "ViralAnalysis",
    "analysis_character_tags",
    "analysis_hook_tags",
    "normalize_file_type",
]
