"""Repository scanning for onboardpack."""

from onboardpack.scanner.models import (
    BuildFile,
    BuildSystem,
    ConfigFile,
    ConfigKind,
    DependencyInfo,
    DependencyKind,
    DirectoryNode,
    GitInfo,
    LanguageInfo,
    RepoMetadata,
)
from onboardpack.scanner.scanner import RepoScanner, format_structure_tree

__all__ = [
    "RepoScanner",
    "format_structure_tree",
    "RepoMetadata",
    "LanguageInfo",
    "BuildFile",
    "BuildSystem",
    "ConfigFile",
    "ConfigKind",
    "DependencyInfo",
    "DependencyKind",
    "DirectoryNode",
    "GitInfo",
]
