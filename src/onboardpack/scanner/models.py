"""Repository metadata records produced by :class:`RepoScanner`."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class BuildSystem(str, Enum):
    """Build or package manager a build file belongs to."""

    NPM = "npm"
    YARN = "yarn"
    PNPM = "pnpm"
    DOTNET = "dotnet"
    MAVEN = "maven"
    GRADLE = "gradle"
    MAKE = "make"
    CARGO = "cargo"
    GO = "go"
    PIP = "pip"
    OTHER = "other"


class ConfigKind(str, Enum):
    ENV = "env"
    DOCKER = "docker"
    CI = "ci"
    EDITOR = "editor"
    LINTER = "linter"
    OTHER = "other"


class DependencyKind(str, Enum):
    PRODUCTION = "production"
    DEVELOPMENT = "development"
    PEER = "peer"


class LanguageInfo(BaseModel):
    """Share of recognised source files written in one language.

    Attributes:
        name: Language name (e.g. "TypeScript")
        percentage: Rounded share of recognised files, 0-100
        file_count: Number of files counted for the language
        extensions: File extensions seen for the language
    """

    name: str
    percentage: int = Field(ge=0, le=100)
    file_count: int = Field(ge=0)
    extensions: list[str] = Field(default_factory=list)


class BuildFile(BaseModel):
    """A build descriptor found in the repository.

    Attributes:
        type: Build system the file belongs to
        path: Path relative to the repository root, ``/``-separated
        scripts: Named scripts (``package.json`` only)
    """

    type: BuildSystem
    path: str
    scripts: dict[str, str] = Field(default_factory=dict)


class ConfigFile(BaseModel):
    type: ConfigKind
    path: str
    description: str | None = None


class DirectoryNode(BaseModel):
    """One entry of the scanned directory tree."""

    name: str
    is_dir: bool
    children: list[DirectoryNode] = Field(default_factory=list)
    size: int | None = None
    extension: str | None = None

    @property
    def child_dirs(self) -> list[DirectoryNode]:
        return [c for c in self.children if c.is_dir]


class DependencyInfo(BaseModel):
    name: str
    version: str | None = None
    type: DependencyKind = DependencyKind.PRODUCTION
    ecosystem: str


class GitInfo(BaseModel):
    remote_url: str | None = None
    default_branch: str | None = None
    has_github_actions: bool = False


class RepoMetadata(BaseModel):
    """Everything the pipeline knows about a scanned repository.

    Attributes:
        name: Repository directory name
        path: Absolute repository path
        languages: Detected languages, most files first
        build_files: Build descriptors
        config_files: Configuration and CI files
        structure: Directory tree rooted at the repository
        dependencies: Declared dependencies across ecosystems
        entry_points: Likely program entry points
        test_frameworks: Detected test frameworks
        git_info: Git remote and branch, if the repository has a ``.git`` dir
    """

    name: str
    path: str
    languages: list[LanguageInfo] = Field(default_factory=list)
    build_files: list[BuildFile] = Field(default_factory=list)
    config_files: list[ConfigFile] = Field(default_factory=list)
    structure: DirectoryNode
    dependencies: list[DependencyInfo] = Field(default_factory=list)
    entry_points: list[str] = Field(default_factory=list)
    test_frameworks: list[str] = Field(default_factory=list)
    git_info: GitInfo | None = None

    @property
    def top_level_dirs(self) -> list[str]:
        """Names of the directories directly under the repository root."""
        return [c.name for c in self.structure.child_dirs]

    @property
    def primary_build_file(self) -> BuildFile | None:
        return self.build_files[0] if self.build_files else None

    def has_language(self, name: str) -> bool:
        return any(lang.name.lower() == name.lower() for lang in self.languages)

    def has_file_extension(self, ext: str) -> bool:
        """Whether any file in the scanned tree ends with ``ext``."""
        stack = [self.structure]
        while stack:
            node = stack.pop()
            if not node.is_dir and node.name.endswith(ext):
                return True
            stack.extend(node.children)
        return False
