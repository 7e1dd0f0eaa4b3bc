"""Repository scanner.

Walks a repository once and extracts the metadata the pipeline consumes:
languages, build files, config files, the directory tree, dependencies,
entry points, test frameworks and git details.
"""

from __future__ import annotations

import fnmatch
import json
import re
from collections.abc import Iterator
from pathlib import Path
from typing import Any

import structlog

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

logger = structlog.get_logger(__name__)

MAX_TREE_DEPTH = 4
MAX_PROJECT_FILE_DEPTH = 2
MAX_TREE_CHILDREN = 20

LANGUAGE_EXTENSIONS: dict[str, str] = {
    ".ts": "TypeScript",
    ".tsx": "TypeScript",
    ".js": "JavaScript",
    ".jsx": "JavaScript",
    ".mjs": "JavaScript",
    ".cjs": "JavaScript",
    ".cs": "C#",
    ".fs": "F#",
    ".py": "Python",
    ".java": "Java",
    ".kt": "Kotlin",
    ".go": "Go",
    ".rs": "Rust",
    ".rb": "Ruby",
    ".php": "PHP",
    ".swift": "Swift",
    ".c": "C",
    ".cpp": "C++",
    ".h": "C/C++",
    ".hpp": "C++",
    ".vue": "Vue",
    ".svelte": "Svelte",
    ".sql": "SQL",
    ".sh": "Shell",
    ".ps1": "PowerShell",
    ".bicep": "Bicep",
    ".tf": "Terraform",
}

ROOT_BUILD_FILES: dict[str, BuildSystem] = {
    "package.json": BuildSystem.NPM,
    "yarn.lock": BuildSystem.YARN,
    "pnpm-lock.yaml": BuildSystem.PNPM,
    "pom.xml": BuildSystem.MAVEN,
    "build.gradle": BuildSystem.GRADLE,
    "build.gradle.kts": BuildSystem.GRADLE,
    "Makefile": BuildSystem.MAKE,
    "Cargo.toml": BuildSystem.CARGO,
    "go.mod": BuildSystem.GO,
    "requirements.txt": BuildSystem.PIP,
    "pyproject.toml": BuildSystem.PIP,
    "Pipfile": BuildSystem.PIP,
}

DOTNET_PROJECT_SUFFIXES = (".csproj", ".fsproj", ".sln")

CONFIG_FILES: dict[str, ConfigKind] = {
    ".env": ConfigKind.ENV,
    ".env.example": ConfigKind.ENV,
    ".env.local": ConfigKind.ENV,
    "Dockerfile": ConfigKind.DOCKER,
    "docker-compose.yml": ConfigKind.DOCKER,
    "docker-compose.yaml": ConfigKind.DOCKER,
    "azure-pipelines.yml": ConfigKind.CI,
    ".gitlab-ci.yml": ConfigKind.CI,
    "Jenkinsfile": ConfigKind.CI,
    ".editorconfig": ConfigKind.EDITOR,
    ".prettierrc": ConfigKind.LINTER,
    ".eslintrc": ConfigKind.LINTER,
    "tsconfig.json": ConfigKind.OTHER,
}

COMMON_ENTRY_POINTS = (
    "src/index.ts",
    "src/main.ts",
    "src/app.ts",
    "src/index.js",
    "src/main.js",
    "index.ts",
    "index.js",
    "main.py",
    "app.py",
    "Program.cs",
    "main.go",
    "cmd/main.go",
)

NPM_TEST_FRAMEWORKS = {
    "jest": "Jest",
    "vitest": "Vitest",
    "mocha": "Mocha",
    "@playwright/test": "Playwright",
    "cypress": "Cypress",
}

DOTNET_TEST_MARKERS = {"xunit": "xUnit", "NUnit": "NUnit", "MSTest": "MSTest"}

IGNORED_DIRS = frozenset(
    {
        "node_modules",
        ".git",
        "dist",
        "build",
        "out",
        "bin",
        "obj",
        ".vs",
        ".vscode",
        ".idea",
        "__pycache__",
        ".pytest_cache",
        "venv",
        ".venv",
        "target",
        "vendor",
        "coverage",
        ".next",
        ".nuxt",
    }
)

_REQUIREMENT_LINE = re.compile(r"^([a-zA-Z0-9_-]+)([=<>!~]+.*)?$")
_PACKAGE_REFERENCE = re.compile(r'<PackageReference\s+Include="([^"]+)"(?:\s+Version="([^"]+)")?')
_ORIGIN_URL = re.compile(r'\[remote "origin"\][\s\S]*?url = (.+)')
_HEAD_REF = re.compile(r"ref: refs/heads/(.+)")


class RepoScanner:
    """Extracts :class:`RepoMetadata` from a repository on disk.

    Directories in :data:`IGNORED_DIRS` and simple ``.gitignore`` patterns
    are skipped during every walk.

    Attributes:
        repo_path: Absolute path of the repository root
    """

    def __init__(self, repo_path: Path | str) -> None:
        self.repo_path = Path(repo_path).resolve()
        self._ignore_patterns: list[str] = []

    def _load_gitignore(self) -> None:
        gitignore = self.repo_path / ".gitignore"
        self._ignore_patterns = []
        if not gitignore.is_file():
            return
        for line in gitignore.read_text(encoding="utf-8", errors="replace").splitlines():
            line = line.strip()
            if line and not line.startswith(("#", "!")):
                self._ignore_patterns.append(line.strip("/"))

    def _is_ignored(self, path: Path) -> bool:
        if path.name in IGNORED_DIRS:
            return True
        rel = path.relative_to(self.repo_path).as_posix()
        return any(
            fnmatch.fnmatch(rel, pattern) or fnmatch.fnmatch(path.name, pattern)
            for pattern in self._ignore_patterns
        )

    def _entries(self, directory: Path) -> list[Path]:
        try:
            return [p for p in directory.iterdir() if not self._is_ignored(p)]
        except OSError as e:
            logger.warning("scan_directory_unreadable", path=str(directory), error=str(e))
            return []

    def scan(self) -> RepoMetadata:
        """Scan the repository.

        Returns:
            Collected repository metadata

        Raises:
            FileNotFoundError: If the repository path is not a directory
        """
        if not self.repo_path.is_dir():
            raise FileNotFoundError(f"Repository path not found: {self.repo_path}")

        self._load_gitignore()
        logger.info("repo_scan_started", repo=str(self.repo_path))

        structure = self._scan_directory(self.repo_path, 0)
        build_files = self._find_build_files()
        package_json = self._load_package_json(build_files)
        metadata = RepoMetadata(
            name=self.repo_path.name,
            path=str(self.repo_path),
            languages=self._detect_languages(),
            build_files=build_files,
            config_files=self._find_config_files(),
            structure=structure,
            dependencies=self._extract_dependencies(build_files),
            entry_points=self._find_entry_points(package_json),
            test_frameworks=self._detect_test_frameworks(build_files, package_json),
            git_info=self._git_info(),
        )

        logger.info(
            "repo_scan_completed",
            repo=metadata.name,
            languages=[lang.name for lang in metadata.languages],
            build_files=len(metadata.build_files),
            dependencies=len(metadata.dependencies),
        )
        return metadata

    def _scan_directory(self, directory: Path, depth: int) -> DirectoryNode:
        children: list[DirectoryNode] = []
        for entry in self._entries(directory):
            if entry.is_dir():
                if depth < MAX_TREE_DEPTH:
                    children.append(self._scan_directory(entry, depth + 1))
            elif entry.is_file():
                children.append(
                    DirectoryNode(
                        name=entry.name,
                        is_dir=False,
                        size=entry.stat().st_size,
                        extension=entry.suffix,
                    )
                )
        children.sort(key=lambda node: (not node.is_dir, node.name.lower()))
        return DirectoryNode(name=directory.name, is_dir=True, children=children)

    def _walk_files(
        self, directory: Path, max_depth: int | None = None, depth: int = 0
    ) -> Iterator[Path]:
        for entry in self._entries(directory):
            if entry.is_dir():
                if max_depth is None or depth < max_depth:
                    yield from self._walk_files(entry, max_depth, depth + 1)
            elif entry.is_file():
                yield entry

    def _detect_languages(self) -> list[LanguageInfo]:
        counts: dict[str, int] = {}
        extensions: dict[str, set[str]] = {}
        total = 0

        for path in self._walk_files(self.repo_path):
            ext = path.suffix.lower()
            lang = LANGUAGE_EXTENSIONS.get(ext)
            if lang is None:
                continue
            total += 1
            counts[lang] = counts.get(lang, 0) + 1
            extensions.setdefault(lang, set()).add(ext)

        languages = [
            LanguageInfo(
                name=name,
                file_count=count,
                percentage=round(count / max(total, 1) * 100),
                extensions=sorted(extensions[name]),
            )
            for name, count in counts.items()
        ]
        languages.sort(key=lambda lang: lang.file_count, reverse=True)
        return languages

    def _relative(self, path: Path) -> str:
        return path.relative_to(self.repo_path).as_posix()

    def _find_build_files(self) -> list[BuildFile]:
        build_files: list[BuildFile] = []

        for name, system in ROOT_BUILD_FILES.items():
            path = self.repo_path / name
            if not path.is_file():
                continue
            scripts: dict[str, str] = {}
            if name == "package.json":
                scripts = {
                    key: value
                    for key, value in _json_object(_read_json(path).get("scripts")).items()
                    if isinstance(value, str)
                }
            build_files.append(BuildFile(type=system, path=name, scripts=scripts))

        for path in self._walk_files(self.repo_path, max_depth=MAX_PROJECT_FILE_DEPTH):
            if path.suffix in DOTNET_PROJECT_SUFFIXES:
                build_files.append(BuildFile(type=BuildSystem.DOTNET, path=self._relative(path)))

        return build_files

    def _find_config_files(self) -> list[ConfigFile]:
        config_files = [
            ConfigFile(type=kind, path=name)
            for name, kind in CONFIG_FILES.items()
            if (self.repo_path / name).exists()
        ]

        workflows = self.repo_path / ".github" / "workflows"
        if workflows.is_dir():
            for wf in sorted(workflows.iterdir()):
                if wf.suffix in (".yml", ".yaml"):
                    config_files.append(
                        ConfigFile(
                            type=ConfigKind.CI,
                            path=f".github/workflows/{wf.name}",
                            description="GitHub Actions workflow",
                        )
                    )
        return config_files

    def _extract_dependencies(self, build_files: list[BuildFile]) -> list[DependencyInfo]:
        dependencies: list[DependencyInfo] = []

        for build_file in build_files:
            path = self.repo_path / build_file.path

            if build_file.path == "package.json":
                pkg = _read_json(path)
                for key, kind in (
                    ("dependencies", DependencyKind.PRODUCTION),
                    ("devDependencies", DependencyKind.DEVELOPMENT),
                    ("peerDependencies", DependencyKind.PEER),
                ):
                    for name, version in _json_object(pkg.get(key)).items():
                        dependencies.append(
                            DependencyInfo(
                                name=name,
                                version=version if isinstance(version, str) else None,
                                type=kind,
                                ecosystem="npm",
                            )
                        )

            elif build_file.path == "requirements.txt":
                for line in _read_text(path).splitlines():
                    line = line.strip()
                    if not line or line.startswith("#"):
                        continue
                    match = _REQUIREMENT_LINE.match(line)
                    if match:
                        version = match.group(2)
                        dependencies.append(
                            DependencyInfo(
                                name=match.group(1),
                                version=version.lstrip("=<>!~") if version else None,
                                ecosystem="pip",
                            )
                        )

            elif build_file.type == BuildSystem.DOTNET:
                for match in _PACKAGE_REFERENCE.finditer(_read_text(path)):
                    dependencies.append(
                        DependencyInfo(name=match.group(1), version=match.group(2), ecosystem="nuget")
                    )

        return dependencies

    def _load_package_json(self, build_files: list[BuildFile]) -> dict[str, Any]:
        if not any(bf.path == "package.json" for bf in build_files):
            return {}
        return _read_json(self.repo_path / "package.json")

    def _find_entry_points(self, package_json: dict[str, Any]) -> list[str]:
        entry_points: list[str] = []

        main = package_json.get("main")
        if isinstance(main, str):
            entry_points.append(main)
        bin_field = package_json.get("bin")
        if isinstance(bin_field, str):
            entry_points.append(bin_field)
        elif isinstance(bin_field, dict):
            entry_points.extend(v for v in bin_field.values() if isinstance(v, str))

        for candidate in COMMON_ENTRY_POINTS:
            if (self.repo_path / candidate).exists() and candidate not in entry_points:
                entry_points.append(candidate)
        return entry_points

    def _detect_test_frameworks(
        self, build_files: list[BuildFile], package_json: dict[str, Any]
    ) -> list[str]:
        frameworks: list[str] = []

        dev_deps = _json_object(package_json.get("devDependencies"))
        frameworks.extend(label for dep, label in NPM_TEST_FRAMEWORKS.items() if dep in dev_deps)

        if (self.repo_path / "pytest.ini").exists() or (self.repo_path / "conftest.py").exists():
            frameworks.append("pytest")

        for build_file in build_files:
            if build_file.type != BuildSystem.DOTNET:
                continue
            content = _read_text(self.repo_path / build_file.path)
            frameworks.extend(label for marker, label in DOTNET_TEST_MARKERS.items() if marker in content)

        return list(dict.fromkeys(frameworks))

    def _git_info(self) -> GitInfo | None:
        git_dir = self.repo_path / ".git"
        if not git_dir.exists():
            return None

        info = GitInfo(has_github_actions=(self.repo_path / ".github" / "workflows").exists())
        remote = _ORIGIN_URL.search(_read_text(git_dir / "config"))
        if remote:
            info.remote_url = remote.group(1).strip()
        head = _HEAD_REF.search(_read_text(git_dir / "HEAD"))
        if head:
            info.default_branch = head.group(1).strip()
        return info

    def read_file(self, relative_path: str) -> str:
        """Read a repository file as UTF-8 text.

        Raises:
            OSError: If the file cannot be read
        """
        return (self.repo_path / relative_path).read_text(encoding="utf-8", errors="replace")


def format_structure_tree(node: DirectoryNode, prefix: str = "", is_last: bool = True) -> str:
    """Render a directory tree with box-drawing connectors.

    At most :data:`MAX_TREE_CHILDREN` children are shown per directory,
    followed by a ``... (N more)`` marker.
    """
    if prefix:
        connector = "└── " if is_last else "├── "
        lines = [f"{prefix}{connector}{node.name}{'/' if node.is_dir else ''}"]
    else:
        lines = [f"{node.name}/"]

    extension = "    " if is_last else "│   "
    shown = node.children[:MAX_TREE_CHILDREN]
    hidden = len(node.children) - len(shown)

    for index, child in enumerate(shown):
        child_is_last = index == len(shown) - 1 and hidden == 0
        lines.append(format_structure_tree(child, prefix + extension, child_is_last))
    if hidden > 0:
        lines.append(f"{prefix}{extension}└── ... ({hidden} more)")

    return "\n".join(lines)


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError:
        return ""


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(_read_text(path))
    except json.JSONDecodeError as e:
        logger.warning("scan_json_unparseable", path=str(path), error=str(e))
        return {}
    return data if isinstance(data, dict) else {}


def _json_object(value: Any) -> dict[str, Any]:
    """Return ``value`` if it is a JSON object, else an empty mapping."""
    return value if isinstance(value, dict) else {}
