"""Unit tests for onboarding pack compilation."""

from __future__ import annotations

from pathlib import Path

from onboardpack.interpret.tasks import fallback_tasks
from onboardpack.pipeline.artifacts import (
    MAX_EXTERNAL_DEPENDENCIES,
    compile_pack,
    fallback_architecture,
)
from onboardpack.pipeline.technology import LEARN_MCP_URL
from onboardpack.scanner.models import (
    BuildFile,
    BuildSystem,
    DependencyInfo,
    LanguageInfo,
    RepoMetadata,
)
from onboardpack.scanner.scanner import RepoScanner


class TestFallbackArchitecture:
    def test_without_metadata(self) -> None:
        assert fallback_architecture(None) == "Unable to analyze architecture."

    def test_describes_layout(self, node_repo: Path) -> None:
        text = fallback_architecture(RepoScanner(node_repo).scan())

        assert text == (
            "This TypeScript, JavaScript project has a standard structure "
            "with 3 main directories: .github, src, tests. "
            "The project uses npm for build management."
        )

    def test_without_build_file(self, bare_metadata: RepoMetadata) -> None:
        assert "uses custom for build management" in fallback_architecture(bare_metadata)


class TestCompilePack:
    def test_node_repository(self, node_repo: Path) -> None:
        metadata = RepoScanner(node_repo).scan()

        pack = compile_pack(
            metadata,
            "Layered service.",
            fallback_tasks(),
            "graph TD\n  A --> B",
            {"src/index.ts": "Entry point"},
        )

        onboarding = pack.onboarding
        assert onboarding.project_name == "sample-service"
        assert onboarding.architecture == "Layered service."
        assert onboarding.overview.startswith("sample-service is a TypeScript project with 4 dependencies.")
        assert onboarding.key_files == {"src/index.ts": "Entry point"}
        assert [f.name for f in onboarding.key_flows] == ["Build", "Application Startup"]
        assert onboarding.external_dependencies[0].purpose == "npm production dependency"

        runbook = pack.runbook
        assert [p.name for p in runbook.prerequisites] == ["Node.js", "Git"]
        assert runbook.build.commands == ["npm run build"]
        assert runbook.run.commands == ["npm start"]
        assert runbook.test.commands == ["npm test"]
        assert runbook.test.notes == "Test frameworks: Jest"
        assert [c.title for c in runbook.common_commands] == ["build", "test", "start"]

        assert len(pack.tasks) == 10
        assert pack.diagram == "graph TD\n  A --> B"
        assert pack.technologies == []

    def test_agents_doc(self, node_repo: Path) -> None:
        pack = compile_pack(RepoScanner(node_repo).scan(), "", fallback_tasks(), "graph TD")

        agents = pack.agents
        assert [s.name for s in agents.skills] == [
            "npm-build",
            "test-runner",
            "typescript-development",
            "javascript-development",
        ]
        assert [w.name for w in agents.workflows] == [
            "onboarding",
            "development",
            "ci-cd",
            "code-review",
        ]
        assert agents.mcp_servers[0].url == LEARN_MCP_URL

    def test_external_dependencies_capped(self, bare_metadata: RepoMetadata) -> None:
        metadata = bare_metadata.model_copy(
            update={
                "dependencies": [
                    DependencyInfo(name=f"pkg{i}", version="1.0", ecosystem="pip") for i in range(30)
                ]
            }
        )

        pack = compile_pack(metadata, "", fallback_tasks(), "graph TD")

        assert len(pack.onboarding.external_dependencies) == MAX_EXTERNAL_DEPENDENCIES

    def test_empty_repository(self, bare_metadata: RepoMetadata) -> None:
        pack = compile_pack(bare_metadata, "", fallback_tasks(), "graph TD")

        assert pack.onboarding.getting_started == "Clone the repository and follow the README instructions."
        assert pack.runbook.build.description == "No build system detected"
        assert [p.name for p in pack.runbook.prerequisites] == ["Git"]
        assert pack.runbook.common_commands == []
        assert pack.onboarding.key_flows == []

    def test_python_prerequisites(self, bare_metadata: RepoMetadata) -> None:
        metadata = bare_metadata.model_copy(
            update={
                "languages": [LanguageInfo(name="Python", percentage=90, file_count=9)],
                "build_files": [BuildFile(type=BuildSystem.PIP, path="requirements.txt")],
            }
        )

        pack = compile_pack(metadata, "", fallback_tasks(), "graph TD")

        assert [p.name for p in pack.runbook.prerequisites] == ["Python", "pip", "Git"]
        assert pack.runbook.test.commands == ["pytest"]
        assert pack.runbook.setup[0].commands == ["pip install -r requirements.txt"]
