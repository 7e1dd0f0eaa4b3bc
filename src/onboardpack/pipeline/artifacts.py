"""Onboarding pack records and their deterministic compilation.

Everything here is derived from :class:`RepoMetadata` alone, apart from
the architecture text, tasks and diagram handed in by the pipeline.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence

from pydantic import BaseModel, Field

from onboardpack.interpret.tasks import StarterTask
from onboardpack.pipeline.technology import LEARN_MCP_URL, TechnologyDetection
from onboardpack.scanner.models import BuildFile, BuildSystem, ConfigKind, RepoMetadata

MAX_EXTERNAL_DEPENDENCIES = 20
MAX_COMMON_COMMANDS = 10

_NODE_SYSTEMS = (BuildSystem.NPM, BuildSystem.YARN, BuildSystem.PNPM)


class KeyFlow(BaseModel):
    name: str
    description: str
    steps: list[str] = Field(default_factory=list)
    involved_files: list[str] = Field(default_factory=list)


class ExternalDependency(BaseModel):
    name: str
    purpose: str
    version: str | None = None


class OnboardingDoc(BaseModel):
    project_name: str
    overview: str
    architecture: str
    key_flows: list[KeyFlow] = Field(default_factory=list)
    external_dependencies: list[ExternalDependency] = Field(default_factory=list)
    key_files: dict[str, str] = Field(default_factory=dict)
    getting_started: str


class Prerequisite(BaseModel):
    name: str
    description: str
    install_command: str | None = None
    verify_command: str | None = None


class SetupStep(BaseModel):
    order: int
    title: str
    description: str
    commands: list[str] = Field(default_factory=list)


class CommandBlock(BaseModel):
    title: str
    description: str
    commands: list[str] = Field(default_factory=list)
    notes: str | None = None


class TroubleshootingItem(BaseModel):
    problem: str
    solution: str
    commands: list[str] = Field(default_factory=list)


class RunbookDoc(BaseModel):
    prerequisites: list[Prerequisite] = Field(default_factory=list)
    setup: list[SetupStep] = Field(default_factory=list)
    build: CommandBlock
    run: CommandBlock
    test: CommandBlock
    troubleshooting: list[TroubleshootingItem] = Field(default_factory=list)
    common_commands: list[CommandBlock] = Field(default_factory=list)


class AgentSkill(BaseModel):
    name: str
    description: str
    triggers: list[str] = Field(default_factory=list)


class AgentMcpServer(BaseModel):
    name: str
    url: str
    tools: list[str] = Field(default_factory=list)


class AgentWorkflow(BaseModel):
    name: str
    description: str
    steps: list[str] = Field(default_factory=list)


class AgentsDoc(BaseModel):
    project_name: str
    description: str
    skills: list[AgentSkill] = Field(default_factory=list)
    mcp_servers: list[AgentMcpServer] = Field(default_factory=list)
    workflows: list[AgentWorkflow] = Field(default_factory=list)


class OnboardingPack(BaseModel):
    """The compiled result of a pipeline run.

    Attributes:
        onboarding: Overview, architecture and dependency map
        runbook: Prerequisites, setup and everyday commands
        tasks: Exactly ten starter tasks
        agents: Coding-agent configuration
        diagram: Mermaid flowchart text
        technologies: Detected technologies with documentation queries
    """

    onboarding: OnboardingDoc
    runbook: RunbookDoc
    tasks: list[StarterTask]
    agents: AgentsDoc
    diagram: str
    technologies: list[TechnologyDetection] = Field(default_factory=list)


def fallback_architecture(metadata: RepoMetadata | None) -> str:
    """Describe the layout without a model."""
    if metadata is None:
        return "Unable to analyze architecture."

    top_dirs = metadata.top_level_dirs
    languages = ", ".join(lang.name for lang in metadata.languages)
    build = metadata.primary_build_file
    shape = "monorepo" if len(top_dirs) > 5 else "standard"
    return (
        f"This {languages} project has a {shape} structure "
        f"with {len(top_dirs)} main directories: {', '.join(top_dirs[:5])}. "
        f"The project uses {build.type.value if build else 'custom'} for build management."
    )


def _overview(metadata: RepoMetadata) -> str:
    primary = metadata.languages[0].name if metadata.languages else "Unknown"
    languages = ", ".join(f"{lang.name} ({lang.percentage}%)" for lang in metadata.languages[:3])
    frameworks = ", ".join(metadata.test_frameworks) or "None detected"
    return (
        f"{metadata.name} is a {primary} project with {len(metadata.dependencies)} dependencies. "
        f"Languages used: {languages}. "
        f"Test frameworks: {frameworks}."
    )


_BUILD_STEPS: dict[BuildSystem, list[str]] = {
    BuildSystem.NPM: ["Install dependencies", "Run build script", "Output to dist/build folder"],
    BuildSystem.YARN: ["Install dependencies", "Run build script", "Output to dist/build folder"],
    BuildSystem.PNPM: ["Install dependencies", "Run build script", "Output to dist/build folder"],
    BuildSystem.DOTNET: ["Restore NuGet packages", "Build solution", "Output to bin folder"],
    BuildSystem.MAVEN: ["Download dependencies", "Compile sources", "Package artifact"],
    BuildSystem.CARGO: ["Fetch crates", "Compile Rust code", "Output to target folder"],
    BuildSystem.GO: ["Download modules", "Build binary", "Output executable"],
}


def _key_flows(metadata: RepoMetadata) -> list[KeyFlow]:
    flows: list[KeyFlow] = []
    build = metadata.primary_build_file
    if build is not None:
        flows.append(
            KeyFlow(
                name="Build",
                description=f"Build the project using {build.type.value}",
                steps=_BUILD_STEPS.get(build.type, ["Install dependencies", "Run build command"]),
                involved_files=[build.path],
            )
        )
    if metadata.entry_points:
        flows.append(
            KeyFlow(
                name="Application Startup",
                description="Main entry point and initialization",
                steps=["Load configuration", "Initialize dependencies", "Start main process"],
                involved_files=list(metadata.entry_points),
            )
        )
    return flows


_GETTING_STARTED: dict[BuildSystem, str] = {
    BuildSystem.NPM: "Run `npm install` to install dependencies, then `npm run dev` or `npm start` to run the project.",
    BuildSystem.YARN: "Run `yarn` to install dependencies, then `yarn dev` or `yarn start` to run the project.",
    BuildSystem.PNPM: "Run `pnpm install` to install dependencies, then `pnpm dev` or `pnpm start` to run the project.",
    BuildSystem.DOTNET: "Run `dotnet restore` to restore packages, then `dotnet run` to start the application.",
    BuildSystem.PIP: (
        "Create a virtual environment, install dependencies with "
        "`pip install -r requirements.txt`, then run the main script."
    ),
    BuildSystem.CARGO: "Run `cargo build` to compile, then `cargo run` to execute.",
    BuildSystem.GO: "Run `go mod download` for dependencies, then `go run .` to start.",
}


def _getting_started(metadata: RepoMetadata) -> str:
    build = metadata.primary_build_file
    if build is None:
        return "Clone the repository and follow the README instructions."
    return _GETTING_STARTED.get(build.type, "Check the build configuration files for instructions.")


_PYTHON = Prerequisite(
    name="Python",
    description="Python interpreter (v3.10+ recommended)",
    install_command="Download from python.org or use pyenv",
    verify_command="python --version",
)

_TOOLCHAINS: dict[BuildSystem, list[Prerequisite]] = {
    BuildSystem.DOTNET: [
        Prerequisite(
            name=".NET SDK",
            description=".NET development kit (v8+ recommended)",
            install_command="Download from dotnet.microsoft.com",
            verify_command="dotnet --version",
        )
    ],
    BuildSystem.PIP: [_PYTHON],
    BuildSystem.GO: [
        Prerequisite(
            name="Go",
            description="Go programming language (v1.21+ recommended)",
            install_command="Download from go.dev",
            verify_command="go version",
        )
    ],
    BuildSystem.CARGO: [
        Prerequisite(
            name="Rust",
            description="Rust toolchain",
            install_command='curl --proto "=https" --tlsv1.2 -sSf https://sh.rustup.rs | sh',
            verify_command="rustc --version",
        )
    ],
}

_NODE = Prerequisite(
    name="Node.js",
    description="JavaScript runtime (v18+ recommended)",
    install_command="Download from nodejs.org or use nvm",
    verify_command="node --version",
)

_NODE_PACKAGE_MANAGERS: dict[BuildSystem, Prerequisite] = {
    BuildSystem.YARN: Prerequisite(
        name="Yarn",
        description="Package manager",
        install_command="npm install -g yarn",
        verify_command="yarn --version",
    ),
    BuildSystem.PNPM: Prerequisite(
        name="pnpm",
        description="Fast package manager",
        install_command="npm install -g pnpm",
        verify_command="pnpm --version",
    ),
}


def _prerequisites(metadata: RepoMetadata) -> list[Prerequisite]:
    prereqs: list[Prerequisite] = []
    build = metadata.primary_build_file

    if build is not None:
        if build.type in _NODE_SYSTEMS:
            prereqs.append(_NODE)
            if build.type in _NODE_PACKAGE_MANAGERS:
                prereqs.append(_NODE_PACKAGE_MANAGERS[build.type])
        else:
            prereqs.extend(_TOOLCHAINS.get(build.type, []))

    python = next((lang for lang in metadata.languages if lang.name.lower() == "python"), None)
    if python is not None and not any(p.name == "Python" for p in prereqs):
        prereqs.insert(
            0,
            _PYTHON.model_copy(
                update={
                    "description": (
                        f"Python interpreter (v3.10+ recommended), "
                        f"{python.percentage}% of codebase"
                    )
                }
            ),
        )

    if metadata.has_file_extension(".ipynb"):
        prereqs.append(
            Prerequisite(
                name="Jupyter",
                description="Notebook environment for running .ipynb files",
                install_command="pip install jupyter",
                verify_command="jupyter --version",
            )
        )

    if metadata.has_language("bicep") or metadata.has_file_extension(".bicep"):
        prereqs.append(
            Prerequisite(
                name="Azure CLI",
                description="Azure command-line interface for deploying Bicep/ARM templates",
                install_command="Download from learn.microsoft.com/cli/azure/install-azure-cli",
                verify_command="az --version",
            )
        )

    has_host_json = any("host.json" in cf.path for cf in metadata.config_files)
    if has_host_json or any("function_app" in ep for ep in metadata.entry_points):
        prereqs.append(
            Prerequisite(
                name="Azure Functions Core Tools",
                description="Local development tools for Azure Functions",
                install_command="npm install -g azure-functions-core-tools@4",
                verify_command="func --version",
            )
        )

    has_requirements = any("requirements.txt" in bf.path for bf in metadata.build_files)
    if has_requirements and python is not None:
        prereqs.append(
            Prerequisite(
                name="pip",
                description="Python package manager (usually included with Python)",
                install_command="python -m ensurepip --upgrade",
                verify_command="pip --version",
            )
        )

    prereqs.append(
        Prerequisite(
            name="Git",
            description="Version control system",
            install_command="Download from git-scm.com",
            verify_command="git --version",
        )
    )
    return prereqs


_INSTALL_COMMANDS: dict[BuildSystem, str] = {
    BuildSystem.NPM: "npm install",
    BuildSystem.YARN: "yarn",
    BuildSystem.PNPM: "pnpm install",
    BuildSystem.DOTNET: "dotnet restore",
    BuildSystem.PIP: "pip install -r requirements.txt",
    BuildSystem.CARGO: "cargo fetch",
    BuildSystem.GO: "go mod download",
    BuildSystem.MAVEN: "mvn dependency:resolve",
    BuildSystem.GRADLE: "./gradlew dependencies",
}


def _setup_steps(metadata: RepoMetadata) -> list[SetupStep]:
    steps: list[tuple[str, str, list[str]]] = []

    if metadata.git_info and metadata.git_info.remote_url:
        steps.append(
            (
                "Clone the repository",
                "Get the source code",
                [f"git clone {metadata.git_info.remote_url}", f"cd {metadata.name}"],
            )
        )

    build = metadata.primary_build_file
    if build is not None and build.type in _INSTALL_COMMANDS:
        steps.append(
            (
                "Install dependencies",
                f"Use {build.type.value} to install project dependencies",
                [_INSTALL_COMMANDS[build.type]],
            )
        )

    if any(cf.type == ConfigKind.ENV for cf in metadata.config_files):
        steps.append(
            (
                "Configure environment",
                "Set up environment variables",
                ["cp .env.example .env", "# Edit .env with your values"],
            )
        )

    return [
        SetupStep(order=i, title=title, description=description, commands=commands)
        for i, (title, description, commands) in enumerate(steps, 1)
    ]


def _script_command(build: BuildFile, script: str, *, npm_bare: bool = False) -> str:
    if build.type == BuildSystem.YARN:
        return f"yarn {script}"
    if build.type == BuildSystem.PNPM:
        return f"pnpm {script}"
    return f"npm {script}" if npm_bare else f"npm run {script}"


def _build_command(metadata: RepoMetadata) -> CommandBlock:
    build = metadata.primary_build_file
    if build is None:
        return CommandBlock(
            title="Build",
            description="No build system detected",
            commands=["# Check project documentation for build instructions"],
        )

    if build.type in _NODE_SYSTEMS:
        commands = (
            [_script_command(build, "build")] if "build" in build.scripts else ["# No build script defined"]
        )
    else:
        commands = {
            BuildSystem.DOTNET: ["dotnet build"],
            BuildSystem.CARGO: ["cargo build --release"],
            BuildSystem.GO: ["go build -o bin/app ."],
            BuildSystem.MAVEN: ["mvn package"],
            BuildSystem.GRADLE: ["./gradlew build"],
        }.get(build.type, ["# Check project documentation"])

    return CommandBlock(
        title="Build", description=f"Build the project using {build.type.value}", commands=commands
    )


def _run_command(metadata: RepoMetadata) -> CommandBlock:
    build = metadata.primary_build_file
    if build is None:
        commands = ["# Check project documentation"]
    elif build.type in _NODE_SYSTEMS:
        if "start" in build.scripts:
            commands = [_script_command(build, "start", npm_bare=True)]
        elif "dev" in build.scripts:
            commands = [_script_command(build, "dev")]
        else:
            commands = ["node dist/index.js"]
    else:
        commands = {
            BuildSystem.DOTNET: ["dotnet run"],
            BuildSystem.CARGO: ["cargo run"],
            BuildSystem.GO: ["go run ."],
            BuildSystem.PIP: ["python main.py"],
        }.get(build.type, ["# Check project documentation"])

    return CommandBlock(title="Run", description="Start the application", commands=commands)


def _test_command(metadata: RepoMetadata) -> CommandBlock:
    build = metadata.primary_build_file
    if build is None:
        commands = ["# Check project documentation"]
    elif build.type in _NODE_SYSTEMS:
        commands = (
            [_script_command(build, "test", npm_bare=True)]
            if "test" in build.scripts
            else ["# No test script defined"]
        )
    else:
        commands = {
            BuildSystem.DOTNET: ["dotnet test"],
            BuildSystem.CARGO: ["cargo test"],
            BuildSystem.GO: ["go test ./..."],
            BuildSystem.PIP: ["pytest"],
            BuildSystem.MAVEN: ["mvn test"],
            BuildSystem.GRADLE: ["./gradlew test"],
        }.get(build.type, ["# Check project documentation"])

    notes = (
        f"Test frameworks: {', '.join(metadata.test_frameworks)}"
        if metadata.test_frameworks
        else "No test framework detected"
    )
    return CommandBlock(
        title="Test", description="Run the test suite", commands=commands, notes=notes
    )


def _troubleshooting(metadata: RepoMetadata) -> list[TroubleshootingItem]:
    items: list[TroubleshootingItem] = []
    build = metadata.primary_build_file

    if build is not None and build.type in _NODE_SYSTEMS:
        items.append(
            TroubleshootingItem(
                problem="node_modules issues or dependency conflicts",
                solution="Delete node_modules and lock file, then reinstall",
                commands=["rm -rf node_modules", "rm package-lock.json", "npm install"],
            )
        )
        items.append(
            TroubleshootingItem(
                problem="Port already in use",
                solution="Kill the process using the port or use a different port",
                commands=["# Find process: lsof -i :3000", "# Kill: kill -9 <PID>"],
            )
        )
    if build is not None and build.type == BuildSystem.DOTNET:
        items.append(
            TroubleshootingItem(
                problem="Package restore fails",
                solution="Clear NuGet cache and restore",
                commands=["dotnet nuget locals all --clear", "dotnet restore"],
            )
        )

    items.append(
        TroubleshootingItem(
            problem="Environment variables not loaded",
            solution="Ensure .env file exists and is properly configured",
            commands=["cp .env.example .env", "# Edit .env with your values"],
        )
    )
    return items


def _common_commands(metadata: RepoMetadata) -> list[CommandBlock]:
    build = metadata.primary_build_file
    if build is None:
        return []
    return [
        CommandBlock(
            title=name, description=script[:80], commands=[_script_command(build, name)]
        )
        for name, script in list(build.scripts.items())[:MAX_COMMON_COMMANDS]
    ]


def _agents_doc(metadata: RepoMetadata) -> AgentsDoc:
    build = metadata.primary_build_file
    skills: list[AgentSkill] = []

    if build is not None:
        skills.append(
            AgentSkill(
                name=f"{build.type.value}-build",
                description=f"Build and manage the {build.type.value} project",
                triggers=["build", "install dependencies", "compile"],
            )
        )
    if metadata.test_frameworks:
        skills.append(
            AgentSkill(
                name="test-runner",
                description=f"Run tests using {', '.join(metadata.test_frameworks)}",
                triggers=["run tests", "test coverage", "check tests"],
            )
        )
    for lang in metadata.languages[:3]:
        skills.append(
            AgentSkill(
                name=f"{lang.name.lower()}-development",
                description=f"Develop and review {lang.name} code",
                triggers=[f"write {lang.name}", f"review {lang.name}", f"refactor {lang.name}"],
            )
        )

    workflows = [
        AgentWorkflow(
            name="onboarding",
            description="New contributor onboarding workflow",
            steps=["Clone repository", "Install dependencies", "Run tests", "Read ONBOARDING.md"],
        )
    ]
    if build is not None and "build" in build.scripts:
        workflows.append(
            AgentWorkflow(
                name="development",
                description="Standard development workflow",
                steps=["Create feature branch", "Make changes", "Run tests", "Build project", "Submit PR"],
            )
        )
    if any(cf.type == ConfigKind.CI for cf in metadata.config_files):
        workflows.append(
            AgentWorkflow(
                name="ci-cd",
                description="Continuous integration and deployment",
                steps=["Push to branch", "CI runs tests", "CI runs build", "Deploy on merge to main"],
            )
        )
    workflows.append(
        AgentWorkflow(
            name="code-review",
            description="Structured code review workflow for learning and quality assurance",
            steps=[
                "Open the pull request and read the description",
                "Review the diff file-by-file, starting with tests",
                "Check code style and naming conventions",
                "Verify tests cover the changes",
                "Run the test suite locally",
                "Leave constructive feedback with specific suggestions",
            ],
        )
    )

    primary = metadata.languages[0].name if metadata.languages else "multi-language"
    return AgentsDoc(
        project_name=metadata.name,
        description=(
            f"Agent configuration for {metadata.name}, a {primary} project "
            f"with {len(metadata.dependencies)} dependencies."
        ),
        skills=skills,
        mcp_servers=[
            AgentMcpServer(
                name="microsoft-learn",
                url=LEARN_MCP_URL,
                tools=["microsoft_docs_search", "microsoft_docs_fetch", "microsoft_code_sample_search"],
            )
        ],
        workflows=workflows,
    )


def compile_pack(
    metadata: RepoMetadata,
    architecture: str,
    tasks: Sequence[StarterTask],
    diagram: str,
    file_summaries: Mapping[str, str] | None = None,
) -> OnboardingPack:
    """Assemble the onboarding pack from generated and derived content.

    Args:
        metadata: Scanned repository metadata
        architecture: Architecture summary (model-generated or fallback)
        tasks: The final ten starter tasks
        diagram: Sanitized or fallback diagram text
        file_summaries: Key-file path to summary, in analysis order

    Returns:
        The compiled pack, without technology detections
    """
    return OnboardingPack(
        onboarding=OnboardingDoc(
            project_name=metadata.name,
            overview=_overview(metadata),
            architecture=architecture,
            key_flows=_key_flows(metadata),
            external_dependencies=[
                ExternalDependency(
                    name=dep.name,
                    purpose=f"{dep.ecosystem} {dep.type.value} dependency",
                    version=dep.version,
                )
                for dep in metadata.dependencies[:MAX_EXTERNAL_DEPENDENCIES]
            ],
            key_files=dict(file_summaries or {}),
            getting_started=_getting_started(metadata),
        ),
        runbook=RunbookDoc(
            prerequisites=_prerequisites(metadata),
            setup=_setup_steps(metadata),
            build=_build_command(metadata),
            run=_run_command(metadata),
            test=_test_command(metadata),
            troubleshooting=_troubleshooting(metadata),
            common_commands=_common_commands(metadata),
        ),
        tasks=list(tasks),
        agents=_agents_doc(metadata),
        diagram=diagram,
    )
