"""The nine-step onboarding run.

:class:`OnboardingOrchestrator` wires the scanner, the inference provider,
the response interpreters, pack compilation and the renderer through a
:class:`PipelineEngine`. Each run owns exactly one provider instance; it is
handed to every component that needs it and closed when the run ends if the
orchestrator created it.

When the provider is not ready, or the model is skipped by configuration,
every generated artifact comes from deterministic fallbacks and no
inference call is made.
"""

from __future__ import annotations

import uuid
from collections.abc import Sequence
from pathlib import Path

import structlog

from onboardpack.config import GenerationRequest, OnboardpackConfig
from onboardpack.interpret.diagram import fallback_diagram, sanitize_diagram
from onboardpack.interpret.tasks import StarterTask, assemble_tasks, fallback_tasks, parse_tasks
from onboardpack.logging import bind_run_context
from onboardpack.pipeline.artifacts import OnboardingPack, compile_pack, fallback_architecture
from onboardpack.pipeline.engine import PipelineEngine
from onboardpack.pipeline.progress import ProgressCallback
from onboardpack.pipeline.steps import Step
from onboardpack.pipeline.technology import detect_technologies
from onboardpack.prompts.assistant import ModelAssistant
from onboardpack.providers.agent import AgentSDK
from onboardpack.providers.base import InferenceProvider, ProviderError, ProviderStatus
from onboardpack.providers.factory import create_provider
from onboardpack.render.renderer import PackRenderer
from onboardpack.scanner.models import ConfigKind, DependencyKind, RepoMetadata
from onboardpack.scanner.scanner import RepoScanner, format_structure_tree

logger = structlog.get_logger(__name__)

README_CANDIDATES = ("README.md", "readme.md", "README.txt", "README")
MAX_KEY_BUILD_FILES = 3
MAX_KEY_CI_FILES = 2
MAX_DIAGRAM_LANGUAGES = 3
MAX_FRAMEWORK_CANDIDATES = 10
FALLBACK_FILE_SUMMARY = "Key file in the project"

DIAGRAM_EXCLUDED_DIRS = frozenset({"node_modules", ".git", "dist", "build", ".github"})
FRAMEWORK_MARKERS = (
    "react",
    "vue",
    "angular",
    "express",
    "fastify",
    "koa",
    "next",
    "nuxt",
    "nestjs",
    "django",
    "flask",
    "fastapi",
    "spring",
    "aspnetcore",
    "dotnet",
)
FIRST_TASK_BATCH = (1, 5)
SECOND_TASK_BATCH = (6, 10)


def identify_key_files(metadata: RepoMetadata, limit: int) -> list[str]:
    """Pick the files worth summarizing, most important first.

    Entry points come first, then the first README present, the first three
    build files and the first two CI configs. Duplicates keep their first
    position and the list is capped at ``limit``.
    """
    candidates: list[str] = list(metadata.entry_points)

    root = Path(metadata.path)
    for name in README_CANDIDATES:
        if (root / name).is_file():
            candidates.append(name)
            break

    candidates.extend(b.path for b in metadata.build_files[:MAX_KEY_BUILD_FILES])
    ci_files = [c.path for c in metadata.config_files if c.type == ConfigKind.CI]
    candidates.extend(ci_files[:MAX_KEY_CI_FILES])

    return list(dict.fromkeys(candidates))[:limit]


def extract_components(metadata: RepoMetadata) -> list[str]:
    components = [
        f"{name} (directory)"
        for name in metadata.top_level_dirs
        if name not in DIAGRAM_EXCLUDED_DIRS
    ]
    components.extend(
        f"{lang.name} ({lang.percentage}%)" for lang in metadata.languages[:MAX_DIAGRAM_LANGUAGES]
    )

    production = [d for d in metadata.dependencies if d.type == DependencyKind.PRODUCTION]
    for dep in production[:MAX_FRAMEWORK_CANDIDATES]:
        lowered = dep.name.lower()
        if any(marker in lowered for marker in FRAMEWORK_MARKERS):
            components.append(f"{dep.name} (framework)")
    return components


def extract_relationships(metadata: RepoMetadata) -> str:
    """Describe known data flows, one ``a -> b (label)`` per line."""
    relationships: list[str] = []
    for build in metadata.build_files:
        if "build" in build.scripts:
            relationships.append("src -> dist (build)")
        if "test" in build.scripts:
            relationships.append("src -> tests (test)")
        if "start" in build.scripts:
            relationships.append("entry -> runtime (start)")

    dirs = set(metadata.top_level_dirs)
    if {"src", "tests"} <= dirs:
        relationships.append("tests -> src (testing)")
    if {"api", "client"} <= dirs:
        relationships.append("client -> api (HTTP)")
    return "\n".join(relationships)


class OnboardingOrchestrator:
    """Runs the onboarding pipeline for one repository.

    Attributes:
        config: Loaded configuration
        request: Per-run inputs
        provider: The run's inference provider
        engine: Step engine holding the run's step records
        metadata: Scan result, once the scan step completed
    """

    def __init__(
        self,
        config: OnboardpackConfig,
        request: GenerationRequest,
        provider: InferenceProvider | None = None,
        scanner: RepoScanner | None = None,
        renderer: PackRenderer | None = None,
        on_progress: ProgressCallback | None = None,
        agent_sdk: AgentSDK | None = None,
    ) -> None:
        self.config = config
        self.request = request
        self._owns_provider = provider is None
        self.provider = provider or create_provider(config, request, agent_sdk=agent_sdk)
        self.scanner = scanner or RepoScanner(request.repo_path)
        self.renderer = renderer or PackRenderer(request.resolved_output_dir)
        self.assistant = ModelAssistant(self.provider, temperature=config.pipeline.temperature)
        self.engine = PipelineEngine(on_progress=on_progress)
        self.metadata: RepoMetadata | None = None
        self.written_files: list[Path] = []
        self.run_id = uuid.uuid4().hex[:12]

        if request.skip_local_model is not None:
            self.skip_local_model = request.skip_local_model
        else:
            self.skip_local_model = config.pipeline.skip_local_model

    @property
    def steps(self) -> list[Step]:
        return self.engine.steps

    @property
    def use_model(self) -> bool:
        """Whether generation steps call the provider."""
        return self.provider.is_ready and not self.skip_local_model

    async def run(self) -> OnboardingPack:
        """Execute all nine steps and return the compiled pack.

        Raises:
            PipelineRunError: If any step fails; carries the step history
        """
        bind_run_context(self.run_id, self.request.repo_path.name)
        logger.info(
            "pipeline_started",
            repo_path=str(self.request.repo_path),
            provider=self.provider.display_name,
            skip_local_model=self.skip_local_model,
        )
        try:
            pack = await self._run_steps()
        finally:
            if self._owns_provider:
                await self.provider.close()

        logger.info(
            "pipeline_completed",
            tasks=len(pack.tasks),
            technologies=len(pack.technologies),
            files=len(self.written_files),
        )
        return pack

    async def _run_steps(self) -> OnboardingPack:
        engine = self.engine

        await engine.execute("check-provider", self._check_provider)
        metadata = await engine.execute("scan-repo", self._scan)
        summaries = await engine.execute("analyze-files", lambda: self._analyze_files(metadata))
        architecture = await engine.execute(
            "gen-architecture", lambda: self._generate_architecture(metadata, summaries)
        )
        tasks = await engine.execute(
            "gen-tasks", lambda: self._generate_tasks(metadata, architecture, list(summaries))
        )
        diagram = await engine.execute("gen-diagram", lambda: self._generate_diagram(metadata))
        pack = await engine.execute(
            "compile-pack",
            lambda: self._compile(metadata, architecture, tasks, diagram, summaries),
        )
        await engine.execute("validate-tech", lambda: self._validate(metadata, pack))
        self.written_files = await engine.execute("write-files", lambda: self._write(pack))
        return pack

    async def _check_provider(self) -> ProviderStatus:
        status = await self.provider.check_status()
        if status.available:
            self.engine.detail(
                f"{self.provider.display_name} online - model: {status.active_model}"
            )
        elif not self.skip_local_model:
            self.engine.detail("LLM provider unavailable - using fallback")
        return status

    async def _scan(self) -> RepoMetadata:
        metadata = self.scanner.scan()
        self.metadata = metadata
        primary = metadata.languages[0].name if metadata.languages else "unknown"
        self.engine.detail(
            f"Found {len(metadata.languages)} languages, "
            f"{len(metadata.dependencies)} deps - primary: {primary}"
        )
        return metadata

    async def _analyze_files(self, metadata: RepoMetadata) -> dict[str, str]:
        key_files = identify_key_files(metadata, self.config.pipeline.max_key_files)
        if not self.use_model:
            return {path: FALLBACK_FILE_SUMMARY for path in key_files}

        summaries: dict[str, str] = {}
        for index, path in enumerate(key_files, start=1):
            self.engine.detail(f"Summarizing file {index}/{len(key_files)}: {path}")
            try:
                content = self.scanner.read_file(path)
                summaries[path] = await self.assistant.summarize_file(path, content)
            except (OSError, ProviderError) as e:
                logger.warning(
                    "file_summary_skipped",
                    file=path,
                    error=str(e),
                    error_type=type(e).__name__,
                )
                self.engine.detail(f"Skipped: {path} ({e})")
        return summaries

    async def _generate_architecture(
        self, metadata: RepoMetadata, summaries: dict[str, str]
    ) -> str:
        if not self.use_model:
            return fallback_architecture(metadata)
        return await self.assistant.generate_architecture_summary(
            format_structure_tree(metadata.structure), summaries
        )

    async def _generate_tasks(
        self, metadata: RepoMetadata, architecture: str, key_files: Sequence[str]
    ) -> list[StarterTask]:
        if not self.use_model:
            return fallback_tasks()

        repo_context = f"Project: {metadata.name}\nArchitecture: {architecture}"
        languages = [lang.name for lang in metadata.languages]

        first_start, first_end = FIRST_TASK_BATCH
        self.engine.detail(f"Generating tasks {first_start}-{first_end}")
        first_text = await self.assistant.generate_starter_tasks(
            repo_context, languages, key_files, batch_start=first_start, batch_end=first_end
        )
        first = parse_tasks(first_text)

        second: list[StarterTask] = []
        second_start, second_end = SECOND_TASK_BATCH
        self.engine.detail(f"Generating tasks {second_start}-{second_end}")
        try:
            second_text = await self.assistant.generate_starter_tasks(
                repo_context, languages, key_files, batch_start=second_start, batch_end=second_end
            )
            second = parse_tasks(second_text)
        except ProviderError as e:
            logger.warning(
                "task_batch_failed",
                batch_start=second_start,
                batch_end=second_end,
                error=str(e),
                error_type=type(e).__name__,
            )

        return assemble_tasks(first, second)

    async def _generate_diagram(self, metadata: RepoMetadata) -> str:
        if not self.use_model:
            return fallback_diagram(metadata.name, metadata.top_level_dirs)
        text = await self.assistant.generate_mermaid_diagram(
            extract_components(metadata), extract_relationships(metadata)
        )
        return sanitize_diagram(text)

    async def _compile(
        self,
        metadata: RepoMetadata,
        architecture: str,
        tasks: list[StarterTask],
        diagram: str,
        summaries: dict[str, str],
    ) -> OnboardingPack:
        return compile_pack(metadata, architecture, tasks, diagram, summaries)

    async def _validate(self, metadata: RepoMetadata, pack: OnboardingPack) -> OnboardingPack:
        pack.technologies = detect_technologies(metadata)
        self.engine.detail(f"Detected {len(pack.technologies)} technologies")
        return pack

    async def _write(self, pack: OnboardingPack) -> list[Path]:
        written = self.renderer.write(pack)
        self.engine.detail(f"Wrote {len(written)} files to {self.renderer.output_dir}")
        return written
