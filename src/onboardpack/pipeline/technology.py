"""Technology detection for documentation validation.

Each detection names a Microsoft technology the repository uses, the
evidence for it, and the Microsoft Learn queries a reader (or an MCP-aware
agent) can run to check the generated docs against current guidance. The
queries are emitted as data only; nothing here calls the Learn service.

Package-name rules live in :data:`DEPENDENCY_RULES`; detections that look
at languages, files or build descriptors are small functions in
:data:`DETECTORS`.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum

import structlog
from pydantic import BaseModel, Field

from onboardpack.scanner.models import BuildSystem, RepoMetadata

logger = structlog.get_logger(__name__)

MAX_SDK_DETECTIONS = 5
LEARN_MCP_URL = "https://learn.microsoft.com/api/mcp"


class TechCategory(str, Enum):
    AZURE_SERVICE = "azure-service"
    DOTNET = "dotnet"
    TYPESCRIPT = "typescript"
    AI_ML = "ai-ml"
    DEVOPS = "devops"
    VSCODE = "vscode"
    GRAPH = "graph"
    OTHER = "other"


class Confidence(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"


class LearnTool(str, Enum):
    DOCS_SEARCH = "microsoft_docs_search"
    DOCS_FETCH = "microsoft_docs_fetch"
    CODE_SAMPLE_SEARCH = "microsoft_code_sample_search"


class LearnQuery(BaseModel):
    """A documentation lookup to validate one aspect of a detection."""

    tool: LearnTool
    query: str
    purpose: str
    language: str | None = None
    url: str | None = None


class TechnologyDetection(BaseModel):
    """A detected technology.

    Attributes:
        name: Display name
        category: Technology family
        confidence: How strong the evidence is
        evidence: Human-readable reason for the detection
        queries: Documentation lookups that validate it
    """

    name: str
    category: TechCategory
    confidence: Confidence = Confidence.HIGH
    evidence: str
    queries: list[LearnQuery] = Field(default_factory=list)


def _search(query: str, purpose: str) -> LearnQuery:
    return LearnQuery(tool=LearnTool.DOCS_SEARCH, query=query, purpose=purpose)


def _samples(query: str, language: str, purpose: str) -> LearnQuery:
    return LearnQuery(
        tool=LearnTool.CODE_SAMPLE_SEARCH, query=query, language=language, purpose=purpose
    )


@dataclass(frozen=True)
class DependencyRule:
    """Detection triggered by any dependency whose name satisfies ``matches``."""

    name: str
    category: TechCategory
    evidence: str
    matches: Callable[[str], bool]
    queries: tuple[LearnQuery, ...]
    confidence: Confidence = Confidence.HIGH

    def detect(self, metadata: RepoMetadata) -> list[TechnologyDetection]:
        if not any(self.matches(dep.name) for dep in metadata.dependencies):
            return []
        return [
            TechnologyDetection(
                name=self.name,
                category=self.category,
                confidence=self.confidence,
                evidence=self.evidence,
                queries=list(self.queries),
            )
        ]


DEPENDENCY_RULES: dict[str, DependencyRule] = {
    "aspnetcore": DependencyRule(
        name="ASP.NET Core",
        category=TechCategory.DOTNET,
        evidence="Found ASP.NET Core NuGet packages",
        matches=lambda n: "microsoft.aspnetcore" in n.lower() or "asp.net" in n.lower(),
        queries=(
            _search("ASP.NET Core getting started tutorial", "Setup and configuration"),
            _search("ASP.NET Core middleware pipeline", "Understand request pipeline"),
            _samples("ASP.NET Core minimal API", "csharp", "Find API patterns"),
        ),
    ),
    "semantic-kernel": DependencyRule(
        name="Semantic Kernel",
        category=TechCategory.AI_ML,
        evidence="Found Semantic Kernel dependency",
        matches=lambda n: "semantic-kernel" in n.lower() or "Microsoft.SemanticKernel" in n,
        queries=(
            _search("Semantic Kernel overview plugins", "Understand SK architecture"),
            _samples("Semantic Kernel", "csharp", "Find SK code patterns"),
        ),
    ),
    "azure-openai": DependencyRule(
        name="Azure OpenAI",
        category=TechCategory.AI_ML,
        evidence="Found Azure OpenAI SDK dependency",
        matches=lambda n: "openai" in n and "azure" in n,
        queries=(
            _search("Azure OpenAI getting started", "Setup and authentication"),
            _search("Azure OpenAI models deployment", "Understand model options"),
        ),
    ),
    "graph": DependencyRule(
        name="Microsoft Graph",
        category=TechCategory.GRAPH,
        evidence="Found Microsoft Graph SDK dependency",
        matches=lambda n: "microsoft-graph" in n.lower() or "Microsoft.Graph" in n,
        queries=(
            _search("Microsoft Graph API getting started", "Understand Graph API"),
            _search("Microsoft Graph SDK authentication", "Verify auth patterns"),
        ),
    ),
    "efcore": DependencyRule(
        name="Entity Framework Core",
        category=TechCategory.DOTNET,
        evidence="Found Entity Framework Core NuGet package",
        matches=lambda n: "Microsoft.EntityFrameworkCore" in n,
        queries=(
            _search("Entity Framework Core getting started", "Understand EF Core setup"),
            _search("Entity Framework Core migrations", "Verify migration patterns"),
        ),
    ),
    "foundry": DependencyRule(
        name="Foundry Local",
        category=TechCategory.AI_ML,
        confidence=Confidence.MEDIUM,
        evidence="Found Foundry-related dependency",
        matches=lambda n: "foundry" in n,
        queries=(_search("Foundry Local AI models on device", "Understand local model deployment"),),
    ),
}


def _has_dotnet(metadata: RepoMetadata) -> bool:
    return any(
        lang.name.lower() in {"c#", "csharp", "f#", "fsharp", "vb.net"} for lang in metadata.languages
    )


def detect_dotnet(metadata: RepoMetadata) -> list[TechnologyDetection]:
    has_project = any(
        bf.path.endswith((".csproj", ".fsproj", ".sln")) for bf in metadata.build_files
    )
    if not (
        _has_dotnet(metadata)
        or has_project
        or any(bf.type == BuildSystem.DOTNET for bf in metadata.build_files)
    ):
        return []
    return [
        TechnologyDetection(
            name=".NET",
            category=TechCategory.DOTNET,
            evidence="Found .csproj/.fsproj files" if has_project else "Detected C#/F# source files",
            queries=[
                _search(".NET getting started overview", "Verify .NET version and setup"),
                _search(".NET what's new latest version", "Check current .NET version"),
                _samples(".NET project setup", "csharp", "Find setup code samples"),
            ],
        )
    ]


def detect_typescript(metadata: RepoMetadata) -> list[TechnologyDetection]:
    if not metadata.has_language("typescript"):
        return []
    return [
        TechnologyDetection(
            name="TypeScript",
            category=TechCategory.TYPESCRIPT,
            evidence="TypeScript source files detected",
            queries=[
                _search("TypeScript configuration tsconfig", "Verify TypeScript setup"),
                _search("TypeScript best practices", "Review best practices"),
            ],
        )
    ]


def detect_azure_npm_sdks(metadata: RepoMetadata) -> list[TechnologyDetection]:
    detections = []
    for dep in [d for d in metadata.dependencies if d.name.startswith("@azure/")][:MAX_SDK_DETECTIONS]:
        service = dep.name.removeprefix("@azure/").replace("-", " ")
        detections.append(
            TechnologyDetection(
                name=f"Azure SDK: {dep.name}",
                category=TechCategory.AZURE_SERVICE,
                evidence=f"Found npm package {dep.name}",
                queries=[
                    _search(f"{dep.name} getting started", f"Verify {service} SDK usage"),
                    _samples(service, "javascript", f"Find {service} code samples"),
                ],
            )
        )
    return detections


def detect_azure_nuget_sdks(metadata: RepoMetadata) -> list[TechnologyDetection]:
    azure = [
        d for d in metadata.dependencies if d.name.startswith(("Azure.", "Microsoft.Azure."))
    ]
    return [
        TechnologyDetection(
            name=f"Azure SDK: {dep.name}",
            category=TechCategory.AZURE_SERVICE,
            evidence=f"Found NuGet package {dep.name}",
            queries=[
                _search(f"{dep.name} getting started", "Verify Azure SDK usage"),
                _samples(dep.name, "csharp", "Find code samples"),
            ],
        )
        for dep in azure[:MAX_SDK_DETECTIONS]
    ]


def detect_azure_functions(metadata: RepoMetadata) -> list[TechnologyDetection]:
    has_host_json = any("host.json" in cf.path for cf in metadata.config_files)
    has_dependency = any(
        "azure-functions" in d.name or "Microsoft.Azure.Functions" in d.name
        for d in metadata.dependencies
    )
    if not (has_host_json or has_dependency):
        return []
    return [
        TechnologyDetection(
            name="Azure Functions",
            category=TechCategory.AZURE_SERVICE,
            confidence=Confidence.HIGH if has_host_json else Confidence.MEDIUM,
            evidence=(
                "Found host.json configuration" if has_host_json else "Found Azure Functions dependency"
            ),
            queries=[
                _search("Azure Functions overview triggers bindings", "Understand Functions architecture"),
                _search("Azure Functions local development", "Setup local development"),
                _samples(
                    "Azure Functions",
                    "csharp" if _has_dotnet(metadata) else "python",
                    "Find trigger/binding examples",
                ),
            ],
        )
    ]


def detect_infrastructure_as_code(metadata: RepoMetadata) -> list[TechnologyDetection]:
    has_bicep = metadata.has_language("bicep") or metadata.has_file_extension(".bicep")
    has_arm = any(
        "azuredeploy.json" in cf.path or "mainTemplate.json" in cf.path
        for cf in metadata.config_files
    )
    if not (has_bicep or has_arm):
        return []
    return [
        TechnologyDetection(
            name="Bicep" if has_bicep else "ARM Templates",
            category=TechCategory.AZURE_SERVICE,
            evidence="Found .bicep files" if has_bicep else "Found ARM template files",
            queries=[
                _search("Bicep overview Azure resource deployment", "Understand infrastructure as code"),
                _search("Bicep best practices modules", "Review deployment best practices"),
            ],
        )
    ]


def detect_azure_ci(metadata: RepoMetadata) -> list[TechnologyDetection]:
    has_pipelines = any("azure-pipelines" in cf.path for cf in metadata.config_files)
    has_actions = any(
        ".github" in cf.path and "azure" in cf.path for cf in metadata.config_files
    )
    if not (has_pipelines or has_actions):
        return []
    return [
        TechnologyDetection(
            name="Azure Pipelines" if has_pipelines else "GitHub Actions for Azure",
            category=TechCategory.DEVOPS,
            evidence=(
                "Found azure-pipelines.yml" if has_pipelines else "Found Azure GitHub Actions workflow"
            ),
            queries=[
                _search(
                    "Azure Pipelines YAML reference"
                    if has_pipelines
                    else "GitHub Actions deploy to Azure",
                    "Verify CI/CD configuration",
                )
            ],
        )
    ]


def detect_vscode_extension(metadata: RepoMetadata) -> list[TechnologyDetection]:
    has_dependency = any(d.name in ("@types/vscode", "vscode") for d in metadata.dependencies)
    has_manifest = any(cf.path == ".vscodeignore" for cf in metadata.config_files) or any(
        "extension.ts" in ep or "extension.js" in ep for ep in metadata.entry_points
    )
    if not (has_dependency or has_manifest):
        return []
    return [
        TechnologyDetection(
            name="VS Code Extension",
            category=TechCategory.VSCODE,
            evidence=(
                "Found @types/vscode dependency" if has_dependency else "Found VS Code extension files"
            ),
            queries=[
                _search("VS Code extension API development", "Extension development guide"),
                _samples("VS Code extension", "typescript", "Find extension examples"),
            ],
        )
    ]


Detector = Callable[[RepoMetadata], list[TechnologyDetection]]

DETECTORS: tuple[Detector, ...] = (
    detect_dotnet,
    DEPENDENCY_RULES["aspnetcore"].detect,
    detect_typescript,
    detect_azure_npm_sdks,
    detect_azure_nuget_sdks,
    detect_azure_functions,
    detect_infrastructure_as_code,
    detect_azure_ci,
    DEPENDENCY_RULES["semantic-kernel"].detect,
    DEPENDENCY_RULES["azure-openai"].detect,
    DEPENDENCY_RULES["graph"].detect,
    detect_vscode_extension,
    DEPENDENCY_RULES["efcore"].detect,
    DEPENDENCY_RULES["foundry"].detect,
)


def detect_technologies(metadata: RepoMetadata) -> list[TechnologyDetection]:
    """Run every detector over the metadata, in table order."""
    detections = [d for detector in DETECTORS for d in detector(metadata)]
    for detection in detections:
        logger.debug(
            "technology_detected",
            name=detection.name,
            category=detection.category.value,
            confidence=detection.confidence.value,
        )
    return detections
