"""onboardpack - Onboarding documentation packs for source repositories.

This package scans a repository, asks a local, cloud or agentic inference
backend for architecture notes, starter tasks and a component diagram,
and writes the results as Markdown and Mermaid files. Every generated
artifact has a deterministic fallback, so a pack is produced even with no
model available.
"""

__version__ = "0.1.0"
