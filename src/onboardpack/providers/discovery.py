"""Local inference service discovery.

Foundry Local listens on a dynamic port, so its address is read from the
output of ``foundry service status``. The cached-model listing comes from
``foundry model list``. Both helpers absorb every failure: discovery
yields ``None`` and listing yields an empty list. Retry policy lives in
the providers, not here.
"""

from __future__ import annotations

import asyncio
import re
import shlex

import structlog

from onboardpack.providers.base import CachedModel

logger = structlog.get_logger(__name__)

_ENDPOINT_PATTERN = re.compile(r"running on (https?://[^/\s]+)", re.IGNORECASE)
_MODEL_ID_PATTERN = re.compile(r":\d+$")
_FILE_SIZE_PATTERN = re.compile(r"(\d+\.?\d*\s*[KMGT]?B)", re.IGNORECASE)
_COLUMN_SPLIT = re.compile(r"\s{2,}")


async def _run_command(command: str, timeout: float) -> tuple[int | None, str]:
    """Run a command and return its exit code and combined output.

    Raises:
        asyncio.TimeoutError: If the command exceeds ``timeout``
        OSError: If the executable cannot be started
    """
    proc = await asyncio.create_subprocess_exec(
        *shlex.split(command),
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )
    try:
        stdout_bytes, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        proc.kill()
        await proc.wait()
        raise
    return proc.returncode, stdout_bytes.decode("utf-8", errors="replace")


def extract_endpoint(output: str) -> str | None:
    """Return the first service address reported in status command output."""
    match = _ENDPOINT_PATTERN.search(output)
    return match.group(1) if match else None


async def discover_endpoint(
    command: str = "foundry service status", timeout: float = 10.0
) -> str | None:
    """Resolve the local inference service address.

    Args:
        command: Status-reporting command to invoke
        timeout: Upper bound on the command's run time in seconds

    Returns:
        Base URL such as ``http://127.0.0.1:58243``, or None when the
        command fails, times out, or reports no address.
    """
    try:
        returncode, output = await _run_command(command, timeout)
    except asyncio.TimeoutError:
        logger.warning("endpoint_discovery_timeout", command=command, timeout=timeout)
        return None
    except Exception as e:
        logger.warning(
            "endpoint_discovery_error",
            command=command,
            error=str(e),
            error_type=type(e).__name__,
        )
        return None

    endpoint = extract_endpoint(output)
    if endpoint is None:
        logger.info("endpoint_discovery_no_match", command=command, returncode=returncode)
    else:
        logger.info("endpoint_discovered", endpoint=endpoint)
    return endpoint


def parse_model_listing(output: str) -> list[CachedModel]:
    """Parse ``foundry model list`` output into cached model records.

    Columns are separated by two or more spaces. Lines indented under an
    alias line are variants of that alias. Only rows carrying a model id
    of the form ``Name:<version>`` produce a record.

    Args:
        output: Raw command output

    Returns:
        Cached models in listing order
    """
    models: list[CachedModel] = []
    current_alias: str | None = None

    for line in output.splitlines():
        stripped = line.strip()
        if not stripped or line.startswith("---") or line.startswith("Alias"):
            continue

        is_variant = line.startswith((" ", "\t"))
        parts = _COLUMN_SPLIT.split(stripped)
        if len(parts) < 4:
            continue

        if not is_variant and parts[0] and ":" not in parts[0]:
            current_alias = parts[0]

        model_id = next(
            (p for p in parts if ":" in p and _MODEL_ID_PATTERN.search(p)), None
        )
        if model_id is None:
            continue

        device = next((p for p in parts if p in ("GPU", "CPU")), "GPU")
        task = next((p for p in parts if "chat" in p), "chat")
        size_match = _FILE_SIZE_PATTERN.search(stripped)

        models.append(
            CachedModel(
                alias=current_alias or model_id.split("-")[0] or "unknown",
                model_id=model_id,
                device=device,
                task=task,
                file_size=size_match.group(1) if size_match else "Unknown",
            )
        )

    return models


async def list_cached_models(
    command: str = "foundry model list", timeout: float = 15.0
) -> list[CachedModel]:
    """List locally cached models, or an empty list on any failure."""
    try:
        returncode, output = await _run_command(command, timeout)
    except Exception as e:
        logger.warning("model_listing_failed", command=command, error=str(e))
        return []

    if returncode != 0 or not output:
        logger.info("model_listing_empty", command=command, returncode=returncode)
        return []

    models = parse_model_listing(output)
    logger.debug("model_listing_parsed", count=len(models))
    return models
