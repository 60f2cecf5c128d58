# src/auditor/utils/axe_script.py
import asyncio
import logging
from pathlib import Path
from typing import Optional, Union

import aiohttp

logger = logging.getLogger(__name__)

AXE_CORE_VERSION = "4.10.2"
DEFAULT_AXE_SCRIPT_URL = f"https://cdn.jsdelivr.net/npm/axe-core@{AXE_CORE_VERSION}/axe.min.js"
DEFAULT_AXE_SCRIPT_PATH = Path.home() / ".cache" / "a11y-sampler" / f"axe-{AXE_CORE_VERSION}.min.js"


async def ensure_axe_script(
        path: Union[str, Path, None] = None,
        source_url: Optional[str] = DEFAULT_AXE_SCRIPT_URL,
        timeout: int = 30,
) -> Path:
    """
    Returns a local axe-core script, downloading it to `path` on first use.

    Raises FileNotFoundError when the file is missing and cannot be fetched
    (no `source_url`, a non-200 answer, or a network error).
    """
    path = Path(path).expanduser() if path else DEFAULT_AXE_SCRIPT_PATH
    if path.is_file():
        return path
    if not source_url:
        raise FileNotFoundError(f"axe-core script not found at {path}")

    logger.info("Downloading axe-core from %s ...", source_url)
    try:
        async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout)) as session:
            async with session.get(source_url) as response:
                if response.status != 200:
                    raise FileNotFoundError(
                        f"axe-core script not found at {path}; download from {source_url} "
                        f"returned {response.status} {response.reason}"
                    )
                script = await response.text()
    except (aiohttp.ClientError, asyncio.TimeoutError) as e:
        raise FileNotFoundError(
            f"axe-core script not found at {path}; download from {source_url} failed: {e!r}"
        ) from e

    path.parent.mkdir(parents=True, exist_ok=True)
    partial = path.with_name(path.name + ".part")
    partial.write_text(script, encoding="utf-8")
    partial.replace(path)
    logger.debug("axe-core cached at %s", path)
    return path
