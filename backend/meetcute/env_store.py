"""Flat ``KEY=VALUE`` env file storage.

The file format is deliberately minimal: one ``KEY=VALUE`` per line, blank
lines and ``#`` comments skipped, the first ``=`` separating key from value,
no quoting or escaping. Lines without ``=`` are tolerated and dropped.

``save`` truncates and rewrites the target in place, so a crash mid-write
can leave a partial file. Pass ``atomic=True`` to write through a temp file
and rename instead.
"""

import logging
from pathlib import Path

logger = logging.getLogger(__name__)

ConfigMap = dict[str, str]


def parse_env(content: str) -> ConfigMap:
    """Parse env file text into an ordered mapping."""
    env: ConfigMap = {}
    for line in content.splitlines():
        stripped = line.strip()
        if not stripped or stripped.startswith("#"):
            continue
        if "=" not in stripped:
            logger.debug("Skipping env line without '=': %r", stripped[:40])
            continue
        key, value = stripped.split("=", 1)
        key = key.strip()
        if not key:
            continue
        env[key] = value.strip()
    return env


def render(env: ConfigMap, header: list[str] | None = None) -> str:
    """Serialize a mapping as env file text, one entry per line in map order."""
    lines = [f"# {comment}" if comment else "#" for comment in (header or [])]
    if lines:
        lines.append("")
    lines.extend(f"{key}={value}" for key, value in env.items())
    return "\n".join(lines) + "\n"


def load(path: Path | str) -> ConfigMap:
    """Read an env file. A missing file yields an empty mapping."""
    path = Path(path)
    if not path.exists():
        logger.warning("%s does not exist, starting with an empty configuration", path)
        return {}
    return parse_env(path.read_text(encoding="utf-8"))


def atomic_write(target: Path, content: str):
    """Write content to a file atomically via a temp file + rename.

    On POSIX, Path.replace() is atomic within the same filesystem.
    """
    tmp_path = target.with_suffix(target.suffix + ".tmp")
    tmp_path.write_text(content, encoding="utf-8")
    tmp_path.replace(target)


def save(
    path: Path | str,
    env: ConfigMap,
    header: list[str] | None = None,
    atomic: bool = False,
) -> Path:
    """Write the mapping to ``path`` and return the path written."""
    path = Path(path)
    content = render(env, header)
    if atomic:
        atomic_write(path, content)
    else:
        path.write_text(content, encoding="utf-8")
    logger.info("Saved %d variables to %s", len(env), path)
    return path


def merge_missing(target: ConfigMap, source: ConfigMap) -> int:
    """Copy entries from ``source`` whose keys ``target`` lacks. Returns the count added."""
    imported = 0
    for key, value in source.items():
        if key not in target:
            target[key] = value
            imported += 1
    return imported
