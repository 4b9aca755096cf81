from __future__ import annotations

import logging
import subprocess

from result import Err, Ok, Result

from staleware.services.signals import CommandRunner

logger = logging.getLogger(__name__)

AUTOREMOVE_COMMAND = ("brew", "autoremove", "--dry-run")
_SECTION_HEADER = "==> Would autoremove"
_ANY_HEADER = "==>"


def parse_autoremove_output(output: str) -> set[str]:
    """Collect the package names listed under the "Would autoremove" header."""
    orphans: set[str] = set()
    in_section = False
    for raw in output.splitlines():
        line = raw.strip()
        if line.startswith(_SECTION_HEADER):
            in_section = True
            continue
        if line.startswith(_ANY_HEADER):
            in_section = False
            continue
        if in_section and line:
            orphans.add(line)
    return orphans


def find_orphans(runner: CommandRunner = subprocess.run, timeout: float = 30.0) -> Result[set[str], str]:
    try:
        proc = runner(list(AUTOREMOVE_COMMAND), capture_output=True, text=True, timeout=timeout, check=False)
    except subprocess.TimeoutExpired:
        return Err(f"{' '.join(AUTOREMOVE_COMMAND)} timed out after {timeout:.0f}s.")
    except OSError as exc:
        return Err(f"Cannot run {AUTOREMOVE_COMMAND[0]}: {exc}.")
    if proc.returncode != 0:
        return Err(f"{' '.join(AUTOREMOVE_COMMAND)} exited with status {proc.returncode}.")
    return Ok(parse_autoremove_output(proc.stdout or ""))


def orphans_or_empty(runner: CommandRunner = subprocess.run, timeout: float = 30.0) -> set[str]:
    """Orphan set for the recommendation pass; any failure becomes an empty set."""
    match find_orphans(runner, timeout):
        case Ok(orphans):
            return orphans
        case Err(message):
            logger.warning("Orphan detection unavailable: %s", message)
            return set()
