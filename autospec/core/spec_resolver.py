"""Spec detection from the git branch or the newest spec directory."""

import re
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from .exceptions import SpecResolutionError

SPEC_DIR_PATTERN = re.compile(r"^(\d{3})-(.+)$")

STOP_WORDS = {
    "a", "an", "the", "to", "for", "of", "in", "on", "at", "by", "with",
    "from", "is", "are", "was", "be", "i", "want", "we", "need", "add",
    "and", "or", "it", "this", "that", "my", "our", "should", "would",
}

RESOLUTION_SUGGESTIONS = [
    "Create a new spec: autospec specify \"<feature description>\"",
    "Switch to a spec branch: git checkout 001-my-feature",
    "Name the spec explicitly: autospec plan 001-my-feature",
]


@dataclass
class SpecIdentity:
    """A resolved spec and its artifact directory."""

    name: str
    directory: Path
    number: Optional[str] = None
    branch: Optional[str] = None

    @classmethod
    def from_directory(cls, directory: Path, branch: Optional[str] = None) -> "SpecIdentity":
        directory = Path(directory)
        match = SPEC_DIR_PATTERN.match(directory.name)
        return cls(
            name=directory.name,
            directory=directory,
            number=match.group(1) if match else None,
            branch=branch,
        )


class SpecResolver:
    """Finds the spec the user is currently working on.

    Resolution order:
    1. A git branch named like ``NNN-feature`` with a matching spec directory
    2. The most recently modified ``NNN-*`` directory under the specs root
    """

    def __init__(self, repo_path: Optional[Path] = None):
        self.repo_path = Path(repo_path) if repo_path else Path.cwd()

    def resolve(self, specs_root: Path) -> SpecIdentity:
        """Resolve the current spec.

        Raises:
            SpecResolutionError: If no spec directory can be found
        """
        specs_root = Path(specs_root)
        branch = self.current_branch()

        if branch and SPEC_DIR_PATTERN.match(branch):
            candidate = specs_root / branch
            if candidate.is_dir():
                return SpecIdentity.from_directory(candidate, branch=branch)

        directories = list_spec_directories(specs_root)
        if not directories:
            raise SpecResolutionError(
                f"no spec directories found in {specs_root}",
                suggestions=RESOLUTION_SUGGESTIONS,
            )

        newest = max(directories, key=lambda d: d.stat().st_mtime)
        return SpecIdentity.from_directory(newest, branch=branch)

    def current_branch(self) -> Optional[str]:
        """Current git branch, or None outside a repository."""
        try:
            result = subprocess.run(
                ["git", "rev-parse", "--abbrev-ref", "HEAD"],
                cwd=self.repo_path,
                capture_output=True,
                text=True,
                check=False,
                timeout=5,
            )
        except (FileNotFoundError, subprocess.TimeoutExpired):
            return None

        if result.returncode != 0:
            return None
        branch = result.stdout.strip()
        return branch if branch and branch != "HEAD" else None


def list_spec_directories(specs_root: Path) -> List[Path]:
    """Spec directories (``NNN-name``) directly under the specs root."""
    specs_root = Path(specs_root)
    if not specs_root.is_dir():
        return []
    return sorted(
        d for d in specs_root.iterdir() if d.is_dir() and SPEC_DIR_PATTERN.match(d.name)
    )


def get_spec_directory(specs_root: Path, spec_name: str) -> Path:
    """Find the directory for an explicitly named spec.

    Accepts the full directory name (``002-go-migration``), its number
    (``002``) or its name without the number (``go-migration``).

    Raises:
        SpecResolutionError: If nothing matches
    """
    specs_root = Path(specs_root)
    exact = specs_root / spec_name
    if exact.is_dir():
        return exact

    for directory in list_spec_directories(specs_root):
        number, name = SPEC_DIR_PATTERN.match(directory.name).groups()
        if spec_name in (number, name):
            return directory

    raise SpecResolutionError(
        f"spec '{spec_name}' not found in {specs_root}",
        suggestions=RESOLUTION_SUGGESTIONS,
    )


def slugify_description(description: str, max_words: int = 3) -> str:
    """Short name for a feature description.

    Stop words are dropped and the first ``max_words`` words kept, unless
    exactly one more word remains, in which case all are kept.
    """
    words = re.findall(r"[a-z0-9]+(?:-[a-z0-9]+)*", description.lower())
    meaningful = [w for w in words if w not in STOP_WORDS and not w.isdigit()]
    if not meaningful:
        meaningful = words or ["feature"]
    if len(meaningful) > max_words + 1:
        meaningful = meaningful[:max_words]
    return "-".join(meaningful)
