"""Copying synced workflow files from the source repository into a target.

Only files whose name matches the synced naming convention are ever
deleted, copied or rewritten. Every other file in the workflow directory
is left untouched.
"""

from __future__ import annotations

import logging
import re
from pathlib import Path

logger = logging.getLogger(__name__)

WORKFLOW_DIR = ".github/workflows"
SYNCED_FILE_PATTERN = re.compile(r"^synced_.+\.ya?ml$")
SYNCED_WORKFLOW_GLOB = f"{WORKFLOW_DIR}/synced_*"
REF_TOKEN = "@main"


def is_synced_file(path: Path) -> bool:
    """Return True if ``path`` is a regular file following the synced naming convention."""
    return path.is_file() and SYNCED_FILE_PATTERN.match(path.name) is not None


def synced_files(directory: Path) -> list[Path]:
    """List the synced files directly inside ``directory``, sorted by name."""
    if not directory.is_dir():
        return []
    return sorted(path for path in directory.iterdir() if is_synced_file(path))


class WorkflowFileSync:
    """Replaces a target's synced workflow files with the source's.

    Pre-existing synced files in the target are deleted before copying so
    that files removed from the source disappear from targets too. Copied
    contents have the branch reference token rewritten to the source's
    version tag, so target workflows pin to an immutable release.
    """

    def __init__(
        self,
        version_tag: str,
        workflow_dir: str = WORKFLOW_DIR,
        ref_token: str = REF_TOKEN,
    ):
        """Initialize the file synchronizer.

        Args:
            version_tag: Tag that replaces the branch reference, e.g. ``v5``
            workflow_dir: Workflow directory relative to each repository root
            ref_token: Literal token rewritten to ``@<version_tag>``
        """
        if not version_tag:
            raise ValueError("A version tag is required to rewrite workflow references")

        self.version_tag = version_tag
        self.workflow_dir = workflow_dir
        self.ref_token = ref_token

    def sync(self, source_root: Path, target_root: Path) -> list[str]:
        """Synchronize synced workflow files from ``source_root`` into ``target_root``.

        Creates the target workflow directory if it is missing.

        Args:
            source_root: Root of the source repository checkout
            target_root: Root of the target repository clone

        Returns:
            Repository-relative paths of the files written to the target

        Raises:
            OSError: If reading or writing a file fails
        """
        source_dir = source_root / self.workflow_dir
        target_dir = target_root / self.workflow_dir
        target_dir.mkdir(parents=True, exist_ok=True)

        for stale in synced_files(target_dir):
            logger.debug(f"Removing {stale.name} from {target_dir}")
            stale.unlink()

        written = []
        for source_file in synced_files(source_dir):
            content = self.rewrite_version_reference(source_file.read_bytes())
            self._save_file(content, target_dir / source_file.name)
            written.append(f"{self.workflow_dir}/{source_file.name}")

        logger.info(f"Copied {len(written)} synced workflow files to {target_root}")
        return written

    def rewrite_version_reference(self, content: bytes) -> bytes:
        """Replace every ``@main`` reference with ``@<version_tag>``.

        Content that is not valid UTF-8 is returned unchanged.
        """
        try:
            text_content = content.decode("utf-8")
        except UnicodeDecodeError:
            logger.debug("File appears to be binary, skipping reference rewrite")
            return content

        replacement = f"@{self.version_tag}"
        count = text_content.count(self.ref_token)
        if count:
            logger.debug(f"Replaced {count} occurrences of '{self.ref_token}' with '{replacement}'")

        return text_content.replace(self.ref_token, replacement).encode("utf-8")

    def _save_file(self, content: bytes, output_path: Path) -> None:
        try:
            with output_path.open("wb") as f:
                f.write(content)
        except OSError as e:
            logger.error(f"Failed to save file to {output_path}: {e}")
            raise
