"""
Deployment file writer.

Writes generated platform-native files into a target directory, combining
them with any files already there according to a merge policy:

- replace: discard the existing file and write the new one
- merge: shallow-merge new JSON over existing JSON (new wins per top-level key);
  text files are replaced
- skip: never touch an existing file
"""

import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Iterable, List, Union

from core.errors import FileOperationFailed
from core.file_system import FileSystem
from core.results import DeploymentError, DeploymentResult, Severity

logger = logging.getLogger(__name__)


class MergePolicy(str, Enum):
    REPLACE = 'replace'
    MERGE = 'merge'
    SKIP = 'skip'


class WriteOutcome(str, Enum):
    CREATED = 'created'
    REPLACED = 'replaced'
    MERGED = 'merged'
    SKIPPED = 'skipped'


@dataclass
class GeneratedFile:
    """
    A file produced by a builder for deployment.

    Attributes:
        path: Path relative to the deployment root
        content: Text, or a dict written as JSON
        component: Name reported in results (e.g. 'settings', 'mcp')
    """
    path: str
    content: Union[str, Dict[str, Any]]
    component: str = ''

    @property
    def is_json(self) -> bool:
        return isinstance(self.content, dict)


class DeploymentFileWriter:
    """Writes GeneratedFile lists under a merge policy."""

    def __init__(self, file_system: FileSystem):
        self.file_system = file_system

    def write(self, root: Path, generated: GeneratedFile,
              policy: MergePolicy = MergePolicy.REPLACE) -> WriteOutcome:
        """
        Write a single generated file.

        Raises:
            FileOperationFailed: If reading or writing fails
            ValueError: If merging into an existing file that is not a JSON object
        """
        target = Path(root) / generated.path
        existed = self.file_system.exists(target)

        if existed and policy == MergePolicy.SKIP:
            logger.info(f"Skipping existing file {target}")
            return WriteOutcome.SKIPPED

        if generated.is_json:
            data = generated.content
            if existed and policy == MergePolicy.MERGE:
                current = self.file_system.read_json(target)
                if not isinstance(current, dict):
                    raise ValueError(f"Cannot merge into {target}: existing content is not a JSON object")
                data = {**current, **generated.content}
            self.file_system.write_json(target, data)
        else:
            self.file_system.write_file(target, generated.content)

        if not existed:
            return WriteOutcome.CREATED
        return WriteOutcome.MERGED if policy == MergePolicy.MERGE and generated.is_json \
            else WriteOutcome.REPLACED

    def write_all(self, root: Path, files: Iterable[GeneratedFile],
                  policy: MergePolicy = MergePolicy.REPLACE) -> DeploymentResult:
        """
        Write every file, stopping at the first failure.

        Returns:
            DeploymentResult listing deployed paths (relative to root) and
            skipped components; on failure ``success`` is False and the files
            written before the failure are still listed
        """
        deployed: List[str] = []
        skipped: List[str] = []
        for generated in files:
            try:
                outcome = self.write(root, generated, policy)
            except (FileOperationFailed, ValueError) as e:
                logger.error(f"Deployment stopped at {generated.path}: {e}")
                return DeploymentResult(
                    success=False,
                    deployed_files=deployed,
                    skipped_components=skipped,
                    errors=[DeploymentError(
                        component=generated.component or generated.path,
                        message=str(e),
                        path=generated.path,
                        severity=Severity.HIGH,
                        suggestion=getattr(e, 'suggestion', None)
                        or 'Use --merge-policy replace to overwrite the file',
                    )],
                )
            if outcome == WriteOutcome.SKIPPED:
                skipped.append(generated.component or generated.path)
            else:
                deployed.append(generated.path)
        return DeploymentResult(success=True, deployed_files=deployed,
                                skipped_components=skipped)
