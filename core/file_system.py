"""
Filesystem collaborator used by builders and the deployment writer.

A missing file surfaces as FileNotFoundError so callers can tell "not
configured" apart from "could not read". Any other OS error becomes
FileOperationFailed carrying the path and a suggestion, and malformed JSON
raises ValueError.
"""

import json
import logging
from pathlib import Path
from typing import Any, List, Optional, Union

from core.errors import FileOperationFailed

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


class FileSystem:
    """
    Thin wrapper over pathlib with the pipeline's error conventions.

    Args:
        home: Directory treated as the user's home; defaults to Path.home().
              Tests point this at a temporary directory.
    """

    def __init__(self, home: Optional[PathLike] = None):
        self._home = Path(home) if home is not None else None

    def get_user_home(self) -> Path:
        return self._home if self._home is not None else Path.home()

    def expand(self, path: PathLike) -> Path:
        """Expand a leading ``~`` against get_user_home()."""
        text = str(path)
        if text == '~':
            return self.get_user_home()
        if text.startswith('~/'):
            return self.get_user_home() / text[2:]
        return Path(text)

    # -- queries ------------------------------------------------------------

    def exists(self, path: PathLike) -> bool:
        return self.expand(path).exists()

    def is_directory(self, path: PathLike) -> bool:
        return self.expand(path).is_dir()

    def is_file(self, path: PathLike) -> bool:
        return self.expand(path).is_file()

    def read_file(self, path: PathLike) -> str:
        target = self.expand(path)
        try:
            with open(target, 'r', encoding='utf-8') as f:
                return f.read()
        except FileNotFoundError:
            raise
        except UnicodeDecodeError as e:
            raise FileOperationFailed(target, 'read', f"not valid UTF-8 ({e.reason})",
                                      suggestion="Re-save the file with UTF-8 encoding")
        except OSError as e:
            raise FileOperationFailed(target, 'read', e.strerror or str(e))

    def read_json(self, path: PathLike) -> Any:
        """
        Read and parse a JSON file.

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not valid JSON
        """
        content = self.read_file(path)
        try:
            return json.loads(content)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {self.expand(path)}: {e}")

    def read_directory(self, path: PathLike) -> List[str]:
        """Entry names of a directory, sorted for deterministic processing."""
        target = self.expand(path)
        try:
            return sorted(entry.name for entry in target.iterdir())
        except FileNotFoundError:
            raise
        except OSError as e:
            raise FileOperationFailed(target, 'list', e.strerror or str(e))

    # -- mutations ----------------------------------------------------------

    def ensure_directory(self, path: PathLike):
        target = self.expand(path)
        try:
            target.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise FileOperationFailed(target, 'create directory', e.strerror or str(e),
                                      suggestion="Check write permissions on the parent directory")

    def write_file(self, path: PathLike, content: str):
        target = self.expand(path)
        self.ensure_directory(target.parent)
        try:
            with open(target, 'w', encoding='utf-8') as f:
                f.write(content)
        except OSError as e:
            raise FileOperationFailed(target, 'write', e.strerror or str(e),
                                      suggestion="Check write permissions and free disk space")
        logger.debug(f"Wrote {target}")

    def write_json(self, path: PathLike, data: Any):
        self.write_file(path, json.dumps(data, indent=2, ensure_ascii=False) + '\n')

    def delete_file(self, path: PathLike):
        target = self.expand(path)
        try:
            target.unlink()
        except FileNotFoundError:
            raise
        except OSError as e:
            raise FileOperationFailed(target, 'delete', e.strerror or str(e))
