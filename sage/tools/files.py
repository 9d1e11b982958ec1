"""
File capability adapters.

All paths are resolved against a workspace root and refused if they
escape it. Blocking filesystem work runs in a worker thread.
"""
import asyncio
from pathlib import Path
from typing import List

from sage.core.logging_config import get_logger
from sage.tools.base import AdapterResult

logger = get_logger(__name__)

MAX_READ_BYTES = 1024 * 1024
MAX_SEARCH_RESULTS = 20
MAX_SEARCH_DEPTH = 5
IGNORED_DIRS = {"node_modules", ".git", "dist", "build", "__pycache__", ".venv"}


class FileOperations:
    """
    Read, write and search files inside one workspace directory.

    Every method returns an AdapterResult; none of them raise.
    """

    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def _resolve(self, file_path: str) -> Path:
        path = (self.root / file_path).resolve()
        if path != self.root and self.root not in path.parents:
            raise PermissionError(f"Path is outside the workspace: {file_path}")
        return path

    def _display(self, path: Path) -> str:
        return path.relative_to(self.root).as_posix()

    async def read_file(self, file_path: str) -> AdapterResult:
        return await asyncio.to_thread(self._read, file_path)

    async def write_file(self, file_path: str, content: str) -> AdapterResult:
        return await asyncio.to_thread(self._write, file_path, content)

    async def search_files(self, pattern: str) -> AdapterResult:
        return await asyncio.to_thread(self._search, pattern)

    def _read(self, file_path: str) -> AdapterResult:
        try:
            path = self._resolve(file_path)
        except PermissionError as e:
            return AdapterResult.fail(str(e))

        if not path.exists():
            return AdapterResult.fail(f"File not found: {file_path}")
        if not path.is_file():
            return AdapterResult.fail(f"Path is not a file: {file_path}")

        try:
            if path.stat().st_size > MAX_READ_BYTES:
                return AdapterResult.fail(f"File is larger than 1 MB: {file_path}")
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return AdapterResult.fail(f"Error reading file: {e}")

        logger.info(f"Read file: {self._display(path)} ({len(content)} chars)")
        return AdapterResult.ok(path=self._display(path), content=content)

    def _write(self, file_path: str, content: str) -> AdapterResult:
        try:
            path = self._resolve(file_path)
        except PermissionError as e:
            return AdapterResult.fail(str(e))

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            return AdapterResult.fail(f"Error writing file: {e}")

        logger.info(f"Wrote file: {self._display(path)} ({len(content)} chars)")
        return AdapterResult.ok(path=self._display(path))

    def _search(self, pattern: str) -> AdapterResult:
        if ".." in Path(pattern).parts:
            return AdapterResult.fail(f"Pattern is outside the workspace: {pattern}")

        # Bare file names are searched for anywhere below the root
        glob = pattern if "/" in pattern else f"**/{pattern}"

        try:
            matches: List[str] = []
            for path in sorted(self.root.glob(glob)):
                if not path.is_file():
                    continue
                # Symlinks may still point out of the root
                resolved = path.resolve()
                if self.root not in resolved.parents:
                    continue
                relative = path.relative_to(self.root)
                if len(relative.parts) > MAX_SEARCH_DEPTH + 1:
                    continue
                if IGNORED_DIRS.intersection(relative.parts[:-1]):
                    continue
                matches.append(relative.as_posix())
                if len(matches) >= MAX_SEARCH_RESULTS:
                    break
        except (OSError, ValueError, NotImplementedError) as e:
            return AdapterResult.fail(f"Error searching for files: {e}")

        return AdapterResult.ok(pattern=pattern, files=matches)
