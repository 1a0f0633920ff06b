"""Filesystem tools: Read, Write, Edit, LS, Glob and Grep."""

from __future__ import annotations

import difflib
import glob
import fnmatch
import logging
import re
from pathlib import Path

from pydantic import Field

from enchant_agent.errors import ToolError
from enchant_agent.logging_utils import abbreviate
from enchant_agent.permissions import Permission
from enchant_agent.tools.base import ToolInput, ToolPreview, TypedTool
from enchant_agent.tools.walk import walk_files

logger = logging.getLogger(__name__)

MAX_GREP_MATCHES = 200


def _read_text(path: str) -> str:
    try:
        return Path(path).read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise ToolError(f"File does not exist: {path}") from exc
    except IsADirectoryError as exc:
        raise ToolError(f"Path is a directory: {path}") from exc
    except UnicodeDecodeError as exc:
        raise ToolError(f"File is not valid UTF-8 text: {path}") from exc
    except OSError as exc:
        raise ToolError(f"Unable to read {path}: {exc}") from exc


def _write_text(path: str, content: str) -> None:
    target = Path(path)
    try:
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(content, encoding="utf-8")
    except OSError as exc:
        raise ToolError(f"Unable to write {path}: {exc}") from exc


class ReadInput(ToolInput):
    path: str = Field(description="Absolute path of the file to read.")


class ReadTool(TypedTool[ReadInput]):
    name = "Read"
    description = (
        "Reads a file from the local filesystem. You can access any file directly "
        "by using this tool. It is okay to read a file that does not exist; an "
        "error will be returned."
    )
    input_model = ReadInput
    permission = Permission.IMPLICIT

    def describe_input(self, params: ReadInput) -> str:
        return f"Read file: {params.path}"

    def run(self, params: ReadInput) -> str:
        logger.debug("fs read path=%s", params.path)
        return _read_text(params.path)


class WriteInput(ToolInput):
    path: str = Field(description="Absolute path to the file that will be created.")
    content: str = Field(description="Content of the new file.")


class WriteTool(TypedTool[WriteInput]):
    name = "Write"
    description = (
        "Writes a file to the local filesystem, replacing it if it exists. "
        "Prefer Edit for changing existing files."
    )
    input_model = WriteInput
    permission = Permission.ALLOW_AUTOMATIC

    def describe_input(self, params: WriteInput) -> str:
        return f"Write file: {params.path}"

    def preview_input(self, params: WriteInput) -> ToolPreview | None:
        return ToolPreview(kind="write", text=params.content)

    def run(self, params: WriteInput) -> str:
        logger.debug("fs write path=%s bytes=%s", params.path, len(params.content))
        _write_text(params.path, params.content)
        return params.content


class EditInput(ToolInput):
    path: str = Field(description="Absolute path of the file to modify.")
    old_string: str = Field(description="Exact text to replace (first occurrence).")
    new_string: str = Field(description="Replacement text.")


class EditTool(TypedTool[EditInput]):
    name = "Edit"
    description = (
        "Performs an exact string replacement in a file. Only the first "
        "occurrence of old_string is replaced."
    )
    input_model = EditInput
    permission = Permission.ALLOW_AUTOMATIC

    def describe_input(self, params: EditInput) -> str:
        return f"Edit file: {params.path}"

    def preview_input(self, params: EditInput) -> ToolPreview | None:
        try:
            original = Path(params.path).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError):
            return None
        if params.old_string not in original:
            return None
        updated = original.replace(params.old_string, params.new_string, 1)
        if updated == original:
            return None
        diff = difflib.unified_diff(
            original.splitlines(keepends=True),
            updated.splitlines(keepends=True),
            fromfile=params.path,
            tofile=params.path,
        )
        return ToolPreview(kind="edit", text="".join(diff))

    def run(self, params: EditInput) -> str:
        original = _read_text(params.path)
        if params.old_string not in original:
            raise ToolError(f"old_string not found in {params.path}")
        updated = original.replace(params.old_string, params.new_string, 1)
        logger.debug("fs edit path=%s old=%s", params.path, abbreviate(params.old_string, 60))
        _write_text(params.path, updated)
        return updated


class LsInput(ToolInput):
    path: str = Field(description="The directory path to list. Must be an absolute path.")


class LsTool(TypedTool[LsInput]):
    name = "LS"
    description = "Lists the entries of a directory. Directories are suffixed with '/'."
    input_model = LsInput
    permission = Permission.IMPLICIT

    def describe_input(self, params: LsInput) -> str:
        return f"List directory: {params.path}"

    def run(self, params: LsInput) -> str:
        path = Path(params.path)
        if not path.exists():
            raise ToolError(f"Path does not exist: {params.path}")
        if not path.is_dir():
            raise ToolError(f"Path is not a directory: {params.path}")

        try:
            entries = list(path.iterdir())
        except OSError as exc:
            raise ToolError(str(exc)) from exc

        items = sorted(f"{e.name}/" if e.is_dir() else e.name for e in entries)
        if not items:
            return "(empty directory)"
        return "\n".join(items)


class GlobInput(ToolInput):
    pattern: str = Field(description="Glob pattern. Must use an absolute path. '**' recurses.")


class GlobTool(TypedTool[GlobInput]):
    name = "Glob"
    description = (
        "Match files using glob patterns. This tool is fast and works with "
        "even big codebases."
    )
    input_model = GlobInput
    permission = Permission.IMPLICIT

    def describe_input(self, params: GlobInput) -> str:
        return f"Glob: {params.pattern}"

    def run(self, params: GlobInput) -> str:
        matches = sorted(glob.glob(params.pattern, recursive=True))
        logger.debug("fs glob pattern=%s matches=%s", params.pattern, len(matches))
        if not matches:
            return "(no matches)"
        return "\n".join(matches)


class GrepInput(ToolInput):
    query: str = Field(description="Regular expression to search for.")
    path: str | None = Field(default=None, description="Directory or file to search. Defaults to the working directory.")
    glob: str | None = Field(default=None, description="Only search files whose name matches this pattern, e.g. '*.py'.")


class GrepTool(TypedTool[GrepInput]):
    name = "Grep"
    description = (
        "Searches file contents with a regular expression. Returns matching "
        "lines as path:line:text."
    )
    input_model = GrepInput
    permission = Permission.IMPLICIT

    def __init__(self, max_matches: int = MAX_GREP_MATCHES):
        self.max_matches = max_matches

    def describe_input(self, params: GrepInput) -> str:
        return f"Grep: {params.query}"

    def run(self, params: GrepInput) -> str:
        try:
            regex = re.compile(params.query)
        except re.error as exc:
            raise ToolError(f"Invalid regular expression: {exc}") from exc

        root = Path(params.path) if params.path else Path.cwd()
        if not root.exists():
            raise ToolError(f"Path does not exist: {root}")
        files = [root] if root.is_file() else walk_files(root)

        results: list[str] = []
        for file_path in files:
            if params.glob and not fnmatch.fnmatch(file_path.name, params.glob):
                continue
            try:
                text = file_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError):
                continue
            for lineno, line in enumerate(text.splitlines(), 1):
                if regex.search(line):
                    results.append(f"{file_path}:{lineno}:{line}")
                    if len(results) >= self.max_matches:
                        results.append(f"(stopped after {self.max_matches} matches)")
                        return "\n".join(results)

        logger.debug("fs grep query=%s root=%s matches=%s", params.query, root, len(results))
        if not results:
            return "(no matches)"
        return "\n".join(results)
