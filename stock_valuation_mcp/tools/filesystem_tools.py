"""
File system tools confined to a single root directory.

Relative paths resolve against the root; any path that resolves outside it
(through `..` or a symlink) is rejected. Missing files and OS-level
failures are reported in the result with `success: false` rather than as
tool errors, so a caller can probe paths freely.
"""

from __future__ import annotations

import base64
import binascii
import fnmatch
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

import anyio

from . import RegisteredTool, define_tool
from .helpers import object_schema, string

ENCODINGS = ["utf8", "ascii", "base64", "hex"]


def _decode(data: bytes, encoding: str) -> str:
    if encoding == "base64":
        return base64.b64encode(data).decode("ascii")
    if encoding == "hex":
        return data.hex()
    return data.decode("utf-8" if encoding == "utf8" else "ascii")


def _encode(content: str, encoding: str) -> bytes:
    if encoding == "base64":
        try:
            return base64.b64decode(content, validate=True)
        except binascii.Error as e:
            raise ValueError(f"Content is not valid base64: {e}") from None
    if encoding == "hex":
        try:
            return bytes.fromhex(content)
        except ValueError:
            raise ValueError("Content is not valid hex") from None
    try:
        return content.encode("utf-8" if encoding == "utf8" else "ascii")
    except UnicodeEncodeError as e:
        raise ValueError(f"Content cannot be encoded as {encoding}: {e}") from None


def _iso_mtime(stats: os.stat_result) -> str:
    return datetime.fromtimestamp(stats.st_mtime, timezone.utc).isoformat().replace("+00:00", "Z")


def _entry_type(path: Path) -> str:
    if path.is_symlink():
        return "symlink"
    return "directory" if path.is_dir() else "file"


def _walk(
    base: Path,
    recursive: bool,
    include_hidden: bool,
    pattern: Optional[str],
) -> List[Dict[str, Any]]:
    entries: List[Dict[str, Any]] = []
    pending = [base]
    while pending:
        current = pending.pop(0)
        for item in sorted(current.iterdir(), key=lambda p: p.name):
            if not include_hidden and item.name.startswith("."):
                continue
            kind = _entry_type(item)
            if pattern is None or fnmatch.fnmatchcase(item.name, pattern):
                stats = item.lstat()
                entry: Dict[str, Any] = {
                    "name": item.name,
                    "path": item.relative_to(base).as_posix(),
                    "type": kind,
                    "modified": _iso_mtime(stats),
                }
                if kind == "file":
                    entry["size"] = stats.st_size
                entries.append(entry)
            if recursive and kind == "directory":
                pending.append(item)
    return entries


class FileSystemTools:
    def __init__(self, root: Path) -> None:
        self._root = root.resolve()

    def resolve(self, raw: str) -> Path:
        """Resolve `raw` under the root; raise ValueError when it escapes."""
        candidate = (self._root / raw).resolve()
        if candidate != self._root and self._root not in candidate.parents:
            raise ValueError(f"Path is outside the allowed root: {raw}")
        return candidate

    async def read_file(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        path = self.resolve(arguments["filePath"])
        encoding = arguments["encoding"]
        max_lines = arguments["maxLines"]
        failure = {"path": str(path), "content": "", "encoding": encoding, "size": 0, "lines": 0, "success": False}

        target = anyio.Path(path)
        if not await target.exists():
            return {**failure, "message": f"File not found: {path}"}
        if not await target.is_file():
            return {**failure, "message": f"Path is not a file: {path}"}

        try:
            data = await target.read_bytes()
            content = _decode(data, encoding)
        except (OSError, UnicodeDecodeError) as e:
            return {**failure, "message": f"Failed to read file: {e}"}

        lines = content.split("\n")
        if max_lines > 0 and len(lines) > max_lines:
            content = "\n".join(lines[:max_lines]) + f"\n... ({len(lines) - max_lines} more lines truncated)"

        return {
            "path": str(path),
            "content": content,
            "encoding": encoding,
            "size": len(data),
            "lines": len(lines),
            "success": True,
        }

    async def write_file(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        path = self.resolve(arguments["filePath"])
        payload = _encode(arguments["content"], arguments["encoding"])
        target = anyio.Path(path)

        try:
            if arguments["createDirectories"]:
                await target.parent.mkdir(parents=True, exist_ok=True)
            await target.write_bytes(payload)
        except OSError as e:
            return {"path": str(path), "bytesWritten": 0, "success": False, "message": f"Failed to write file: {e}"}

        return {"path": str(path), "bytesWritten": len(payload), "success": True}

    async def list_directory(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        path = self.resolve(arguments["dirPath"])
        failure = {"path": str(path), "type": "directory", "entries": [], "totalCount": 0, "success": False}

        if not path.exists():
            return {**failure, "message": f"Directory not found: {path}"}
        if not path.is_dir():
            return {**failure, "message": f"Path is not a directory: {path}"}

        try:
            entries = await anyio.to_thread.run_sync(
                _walk,
                path,
                arguments["recursive"],
                arguments["includeHidden"],
                arguments.get("pattern"),
            )
        except OSError as e:
            return {**failure, "message": f"Failed to list directory: {e}"}

        return {
            "path": str(path),
            "type": "directory",
            "entries": entries,
            "totalCount": len(entries),
            "success": True,
        }

    async def file_exists(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        path = self.resolve(arguments["filePath"])
        if not path.exists() and not path.is_symlink():
            return {"path": str(path), "exists": False}

        stats = await anyio.Path(path).lstat()
        kind = _entry_type(path)
        result: Dict[str, Any] = {
            "path": str(path),
            "exists": True,
            "type": kind,
            "modified": _iso_mtime(stats),
        }
        if kind == "file":
            result["size"] = stats.st_size
        return result

    async def delete_file(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        path = self.resolve(arguments["filePath"])
        if path == self._root:
            raise ValueError("Refusing to delete the root directory")
        if not path.exists():
            return {"path": str(path), "deleted": False, "success": False, "message": f"File not found: {path}"}

        try:
            if path.is_dir() and not path.is_symlink():
                if arguments["recursive"]:
                    await anyio.to_thread.run_sync(shutil.rmtree, path)
                else:
                    await anyio.Path(path).rmdir()
            else:
                await anyio.Path(path).unlink()
        except OSError as e:
            return {"path": str(path), "deleted": False, "success": False, "message": f"Failed to delete: {e}"}

        return {"path": str(path), "deleted": True, "success": True}

    async def search_files(self, arguments: Dict[str, Any]) -> Dict[str, Any]:
        path = self.resolve(arguments["directory"])
        pattern = arguments["pattern"]

        if not path.is_dir():
            return {
                "directory": str(path),
                "pattern": pattern,
                "matches": [],
                "totalMatches": 0,
                "success": False,
                "message": f"Directory not found: {path}",
            }

        # hidden entries are skipped
        found = await anyio.to_thread.run_sync(_walk, path, arguments["recursive"], False, pattern)
        matches = [
            {"path": e["path"], "name": e["name"], "type": "directory" if e["type"] == "directory" else "file"}
            for e in found
        ]
        return {
            "directory": str(path),
            "pattern": pattern,
            "matches": matches,
            "totalMatches": len(matches),
            "success": True,
        }


def build_tools(root: Path) -> List[RegisteredTool]:
    tools = FileSystemTools(root)
    encoding = string("File encoding", enum=ENCODINGS, default="utf8")

    return [
        define_tool(
            "read_file",
            "Read a file's contents (text, JSON, code...) from the server's file area",
            object_schema(
                {
                    "filePath": string("Path to the file, relative to the file area root"),
                    "encoding": encoding,
                    "maxLines": {
                        "type": "integer",
                        "minimum": 0,
                        "default": 0,
                        "description": "Maximum number of lines to return (0 for the full file)",
                    },
                },
                required=["filePath"],
            ),
            tools.read_file,
        ),
        define_tool(
            "write_file",
            "Write content to a file, creating it if needed and overwriting it otherwise",
            object_schema(
                {
                    "filePath": string("Path to the file, relative to the file area root"),
                    "content": string("Content to write"),
                    "encoding": encoding,
                    "createDirectories": {
                        "type": "boolean",
                        "default": True,
                        "description": "Create missing parent directories",
                    },
                },
                required=["filePath", "content"],
            ),
            tools.write_file,
        ),
        define_tool(
            "list_directory",
            "List files and directories in a path",
            object_schema(
                {
                    "dirPath": string("Directory to list (defaults to the root)", default="."),
                    "recursive": {"type": "boolean", "default": False, "description": "List recursively"},
                    "includeHidden": {
                        "type": "boolean",
                        "default": False,
                        "description": "Include hidden entries (names starting with .)",
                    },
                    "pattern": string('Glob filter on entry names (e.g., "*.json", "data_*")'),
                }
            ),
            tools.list_directory,
        ),
        define_tool(
            "file_exists",
            "Check whether a file or directory exists and return its metadata",
            object_schema({"filePath": string("Path to check")}, required=["filePath"]),
            tools.file_exists,
        ),
        define_tool(
            "delete_file",
            "Delete a file or directory (non-empty directories need recursive=true)",
            object_schema(
                {
                    "filePath": string("Path to the file or directory to delete"),
                    "recursive": {
                        "type": "boolean",
                        "default": False,
                        "description": "Delete non-empty directories recursively",
                    },
                },
                required=["filePath"],
            ),
            tools.delete_file,
        ),
        define_tool(
            "search_files",
            "Search for files by name pattern under a directory",
            object_schema(
                {
                    "directory": string("Directory to search (defaults to the root)", default="."),
                    "pattern": string('Glob pattern on names (e.g., "*.csv", "report_?.txt")'),
                    "recursive": {"type": "boolean", "default": True, "description": "Search subdirectories"},
                },
                required=["pattern"],
            ),
            tools.search_files,
        ),
    ]
