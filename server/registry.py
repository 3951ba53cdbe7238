# server/registry.py
from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, Dict, Optional, Type

from fastmcp.exceptions import ToolError
from pydantic import BaseModel, ValidationError

from app.di import Container
from app.errors import ErrorKind, SandboxError
from app.logging import DEFAULT_PREVIEW_CHARS, log_tool_call
from app.services.patching import Edit
from app.services.probes import COMMAND_PROBES
from server.tools.files import (
    CopyFileIn,
    CreateDirectoryIn,
    DeleteFileIn,
    DirectoryTreeIn,
    EditFileIn,
    GetFileInfoIn,
    ListAllowedDirectoriesIn,
    ListDirectoryIn,
    MoveFileIn,
    ReadFileIn,
    ReadMultipleFilesIn,
    SearchFilesIn,
    WriteFileIn,
)
from server.tools.probes import PROBE_DESCRIPTIONS, ProbeIn

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolSpec:
    name: str
    description: str
    input_model: Type[BaseModel]
    handler: Callable[[BaseModel], Any]


@dataclass(frozen=True)
class ToolResult:
    text: str
    is_error: bool = False
    kind: Optional[ErrorKind] = None

    def to_content(self) -> Dict[str, Any]:
        return {"content": [{"type": "text", "text": self.text}], "isError": self.is_error}


class ToolHandlers:
    """
    Named handlers for each tool (no lambdas).
    Every path argument goes through the sandbox before anything touches disk.
    """
    def __init__(self, container: Container):
        self.container = container
        self.validate = container.sandbox.validate

    # ---- Reading
    def read_file(self, args: ReadFileIn) -> str:
        return self.container.fs_service.read_text(self.validate(args.path))

    async def read_multiple_files(self, args: ReadMultipleFilesIn) -> str:
        return await self.container.fs_service.read_many(args.paths)

    def get_file_info(self, args: GetFileInfoIn) -> str:
        return self.container.fs_service.info(self.validate(args.path)).render()

    def list_allowed_directories(self, args: ListAllowedDirectoriesIn) -> str:
        return self.container.fs_service.allowed_directories()

    # ---- Writing
    def write_file(self, args: WriteFileIn) -> str:
        self.container.fs_service.write_text(self.validate(args.path), args.content)
        return f"Successfully wrote to {args.path}"

    def edit_file(self, args: EditFileIn) -> str:
        path = self.validate(args.path)
        edits = [Edit(e.old_text, e.new_text) for e in args.edits]
        return self.container.patch_engine.apply_edits(path, edits, dry_run=args.dry_run).fenced

    def create_directory(self, args: CreateDirectoryIn) -> str:
        self.container.fs_service.make_directory(self.validate(args.path))
        return f"Successfully created directory {args.path}"

    def copy_file(self, args: CopyFileIn) -> str:
        source, destination = self.validate(args.source), self.validate(args.destination)
        self.container.fs_service.copy(source, destination)
        return f"Successfully copied {args.source} to {args.destination}"

    def move_file(self, args: MoveFileIn) -> str:
        source, destination = self.validate(args.source), self.validate(args.destination)
        self.container.fs_service.move(source, destination)
        return f"Successfully moved {args.source} to {args.destination}"

    def delete_file(self, args: DeleteFileIn) -> str:
        entry = self.container.trash_service.move_to_trash(self.validate(args.path))
        return f"Successfully moved {args.path} to {entry.destination}"

    # ---- Hierarchy
    def list_directory(self, args: ListDirectoryIn) -> str:
        entries = self.container.walker.list(self.validate(args.path))
        return "\n".join(e.render() for e in entries)

    def directory_tree(self, args: DirectoryTreeIn) -> str:
        return self.container.walker.tree_json(self.validate(args.path))

    def search_files(self, args: SearchFilesIn) -> str:
        matches = self.container.walker.search(
            self.validate(args.path), args.pattern, args.exclude_patterns
        )
        return "\n".join(matches) if matches else "No matches found"

    # ---- Environment probes
    def command_probe(self, name: str, args: ProbeIn) -> str:
        return self.container.probe_service.run_command(name)

    def get_system_info(self, args: ProbeIn) -> str:
        return self.container.probe_service.system_info()

    def get_drive_info(self, args: ProbeIn) -> str:
        return self.container.probe_service.drive_info()

    def get_local_time(self, args: ProbeIn) -> str:
        return self.container.probe_service.local_time()


def _schema_from_model(model: Type[BaseModel]) -> Dict[str, Any]:
    return model.model_json_schema()


def build_tool_registry(container: Container) -> Dict[str, ToolSpec]:
    """
    Build a registry once at startup from the DI container.
    Transport layers (stdio/HTTP) read from this registry to expose tools.
    """
    handlers = ToolHandlers(container)

    specs = [
        ToolSpec(
            "read_file",
            "Read the complete contents of a file as UTF-8 text. Only works within allowed directories.",
            ReadFileIn,
            handlers.read_file,
        ),
        ToolSpec(
            "read_multiple_files",
            "Read the contents of multiple files simultaneously. Each file's content is returned "
            "with its path as a reference. Failed reads for individual files won't stop the "
            "entire operation. Only works within allowed directories.",
            ReadMultipleFilesIn,
            handlers.read_multiple_files,
        ),
        ToolSpec(
            "write_file",
            "Create a new file or completely overwrite an existing file with new content. "
            "Only works within allowed directories.",
            WriteFileIn,
            handlers.write_file,
        ),
        ToolSpec(
            "edit_file",
            "Make line-based edits to a text file. Each edit replaces exact line sequences with "
            "new content. Returns a git-style diff showing the changes made. "
            "Only works within allowed directories.",
            EditFileIn,
            handlers.edit_file,
        ),
        ToolSpec(
            "create_directory",
            "Create a new directory or ensure a directory exists. If the directory already "
            "exists, this operation will succeed silently. Only works within allowed directories.",
            CreateDirectoryIn,
            handlers.create_directory,
        ),
        ToolSpec(
            "list_directory",
            "Get a listing of all files and directories in a path, prefixed with [FILE] and [DIR]. "
            "Only works within allowed directories.",
            ListDirectoryIn,
            handlers.list_directory,
        ),
        ToolSpec(
            "directory_tree",
            "Get a recursive tree view of files and directories as JSON. Each entry has 'name', "
            "'type' (file/directory) and, for directories only, 'children' (possibly empty). "
            "Only works within allowed directories.",
            DirectoryTreeIn,
            handlers.directory_tree,
        ),
        ToolSpec(
            "move_file",
            "Move or rename files and directories. If the destination exists, the operation will "
            "fail. Both source and destination must be within allowed directories.",
            MoveFileIn,
            handlers.move_file,
        ),
        ToolSpec(
            "copy_file",
            "Create a copy of a file or directory (directories are copied recursively). If the "
            "destination already exists, the operation will fail. Both source and destination "
            "must be within allowed directories.",
            CopyFileIn,
            handlers.copy_file,
        ),
        ToolSpec(
            "delete_file",
            "Safely delete a file or directory by moving it to the Trash folder of its allowed "
            "directory. If a file with the same name exists in trash, a timestamp is appended. "
            "Only works within allowed directories.",
            DeleteFileIn,
            handlers.delete_file,
        ),
        ToolSpec(
            "search_files",
            "Recursively search for files and directories whose name contains a pattern "
            "(case-insensitive). Returns full paths to all matching items. "
            "Only searches within allowed directories.",
            SearchFilesIn,
            handlers.search_files,
        ),
        ToolSpec(
            "get_file_info",
            "Retrieve metadata about a file or directory: size, creation, modification and "
            "access times, permissions and type. Only works within allowed directories.",
            GetFileInfoIn,
            handlers.get_file_info,
        ),
        ToolSpec(
            "list_allowed_directories",
            "Returns the list of directories that this server is allowed to access.",
            ListAllowedDirectoriesIn,
            handlers.list_allowed_directories,
        ),
        ToolSpec("get_system_info", PROBE_DESCRIPTIONS["get_system_info"], ProbeIn,
                 handlers.get_system_info),
        ToolSpec("get_drive_info", PROBE_DESCRIPTIONS["get_drive_info"], ProbeIn,
                 handlers.get_drive_info),
        ToolSpec("get_local_time", PROBE_DESCRIPTIONS["get_local_time"], ProbeIn,
                 handlers.get_local_time),
    ]
    for probe in COMMAND_PROBES:
        specs.append(ToolSpec(probe, PROBE_DESCRIPTIONS[probe], ProbeIn,
                              partial(handlers.command_probe, probe)))

    return {spec.name: spec for spec in specs}


def list_tools_payload(registry: Dict[str, ToolSpec]) -> Dict[str, Any]:
    """
    Produce the `tools/list` payload body (name, description, inputSchema per tool).
    """
    tools = []
    for spec in registry.values():
        tools.append({
            "name": spec.name,
            "description": spec.description,
            "inputSchema": _schema_from_model(spec.input_model),
        })
    return {"tools": tools}


async def run_tool(spec: ToolSpec, args_obj: BaseModel) -> ToolResult:
    """
    Invoke a handler with already-validated input and turn the outcome into a
    ToolResult. Failures become error results; none escape to the transport.
    """
    try:
        result = spec.handler(args_obj)
        if inspect.isawaitable(result):
            result = await result
    except SandboxError as e:
        logger.info("tool %s failed (%s): %s", spec.name, e.kind.value, e)
        return ToolResult(f"Error: {e}", is_error=True, kind=e.kind)
    except OSError as e:
        logger.info("tool %s failed: %s", spec.name, e)
        return ToolResult(f"Error: {e}", is_error=True, kind=ErrorKind.OPERATION_FAILED)
    except Exception as e:
        logger.exception("tool %s crashed", spec.name)
        return ToolResult(f"Error: {e}", is_error=True, kind=ErrorKind.INTERNAL)
    return ToolResult(str(result))


async def dispatch_tool_call(registry: Dict[str, ToolSpec], name: str, arguments: Dict[str, Any],
                             preview_chars: int = DEFAULT_PREVIEW_CHARS) -> ToolResult:
    """
    Validate args with the tool's Pydantic model, then invoke the named handler.
    """
    log_tool_call(logger, name, arguments or {}, preview_chars)
    if name not in registry:
        return ToolResult(f"Error: Unknown tool: {name}", is_error=True, kind=ErrorKind.UNKNOWN_TOOL)
    spec = registry[name]
    try:
        args_obj = spec.input_model(**(arguments or {}))
    except ValidationError as e:
        return ToolResult(f"Error: Invalid arguments for {name}: {e}", is_error=True,
                          kind=ErrorKind.INVALID_ARGUMENTS)
    return await run_tool(spec, args_obj)


def register_into_fastmcp(mcp, registry: Dict[str, ToolSpec]) -> None:
    """
    Register all registry tools into a FastMCP stdio host.
    This keeps stdio and HTTP transports in sync without duplication.
    """
    for spec in registry.values():
        # Local closure so each handler binds to its own tool
        def make_tool(spec: ToolSpec):
            async def tool_handler(input):
                log_tool_call(logger, spec.name, input.model_dump(by_alias=True))
                result = await run_tool(spec, input)
                if result.is_error:
                    raise ToolError(result.text)
                return result.text
            # Real classes, not strings: FastMCP builds the input schema from these
            tool_handler.__annotations__ = {"input": spec.input_model, "return": str}
            tool_handler.__name__ = spec.name
            return tool_handler

        # FastMCP's decorator returns a decorator we can call dynamically.
        mcp.tool(name=spec.name, description=spec.description)(make_tool(spec))
