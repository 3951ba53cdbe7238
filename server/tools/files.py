# server/tools/files.py
from typing import List

from pydantic import BaseModel, ConfigDict, Field


class PathIn(BaseModel):
    path: str = Field(..., description="Absolute path, or relative to the server's working directory")


class ReadFileIn(PathIn):
    pass


class ReadMultipleFilesIn(BaseModel):
    paths: List[str] = Field(..., description="Paths to read; failures are reported per path")


class WriteFileIn(BaseModel):
    path: str = Field(..., description="File to create or overwrite")
    content: str = Field(..., description="UTF-8 text content to write")


class EditOperation(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    old_text: str = Field(..., alias="oldText", description="Text to search for - must match exactly")
    new_text: str = Field(..., alias="newText", description="Text to replace with")


class EditFileIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: str = Field(..., description="File to edit")
    edits: List[EditOperation] = Field(..., description="Edits applied in order")
    dry_run: bool = Field(False, alias="dryRun", description="Preview changes using git-style diff format")


class CreateDirectoryIn(PathIn):
    pass


class ListDirectoryIn(PathIn):
    pass


class DirectoryTreeIn(PathIn):
    pass


class SourceDestinationIn(BaseModel):
    source: str = Field(..., description="Existing file or directory")
    destination: str = Field(..., description="Target path; must not exist yet")


class CopyFileIn(SourceDestinationIn):
    pass


class MoveFileIn(SourceDestinationIn):
    pass


class DeleteFileIn(PathIn):
    pass


class SearchFilesIn(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    path: str = Field(..., description="Directory to search from")
    pattern: str = Field(..., description="Case-insensitive substring of the name")
    exclude_patterns: List[str] = Field(
        default_factory=list, alias="excludePatterns",
        description="Glob patterns relative to the search root; plain names exclude that directory anywhere",
    )


class GetFileInfoIn(PathIn):
    pass


class ListAllowedDirectoriesIn(BaseModel):
    pass
