from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class SkippedFile(_CamelModel):
    file_name: str = Field(..., alias="fileName", description="Original name of the skipped upload.")
    position: int = Field(..., description="0-based position of the file in the request.")
    kind: str = Field(..., description="Error kind, e.g. ParseFailure.")
    reason: str


class RemoteFileInfo(_CamelModel):
    id: str
    name: str
    view_link: Optional[str] = Field(default=None, alias="viewLink")
    download_link: Optional[str] = Field(default=None, alias="downloadLink")


class MergedFileInfo(_CamelModel):
    download_link: str = Field(..., alias="downloadLink", description="Link to download the merged PDF.")
    file_name: str = Field(..., alias="fileName")
    page_count: int = Field(..., alias="pageCount")
    size_bytes: int = Field(..., alias="sizeBytes")
    id: Optional[str] = Field(default=None, description="Drive file id (drive storage only).")
    view_link: Optional[str] = Field(default=None, alias="viewLink")
    preview: Optional[str] = Field(default=None, description="First page as a PNG data URI.")


class MergeResponse(_CamelModel):
    merged_file: MergedFileInfo = Field(..., alias="mergedFile")
    skipped_files: List[SkippedFile] = Field(default_factory=list, alias="skippedFiles")
    folder_name: Optional[str] = Field(default=None, alias="folderName")
    folder_id: Optional[str] = Field(default=None, alias="folderId")
    uploaded_files: Optional[List[RemoteFileInfo]] = Field(default=None, alias="uploadedFiles")


class ErrorResponse(_CamelModel):
    message: str
    kind: Optional[str] = None
    skipped_files: Optional[List[SkippedFile]] = Field(default=None, alias="skippedFiles")
