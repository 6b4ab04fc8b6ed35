from __future__ import annotations

from typing import Any, Optional

from fastapi import status


class MergeServiceError(Exception):
    """Base error of the merge pipeline, rendered as ``{"message", "kind"}``."""

    kind = "MergeServiceError"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "An error occurred while merging the PDFs."

    def __init__(self, message: Optional[str] = None, **extra: Any) -> None:
        self.message = message or self.default_message
        self.extra = extra
        super().__init__(self.message)

    def to_payload(self) -> dict:
        payload = {"message": self.message, "kind": self.kind}
        payload.update(self.extra)
        return payload


class NoFilesProvided(MergeServiceError):
    kind = "NoFilesProvided"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "No PDF files were uploaded."


class InvalidFileType(MergeServiceError):
    kind = "InvalidFileType"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Only PDF files are allowed!"


class FileTooLarge(MergeServiceError):
    kind = "FileTooLarge"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "The uploaded file exceeds the maximum allowed size."


class ParseFailure(MergeServiceError):
    kind = "ParseFailure"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "The file could not be read as a PDF document."


class MergeProducedNoPages(MergeServiceError):
    kind = "MergeProducedNoPages"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Could not merge the provided PDFs."


class StorageFailure(MergeServiceError):
    kind = "StorageFailure"
    default_message = "The merged PDF could not be stored."


class RemoteFolderCreationFailure(MergeServiceError):
    kind = "RemoteFolderCreationFailure"
    default_message = "Could not create the remote folder for this upload."


class ProcessingFailure(MergeServiceError):
    kind = "ProcessingFailure"
    default_message = "An error occurred while merging the PDFs."
