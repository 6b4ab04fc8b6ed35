from .merge import ErrorResponse, MergedFileInfo, MergeResponse, RemoteFileInfo, SkippedFile

__all__ = [
    "ErrorResponse",
    "MergedFileInfo",
    "MergeResponse",
    "RemoteFileInfo",
    "SkippedFile",
]
