"""Google Drive storage for the cloud variant: per-session folders, shared files, retention listing."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from io import BytesIO
from typing import Iterator, List, Optional

import httplib2
from google.oauth2.credentials import Credentials
from google_auth_httplib2 import AuthorizedHttp
from googleapiclient.discovery import build
from googleapiclient.http import MediaIoBaseUpload

from pdfmerge.core.config import Settings

# Full Drive access is required to list and delete folders created in earlier runs.
SCOPES = ["https://www.googleapis.com/auth/drive"]
TOKEN_URI = "https://oauth2.googleapis.com/token"
FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


@dataclass
class RetentionGroup:
    group_id: str
    name: str
    created_at: datetime


@dataclass
class RemoteFile:
    file_id: str
    name: str
    view_link: Optional[str] = None
    download_link: Optional[str] = None

    def to_payload(self) -> dict:
        return {
            "id": self.file_id,
            "name": self.name,
            "viewLink": self.view_link,
            "downloadLink": self.download_link,
        }


def parse_drive_timestamp(value: str) -> datetime:
    """Parse an RFC 3339 ``createdTime`` such as ``2024-05-01T10:00:00.000Z``."""
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def build_credentials(settings: Settings) -> Credentials:
    return Credentials(
        token=None,
        refresh_token=settings.google_refresh_token,
        token_uri=TOKEN_URI,
        client_id=settings.google_client_id,
        client_secret=settings.google_client_secret,
        scopes=SCOPES,
    )


class DriveClient:
    """Thin wrapper over the Drive v3 API; every method blocks on the network.

    Calls run on worker threads and httplib2 is not thread-safe, so every request
    executes on its own ``Http`` transport authorized with the shared credentials.
    """

    def __init__(self, service, credentials: Optional[Credentials] = None) -> None:
        self.service = service
        self.credentials = credentials

    @classmethod
    def from_settings(cls, settings: Settings) -> "DriveClient":
        credentials = build_credentials(settings)
        service = build("drive", "v3", credentials=credentials, cache_discovery=False)
        return cls(service, credentials)

    def _http(self) -> Optional[AuthorizedHttp]:
        if self.credentials is None:
            return None
        return AuthorizedHttp(self.credentials, http=httplib2.Http())

    def create_folder(self, name: str, parent_id: str) -> str:
        body = {"name": name, "mimeType": FOLDER_MIME_TYPE, "parents": [parent_id]}
        folder = self.service.files().create(body=body, fields="id").execute(http=self._http())
        return folder["id"]

    def upload_file(self, folder_id: str, name: str, data: bytes, mime_type: str = "application/pdf") -> str:
        media = MediaIoBaseUpload(BytesIO(data), mimetype=mime_type, resumable=False)
        body = {"name": name, "parents": [folder_id]}
        request = self.service.files().create(body=body, media_body=media, fields="id")
        created = request.execute(http=self._http())
        return created["id"]

    def share_public(self, file_id: str) -> None:
        permission = {"role": "reader", "type": "anyone"}
        self.service.permissions().create(fileId=file_id, body=permission).execute(http=self._http())

    def get_links(self, file_id: str) -> tuple[Optional[str], Optional[str]]:
        request = self.service.files().get(fileId=file_id, fields="webViewLink, webContentLink")
        result = request.execute(http=self._http())
        return result.get("webViewLink"), result.get("webContentLink")

    def list_groups(self, parent_id: str) -> List[RetentionGroup]:
        return list(self._iter_folders(parent_id))

    def delete_group(self, group_id: str) -> None:
        # Deleting a folder removes everything inside it.
        self.service.files().delete(fileId=group_id).execute(http=self._http())

    def _iter_folders(self, parent_id: str) -> Iterator[RetentionGroup]:
        query = f"'{parent_id}' in parents and mimeType = '{FOLDER_MIME_TYPE}' and trashed = false"
        page_token = None
        while True:
            response = (
                self.service.files()
                .list(
                    q=query,
                    fields="nextPageToken, files(id, name, createdTime)",
                    pageToken=page_token,
                )
                .execute(http=self._http())
            )
            for item in response.get("files", []):
                yield RetentionGroup(
                    group_id=item["id"],
                    name=item.get("name", ""),
                    created_at=parse_drive_timestamp(item["createdTime"]),
                )
            page_token = response.get("nextPageToken")
            if not page_token:
                break
