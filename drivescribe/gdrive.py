# gdrive.py
import logging
import io

from .storage.base import StorageClient, ContentStream
from .storage.dto import FileRef, FileMetadata, ThumbnailEntry
from typing import List, Optional
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from googleapiclient.http import MediaIoBaseDownload
from google_auth_httplib2 import AuthorizedHttp
import httplib2
from .gdrive_auth import load_service_account_credentials
from .exceptions import NotFoundError, RetrievalError

FOLDER_MIME_TYPE = "application/vnd.google-apps.folder"


def _escape(value: str) -> str:
    """Escapes a value for use inside a quoted Drive query string."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


class DriveContentStream(ContentStream):
    """
    Streams a Drive file's content one ranged request at a time.
    Nothing is transferred until the first chunk is requested.
    """

    def __init__(self, file_id: str, request, chunk_size: int):
        self.file_id = file_id
        self._buffer = io.BytesIO()
        self._downloader = MediaIoBaseDownload(
            self._buffer, request, chunksize=chunk_size
        )
        self._closed = False

    def __iter__(self):
        done = False
        while not done and not self._closed:
            try:
                _, done = self._downloader.next_chunk()
            except HttpError as e:
                logging.error(f"Download of file ID '{self.file_id}' failed: {e}")
                raise RetrievalError(
                    f"Failed to download file '{self.file_id}' from Google Drive."
                ) from e
            except Exception as e:
                logging.error(
                    f"Transport error while downloading file ID '{self.file_id}': {e}"
                )
                raise RetrievalError(
                    f"Failed to download file '{self.file_id}' from Google Drive."
                ) from e

            chunk = self._buffer.getvalue()
            self._buffer.seek(0)
            self._buffer.truncate(0)
            if chunk:
                yield chunk

    def close(self):
        if not self._closed:
            logging.debug(f"Closing content stream for file ID '{self.file_id}'")
        self._closed = True


class GoogleDriveClient(StorageClient):
    """
    Client for interacting with the Google Drive API, implementing the StorageClient interface.
    """

    def __init__(self, service_account_file: str, chunk_size: int = 1024 * 1024):
        try:
            self.credentials = load_service_account_credentials(service_account_file)
            self.service = build(
                "drive", "v3", credentials=self.credentials, cache_discovery=False
            )
            self.chunk_size = chunk_size
            logging.info("Google Drive client initialized successfully.")
        except Exception as e:
            logging.error(f"Failed to initialize Google Drive client. Error: {e}")
            raise

    def _new_http(self) -> AuthorizedHttp:
        """
        Returns a fresh authorized transport. httplib2 connections are not
        thread-safe, so every call and every content stream gets its own.
        """
        return AuthorizedHttp(self.credentials, http=httplib2.Http())

    def _list(self, query: str, fields: str) -> List[dict]:
        try:
            response = (
                self.service.files()
                .list(q=query, fields=fields, spaces="drive")
                .execute(http=self._new_http())
            )
        except Exception as e:
            logging.error(f"Failed to list Google Drive files for query [{query}]: {e}")
            raise RetrievalError("Failed to list files in Google Drive.") from e
        return response.get("files", [])

    def list_folder(self, folder_id: str) -> List[FileRef]:
        """
        Lists all files in a given Google Drive folder ID and returns them as DTOs.
        """
        logging.info(f"Listing files in Google Drive folder ID: '{folder_id}'")
        files = self._list(
            f"'{_escape(folder_id)}' in parents and trashed=false",
            "files(id, name, mimeType)",
        )
        return [
            FileRef(id=item["id"], name=item["name"], mime_type=item.get("mimeType", ""))
            for item in files
        ]

    def list_subfolders(self, folder_id: str) -> List[FileRef]:
        logging.info(f"Listing subfolders of Google Drive folder ID: '{folder_id}'")
        files = self._list(
            f"'{_escape(folder_id)}' in parents and mimeType='{FOLDER_MIME_TYPE}' "
            "and trashed=false",
            "files(id, name, mimeType)",
        )
        return [
            FileRef(id=item["id"], name=item["name"], mime_type=FOLDER_MIME_TYPE)
            for item in files
            if item.get("mimeType", FOLDER_MIME_TYPE) == FOLDER_MIME_TYPE
        ]

    def list_image_thumbnails(self, folder_id: str) -> List[ThumbnailEntry]:
        """
        Lists the images of a folder that Drive has a thumbnail for.
        The query already restricts to images; the filter below guards against
        'contains' matching a MIME type that does not start with 'image/'.
        """
        logging.info(f"Listing image thumbnails in Google Drive folder ID: '{folder_id}'")
        files = self._list(
            f"'{_escape(folder_id)}' in parents and mimeType contains 'image/' "
            "and trashed=false",
            "files(id, name, mimeType, thumbnailLink)",
        )
        return [
            ThumbnailEntry(id=item["id"], name=item["name"], thumbnail_url=item["thumbnailLink"])
            for item in files
            if item.get("mimeType", "").startswith("image/") and item.get("thumbnailLink")
        ]

    def _get(self, file_id: str, fields: str) -> dict:
        try:
            request = self.service.files().get(fileId=file_id, fields=fields)
            return request.execute(http=self._new_http())
        except HttpError as e:
            if e.resp.status == 404:
                raise NotFoundError(
                    f"File with ID '{file_id}' not found in Google Drive."
                ) from e
            logging.error(f"Failed to get metadata for file ID '{file_id}': {e}")
            raise RetrievalError(
                f"Failed to get metadata for file '{file_id}' from Google Drive."
            ) from e
        except Exception as e:
            logging.error(f"Failed to get metadata for file ID '{file_id}': {e}")
            raise RetrievalError(
                f"Failed to get metadata for file '{file_id}' from Google Drive."
            ) from e

    def get_thumbnail(self, file_id: str) -> Optional[ThumbnailEntry]:
        file = self._get(file_id, "id, name, thumbnailLink")
        thumbnail_link = file.get("thumbnailLink")
        if not thumbnail_link:
            logging.info(f"No thumbnail available for file ID '{file_id}'")
            return None
        return ThumbnailEntry(id=file["id"], name=file["name"], thumbnail_url=thumbnail_link)

    def get_metadata(self, file_id: str) -> FileMetadata:
        file = self._get(file_id, "id, name, mimeType")
        return FileMetadata(
            id=file["id"], name=file["name"], mime_type=file.get("mimeType", "")
        )

    def open_content_stream(self, file_id: str) -> DriveContentStream:
        """
        Opens a chunked download of a file's content using its file ID.
        """
        logging.info(f"Opening content stream for file ID '{file_id}'")
        request = self.service.files().get_media(fileId=file_id)
        # The stream may be drained from any worker thread; it owns its transport
        request.http = self._new_http()
        return DriveContentStream(file_id, request, self.chunk_size)
