# storage/base.py
from abc import ABC, abstractmethod
from typing import Iterator, List, Optional
from .dto import FileRef, FileMetadata, ThumbnailEntry


class ContentStream(ABC):
    """
    A readable stream of a remote file's raw bytes.

    Iterating yields the chunks in arrival order; normal exhaustion means the
    transfer completed, and a RetrievalError raised mid-iteration means it
    failed. A stream must be either drained or closed.
    """

    @abstractmethod
    def __iter__(self) -> Iterator[bytes]:
        pass

    @abstractmethod
    def close(self):
        """Abandons the transfer. A closed stream yields no further chunks."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class StorageClient(ABC):
    """
    Abstract base class for a cloud storage client.
    Defines the common interface that a specific storage client
    (e.g., Google Drive) must implement.
    """

    @abstractmethod
    def list_folder(self, folder_id: str) -> List[FileRef]:
        """
        Lists the immediate children of a folder.

        :param folder_id: The ID of the folder to list.
        :return: A list of standardized FileRef DTOs, in provider order.
        """
        pass

    @abstractmethod
    def list_subfolders(self, folder_id: str) -> List[FileRef]:
        """
        Lists the immediate children of a folder that are folders themselves.
        """
        pass

    @abstractmethod
    def list_image_thumbnails(self, folder_id: str) -> List[ThumbnailEntry]:
        """
        Lists the images in a folder that have a thumbnail link.

        :param folder_id: The ID of the folder to list.
        :return: ThumbnailEntry DTOs, in provider order. Non-images and
                 images without a thumbnail are never included.
        """
        pass

    @abstractmethod
    def get_thumbnail(self, file_id: str) -> Optional[ThumbnailEntry]:
        """
        Looks up the thumbnail link of a single file.

        :return: The entry, or None when the provider has no thumbnail for it.
        """
        pass

    @abstractmethod
    def get_metadata(self, file_id: str) -> FileMetadata:
        """
        Looks up a single file's id, name and MIME type.
        Raises NotFoundError if the id is unknown to the provider.
        """
        pass

    @abstractmethod
    def open_content_stream(self, file_id: str) -> ContentStream:
        """
        Opens a stream of the file's raw bytes.

        :param file_id: The ID of the file to read.
        """
        pass
