# main.py
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from fastapi.staticfiles import StaticFiles

from .config import get_settings
from .gdrive import GoogleDriveClient
from .storage.base import StorageClient
from .storage.dto import FileRef, ThumbnailEntry
from .exceptions import RetrievalError, UnsupportedMediaError, InferenceError
from .processing import TranscriptionPipeline
from .recognition import RecognitionClient


def setup_logging():
    """Configures logging to file and console explicitly."""
    settings = get_settings()
    log_level_name = settings.LOG_LEVEL.upper()

    # Get the root logger
    root_logger = logging.getLogger()
    root_logger.setLevel(log_level_name)

    # Clear any existing handlers to prevent duplicate logs on re-runs or implicit configs
    for handler in list(root_logger.handlers):
        root_logger.removeHandler(handler)

    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    stream_handler = logging.StreamHandler()
    stream_handler.setFormatter(formatter)
    root_logger.addHandler(stream_handler)

    try:
        file_handler = logging.FileHandler(settings.LOG_FILE)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)
    except IOError as e:
        # Log to console if file logging fails (e.g., permissions)
        root_logger.error(f"Failed to set up file logging to {settings.LOG_FILE}: {e}")

    # Reducing "noise" from third-party libraries
    logging.getLogger("urllib3").setLevel(logging.WARNING)
    logging.getLogger("googleapiclient").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


def initialize_storage_client(settings) -> StorageClient:
    """Initializes and returns a GoogleDriveClient."""
    logging.info("Using Google Drive storage provider.")
    return GoogleDriveClient(
        service_account_file=settings.GDRIVE_SERVICE_ACCOUNT_FILE,
        chunk_size=settings.GDRIVE_DOWNLOAD_CHUNK_SIZE,
    )


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message})


def create_app(
    storage_client: Optional[StorageClient] = None,
    recognition_client: Optional[RecognitionClient] = None,
    static_dir=None,
) -> FastAPI:
    """
    Builds the gateway. Collaborators that are not injected are created from
    the settings when the application starts.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if app.state.storage_client is None:
            app.state.storage_client = initialize_storage_client(get_settings())
        if app.state.pipeline is None:
            app.state.pipeline = TranscriptionPipeline(
                app.state.storage_client, recognition_client or RecognitionClient()
            )
        logging.info("Gateway started.")
        yield
        logging.info("Gateway stopped.")

    app = FastAPI(title="drivescribe", lifespan=lifespan)
    app.state.storage_client = storage_client
    app.state.pipeline = None
    if storage_client is not None:
        app.state.pipeline = TranscriptionPipeline(
            storage_client, recognition_client or RecognitionClient()
        )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/", response_model=List[FileRef])
    def list_root_folder(request: Request):
        """Fetch the files of the configured root folder."""
        folder_id = get_settings().GDRIVE_ROOT_FOLDER_ID
        try:
            return request.app.state.storage_client.list_folder(folder_id)
        except Exception as e:
            logging.error(f"Error fetching file list for folder '{folder_id}': {e}")
            return _error(500, "Failed to retrieve file list.")

    @app.get("/folders", response_model=List[FileRef])
    def list_folders(request: Request):
        """Fetch the subfolders of the configured root folder, for the gallery."""
        folder_id = get_settings().GDRIVE_ROOT_FOLDER_ID
        try:
            return request.app.state.storage_client.list_subfolders(folder_id)
        except Exception as e:
            logging.error(f"Error fetching folder list for folder '{folder_id}': {e}")
            return _error(500, "Failed to retrieve folder list.")

    @app.get("/file/{file_id}")
    def get_file(file_id: str, request: Request):
        """Stream a file's content as an octet stream."""
        stream = None
        try:
            stream = request.app.state.storage_client.open_content_stream(file_id)
            chunks = iter(stream)
            # Start the transfer before committing to a 200
            first = next(chunks, b"")
        except Exception as e:
            if stream is not None:
                stream.close()
            logging.error(f"Error fetching file '{file_id}': {e}")
            return _error(500, "Failed to retrieve file.")

        def body():
            try:
                yield first
                yield from chunks
            except RetrievalError as e:
                # Headers are already sent; aborting the connection tells the
                # client the body is incomplete
                logging.error(f"File stream for '{file_id}' failed mid-transfer: {e}")
                raise
            finally:
                stream.close()

        return StreamingResponse(body(), media_type="application/octet-stream")

    @app.get("/thumbnail/{file_id}", response_model=ThumbnailEntry)
    def get_thumbnail(file_id: str, request: Request):
        """Fetch the thumbnail link for a single image."""
        try:
            entry = request.app.state.storage_client.get_thumbnail(file_id)
        except Exception as e:
            logging.error(f"Error fetching thumbnail for '{file_id}': {e}")
            return _error(500, "Failed to retrieve thumbnail.")
        if entry is None:
            return _error(404, "Thumbnail not available for this file.")
        return entry

    @app.get("/thumbnails/{folder_id}", response_model=List[ThumbnailEntry])
    def list_thumbnails(folder_id: str, request: Request):
        """Fetch thumbnail links for all images in a folder."""
        try:
            return request.app.state.storage_client.list_image_thumbnails(folder_id)
        except Exception as e:
            logging.error(f"Error fetching image thumbnails for folder '{folder_id}': {e}")
            return _error(500, "Failed to retrieve image thumbnails.")

    @app.get("/transcribe/{file_id}")
    async def transcribe(file_id: str, request: Request):
        """Transcribe the text of a Drive image with the recognition API."""
        try:
            result = await request.app.state.pipeline.transcribe(file_id)
        except UnsupportedMediaError as e:
            logging.warning(f"Refusing to transcribe '{file_id}': {e}")
            return _error(400, "File is not an image.")
        except RetrievalError as e:
            logging.error(f"Error fetching file '{file_id}' for transcription: {e}")
            return _error(500, "Failed to retrieve file from Google Drive.")
        except InferenceError as e:
            logging.error(f"Error transcribing file '{file_id}': {e}")
            return _error(500, "Failed to transcribe image.")
        except Exception as e:
            logging.critical(f"Unexpected error transcribing file '{file_id}': {e}", exc_info=True)
            return _error(500, "An unexpected error occurred.")
        return {"transcription": result.text}

    if static_dir is None:
        static_dir = get_settings().STATIC_DIR
    app.mount("/gallery", StaticFiles(directory=static_dir, html=True), name="gallery")

    return app


def main():
    import argparse
    import uvicorn

    parser = argparse.ArgumentParser(
        description="Serve a Google Drive image gallery with on-demand transcription."
    )
    parser.add_argument("--host", help="Interface to bind, overrides APP_HOST.")
    parser.add_argument("--port", type=int, help="Port to listen on, overrides APP_PORT.")
    args = parser.parse_args()

    setup_logging()
    settings = get_settings()
    host = args.host or settings.APP_HOST
    port = args.port or settings.APP_PORT

    logging.info(f"Starting gateway on http://{host}:{port}")
    uvicorn.run(create_app(), host=host, port=port, log_config=None)


if __name__ == "__main__":
    main()
