# processing.py
import asyncio
import base64
import logging

from .storage.base import StorageClient, ContentStream
from .storage.dto import EncodedPayload, TranscriptionResult
from .exceptions import RetrievalError, UnsupportedMediaError
from .recognition import RecognitionClient


def buffer_stream(stream: ContentStream, mime_type: str) -> EncodedPayload:
    """
    Drains a content stream into a single buffer and base64-encodes it.

    Chunks are appended in arrival order. If the stream fails before it is
    exhausted, the partial buffer is discarded and RetrievalError is raised,
    so no payload ever exists for an incomplete transfer.
    """
    buffer = bytearray()
    chunk_count = 0
    try:
        for chunk in stream:
            buffer.extend(chunk)
            chunk_count += 1
    except RetrievalError:
        logging.error(f"Content stream failed after {chunk_count} chunk(s); discarding buffer.")
        raise
    except Exception as e:
        logging.error(f"Content stream failed after {chunk_count} chunk(s); discarding buffer.")
        raise RetrievalError("Content stream failed before completion.") from e

    logging.info(f"Buffered {len(buffer)} bytes in {chunk_count} chunk(s).")
    return EncodedPayload(
        data=base64.b64encode(buffer).decode("ascii"),
        mime_type=mime_type,
        size=len(buffer),
    )


class TranscriptionPipeline:
    """
    Full transcription cycle for a single file:
    metadata -> stream -> buffer -> encode -> infer.

    Blocking provider calls run in worker threads so the event loop stays free
    to serve other requests. Each call produces exactly one outcome: a
    TranscriptionResult, or one of UnsupportedMediaError, RetrievalError
    (NotFoundError included) and InferenceError.
    """

    def __init__(self, storage_client: StorageClient, recognition_client: RecognitionClient):
        self.storage_client = storage_client
        self.recognition_client = recognition_client

    async def transcribe(self, file_id: str) -> TranscriptionResult:
        # 1. Metadata, for the MIME type
        metadata = await asyncio.to_thread(self.storage_client.get_metadata, file_id)

        # 2. Only images can be transcribed; the stream is never opened otherwise
        if not metadata.mime_type.startswith("image/"):
            raise UnsupportedMediaError(
                f"File '{file_id}' has MIME type '{metadata.mime_type}', not an image."
            )

        # 3. Stream and buffer the complete content
        stream = await asyncio.to_thread(self.storage_client.open_content_stream, file_id)
        with stream:
            payload = await asyncio.to_thread(buffer_stream, stream, metadata.mime_type)

        # 4. Infer, single attempt
        logging.info(f"Transcribing {metadata.name} ({payload.size} bytes)...")
        text = await asyncio.to_thread(
            self.recognition_client.generate_transcription,
            payload.data,
            payload.mime_type,
        )
        return TranscriptionResult(text=text)
