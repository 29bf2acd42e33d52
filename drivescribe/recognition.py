# recognition.py
import logging
from openai import OpenAI
from .config import get_settings
from .exceptions import InferenceError


class RecognitionClient:
    """
    Sends a base64-encoded image together with the configured prompt to an
    OpenAI-compatible multimodal endpoint and returns the generated text.
    """

    def __init__(self, client: OpenAI | None = None):
        # Created on first use so that importing or constructing this class
        # never needs an API key, which is crucial for testing.
        self._client = client

    @property
    def client(self) -> OpenAI:
        if self._client is None:
            logging.info("Initializing OpenAI client for the first time.")
            settings = get_settings()
            self._client = OpenAI(
                base_url=settings.OPENAI_BASE_URL,
                api_key=settings.OPENAI_API_KEY,
                max_retries=0,
            )
        return self._client

    def generate_transcription(self, img_base64: str, mime_type: str) -> str:
        """
        Sends an image to the recognition API.

        :param img_base64: Base64 encoded image.
        :param mime_type: MIME type of the image, e.g. 'image/png'.
        :return: Recognized text.
        """
        settings = get_settings()

        try:
            logging.info(f"Sending {mime_type} image to recognition API...")
            completion = self.client.chat.completions.create(
                model=settings.RECOGNITION_MODEL,
                messages=[
                    {
                        "role": "user",
                        "content": [
                            {"type": "text", "text": settings.RECOGNITION_PROMPT},
                            {
                                "type": "image_url",
                                "image_url": {
                                    "url": f"data:{mime_type};base64,{img_base64}"
                                },
                            },
                        ],
                    }
                ],
            )
        except Exception as e:
            logging.error(f"Recognition API call failed: {e}", exc_info=True)
            raise InferenceError("Recognition API call failed.") from e

        try:
            text = completion.choices[0].message.content
        except (AttributeError, IndexError, TypeError) as e:
            raise InferenceError("Recognition API returned a malformed response.") from e
        if not isinstance(text, str):
            raise InferenceError("Recognition API returned no text.")

        logging.info("Recognition successful.")
        return text
