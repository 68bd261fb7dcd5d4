"""
Text Recognition Adapter using Mindee

DESIGN DECISION: Recognition is a black box that turns an image into
raw text. Picking the total out of that text is the extraction engine's
job (src.extraction), not the recognition service's.

Lifecycle:
1. initialize() creates the Mindee client once and memoizes it
2. recognize() runs the blocking SDK call in a worker thread, with
   retry and a timeout so a slow call can't hang the scan
3. terminate() drops the client; safe to call at any time, and the
   next recognize() lazily creates a new one

Use as `async with RecognitionEngine() as engine:` for scoped lifetime.
"""

import asyncio
from functools import partial
from io import BytesIO
from typing import Any, Callable, Optional

import structlog
from mindee import Client
from mindee.product import InvoiceV4
from PIL import Image, UnidentifiedImageError
from pydantic import ValidationError
from tenacity import Retrying, stop_after_attempt, wait_exponential

from src.config import Settings, get_settings


logger = structlog.get_logger(__name__)

DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_MAX_RETRIES = 3


class RecognitionError(Exception):
    """Base exception for text recognition failures."""
    pass


class RecognitionInitError(RecognitionError):
    """The recognition engine could not be initialized."""
    pass


class InvalidImageError(RecognitionError):
    """The image bytes could not be decoded."""
    pass


def prepare_image(image: bytes) -> bytes:
    """
    Decode and re-encode an image as RGB JPEG.

    Camera captures arrive as PNG, WEBP or JPEG with alpha or
    palette modes; the engine gets one predictable format.
    """
    if not image:
        raise InvalidImageError("Empty image")
    try:
        with Image.open(BytesIO(image)) as img:
            img.load()
            rgb = img.convert("RGB")
    except (UnidentifiedImageError, OSError) as e:
        raise InvalidImageError(f"Unsupported or corrupt image: {e}")

    buffer = BytesIO()
    rgb.save(buffer, format="JPEG", quality=95)
    return buffer.getvalue()


def _default_client(settings: Optional[Settings] = None) -> Client:
    settings = settings or get_settings()
    return Client(api_key=settings.mindee.api_key)


class RecognitionEngine:
    """
    Lazily-initialized handle on the text recognition engine.

    IMPORTANT BOUNDARIES:
    1. This service ONLY returns text - it does NOT look for amounts
    2. Every engine failure surfaces as RecognitionError so callers
       can fall back to manual entry
    """

    def __init__(
        self,
        client_factory: Optional[Callable[[], Any]] = None,
        timeout_seconds: Optional[float] = None,
        max_retries: Optional[int] = None,
        retry_wait=None,
    ):
        self._client_factory = client_factory or _default_client
        self._timeout = timeout_seconds or DEFAULT_TIMEOUT_SECONDS
        self._max_retries = max_retries or DEFAULT_MAX_RETRIES
        self._retry_wait = retry_wait or wait_exponential(multiplier=1, min=2, max=10)
        self._client: Optional[Any] = None
        self._lock = asyncio.Lock()

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "RecognitionEngine":
        settings = settings or get_settings()
        factory = partial(_default_client, settings)
        try:
            mindee = settings.mindee
        except ValidationError as e:
            # initialize() reports the missing key when a scan is attempted
            logger.warning("recognition_not_configured", error=str(e))
            return cls(client_factory=factory)
        return cls(
            client_factory=factory,
            timeout_seconds=mindee.recognition_timeout_seconds,
            max_retries=mindee.max_retries,
        )

    @property
    def is_initialized(self) -> bool:
        return self._client is not None

    async def initialize(self) -> Any:
        """
        Create the engine client if needed. Concurrent callers share
        one initialization.

        Raises:
            RecognitionInitError: If the client cannot be created
        """
        if self._client is not None:
            return self._client

        async with self._lock:
            if self._client is None:
                try:
                    self._client = await asyncio.to_thread(self._client_factory)
                except Exception as e:
                    logger.error("recognition_init_failed", error=str(e))
                    raise RecognitionInitError(f"Failed to initialize text recognition: {e}")
                logger.info("recognition_initialized")

        return self._client

    def _recognize_sync(self, client: Any, image: bytes, filename: str) -> str:
        for attempt in Retrying(
            stop=stop_after_attempt(self._max_retries),
            wait=self._retry_wait,
            reraise=True,
        ):
            with attempt:
                input_source = client.source_from_bytes(image, filename)
                response = client.parse(InvoiceV4, input_source, include_words=True)
                return str(response.document.ocr)
        return ""

    async def recognize(self, image: bytes, filename: str = "bill.jpg") -> str:
        """
        Turn an image into raw text.

        Args:
            image: Encoded image bytes (JPEG, PNG, WEBP)
            filename: Name passed to the engine for format detection

        Returns:
            Recognized text, lines separated by newlines

        Raises:
            RecognitionError: On decode, engine or timeout failure
        """
        client = await self.initialize()
        prepared = prepare_image(image)

        try:
            text = await asyncio.wait_for(
                asyncio.to_thread(self._recognize_sync, client, prepared, filename),
                timeout=self._timeout,
            )
        except asyncio.TimeoutError:
            logger.warning("recognition_timeout", timeout_seconds=self._timeout)
            raise RecognitionError(f"Text recognition timed out after {self._timeout:g}s")
        except Exception as e:
            logger.error("recognition_failed", error=str(e))
            raise RecognitionError(f"Text recognition failed: {e}")

        logger.info("recognition_completed", text_length=len(text))
        return text

    async def terminate(self) -> None:
        """Release the engine. No-op if it was never initialized."""
        async with self._lock:
            if self._client is None:
                return
            self._client = None
        logger.info("recognition_terminated")

    async def __aenter__(self) -> "RecognitionEngine":
        await self.initialize()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.terminate()
