"""
Interactive client: screen capture, screenshot saving, multi-page capture,
and capture-and-translate.

The screen grabber and the page-navigation action are injected callables so
the flows run the same against a real display, a browser automation hook, or
a test double.
"""
from __future__ import annotations

import logging
import os
import time
from typing import Callable, List, Optional

from PIL import Image, UnidentifiedImageError

from .config import get_config
from .cropper import crop_black_edges, decode_image, encode_jpeg
from .errors import CaptureError, ConfigurationMissingError
from .gemini_client import GeminiClient
from .models import SessionSettings, TranslationOutcome
from .orchestrator import client_caller, translate_one

logger = logging.getLogger(__name__)

# Wait after navigating before the next capture. Not an acknowledgment:
# slower page transitions will be captured mid-flip.
NAVIGATION_DELAY_SECONDS = 0.8

# quality (0..1) -> encoded image bytes
Grabber = Callable[[float], bytes]


def capture_screen(quality: float = 0.5, monitor: int = 1) -> bytes:
    """Grab a monitor with mss and return it JPEG-encoded."""
    import mss
    import mss.exception

    try:
        with mss.mss() as sct:
            shot = sct.grab(sct.monitors[monitor])
    except (mss.exception.ScreenShotError, IndexError) as e:
        raise CaptureError(f"Failed to capture screen: {e}") from e

    img = Image.frombytes("RGB", shot.size, shot.bgra, "raw", "BGRX")
    return encode_jpeg(img, quality)


def _grab_image(settings: SessionSettings, grabber: Grabber) -> Image.Image:
    data = grabber(settings.jpeg_quality)
    if not data:
        raise CaptureError("Failed to capture screen (screenshot was empty).")
    try:
        return decode_image(data)
    except (UnidentifiedImageError, OSError) as e:
        raise CaptureError(f"Captured data is not a decodable image: {e}") from e


def capture_and_crop(settings: SessionSettings, grabber: Grabber = capture_screen) -> bytes:
    """Capture, crop dark side borders, re-encode at the session quality."""
    image = _grab_image(settings, grabber)
    return encode_jpeg(crop_black_edges(image, settings.color_threshold), settings.jpeg_quality)


def save_screenshot(
    settings: SessionSettings,
    out_dir: str = ".",
    grabber: Grabber = capture_screen,
) -> str:
    """Capture+crop and write ``<image_base_name>.jpeg``; returns the path."""
    data = capture_and_crop(settings, grabber)
    os.makedirs(out_dir, exist_ok=True)
    path = os.path.join(out_dir, f"{settings.image_base_name}.jpeg")
    with open(path, "wb") as f:
        f.write(data)
    logger.info("Screenshot saved: %s", path)
    return path


def capture_book(
    total: int,
    settings: SessionSettings,
    out_dir: str = ".",
    grabber: Grabber = capture_screen,
    navigate: Optional[Callable[[], None]] = None,
    sleep: Callable[[float], None] = time.sleep,
    delay: float = NAVIGATION_DELAY_SECONDS,
) -> List[str]:
    """
    Capture ``total`` pages in sequence.

    For each page: capture+crop, save as ``<image_base_name><i>.jpeg``, then
    (except after the last page) navigate and wait ``delay`` seconds. Stops
    at the first capture failure and returns the pages saved so far.
    """
    if total <= 0:
        raise ValueError("Invalid number of pages.")

    os.makedirs(out_dir, exist_ok=True)
    saved: List[str] = []
    for i in range(1, total + 1):
        logger.info("Capturing page %d of %d...", i, total)
        try:
            data = capture_and_crop(settings, grabber)
        except CaptureError as e:
            logger.error("Could not capture page %d, stopping: %s", i, e)
            break

        path = os.path.join(out_dir, f"{settings.image_base_name}{i}.jpeg")
        with open(path, "wb") as f:
            f.write(data)
        saved.append(path)
        logger.info("Saved page %d of %d.", i, total)

        if i < total:
            if navigate is not None:
                navigate()
            sleep(delay)

    logger.info("Capture sequence completed (%d page(s)).", len(saved))
    return saved


def translate_image(
    image: Image.Image,
    settings: SessionSettings,
    prompt: Optional[str] = None,
    model: Optional[str] = None,
    client: Optional[GeminiClient] = None,
) -> TranslationOutcome:
    """Crop and translate an already-decoded image with session settings."""
    if not settings.has_api_key:
        raise ConfigurationMissingError(
            "Gemini API Key is not set. Please configure it with `mangalens config set`."
        )
    client = client or GeminiClient(api_key=settings.gemini_api_key)
    return translate_one(
        image,
        prompt or get_config()["prompt"],
        client_caller(client, model=model),
        threshold=settings.color_threshold,
        quality=settings.jpeg_quality,
    )


def translate_screen(
    settings: SessionSettings,
    prompt: Optional[str] = None,
    model: Optional[str] = None,
    client: Optional[GeminiClient] = None,
    grabber: Grabber = capture_screen,
) -> TranslationOutcome:
    """Capture the screen and translate it."""
    if not settings.has_api_key:
        raise ConfigurationMissingError(
            "Gemini API Key is not set. Please configure it with `mangalens config set`."
        )
    image = _grab_image(settings, grabber)
    return translate_image(image, settings, prompt=prompt, model=model, client=client)
