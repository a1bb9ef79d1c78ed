"""
Translation orchestration.

Two entry points share the same contract (image -> model -> text):

- ``translate_one``: interactive path. Crop, encode, call the model, parse.
- ``translate_directory``: batch path. Call the model for every image in a
  directory and persist the raw text next to it; parsing happens later on
  the read path (``load_outcome``).

Every model call is attempted exactly once.
"""
from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Callable, List, Optional

from PIL import Image

from .config import get_config, resolve_api_key
from .cropper import DEFAULT_QUALITY, DEFAULT_THRESHOLD, crop_black_edges, encode_jpeg
from .errors import ConfigurationMissingError, MangaLensError
from .gemini_client import GeminiClient, guess_mime_type
from .models import (
    BatchSummary,
    JobResult,
    JobStatus,
    OutcomeKind,
    TranslationJob,
    TranslationOutcome,
)
from .parser import parse_translation_pairs
from .storage import derived_text_path, list_images, persist_text, read_text, resolve_directory

logger = logging.getLogger(__name__)

# (image_bytes, mime_type, prompt) -> generated text
ModelCaller = Callable[[bytes, str, str], str]


def client_caller(client: GeminiClient, model: Optional[str] = None) -> ModelCaller:
    """Adapt a GeminiClient to the ModelCaller signature."""
    def _call(image_bytes: bytes, mime_type: str, prompt: str) -> str:
        return client.generate_text(image_bytes, mime_type, prompt, model=model)
    return _call


def outcome_from_text(text: Optional[str]) -> TranslationOutcome:
    """Parse model text; fall back to the raw text when nothing is recovered."""
    raw = text or ""
    pairs = parse_translation_pairs(raw)
    if pairs:
        return TranslationOutcome(kind=OutcomeKind.STRUCTURED, pairs=pairs, raw_text=raw)
    return TranslationOutcome(kind=OutcomeKind.RAW, raw_text=raw)


def translate_one(
    image: Image.Image,
    prompt: str,
    model_caller: ModelCaller,
    threshold: int = DEFAULT_THRESHOLD,
    quality: float = DEFAULT_QUALITY,
) -> TranslationOutcome:
    """
    Crop -> JPEG-encode -> model -> parse for a single image.

    Raises:
        ModelCallError: propagated from the model caller
    """
    cropped = crop_black_edges(image, threshold)
    jpeg = encode_jpeg(cropped, quality)
    logger.info("Sending %dx%d image (%d bytes) to model", cropped.width, cropped.height, len(jpeg))
    text = model_caller(jpeg, "image/jpeg", prompt)
    outcome = outcome_from_text(text)
    logger.info("Model response handled as %s", outcome.kind.value)
    return outcome


def build_jobs(dir_path: str, overwrite: bool = False) -> List[TranslationJob]:
    """One job per image in ``dir_path`` (already resolved), natural order."""
    jobs = []
    for name in list_images(dir_path):
        image_path = os.path.join(dir_path, name)
        jobs.append(TranslationJob(
            source_image_path=image_path,
            derived_text_path=derived_text_path(image_path),
            overwrite=overwrite,
        ))
    return jobs


def run_job(job: TranslationJob, model_caller: ModelCaller, prompt: str) -> JobResult:
    """Process one file. Failures become an ``error`` result, never an exception."""
    name = Path(job.source_image_path).name

    if os.path.exists(job.derived_text_path) and not job.overwrite:
        logger.info("Skipping %s (text exists)", name)
        return JobResult(file=name, status=JobStatus.SKIPPED)

    try:
        image_bytes = Path(job.source_image_path).read_bytes()
        text = model_caller(image_bytes, guess_mime_type(job.source_image_path), prompt)
        persist_text(job.derived_text_path, text)
    except (MangaLensError, OSError) as e:
        logger.warning("Failed %s: %s", name, e)
        return JobResult(file=name, status=JobStatus.ERROR, message=str(e))
    except Exception as e:
        logger.exception("Unexpected failure on %s", name)
        return JobResult(file=name, status=JobStatus.ERROR, message=str(e))

    logger.info("Translated %s", name)
    return JobResult(file=name, status=JobStatus.OK)


def translate_directory(
    dir_path: str,
    overwrite: bool = False,
    api_key: Optional[str] = None,
    model_name: Optional[str] = None,
    prompt: Optional[str] = None,
    model_caller: Optional[ModelCaller] = None,
) -> BatchSummary:
    """
    Translate every image in a directory, strictly one at a time.

    Args:
        dir_path: Directory containing page images
        overwrite: Reprocess images whose .txt already exists
        api_key: Per-request key; falls back to configuration
        model_name: Gemini model (default from configuration)
        prompt: Instruction prompt (default from configuration)
        model_caller: Override the Gemini call (tests, alternate backends)

    Raises:
        InvalidDirectoryError: ``dir_path`` missing or not a directory
        ConfigurationMissingError: no API key; raised before any file is read
    """
    full = resolve_directory(dir_path)
    key = resolve_api_key(api_key)
    if not key:
        raise ConfigurationMissingError(
            "No Gemini API key provided (pass apiKey or set GEMINI_API_KEY env var)"
        )

    config = get_config()
    prompt = prompt or config["prompt"]
    if model_caller is None:
        model_caller = client_caller(GeminiClient(api_key=key), model=model_name or config["gemini"]["model"])

    jobs = build_jobs(full, overwrite=overwrite)
    logger.info("Batch %s: %d image(s), overwrite=%s", full, len(jobs), overwrite)

    summary = BatchSummary(dir=full)
    for job in jobs:
        summary.results.append(run_job(job, model_caller, prompt))

    logger.info(
        "Batch %s done: ok=%d skipped=%d failed=%d",
        full,
        summary.count(JobStatus.OK),
        summary.count(JobStatus.SKIPPED),
        summary.failed,
    )
    return summary


def load_outcome(dir_path: str, file_name: str) -> TranslationOutcome:
    """
    Read path: load the persisted text for ``file_name`` and parse it.

    Raises:
        FileNotFoundError: no text has been persisted for this image
    """
    full = resolve_directory(dir_path)
    name = Path(file_name or "").name
    if not name:
        raise FileNotFoundError(file_name)
    text_path = derived_text_path(os.path.join(full, name))
    if not os.path.exists(text_path):
        raise FileNotFoundError(text_path)
    return outcome_from_text(read_text(text_path))
