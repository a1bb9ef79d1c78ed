"""
On-disk layout for batch jobs.

One directory per batch; each image ``name.ext`` may have a sibling
``name.txt`` holding the verbatim model response.
"""
from __future__ import annotations

import logging
import math
import os
import re
from pathlib import Path
from typing import List, Tuple

from .errors import InvalidDirectoryError, PersistenceError
from .models import Artifact

logger = logging.getLogger(__name__)

IMAGE_EXTENSIONS = frozenset({".jpg", ".jpeg", ".png", ".webp"})
TEXT_SUFFIX = ".txt"

_DIGITS_RE = re.compile(r"\d+")


def is_image_file(name: str) -> bool:
    return Path(name).suffix.lower() in IMAGE_EXTENSIONS


def sequence_key(name: str) -> float:
    """Last run of digits in the stem; names without digits sort last."""
    runs = _DIGITS_RE.findall(Path(name).stem)
    if not runs:
        return math.inf
    return int(runs[-1])


def natural_sort_key(name: str) -> Tuple[float, str]:
    return sequence_key(name), name


def derived_text_path(image_path: str) -> str:
    """``/dir/page1.jpg`` -> ``/dir/page1.txt``."""
    return str(Path(image_path).with_suffix(TEXT_SUFFIX))


def resolve_directory(dir_path: str) -> str:
    """Absolute path of an existing directory, else InvalidDirectoryError."""
    if not dir_path or not isinstance(dir_path, str):
        raise InvalidDirectoryError("dir is required")
    full = os.path.abspath(os.path.expanduser(dir_path))
    if not os.path.isdir(full):
        raise InvalidDirectoryError(f"dir not found or not a directory: {full}")
    return full


def list_images(dir_path: str) -> List[str]:
    """Image file names in ``dir_path``, in natural page order."""
    names = [
        entry.name
        for entry in os.scandir(dir_path)
        if entry.is_file() and is_image_file(entry.name)
    ]
    return sorted(names, key=natural_sort_key)


def list_artifacts(dir_path: str) -> List[Artifact]:
    """Images in natural order, each flagged with whether its text exists."""
    full = resolve_directory(dir_path)
    return [
        Artifact(
            file=name,
            has_text=os.path.exists(derived_text_path(os.path.join(full, name))),
        )
        for name in list_images(full)
    ]


def persist_text(path: str, text: str) -> None:
    """Write the raw model response verbatim (UTF-8), replacing any old file."""
    try:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
    except OSError as e:
        raise PersistenceError(f"Failed to write {path}: {e}") from e


def read_text(path: str) -> str:
    with open(path, "r", encoding="utf-8", newline="") as f:
        return f.read()
