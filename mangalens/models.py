"""
Pydantic data models for the translation pipeline.

These models define the records passed between the parser, the
orchestrator, the renderers and the web layer.
"""
from __future__ import annotations

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class TranslationPair(BaseModel):
    """One speech bubble / text block: source text and its translation."""
    original: str = Field("", description="Japanese text as read from the page")
    translation: str = Field("", description="Chinese translation")


class OutcomeKind(str, Enum):
    """How a model response ended up being presented."""
    STRUCTURED = "structured"
    RAW = "raw"


class TranslationOutcome(BaseModel):
    """Result of translating a single image."""
    kind: OutcomeKind = Field(..., description="structured pairs or raw fallback")
    pairs: List[TranslationPair] = Field(default_factory=list)
    raw_text: str = Field("", description="Verbatim model response")

    @property
    def is_structured(self) -> bool:
        return self.kind == OutcomeKind.STRUCTURED

    @property
    def status_message(self) -> str:
        """Human-readable status line for the interactive client."""
        if self.is_structured:
            return "Translation complete."
        if not self.raw_text:
            return "Gemini LLM response empty."
        return "Displayed raw response (JSON parse failed)."


class JobStatus(str, Enum):
    """Terminal state of a batch job."""
    OK = "ok"
    SKIPPED = "skipped"
    ERROR = "error"


class TranslationJob(BaseModel):
    """One image file scheduled for batch translation."""
    source_image_path: str = Field(..., description="Absolute path to the image")
    derived_text_path: str = Field(..., description="Sibling .txt holding the raw response")
    overwrite: bool = Field(False, description="Reprocess even if the .txt exists")


class JobResult(BaseModel):
    """Per-file outcome reported by a batch run."""
    file: str = Field(..., description="Image file name (no directory)")
    status: JobStatus
    message: Optional[str] = Field(None, description="Failure detail when status is error")

    def to_dict(self) -> dict:
        data = {"file": self.file, "status": self.status.value}
        if self.message is not None:
            data["message"] = self.message
        return data


class BatchSummary(BaseModel):
    """Result of translating a whole directory."""
    dir: str = Field(..., description="Resolved directory path")
    results: List[JobResult] = Field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.results)

    def count(self, status: JobStatus) -> int:
        return sum(1 for r in self.results if r.status == status)

    @property
    def failed(self) -> int:
        return self.count(JobStatus.ERROR)

    def to_dict(self) -> dict:
        return {
            "dir": self.dir,
            "processed": self.processed,
            "results": [r.to_dict() for r in self.results],
        }


class Artifact(BaseModel):
    """Image file in a batch directory plus whether its text exists."""
    file: str
    has_text: bool = False

    def to_dict(self) -> dict:
        return {"file": self.file, "hasText": self.has_text}


class SessionSettings(BaseModel):
    """Interactive-session settings, read once and saved explicitly."""
    gemini_api_key: str = Field("", description="Google AI Studio API key")
    image_base_name: str = Field("capture", description="Prefix for saved screenshots")
    jpeg_quality: float = Field(0.5, ge=0.0, le=1.0, description="JPEG quality, 0..1")
    color_threshold: int = Field(60, ge=0, le=255, description="Border brightness threshold")

    @property
    def has_api_key(self) -> bool:
        key = (self.gemini_api_key or "").strip()
        return bool(key) and key != "YOUR_GEMINI_API_KEY"
