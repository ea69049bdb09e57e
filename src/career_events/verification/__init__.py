"""Structural, live, content and headless verification stages."""

from .base import VerificationStage, run_stage
from .content import ContentVerifier
from .headless import HeadlessVerifier
from .live import LiveUrlVerifier
from .structural import StructuralResult, validate_event_item, validate_event_url

__all__ = [
    "ContentVerifier",
    "HeadlessVerifier",
    "LiveUrlVerifier",
    "StructuralResult",
    "VerificationStage",
    "run_stage",
    "validate_event_item",
    "validate_event_url",
]
