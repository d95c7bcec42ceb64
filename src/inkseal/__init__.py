"""InkSeal — signature capture and contract completion."""

from .completion import CompletionAggregator
from .engine import SignatureEngine
from .errors import (
    AlreadyProcessed,
    DocumentNotFound,
    InkSealError,
    InvalidTransition,
    NotFoundError,
    SignatureExpired,
    SignatureNotFound,
    SignatureValidationError,
)
from .geometry import simplify, simplify_strokes
from .store import SignatureStore
from .svgpath import render_svg, synthesize

__version__ = "0.1.0"

__all__ = [
    "AlreadyProcessed",
    "CompletionAggregator",
    "DocumentNotFound",
    "InkSealError",
    "InvalidTransition",
    "NotFoundError",
    "SignatureEngine",
    "SignatureExpired",
    "SignatureNotFound",
    "SignatureStore",
    "SignatureValidationError",
    "render_svg",
    "simplify",
    "simplify_strokes",
    "synthesize",
]
