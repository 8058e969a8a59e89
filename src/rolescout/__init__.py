"""Notable-role discovery and verification for performers."""

__version__ = "0.3.0"

from rolescout.models import (
    CandidateRole,
    Confidence,
    Medium,
    PipelineRunResult,
    PipelineTier,
    SourceTag,
    VerificationResult,
)

__all__ = [
    "CandidateRole",
    "Confidence",
    "Medium",
    "PipelineRunResult",
    "PipelineTier",
    "SourceTag",
    "VerificationResult",
    "__version__",
]
