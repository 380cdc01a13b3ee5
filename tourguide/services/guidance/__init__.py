from .guidance_engine import (
    GuidanceEngine,
    GuidanceStatus,
    compute_guidance,
    format_instruction,
)

__all__ = [
    "GuidanceEngine",
    "GuidanceStatus",
    "compute_guidance",
    "format_instruction",
]
