"""Patch synthesis, applicability checks and validation."""

from .oracle import ApplicabilityOracle, FunctionOracle, GitApplyOracle, OracleVerdict
from .patch import CandidatePatch, PatchError, PatchShape, SynthesisResult, synthesize_patch
from .validate import InvalidPatch, ValidatedPatch, normalize_patch, validate_candidate

__all__ = [
    "ApplicabilityOracle",
    "CandidatePatch",
    "FunctionOracle",
    "GitApplyOracle",
    "InvalidPatch",
    "OracleVerdict",
    "PatchError",
    "PatchShape",
    "SynthesisResult",
    "ValidatedPatch",
    "normalize_patch",
    "synthesize_patch",
    "validate_candidate",
]
