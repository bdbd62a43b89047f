"""Value objects package."""
from .clustering import AssignmentResult, ClusterGroup, FailedFace, MergeResult
from .ingest import FailedDetection, IngestResult
from .recognition import FrameOutcome, RecognitionCandidate, RecognitionOutcome, RecognitionResult

__all__ = [
    "AssignmentResult",
    "ClusterGroup",
    "FailedDetection",
    "FailedFace",
    "FrameOutcome",
    "IngestResult",
    "MergeResult",
    "RecognitionCandidate",
    "RecognitionOutcome",
    "RecognitionResult",
]
