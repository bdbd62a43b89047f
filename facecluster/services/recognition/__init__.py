"""Recognition services package."""
from .identity import IdentityRecognizer
from .insight_face import InsightFaceEmbedder
from .service import RecognitionService

__all__ = ["IdentityRecognizer", "InsightFaceEmbedder", "RecognitionService"]
