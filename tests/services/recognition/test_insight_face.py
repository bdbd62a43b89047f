"""Tests for the InsightFace embedder adapter."""
from types import SimpleNamespace

import numpy as np
import pytest

from facecluster.core.exceptions import InvalidImageError
from facecluster.domain.entities.face import Gender
from facecluster.services.recognition import InsightFaceEmbedder


class TestInsightFaceEmbedder:
    """Conversion of model output; the model itself is not loaded."""

    def test_convert_detection(self):
        raw = SimpleNamespace(
            bbox=np.array([10.0, 20.0, 110.0, 150.0]),
            det_score=np.float32(0.87),
            embedding=np.ones(512, dtype=np.float32),
            sex="F",
            age=29,
        )

        detected = InsightFaceEmbedder._convert(raw)

        assert detected.bounding_box.width == 100.0
        assert detected.bounding_box.height == 130.0
        assert detected.gender == Gender.FEMALE
        assert detected.age == 29.0
        assert detected.quality_score == pytest.approx(0.87)
        assert detected.embedding.shape == (512,)

    def test_convert_without_attributes(self):
        raw = SimpleNamespace(bbox=[0, 0, 5, 5], det_score=0.5)

        detected = InsightFaceEmbedder._convert(raw)

        assert detected.embedding is None
        assert detected.gender == Gender.UNKNOWN
        assert detected.age is None

    def test_model_not_loaded_on_construction(self):
        assert InsightFaceEmbedder().model is None

    def test_undecodable_image(self):
        pytest.importorskip("cv2")

        with pytest.raises(InvalidImageError):
            InsightFaceEmbedder()._load_image(b"not an image")
