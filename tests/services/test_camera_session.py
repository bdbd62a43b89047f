"""Tests for the camera recognition session."""
import asyncio

import pytest

from facecluster.core.exceptions import SessionClosedError
from facecluster.services.camera_session import CameraRecognitionSession
from facecluster.services.dedup import DeduplicationCache

from tests.helpers import detection


@pytest.fixture
def session(ingest, recognition):
    return CameraRecognitionSession(ingest, recognition)


@pytest.fixture
def gated_recognition(recognition, monkeypatch):
    """Make recognition wait for the returned event before running."""
    gate = asyncio.Event()
    original = recognition.recognize

    async def slow_recognize(*args, **kwargs):
        await gate.wait()
        return await original(*args, **kwargs)

    monkeypatch.setattr(recognition, "recognize", slow_recognize)
    return gate


class TestCameraRecognitionSession:
    """Deduplicated recognition and storage of camera detections."""

    async def test_new_face_is_stored_recognized_and_clustered(self, store, session):
        outcome = await session.process_detection(detection([1, 0]), "cam-1", now=0.0)

        assert outcome.recognition.is_stranger
        assert not outcome.from_cache
        face = await store.get_face(outcome.face_id)
        assert face.cluster_id == outcome.cluster_id
        logs = await store.list_recognition_logs()
        assert [(log.face_id, log.camera_id) for log in logs] == [(outcome.face_id, "cam-1")]

    async def test_known_face_is_recognized(self, store, session, identities, add_cluster):
        alice = await identities.create_identity("Alice")
        cluster = await add_cluster([1, 0])
        await identities.link_cluster(alice.id, cluster.id)

        outcome = await session.process_detection(detection([0.99, 0.05]), "cam-1", now=0.0)

        assert outcome.recognition.identity_id == alice.id
        assert outcome.cluster_id == cluster.id
        assert (await store.get_cluster(cluster.id)).face_count == 2

    async def test_repeat_detection_reuses_result(self, store, session):
        first = await session.process_detection(detection([1, 0]), "cam-1", now=0.0)

        second = await session.process_detection(detection([0.99, 0.02]), "cam-1", now=1.0)

        assert second.from_cache
        assert second.recognition == first.recognition
        assert second.face_id is None
        assert len(await store.list_recognition_logs()) == 1
        assert len(await store.list_faces()) == 1

    async def test_other_camera_is_not_deduplicated(self, store, session):
        await session.process_detection(detection([1, 0]), "cam-1", now=0.0)

        outcome = await session.process_detection(detection([1, 0]), "cam-2", now=0.0)

        assert not outcome.from_cache
        assert outcome.face_id is not None

    async def test_save_dedup_outlives_recognition_cache(self, store, ingest, recognition):
        session = CameraRecognitionSession(
            ingest,
            recognition,
            recognition_cache=DeduplicationCache(similarity_threshold=0.5, cooldown_ms=500),
        )
        await session.process_detection(detection([1, 0]), "cam-1", now=0.0)

        outcome = await session.process_detection(detection([1, 0]), "cam-1", now=1.0)

        assert not outcome.from_cache
        assert outcome.face_id is None
        assert outcome.cluster_id is None
        assert len(await store.list_recognition_logs()) == 2
        assert len(await store.list_faces()) == 1

    async def test_uses_given_caches_even_when_empty(self, ingest, recognition):
        save_cache = DeduplicationCache(similarity_threshold=0.9, cooldown_ms=100, name="save")
        recognition_cache = DeduplicationCache(similarity_threshold=0.5, cooldown_ms=500, name="recognition")

        session = CameraRecognitionSession(
            ingest,
            recognition,
            save_cache=save_cache,
            recognition_cache=recognition_cache,
        )

        assert session.save_cache is save_cache
        assert session.recognition_cache is recognition_cache
        assert session.recognition_cache.cooldown_ms == 500

    async def test_quiet_camera_entries_expire(self, session):
        await session.process_detection(detection([1, 0]), "cam-1", now=0.0)
        assert len(session.recognition_cache) == 1

        await session.process_detection(detection([0, 1]), "cam-2", now=1000.0)

        assert len(session.recognition_cache) == 1
        assert len(session.save_cache) == 1

    async def test_detection_while_lookup_in_flight_is_skipped(self, session, gated_recognition):
        first = asyncio.create_task(session.process_detection(detection([1, 0]), "cam-1", now=0.0))
        await asyncio.sleep(0)

        second = await session.process_detection(detection([1, 0]), "cam-1", now=0.1)

        assert second.skipped
        assert second.reason == "recognition_in_flight"
        gated_recognition.set()
        assert not (await first).skipped

    async def test_stop_drops_in_flight_result(self, store, session, gated_recognition):
        pending = asyncio.create_task(session.process_detection(detection([1, 0]), "cam-1", now=0.0))
        await asyncio.sleep(0)

        session.stop()
        gated_recognition.set()
        outcome = await pending

        assert outcome.skipped
        assert outcome.reason == "session_stopped"
        assert len(session.recognition_cache) == 0
        with pytest.raises(SessionClosedError):
            await session.process_detection(detection([1, 0]), "cam-1", now=0.2)

    async def test_failed_lookup_does_not_block_later_detections(self, session, recognition, monkeypatch):
        original = recognition.recognize
        calls = []

        async def failing_once(*args, **kwargs):
            calls.append(args)
            if len(calls) == 1:
                raise RuntimeError("store unavailable")
            return await original(*args, **kwargs)

        monkeypatch.setattr(recognition, "recognize", failing_once)

        with pytest.raises(RuntimeError):
            await session.process_detection(detection([1, 0]), "cam-1", now=0.0)
        outcome = await session.process_detection(detection([1, 0]), "cam-1", now=0.1)

        assert not outcome.skipped
        assert not outcome.from_cache
        assert outcome.recognition.is_stranger

    async def test_detection_without_embedding_is_skipped(self, store, session):
        outcome = await session.process_detection(detection(None), "cam-1")

        assert outcome.skipped
        assert outcome.reason == "no_embedding"
        assert await store.list_faces() == []

    async def test_recognize_only_session(self, store, ingest, recognition):
        session = CameraRecognitionSession(ingest, recognition, save_faces=False)

        outcome = await session.process_detection(detection([1, 0]), "cam-1", now=0.0)

        assert outcome.face_id is None
        assert outcome.recognition.is_stranger
        assert await store.list_faces() == []

    async def test_context_manager_stops_session(self, ingest, recognition):
        async with CameraRecognitionSession(ingest, recognition) as session:
            assert session.active
        assert not session.active
