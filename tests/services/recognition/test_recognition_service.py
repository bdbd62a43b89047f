"""Tests for recognition against stored identities."""
from datetime import timedelta

from facecluster.domain.entities.cluster import ClusterStatus, RecognitionLog
from facecluster.domain.entities.face import utcnow


class TestRecognitionService:
    """Candidate loading, recognition and the audit log."""

    async def test_only_confirmed_linked_clusters_are_candidates(
        self, store, recognition, identities, add_cluster
    ):
        alice = await identities.create_identity("Alice")
        linked = await add_cluster([1, 0])
        await add_cluster([0, 1])
        await identities.link_cluster(alice.id, linked.id)

        candidates = await recognition.load_candidates()

        assert [(c.identity_id, c.cluster_id) for c in candidates] == [(alice.id, linked.id)]

    async def test_recognize_writes_log(self, store, recognition, identities, add_cluster):
        alice = await identities.create_identity("Alice")
        cluster = await add_cluster([1, 0])
        await identities.link_cluster(alice.id, cluster.id)

        outcome = await recognition.recognize([0.9, 0.1], camera_id="cam-1", face_id="face-1")

        assert outcome.result.identity_id == alice.id
        logs = await store.list_recognition_logs()
        assert [log.id for log in logs] == [outcome.log.id]
        assert logs[0].matched_identity_id == alice.id
        assert logs[0].face_id == "face-1"
        assert logs[0].camera_id == "cam-1"
        assert not logs[0].is_stranger

    async def test_stranger_without_identities(self, store, recognition):
        outcome = await recognition.recognize([1, 0])

        assert outcome.result.is_stranger
        assert outcome.log.is_stranger
        assert outcome.log.matched_identity_id is None

    async def test_explicit_threshold(self, recognition, identities, add_cluster):
        alice = await identities.create_identity("Alice")
        cluster = await add_cluster([1, 0])
        await identities.link_cluster(alice.id, cluster.id)

        assert (await recognition.recognize([1, 1], threshold=0.8)).result.is_stranger
        assert not (await recognition.recognize([1, 1], threshold=0.7)).result.is_stranger

    async def test_logs_filters_and_stats(self, recognition):
        await recognition.recognize([1, 0], camera_id="cam-1")
        await recognition.recognize([1, 0], camera_id="cam-2")

        assert len(await recognition.get_logs(camera_id="cam-1")) == 1
        assert len(await recognition.get_recent(minutes=5)) == 2
        stats = await recognition.recognition_stats()
        assert stats == {"total": 2, "identified": 0, "strangers": 2}

    async def test_logs_newest_first(self, recognition):
        first = await recognition.recognize([1, 0], camera_id="cam-1")
        second = await recognition.recognize([1, 0], camera_id="cam-1")

        logs = await recognition.get_logs()

        assert [log.id for log in logs] == [second.log.id, first.log.id]

    async def test_clear_old_logs_keeps_recent(self, store, recognition):
        await store.add_recognition_log(RecognitionLog(is_stranger=True, timestamp=utcnow() - timedelta(days=40)))
        await recognition.recognize([1, 0])

        assert await recognition.clear_old_logs(days_to_keep=30) == 1
        assert len(await recognition.get_logs()) == 1
        assert await recognition.clear_all_logs() == 1

    async def test_merged_cluster_no_longer_recognized(self, store, recognition, identities, add_cluster):
        alice = await identities.create_identity("Alice")
        cluster = await add_cluster([1, 0])
        await identities.link_cluster(alice.id, cluster.id)
        cluster = await store.get_cluster(cluster.id)
        cluster.status = ClusterStatus.MERGED
        await store.update_cluster(cluster)

        assert (await recognition.recognize([1, 0])).result.is_stranger
