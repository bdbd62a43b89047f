"""Behaviour shared by every ClusterStore implementation."""
from datetime import timedelta

import numpy as np
import pytest

from facecluster.core.exceptions import (
    ClusterNotFoundError,
    FaceNotFoundError,
    IdentityNotFoundError,
)
from facecluster.domain.entities.cluster import (
    Cluster,
    ClusterStatus,
    Identity,
    IdentityCluster,
    RecognitionLog,
)
from facecluster.domain.entities.face import BoundingBox, Face, Gender, utcnow
from facecluster.infrastructure.database.store import SqlAlchemyClusterStore
from facecluster.infrastructure.memory.store import InMemoryClusterStore
from facecluster.services.clustering import BatchClusterer, CentroidMaintainer


@pytest.fixture(params=["memory", "sqlite"])
async def any_store(request, tmp_path):
    """Provide each store backend in turn."""
    if request.param == "memory":
        yield InMemoryClusterStore()
        return
    store = SqlAlchemyClusterStore.from_url(f"sqlite+aiosqlite:///{tmp_path / 'faces.db'}")
    await store.initialize()
    yield store
    await store.close()


class TestClusterStores:
    """Contract tests run against the in-memory and SQLite stores."""

    async def test_face_round_trip(self, any_store):
        face = Face(
            embedding=[0.25, -0.5, 1.0],
            image_id="img-1",
            bounding_box=BoundingBox(x=1, y=2, width=3, height=4),
            quality_score=0.8,
            age=31.0,
            gender=Gender.FEMALE,
            emotion="happy",
        )
        await any_store.add_face(face)

        stored = await any_store.get_face(face.id)

        np.testing.assert_array_equal(stored.embedding, [0.25, -0.5, 1.0])
        assert stored.bounding_box == face.bounding_box
        assert stored.gender == Gender.FEMALE
        assert stored.created_at == face.created_at
        assert stored.cluster_id is None

    async def test_face_without_embedding(self, any_store):
        face = await any_store.add_face(Face(embedding=None))

        assert not (await any_store.get_face(face.id)).has_embedding

    async def test_missing_records_raise(self, any_store):
        with pytest.raises(FaceNotFoundError):
            await any_store.get_face("missing")
        with pytest.raises(ClusterNotFoundError):
            await any_store.get_cluster("missing")
        with pytest.raises(IdentityNotFoundError):
            await any_store.get_identity("missing")

    async def test_returned_records_are_copies(self, any_store):
        face = await any_store.add_face(Face(embedding=[1, 0]))
        face.cluster_id = "elsewhere"

        assert (await any_store.get_face(face.id)).cluster_id is None

    async def test_faces_listed_in_insertion_order(self, any_store):
        ids = [(await any_store.add_face(Face(embedding=[i, 1]))).id for i in range(5)]

        assert [f.id for f in await any_store.list_faces()] == ids
        assert [f.id for f in await any_store.list_faces(limit=2, offset=1)] == ids[1:3]
        assert [f.id for f in await any_store.get_faces([ids[3], ids[0]])] == [ids[0], ids[3]]

    async def test_membership_queries(self, any_store):
        cluster = await any_store.add_cluster(Cluster(centroid=[1, 0], face_count=1))
        member = await any_store.add_face(Face(embedding=[1, 0]))
        loose = await any_store.add_face(Face(embedding=[0, 1]))
        await any_store.set_face_cluster(member.id, cluster.id)

        assert [f.id for f in await any_store.list_faces_by_cluster(cluster.id)] == [member.id]
        assert [f.id for f in await any_store.list_unclustered_faces()] == [loose.id]

    async def test_reassign_faces(self, any_store):
        source = await any_store.add_cluster(Cluster())
        target = await any_store.add_cluster(Cluster())
        for _ in range(3):
            await any_store.add_face(Face(embedding=[1, 0], cluster_id=source.id))

        assert await any_store.reassign_faces(source.id, target.id) == 3
        assert len(await any_store.list_faces_by_cluster(target.id)) == 3

    async def test_cluster_update_and_status_filter(self, any_store):
        cluster = await any_store.add_cluster(Cluster())
        await any_store.add_cluster(Cluster(status=ClusterStatus.MERGED))

        cluster.centroid = np.array([0.5, 0.5])
        cluster.face_count = 2
        cluster.status = ClusterStatus.CONFIRMED
        await any_store.update_cluster(cluster)

        stored = await any_store.get_cluster(cluster.id)
        np.testing.assert_array_equal(stored.centroid, [0.5, 0.5])
        assert stored.face_count == 2
        confirmed = await any_store.list_clusters(statuses=[ClusterStatus.CONFIRMED])
        assert [c.id for c in confirmed] == [cluster.id]
        assert len(await any_store.list_clusters()) == 2

    async def test_delete_cluster_detaches_faces_and_links(self, any_store):
        cluster = await any_store.add_cluster(Cluster())
        face = await any_store.add_face(Face(embedding=[1, 0], cluster_id=cluster.id))
        identity = await any_store.add_identity(Identity(name="Alice"))
        await any_store.add_identity_cluster(IdentityCluster(identity_id=identity.id, cluster_id=cluster.id))

        await any_store.delete_cluster(cluster.id)

        assert (await any_store.get_face(face.id)).cluster_id is None
        assert await any_store.list_identity_clusters(identity_id=identity.id) == []

    async def test_identity_links(self, any_store):
        identity = await any_store.add_identity(Identity(name="Alice"))
        first = await any_store.add_cluster(Cluster())
        second = await any_store.add_cluster(Cluster())
        await any_store.add_identity_cluster(IdentityCluster(identity_id=identity.id, cluster_id=first.id))
        await any_store.add_identity_cluster(IdentityCluster(identity_id=identity.id, cluster_id=second.id))

        assert await any_store.delete_identity_cluster(identity.id, first.id)
        assert not await any_store.delete_identity_cluster(identity.id, first.id)
        links = await any_store.list_identity_clusters(identity_id=identity.id)
        assert [link.cluster_id for link in links] == [second.id]

        await any_store.delete_identity(identity.id)
        assert await any_store.list_identity_clusters() == []

    async def test_link_requires_existing_records(self, any_store):
        identity = await any_store.add_identity(Identity(name="Alice"))

        with pytest.raises(ClusterNotFoundError):
            await any_store.add_identity_cluster(IdentityCluster(identity_id=identity.id, cluster_id="missing"))

    async def test_identity_update(self, any_store):
        identity = await any_store.add_identity(Identity(name="Alice"))
        identity.name = "Alicia"
        await any_store.update_identity(identity)

        assert [i.name for i in await any_store.list_identities()] == ["Alicia"]

    async def test_recognition_log_queries(self, any_store):
        old = RecognitionLog(is_stranger=True, camera_id="cam-1", timestamp=utcnow() - timedelta(days=10))
        await any_store.add_recognition_log(old)
        hit = await any_store.add_recognition_log(
            RecognitionLog(matched_identity_id="alice", confidence=0.9, camera_id="cam-2")
        )
        miss = await any_store.add_recognition_log(RecognitionLog(is_stranger=True, camera_id="cam-2"))

        assert [log.id for log in await any_store.list_recognition_logs()] == [miss.id, hit.id, old.id]
        assert [log.id for log in await any_store.list_recognition_logs(camera_id="cam-2", limit=1, offset=1)] == [hit.id]
        assert [log.id for log in await any_store.list_recognition_logs(identity_id="alice")] == [hit.id]
        assert len(await any_store.list_recognition_logs(is_stranger=True)) == 2
        recent = await any_store.list_recognition_logs(since=utcnow() - timedelta(days=1))
        assert [log.id for log in recent] == [miss.id, hit.id]

        assert await any_store.delete_recognition_logs_before(utcnow() - timedelta(days=1)) == 1
        assert await any_store.delete_recognition_logs_before(None) == 2

    async def test_clustering_runs_on_store(self, any_store):
        maintainer = CentroidMaintainer(any_store)
        clusterer = BatchClusterer(any_store, maintainer)
        for embedding in ([1, 0], [0.9, 0.1], [0, 1]):
            await any_store.add_face(Face(embedding=embedding))

        result = await clusterer.cluster_unassigned(threshold=0.5)

        assert result.new_clusters == 2
        assert result.updated_clusters == 1
        counts = sorted(c.face_count for c in await any_store.list_clusters())
        assert counts == [1, 2]
