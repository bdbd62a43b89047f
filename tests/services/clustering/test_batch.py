"""Tests for incremental batch clustering."""
import numpy as np
import pytest

from facecluster.domain.entities.cluster import ClusterStatus
from facecluster.domain.entities.face import Face


class TestBatchClusterer:
    """Assignment of the unclustered pool."""

    async def test_similar_faces_share_a_new_cluster(self, store, clusterer, add_face):
        await add_face([1, 0, 0])
        await add_face([0.95, 0.05, 0])
        await add_face([0, 0, 1])

        result = await clusterer.cluster_unassigned(threshold=0.5)

        assert result.new_clusters == 2
        assert result.updated_clusters == 1
        assert result.assigned_faces == 3
        assert len(await store.list_clusters()) == 2
        assert await store.list_unclustered_faces() == []

    async def test_assigns_to_best_existing_cluster(self, store, clusterer, add_face, add_cluster):
        weak = await add_cluster([1, 1, 0])
        strong = await add_cluster([1, 0, 0])
        face = await add_face([1, 0.1, 0])

        result = await clusterer.cluster_unassigned(threshold=0.5)

        assert result.updated_clusters == 1
        assert result.new_clusters == 0
        assert (await store.get_face(face.id)).cluster_id == strong.id
        assert (await store.get_cluster(weak.id)).face_count == 1

    async def test_threshold_is_inclusive(self, store, clusterer, add_face, add_cluster):
        cluster = await add_cluster([1, 0, 0, 0])
        face = await add_face([1, 1, 1, 1])

        result = await clusterer.cluster_unassigned(threshold=0.5)

        assert result.updated_clusters == 1
        assert (await store.get_face(face.id)).cluster_id == cluster.id

    async def test_ties_go_to_first_cluster(self, store, clusterer, add_face, add_cluster):
        first = await add_cluster([1, 0])
        await add_cluster([2, 0])
        face = await add_face([1, 0])

        await clusterer.cluster_unassigned(threshold=0.5)

        assert (await store.get_face(face.id)).cluster_id == first.id

    async def test_centroid_refreshed_after_each_assignment(self, store, clusterer, add_face, add_cluster):
        cluster = await add_cluster([1, 0])
        await add_face([0.8, 0.6])
        await add_face([0.6, 0.8])

        result = await clusterer.cluster_unassigned(threshold=0.7)

        # [0.6, 0.8] only reaches the cluster through the refreshed centroid.
        assert result.new_clusters == 0
        updated = await store.get_cluster(cluster.id)
        assert updated.face_count == 3
        np.testing.assert_allclose(updated.centroid, [2.4 / 3, 1.4 / 3])

    async def test_merged_and_empty_clusters_are_ignored(self, store, clusterer, add_face, add_cluster):
        await add_cluster([1, 0], status=ClusterStatus.MERGED)
        face = await add_face([1, 0])

        result = await clusterer.cluster_unassigned(threshold=0.5)

        assert result.new_clusters == 1
        assert (await store.get_face(face.id)).cluster_id == result.created_cluster_ids[0]

    async def test_faces_without_embedding_are_skipped(self, store, clusterer, add_face):
        skipped = await add_face(None)
        await add_face([1, 0])

        result = await clusterer.cluster_unassigned()

        assert result.skipped_faces == 1
        assert result.assigned_faces == 1
        assert (await store.get_face(skipped.id)).cluster_id is None

    async def test_failure_of_one_face_does_not_abort(self, store, clusterer, add_face, add_cluster):
        await add_cluster([1, 0, 0])
        bad = Face(embedding=[1, 0])
        good = await add_face([1, 0, 0])

        result = await clusterer.assign_unclustered(
            [bad, good], await store.list_clusters(), threshold=0.5
        )

        assert [f.face_id for f in result.failed_faces] == [bad.id]
        assert result.assigned_faces == 1

    async def test_singleton_cluster_state(self, store, clusterer, add_face):
        face = await add_face([0.2, 0.4])

        result = await clusterer.cluster_unassigned()

        cluster = await store.get_cluster(result.created_cluster_ids[0])
        assert cluster.status == ClusterStatus.PENDING
        assert cluster.face_count == 1
        assert cluster.representative_face_id == face.id
        np.testing.assert_allclose(cluster.centroid, [0.2, 0.4])

    async def test_empty_pool(self, clusterer):
        result = await clusterer.cluster_unassigned()
        assert result.assigned_faces == 0
        assert result.new_clusters == 0

    async def test_one_person_converges_to_one_cluster(self, store, clusterer, add_face):
        for noise in (0.0, 0.05, -0.05, 0.1, 0.02):
            await add_face([1.0, noise, 0.3])

        result = await clusterer.cluster_unassigned(threshold=0.5)

        assert result.new_clusters == 1
        assert result.updated_clusters == 4
        clusters = await store.list_clusters()
        assert [c.face_count for c in clusters] == [5]

    async def test_second_run_changes_nothing(self, store, clusterer, add_face):
        await add_face([1, 0])
        await add_face([0, 1])
        await clusterer.cluster_unassigned()
        before = {f.id: f.cluster_id for f in await store.list_faces()}

        result = await clusterer.cluster_unassigned()

        assert result.assigned_faces == 0
        assert result.new_clusters == 0
        assert result.updated_clusters == 0
        assert {f.id: f.cluster_id for f in await store.list_faces()} == before
