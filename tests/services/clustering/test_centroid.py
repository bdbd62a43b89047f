"""Tests for centroid maintenance."""
import asyncio

import numpy as np
import pytest

from facecluster.core.exceptions import ClusterNotFoundError
from facecluster.domain.entities.cluster import Cluster, ClusterStatus
from facecluster.domain.entities.face import Face


class TestCentroidMaintainer:
    """Recomputation of centroid, face count and representative."""

    async def test_recompute_uses_mean_of_members(self, store, maintainer, add_face):
        cluster = await store.add_cluster(Cluster())
        await add_face([1, 0], cluster.id)
        await add_face([0, 1], cluster.id)

        updated = await maintainer.recompute(cluster.id)

        np.testing.assert_allclose(updated.centroid, [0.5, 0.5])
        assert updated.face_count == 2

    async def test_face_count_ignores_faces_without_embedding(self, store, maintainer, add_face):
        cluster = await store.add_cluster(Cluster())
        with_embedding = await add_face([1, 0], cluster.id)
        await add_face(None, cluster.id)

        updated = await maintainer.recompute(cluster.id)

        assert updated.face_count == 1
        assert updated.representative_face_id == with_embedding.id

    async def test_cluster_without_usable_members_is_deleted(self, store, maintainer, add_face):
        cluster = await store.add_cluster(Cluster(centroid=[1, 0], face_count=1))
        orphan = await add_face(None, cluster.id)

        assert await maintainer.recompute(cluster.id) is None

        with pytest.raises(ClusterNotFoundError):
            await store.get_cluster(cluster.id)
        assert (await store.get_face(orphan.id)).cluster_id is None

    async def test_missing_cluster_returns_none(self, maintainer):
        assert await maintainer.recompute("missing") is None

    async def test_representative_kept_while_member(self, store, maintainer, add_face):
        cluster = await store.add_cluster(Cluster())
        await add_face([1, 0], cluster.id)
        chosen = await add_face([0, 1], cluster.id)
        cluster = await store.get_cluster(cluster.id)
        cluster.representative_face_id = chosen.id
        await store.update_cluster(cluster)

        updated = await maintainer.recompute(cluster.id)

        assert updated.representative_face_id == chosen.id

    async def test_representative_replaced_when_it_leaves(self, store, maintainer, add_face):
        cluster = await store.add_cluster(Cluster())
        first = await add_face([1, 0], cluster.id)
        second = await add_face([0, 1], cluster.id)
        await maintainer.recompute(cluster.id)
        await store.set_face_cluster(first.id, None)

        updated = await maintainer.recompute(cluster.id)

        assert updated.representative_face_id == second.id

    async def test_concurrent_attachments_keep_count(self, store, maintainer, add_cluster):
        cluster = await add_cluster([1, 0])
        faces = [await store.add_face(Face(embedding=[1, 0.1 * i])) for i in range(10)]

        await asyncio.gather(*(maintainer.attach_face(f.id, cluster.id) for f in faces))

        updated = await store.get_cluster(cluster.id)
        assert updated.face_count == 11
        assert len(await store.list_faces_by_cluster(cluster.id)) == 11

    async def test_recompute_all_skips_merged(self, store, maintainer, add_cluster):
        await add_cluster([1, 0])
        await add_cluster([0, 1], status=ClusterStatus.CONFIRMED)
        await add_cluster([1, 1], status=ClusterStatus.MERGED)

        assert await maintainer.recompute_all() == 2

    async def test_deleted_cluster_releases_its_lock(self, store, maintainer, add_face):
        cluster = await store.add_cluster(Cluster(centroid=[1, 0], face_count=1))
        await add_face(None, cluster.id)

        await maintainer.recompute(cluster.id)

        assert cluster.id not in maintainer._locks

    async def test_missing_cluster_releases_its_lock(self, maintainer):
        await maintainer.recompute("missing")

        assert "missing" not in maintainer._locks
