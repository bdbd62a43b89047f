"""Tests for DBSCAN grouping."""
from facecluster.domain.entities.face import Face
from facecluster.services.clustering import DensityGrouper


class TestDensityGrouper:
    """Density grouping over cosine distance."""

    def test_dense_faces_grouped_and_noise_kept(self):
        pool = [Face(embedding=e) for e in ([1, 0], [0.98, 0.05], [0.97, 0.1], [0, 1])]

        groups = DensityGrouper().group(pool, eps=0.1, min_points=2)

        assert [g.cluster_id for g in groups] == ["cluster_0", "noise_3"]
        assert groups[0].face_ids == [pool[0].id, pool[1].id, pool[2].id]
        assert groups[1].face_ids == [pool[3].id]

    def test_every_face_lands_in_one_group(self):
        pool = [Face(embedding=e) for e in ([1, 0], [0, 1], [-1, 0])]

        groups = DensityGrouper().group(pool, eps=0.1, min_points=1)

        assert sorted(fid for g in groups for fid in g.face_ids) == sorted(f.id for f in pool)
        assert all(g.cluster_id.startswith("noise_") for g in groups)

    def test_faces_without_embedding_excluded(self):
        assert DensityGrouper().group([Face(embedding=None)]) == []
