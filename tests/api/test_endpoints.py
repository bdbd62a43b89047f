"""API tests running the FastAPI app against an in-memory container."""
import asyncio

import pytest
from fastapi.testclient import TestClient

from facecluster.api.models.settings import ThresholdSettings
from facecluster.core.config import settings
from facecluster.core.container import ServiceContainer
from facecluster.infrastructure.dependencies import get_container
from facecluster.infrastructure.memory.store import InMemoryClusterStore
from facecluster.main import app

from tests.helpers import FakeEmbedder, detection

API = settings.API_V1_STR


def detection_json(embedding):
    return {
        "bounding_box": {"x": 0, "y": 0, "width": 50, "height": 60},
        "embedding": embedding,
        "quality_score": 0.9,
    }


@pytest.fixture
def container():
    """Provide an initialized container with an in-memory store."""
    cont = ServiceContainer(
        store=InMemoryClusterStore(),
        embedder=FakeEmbedder([detection([0, 0, 1])]),
    )
    asyncio.run(cont.initialize())
    yield cont
    asyncio.run(cont.cleanup())


@pytest.fixture
def client(container):
    """Provide a test client wired to the test container."""
    async def override_container():
        return container

    app.dependency_overrides[get_container] = override_container
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def restore_settings():
    """Undo threshold changes made through the API."""
    saved = {name: getattr(settings, name) for name in ThresholdSettings.model_fields}
    yield
    for name, value in saved.items():
        setattr(settings, name, value)


def ingest(client, *embeddings, cluster=True):
    response = client.post(
        f"{API}/faces/detections",
        json={"image_id": "img-1", "detections": [detection_json(e) for e in embeddings], "cluster": cluster},
    )
    assert response.status_code == 201
    return response.json()


class TestFaceEndpoints:
    """Ingestion and face browsing."""

    def test_ingest_detections_with_clustering(self, client):
        body = ingest(client, [1, 0, 0], [0.95, 0.05, 0], [0, 1, 0])

        assert len(body["faces"]) == 3
        assert body["assignment"]["new_clusters"] == 2
        assert body["assignment"]["assigned_faces"] == 3

        stats = client.get(f"{API}/faces/stats").json()
        assert stats == {"total": 3, "clustered": 3, "unclustered": 0}

    def test_ingest_image(self, client, container):
        response = client.post(f"{API}/faces/images?image_id=img-9&max_faces=2", content=b"raw-bytes")

        assert response.status_code == 201
        assert response.json()["faces"][0]["image_id"] == "img-9"
        assert container.embedder.calls == [(b"raw-bytes", 2)]

    def test_get_list_and_delete_face(self, client):
        face_id = ingest(client, [1, 0], cluster=False)["faces"][0]["id"]

        assert client.get(f"{API}/faces/{face_id}").json()["has_embedding"]
        assert [f["id"] for f in client.get(f"{API}/faces?unclustered=true").json()] == [face_id]
        assert client.delete(f"{API}/faces/{face_id}").status_code == 204
        assert client.get(f"{API}/faces/{face_id}").status_code == 404

    def test_remove_face_from_cluster(self, client):
        faces = ingest(client, [1, 0], [0.9, 0.1])["faces"]

        response = client.delete(f"{API}/faces/{faces[0]['id']}/cluster")

        assert response.json() == {"removed": True}
        assert client.get(f"{API}/faces/{faces[0]['id']}").json()["cluster_id"] is None


class TestClusterEndpoints:
    """Cluster listing and curation."""

    def test_list_and_detail(self, client):
        faces = ingest(client, [1, 0], [0.9, 0.1])["faces"]

        clusters = client.get(f"{API}/clusters").json()
        assert len(clusters) == 1
        detail = client.get(f"{API}/clusters/{clusters[0]['id']}").json()
        assert detail["face_ids"] == [f["id"] for f in faces]
        assert detail["face_count"] == 2
        assert detail["has_centroid"]

    def test_merge_and_stats(self, client):
        ingest(client, [1, 0], [0, 1])
        ids = [c["id"] for c in client.get(f"{API}/clusters").json()]

        merged = client.post(f"{API}/clusters/merge", json={"cluster_ids": ids})

        assert merged.status_code == 200
        assert merged.json()["face_count"] == 2
        stats = client.get(f"{API}/clusters/stats").json()
        assert stats == {"pending": 1, "confirmed": 0, "merged": 2, "total": 3}

    def test_merge_single_cluster_rejected(self, client):
        ingest(client, [1, 0])
        cluster_id = client.get(f"{API}/clusters").json()[0]["id"]

        response = client.post(f"{API}/clusters/merge", json={"cluster_ids": [cluster_id]})

        assert response.status_code == 400
        assert response.json()["error"] == "InvalidOperationError"

    def test_unknown_cluster_is_404(self, client):
        response = client.get(f"{API}/clusters/missing")

        assert response.status_code == 404
        assert response.json()["context"] == {"cluster_id": "missing"}

    def test_split_cluster(self, client):
        faces = ingest(client, [1, 0], [0.9, 0.1])["faces"]
        cluster_id = client.get(f"{API}/clusters").json()[0]["id"]

        response = client.post(
            f"{API}/clusters/{cluster_id}/split",
            json={"face_groups": [[faces[0]["id"]], [faces[1]["id"]]]},
        )

        assert response.status_code == 200
        assert len(response.json()) == 2
        assert client.get(f"{API}/clusters?status=merged").json()[0]["id"] == cluster_id

    def test_status_and_delete(self, client):
        ingest(client, [1, 0])
        cluster_id = client.get(f"{API}/clusters").json()[0]["id"]

        patched = client.patch(f"{API}/clusters/{cluster_id}/status", json={"status": "confirmed"})
        assert patched.json()["status"] == "confirmed"
        assert client.delete(f"{API}/clusters/{cluster_id}").status_code == 204
        assert client.get(f"{API}/clusters").json() == []


class TestClusteringEndpoints:
    """Batch clustering and merge passes."""

    def test_run_and_merge(self, client):
        ingest(client, [1, 0], [0.99, 0.1], cluster=False)

        run = client.post(f"{API}/clustering/run", json={"threshold": 0.999})
        assert run.json()["new_clusters"] == 2

        merge = client.post(f"{API}/clustering/merge", json={"threshold": 0.7})
        assert merge.json()["merged_count"] == 1

    def test_preview_does_not_persist(self, client):
        ingest(client, [1, 0], [0.99, 0.1], [0, 1], cluster=False)

        response = client.post(f"{API}/clustering/preview", json={"method": "hierarchical", "threshold": 0.5})

        assert sorted(len(g["face_ids"]) for g in response.json()) == [1, 2]
        assert client.get(f"{API}/clusters").json() == []

    def test_recalculate(self, client):
        ingest(client, [1, 0])

        assert client.post(f"{API}/clustering/recalculate").json() == {"clusters": 1}


class TestIdentityAndRecognitionEndpoints:
    """Labeling clusters and recognizing faces."""

    def make_identity(self, client):
        ingest(client, [1, 0])
        cluster_id = client.get(f"{API}/clusters").json()[0]["id"]
        response = client.post(f"{API}/identities", json={"name": "Alice", "cluster_ids": [cluster_id]})
        assert response.status_code == 201
        return response.json(), cluster_id

    def test_create_identity_confirms_clusters(self, client):
        identity, cluster_id = self.make_identity(client)

        assert [c["id"] for c in identity["clusters"]] == [cluster_id]
        assert identity["clusters"][0]["status"] == "confirmed"
        assert client.get(f"{API}/identities/stats").json()["with_clusters"] == 1

    def test_recognize_and_logs(self, client):
        identity, _ = self.make_identity(client)

        response = client.post(f"{API}/recognition/recognize", json={"embedding": [0.9, 0.1], "camera_id": "cam-1"})

        result = response.json()["result"]
        assert result["identity_id"] == identity["id"]
        assert not result["is_stranger"]
        logs = client.get(f"{API}/recognition/logs?camera_id=cam-1").json()["logs"]
        assert [log["id"] for log in logs] == [response.json()["log_id"]]
        assert client.get(f"{API}/recognition/stats").json() == {"total": 1, "identified": 1, "strangers": 0}
        assert client.delete(f"{API}/recognition/logs").json() == {"deleted": 1}

    def test_unlink_reverts_cluster(self, client):
        identity, cluster_id = self.make_identity(client)

        response = client.delete(f"{API}/identities/{identity['id']}/clusters/{cluster_id}")

        assert response.json() == {"removed": True}
        assert client.get(f"{API}/clusters/{cluster_id}").json()["status"] == "pending"

    def test_update_and_delete_identity(self, client):
        identity, _ = self.make_identity(client)

        renamed = client.patch(f"{API}/identities/{identity['id']}", json={"name": "Alicia"})
        assert renamed.json()["name"] == "Alicia"
        assert client.delete(f"{API}/identities/{identity['id']}").status_code == 204
        assert client.get(f"{API}/identities/{identity['id']}").status_code == 404

    def test_camera_detections(self, client, container):
        url = f"{API}/recognition/cameras/cam-1/detections"

        first = client.post(url, json={"detection": detection_json([1, 0])}).json()
        second = client.post(url, json={"detection": detection_json([1, 0])}).json()

        assert first["face_id"] is not None
        assert first["recognition"]["is_stranger"]
        assert second["from_cache"]
        assert client.delete(f"{API}/recognition/cameras/cam-1").json() == {"stopped": True}
        assert "cam-1" not in container.camera_sessions


class TestSettingsEndpoints:
    """Live threshold tuning."""

    def test_update_thresholds(self, client, restore_settings):
        response = client.patch(f"{API}/settings/thresholds", json={"CLUSTERING_THRESHOLD": 0.65})

        assert response.json()["CLUSTERING_THRESHOLD"] == 0.65
        assert settings.CLUSTERING_THRESHOLD == 0.65
        assert client.get(f"{API}/settings/thresholds").json()["MERGE_THRESHOLD"] == settings.MERGE_THRESHOLD

    def test_out_of_range_threshold_rejected(self, client, restore_settings):
        response = client.patch(f"{API}/settings/thresholds", json={"RECOGNITION_THRESHOLD": 1.5})

        assert response.status_code == 422


def test_health(client):
    assert client.get("/health").json()["status"] == "healthy"
