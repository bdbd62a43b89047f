"""In-process implementation of the ClusterStore interface."""
from datetime import datetime
from typing import Dict, Iterable, List, Optional

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
from facecluster.domain.entities.face import Face
from facecluster.domain.interfaces.storage.cluster_store import ClusterStore


class InMemoryClusterStore(ClusterStore):
    """Dict-backed store for a single process.

    Records are kept in insertion-ordered dicts and copied on the way in and
    out, so callers never share state with the store.
    """

    def __init__(self) -> None:
        self._faces: Dict[str, Face] = {}
        self._clusters: Dict[str, Cluster] = {}
        self._identities: Dict[str, Identity] = {}
        self._links: Dict[str, IdentityCluster] = {}
        self._logs: List[RecognitionLog] = []

    # Faces

    def _face(self, face_id: str) -> Face:
        try:
            return self._faces[face_id]
        except KeyError:
            raise FaceNotFoundError(f"Face not found: {face_id}", details={"face_id": face_id})

    async def add_face(self, face: Face) -> Face:
        self._faces[face.id] = face.model_copy(deep=True)
        return face.model_copy(deep=True)

    async def get_face(self, face_id: str) -> Face:
        return self._face(face_id).model_copy(deep=True)

    async def get_faces(self, face_ids: Iterable[str]) -> List[Face]:
        wanted = set(face_ids)
        return [f.model_copy(deep=True) for f in self._faces.values() if f.id in wanted]

    async def list_faces(self, limit: Optional[int] = None, offset: int = 0) -> List[Face]:
        faces = list(self._faces.values())[offset:]
        if limit is not None:
            faces = faces[:limit]
        return [f.model_copy(deep=True) for f in faces]

    async def list_faces_by_cluster(self, cluster_id: str) -> List[Face]:
        return [f.model_copy(deep=True) for f in self._faces.values() if f.cluster_id == cluster_id]

    async def list_unclustered_faces(self) -> List[Face]:
        return [f.model_copy(deep=True) for f in self._faces.values() if f.cluster_id is None]

    async def set_face_cluster(self, face_id: str, cluster_id: Optional[str]) -> None:
        self._face(face_id).cluster_id = cluster_id

    async def reassign_faces(self, from_cluster_id: str, to_cluster_id: Optional[str]) -> int:
        moved = 0
        for face in self._faces.values():
            if face.cluster_id == from_cluster_id:
                face.cluster_id = to_cluster_id
                moved += 1
        return moved

    async def delete_face(self, face_id: str) -> None:
        self._face(face_id)
        del self._faces[face_id]

    # Clusters

    def _cluster(self, cluster_id: str) -> Cluster:
        try:
            return self._clusters[cluster_id]
        except KeyError:
            raise ClusterNotFoundError(f"Cluster not found: {cluster_id}", details={"cluster_id": cluster_id})

    async def add_cluster(self, cluster: Cluster) -> Cluster:
        self._clusters[cluster.id] = cluster.model_copy(deep=True)
        return cluster.model_copy(deep=True)

    async def get_cluster(self, cluster_id: str) -> Cluster:
        return self._cluster(cluster_id).model_copy(deep=True)

    async def list_clusters(self, statuses: Optional[Iterable[ClusterStatus]] = None) -> List[Cluster]:
        wanted = set(statuses) if statuses is not None else None
        return [
            c.model_copy(deep=True)
            for c in self._clusters.values()
            if wanted is None or c.status in wanted
        ]

    async def update_cluster(self, cluster: Cluster) -> Cluster:
        self._cluster(cluster.id)
        self._clusters[cluster.id] = cluster.model_copy(deep=True)
        return cluster.model_copy(deep=True)

    async def delete_cluster(self, cluster_id: str) -> None:
        self._cluster(cluster_id)
        del self._clusters[cluster_id]
        for face in self._faces.values():
            if face.cluster_id == cluster_id:
                face.cluster_id = None
        self._links = {k: v for k, v in self._links.items() if v.cluster_id != cluster_id}

    # Identities

    def _identity(self, identity_id: str) -> Identity:
        try:
            return self._identities[identity_id]
        except KeyError:
            raise IdentityNotFoundError(
                f"Identity not found: {identity_id}", details={"identity_id": identity_id}
            )

    async def add_identity(self, identity: Identity) -> Identity:
        self._identities[identity.id] = identity.model_copy(deep=True)
        return identity.model_copy(deep=True)

    async def get_identity(self, identity_id: str) -> Identity:
        return self._identity(identity_id).model_copy(deep=True)

    async def list_identities(self) -> List[Identity]:
        return [i.model_copy(deep=True) for i in self._identities.values()]

    async def update_identity(self, identity: Identity) -> Identity:
        self._identity(identity.id)
        self._identities[identity.id] = identity.model_copy(deep=True)
        return identity.model_copy(deep=True)

    async def delete_identity(self, identity_id: str) -> None:
        self._identity(identity_id)
        del self._identities[identity_id]
        self._links = {k: v for k, v in self._links.items() if v.identity_id != identity_id}

    async def add_identity_cluster(self, link: IdentityCluster) -> IdentityCluster:
        self._identity(link.identity_id)
        self._cluster(link.cluster_id)
        self._links[link.id] = link.model_copy(deep=True)
        return link.model_copy(deep=True)

    async def delete_identity_cluster(self, identity_id: str, cluster_id: str) -> bool:
        matching = [
            k for k, v in self._links.items()
            if v.identity_id == identity_id and v.cluster_id == cluster_id
        ]
        for key in matching:
            del self._links[key]
        return bool(matching)

    async def list_identity_clusters(
        self,
        identity_id: Optional[str] = None,
        cluster_id: Optional[str] = None,
    ) -> List[IdentityCluster]:
        return [
            link.model_copy(deep=True)
            for link in self._links.values()
            if (identity_id is None or link.identity_id == identity_id)
            and (cluster_id is None or link.cluster_id == cluster_id)
        ]

    # Recognition logs

    async def add_recognition_log(self, log: RecognitionLog) -> RecognitionLog:
        self._logs.append(log.model_copy(deep=True))
        return log.model_copy(deep=True)

    async def list_recognition_logs(
        self,
        camera_id: Optional[str] = None,
        identity_id: Optional[str] = None,
        is_stranger: Optional[bool] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[RecognitionLog]:
        logs = [
            log for log in reversed(self._logs)
            if (camera_id is None or log.camera_id == camera_id)
            and (identity_id is None or log.matched_identity_id == identity_id)
            and (is_stranger is None or log.is_stranger == is_stranger)
            and (since is None or log.timestamp >= since)
        ]
        logs = logs[offset:]
        if limit is not None:
            logs = logs[:limit]
        return [log.model_copy(deep=True) for log in logs]

    async def delete_recognition_logs_before(self, cutoff: Optional[datetime] = None) -> int:
        before = len(self._logs)
        if cutoff is None:
            self._logs = []
        else:
            self._logs = [log for log in self._logs if log.timestamp >= cutoff]
        return before - len(self._logs)
