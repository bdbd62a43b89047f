"""Persistence interface for faces, clusters and identities."""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Iterable, List, Optional

from ...entities.cluster import Cluster, ClusterStatus, Identity, IdentityCluster, RecognitionLog
from ...entities.face import Face


class ClusterStore(ABC):
    """Interface the clustering engine reads and writes through.

    Implementations return copies: mutating a returned record has no effect
    until it is passed back through an update method. Listing methods return
    records in insertion order, which the batch algorithms rely on for
    tie-breaking.
    """

    # Faces

    @abstractmethod
    async def add_face(self, face: Face) -> Face:
        """
        Persist a new face record.

        Args:
            face: Face to store

        Returns:
            The stored face

        Raises:
            StoreError: If storage operation fails
        """
        pass

    @abstractmethod
    async def get_face(self, face_id: str) -> Face:
        """
        Fetch a face by id.

        Raises:
            FaceNotFoundError: If the face does not exist
        """
        pass

    @abstractmethod
    async def get_faces(self, face_ids: Iterable[str]) -> List[Face]:
        """Fetch the faces among ``face_ids`` that exist, in insertion order."""
        pass

    @abstractmethod
    async def list_faces(self, limit: Optional[int] = None, offset: int = 0) -> List[Face]:
        """Fetch faces in insertion order, optionally paginated."""
        pass

    @abstractmethod
    async def list_faces_by_cluster(self, cluster_id: str) -> List[Face]:
        """Fetch every face whose ``cluster_id`` points at the cluster."""
        pass

    @abstractmethod
    async def list_unclustered_faces(self) -> List[Face]:
        """Fetch every face with no cluster, with or without embedding."""
        pass

    @abstractmethod
    async def set_face_cluster(self, face_id: str, cluster_id: Optional[str]) -> None:
        """
        Update a face's cluster reference.

        Raises:
            FaceNotFoundError: If the face does not exist
        """
        pass

    @abstractmethod
    async def reassign_faces(self, from_cluster_id: str, to_cluster_id: Optional[str]) -> int:
        """
        Move every face of one cluster to another (or to no cluster).

        Returns:
            Number of faces moved
        """
        pass

    @abstractmethod
    async def delete_face(self, face_id: str) -> None:
        """
        Delete a face record.

        Raises:
            FaceNotFoundError: If the face does not exist
        """
        pass

    # Clusters

    @abstractmethod
    async def add_cluster(self, cluster: Cluster) -> Cluster:
        """Persist a new cluster record."""
        pass

    @abstractmethod
    async def get_cluster(self, cluster_id: str) -> Cluster:
        """
        Fetch a cluster by id.

        Raises:
            ClusterNotFoundError: If the cluster does not exist
        """
        pass

    @abstractmethod
    async def list_clusters(self, statuses: Optional[Iterable[ClusterStatus]] = None) -> List[Cluster]:
        """Fetch clusters, optionally restricted to the given statuses."""
        pass

    @abstractmethod
    async def update_cluster(self, cluster: Cluster) -> Cluster:
        """
        Overwrite a stored cluster with ``cluster``.

        Raises:
            ClusterNotFoundError: If the cluster does not exist
        """
        pass

    @abstractmethod
    async def delete_cluster(self, cluster_id: str) -> None:
        """
        Hard-delete a cluster and its identity links.

        Member faces, if any, lose their cluster reference.

        Raises:
            ClusterNotFoundError: If the cluster does not exist
        """
        pass

    # Identities

    @abstractmethod
    async def add_identity(self, identity: Identity) -> Identity:
        """Persist a new identity."""
        pass

    @abstractmethod
    async def get_identity(self, identity_id: str) -> Identity:
        """
        Fetch an identity by id.

        Raises:
            IdentityNotFoundError: If the identity does not exist
        """
        pass

    @abstractmethod
    async def list_identities(self) -> List[Identity]:
        """Fetch every identity."""
        pass

    @abstractmethod
    async def update_identity(self, identity: Identity) -> Identity:
        """
        Overwrite a stored identity.

        Raises:
            IdentityNotFoundError: If the identity does not exist
        """
        pass

    @abstractmethod
    async def delete_identity(self, identity_id: str) -> None:
        """
        Delete an identity and its cluster links.

        Raises:
            IdentityNotFoundError: If the identity does not exist
        """
        pass

    @abstractmethod
    async def add_identity_cluster(self, link: IdentityCluster) -> IdentityCluster:
        """Persist an identity-cluster link."""
        pass

    @abstractmethod
    async def delete_identity_cluster(self, identity_id: str, cluster_id: str) -> bool:
        """Remove one identity-cluster link; returns whether it existed."""
        pass

    @abstractmethod
    async def list_identity_clusters(
        self,
        identity_id: Optional[str] = None,
        cluster_id: Optional[str] = None,
    ) -> List[IdentityCluster]:
        """Fetch links, optionally filtered by identity and/or cluster."""
        pass

    # Recognition logs

    @abstractmethod
    async def add_recognition_log(self, log: RecognitionLog) -> RecognitionLog:
        """Append a recognition log record."""
        pass

    @abstractmethod
    async def list_recognition_logs(
        self,
        camera_id: Optional[str] = None,
        identity_id: Optional[str] = None,
        is_stranger: Optional[bool] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[RecognitionLog]:
        """Fetch logs matching every given filter, newest first."""
        pass

    @abstractmethod
    async def delete_recognition_logs_before(self, cutoff: Optional[datetime] = None) -> int:
        """Delete logs older than ``cutoff`` (all logs when None); returns the count."""
        pass
