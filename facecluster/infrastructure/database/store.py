"""SQLAlchemy implementation of the ClusterStore interface."""
from contextlib import asynccontextmanager
from datetime import datetime
from typing import AsyncGenerator, Iterable, List, Optional

from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker

from facecluster.core.logging import get_logger
from facecluster.domain.entities.cluster import (
    Cluster,
    ClusterStatus,
    Identity,
    IdentityCluster,
    RecognitionLog,
)
from facecluster.domain.entities.face import Face
from facecluster.domain.interfaces.storage.cluster_store import ClusterStore
from facecluster.infrastructure.database.session import (
    create_session_factory,
    create_tables,
    get_db_session,
)
from facecluster.infrastructure.database.unit_of_work import UnitOfWork

logger = get_logger(__name__)


class SqlAlchemyClusterStore(ClusterStore):
    """ClusterStore backed by a relational database through SQLAlchemy async.

    Every call runs in its own unit of work and commits before returning.
    Embeddings and centroids are stored as JSON arrays.

    Example:
        ```python
        store = SqlAlchemyClusterStore.from_url("sqlite+aiosqlite:///./facecluster.db")
        await store.initialize()
        ...
        await store.close()
        ```
    """

    def __init__(self, engine: AsyncEngine, session_factory: async_sessionmaker) -> None:
        """Initialize the store.

        Args:
            engine: Async engine, disposed by ``close``
            session_factory: Factory for the sessions of each unit of work
        """
        self._engine = engine
        self._session_factory = session_factory

    @classmethod
    def from_url(cls, database_url: Optional[str] = None, echo: Optional[bool] = None) -> "SqlAlchemyClusterStore":
        engine, session_factory = create_session_factory(database_url, echo)
        return cls(engine, session_factory)

    async def initialize(self) -> None:
        """Create the schema if needed."""
        await create_tables(self._engine)

    async def close(self) -> None:
        await self._engine.dispose()
        logger.info("Database engine disposed")

    @asynccontextmanager
    async def _uow(self) -> AsyncGenerator[UnitOfWork, None]:
        async with get_db_session(self._session_factory) as session:
            async with UnitOfWork(session) as uow:
                yield uow

    # Faces

    async def add_face(self, face: Face) -> Face:
        async with self._uow() as uow:
            return await uow.faces.create(face)

    async def get_face(self, face_id: str) -> Face:
        async with self._uow() as uow:
            return await uow.faces.get(face_id)

    async def get_faces(self, face_ids: Iterable[str]) -> List[Face]:
        async with self._uow() as uow:
            return await uow.faces.get_many(face_ids)

    async def list_faces(self, limit: Optional[int] = None, offset: int = 0) -> List[Face]:
        async with self._uow() as uow:
            return await uow.faces.list(limit=limit, offset=offset)

    async def list_faces_by_cluster(self, cluster_id: str) -> List[Face]:
        async with self._uow() as uow:
            return await uow.faces.list_by_cluster(cluster_id)

    async def list_unclustered_faces(self) -> List[Face]:
        async with self._uow() as uow:
            return await uow.faces.list_by_cluster(None)

    async def set_face_cluster(self, face_id: str, cluster_id: Optional[str]) -> None:
        async with self._uow() as uow:
            await uow.faces.set_cluster(face_id, cluster_id)

    async def reassign_faces(self, from_cluster_id: str, to_cluster_id: Optional[str]) -> int:
        async with self._uow() as uow:
            return await uow.faces.reassign(from_cluster_id, to_cluster_id)

    async def delete_face(self, face_id: str) -> None:
        async with self._uow() as uow:
            await uow.faces.delete(face_id)

    # Clusters

    async def add_cluster(self, cluster: Cluster) -> Cluster:
        async with self._uow() as uow:
            return await uow.clusters.create(cluster)

    async def get_cluster(self, cluster_id: str) -> Cluster:
        async with self._uow() as uow:
            return await uow.clusters.get(cluster_id)

    async def list_clusters(self, statuses: Optional[Iterable[ClusterStatus]] = None) -> List[Cluster]:
        async with self._uow() as uow:
            return await uow.clusters.list(statuses)

    async def update_cluster(self, cluster: Cluster) -> Cluster:
        async with self._uow() as uow:
            return await uow.clusters.update(cluster)

    async def delete_cluster(self, cluster_id: str) -> None:
        async with self._uow() as uow:
            await uow.clusters.delete(cluster_id)

    # Identities

    async def add_identity(self, identity: Identity) -> Identity:
        async with self._uow() as uow:
            return await uow.identities.create(identity)

    async def get_identity(self, identity_id: str) -> Identity:
        async with self._uow() as uow:
            return await uow.identities.get(identity_id)

    async def list_identities(self) -> List[Identity]:
        async with self._uow() as uow:
            return await uow.identities.list()

    async def update_identity(self, identity: Identity) -> Identity:
        async with self._uow() as uow:
            return await uow.identities.update(identity)

    async def delete_identity(self, identity_id: str) -> None:
        async with self._uow() as uow:
            await uow.identities.delete(identity_id)

    async def add_identity_cluster(self, link: IdentityCluster) -> IdentityCluster:
        async with self._uow() as uow:
            return await uow.identities.add_link(link)

    async def delete_identity_cluster(self, identity_id: str, cluster_id: str) -> bool:
        async with self._uow() as uow:
            return await uow.identities.delete_link(identity_id, cluster_id)

    async def list_identity_clusters(
        self,
        identity_id: Optional[str] = None,
        cluster_id: Optional[str] = None,
    ) -> List[IdentityCluster]:
        async with self._uow() as uow:
            return await uow.identities.list_links(identity_id, cluster_id)

    # Recognition logs

    async def add_recognition_log(self, log: RecognitionLog) -> RecognitionLog:
        async with self._uow() as uow:
            return await uow.logs.create(log)

    async def list_recognition_logs(
        self,
        camera_id: Optional[str] = None,
        identity_id: Optional[str] = None,
        is_stranger: Optional[bool] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[RecognitionLog]:
        async with self._uow() as uow:
            return await uow.logs.list(camera_id, identity_id, is_stranger, since, limit, offset)

    async def delete_recognition_logs_before(self, cutoff: Optional[datetime] = None) -> int:
        async with self._uow() as uow:
            return await uow.logs.delete_before(cutoff)
