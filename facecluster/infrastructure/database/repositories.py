"""Database repositories for the face clustering store.

Repositories translate between ORM rows and domain entities, so nothing
above this module sees SQLAlchemy objects.
"""
from datetime import datetime, timezone
from typing import Iterable, List, Optional

from sqlalchemy import delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

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
from facecluster.domain.entities.face import BoundingBox, Face, Gender
from facecluster.infrastructure.database.models import (
    ClusterRecord,
    FaceRecord,
    IdentityClusterRecord,
    IdentityRecord,
    RecognitionLogRecord,
)


def _aware(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite drops the offset; stored timestamps are always UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _to_list(vector) -> Optional[List[float]]:
    return None if vector is None else [float(x) for x in vector]


class FaceRepository:
    """Repository for face operations."""

    def __init__(self, session: AsyncSession) -> None:
        """Initialize repository.

        Args:
            session: Database session
        """
        self._session = session

    @staticmethod
    def to_entity(row: FaceRecord) -> Face:
        return Face(
            id=row.id,
            embedding=row.embedding,
            cluster_id=row.cluster_id,
            image_id=row.image_id,
            bounding_box=BoundingBox(**row.bbox) if row.bbox else None,
            quality_score=row.quality_score,
            age=row.age,
            gender=Gender(row.gender),
            emotion=row.emotion,
            created_at=_aware(row.created_at),
        )

    async def _row(self, face_id: str) -> FaceRecord:
        result = await self._session.execute(select(FaceRecord).where(FaceRecord.id == face_id))
        row = result.scalar_one_or_none()
        if row is None:
            raise FaceNotFoundError(f"Face not found: {face_id}", details={"face_id": face_id})
        return row

    async def create(self, face: Face) -> Face:
        row = FaceRecord(
            id=face.id,
            embedding=_to_list(face.embedding),
            cluster_id=face.cluster_id,
            image_id=face.image_id,
            bbox=face.bounding_box.model_dump() if face.bounding_box else None,
            quality_score=face.quality_score,
            age=face.age,
            gender=face.gender.value,
            emotion=face.emotion,
            created_at=face.created_at,
        )
        self._session.add(row)
        await self._session.flush()
        return self.to_entity(row)

    async def get(self, face_id: str) -> Face:
        return self.to_entity(await self._row(face_id))

    async def get_many(self, face_ids: Iterable[str]) -> List[Face]:
        ids = list(face_ids)
        if not ids:
            return []
        stmt = select(FaceRecord).where(FaceRecord.id.in_(ids)).order_by(FaceRecord.pk)
        result = await self._session.execute(stmt)
        return [self.to_entity(row) for row in result.scalars()]

    async def list(self, limit: Optional[int] = None, offset: int = 0) -> List[Face]:
        stmt = select(FaceRecord).order_by(FaceRecord.pk).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return [self.to_entity(row) for row in result.scalars()]

    async def list_by_cluster(self, cluster_id: Optional[str]) -> List[Face]:
        if cluster_id is None:
            condition = FaceRecord.cluster_id.is_(None)
        else:
            condition = FaceRecord.cluster_id == cluster_id
        stmt = select(FaceRecord).where(condition).order_by(FaceRecord.pk)
        result = await self._session.execute(stmt)
        return [self.to_entity(row) for row in result.scalars()]

    async def set_cluster(self, face_id: str, cluster_id: Optional[str]) -> None:
        row = await self._row(face_id)
        row.cluster_id = cluster_id
        await self._session.flush()

    async def reassign(self, from_cluster_id: str, to_cluster_id: Optional[str]) -> int:
        stmt = (
            update(FaceRecord)
            .where(FaceRecord.cluster_id == from_cluster_id)
            .values(cluster_id=to_cluster_id)
        )
        result = await self._session.execute(stmt)
        return result.rowcount

    async def delete(self, face_id: str) -> None:
        await self._session.delete(await self._row(face_id))
        await self._session.flush()


class ClusterRepository:
    """Repository for cluster operations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @staticmethod
    def to_entity(row: ClusterRecord) -> Cluster:
        return Cluster(
            id=row.id,
            centroid=row.centroid,
            face_count=row.face_count,
            representative_face_id=row.representative_face_id,
            status=ClusterStatus(row.status),
            created_at=_aware(row.created_at),
        )

    async def _row(self, cluster_id: str) -> ClusterRecord:
        result = await self._session.execute(select(ClusterRecord).where(ClusterRecord.id == cluster_id))
        row = result.scalar_one_or_none()
        if row is None:
            raise ClusterNotFoundError(f"Cluster not found: {cluster_id}", details={"cluster_id": cluster_id})
        return row

    async def create(self, cluster: Cluster) -> Cluster:
        row = ClusterRecord(
            id=cluster.id,
            centroid=_to_list(cluster.centroid),
            face_count=cluster.face_count,
            representative_face_id=cluster.representative_face_id,
            status=cluster.status.value,
            created_at=cluster.created_at,
        )
        self._session.add(row)
        await self._session.flush()
        return self.to_entity(row)

    async def get(self, cluster_id: str) -> Cluster:
        return self.to_entity(await self._row(cluster_id))

    async def list(self, statuses: Optional[Iterable[ClusterStatus]] = None) -> List[Cluster]:
        stmt = select(ClusterRecord).order_by(ClusterRecord.pk)
        if statuses is not None:
            stmt = stmt.where(ClusterRecord.status.in_([s.value for s in statuses]))
        result = await self._session.execute(stmt)
        return [self.to_entity(row) for row in result.scalars()]

    async def update(self, cluster: Cluster) -> Cluster:
        row = await self._row(cluster.id)
        row.centroid = _to_list(cluster.centroid)
        row.face_count = cluster.face_count
        row.representative_face_id = cluster.representative_face_id
        row.status = cluster.status.value
        await self._session.flush()
        return self.to_entity(row)

    async def delete(self, cluster_id: str) -> None:
        row = await self._row(cluster_id)
        await self._session.execute(
            update(FaceRecord).where(FaceRecord.cluster_id == cluster_id).values(cluster_id=None)
        )
        await self._session.execute(
            delete(IdentityClusterRecord).where(IdentityClusterRecord.cluster_id == cluster_id)
        )
        await self._session.delete(row)
        await self._session.flush()


class IdentityRepository:
    """Repository for identity and identity-cluster link operations."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @staticmethod
    def to_entity(row: IdentityRecord) -> Identity:
        return Identity(
            id=row.id,
            name=row.name,
            description=row.description,
            created_at=_aware(row.created_at),
            updated_at=_aware(row.updated_at),
        )

    @staticmethod
    def link_to_entity(row: IdentityClusterRecord) -> IdentityCluster:
        return IdentityCluster(
            id=row.id,
            identity_id=row.identity_id,
            cluster_id=row.cluster_id,
            created_at=_aware(row.created_at),
        )

    async def _row(self, identity_id: str) -> IdentityRecord:
        result = await self._session.execute(select(IdentityRecord).where(IdentityRecord.id == identity_id))
        row = result.scalar_one_or_none()
        if row is None:
            raise IdentityNotFoundError(
                f"Identity not found: {identity_id}", details={"identity_id": identity_id}
            )
        return row

    async def create(self, identity: Identity) -> Identity:
        row = IdentityRecord(
            id=identity.id,
            name=identity.name,
            description=identity.description,
            created_at=identity.created_at,
            updated_at=identity.updated_at,
        )
        self._session.add(row)
        await self._session.flush()
        return self.to_entity(row)

    async def get(self, identity_id: str) -> Identity:
        return self.to_entity(await self._row(identity_id))

    async def list(self) -> List[Identity]:
        result = await self._session.execute(select(IdentityRecord).order_by(IdentityRecord.pk))
        return [self.to_entity(row) for row in result.scalars()]

    async def update(self, identity: Identity) -> Identity:
        row = await self._row(identity.id)
        row.name = identity.name
        row.description = identity.description
        row.updated_at = identity.updated_at
        await self._session.flush()
        return self.to_entity(row)

    async def delete(self, identity_id: str) -> None:
        row = await self._row(identity_id)
        await self._session.execute(
            delete(IdentityClusterRecord).where(IdentityClusterRecord.identity_id == identity_id)
        )
        await self._session.delete(row)
        await self._session.flush()

    async def add_link(self, link: IdentityCluster) -> IdentityCluster:
        await self._row(link.identity_id)
        await ClusterRepository(self._session).get(link.cluster_id)
        row = IdentityClusterRecord(
            id=link.id,
            identity_id=link.identity_id,
            cluster_id=link.cluster_id,
            created_at=link.created_at,
        )
        self._session.add(row)
        await self._session.flush()
        return self.link_to_entity(row)

    async def delete_link(self, identity_id: str, cluster_id: str) -> bool:
        stmt = delete(IdentityClusterRecord).where(
            IdentityClusterRecord.identity_id == identity_id,
            IdentityClusterRecord.cluster_id == cluster_id,
        )
        result = await self._session.execute(stmt)
        return result.rowcount > 0

    async def list_links(
        self,
        identity_id: Optional[str] = None,
        cluster_id: Optional[str] = None,
    ) -> List[IdentityCluster]:
        stmt = select(IdentityClusterRecord).order_by(IdentityClusterRecord.pk)
        if identity_id is not None:
            stmt = stmt.where(IdentityClusterRecord.identity_id == identity_id)
        if cluster_id is not None:
            stmt = stmt.where(IdentityClusterRecord.cluster_id == cluster_id)
        result = await self._session.execute(stmt)
        return [self.link_to_entity(row) for row in result.scalars()]


class RecognitionLogRepository:
    """Repository for the append-only recognition log."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    @staticmethod
    def to_entity(row: RecognitionLogRecord) -> RecognitionLog:
        return RecognitionLog(
            id=row.id,
            face_id=row.face_id,
            matched_identity_id=row.matched_identity_id,
            confidence=row.confidence,
            is_stranger=row.is_stranger,
            camera_id=row.camera_id,
            timestamp=_aware(row.timestamp),
        )

    async def create(self, log: RecognitionLog) -> RecognitionLog:
        row = RecognitionLogRecord(
            id=log.id,
            face_id=log.face_id,
            matched_identity_id=log.matched_identity_id,
            confidence=log.confidence,
            is_stranger=log.is_stranger,
            camera_id=log.camera_id,
            timestamp=log.timestamp,
        )
        self._session.add(row)
        await self._session.flush()
        return self.to_entity(row)

    async def list(
        self,
        camera_id: Optional[str] = None,
        identity_id: Optional[str] = None,
        is_stranger: Optional[bool] = None,
        since: Optional[datetime] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[RecognitionLog]:
        stmt = select(RecognitionLogRecord)
        if camera_id is not None:
            stmt = stmt.where(RecognitionLogRecord.camera_id == camera_id)
        if identity_id is not None:
            stmt = stmt.where(RecognitionLogRecord.matched_identity_id == identity_id)
        if is_stranger is not None:
            stmt = stmt.where(RecognitionLogRecord.is_stranger == is_stranger)
        if since is not None:
            stmt = stmt.where(RecognitionLogRecord.timestamp >= since)
        stmt = stmt.order_by(RecognitionLogRecord.pk.desc()).offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        result = await self._session.execute(stmt)
        return [self.to_entity(row) for row in result.scalars()]

    async def delete_before(self, cutoff: Optional[datetime] = None) -> int:
        stmt = delete(RecognitionLogRecord)
        if cutoff is not None:
            stmt = stmt.where(RecognitionLogRecord.timestamp < cutoff)
        result = await self._session.execute(stmt)
        return result.rowcount
