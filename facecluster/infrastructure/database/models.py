"""SQLAlchemy models for the face clustering store."""
from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Index, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from facecluster.domain.entities.face import utcnow


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


class FaceRecord(Base):
    """Stored face observation with its embedding."""

    __tablename__ = "faces"
    __table_args__ = (
        Index('idx_faces_cluster', 'cluster_id'),
    )

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    embedding: Mapped[Optional[List[float]]] = mapped_column(
        JSON,
        nullable=True,
        comment="Face embedding vector, NULL when extraction failed"
    )
    cluster_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    image_id: Mapped[Optional[str]] = mapped_column(
        String(255),
        nullable=True,
        comment="Source image identifier"
    )
    bbox: Mapped[Optional[Dict[str, Any]]] = mapped_column(JSON, nullable=True)
    quality_score: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    age: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    gender: Mapped[str] = mapped_column(String(16), default="unknown")
    emotion: Mapped[Optional[str]] = mapped_column(String(32), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow
    )


class ClusterRecord(Base):
    """Group of faces believed to belong to one person."""

    __tablename__ = "clusters"
    __table_args__ = (
        Index('idx_clusters_status', 'status'),
    )

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    centroid: Mapped[Optional[List[float]]] = mapped_column(
        JSON,
        nullable=True,
        comment="Mean embedding of the member faces"
    )
    face_count: Mapped[int] = mapped_column(Integer, default=0)
    representative_face_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    status: Mapped[str] = mapped_column(String(16), default="pending")
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow
    )


class IdentityRecord(Base):
    """Labeled person."""

    __tablename__ = "identities"

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(1024), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class IdentityClusterRecord(Base):
    """Link between an identity and one of its clusters."""

    __tablename__ = "identity_clusters"
    __table_args__ = (
        Index('idx_identity_clusters_pair', 'identity_id', 'cluster_id'),
    )

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    identity_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("identities.id", ondelete="CASCADE")
    )
    cluster_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("clusters.id", ondelete="CASCADE")
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class RecognitionLogRecord(Base):
    """Audit record of one recognition attempt."""

    __tablename__ = "recognition_logs"
    __table_args__ = (
        Index('idx_recognition_logs_timestamp', 'timestamp'),
    )

    pk: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    id: Mapped[str] = mapped_column(String(36), unique=True, nullable=False)
    face_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    matched_identity_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    confidence: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    is_stranger: Mapped[bool] = mapped_column(Boolean, default=False)
    camera_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
