"""Post model for marketplace listings."""

from enum import Enum
from sqlalchemy import (
    Column, Integer, String, Text, Float, TIMESTAMP, ForeignKey, Index, Boolean, JSON,
    CheckConstraint, UniqueConstraint,
)
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from ..database import Base


class PostStatus(str, Enum):
    """Listing status. ``deleted`` is the soft-delete marker."""
    ACTIVE = "active"
    INACTIVE = "inactive"
    DELETED = "deleted"


class Post(Base):
    """Listing created by staff under a category."""
    
    __tablename__ = "posts"
    
    id = Column(Integer, primary_key=True, index=True)
    
    # Content
    title = Column(String(100), nullable=False)
    body = Column(Text, nullable=False)
    price = Column(Float, nullable=False)
    image = Column(String(255), nullable=True)  # stored filename inside UPLOAD_DIR
    thumbnail = Column(String(255), nullable=True)  # None when thumbnail generation failed
    
    category_id = Column(
        Integer,
        ForeignKey("categories.id", ondelete="RESTRICT"),
        nullable=False,
        index=True,
    )
    category_properties = Column(JSON, nullable=False, default=dict)
    
    # Metadata
    status = Column(String(20), nullable=False, default=PostStatus.ACTIVE.value)
    views = Column(Integer, nullable=False, default=0)
    featured = Column(Boolean, nullable=False, default=False)
    
    created_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    
    # Timestamps
    created_at = Column(TIMESTAMP, server_default=func.now(), index=True)
    updated_at = Column(TIMESTAMP, server_default=func.now(), onupdate=func.now())
    
    # Constraints & Indexes
    __table_args__ = (
        CheckConstraint("price >= 0", name="check_post_price_positive"),
        CheckConstraint(
            "status IN ('active', 'inactive', 'deleted')",
            name="check_post_status"
        ),
        Index("idx_post_status_created", "status", "created_at"),
        Index("idx_post_category_status", "category_id", "status"),
        Index("idx_post_price_status", "price", "status"),
        Index("idx_post_featured_status_created", "featured", "status", "created_at"),
    )
    
    # Relationships
    category = relationship("Category", back_populates="posts")
    created_by = relationship("User", foreign_keys=[created_by_id])
    updated_by = relationship("User", foreign_keys=[updated_by_id])
    tags = relationship(
        "PostTag",
        back_populates="post",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="PostTag.id",
    )


class PostTag(Base):
    """One tag of a post. A post's tags form a set."""
    
    __tablename__ = "post_tags"
    
    id = Column(Integer, primary_key=True)
    post_id = Column(
        Integer,
        ForeignKey("posts.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    name = Column(String(50), nullable=False, index=True)
    
    __table_args__ = (
        UniqueConstraint("post_id", "name", name="uq_post_tag"),
    )
    
    post = relationship("Post", back_populates="tags")
