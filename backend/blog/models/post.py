from sqlalchemy import Column, String, Text, DateTime, Boolean, ForeignKey, Index
from sqlalchemy.orm import relationship
from datetime import datetime
from blog.core.database import Base, generate_id


class Post(Base):
    __tablename__ = "posts"

    id = Column(String(36), primary_key=True, default=generate_id)
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    published = Column(Boolean, nullable=False, default=False)

    # Ownership is fixed at creation; no endpoint accepts author_id
    author_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    category_id = Column(
        String(36), ForeignKey("categories.id"), nullable=True, index=True
    )

    # Metadata
    created_at = Column(DateTime, default=datetime.utcnow, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    deleted_at = Column(DateTime, nullable=True)  # Soft delete marker

    # Relationships
    author = relationship("User", back_populates="posts")
    category = relationship("Category", back_populates="posts")
    comments = relationship(
        "Comment",
        back_populates="post",
        order_by="(Comment.created_at.desc(), Comment.id.desc())",
    )

    __table_args__ = (
        Index("idx_posts_listing", "published", "deleted_at", "created_at"),
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None
