"""Blog/post domain used by the service tests."""
from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel
from sqlalchemy import Column, ForeignKey, Integer, String

from authorization import CrudAuthorizationHandlerBase
from core.database import Base
from models import (
    ChangeTrackingDtoBase,
    ChangeTrackingEntityBase,
    ConcurrentDtoBase,
    DtoBase,
    EntityBase,
    TemporalEntityBase,
)


class Blog(ChangeTrackingEntityBase, Base):
    __tablename__ = "blogs"

    name = Column(String(100), nullable=False)
    tenant = Column(String(50), nullable=False, default="a")


class Post(ChangeTrackingEntityBase, Base):
    __tablename__ = "posts"

    blog_id = Column(Integer, ForeignKey("blogs.id", name="fk_posts_blogs_blog_id"), nullable=False)
    title = Column(String(200), nullable=False)
    tenant = Column(String(50), nullable=False, default="a")


class Tag(EntityBase, Base):
    """Attribute and column names differ."""
    __tablename__ = "tags"

    label = Column("tag_label", String(50), nullable=False)


class PostHistory(TemporalEntityBase, Base):
    __tablename__ = "posts_history"

    blog_id = Column(Integer, nullable=False)
    title = Column(String(200), nullable=False)
    tenant = Column(String(50), nullable=False, default="a")


class BlogCreateDto(BaseModel):
    name: str
    tenant: str = "a"


class BlogDto(ChangeTrackingDtoBase):
    name: str
    tenant: str


class BlogUpdateDto(ConcurrentDtoBase):
    name: str
    tenant: str = "a"


class PostCreateDto(BaseModel):
    blog_id: int
    title: str
    tenant: str = "a"


class PostListDto(DtoBase):
    title: str


class PostDto(ChangeTrackingDtoBase):
    blog_id: int
    title: str
    tenant: str


class PostUpdateDto(ConcurrentDtoBase):
    blog_id: int
    title: str
    tenant: str = "a"


class PostHistoryDto(DtoBase):
    blog_id: int
    title: str
    period_start: datetime
    period_end: datetime


class TenantHandler(CrudAuthorizationHandlerBase):
    """Restricts every entity query to the rows of one tenant."""

    def __init__(self, tenant: str):
        self.tenant = tenant

    def _restrict(self, previous):
        return previous.with_filter(lambda stmt: stmt.where(stmt.selected_columns.tenant == self.tenant))

    async def handle_get_single_request(self, previous):
        return self._restrict(previous)

    async def handle_get_list_request(self, previous):
        return self._restrict(previous)

    async def handle_get_history_request(self, previous):
        return self._restrict(previous)

    async def handle_update_request(self, previous):
        return self._restrict(previous)

    async def handle_update_many_request(self, previous):
        return self._restrict(previous)

    async def handle_delete_request(self, previous):
        return self._restrict(previous)
