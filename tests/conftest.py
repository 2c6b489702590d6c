"""Shared pytest fixtures for the service tests."""
from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine

from authorization import ContextVarUserAccessor
from core.database import SessionFactory, create_all, create_engine, create_session_factory
from core.mapping import Mapper
from services import CrudService, ServiceState
from tests.blog import (
    Blog,
    BlogCreateDto,
    BlogDto,
    BlogUpdateDto,
    Post,
    PostCreateDto,
    PostDto,
    PostHistory,
    PostListDto,
    PostUpdateDto,
)


@pytest_asyncio.fixture
async def engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    """File-backed SQLite engine with every test table created."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    await create_all(engine)
    try:
        yield engine
    finally:
        await engine.dispose()


@pytest.fixture
def session_factory(engine: AsyncEngine) -> SessionFactory:
    return create_session_factory(engine)


@pytest.fixture
def state() -> ServiceState:
    return ServiceState()


@pytest.fixture
def accessor() -> ContextVarUserAccessor:
    return ContextVarUserAccessor()


@pytest.fixture
def mapper() -> Mapper:
    return Mapper()


@pytest.fixture
def blog_service(session_factory, mapper, state, accessor) -> CrudService:
    return CrudService(
        session_factory,
        mapper,
        Blog,
        BlogCreateDto,
        BlogDto,
        BlogDto,
        BlogUpdateDto,
        user_accessor=accessor,
        state=state,
    )


@pytest.fixture
def make_post_service(session_factory, mapper, state, accessor):
    """Factory for post services with a given handler chain."""

    def make(*handlers, **kwargs) -> CrudService:
        kwargs.setdefault("history_entity_type", PostHistory)
        kwargs.setdefault("user_accessor", accessor)
        kwargs.setdefault("state", state)
        return CrudService(
            session_factory,
            mapper,
            Post,
            PostCreateDto,
            PostListDto,
            PostDto,
            PostUpdateDto,
            handlers,
            **kwargs,
        )

    return make


@pytest.fixture
def post_service(make_post_service) -> CrudService:
    return make_post_service()


@pytest_asyncio.fixture
async def blog(blog_service) -> BlogDto:
    return (await blog_service.create(BlogCreateDto(name="Engineering"))).unwrap()


@pytest_asyncio.fixture
async def posts(post_service, blog) -> list[PostDto]:
    """Five posts in one blog; the last two belong to tenant ``b``."""
    dtos = [
        PostCreateDto(blog_id=blog.id, title="alpha"),
        PostCreateDto(blog_id=blog.id, title="beta"),
        PostCreateDto(blog_id=blog.id, title="gamma"),
        PostCreateDto(blog_id=blog.id, title="delta", tenant="b"),
        PostCreateDto(blog_id=blog.id, title="epsilon", tenant="b"),
    ]
    return (await post_service.create_many(dtos)).unwrap()
