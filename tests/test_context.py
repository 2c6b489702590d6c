"""Tests for settings-driven service wiring."""
from pathlib import Path

import pytest

from core.config import Settings
from core.database import create_all
from core.migrations import AlembicMigrationChecker, NullMigrationChecker
from services import CrudService
from services.context import open_service_context
from tests.blog import Blog, BlogCreateDto, BlogDto, BlogUpdateDto

SCRIPT_LOCATION = str(Path(__file__).parent / "fixtures" / "migrations")


def settings_for(tmp_path: Path, **overrides) -> Settings:
    return Settings(DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'ctx.db'}", DATABASE_NAME="blogdb", **overrides)


class TestOpenServiceContext:
    @pytest.mark.asyncio
    async def test_migration_check_can_be_disabled(self, tmp_path: Path) -> None:
        settings = settings_for(tmp_path, CHECK_MIGRATIONS=False)
        async with open_service_context(settings, configure_logs=False) as ctx:
            assert isinstance(ctx.migrations, NullMigrationChecker)
            assert ctx.migrations.database_name == "blogdb"

    @pytest.mark.asyncio
    async def test_services_share_the_context(self, tmp_path: Path) -> None:
        settings = settings_for(tmp_path, CHECK_MIGRATIONS=False)
        async with open_service_context(settings, configure_logs=False) as ctx:
            await create_all(ctx.engine)
            service = CrudService(
                ctx.session_factory,
                ctx.mapper,
                Blog,
                BlogCreateDto,
                BlogDto,
                BlogDto,
                BlogUpdateDto,
                **ctx.service_kwargs(),
            )
            created = (await service.create(BlogCreateDto(name="news"))).unwrap()
            assert (await service.get_single(created.id)).unwrap().name == "news"
            assert ctx.state.database_is_migrated

    @pytest.mark.asyncio
    async def test_unmigrated_database_is_unavailable(self, tmp_path: Path) -> None:
        settings = settings_for(tmp_path, MIGRATIONS_LOCATION=SCRIPT_LOCATION)
        async with open_service_context(settings, configure_logs=False) as ctx:
            assert isinstance(ctx.migrations, AlembicMigrationChecker)
            service = CrudService(
                ctx.session_factory,
                ctx.mapper,
                Blog,
                BlogCreateDto,
                BlogDto,
                BlogDto,
                BlogUpdateDto,
                **ctx.service_kwargs(),
            )
            result = await service.get_list()

        assert result.status == 503
        assert result.error.message.startswith("The following migrations are still pending for blogdb:")
