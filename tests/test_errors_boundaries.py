"""Tests for mapping persistence exceptions to 409 results."""
from http import HTTPStatus

import pytest
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm.exc import StaleDataError

from core.database import Base
from core.errors import (
    CONCURRENCY_FIELD_MESSAGE,
    ConcurrencyConflictError,
    DatabaseErrorMapper,
    ErrorCode,
    is_foreign_key_violation,
    parse_foreign_key_message,
)
from tests.blog import PostCreateDto

SQLSERVER_MESSAGE = (
    'The INSERT statement conflicted with the FOREIGN KEY constraint "FK_Posts_Blogs_BlogId". '
    'The conflict occurred in database "Blog", table "dbo.Blogs", column \'Id\'.'
)
POSTGRES_MESSAGE = (
    'insert or update on table "posts" violates foreign key constraint "fk_posts_blogs_blog_id"\n'
    'DETAIL:  Key (blog_id)=(42) is not present in table "blogs".'
)


class DriverError(Exception):
    def __init__(self, message: str, pgcode: str | None = None):
        super().__init__(message)
        self.pgcode = pgcode


def integrity_error(message: str, pgcode: str | None = None) -> IntegrityError:
    return IntegrityError("INSERT INTO posts ...", {}, DriverError(message, pgcode))


class TestParseForeignKeyMessage:
    def test_sqlserver(self) -> None:
        match = parse_foreign_key_message(SQLSERVER_MESSAGE)
        assert match.constraint_name == "FK_Posts_Blogs_BlogId"
        assert match.primary_table == "Blogs"

    def test_postgres(self) -> None:
        match = parse_foreign_key_message(POSTGRES_MESSAGE)
        assert match.constraint_name == "fk_posts_blogs_blog_id"
        assert match.primary_table == "blogs"

    def test_table_only(self) -> None:
        match = parse_foreign_key_message('Key (blog_id)=(1) is not present in table "blogs".')
        assert match.constraint_name is None
        assert match.primary_table == "blogs"

    def test_unrecognised(self) -> None:
        assert parse_foreign_key_message("FOREIGN KEY constraint failed") is None


class TestIsForeignKeyViolation:
    @pytest.mark.parametrize(
        "error",
        [
            integrity_error("whatever", pgcode="23503"),
            integrity_error(SQLSERVER_MESSAGE),
            integrity_error("FOREIGN KEY constraint failed"),
        ],
    )
    def test_detected(self, error: IntegrityError) -> None:
        assert is_foreign_key_violation(error)

    def test_unique_violation_is_not_a_foreign_key_violation(self) -> None:
        assert not is_foreign_key_violation(integrity_error("UNIQUE constraint failed: blogs.name", pgcode="23505"))


class TestDatabaseErrorMapper:
    @pytest.fixture
    def mapper(self) -> DatabaseErrorMapper:
        return DatabaseErrorMapper(Base.metadata, origin="PostService")

    def test_stale_data(self, mapper: DatabaseErrorMapper) -> None:
        result = mapper.map_exception(StaleDataError("0 rows matched"))
        assert result.status == HTTPStatus.CONFLICT
        assert result.error.validation == {"timestamp": {CONCURRENCY_FIELD_MESSAGE}}

    def test_version_token_field_is_reported(self, mapper: DatabaseErrorMapper) -> None:
        result = mapper.map_exception(ConcurrencyConflictError("[2].timestamp"))
        assert set(result.error.validation) == {"[2].timestamp"}

    def test_constraint_is_traced_to_dto_field(self, mapper: DatabaseErrorMapper) -> None:
        result = mapper.map_exception(integrity_error(POSTGRES_MESSAGE, pgcode="23503"), PostCreateDto)

        assert result.status == HTTPStatus.CONFLICT
        assert result.error.code is ErrorCode.E4012_FOREIGN_KEY_VIOLATION
        assert result.error.message == "Foreign key was violated."
        assert result.error.validation == {"blog_id": {"Foreign key was violated."}}

    def test_unknown_constraint_is_named(self, mapper: DatabaseErrorMapper) -> None:
        result = mapper.map_exception(integrity_error(SQLSERVER_MESSAGE), PostCreateDto)
        assert result.error.message == "Invalid relationship. The foreign key 'FK_Posts_Blogs_BlogId' was violated."
        assert result.error.validation is None

    def test_table_only_message(self, mapper: DatabaseErrorMapper) -> None:
        result = mapper.map_exception(integrity_error('is not present in table "blogs"', pgcode="23503"))
        assert result.error.message == "Invalid relationship. 'blogs' was not found."

    def test_unparsed_message(self, mapper: DatabaseErrorMapper) -> None:
        result = mapper.map_exception(integrity_error("FOREIGN KEY constraint failed"))
        assert result.error.message == "Invalid relationship. A referenced resource was not found."

    def test_other_errors_are_left_alone(self, mapper: DatabaseErrorMapper) -> None:
        assert mapper.map_exception(integrity_error("NOT NULL constraint failed: posts.title")) is None
        assert mapper.map_exception(RuntimeError("boom")) is None

    def test_cause_is_kept(self, mapper: DatabaseErrorMapper) -> None:
        error = integrity_error("FOREIGN KEY constraint failed")
        assert mapper.map_exception(error).error.cause is error
