"""Tests for AuthorizationResult and AuthorizationResultWithoutDb."""
import dataclasses
from http import HTTPStatus

import pytest
from sqlalchemy import select

from authorization import AuthorizationResult, AuthorizationResultWithoutDb, compose
from models import identity
from tests.blog import Post


class TestConstruction:
    def test_ok_carries_values(self) -> None:
        result = AuthorizationResult.ok(1, b"\x00")
        assert result.is_ok
        assert result.value1 == 1
        assert result.value2 == b"\x00"
        assert result.filter is identity

    def test_missing_values_are_none(self) -> None:
        result = AuthorizationResultWithoutDb.ok()
        assert result.value1 is None
        assert result.value2 is None

    def test_failure_constructors(self) -> None:
        assert AuthorizationResult.forbidden().status == HTTPStatus.FORBIDDEN
        assert AuthorizationResult.unauthorized().status == HTTPStatus.UNAUTHORIZED
        assert AuthorizationResultWithoutDb.from_status(HTTPStatus.IM_A_TEAPOT).status == 418

    def test_is_frozen(self) -> None:
        result = AuthorizationResult.ok(1)
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.status = HTTPStatus.FORBIDDEN


class TestWithStatus:
    def test_returns_a_copy(self) -> None:
        result = AuthorizationResult.ok(1)
        forbidden = result.with_status(HTTPStatus.FORBIDDEN)
        assert result.status == HTTPStatus.OK
        assert forbidden.status == HTTPStatus.FORBIDDEN
        assert forbidden.value1 == 1

    def test_failure_is_not_reset_to_ok(self) -> None:
        result = AuthorizationResult.forbidden().with_status(HTTPStatus.OK)
        assert result.status == HTTPStatus.FORBIDDEN

    def test_failure_can_be_replaced_by_another_failure(self) -> None:
        result = AuthorizationResult.forbidden().with_status(HTTPStatus.UNAUTHORIZED)
        assert result.status == HTTPStatus.UNAUTHORIZED

    def test_with_values(self) -> None:
        result = AuthorizationResultWithoutDb.ok(1).with_values(2, 3)
        assert result.values == (2, 3)


class TestFilters:
    def test_filters_compose_in_order(self) -> None:
        calls: list[str] = []

        def first(stmt):
            calls.append("first")
            return stmt

        def second(stmt):
            calls.append("second")
            return stmt

        result = AuthorizationResult.ok().with_filter(first).with_filter(second)
        result.apply_filter(select(Post))
        assert calls == ["first", "second"]

    def test_filters_narrow_the_query(self) -> None:
        result = (
            AuthorizationResult.ok()
            .with_filter(lambda s: s.where(s.selected_columns.tenant == "a"))
            .with_filter(lambda s: s.where(s.selected_columns.title != "draft"))
        )
        sql = str(result.apply_filter(select(Post)))
        assert "posts.tenant = " in sql
        assert "posts.title != " in sql

    def test_compose_skips_identity(self) -> None:
        def narrow(stmt):
            return stmt

        assert compose(identity, narrow) is narrow
        assert compose(narrow, identity) is narrow

    def test_with_filter_keeps_status_and_values(self) -> None:
        result = AuthorizationResult.forbidden(5).with_filter(lambda s: s)
        assert result.status == HTTPStatus.FORBIDDEN
        assert result.value1 == 5
