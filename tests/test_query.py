"""Tests for the list query builder."""
from datetime import datetime, timezone

import pytest
from sqlalchemy import select

from core.errors import ArgumentError
from models import MAX_VALID_TO, MIN_VALID_FROM, GetHistoryRequest
from services import FilterCondition, FilterOperator, ListQuery, ListRequestFactory, SortField
from tests.blog import Post, PostHistory, Tag


class TestParsing:
    @pytest.mark.parametrize(
        ("key", "field", "operator"),
        [
            ("title", "title", FilterOperator.EQ),
            ("title__icontains", "title", FilterOperator.ICONTAINS),
            ("blog_id__not_in", "blog_id", FilterOperator.NOT_IN),
            ("created_at__gte", "created_at", FilterOperator.GTE),
            ("last_changed_by", "last_changed_by", FilterOperator.EQ),
        ],
    )
    def test_filter_condition(self, key: str, field: str, operator: FilterOperator) -> None:
        condition = FilterCondition.parse(key, "v")
        assert (condition.field, condition.operator) == (field, operator)

    def test_sort_field(self) -> None:
        assert SortField.parse("-created_at") == SortField("created_at", descending=True)
        assert SortField.parse("title") == SortField("title")
        assert SortField.parse("+title") == SortField("title")


class TestCompilation:
    def test_unknown_column_is_rejected(self) -> None:
        with pytest.raises(ArgumentError, match="nope"):
            ListQuery().filter("nope", 1).apply_predicate(select(Post))

    def test_operators_compile(self) -> None:
        query = (
            ListQuery()
            .filter("title__istartswith", "a")
            .filter("blog_id__in", [1, 2])
            .filter("last_changed_by__isnull", True)
            .filter("id__between", (1, 10))
        )
        sql = str(query.apply_predicate(select(Post))).lower()

        assert "lower(posts.title) like lower(" in sql
        assert "posts.blog_id in" in sql
        assert "posts.last_changed_by is null" in sql
        assert "posts.id >= " in sql and "posts.id <= " in sql

    def test_same_query_targets_history_table(self) -> None:
        query = ListQuery().filter("title", "v1").order("-id")
        sql = str(query.apply_page(select(PostHistory), max_top=10))
        assert "posts_history.title = " in sql
        assert "ORDER BY posts_history.id DESC" in sql

    def test_paging_without_order_sorts_by_primary_key(self) -> None:
        sql = str(ListQuery().page(skip=10, top=10).apply_page(select(Post), max_top=100))
        assert "ORDER BY posts.id" in sql
        assert "LIMIT" in sql and "OFFSET" in sql

        history_sql = str(ListQuery().apply_page(select(PostHistory), max_top=100))
        assert "ORDER BY posts_history.id" in history_sql


class TestListRequestFactory:
    def test_unknown_field_fails_before_any_query(self) -> None:
        factory = ListRequestFactory(Post)
        with pytest.raises(ArgumentError, match="missing"):
            factory.create_list_request(ListQuery().order("missing"))

    def test_count_filter_only_when_requested(self) -> None:
        factory = ListRequestFactory(Post)
        assert factory.create_list_request(ListQuery()).filter_for_total_count is None
        assert factory.create_list_request(ListQuery(), calculate_total_count=True).filter_for_total_count is not None

    def test_history_request_defaults_to_whole_history(self) -> None:
        request = ListRequestFactory(PostHistory).create_history_request()
        assert isinstance(request, GetHistoryRequest)
        assert (request.valid_from, request.valid_to) == (MIN_VALID_FROM, MAX_VALID_TO)

    def test_history_request_window(self) -> None:
        start = datetime(2024, 1, 1, tzinfo=timezone.utc)
        request = ListRequestFactory(PostHistory).create_history_request(valid_from=start)
        assert request.valid_from == start
        assert request.valid_to == MAX_VALID_TO

    def test_max_top_must_be_positive(self) -> None:
        with pytest.raises(ArgumentError):
            ListRequestFactory(Post, max_top=0)

    def test_renamed_column_is_checked_the_way_it_is_resolved(self) -> None:
        factory = ListRequestFactory(Tag)
        accepted = []
        for name in ("label", "tag_label"):
            try:
                request = factory.create_list_request(ListQuery().filter(name, "x").order(name))
            except ArgumentError:
                continue
            request.filter(select(Tag))
            accepted.append(name)
        assert len(accepted) == 1


class TestPagingAgainstDatabase:
    @pytest.mark.asyncio
    async def test_filter_order_and_paging(self, post_service, posts) -> None:
        query = ListQuery().filter("tenant", "a").order("-title").page(skip=1, top=5)
        request = ListRequestFactory(Post).create_list_request(query, calculate_total_count=True)

        page = (await post_service.get_list(request)).unwrap()

        assert [p.title for p in page.items] == ["beta", "alpha"]
        assert page.total_count == 3

    @pytest.mark.asyncio
    async def test_top_is_clamped(self, post_service, posts) -> None:
        query = ListQuery().order("id").page(top=1000)
        request = ListRequestFactory(Post, max_top=2).create_list_request(query, calculate_total_count=True)

        page = (await post_service.get_list(request)).unwrap()

        assert [p.title for p in page.items] == ["alpha", "beta"]
        assert page.total_count == 5

    @pytest.mark.asyncio
    async def test_text_filters(self, post_service, posts) -> None:
        query = ListQuery().filter("title__icontains", "TA").order("id")
        request = ListRequestFactory(Post).create_list_request(query)

        page = (await post_service.get_list(request)).unwrap()

        assert [p.title for p in page.items] == ["beta", "delta"]

    @pytest.mark.asyncio
    async def test_pages_without_order_follow_the_primary_key(self, post_service, posts) -> None:
        factory = ListRequestFactory(Post)
        first = (await post_service.get_list(factory.create_list_request(ListQuery().page(top=2)))).unwrap()
        second = (await post_service.get_list(factory.create_list_request(ListQuery().page(skip=2, top=2)))).unwrap()

        assert [p.title for p in first.items + second.items] == ["alpha", "beta", "gamma", "delta"]
