# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Tests for find, find_one, find_all, exists and count."""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import Select, insert

from flycrud.crud.datasource import SqlAlchemyDataSource
from flycrud.crud.options import LockMode, OperationOptions, PaginationRequest
from tests.crud.support import RendezvousDataSource, UserCreate, UserUpdate, users


async def _seed(service, count: int) -> list[dict]:
    return [
        await service.create(UserCreate(name=f"user-{i:02d}", email=f"user{i}@example.com", age=20 + i))
        for i in range(count)
    ]


class TestFind:
    @pytest.mark.asyncio
    async def test_find_by_id(self, service):
        created = await service.create(UserCreate(name="Ann", email="ann@example.com", age=31))
        found = await service.find(created["id"])
        assert found is not None
        assert found["name"] == "Ann"
        assert found["age"] == 31

    @pytest.mark.asyncio
    async def test_find_missing_returns_none(self, service):
        assert await service.find(404) is None

    @pytest.mark.asyncio
    async def test_find_with_projection(self, service):
        created = await service.create(UserCreate(name="Ann", email="ann@example.com"))
        found = await service.find(created["id"], OperationOptions(select=("id", "name", "bogus")))
        assert found == {"id": created["id"], "name": "Ann"}

    @pytest.mark.asyncio
    async def test_find_with_lock(self, service):
        created = await service.create(UserCreate(name="Ann"))
        found = await service.find(created["id"], OperationOptions(lock=LockMode.UPDATE))
        assert found is not None

    @pytest.mark.asyncio
    async def test_find_one_by_example(self, service):
        await service.create(UserCreate(name="Ann", age=30))
        await service.create(UserCreate(name="Bob", age=30))
        found = await service.find_one(UserUpdate(name="Bob"))
        assert found is not None
        assert found["name"] == "Bob"

    @pytest.mark.asyncio
    async def test_find_one_uses_exact_match(self, service):
        await service.create(UserCreate(name="Annabel"))
        assert await service.find_one({"name": "Ann"}) is None

    @pytest.mark.asyncio
    async def test_exists(self, service):
        created = await service.create(UserCreate(name="Ann"))
        assert await service.exists(created["id"]) is True
        assert await service.exists(created["id"] + 1) is False


class TestFindAll:
    @pytest.mark.asyncio
    async def test_page_and_count_queries_run_concurrently(self, make_service):
        source = RendezvousDataSource(rows=[{"id": 1, "name": "Ann"}])
        service = make_service(data_source=source)

        page = await asyncio.wait_for(service.find_all(), timeout=2)

        assert page.data == [{"id": 1, "name": "Ann"}]
        assert page.total == 1

    @pytest.mark.asyncio
    async def test_defaults(self, service, recorder, make_service):
        await _seed(service, 3)
        recorded = make_service(data_source=recorder)

        page = await recorded.find_all()

        assert page.page == 1
        assert page.limit == 20
        assert page.total == 3
        assert len(page.data) == 3
        selects = [s for s in recorder.statements if isinstance(s, Select)]
        assert selects
        assert all("ORDER BY" not in str(s) for s in selects)

    @pytest.mark.asyncio
    async def test_limit_is_capped_at_max_limit(self, make_service):
        service = make_service(pagination={"default_limit": 2, "max_limit": 5})
        await _seed(service, 8)

        page = await service.find_all(pagination=PaginationRequest(limit=50))

        assert page.limit == 5
        assert len(page.data) == 5
        assert page.total == 8
        assert page.total_pages == 2
        assert page.has_next is True

    @pytest.mark.asyncio
    async def test_default_limit_applies(self, make_service):
        service = make_service(pagination={"default_limit": 2, "max_limit": 5})
        await _seed(service, 3)

        page = await service.find_all()

        assert page.limit == 2
        assert len(page.data) == 2

    @pytest.mark.asyncio
    async def test_second_page(self, service):
        await _seed(service, 5)
        page = await service.find_all(pagination=PaginationRequest(page=2, limit=2, sort_by="age", sort_order="asc"))
        assert [row["age"] for row in page.data] == [22, 23]
        assert page.has_previous is True

    @pytest.mark.asyncio
    async def test_sort_descending(self, service):
        await _seed(service, 3)
        page = await service.find_all(pagination=PaginationRequest(sort_by="age"))
        assert [row["age"] for row in page.data] == [22, 21, 20]

    @pytest.mark.asyncio
    async def test_unknown_sort_column_is_ignored(self, service):
        await _seed(service, 2)
        page = await service.find_all(pagination=PaginationRequest(sort_by="password"))
        assert page.total == 2

    @pytest.mark.asyncio
    async def test_filters(self, service):
        await _seed(service, 6)
        page = await service.find_all({"age": {"gte": 21, "lt": 24}})
        assert sorted(row["age"] for row in page.data) == [21, 22, 23]
        assert page.total == 3

    @pytest.mark.asyncio
    async def test_string_filter_is_case_insensitive_substring(self, service):
        await service.create(UserCreate(name="Alice"))
        await service.create(UserCreate(name="Malik"))
        await service.create(UserCreate(name="Bob"))
        page = await service.find_all({"name": "ALI"})
        assert sorted(row["name"] for row in page.data) == ["Alice", "Malik"]

    @pytest.mark.asyncio
    async def test_percent_and_underscore_in_string_filter_match_literally(self, service):
        await service.create(UserCreate(name="50% off"))
        await service.create(UserCreate(name="500 off"))
        await service.create(UserCreate(name="a_b"))
        await service.create(UserCreate(name="axb"))

        assert [row["name"] for row in (await service.find_all({"name": "50%"})).data] == ["50% off"]
        assert [row["name"] for row in (await service.find_all({"name": "a_b"})).data] == ["a_b"]

    @pytest.mark.asyncio
    async def test_explicit_like_operator_keeps_wildcards(self, service):
        await service.create(UserCreate(name="a_b"))
        await service.create(UserCreate(name="axb"))
        page = await service.find_all({"name": {"like": "a_b"}})
        assert sorted(row["name"] for row in page.data) == ["a_b", "axb"]

    @pytest.mark.asyncio
    async def test_nested_json_member_filter(self, service, engine):
        source = SqlAlchemyDataSource(engine)
        await source.execute(insert(users).values(name="Ann", meta={"address": {"city": "Paris"}}))
        await source.execute(insert(users).values(name="Bob", meta={"address": {"city": "Berlin"}}))

        page = await service.find_all({"meta.address.city": "par"})

        assert [row["name"] for row in page.data] == ["Ann"]

    @pytest.mark.asyncio
    async def test_null_filter(self, service):
        await service.create(UserCreate(name="Ann", email="ann@example.com"))
        await service.create(UserCreate(name="Bob"))
        page = await service.find_all({"email": {"isNull": True}})
        assert [row["name"] for row in page.data] == ["Bob"]

    @pytest.mark.asyncio
    async def test_map_preserves_metadata(self, service):
        await _seed(service, 2)
        page = await service.find_all()
        names = page.map(lambda row: row["name"])
        assert sorted(names.data) == ["user-00", "user-01"]
        assert names.total == 2


class TestCount:
    @pytest.mark.asyncio
    async def test_count_all(self, service):
        await _seed(service, 4)
        assert await service.count() == 4

    @pytest.mark.asyncio
    async def test_count_with_filters(self, service):
        await _seed(service, 4)
        assert await service.count({"age": [20, 23, 99]}) == 2
