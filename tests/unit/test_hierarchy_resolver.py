"""
Unit tests for the hierarchy walk.

Tests cover:
- Linear chains, the hop cap and unknown initiators
- Cycles stop the walk without revisiting a promoter
"""

from unittest.mock import AsyncMock

import pytest

from commission_engine.services.commission.hierarchy_resolver import (
    HierarchyResolver,
    ResolvedLevel,
)


def resolver_for(parents: dict[int, int | None], max_levels: int = 4):
    """Resolver whose repository answers from an in-memory parent map."""

    async def get_parent_id(promoter_id):
        if promoter_id not in parents:
            return False, None
        return True, parents[promoter_id]

    resolver = HierarchyResolver(AsyncMock(), max_levels)
    resolver.promoter_repo.get_parent_id = AsyncMock(side_effect=get_parent_id)
    return resolver


class TestResolve:
    """Test HierarchyResolver.resolve()."""

    @pytest.mark.asyncio
    async def test_linear_chain(self):
        resolver = resolver_for({1: 2, 2: 3, 3: None})

        resolved = await resolver.resolve(1)

        assert resolved == [
            ResolvedLevel(1, 1),
            ResolvedLevel(2, 2),
            ResolvedLevel(3, 3),
        ]

    @pytest.mark.asyncio
    async def test_hop_cap(self):
        resolver = resolver_for({1: 2, 2: 3, 3: 4, 4: 5, 5: 6, 6: None})

        resolved = await resolver.resolve(1)

        assert [r.recipient_id for r in resolved] == [1, 2, 3, 4]
        assert resolver.promoter_repo.get_parent_id.await_count == 4

    @pytest.mark.asyncio
    async def test_unknown_initiator(self):
        resolver = resolver_for({})
        assert await resolver.resolve(9999) == []

    @pytest.mark.asyncio
    async def test_dangling_parent_reference(self):
        resolver = resolver_for({1: 42})

        resolved = await resolver.resolve(1)

        assert resolved == [ResolvedLevel(1, 1)]

    @pytest.mark.asyncio
    async def test_cycle_stops_walk(self):
        resolver = resolver_for({1: 2, 2: 1})

        resolved = await resolver.resolve(1)

        assert [r.recipient_id for r in resolved] == [1, 2]
        assert len({r.recipient_id for r in resolved}) == len(resolved)

    @pytest.mark.asyncio
    async def test_self_parent(self):
        resolver = resolver_for({1: 1})
        assert await resolver.resolve(1) == [ResolvedLevel(1, 1)]
