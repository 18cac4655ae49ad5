"""Property based tests for the collection invariants."""

import typing as _typing

import hypothesis as _hypothesis
import hypothesis.strategies as _st

import strata.collections as collections

_keys = _st.sampled_from(["a", "b", "c", "d", "e"])


@_st.composite
def _operations(draw: _typing.Any) -> list[tuple[str, str]]:
    """Random sequences of ('add' | 'remove', key)."""
    return draw(_st.lists(_st.tuples(_st.sampled_from(["add", "remove"]), _keys), max_size=30))


class TestUniquenessProperty:
    """No two members ever share a key."""

    @_hypothesis.given(ops=_operations())
    def test_keys_stay_unique(self, ops: list[tuple[str, str]]) -> None:
        coll: collections.Collection[dict[str, str]] = collections.Collection()
        model: set[str] = set()

        for op, key in ops:
            if op == "add":
                index = coll.add({"name": key})
                assert (index is None) == (key in model)
                model.add(key)
            else:
                item = coll.get_by_key(key)
                if item is not None:
                    coll.remove(item)
                model.discard(key)

        keys = [item["name"] for item in coll]
        assert len(keys) == len(set(keys))
        assert set(keys) == model


class TestReorderProperty:
    """raise_item() and lower_item() clamp to the collection bounds."""

    @_hypothesis.given(
        size=_st.integers(min_value=1, max_value=8),
        data=_st.data(),
        steps=_st.integers(min_value=-10, max_value=10),
    )
    def test_raise_and_lower_clamp(self, size: int, data: _typing.Any, steps: int) -> None:
        names = [str(i) for i in range(size)]
        index = data.draw(_st.integers(min_value=0, max_value=size - 1))

        for direction in (1, -1):
            coll = collections.IndexedCollection.from_iterable([{"name": n} for n in names])
            item = coll.get(index)
            assert item is not None

            if direction == 1:
                result = coll.raise_item(item, steps)
            else:
                result = coll.lower_item(item, steps)

            expected = min(max(index + direction * steps, 0), size - 1)
            assert result == expected
            assert coll.index_of(item) == expected

            others = [n for n in names if n != item["name"]]
            assert [i["name"] for i in coll if i is not item] == others


class TestShadowProperty:
    """The live item always belongs to the latest remaining module."""

    @_hypothesis.given(
        module_count=_st.integers(min_value=1, max_value=6),
        data=_st.data(),
    )
    def test_live_item_is_latest_remaining_override(
        self, module_count: int, data: _typing.Any
    ) -> None:
        modules = [f"m{i}" for i in range(module_count)]
        current = {"module": modules[0]}
        coll = collections.OverrideCollection(
            collections.Collection("id"), lambda: current["module"]
        )
        for module_id in modules:
            current["module"] = module_id
            coll.override({"id": 1, "v": module_id})

        removal_order = data.draw(_st.permutations(modules))
        remove_count = data.draw(_st.integers(min_value=0, max_value=module_count))
        removed = removal_order[:remove_count]
        for module_id in removed:
            coll.remove_module(module_id)

        remaining = [m for m in modules if m not in removed]
        live = coll.get_by_key(1)
        if remaining:
            assert live is not None
            assert live["v"] == remaining[-1]
            assert coll.get_module_id(live) == remaining[-1]
        else:
            assert live is None
            assert coll.shadow_map == {}
