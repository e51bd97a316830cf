"""Tests for priority pruning."""

import pytest

from prompt_tree.errors import ConfigurationError
from prompt_tree.messages import ChatRole
from prompt_tree.pieces import group_piece, message_piece, text_piece
from prompt_tree.pruner import collect_units, prune, select_units


def msg(priority, cost, label="m", *, overhead=0, role=ChatRole.USER):
    return message_piece(role, (text_piece(label, cost, priority),), priority, overhead=overhead)


def contents(pieces):
    return [
        "".join(child.text for child in piece.children)
        for piece in pieces
    ]


class TestCollectUnits:
    def test_each_message_is_a_unit(self):
        units = collect_units((msg(1, 2), msg(5, 3)))
        assert [u.cost for u in units] == [2, 3]
        assert [u.order for u in units] == [0, 1]

    def test_overhead_counts_toward_message(self):
        (unit,) = collect_units((msg(1, 2, overhead=3),))
        assert unit.cost == 5

    def test_nested_unit_cost_excluded_from_owner(self):
        group = group_piece((text_piece("ctx", 4, 10),), 10)
        owner = message_piece(ChatRole.USER, (text_piece("q", 1, 90), group), 90)
        units = collect_units((owner,))
        assert [u.cost for u in units] == [1, 4]

    def test_nested_priority_capped_by_owner(self):
        group = group_piece((text_piece("ctx", 1, 99),), 99)
        owner = message_piece(ChatRole.USER, (group,), 20)
        units = collect_units((owner,))
        assert units[1].priority == 20

    def test_top_level_text_rejected(self):
        with pytest.raises(ConfigurationError):
            collect_units((text_piece("stray", 1, 0),))


class TestSelectUnits:
    def test_ties_keep_declaration_order(self):
        units = collect_units((msg(50, 5, "a"), msg(50, 5, "b")))
        kept, dropped = select_units(units, 7)
        assert [u.order for u in kept] == [0]
        assert [u.order for u in dropped] == [1]


class TestPrune:
    def test_fits_unchanged(self):
        pieces = (msg(1, 3), msg(2, 4))
        result = prune(pieces, 7)
        assert result.pieces == pieces
        assert result.token_count == 7
        assert result.dropped == ()

    def test_drops_lowest_priority_first(self):
        result = prune((msg(100, 5, "sys"), msg(80, 10, "low"), msg(90, 5, "mid")), 12)
        assert contents(result.pieces) == ["sys", "mid"]
        assert result.token_count == 10

    def test_stops_at_first_unit_that_does_not_fit(self):
        """No backtracking: a cheaper, lower-priority unit is dropped too."""
        result = prune((msg(100, 5, "a"), msg(90, 10, "b"), msg(80, 1, "c")), 8)
        assert contents(result.pieces) == ["a"]
        assert result.token_count == 5
        assert len(result.dropped) == 2

    def test_budget_below_cheapest_unit_is_empty(self):
        result = prune((msg(1, 3), msg(2, 4)), 2)
        assert result.pieces == ()
        assert result.token_count == 0

    def test_nested_unit_pruned_inside_kept_message(self):
        low = group_piece((text_piece("low ", 5, 10),), 10)
        high = group_piece((text_piece("high", 2, 90),), 90)
        owner = message_piece(ChatRole.USER, (text_piece("base ", 3, 100), low, high), 100)

        result = prune((owner,), 6)

        (kept,) = result.pieces
        assert result.token_count == 5
        assert kept.token_cost == 5
        assert "".join(c.children[0].text if c.children else c.text for c in kept.children) == "base high"

    def test_container_ranks_before_contents(self):
        """A nested unit never outranks its message."""
        inner = group_piece((text_piece("extra", 2, 90),), 90)
        first = message_piece(ChatRole.USER, (text_piece("m1", 2, 10), inner), 10)
        second = msg(50, 3, "m2")

        result = prune((first, second), 5)

        assert len(result.pieces) == 2
        assert result.pieces[0].children == (text_piece("m1", 2, 10),)
        assert result.token_count == 5

    def test_emptied_group_removed(self):
        inner = group_piece((text_piece("x", 4, 5),), 5)
        wrapper = group_piece((inner,), 5, prunable=False)
        owner = message_piece(ChatRole.USER, (text_piece("q", 1, 50), wrapper), 50)

        result = prune((owner,), 2)

        (kept,) = result.pieces
        assert kept.children == (text_piece("q", 1, 50),)

    def test_message_without_text_removed(self):
        empty = message_piece(ChatRole.USER, (text_piece("", 0, 5),), 5, overhead=2)
        result = prune((msg(1, 3, "kept"), empty), 10)
        assert contents(result.pieces) == ["kept"]
        assert result.token_count == 3

    def test_message_emptied_by_pruning_removed(self):
        group = group_piece((text_piece("aside", 6, 20),), 20)
        owner = message_piece(ChatRole.USER, (group,), 80)
        result = prune((msg(100, 1, "rules"), owner), 2)
        assert contents(result.pieces) == ["rules"]
        assert result.token_count == 1

    def test_higher_priority_survives_whenever_lower_does(self):
        pieces = (
            msg(30, 4, "a"), msg(70, 6, "b"), msg(50, 2, "c"), msg(90, 3, "d"), msg(10, 1, "e"),
        )
        rank = {"a": 30, "b": 70, "c": 50, "d": 90, "e": 10}
        for budget in range(0, 20):
            survivors = contents(prune(pieces, budget).pieces)
            for low in survivors:
                for name, priority in rank.items():
                    if priority > rank[low]:
                        assert name in survivors, (budget, survivors)

    def test_result_never_exceeds_budget(self):
        pieces = (msg(3, 4), msg(1, 6), msg(2, 2))
        for budget in range(0, 15):
            assert prune(pieces, budget).token_count <= budget
