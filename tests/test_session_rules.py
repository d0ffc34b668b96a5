from __future__ import annotations

import pytest

from flipseven.engine.actions import (
    AdvanceAction,
    DealNextCardAction,
    EndRoundAction,
    HitAction,
    ResolveActionCard,
    ResolveDealingAction,
    ResolveFlipThreeCardAction,
    SkipDealingAction,
    SkipFlipThreeAction,
    StartRoundAction,
    StayAction,
    UseSecondChanceAction,
)
from flipseven.engine.scoring import calculate_score
from flipseven.engine.serialize import snapshot
from flipseven.engine.session import (
    InvalidPlayerCount,
    advance_to_next_player,
    deal_next_card,
    hit_player,
    new_session,
    resolve_action_card,
    resolve_dealing_action,
    skip_dealing_action,
    stay_player,
    step,
    use_second_chance,
)

from builders import act, give, make_session, mod, num, rig, skip_to_turns


def _types(result) -> list[object]:
    return [e["type"] for e in result.events]


def test_player_count_bounds() -> None:
    with pytest.raises(InvalidPlayerCount):
        new_session(["solo"], seed=1)
    with pytest.raises(InvalidPlayerCount):
        new_session([f"P{i}" for i in range(19)], seed=1)

    assert len(new_session(["a", "b"], seed=1).players) == 2
    assert len(new_session([f"P{i}" for i in range(18)], seed=1).players) == 18


def test_new_session_opens_dealing_left_of_dealer() -> None:
    s = make_session(3)
    assert s.status == "playing"
    assert s.current_round == 1
    assert s.dealer_index == 0
    assert s.round_phase == "dealing"
    assert s.dealing_player_index == 1
    assert len(s.deck) == 94
    assert s.discard_pile == []
    assert all(rs.can_act for rs in s.round_states)


def test_unseeded_sessions_pick_a_seed() -> None:
    s = new_session(["a", "b"])
    assert s.seed >= 1


def test_dealing_gives_each_seat_one_number() -> None:
    s = make_session(3)
    rig(s, num(5), num(6), num(7), num(8))

    assert deal_next_card(s).card.value == 5
    assert s.dealing_player_index == 2
    deal_next_card(s)
    res = deal_next_card(s)

    assert "DEALING_COMPLETE" in _types(res)
    assert s.round_phase == "player_turn"
    assert s.current_player_index == 1
    assert [rs.number_cards[0].value for rs in s.round_states] == [7, 5, 6]
    assert len(s.deck) == 1


def test_modifier_during_dealing_deals_same_seat_again() -> None:
    s = make_session(3)
    rig(s, mod("+4"), num(3), num(4), num(5))

    deal_next_card(s)
    assert s.dealing_player_index == 1
    assert len(s.round_states[1].modifier_cards) == 1

    deal_next_card(s)
    assert s.dealing_player_index == 2
    assert s.round_states[1].number_cards[0].value == 3


def test_action_during_dealing_pauses_and_resumes() -> None:
    s = make_session(3)
    freeze = act("freeze")
    rig(s, freeze, num(5), num(6), num(9))

    deal_next_card(s)
    assert s.round_phase == "resolving_action"
    assert s.pending_action is not None
    assert s.pending_action.source_player == 1
    assert s.dealing_player_index == 1

    assert not hit_player(s).ok
    res = resolve_action_card(s, 2)
    assert not res.ok
    assert res.error == "Pending action belongs to another phase."

    assert resolve_dealing_action(s, 2).ok
    assert s.round_states[2].is_frozen
    assert s.round_states[1].action_cards == [freeze]
    assert s.round_phase == "dealing"
    assert s.dealing_player_index == 1

    deal_next_card(s)
    # Seat 2 is frozen and gets skipped.
    assert s.dealing_player_index == 0
    deal_next_card(s)

    assert s.round_phase == "player_turn"
    assert s.current_player_index == 1
    assert s.round_states[0].number_cards[0].value == 6
    assert s.round_states[2].number_cards == []


def test_skip_dealing_action_keeps_card() -> None:
    s = make_session(3)
    flip = act("flip_three")
    rig(s, flip, num(4), num(5), num(6))

    deal_next_card(s)
    res = skip_dealing_action(s)

    assert res.ok
    assert "ACTION_SKIPPED" in _types(res)
    assert s.round_phase == "dealing"
    assert s.dealing_player_index == 1
    assert s.round_states[1].action_cards == [flip]
    assert s.eligible_targets() == [0, 1, 2]


def test_dealt_duplicate_with_second_chance_completes_the_seat() -> None:
    s = make_session(3)
    give(s, 1, num(5), act("second_chance"))
    rig(s, num(5), num(6), num(7))

    deal_next_card(s)
    assert s.round_phase == "resolving_action"
    res = resolve_dealing_action(s, 0)
    assert res.error == "Pending card needs a second-chance decision."

    assert use_second_chance(s, True).ok
    assert s.round_phase == "dealing"
    assert s.dealing_player_index == 2
    assert not s.round_states[1].has_second_chance
    assert [c.value for c in s.round_states[1].number_cards] == [5]


def test_hit_adds_number() -> None:
    s = make_session(3)
    skip_to_turns(s, 0)
    give(s, 0, num(5))
    rig(s, num(4))

    res = hit_player(s)
    assert res.ok
    assert res.card is not None and res.card.value == 4
    assert [c.value for c in s.round_states[0].number_cards] == [5, 4]
    assert s.round_states[0].can_act
    assert s.current_player_index == 0


def test_duplicate_without_second_chance_busts() -> None:
    s = make_session(3)
    skip_to_turns(s, 0)
    give(s, 0, num(5), mod("+4"))
    rig(s, num(5))

    res = hit_player(s)
    rs = s.round_states[0]
    assert "PLAYER_BUSTED" in _types(res)
    assert rs.is_busted
    assert not rs.is_active
    assert rs.round_score == 0
    assert calculate_score(rs) == 0
    assert len(rs.number_cards) == 2

    assert advance_to_next_player(s).ok
    assert s.current_player_index == 1


def test_second_chance_discards_duplicate() -> None:
    s = make_session(3)
    skip_to_turns(s, 0)
    sc = act("second_chance")
    give(s, 0, num(5), sc)
    dup = num(5)
    rig(s, dup)

    res = hit_player(s)
    assert "SECOND_CHANCE_OFFERED" in _types(res)
    assert s.round_phase == "resolving_action"
    assert not s.round_states[0].is_busted
    assert not hit_player(s).ok
    assert not advance_to_next_player(s).ok

    res = use_second_chance(s, True)
    rs = s.round_states[0]
    assert "SECOND_CHANCE_USED" in _types(res)
    assert s.round_phase == "player_turn"
    assert not rs.has_second_chance
    assert rs.action_cards == []
    assert s.discard_pile == [sc, dup]
    assert len(rs.number_cards) == 1
    assert rs.can_act


def test_declining_second_chance_busts() -> None:
    s = make_session(3)
    skip_to_turns(s, 0)
    give(s, 0, num(5), act("second_chance"))
    rig(s, num(5))

    hit_player(s)
    assert use_second_chance(s, False).ok
    assert s.round_states[0].is_busted
    assert s.round_phase == "player_turn"


def test_second_chance_does_not_stack() -> None:
    s = make_session(3)
    skip_to_turns(s, 0)
    give(s, 0, num(5), act("second_chance"), act("second_chance"))
    rig(s, num(5), num(5))

    hit_player(s)
    use_second_chance(s, True)
    assert not s.round_states[0].has_second_chance
    assert len(s.round_states[0].action_cards) == 1

    hit_player(s)
    assert s.round_states[0].is_busted


def test_seven_distinct_numbers_end_the_turn() -> None:
    s = make_session(3)
    skip_to_turns(s, 0)
    give(s, 0, *[num(v) for v in (0, 1, 2, 3, 4, 8)])
    rig(s, num(12))

    res = hit_player(s)
    rs = s.round_states[0]
    assert "FLIP_SEVEN" in _types(res)
    assert rs.has_flip_seven
    assert rs.has_stayed
    assert rs.round_score == 45
    assert not stay_player(s).ok


def test_stay_locks_score() -> None:
    s = make_session(3)
    skip_to_turns(s, 0)
    give(s, 0, num(9), mod("x2"))

    assert stay_player(s).ok
    assert s.round_states[0].round_score == 18
    res = hit_player(s)
    assert res.error == "Current player cannot draw."

    advance_to_next_player(s)
    assert s.current_player_index == 1


def test_freeze_locks_target_score() -> None:
    s = make_session(3)
    skip_to_turns(s, 0)
    give(s, 0, num(2))
    give(s, 1, num(5), mod("+4"))
    rig(s, act("freeze"), num(10))

    res = hit_player(s)
    assert "ACTION_PENDING" in _types(res)
    assert s.eligible_targets() == [0, 1, 2]

    assert resolve_action_card(s, 1).ok
    assert s.round_states[1].is_frozen
    assert s.round_states[1].round_score == 9
    assert s.round_phase == "player_turn"
    assert s.current_player_index == 0

    stay_player(s)
    advance_to_next_player(s)
    assert s.current_player_index == 2
    stay_player(s)
    advance_to_next_player(s)
    assert s.round_phase == "round_end"

    step(s, EndRoundAction())
    assert s.players[1].total_score == 9


def test_invalid_target_is_rejected_without_change() -> None:
    s = make_session(3)
    skip_to_turns(s, 0)
    s.round_states[2].has_stayed = True
    s.round_states[2].is_active = False
    rig(s, act("freeze"))
    hit_player(s)

    before = snapshot(s)
    for target in (2, 7, -1):
        res = resolve_action_card(s, target)
        assert not res.ok
        assert res.error == "Invalid target."
    assert snapshot(s) == before


def test_out_of_phase_commands_do_nothing() -> None:
    s = make_session(3)
    before = snapshot(s)
    commands = [
        HitAction(),
        StayAction(),
        AdvanceAction(),
        ResolveActionCard(target=0),
        ResolveDealingAction(target=0),
        SkipDealingAction(),
        ResolveFlipThreeCardAction(),
        SkipFlipThreeAction(),
        UseSecondChanceAction(discard=True),
        StartRoundAction(),
        EndRoundAction(),
    ]
    for command in commands:
        res = step(s, command)
        assert not res.ok, command
        assert res.error
        assert res.events == []

    assert snapshot(s) == before
    assert s.action_log == []


def test_last_player_out_ends_round() -> None:
    s = make_session(3)
    skip_to_turns(s, 2)
    s.round_states[0].has_stayed = True
    s.round_states[0].is_active = False
    s.round_states[1].is_busted = True
    s.round_states[1].is_active = False

    stay_player(s)
    res = advance_to_next_player(s)
    assert "ROUND_OVER" in _types(res)
    assert s.round_phase == "round_end"
    assert not hit_player(s).ok


def test_advance_wraps_and_skips_inactive() -> None:
    s = make_session(3)
    skip_to_turns(s, 2)
    s.round_states[0].is_frozen = True
    s.round_states[0].is_active = False

    advance_to_next_player(s)
    assert s.current_player_index == 1


def test_exhausted_piles_reject_the_draw() -> None:
    s = make_session(3)
    skip_to_turns(s, 0)
    s.deck = []
    s.discard_pile = []

    before = snapshot(s)
    res = hit_player(s)
    assert not res.ok
    assert res.error == "Deck and discard pile are both empty."
    assert snapshot(s) == before


def test_empty_deck_reshuffles_discard_on_draw() -> None:
    s = make_session(3)
    skip_to_turns(s, 0)
    s.deck = []
    s.discard_pile = [num(3)]

    res = hit_player(s)
    assert res.card is not None and res.card.value == 3
    assert "DECK_RESHUFFLED" in _types(res)
    assert s.discard_pile == []


def test_only_accepted_commands_are_logged() -> None:
    s = make_session(3)
    rig(s, num(1), num(2), num(3))
    step(s, HitAction())
    deal_next_card(s)
    assert s.action_log == [DealNextCardAction()]
