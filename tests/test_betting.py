import pytest

from holdem import betting
from holdem.betting import clone, legal_actions, next_active_seat, resolve_showdown
from holdem.cards import Deck
from holdem.errors import InvalidPhase, InvalidRaise, InvalidTurn, RoundClosed, RoundNotClosed
from holdem.evaluator import parse_cards
from holdem.models import Action, ActionType, Phase, PlayerSeat, TableState

from .helpers import act, new_table, perform_actions, play_out_hand


def test_blinds_and_first_actor_on_first_hand():
    state = new_table()
    assert state.dealer == 1
    assert state.seats[2].bet == 10 and not state.seats[2].has_acted
    assert state.seats[3].bet == 20 and state.seats[3].has_acted
    assert state.current_bet == 20
    assert state.active_seat == 4
    assert state.phase == Phase.PRE_FLOP
    assert not state.round_closed


def test_raise_reopens_the_round():
    state = new_table()
    state, events = act(state, ActionType.RAISE, 60)
    assert state.current_bet == 60
    assert state.seats[4].has_acted
    assert state.seats[4].bet == 60 and state.seats[4].chips == 940
    for seat in state.seats:
        if seat.seat != 4:
            assert not seat.has_acted
    assert state.active_seat == 5
    assert events == [{"ev": "RAISE", "seat": 4, "amount": 60, "to": 60, "all_in": False}]


def test_everyone_folds_to_big_blind():
    state = new_table()
    state = perform_actions(state, [(ActionType.FOLD, None)] * 4)
    state, events = act(state, ActionType.FOLD)
    assert state.round_closed
    assert state.phase == Phase.SHOWDOWN
    assert state.winner == 3
    assert state.seats[3].chips == 1_010
    assert state.pot == 0 and state.live_bets() == 0
    assert events[-1] == {"ev": "POT_AWARD", "seat": 3, "amount": 30, "uncontested": True}
    assert not any(event["ev"] == "SHOWDOWN" for event in events)


def test_postflop_fold_out_pays_pot_and_live_bets():
    state = new_table()
    state = perform_actions(state, [(ActionType.CALL, None)] * 5)
    state, _ = betting.advance_phase(state)
    assert state.pot == 120 and state.active_seat == 2

    state, _ = act(state, ActionType.RAISE, 40)
    events = []
    for _ in range(5):
        state, produced = act(state, ActionType.FOLD)
        events.extend(produced)

    assert state.phase == Phase.SHOWDOWN
    assert state.winner == 2
    assert state.seats[2].chips == 1_000 - 20 - 40 + 120 + 40
    assert state.pot == 0 and state.live_bets() == 0
    assert events[-1] == {"ev": "POT_AWARD", "seat": 2, "amount": 160, "uncontested": True}
    assert not any(event["ev"] == "SHOWDOWN" for event in events)
    assert state.total_chips() == 6_000


def test_limped_pot_closes_without_big_blind_option():
    state = new_table()
    state = perform_actions(state, [(ActionType.CALL, None)] * 5)
    assert state.round_closed
    assert state.live_bets() == 120

    flop, events = betting.advance_phase(state)
    assert flop.phase == Phase.FLOP
    assert len(flop.community) == 3
    assert flop.pot == 120
    assert flop.current_bet == 0
    assert flop.active_seat == 2
    assert events[0]["ev"] == "FLOP"
    assert all(not seat.has_acted and seat.bet == 0 for seat in flop.seats)


def test_check_reported_when_nothing_to_call():
    state = new_table()
    state = perform_actions(state, [(ActionType.CALL, None)] * 5)
    state, _ = betting.advance_phase(state)
    state, events = act(state, ActionType.CALL)
    assert events[0]["ev"] == "CHECK"
    assert events[0]["amount"] == 0


def test_invalid_raise_leaves_state_untouched():
    state = new_table()
    before = clone(state)
    with pytest.raises(InvalidRaise, match="must exceed current bet"):
        act(state, ActionType.RAISE, 20)
    with pytest.raises(InvalidRaise, match="requires amount"):
        act(state, ActionType.RAISE, None)
    assert state == before


def test_out_of_turn_rejected():
    state = new_table()
    with pytest.raises(InvalidTurn) as excinfo:
        betting.apply_action(state, 0, Action(ActionType.CALL))
    assert excinfo.value.code == "NOT_YOUR_TURN"


def test_actions_rejected_on_closed_round_and_advance_rejected_on_open_round():
    state = new_table()
    with pytest.raises(RoundNotClosed):
        betting.advance_phase(state)
    state = perform_actions(state, [(ActionType.CALL, None)] * 5)
    with pytest.raises(RoundClosed):
        act(state, ActionType.CALL)


def test_short_all_in_counts_as_call():
    state = new_table()
    state.seats[4].chips = 15
    state, events = act(state, ActionType.ALL_IN)
    assert state.current_bet == 20
    assert state.seats[4].all_in and state.seats[4].bet == 15
    assert events[0]["ev"] == "ALL_IN"
    assert not state.seats[5].has_acted


def test_raise_is_capped_at_stack():
    state = new_table()
    state, events = act(state, ActionType.RAISE, 5_000)
    assert state.seats[4].all_in
    assert state.current_bet == 1_000
    assert events[0]["to"] == 1_000


def test_legal_actions_for_active_seat():
    state = new_table()
    legal = legal_actions(state, 4)
    assert legal["legal"] == ["FOLD", "CALL", "RAISE", "ALL_IN"]
    assert legal["call_amount"] == 20
    assert legal["min_raise_to"] == 21
    assert legal["max_raise_to"] == 1_000
    assert legal_actions(state, 0)["legal"] == ["FOLD", "CALL", "RAISE", "ALL_IN"]
    state = perform_actions(state, [(ActionType.CALL, None)] * 5)
    assert legal_actions(state, 4)["legal"] == []


def test_lone_contender_must_match_before_round_closes():
    state = new_table(seats=2)
    # Heads-up: seat 1 deals, seat 0 posts the small blind and acts first.
    assert state.active_seat == 0
    state, _ = act(state, ActionType.ALL_IN)
    assert not state.round_closed
    assert state.active_seat == 1
    state, _ = act(state, ActionType.CALL)
    assert state.round_closed

    final, events = play_out_hand(state)
    assert final.phase == Phase.SHOWDOWN
    assert len(final.community) == 5
    assert final.total_chips() == 2_000
    assert any(event["ev"] == "SHOWDOWN" for event in events)
    with pytest.raises(InvalidPhase):
        betting.advance_phase(final)


def test_betting_round_is_monotonic_and_conserves_chips():
    state = new_table(seed=8)
    total = state.total_chips()
    script = [
        (ActionType.RAISE, 50),
        (ActionType.CALL, None),
        (ActionType.FOLD, None),
        (ActionType.RAISE, 150),
        (ActionType.CALL, None),
        (ActionType.FOLD, None),
        (ActionType.CALL, None),
        (ActionType.CALL, None),
    ]
    previous_bet = state.current_bet
    for action, amount in script:
        state, _ = act(state, action, amount)
        assert state.current_bet >= previous_bet
        assert state.total_chips() == total
        previous_bet = state.current_bet
    assert state.round_closed

    board = 0
    while state.phase != Phase.SHOWDOWN:
        state, _ = betting.advance_phase(state) if state.round_closed else act(state, ActionType.CALL)
        assert len(state.community) >= board
        board = len(state.community)
        assert state.total_chips() == total


def test_next_active_seat_bounded_scan():
    state = new_table()
    for seat in state.seats:
        seat.folded = True
    assert next_active_seat(state.seats, 3) is None
    state.seats[1].folded = False
    assert next_active_seat(state.seats, 3) == 1
    assert next_active_seat(state.seats, 1) == 1


def _showdown_table(holes, board, pot):
    seats = [
        PlayerSeat(seat=idx, player_id=f"player_{idx}", name=f"P{idx}", chips=0, hole_cards=parse_cards(hole))
        for idx, hole in enumerate(holes)
    ]
    return TableState(
        table_id="T-1",
        seats=seats,
        deck=Deck(cards=[]),
        small_blind=10,
        big_blind=20,
        community=parse_cards(board),
        pot=pot,
        phase=Phase.SHOWDOWN,
    )


def test_split_pot_gives_remainder_to_lowest_seat():
    state = _showdown_table([["2c", "3d"], ["4h", "5c"], ["7d", "8d"]], ["As", "Ks", "Qd", "Jc", "Th"], pot=31)
    events = resolve_showdown(state)
    assert [seat.chips for seat in state.seats] == [11, 10, 10]
    assert state.pot == 0
    assert state.winner is None
    awards = [event for event in events if event["ev"] == "POT_AWARD"]
    assert [event["split"] for event in awards] == [True, True, True]


def test_showdown_pays_best_hand():
    state = _showdown_table([["Ah", "Ad"], ["Kh", "Kd"]], ["2s", "7c", "9d", "Jh", "3c"], pot=200)
    events = resolve_showdown(state)
    assert state.seats[0].chips == 200
    assert state.seats[1].chips == 0
    assert state.winner == 0
    assert events[-1] == {"ev": "POT_AWARD", "seat": 0, "amount": 200, "rank": "Pair", "split": False}
