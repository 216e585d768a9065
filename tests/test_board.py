from draft_core import Item, Participant, RoomConfig, SelectionOrderEntry, build_board


def _config(**overrides) -> RoomConfig:
    row = {
        "room_id": "R1",
        "is_paused": True,
        "rounds_total": 2,
        "current_round": 1,
        "current_pick_in_round": 1,
        "current_coach_id": 1,
    }
    row.update(overrides)
    return RoomConfig.model_validate(row)


COACHES = [Participant(coach_id=1, coach_name="A"), Participant(coach_id=2, coach_name="B")]


def _drafted(player_no, coach_id, round_no, pick):
    return Item.model_validate(
        {
            "player_no": player_no,
            "pos": "MID",
            "drafted_by_coach_id": coach_id,
            "drafted_round": round_no,
            "drafted_pick": pick,
        }
    )


def test_board_without_order_has_no_coaches_assigned():
    board = build_board(_config(), COACHES, [], [])
    assert len(board.slots) == 4
    assert [s.overall for s in board.slots] == [1, 2, 3, 4]
    assert all(s.coach_id is None and s.coach_name == "" for s in board.slots)
    assert board.current_overall == 1
    assert board.current_slot.is_current


def test_board_resolves_order_and_drafted_players():
    order = [SelectionOrderEntry(overall_pick=1, coach_id=1), SelectionOrderEntry(overall_pick=2, coach_id=2),
             SelectionOrderEntry(overall_pick=3, coach_id=2), SelectionOrderEntry(overall_pick=4, coach_id=9)]
    items = [_drafted(10, 1, 1, 1), _drafted(11, 2, 1, 2), Item(player_no=12, pos="DEF")]
    board = build_board(_config(current_round=2, current_pick_in_round=1), COACHES, order, items)

    assert [s.coach_name for s in board.slots] == ["A", "B", "B", "Coach 9"]
    assert board.slots[0].player.player_no == 10
    assert board.slots[1].player.player_no == 11
    assert board.slots[2].is_open and board.slots[3].is_open
    assert board.current_overall == 3
    assert [s.round_no for s in board.slots] == [1, 1, 2, 2]
    assert [s.pick_in_round for s in board.slots] == [1, 2, 1, 2]
    assert len(board.slots_for_round(2)) == 2


def test_board_length_is_rounds_times_coaches_for_any_sparsity():
    coaches = [Participant(coach_id=i, coach_name=f"C{i}") for i in range(1, 6)]
    for rounds_total in (1, 3, 7):
        for order in ([], [SelectionOrderEntry(overall_pick=2, coach_id=3)]):
            board = build_board(_config(rounds_total=rounds_total), coaches, order, [_drafted(1, 1, 1, 4)])
            assert len(board.slots) == rounds_total * 5


def test_board_is_deterministic():
    items = [_drafted(20, 2, 1, 2), _drafted(21, 1, 1, 1)]
    order = [SelectionOrderEntry(overall_pick=2, coach_id=2)]
    first = build_board(_config(), COACHES, order, items)
    second = build_board(_config(), COACHES, order, list(reversed(items)))
    assert first == second
    assert first == build_board(_config(), COACHES, order, items)


def test_board_skips_rows_that_do_not_fit_roster():
    # pick 3 cannot exist in a two-coach room
    items = [_drafted(30, 1, 1, 3), _drafted(31, 2, 5, 1)]
    board = build_board(_config(), COACHES, [], items)
    assert len(board.slots) == 4
    assert all(s.is_open for s in board.slots)


def test_board_duplicate_slot_prefers_lower_player_no():
    items = [_drafted(41, 1, 1, 1), _drafted(40, 2, 1, 1)]
    board = build_board(_config(), COACHES, [], items)
    assert board.slots[0].player.player_no == 40


def test_board_fallbacks_before_data_loads():
    board = build_board(None, [], [], [])
    assert board.coach_count == 2
    assert board.rounds_total == 46
    assert len(board.slots) == 92
    assert board.current_overall is None
    assert board.current_slot is None


def test_board_current_slot_unmappable_is_none():
    board = build_board(_config(current_pick_in_round=3), COACHES, [], [])
    assert board.current_overall is None
    assert not any(s.is_current for s in board.slots)


def test_board_round_past_total_has_no_current_slot():
    board = build_board(_config(rounds_total=2, current_round=3), COACHES, [], [])
    assert len(board.slots) == 4
    assert board.current_overall == 5
    assert board.current_slot is None
    assert not any(s.is_current for s in board.slots)
