import random

import pytest

from core.state_machine import DraftStateMachine
from models import ActionType, DraftAction, Rejection, Side
from schemas import Champion, DraftInstance, DraftTeam, Participant
from services.phase_service import DRAFT_ORDER, TOTAL_TURNS

from conftest import make_champions

HOST = "host-token"
CHALLENGER = "challenger-token"


def new_draft(champions, phase_index=-2):
    return DraftInstance(
        id="ABC123",
        host_id=HOST,
        blue_team=DraftTeam(player=Participant(id=HOST, display_name="Blue Player")),
        red_team=DraftTeam(),
        phase_index=phase_index,
        available_champions=list(champions),
        all_champions=list(champions),
        created_at=0,
        updated_at=0,
    )


def ready_draft(machine, champions):
    draft = machine.join(new_draft(champions), CHALLENGER).draft
    draft = machine.set_ready(draft, HOST, True).draft
    return machine.set_ready(draft, CHALLENGER, True).draft


def current_actor(draft):
    return HOST if DRAFT_ORDER[draft.phase_index].side == Side.BLUE else CHALLENGER


def assert_invariants(draft):
    selected = draft.selected_ids()
    assert len(selected) == len(set(selected))

    selected_set = set(selected)
    expected_available = [c.id for c in draft.all_champions if c.id not in selected_set]
    assert [c.id for c in draft.available_champions] == expected_available

    for team in (draft.blue_team, draft.red_team):
        assert len(team.bans) <= 3
        assert len(team.picks) <= 5


@pytest.fixture
def machine():
    return DraftStateMachine()


@pytest.fixture
def champions():
    return make_champions(24)


# ============ join ============

def test_join_assigns_red_and_moves_to_ready_check(machine, champions):
    result = machine.join(new_draft(champions), CHALLENGER)

    assert result.ok and result.changed
    assert result.draft.red_team.player.id == CHALLENGER
    assert result.draft.red_team.player.display_name == "Red Player"
    assert result.draft.red_team.player.is_ready is False
    assert result.draft.phase_index == -1


def test_join_uses_given_display_name(machine, champions):
    result = machine.join(new_draft(champions), CHALLENGER, display_name="Faker")
    assert result.draft.red_team.player.display_name == "Faker"


def test_join_twice_is_idempotent(machine, champions):
    first = machine.join(new_draft(champions), CHALLENGER).draft
    second = machine.join(first, CHALLENGER)

    assert second.ok
    assert not second.changed
    assert second.draft == first
    assert second.message == "Rejoined draft."


def test_join_by_host_is_not_an_error(machine, champions):
    draft = new_draft(champions)
    result = machine.join(draft, HOST)

    assert result.ok and not result.changed
    assert result.draft == draft
    assert result.draft.phase_index == -2
    assert result.message == "You are the host (Blue Team)."


def test_join_when_slot_taken_is_rejected(machine, champions):
    draft = machine.join(new_draft(champions), CHALLENGER).draft
    result = machine.join(draft, "someone-else")

    assert result.rejection == Rejection.SLOT_FULL
    assert result.draft is None


def test_join_does_not_mutate_input(machine, champions):
    draft = new_draft(champions)
    before = draft.model_dump_json()
    machine.join(draft, CHALLENGER)
    assert draft.model_dump_json() == before


# ============ set_ready ============

def test_ready_by_unknown_player_is_rejected(machine, champions):
    draft = machine.join(new_draft(champions), CHALLENGER).draft
    result = machine.set_ready(draft, "stranger", True)
    assert result.rejection == Rejection.PLAYER_NOT_FOUND


def test_one_ready_player_stays_in_ready_check(machine, champions):
    draft = machine.join(new_draft(champions), CHALLENGER).draft
    result = machine.set_ready(draft, HOST, True)

    assert result.draft.blue_team.player.is_ready is True
    assert result.draft.phase_index == -1


def test_both_ready_starts_drafting(machine, champions):
    draft = ready_draft(machine, champions)
    assert draft.phase_index == 0


def test_host_ready_before_challenger_joins_does_not_start(machine, champions):
    result = machine.set_ready(new_draft(champions), HOST, True)
    assert result.draft.phase_index == -2


def test_ready_again_is_unchanged(machine, champions):
    draft = machine.join(new_draft(champions), CHALLENGER).draft
    draft = machine.set_ready(draft, HOST, True).draft
    result = machine.set_ready(draft, HOST, True)

    assert result.ok and not result.changed


def test_unready_during_drafting_does_not_roll_back(machine, champions):
    draft = ready_draft(machine, champions)
    result = machine.set_ready(draft, HOST, False)

    assert result.ok
    assert result.draft.blue_team.player.is_ready is False
    assert result.draft.phase_index == 0


# ============ select ============

def test_select_before_drafting_is_invalid_phase(machine, champions):
    draft = machine.join(new_draft(champions), CHALLENGER).draft
    result = machine.select(draft, HOST, champions[0])
    assert result.rejection == Rejection.INVALID_PHASE


def test_select_by_stranger_is_not_identified(machine, champions):
    draft = ready_draft(machine, champions)
    result = machine.select(draft, "stranger", champions[0])
    assert result.rejection == Rejection.PLAYER_NOT_IDENTIFIED


def test_select_out_of_turn_leaves_record_unchanged(machine, champions):
    draft = ready_draft(machine, champions)
    before = draft.model_dump_json()

    result = machine.select(draft, CHALLENGER, champions[0])

    assert result.rejection == Rejection.NOT_YOUR_TURN
    assert draft.model_dump_json() == before


def test_first_selection_is_blue_ban(machine, champions):
    draft = ready_draft(machine, champions)
    result = machine.select(draft, HOST, champions[3])

    assert result.ok
    assert [c.id for c in result.draft.blue_team.bans] == [champions[3].id]
    assert result.draft.blue_team.picks == []
    assert champions[3].id not in [c.id for c in result.draft.available_champions]
    assert result.draft.phase_index == 1


def test_already_selected_is_rejected_across_sides(machine, champions):
    draft = ready_draft(machine, champions)
    draft = machine.select(draft, HOST, champions[0]).draft

    result = machine.select(draft, CHALLENGER, champions[0])
    assert result.rejection == Rejection.ALREADY_SELECTED


def test_already_selected_matches_by_id_not_name(machine, champions):
    draft = ready_draft(machine, champions)
    draft = machine.select(draft, HOST, champions[0]).draft

    renamed = Champion(id=champions[0].id, name="Something Else")
    assert machine.select(draft, CHALLENGER, renamed).rejection == Rejection.ALREADY_SELECTED

    same_name = Champion(id="NotInCatalog", name=champions[1].name)
    assert machine.select(draft, CHALLENGER, same_name).rejection == Rejection.CHAMPION_NOT_AVAILABLE


def test_unknown_champion_is_rejected_when_enforced(machine, champions):
    draft = ready_draft(machine, champions)
    result = machine.select(draft, HOST, Champion(id="Nobody", name="Nobody"))
    assert result.rejection == Rejection.CHAMPION_NOT_AVAILABLE


def test_unknown_champion_is_accepted_when_not_enforced(champions):
    machine = DraftStateMachine(enforce_availability=False)
    draft = ready_draft(machine, champions)

    result = machine.select(draft, HOST, Champion(id="Nobody", name="Nobody"))

    assert result.ok
    assert result.draft.blue_team.bans[0].id == "Nobody"
    assert len(result.draft.available_champions) == len(champions)


def test_select_stores_catalog_entry_not_client_copy(machine, champions):
    draft = ready_draft(machine, champions)
    tampered = Champion(id=champions[2].id, name="Tampered", title="fake")

    result = machine.select(draft, HOST, tampered)

    assert result.draft.blue_team.bans[0] == champions[2]


def test_select_after_completion_is_invalid_phase(machine, champions):
    draft = ready_draft(machine, champions)
    for _ in range(TOTAL_TURNS):
        draft = machine.select(draft, current_actor(draft), draft.available_champions[0]).draft

    result = machine.select(draft, HOST, draft.available_champions[0])
    assert result.rejection == Rejection.INVALID_PHASE


def test_full_draft_follows_turn_order(machine, champions):
    draft = ready_draft(machine, champions)

    for index, phase_action in enumerate(DRAFT_ORDER):
        champion = draft.available_champions[0]
        draft = machine.select(draft, current_actor(draft), champion).draft

        team = draft.team(phase_action.side)
        target = team.bans if phase_action.type == ActionType.BAN else team.picks
        assert target[-1].id == champion.id
        assert draft.phase_index == index + 1

    assert draft.phase_index == TOTAL_TURNS
    for team in (draft.blue_team, draft.red_team):
        assert len(team.bans) == 3
        assert len(team.picks) == 5
    assert len(draft.available_champions) == len(champions) - TOTAL_TURNS
    assert_invariants(draft)


def test_apply_dispatches_actions(machine, champions):
    draft = machine.apply(new_draft(champions), CHALLENGER, DraftAction.JOIN).draft
    draft = machine.apply(draft, HOST, "set_ready", True).draft
    draft = machine.apply(draft, CHALLENGER, DraftAction.SET_READY, True).draft
    result = machine.apply(draft, HOST, DraftAction.SELECT, champions[0])

    assert result.ok
    assert result.draft.phase_index == 1


@pytest.mark.parametrize("seed", range(25))
def test_random_action_sequences_keep_invariants(machine, champions, seed):
    rng = random.Random(seed)
    draft = ready_draft(machine, champions)
    actors = [HOST, CHALLENGER, "stranger"]

    while draft.phase_index < TOTAL_TURNS:
        actor = rng.choice(actors)
        if rng.random() < 0.3:
            champion = rng.choice(draft.all_champions)
        else:
            champion = rng.choice(draft.available_champions)

        before = draft
        result = machine.select(draft, actor, champion)

        if result.ok:
            assert result.draft.phase_index == before.phase_index + 1
            draft = result.draft
        else:
            assert result.rejection in {
                Rejection.NOT_YOUR_TURN,
                Rejection.PLAYER_NOT_IDENTIFIED,
                Rejection.ALREADY_SELECTED,
            }

        if rng.random() < 0.1:
            draft = machine.set_ready(draft, rng.choice([HOST, CHALLENGER]), rng.random() < 0.5).draft
            assert draft.phase_index == before.phase_index + (1 if result.ok else 0)

        assert_invariants(draft)

    assert draft.phase_index == TOTAL_TURNS
    assert {len(draft.blue_team.bans), len(draft.red_team.bans)} == {3}
    assert {len(draft.blue_team.picks), len(draft.red_team.picks)} == {5}


# ============ expected_phase_index ============

def test_select_for_a_past_turn_is_invalid_phase(machine, champions):
    draft = ready_draft(machine, champions)
    draft = machine.select(draft, HOST, champions[0], expected_phase_index=0).draft

    result = machine.select(draft, CHALLENGER, champions[1], expected_phase_index=0)

    assert result.rejection == Rejection.INVALID_PHASE


@pytest.mark.parametrize("index", [7, 11, 13])
def test_repeated_submit_on_back_to_back_turns_is_rejected(machine, champions, index):
    # red_pick_1 -> red_pick_2, red_pick_3 -> red_pick_4, blue_pick_4 -> blue_pick_5
    assert DRAFT_ORDER[index].side == DRAFT_ORDER[index + 1].side

    draft = ready_draft(machine, champions)
    while draft.phase_index < index:
        draft = machine.select(draft, current_actor(draft), draft.available_champions[0]).draft
    actor = current_actor(draft)

    first = machine.select(draft, actor, draft.available_champions[0], expected_phase_index=index)
    assert first.ok

    repeat = machine.select(first.draft, actor, first.draft.available_champions[0], expected_phase_index=index)
    assert repeat.rejection == Rejection.INVALID_PHASE

    without_index = machine.select(first.draft, actor, first.draft.available_champions[0])
    assert without_index.ok


def test_apply_passes_expected_phase_index(machine, champions):
    draft = ready_draft(machine, champions)

    result = machine.apply(draft, HOST, DraftAction.SELECT, champions[0], expected_phase_index=3)

    assert result.rejection == Rejection.INVALID_PHASE
