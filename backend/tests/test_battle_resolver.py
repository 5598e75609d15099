"""
对决伤害结算规则测试
"""

import math
from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from smacktalk.services.battle_resolver import (
    DAMAGE_CAP,
    AttackType,
    BattleEntry,
    BattleKind,
    CornerMan,
    Fighter,
    apply_state,
    parse_attack,
    resolve_battle,
    round_multiplier,
    sanitize_hp,
    state_from_player,
)

T0 = datetime(2024, 5, 1, 12, 0, 0)


def entry(player_id, votes, hp=100, text="answer", submitted_at=None, submission_id=None,
          attack=AttackType.JAB, **state):
    return BattleEntry(
        player_id=player_id,
        submission_id=submission_id if submission_id is not None else player_id * 10,
        text=text,
        votes=votes,
        state=state.pop("as_state", None) or Fighter(hp=hp, **state),
        submitted_at=submitted_at or T0,
        attack=attack,
    )


class TestSanitizeHp:

    @pytest.mark.parametrize("raw,expected", [
        (None, 100),
        (float("nan"), 100),
        ("abc", 100),
        (True, 100),
        (-5, 0),
        (150, 100),
        (42.9, 42),
        (0, 0),
        (73, 73),
    ])
    def test_normalizes_corrupt_and_out_of_range_values(self, raw, expected):
        assert sanitize_hp(raw) == expected


class TestDecisiveBattle:

    def test_unanimous_round_one_deals_full_cap(self):
        result = resolve_battle([entry(1, 0), entry(2, 3)], round_number=1, voter_pool=3)

        assert result.kind == BattleKind.DECISIVE
        assert result.winner_id == 2
        assert result.loser_id == 1
        assert result.base_damage == pytest.approx(35)
        loser = result.outcomes[1].after
        assert loser == Fighter(hp=65, win_streak=0, loss_streak=1, combo=0)
        winner = result.outcomes[2].after
        assert winner == Fighter(hp=100, win_streak=1, loss_streak=0, combo=3)

    def test_damage_is_proportional_to_votes_against(self):
        result = resolve_battle([entry(1, 1), entry(2, 3)], round_number=1, voter_pool=4)

        assert result.base_damage == pytest.approx(26.25)
        assert result.outcomes[1].after.hp == 73

    @pytest.mark.parametrize("round_number,expected_hp", [
        (1, 65),
        (2, 54),
        (3, 65),
        (4, 47),
        (7, 65),
    ])
    def test_round_multiplier_scales_damage(self, round_number, expected_hp):
        result = resolve_battle([entry(1, 0), entry(2, 2)], round_number=round_number, voter_pool=2)
        assert result.outcomes[1].after.hp == expected_hp

    def test_base_damage_never_exceeds_round_cap(self):
        for round_number in (1, 2, 4):
            cap = DAMAGE_CAP * round_multiplier(round_number)
            for loser_votes, winner_votes in [(0, 1), (1, 2), (0, 9), (4, 5)]:
                result = resolve_battle(
                    [entry(1, loser_votes), entry(2, winner_votes)], round_number=round_number
                )
                assert result.base_damage <= cap + 1e-9
                assert result.outcomes[1].after.hp == max(0, math.floor(100 - result.damage))

    def test_second_straight_win_adds_flat_bonus(self):
        result = resolve_battle([entry(1, 0), entry(2, 2, win_streak=1)], round_number=1, voter_pool=2)

        assert result.damage == pytest.approx(50)
        assert result.outcomes[1].after.hp == 50
        assert result.outcomes[2].after.win_streak == 2

    def test_third_straight_win_forces_knockout(self):
        result = resolve_battle([entry(1, 1), entry(2, 2, win_streak=2)], round_number=1, voter_pool=3)

        loser = result.outcomes[1]
        assert loser.after.hp == 0
        assert loser.knocked_out_now
        assert loser.after == CornerMan(captain_id=2, eliminated_round=1)

    def test_combo_adds_percentage_bonus(self):
        result = resolve_battle([entry(1, 0), entry(2, 2, combo=2)], round_number=1, voter_pool=2)

        assert result.damage == pytest.approx(38.5)
        assert result.outcomes[1].after.hp == 61
        assert result.outcomes[2].after.combo == 4

    def test_loser_with_votes_keeps_building_combo(self):
        result = resolve_battle([entry(1, 1, combo=3), entry(2, 2)], round_number=1, voter_pool=3)
        assert result.outcomes[1].after.combo == 4

    def test_loser_without_votes_loses_combo(self):
        result = resolve_battle([entry(1, 0, combo=3), entry(2, 2)], round_number=1, voter_pool=2)
        assert result.outcomes[1].after.combo == 0

    @pytest.mark.parametrize("round_number", [1, 2])
    def test_knockout_in_early_rounds_assigns_corner_man(self, round_number):
        result = resolve_battle([entry(1, 0, hp=20), entry(2, 2)], round_number=round_number, voter_pool=2)

        outcome = result.outcomes[1]
        assert outcome.became_corner_man
        assert outcome.after == CornerMan(captain_id=2, eliminated_round=round_number)
        assert outcome.after.knocked_out

    def test_knockout_in_round_three_keeps_fighter_role(self):
        result = resolve_battle([entry(1, 0, hp=20), entry(2, 2)], round_number=3, voter_pool=2)

        outcome = result.outcomes[1]
        assert isinstance(outcome.after, Fighter)
        assert outcome.after.hp == 0
        assert outcome.knocked_out_now
        assert not outcome.became_corner_man

    def test_corner_man_battler_takes_no_damage(self):
        corner = CornerMan(captain_id=9, eliminated_round=1)
        result = resolve_battle([entry(1, 0, as_state=corner), entry(2, 2)], round_number=1, voter_pool=2)

        assert result.outcomes[1].after == corner
        assert result.outcomes[1].damage == 0


class TestForfeit:
    """本轮早些时候已出局的一方，即使得票更多也判负"""

    def test_corner_man_with_more_votes_forfeits(self):
        corner = CornerMan(captain_id=9, eliminated_round=2)
        result = resolve_battle(
            [entry(1, 3, as_state=corner), entry(2, 0, hp=34)], round_number=2, voter_pool=3
        )

        assert result.kind == BattleKind.FORFEIT
        assert result.winner_id == 2
        assert result.loser_id == 1
        assert result.damage == 0
        assert result.outcomes[1].after == corner
        standing = result.outcomes[2]
        assert standing.after == Fighter(hp=34, win_streak=1, loss_streak=0, combo=0)
        assert standing.damage == 0
        assert not standing.knocked_out_now
        assert not standing.became_corner_man

    def test_knocked_out_round_three_fighter_forfeits(self):
        fallen = Fighter(hp=0, loss_streak=1)
        result = resolve_battle(
            [entry(1, 2, hp=40, combo=1), entry(2, 5, as_state=fallen)], round_number=3, voter_pool=7
        )

        assert result.kind == BattleKind.FORFEIT
        assert result.winner_id == 1
        assert result.outcomes[1].after == Fighter(hp=40, win_streak=1, loss_streak=0, combo=3)
        assert result.outcomes[2].after == fallen

    def test_standing_side_wins_even_without_votes(self):
        corner = CornerMan(captain_id=9, eliminated_round=1)
        result = resolve_battle([entry(1, 0, hp=70), entry(2, 0, as_state=corner)], round_number=1)

        assert result.kind == BattleKind.FORFEIT
        assert result.winner_id == 1
        assert result.outcomes[1].after.hp == 70

    def test_both_sides_out_changes_nothing(self):
        corner = CornerMan(captain_id=9, eliminated_round=1)
        fallen = Fighter(hp=0, loss_streak=2)
        result = resolve_battle([entry(1, 2, as_state=corner), entry(2, 1, as_state=fallen)], round_number=3)

        assert result.winner_id is None
        assert result.outcomes[1].after == corner
        assert result.outcomes[2].after.hp == 0
        assert not any(o.knocked_out_now for o in result.outcomes.values())


class TestAttackTypes:

    def test_parse_attack_defaults_to_jab(self):
        assert parse_attack(None) == AttackType.JAB
        assert parse_attack("haymaker") == AttackType.HAYMAKER
        assert parse_attack("flyingKick") == AttackType.FLYING_KICK
        assert parse_attack("uppercut") == AttackType.JAB

    def test_haymaker_doubles_damage_dealt(self):
        result = resolve_battle(
            [entry(1, 0, hp=100), entry(2, 2, attack=AttackType.HAYMAKER)], round_number=3, voter_pool=2
        )

        assert result.base_damage == pytest.approx(35)
        assert result.damage == pytest.approx(70)
        assert result.outcomes[1].after.hp == 30

    def test_losing_flying_kick_takes_four_times_damage(self):
        result = resolve_battle(
            [entry(1, 1, attack=AttackType.FLYING_KICK), entry(2, 3)], round_number=3, voter_pool=4
        )

        assert result.damage == pytest.approx(26.25 * 4)
        assert result.outcomes[1].after.hp == 0
        assert isinstance(result.outcomes[1].after, Fighter)

    def test_attack_multiplier_applies_after_streak_bonus(self):
        result = resolve_battle(
            [entry(1, 0), entry(2, 2, win_streak=1, attack=AttackType.HAYMAKER)], round_number=3, voter_pool=2
        )
        assert result.damage == pytest.approx(100)

    def test_tie_damage_depends_on_each_sides_attack(self):
        result = resolve_battle(
            [entry(1, 1, attack=AttackType.HAYMAKER), entry(2, 1)], round_number=3
        )

        assert result.kind == BattleKind.TIE
        # 重拳方造成和承受的伤害都翻倍
        assert result.outcomes[1].damage == pytest.approx(35)
        assert result.outcomes[2].damage == pytest.approx(35)
        assert result.outcomes[1].after.hp == 65

        result = resolve_battle(
            [entry(1, 1, attack=AttackType.FLYING_KICK), entry(2, 1, hp=100)], round_number=3
        )
        assert result.outcomes[1].damage == pytest.approx(70)
        assert result.outcomes[2].damage == pytest.approx(52.5)
        assert result.outcomes[1].after.hp == 30
        assert result.outcomes[2].after.hp == 47


class TestNoVotes:

    def test_no_votes_leaves_hp_and_resets_streaks(self):
        result = resolve_battle(
            [entry(1, 0, hp=80, win_streak=2, combo=5), entry(2, 0, hp=40, loss_streak=1)],
            round_number=2,
        )

        assert result.kind == BattleKind.NO_VOTES
        assert result.outcomes[1].after == Fighter(hp=80)
        assert result.outcomes[2].after == Fighter(hp=40)

    def test_corrupt_hp_is_sanitized_not_raised(self):
        result = resolve_battle([entry(1, 0, hp=float("nan")), entry(2, 0, hp=250)], round_number=1)

        assert result.kind == BattleKind.NO_VOTES
        assert result.outcomes[1].after.hp == 100
        assert result.outcomes[2].after.hp == 100

    def test_single_submission_is_treated_as_no_contest(self):
        result = resolve_battle([entry(1, 4)], round_number=1)
        assert result.kind == BattleKind.NO_VOTES
        assert result.outcomes[1].after.hp == 100


class TestTieBattle:

    def test_tie_without_knockout_damages_both_and_breaks_streaks(self):
        result = resolve_battle(
            [entry(1, 1, win_streak=2, combo=4), entry(2, 1, loss_streak=1)],
            round_number=1,
        )

        assert result.kind == BattleKind.TIE
        assert result.damage == pytest.approx(17.5)
        assert result.outcomes[1].after == Fighter(hp=82, win_streak=0, loss_streak=1, combo=0)
        assert result.outcomes[2].after == Fighter(hp=82, win_streak=0, loss_streak=2, combo=0)

    def test_tie_knocking_out_one_side(self):
        result = resolve_battle([entry(1, 1, hp=10), entry(2, 1)], round_number=1)

        assert result.loser_id == 1
        assert result.winner_id == 2
        assert result.outcomes[1].after == CornerMan(captain_id=2, eliminated_round=1)
        survivor = result.outcomes[2].after
        assert survivor.hp == 82
        assert survivor.win_streak == 1

    def test_double_knockout_shorter_answer_survives(self):
        short = entry(1, 2, hp=10, text="short")
        long = entry(2, 2, hp=10, text="a much longer answer")

        result = resolve_battle([short, long], round_number=2)

        assert result.kind == BattleKind.DOUBLE_KO_TIE
        assert result.winner_id == 1
        assert result.outcomes[1].after.hp == 1
        assert not result.outcomes[1].after.knocked_out
        assert result.outcomes[2].after == CornerMan(captain_id=1, eliminated_round=2)

    def test_double_knockout_winner_flips_with_length(self):
        first = entry(1, 2, hp=10, text="a much longer answer")
        second = entry(2, 2, hp=10, text="short")

        result = resolve_battle([first, second], round_number=1)
        assert result.winner_id == 2

    def test_double_knockout_same_length_earlier_submission_wins(self):
        early = entry(1, 1, hp=5, text="same", submitted_at=T0)
        late = entry(2, 1, hp=5, text="same", submitted_at=T0 + timedelta(milliseconds=5))

        assert resolve_battle([early, late], round_number=1).winner_id == 1
        assert resolve_battle([late, early], round_number=1).winner_id == 1

        early = entry(1, 1, hp=5, text="same", submitted_at=T0 + timedelta(seconds=1))
        late = entry(2, 1, hp=5, text="same", submitted_at=T0)
        assert resolve_battle([early, late], round_number=1).winner_id == 2

    def test_double_knockout_full_tie_is_deterministic(self):
        a = entry(1, 1, hp=5, text="same", submission_id=70)
        b = entry(2, 1, hp=5, text="same", submission_id=30)

        assert resolve_battle([a, b], round_number=3).winner_id == 2
        assert resolve_battle([b, a], round_number=3).winner_id == 2

    def test_double_knockout_in_round_three_leaves_loser_fighter(self):
        result = resolve_battle([entry(1, 1, hp=5, text="a"), entry(2, 1, hp=5, text="bb")], round_number=3)

        loser = result.outcomes[2].after
        assert isinstance(loser, Fighter)
        assert loser.hp == 0


class TestPersistenceSeam:

    def make_player(self, **fields):
        defaults = dict(
            id=1, hp=100, knocked_out=False, role="FIGHTER", team_id=None,
            win_streak=0, loss_streak=0, combo=0, became_corner_man_in_round=None,
        )
        defaults.update(fields)
        return SimpleNamespace(**defaults)

    def test_corner_man_row_becomes_corner_man_state(self):
        player = self.make_player(role="CORNER_MAN", team_id=7, hp=0, became_corner_man_in_round=2)
        assert state_from_player(player) == CornerMan(captain_id=7, eliminated_round=2, hp=0)

    def test_corner_man_without_captain_is_read_as_fighter(self):
        player = self.make_player(role="CORNER_MAN", team_id=None, hp=0)
        assert isinstance(state_from_player(player), Fighter)

    def test_apply_state_keeps_knocked_out_in_sync_with_hp(self):
        player = self.make_player(hp=None)

        apply_state(player, Fighter(hp=0, loss_streak=2))
        assert player.hp == 0 and player.knocked_out is True
        assert player.role == "FIGHTER"

        apply_state(player, CornerMan(captain_id=3, eliminated_round=1))
        assert player.role == "CORNER_MAN"
        assert player.team_id == 3
        assert player.became_corner_man_in_round == 1
        assert player.knocked_out is True

        apply_state(player, Fighter(hp=float("nan")))
        assert player.hp == 100 and player.knocked_out is False
