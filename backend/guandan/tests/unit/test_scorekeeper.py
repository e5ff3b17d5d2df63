"""Tests for the Scorekeeper facade: hand entry, A-level flow, round control."""

import logging

import pytest

from guandan.logic.enums import ALevelOutcome, GameMode, ScoreErrorCode, Team
from guandan.logic.exceptions import UnsupportedSettingsError
from guandan.logic.levels import Level
from guandan.logic.scorekeeper import Scorekeeper
from guandan.logic.settings import GameSettings
from guandan.tests.helpers import make_keeper, make_state, ranking_from_teams


class TestApplyHand:
    def test_four_player_double_down(self, keeper):
        result = keeper.apply_hand(ranking_from_teams("1122"))

        assert result.ok
        assert result.outcome.winning_team is Team.T1
        assert result.outcome.upgrade_amount == 3
        assert result.outcome.label == "双下"
        assert keeper.state.t1.level is Level.FIVE
        assert keeper.state.round_level is Level.FIVE
        assert keeper.state.round_owner is Team.T1

    def test_entry_records_ranking_and_snapshots(self, keeper):
        result = keeper.apply_hand(ranking_from_teams("2121"))

        entry = result.entry
        assert entry.hand_number == 1
        assert entry.winner is Team.T2
        assert entry.mode == GameMode.FOUR
        assert entry.round_level is Level.TWO
        assert [p.player_id for p in entry.ranking] == ["t2-p1", "t1-p1", "t2-p2", "t1-p2"]
        assert entry.before.t2.level is Level.TWO
        assert entry.after.t2.level is Level.FOUR
        assert entry.rank_of("t1-p2") == 4
        assert entry.rank_of("nobody") is None

    def test_explicit_winner_overrides_first_place(self, keeper):
        result = keeper.apply_hand(ranking_from_teams("1221"), winner=Team.T2)

        assert result.outcome.winning_team is Team.T2
        assert result.outcome.winner_ranks == (2, 3)
        assert result.outcome.upgrade_amount == 0  # no first place

    def test_summary_message_names_teams(self, keeper):
        result = keeper.apply_hand(ranking_from_teams("1212"))

        assert result.message.startswith("Blue won (单下): 2 -> 4, Red 2 -> 2")
        assert "next round 4 (Blue)" in result.message

    def test_six_player_one_three_five(self):
        keeper = make_keeper(mode=GameMode.SIX)

        result = keeper.apply_hand(ranking_from_teams("121212"))

        assert result.outcome.winner_ranks == (1, 3, 5)
        assert result.outcome.upgrade_amount == 1
        assert keeper.state.t1.level is Level.THREE

    def test_eight_player_sweep(self):
        keeper = make_keeper(mode=GameMode.EIGHT)

        result = keeper.apply_ranks(Team.T1, [1, 2, 3, 4])

        assert result.outcome.upgrade_amount == 4
        assert result.outcome.label == "完胜"
        assert keeper.state.t1.level is Level.SIX

    def test_hand_applied_is_logged(self, keeper, caplog):
        with caplog.at_level(logging.INFO):
            keeper.apply_hand(ranking_from_teams("1122"))

        assert "hand applied" in caplog.text


class TestRejectedHands:
    def test_incomplete_ranking_leaves_state_untouched(self, keeper):
        ranking = ranking_from_teams("1122")
        del ranking[3]

        result = keeper.apply_hand(ranking)

        assert not result.ok
        assert result.error == ScoreErrorCode.INCOMPLETE_RANKING
        assert keeper.entries == ()
        assert keeper.state == make_state()

    def test_unbalanced_teams(self, keeper):
        result = keeper.apply_hand(ranking_from_teams("1112"))

        assert result.error == ScoreErrorCode.UNBALANCED_TEAMS

    def test_invalid_combination(self):
        keeper = make_keeper(must1=False)

        result = keeper.apply_ranks(Team.T1, (2, 4))

        assert result.error == ScoreErrorCode.INVALID_RANK_COMBINATION
        assert keeper.entries == ()

    def test_invalid_ranks(self, keeper):
        result = keeper.apply_ranks(Team.T1, (1, 2, 3))

        assert result.error == ScoreErrorCode.INVALID_RANKS

    def test_non_numeric_ranks_are_rejected(self, keeper):
        result = keeper.apply_ranks(Team.T1, ["1", "x"])

        assert not result.ok
        assert result.error == ScoreErrorCode.INVALID_RANKS
        assert "whole numbers" in result.message
        assert keeper.entries == ()

    def test_unknown_winner_is_rejected(self, keeper):
        applied = keeper.apply_ranks("t3", (1, 2))
        previewed = keeper.preview_ranks("t3", (1, 2))

        assert applied.error == ScoreErrorCode.UNKNOWN_TEAM
        assert previewed.error == ScoreErrorCode.UNKNOWN_TEAM
        assert "t3" in applied.message
        assert keeper.state == make_state()

    def test_winner_given_as_string(self, keeper):
        assert keeper.apply_ranks("t2", (1, 2)).outcome.winning_team is Team.T2

    def test_no_hand_after_final_win(self):
        keeper = make_keeper(make_state(Level.ACE, Level.FIVE, round_level=Level.ACE, owner=Team.T1))
        keeper.apply_ranks(Team.T1, (1, 2))

        result = keeper.apply_ranks(Team.T2, (1, 2))

        assert not result.ok
        assert result.error == ScoreErrorCode.MATCH_FINISHED
        assert "Blue has already won" in result.message

    def test_undo_reopens_finished_match(self):
        keeper = make_keeper(make_state(Level.ACE, Level.FIVE, round_level=Level.ACE, owner=Team.T1))
        keeper.apply_ranks(Team.T1, (1, 2))

        keeper.undo_last()

        assert not keeper.finished
        assert keeper.apply_ranks(Team.T2, (1, 2)).ok


class TestALevelFlow:
    def test_final_win_on_own_ace_round(self):
        keeper = make_keeper(make_state(Level.ACE, Level.FIVE, round_level=Level.ACE, owner=Team.T1))

        result = keeper.apply_ranks(Team.T1, (1, 3))

        assert result.outcome.final_win
        assert result.outcome.a_level.outcome == ALevelOutcome.PASSED
        assert keeper.state.match_winner is Team.T1
        assert "Blue won the match" in result.message

    def test_strict_wrong_owner_gives_no_upgrade(self):
        state = make_state(Level.ACE, Level.ACE, round_level=Level.ACE, owner=Team.T2)
        keeper = make_keeper(state)

        result = keeper.apply_ranks(Team.T1, (1, 2))

        assert not result.outcome.final_win
        assert result.outcome.a_level.outcome == ALevelOutcome.STRICT_WRONG_OWNER
        assert keeper.state.t1.level is Level.ACE
        assert not keeper.finished
        assert result.outcome.a_level_note in result.message

    def test_three_own_round_losses_reset_to_two(self):
        state = make_state(Level.ACE, Level.TEN, round_level=Level.ACE, owner=Team.T1)
        keeper = make_keeper(state, auto_next=False)

        first = keeper.apply_ranks(Team.T2, (1, 4))
        second = keeper.apply_ranks(Team.T2, (1, 4))

        assert first.outcome.a_level.a_failures == 1
        assert second.outcome.a_level.a_failures == 2
        assert keeper.state.t1.a_failures == 2

        third = keeper.apply_ranks(Team.T2, (1, 4))

        assert third.outcome.a_level.reset
        assert keeper.state.t1.level is Level.TWO
        assert keeper.state.t1.a_failures == 0
        assert keeper.state.t2.level is Level.KING

    def test_three_wins_holding_last_reset_winner(self):
        keeper = make_keeper(make_state(Level.ACE, Level.TEN, round_level=Level.ACE, owner=Team.T1))

        for expected in (1, 2):
            result = keeper.apply_ranks(Team.T1, (1, 4))
            assert keeper.state.t1.a_failures == expected
            assert keeper.state.round_level is Level.ACE
            assert result.outcome.a_level.outcome == ALevelOutcome.FAILED_WITH_LAST

        keeper.apply_ranks(Team.T1, (1, 4))

        assert keeper.state.t1 == make_state().t1
        assert keeper.state.round_level is Level.TWO
        assert keeper.state.round_owner is Team.T1

    def test_failures_never_reach_three(self):
        keeper = make_keeper(make_state(Level.ACE, Level.TEN, round_level=Level.ACE, owner=Team.T1), auto_next=False)

        for _ in range(7):
            keeper.apply_ranks(Team.T2, (1, 4))
            assert keeper.state.t1.a_failures < 3
            assert keeper.state.t2.a_failures < 3


class TestRoundControl:
    def test_manual_advance_after_hand(self):
        keeper = make_keeper(auto_next=False)
        keeper.apply_ranks(Team.T2, (1, 3))
        assert keeper.state.round_level is Level.TWO

        result = keeper.advance_round()

        assert result.ok
        assert keeper.state.round_level is Level.FOUR
        assert keeper.state.round_owner is Team.T2

    def test_advance_without_pending(self, keeper):
        assert keeper.advance_round().error == ScoreErrorCode.NO_PENDING_ADVANCE

    def test_preview_does_not_mutate(self, keeper):
        preview = keeper.preview_hand(ranking_from_teams("2211"))

        assert preview.ok
        assert preview.outcome.winning_team is Team.T2
        assert preview.next_round_level is Level.FIVE
        assert keeper.entries == ()
        assert keeper.state == make_state()

    def test_preview_ranks_reports_errors(self, keeper):
        preview = keeper.preview_ranks(Team.T1, (1, 9))

        assert not preview.ok
        assert preview.error == ScoreErrorCode.INVALID_RANKS

    def test_preview_matches_applied_level(self):
        keeper = make_keeper(make_state(Level.ACE, Level.TEN, round_level=Level.ACE, owner=Team.T1, t1_failures=2))

        preview = keeper.preview_ranks(Team.T1, (1, 4))
        keeper.apply_ranks(Team.T1, (1, 4))

        assert preview.next_round_level is Level.TWO
        assert keeper.state.round_level is Level.TWO

    def test_reset(self, keeper):
        keeper.apply_hand(ranking_from_teams("1122"))

        keeper.reset()

        assert keeper.entries == ()
        assert keeper.state == make_state()


class TestSettings:
    def test_unplayable_settings_rejected(self):
        with pytest.raises(UnsupportedSettingsError, match="c4 awards no upgrade"):
            Scorekeeper(GameSettings(c4={"1,2": 0}))

    def test_update_settings_switches_mode(self, keeper):
        keeper.apply_hand(ranking_from_teams("1122"))

        keeper.update_settings(GameSettings(mode=GameMode.SIX))
        result = keeper.apply_hand(ranking_from_teams("111222"))

        assert result.ok
        assert result.entry.mode == GameMode.SIX
        assert keeper.entries[0].mode == GameMode.FOUR

    def test_update_settings_shrinks_history(self, keeper):
        for _ in range(3):
            keeper.apply_ranks(Team.T1, (1, 4))

        keeper.update_settings(GameSettings(history_limit=2))

        assert [e.hand_number for e in keeper.entries] == [2, 3]

    def test_custom_team_names_in_messages(self):
        keeper = make_keeper(team_names={Team.T1: "North", Team.T2: "South"})

        result = keeper.apply_ranks(Team.T2, (1, 2))

        assert result.message.startswith("South won")
