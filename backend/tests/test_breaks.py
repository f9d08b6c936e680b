import pytest

from compliance.types import LegalLimits
from slots.breaks import apply_break, recommended_break_minutes, suggest_break
from slots.types import BreakSuggestion, CandidateSlot


class TestRecommendedBreak:

    def test_default_tiers(self, limits):
        assert recommended_break_minutes(360, limits) == 20
        assert recommended_break_minutes(479, limits) == 20
        assert recommended_break_minutes(480, limits) == 30

    def test_falls_back_to_configured_minimum_without_tiers(self):
        limits = LegalLimits(break_tiers=[], break_duration_minutes=25)

        assert recommended_break_minutes(420, limits) == 25

    def test_tiers_from_dicts_are_sorted(self):
        limits = LegalLimits(break_tiers=[
            {"min_hours": 9, "break_minutes": 45},
            {"min_hours": 6, "break_minutes": 15},
        ])

        assert recommended_break_minutes(400, limits) == 15
        assert recommended_break_minutes(560, limits) == 45


class TestSuggestBreak:

    def test_no_suggestion_below_six_hours(self, limits):
        suggestion = suggest_break("08:00", "13:59", limits)

        assert suggestion == BreakSuggestion(should_suggest=False)

    def test_suggested_from_six_hours(self, limits):
        suggestion = suggest_break("08:00", "14:00", limits)

        assert suggestion.should_suggest
        assert suggestion.break_duration == 20

    def test_seven_hour_slot_centred_on_quarter_hour(self, limits):
        suggestion = suggest_break("08:00", "15:00", limits)

        assert suggestion.break_duration == 20
        assert suggestion.break_start == "11:15"
        assert suggestion.break_end == "11:35"

    def test_eight_hour_slot_gets_longer_break(self, limits):
        suggestion = suggest_break("08:00", "16:00", limits)

        assert suggestion.break_duration == 30
        assert suggestion.break_start == "11:45"
        assert suggestion.break_end == "12:15"

    def test_break_stays_inside_slot(self, limits):
        for start, end in [("08:30", "15:30"), ("06:00", "18:45"), ("13:00", "19:00")]:
            suggestion = suggest_break(start, end, limits)
            assert start < suggestion.break_start < suggestion.break_end < end

    def test_invalid_range_suggests_nothing(self, limits):
        assert not suggest_break("16:00", "08:00", limits).should_suggest


class TestApplyBreak:

    def test_only_break_length_changes(self, limits):
        candidate = CandidateSlot(start_time="08:00", end_time="16:00")

        apply_break(candidate, suggest_break("08:00", "16:00", limits))

        assert candidate.break_duration_minutes == 30
        assert (candidate.start_time, candidate.end_time) == ("08:00", "16:00")

    def test_no_suggestion_leaves_candidate_untouched(self):
        candidate = CandidateSlot(start_time="08:00", end_time="12:00", break_duration_minutes=10)

        apply_break(candidate, BreakSuggestion(should_suggest=False))

        assert candidate.break_duration_minutes == 10
