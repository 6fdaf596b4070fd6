"""Tests for game_calendar.extraction.matcher: fuzzy content matching."""

from __future__ import annotations

from game_calendar.extraction.matcher import (
    NO_BANNER_PENALTY,
    NO_CONTENT_PENALTY,
    ContentCandidate,
    pick_best_candidate,
    score_candidate,
)

BANNER = "https://img.example/b.png"
BODY = "<p>正文</p>"


def _cand(title, banner=BANNER, content=BODY):
    return ContentCandidate.from_title(title, banner, content)


class TestScoreCandidate:
    def test_exact_key_scores_zero(self):
        assert score_candidate("空洞探索", _cand("「空洞 探索」")) == 0

    def test_candidate_contains_activity(self):
        assert score_candidate("空洞探索", _cand("限时活动「空洞探索」")) == 10 + 4

    def test_activity_contains_candidate(self):
        assert score_candidate("限时活动空洞探索", _cand("空洞探索")) == 30 + 4

    def test_unrelated_is_ineligible(self):
        assert score_candidate("空洞探索", _cand("钓鱼大赛")) is None

    def test_penalties(self):
        assert score_candidate("空洞探索", _cand("空洞探索", banner=None)) == NO_BANNER_PENALTY
        assert score_candidate("空洞探索", _cand("空洞探索", content="  ")) == NO_CONTENT_PENALTY
        assert (
            score_candidate("空洞探索", _cand("空洞探索", banner="", content=None))
            == NO_CONTENT_PENALTY + NO_BANNER_PENALTY
        )


class TestPickBestCandidate:
    def test_exact_match_beats_containment(self):
        best = pick_best_candidate(
            "空洞探索",
            [_cand("限时活动「空洞探索」"), _cand("空洞探索", banner="https://img.example/exact.png")],
        )
        assert best.banner == "https://img.example/exact.png"

    def test_empty_body_loses_to_full_record(self):
        best = pick_best_candidate(
            "空洞探索",
            [_cand("空洞探索", content=""), _cand("空洞探索活动说明", content="<p>详情</p>")],
        )
        assert best.content == "<p>详情</p>"

    def test_ties_go_to_first(self):
        first = _cand("空洞探索", banner="https://img.example/1.png")
        second = _cand("空洞探索", banner="https://img.example/2.png")
        assert pick_best_candidate("空洞探索", [first, second]) is first

    def test_no_eligible_candidate(self):
        assert pick_best_candidate("空洞探索", [_cand("钓鱼大赛")]) is None

    def test_empty_activity_title(self):
        assert pick_best_candidate("  ", [_cand("空洞探索")]) is None

    def test_quote_and_space_insensitive(self):
        best = pick_best_candidate("『零号 空洞』", [_cand("<p>“零号空洞”</p>")])
        assert best is not None and best.title_text == "“零号空洞”"
