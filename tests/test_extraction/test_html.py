"""Tests for game_calendar.extraction.html: stripping, keys and line tokenization."""

from __future__ import annotations

from game_calendar.extraction.html import (
    IMG_MARKER,
    first_img_src,
    normalize_title,
    normalize_title_key,
    strip_html,
    tokenize_lines,
)


class TestStripHtml:
    def test_tags_and_entities(self):
        assert strip_html("<p>活动&nbsp;开启</p><p>&lt;限时&gt;</p>") == "活动 开启 <限时>"

    def test_double_escaped_markup(self):
        assert strip_html("&lt;p&gt;深空回响&lt;/p&gt;") == "深空回响"

    def test_empty(self):
        assert strip_html(None) == ""
        assert strip_html("") == ""

    def test_adjacent_cells_do_not_glue(self):
        assert strip_html("<td>2026/03/01</td><td>10:00</td>") == "2026/03/01 10:00"


class TestNormalizeTitle:
    def test_literal_escapes_collapse(self):
        assert normalize_title("限时\\n活动\\t开启  ") == "限时 活动 开启"

    def test_none(self):
        assert normalize_title(None) == ""


class TestNormalizeTitleKey:
    def test_quotes_whitespace_case(self):
        assert normalize_title_key("<p>「Foo Bar」</p>") == "foobar"

    def test_all_quote_styles(self):
        assert normalize_title_key("『a』“b”\"c\"'d'’e‘") == "abcde"

    def test_equivalent_titles_share_key(self):
        assert normalize_title_key("限时活动「空洞 探索」") == normalize_title_key("限时活动 “空洞探索”")


class TestFirstImgSrc:
    def test_first_image(self):
        html = '<p>x</p><img src=" https://img.example/a.png "><img src="https://img.example/b.png">'
        assert first_img_src(html) == "https://img.example/a.png"

    def test_no_image(self):
        assert first_img_src("<p>none</p>") is None
        assert first_img_src(None) is None


class TestTokenizeLines:
    def test_blocks_breaks_and_images(self):
        html = (
            "<p>✧ 限时玩法</p>"
            '<img src="https://img.example/banner.png">'
            "<div>活动时间：3月1日<br>维护后</div>"
            "<script>var x = 1;</script><style>p{}</style>"
        )
        assert tokenize_lines(html) == [
            "✧ 限时玩法",
            f"{IMG_MARKER}https://img.example/banner.png",
            "活动时间：3月1日",
            "维护后",
        ]

    def test_blank_lines_dropped(self):
        assert tokenize_lines("<p> </p><p>a</p><br><br><p>b</p>") == ["a", "b"]
