import pytest

from src.services.designer.models import Template
from src.services.designer.templates.normalizer import (
    derive_initial_controls,
    element_rank,
    ordered_element_names,
    resolve_line_count,
    supports_design_slot,
)
from tests.test_template import TestTemplate


def make_template(**fields) -> Template:
    fields.setdefault("Code", "PYG-T")
    return Template.model_validate(fields)


class TestResolveLineCount(TestTemplate):
    def test_explicit_count_wins_and_is_clamped(self):
        assert resolve_line_count(make_template(TextLineCount=2)) == 2
        assert resolve_line_count(make_template(NumberOfLines="7")) == 3
        assert resolve_line_count(make_template(LineCount=-1)) == 0

    def test_first_parsable_alias_is_used(self):
        template = make_template(TextLineCount="n/a", LineCount=2, Lines=1)

        assert resolve_line_count(template) == 2

    def test_counts_text_bearing_elements(self, two_line_template):
        assert resolve_line_count(two_line_template) == 2

    def test_elements_without_text_mean_design_only(self):
        template = make_template(
            Name="Three line layout",
            Elements=[{"ElementName": "Design"}, {"ElementName": "Line1", "Text": ""}],
        )

        assert resolve_line_count(template) == 0

    @pytest.mark.parametrize(
        "name,expected",
        [
            ("Design Only Patch", 0),
            ("Three Line Monogram", 3),
            ("Classic 2 line", 2),
            ("One Liner", 1),
            ("Phone Case", 1),
            ("Plain", 1),
        ],
    )
    def test_name_heuristic(self, name, expected):
        assert resolve_line_count(make_template(Name=name)) == expected

    def test_result_always_in_range(self, templates):
        for template in templates:
            assert 0 <= resolve_line_count(template) <= 3


class TestOrderedElementNames(TestTemplate):
    def test_top_before_bottom(self, two_line_template):
        assert ordered_element_names(two_line_template, 2) == ["Top", "Bottom"]

    def test_ranking_and_numeric_tiebreak(self):
        template = make_template(
            Elements=[
                {"ElementName": "Extra", "Text": "e"},
                {"ElementName": "Line3", "Text": "c"},
                {"ElementName": "Lower", "Text": "b"},
                {"ElementName": "Line1", "Text": "a"},
            ]
        )

        assert ordered_element_names(template, 3) == ["Line1", "Lower", "Line3"]

    def test_is_deterministic(self, two_line_template):
        first = ordered_element_names(two_line_template, 2)
        second = ordered_element_names(two_line_template.model_copy(deep=True), 2)

        assert first == second

    def test_pads_with_placeholders(self):
        template = make_template(Elements=[{"ElementName": "Line2", "Text": "x"}])

        assert ordered_element_names(template, 3) == ["Line2", "Line1", "Line3"]

    def test_no_elements_synthesizes_names(self):
        assert ordered_element_names(make_template(), 2) == ["Line1", "Line2"]
        assert ordered_element_names(make_template(), 0) == []

    def test_rank_categories(self):
        assert element_rank("Text") == 1
        assert element_rank("Upper Arc") == 1
        assert element_rank("Line_2") == 2
        assert element_rank("line 3") == 3
        assert element_rank("Logo") == 999


class TestDeriveInitialControls(TestTemplate):
    def test_seeds_lines_font_and_colour(self, two_line_template, palette, fonts):
        controls = derive_initial_controls(two_line_template, palette, fonts)

        assert controls.lines == ["LINE ONE", "LINE TWO"]
        assert controls.font == "Block"
        assert controls.color_rgb == "rgb(0, 56, 168)"

    def test_template_level_defaults(self, templates, palette, fonts):
        monogram = templates[2]

        controls = derive_initial_controls(monogram, palette, fonts)

        assert controls.lines == ["", "", ""]
        assert controls.font == "Script"
        assert controls.color_rgb == "rgb(0, 0, 0)"

    def test_any_element_font_used_when_text_elements_have_none(self, palette, fonts):
        template = make_template(
            Elements=[
                {"ElementName": "Line1", "Text": "a"},
                {"ElementName": "Design", "FontOverride": "script.ttf"},
            ],
            DefaultFont="Block",
        )

        assert derive_initial_controls(template, palette, fonts).font == "Script"

    def test_unresolved_values_keep_raw(self, palette, fonts):
        template = make_template(
            Elements=[
                {
                    "ElementName": "Line1",
                    "Text": "a",
                    "FontOverride": "Wingdings",
                    "TextColour": "Chartreuse",
                }
            ]
        )

        controls = derive_initial_controls(template, palette, fonts)

        assert controls.font == "Wingdings"
        assert controls.color_rgb == "Chartreuse"

    def test_lines_follow_explicit_line_count(self, palette, fonts):
        template = make_template(
            TextLineCount=1,
            Elements=[
                {"ElementName": "Line1", "Text": "A"},
                {"ElementName": "Line2", "Text": "B"},
            ],
        )

        controls = derive_initial_controls(template, palette, fonts)

        assert controls.lines == ["A"]
        assert len(controls.lines) == resolve_line_count(template)

    def test_null_fields_fall_back_to_name_heuristic(self, palette, fonts):
        template = make_template(Name="One Line", Elements=None, DefaultFont=None)

        assert resolve_line_count(template) == 1
        assert derive_initial_controls(template, palette, fonts).lines == [""]

    def test_no_candidates_leave_font_and_colour_unset(self, palette, fonts):
        controls = derive_initial_controls(make_template(Name="Plain"), palette, fonts)

        assert controls.lines == [""]
        assert controls.font is None
        assert controls.color_rgb is None


class TestSupportsDesignSlot(TestTemplate):
    def test_design_element_name_is_case_insensitive(self, templates):
        assert supports_design_slot(templates[0]) is True
        assert supports_design_slot(make_template(Elements=[{"ElementName": "DESIGN"}]))
        assert supports_design_slot(templates[2]) is False
