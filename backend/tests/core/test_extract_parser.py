"""Extract Parser — splitting visible prose from the <design_extract> payload.

Tests:
    - No tags → full trimmed text, empty extract, no error
    - Valid block → block removed, fields decoded, missing fields defaulted
    - Malformed JSON / non-object → parse_error + empty extract
    - One invalid list entry is dropped; the rest of the turn still decodes
    - Only the first block is consumed; tags are case-insensitive
    - strip_extract_tail hides an unclosed block entirely
"""

from archlens.core.domain_types import OptionStatus
from archlens.core.extract_parser import parse_assistant_extract, strip_extract_tail
from archlens.schemas.extract import empty_extract

EMPTY_PAYLOAD = """{
  "problem_statement_update": null, "new_options": [], "update_options": [],
  "option_status_changes": [], "new_decisions": [], "update_decisions": [],
  "new_constraints": [], "update_constraints": [], "new_open_questions": [],
  "resolved_questions": []
}"""


def test_no_tags_returns_trimmed_text_and_empty_extract():
    result = parse_assistant_extract("  Just prose.  \n")
    assert result.text == "Just prose."
    assert result.extract == empty_extract()
    assert result.parse_error is None
    assert result.raw_extract == ""


def test_none_input_is_empty_text():
    result = parse_assistant_extract(None)
    assert result.text == ""
    assert result.parse_error is None


def test_valid_block_with_empty_arrays():
    result = parse_assistant_extract(
        f"Answer text\n<design_extract>{EMPTY_PAYLOAD}</design_extract>",
    )
    assert result.text == "Answer text"
    assert result.parse_error is None
    assert result.extract.is_empty
    assert result.extract.new_options == []
    assert result.extract.set_branch_todos == []


def test_malformed_json_yields_error_and_empty_extract():
    result = parse_assistant_extract("Answer text\n<design_extract>{oops}</design_extract>")
    assert result.text == "Answer text"
    assert result.parse_error is not None
    assert result.extract == empty_extract()
    assert result.raw_extract == "{oops}"


def test_non_object_payload_is_a_parse_error():
    result = parse_assistant_extract("Hi <design_extract>[1, 2]</design_extract>")
    assert result.text == "Hi"
    assert "JSON object" in result.parse_error
    assert result.extract.is_empty


def test_invalid_entry_does_not_discard_the_turn():
    raw = (
        'Text <design_extract>{"new_options": [{"title": "Kafka"}], '
        '"option_status_changes": ['
        '{"option_title": "A", "new_status": "accepted"}, '
        '{"option_title": "Kafka", "new_status": "selected"}]}</design_extract>'
    )
    result = parse_assistant_extract(raw)
    assert result.parse_error is None
    assert [o.title for o in result.extract.new_options] == ["Kafka"]
    assert [c.option_title for c in result.extract.option_status_changes] == ["Kafka"]


def test_partial_payload_defaults_missing_fields():
    raw = (
        'Go with it.\n<design_extract>{"new_options": [{"title": "Use SSE"}], '
        '"option_status_changes": [{"option_title": "Use SSE", "new_status": "selected"}], '
        '"extra_field": 42}</design_extract>'
    )
    result = parse_assistant_extract(raw)
    assert result.parse_error is None
    assert result.extract.new_options[0].title == "Use SSE"
    assert result.extract.new_options[0].description == ""
    assert result.extract.option_status_changes[0].new_status == OptionStatus.SELECTED
    assert result.extract.new_decisions == []


def test_tags_are_case_insensitive_and_first_block_wins():
    raw = (
        'A <DESIGN_EXTRACT>{"problem_statement_update": "first"}</Design_Extract> B '
        '<design_extract>{"problem_statement_update": "second"}</design_extract>'
    )
    result = parse_assistant_extract(raw)
    assert result.extract.problem_statement_update == "first"
    assert result.text.startswith("A")
    assert "second" in result.text


def test_visible_text_keeps_prose_after_the_block():
    raw = 'Before.\n<design_extract>{}</design_extract>\nAfter.'
    result = parse_assistant_extract(raw)
    assert result.text == "Before.\n\nAfter."


def test_strip_tail_hides_unclosed_block():
    assert strip_extract_tail('Visible response<design_extract>{"x":[]') == "Visible response"


def test_strip_tail_without_tag_is_identity_minus_trailing_space():
    assert strip_extract_tail("Still typing  ") == "Still typing"
    assert strip_extract_tail(None) == ""


def test_strip_tail_hides_closed_block_too():
    assert strip_extract_tail("Done.\n<design_extract>{}</design_extract>") == "Done."


def test_strip_tail_hides_partial_start_tag():
    assert strip_extract_tail("Answer.\n<design_") == "Answer."
    assert strip_extract_tail("Answer.\n<") == "Answer."


def test_strip_tail_keeps_unrelated_angle_brackets():
    assert strip_extract_tail("if a < b then") == "if a < b then"
    assert strip_extract_tail("Use <div> tags") == "Use <div> tags"
