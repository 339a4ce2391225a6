"""Extract Schema — tolerant decoding of the model's <design_extract> payload.

Tests:
    - Empty extract has every list empty and problem_statement_update None
    - null lists and null strings coerce to empty values
    - Unknown keys ignored at every level
    - Unknown constraint source falls back to conversation
    - An entry with an invalid option status is dropped and logged; siblings survive
    - Non-list values for list fields are treated as absent
"""

import logging

from archlens.core.domain_types import ConstraintSource
from archlens.schemas.extract import DesignExtract, empty_extract


def test_empty_extract_shape():
    extract = empty_extract()
    assert extract.problem_statement_update is None
    assert extract.new_options == []
    assert extract.delete_open_questions == []
    assert extract.is_empty


def test_null_lists_and_strings_are_coerced():
    extract = DesignExtract.model_validate({
        "new_options": None,
        "new_decisions": [{"title": "A", "reasoning": None}],
    })
    assert extract.new_options == []
    assert extract.new_decisions[0].reasoning == ""
    assert not extract.is_empty


def test_unknown_keys_are_ignored():
    extract = DesignExtract.model_validate({
        "mood": "great",
        "new_options": [{"title": "A", "confidence": 0.9}],
    })
    assert extract.new_options[0].title == "A"


def test_unknown_constraint_source_defaults_to_conversation():
    extract = DesignExtract.model_validate({
        "new_constraints": [{"description": "x", "source": "hallway chat"}],
    })
    assert extract.new_constraints[0].source == ConstraintSource.CONVERSATION


def test_invalid_status_entry_is_dropped(caplog):
    with caplog.at_level(logging.WARNING, logger="archlens.schemas.extract"):
        extract = DesignExtract.model_validate({
            "new_options": [{"title": "Kafka"}],
            "option_status_changes": [
                {"option_title": "A", "new_status": "accepted"},
                {"option_title": "B", "new_status": "rejected", "reason": "cost"},
            ],
        })
    assert [o.title for o in extract.new_options] == ["Kafka"]
    assert [c.option_title for c in extract.option_status_changes] == ["B"]
    assert "option_status_changes[0]" in caplog.text


def test_non_list_fields_are_treated_as_absent():
    extract = DesignExtract.model_validate({
        "new_decisions": "Use Postgres",
        "delete_constraints": [{"id": "c1"}, 7],
        "problem_statement_update": 42,
    })
    assert extract.new_decisions == []
    assert [d.id for d in extract.delete_constraints] == ["c1"]
    assert extract.problem_statement_update is None


def test_decision_update_replace_flag_defaults_false():
    extract = DesignExtract.model_validate({"update_decisions": [{"id": "d1", "reasoning": "r"}]})
    assert extract.update_decisions[0].replace is False
    assert extract.update_decisions[0].trade_offs is None
