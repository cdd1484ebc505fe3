import json

import pytest

from tripplanner.core.errors import (
    EmptyArray,
    InvalidJson,
    MalformedResponse,
    NotAnArray,
    ParseError,
)
from tripplanner.core.json_repair import (
    escape_embedded_quotes,
    extract_json_array,
    fix_missing_separators,
    normalize_quoted_values,
    parse_json_array,
    quote_bare_keys,
    remove_stray_commas,
    repair_json_text,
    scan_array_bounds,
    strip_comments_and_fences,
)

MESSY_RESPONSE = """Here is your plan:
```json
[
  {name: "Louvre Museum", 'address': "Rue de Rivoli, Paris", "description": "The "Mona Lisa" lives here", "estimatedDuration": "180", "dayIndex": "0", "isHotel": "false",},
  // hotel for the night
  {"name": "[HOTEL] Le Meurice", "address": "228 Rue de Rivoli", "description": "$$$ Spa, Restaurant", "dayIndex": 0, "isHotel": true}
  {"name": "Versailles", "description": "Palace 20 km away", "dayIndex": 1, "bestTimeToVisit": "09:30"}
]
```
Hope you enjoy your trip!"""


# Extraction ------------------------------------------------------------------


def test_fenced_array_with_trailing_prose_is_extracted_exactly():
    array = '[{"name": "Louvre", "dayIndex": 0}, {"name": "Orsay", "dayIndex": 0}]'
    raw = f"```json\n{array}\n```\nThis plan keeps walking to a minimum. [1] Enjoy!"

    assert extract_json_array(raw) == array
    assert [item["name"] for item in parse_json_array(repair_json_text(raw))] == [
        "Louvre",
        "Orsay",
    ]


def test_extraction_skips_brackets_in_leading_prose():
    raw = 'Sure [draft v2]: [{"name": "A", "dayIndex": 0}]'
    assert extract_json_array(raw) == '[{"name": "A", "dayIndex": 0}]'


def test_brackets_and_braces_inside_strings_are_ignored():
    raw = '[{"name": "A } tricky ] {", "description": "say \\"hi]\\"", "dayIndex": 0}] done'
    extracted = extract_json_array(raw)
    assert extracted.endswith('"dayIndex": 0}]')
    assert parse_json_array(extracted)[0]["name"] == "A } tricky ] {"


def test_truncated_array_keeps_complete_objects():
    raw = (
        '[{"name": "Louvre", "dayIndex": 0}, '
        '{"name": "Orsay", "address": "1 Rue de la L\\"gion", "dayIndex": 0}, '
        '{"name": "Sainte-Chapelle", "descr'
    )

    extracted = extract_json_array(raw)

    items = parse_json_array(extracted)
    assert [item["name"] for item in items] == ["Louvre", "Orsay"]


def test_truncated_nested_object_drops_incomplete_tail():
    raw = '[{"name": "A", "dayIndex": 0, "meta": {"x": 1}}, {"name": "B", "meta": {"y": '
    assert [i["name"] for i in parse_json_array(repair_json_text(raw))] == ["A"]


def test_no_opening_bracket_is_malformed():
    with pytest.raises(MalformedResponse):
        extract_json_array("I could not build an itinerary for that request.")


@pytest.mark.parametrize("raw", ["", "   \n"])
def test_empty_text_is_malformed(raw):
    with pytest.raises(MalformedResponse):
        extract_json_array(raw)


def test_truncated_before_first_object_is_malformed():
    with pytest.raises(MalformedResponse):
        extract_json_array('[{"name": "Louvre", "dayIn')


@pytest.mark.parametrize(
    "raw, expected_names",
    [
        (
            '[{"name": "A", "address": "5" Main St", "dayIndex": 0}, {"name": "B", "dayIndex": 0}]',
            ["A", "B"],
        ),
        (
            '[{"name": "Eiffel Tower", "description": "The "Iron Lady tower", "dayIndex": 0}, '
            '{"name": "Champ de Mars", "dayIndex": 0}, {"name": "Trocadero", "dayIndex": 1}]',
            ["Eiffel Tower", "Champ de Mars", "Trocadero"],
        ),
        (
            '[{"name": "A", "dayIndex": 0}, {"name": "B", "address": "5" Main St", "dayIndex": 0}, '
            '{"name": "C", "dayIndex": 0}]\nEnjoy!',
            ["A", "B", "C"],
        ),
    ],
)
def test_odd_quote_in_free_text_does_not_truncate_array(raw, expected_names):
    items = parse_json_array(repair_json_text(raw))
    assert [item["name"] for item in items] == expected_names


def test_odd_quote_in_description_is_kept_in_value():
    raw = '[{"name": "Eiffel Tower", "description": "The "Iron Lady tower", "dayIndex": 0}]'
    assert parse_json_array(repair_json_text(raw))[0]["description"] == 'The "Iron Lady tower'


def test_unbalanced_array_falls_back_to_last_bracket():
    raw = '[{"name": "Joe"s Diner", "dayIndex": 0}] trailing'
    assert extract_json_array(raw) == '[{"name": "Joe"s Diner", "dayIndex": 0}]'


def test_scan_reports_matching_bracket_and_last_object():
    text = '[{"a": [1, 2]}, {"b": "}"}]'
    end, last_object = scan_array_bounds(text, 0)
    assert end == len(text) - 1
    assert last_object == len(text) - 2


# Repair passes ---------------------------------------------------------------


def test_strip_comments_keeps_urls_inside_strings():
    text = '[{"url": "https://example.com/a"}, /* note */ {"b": 1} // trailing\n]'
    assert strip_comments_and_fences(text) == '[{"url": "https://example.com/a"},  {"b": 1}  ]'


def test_strip_fences_and_fold_newlines():
    text = '```json\n[\n  {"description": "line one\n    line two"}\n]\n```'
    assert strip_comments_and_fences(text) == '[ {"description": "line one line two"} ]'


def test_quote_bare_and_single_quoted_keys():
    text = "[{name: \"Louvre\", 'dayIndex': 0, \"address\": \"Paris, note: open\"}]"
    assert quote_bare_keys(text) == '[{"name": "Louvre", "dayIndex": 0, "address": "Paris, note: open"}]'


def test_quoted_values_are_normalized():
    text = (
        '[{"dayIndex": "2", "estimatedDuration": "90", "travelTimeToNext": "20 min", '
        '"isHotel": "true", "isStartingPoint": 0, "open": True, "rating": None, "tier": \'$$\'}]'
    )
    parsed = json.loads(normalize_quoted_values(text))[0]
    assert parsed == {
        "dayIndex": 2,
        "estimatedDuration": 90,
        "travelTimeToNext": "20 min",
        "isHotel": True,
        "isStartingPoint": False,
        "open": True,
        "rating": None,
        "tier": "$$",
    }


def test_embedded_quotes_in_address_and_description_are_escaped():
    text = (
        '[{"name": "Pont Neuf", "address": "The "Old" Bridge, Paris", '
        '"description": "Locals call it "the new bridge"", "dayIndex": 0}]'
    )
    parsed = json.loads(escape_embedded_quotes(text))[0]
    assert parsed["address"] == 'The "Old" Bridge, Paris'
    assert parsed["description"] == 'Locals call it "the new bridge"'
    assert parsed["dayIndex"] == 0


def test_already_escaped_quotes_are_left_alone():
    text = '[{"description": "The \\"Old\\" Bridge", "dayIndex": 0}]'
    assert escape_embedded_quotes(text) == text


def test_stray_commas_are_removed():
    text = '[ , {"a": 1,, "b": [1, 2,],}, ]'
    assert json.loads(remove_stray_commas(text)) == [{"a": 1, "b": [1, 2]}]


def test_commas_inside_strings_survive():
    text = '[{"description": "one,, two,}"}]'
    assert remove_stray_commas(text) == text


def test_missing_separators_are_inserted():
    text = '[{"a": 1} {"b": "x" "c": true}\n{"d": null "e": 2}]'
    assert json.loads(fix_missing_separators(text)) == [
        {"a": 1},
        {"b": "x", "c": True},
        {"d": None, "e": 2},
    ]


def test_full_pipeline_on_messy_response():
    items = parse_json_array(repair_json_text(MESSY_RESPONSE))

    assert [item["name"] for item in items] == [
        "Louvre Museum",
        "[HOTEL] Le Meurice",
        "Versailles",
    ]
    louvre = items[0]
    assert louvre["address"] == "Rue de Rivoli, Paris"
    assert louvre["description"] == 'The "Mona Lisa" lives here'
    assert louvre["estimatedDuration"] == 180
    assert louvre["dayIndex"] == 0
    assert louvre["isHotel"] is False
    assert items[1]["isHotel"] is True


@pytest.mark.parametrize(
    "raw",
    [
        MESSY_RESPONSE,
        '[{"name": "A", "dayIndex": 0}]',
        "[{name: 'A', dayIndex: '1',} {name: 'B', dayIndex: 2}] trailing words",
        '[{"name": "Louvre", "dayIndex": 0}, {"name": "Ors',
    ],
)
def test_repair_is_a_fixed_point(raw):
    once = repair_json_text(raw)
    twice = repair_json_text(once)

    assert twice == once
    assert json.loads(twice) == json.loads(once)


# Structural validation -------------------------------------------------------


def test_object_instead_of_array_is_not_an_array():
    with pytest.raises(NotAnArray):
        parse_json_array('{"name": "Louvre"}')


def test_empty_array_is_rejected():
    with pytest.raises(EmptyArray):
        parse_json_array("[ ]")


def test_invalid_json_carries_context_snippet():
    text = '[{"name": "Louvre", "dayIndex": }]'

    with pytest.raises(InvalidJson) as exc:
        parse_json_array(text)

    assert isinstance(exc.value, ParseError)
    assert exc.value.offset == text.index("}")
    assert '"dayIndex": }' in exc.value.context
    assert "near [..." in str(exc.value)
