"""Tests for the tolerant model-response parsing cascade."""

import json

from response_parser import (
    extract_fields,
    parse_manually,
    parse_structured,
    parse_with_regex,
    sanitize_response,
    unescape_content,
)

SAMPLE = {
    "html": "<!DOCTYPE html><html><body><h1>Hi \"there\"</h1></body></html>",
    "css": "body { color: red; }",
    "js": "console.log('hello');\nalert(1);",
}


class TestSanitizer:

    def test_strips_json_fence(self):
        raw = json.dumps(SAMPLE)
        wrapped = "```json\n" + raw + "\n```"
        assert sanitize_response(wrapped).strip() == raw

    def test_strips_untagged_and_javascript_fences(self):
        raw = json.dumps(SAMPLE)
        assert sanitize_response("```\n" + raw + "\n```") == raw
        assert sanitize_response("```javascript\n" + raw + "```") == raw

    def test_trims_leading_and_trailing_commentary(self):
        raw = json.dumps(SAMPLE)
        text = "Sure! Here is your site:\n" + raw + "\nHope you like it."
        assert sanitize_response(text) == raw

    def test_no_braces_returns_text_unchanged(self):
        assert sanitize_response("just some prose") == "just some prose"

    def test_unclosed_object_is_left_alone(self):
        assert sanitize_response('{"html": "abc') == '{"html": "abc'

    def test_cuts_at_last_closing_brace_without_opening(self):
        assert sanitize_response('html: a } trailing') == 'html: a }'

    def test_empty_and_none(self):
        assert sanitize_response("") == ""
        assert sanitize_response(None) == ""


class TestUnescape:

    def test_common_escapes(self):
        assert unescape_content('a\\nb\\tc\\"d\\\'e') == 'a\nb\tc"d\'e'

    def test_unicode_angle_brackets_and_ampersand(self):
        assert unescape_content('\\u003cdiv\\u003e \\u0026 \\u003C/div\\u003E') == '<div> & </div>'

    def test_escaped_backslash_is_not_a_newline(self):
        assert unescape_content('C:\\\\new') == 'C:\\new'

    def test_empty(self):
        assert unescape_content('') == ''


class TestStructuredExtractor:

    def test_round_trip(self):
        assert parse_structured(json.dumps(SAMPLE)) == SAMPLE

    def test_missing_key_is_empty_string(self):
        result = parse_structured('{"html": "<p>x</p>"}')
        assert result == {"html": "<p>x</p>", "css": "", "js": ""}

    def test_null_value_is_empty_string(self):
        assert parse_structured('{"html": null, "css": "a", "js": "b"}')["html"] == ""

    def test_raw_control_characters_are_tolerated(self):
        result = parse_structured('{"html": "<p>\n</p>", "css": "a", "js": "b"}')
        assert result["html"] == "<p>\n</p>"

    def test_decode_failure_returns_none(self):
        assert parse_structured('{"html": "abc"') is None

    def test_non_object_returns_none(self):
        assert parse_structured('["html"]') is None


class TestRegexExtractor:

    def test_double_quoted_with_escapes(self):
        text = '{"html": "<p class=\\"x\\">hi</p>", "css": "p{}", "js": "x()" oops'
        result = parse_with_regex(text)
        assert result["html"] == '<p class="x">hi</p>'
        assert result["css"] == "p{}"
        assert result["js"] == "x()"

    def test_single_quoted_values(self):
        result = parse_with_regex("{'html': '<b>bold</b>', 'css': 'b{}', 'js': 'go()'}")
        assert result == {"html": "<b>bold</b>", "css": "b{}", "js": "go()"}

    def test_backquoted_values(self):
        result = parse_with_regex('{html: `<i>x</i>`, css: `i{}`, js: `run()`}')
        assert result == {"html": "<i>x</i>", "css": "i{}", "js": "run()"}

    def test_unquoted_keys(self):
        result = parse_with_regex('{html: "<p>a</p>", css: "p{}", js: "f()"}')
        assert result == {"html": "<p>a</p>", "css": "p{}", "js": "f()"}

    def test_missing_field_is_omitted(self):
        result = parse_with_regex('{"html": "<p>a</p>", "css": "p{}", "js": "unterminated')
        assert result == {"html": "<p>a</p>", "css": "p{}"}

    def test_no_match_returns_none(self):
        assert parse_with_regex("nothing useful here") is None


class TestManualScanner:

    def test_escaped_quote_inside_value(self):
        result = parse_manually('"html": "a \\"quoted\\" word"')
        assert result["html"] == 'a "quoted" word'

    def test_found_but_empty_is_kept(self):
        result = parse_manually('"html": "", "css": "x"')
        assert result["html"] == ""
        assert result["css"] == "x"
        assert "js" not in result

    def test_unterminated_value_is_not_found(self):
        assert parse_manually('"html": "never closed') is None

    def test_missing_colon_is_not_found(self):
        assert parse_manually('"html" "value"') is None


class TestCascade:

    def test_well_formed_json(self):
        assert extract_fields(json.dumps(SAMPLE)) == SAMPLE

    def test_fenced_json(self):
        assert extract_fields("```json\n" + json.dumps(SAMPLE) + "\n```") == SAMPLE

    def test_trailing_commas_fall_through_to_regex(self):
        text = '{"html": "<p>a</p>", "css": "p{}", "js": "f()",}'
        assert extract_fields(text) == {"html": "<p>a</p>", "css": "p{}", "js": "f()"}

    def test_truncated_output_keeps_complete_fields(self):
        text = '{"html": "<!DOCTYPE html><p>a</p>", "css": "p { color: red; }", "js": "function go() {'
        result = extract_fields(text)
        assert result["html"] == "<!DOCTYPE html><p>a</p>"
        assert result["css"] == "p { color: red; }"
        assert result["js"] == ""

    def test_prose_yields_empty_fields(self):
        assert extract_fields("I cannot help with that.") == {"html": "", "css": "", "js": ""}

    def test_empty_input(self):
        assert extract_fields("") == {"html": "", "css": "", "js": ""}
        assert extract_fields(None) == {"html": "", "css": "", "js": ""}

    def test_partial_structured_result_prefers_more_complete_strategy(self):
        # valid JSON with an empty js, but nothing better exists later
        text = '{"html": "<p>a</p>", "css": "p{}", "js": ""}'
        assert extract_fields(text) == {"html": "<p>a</p>", "css": "p{}", "js": ""}
