"""
Tests for recovering translation pairs from model output.

These tests verify that:
- Well-formed arrays are returned exactly, fenced or embedded in commentary
- Key aliases are normalized
- Broken JSON falls back to line recovery
- Empty and invalid input yield "no structured result" without raising
"""
from __future__ import annotations

import json

import pytest

from mangalens.models import TranslationPair
from mangalens.parser import (
    extract_value,
    normalize_pair,
    parse_translation_pairs,
    recover_pairs,
    slice_brackets,
    strip_fences,
)

PAIRS = [
    {"original": "おい！待て！", "translation": "喂！等一下！"},
    {"original": "「なんで…」", "translation": "「為什麼…」"},
]
ARRAY = json.dumps(PAIRS, ensure_ascii=False, indent=2)


def _expected(items=PAIRS):
    return [TranslationPair(**item) for item in items]


class TestStrictParsing:
    def test_plain_array(self):
        assert parse_translation_pairs(ARRAY) == _expected()

    def test_json_fenced_array(self):
        text = f"```json\n{ARRAY}\n```"
        assert parse_translation_pairs(text) == _expected()

    def test_fence_without_language_tag(self):
        text = f"```\n{ARRAY}\n```"
        assert parse_translation_pairs(text) == _expected()

    def test_fence_surrounded_by_commentary(self):
        text = f"Here is the translation:\n\n```JSON\n{ARRAY}\n```\n\nLet me know!"
        assert parse_translation_pairs(text) == _expected()

    def test_array_embedded_in_commentary(self):
        text = f"Sure! Here you go: {ARRAY}\nHope this helps."
        assert parse_translation_pairs(text) == parse_translation_pairs(ARRAY)

    def test_order_preserved(self):
        items = [{"original": str(i), "translation": f"t{i}"} for i in range(12)]
        result = parse_translation_pairs(json.dumps(items))
        assert [p.original for p in result] == [str(i) for i in range(12)]

    @pytest.mark.parametrize("orig_key,trans_key", [
        ("Original", "Translation"),
        ("source", "target"),
        ("Source", "Target"),
    ])
    def test_key_aliases(self, orig_key, trans_key):
        text = json.dumps([{orig_key: "あ", trans_key: "阿"}])
        assert parse_translation_pairs(text) == [TranslationPair(original="あ", translation="阿")]

    def test_missing_and_null_fields_become_empty_strings(self):
        text = json.dumps([{"original": "あ"}, {"original": None, "translation": "阿"}])
        assert parse_translation_pairs(text) == [
            TranslationPair(original="あ", translation=""),
            TranslationPair(original="", translation="阿"),
        ]

    def test_non_string_values_are_stringified(self):
        text = json.dumps([{"original": 1, "translation": 2.5}])
        assert parse_translation_pairs(text) == [TranslationPair(original="1", translation="2.5")]

    def test_non_object_elements_dropped(self):
        text = json.dumps(["noise", {"original": "あ", "translation": "阿"}, 3])
        assert parse_translation_pairs(text) == [TranslationPair(original="あ", translation="阿")]

    def test_well_formed_multiline_values_are_not_mangled(self):
        """Strict parsing wins, so embedded newlines and quotes survive intact."""
        items = [{"original": '「あ」\n"original": x', "translation": "第一行\n第二行"}]
        result = parse_translation_pairs(json.dumps(items, ensure_ascii=False, indent=2))
        assert result == [TranslationPair(**items[0])]


class TestNoStructuredResult:
    @pytest.mark.parametrize("value", ["", None, 42, "   ", ["not", "text"]])
    def test_empty_or_non_string(self, value):
        assert parse_translation_pairs(value) is None

    def test_empty_array_is_not_success(self):
        assert parse_translation_pairs("[]") is None
        assert parse_translation_pairs("```json\n[]\n```") is None

    def test_array_of_only_non_objects(self):
        assert parse_translation_pairs('["a", "b"]') is None

    def test_top_level_object_is_rejected(self):
        assert parse_translation_pairs('{"original": "あ", "translation": "阿"}') is None

    @pytest.mark.parametrize("text", [
        '[{"original": "あ", "translation": "阿"}',
        'foo [ bar',
        '] reversed [',
        '[[[',
    ])
    def test_unbalanced_brackets(self, text):
        assert parse_translation_pairs(text) is None

    def test_deeply_nested_arrays_do_not_raise(self):
        text = "[" * 100000 + "]" * 100000
        assert parse_translation_pairs(text) is None

    def test_prose_only(self):
        assert parse_translation_pairs("I could not find any text on this page.") is None


class TestLineRecovery:
    def test_truncated_response(self):
        text = (
            "[\n"
            "  {\n"
            '    "original": "こんにちは",\n'
            '    "translation": "你好"\n'
            "  },\n"
            "  {\n"
            '    "original": "さようなら",\n'
            '    "translation": "再見'
        )
        assert parse_translation_pairs(text) == [
            TranslationPair(original="こんにちは", translation="你好"),
            TranslationPair(original="さようなら", translation="再見"),
        ]

    def test_trailing_commas(self):
        text = (
            "```json\n[\n"
            "  {\n"
            '    "original": "あ",\n'
            '    "translation": "阿",\n'
            "  },\n"
            "]\n```"
        )
        assert parse_translation_pairs(text) == [TranslationPair(original="あ", translation="阿")]

    def test_missing_translation_defaults_to_empty(self):
        text = (
            "[\n"
            "  {\n"
            '    "original": "あ"\n'
            "  },\n"
            "  {\n"
            '    "original": "い",\n'
            '    "translation": "伊",\n'
            "  }\n"
            "]"
        )
        assert parse_translation_pairs(text) == [
            TranslationPair(original="あ", translation=""),
            TranslationPair(original="い", translation="伊"),
        ]

    def test_second_original_flushes_previous_record(self):
        text = (
            '"original": "あ",\n'
            '"translation": "阿",\n'
            '"original": "い",\n'
            '"translation": "伊",\n'
        )
        assert recover_pairs(text) == [
            TranslationPair(original="あ", translation="阿"),
            TranslationPair(original="い", translation="伊"),
        ]

    def test_nothing_recoverable(self):
        assert recover_pairs("{\n}\n],\n") is None


class TestHelpers:
    @pytest.mark.parametrize("line,expected", [
        ('"original": "abc",', "abc"),
        ('"original": "abc"', "abc"),
        ('"original": abc,', "abc"),
        ('"original": "abc', "abc"),
        ('"original": abc"', "abc"),
        ('"translation": "a\\"b",', 'a"b'),
        ('"translation": "第一\\n第二"', "第一\n第二"),
        ('"translation":', ""),
        ("no colon here", ""),
    ])
    def test_extract_value(self, line, expected):
        assert extract_value(line) == expected

    def test_strip_fences_leaves_unfenced_text(self):
        assert strip_fences("[1, 2]") == "[1, 2]"

    def test_strip_fences_requires_closing_line(self):
        text = "```json\n[1]"
        assert strip_fences(text) == text

    def test_slice_brackets(self):
        assert slice_brackets("note: [1, 2] end") == "[1, 2]"
        assert slice_brackets("  [1]  ") == "[1]"
        assert slice_brackets("no array") == "no array"

    def test_normalize_pair_prefers_canonical_key(self):
        pair = normalize_pair({"Original": "B", "original": "A", "target": "T"})
        assert pair == TranslationPair(original="A", translation="T")

    def test_normalize_pair_rejects_non_dict(self):
        assert normalize_pair("text") is None
