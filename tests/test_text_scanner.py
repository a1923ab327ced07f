import json

import pytest

from photo_service.pipeline.text_scanner import (
    BlocklistRule,
    PatternRule,
    load_rule_set,
    scan_text,
)


@pytest.mark.parametrize("text", [None, "", "   \n\t "])
def test_blank_text_is_clean(text):
    assert scan_text(text) == []


def test_clean_transcript():
    assert scan_text("I love hiking on weekends and my dog is called Biscuit") == []


def test_phone_number_detected():
    assert scan_text("call me on +1 555 123 4567 tonight") == ["contact_info:phone_number"]


def test_short_numbers_are_not_phone_numbers():
    assert scan_text("I am 29 and have 2 cats") == []


def test_email_detected_without_social_handle_tag():
    assert scan_text("write to jane.doe@example.com") == ["contact_info:email"]


def test_social_platform_and_handle():
    assert scan_text("Find me on Instagram") == ["contact_info:social_media"]
    assert scan_text("I'm @sunny_days there") == ["contact_info:social_media"]


def test_platform_names_need_word_boundaries():
    assert scan_text("that was a snappy answer") == []


def test_blocklist_terms_match_whole_words_only():
    assert scan_text("what a bombastic speech") == []
    assert scan_text("that joke was the bomb") == ["hate_speech:bomb"]


def test_matching_is_case_insensitive():
    assert scan_text("NUDE beach fan") == ["explicit_content:nude"]


def test_all_violations_accumulate_in_rule_order():
    text = "porn and murder, text me at 555-123-4567 or on telegram, also kill"
    assert scan_text(text) == [
        "contact_info:phone_number",
        "contact_info:social_media",
        "hate_speech:kill",
        "hate_speech:murder",
        "explicit_content:porn",
    ]


def test_repeated_term_reported_once():
    assert scan_text("xxx xxx xxx") == ["explicit_content:xxx"]


def test_custom_rule_set():
    rules = (
        PatternRule("spam:url", r"https?://"),
        BlocklistRule("scam", ("crypto", "wire")),
    )
    assert scan_text("visit https://x.io for crypto", rules) == ["spam:url", "scam:crypto"]
    # Default categories are not applied
    assert scan_text("kill", rules) == []


def test_load_rule_set(tmp_path):
    path = tmp_path / "rules.json"
    path.write_text(json.dumps({
        "patterns": [{"tag": "contact_info:email", "pattern": r"[\w.+-]+@[\w-]+\.[\w.]+"}],
        "blocklists": [{"category": "hate_speech", "terms": ["slur"]}],
    }))

    rules = load_rule_set(path)

    assert len(rules) == 2
    assert scan_text("a@b.co slur", rules) == ["contact_info:email", "hate_speech:slur"]


@pytest.mark.parametrize("content", [
    "not json",
    json.dumps(["a list"]),
    json.dumps({"patterns": [{"tag": "x"}]}),
    json.dumps({"patterns": [{"tag": "x", "pattern": "("}]}),
])
def test_load_rule_set_rejects_bad_files(tmp_path, content):
    path = tmp_path / "rules.json"
    path.write_text(content)

    with pytest.raises(ValueError):
        load_rule_set(path)
