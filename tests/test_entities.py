from phyrag.core.entities import extract_entities, extract_from_history


def test_full_codes_are_uppercased(lexicon):
    assert extract_entities("yt8531c 和 YT8522A 的区别", lexicon) == ["YT8531C", "YT8522A"]


def test_bare_numerals_in_range_get_prefix(lexicon):
    assert extract_entities("8522和8512哪个功耗低", lexicon) == ["YT8522", "YT8512"]


def test_cjk_neighbours_count_as_boundaries(lexicon):
    assert extract_entities("型号8522怎么样", lexicon) == ["YT8522"]


def test_numerals_outside_range_are_ignored(lexicon):
    assert extract_entities("供电3300mV, 端口 1000 个, 2024年", lexicon) == []
    assert extract_entities("8600 8499", lexicon) == []


def test_full_and_short_forms_are_deduplicated(lexicon):
    assert extract_entities("YT8522 就是 8522, yt8522", lexicon) == ["YT8522"]


def test_prefixed_code_digits_not_counted_twice(lexicon):
    # the digits inside YT8512 have no word boundary before them
    assert extract_entities("YT8512", lexicon) == ["YT8512"]


def test_extraction_is_idempotent(lexicon):
    text = "YT8010A 和 8531 还有 yt8011an"
    first = extract_entities(text, lexicon)
    second = extract_entities(text, lexicon)
    assert first == second
    assert len(first) == len(set(first))
    assert all(code == code.upper() for code in first)


def test_empty_text(lexicon):
    assert extract_entities("", lexicon) == []


def test_custom_prefix_and_range(abc_lexicon):
    assert extract_entities("ABC1234 or 1250 or 8522", abc_lexicon) == ["ABC1234", "ABC1250"]


def test_history_extraction_deduplicates_across_messages(lexicon):
    found = extract_from_history(["YT8522 怎么样", "8522 和 YT8512", "谢谢"], lexicon)
    assert found == ["YT8522", "YT8512"]
