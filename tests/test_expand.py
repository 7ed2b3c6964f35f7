import pytest

from phyrag.core.expand import expand_query_terms, fired_rules

INTERFACE_ONLY = ["SGMII", "RGMII", "传输接口", "TX接口"]
BUS_ONLY = ["100BASE-T1", "ethernet"]


def test_expansion_appends_and_never_replaces(lexicon):
    expanded = expand_query_terms("商规千兆PHY", lexicon)
    assert expanded.startswith("商规千兆PHY ")
    tokens = expanded.split()
    assert "消费级" in tokens
    assert "GE" in tokens
    assert "1GE" in tokens


def test_independent_triggers_are_additive(lexicon):
    assert fired_rules("时钟和复位要求, 上电顺序", lexicon) == ["clock", "power", "reset"]


def test_pin_compatibility_phrasing(lexicon):
    tokens = expand_query_terms("YT8512能否pin2pin替换YT8522", lexicon).split()
    assert "封装" in tokens
    assert "package" in tokens


def test_interface_query_gets_no_bus_tokens(lexicon):
    tokens = expand_query_terms("推荐车规的TX PHY", lexicon).split()
    for token in INTERFACE_ONLY:
        assert token in tokens
    for token in BUS_ONLY:
        assert token not in tokens


def test_bus_query_gets_no_interface_tokens(lexicon):
    tokens = expand_query_terms("T1 PHY 有哪些", lexicon).split()
    for token in BUS_ONLY:
        assert token in tokens
    for token in INTERFACE_ONLY:
        assert token not in tokens


def test_both_categories_named_expands_neither(lexicon):
    assert fired_rules("TX 和 T1 的区别", lexicon) == []


def test_negated_bus_category_does_not_expand(lexicon):
    assert "single_pair_bus" not in fired_rules("不是T1的PHY", lexicon)


@pytest.mark.parametrize("question", [
    "车规TX PHY 时钟 复位",
    "T1 千兆 供电",
    "pin2pin 引脚兼容 商规",
    "没有任何触发词",
])
def test_expansion_is_idempotent(lexicon, question):
    once = expand_query_terms(question, lexicon)
    assert expand_query_terms(once, lexicon) == once


def test_no_trigger_returns_question_unchanged(lexicon):
    assert expand_query_terms("YT8512的寄存器", lexicon) == "YT8512的寄存器"
