import pytest
from pydantic import ValidationError

from phyrag.core.lexicon import Intent
from phyrag.core.query import HistoryMessage, build_query


def user(content):
    return {"role": "user", "content": content}


def assistant(content):
    return {"role": "assistant", "content": content}


def test_question_entities_take_precedence_over_history(lexicon):
    query = build_query("YT8512的功耗", [user("YT8522怎么样")], lexicon)
    assert query.entities == ["YT8512"]
    assert not query.from_history
    assert query.working_text == "YT8512的功耗"


def test_entities_back_filled_from_history(lexicon):
    history = [user("YT8522怎么样"), assistant("YT8522 是一款百兆PHY")]
    query = build_query("它的功耗是多少", history, lexicon)
    assert query.entities == ["YT8522"]
    assert query.from_history
    assert query.working_text == "YT8522 它的功耗是多少"


def test_several_history_entities_are_joined(lexicon):
    query = build_query("功耗差多少", [user("YT8512和YT8522")], lexicon)
    assert query.working_text == "YT8512和YT8522 功耗差多少"


def test_selection_question_never_back_fills(abc_lexicon):
    query = build_query("有哪些型号可选", [user("型号ABC1234 怎么样")], abc_lexicon)
    assert query.entities == []
    assert Intent.SELECTION in query.intents
    assert "ABC1234" not in query.working_text
    assert "ABC1234" not in query.expanded_text


def test_only_recent_history_is_scanned(lexicon):
    history = [user("YT8512 的问题")] + [user("谢谢"), assistant("不客气")] * 3
    assert build_query("功耗多少", history, lexicon, history_window=6).entities == []
    assert build_query("功耗多少", history, lexicon, history_window=7).entities == ["YT8512"]


def test_conflicts_resolved_before_folding(lexicon):
    history = [user("YT8522A 和 YT8011A 对比"), assistant("...")]
    query = build_query("那TX的呢", history, lexicon)
    assert query.entities == ["YT8522A"]
    assert query.working_text == "YT8522A 那TX的呢"


def test_expansion_runs_on_folded_text(lexicon):
    query = build_query("它支持千兆吗", [user("YT8531")], lexicon)
    assert query.expanded_text.startswith("YT8531 它支持千兆吗")
    assert "GE" in query.expanded_text.split()


def test_history_accepts_models_and_rejects_bad_roles(lexicon):
    query = build_query("功耗", [HistoryMessage(role="user", content="YT8512")], lexicon)
    assert query.entities == ["YT8512"]
    with pytest.raises(ValidationError):
        build_query("功耗", [{"role": "system", "content": "YT8512"}], lexicon)
