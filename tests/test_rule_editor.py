import pytest

from models import Rule


def test_remove_never_empties_list(session):
    assert not session.rules.can_remove
    assert session.rules.remove(0) is False
    assert session.store.rules == (Rule(),)


def test_add_then_remove(session):
    session.rules.add()
    session.rules.update(1, "old_domain", "b.com")
    assert session.rules.can_remove
    assert session.rules.remove(0) is True
    assert session.store.rules == (Rule(old_domain="b.com"),)


def test_remove_out_of_range_is_noop(session):
    session.rules.add()
    assert session.rules.remove(5) is False
    assert len(session.store.rules) == 2


def test_update_bad_index_and_field(session):
    with pytest.raises(IndexError):
        session.rules.update(3, "old_domain", "x")
    with pytest.raises(KeyError):
        session.rules.update(0, "priority", 1)


def test_active_rule_count_skips_disabled_and_blank(session):
    session.store.replace_rules([
        Rule("a.com", "b.com"),
        Rule("c.com", "d.com", enabled=False),
        Rule("   ", "e.com"),
        Rule("f.com", ""),
    ])
    assert session.rules.active_rule_count == 2


def test_add_from_domain_fills_blank_rule(session):
    session.catalog.picker_open = True
    session.rules.add_from_domain("tracker.example.com")
    assert session.store.rules == (Rule(old_domain="tracker.example.com"),)
    assert not session.catalog.picker_open


def test_add_from_domain_appends_when_no_blank(session):
    session.store.replace_rules([Rule("a.com", "b.com")])
    session.rules.add_from_domain("c.com")
    assert [r.old_domain for r in session.store.rules] == ["a.com", "c.com"]
    assert session.store.rules[1].enabled


def test_add_from_domain_reuses_first_blank_only(session):
    session.store.replace_rules([Rule("a.com", "b.com"), Rule(), Rule()])
    session.rules.add_from_domain("c.com")
    assert [r.old_domain for r in session.store.rules] == ["a.com", "c.com", ""]
