import io

import pytest

from ircchain import numerics
from ircchain.numerics import NumericTable


def test_default_table():
    table = numerics.load()
    assert table.name(1) == 'welcome'
    assert table.name('433') == 'nicknameinuse'
    assert table.code('welcome') == 1
    assert table.name(999) is None
    assert table.code('msg') is None


def test_default_table_loaded_once():
    assert numerics.load() is numerics.load()


def test_iterates_in_code_order():
    table = NumericTable({'433': 'nicknameinuse', '001': 'welcome', '332': 'topic'})
    assert list(table) == [(1, 'welcome'), (332, 'topic'), (433, 'nicknameinuse')]
    assert len(table) == 3


def test_contains():
    table = NumericTable({'001': 'welcome'})
    assert 1 in table
    assert 'welcome' in table
    assert 2 not in table
    assert 'msg' not in table


def test_duplicate_name():
    with pytest.raises(ValueError):
        NumericTable({'001': 'welcome', '002': 'welcome'})


def test_from_file():
    table = NumericTable.from_file(io.StringIO('"001" = "welcome"\n"376" = "endofmotd"\n'))
    assert table.name(376) == 'endofmotd'
    assert table.code('welcome') == 1


def test_names_dont_clash_with_event_types():
    from ircchain.events import EventType
    names = {name for _, name in numerics.load()}
    assert not names & {t.value for t in EventType}
