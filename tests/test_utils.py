import pytest

from services.errors import InvalidInput
from services.utils import json_object, parse_datetime, format_duration, validate_email, validate_json
from tests.helpers import at


def test_parse_datetime_normalizes_to_naive_utc():
    assert parse_datetime('2030-01-01T10:00:00', 'startTime') == at(10)
    assert parse_datetime('2030-01-01T10:00:00Z', 'startTime') == at(10)
    assert parse_datetime('2030-01-01T12:30:00+02:00', 'startTime') == at(10, 30)
    assert parse_datetime(at(9), 'startTime') == at(9)


@pytest.mark.parametrize('value', [None, '', 'soon', 123])
def test_parse_datetime_rejects_garbage(value):
    with pytest.raises(InvalidInput, match='startTime'):
        parse_datetime(value, 'startTime')


def test_format_duration():
    assert format_duration(at(10), at(12, 5)) == '2h 5m'
    assert format_duration(None, at(10)) == 'Unknown'


def test_validators():
    assert validate_email('a@b.co')
    assert not validate_email('a@b')
    assert not validate_email(None)
    assert validate_json({'a': 1, 'b': ''}, ['a', 'b', 'c']) == ['b', 'c']


def test_validate_email_rejects_non_strings():
    assert not validate_email(123)
    assert not validate_email(['a@b.co'])


def test_json_object():
    assert json_object(None) == {}
    assert json_object({'a': 1}) == {'a': 1}
    for body in ([1, 2], 'text', 3):
        with pytest.raises(InvalidInput):
            json_object(body)
