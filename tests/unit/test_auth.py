"""
Unit tests for authorization header builders.
"""

import pytest

from wirehttp.auth import create_auth_header
from wirehttp.exceptions import LogicError


def test_basic():
    assert create_auth_header('Aladdin', 'open sesame', 'basic') == 'Basic QWxhZGRpbjpvcGVuIHNlc2FtZQ=='


def test_basic_is_default_scheme():
    assert create_auth_header('user', '') == 'Basic dXNlcjo='


def test_digest_not_supported():
    with pytest.raises(LogicError, match='Digest'):
        create_auth_header('user', 'pass', 'digest')


def test_unknown_scheme():
    with pytest.raises(LogicError, match="Unknown HTTP authentication scheme 'hawk'"):
        create_auth_header('user', 'pass', 'hawk')
