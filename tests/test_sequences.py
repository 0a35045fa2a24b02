#!/usr/bin/env python3
"""
Tests for the polymorphic head/tail/uniq helpers.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fnshell.sequences import head, tail, uniq
from fnshell.entity import path


class TestHeadTail:
    """Dispatch on the argument type."""

    def test_lists(self):
        assert head([1, 2, 3], 2) == [1, 2]
        assert tail([1, 2, 3], 2) == [2, 3]
        assert tail([1, 2, 3], 0) == []
        assert tail([1, 2, 3], 10) == [1, 2, 3]

    def test_default_is_one(self):
        assert head(['a', 'b']) == ['a']
        assert tail(['a', 'b']) == ['b']

    def test_text_is_line_wise(self):
        assert head('a\nb\nc', 2) == 'a\nb'
        assert tail('a\nb\nc', 2) == 'b\nc'
        assert tail('a\nb\nc', 0) == ''

    def test_bytes_are_byte_wise(self):
        assert head(b'abcdef', 2) == b'ab'
        assert tail(b'abcdef', 2) == b'ef'
        assert tail(b'abcdef', 0) == b''

    def test_entity_uses_file_lines(self, tmp_path):
        target = tmp_path / 'f'
        target.write_bytes(b'1\n2\n3\n')
        entity = path(str(target))
        assert head(entity, 2) == b'1\n2\n'
        assert tail(entity, 1) == b'3\n'


class TestUniq:
    """Order-preserving de-duplication."""

    def test_values(self):
        assert uniq([3, 1, 3, 2, 1]) == [3, 1, 2]

    def test_by_key(self):
        records = [{'k': 1, 'v': 'a'}, {'k': 1, 'v': 'b'}, {'k': 2, 'v': 'c'}]
        assert uniq(records, 'k') == [records[0], records[2]]

    def test_entities_by_field(self, tmp_path):
        (tmp_path / 'a').write_bytes(b'xx')
        (tmp_path / 'b').write_bytes(b'yy')
        entities = [path(str(tmp_path / 'a')), path(str(tmp_path / 'b'))]
        assert uniq(entities, 'size') == [entities[0]]
