#!/usr/bin/env python3
"""
Tests for directory listing: nesting, flattening, size aggregation and
the self-wrapping option.
"""

import sys
import os
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from fnshell.walker import ListOptions, find, ls
from fnshell.entity import EntityType
from fnshell.errors import NotFound, PermissionDenied


@pytest.fixture
def tree(tmp_path):
    """
    a/
      f1          3 lines, 30 bytes
      b/
        f2        5 lines, 50 bytes
        c/
          f3      7 bytes
      empty/
    """
    root = tmp_path / 'a'
    (root / 'b' / 'c').mkdir(parents=True)
    (root / 'empty').mkdir()
    (root / 'f1').write_bytes(b'123456789\n' * 3)
    (root / 'b' / 'f2').write_bytes(b'123456789\n' * 5)
    (root / 'b' / 'c' / 'f3').write_bytes(b'abcdef\n')
    return root


def by_name(entries):
    return {entry.name: entry for entry in entries}


def files_in(entries):
    found = set()
    for entry in entries:
        if entry.type is EntityType.FILE:
            found.add(entry.path)
        if entry.contents:
            found |= files_in(entry.contents)
    return found


class TestPlainListing:
    """Non-recursive listing."""

    def test_direct_children_only(self, tree):
        entries = by_name(ls(str(tree)))
        assert set(entries) == {'f1', 'b', 'empty'}
        assert entries['b'].contents is None
        assert entries['b'].size is None
        assert entries['f1'].size == 30

    def test_paths_are_absolute(self, tree, monkeypatch):
        monkeypatch.chdir(tree)
        entries = by_name(ls('.'))
        assert entries['f1'].path == str(tree / 'f1')
        assert entries['f1'].directory == str(tree)

    def test_mime_forced(self, tree):
        entries = by_name(ls(str(tree), mime=True))
        assert entries['f1'].mime_computed
        assert entries['b'].to_record()['mime'] == 'folder'

    def test_mime_not_forced_by_default(self, tree):
        entries = by_name(ls(str(tree)))
        assert not entries['f1'].mime_computed

    def test_missing_directory(self, tmp_path):
        with pytest.raises(NotFound):
            ls(str(tmp_path / 'nope'))

    def test_unreadable_directory(self, tree, monkeypatch):
        real_listdir = os.listdir

        def refuse(target):
            if os.fspath(target) == str(tree / 'b'):
                raise PermissionError(13, 'Permission denied', target)
            return real_listdir(target)

        monkeypatch.setattr(os, 'listdir', refuse)
        with pytest.raises(PermissionDenied) as excinfo:
            ls(str(tree), recurse=True)
        assert excinfo.value.operation == 'ls'
        assert excinfo.value.paths == (str(tree / 'b'),)
        assert str(excinfo.value) == f'Permission denied: ls("{tree / "b"}")'

    def test_file_is_not_a_directory(self, tree):
        with pytest.raises(NotFound):
            ls(str(tree / 'f1'))


class TestNestedRecursion:
    """recurse without flatten keeps hierarchy and sizes folders bottom-up."""

    def test_contents_attached(self, tree):
        entries = by_name(ls(str(tree), recurse=True))
        b = by_name(entries['b'].contents)
        assert set(b) == {'f2', 'c'}
        assert [e.name for e in b['c'].contents] == ['f3']
        assert entries['empty'].contents == []

    def test_sizes_aggregate(self, tree):
        entries = by_name(ls(str(tree), recurse=True))
        assert entries['b'].size == 57
        assert by_name(entries['b'].contents)['c'].size == 7
        assert entries['empty'].size == 0
        assert entries['b'].size_h == '57 b'

    def test_top_level_sizes_sum_to_leaf_total(self, tree):
        entries = ls(str(tree), recurse=True)
        leaf_total = sum(os.path.getsize(p) for p in files_in(entries))
        assert sum(e.size or 0 for e in entries) == leaf_total == 87


class TestFlatRecursion:
    """recurse with flatten yields a single sequence."""

    def test_same_files_as_nested(self, tree):
        flat = ls(str(tree), recurse=True, flatten=True)
        nested = ls(str(tree), recurse=True)
        assert files_in(flat) == files_in(nested)

    def test_no_nesting_kept(self, tree):
        flat = ls(str(tree), recurse=True, flatten=True)
        assert all(entry.contents is None for entry in flat)
        names = [entry.name for entry in flat]
        assert sorted(names) == ['b', 'c', 'empty', 'f1', 'f2', 'f3']

    def test_folder_precedes_descendants(self, tree):
        names = [entry.name for entry in ls(str(tree), recurse=True, flatten=True)]
        assert names.index('b') < names.index('f2')
        assert names.index('c') < names.index('f3')

    def test_directory_field_preserved(self, tree):
        entries = by_name(ls(str(tree), recurse=True, flatten=True))
        assert entries['f3'].directory == str(tree / 'b' / 'c')

    def test_folder_sizes_not_double_counted(self, tree):
        entries = by_name(ls(str(tree), recurse=True, flatten=True))
        assert entries['b'].size == 57


class TestSelfWrapping:
    """include_self returns one entity for the listed directory."""

    def test_example_tree(self, tmp_path):
        root = tmp_path / 'a'
        (root / 'b').mkdir(parents=True)
        (root / 'f1').write_bytes(b'123456789\n' * 3)
        (root / 'b' / 'f2').write_bytes(b'123456789\n' * 5)

        wrapper = ls(str(root), recurse=True, include_self=True)
        assert wrapper.type is EntityType.FOLDER
        assert wrapper.size == 80
        assert {e.name for e in wrapper.contents} == {'f1', 'b'}

    def test_without_recursion_unsized(self, tree):
        wrapper = ls(str(tree), include_self=True)
        assert wrapper.size is None
        assert len(wrapper.contents) == 3

    def test_flat_wrapper_size(self, tree):
        wrapper = ls(str(tree), ListOptions(recurse=True, flatten=True, include_self=True))
        assert wrapper.size == 87
        assert len(wrapper.contents) == 6


class TestFind:
    """find = recursive flattened listing plus a predicate."""

    def test_unfiltered(self, tree):
        assert len(find(str(tree))) == 6

    def test_predicate(self, tree):
        found = find(str(tree), lambda e: e.type is EntityType.FILE and e.size > 10)
        assert sorted(e.name for e in found) == ['f1', 'f2']

    def test_always_recursive_and_flat(self, tree):
        found = find(str(tree), recurse=False, flatten=False, mime=True)
        assert len(found) == 6
        assert all(e.contents is None for e in found)
        assert all(e.mime_computed for e in found)
