"""Tests for the checkpoint and last-upload files."""
import json
import os

import pytest

from shelby_quickstart.progress import Checkpoint, get_last_upload, set_last_upload


def test_missing_checkpoint_starts_at_zero(tmp_path):
    assert Checkpoint(tmp_path / 'progress.json').load() == 0


@pytest.mark.parametrize("content", [
    '{not json',
    '',
    '[]',
    '{"lastIndex": "3"}',
    '{"lastIndex": -1}',
    '{"lastIndex": true}',
    '{}',
])
def test_corrupt_checkpoint_starts_at_zero(checkpoint_file, content):
    assert Checkpoint(checkpoint_file(content)).load() == 0


def test_checkpoint_round_trip(tmp_path):
    checkpoint = Checkpoint(tmp_path / 'progress.json')
    checkpoint.save(4)
    assert checkpoint.load() == 4
    assert json.loads((tmp_path / 'progress.json').read_text()) == {'lastIndex': 4}


def test_checkpoint_leaves_no_temp_files(tmp_path):
    checkpoint = Checkpoint(tmp_path / 'progress.json')
    checkpoint.save(1)
    checkpoint.save(2)
    assert sorted(p.name for p in tmp_path.iterdir()) == ['progress.json']


def test_checkpoint_never_moves_backwards(tmp_path):
    checkpoint = Checkpoint(tmp_path / 'progress.json')
    checkpoint.save(3)
    checkpoint.save(3)
    with pytest.raises(ValueError):
        checkpoint.save(2)
    assert checkpoint.load() == 3


def test_checkpoint_overwrites_corrupt_file(checkpoint_file):
    checkpoint = Checkpoint(checkpoint_file('garbage'))
    checkpoint.save(1)
    assert checkpoint.load() == 1


def test_last_upload(tmp_path):
    path = tmp_path / '.last_upload'
    assert get_last_upload(path) is None
    assert set_last_upload('photo.jpg', path) is None
    assert get_last_upload(path) == 'photo.jpg'


def test_set_last_upload_returns_error(tmp_path):
    error = set_last_upload('x', tmp_path / 'missing-dir' / '.last_upload')
    assert isinstance(error, OSError)


@pytest.mark.skipif(os.name != 'posix', reason='POSIX file modes')
def test_checkpoint_keeps_existing_file_mode(tmp_path):
    path = tmp_path / 'progress.json'
    path.write_text('{"lastIndex": 0}')
    os.chmod(path, 0o644)
    Checkpoint(path).save(1)
    assert path.stat().st_mode & 0o777 == 0o644


@pytest.mark.skipif(os.name != 'posix', reason='POSIX file modes')
def test_new_checkpoint_uses_umask_mode(tmp_path):
    umask = os.umask(0o022)
    try:
        path = tmp_path / 'progress.json'
        Checkpoint(path).save(1)
    finally:
        os.umask(umask)
    assert path.stat().st_mode & 0o777 == 0o644
