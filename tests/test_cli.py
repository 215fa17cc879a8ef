"""
Tests for the classguard command-line interface.
"""
import json

import pytest

from classguard.__main__ import EXIT_ERROR, EXIT_OK, EXIT_REFUSED, main


@pytest.fixture(autouse=True)
def isolated_env(tmp_path, monkeypatch):
    monkeypatch.setenv('CLASSGUARD_STORAGE_BACKEND', 'json')
    monkeypatch.setenv('CLASSGUARD_ATTRIBUTE_DIR', str(tmp_path / 'attributes'))
    monkeypatch.setenv('CLASSGUARD_BACKUP_DIR', str(tmp_path / 'backups'))
    monkeypatch.setenv('CLASSGUARD_TEMP_DIR', str(tmp_path / 'tmp'))
    monkeypatch.setenv('CLASSGUARD_WATCH_PATHS', str(tmp_path))
    monkeypatch.delenv('CLASSGUARD_CONFIG', raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def document(tmp_path):
    path = tmp_path / 'contract.txt'
    path.write_text('terms')
    return str(path)


def test_classify_then_refuse(document, capsys):
    assert main(['classify', document, 'Confidential']) == EXIT_OK
    assert 'confidential' in capsys.readouterr().out

    assert main(['classify', document, 'public']) == EXIT_REFUSED
    assert 'permanent' in capsys.readouterr().err


def test_classify_missing_file(tmp_path):
    assert main(['classify', str(tmp_path / 'missing.txt'), 'public']) == EXIT_ERROR


def test_invalid_level_is_usage_error(document):
    with pytest.raises(SystemExit) as excinfo:
        main(['classify', document, 'top-secret'])
    assert excinfo.value.code == 2


def test_show_and_verify(document, capsys):
    main(['classify', document, 'personal'])
    capsys.readouterr()

    assert main(['show', document]) == EXIT_OK
    data = json.loads(capsys.readouterr().out)
    assert data['classification'] == 'personal'
    assert data['integrityVerified'] is True

    assert main(['verify', document]) == EXIT_OK


def test_verify_unclassified(document):
    assert main(['verify', document]) == EXIT_REFUSED


@pytest.mark.parametrize('level,action,code,decision', [
    ('confidential', 'copy', EXIT_REFUSED, 'block'),
    ('confidential', 'paste', EXIT_OK, 'allow'),
    ('internal', 'external_upload', EXIT_OK, 'warn'),
    ('none', 'rename', EXIT_OK, 'allow'),
])
def test_evaluate(level, action, code, decision, capsys):
    assert main(['evaluate', level, action]) == code
    assert json.loads(capsys.readouterr().out)['level'] == decision
