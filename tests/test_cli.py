"""Tests for the command line front end."""

import json
import os
import pytest

from smartdiff.cli import main, build_parser


def _exit_code(argv):
    with pytest.raises(SystemExit) as exc:
        main(argv)
    return exc.value.code


@pytest.fixture
def project(tmp_path, write_project, project_files, room_xml):
    """Working-copy project with one two-state room."""
    xml = room_xml(width=1, height=1, states=[
        {'condition': 'Default', 'layer1': [(0, 0, [1])]},
        {'condition': 'Events', 'arg': 0x0C, 'layer2': [(0, 0, [2])]},
    ])
    write_project(project_files({'Hall': xml}))
    return str(tmp_path / 'Proj')


@pytest.fixture
def committed(git_repo, write_project, project_files, room_xml):
    """Repository with a committed room, then edited in the working copy."""
    write_project(project_files({'Hall': room_xml(states=[{'layer1': [(0, 0, [1])]}])}),
                  root=git_repo.path)
    git_repo.commit()
    room = os.path.join(git_repo.path, 'Proj', 'Export', 'Rooms', 'Hall.xml')
    with open(room, 'w', encoding='utf-8') as f:
        f.write(room_xml(states=[{'layer1': [(0, 0, [2])]}]))
    return git_repo


class TestParser:
    def test_no_command(self, capsys):
        assert _exit_code([]) == 0
        assert 'usage' in capsys.readouterr().out

    def test_diff_defaults(self):
        args = build_parser().parse_args(['diff', 'P', 'R'])
        assert args.baseline == 0.3
        assert args.ref is None
        assert args.scale == 1


# =============================================================================
# Listing commands
# =============================================================================

class TestProjectsCommand:
    def test_list(self, tmp_path, project, capsys):
        main(['projects', str(tmp_path)])
        out = capsys.readouterr().out
        assert 'SMART projects (1)' in out
        assert project in out

    def test_json(self, tmp_path, project, capsys):
        main(['projects', str(tmp_path), '--json'])
        assert json.loads(capsys.readouterr().out) == {'projects': [project]}

    def test_json_to_file(self, tmp_path, project):
        out_path = str(tmp_path / 'projects.json')
        main(['projects', str(tmp_path), '--json', '-o', out_path])
        with open(out_path) as f:
            assert json.load(f)['projects'] == [project]

    def test_none_found(self, tmp_path, capsys):
        assert _exit_code(['projects', str(tmp_path)]) == 1
        assert 'No SMART projects' in capsys.readouterr().err


class TestRoomsCommand:
    def test_list(self, project, capsys):
        main(['rooms', project])
        assert 'Hall' in capsys.readouterr().out

    def test_json(self, project, capsys):
        main(['rooms', project, '--json'])
        assert json.loads(capsys.readouterr().out)['rooms'] == ['Hall']

    def test_missing_project(self, tmp_path, capsys):
        assert _exit_code(['rooms', str(tmp_path / 'nope')]) == 1
        assert 'Project directory not found' in capsys.readouterr().err


class TestStatesCommand:
    def test_list(self, project, capsys):
        main(['states', project, 'Hall'])
        out = capsys.readouterr().out
        assert 'Default: 0' in out
        assert 'Events: 12' in out

    def test_json(self, project, capsys):
        main(['states', project, 'Hall', '--json'])
        data = json.loads(capsys.readouterr().out)
        assert [s['label'] for s in data['states']] == ['Default: 0', 'Events: 12']
        assert data['width'] == 1

    def test_missing_room(self, project, capsys):
        assert _exit_code(['states', project, 'Nope']) == 1
        assert capsys.readouterr().err.startswith('Error:')

    def test_from_reference(self, committed, capsys):
        project = os.path.join(committed.path, 'Proj')
        main(['states', project, 'Hall', '--ref', 'HEAD', '--repo', committed.path])
        assert 'Default: 0' in capsys.readouterr().out


# =============================================================================
# Render
# =============================================================================

class TestRenderCommand:
    def test_layers(self, tmp_path, project, capsys):
        out_dir = str(tmp_path / 'out')
        main(['render', project, 'Hall', '-o', out_dir])
        assert sorted(os.listdir(out_dir)) == [
            'Hall_state0_layer1.png', 'Hall_state0_layer2.png',
            'Hall_state1_layer1.png', 'Hall_state1_layer2.png',
        ]
        assert '256x256' in capsys.readouterr().out

    def test_flatten_single_state(self, tmp_path, project):
        out_dir = str(tmp_path / 'out')
        main(['render', project, 'Hall', '-o', out_dir, '--flatten', '--state', '1'])
        assert os.listdir(out_dir) == ['Hall_state1.png']

    def test_scale(self, tmp_path, project, capsys):
        out_dir = str(tmp_path / 'out')
        main(['render', project, 'Hall', '-o', out_dir, '--scale', '2', '--state', '0'])
        assert '512x512' in capsys.readouterr().out

    def test_scale_out_of_range(self, tmp_path, project, capsys):
        assert _exit_code(['render', project, 'Hall', '-o', str(tmp_path), '--scale', '9']) == 1
        assert '--scale' in capsys.readouterr().err

    def test_state_out_of_range(self, tmp_path, project, capsys):
        assert _exit_code(['render', project, 'Hall', '-o', str(tmp_path), '--state', '2']) == 1
        assert 'out of range' in capsys.readouterr().err

    def test_bad_document(self, tmp_path, project, capsys):
        with open(os.path.join(project, 'Export', 'Rooms', 'Bad.xml'), 'w') as f:
            f.write('<Room>')
        assert _exit_code(['render', project, 'Bad', '-o', str(tmp_path)]) == 1
        assert 'Error:' in capsys.readouterr().err

    def test_from_reference(self, tmp_path, committed, capsys):
        project = os.path.join(committed.path, 'Proj')
        out_dir = str(tmp_path / 'out')
        main(['render', project, 'Hall', '--ref', 'HEAD', '--repo', committed.path,
              '-o', out_dir])
        assert '(HEAD)' in capsys.readouterr().out
        assert len(os.listdir(out_dir)) == 2

    def test_unknown_reference(self, tmp_path, committed, capsys):
        project = os.path.join(committed.path, 'Proj')
        argv = ['render', project, 'Hall', '--ref', 'nope', '--repo', committed.path,
                '-o', str(tmp_path)]
        assert _exit_code(argv) == 1
        assert 'Unknown git reference: nope' in capsys.readouterr().err


# =============================================================================
# Diff and modified
# =============================================================================

class TestDiffCommand:
    def test_summary(self, committed, capsys):
        project = os.path.join(committed.path, 'Proj')
        main(['diff', project, 'Hall', '--repo', committed.path, '--json'])
        captured = capsys.readouterr()
        assert 'defaulting to HEAD' in captured.err
        data = json.loads(captured.out)
        assert data['reference'] == 'HEAD'
        assert data['states'][0]['layer1_changed'] == 256
        assert data['states'][0]['layer2_changed'] == 0

    def test_export(self, tmp_path, committed, capsys):
        project = os.path.join(committed.path, 'Proj')
        out_dir = str(tmp_path / 'out')
        main(['diff', project, 'Hall', '--repo', committed.path, '--ref', 'HEAD',
              '-o', out_dir, '--flatten'])
        captured = capsys.readouterr()
        assert 'defaulting' not in captured.err
        assert 'layer 1 256 px' in captured.out
        assert os.listdir(out_dir) == ['Hall_diff_state0.png']

    def test_bad_baseline(self, committed, capsys):
        project = os.path.join(committed.path, 'Proj')
        assert _exit_code(['diff', project, 'Hall', '--repo', committed.path,
                           '--baseline', '1.5']) == 1
        assert '--baseline' in capsys.readouterr().err


class TestModifiedCommand:
    def test_list(self, committed, capsys):
        main(['modified', '--repo', committed.path, '--root', committed.path, '--json'])
        captured = capsys.readouterr()
        data = json.loads(captured.out)
        assert [r['room'] for r in data['rooms']] == ['Hall']
        assert 'defaulting to HEAD' in captured.err

    def test_text(self, committed, capsys):
        main(['modified', '--repo', committed.path, '--root', committed.path, '--ref', 'HEAD'])
        assert 'Proj/Hall' in capsys.readouterr().out
