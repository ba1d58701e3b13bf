import argparse
import csv

import pytest

from protoforge import generate_shape
from protoforge.generate_shape import build_parser, main, parse_overrides
from protoforge.kernel import manifold_available

requires_manifold = pytest.mark.skipif(not manifold_available(),
                                       reason="manifold3d boolean backend not available")


def test_parse_overrides():
    assert parse_overrides(['deployment=0.5', ' tiers = 4']) == {'deployment': '0.5', 'tiers': ' 4'}
    assert parse_overrides(None) == {}


def test_parse_overrides_rejects_malformed():
    with pytest.raises(argparse.ArgumentTypeError):
        parse_overrides(['deployment'])


def test_parser_defaults():
    args = build_parser().parse_args(['habitat'])
    assert args.shape == 'habitat'
    assert args.row == 0
    assert args.output_dir == '.'
    assert not args.batch


def test_invalid_override_exits_with_error(tmp_path, capsys):
    code = main(['habitat', '--set', 'segments=2', '--output-dir', str(tmp_path)])
    assert code == 1
    assert '[invalid_parameter]' in capsys.readouterr().out
    assert not list(tmp_path.iterdir())


def test_unknown_override_exits_with_error(tmp_path, capsys):
    assert main(['chassis', '--set', 'colour=red', '--output-dir', str(tmp_path)]) == 1
    assert 'colour' in capsys.readouterr().out


def test_batch_requires_csv():
    with pytest.raises(SystemExit):
        main(['--batch'])


def test_single_shape_uses_kernel(tmp_path, monkeypatch, capsys):
    from conftest import RecordingKernel

    kernel = RecordingKernel()
    monkeypatch.setattr(generate_shape, 'TrimeshKernel', lambda: kernel)
    code = main(['chassis', '--set', 'wheel_wells=no', '--name', 'tub',
                 '--output-dir', str(tmp_path)])
    assert code == 0
    assert kernel.calls[-1] == ('export', 'tub_outer', str(tmp_path / 'tub.stl'))
    assert 'Done!' in capsys.readouterr().out


@requires_manifold
def test_csv_row_to_stl(tmp_path):
    csv_path = tmp_path / 'params.csv'
    with open(csv_path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(['case_index', 'deployment', 'segments'])
        writer.writerow([0, '0.5', '8'])
    code = main(['habitat', '--params-csv', str(csv_path), '--output-dir', str(tmp_path / 'out')])
    assert code == 0
    assert (tmp_path / 'out' / 'habitat.stl').exists()


@requires_manifold
def test_batch_from_csv(tmp_path):
    csv_path = tmp_path / 'batch.csv'
    with open(csv_path, 'w', newline='', encoding='utf-8') as f:
        writer = csv.writer(f)
        writer.writerow(['name', 'shape', 'deployment', 'wheel_wells'])
        writer.writerow(['stowed', 'habitat', '0', ''])
        writer.writerow(['tub', 'chassis', '', 'false'])
    code = main(['--batch', '--params-csv', str(csv_path), '--output-dir', str(tmp_path),
                 '--workers', '2'])
    assert code == 0
    assert (tmp_path / 'stowed.stl').exists()
    assert (tmp_path / 'tub.stl').exists()
