#!/usr/bin/env python3
"""
Shape Generation Script

Builds the fusor, habitat or chassis prototype from default parameters,
a parameter CSV row and/or command line overrides, and exports it as STL.
"""

import argparse
import logging
from pathlib import Path

from protoforge.batch import generate_batch
from protoforge.errors import ProtoforgeError
from protoforge.kernel import TrimeshKernel
from protoforge.logging_config import parse_level, setup_logging
from protoforge.params import (PARAMETER_TYPES, load_params_from_csv, load_requests_from_csv,
                               parameters_from_dict, parameters_to_row)
from protoforge.shapes import construct

logger = logging.getLogger(__name__)


def parse_overrides(pairs):
    """Turn ``['key=value', ...]`` into a dictionary."""
    values = {}
    for pair in pairs or []:
        key, sep, value = pair.partition('=')
        if not sep or not key.strip():
            raise argparse.ArgumentTypeError(f"Override '{pair}' is not of the form key=value")
        values[key.strip()] = value
    return values


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Generate prototype shape geometry as STL')
    parser.add_argument('shape', nargs='?', choices=sorted(PARAMETER_TYPES),
                        help='Shape to generate (may be omitted with --batch)')
    parser.add_argument('--params-csv', help='CSV file with shape parameters')
    parser.add_argument('--row', type=int, default=0, help='Row index to use (default: 0)')
    parser.add_argument('--set', dest='overrides', action='append', metavar='KEY=VALUE',
                        help='Override one parameter, e.g. --set deployment=0.5 (repeatable)')
    parser.add_argument('--output-dir', default='.', help='Directory for STL files (default: .)')
    parser.add_argument('--name', help='Output file name without extension (default: shape name)')
    parser.add_argument('--batch', action='store_true',
                        help='Generate every row of --params-csv in parallel')
    parser.add_argument('--workers', type=int, default=None,
                        help='Worker count for --batch (default: executor default)')
    parser.add_argument('--show', action='store_true', help='Open a viewer after generation')
    parser.add_argument('--log-level', default='info',
                        choices=['debug', 'info', 'warning', 'error'],
                        help='Logging level (default: info)')
    parser.add_argument('--log-file', help='Also write the log to this file')
    return parser


def run_batch(args) -> int:
    requests = load_requests_from_csv(args.params_csv, default_shape=args.shape or '')
    results = generate_batch(requests, args.output_dir, max_workers=args.workers)
    for result in results:
        status = str(result.path) if result.ok else f"FAILED {result.error}"
        print(f"  {result.request.name}: {status}")
    return 0 if all(r.ok for r in results) else 1


def run_single(args) -> int:
    values = {}
    if args.params_csv:
        print(f"Loading parameters from {args.params_csv}, row {args.row}...")
        values.update(load_params_from_csv(args.params_csv, args.row))
    values.update(parse_overrides(args.overrides))
    params = parameters_from_dict(args.shape, values)

    print(f"Design parameters ({args.shape}):")
    for key, value in parameters_to_row(params).items():
        print(f"  {key}: {value}")

    kernel = TrimeshKernel()
    volume = construct(args.shape, params, kernel)
    bounds = volume.bounds
    print(f"Generated solid: {len(volume.mesh.vertices)} vertices, {len(volume.mesh.faces)} faces")
    print(f"  Volume: {volume.volume:.3f}")
    print(f"  Bounds: {bounds[0].round(3).tolist()} .. {bounds[1].round(3).tolist()}")

    output = Path(args.output_dir) / f"{args.name or args.shape}.stl"
    print(f"Exporting to {output}...")
    kernel.export_stl(volume, output)
    if args.show:
        kernel.visualize(volume)
    print("Done!")
    return 0


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.batch and not args.params_csv:
        parser.error("--batch requires --params-csv")
    if not args.batch and not args.shape:
        parser.error("shape is required unless --batch is given")

    setup_logging(parse_level(args.log_level), args.log_file)
    try:
        return run_batch(args) if args.batch else run_single(args)
    except (ProtoforgeError, argparse.ArgumentTypeError) as e:
        logger.error("%s", e)
        print(f"Error: {e}")
        return 1


if __name__ == '__main__':
    raise SystemExit(main())
