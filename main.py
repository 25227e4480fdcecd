#!/usr/bin/env python3
"""
TraceLens - SEG-Y inspection and rendering from the command line.

Commands:
    info      File summary (headers, trace count, encoding, byte order)
    headers   Spec-driven binary header map and optional trace header map
    trace     One decoded trace (header and samples) as JSON
    render    Render a range of traces to PNG

Usage:
    python main.py info line.sgy
    python main.py headers line.sgy --revision 1 --trace 0
    python main.py trace line.sgy 10 --max-samples 500
    python main.py render line.sgy -o line.png --start 0 --count 200 --mode wiggle

Defaults for rendering come from ~/.tracelens/settings.json; explicit flags win.
"""
import argparse
import json
import logging
import sys

from models.app_settings import get_settings
from models.errors import TraceLensError
from models.header_spec import FormatSpecRegistry, get_spec_registry
from rendering.pipeline import render_segy_view
from rendering.types import (
    ColormapType,
    RenderConfig,
    RenderMode,
    ViewportConfig,
    WiggleConfig,
    scaling_from_dict,
)
from seisio.segy_reader import SegyReader

logger = logging.getLogger(__name__)


def _print_json(payload):
    print(json.dumps(payload, indent=2, default=str))


def _spec_registry(settings):
    spec_dir = settings.get_spec_directory()
    if spec_dir is not None:
        return FormatSpecRegistry(spec_dir)
    return get_spec_registry()


def _open_reader(path, settings) -> SegyReader:
    reader = SegyReader.open(path, spec_registry=_spec_registry(settings))
    settings.add_recent_file(str(reader.file_path))
    return reader


def cmd_info(args, settings) -> int:
    with _open_reader(args.path, settings) as reader:
        _print_json(reader.data().to_dict())
    return 0


def cmd_headers(args, settings) -> int:
    with _open_reader(args.path, settings) as reader:
        payload = {'binary_header': reader.binary_header_map(args.revision)}
        if args.trace is not None:
            payload['trace_header'] = reader.load_trace_header_map(args.trace, args.revision)
        _print_json(payload)
    return 0


def cmd_trace(args, settings) -> int:
    max_samples = args.max_samples if args.max_samples is not None else settings.get_max_samples()
    with _open_reader(args.path, settings) as reader:
        trace = reader.load_single_trace(args.index, max_samples=max_samples)
    _print_json({
        'index': args.index,
        'header': trace.header.to_dict(),
        'format': trace.data.format.label,
        'samples': trace.data.to_float32().tolist(),
    })
    return 0


def cmd_render(args, settings) -> int:
    colormap = ColormapType.from_name(args.colormap or settings.get_colormap())
    mode = RenderMode.from_name(args.mode or settings.get_render_mode())
    if args.scaling:
        try:
            scaling_dict = json.loads(args.scaling)
        except json.JSONDecodeError as e:
            raise ValueError(f"--scaling is not valid JSON: {e}") from e
    else:
        scaling_dict = settings.get_amplitude_scaling()
    scaling = scaling_from_dict(scaling_dict)

    wiggle_dict = settings.get_wiggle_config()
    wiggle = WiggleConfig.from_dict(wiggle_dict) if wiggle_dict else None
    max_samples = args.max_samples if args.max_samples is not None else settings.get_max_samples()

    with _open_reader(args.path, settings) as reader:
        count = args.count
        if count is None:
            total = reader.total_traces or 0
            count = max(0, total - args.start)

        config = RenderConfig(
            viewport=ViewportConfig(
                start_trace=args.start,
                trace_count=count,
                width=args.width,
                height=args.height,
            ),
            colormap_type=colormap,
            scaling=scaling,
            render_mode=mode,
            wiggle_config=wiggle,
        )
        image = render_segy_view(
            reader, config,
            max_samples=max_samples,
            workers=settings.get_effective_workers(),
        )

    image.save(args.output)
    logger.info(f"Wrote {image.width}x{image.height} {image.format.value} to {args.output}")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='tracelens',
        description='Inspect and render SEG-Y seismic files',
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument('-v', '--verbose', action='store_true', help='Enable debug logging')
    subparsers = parser.add_subparsers(dest='command', required=True)

    p_info = subparsers.add_parser('info', help='Show file summary')
    p_info.add_argument('path', help='SEG-Y file')
    p_info.set_defaults(func=cmd_info)

    p_headers = subparsers.add_parser('headers', help='Decode headers with a revision field table')
    p_headers.add_argument('path', help='SEG-Y file')
    p_headers.add_argument('--revision', type=int, default=None,
                           help="Revision code, e.g. 0, 1, 2 or 513 (default: the file's own)")
    p_headers.add_argument('--trace', type=int, default=None,
                           help='Also decode the header of this trace index')
    p_headers.set_defaults(func=cmd_headers)

    p_trace = subparsers.add_parser('trace', help='Dump one trace as JSON')
    p_trace.add_argument('path', help='SEG-Y file')
    p_trace.add_argument('index', type=int, help='0-based trace index')
    p_trace.add_argument('--max-samples', type=int, default=None,
                         help='Decimate to at most this many samples')
    p_trace.set_defaults(func=cmd_trace)

    p_render = subparsers.add_parser('render', help='Render traces to PNG')
    p_render.add_argument('path', help='SEG-Y file')
    p_render.add_argument('-o', '--output', required=True, help='Output PNG path')
    p_render.add_argument('--start', type=int, default=0, help='First trace (default: 0)')
    p_render.add_argument('--count', type=int, default=None,
                          help='Number of traces (default: to end of file)')
    p_render.add_argument('--width', type=int, default=1024, help='Image width (default: 1024)')
    p_render.add_argument('--height', type=int, default=768, help='Image height (default: 768)')
    p_render.add_argument('--colormap', choices=[c.value for c in ColormapType], default=None,
                          help='Colormap (default: from settings)')
    p_render.add_argument('--mode', choices=[m.value for m in RenderMode], default=None,
                          help='Render mode (default: from settings)')
    p_render.add_argument('--scaling', default=None,
                          help='Amplitude scaling as JSON, e.g. \'{"type": "per-trace", "windowSize": 51}\'')
    p_render.add_argument('--max-samples', type=int, default=None,
                          help='Decimate traces to at most this many samples')
    p_render.set_defaults(func=cmd_render)

    return parser


def main(argv=None) -> int:
    """Main entry point for the command line tool."""
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    settings = get_settings()
    try:
        return args.func(args, settings)
    except TraceLensError as e:
        print(json.dumps(e.to_dict()), file=sys.stderr)
        return 1
    except ValueError as e:
        print(json.dumps({'name': 'ValidationError', 'message': str(e)}), file=sys.stderr)
        return 1


if __name__ == '__main__':
    sys.exit(main())
