from __future__ import annotations

import argparse
import json
import logging
from dataclasses import asdict
from pathlib import Path

from brandreport.assets import DirectoryAssetProvider
from brandreport.config import get_settings
from brandreport.errors import RenderError
from brandreport.exporter import export_report
from brandreport.render.blocks import classify_lines, normalize_markdown_tables, split_lines
from brandreport.storage import export_filename
from brandreport.types import RenderRequest, section_label_for


def _print_json(payload: dict) -> None:
    print(json.dumps(payload, ensure_ascii=False, indent=2))


def _read_parts(paths: list[str]) -> list[str] | None:
    parts: list[str] = []
    for raw in paths:
        path = Path(raw).expanduser().resolve()
        if not path.exists() or not path.is_file():
            _print_json({'status': 'error', 'message': f'Report part not found: {path}'})
            return None
        parts.append(path.read_text(encoding='utf-8'))
    return parts


def _resolve_section(args: argparse.Namespace) -> str:
    if args.report_type:
        return section_label_for(args.report_type)
    return args.section


def cmd_render(args: argparse.Namespace) -> int:
    settings = get_settings()
    parts = _read_parts(args.part or [])
    if parts is None:
        return 2

    assets_dir = Path(args.assets).expanduser().resolve() if args.assets else settings.assets_dir
    request = RenderRequest(
        brand_name=args.brand,
        section_label=_resolve_section(args),
        report_parts=parts,
    )
    try:
        path, result = export_report(
            request,
            DirectoryAssetProvider(assets_dir),
            settings=settings,
            out_dir=Path(args.out).expanduser().resolve() if args.out else None,
        )
    except RenderError as exc:
        _print_json({'status': 'error', 'message': str(exc)})
        return 2

    _print_json(
        {
            'status': 'ok',
            'path': str(path),
            'filename': result.filename,
            'pages': result.page_count,
            'body_pages': result.body_page_count,
            'final': result.is_final,
        }
    )
    return 0


def cmd_blocks(args: argparse.Namespace) -> int:
    parts = _read_parts([args.part])
    if parts is None:
        return 2
    blocks = classify_lines(split_lines(normalize_markdown_tables(parts[0])))
    _print_json(
        {
            'blocks': [{'type': type(block).__name__, **asdict(block)} for block in blocks],
        }
    )
    return 0


def cmd_filename(args: argparse.Namespace) -> int:
    _print_json({'filename': export_filename(args.brand, _resolve_section(args))})
    return 0


def _add_section_arguments(parser: argparse.ArgumentParser) -> None:
    group = parser.add_mutually_exclusive_group(required=True)
    group.add_argument('--section', help='Section label, e.g. "Discovery"')
    group.add_argument(
        '--report-type',
        choices=['discovery', 'messaging', 'audience', 'complete'],
        help='Report type mapped to its section label',
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Render brand reports from markdown to PDF')
    sub = parser.add_subparsers(dest='command', required=True)

    render = sub.add_parser('render', help='Render one or more markdown parts to a PDF')
    render.add_argument('--brand', required=True, help='Brand name for the cover and filename')
    _add_section_arguments(render)
    render.add_argument('--part', action='append', help='Markdown file; repeat for multiple parts')
    render.add_argument('--assets', required=False, help='Asset directory (fonts, covers, logo)')
    render.add_argument('--out', required=False, help='Output directory')
    render.set_defaults(func=cmd_render)

    blocks = sub.add_parser('blocks', help='Show how each line of a part is classified')
    blocks.add_argument('--part', required=True, help='Markdown file')
    blocks.set_defaults(func=cmd_blocks)

    filename = sub.add_parser('filename', help='Print the output filename for a brand and section')
    filename.add_argument('--brand', required=True)
    _add_section_arguments(filename)
    filename.set_defaults(func=cmd_filename)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, str(get_settings().log_level).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )
    return int(args.func(args))


if __name__ == '__main__':
    raise SystemExit(main())
