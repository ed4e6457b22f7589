"""Command-line interface: render a JSON flow graph to SVG and/or PNG."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from collections.abc import Iterable
from pathlib import Path

from sankey_flow.config import NodeAlign, SankeyConfig
from sankey_flow.errors import ConfigError, CyclicGraphError, RenderCaptureError, ValidationError
from sankey_flow.graph import load_graph
from sankey_flow.layout import full_layout
from sankey_flow.renderers.model import build_render_model
from sankey_flow.renderers.png import PngExporter
from sankey_flow.renderers.svg import DiagramSurface

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_LAYOUT = 1
EXIT_USAGE = 2
EXIT_EXPORT = 3


class UsageError(Exception):
    pass


class FriendlyArgumentParser(argparse.ArgumentParser):
    def error(self, message: str) -> None:  # pragma: no cover - argparse callback
        raise UsageError(message)


def _build_parser() -> argparse.ArgumentParser:
    parser = FriendlyArgumentParser(
        prog="sankey-flow",
        description="Lay out a flow graph (JSON nodes/links) and render it as a Sankey diagram.",
    )
    parser.add_argument("input", help="Input .json graph with 'nodes' and 'links'")
    parser.add_argument("-o", "--output", help="Output .svg path (default: stdout)")
    parser.add_argument("--png", help="Also rasterize the diagram to this .png path")
    parser.add_argument("--layout-json", help="Write computed node/link geometry to this .json path")
    parser.add_argument("--width", type=float, help="Canvas width in pixels")
    parser.add_argument("--height", type=float, help="Canvas height in pixels")
    parser.add_argument("--title", help="Title shown above the diagram")
    parser.add_argument("--units", help="Unit suffix for values in tooltips")
    parser.add_argument("--align", choices=[a.value for a in NodeAlign], help="Node column alignment")
    parser.add_argument("--dpi", type=float, default=100, help="PNG resolution (default: 100)")
    parser.add_argument("--no-legend", action="store_true", help="Omit the category legend")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    return parser


def _config_from_args(args: argparse.Namespace) -> SankeyConfig:
    overrides: dict[str, object] = {}
    for key in ("width", "height", "title", "units", "align"):
        value = getattr(args, key)
        if value is not None:
            overrides[key] = value
    if args.no_legend:
        overrides["legend"] = False
    return SankeyConfig.from_mapping(overrides)


def _write(path: str, data: str | bytes) -> None:
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    if isinstance(data, bytes):
        target.write_bytes(data)
    else:
        target.write_text(data, encoding="utf-8")
    logger.info("wrote %s", target)


def _error(message: str) -> None:
    sys.stderr.write(f"error: {message}\n")


def main(argv: Iterable[str] | None = None) -> int:
    raw_argv = list(argv) if argv is not None else sys.argv[1:]
    try:
        args = _build_parser().parse_args(raw_argv)
        config = _config_from_args(args)
        exporter = PngExporter(dpi=args.dpi) if args.png else None
    except (UsageError, ConfigError) as exc:
        _error(str(exc))
        return EXIT_USAGE

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )

    try:
        graph = load_graph(args.input)
        result = full_layout(graph, config)
    except OSError as exc:
        _error(f"cannot read {args.input}: {exc.strerror or exc}")
        return EXIT_LAYOUT
    except (ValidationError, CyclicGraphError) as exc:
        _error(str(exc))
        return EXIT_LAYOUT

    surface = DiagramSurface()
    svg = surface.mount(build_render_model(result, config=config))

    try:
        if args.output:
            _write(args.output, svg + "\n")
        else:
            sys.stdout.write(svg + "\n")
        if args.layout_json:
            _write(args.layout_json, json.dumps(result.to_dict(), indent=2, ensure_ascii=False) + "\n")
    except OSError as exc:
        _error(f"cannot write {exc.filename or 'output'}: {exc.strerror or exc}")
        return EXIT_EXPORT

    if exporter is not None:
        try:
            _write(args.png, exporter.capture(surface))
        except (RenderCaptureError, OSError) as exc:
            _error(f"PNG export failed: {exc}")
            return EXIT_EXPORT

    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
