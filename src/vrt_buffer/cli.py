"""Command-line interface for vrt-buffer."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Any

import jsonschema

from vrt_buffer import __version__
from vrt_buffer.config import RunConfig, load_run_config
from vrt_buffer.logging_utils import LogOptions, configure_logging
from vrt_buffer.raster.errors import VrtBufferError
from vrt_buffer.raster.info import inspect_tile, list_tiles
from vrt_buffer.raster.mosaic import write_vrt
from vrt_buffer.raster.pipeline import RunResult, crop_directory, pad_directory
from vrt_buffer.reporting import build_run_report, write_run_report

LOGGER = logging.getLogger("vrt_buffer.cli")

EXIT_OK = 0
EXIT_TILE_FAILURES = 1
EXIT_FATAL = 2


def _add_pad_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the pad subcommand."""
    pad = subparsers.add_parser(
        "pad",
        help=(
            "Pad rasters with a border of pixels sourced from adjacent rasters "
            "through a VRT mosaic."
        ),
    )
    pad.add_argument("-i", "--input", required=True, help="Input raster directory.")
    pad.add_argument("-o", "--output", required=True, help="Output directory for padded rasters.")
    pad.add_argument(
        "--vrt",
        help=(
            "VRT describing the area including adjacent rasters (default: input tiles). "
            "Long form only; -v is the global --verbose flag."
        ),
    )
    pad.add_argument("-p", "--pad", type=int, help="Number of pixels to pad each side with.")
    pad.add_argument("--jobs", type=int, help="Parallel tile workers (0 = CPU count).")
    pad.add_argument(
        "--nodata",
        type=float,
        help="Fill value for tiles that declare no no-data value.",
    )
    pad.add_argument("--compress", help="GeoTIFF compression (e.g. deflate, lzw).")
    pad.add_argument("--report", help="Optional path for a JSON run report.")


def _add_crop_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the crop subcommand."""
    crop = subparsers.add_parser(
        "crop",
        help="Crop processed rasters back to the extent of the original rasters.",
    )
    crop.add_argument("original", help="Original raster directory, used as the crop reference.")
    crop.add_argument("input", help="Padded (processed) raster directory.")
    crop.add_argument("output", help="Output directory for trimmed rasters.")
    crop.add_argument(
        "--margin",
        type=int,
        help="Margin used when padding (default: the margin recorded in each padded file).",
    )
    crop.add_argument("--jobs", type=int, help="Parallel tile workers (0 = CPU count).")
    crop.add_argument("--compress", help="GeoTIFF compression (e.g. deflate, lzw).")
    crop.add_argument("--report", help="Optional path for a JSON run report.")


def _add_vrt_parser(subparsers: argparse._SubParsersAction) -> None:
    """Register the vrt subcommand."""
    vrt = subparsers.add_parser("vrt", help="Write a VRT mosaic reference for a tile directory.")
    vrt.add_argument("-i", "--input", required=True, help="Input raster directory.")
    vrt.add_argument("-o", "--output", required=True, help="Path of the VRT to write.")


def _pick(value: Any, default: Any) -> Any:
    return default if value is None else value


def _finish(run: RunResult, options: dict[str, Any], report_path: str | None) -> int:
    """Write the optional report and log the failure summary."""
    if report_path:
        write_run_report(build_run_report(run, options), Path(report_path))
    if run.ok:
        LOGGER.info("%s completed for %s tile(s).", run.command, len(run.results))
        return EXIT_OK
    LOGGER.error(
        "%s completed with %s failed tile(s) out of %s.",
        run.command,
        len(run.failures),
        len(run.results),
    )
    for failure in run.failures:
        LOGGER.error("%s: %s", failure.error_kind, failure.error, extra={"tile": failure.tile})
    return EXIT_TILE_FAILURES


def _run_pad(args: argparse.Namespace, config: RunConfig, parser: argparse.ArgumentParser) -> int:
    margin = _pick(args.pad, config.margin)
    if margin is None:
        parser.error("--pad is required for pad (or set margin in the config file)")
    if margin < 0:
        parser.error("--pad must be >= 0")
    options: dict[str, Any] = {
        "input": args.input,
        "output": args.output,
        "vrt": args.vrt or (str(config.vrt) if config.vrt else None),
        "margin": margin,
        "jobs": _pick(args.jobs, config.jobs),
        "default_nodata": _pick(args.nodata, config.default_nodata),
        "compression": _pick(args.compress, config.compression),
        "extensions": list(config.extensions),
    }
    run = pad_directory(
        Path(args.input),
        Path(args.output),
        Path(options["vrt"]) if options["vrt"] else None,
        margin,
        jobs=options["jobs"],
        default_nodata=options["default_nodata"],
        compression=options["compression"],
        extensions=config.extensions,
    )
    return _finish(run, options, args.report)


def _run_crop(args: argparse.Namespace, config: RunConfig) -> int:
    options: dict[str, Any] = {
        "original": args.original,
        "input": args.input,
        "output": args.output,
        "margin": _pick(args.margin, config.margin),
        "jobs": _pick(args.jobs, config.jobs),
        "compression": _pick(args.compress, config.compression),
        "extensions": list(config.extensions),
    }
    run = crop_directory(
        Path(args.original),
        Path(args.input),
        Path(args.output),
        margin=options["margin"],
        jobs=options["jobs"],
        compression=options["compression"],
        extensions=config.extensions,
    )
    return _finish(run, options, args.report)


def _run_vrt(args: argparse.Namespace, config: RunConfig) -> int:
    tiles = [inspect_tile(path) for path in list_tiles(Path(args.input), config.extensions)]
    if not tiles:
        LOGGER.error("No tiles found in %s", args.input)
        return EXIT_FATAL
    path = write_vrt(tiles, Path(args.output))
    LOGGER.info("Wrote VRT for %s tile(s) to %s", len(tiles), path)
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    """Run the CLI entrypoint and return an exit code."""
    parser = argparse.ArgumentParser(
        prog="vrt-buffer",
        description=(
            "VRT-BUFFER: pad raster tiles with pixels from adjacent tiles to avoid edge "
            "effects in moving-window calculations, then crop the results back."
        ),
    )
    parser.add_argument("--version", action="version", version=__version__)
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Increase log verbosity (repeatable).",
    )
    parser.add_argument(
        "--quiet",
        action="store_true",
        help="Reduce log output to warnings and errors.",
    )
    parser.add_argument("--log-json", action="store_true", help="Emit logs as JSON on stderr.")
    parser.add_argument("--log-file", help="Optional path for JSON log output.")
    parser.add_argument("--config", help="JSON run config with default options.")

    subparsers = parser.add_subparsers(dest="command", required=True)
    _add_pad_parser(subparsers)
    _add_crop_parser(subparsers)
    _add_vrt_parser(subparsers)
    subparsers.add_parser("version", help="Print the current version.")

    args = parser.parse_args(argv)
    configure_logging(
        LogOptions(
            verbose=args.verbose or 0,
            quiet=bool(args.quiet),
            log_file=Path(args.log_file) if args.log_file else None,
            json_console=bool(args.log_json),
        )
    )

    if args.command == "version":
        print(__version__)
        return EXIT_OK

    try:
        config = load_run_config(Path(args.config) if args.config else None)
    except (OSError, ValueError, TypeError, jsonschema.ValidationError) as exc:
        LOGGER.error("Invalid run config: %s", exc)
        return EXIT_FATAL

    try:
        if args.command == "pad":
            return _run_pad(args, config, parser)
        if args.command == "crop":
            return _run_crop(args, config)
        if args.command == "vrt":
            return _run_vrt(args, config)
    except VrtBufferError as exc:
        LOGGER.error("%s: %s", exc.kind, exc)
        return EXIT_FATAL
    except (OSError, ValueError) as exc:
        LOGGER.error("%s", exc)
        return EXIT_FATAL

    parser.error("Unknown command")
    return EXIT_FATAL


if __name__ == "__main__":
    raise SystemExit(main())
