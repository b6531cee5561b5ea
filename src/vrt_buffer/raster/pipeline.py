"""Directory-level pad and crop runs with per-tile error collection."""

from __future__ import annotations

import logging
import os
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Iterable

from vrt_buffer.raster.buffer import DEFAULT_NODATA, pad_tile
from vrt_buffer.raster.crop import crop_tile
from vrt_buffer.raster.errors import FATAL_ERRORS, TileIOError
from vrt_buffer.raster.info import DEFAULT_EXTENSIONS, inspect_tile, list_tiles
from vrt_buffer.raster.models import CropResult, PadResult, Tile
from vrt_buffer.raster.mosaic import load_mosaic

LOGGER = logging.getLogger(__name__)

TileOutput = PadResult | CropResult


@dataclass(frozen=True)
class TileWorkResult:
    """Per-tile output or failure."""

    tile: str
    result: TileOutput | None
    error_kind: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(frozen=True)
class RunResult:
    """Outcome of a pad or crop run over a directory."""

    command: str
    results: tuple[TileWorkResult, ...]

    @property
    def ok(self) -> bool:
        return all(result.ok for result in self.results)

    @property
    def failures(self) -> tuple[TileWorkResult, ...]:
        return tuple(result for result in self.results if not result.ok)

    @property
    def outputs(self) -> tuple[TileOutput, ...]:
        return tuple(result.result for result in self.results if result.result is not None)


def _coerce_tile_jobs(tile_jobs: int, tile_count: int) -> int:
    """Normalize requested worker count for per-tile processing."""
    jobs = int(tile_jobs)
    if tile_count <= 0:
        return 1
    if jobs < 0:
        raise ValueError("jobs must be >= 0")
    if jobs == 0:
        cpu_count = os.cpu_count() or 1
        return max(1, min(cpu_count, tile_count))
    return min(jobs, tile_count)


def _failure(tile: str, exc: Exception) -> TileWorkResult:
    kind = getattr(exc, "kind", type(exc).__name__)
    LOGGER.error("%s: %s", kind, exc, extra={"tile": tile})
    return TileWorkResult(tile, None, kind, str(exc))


def _run_tile_jobs(
    tiles: list[str],
    tile_jobs: int,
    worker: Callable[[str], TileOutput],
) -> list[TileWorkResult]:
    """Run per-tile workers serially or via a thread pool.

    Structural errors (geometry, grid alignment, incompatible tiles) abort the
    run; any other per-tile failure is recorded and the remaining tiles go on.
    Results are returned in the order of ``tiles`` regardless of scheduling.
    """
    results: dict[str, TileWorkResult] = {}
    if tile_jobs == 1 or len(tiles) <= 1:
        for tile in tiles:
            try:
                results[tile] = TileWorkResult(tile, worker(tile))
            except FATAL_ERRORS:
                raise
            except Exception as exc:
                results[tile] = _failure(tile, exc)
        return [results[tile] for tile in tiles]
    with ThreadPoolExecutor(max_workers=tile_jobs) as executor:
        future_map = {executor.submit(worker, tile): tile for tile in tiles}
        for future, tile in future_map.items():
            try:
                results[tile] = TileWorkResult(tile, future.result())
            except FATAL_ERRORS:
                for pending in future_map:
                    pending.cancel()
                raise
            except Exception as exc:
                results[tile] = _failure(tile, exc)
    return [results[tile] for tile in tiles]


def _check_distinct(source: Path, output: Path) -> None:
    if Path(source).resolve() == Path(output).resolve():
        raise ValueError(f"Output directory must differ from the input directory: {output}")


def _inspect_all(paths: Iterable[Path]) -> tuple[list[Tile], list[TileWorkResult]]:
    """Read tile metadata, collecting unreadable tiles as failures."""
    tiles: list[Tile] = []
    failures: list[TileWorkResult] = []
    for path in paths:
        try:
            tiles.append(inspect_tile(path))
        except TileIOError as exc:
            failures.append(_failure(path.name, exc))
    return tiles, failures


def pad_directory(
    input_dir: Path,
    output_dir: Path,
    mosaic_ref: Path | None,
    margin: int,
    *,
    jobs: int = 1,
    default_nodata: float = DEFAULT_NODATA,
    compression: str | None = None,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> RunResult:
    """Pad every tile in ``input_dir`` by ``margin`` pixels into ``output_dir``."""
    if margin < 0:
        raise ValueError(f"Margin must be >= 0, got {margin}.")
    input_dir = Path(input_dir)
    output_dir = Path(output_dir)
    _check_distinct(input_dir, output_dir)
    tiles, failures = _inspect_all(list_tiles(input_dir, extensions))
    if not tiles:
        LOGGER.warning("No readable tiles found in %s", input_dir)
        return RunResult("pad", tuple(failures))

    mosaic = load_mosaic(Path(mosaic_ref) if mosaic_ref else None, tiles)
    LOGGER.info(
        "Padding %s tile(s) by %s pixel(s) using a %sx%s mosaic",
        len(tiles),
        margin,
        mosaic.extent.width,
        mosaic.extent.height,
    )
    output_dir.mkdir(parents=True, exist_ok=True)
    by_name = {tile.name: tile for tile in tiles}

    def worker(name: str) -> PadResult:
        return pad_tile(
            by_name[name],
            margin,
            mosaic,
            output_dir / name,
            default_nodata=default_nodata,
            compression=compression,
        )

    names = sorted(by_name)
    results = _run_tile_jobs(names, _coerce_tile_jobs(jobs, len(names)), worker)
    ordered = sorted([*results, *failures], key=lambda result: result.tile)
    return RunResult("pad", tuple(ordered))


def crop_directory(
    original_dir: Path,
    padded_dir: Path,
    output_dir: Path,
    *,
    margin: int | None = None,
    jobs: int = 1,
    compression: str | None = None,
    extensions: Iterable[str] = DEFAULT_EXTENSIONS,
) -> RunResult:
    """Trim every padded tile back to the extent of the same-named original."""
    original_dir = Path(original_dir)
    padded_dir = Path(padded_dir)
    output_dir = Path(output_dir)
    _check_distinct(padded_dir, output_dir)
    _check_distinct(original_dir, output_dir)
    names = [path.name for path in list_tiles(padded_dir, extensions)]
    if not names:
        LOGGER.warning("No padded tiles found in %s", padded_dir)
        return RunResult("crop", ())
    LOGGER.info("Cropping %s tile(s) into %s", len(names), output_dir)
    output_dir.mkdir(parents=True, exist_ok=True)

    def worker(name: str) -> CropResult:
        original_path = original_dir / name
        if not original_path.exists():
            raise TileIOError(name, original_path, "original tile not found")
        original = inspect_tile(original_path)
        return crop_tile(
            original,
            padded_dir / name,
            output_dir / name,
            margin,
            compression=compression,
        )

    results = _run_tile_jobs(names, _coerce_tile_jobs(jobs, len(names)), worker)
    return RunResult("crop", tuple(results))
