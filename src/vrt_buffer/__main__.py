"""Module entrypoint for `python -m vrt_buffer`."""

from __future__ import annotations

from vrt_buffer.cli import main

if __name__ == "__main__":
    raise SystemExit(main())
