#!/usr/bin/env python3
"""Dump every preference the pyprefs library can classify.

Resolves the preference store for an organization/product pair, lists all
keys with their inferred type and value, and optionally keeps watching the
store for external changes.

Usage
-----
Set environment variables (or pass the options) and run::

    export PREFS_ORGANIZATION="Acme"
    export PREFS_PRODUCT="Rocket Game"
    python scripts/dump_prefs.py

Options::

    --org NAME           Organization name (overrides PREFS_ORGANIZATION)
    --product NAME       Product name (overrides PREFS_PRODUCT)
    --platform NAME      windows, macos, linux (default: detect)
    --json               Output as machine-readable JSON
    --output FILE        Write output to FILE instead of stdout
    --watch SECONDS      Keep watching and re-dump on every change
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyprefs import (  # noqa: E402
    OsFamily,
    PreferenceAccessor,
    PreferenceEntry,
    PrefsConfig,
    collect_entries,
    threadsafe_listener,
)

# ── helpers ──────────────────────────────────────────────────


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _entry_to_dict(entry: PreferenceEntry) -> dict[str, Any]:
    return {
        "key": entry.key,
        "type": str(entry.value.type),
        "value": entry.value.value,
        "host_defined": entry.host_defined,
    }


def _format_entries(entries: list[PreferenceEntry], out: list[str]) -> None:
    user = [e for e in entries if not e.host_defined]
    host = [e for e in entries if e.host_defined]
    for title, group in (("User defined", user), ("Host defined", host)):
        out.append(f"  {title} ({len(group)})")
        for entry in group:
            out.append(f"    {entry.key:<32} {entry.value.type:<7} {entry.value.value!r}")


def dump(prefs: PreferenceAccessor, *, reload: bool) -> dict[str, Any]:
    entries = collect_entries(prefs, reload=reload)
    return {
        "timestamp": datetime.now(UTC).isoformat(),
        "store": prefs.descriptor.display_path,
        "kind": str(prefs.descriptor.kind),
        "stale": prefs.stale,
        "keys": len(prefs.list_keys()),
        "entries": [_entry_to_dict(e) for e in entries],
        "_entries": entries,
    }


def _emit(result: dict[str, Any], *, json_mode: bool, output: str | None) -> None:
    entries: list[PreferenceEntry] = result.pop("_entries")
    if json_mode:
        payload = json.dumps(result, indent=2, default=str, ensure_ascii=False)
        if output:
            Path(output).write_text(payload, encoding="utf-8")
            print(f"JSON written to {output}", file=sys.stderr)
        else:
            print(payload)
        return

    out: list[str] = [_section("pyprefs dump_prefs")]
    out.append(f"  time      : {result['timestamp']}")
    out.append(f"  store     : {result['store']} ({result['kind']})")
    out.append(f"  keys      : {result['keys']} ({len(entries)} classified)")
    if result["stale"]:
        out.append("  !! store could not be parsed, showing last snapshot")
    _format_entries(entries, out)
    text = "\n".join(out)
    if output:
        Path(output).write_text(text + "\n", encoding="utf-8")
        print(f"Output written to {output}")
    else:
        print(text)


async def watch(prefs: PreferenceAccessor, seconds: float, *, json_mode: bool, output: str | None) -> None:
    loop = asyncio.get_running_loop()
    changed = asyncio.Event()
    prefs.add_change_listener(threadsafe_listener(loop, changed.set))
    prefs.start_monitoring()
    if not prefs.is_monitoring():
        print("!! change monitoring is not available for this store", file=sys.stderr)
        return

    deadline = loop.time() + seconds
    try:
        while (remaining := deadline - loop.time()) > 0:
            try:
                await asyncio.wait_for(changed.wait(), timeout=remaining)
            except TimeoutError:
                break
            changed.clear()
            _emit(dump(prefs, reload=True), json_mode=json_mode, output=output)
    finally:
        prefs.stop_monitoring()


async def main() -> None:
    parser = argparse.ArgumentParser(
        description="Dump all preferences pyprefs can classify for debugging / development.",
    )
    parser.add_argument("--org", help="Organization name (default: PREFS_ORGANIZATION)")
    parser.add_argument("--product", help="Product name (default: PREFS_PRODUCT)")
    parser.add_argument(
        "--platform",
        choices=[p.value for p in OsFamily],
        help="Target platform (default: detect)",
    )
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write output to FILE instead of stdout")
    parser.add_argument("--watch", type=float, default=0.0, metavar="SECONDS", help="Watch for changes")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    overrides: dict[str, Any] = {}
    if args.org:
        overrides["organization"] = args.org
    if args.product:
        overrides["product"] = args.product
    if args.platform:
        overrides["platform"] = OsFamily(args.platform)
    config = PrefsConfig.from_env(**overrides)

    with PreferenceAccessor(config) as prefs:
        _emit(dump(prefs, reload=False), json_mode=args.json_mode, output=args.output)
        if args.watch > 0:
            await watch(prefs, args.watch, json_mode=args.json_mode, output=args.output)


if __name__ == "__main__":
    asyncio.run(main())
