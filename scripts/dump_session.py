#!/usr/bin/env python3
"""Dump everything pyrmbt can fetch for one client identity.

This script bootstraps (or reuses) a client UUID and calls every
read-only endpoint, printing both the parsed model fields **and** the raw
server JSON so you can spot fields that aren't parsed yet.

Usage
-----
Optionally set environment variables and run::

    export RMBT_CLIENT_UUID="..."     # reuse an existing identity
    python scripts/dump_session.py

Options::

    --history N          Number of history rows to fetch (default: 5)
    --json               Output as machine-readable JSON
    --output FILE        Write JSON output to FILE instead of stdout
    --skip-ip            Skip the IPv4/IPv6 address checks
    --skip-qos           Skip the QoS parameter request
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

# Allow running from the repo root without installing the package.
_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pydantic import BaseModel  # noqa: E402

from pyrmbt import RmbtConfig, RmbtControlClient, RmbtError  # noqa: E402

# ── helpers ──────────────────────────────────────────────────


def _section(title: str) -> str:
    line = "=" * 60
    return f"\n{line}\n  {title}\n{line}"


def _model_fields(model: BaseModel) -> dict[str, Any]:
    return model.model_dump(exclude={"raw"}, mode="json")


def _print_model(label: str, model: BaseModel, out: list[str]) -> dict[str, Any]:
    fields = _model_fields(model)
    out.append(f"\n--- {label} ---")
    for key, value in fields.items():
        out.append(f"  {key}: {value}")
    raw = getattr(model, "raw", None)
    if raw:
        out.append(f"\n--- {label} (raw) ---")
        out.append(json.dumps(raw, indent=2, default=str, ensure_ascii=False))
    return fields


async def _step(name: str, coro: Any, out: list[str], result: dict[str, Any]) -> Any:
    try:
        value = await coro
    except RmbtError as exc:
        out.append(f"\n--- {name} ---\n  ERROR ({exc.category.value}): {exc}")
        result[name] = {"error": str(exc), "category": exc.category.value}
        return None
    if isinstance(value, BaseModel):
        result[name] = _print_model(name, value, out)
    elif isinstance(value, list):
        out.append(f"\n--- {name} ({len(value)} item(s)) ---")
        result[name] = [_print_model(f"{name}[{i}]", v, out) for i, v in enumerate(value)]
    else:
        out.append(f"\n--- {name} ---\n  {value}")
        result[name] = value
    return value


# ── main ─────────────────────────────────────────────────────


async def main() -> None:
    parser = argparse.ArgumentParser(description="Dump all data pyrmbt can fetch from the control server")
    parser.add_argument("--history", type=int, default=5, help="Number of history rows to fetch")
    parser.add_argument("--json", action="store_true", dest="json_mode", help="Output machine-readable JSON")
    parser.add_argument("--output", "-o", help="Write JSON output to FILE instead of stdout")
    parser.add_argument("--skip-ip", action="store_true", help="Skip the IPv4/IPv6 address checks")
    parser.add_argument("--skip-qos", action="store_true", help="Skip the QoS parameter request")
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable debug logging")
    args = parser.parse_args()

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING)

    config = RmbtConfig.from_env()
    out: list[str] = [_section("SETTINGS")]
    result: dict[str, Any] = {}

    async with RmbtControlClient(config) as client:
        await _step("settings", client.get_settings(), out, result)
        result["uuid"] = client.uuid
        out.append(f"\n  client uuid: {client.uuid}")
        out.append(f"  base url: {client.base_url}")
        out.append(f"  qos test names: {dict(client.qos_test_names)}")

        out.append(_section("NEWS AND STATUS"))
        await _step("news", client.get_news(), out, result)
        await _step("roaming", client.get_roaming_status(), out, result)

        if not args.skip_ip:
            out.append(_section("IP"))
            await _step("ipv4", client.get_ip(4), out, result)
            await _step("ipv6", client.get_ip(6), out, result)

        if not args.skip_qos:
            out.append(_section("QOS"))
            await _step("qos_params", client.get_qos_params(), out, result)

        out.append(_section("HISTORY"))
        page = await _step("history", client.get_history(length=args.history), out, result)
        if page is not None and page.items:
            latest = page.items[0]
            if latest.test_uuid:
                await _step("history_result", client.get_history_result(latest.test_uuid), out, result)
                if latest.qos_result_available:
                    await _step("history_qos", client.get_history_qos_result(latest.test_uuid), out, result)
            if latest.open_test_uuid:
                await _step(
                    "open_data",
                    client.get_history_open_data_result(latest.open_test_uuid),
                    out,
                    result,
                )

    # ── Output ──
    if args.json_mode or args.output:
        payload = json.dumps(result, indent=2, default=str, ensure_ascii=False)
        if args.output:
            Path(args.output).write_text(payload, encoding="utf-8")
            print(f"JSON written to {args.output}", file=sys.stderr)
        else:
            print(payload)
    else:
        print("\n".join(out))


if __name__ == "__main__":
    asyncio.run(main())
