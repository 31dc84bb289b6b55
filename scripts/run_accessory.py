#!/usr/bin/env python3
"""Run a ZockZeit accessory outside of a hub and print every characteristic push.

Configuration sourcing:
- ``--config PATH``: either a single accessory block or a hub config file
  with an ``accessories`` list (the first block whose ``accessory`` is
  ``ZockZeit``, or the one matching ``--name``, is used).
- otherwise ``ZOCKZEIT_*`` environment variables.

Optional commands are issued once polling has started:
``--set-target MIN``, ``--on``, ``--off``, ``--reset``.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any

_repo = Path(__file__).resolve().parent.parent
_src = _repo / "src"
if _src.is_dir():
    sys.path.insert(0, str(_src))

from pyzockzeit import AccessoryConfig, CharacteristicId, ZockZeitAccessory, ZockZeitError  # noqa: E402


class PrintNotifier:
    def update_characteristic(self, characteristic: CharacteristicId, value: Any) -> None:
        print(f"[update] {characteristic.value} = {value!r}")


def _load_block(path: Path, name: str | None) -> dict[str, Any]:
    data = json.loads(path.read_text(encoding="utf-8"))
    if not isinstance(data, dict):
        raise SystemExit(f"{path}: expected a JSON object")
    accessories = data.get("accessories")
    if not isinstance(accessories, list):
        return data
    for block in accessories:
        if not isinstance(block, dict):
            continue
        if name is not None and block.get("name") == name:
            return block
        if name is None and block.get("accessory") == "ZockZeit":
            return block
    raise SystemExit(f"{path}: no matching ZockZeit accessory block")


async def _run(args: argparse.Namespace) -> int:
    if args.config is not None:
        config = AccessoryConfig.from_mapping(_load_block(args.config, args.name))
    else:
        config = AccessoryConfig.from_env()

    async with ZockZeitAccessory(config, notifier=PrintNotifier()) as accessory:
        for service in accessory.services():
            print(f"[service] {service.kind.value}: {service.name}")

        try:
            if args.set_target is not None:
                value = await accessory.dispatcher.set_target(args.set_target)
                print(f"[command] target set to {value}")
            if args.on:
                await accessory.dispatcher.set_on(True)
                print("[command] turned on")
            if args.off:
                await accessory.dispatcher.set_on(False)
                print("[command] turned off")
            if args.reset:
                await accessory.dispatcher.reset(True)
                print("[command] reset")
        except ZockZeitError as exc:
            print(f"[command] failed: {exc}")

        await asyncio.sleep(args.duration)
        print(f"[state] {accessory.snapshot().model_dump_json()}")
    return 0


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__, formatter_class=argparse.RawDescriptionHelpFormatter)
    parser.add_argument("--config", type=Path, default=None, help="Accessory block or hub config JSON")
    parser.add_argument("--name", default=None, help="Accessory name to pick from a hub config")
    parser.add_argument("--duration", type=float, default=30.0, help="Seconds to keep polling")
    parser.add_argument("--set-target", type=int, default=None, help="Push a new target (minutes)")
    parser.add_argument("--on", action="store_true", help="Turn the timer on")
    parser.add_argument("--off", action="store_true", help="Turn the timer off")
    parser.add_argument("--reset", action="store_true", help="Reset the timer")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable DEBUG logging")
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(_run(args))
    except KeyboardInterrupt:
        return 130


if __name__ == "__main__":
    raise SystemExit(main())
