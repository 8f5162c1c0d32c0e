#!/usr/bin/env python3
"""
Room Tools Command Line

Inspect, count and round-trip FORM data files.

Usage:
    gmroom info data.win
    gmroom count data.win --config gmroom.ini
    gmroom roundtrip data.win --output data_resaved.win
"""

import argparse
import sys
from pathlib import Path

from gmroom.config import CodecConfig, load_config
from gmroom.container import GameDataReader, GameDataWriter
from gmroom.errors import CodecError
from gmroom.room.counting import count_room_objects
from gmroom.utils import init_logging, log, logError, logWarning, print_summary


def _load_config(path) -> CodecConfig:
    if path is None:
        return CodecConfig()
    return load_config(path)


def cmd_info(args, config: CodecConfig) -> bool:
    game = GameDataReader.from_file(args.file, config)
    info = game.general_info

    log("\nGeneral info:")
    log(f"  Name:      {info.name}")
    log(f"  Bytecode:  {info.bytecode_version}")
    log(f"  Declared:  {info.version_context()}")
    log(f"  Detected:  {game.version}{' (LTS)' if game.version.lts else ''}")
    log(f"  Chunks:    {' '.join(game.chunk_order)}")

    log(f"\nRooms ({len(game.rooms)}):")
    for room in game.rooms:
        log(f"  {room.name}: {room.width}x{room.height}, "
            f"{len(room.game_objects)} objects, {len(room.tiles)} tiles, {len(room.layers)} layers")
        for layer in sorted(room.layers, key=lambda l: l.depth):
            log(f"    [{layer.depth:>6}] {layer.name} ({layer.layer_type.name.lower()})")

    if game.resolution is not None:
        report = game.resolution
        log(f"\nReferences: {report.resolved} resolved, {report.null} null, "
            f"{report.dangling_count} dangling, {report.placeholders} placeholder instance(s)")
    return True


def cmd_count(args, config: CodecConfig) -> bool:
    data = Path(args.file).read_bytes()
    count = count_room_objects(data, config)
    log(f"{args.file}: {count} room objects")
    return True


def cmd_roundtrip(args, config: CodecConfig) -> bool:
    path = Path(args.file)
    original = path.read_bytes()
    game = GameDataReader(original, config, source=str(path)).load()

    counted = count_room_objects(original, config)
    if counted != game.room_object_count:
        logWarning(f"Counting pass found {counted} objects, load materialized {game.room_object_count}")

    writer = GameDataWriter(game)
    if args.output:
        writer.write(args.output)
        resaved = Path(args.output).read_bytes()
    else:
        resaved = writer.serialize()

    if resaved == original:
        log(f"Round-trip identical ({len(original)} bytes)")
        return True

    first = next((i for i, (a, b) in enumerate(zip(original, resaved)) if a != b),
                 min(len(original), len(resaved)))
    logError(f"Round-trip differs: {len(original)} -> {len(resaved)} bytes, "
             f"first difference at offset 0x{first:X}")
    return False


def main():
    parser = argparse.ArgumentParser(
        description='Inspect and round-trip GameMaker FORM data files',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Example:
    gmroom info data.win

    # Count room objects with a version floor from gmroom.ini:
    gmroom count data.win --config gmroom.ini

    # Load, save and compare:
    gmroom roundtrip data.win --output data_resaved.win
        """
    )
    parser.add_argument('--config', default=None,
                        help='Path to gmroom.ini configuration file')

    subparsers = parser.add_subparsers(dest='command', required=True)

    info_parser = subparsers.add_parser('info', help='Show general info, version and rooms')
    info_parser.add_argument('file', help='Data file (data.win)')
    info_parser.set_defaults(func=cmd_info)

    count_parser = subparsers.add_parser('count', help='Count addressable room objects')
    count_parser.add_argument('file', help='Data file (data.win)')
    count_parser.set_defaults(func=cmd_count)

    roundtrip_parser = subparsers.add_parser('roundtrip', help='Load and save, report byte equality')
    roundtrip_parser.add_argument('file', help='Data file (data.win)')
    roundtrip_parser.add_argument('--output', default=None,
                                  help='Write the re-saved file here')
    roundtrip_parser.set_defaults(func=cmd_roundtrip)

    args = parser.parse_args()

    try:
        config = _load_config(args.config)
    except (OSError, ValueError) as e:
        init_logging()
        logError(f"{e}")
        print_summary()
        sys.exit(1)

    init_logging(Path(config.log_path) if config.log_path else None)
    if args.config:
        config.print_summary()

    try:
        ok = args.func(args, config)
    except (CodecError, OSError) as e:
        logError(f"{e}")
        ok = False

    print_summary()
    if not ok:
        sys.exit(1)


if __name__ == '__main__':
    main()
