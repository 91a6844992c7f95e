#!/usr/bin/env python3
"""Command-line interface for running the Neutopia randomizer."""

import argparse
import json
import sys
from pathlib import Path
import logging

# Ensure project root is on the import path when executing from the CLI folder
ROOT_DIR = Path(__file__).resolve().parents[1]
if str(ROOT_DIR) not in sys.path:
    sys.path.insert(0, str(ROOT_DIR))

from flags import BooleanFlag, EnumFlag, FlagCategory, FlagDefinition, FlagRegistry, Flags, IntegerFlag
from logic.boundary import ErrorKind, randomize
from logic.checks import CrossCheck, DumpChestRecords, LoadChecks
from logic.checksum import ChecksumError, DecodePassword, SaveStateWindow
from logic.errors import MalformedInputError
from logic.patch_catalog import BuildCatalog
from logic.rom_info import IdentifyRom
from rom.chest_table import ChestTables
from rom.memory_image import MemoryImage
from version import __version__

EXIT_OK = 0
EXIT_USAGE = 2
EXIT_MALFORMED_INPUT = 3
EXIT_GENERATION_FAILED = 4
EXIT_INTERNAL = 5

EXIT_CODES = {
    ErrorKind.MALFORMED_INPUT: EXIT_MALFORMED_INPUT,
    ErrorKind.GENERATION_FAILED: EXIT_GENERATION_FAILED,
    ErrorKind.INTERNAL: EXIT_INTERNAL,
}


# Off switches for boolean flags whose --no-<key> form would read badly
OFF_SWITCHES = {
    "no_downgrade": "--allow-downgrade",
}


def _switch(key: str) -> str:
    return "--" + key.replace("_", "-")


def _flag_help(definition: FlagDefinition) -> str:
    if definition.category == FlagCategory.HIDDEN:
        return argparse.SUPPRESS
    text = definition.help_text
    if isinstance(definition, EnumFlag):
        options = "; ".join(
            f"{option.value} ({option.display_name}): {option.help_text.rstrip('.')}"
            for option in definition.options)
        return f"{text} {options}. Default: {definition.get_default()}."
    if isinstance(definition, BooleanFlag):
        return f"{text} Default: {'on' if definition.get_default() else 'off'}."
    return f"{text} Default: {definition.get_default()}."


def add_flag_arguments(parser: argparse.ArgumentParser) -> None:
    """One option per registered flag, grouped by category."""
    by_category = FlagRegistry.get_flags_by_category()
    for category in sorted(by_category):
        group = parser.add_argument_group(category.display_name)
        for definition in sorted(by_category[category], key=lambda d: d.key):
            switch = _switch(definition.key)
            if isinstance(definition, EnumFlag):
                group.add_argument(
                    switch,
                    dest=definition.key,
                    choices=list(definition.option_dict),
                    help=_flag_help(definition))
            elif isinstance(definition, IntegerFlag):
                group.add_argument(
                    switch,
                    dest=definition.key,
                    type=int,
                    metavar="N",
                    help=_flag_help(definition))
            elif isinstance(definition, BooleanFlag):
                switches = group.add_mutually_exclusive_group()
                switches.add_argument(
                    switch,
                    dest=definition.key,
                    action="store_true",
                    default=None,
                    help=_flag_help(definition))
                switches.add_argument(
                    OFF_SWITCHES.get(definition.key, f"--no-{switch[2:]}"),
                    dest=definition.key,
                    action="store_false",
                    default=None,
                    help=f"Turn off {definition.display_name}.")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Randomize the chest contents of a Neutopia (U) HuCard image.")
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    parser.add_argument( '-log',
        '--loglevel',
        default='warning',
        help='Provide logging level. Example --loglevel debug, default=warning' )
    subparsers = parser.add_subparsers(dest="command", required=True)

    rando = subparsers.add_parser("randomize", help="Write a randomized ROM.")
    rando.add_argument(
        "--seed",
        required=True,
        help="Seed string. The same seed and flags always produce the same ROM.")
    rando.add_argument(
        "--input-file",
        required=True,
        help="Path to the base ROM (.pce) file to randomize.")
    rando.add_argument(
        "--output-dir",
        default="outputs",
        help="Directory where the randomized ROM will be written (default: outputs).")
    rando.add_argument(
        "--output-file",
        help="Optional filename or path for the randomized ROM. "
             "If relative, it is placed inside --output-dir.")
    add_flag_arguments(rando)
    rando.add_argument(
        "--spoiler",
        action="store_true",
        help="Also write a spoiler log next to the ROM.")

    info = subparsers.add_parser("info", help="Identify a ROM and list the patches.")
    info.add_argument("input_file", help="Path to a .pce file.")

    checks = subparsers.add_parser(
        "checks", help="Dump the chests of a ROM as a check list skeleton (JSON).")
    checks.add_argument("input_file", help="Path to a .pce file.")
    checks.add_argument(
        "--output",
        help="Write the JSON here instead of standard output.")

    password = subparsers.add_parser("password", help="Decode a 24-character password.")
    password.add_argument("password", help="The password as shown in game.")
    password.add_argument(
        "--vanilla",
        action="store_true",
        help="Decode as three 8-character sections (unpatched game).")

    return parser


def build_flags(args: argparse.Namespace) -> Flags:
    flags = Flags()
    for key in FlagRegistry.get_all_flags():
        value = getattr(args, key, None)
        if value is not None:
            flags.set(key, value)

    is_valid, errors = flags.validate()
    if not is_valid:
        raise ValueError("\n".join(errors))
    return flags


def resolve_output_path(output_dir: Path, output_file: str | None, filename: str) -> Path:
    if output_file:
        candidate = Path(output_file)
        if candidate.is_absolute():
            return candidate
        return output_dir / candidate
    return output_dir / filename


def run_randomize(args: argparse.Namespace) -> int:
    flags = build_flags(args)
    input_path = Path(args.input_file)
    try:
        rom_bytes = input_path.read_bytes()
    except FileNotFoundError as exc:
        raise FileNotFoundError(f"Input ROM not found: {input_path}") from exc

    result = randomize(rom_bytes, args.seed, flags)
    if not result.ok:
        print(f"Error ({result.error_kind.value}): {result.message}", file=sys.stderr)
        return EXIT_CODES[result.error_kind]

    output_path = resolve_output_path(Path(args.output_dir), args.output_file, result.filename)
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_bytes(result.rom)
    print(f"Randomized ROM written to {output_path}")

    if args.spoiler:
        spoiler_path = output_path.with_suffix(".spoiler.txt")
        spoiler_path.write_text("\n".join(result.spoiler) + "\n", encoding="utf-8")
        print(f"Spoiler log written to {spoiler_path}")
    return EXIT_OK


def run_info(args: argparse.Namespace) -> int:
    rom_bytes = Path(args.input_file).read_bytes()
    try:
        info = IdentifyRom(rom_bytes)
    except MalformedInputError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_MALFORMED_INPUT

    print(f"{args.input_file}:")
    for line in info.Lines():
        print(line)
    print()
    print("Patches:")
    for line in BuildCatalog().describe():
        print(f"  {line}")
    return EXIT_OK


def run_checks(args: argparse.Namespace) -> int:
    rom_bytes = Path(args.input_file).read_bytes()
    try:
        info = IdentifyRom(rom_bytes)
        chests = ChestTables(MemoryImage(rom_bytes, has_header=info.headered))
    except MalformedInputError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_MALFORMED_INPUT

    text = json.dumps(DumpChestRecords(chests), indent=2) + "\n"
    if args.output:
        Path(args.output).write_text(text, encoding="utf-8")
        print(f"Check list skeleton written to {args.output}")
    else:
        sys.stdout.write(text)

    slots, _ = LoadChecks()
    empty, unlisted = CrossCheck(slots, chests)
    for slot in empty:
        print(f"Check '{slot.name}' ({slot.location}) points at an empty record", file=sys.stderr)
    for area, index in unlisted:
        print(f"Chest {area:02X}:{index} is not in the check list", file=sys.stderr)
    return EXIT_MALFORMED_INPUT if empty else EXIT_OK


def run_password(args: argparse.Namespace) -> int:
    window = SaveStateWindow.Vanilla() if args.vanilla else None
    try:
        values = DecodePassword(args.password, window)
    except ChecksumError as exc:
        print(f"Invalid password: {exc}", file=sys.stderr)
        return EXIT_MALFORMED_INPUT
    print(" ".join(f"{value:02x}" for value in values))
    return EXIT_OK


COMMANDS = {
    "randomize": run_randomize,
    "info": run_info,
    "checks": run_checks,
    "password": run_password,
}


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(level=args.loglevel.upper())
    try:
        return COMMANDS[args.command](args)
    except (ValueError, FileNotFoundError) as exc:
        parser.error(str(exc))
    return EXIT_USAGE


if __name__ == "__main__":
    sys.exit(main())
