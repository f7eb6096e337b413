"""Command-line interface for mmtfcodec.

Provides CLI commands for:
- Inspecting encoded structure files
- Writing the reduced (trace-only) encoding
- Re-encoding files with configured codec strategies
"""

import argparse
import logging
import sys
from typing import List, Optional

from mmtfcodec.config import Config
from mmtfcodec.decoder.decoder import decode_structure
from mmtfcodec.encoder.encoder import encode_structure
from mmtfcodec.encoder.reduced import get_reduced
from mmtfcodec.exceptions import MmtfError
from mmtfcodec.io.serialization import read_file, write_file


def setup_logging(verbose: bool = False) -> None:
    """Set up logging configuration."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


def load_config(path: Optional[str]) -> Config:
    """Load configuration from YAML, or defaults (plus environment) if no path."""
    if path:
        return Config.from_yaml(path)
    return Config()


def cmd_info(args: argparse.Namespace) -> int:
    """Show counts and metadata of an encoded structure."""
    setup_logging(args.verbose)
    logger = logging.getLogger("mmtfcodec.cli")

    try:
        wire = read_file(args.input)
        data = decode_structure(wire)
    except (MmtfError, OSError) as e:
        logger.error(f"Failed to read {args.input}: {e}")
        return 1

    logger.info(f"Structure: {data.structure_id}")
    logger.info(f"  Version: {data.mmtf_version} ({data.mmtf_producer})")
    if data.title:
        logger.info(f"  Title: {data.title}")
    if data.resolution is not None:
        logger.info(f"  Resolution: {data.resolution:.2f}")
    logger.info(f"  Models: {data.num_models}")
    logger.info(f"  Chains: {data.num_chains}")
    logger.info(f"  Groups: {data.num_groups} ({data.num_group_types} types)")
    logger.info(f"  Atoms: {data.num_atoms}")
    logger.info(f"  Bonds: {data.num_bonds}")
    logger.info(f"  Entities: {data.num_entities}")
    logger.info(f"  Bioassemblies: {data.num_bioassemblies}")
    return 0


def cmd_reduce(args: argparse.Namespace) -> int:
    """Write the reduced encoding of a structure."""
    setup_logging(args.verbose)
    logger = logging.getLogger("mmtfcodec.cli")
    config = load_config(args.config)

    try:
        data = decode_structure(read_file(args.input))
        reduced = get_reduced(data, config.reduced)
        wire = encode_structure(reduced, config.encoder)
        write_file(wire, args.output, compress=args.gzip or config.compress)
    except (MmtfError, OSError) as e:
        logger.error(f"Failed to reduce {args.input}: {e}")
        return 1

    logger.info(f"Reduced {data.num_atoms} atoms to {reduced.num_atoms}")
    return 0


def cmd_recode(args: argparse.Namespace) -> int:
    """Decode a structure and re-encode it with the configured strategies."""
    setup_logging(args.verbose)
    logger = logging.getLogger("mmtfcodec.cli")
    config = load_config(args.config)

    try:
        data = decode_structure(read_file(args.input))
        wire = encode_structure(data, config.encoder)
        write_file(wire, args.output, compress=args.gzip or config.compress)
    except (MmtfError, OSError) as e:
        logger.error(f"Failed to recode {args.input}: {e}")
        return 1

    logger.info(f"Recoded {data.structure_id} to {args.output}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Main CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="mmtfcodec",
        description="mmtfcodec - Macromolecular Transmission Format codec",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable verbose output",
    )
    parser.add_argument(
        "-c", "--config",
        type=str,
        help="Path to configuration file",
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Info command
    info_parser = subparsers.add_parser(
        "info",
        help="Show structure summary",
    )
    info_parser.add_argument(
        "input",
        help="Encoded structure file (plain or gzipped)",
    )
    info_parser.set_defaults(func=cmd_info)

    # Reduce command
    reduce_parser = subparsers.add_parser(
        "reduce",
        help="Write the reduced (trace-only) encoding",
    )
    reduce_parser.add_argument(
        "input",
        help="Encoded structure file",
    )
    reduce_parser.add_argument(
        "output",
        help="Output file",
    )
    reduce_parser.add_argument(
        "--gzip",
        action="store_true",
        help="Gzip the output",
    )
    reduce_parser.set_defaults(func=cmd_reduce)

    # Recode command
    recode_parser = subparsers.add_parser(
        "recode",
        help="Re-encode with the configured codec strategies",
    )
    recode_parser.add_argument(
        "input",
        help="Encoded structure file",
    )
    recode_parser.add_argument(
        "output",
        help="Output file",
    )
    recode_parser.add_argument(
        "--gzip",
        action="store_true",
        help="Gzip the output",
    )
    recode_parser.set_defaults(func=cmd_recode)

    # Parse arguments
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
