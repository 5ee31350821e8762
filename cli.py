#!/usr/bin/env python
"""
Command-line interface for the railway overlay data core

Usage:
    python cli.py import nyc export.json
    python cli.py load nyc --output nyc_layers.json
    python cli.py query --bbox 40.49,-74.26,40.92,-73.70
    python cli.py regions --catalog regions.json
"""

import os
import sys
import json
import asyncio
import argparse
import copy

from loguru import logger

from railway_overlay.catalog import RegionCatalog, build_overpass_query
from railway_overlay.config import get_config, load_env_overrides
from railway_overlay.exceptions import PayloadFormatError
from railway_overlay.models import ClassifiedDataset
from railway_overlay.service import RegionDataService, parse_payload_text


def setup_logging(verbose: bool = False):
    """Configure logging"""
    logger.remove()
    level = "DEBUG" if verbose else "INFO"
    logger.add(
        sys.stderr,
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{message}</cyan>",
        level=level
    )


def build_service(args) -> RegionDataService:
    """Service from global config, env overrides and command-line options"""
    config = load_env_overrides(copy.deepcopy(get_config()))
    if args.cache_backend:
        config.cache.backend = args.cache_backend
    if args.cache_path:
        config.cache.path = args.cache_path
    catalog = RegionCatalog.from_file(args.catalog) if getattr(args, "catalog", None) else None
    return RegionDataService.from_config(config, catalog=catalog)


def print_summary(region: str, dataset: ClassifiedDataset):
    summary = {
        "region": region,
        "format": dataset.source_format,
        "lines": dataset.total_lines,
        "stations": len(dataset.stations),
        "buckets": dataset.counts(),
    }
    print(json.dumps(summary, indent=2))


def save_dataset(dataset: ClassifiedDataset, output_path: str) -> str:
    """Save render-ready feature collections to a JSON file"""
    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)

    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(dataset.to_feature_collections(), f, indent=2, ensure_ascii=False)

    logger.info(f"Saved classified layers to {output_path}")
    return output_path


def cmd_import(args):
    """Import a raw payload file into the cache for a region"""
    setup_logging(args.verbose)

    if not os.path.exists(args.input):
        logger.error(f"Input file not found: {args.input}")
        return 1

    try:
        with open(args.input, "r", encoding="utf-8") as f:
            payload = parse_payload_text(f.read())
        service = build_service(args)
    except (PayloadFormatError, ValueError, OSError) as e:
        logger.error(str(e))
        return 1

    result = asyncio.run(service.import_raw_payload(args.region, payload))
    for message in result.messages:
        if message.startswith("Warning") or message.startswith("Invalid"):
            logger.warning(message)
        else:
            logger.info(message)

    if result.dataset is None:
        return 1
    print_summary(args.region, result.dataset)
    return 0


def cmd_load(args):
    """Load the classified dataset for a region from the cache"""
    setup_logging(args.verbose)

    try:
        service = build_service(args)
    except (ValueError, OSError) as e:
        logger.error(str(e))
        return 1

    dataset = asyncio.run(service.load(args.region, force_refresh=args.refresh))
    if dataset is None:
        logger.error(f"No data available for {service.catalog.display_name(args.region)}")
        return 1

    if args.output:
        save_dataset(dataset, args.output)
    print_summary(args.region, dataset)
    return 0


def cmd_query(args):
    """Print the Overpass query that produces an importable export"""
    if args.bbox:
        try:
            bbox = tuple(float(v) for v in args.bbox.split(","))
            if len(bbox) != 4:
                raise ValueError("expected 4 values")
            query = build_overpass_query(bbox, timeout=args.timeout)
        except ValueError as e:
            print(f"Invalid --bbox {args.bbox!r}: {e}", file=sys.stderr)
            return 1
    else:
        query = build_overpass_query(timeout=args.timeout)
    print(query)
    return 0


def cmd_regions(args):
    """List regions from a catalog file"""
    setup_logging(args.verbose)

    if not os.path.exists(args.catalog):
        logger.error(f"Catalog file not found: {args.catalog}")
        return 1

    for region in RegionCatalog.from_file(args.catalog).list_regions():
        print(f"{region.code}\t{region.name}")
    return 0


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Railway overlay data core",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--cache-backend", choices=["sqlite", "json", "memory"], help="Persistent cache backend")
    common.add_argument("--cache-path", help="Cache database file or directory")
    common.add_argument("--catalog", help="Region catalog JSON file")
    common.add_argument("-v", "--verbose", action="store_true", help="Verbose output")

    # Import command
    import_parser = subparsers.add_parser("import", parents=[common], help="Import an Overpass or GeoJSON export")
    import_parser.add_argument("region", help="Region code")
    import_parser.add_argument("input", help="Path to the JSON export")
    import_parser.set_defaults(func=cmd_import)

    # Load command
    load_parser = subparsers.add_parser("load", parents=[common], help="Classify cached data for a region")
    load_parser.add_argument("region", help="Region code")
    load_parser.add_argument("--refresh", action="store_true", help="Bypass the cache")
    load_parser.add_argument("--output", "-o", help="Write classified layers to this JSON file")
    load_parser.set_defaults(func=cmd_load)

    # Query command
    query_parser = subparsers.add_parser("query", help="Print the Overpass query for an export")
    query_parser.add_argument("--bbox", help="south,west,north,east (default: Overpass Turbo {{bbox}})")
    query_parser.add_argument("--timeout", type=int, default=25, help="Overpass timeout in seconds")
    query_parser.set_defaults(func=cmd_query)

    # Regions command
    regions_parser = subparsers.add_parser("regions", help="List catalog regions")
    regions_parser.add_argument("--catalog", required=True, help="Region catalog JSON file")
    regions_parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    regions_parser.set_defaults(func=cmd_regions)

    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
