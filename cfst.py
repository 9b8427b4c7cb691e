#!/usr/bin/env python3
"""
Cloudflare Signed Transforms CLI

Signs image transform URLs for the Cloudflare worker and purges cached
transforms from Cloudflare.
"""

import os
import sys
import argparse
import logging
from datetime import datetime
from typing import Optional

from tqdm import tqdm

from signed_transforms.asset_listing import read_asset_csv, write_signed_urls_csv
from signed_transforms.cache_invalidation import CacheInvalidator
from signed_transforms.cloudflare_purger import check_connection
from signed_transforms.errors import ConfigurationError, SignedTransformsError
from signed_transforms.image_transformer import ImageTransformer
from signed_transforms.models import AssetRef, FocalPoint, TransformMode, TransformSpec
from signed_transforms.purge_queue import PurgeQueue
from signed_transforms.purge_report import PurgeReport
from signed_transforms.settings import Settings, load_settings


# Directories
OUTPUT_DIR = "output"
LOGS_DIR = "logs"


def setup_logging(log_level: str = "INFO") -> None:
    """Configure logging."""
    os.makedirs(LOGS_DIR, exist_ok=True)

    log_file = os.path.join(LOGS_DIR, f"cfst_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log")

    logging.basicConfig(
        level=getattr(logging, log_level.upper()),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_file, encoding='utf-8'),
            logging.StreamHandler(sys.stdout)
        ]
    )


def transform_from_args(args: argparse.Namespace) -> TransformSpec:
    """Build a TransformSpec from command line options."""
    return TransformSpec(
        width=args.width,
        height=args.height,
        quality=args.quality,
        mode=args.mode,
        upscale=not args.no_upscale,
        format=args.format,
        interlace=args.interlace,
        position=args.position,
        fill=args.fill,
    )


def asset_from_args(args: argparse.Namespace) -> AssetRef:
    focal_point = None
    if args.focal_point:
        x, y = args.focal_point.split(',', 1)
        focal_point = FocalPoint(float(x), float(y))
    return AssetRef(mime_type=args.mime_type, public_url=args.url, focal_point=focal_point)


def cmd_sign(settings: Settings, args: argparse.Namespace) -> int:
    transformer = ImageTransformer(settings)
    print(transformer.get_transform_url(asset_from_args(args), transform_from_args(args)))
    return 0


def cmd_sign_csv(settings: Settings, args: argparse.Namespace) -> int:
    logger = logging.getLogger(__name__)
    transformer = ImageTransformer(settings)
    transform = transform_from_args(args)

    print(f"\n📄 Reading input file: {args.input}")
    assets = read_asset_csv(args.input)

    rows = []
    failed = 0
    for asset in tqdm(assets, desc="Signing"):
        try:
            signed_url = transformer.get_transform_url(asset, transform)
            rows.append({'source_url': asset.public_url, 'signed_url': signed_url,
                         'status': 'success', 'error': ''})
        except SignedTransformsError as e:
            logger.error(f"Failed to sign {asset.public_url}: {e}")
            failed += 1
            rows.append({'source_url': asset.public_url or '', 'signed_url': '',
                         'status': 'failed', 'error': str(e)})

    output_file = args.output or os.path.join(OUTPUT_DIR, "signed_urls.csv")
    print(f"\n📝 Writing signed URLs to: {output_file}")
    write_signed_urls_csv(rows, output_file)
    print(f"✓ Signed {len(rows) - failed}/{len(rows)} URLs")

    return 0 if failed == 0 else 1


def _run_queue(queue: PurgeQueue, queued: int) -> int:
    if queued == 0:
        print("❌ No assets found or cache purge is not enabled")
        return 1

    print(f"\n🚀 Purging {queued} URL(s) in {len(queue)} batch(es)...\n")
    report = queue.run(show_progress=True)
    report.print_summary()
    return 1 if report.has_failures else 0


def cmd_purge_asset(settings: Settings, args: argparse.Namespace) -> int:
    queue = PurgeQueue(settings, PurgeReport(args.report_dir))
    invalidator = CacheInvalidator(settings, queue)

    transforms = []
    if args.width or args.height:
        transforms.append(transform_from_args(args))

    queued = invalidator.purge_asset_cache(asset_from_args(args), transforms)
    return _run_queue(queue, queued)


def cmd_purge_volume(settings: Settings, args: argparse.Namespace) -> int:
    queue = PurgeQueue(settings, PurgeReport(args.report_dir))
    invalidator = CacheInvalidator(settings, queue)

    print(f"\n📄 Reading input file: {args.input}")
    assets = read_asset_csv(args.input)
    print(f"   Found {len(assets)} assets")

    queued = invalidator.purge_volume_cache(assets)
    return _run_queue(queue, queued)


def cmd_purge_everything(settings: Settings, args: argparse.Namespace) -> int:
    if not args.yes:
        answer = input("This purges the ENTIRE Cloudflare zone. Continue? [y/N] ")
        if answer.strip().lower() != 'y':
            print("Aborted")
            return 1

    invalidator = CacheInvalidator(settings, PurgeQueue(settings))
    if not invalidator.purge_everything():
        print("❌ Failed to purge cache. Check that cache purging is enabled and configured.")
        return 1

    print("✓ Successfully purged entire Cloudflare cache")
    return 0


def cmd_test_connection(settings: Settings, args: argparse.Namespace) -> int:
    credentials = settings.purge_credentials()
    if credentials is None:
        print("❌ Missing required configuration: CLOUDFLARE_ZONE_ID, CLOUDFLARE_API_KEY")
        return 1

    print("\n🔗 Testing Cloudflare connection...")
    success, message = check_connection(credentials.zone_id, credentials.api_token)
    print(f"✓ {message}" if success else f"❌ Connection failed: {message}")
    return 0 if success else 1


COMMANDS = {
    'sign': cmd_sign,
    'sign-csv': cmd_sign_csv,
    'purge-asset': cmd_purge_asset,
    'purge-volume': cmd_purge_volume,
    'purge-everything': cmd_purge_everything,
    'test-connection': cmd_test_connection,
}


def add_transform_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('--width', '-W', type=int, help='Target width')
    parser.add_argument('--height', '-H', type=int, help='Target height')
    parser.add_argument('--quality', '-q', type=int, help='Quality (1-100)')
    parser.add_argument(
        '--mode', '-m',
        default=TransformMode.CROP.value,
        choices=[mode.value for mode in TransformMode],
        help='Resize mode'
    )
    parser.add_argument('--no-upscale', action='store_true', help='Never enlarge the image')
    parser.add_argument('--format', '-f', help='Output format (jpg, png, webp, avif...)')
    parser.add_argument('--interlace', help='Interlacing (none, line, plane, partition)')
    parser.add_argument('--position', default='center-center', help='Crop position, e.g. top-left')
    parser.add_argument('--fill', help='Letterbox background colour')


def add_asset_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument('url', help='Public URL of the source image')
    parser.add_argument('--mime-type', default='image/jpeg', help='Mime type of the source image')
    parser.add_argument('--focal-point', help='Focal point as x,y between 0 and 1')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Sign Cloudflare worker image transforms and purge cached images',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Sign a single transform
  python cfst.py sign https://cdn.example.com/a.jpg --width 300 --mode fit

  # Sign a transform for every asset in a CSV
  python cfst.py sign-csv --input assets.csv --width 300

  # Purge one asset and its 300px variant
  python cfst.py purge-asset https://cdn.example.com/a.jpg --width 300

  # Purge every asset listed in a CSV
  python cfst.py purge-volume --input assets.csv
"""
    )
    parser.add_argument('--env-file', help='dotenv file to load (default: config.env or .env)')
    parser.add_argument(
        '--log-level',
        default='INFO',
        choices=['DEBUG', 'INFO', 'WARNING', 'ERROR'],
        help='Logging level'
    )

    subparsers = parser.add_subparsers(dest='command', required=True)

    sign = subparsers.add_parser('sign', help='Print a signed transform URL')
    add_asset_arguments(sign)
    add_transform_arguments(sign)

    sign_csv = subparsers.add_parser('sign-csv', help='Sign a transform for every asset in a CSV')
    sign_csv.add_argument('--input', '-i', required=True, help='Input CSV file path')
    sign_csv.add_argument('--output', '-o', help='Output CSV path (default: output/signed_urls.csv)')
    add_transform_arguments(sign_csv)

    purge_asset = subparsers.add_parser('purge-asset', help='Purge one asset from the cache')
    add_asset_arguments(purge_asset)
    add_transform_arguments(purge_asset)
    purge_asset.add_argument('--report-dir', help='Directory to write purge_report.json to')

    purge_volume = subparsers.add_parser('purge-volume', help='Purge every asset listed in a CSV')
    purge_volume.add_argument('--input', '-i', required=True, help='Input CSV file path')
    purge_volume.add_argument('--report-dir', help='Directory to write purge_report.json to')

    purge_everything = subparsers.add_parser('purge-everything', help='Purge the entire zone')
    purge_everything.add_argument('--yes', '-y', action='store_true', help='Skip confirmation')

    subparsers.add_parser('test-connection', help='Check Cloudflare credentials')

    return parser


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    setup_logging(args.log_level)
    logger = logging.getLogger(__name__)

    try:
        settings = load_settings(args.env_file)
    except ConfigurationError as e:
        print(f"\n❌ Invalid configuration: {e}")
        print("\nPlease set these in config.env:")
        print("  CFST_WORKER_URL=https://your-worker.workers.dev")
        print("  CFST_SIGNATURE_SECRET=your_shared_secret")
        return 1

    try:
        return COMMANDS[args.command](settings, args)
    except SignedTransformsError as e:
        logger.error(f"{args.command} failed: {e}")
        print(f"❌ {e}")
        return 1
    except (OSError, ValueError) as e:
        print(f"❌ Error reading input: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())
