#!/usr/bin/env python3
"""
Manual queue processor for VoiceSync.

Run this script to inspect, drain or purge the persisted upload queue from
a shell, e.g. after a long offline period or to discard exhausted items.

Usage:
    python process_queue.py --data-dir /path/to/data --api-url https://api.example.com
    python process_queue.py --data-dir /path/to/data --stats-only
    python process_queue.py --data-dir /path/to/data --clear-exhausted

The access token is read from the VOICESYNC_TOKEN environment variable.
"""

import argparse
import asyncio
import json
import os
import sys

from shared.log import configure_logging, create_logger

log_trace, log_debug, log_info, log_warn, log_error = create_logger("Manual")


def load_config(data_dir):
    """Load VoiceSync configuration from config.json next to (or inside) the data dir."""
    candidates = [
        os.path.join(data_dir, 'config.json'),
        os.path.join(os.path.dirname(os.path.abspath(data_dir)), 'config.json'),
    ]
    for config_path in candidates:
        if os.path.exists(config_path):
            with open(config_path, 'r') as f:
                return json.load(f)

    return {
        'api_url': os.environ.get('VOICESYNC_API_URL', ''),
        'storage_backend': os.environ.get('VOICESYNC_STORAGE', 'file'),
    }


async def run(config, clear_exhausted=False, stats_only=False):
    """Open the queue and perform the requested action."""
    from sync_app import SyncApp

    token = os.environ.get('VOICESYNC_TOKEN')
    app = SyncApp(config, token_provider=lambda: token)
    try:
        if stats_only:
            print(json.dumps(app.stats(), indent=2))
            return 0

        if clear_exhausted:
            removed = app.clear_exhausted()
            log_info(f"Removed {removed} exhausted upload(s)")
            return 0

        stats = app.stats()
        log_info(f"Queue stats: {stats}")
        if stats['total'] == 0:
            log_info("Queue is empty. Nothing to process.")
            return 0

        result = await app.process_queue()
        log_info(
            f"Queue processing complete. Delivered: {len(result.delivered)}, "
            f"Failed: {len(result.failed)}"
        )
        if result.stopped_by:
            log_warn(f"Pass stopped early ({result.stopped_by}); remaining items stay queued")

        log_info(f"Final queue stats: {app.stats()}")
        return 0 if not result.failed and not result.stopped_by else 1
    finally:
        await app.close()


def main(argv=None):
    parser = argparse.ArgumentParser(description='Process the VoiceSync upload queue manually')
    parser.add_argument('--data-dir', '-d', default='./data', help='Path to VoiceSync data directory')
    parser.add_argument('--api-url', help='Recordings API URL (or set VOICESYNC_API_URL env var)')
    parser.add_argument('--backend', choices=['file', 'sqlite'], help='Storage backend')
    parser.add_argument('--stats-only', '-s', action='store_true', help='Only show queue stats')
    parser.add_argument('--clear-exhausted', action='store_true', help='Remove items out of retries')
    parser.add_argument('--json-logs', action='store_true', help='Emit JSON log lines (overrides json_logs)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Debug logging (overrides log_level)')

    args = parser.parse_args(argv)

    # Until the config is read, logging follows the command line only
    configure_logging('debug' if args.verbose else 'info', json_output=args.json_logs)

    from validation.config import validate_config

    config_dict = load_config(args.data_dir)
    config_dict['data_dir'] = args.data_dir
    if args.api_url:
        config_dict['api_url'] = args.api_url
    if args.backend:
        config_dict['storage_backend'] = args.backend
    if (args.stats_only or args.clear_exhausted) and not config_dict.get('api_url'):
        # No requests are made; any syntactically valid URL will do
        config_dict['api_url'] = 'http://localhost'

    config, error = validate_config(config_dict)
    if config is None:
        log_error(f"Invalid configuration: {error}")
        log_error("Set VOICESYNC_API_URL or pass --api-url, or provide config.json")
        return 1

    configure_logging(
        'debug' if args.verbose else config.log_level,
        json_output=args.json_logs or config.json_logs,
        debug_logging=config.debug_logging,
    )
    log_info(f"Using data directory: {config.data_dir}")
    config.log_config()

    return asyncio.run(run(config, clear_exhausted=args.clear_exhausted, stats_only=args.stats_only))


if __name__ == '__main__':
    sys.exit(main())
