"""
YouTube Comment Extraction Tool

Extracts top-level comments from a list of YouTube videos using the YouTube
Data API v3, keeps the ones published inside a date range that match a keyword
expression, and saves them to a CSV (spreadsheet) or JSON file.
"""

# ============================================================================
# IMPORTS
# ============================================================================

import argparse
import os
import signal
import sys
from datetime import date

from tqdm import tqdm

from config import CONFIG, get_api_key, setup_logging, validate_config
from exporter import export_to_csv, export_to_json
from extractor import CancellationToken, CommentExtractor, ExtractionAborted, ExtractionFilters
from youtube_api import YouTubeCommentSource


# ============================================================================
# ARGUMENTS
# ============================================================================

def iso_date(value):
    try:
        return date.fromisoformat(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date (expected YYYY-MM-DD): {value}")


def read_references(path):
    """Read one video reference per line, ignoring blank lines and # comments."""
    with open(path, 'r', encoding='utf-8') as f:
        return [line.strip() for line in f if line.strip() and not line.lstrip().startswith('#')]


def build_parser():
    parser = argparse.ArgumentParser(
        description='Extract comments from YouTube videos filtered by date and keywords',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Two videos, comments from January 2024 mentioning "tutorial" or "guide"
  python main.py --video https://youtu.be/dQw4w9WgXcQ --video 9bZkp7q19f0 \\
      --start-date 2024-01-01 --end-date 2024-01-31 --keywords "tutorial, guide"

  # References read from a file, JSON output
  python main.py --file videos.txt --format json

Keyword syntax: comma or OR for alternatives, AND for all-of, NOT to exclude.
        """
    )
    parser.add_argument('--video', action='append', default=[],
                        help='Video URL or ID (repeatable)')
    parser.add_argument('--file', type=str,
                        help='Text file with one video URL or ID per line')
    parser.add_argument('--start-date', type=iso_date, default=date(1970, 1, 1),
                        help='First day to include (YYYY-MM-DD)')
    parser.add_argument('--end-date', type=iso_date, default=None,
                        help='Last day to include (YYYY-MM-DD, default: today)')
    parser.add_argument('--keywords', type=str, default='',
                        help='Keyword expression, e.g. "tutorial AND NOT sponsored"')
    parser.add_argument('--max-pages', type=int, default=CONFIG['max_pages_per_video'],
                        help='Maximum pages of 100 comments per video')
    parser.add_argument('--output', type=str, default='comments',
                        help='Output file name without extension')
    parser.add_argument('--format', choices=('csv', 'json'), default='csv',
                        help='Output format')
    parser.add_argument('--api-key', type=str,
                        help='YouTube Data API v3 key (overrides .env file)')
    return parser


def save_results(records, output_name, output_format):
    os.makedirs(CONFIG['output_dir'], exist_ok=True)
    file_path = os.path.join(CONFIG['output_dir'], f"{output_name}.{output_format}")
    if output_format == 'json':
        return export_to_json(records, file_path)
    return export_to_csv(records, file_path)


# ============================================================================
# MAIN EXECUTION
# ============================================================================

def main(argv=None):
    args = build_parser().parse_args(argv)
    setup_logging()
    validate_config()

    references = list(args.video)
    if args.file:
        try:
            references.extend(read_references(args.file))
        except OSError as e:
            print(f"Error: could not read {args.file}: {e}")
            return 1
    if not references:
        print("Error: provide at least one --video or a --file with video references")
        return 1

    api_key = args.api_key or get_api_key()
    if not api_key:
        print("=" * 70)
        print("ERROR: YouTube API key not found or not configured properly")
        print("=" * 70)
        print("Set YOUTUBE_API_KEY in .env or pass --api-key")
        return 1

    end_date = args.end_date or date.today()
    if args.start_date > end_date:
        print(f"Error: start date {args.start_date} is after end date {end_date}")
        return 1
    if args.max_pages < 1:
        print("Error: --max-pages must be at least 1")
        return 1

    source = YouTubeCommentSource(api_key=api_key)
    extractor = CommentExtractor(source, max_pages=args.max_pages)
    filters = ExtractionFilters(
        references=references,
        start_date=args.start_date,
        end_date=end_date,
        keywords=args.keywords,
    )

    cancel_token = CancellationToken()
    latest = []

    def handle_interrupt(sig, frame):
        print("\nCancelling after the current request...")
        cancel_token.cancel()

    previous_handler = signal.signal(signal.SIGINT, handle_interrupt)

    print(f"\nProcessing {len(references)} video reference(s)\n")
    with tqdm(desc="Comments extracted", unit=" comments") as progress:
        def on_progress(snapshot):
            progress.update(len(snapshot) - len(latest))
            latest[:] = snapshot

        try:
            records = extractor.extract(filters, on_progress, cancel_token)
            cancelled = False
        except ExtractionAborted:
            records = tuple(latest)
            cancelled = True
        finally:
            signal.signal(signal.SIGINT, previous_handler)

    file_path = save_results(records, args.output, args.format)

    print()
    print("=" * 70)
    print("Extraction cancelled. Partial results saved." if cancelled else "Processing complete!")
    print("=" * 70)
    print(f"Total comments extracted: {len(records)}")
    print(f"Data saved to: {file_path}")
    print(f"Quota used: {source.quota_used} units (of {CONFIG['daily_quota_limit']} daily limit)")
    print("=" * 70)
    return 130 if cancelled else 0


if __name__ == "__main__":
    sys.exit(main())
