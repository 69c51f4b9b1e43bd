import argparse
import logging
import sys
from pathlib import Path

from groupscraper import (
    GroupScraper,
    GroupScraperError,
    load_config,
    read_urls,
    write_failed_links,
    write_report,
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="Analyze group about pages into an Excel report")
    ap.add_argument("--cfg", type=str, default=None, help="Optional path to config JSON")
    ap.add_argument("--csv", type=str, default=None, help="CSV with a URL column (default: link.csv)")
    ap.add_argument("--out", type=str, default=None, help="Directory for the report and failure log")
    ap.add_argument("--headless", action="store_true", help="Run the browser without a window")
    ap.add_argument("--seed", type=int, default=None, help="Seed for random pauses and scrolls")
    return ap


def main(argv: list[str] | None = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    args = build_parser().parse_args(argv)

    cfg = load_config(args.cfg)
    if args.csv:
        cfg.input_csv = Path(args.csv)
    if args.out:
        cfg.report.output_dir = Path(args.out)
    if args.headless:
        cfg.session.headless = True
    if args.seed is not None:
        cfg.interaction.seed = args.seed

    try:
        urls = read_urls(cfg.input_csv, cfg.url_column)
        scraper = GroupScraper(cfg)
    except GroupScraperError as exc:
        logger.error("Cannot start: %s", exc)
        return 1

    try:
        result = scraper.run(urls)
    except Exception:
        logger.exception("Unexpected error during the batch run")
        return 1
    finally:
        scraper.close()

    logger.info("Exporting data to Excel...")
    try:
        write_report(result.records, cfg.report)
        write_failed_links(
            result.failed_links,
            Path(cfg.report.output_dir) / cfg.report.failed_links_file,
        )
    except (OSError, ValueError):
        logger.exception("Could not write outputs")
        return 1
    logger.info("Done.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
