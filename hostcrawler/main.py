#!/usr/bin/env python3
"""
Entry point for the host crawler.
Crawls the seed hosts and every host they link to, one host at a time.
"""

from dotenv import load_dotenv

import argparse
import logging
import signal
import sys
import time

from hostcrawler.config import CrawlerConfig
from hostcrawler.errors import ConfigError
from hostcrawler.scheduler import CrawlScheduler

LOG_FORMAT = "%(asctime)s %(levelname)s [%(threadName)s] %(name)s: %(message)s"


def configure_logging(config: CrawlerConfig, level=logging.INFO):
    handlers = [logging.StreamHandler()]
    if config.enable_log:
        config.log_file_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(config.log_file_path, encoding="utf-8"))

    logging.basicConfig(level=level, format=LOG_FORMAT, handlers=handlers, force=True)


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description="Discover the link graph between hosts.")
    parser.add_argument("seeds", nargs="+", help="seed hosts, e.g. example.com")
    parser.add_argument("--output", dest="output_path", help="output directory")
    parser.add_argument("--limit", dest="host_urls_limit", type=int,
                        help="maximum sitemap urls per host")
    parser.add_argument("--index-limit", dest="sitemap_index_limit", type=int,
                        help="maximum sitemap index files per level")
    parser.add_argument("--samples", dest="sample_count", type=int,
                        help="pages downloaded per host")
    parser.add_argument("--scheme", help="scheme of the links that become edges")
    parser.add_argument("--log-file", dest="log_file_path", help="also log to this file")
    parser.add_argument("-v", "--verbose", action="store_true")
    return parser.parse_args(argv)


def main(argv=None):
    load_dotenv()
    args = parse_args(argv)

    overrides = {
        k: v for k, v in vars(args).items()
        if k not in ("seeds", "verbose")
    }
    if args.log_file_path:
        overrides["enable_log"] = True

    try:
        config = CrawlerConfig.from_env(**overrides).validate()
    except ConfigError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    configure_logging(config, logging.DEBUG if args.verbose else logging.INFO)

    try:
        scheduler = CrawlScheduler(config, args.seeds)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        return 2

    def _on_sigint(signum, frame):
        print("\nCancelling crawl, finishing current download...")
        scheduler.cancel()

    signal.signal(signal.SIGINT, _on_sigint)

    start_time = time.time()
    graph = scheduler.crawl()
    duration = time.time() - start_time

    print("\n" + "-" * 60)
    print("CRAWL CANCELLED" if scheduler.cancelled else "CRAWL COMPLETED")
    print("-" * 60)
    print(f"Seeds             : {', '.join(scheduler.seeds)}")
    print(f"Hosts in graph    : {len(graph)}")
    print(f"Connections       : {graph.edge_count()}")
    print(f"Hosts crawled     : {len(scheduler.sites)}")
    print(f"Hosts left queued : {len(scheduler.frontier)}")
    print(f"Crawl duration    : {duration:.2f} seconds")
    print(f"Output            : {config.output_path}")
    print("-" * 60)

    failed = [h for h, s in scheduler.sites.items() if s.status == "do-not-process"]
    if failed:
        print(f"\nHosts marked do-not-process ({len(failed)}):")
        for host in failed:
            print(f"  {host}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
