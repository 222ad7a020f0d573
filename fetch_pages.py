#!/usr/bin/env python3
import argparse
import logging

from fetchlib.config import FetcherConfig, RunConfig
from fetchlib.fetcher import BrowserFetcher
from fetchlib.prometheus_exporter import PrometheusExporter
from fetchlib.runner import FetchRunner


def parse_args(argv=None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Fetch rendered pages through headless Chrome and write JSONL results.")
    parser.add_argument("urls", nargs="+", help="Absolute URLs to fetch.")
    parser.add_argument("--concurrency", type=int, default=4, help="Number of workers, each with its own browser.")
    parser.add_argument("--wait-timeout", type=float, default=10.0, help="Browser implicit wait in seconds.")
    parser.add_argument("--capture-timeout", type=float, default=0.5, help="Seconds to wait for the page's response event.")
    parser.add_argument("--max-total-buffer", type=int, default=100_000_000, help="Network inspection buffer size in bytes.")
    parser.add_argument("--max-resource-buffer", type=int, default=10_000_000, help="Per-resource inspection buffer in bytes.")
    parser.add_argument("--max-post-data", type=int, default=1_000_000, help="Largest captured POST body in bytes.")
    parser.add_argument("--out", dest="output_path", default="fetched.jsonl", help="Path to JSONL output file.")
    parser.add_argument("--append", action="store_true", help="Append to the output file instead of truncating.")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase logging verbosity.")
    parser.add_argument("--metrics-interval", type=float, default=10.0, help="Seconds between perf logs (0 to disable).")
    parser.add_argument("--prometheus-port", type=int, default=0, help="Port for Prometheus metrics endpoint (0 to disable).")
    return parser.parse_args(argv)


def build_configs(args: argparse.Namespace) -> tuple[FetcherConfig, RunConfig]:
    fetcher_config = FetcherConfig(
        wait_timeout_seconds=max(0.0, args.wait_timeout),
        max_total_buffer_size=max(0, args.max_total_buffer),
        max_resource_buffer_size=max(0, args.max_resource_buffer),
        max_post_data_size=max(0, args.max_post_data),
        capture_timeout_seconds=max(0.0, args.capture_timeout),
    )
    run_config = RunConfig(
        urls=args.urls,
        concurrency=max(1, args.concurrency),
        output_path=args.output_path,
        append=args.append,
        metrics_interval=max(0.0, args.metrics_interval),
    )
    return fetcher_config, run_config


def main(argv=None) -> None:
    args = parse_args(argv)
    log_level = logging.WARNING
    if args.verbose == 1:
        log_level = logging.INFO
    elif args.verbose >= 2:
        log_level = logging.DEBUG
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s %(levelname)s %(threadName)s %(message)s",
    )

    fetcher_config, run_config = build_configs(args)
    runner = FetchRunner(run_config, BrowserFetcher(fetcher_config))

    exporter = None
    if args.prometheus_port:
        exporter = PrometheusExporter(runner.metrics, port=args.prometheus_port)
        exporter.start()
        logging.info("Prometheus metrics available at http://0.0.0.0:%d/metrics", args.prometheus_port)

    try:
        runner.run()
    finally:
        if exporter:
            exporter.update()
            exporter.stop()


if __name__ == "__main__":
    main()
