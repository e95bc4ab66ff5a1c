import argparse

from githeus.config import Config


def parse_args(argv: "list[str] | None" = None) -> "Config":
    parser = argparse.ArgumentParser(
        prog="githeus",
        description="Prometheus exporter for GitHub billing and runners",
    )
    parser.add_argument(
        "--web.listen-address",
        dest="listen_address",
        default=":9504",
        help="Address to listen on (default: :9504)",
    )
    parser.add_argument(
        "--log.level",
        dest="log_level",
        default="info",
        choices=["debug", "info", "warning", "error"],
        help="Log level (default: info)",
    )
    parser.add_argument(
        "--log.format",
        dest="log_format",
        default="console",
        choices=["console", "json"],
        help="Log output format (default: console)",
    )
    parser.add_argument(
        "--github.url",
        dest="github_url",
        default=None,
        help="GitHub API URL, overrides GITHUB_URL",
    )
    parser.add_argument(
        "--github.timeout",
        dest="github_timeout",
        type=float,
        default=10.0,
        help="Time budget of one scrape in seconds (default: 10)",
    )
    parser.add_argument(
        "--github.org",
        dest="orgs",
        action="append",
        default=[],
        help="Organization to scrape, repeatable, extends GITHUB_ORGS",
    )
    parser.add_argument(
        "--github.enterprise",
        dest="enterprises",
        action="append",
        default=[],
        help="Enterprise to scrape, repeatable, extends GITHUB_ENTERPRISES",
    )
    parser.add_argument(
        "--github.repo",
        dest="repos",
        action="append",
        default=[],
        help="Repository pattern like owner/name-*, repeatable, extends GITHUB_REPOS",
    )
    parser.add_argument(
        "--collector.billing",
        dest="collector_billing",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Enable the billing collector (default: enabled)",
    )
    parser.add_argument(
        "--collector.billing-legacy",
        dest="collector_billing_legacy",
        action=argparse.BooleanOptionalAction,
        default=False,
        help="Enable the legacy billing metric names (default: disabled)",
    )
    parser.add_argument(
        "--collector.runners",
        dest="collector_runners",
        action=argparse.BooleanOptionalAction,
        default=True,
        help="Enable the runner collector (default: enabled)",
    )

    args = parser.parse_args(argv)
    config = Config.from_env()
    config.listen_address = args.listen_address
    config.log_level = args.log_level
    config.log_format = args.log_format
    if args.github_url:
        config.github_url = args.github_url
    config.github_timeout = args.github_timeout
    config.orgs.extend(args.orgs)
    config.enterprises.extend(args.enterprises)
    config.repos.extend(args.repos)
    config.collector_billing = args.collector_billing
    config.collector_billing_legacy = args.collector_billing_legacy
    config.collector_runners = args.collector_runners
    return config
