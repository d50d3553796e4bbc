"""
命令行入口
"""
import sys
from typing import Optional, Tuple

import click

from .app import SSLCheckDomainApp
from .services.config import VALID_OUTPUTS, load_config
from .services.error_handler import ConfigurationError, ProviderError
from .services.report_builder import EXIT_ERROR

__version__ = "1.0.0"

EPILOG = """\b
Examples:
  sslcheckdomain --test example.com
  sslcheckdomain example.com api.example.com
  sslcheckdomain --expiring-in 7
  sslcheckdomain --output json
  sslcheckdomain --zone example.com

\b
Exit status: 0 all OK, 1 warnings, 2 expired certificates, 3 errors."""


@click.command(context_settings={"help_option_names": ["-h", "--help"]}, epilog=EPILOG)
@click.version_option(version=__version__, prog_name="sslcheckdomain")
@click.argument("domains", nargs=-1)
@click.option("-p", "--provider", help="DNS provider (cloudflare, route53).")
@click.option("-z", "--zone", help="Filter by specific zone/domain.")
@click.option("-e", "--expiring-in", type=int, default=0,
              help="Show only certs expiring in N days (0 = show all).")
@click.option("-t", "--threshold", type=int, help="Warning threshold in days (default from config).")
@click.option("-o", "--output", type=click.Choice(VALID_OUTPUTS),
              help="Output format (default from config).")
@click.option("-c", "--concurrent", type=int, help="Number of concurrent checks (default from config).")
@click.option("--timeout", type=int, help="Connection timeout in seconds (default from config).")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output.")
@click.option("-d", "--test", "test_domain", help="Test a single domain (bypasses provider lookup).")
@click.option("--config", "config_file", type=click.Path(dir_okay=False),
              help="Path to a YAML configuration file.")
def cli(
    domains: Tuple[str, ...],
    provider: Optional[str],
    zone: Optional[str],
    expiring_in: int,
    threshold: Optional[int],
    output: Optional[str],
    concurrent: Optional[int],
    timeout: Optional[int],
    verbose: bool,
    test_domain: Optional[str],
    config_file: Optional[str],
) -> int:
    """Check SSL certificate expiration for multiple domains.

    Domains are taken from the arguments, the DOMAINS environment variable
    or discovered from the DNS provider, and shown sorted by expiration.
    """
    try:
        config = load_config(config_file)

        # 命令行参数覆盖配置
        if provider:
            config.provider = provider
        if zone:
            config.zone = zone
        if expiring_in > 0:
            config.expiring_in = expiring_in
        if threshold is not None:
            config.threshold = threshold
        if output:
            config.output = output
        if concurrent is not None:
            config.concurrent = concurrent
        if timeout is not None:
            config.timeout = timeout
        if verbose:
            config.verbose = True
        if domains:
            config.domains = list(domains)

        app = SSLCheckDomainApp(config)
        return app.run(test_domain=test_domain)

    except ConfigurationError as e:
        raise click.ClickException(f"invalid configuration: {e}")
    except ProviderError as e:
        raise click.ClickException(str(e))


def main(argv=None):
    """控制台脚本入口，按约定的退出码退出"""
    try:
        exit_code = cli.main(args=argv, prog_name="sslcheckdomain", standalone_mode=False)
    except click.ClickException as e:
        e.show()
        sys.exit(EXIT_ERROR)
    except click.Abort:
        click.echo("Aborted!", err=True)
        sys.exit(EXIT_ERROR)

    sys.exit(exit_code or 0)


if __name__ == "__main__":
    main()
