"""
命令行入口
"""
import sys
from typing import Tuple

import click

from .config import (
    DEFAULT_AGE_CRITICAL,
    DEFAULT_AGE_WARNING,
    DEFAULT_LOG_LEVEL,
    DEFAULT_PORT,
    DEFAULT_TIMEOUT,
    SKIP_SANS_CHECK_KEYWORD,
    PluginConfig,
    parse_sans_entries,
    version,
)
from .monitor import CertChainMonitor


def _print_version(ctx: click.Context, param: click.Parameter, value: bool):
    if not value or ctx.resilient_parsing:
        return
    click.echo(version())
    ctx.exit(0)


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("--server", "-s", default="", help="Server FQDN or IP Address of the TLS-enabled service.")
@click.option("--dns-name", default="", help="Hostname used for SNI and leaf certificate verification.")
@click.option("--port", "-p", type=int, default=DEFAULT_PORT, show_default=True, help="TCP port of the service.")
@click.option("--filename", "-f", default="", help="Certificate file to check instead of a remote service.")
@click.option("--timeout", "-t", type=int, default=DEFAULT_TIMEOUT, show_default=True,
              help="Connection timeout in seconds.")
@click.option("--age-warning", "-w", type=int, default=DEFAULT_AGE_WARNING, show_default=True,
              help="Days remaining before expiration that trigger a WARNING state.")
@click.option("--age-critical", "-c", type=int, default=DEFAULT_AGE_CRITICAL, show_default=True,
              help="Days remaining before expiration that trigger a CRITICAL state.")
@click.option("--sans-entries", multiple=True,
              help=f"Expected SANs entries (repeatable or comma separated); "
                   f"use {SKIP_SANS_CHECK_KEYWORD} as the first entry to skip the check.")
@click.option("--disable-hostname-verification-if-empty-sans", is_flag=True, default=False,
              help="Skip hostname verification when the leaf certificate has no SANs entries.")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Include extra certificate details.")
@click.option("--branding", is_flag=True, default=False, help="Append plugin name and version to the output.")
@click.option("--log-level", envvar="LOG_LEVEL", default=DEFAULT_LOG_LEVEL, show_default=True,
              type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
              help="Log level for messages written to stderr.")
@click.option("--sns-topic-arn", envvar="SNS_TOPIC_ARN", default=None,
              help="Publish non-OK results to this SNS topic.")
@click.option("--version", is_flag=True, callback=_print_version, expose_value=False, is_eager=True,
              help="Print version and exit.")
def main(
    server: str,
    dns_name: str,
    port: int,
    filename: str,
    timeout: int,
    age_warning: int,
    age_critical: int,
    sans_entries: Tuple[str, ...],
    disable_hostname_verification_if_empty_sans: bool,
    verbose: bool,
    branding: bool,
    log_level: str,
    sns_topic_arn: str,
) -> None:
    """Check the certificate chain of a TLS-enabled service or a certificate file."""
    config = PluginConfig(
        server=server.strip(),
        dns_name=dns_name.strip(),
        port=port,
        filename=filename.strip(),
        timeout=timeout,
        age_warning=age_warning,
        age_critical=age_critical,
        sans_entries=parse_sans_entries(sans_entries),
        disable_hostname_verification_if_empty_sans=disable_hostname_verification_if_empty_sans,
        verbose=verbose,
        emit_branding=branding,
        log_level=log_level.upper(),
        sns_topic_arn=sns_topic_arn or None,
    )

    monitor = CertChainMonitor(config)
    result = monitor.run()

    click.echo(monitor.render(result), nl=False)
    sys.exit(result.exit_code)


if __name__ == "__main__":
    main()
