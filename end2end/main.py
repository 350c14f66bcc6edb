"""Entry points for the ``check_end2end`` and ``check_certificates`` plugins."""

from __future__ import annotations

import argparse
import logging
import sys

from rich.console import Console
from rich.markdown import Markdown

from . import __version__
from .config import settings
from .engine import (
    ConfigError,
    Deadline,
    End2EndError,
    Report,
    Severity,
    StepSequence,
    run_check,
)
from .manual import CERTIFICATES_MANUAL, END2END_MANUAL
from .output import default_shortname, exit_code, render
from .probes import CertificateProbe, HttpProbe, ProxyConfig
from .probes.tls import split_target
from .stepfile import load_step_file, parse_var_assignments

console = Console()
logger = logging.getLogger(__name__)


def _configure_logging(args: argparse.Namespace) -> None:
    if args.debug:
        level = logging.DEBUG
    elif args.verbose:
        level = logging.INFO
    else:
        level = getattr(logging, settings.log_level.upper(), logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log progress to stderr.")
    parser.add_argument("-d", "--debug", action="store_true", help="Log debugging messages to stderr.")
    parser.add_argument("-M", "--manual", action="store_true", help="Show the plugin manual.")
    parser.add_argument(
        "-t", "--timeout", type=float, default=None,
        help="Abort the whole check with UNKNOWN after this many seconds.",
    )
    parser.add_argument(
        "-w", "--warning", default="",
        help="Warning threshold for each single step (comma list applies per step).",
    )
    parser.add_argument(
        "-c", "--critical", default="",
        help="Critical threshold for each single step (comma list applies per step).",
    )


def _finish(report: Report, shortname: str) -> int:
    print(render(report, shortname))
    return exit_code(report.severity)


def _deadline(args: argparse.Namespace) -> Deadline | None:
    return Deadline(args.timeout) if args.timeout else None


# ── check_end2end ────────────────────────────────────────────────────────────


def end2end_parser(prog: str = "check_end2end") -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Fake a website navigation as configured in the named step file.",
    )
    _add_common_args(parser)
    parser.add_argument("-W", "--totwarning", default="", help="Warning threshold for the whole process.")
    parser.add_argument("-C", "--totcritical", default="", help="Critical threshold for the whole process.")
    parser.add_argument("-f", "--configFile", help="Step file (YAML) describing the steps to perform.")
    parser.add_argument(
        "-e", "--useEnvVars", action="store_true",
        help="Interpolate environment variables in the step file too.",
    )
    parser.add_argument(
        "-E", "--allowEmptyVars", action="store_true",
        help="Expand undefined variables to '' instead of failing.",
    )
    parser.add_argument(
        "--var", action="append", metavar="VAR=VALUE",
        help="Variable for the step file (repeatable); turns on --useEnvVars.",
    )
    return parser


def end2end(argv: list[str] | None = None) -> int:
    parser = end2end_parser()
    args = parser.parse_args(argv)
    _configure_logging(args)

    if args.manual:
        console.print(Markdown(END2END_MANUAL))
        return 0

    shortname = default_shortname(parser.prog)
    try:
        if not args.configFile:
            raise ConfigError("Missing mandatory option: --configFile|-f")
        step_file = load_step_file(
            args.configFile,
            use_env=args.useEnvVars,
            allow_empty_vars=args.allowEmptyVars,
            cli_vars=parse_var_assignments(args.var),
        )
        shortname = step_file.shortname or shortname
        sequence = StepSequence.from_mapping(step_file.steps)

        with HttpProbe(user_agent=step_file.user_agent, timeout=args.timeout) as probe:
            report = run_check(
                sequence,
                probe,
                warning=args.warning,
                critical=args.critical,
                total_warning=args.totwarning,
                total_critical=args.totcritical,
                deadline=_deadline(args),
            )
    except End2EndError as e:
        logger.debug("Configuration error", exc_info=True)
        report = Report(severity=Severity.UNKNOWN, message=str(e))

    return _finish(report, shortname)


# ── check_certificates ───────────────────────────────────────────────────────


def certificates_parser(prog: str = "check_certificates") -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Check TLS certificates by connecting to each HOST[:PORT].",
    )
    _add_common_args(parser)
    parser.add_argument("--verify", action="store_true", help="Validate the chain and check OCSP revocation.")
    parser.add_argument("--proxyHost", help="Connect to the targets through this proxy.")
    parser.add_argument("--proxyPort", type=int, default=None, help=f"Proxy port. Default: {settings.proxy_port}")
    parser.add_argument("--proxyScheme", default=None, help=f"Proxy scheme. Default: {settings.proxy_scheme}")
    parser.add_argument("--proxyUser", default="", help="Proxy username, if the proxy requires authentication.")
    parser.add_argument("--proxyPassword", default="", help="Proxy password.")
    parser.add_argument(
        "-P", "--useEnvProxy", action="store_true",
        help="Take the proxy from the https_proxy environment variable.",
    )
    parser.add_argument(
        "--on-failure", dest="on_failure", default="CRITICAL",
        help="Status for a target that fails: OK, WARNING, CRITICAL (default) or UNKNOWN.",
    )
    parser.add_argument("targets", nargs="*", metavar="HOST[:PORT]")
    return parser


def _proxy_from_args(args: argparse.Namespace) -> ProxyConfig | None:
    if args.proxyHost:
        proxy = ProxyConfig(
            host=args.proxyHost,
            port=args.proxyPort or settings.proxy_port,
            scheme=args.proxyScheme or settings.proxy_scheme,
            user=args.proxyUser,
            password=args.proxyPassword,
        )
    elif args.useEnvProxy:
        proxy = ProxyConfig.from_env()
    else:
        return None
    if proxy is not None and proxy.scheme.lower() != "http":
        raise ConfigError(f"Unsupported proxy scheme {proxy.scheme!r}: only http proxies can tunnel")
    return proxy


def certificate_steps(targets: list[str], on_failure: str) -> dict[str, dict[str, str]]:
    """One CONNECT step per target; zero-padded names keep command line order."""
    width = max(2, len(str(len(targets) - 1)))
    steps: dict[str, dict[str, str]] = {}
    for index, target in enumerate(targets):
        try:
            host, port = split_target(target)
        except ValueError:
            raise ConfigError(f"Cannot parse target {target!r}") from None
        address = f"[{host}]:{port}" if ":" in host else f"{host}:{port}"
        steps[f"{index:0{width}d} {address}"] = {
            "url": address,
            "method": "CONNECT",
            "on_failure": on_failure,
        }
    return steps


def certificates(argv: list[str] | None = None) -> int:
    parser = certificates_parser()
    args = parser.parse_args(argv)
    _configure_logging(args)

    if args.manual:
        console.print(Markdown(CERTIFICATES_MANUAL))
        return 0

    shortname = default_shortname(parser.prog)
    try:
        if not args.targets:
            raise ConfigError("No targets specified on command line")
        proxy = _proxy_from_args(args)
        sequence = StepSequence.from_mapping(certificate_steps(args.targets, args.on_failure))
        logger.debug("Using verification method: %s", "full chain OCSP" if args.verify else "none")

        probe = CertificateProbe(verify=args.verify, proxy=proxy, connect_timeout=args.timeout)
        report = run_check(
            sequence,
            probe,
            warning=args.warning,
            critical=args.critical,
            deadline=_deadline(args),
        )
    except End2EndError as e:
        logger.debug("Configuration error", exc_info=True)
        report = Report(severity=Severity.UNKNOWN, message=str(e))

    return _finish(report, shortname)


def main() -> None:
    sys.exit(end2end())


def main_certificates() -> None:
    sys.exit(certificates())


if __name__ == "__main__":
    main()
