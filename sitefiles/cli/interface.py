# sitefiles/cli/interface.py
import sys
from pathlib import Path
from typing import Any, Dict, Tuple

import click
from click_option_group import optgroup
import structlog

from sitefiles import __version__ as app_version
from sitefiles.config.settings import BuildConfig, DEFAULT_DEST_DIR
from sitefiles.config.loader import load_and_merge_configs, resolve_profile
from sitefiles.logging_setup import configure_logging
from sitefiles.core.pipeline import SiteBuilder
from sitefiles.exceptions import SiteFilesError, ConfigError
from sitefiles.cli.console_output import print_cli_summary_output

log = structlog.get_logger(__name__)


def _parse_key_values(pairs: Tuple[str, ...], flag: str) -> Dict[str, str]:
    parsed: Dict[str, str] = {}
    for pair in pairs:
        if "=" not in pair:
            raise ConfigError(f"{flag} expects KEY=VALUE, got '{pair}'")
        key, value = pair.split("=", 1)
        parsed[key.strip()] = value
    return parsed


def _build_config(ctx: click.Context, cli_params: Dict[str, Any]) -> BuildConfig:
    # precedence: defaults < config files < profile < command line.
    base_dir = (cli_params.get("base_dir") or Path.cwd()).resolve()
    effective: Dict[str, Any] = resolve_profile(
        load_and_merge_configs(base_dir), cli_params.get("active_config_profile_name")
    )

    def given(name: str) -> bool:
        return ctx.get_parameter_source(name) == click.core.ParameterSource.COMMANDLINE

    if cli_params["src_patterns"]:
        effective["src_patterns"] = list(cli_params["src_patterns"])
    for name in ("exclude_patterns", "partial_patterns"):
        if cli_params[name]:
            effective[name] = list(cli_params[name])
    if cli_params["helper_files"]:
        effective["helper_files"] = [p.resolve() for p in cli_params["helper_files"]]
    for name in ("dest_dir", "ext", "hidden"):
        if given(name):
            effective[name] = cli_params[name]
    if given("no_file_data"):
        effective["include_file_data"] = not cli_params["no_file_data"]
    if given("stream"):
        effective["buffer"] = not cli_params["stream"]

    effective["locals"] = {**effective.get("locals", {}), **_parse_key_values(cli_params["user_vars"], "--var")}
    effective["options"] = {**effective.get("options", {}), **_parse_key_values(cli_params["user_options"], "--option")}
    # --base on the command line wins over a `base` from the config files.
    if cli_params.get("base_dir") or "base_dir" not in effective:
        effective["base_dir"] = base_dir
    return BuildConfig(**effective)


@click.command(context_settings=dict(help_option_names=["-h", "--help"]))
@click.argument("src_patterns", nargs=-1)
@optgroup.group("Input Options", help="Which files to render.")
@optgroup.option("-b", "--base", "base_dir", type=click.Path(exists=True, file_okay=False, path_type=Path), default=None, help="Directory sources are found in and relative to. Default: current directory.")
@optgroup.option("-e", "--exclude", "exclude_patterns", multiple=True, help="Glob patterns for files to skip.")
@optgroup.option("--hidden", "hidden", is_flag=True, default=False, help="Include hidden files and directories.")
@optgroup.option("--stream", "stream", is_flag=True, default=False, help="Open sources as streams instead of loading them (they will be rejected by engines).")
@optgroup.group("Rendering Options", help="Engines, helpers, partials and template data.")
@optgroup.option("--ext", "ext", default=None, help="Force the output extension for every rendered file.")
@optgroup.option("--var", "user_vars", multiple=True, metavar="KEY=VALUE", help="Template locals for every file.")
@optgroup.option("--option", "user_options", multiple=True, metavar="KEY=VALUE", help="Render options, e.g. encoding=latin-1.")
@optgroup.option("--helpers", "helper_files", multiple=True, type=click.Path(exists=True, dir_okay=False, path_type=Path), help="Python file(s) defining Handlebars helpers.")
@optgroup.option("--partials", "partial_patterns", multiple=True, help="Glob patterns for partial templates, named by file stem.")
@optgroup.option("--no-file-data", "no_file_data", is_flag=True, default=False, help="Do not merge front matter into template locals.")
@optgroup.group("Output Options")
@optgroup.option("-d", "--dest", "dest_dir", type=click.Path(file_okay=False, path_type=Path), default=DEFAULT_DEST_DIR, help=f"Destination directory. Default: {DEFAULT_DEST_DIR}.")
@optgroup.group("Application Behavior", help="Configuration profiles and logging.")
@optgroup.option("--config-profile", "active_config_profile_name", default=None, help="Load a profile from config file(s).")
@optgroup.option("--summary/--no-summary", "show_summary", default=True, help="Print a build summary to stderr.")
@optgroup.option("--verbose", "-v", "verbosity_level", count=True, help="Verbosity: -v info, -vv debug.")
@optgroup.option("--json-logs", "force_json_logs_cli", is_flag=True, default=False, help="Force JSON logs.")
@click.version_option(version=app_version, package_name="sitefiles", prog_name="sitefiles", help="Show version and exit.")
@click.pass_context
def main_cli(ctx: click.Context, **cli_params: Any):
    """sitefiles: render templates into a static site.

    SRC_PATTERNS are glob patterns relative to --base. Default: **/*.hbs"""

    log_level = "warning"
    if cli_params.get("verbosity_level", 0) == 1: log_level = "info"
    elif cli_params.get("verbosity_level", 0) >= 2: log_level = "debug"
    configure_logging(log_level_str=log_level, force_json_logs=cli_params.get("force_json_logs_cli", False))

    log.debug("cli_command_invoked", params=cli_params)

    try:
        config = _build_config(ctx, cli_params)
        result = SiteBuilder(config).build()
    except SiteFilesError as e:
        log.error("handled_application_error_in_cli", error_type=type(e).__name__, message=str(e))
        click.secho(f"Error: {e}", fg="red", err=True)
        sys.exit(1)

    if cli_params.get("show_summary"):
        print_cli_summary_output(config, result)
    if not result.ok:
        sys.exit(1)
