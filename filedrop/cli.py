# cli.py
import logging

import click

from filedrop.aws.storage import presign
from filedrop.aws.sync import run_sync
from filedrop.core.config import conf_path, load_config
from filedrop.core.errors import FiledropError, UsageError
from filedrop.core.models import Direction
from filedrop.logs import configure_logging
from filedrop.systemd import DEFAULT_INTERVAL, render_units, write_units

logger = logging.getLogger(__name__)

config_option = click.option(
    "--config",
    "config_path",
    envvar="FILEDROP_CONF",
    type=click.Path(dir_okay=False),
    default=None,
    help="Path to the KEY=\"value\" config file (default /etc/filedrop.conf)",
)
verbose_option = click.option("-v", "--verbose", is_flag=True, help="Debug logging on stderr")


def _fail(ctx: click.Context, err: FiledropError):
    click.echo(str(err), err=True)
    ctx.exit(err.exit_code)


def _parse_expires(value):
    if value is None:
        return None
    try:
        return int(value)
    except ValueError:
        raise UsageError(f"Error: expires-seconds must be an integer, got {value!r}")


def _presign_command(direction: Direction) -> click.Command:
    name = f"presign-{direction.value.lower()}"
    usage = f"Usage: filedrop-{name} <relative-path-under-PREFIX> [expires-seconds]"

    # Negative expiries like "-5" must reach _parse_expires, not the option parser.
    @click.command(
        name=name,
        help=f"Print a presigned {direction.value} URL for a path under PREFIX.",
        context_settings={"ignore_unknown_options": True},
    )
    @click.argument("relative_path", required=False)
    @click.argument("expires", required=False)
    @config_option
    @verbose_option
    @click.pass_context
    def command(ctx, relative_path, expires, config_path, verbose):
        configure_logging(verbose)
        if not relative_path:
            click.echo(usage, err=True)
            ctx.exit(1)
        try:
            expires_in = _parse_expires(expires)
            config = load_config(config_path)
            signed = presign(config, direction, relative_path, expires_in)
        except FiledropError as e:
            _fail(ctx, e)
        click.echo(signed.url)

    return command


presign_get = _presign_command(Direction.GET)
presign_put = _presign_command(Direction.PUT)


@click.command(name="sync")
@config_option
@verbose_option
@click.pass_context
def sync(ctx, config_path, verbose):
    """Mirror the upload directory to s3://BUCKET/PREFIX once."""
    configure_logging(verbose)
    try:
        config = load_config(config_path)
        code = run_sync(config)
    except FiledropError as e:
        _fail(ctx, e)
    except OSError as e:
        click.echo(f"Error: cannot write sync log: {e}", err=True)
        ctx.exit(1)
    ctx.exit(code)


@click.group()
def cli():
    """Secure file drop: presigned URLs and S3 sync"""
    pass


cli.add_command(presign_get)
cli.add_command(presign_put)
cli.add_command(sync)


@cli.command()
@config_option
@click.pass_context
def show_config(ctx, config_path):
    """Show current configuration"""
    try:
        config = load_config(config_path)
    except FiledropError as e:
        _fail(ctx, e)

    click.echo("Current Configuration:")
    click.echo(f"  Config File: {conf_path(config_path)}")
    click.echo(f"  Bucket: {config.bucket}")
    click.echo(f"  Region: {config.region}")
    click.echo(f"  Prefix: {config.prefix or '(none)'}")
    click.echo(f"  Default Expiry: {config.expires_default}s")
    click.echo(f"  Upload Dir: {config.upload_dir}")
    click.echo(f"  Sync Log: {config.sync_log}")
    click.echo(f"  Endpoint: {config.endpoint_url or '(regional default)'}")
    click.echo(f"  Destination: {config.destination}")


@cli.command()
@config_option
@click.option("--output-dir", type=click.Path(file_okay=False), default=None,
              help="Write the unit files here instead of printing them")
@click.option("--interval", default=DEFAULT_INTERVAL, show_default=True,
              help="systemd time span between sync runs")
@click.option("--exec-start", default=None, help="Command the service runs (default: filedrop-sync on PATH)")
@click.pass_context
def systemd_units(ctx, config_path, output_dir, interval, exec_start):
    """Render the filedrop-sync service and timer units"""
    try:
        config = load_config(config_path)
    except FiledropError as e:
        _fail(ctx, e)

    units = render_units(conf_path(config_path), config.upload_dir, interval=interval, exec_start=exec_start)
    if output_dir is None:
        for name, body in units.items():
            click.echo(f"# {name}")
            click.echo(body)
        return

    for name, path in write_units(units, output_dir).items():
        click.echo(f"wrote {path}")
    click.echo("Enable with: systemctl daemon-reload && systemctl enable --now filedrop-sync.timer")


if __name__ == "__main__":
    cli()
