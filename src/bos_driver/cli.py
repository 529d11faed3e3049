"""Command-line interface for the BOS storage driver."""

import sys
from contextlib import contextmanager
from typing import Iterator

import click
from dotenv import load_dotenv

from .config_loader import load_storage_config
from .exceptions import StorageDriverError
from .logging_config import configure_logging
from .registry import default_registry
from .storage_driver import StorageDriver

VERSION = "0.1.0"

# Copy buffer for `cat`; independent of the driver's multipart chunk size
COPY_BUFFER_SIZE = 64 * 1024


# Helper functions for colored output
def echo_success(message, quiet=False):
    """Echo success message in green."""
    if not quiet:
        click.secho(f"✅ {message}", fg="green", err=True)


def echo_error(message):
    """Echo error message in red."""
    click.secho(f"❌ {message}", fg="red", err=True)


def format_size(num_bytes):
    """Format a byte count in human-readable form."""
    size = float(num_bytes)
    for unit in ("B", "KiB", "MiB", "GiB"):
        if size < 1024 or unit == "GiB":
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GiB"


@contextmanager
def handle_errors() -> Iterator[None]:
    """Turn driver and config errors into a red message and exit code 1."""
    try:
        yield
    except (StorageDriverError, FileNotFoundError) as e:
        echo_error(str(e))
        sys.exit(1)


def get_driver(ctx: click.Context) -> StorageDriver:
    """Build (once) the driver described by the --config file."""
    if ctx.obj.get("DRIVER") is None:
        config = load_storage_config(ctx.obj["CONFIG"])
        registry = default_registry()
        ctx.obj["DRIVER"] = registry.create(config.driver, config.parameters)
    driver: StorageDriver = ctx.obj["DRIVER"]
    return driver


@click.group()
@click.version_option(version=VERSION)
@click.option(
    "--config",
    "-c",
    envvar="BOS_DRIVER_CONFIG",
    default="config.yml",
    show_default=True,
    help="Registry configuration file with a 'storage' section",
)
@click.option("--log-level", default="WARNING", show_default=True, help="Log level")
@click.option("--json-logs", is_flag=True, help="Emit JSON-formatted structured logs")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output")
@click.pass_context
def main(ctx, config, log_level, json_logs, quiet):
    """BOS storage driver for container registries.

    Inspect and manipulate registry blobs stored in a BOS bucket.
    """
    # Load environment variables from .env file if it exists
    load_dotenv()

    ctx.ensure_object(dict)
    ctx.obj["CONFIG"] = config
    ctx.obj["QUIET"] = quiet
    ctx.obj.setdefault("DRIVER", None)

    configure_logging(level=log_level, json_format=json_logs)


@main.command()
def version():
    """Show version information."""
    click.echo(f"bos-driver version {VERSION}")


@main.command()
@click.argument("path")
@click.pass_context
def cat(ctx, path):
    """Write the content stored at PATH to stdout."""
    with handle_errors():
        driver = get_driver(ctx)
        stream = driver.reader(path, 0)
        out = sys.stdout.buffer
        try:
            for data in iter(lambda: stream.read(COPY_BUFFER_SIZE), b""):
                out.write(data)
        finally:
            stream.close()
        out.flush()


@main.command()
@click.argument("path")
@click.argument("source", type=click.File("rb"), default="-")
@click.pass_context
def put(ctx, path, source):
    """Upload SOURCE (a file, or stdin when omitted) to PATH."""
    with handle_errors():
        driver = get_driver(ctx)
        written = driver.write_stream(path, 0, source)
    echo_success(f"Wrote {format_size(written)} to {path}", ctx.obj["QUIET"])


@main.command()
@click.argument("path")
@click.pass_context
def stat(ctx, path):
    """Show size and type of PATH."""
    with handle_errors():
        info = get_driver(ctx).stat(path)
    if info.is_dir:
        click.echo(f"{info.path}\tdirectory")
    else:
        click.echo(f"{info.path}\tfile\t{info.size}")


@main.command(name="ls")
@click.argument("path")
@click.pass_context
def list_command(ctx, path):
    """List the direct children of PATH."""
    with handle_errors():
        children = get_driver(ctx).list(path)
    for child in children:
        click.echo(child)


@main.command()
@click.argument("source")
@click.argument("dest")
@click.pass_context
def mv(ctx, source, dest):
    """Move SOURCE to DEST."""
    with handle_errors():
        get_driver(ctx).move(source, dest)
    echo_success(f"Moved {source} -> {dest}", ctx.obj["QUIET"])


@main.command()
@click.argument("path")
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_context
def rm(ctx, path, yes):
    """Delete PATH and everything stored beneath it."""
    if not yes:
        click.confirm(f"Delete everything under {path}?", abort=True)
    with handle_errors():
        get_driver(ctx).delete(path)
    echo_success(f"Deleted {path}", ctx.obj["QUIET"])


@main.command()
@click.argument("path")
@click.pass_context
def url(ctx, path):
    """Print a URL serving PATH, if the driver supports it."""
    with handle_errors():
        click.echo(get_driver(ctx).url_for(path))


if __name__ == "__main__":
    main()
