#!/usr/bin/env python3
"""
CLI entry point for assetbridge: inspect and exercise configured backends.
"""

import sys
from dataclasses import dataclass
from pathlib import Path

import click

from assetbridge import __version__
from assetbridge.config import Settings, get_settings
from assetbridge.logging import configure_logging, get_logger
from assetbridge.naming import expand_directory_structure, generate_filename
from assetbridge.storage import (
    BackendRegistry,
    InMemoryMetadataStore,
    JsonFileMetadataStore,
    MetadataStore,
    StorageAdapter,
    create_example_config,
    load_storage_config,
)

logger = get_logger(__name__)


@dataclass
class CliContext:
    settings: Settings
    registry: BackendRegistry


def build_registry(settings: Settings, config_path: str | None = None) -> BackendRegistry:
    """Build the backend registry from settings and the storage YAML."""
    path = config_path or settings.storage_config_path
    storage_config = load_storage_config(Path(path) if path else None)
    logger.debug(
        "Loaded storage configuration",
        default_backend=storage_config.get_default_backend(),
        enabled_backends=sorted(storage_config.get_enabled_backends()),
    )

    metadata_store: MetadataStore
    if settings.imgur_metadata_path:
        metadata_store = JsonFileMetadataStore(settings.imgur_metadata_path)
    else:
        metadata_store = InMemoryMetadataStore()

    return BackendRegistry.from_config(
        storage_config, metadata_store=metadata_store, timeout=settings.http_timeout
    )


def _require_adapter(ctx: CliContext, backend: str) -> StorageAdapter:
    adapter = ctx.registry.resolve(backend)
    if adapter is None:
        click.echo(f"✗ Backend '{backend}' is not enabled or not configured", err=True)
        sys.exit(1)
    return adapter


@click.group()
@click.option(
    "--config",
    "config_path",
    default=None,
    type=click.Path(dir_okay=False),
    help="Storage configuration YAML (default: ASSETBRIDGE_STORAGE_CONFIG_PATH)",
)
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"]),
    help="Log level (default: info)",
)
@click.version_option(version=__version__, prog_name="assetbridge")
@click.pass_context
def cli(ctx: click.Context, config_path: str | None, log_level: str) -> None:
    """assetbridge CLI - inspect and exercise storage backends."""
    settings = get_settings()
    configure_logging(debug=(log_level == "debug"), log_level=log_level)
    try:
        registry = build_registry(settings, config_path)
    except ValueError as e:
        click.echo(f"✗ {e}", err=True)
        sys.exit(1)
    ctx.obj = CliContext(settings=settings, registry=registry)
    ctx.call_on_close(registry.close)


@cli.command("backends")
@click.pass_obj
def list_backends(ctx: CliContext) -> None:
    """List known backends and whether they are enabled."""
    enabled = set(ctx.registry.enabled_ids())
    for backend_id, name in ctx.registry.available().items():
        marker = "✓" if backend_id in enabled else " "
        click.echo(f"{marker} {backend_id:<16} {name}")


@cli.command("test-connection")
@click.argument("backend", required=False)
@click.pass_obj
def test_connection(ctx: CliContext, backend: str | None) -> None:
    """Check credentials against one backend, or all enabled backends."""
    backends = [backend] if backend else [b for b in ctx.registry.enabled_ids() if b != "local"]
    if not backends:
        click.echo("No cloud backends are enabled")
        return

    failures = 0
    for backend_id in backends:
        adapter = _require_adapter(ctx, backend_id)
        if adapter.test_connection():
            click.echo(f"✓ {backend_id}: connection OK")
        else:
            failures += 1
            click.echo(f"✗ {backend_id}: connection failed", err=True)

    if failures:
        sys.exit(1)


@cli.command("upload")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--backend", required=True, help="Backend to upload to")
@click.option(
    "--remote-path",
    default=None,
    help="Remote path (default: derived from the naming settings)",
)
@click.pass_obj
def upload(ctx: CliContext, file: Path, backend: str, remote_path: str | None) -> None:
    """Upload a single file."""
    adapter = _require_adapter(ctx, backend)

    if remote_path is None:
        directory = expand_directory_structure(ctx.settings.directory_structure)
        name = generate_filename(ctx.settings.filename_rule, file.name, file.read_bytes())
        remote_path = f"{directory}/{name}" if directory else name

    result = adapter.upload_file(file, remote_path)
    if not result.ok:
        click.echo(f"✗ Upload failed ({result.error})", err=True)
        sys.exit(1)
    click.echo(result.url)


@cli.command("delete")
@click.argument("remote_path")
@click.option("--backend", required=True, help="Backend holding the file")
@click.pass_obj
def delete(ctx: CliContext, remote_path: str, backend: str) -> None:
    """Delete a remote file."""
    adapter = _require_adapter(ctx, backend)
    error = adapter.try_delete(remote_path)
    if error is not None:
        click.echo(f"✗ Delete failed ({error})", err=True)
        sys.exit(1)
    click.echo(f"✓ Deleted {remote_path}")


@cli.command("url")
@click.argument("remote_path")
@click.option("--backend", required=True, help="Backend holding the file")
@click.pass_obj
def url(ctx: CliContext, remote_path: str, backend: str) -> None:
    """Print the public URL of a remote path."""
    adapter = _require_adapter(ctx, backend)
    resolved = adapter.get_file_url(remote_path)
    if not resolved:
        click.echo(f"✗ No URL known for {remote_path}", err=True)
        sys.exit(1)
    click.echo(resolved)


@cli.command("example-config")
def example_config() -> None:
    """Print an example storage configuration."""
    click.echo(create_example_config())


def main() -> None:
    cli()


if __name__ == "__main__":
    main()
