from __future__ import annotations

import os
import shutil
import sys
from pathlib import Path
from typing import Optional

import click

from blobstore.config.store_config import BlobStoreConfig
from blobstore.core.blob_store import S3BlobStore
from blobstore.core.exceptions import BlobNotFoundError, BlobStoreError
from blobstore.utils.logging import configure_logging, log_context


def _load_config(
    bucket: Optional[str],
    base_path: Optional[str],
    endpoint_url: Optional[str],
    config_file: Optional[str],
) -> BlobStoreConfig:
    if config_file:
        config = BlobStoreConfig.from_yaml(config_file)
    elif bucket:
        config = BlobStoreConfig(bucket=bucket)
    else:
        config = BlobStoreConfig.from_env()

    overrides = {}
    if bucket:
        overrides["bucket"] = bucket
    if base_path is not None:
        overrides["base_path"] = base_path
    if endpoint_url:
        overrides["endpoint_url"] = endpoint_url
    if not overrides:
        return config
    return BlobStoreConfig(**{**config.model_dump(), **overrides})


@click.group()
@click.option("--bucket", help="S3 bucket (default: $BLOBSTORE_BUCKET)")
@click.option("--base-path", default=None, help="Key prefix of the container")
@click.option("--endpoint-url", default=None, help="Custom S3 endpoint")
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False),
    help="YAML configuration file",
)
@click.option("--log-level", default=lambda: os.getenv("LOG_LEVEL", "WARNING"))
@click.pass_context
def cli(
    ctx: click.Context,
    bucket: Optional[str],
    base_path: Optional[str],
    endpoint_url: Optional[str],
    config_file: Optional[str],
    log_level: str,
) -> None:
    """Inspect and manage blobs in an S3 blob container."""
    configure_logging(level=log_level, json_output=False)
    try:
        config = _load_config(bucket, base_path, endpoint_url, config_file)
    except (RuntimeError, ValueError) as exc:
        raise click.UsageError(str(exc)) from exc
    ctx.with_resource(log_context(bucket=config.bucket, base_path=config.base_path))
    store = ctx.with_resource(S3BlobStore(config))
    ctx.obj = store.blob_container()


@cli.command("ls")
@click.argument("prefix", required=False)
@click.pass_obj
def list_cmd(container, prefix: Optional[str]) -> None:
    """List blobs, optionally only those starting with PREFIX."""
    blobs = container.list_blobs_by_prefix(prefix)
    for name in sorted(blobs):
        click.echo(f"{blobs[name].length:>14}  {name}")


@cli.command("put")
@click.argument("name")
@click.argument("source", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.pass_obj
def put_cmd(container, name: str, source: Path) -> None:
    """Upload file SOURCE as blob NAME."""
    size = source.stat().st_size
    with source.open("rb") as fh:
        container.write_blob(name, fh, size)
    click.echo(f"uploaded {name} ({size} bytes)")


@cli.command("get")
@click.argument("name")
@click.argument("target", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.pass_obj
def get_cmd(container, name: str, target: Optional[Path]) -> None:
    """Download blob NAME to TARGET (stdout if omitted)."""
    try:
        stream = container.read_blob(name)
    except BlobNotFoundError as exc:
        raise click.ClickException(str(exc)) from exc
    try:
        if target is None:
            shutil.copyfileobj(stream, sys.stdout.buffer)
        else:
            with target.open("wb") as fh:
                shutil.copyfileobj(stream, fh)
    finally:
        stream.close()


@cli.command("rm")
@click.argument("names", nargs=-1, required=True)
@click.pass_obj
def rm_cmd(container, names: tuple[str, ...]) -> None:
    """Delete blobs NAMES, ignoring missing ones."""
    try:
        container.delete_blobs_ignoring_if_not_exists(list(names))
    except BlobStoreError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"deleted {len(names)} blob(s)")


@cli.command("exists")
@click.argument("name")
@click.pass_obj
def exists_cmd(container, name: str) -> None:
    """Exit with status 0 if blob NAME exists, 1 otherwise."""
    exists = container.blob_exists(name)
    click.echo("yes" if exists else "no")
    click.get_current_context().exit(0 if exists else 1)


def main() -> None:
    cli(auto_envvar_prefix="BLOBSTORE")


if __name__ == "__main__":
    main()
