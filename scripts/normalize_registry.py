#!/usr/bin/python3
from pathlib import Path

import click

from deployment.options import network_key_option
from deployment.registry import normalize_registry
from deployment.utils import registry_filepath_from_network


@click.command()
@click.option(
    "--registry",
    "registries",
    help="Filepath to registry file; may be repeated",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    multiple=True,
)
@network_key_option
def cli(registries, network_key):
    """Rewrite registry files in canonical order and format."""
    registries = list(registries)
    if network_key:
        registries.append(registry_filepath_from_network(network_key))
    if not registries:
        raise click.BadOptionUsage(
            option_name="--registry", message="Provide a registry file or a network key"
        )
    for registry in registries:
        normalize_registry(registry)
