#!/usr/bin/python3
from itertools import groupby
from typing import List, Optional, Tuple

import click

from deployment.constants import SUPPORTED_NETWORKS
from deployment.networks import is_local_chain
from deployment.registry import RegistryEntry, read_registry
from deployment.utils import get_chain_name, registry_filepath_from_network


def _format_chain_name(chain_name: str) -> str:
    """Format the chain name to capitalize each word and join with slashes."""
    return "/".join(word.capitalize() for word in chain_name.split())


def _chain_label(chain_id: int) -> str:
    if is_local_chain(chain_id):
        return f"Local ({chain_id})"
    try:
        return _format_chain_name(get_chain_name(chain_id))
    except ValueError:
        return f"Chain {chain_id}"


def _get_registry_entries(
    network_key: Optional[str] = None,
) -> List[Tuple[str, List[RegistryEntry]]]:
    """Parse the registry files for the given network or all supported networks."""
    registry_entries = list()
    for supported_network in SUPPORTED_NETWORKS:
        if network_key and network_key != supported_network:
            continue
        try:
            registry_filepath = registry_filepath_from_network(supported_network)
        except ValueError:
            if network_key:
                raise
            continue  # nothing deployed there yet
        entries = read_registry(filepath=registry_filepath)
        registry_entries.append((supported_network, entries))
    return registry_entries


def _display_registry_entries(registry_entries: List[Tuple[str, List[RegistryEntry]]]) -> None:
    """Display registry entries grouped by chain ID."""
    for network_key, entries in registry_entries:
        grouped_entries = groupby(entries, key=lambda e: e.chain_id)
        click.secho(f"\n{network_key}", fg="green")

        for chain_id, chain_entries in grouped_entries:
            click.secho(f"    {_chain_label(chain_id)}", fg="yellow")

            for index, entry in enumerate(chain_entries, start=1):
                click.secho(f"        {index}. {entry.name} {entry.address}", fg="cyan")


@click.command(name="list-contracts")
@click.option(
    "--network-key",
    "-n",
    help="Network to list, e.g. polygon-mainnet",
    type=click.Choice(SUPPORTED_NETWORKS),
)
def cli(network_key):
    """List all contracts in the registries. Optionally filter by network."""
    registry_entries = _get_registry_entries(network_key)
    _display_registry_entries(registry_entries)


if __name__ == "__main__":
    cli()
