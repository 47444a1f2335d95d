#!/usr/bin/python3
import click
from ape import networks
from ape.cli import ConnectedProviderCommand, network_option

from deployment.deployer import get_implementation_address
from deployment.options import network_key_option, registry_filepath_option
from deployment.registry import contracts_from_registry
from deployment.utils import (
    get_contract_container,
    registry_filepath_from_network,
    verify_contracts,
)


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@click.option(
    "--contract-name",
    "-c",
    "contract_names",
    help="Contract to verify",
    type=click.STRING,
    required=True,
    multiple=True,
)
@network_key_option
@registry_filepath_option
def cli(network, network_key, contract_names, registry_filepath):
    """Verify deployed contracts; proxies are verified through their implementation."""
    if not (bool(registry_filepath) ^ bool(network_key)):
        raise click.BadOptionUsage(
            option_name="--network-key",
            message=(
                f"Provide either 'network-key' or 'registry-filepath'; "
                f"got {network_key}, {registry_filepath}"
            ),
        )

    registry_filepath = registry_filepath or registry_filepath_from_network(network_key)
    chain_id = networks.active_provider.chain_id
    contracts = contracts_from_registry(registry_filepath, chain_id=chain_id)

    contract_instances = []
    for contract_name in contract_names:
        try:
            contract_instance = contracts[contract_name]
        except KeyError:
            raise ValueError(
                f"Contract '{contract_name}' not found in registry, '{registry_filepath}', "
                f"for chain {chain_id}"
            )

        implementation_address = get_implementation_address(contract_instance.address)
        if implementation_address:
            print(
                f"Proxy contract detected; verifying implementation contract "
                f"at {implementation_address}"
            )
            contract_container = get_contract_container(contract_instance.contract_type.name)
            contract_instance = contract_container.at(implementation_address)

        contract_instances.append(contract_instance)

    verify_contracts(contract_instances)


if __name__ == "__main__":
    cli()
