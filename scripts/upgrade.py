#!/usr/bin/python3
import click
from ape.cli import ConnectedProviderCommand, network_option

from deployment.deployer import Deployer, get_implementation_address
from deployment.networks import params_filepath_for_network
from deployment.options import autosign_option, params_option, proxy_address_option, verify_option
from deployment.registry import lookup_address
from deployment.utils import get_contract_container


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@params_option
@click.option(
    "--contract",
    "-c",
    "contract_name",
    help="Proxied contract to upgrade",
    type=click.STRING,
    required=True,
)
@proxy_address_option
@autosign_option
@verify_option
def cli(network, params_filepath, contract_name, proxy_address, autosign, verify):
    """Deploy a new implementation of a proxied contract and upgrade its proxy to it."""
    params_filepath = params_filepath or params_filepath_for_network()
    deployer = Deployer.from_yaml(
        filepath=params_filepath, verify=bool(verify), autosign=autosign
    )
    proxy_address = proxy_address or lookup_address(
        filepath=deployer.registry_filepath, chain_id=deployer.chain_id, name=contract_name
    )

    previous_implementation = get_implementation_address(proxy_address)
    print(f"(i) {contract_name} proxy at {proxy_address} -> {previous_implementation}")

    container = get_contract_container(contract_name)
    upgraded = deployer.upgrade(container, proxy_address)
    deployer.finalize(deployments=[upgraded])
    print(
        f"{contract_name} at {upgraded.address} upgraded to implementation "
        f"{get_implementation_address(upgraded.address)}."
    )
