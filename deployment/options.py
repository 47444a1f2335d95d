from pathlib import Path

import click
from ape.utils import ZERO_ADDRESS
from eth_utils import is_address, to_checksum_address

from deployment.constants import SUPPORTED_NETWORKS


class ContractAddress(click.ParamType):
    """A non-zero contract address, converted to its checksum form."""

    name = "contract_address"

    def convert(self, value, param, ctx):
        if not is_address(value):
            self.fail(f"Invalid ethereum address: {value}", param, ctx)
        address = to_checksum_address(value)
        if address == ZERO_ADDRESS:
            self.fail("The zero address is not a contract address", param, ctx)
        return address


params_option = click.option(
    "--params",
    "-p",
    "params_filepath",
    help="Deployment parameters YAML; defaults to the file of the connected network.",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=False,
)

contract_option = click.option(
    "--contract",
    "-c",
    "contract_names",
    help="Contract to deploy; may be repeated. All contracts are deployed if omitted.",
    type=click.STRING,
    multiple=True,
    required=False,
)

autosign_option = click.option(
    "--autosign",
    help="Sign transactions without asking for confirmation.",
    is_flag=True,
    default=False,
)

verify_option = click.option(
    "--verify/--no-verify",
    help="Publish deployed contracts to the block explorer.",
    default=None,
)

redeploy_option = click.option(
    "--redeploy",
    help="Deploy contracts even if they are already registered for the chain.",
    is_flag=True,
    default=False,
)

network_key_option = click.option(
    "--network-key",
    "-n",
    help="Network whose registry is used",
    type=click.Choice(SUPPORTED_NETWORKS),
    required=False,
)

registry_filepath_option = click.option(
    "--registry-filepath",
    "-f",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    help="Registry filepath if not the registry of a supported network",
    required=False,
)

proxy_address_option = click.option(
    "--proxy-address",
    help="Address of the proxy to upgrade; defaults to the registered address.",
    type=ContractAddress(),
    required=False,
)
