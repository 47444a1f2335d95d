#!/usr/bin/python3
import click
from ape import accounts
from ape.cli import ConnectedProviderCommand, network_option

from deployment.deployer import Deployer
from deployment.networks import is_local_network, params_filepath_for_network
from deployment.options import (
    autosign_option,
    contract_option,
    params_option,
    redeploy_option,
    verify_option,
)


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@params_option
@contract_option
@autosign_option
@verify_option
@redeploy_option
def cli(network, params_filepath, contract_names, autosign, verify, redeploy):
    """
    Deploy the protocol contracts of the connected network, one step per contract.

    Each step deploys the implementation and, if configured, its proxy, then
    saves the deployment to the registry before the next step starts.
    Contracts already registered for the chain are skipped unless --redeploy is set.
    """
    local = is_local_network()
    params_filepath = params_filepath or params_filepath_for_network()
    if verify is None:
        verify = not local

    account = accounts.test_accounts[0] if local else None
    deployer = Deployer.from_yaml(
        filepath=params_filepath,
        verify=verify,
        account=account,
        autosign=autosign or local,
        redeploy=redeploy,
    )

    try:
        selected = deployer.select_contracts(contract_names)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="--contract")
    deployer.deploy_steps(selected)
