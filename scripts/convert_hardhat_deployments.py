#!/usr/bin/python3
from pathlib import Path

import click

from deployment.legacy import convert_hardhat_deployments


@click.command()
@click.option(
    "--directory",
    "-d",
    help="hardhat-deploy network directory, e.g. deployments/matic",
    type=click.Path(file_okay=False, exists=True, path_type=Path),
    required=True,
)
@click.option(
    "--output-registry",
    "-o",
    help="Filepath of output registry file",
    type=click.Path(dir_okay=False, exists=False, path_type=Path),
    required=True,
)
@click.option(
    "--chain-id",
    help="Chain id of the deployments; read from the .chainId file if omitted",
    type=int,
    required=False,
)
def cli(directory, output_registry, chain_id):
    """Convert hardhat-deploy deployment files into a registry."""
    convert_hardhat_deployments(
        directory=directory, output_filepath=output_registry, chain_id=chain_id
    )
