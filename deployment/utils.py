import json
import os
from pathlib import Path
from typing import Dict, List

import yaml
from ape import networks, project
from ape.contracts import ContractContainer, ContractInstance
from ape_etherscan.utils import API_KEY_ENV_KEY_MAP

from deployment.constants import ARTIFACTS_DIR
from deployment.networks import is_local_network, params_filepath_for_network


def _load_yaml(filepath: Path) -> dict:
    with open(filepath) as file:
        return yaml.safe_load(file)


def _load_json(filepath: Path) -> dict:
    with open(filepath) as file:
        return json.load(file)


def get_artifact_filepath(config: Dict) -> Path:
    """Registry file of a deployment parameters file."""
    artifacts = config.get("artifacts") or dict()
    filename = artifacts.get("filename")
    if not filename:
        raise ValueError("artifact filename is not set in params file.")
    return Path(artifacts.get("dir", ARTIFACTS_DIR)) / filename


def validate_config(config: Dict) -> Path:
    """
    Checks the structure of a deployment parameters file and that it
    targets the connected chain. Returns the registry filepath.
    """
    print("Validating parameters YAML...")

    deployment = config.get("deployment")
    if not deployment:
        raise ValueError("deployment is not set in params file.")
    if not deployment.get("chain_id"):
        raise ValueError("chain_id is not set in params file.")
    if not config.get("contracts"):
        raise ValueError("Constructor parameters file missing 'contracts' field.")

    expected_chain_id = int(deployment["chain_id"])
    connected_chain_id = networks.provider.network.chain_id
    # local chains may run as forks of the chain a parameters file targets
    if expected_chain_id != connected_chain_id and not is_local_network():
        raise ValueError(
            f"chain_id in params file ({expected_chain_id}) does not match "
            f"chain_id of current network ({connected_chain_id})."
        )

    return get_artifact_filepath(config)


def _require_env(*names: str) -> None:
    if not any(os.environ.get(name) for name in names):
        raise ValueError(f"Please set one of the environment variables: {', '.join(names)}")


def check_etherscan_plugin() -> None:
    """The explorer API key of the connected ecosystem is needed to verify contracts."""
    if is_local_network():
        return
    ecosystem = networks.provider.network.ecosystem.name
    envvar = API_KEY_ENV_KEY_MAP.get(ecosystem)
    if not envvar:
        raise ValueError(f"No explorer API key known for ecosystem '{ecosystem}'.")
    _require_env(envvar)


def check_infura_plugin() -> None:
    """An Infura API key is needed when deploying through the infura provider."""
    if is_local_network() or networks.provider.name != "infura":
        return
    try:
        from ape_infura.provider import _ENVIRONMENT_VARIABLE_NAMES
    except ImportError:
        raise ImportError("Please install the ape-infura plugin to use this script.")
    _require_env(*_ENVIRONMENT_VARIABLE_NAMES)


def check_plugins() -> None:
    print("Checking plugins...")
    check_etherscan_plugin()
    check_infura_plugin()


def verify_contracts(contracts: List[ContractInstance]) -> None:
    explorer = networks.provider.network.explorer
    for instance in contracts:
        print(f"(i) Verifying {instance.contract_type.name} at {instance.address}...")
        explorer.publish_contract(instance.address)


def get_contract_container(contract: str) -> ContractContainer:
    """Contract container of the project, or of one of its dependencies."""
    container = getattr(project, contract, None)
    if container is not None:
        return container

    for dependency_name, versions in project.dependencies.items():
        if len(versions) > 1:
            raise ValueError(f"Ambiguous {dependency_name} dependency for {contract}")
        (dependency,) = versions.values()
        container = getattr(dependency, contract, None)
        if container is not None:
            return container
    raise ValueError(f"No contract found with name '{contract}'.")


def registry_filepath_from_network(network_key: str) -> Path:
    """Registry of a network, as configured in its parameters file."""
    filepath = get_artifact_filepath(_load_yaml(params_filepath_for_network(network_key)))
    if not filepath.exists():
        raise ValueError(f"No registry found for network '{network_key}' at {filepath}")
    return filepath


def get_chain_name(chain_id: int) -> str:
    """'<ecosystem> <network>' label of a chain id known to ape."""
    for ecosystem_name, ecosystem in networks.ecosystems.items():
        for network_name, network in ecosystem.networks.items():
            if network.chain_id == chain_id:
                return f"{ecosystem_name} {network_name}"
    raise ValueError(f"Chain ID {chain_id} not found in networks.")
