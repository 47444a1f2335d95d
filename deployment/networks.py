from pathlib import Path
from typing import Optional

from ape import networks

from deployment.constants import CONSTRUCTOR_PARAMS_DIR, LOCAL_CHAIN_IDS, SUPPORTED_NETWORKS


def is_local_chain(chain_id: int) -> bool:
    """Returns True if the chain id belongs to a local development chain."""
    return int(chain_id) in LOCAL_CHAIN_IDS


def is_local_network() -> bool:
    """Returns True if the connected network is a local development network."""
    network = networks.provider.network
    return network.name == "local" or is_local_chain(network.chain_id)


def is_temporary_network() -> bool:
    """
    Returns True if the connected network is a throwaway development chain, started
    fresh for every session. Forks keep the state of the chain they fork.
    """
    return networks.provider.network.name == "local"


def get_network_key() -> str:
    """Returns the '<ecosystem>-<network>' label of the connected network."""
    network = networks.provider.network
    return f"{network.ecosystem.name}-{network.name}"


def params_filepath_for_network(network_key: Optional[str] = None) -> Path:
    """
    Returns the deployment parameters file for a network.
    The connected network is used when no network key is given.
    """
    network_key = network_key or get_network_key()
    if network_key not in SUPPORTED_NETWORKS:
        raise ValueError(
            f"Unsupported network '{network_key}'; expected one of {', '.join(SUPPORTED_NETWORKS)}"
        )
    filepath = CONSTRUCTOR_PARAMS_DIR / f"{network_key}.yml"
    if not filepath.exists():
        raise ValueError(f"No deployment parameters found for network '{network_key}'")
    return filepath
