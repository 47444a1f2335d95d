import os
from pathlib import Path
from typing import Dict, Optional, Tuple

import requests
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address

from deployment.constants import ETHERSCAN_API_KEY_ENVVAR, ETHERSCAN_V2_API_URL
from deployment.registry import ChainId, RegistryEntry, write_registry
from deployment.utils import _load_json

HARDHAT_CHAIN_ID_FILENAME = ".chainId"


class DefectiveDeployment(ValueError):
    """Raised when a hardhat-deploy file lacks the data needed for a registry entry."""


def get_creation_info(api_key: str, chain_id: int, contract_address: ChecksumAddress) -> tuple:
    """Returns (tx hash, block number, deployer) of a contract's creation transaction."""
    params = {
        "chainid": chain_id,
        "module": "contract",
        "action": "getcontractcreation",
        "contractaddresses": contract_address,
        "apikey": api_key,
    }
    response = requests.get(ETHERSCAN_V2_API_URL, params=params)
    response.raise_for_status()
    data = response.json()

    if data["status"] == "1" and data["result"]:
        creation = data["result"][0]
        tx_hash = creation["txHash"]
        block_number = int(creation["blockNumber"])
        deployer = creation["contractCreator"]
    else:
        raise ValueError(f"Could not find contract creation transaction for {contract_address}")

    return tx_hash, block_number, to_checksum_address(deployer)


def read_hardhat_chain_id(directory: Path) -> ChainId:
    """Returns the chain id recorded by hardhat-deploy for a network directory."""
    chain_id_filepath = directory / HARDHAT_CHAIN_ID_FILENAME
    if not chain_id_filepath.exists():
        raise FileNotFoundError(f"No {HARDHAT_CHAIN_ID_FILENAME} file found in {directory}")
    return int(chain_id_filepath.read_text().strip())


def parse_hardhat_deployment(filepath: Path) -> Dict:
    """
    Parses a single hardhat-deploy file.

    Returns the address and ABI, plus the creation metadata when the file has it:
    'tx_hash', 'block_number' and 'deployer' are None for deployments saved
    without a receipt (e.g. proxies saved from an extended artifact).
    """
    data = _load_json(filepath=filepath)
    try:
        address, abi = data["address"], data["abi"]
    except KeyError as e:
        raise DefectiveDeployment(f"Missing '{e.args[0]}' in hardhat deployment file {filepath}")

    receipt = data.get("receipt") or dict()
    return {
        "address": to_checksum_address(address),
        "abi": abi,
        "tx_hash": data.get("transactionHash") or receipt.get("transactionHash"),
        "block_number": receipt.get("blockNumber", data.get("blockNumber")),
        "deployer": receipt.get("from"),
    }


def _creation_info(
    deployment: Dict, chain_id: ChainId, api_key: Optional[str]
) -> Tuple[str, int, ChecksumAddress]:
    if all(deployment[key] is not None for key in ("tx_hash", "block_number", "deployer")):
        return (
            deployment["tx_hash"],
            int(deployment["block_number"]),
            to_checksum_address(deployment["deployer"]),
        )
    if not api_key:
        raise ValueError(f"Please set the {ETHERSCAN_API_KEY_ENVVAR} environment variable.")
    return get_creation_info(
        api_key=api_key, chain_id=chain_id, contract_address=deployment["address"]
    )


def convert_hardhat_deployments(
    directory: Path, output_filepath: Path, chain_id: Optional[ChainId] = None
) -> Path:
    """Converts a hardhat-deploy network directory (deployments/<network>/) to a registry."""
    if output_filepath.exists():
        raise FileExistsError(f"Registry already exists at {output_filepath}")

    if not directory.exists():
        raise FileNotFoundError(f"Directory not found at {directory}")

    chain_id = chain_id or read_hardhat_chain_id(directory)
    api_key = os.environ.get(ETHERSCAN_API_KEY_ENVVAR)

    entries = list()
    for filepath in sorted(directory.glob("*.json")):
        deployment = parse_hardhat_deployment(filepath)
        tx_hash, block_number, deployer = _creation_info(deployment, chain_id, api_key)
        entry = RegistryEntry(
            chain_id=chain_id,
            name=filepath.stem,
            address=deployment["address"],
            abi=deployment["abi"],
            tx_hash=tx_hash,
            block_number=block_number,
            deployer=deployer,
        )
        entries.append(entry)

    output_filepath = write_registry(entries=entries, filepath=output_filepath)
    print(f"Converted hardhat deployments to {output_filepath}")
    return output_filepath
