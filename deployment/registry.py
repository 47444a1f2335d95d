import json
from collections import defaultdict
from enum import Enum
from pathlib import Path
from typing import Dict, Iterable, List, NamedTuple, Optional, Tuple

from ape.contracts import ContractInstance
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address
from eth_typing import ABI

from deployment.utils import _load_json, get_contract_container

ChainId = int
ContractName = str

REGISTRY_INDENT = 4


class ContractNotRegistered(ValueError):
    """Raised when a contract name has no registry entry for a chain."""


class RegistryEntry(NamedTuple):
    """A deployed contract as recorded in a registry file."""

    chain_id: ChainId
    name: ContractName
    address: ChecksumAddress
    abi: ABI
    tx_hash: str
    block_number: int
    deployer: str

    @property
    def key(self) -> Tuple[ChainId, ContractName]:
        return self.chain_id, self.name

    def to_json(self) -> Dict:
        return {
            "address": self.address,
            "abi": sorted(self.abi, key=lambda item: (item["type"], item.get("name", ""))),
            "tx_hash": self.tx_hash,
            "block_number": int(self.block_number),
            "deployer": self.deployer,
        }


def _entry_from_instance(
    instance: ContractInstance, registry_names: Dict[ContractName, ContractName]
) -> RegistryEntry:
    """Builds the entry of a contract deployed in this session from its creation receipt."""
    name = instance.contract_type.name
    receipt = instance.receipt
    return RegistryEntry(
        chain_id=receipt.chain_id,
        name=registry_names.get(name, name),
        address=to_checksum_address(instance.address),
        abi=[item.model_dump(mode="json", by_alias=True) for item in instance.contract_type.abi],
        tx_hash=receipt.txn_hash,
        block_number=receipt.block_number,
        deployer=receipt.transaction.sender,
    )


def read_registry(filepath: Path) -> List[RegistryEntry]:
    entries = list()
    for chain_id, contracts in _load_json(filepath).items():
        for name, data in contracts.items():
            entries.append(
                RegistryEntry(
                    chain_id=int(chain_id),
                    name=name,
                    address=data["address"],
                    abi=data["abi"],
                    tx_hash=data["tx_hash"],
                    block_number=data["block_number"],
                    deployer=data["deployer"],
                )
            )
    return entries


def _serialize(entries: Iterable[RegistryEntry]) -> Dict[str, Dict]:
    """Registry file contents, chains and names in ascending order."""
    data = defaultdict(dict)
    for entry in sorted(entries, key=lambda e: (str(e.chain_id), e.name)):
        data[str(entry.chain_id)][entry.name] = entry.to_json()
    return dict(data)


def _save(data: Dict, filepath: Path) -> None:
    filepath.parent.mkdir(parents=True, exist_ok=True)
    filepath.write_text(json.dumps(data, indent=REGISTRY_INDENT, separators=(",", ": ")))


def write_registry(entries: List[RegistryEntry], filepath: Path, silent: bool = False) -> Path:
    """
    Writes entries to a registry file. An existing file only takes the entries of
    chains it does not have yet; otherwise the entries are written next to it,
    to <name>.unmerged.json, and the existing file is left untouched.
    """
    if not entries:
        print("No entries provided.")
        return filepath

    data = _serialize(entries)
    if filepath.exists():
        existing = _load_json(filepath)
        overlapping = sorted(set(existing) & set(data))
        if overlapping:
            filepath = filepath.with_suffix(".unmerged.json")
            if not silent:
                print(
                    f"Registry already has chain id(s) {', '.join(overlapping)}; "
                    f"writing to {filepath} instead."
                )
        else:
            if not silent:
                print(f"Adding chain id(s) {', '.join(data)} to registry at {filepath}.")
            data = {**existing, **data}
    elif not silent:
        print(f"Creating new registry at {filepath}.")

    _save(data, filepath)
    return filepath


def update_registry(entries: List[RegistryEntry], filepath: Path) -> Path:
    """
    Adds entries to a registry, replacing any entry with the same chain id and name.
    All other entries of the registry are kept as they are.
    """
    if not entries:
        print("No entries provided.")
        return filepath

    registry = dict()
    if filepath.exists():
        registry = {entry.key: entry for entry in read_registry(filepath)}

    for entry in entries:
        previous = registry.get(entry.key)
        if previous is not None and previous.address != entry.address:
            print(
                f"(i) Replacing {entry.name} on chain id {entry.chain_id}: "
                f"{previous.address} -> {entry.address}"
            )
        registry[entry.key] = entry

    _save(_serialize(registry.values()), filepath)
    return filepath


def registry_addresses(filepath: Path, chain_id: ChainId) -> Dict[ContractName, ChecksumAddress]:
    """Registered addresses of a chain by contract name; empty if there is no registry yet."""
    if not filepath.exists():
        return dict()
    chain_id = int(chain_id)
    return {
        entry.name: to_checksum_address(entry.address)
        for entry in read_registry(filepath)
        if entry.chain_id == chain_id
    }


def lookup_address(filepath: Path, chain_id: ChainId, name: ContractName) -> ChecksumAddress:
    address = registry_addresses(filepath, chain_id).get(name)
    if address is None:
        raise ContractNotRegistered(
            f"{name} is not registered for chain id {chain_id} in {filepath}"
        )
    return address


def registry_from_ape_deployments(
    deployments: List[ContractInstance],
    output_filepath: Path,
    registry_names: Optional[Dict[ContractName, ContractName]] = None,
) -> Path:
    """Saves ape deployments to a registry, keeping the other entries of the file."""
    registry_names = registry_names or dict()
    entries = [_entry_from_instance(instance, registry_names) for instance in deployments]
    output_filepath = update_registry(entries, output_filepath)
    print(f"(i) Registry written to {output_filepath}!")
    return output_filepath


class ConflictResolution(Enum):
    USE_1 = 1
    USE_2 = 2


ABORT_MERGE = "A"


def _ask_conflict_resolution(
    entry_1: RegistryEntry, filepath_1: Path, entry_2: RegistryEntry, filepath_2: Path
) -> ConflictResolution:
    print(f"\n! {entry_1.name} is registered twice on chain id {entry_1.chain_id}:")
    print(f"[1]: {entry_1.address} in {filepath_1}")
    print(f"[2]: {entry_2.address} in {filepath_2}")
    print(f"[{ABORT_MERGE}]: Abort merge")

    choices = [str(option.value) for option in ConflictResolution] + [ABORT_MERGE]
    answer = None
    while answer not in choices:
        answer = input(f"Merge resolution, {choices}? ")

    if answer == ABORT_MERGE:
        print("Merge Aborted!")
        exit(-1)
    return ConflictResolution(int(answer))


def merge_registries(
    registry_1_filepath: Path,
    registry_2_filepath: Path,
    output_filepath: Path,
    deprecated_contracts: Optional[List[ContractName]] = None,
    force_conflict_resolution: Optional[ConflictResolution] = None,
) -> Path:
    """
    Merges two registries into output_filepath, which may be one of them.
    Deprecated contracts are dropped. A name registered for the same chain in
    both registries is resolved interactively unless a resolution is forced.
    """
    deprecated = set(deprecated_contracts or [])

    def entries_by_key(filepath: Path) -> Dict[Tuple[ChainId, ContractName], RegistryEntry]:
        return {e.key: e for e in read_registry(filepath) if e.name not in deprecated}

    entries_1 = entries_by_key(registry_1_filepath)
    entries_2 = entries_by_key(registry_2_filepath)

    merged = list()
    for key in sorted(set(entries_1) | set(entries_2)):
        entry_1, entry_2 = entries_1.get(key), entries_2.get(key)
        if entry_1 is None or entry_2 is None:
            merged.append(entry_1 or entry_2)
            continue
        resolution = force_conflict_resolution or _ask_conflict_resolution(
            entry_1, registry_1_filepath, entry_2, registry_2_filepath
        )
        merged.append(entry_1 if resolution == ConflictResolution.USE_1 else entry_2)

    _save(_serialize(merged), output_filepath)
    print(f"Merged registry output to {output_filepath}")
    return output_filepath


def contracts_from_registry(filepath: Path, chain_id: ChainId) -> Dict[str, ContractInstance]:
    """Contract instances of a chain's registered contracts, by name."""
    return {
        entry.name: get_contract_container(entry.name).at(entry.address)
        for entry in read_registry(filepath)
        if entry.chain_id == chain_id
    }


def normalize_registry(filepath: Path) -> None:
    """Rewrites a registry file with the standard ordering and formatting."""
    try:
        entries = read_registry(filepath)
    except (KeyError, ValueError):
        print(f"Error when reading registry at {filepath}.")
        raise
    _save(_serialize(entries), filepath)
    print(f"Successfully normalized registry at {filepath}.")
