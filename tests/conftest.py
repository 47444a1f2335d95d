from types import SimpleNamespace

import pytest
from ethpm_types import ContractType

from deployment.variables import Session
from deployment.registry import RegistryEntry

# Common constants
CHAIN_ID = 80002
OTHER_CHAIN_ID = 137

DAI = "0x8f3Cf7ad23Cd3CaDbD9735AFf958023239c6A063"
BUY_SELL_SZT_PROXY = "0x5FbDB2315678afecb367f032d93F642f64180aa3"
BUY_SELL_SZT_IMPLEMENTATION = "0xe7f1725E7734CE288F8367e1Bb143E90bb3F0512"
SZT_IMPLEMENTATION = "0x9fE46736679d2D9a65F0992F2272dE9f3c7fa6e0"
DEPLOYER = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"


def _input(name, type_):
    return {"name": name, "type": type_, "internalType": type_}


def _constructor(*inputs):
    return {"type": "constructor", "stateMutability": "nonpayable", "inputs": list(inputs)}


def _method(name, *inputs):
    return {
        "type": "function",
        "name": name,
        "stateMutability": "nonpayable",
        "inputs": list(inputs),
        "outputs": [],
    }


CONTRACT_ABIS = {
    "BuySellSZT": [
        _constructor(
            _input("_value", "uint256"),
            _input("_decimals", "uint256"),
            _input("_daiAddress", "address"),
        ),
        _method("initialize"),
    ],
    "SZT": [_method("initialize", _input("_buySellAddress", "address"))],
    "GENZ": [],
    "GENZStaking": [
        _constructor(_input("_genzAddress", "address")),
        _method("initialize", _input("_minimumStakingPeriod", "uint256")),
    ],
    "TransparentUpgradeableProxy": [
        _constructor(
            _input("_logic", "address"),
            _input("initialOwner", "address"),
            _input("_data", "bytes"),
        ),
    ],
}


def make_container(name, abi):
    """A stand-in for an ape contract container, built on a real ethpm contract type."""
    contract_type = ContractType.model_validate({"contractName": name, "abi": abi})
    return SimpleNamespace(
        contract_type=contract_type,
        constructor=SimpleNamespace(abi=contract_type.constructor),
        at=lambda address: SimpleNamespace(address=address, contract_type=contract_type),
    )


@pytest.fixture
def containers():
    return {name: make_container(name, abi) for name, abi in CONTRACT_ABIS.items()}


@pytest.fixture
def fake_project(monkeypatch, containers):
    """Routes contract container lookups to the fake containers."""

    def get_contract_container(name):
        try:
            return containers[name]
        except KeyError:
            raise ValueError(f"No contract found with name '{name}'.")

    oz_dependency = SimpleNamespace(
        TransparentUpgradeableProxy=containers["TransparentUpgradeableProxy"]
    )
    monkeypatch.setattr("deployment.abi.get_contract_container", get_contract_container)
    monkeypatch.setattr("deployment.params.get_contract_container", get_contract_container)
    monkeypatch.setattr("deployment.deployer.get_contract_container", get_contract_container)
    monkeypatch.setattr("deployment.params.get_oz_dependency", lambda: oz_dependency)
    return containers


@pytest.fixture(autouse=True)
def session():
    Session.reset()
    yield Session
    Session.reset()


@pytest.fixture
def deployment_config():
    return {
        "deployment": {"name": "test", "chain_id": CHAIN_ID},
        "artifacts": {"dir": "./deployment/artifacts/", "filename": "test.json"},
        "constants": {"VALUE": 1, "DECIMALS": 4, "DAI": DAI},
        "contracts": [
            {
                "BuySellSZT": {
                    "constructor": {
                        "_value": "$VALUE",
                        "_decimals": "$DECIMALS",
                        "_daiAddress": "$DAI",
                    },
                    "proxy": {"initializer": "initialize"},
                }
            },
            {"GENZ": {"proxy": None}},
            {"SZT": {"proxy": {"args": ["$BuySellSZT"]}}},
            {
                "GENZStaking": {
                    "constructor": {"_genzAddress": "$GENZ"},
                    "proxy": {"args": [5]},
                }
            },
        ],
    }


def registry_entry(name, address, chain_id=CHAIN_ID, block_number=1):
    return RegistryEntry(
        chain_id=chain_id,
        name=name,
        address=address,
        abi=[
            {"type": "function", "name": "initialize", "inputs": [], "outputs": []},
            {"type": "constructor", "inputs": []},
        ],
        tx_hash="0x" + "ab" * 32,
        block_number=block_number,
        deployer=DEPLOYER,
    )
