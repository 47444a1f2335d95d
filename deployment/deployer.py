from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional

from ape import chain, networks
from ape.api import AccountAPI, ReceiptAPI
from ape.cli.choices import select_account
from ape.contracts.base import ContractContainer, ContractInstance, ContractTransactionHandler
from ape.utils import EMPTY_BYTES32
from eth_typing import ChecksumAddress
from eth_utils import to_checksum_address
from hexbytes import HexBytes

from deployment.abi import named_arguments
from deployment.confirm import _confirm_resolution, _continue
from deployment.constants import (
    EIP1967_ADMIN_SLOT,
    EIP1967_IMPLEMENTATION_SLOT,
    PROXY_ADMIN_CONTRACT_NAME,
    get_oz_dependency,
)
from deployment.networks import is_temporary_network
from deployment.params import (
    ConstructorParameters,
    ProxyParameters,
    contract_names,
    get_proxy_container,
    select_steps,
    validate_deployment_order,
)
from deployment.registry import registry_addresses, registry_from_ape_deployments
from deployment.utils import (
    _load_yaml,
    check_plugins,
    get_contract_container,
    validate_config,
    verify_contracts,
)
from deployment.variables import Session


def _read_address_slot(address: ChecksumAddress, slot: int) -> Optional[ChecksumAddress]:
    value = HexBytes(chain.provider.get_storage(address, slot))
    if value == HexBytes(EMPTY_BYTES32):
        return None
    return to_checksum_address(value[-20:])


def get_proxy_admin_address(proxy_address: ChecksumAddress) -> Optional[ChecksumAddress]:
    """EIP-1967 admin of a proxy (its ProxyAdmin), None when the slot is empty."""
    return _read_address_slot(proxy_address, EIP1967_ADMIN_SLOT)


def get_implementation_address(proxy_address: ChecksumAddress) -> Optional[ChecksumAddress]:
    """EIP-1967 implementation of a proxy, None when the slot is empty."""
    return _read_address_slot(proxy_address, EIP1967_IMPLEMENTATION_SLOT)


class Transactor:
    """An account sending annotated transactions, each confirmed unless autosigning."""

    def __init__(self, account: Optional[AccountAPI] = None, autosign: bool = False):
        self._account = account if account is not None else select_account()
        self._autosign = autosign
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        self._account.set_autosign(autosign)

    @property
    def account(self) -> AccountAPI:
        return self._account

    def transact(self, method: ContractTransactionHandler, *args) -> ReceiptAPI:
        arguments = named_arguments(method.abis, args)
        contract = method.contract
        print(f"\nTransacting {contract.contract_type.name}[{contract.address[:10]}].{method}")
        for name, value in arguments.items():
            print(f"\t{name}={value}")
        if not self._autosign:
            _continue()
        return method(*args, sender=self._account)


class Deployer(Transactor):
    """
    Deploys the contracts of a parameters file on the connected chain.

    Each contract is deployed as an implementation plus, when configured, a
    TransparentUpgradeableProxy in front of it. Deployments are recorded in the
    session so that later contracts can reference them, and saved to the
    registry of the chain by finalize().
    """

    def __init__(
        self,
        config: Dict,
        path: Path,
        verify: bool,
        account: Optional[AccountAPI] = None,
        autosign: bool = False,
        redeploy: bool = False,
    ):
        super().__init__(account, autosign)
        check_plugins()

        self.config = config
        self.path = path
        self.verify = verify
        self.redeploy = redeploy
        self.registry_filepath = validate_config(config)
        self.chain_id = networks.provider.chain_id
        self.registry = registry_addresses(self.registry_filepath, chain_id=self.chain_id)
        if self.registry and is_temporary_network():
            print(
                f"(i) Ignoring {len(self.registry)} contract(s) registered by an earlier "
                f"session of this temporary chain."
            )
            self.registry = dict()

        Session.reset(account=self.account)
        validate_deployment_order(config, registered_names=self.registry)
        self.constructor_parameters = ConstructorParameters.from_config(config, self.registry)
        self.proxy_parameters = ProxyParameters.from_config(config, self.registry)

        self._print_deployment_info()
        if not self._autosign:
            _continue()

    @classmethod
    def from_yaml(cls, filepath: Path, *args, **kwargs) -> "Deployer":
        return cls(_load_yaml(filepath), filepath, *args, **kwargs)

    @property
    def contract_names(self) -> List[str]:
        """Contract names of the parameters file, in deployment order."""
        return contract_names(self.config)

    def is_registered(self, contract_name: str) -> bool:
        return contract_name in self.registry

    def select_contracts(self, names: Iterable[str] = ()) -> List[str]:
        """
        Returns the contracts to deploy, in declared order; all of them when no names
        are given. The contracts a selection references must be selected before them
        or already be registered.
        """
        names = list(names)
        unknown = [name for name in names if name not in self.contract_names]
        if unknown:
            raise ValueError(f"Not part of {self.path}: {', '.join(unknown)}")
        if not names:
            return self.contract_names

        selected = [name for name in self.contract_names if name in names]
        validate_deployment_order(select_steps(self.config, selected), self.registry)
        return selected

    def deploy_steps(self, names: Iterable[str]) -> List[ContractInstance]:
        """
        Deploys contracts one at a time, saving each to the registry before the next
        one starts. Registered contracts are skipped unless redeploying.
        """
        deployments = list()
        for contract_name in names:
            if self.is_registered(contract_name) and not self.redeploy:
                print(
                    f"(i) {contract_name} is already registered at "
                    f"{self.registry[contract_name]}; skipping."
                )
                continue

            instance = self.deploy(get_contract_container(contract_name))
            self.finalize(deployments=[instance])
            print(f"{contract_name} Contract has been deployed on {instance.address} address.")
            deployments.append(instance)
        return deployments

    def deploy(self, container: ContractContainer) -> ContractInstance:
        """Deploys a contract and, if configured, a proxy in front of it."""
        contract_name = container.contract_type.name
        if self.is_registered(contract_name) and not self.redeploy:
            raise ValueError(
                f"{contract_name} is already registered at {self.registry[contract_name]} "
                f"for chain id {self.chain_id}."
            )

        instance = self.deploy_implementation(container)
        if self.proxy_parameters.contract_needs_proxy(contract_name):
            wrapper, proxy_arguments = self.proxy_parameters.resolve(contract_name)
            instance = self._deploy_proxy(contract_name, wrapper, proxy_arguments)

        Session.record_deployment(contract_name, instance)
        return instance

    def deploy_implementation(self, container: ContractContainer) -> ContractInstance:
        """Deploys a contract with its constructor parameters, without a proxy."""
        contract_name = container.contract_type.name
        arguments = self.constructor_parameters.resolve(contract_name)
        implementation = self._deploy(container, arguments)
        Session.record_implementation(contract_name, implementation)
        return implementation

    def _deploy(
        self,
        container: ContractContainer,
        arguments: OrderedDict,
        label: str = "Constructor parameters",
    ) -> ContractInstance:
        if not self._autosign:
            _confirm_resolution(arguments, container.contract_type.name, label=label)
        return self.account.deploy(container, *arguments.values(), publish=self.verify)

    def _deploy_proxy(
        self, contract_name: str, wrapper: ContractContainer, arguments: OrderedDict
    ) -> ContractInstance:
        proxy_container = get_proxy_container()
        print(f"\nDeploying {proxy_container.contract_type.name} for {contract_name}.")
        label = f"Proxy parameters ({contract_name})"
        proxy = self._deploy(proxy_container, arguments, label=label)
        print(f"{contract_name} Proxy deployed at: {proxy.address}")
        return wrapper.at(proxy.address)

    def upgrade(
        self, container: ContractContainer, proxy_address: ChecksumAddress, data: bytes = b""
    ) -> ContractInstance:
        """Deploys a new implementation and points an existing proxy at it."""
        implementation = self.deploy_implementation(container)
        return self.upgradeTo(implementation, proxy_address, data)

    def upgradeTo(
        self, implementation: ContractInstance, proxy_address: ChecksumAddress, data: bytes = b""
    ) -> ContractInstance:
        admin_address = get_proxy_admin_address(proxy_address)
        if admin_address is None:
            raise ValueError(f"{proxy_address} has no EIP-1967 admin; is it a proxy?")

        proxy_admin = getattr(get_oz_dependency(), PROXY_ADMIN_CONTRACT_NAME).at(admin_address)
        owner = proxy_admin.owner()
        if owner != self.account.address:
            raise ValueError(
                f"ProxyAdmin {admin_address} is owned by {owner}, "
                f"not by the deployer {self.account.address}."
            )
        self.transact(proxy_admin.upgradeAndCall, proxy_address, implementation.address, data)

        contract_name = implementation.contract_type.name
        upgraded = get_contract_container(contract_name).at(proxy_address)
        Session.record_deployment(contract_name, upgraded)
        return upgraded

    def finalize(self, deployments: List[ContractInstance]) -> None:
        """Saves deployments to the registry, then publishes their implementations if verifying."""
        registry_from_ape_deployments(deployments, output_filepath=self.registry_filepath)
        for instance in deployments:
            self.registry[instance.contract_type.name] = to_checksum_address(instance.address)

        if self.verify:
            verify_contracts(
                [
                    Session.implementations.get(instance.contract_type.name, instance)
                    for instance in deployments
                ]
            )

    def _print_deployment_info(self) -> None:
        network = networks.provider.network
        details: Dict[str, Any] = {
            "Account": self.account.address,
            "Config": self.path,
            "Registry": self.registry_filepath,
            "Registered contracts": len(self.registry),
            "Verify": self.verify,
            "Network": f"{network.ecosystem.name}:{network.name} (chain id {network.chain_id})",
            "Gas Price": networks.provider.gas_price,
        }
        for label, value in details.items():
            print(f"{label}: {value}")
