import typing
from collections import OrderedDict
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple

from ape.contracts.base import ContractContainer
from eth_typing import ChecksumAddress

from deployment.abi import ArgumentMismatch, check_constructor_arguments, find_methods
from deployment.constants import DEFAULT_INITIALIZER, PROXY_CONTRACT_NAME, get_oz_dependency
from deployment.utils import get_contract_container
from deployment.variables import (
    DEPLOYER_REFERENCE,
    REFERENCE_PREFIX,
    CallData,
    Scope,
    Session,
    parse_mapping,
    parse_value,
    referenced_contracts,
    resolve_mapping,
)

CONSTRUCTOR = "constructor"
PROXY = "proxy"


class DeploymentConfigError(ValueError):
    """Raised when a deployment parameters file is inconsistent."""


def contract_steps(config: Mapping) -> List[Tuple[str, Dict]]:
    """(name, settings) of every entry of the 'contracts' list, in deployment order."""
    steps = list()
    for item in config["contracts"]:
        if isinstance(item, str):
            steps.append((item, dict()))
        elif isinstance(item, dict) and len(item) == 1:
            ((name, settings),) = item.items()
            steps.append((name, settings or dict()))
        else:
            raise DeploymentConfigError(f"Malformed 'contracts' entry: {item!r}")
    return steps


def contract_names(config: Mapping) -> List[str]:
    return [name for name, _ in contract_steps(config)]


def select_steps(config: Mapping, names: Iterable[str]) -> Dict:
    """A copy of the parameters file restricted to some of its contracts, in declared order."""
    names = set(names)
    selected = dict(config)
    selected["contracts"] = [
        {name: settings} for name, settings in contract_steps(config) if name in names
    ]
    return selected


def validate_deployment_order(config: Mapping, registered_names: Iterable[str]) -> None:
    """
    Checks that every contract referenced by a deployment parameter is either
    deployed earlier in the 'contracts' list or already registered for the chain.
    """
    registered = set(registered_names)
    declared = contract_names(config)
    constants = config.get("constants") or dict()

    deployed_before = set()
    for name, settings in contract_steps(config):
        for reference in referenced_contracts(settings, constants):
            if reference in deployed_before or reference in registered:
                continue
            if reference == name:
                problem = "cannot reference itself"
            elif reference in declared:
                problem = f"references {reference}, which is deployed after it"
            elif reference.isupper():
                problem = f"references undefined constant {reference}"
            else:
                problem = (
                    f"references {reference}, which is neither deployed before it nor registered"
                )
            raise DeploymentConfigError(f"{name} {problem}")
        deployed_before.add(name)


class ConstructorParameters:
    """Parsed implementation constructor parameters, by contract name."""

    def __init__(self, parameters: "OrderedDict[str, OrderedDict]"):
        self.parameters = parameters
        with Session.checking_parameters():
            for name, values in parameters.items():
                inputs = get_contract_container(name).constructor.abi.inputs
                check_constructor_arguments(name, inputs, resolve_mapping(values))

    @classmethod
    def from_config(
        cls, config: Mapping, registry: Optional[Mapping[str, ChecksumAddress]] = None
    ) -> "ConstructorParameters":
        print("Processing contract constructor parameters...")
        declared = contract_names(config)
        constants = config.get("constants")

        parameters = OrderedDict()
        for name, settings in contract_steps(config):
            raw = settings.get(CONSTRUCTOR) or dict()
            if isinstance(raw, list):
                raw = cls._positional(name, raw)
            elif not isinstance(raw, dict):
                raise DeploymentConfigError(f"Malformed constructor parameters for {name}.")
            scope = Scope(name, declared=declared, constants=constants, registered=registry)
            parameters[name] = parse_mapping(raw, scope)
        return cls(parameters)

    @staticmethod
    def _positional(contract_name: str, values: List[Any]) -> "OrderedDict[str, Any]":
        """Names positional constructor parameters after the constructor ABI inputs."""
        inputs = get_contract_container(contract_name).constructor.abi.inputs
        if len(values) != len(inputs):
            raise ArgumentMismatch(
                f"{contract_name} constructor takes {len(inputs)} parameter(s), "
                f"{len(values)} given."
            )
        return OrderedDict(
            (abi_input.name or str(position), value)
            for position, (abi_input, value) in enumerate(zip(inputs, values))
        )

    def resolve(self, contract_name: str) -> OrderedDict:
        if contract_name not in self.parameters:
            raise ValueError(f"{contract_name} is not part of the deployment parameters")
        return resolve_mapping(self.parameters[contract_name])


def get_proxy_container() -> ContractContainer:
    return getattr(get_oz_dependency(), PROXY_CONTRACT_NAME)


class ProxyParameters:
    """
    Proxies of the contracts that are deployed behind one.

    A proxied contract is deployed behind a TransparentUpgradeableProxy whose
    '_logic' is the freshly deployed implementation. The proxy is initialized
    through '_data', which is either given explicitly or derived from the
    'initializer' method name and its 'args':

    - without 'initializer', 'initialize' is called when the contract has it;
    - 'initializer: false' deploys the proxy without initializing it.
    """

    WRAP_AS = "contract_type"
    INITIALIZER = "initializer"
    ARGS = "args"

    class Invalid(DeploymentConfigError):
        pass

    class Proxy(typing.NamedTuple):
        # container the proxy address is wrapped with once deployed
        wrapper: ContractContainer
        arguments: OrderedDict

    def __init__(self, proxies: "OrderedDict[str, ProxyParameters.Proxy]"):
        self.proxies = proxies
        inputs = get_proxy_container().constructor.abi.inputs
        with Session.checking_parameters():
            for proxy in proxies.values():
                check_constructor_arguments(
                    PROXY_CONTRACT_NAME, inputs, resolve_mapping(proxy.arguments)
                )

    @classmethod
    def from_config(
        cls, config: Mapping, registry: Optional[Mapping[str, ChecksumAddress]] = None
    ) -> "ProxyParameters":
        print("Processing proxy parameters...")
        declared = contract_names(config)
        constants = config.get("constants")

        proxies = OrderedDict()
        for name, settings in contract_steps(config):
            if PROXY not in settings:
                continue
            scope = Scope(
                name, declared=declared, constants=constants, registered=registry, logic=True
            )
            proxies[name] = cls._proxy(settings[PROXY] or dict(), scope)
        return cls(proxies)

    def contract_needs_proxy(self, contract_name: str) -> bool:
        return contract_name in self.proxies

    def resolve(self, contract_name: str) -> Tuple[ContractContainer, OrderedDict]:
        if contract_name not in self.proxies:
            raise ValueError(f"Unexpected contract to proxy: {contract_name}")
        proxy = self.proxies[contract_name]
        return proxy.wrapper, resolve_mapping(proxy.arguments)

    @classmethod
    def _proxy(cls, settings: Dict, scope: Scope) -> "ProxyParameters.Proxy":
        overrides = settings.get(CONSTRUCTOR) or dict()
        if "_logic" in overrides:
            raise cls.Invalid(
                f"{scope.contract_name} proxy cannot set '_logic': "
                f"it is always the implementation being proxied"
            )

        raw = OrderedDict(
            [
                ("initialOwner", REFERENCE_PREFIX + DEPLOYER_REFERENCE),
                ("_data", b""),
            ]
        )
        raw.update(overrides)
        # only '_logic' is the implementation; other references are to proxied instances
        arguments = OrderedDict(
            [("_logic", parse_value(REFERENCE_PREFIX + scope.contract_name, scope))]
        )
        arguments.update(parse_mapping(raw, scope.proxied()))

        explicit_data = "_data" in overrides
        call = cls._initializer_call(settings, explicit_data, scope.proxied())
        if call is not None:
            arguments["_data"] = call

        wrapper = get_contract_container(settings.get(cls.WRAP_AS, scope.contract_name))
        return cls.Proxy(wrapper=wrapper, arguments=arguments)

    @classmethod
    def _initializer_call(
        cls, settings: Dict, explicit_data: bool, scope: Scope
    ) -> Optional[CallData]:
        """The initialization call of the proxy, or None to keep its '_data' as it is."""
        name = scope.contract_name
        configured = cls.INITIALIZER in settings or cls.ARGS in settings
        if explicit_data:
            if configured:
                raise cls.Invalid(f"{name} proxy cannot specify both '_data' and an initializer")
            return None

        initializer = settings.get(cls.INITIALIZER, DEFAULT_INITIALIZER)
        raw_args: List[Any] = list(settings.get(cls.ARGS) or [])
        if initializer is False:
            if raw_args:
                raise cls.Invalid(f"{name} proxy has initializer args but no initializer")
            return None

        if not find_methods(name, initializer):
            if configured:
                raise cls.Invalid(f"{name} has no initializer method '{initializer}'")
            return None  # nothing to initialize

        return CallData(
            contract_name=name, method_name=initializer, args=parse_value(raw_args, scope)
        )
