"""
References used as deployment parameter values.

A parameter value starting with '$' is a reference, resolved at the time its
contract is deployed:

    $deployer                 address of the deploying account
    $NAME                     a constant of the parameters file
    $Contract                 address of a contract deployed before
    $encode:method,arg,...    call data for a method of the contract being deployed

Contract references resolve against the current session first (contracts
deployed by this run) and then against the registry of the connected chain.
"""

from abc import ABC, abstractmethod
from collections import OrderedDict
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Mapping, Optional

from ape.api import AccountAPI
from ape.contracts.base import ContractInstance
from ape.utils import ZERO_ADDRESS
from eth_typing import ChecksumAddress
from eth_utils import function_signature_to_4byte_selector
from ethpm_types import MethodABI
from hexbytes import HexBytes
from web3.auto import w3

from deployment.abi import find_methods, match_method
from deployment.registry import ContractNotRegistered

REFERENCE_PREFIX = "$"
DEPLOYER_REFERENCE = "deployer"
ENCODE_REFERENCE = "encode:"


class Session:
    """Account and contracts of the running deployment."""

    account: Optional[AccountAPI] = None
    deployed: Dict[str, ContractInstance] = dict()
    implementations: Dict[str, ContractInstance] = dict()
    # contracts not deployed yet resolve to the zero address instead of failing
    placeholders: bool = False

    @classmethod
    def reset(cls, account: Optional[AccountAPI] = None) -> None:
        cls.account = account
        cls.deployed = dict()
        cls.implementations = dict()
        cls.placeholders = False

    @classmethod
    @contextmanager
    def checking_parameters(cls) -> Iterator[None]:
        """Resolves parameters ahead of deployment, when later contracts do not exist yet."""
        previous, cls.placeholders = cls.placeholders, True
        try:
            yield
        finally:
            cls.placeholders = previous

    @classmethod
    def record_implementation(cls, contract_name: str, instance: ContractInstance) -> None:
        cls.implementations[contract_name] = instance

    @classmethod
    def record_deployment(cls, contract_name: str, instance: ContractInstance) -> None:
        """Records the instance users interact with: the proxy of a proxied contract."""
        cls.deployed[contract_name] = instance


class Scope:
    """What the references in the parameters of one contract can see."""

    def __init__(
        self,
        contract_name: str,
        declared: Iterable[str] = (),
        constants: Optional[Mapping[str, Any]] = None,
        registered: Optional[Mapping[str, ChecksumAddress]] = None,
        logic: bool = False,
    ):
        self.contract_name = contract_name
        self.declared = list(declared)
        self.constants = constants or dict()
        # kept by reference: the deployer adds contracts as they are registered
        self.registered = registered if registered is not None else dict()
        # contract references resolve to implementations (the logic target of a proxy)
        self.logic = logic

    def proxied(self) -> "Scope":
        return Scope(
            contract_name=self.contract_name,
            declared=self.declared,
            constants=self.constants,
            registered=self.registered,
        )

    def knows_contract(self, name: str) -> bool:
        return name in self.declared or name in self.registered


class Reference(ABC):
    @abstractmethod
    def resolve(self) -> Any:
        raise NotImplementedError

    @staticmethod
    def matches(value: Any) -> bool:
        return isinstance(value, str) and value.startswith(REFERENCE_PREFIX)


class DeployerAddress(Reference):
    def resolve(self) -> ChecksumAddress:
        if Session.account is None:
            return ZERO_ADDRESS
        return Session.account.address


class ConstantValue(Reference):
    def __init__(self, name: str, scope: Scope):
        if name not in scope.constants:
            raise ValueError(f"Constant '{name}' not found in deployment file.")
        self.name = name
        self.value = scope.constants[name]

    def resolve(self) -> Any:
        return self.value


class ContractAddress(Reference):
    def __init__(self, name: str, scope: Scope):
        if not scope.knows_contract(name):
            raise ValueError(f"Contract name {name} not found")
        self.name = name
        self.logic = scope.logic
        self.registered = scope.registered

    def resolve(self) -> ChecksumAddress:
        sources = [Session.deployed]
        if self.logic:
            sources.insert(0, Session.implementations)
        for source in sources:
            instance = source.get(self.name)
            if instance is not None:
                return instance.address
        if self.name in self.registered:
            return self.registered[self.name]
        if Session.placeholders:
            return ZERO_ADDRESS
        raise ContractNotRegistered(
            f"{self.name} is neither deployed by this run nor registered for the chain"
        )


class CallData(Reference):
    """ABI encoded call of a method of the contract being deployed."""

    def __init__(self, contract_name: str, method_name: str, args: List[Any]):
        self.contract_name = contract_name
        self.method_name = method_name
        self.args = args
        with Session.checking_parameters():
            self.method(resolve_value(args))

    @classmethod
    def parse(cls, body: str, scope: Scope) -> "CallData":
        method_name, *raw_args = body.split(",")
        args = [parse_value(_literal(arg), scope) for arg in raw_args]
        return cls(contract_name=scope.contract_name, method_name=method_name, args=args)

    def method(self, args: List[Any]) -> MethodABI:
        candidates = find_methods(self.contract_name, self.method_name)
        if not candidates:
            raise ValueError(f"{self.contract_name} has no method named '{self.method_name}'")
        return match_method(candidates, args)

    def resolve(self) -> HexBytes:
        args = resolve_value(self.args)
        method = self.method(args)
        selector = function_signature_to_4byte_selector(method.selector)
        encoded_args = w3.codec.encode([i.canonical_type for i in method.inputs], args)
        return HexBytes(selector + encoded_args)


def _literal(text: str) -> Any:
    text = text.strip()
    if text.lower() in ("true", "false"):
        return text.lower() == "true"
    try:
        return int(text)
    except ValueError:
        return text


def parse_reference(raw: str, scope: Scope) -> Reference:
    body = raw[len(REFERENCE_PREFIX) :]
    if body == DEPLOYER_REFERENCE:
        return DeployerAddress()
    if body.startswith(ENCODE_REFERENCE):
        return CallData.parse(body[len(ENCODE_REFERENCE) :], scope)
    if body in scope.constants:
        return ConstantValue(body, scope)
    if scope.knows_contract(body):
        # contract names can be upper case too (e.g. GENZ)
        return ContractAddress(body, scope)
    if body.isupper():
        return ConstantValue(body, scope)
    return ContractAddress(body, scope)


def parse_value(raw: Any, scope: Scope) -> Any:
    """Replaces the references of a raw parameter value, recursing into lists."""
    if isinstance(raw, list):
        return [parse_value(item, scope) for item in raw]
    if Reference.matches(raw):
        return parse_reference(raw, scope)
    return raw


def parse_mapping(raw: Mapping[str, Any], scope: Scope) -> "OrderedDict[str, Any]":
    return OrderedDict((name, parse_value(value, scope)) for name, value in raw.items())


def resolve_value(value: Any) -> Any:
    if isinstance(value, list):
        return [resolve_value(item) for item in value]
    if isinstance(value, Reference):
        return value.resolve()
    return value


def resolve_mapping(values: Mapping[str, Any]) -> "OrderedDict[str, Any]":
    return OrderedDict((name, resolve_value(value)) for name, value in values.items())


def referenced_contracts(raw: Any, constants: Mapping[str, Any]) -> List[str]:
    """Contract names referenced by a raw value; constants and the deployer are skipped."""
    if isinstance(raw, dict):
        raw = list(raw.values())
    if isinstance(raw, list):
        return [name for item in raw for name in referenced_contracts(item, constants)]
    if not Reference.matches(raw):
        return []

    body = raw[len(REFERENCE_PREFIX) :]
    if body == DEPLOYER_REFERENCE or body in constants:
        return []
    if body.startswith(ENCODE_REFERENCE):
        _, *raw_args = body[len(ENCODE_REFERENCE) :].split(",")
        return referenced_contracts([arg.strip() for arg in raw_args], constants)
    return [body]
