from collections import OrderedDict
from typing import Any, Dict, List, Sequence

from ethpm_types import MethodABI
from ethpm_types.abi import ABIType
from web3.auto import w3

from deployment.utils import get_contract_container


class ArgumentMismatch(ValueError):
    """Raised when parameters do not fit the constructor or method they are passed to."""


def find_methods(contract_name: str, method_name: str) -> List[MethodABI]:
    """Returns every overload of a method of a contract."""
    methods = get_contract_container(contract_name).contract_type.methods
    return [method for method in methods if method.name == method_name]


def _fits(inputs: Sequence[ABIType], args: Sequence[Any]) -> bool:
    if len(inputs) != len(args):
        return False
    return all(
        w3.is_encodable(abi_input.canonical_type, arg) for abi_input, arg in zip(inputs, args)
    )


def match_method(candidates: List[MethodABI], args: Sequence[Any]) -> MethodABI:
    """Returns the first overload that can encode the arguments."""
    if not candidates:
        raise ValueError("No method abis provided for validation of args")
    for method in candidates:
        if _fits(method.inputs, args):
            return method
    raise ArgumentMismatch(
        f"Could not find ABI for '{candidates[0].name}' with {len(args)} arg(s) and given type(s)"
    )


def named_arguments(candidates: List[MethodABI], args: Sequence[Any]) -> Dict[str, Any]:
    method = match_method(candidates, args)
    return OrderedDict((abi_input.name, arg) for abi_input, arg in zip(method.inputs, args))


def check_constructor_arguments(
    contract_name: str, inputs: Sequence[ABIType], arguments: "OrderedDict[str, Any]"
) -> None:
    """
    Checks resolved constructor arguments against the constructor ABI: same count,
    same names in the same order, and values the ABI types can encode.
    """
    if len(arguments) != len(inputs):
        raise ArgumentMismatch(
            f"{contract_name} constructor takes {len(inputs)} parameter(s), "
            f"{len(arguments)} given."
        )

    for position, (abi_input, (name, value)) in enumerate(zip(inputs, arguments.items())):
        if abi_input.name and abi_input.name != name:
            raise ArgumentMismatch(
                f"{contract_name} constructor parameter #{position} is '{abi_input.name}', "
                f"not '{name}'."
            )
        if not w3.is_encodable(abi_input.canonical_type, value):
            raise ArgumentMismatch(
                f"{contract_name} constructor parameter '{name}' expects "
                f"'{abi_input.type}', got {value!r}."
            )
