from collections import OrderedDict
from typing import Any

from ape.utils import ZERO_ADDRESS

ABORT_MESSAGE = "Aborting deployment!"


def _abort() -> None:
    print(ABORT_MESSAGE)
    exit(-1)


def _declined(prompt: str) -> bool:
    answer = input(prompt)
    return answer.lower().strip() == "n"


def _confirm_deployment(contract_name: str) -> None:
    """Asks the user to confirm the deployment of a single contract."""
    if _declined(f"Deploy {contract_name} Y/N? "):
        _abort()


def _continue() -> None:
    """Asks the user to continue."""
    if _declined("Continue Y/N? "):
        _abort()


def _confirm_zero_address() -> None:
    if _declined("Zero Address detected for deployment parameter; Continue? Y/N? "):
        _abort()


def _contains_zero_address(value: Any) -> bool:
    if isinstance(value, (list, tuple)):
        return any(_contains_zero_address(v) for v in value)
    return value == ZERO_ADDRESS


def _confirm_resolution(
    resolved_params: OrderedDict, contract_name: str, label: str = "Constructor parameters"
) -> None:
    """Echoes the resolved parameters for a single contract and asks for confirmation."""
    if len(resolved_params) == 0:
        print(f"\n(i) No {label.lower()} for {contract_name}")
        _confirm_deployment(contract_name)
        return

    print(f"\n{label} for {contract_name}")
    for name, resolved_value in resolved_params.items():
        print(f"\t{name}={resolved_value}")
    _confirm_deployment(contract_name)
    if _contains_zero_address(list(resolved_params.values())):
        _confirm_zero_address()
