from types import SimpleNamespace

import pytest
from ape.utils import ZERO_ADDRESS
from eth_utils import function_signature_to_4byte_selector
from hexbytes import HexBytes

from deployment.abi import ArgumentMismatch
from deployment.registry import ContractNotRegistered
from deployment.variables import (
    CallData,
    ConstantValue,
    ContractAddress,
    DeployerAddress,
    Scope,
    parse_value,
    referenced_contracts,
    resolve_value,
)
from tests.conftest import (
    BUY_SELL_SZT_IMPLEMENTATION,
    BUY_SELL_SZT_PROXY,
    DAI,
    DEPLOYER,
    _input,
    _method,
    make_container,
)

GENZ_PROXY = "0x4444444444444444444444444444444444444444"


def _scope(**kwargs):
    defaults = dict(
        contract_name="SZT",
        declared=["BuySellSZT", "GENZ", "SZT", "GENZStaking"],
        constants={"VALUE": 1, "DAI": DAI},
    )
    defaults.update(kwargs)
    return Scope(**defaults)


def test_literal_values_are_kept():
    scope = _scope()
    assert parse_value(5, scope) == 5
    assert parse_value("plain", scope) == "plain"
    assert parse_value([1, "a"], scope) == [1, "a"]


def test_deployer_reference(session):
    reference = parse_value("$deployer", _scope())
    assert isinstance(reference, DeployerAddress)
    assert reference.resolve() == ZERO_ADDRESS  # no account yet

    session.reset(account=SimpleNamespace(address=DEPLOYER))
    assert reference.resolve() == DEPLOYER


def test_constant_reference():
    reference = parse_value("$DAI", _scope())
    assert isinstance(reference, ConstantValue)
    assert reference.resolve() == DAI

    with pytest.raises(ValueError, match="Constant 'XVS' not found"):
        parse_value("$XVS", _scope())


def test_upper_case_contract_names_are_not_constants():
    assert isinstance(parse_value("$GENZ", _scope()), ContractAddress)

    reference = parse_value("$GSZT", _scope(registered={"GSZT": GENZ_PROXY}))
    assert isinstance(reference, ContractAddress)
    assert reference.resolve() == GENZ_PROXY


def test_unknown_contract():
    with pytest.raises(ValueError, match="Contract name CoveragePool not found"):
        parse_value("$CoveragePool", _scope())


def test_contract_address_resolution_order(session):
    registered = {"BuySellSZT": GENZ_PROXY}
    proxied = parse_value("$BuySellSZT", _scope(registered=registered))
    logic = parse_value("$BuySellSZT", _scope(registered=registered, logic=True))

    # the registry is used until the contract is deployed in this session
    assert proxied.resolve() == GENZ_PROXY
    assert logic.resolve() == GENZ_PROXY

    session.record_implementation(
        "BuySellSZT", SimpleNamespace(address=BUY_SELL_SZT_IMPLEMENTATION)
    )
    session.record_deployment("BuySellSZT", SimpleNamespace(address=BUY_SELL_SZT_PROXY))
    assert proxied.resolve() == BUY_SELL_SZT_PROXY
    assert logic.resolve() == BUY_SELL_SZT_IMPLEMENTATION


def test_contract_address_placeholder(session):
    reference = parse_value("$SZT", _scope())
    with session.checking_parameters():
        assert reference.resolve() == ZERO_ADDRESS
    assert not session.placeholders


def test_undeployed_contract_address_is_not_resolved():
    reference = parse_value("$GENZ", _scope(contract_name="GENZStaking"))
    with pytest.raises(ContractNotRegistered, match="GENZ is neither deployed by this run"):
        reference.resolve()


def test_registry_is_shared_with_the_scope():
    registered = dict()
    reference = parse_value("$GENZ", _scope(registered=registered))
    registered["GENZ"] = GENZ_PROXY
    assert reference.resolve() == GENZ_PROXY


def test_proxied_scope():
    scope = _scope(registered={"GSZT": GENZ_PROXY}, logic=True)
    proxied = scope.proxied()
    assert not proxied.logic
    assert proxied.contract_name == scope.contract_name
    assert proxied.knows_contract("GSZT")


def test_resolve_nested_values(session):
    session.record_deployment("GENZ", SimpleNamespace(address=GENZ_PROXY))
    value = parse_value([["$GENZ", "$VALUE"], 3], _scope())
    assert resolve_value(value) == [[GENZ_PROXY, 1], 3]


def test_call_data(fake_project, session):
    session.record_deployment("BuySellSZT", SimpleNamespace(address=BUY_SELL_SZT_PROXY))
    reference = parse_value("$encode:initialize,$BuySellSZT", _scope())
    assert isinstance(reference, CallData)

    selector = function_signature_to_4byte_selector("initialize(address)")
    assert reference.resolve() == HexBytes(selector + bytes(12) + HexBytes(BUY_SELL_SZT_PROXY))


def test_call_data_with_number_literal(fake_project):
    reference = parse_value("$encode:initialize,5", _scope(contract_name="GENZStaking"))
    selector = function_signature_to_4byte_selector("initialize(uint256)")
    assert reference.resolve() == HexBytes(selector + (5).to_bytes(32, "big"))


@pytest.mark.parametrize(
    "signature,literal,word",
    [
        ("setOffset(int256)", "-1", (2**256 - 1).to_bytes(32, "big")),
        ("setPaused(bool)", "true", (1).to_bytes(32, "big")),
        ("setPaused(bool)", "False", bytes(32)),
    ],
)
def test_call_data_literals(monkeypatch, signature, literal, word):
    method_name, type_ = signature[:-1].split("(")
    abi = [_method(method_name, _input("_value", type_))]
    container = make_container("GlobalPauseOperation", abi)
    monkeypatch.setattr("deployment.abi.get_contract_container", lambda name: container)

    scope = _scope(contract_name="GlobalPauseOperation")
    reference = parse_value(f"$encode:{method_name},{literal}", scope)
    selector = function_signature_to_4byte_selector(signature)
    assert reference.resolve() == HexBytes(selector + word)


def test_call_data_checked_when_parsed(fake_project):
    with pytest.raises(ValueError, match="SZT has no method named 'setup'"):
        parse_value("$encode:setup,$BuySellSZT", _scope())

    with pytest.raises(ArgumentMismatch, match="Could not find ABI for 'initialize'"):
        parse_value("$encode:initialize", _scope())


def test_referenced_contracts():
    constants = {"VALUE": 1, "DAI": DAI}
    settings = {
        "constructor": {"_value": "$VALUE", "_daiAddress": "$DAI", "_genz": "$GENZ"},
        "proxy": {
            "args": ["$deployer", ["$SZT"], 2],
            "constructor": {"_data": "$encode:initialize,$BuySellSZT, 5"},
        },
    }
    assert referenced_contracts(settings, constants) == ["GENZ", "SZT", "BuySellSZT"]
