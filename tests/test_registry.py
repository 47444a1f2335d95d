import json

import pytest

from deployment.registry import (
    ConflictResolution,
    ContractNotRegistered,
    lookup_address,
    merge_registries,
    normalize_registry,
    read_registry,
    registry_addresses,
    update_registry,
    write_registry,
)
from tests.conftest import CHAIN_ID, OTHER_CHAIN_ID, registry_entry

GENZ = "0x1111111111111111111111111111111111111111"
SZT = "0x2222222222222222222222222222222222222222"
SZT_V2 = "0x3333333333333333333333333333333333333333"


@pytest.fixture
def registry_filepath(tmp_path):
    filepath = tmp_path / "artifacts" / "polygon-amoy.json"
    write_registry(
        entries=[registry_entry("SZT", SZT), registry_entry("GENZ", GENZ)],
        filepath=filepath,
    )
    return filepath


def test_write_registry_layout(registry_filepath):
    data = json.loads(registry_filepath.read_text())
    assert list(data) == [str(CHAIN_ID)]

    chain_entries = data[str(CHAIN_ID)]
    assert list(chain_entries) == ["GENZ", "SZT"]  # sorted by name
    assert chain_entries["SZT"]["address"] == SZT
    assert chain_entries["SZT"]["block_number"] == 1
    assert set(chain_entries["SZT"]) == {"address", "abi", "tx_hash", "block_number", "deployer"}

    abi_types = [item["type"] for item in chain_entries["SZT"]["abi"]]
    assert abi_types == sorted(abi_types)


def test_read_registry(registry_filepath):
    entries = read_registry(registry_filepath)
    assert {entry.name for entry in entries} == {"SZT", "GENZ"}
    assert all(entry.chain_id == CHAIN_ID for entry in entries)


def test_write_registry_with_no_entries(tmp_path):
    filepath = tmp_path / "empty.json"
    assert write_registry(entries=[], filepath=filepath) == filepath
    assert not filepath.exists()


def test_write_registry_merges_other_chains(registry_filepath):
    other = registry_entry("SZT", SZT_V2, chain_id=OTHER_CHAIN_ID)
    filepath = write_registry(entries=[other], filepath=registry_filepath)
    assert filepath == registry_filepath

    data = json.loads(registry_filepath.read_text())
    assert set(data) == {str(CHAIN_ID), str(OTHER_CHAIN_ID)}


def test_write_registry_does_not_overwrite_same_chain(registry_filepath):
    filepath = write_registry(entries=[registry_entry("SZT", SZT_V2)], filepath=registry_filepath)
    assert filepath == registry_filepath.with_suffix(".unmerged.json")
    assert registry_addresses(registry_filepath, CHAIN_ID)["SZT"] == SZT


def test_update_registry_replaces_only_same_name(registry_filepath):
    update_registry(
        entries=[registry_entry("SZT", SZT_V2, block_number=2)], filepath=registry_filepath
    )

    addresses = registry_addresses(registry_filepath, CHAIN_ID)
    assert addresses == {"SZT": SZT_V2, "GENZ": GENZ}

    (szt,) = [entry for entry in read_registry(registry_filepath) if entry.name == "SZT"]
    assert szt.block_number == 2


def test_update_registry_creates_file(tmp_path):
    filepath = tmp_path / "new" / "local.json"
    update_registry(entries=[registry_entry("GENZ", GENZ)], filepath=filepath)
    assert registry_addresses(filepath, CHAIN_ID) == {"GENZ": GENZ}


def test_registry_addresses(registry_filepath, tmp_path):
    assert registry_addresses(registry_filepath, CHAIN_ID) == {"SZT": SZT, "GENZ": GENZ}
    assert registry_addresses(registry_filepath, OTHER_CHAIN_ID) == {}
    assert registry_addresses(tmp_path / "missing.json", CHAIN_ID) == {}


def test_lookup_address(registry_filepath):
    assert lookup_address(registry_filepath, CHAIN_ID, "GENZ") == GENZ

    with pytest.raises(ContractNotRegistered, match="GSZT is not registered"):
        lookup_address(registry_filepath, CHAIN_ID, "GSZT")

    with pytest.raises(ContractNotRegistered):
        lookup_address(registry_filepath, OTHER_CHAIN_ID, "GENZ")


def test_merge_registries(registry_filepath, tmp_path):
    registry_2 = tmp_path / "other.json"
    write_registry(
        entries=[
            registry_entry("SZT", SZT_V2),
            registry_entry("GSZT", SZT_V2),
            registry_entry("GENZ", GENZ, chain_id=OTHER_CHAIN_ID),
        ],
        filepath=registry_2,
    )

    output = tmp_path / "merged.json"
    merge_registries(
        registry_1_filepath=registry_filepath,
        registry_2_filepath=registry_2,
        output_filepath=output,
        force_conflict_resolution=ConflictResolution.USE_2,
    )

    assert registry_addresses(output, CHAIN_ID) == {"SZT": SZT_V2, "GENZ": GENZ, "GSZT": SZT_V2}
    assert registry_addresses(output, OTHER_CHAIN_ID) == {"GENZ": GENZ}


def test_merge_registries_interactive_resolution(registry_filepath, tmp_path, monkeypatch):
    registry_2 = tmp_path / "other.json"
    write_registry(entries=[registry_entry("SZT", SZT_V2)], filepath=registry_2)

    answers = iter(["3", "1"])  # the invalid answer is asked again
    monkeypatch.setattr("builtins.input", lambda _: next(answers))

    output = tmp_path / "merged.json"
    merge_registries(
        registry_1_filepath=registry_filepath,
        registry_2_filepath=registry_2,
        output_filepath=output,
    )
    assert registry_addresses(output, CHAIN_ID)["SZT"] == SZT


def test_merge_registries_skips_deprecated_contracts(registry_filepath, tmp_path):
    registry_2 = tmp_path / "other.json"
    write_registry(entries=[registry_entry("GSZT", SZT_V2)], filepath=registry_2)

    merge_registries(
        registry_1_filepath=registry_filepath,
        registry_2_filepath=registry_2,
        output_filepath=registry_filepath,
        deprecated_contracts=["GENZ"],
    )
    assert registry_addresses(registry_filepath, CHAIN_ID) == {"SZT": SZT, "GSZT": SZT_V2}


def test_normalize_registry(registry_filepath):
    data = json.loads(registry_filepath.read_text())
    registry_filepath.write_text(json.dumps(data))  # compact, non standard formatting

    normalize_registry(registry_filepath)

    assert registry_filepath.read_text().startswith('{\n    "80002": {')
    assert registry_addresses(registry_filepath, CHAIN_ID) == {"SZT": SZT, "GENZ": GENZ}
