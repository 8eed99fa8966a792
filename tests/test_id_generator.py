import pytest

from src.id_generator import PREFIX_MAP, generate_public_id, id_factory, parse_public_id, validate_public_id


def test_generated_ids_are_typed_and_unique():
    make = id_factory("trade")
    ids = {make() for _ in range(200)}
    assert len(ids) == 200
    assert all(validate_public_id(i, "TRD") for i in ids)


def test_parse_round_trip():
    public_id = generate_public_id("coin")
    parsed = parse_public_id(public_id)
    assert parsed["prefix"] == "CON"
    assert parsed["resource_type"] == "coin"
    assert len(parsed["random"]) == 6


def test_validate_rejects_wrong_prefix_and_garbage():
    assert not validate_public_id(generate_public_id("user"), "CON")
    assert not validate_public_id("not-an-id")
    with pytest.raises(ValueError):
        parse_public_id("CON-123")


def test_prefixes_are_unique():
    assert len(set(PREFIX_MAP.values())) == len(PREFIX_MAP)


def test_unknown_resource_type_fails_fast():
    with pytest.raises(KeyError):
        id_factory("widget")
