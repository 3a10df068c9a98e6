"""Tests for payload flattening and validation."""

from __future__ import annotations

import pytest

from src.observations.errors import ClientInputError
from src.observations.normalizer import flatten, normalize_observations, validate_payload
from src.observations.tests.conftest import make_raw


class TestFlatten:
    def test_bare_object_is_single_leaf(self) -> None:
        leaf = {"device_id": "a"}
        assert flatten(leaf) == [leaf]

    def test_flat_array_unchanged(self) -> None:
        items = [{"n": 1}, {"n": 2}, {"n": 3}]
        assert flatten(items) == items

    def test_array_of_arrays_preserves_left_to_right_order(self) -> None:
        payload = [[{"n": 1}, {"n": 2}], [{"n": 3}], [[{"n": 4}], {"n": 5}]]
        assert [x["n"] for x in flatten(payload)] == [1, 2, 3, 4, 5]

    def test_empty_array_gives_empty_output(self) -> None:
        assert flatten([]) == []

    def test_nested_empty_arrays_are_dropped_without_losing_leaves(self) -> None:
        assert flatten([[], [[]], [{"n": 1}], []]) == [{"n": 1}]

    def test_length_equals_leaf_count(self) -> None:
        payload = [1, [2, [3, [4, [5]]]], "six", None]
        assert len(flatten(payload)) == 7

    def test_objects_are_not_descended(self) -> None:
        leaf = {"systolic": {"value": 120}, "items": [1, 2]}
        assert flatten([leaf]) == [leaf]


class TestValidatePayload:
    @pytest.mark.parametrize("payload", [None, "", 0, False])
    def test_missing_payload_rejected(self, payload: object) -> None:
        with pytest.raises(ClientInputError, match="No observations provided"):
            validate_payload(payload)

    @pytest.mark.parametrize("payload", ["text", 42, True, 3.5])
    def test_scalar_payload_rejected(self, payload: object) -> None:
        with pytest.raises(ClientInputError, match="Invalid observations provided"):
            validate_payload(payload)

    def test_object_and_array_accepted(self) -> None:
        validate_payload({"device_id": "a"})
        validate_payload([])


class TestNormalizeObservations:
    def test_single_object(self) -> None:
        result = normalize_observations(make_raw(device_id="m1"))
        assert len(result) == 1
        assert result[0].device_id == "m1"
        assert result[0].observation_id == "heart-rate"

    def test_nested_batch_keeps_order(self) -> None:
        payload = [
            [make_raw(observation_id="heart-rate"), make_raw(observation_id="SpO2")],
            [make_raw(observation_id="respiratory-rate")],
        ]
        ids = [o.observation_id for o in normalize_observations(payload)]
        assert ids == ["heart-rate", "SpO2", "respiratory-rate"]

    def test_raw_object_kept_verbatim(self) -> None:
        raw = make_raw(unit="bpm", interpretation={"code": "N"})
        observation = normalize_observations(raw)[0]
        assert observation.to_json() is raw

    def test_empty_array_is_valid_and_empty(self) -> None:
        assert normalize_observations([]) == []

    def test_leaf_missing_device_id_rejects_batch(self) -> None:
        bad = make_raw()
        del bad["device_id"]
        with pytest.raises(ClientInputError, match="device_id"):
            normalize_observations([make_raw(), bad])

    def test_leaf_missing_observation_id_rejected(self) -> None:
        bad = make_raw()
        del bad["observation_id"]
        with pytest.raises(ClientInputError, match="observation_id"):
            normalize_observations(bad)

    def test_non_object_leaf_rejected(self) -> None:
        with pytest.raises(ClientInputError, match="expected an object"):
            normalize_observations([make_raw(), "oops"])

    def test_empty_object_rejected(self) -> None:
        with pytest.raises(ClientInputError):
            normalize_observations({})
