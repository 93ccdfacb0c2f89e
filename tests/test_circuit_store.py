# tests/test_circuit_store.py
import pytest

from spicesim_core import CircuitStore, ComponentType
from spicesim_core.errors import Diagnosable
from spicesim_core.store import (
    CircuitNotFoundError,
    DuplicateNameError,
    EntityNotFoundError,
    InvalidDefinitionError,
    ModelInUseError,
)


class TestCircuitLifecycle:
    def test_first_circuit_becomes_active(self, store):
        store.create_circuit("a")
        store.create_circuit("b")
        assert store.active_circuit_id == "a"
        assert store.require_circuit().circuit_id == "a"

    def test_deleting_active_circuit_activates_first_remaining(self, store):
        store.create_circuit("a")
        store.create_circuit("b")
        store.create_circuit("c")
        assert store.delete_circuit("a")
        assert store.active_circuit_id == "b"
        assert not store.delete_circuit("a")

    def test_set_active_and_clear_all(self, store):
        store.create_circuit("a")
        store.create_circuit("b")
        store.set_active_circuit("b")
        assert store.get_active_circuit().circuit_id == "b"
        store.clear_all()
        assert store.list_circuits() == []
        assert store.active_circuit_id is None

    def test_duplicate_circuit_id(self, store):
        store.create_circuit("a")
        with pytest.raises(DuplicateNameError):
            store.create_circuit("a")

    def test_missing_circuit_is_diagnosable(self, store):
        store.create_circuit("a")
        with pytest.raises(CircuitNotFoundError) as exc_info:
            store.require_circuit("zzz")
        assert isinstance(exc_info.value, Diagnosable)
        report = exc_info.value.get_diagnostic_report()
        assert "zzz" in report

    def test_sweep_lock_is_per_circuit(self, store):
        store.create_circuit("a")
        store.create_circuit("b")
        assert store.sweep_lock("a") is store.sweep_lock("a")
        assert store.sweep_lock("a") is not store.sweep_lock("b")


class TestComponents:
    def test_add_component_with_unit_string(self, store):
        store.create_circuit("c")
        r1 = store.add_component("c", "resistor", "R1", ["in", "out"], value="4.7 kohm")
        assert r1.component_type is ComponentType.RESISTOR
        assert r1.value == pytest.approx(4700.0)

    def test_nodes_are_stringified(self, store):
        store.create_circuit("c")
        r1 = store.add_component("c", "resistor", "R1", ["in", 0], value=1)
        assert r1.nodes == ["in", "0"]
        assert store.require_circuit("c").has_ground

    def test_duplicate_name_case_insensitive(self, store):
        store.create_circuit("c")
        store.add_component("c", "resistor", "R1", ["a", "0"], value=1)
        with pytest.raises(DuplicateNameError):
            store.add_component("c", "resistor", "r1", ["a", "0"], value=1)

    @pytest.mark.parametrize("kwargs, fragment", [
        (dict(component_type="resistor", name="R1", nodes=["a"], value=1), "needs exactly 2"),
        (dict(component_type="diode", name="D1", nodes=["a", "0"], value=1), "does not take a primary value"),
        (dict(component_type="resistor", name="R1", nodes=["a", "0"], model="X"), "does not take a model"),
        (dict(component_type="resistor", name="R1", nodes=["a", "0"], value="abc"), "abc"),
        (dict(component_type="resistor", name="R1", nodes=["a", "0"], value=float("inf")), "not finite"),
        (dict(component_type="resistor", name="R1", nodes=["a", "0"], value="5 V"), "ohm"),
        (dict(component_type="warp_core", name="W1", nodes=["a", "0"]), "Unknown component type"),
    ])
    def test_invalid_definitions(self, store, kwargs, fragment):
        store.create_circuit("c")
        with pytest.raises(InvalidDefinitionError) as exc_info:
            store.add_component("c", **kwargs)
        assert fragment in str(exc_info.value)

    def test_get_and_remove_component(self, store):
        store.create_circuit("c")
        store.add_component("c", "resistor", "R1", ["a", "0"], value=1)
        assert store.get_component("c", "r1").name == "R1"
        store.remove_component("c", "R1")
        with pytest.raises(EntityNotFoundError):
            store.get_component("c", "R1")


class TestModels:
    def test_define_and_get_model(self, store):
        store.create_circuit("c")
        model = store.define_model("c", "diode", "DMOD", {"IS": "1e-14", "N": 1})
        assert model.parameters == {"IS": pytest.approx(1e-14), "N": 1.0}
        assert store.get_model("c", "dmod") is model

    def test_model_in_use_cannot_be_removed(self, divider, store):
        with pytest.raises(ModelInUseError) as exc_info:
            store.remove_model("divider", "DMOD")
        assert exc_info.value.referencing_components == ["D1"]
        store.remove_component("divider", "D1")
        store.remove_model("divider", "DMOD")
        assert divider.models == {}
