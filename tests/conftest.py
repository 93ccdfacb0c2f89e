# tests/conftest.py
import threading
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import numpy as np
import pytest

from spicesim_core import CircuitStore, EngineSolution, AnalysisKind
from spicesim_core.data_structures import Circuit


@dataclass
class EngineCall:
    """What the engine saw when it was invoked."""
    circuit_id: str
    kind: AnalysisKind
    exports: List[str]
    component_values: Dict[str, Any]
    model_parameters: Dict[str, Dict[str, Any]]
    temperature: float
    thread_name: str = field(default_factory=lambda: threading.current_thread().name)


class ScriptedEngine:
    """
    A fake `SimulationEngine`.

    Responses queued with `script()` are returned (or raised, for exception
    instances) in call order. Once the queue is empty, `responder` is called
    instead. Every call is recorded with a snapshot of the circuit's values.
    """

    def __init__(self, responder: Optional[Callable] = None, delay_s: float = 0.0):
        self.calls: List[EngineCall] = []
        self._script: List[Any] = []
        self._responder = responder
        self._delay_s = delay_s
        self._lock = threading.Lock()

    def script(self, *responses):
        self._script.extend(responses)
        return self

    def solve(self, circuit: Circuit, kind, settings, exports):
        with self._lock:
            self.calls.append(EngineCall(
                circuit_id=circuit.circuit_id,
                kind=kind,
                exports=list(exports),
                component_values={name: c.value for name, c in circuit.components.items()},
                model_parameters={name: dict(m.parameters) for name, m in circuit.models.items()},
                temperature=circuit.temperature,
            ))
            response = self._script.pop(0) if self._script else None
        if self._delay_s:
            time.sleep(self._delay_s)
        if response is None:
            if self._responder is None:
                raise AssertionError("ScriptedEngine ran out of scripted responses.")
            response = self._responder(circuit, kind, settings, exports)
        if isinstance(response, BaseException):
            raise response
        return response


def divider_solution(circuit: Circuit, kind, settings, exports) -> EngineSolution:
    """Closed-form solution of the V1/R1/R2 divider used throughout the tests."""
    v1 = circuit.find_component("V1").value
    r1 = circuit.find_component("R1").value
    r2 = circuit.find_component("R2").value
    ratio = r2 / (r1 + r2)

    def node_values(v_in):
        v_in = np.asarray(v_in, dtype=float)
        v_out = v_in * ratio
        return {
            "v(in)": v_in,
            "v(out)": v_out,
            "i(R1)": (v_in - v_out) / r1,
            "p(R2)": v_out ** 2 / r2,
        }

    if kind is AnalysisKind.OPERATING_POINT:
        return EngineSolution(signals={k: np.atleast_1d(v) for k, v in node_values(v1).items() if k in exports})
    if kind is AnalysisKind.DC_SWEEP:
        axis = np.arange(settings.start, settings.stop + settings.step / 2, settings.step)
        return EngineSolution(signals={k: v for k, v in node_values(axis).items() if k in exports}, axis=axis)
    if kind is AnalysisKind.AC:
        axis = np.geomspace(settings.start_frequency, settings.stop_frequency, 4)
        gain = ratio / (1 + 1j * axis / 1e5)
        signals = {"v(out)": gain, "v(in)": np.ones_like(axis, dtype=complex)}
        return EngineSolution(signals={k: v for k, v in signals.items() if k in exports}, axis=axis)
    axis = np.linspace(settings.start_time, settings.stop_time, 5)
    signals = {"v(out)": v1 * ratio * (1 - np.exp(-axis / 2e-4)), "v(in)": np.full_like(axis, v1)}
    return EngineSolution(signals={k: v for k, v in signals.items() if k in exports}, axis=axis)


@pytest.fixture
def store():
    return CircuitStore()


@pytest.fixture
def divider(store) -> Circuit:
    """10 V source, R1 = R2 = 1 kOhm, plus a diode model for coefficient sweeps."""
    circuit = store.create_circuit("divider", "Resistive divider")
    store.define_model("divider", "diode", "DMOD", {"IS": 1e-14, "N": 1.0})
    store.add_component("divider", "voltage_source", "V1", ["in", "0"], value=10.0,
                        parameters={"acmag": 1.0, "waveform": {"type": "pulse", "v1": 0, "v2": 5}})
    store.add_component("divider", "resistor", "R1", ["in", "out"], value=1000.0)
    store.add_component("divider", "resistor", "R2", ["out", "0"], value=1000.0)
    store.add_component("divider", "diode", "D1", ["out", "0"], model="DMOD")
    return circuit


@pytest.fixture
def divider_engine():
    return ScriptedEngine(responder=divider_solution)


@pytest.fixture
def scripted_engine():
    return ScriptedEngine()
