# tests/test_gateway.py
import threading

import numpy as np
import pytest
from numpy.testing import assert_allclose

from spicesim_core import (
    CircuitDefinitionParser,
    GatewayInputError,
    ResultsCache,
    SweepGateway,
    SweepRunError,
    SweepStatus,
)
from spicesim_core.analysis import OperatingPointOutcome, SolverError
from spicesim_core.store import CircuitNotFoundError
from spicesim_core.sweep import SweepInProgressError

from conftest import ScriptedEngine, divider_solution


@pytest.fixture
def gateway(store, divider_engine):
    gw = SweepGateway(store, divider_engine)
    yield gw
    gw.shutdown(wait=True)


class TestRunParameterSweep:
    def test_sweep_is_run_and_cached(self, gateway, divider):
        report = gateway.run_parameter_sweep("divider", "R2.value", [1000, 3000], "op",
                                             export_expressions=["v(out)"])
        assert report.status is SweepStatus.SUCCESS
        assert_allclose(report.results["v(out)"], [5.0, 7.5])

        cached = gateway.get_cached_result("divider")
        assert cached.analysis_type == "parameter_sweep"
        assert cached.x_label == "R2.value"
        assert cached.x_data == [1000.0, 3000.0]

    def test_active_circuit_is_used_when_id_is_omitted(self, gateway, divider):
        report = gateway.run_parameter_sweep(None, "R1.value", np.array([1000.0]), "operating-point",
                                             export_expressions=["v(out)"])
        assert report.status is SweepStatus.SUCCESS

    def test_settings_are_parsed(self, gateway, divider, divider_engine):
        report = gateway.run_parameter_sweep(
            "divider", "R2.value", [1000], "dc",
            analysis_settings={"source": "V1", "start": "0 V", "stop": "1 V", "step": "0.5 V"},
            export_expressions=["v(out)"],
        )
        assert report.results["v(out)"] == [0.5]
        assert divider_engine.calls[0].kind.value == "dc"

    @pytest.mark.parametrize("kwargs, field", [
        (dict(values=[], export_expressions=["v(out)"]), "values"),
        (dict(values="1,2", export_expressions=["v(out)"]), "values"),
        (dict(values=[1], export_expressions=None), "export_expressions"),
        (dict(values=[1], export_expressions=[]), "export_expressions"),
        (dict(values=[1], export_expressions=["v(out)"], analysis_kind="noise"), "analysis_kind"),
        (dict(values=[1], export_expressions=["v(out)"], point_timeout_s=-1), "timeout_s"),
        (dict(values=[1], export_expressions=["v(out)"], max_workers=0), "max_workers"),
        (dict(values=[1], export_expressions=["v(out)"], analysis_settings={"bogus": 1}), "analysis_settings"),
        (dict(values=[1], export_expressions=["v(out"]), "analysis_settings"),
        (dict(values=[1], export_expressions=["v(out)"], parameter_path=""), "parameter_path"),
    ])
    def test_malformed_requests(self, gateway, divider, divider_engine, kwargs, field):
        request = dict(circuit_id="divider", parameter_path="R2.value", analysis_kind="op")
        request.update(kwargs)
        with pytest.raises(GatewayInputError) as exc_info:
            gateway.run_parameter_sweep(**request)
        assert field in exc_info.value.errors
        assert isinstance(exc_info.value, ValueError)
        assert divider_engine.calls == []

    def test_unknown_circuit(self, gateway, divider):
        with pytest.raises(SweepRunError, match="Circuit Not Found") as exc_info:
            gateway.run_parameter_sweep("nope", "R1.value", [1], "op", export_expressions=["v(out)"])
        assert isinstance(exc_info.value.__cause__, CircuitNotFoundError)

    def test_busy_circuit(self, gateway, store, divider):
        lock = store.sweep_lock("divider")
        lock.acquire()
        try:
            with pytest.raises(SweepInProgressError):
                gateway.run_parameter_sweep("divider", "R1.value", [1], "op", export_expressions=["v(out)"])
        finally:
            lock.release()

    def test_lock_is_released_after_each_sweep(self, gateway, store, divider):
        gateway.run_parameter_sweep("divider", "R1.value", [1], "op", export_expressions=["v(out)"])
        assert not store.sweep_lock("divider").locked()

    def test_validation_errors_prevent_the_run(self, gateway, store, divider, divider_engine):
        store.add_component("divider", "diode", "D2", ["out", "0"], model="NOPE")
        with pytest.raises(SweepRunError, match="Circuit Validation Error"):
            gateway.run_parameter_sweep("divider", "R1.value", [1], "op", export_expressions=["v(out)"])
        assert divider_engine.calls == []
        assert not store.sweep_lock("divider").locked()

    def test_unresolvable_path_is_reported_not_raised(self, gateway, divider):
        report = gateway.run_parameter_sweep("divider", "R9.value", [1], "op", export_expressions=["v(out)"])
        assert report.status is SweepStatus.FAILED
        assert "R9" in report.fatal_error
        assert gateway.get_cached_result("divider") is None

    def test_failed_points_do_not_raise(self, store, divider):
        engine = ScriptedEngine(responder=divider_solution).script(SolverError("no convergence"))
        gateway = SweepGateway(store, engine)
        try:
            report = gateway.run_parameter_sweep("divider", "R2.value", [1000, 3000], "op",
                                                 export_expressions=["v(out)"])
        finally:
            gateway.shutdown()
        assert report.status is SweepStatus.PARTIAL_SUCCESS
        assert report.failed_indices == [0]


class TestRangeAndDeclaredSweeps:
    def test_range_sweep(self, gateway, divider, divider_engine):
        report = gateway.run_parameter_sweep_range(
            "divider", "R2.value", 1000, 9000, "op", points=3, export_expressions=["v(out)"]
        )
        assert report.parameter_values == [1000.0, 5000.0, 9000.0]
        assert len(divider_engine.calls) == 3

    def test_log_range_sweep(self, gateway, divider):
        report = gateway.run_parameter_sweep_range(
            "divider", "R2.value", 10, 1000, "op", points=3, scale="log", export_expressions=["v(out)"]
        )
        assert_allclose(report.parameter_values, [10.0, 100.0, 1000.0])

    @pytest.mark.parametrize("start, stop, points, scale", [
        (1, 0, 5, "linear"),
        (1, 10, 1, "linear"),
        (0, 10, 5, "log"),
        (1, 10, 5, "cubic"),
    ])
    def test_invalid_range(self, gateway, divider, start, stop, points, scale):
        with pytest.raises(GatewayInputError):
            gateway.run_parameter_sweep_range(
                "divider", "R2.value", start, stop, "op", points=points, scale=scale,
                export_expressions=["v(out)"],
            )

    def test_declared_sweep(self, store, divider_engine):
        parser = CircuitDefinitionParser()
        definition = parser.parse_string(
            "circuit_id: yaml_divider\n"
            "components:\n"
            "  - {name: V1, type: voltage_source, nodes: [in, 0], value: 10}\n"
            "  - {name: R1, type: resistor, nodes: [in, out], value: 1000}\n"
            "  - {name: R2, type: resistor, nodes: [out, 0], value: 1000}\n"
            "sweep:\n"
            "  parameter: R2.value\n"
            "  analysis: op\n"
            "  exports: [v(out), i(R1)]\n"
            "  values: [1000, 3 kohm]\n"
        )
        parser.load_into(store, definition)
        gateway = SweepGateway(store, divider_engine)
        try:
            report = gateway.run_declared_sweep("yaml_divider", definition.sweep)
        finally:
            gateway.shutdown()
        assert report.status is SweepStatus.SUCCESS
        assert_allclose(report.results["v(out)"], [5.0, 7.5])
        assert report.units == {"v(out)": "V", "i(R1)": "A"}


class TestTemperatureSweep:
    def test_engine_sees_each_temperature_and_it_is_restored(self, gateway, divider, divider_engine):
        report = gateway.run_temperature_sweep("divider", -25, 75, 50, "op", export_expressions=["v(out)"])

        assert report.status is SweepStatus.SUCCESS
        assert report.parameter_path == "temperature"
        assert report.parameter_values == [-25.0, 25.0, 75.0]
        assert [call.temperature for call in divider_engine.calls] == [-25.0, 25.0, 75.0]
        assert_allclose(report.results["v(out)"], [5.0, 5.0, 5.0])
        assert divider.temperature == 27.0
        assert gateway.get_cached_result("divider").x_label == "temperature"

    def test_stop_is_included_despite_rounding(self, gateway, divider):
        report = gateway.run_temperature_sweep("divider", 0, 0.3, 0.1, "op", export_expressions=["v(out)"])
        assert len(report.parameter_values) == 4

    def test_ac_temperature_sweep_keeps_curves(self, gateway, divider):
        report = gateway.run_temperature_sweep(
            "divider", 0, 50, 25, "ac",
            analysis_settings={"start_frequency": "1 kHz", "stop_frequency": "1 MHz"},
            export_expressions=["v(out)"],
        )
        assert report.status is SweepStatus.SUCCESS
        assert len(report.curves.curves["v(out)"]) == 3
        assert len(report.curves.magnitude_db["v(out)"]) == 3

    @pytest.mark.parametrize("start, stop, step, field", [
        (0, 100, 0, "step"),
        (0, 100, -10, "step"),
        (100, 0, 10, "start"),
        ("hot", 100, 10, "start"),
    ])
    def test_invalid_temperature_range(self, gateway, divider, divider_engine, start, stop, step, field):
        with pytest.raises(GatewayInputError) as exc_info:
            gateway.run_temperature_sweep("divider", start, stop, step, "op", export_expressions=["v(out)"])
        assert field in exc_info.value.errors
        assert divider_engine.calls == []

    def test_unknown_circuit(self, gateway):
        with pytest.raises(SweepRunError, match="Circuit Not Found"):
            gateway.run_temperature_sweep("nope", 0, 10, 5, "op", export_expressions=["v(out)"])


class TestBackgroundSweeps:
    def test_background_job_result(self, gateway, store, divider):
        job = gateway.start_parameter_sweep("divider", "R2.value", [1000, 3000], "op",
                                            export_expressions=["v(out)"])
        report = job.result(timeout=10)
        assert job.done()
        assert job.circuit_id == "divider"
        assert report.status is SweepStatus.SUCCESS
        assert not store.sweep_lock("divider").locked()

    def test_cancel_running_job_and_reject_concurrent_sweep(self, store, divider):
        started = threading.Event()
        gate = threading.Event()

        def gated_solution(circuit, kind, settings, exports):
            started.set()
            assert gate.wait(10)
            return divider_solution(circuit, kind, settings, exports)

        gateway = SweepGateway(store, ScriptedEngine(responder=gated_solution))
        try:
            job = gateway.start_parameter_sweep("divider", "R2.value", [1000, 2000, 3000], "op",
                                                export_expressions=["v(out)"])
            assert started.wait(10)
            with pytest.raises(SweepInProgressError):
                gateway.run_parameter_sweep("divider", "R1.value", [1], "op", export_expressions=["v(out)"])
            job.cancel()
            gate.set()
            report = job.result(timeout=10)
        finally:
            gate.set()
            gateway.shutdown()

        assert report.status is SweepStatus.CANCELLED
        assert report.parameter_values == [1000.0]
        assert divider.components["R2"].value == 1000.0
        assert gateway.get_cached_result("divider").x_data == [1000.0]

    def test_malformed_background_request_raises_immediately(self, gateway, store, divider):
        with pytest.raises(GatewayInputError):
            gateway.start_parameter_sweep("divider", "R2.value", [], "op", export_expressions=["v(out)"])
        assert not store.sweep_lock("divider").locked()


class TestRunAnalysis:
    def test_operating_point_is_returned_and_cached(self, gateway, divider):
        outcome = gateway.run_analysis("divider", "op", export_expressions=["v(out)", "p(R2)"])
        assert isinstance(outcome, OperatingPointOutcome)
        cached = gateway.get_cached_result("divider")
        assert cached.operating_point_data == pytest.approx({"v(out)": 5.0, "p(R2)": 0.025})

    def test_dc_analysis_is_labelled_with_its_source(self, gateway, divider):
        gateway.run_analysis("divider", "dc", {"source": "V1", "stop": 1, "step": 0.5}, ["v(out)"])
        cached = gateway.get_cached_result("divider")
        assert cached.x_label == "V1"
        assert cached.x_data == [0.0, 0.5, 1.0]
        assert cached.to_renderer_payload()["signals"]["v(out)"] == [0.0, 0.25, 0.5]

    def test_ac_analysis_keeps_imaginary_parts(self, gateway, divider):
        gateway.run_analysis("divider", "ac", {"start_frequency": "1 kHz", "stop_frequency": "1 MHz"}, ["v(out)"])
        cached = gateway.get_cached_result("divider")
        assert cached.x_label == "frequency"
        assert len(cached.imaginary_signals["v(out)"]) == 4

    def test_failed_analysis_raises_sweep_run_error(self, store, divider):
        gateway = SweepGateway(store, ScriptedEngine().script(SolverError("Singular matrix.")))
        try:
            with pytest.raises(SweepRunError, match="Singular matrix"):
                gateway.run_analysis("divider", "op", export_expressions=["v(out)"])
        finally:
            gateway.shutdown()
        assert not store.sweep_lock("divider").locked()
        assert gateway.get_cached_result("divider") is None

    def test_malformed_analysis_request(self, gateway, divider):
        with pytest.raises(GatewayInputError):
            gateway.run_analysis("divider", "transient", {"step": 0}, ["v(out)"])


class TestIntrospection:
    def test_list_sweepable_parameters(self, gateway, divider):
        paths = gateway.list_sweepable_parameters("divider")
        assert paths == ["V1.value", "V1.acmag", "R1.value", "R2.value", "DMOD.IS", "DMOD.N"]

    def test_list_unknown_circuit(self, gateway):
        with pytest.raises(SweepRunError):
            gateway.list_sweepable_parameters("nope")

    def test_clear_cached_result(self, gateway, divider):
        gateway.run_analysis("divider", "op", export_expressions=["v(out)"])
        assert gateway.clear_cached_result("divider")
        assert gateway.get_cached_result("divider") is None

    def test_shared_cache(self, store, divider, divider_engine):
        cache = ResultsCache()
        gateway = SweepGateway(store, divider_engine, cache=cache)
        try:
            gateway.run_analysis("divider", "op", export_expressions=["v(out)"])
        finally:
            gateway.shutdown()
        assert len(cache) == 1
