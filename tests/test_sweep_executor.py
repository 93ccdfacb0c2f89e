# tests/test_sweep_executor.py
import logging
import math
import threading

import numpy as np
import pytest
from numpy.testing import assert_allclose

from spicesim_core.analysis import (
    AcSettings,
    AnalysisDispatcher,
    AnalysisKind,
    DcSweepSettings,
    EngineSolution,
    OperatingPointSettings,
    SolverError,
    TransientSettings,
)
from spicesim_core.sweep import SweepExecutor, SweepStatus

from conftest import ScriptedEngine, divider_solution

OP_VOUT = OperatingPointSettings(exports=("v(out)",))


def _executor(engine, **kwargs):
    return SweepExecutor(AnalysisDispatcher(engine, **kwargs))


class TestSequentialSweep:
    def test_operating_point_sweep(self, divider, divider_engine):
        report = _executor(divider_engine).run(divider, "R2.value", [1000, 3000], "op", OP_VOUT)

        assert report.status is SweepStatus.SUCCESS
        assert report.parameter_values == [1000.0, 3000.0]
        assert_allclose(report.results["v(out)"], [5.0, 7.5])
        assert report.units == {"v(out)": "V"}
        assert report.point_errors == []
        assert report.fatal_error is None
        assert report.elapsed_ms >= 0.0

    def test_engine_sees_each_value_in_order_with_duplicates(self, divider, divider_engine):
        _executor(divider_engine).run(divider, "R1.value", [10, 20, 10], "op", OP_VOUT)
        assert [call.component_values["R1"] for call in divider_engine.calls] == [10.0, 20.0, 10.0]

    def test_value_is_restored(self, divider, divider_engine):
        _executor(divider_engine).run(divider, "R1.value", [1, 2, 3], "op", OP_VOUT)
        assert divider.components["R1"].value == 1000.0

    def test_model_coefficient_sweep_is_restored(self, divider, divider_engine):
        _executor(divider_engine).run(divider, "DMOD.IS", [1e-15, 1e-13], "op", OP_VOUT)
        assert [call.model_parameters["DMOD"]["IS"] for call in divider_engine.calls] == [1e-15, 1e-13]
        assert divider.models["DMOD"].parameters["IS"] == pytest.approx(1e-14)

    def test_unit_strings_are_coerced(self, divider, divider_engine):
        report = _executor(divider_engine).run(divider, "R2.value", ["1 kohm", "3e3"], "op", OP_VOUT)
        assert report.parameter_values == [1000.0, 3000.0]

    def test_bad_value_gives_partial_success(self, divider, divider_engine):
        report = _executor(divider_engine).run(divider, "R2.value", [1000, "bad", 3000], "op", OP_VOUT)

        assert report.status is SweepStatus.PARTIAL_SUCCESS
        assert report.parameter_values == [1000.0, "bad", 3000.0]
        assert report.results["v(out)"][0] == pytest.approx(5.0)
        assert math.isnan(report.results["v(out)"][1])
        assert report.results["v(out)"][2] == pytest.approx(7.5)
        assert report.failed_indices == [1]
        assert report.point_errors[0].error_type == "ParameterTypeMismatchError"
        assert len(divider_engine.calls) == 2
        assert divider.components["R2"].value == 1000.0

    def test_point_failure_is_logged(self, divider, divider_engine, caplog):
        with caplog.at_level(logging.WARNING, logger="spicesim_core.sweep.executor"):
            _executor(divider_engine).run(divider, "R2.value", [1000, "bad"], "op", OP_VOUT)
        assert "Sweep point 1 (value 'bad') failed: ParameterTypeMismatchError" in caplog.text

    def test_solver_failure_is_recorded_and_sweep_continues(self, divider, scripted_engine):
        scripted_engine.script(
            EngineSolution(signals={"v(out)": [1.0]}),
            SolverError("Singular matrix."),
            EngineSolution(signals={"v(out)": [3.0]}),
        )
        report = _executor(scripted_engine).run(divider, "R1.value", [1, 2, 3], "op", OP_VOUT)

        assert report.status is SweepStatus.PARTIAL_SUCCESS
        assert report.point_errors[0].index == 1
        assert report.point_errors[0].error_type == "AnalysisExecutionError"
        assert "Singular matrix" in report.point_errors[0].message
        assert report.results["v(out)"][2] == 3.0

    def test_every_point_failing_is_failed(self, divider, scripted_engine):
        scripted_engine.script(SolverError("a"), SolverError("b"))
        report = _executor(scripted_engine).run(divider, "R1.value", [1, 2], "op", OP_VOUT)
        assert report.status is SweepStatus.FAILED
        assert report.fatal_error is None
        assert report.failed_indices == [0, 1]

    def test_unknown_path_fails_before_any_point(self, divider, scripted_engine):
        report = _executor(scripted_engine).run(divider, "NoSuchComponent.value", [1, 2], "op", OP_VOUT)
        assert report.status is SweepStatus.FAILED
        assert "NoSuchComponent" in report.fatal_error
        assert report.parameter_values == []
        assert scripted_engine.calls == []

    def test_structured_parameter_fails_before_any_point(self, divider, scripted_engine):
        report = _executor(scripted_engine).run(divider, "V1.waveform", [1], "op", OP_VOUT)
        assert report.status is SweepStatus.FAILED
        assert "cannot be swept" in report.fatal_error

    def test_empty_values(self, divider, scripted_engine):
        report = _executor(scripted_engine).run(divider, "R1.value", [], "op", OP_VOUT)
        assert report.status is SweepStatus.FAILED
        assert report.fatal_error == "No sweep values were given."
        assert report.results == {"v(out)": []}

    def test_unknown_kind_raises(self, divider, scripted_engine):
        with pytest.raises(ValueError, match="Unsupported analysis type"):
            _executor(scripted_engine).run(divider, "R1.value", [1], "noise", OP_VOUT)

    def test_numpy_values_are_accepted(self, divider, divider_engine):
        report = _executor(divider_engine).run(divider, "R2.value", np.array([1000.0, 3000.0]), "op", OP_VOUT)
        assert report.parameter_values == [1000.0, 3000.0]


class TestAnalysisKinds:
    def test_dc_sweep_reduces_to_last_element(self, divider, scripted_engine):
        scripted_engine.script(
            EngineSolution(signals={"i(R1)": np.array([0.01, 0.02, 0.03])}, axis=np.array([0.0, 0.5, 1.0])),
            EngineSolution(signals={"i(R1)": np.array([0.04, 0.05])}, axis=np.array([0.0, 1.0])),
        )
        settings = DcSweepSettings(source="V1", start=0.0, stop=1.0, step=0.5, exports=("i(R1)",))
        report = _executor(scripted_engine).run(divider, "R1.value", [100, 200], "dc", settings)

        assert report.status is SweepStatus.SUCCESS
        assert_allclose(report.results["i(R1)"], [0.03, 0.05])
        assert report.units == {"i(R1)": "A"}
        assert report.curves is None

    def test_ac_sweep_keeps_curves(self, divider, scripted_engine):
        freqs = np.array([10.0, 1000.0])
        scripted_engine.script(
            EngineSolution(signals={"v(out)": np.array([1.0, 0.5])}, axis=freqs),
            EngineSolution(signals={"v(out)": np.array([0.9, 0.1])}, axis=freqs),
        )
        settings = AcSettings(start_frequency=10.0, stop_frequency=1000.0, exports=("v(out)",))
        report = _executor(scripted_engine).run(divider, "R2.value", [1000, 2000], "ac", settings)

        assert report.status is SweepStatus.SUCCESS
        assert_allclose(report.results["v(out)"], [0.5, 0.1])
        assert_allclose(report.axis, freqs)
        assert_allclose(report.curves.curves["v(out)"][0], [1.0, 0.5])
        assert_allclose(report.curves.curves["v(out)"][1], [0.9, 0.1])

    def test_ac_axis_mismatch_fails_only_that_point(self, divider, scripted_engine):
        scripted_engine.script(
            EngineSolution(signals={"v(out)": np.array([1.0, 0.5])}, axis=np.array([10.0, 1000.0])),
            EngineSolution(signals={"v(out)": np.array([1.0, 0.5, 0.2])}, axis=np.array([10.0, 100.0, 1000.0])),
        )
        settings = AcSettings(start_frequency=10.0, stop_frequency=1000.0, exports=("v(out)",))
        report = _executor(scripted_engine).run(divider, "R2.value", [1, 2], "ac", settings)

        assert report.status is SweepStatus.PARTIAL_SUCCESS
        assert report.point_errors[0].error_type == "AxisMismatchError"
        assert math.isnan(report.results["v(out)"][1])
        assert report.curves.curves["v(out)"][1].size == 0
        assert_allclose(report.axis, [10.0, 1000.0])

    def test_transient_time_axis_mismatch_fails_only_that_point(self, divider, scripted_engine):
        scripted_engine.script(
            EngineSolution(signals={"v(out)": np.array([0.0, 1.0])}, axis=np.array([0.0, 1e-3])),
            EngineSolution(signals={"v(out)": np.array([0.0, 1.0, 2.0])}, axis=np.array([0.0, 5e-4, 1e-3])),
            EngineSolution(signals={"v(out)": np.array([0.0, 4.0])}, axis=np.array([0.0, 1e-3])),
        )
        settings = TransientSettings(step=5e-4, stop_time=1e-3, exports=("v(out)",))
        report = _executor(scripted_engine).run(divider, "R2.value", [1, 2, 3], "transient", settings)

        assert report.status is SweepStatus.PARTIAL_SUCCESS
        assert report.failed_indices == [1]
        assert report.point_errors[0].error_type == "AxisMismatchError"
        results = report.results["v(out)"]
        assert results[0] == 1.0 and results[2] == 4.0
        assert math.isnan(results[1])
        curves = report.curves.curves["v(out)"]
        assert_allclose(curves[0], [0.0, 1.0])
        assert curves[1].size == 0
        assert_allclose(curves[2], [0.0, 4.0])
        assert_allclose(report.curves.time, [0.0, 1e-3])

    def test_transient_sweep_with_divider(self, divider, divider_engine):
        settings = TransientSettings(step=1e-6, stop_time=1e-3, exports=("v(out)", "v(in)"))
        report = _executor(divider_engine).run(divider, "V1.value", ["5 V", "10 V"], "transient", settings)

        assert report.status is SweepStatus.SUCCESS
        assert report.curves.time.shape == (5,)
        assert report.results["v(in)"] == [5.0, 10.0]
        assert len(report.curves.curves["v(out)"]) == 2


class TestCancellationAndTimeout:
    def test_cancel_between_points(self, divider):
        cancel = threading.Event()

        def cancelling_solution(circuit, kind, settings, exports):
            cancel.set()
            return divider_solution(circuit, kind, settings, exports)

        engine = ScriptedEngine(responder=cancelling_solution)
        report = _executor(engine).run(divider, "R2.value", [1000, 2000, 3000], "op", OP_VOUT, cancel_event=cancel)

        assert report.status is SweepStatus.CANCELLED
        assert report.parameter_values == [1000.0]
        assert report.results["v(out)"] == [5.0]
        assert len(engine.calls) == 1
        assert divider.components["R2"].value == 1000.0

    def test_already_cancelled_runs_nothing(self, divider, divider_engine):
        cancel = threading.Event()
        cancel.set()
        report = _executor(divider_engine).run(divider, "R2.value", [1, 2], "op", OP_VOUT, cancel_event=cancel)
        assert report.status is SweepStatus.CANCELLED
        assert report.point_count == 0
        assert divider_engine.calls == []

    def test_point_timeout_is_recorded(self, divider):
        engine = ScriptedEngine(responder=divider_solution, delay_s=0.3)
        report = _executor(engine).run(divider, "R2.value", [1000], "op", OP_VOUT, point_timeout_s=0.02)

        assert report.status is SweepStatus.FAILED
        assert report.point_errors[0].error_type == "AnalysisTimeoutError"
        assert divider.components["R2"].value == 1000.0

    def test_restores_after_unexpected_error(self, divider, divider_engine):
        class ExplodingAggregatorError(RuntimeError):
            pass

        executor = _executor(divider_engine)

        def explode(*args, **kwargs):
            raise ExplodingAggregatorError("fold failed")

        executor._aggregator.fold_failure = explode
        divider_engine.script(SolverError("x"))
        with pytest.raises(ExplodingAggregatorError):
            executor.run(divider, "R1.value", [5, 6], "op", OP_VOUT)
        assert divider.components["R1"].value == 1000.0


class TestParallelSweep:
    def test_results_keep_input_order(self, divider, divider_engine):
        values = [1000, 3000, 9000, 1000]
        report = _executor(divider_engine).run(
            divider, "R2.value", values, "op", OP_VOUT, parallel=True, max_workers=3
        )
        assert report.status is SweepStatus.SUCCESS
        assert report.parameter_values == [1000.0, 3000.0, 9000.0, 1000.0]
        assert_allclose(report.results["v(out)"], [5.0, 7.5, 9.0, 5.0])
        assert len(divider_engine.calls) == 4

    def test_caller_circuit_is_never_mutated(self, divider, divider_engine):
        seen = []

        def watching_solution(circuit, kind, settings, exports):
            seen.append(divider.components["R2"].value)
            return divider_solution(circuit, kind, settings, exports)

        engine = ScriptedEngine(responder=watching_solution)
        _executor(engine).run(divider, "R2.value", [1, 2, 3], "op", OP_VOUT, parallel=True)
        assert seen == [1000.0, 1000.0, 1000.0]
        assert divider.components["R2"].value == 1000.0

    def test_bad_value_in_parallel(self, divider, divider_engine):
        report = _executor(divider_engine).run(
            divider, "R2.value", [1000, "bad"], "op", OP_VOUT, parallel=True
        )
        assert report.status is SweepStatus.PARTIAL_SUCCESS
        assert report.failed_indices == [1]
