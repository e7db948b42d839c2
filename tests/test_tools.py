"""Tests for golden-data generation, validation and regression comparison."""

import json

import numpy as np
import pytest

from hlg_refmath.generate import RefMathGenerator, breakpoint_gaps
from hlg_refmath.regression import (
    CurveComparator,
    ErrorAnalyzer,
    RefMathLoader,
    compute_test_data,
    run_regression,
)
from hlg_refmath.validate import validate_curves, validate_golden_dir, validate_reference_data

NUM_SAMPLES = 257
COLOR_SAMPLES = 16


@pytest.fixture(scope="module")
def golden_dir(tmp_path_factory):
    output_dir = tmp_path_factory.mktemp("golden")
    RefMathGenerator(str(output_dir)).save_reference_data(NUM_SAMPLES, COLOR_SAMPLES)
    return output_dir


class TestGenerator:

    def test_files_written(self, golden_dir):
        for name in ("curves.csv", "reference_data.json", "validation_report.md"):
            assert (golden_dir / name).exists()

    def test_reference_data(self, golden_dir):
        with open(golden_dir / "reference_data.json", encoding="utf-8") as f:
            data = json.load(f)
        assert data["metadata"]["samples_per_curve"] == NUM_SAMPLES
        assert data["validation"]["all_monotonic"]
        assert data["validation"]["breakpoints_continuous"]
        errors = data["conversions"]["conversion_errors"]
        assert errors["oetf_roundtrip_max_error"] < 1e-9
        assert errors["eotf_roundtrip_max_error"] < 1e-9
        assert errors["ootf_identity_max_error"] < 1e-9

    def test_curve_columns(self, golden_dir):
        curves = RefMathLoader(str(golden_dir)).load_curves_csv()
        assert {"x", "OETF", "inverse_OETF", "DisplayHDR-1000_EOTF_Y"} <= set(curves)
        assert len(curves["x"]) == NUM_SAMPLES
        assert curves["DisplayHDR-1000_EOTF_Y"][-1] == pytest.approx(1000.0, rel=1e-6)

    def test_breakpoint_gaps(self):
        gaps = breakpoint_gaps()
        assert gaps["oetf"] < 1e-12
        assert gaps["inverse_oetf"] < 1e-12

    def test_plot(self, tmp_path):
        generator = RefMathGenerator(str(tmp_path))
        generator.save_reference_data(33, 4, plot=True)
        assert (tmp_path / "curves.png").exists()


class TestValidator:

    def test_generated_assets_pass(self, golden_dir):
        assert validate_curves(golden_dir / "curves.csv", NUM_SAMPLES)
        assert validate_reference_data(golden_dir / "reference_data.json")
        assert validate_golden_dir(golden_dir)

    def test_wrong_sample_count(self, golden_dir):
        assert not validate_curves(golden_dir / "curves.csv", NUM_SAMPLES + 1)

    def test_missing_files(self, tmp_path):
        assert not validate_golden_dir(tmp_path)

    def test_truncated_curves_fail_golden_dir(self, golden_dir, tmp_path):
        lines = (golden_dir / "curves.csv").read_text(encoding="utf-8").splitlines()
        # drop 10 interior rows: x still spans [0, 1], only the count is wrong
        kept = lines[:2] + lines[12:]
        (tmp_path / "curves.csv").write_text("\n".join(kept) + "\n", encoding="utf-8")
        (tmp_path / "reference_data.json").write_text(
            (golden_dir / "reference_data.json").read_text(encoding="utf-8"), encoding="utf-8"
        )
        assert validate_reference_data(tmp_path / "reference_data.json")
        assert not validate_golden_dir(tmp_path)

    def test_missing_field(self, golden_dir, tmp_path):
        with open(golden_dir / "reference_data.json", encoding="utf-8") as f:
            data = json.load(f)
        del data["validation"]
        broken = tmp_path / "reference_data.json"
        broken.write_text(json.dumps(data), encoding="utf-8")
        assert not validate_reference_data(broken)


class TestErrorAnalyzer:

    def test_statistics(self):
        expected = np.zeros(100)
        actual = np.zeros(100)
        actual[7] = 0.5
        analysis = ErrorAnalyzer.analyze_errors(expected, actual)
        assert analysis.max_error == 0.5
        assert analysis.mean_error == pytest.approx(0.005)
        assert analysis.worst_points[0][0] == 7
        assert len(analysis.worst_points) == 10

    def test_shape_mismatch(self):
        with pytest.raises(ValueError):
            ErrorAnalyzer.analyze_errors(np.zeros(3), np.zeros(4))

    def test_strict_mode(self):
        actual = np.zeros(1000)
        actual[0] = 1.0
        analysis = ErrorAnalyzer.analyze_errors(np.zeros(1000), actual)
        assert ErrorAnalyzer.check_tolerance(analysis, 1e-6)
        assert not ErrorAnalyzer.check_tolerance(analysis, 1e-6, strict_mode=True)


class TestRegression:

    def test_self_consistency(self, golden_dir, tmp_path):
        test_data = compute_test_data(str(golden_dir))
        results = run_regression(str(golden_dir), test_data, str(tmp_path), tolerance=1e-9, strict=True)
        assert results
        assert all(r.passed for r in results)
        assert (tmp_path / "regression_test_report.md").exists()
        report = json.loads((tmp_path / "regression_test_report.json").read_text(encoding="utf-8"))
        assert report["summary"]["failed_tests"] == 0

    def test_detects_deviation(self, golden_dir):
        test_data = compute_test_data(str(golden_dir))
        test_data["curves"]["OETF"] = [v + 1e-3 for v in test_data["curves"]["OETF"]]
        results = CurveComparator(str(golden_dir)).compare_curve_implementation(
            test_data["curves"], tolerance=1e-6, strict_mode=True
        )
        by_name = {r.test_name: r for r in results}
        assert not by_name["OETF"].passed
        assert by_name["inverse_OETF"].passed

    def test_strict_mode_applies_to_conversions(self, golden_dir, tmp_path):
        test_data = compute_test_data(str(golden_dir))
        test_data["conversions"]["srgb_to_hlg"][0][0] += 0.1
        results = run_regression(str(golden_dir), test_data, str(tmp_path), tolerance=1e-6, strict=True)
        by_name = {r.test_name: r for r in results}
        assert not by_name["srgb_to_hlg"].passed
        assert by_name["srgb_to_hlg"].error_analysis.max_error == pytest.approx(0.1)
        assert by_name["eotf"].passed
        assert by_name["OETF"].passed

    def test_missing_data(self, golden_dir, tmp_path):
        results = run_regression(str(golden_dir), {}, str(tmp_path))
        assert not any(r.passed for r in results)
        assert all(r.error_analysis is None for r in results)

    def test_heatmap(self, golden_dir, tmp_path):
        test_data = compute_test_data(str(golden_dir))
        output = tmp_path / "error_heatmap.png"
        CurveComparator(str(golden_dir)).generate_error_heatmap(test_data["curves"], str(output))
        assert output.exists()

    def test_missing_golden(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            RefMathLoader(str(tmp_path)).load_curves_csv()
