#!/usr/bin/env python3
"""
HLG RefMath CI回归测试

用于对比其他HLG实现 (GPU/着色器/插件) 的输出与RefMath参考数据的差异。
生成误差热力图和top-10 worst points，一键定位数值分歧。

功能：
1. 加载RefMath参考数据
2. 对比实际实现输出
3. 生成误差分析报告
4. 输出可视化误差图表
"""

import argparse
import csv
import json
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import matplotlib.pyplot as plt
import numpy as np
import seaborn as sns

from hlg_refmath.environment import DisplayEnvironment
from hlg_refmath.refmath import RefMathConversion, RefMathHLG

EOTF_SUFFIX = "_EOTF_Y"

# (测试数据键, 参考输出键)
CONVERSION_COMPARISONS = [
    ("srgb_to_hlg", "hlg_converted"),
    ("eotf", "display_linear"),
    ("inverse_eotf", "signal_roundtrip"),
]


@dataclass
class ErrorAnalysis:
    """误差分析结果"""
    max_error: float
    mean_error: float
    rms_error: float
    percentile_95: float
    percentile_99: float
    worst_points: List[Tuple[int, float, float, float]]  # (index, input, expected, actual)


@dataclass
class ComparisonResult:
    """对比结果"""
    test_name: str
    passed: bool
    error_analysis: Optional[ErrorAnalysis]
    tolerance: float
    message: str


class RefMathLoader:
    """RefMath参考数据加载器"""

    def __init__(self, golden_dir: str = "golden"):
        self.golden_dir = Path(golden_dir)

    def load_curves_csv(self) -> Dict[str, List[float]]:
        """加载曲线CSV数据 (列名 → 数据)"""
        csv_path = self.golden_dir / "curves.csv"
        if not csv_path.exists():
            raise FileNotFoundError(f"找不到参考曲线文件: {csv_path}")

        with open(csv_path, 'r', encoding='utf-8') as f:
            reader = csv.DictReader(f)
            curves_data = {name: [] for name in reader.fieldnames}

            for row in reader:
                for name in curves_data:
                    curves_data[name].append(float(row[name]))

        return curves_data

    def load_reference_json(self) -> Dict:
        """加载完整参考数据"""
        json_path = self.golden_dir / "reference_data.json"
        if not json_path.exists():
            raise FileNotFoundError(f"找不到参考数据文件: {json_path}")

        with open(json_path, 'r', encoding='utf-8') as f:
            return json.load(f)


class ErrorAnalyzer:
    """误差分析器"""

    @staticmethod
    def analyze_errors(expected: np.ndarray, actual: np.ndarray,
                       input_values: Optional[np.ndarray] = None) -> ErrorAnalysis:
        """分析误差统计"""

        expected = np.asarray(expected, dtype=np.float64)
        actual = np.asarray(actual, dtype=np.float64)

        if expected.shape != actual.shape:
            raise ValueError(f"数组形状不匹配: {expected.shape} vs {actual.shape}")

        abs_errors = np.abs(expected - actual)

        max_error = float(np.max(abs_errors))
        mean_error = float(np.mean(abs_errors))
        rms_error = float(np.sqrt(np.mean(abs_errors**2)))
        percentile_95 = float(np.percentile(abs_errors, 95))
        percentile_99 = float(np.percentile(abs_errors, 99))

        # 找出最差的10个点
        worst_indices = np.argsort(abs_errors)[-10:][::-1]  # 降序
        worst_points = []

        for idx in worst_indices:
            input_val = input_values[idx] if input_values is not None else idx
            worst_points.append((
                int(idx),
                float(input_val),
                float(expected[idx]),
                float(actual[idx])
            ))

        return ErrorAnalysis(
            max_error=max_error,
            mean_error=mean_error,
            rms_error=rms_error,
            percentile_95=percentile_95,
            percentile_99=percentile_99,
            worst_points=worst_points
        )

    @staticmethod
    def check_tolerance(error_analysis: ErrorAnalysis, tolerance: float,
                        strict_mode: bool = False) -> bool:
        """检查是否在容差范围内"""

        if strict_mode:
            # 严格模式：最大误差必须在容差内
            return error_analysis.max_error <= tolerance
        else:
            # 宽松模式：99分位数在容差内即可
            return error_analysis.percentile_99 <= tolerance


def _failed(test_name: str, tolerance: float, message: str) -> ComparisonResult:
    return ComparisonResult(
        test_name=test_name,
        passed=False,
        error_analysis=None,
        tolerance=tolerance,
        message=message
    )


class CurveComparator:
    """曲线对比器"""

    def __init__(self, golden_dir: str = "golden"):
        self.loader = RefMathLoader(golden_dir)
        self.reference_curves = self.loader.load_curves_csv()
        self.reference_data = self.loader.load_reference_json()

    @property
    def curve_names(self) -> List[str]:
        return [name for name in self.reference_curves if name != "x"]

    def _normalization(self, curve_name: str) -> float:
        """EOTF亮度曲线按预设峰值亮度归一化后再比较"""
        if curve_name.endswith(EOTF_SUFFIX):
            preset_name = curve_name[:-len(EOTF_SUFFIX)]
            return float(self.reference_data["presets"][preset_name]["peak_luminance"])
        return 1.0

    def compare_curve_implementation(self, test_data: Dict,
                                     tolerance: float = 1e-6,
                                     strict_mode: bool = False) -> List[ComparisonResult]:
        """
        对比曲线实现

        Args:
            test_data: 测试数据，列名与 curves.csv 相同
            tolerance: 允许的最大误差 (归一化信号/光强)
            strict_mode: 是否使用严格模式
        """

        results = []
        input_values = np.array(self.reference_curves["x"])

        for curve_name in self.curve_names:
            ref_data = np.array(self.reference_curves[curve_name])
            actual_data = np.array(test_data.get(curve_name, []), dtype=np.float64)

            if len(actual_data) == 0:
                results.append(_failed(curve_name, tolerance, f"缺少测试数据: {curve_name}"))
                continue

            if len(ref_data) != len(actual_data):
                results.append(_failed(
                    curve_name, tolerance,
                    f"数据长度不匹配: 期望{len(ref_data)}, 实际{len(actual_data)}"
                ))
                continue

            scale = self._normalization(curve_name)
            error_analysis = ErrorAnalyzer.analyze_errors(
                ref_data / scale, actual_data / scale, input_values
            )

            passed = ErrorAnalyzer.check_tolerance(error_analysis, tolerance, strict_mode)

            message = f"最大误差: {error_analysis.max_error:.2e}, 容差: {tolerance:.2e}"
            if not passed:
                message += " [FAIL]"

            results.append(ComparisonResult(
                test_name=curve_name,
                passed=passed,
                error_analysis=error_analysis,
                tolerance=tolerance,
                message=message
            ))

        return results

    def generate_error_heatmap(self, test_data: Dict, output_path: str):
        """生成误差热力图"""

        curve_names = self.curve_names
        fig, axes = plt.subplots(1, len(curve_names), figsize=(5 * len(curve_names), 5), squeeze=False)
        fig.suptitle('HLG RefMath 曲线误差热力图', fontsize=16)

        for ax, curve_name in zip(axes[0], curve_names):
            ref_data = np.array(self.reference_curves[curve_name])
            actual_data = np.array(test_data.get(curve_name, []), dtype=np.float64)

            if len(actual_data) == 0 or len(ref_data) != len(actual_data):
                ax.text(0.5, 0.5, '数据缺失', ha='center', va='center',
                        transform=ax.transAxes, fontsize=12)
                ax.set_title(curve_name)
                continue

            scale = self._normalization(curve_name)
            errors = np.abs(ref_data - actual_data) / scale

            # 将1D误差映射到2D网格
            grid_size = int(np.ceil(np.sqrt(len(errors))))
            error_grid = np.zeros(grid_size * grid_size)
            error_grid[:len(errors)] = errors
            error_grid = error_grid.reshape(grid_size, grid_size)

            sns.heatmap(error_grid, ax=ax, cmap='hot', cbar=True,
                        xticklabels=False, yticklabels=False)
            ax.set_title(f"{curve_name}\n最大误差: {np.max(errors):.2e}")

        plt.tight_layout()
        plt.savefig(output_path, dpi=150, bbox_inches='tight')
        plt.close(fig)

        print(f"误差热力图已保存到: {output_path}")


class ConversionComparator:
    """转换样本对比器"""

    def __init__(self, golden_dir: str = "golden"):
        self.loader = RefMathLoader(golden_dir)
        self.reference_data = self.loader.load_reference_json()

    def compare_conversions(self, test_transforms: Dict,
                            tolerance: float = 1e-6,
                            strict_mode: bool = False) -> List[ComparisonResult]:
        """对比转换样本"""

        results = []
        ref_conversions = self.reference_data['conversions']

        for transform_name, output_key in CONVERSION_COMPARISONS:
            if transform_name not in test_transforms:
                results.append(_failed(transform_name, tolerance, f"缺少测试数据: {transform_name}"))
                continue

            ref_output = np.array(ref_conversions[output_key])
            test_output = np.array(test_transforms[transform_name], dtype=np.float64)

            if ref_output.shape != test_output.shape:
                results.append(_failed(
                    transform_name, tolerance,
                    f"形状不匹配: 期望{ref_output.shape}, 实际{test_output.shape}"
                ))
                continue

            # 展平为1D数组
            error_analysis = ErrorAnalyzer.analyze_errors(
                ref_output.flatten(), test_output.flatten()
            )

            passed = ErrorAnalyzer.check_tolerance(error_analysis, tolerance, strict_mode)

            message = f"最大误差: {error_analysis.max_error:.2e}, RMS: {error_analysis.rms_error:.2e}"
            if not passed:
                message += " [FAIL]"

            results.append(ComparisonResult(
                test_name=transform_name,
                passed=passed,
                error_analysis=error_analysis,
                tolerance=tolerance,
                message=message
            ))

        return results


class ReportGenerator:
    """报告生成器"""

    @staticmethod
    def generate_text_report(results: List[ComparisonResult], output_path: str):
        """生成文本报告"""

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write("# HLG RefMath CI回归测试报告\n\n")
            f.write(f"测试时间: {np.datetime64('now')}\n\n")

            total_tests = len(results)
            passed_tests = sum(1 for r in results if r.passed)
            failed_tests = total_tests - passed_tests

            f.write("## 测试概览\n\n")
            f.write(f"- 总测试数: {total_tests}\n")
            f.write(f"- 通过: {passed_tests}\n")
            f.write(f"- 失败: {failed_tests}\n")
            if total_tests:
                f.write(f"- 通过率: {passed_tests/total_tests*100:.1f}%\n\n")

            f.write("## 详细结果\n\n")

            for result in results:
                status = "✓ PASS" if result.passed else "✗ FAIL"
                f.write(f"### {result.test_name} - {status}\n\n")
                f.write(f"- 容差: {result.tolerance:.2e}\n")
                f.write(f"- 消息: {result.message}\n")

                if result.error_analysis:
                    ea = result.error_analysis
                    f.write(f"- 最大误差: {ea.max_error:.2e}\n")
                    f.write(f"- 平均误差: {ea.mean_error:.2e}\n")
                    f.write(f"- RMS误差: {ea.rms_error:.2e}\n")
                    f.write(f"- 95分位数: {ea.percentile_95:.2e}\n")
                    f.write(f"- 99分位数: {ea.percentile_99:.2e}\n")

                    if ea.worst_points:
                        f.write("\n**Top-5 最差点:**\n")
                        for i, (idx, input_val, expected, actual) in enumerate(ea.worst_points[:5]):
                            error = abs(expected - actual)
                            f.write(f"{i+1}. 索引{idx}: 输入={input_val:.6f}, 期望={expected:.6f}, "
                                    f"实际={actual:.6f}, 误差={error:.2e}\n")

                f.write("\n")

        print(f"测试报告已保存到: {output_path}")

    @staticmethod
    def generate_json_report(results: List[ComparisonResult], output_path: str) -> Dict:
        """生成JSON格式报告"""

        total_tests = len(results)
        passed_tests = sum(1 for r in results if r.passed)

        report_data = {
            "timestamp": str(np.datetime64('now')),
            "summary": {
                "total_tests": total_tests,
                "passed_tests": passed_tests,
                "failed_tests": total_tests - passed_tests,
                "pass_rate": passed_tests / total_tests * 100 if total_tests else 0.0
            },
            "results": []
        }

        for result in results:
            result_data = {
                "test_name": result.test_name,
                "passed": result.passed,
                "tolerance": result.tolerance,
                "message": result.message
            }

            if result.error_analysis:
                ea = result.error_analysis
                result_data["error_analysis"] = {
                    "max_error": ea.max_error,
                    "mean_error": ea.mean_error,
                    "rms_error": ea.rms_error,
                    "percentile_95": ea.percentile_95,
                    "percentile_99": ea.percentile_99,
                    "worst_points": [
                        {
                            "index": idx,
                            "input": input_val,
                            "expected": expected,
                            "actual": actual,
                            "error": abs(expected - actual)
                        }
                        for idx, input_val, expected, actual in ea.worst_points
                    ]
                }

            report_data["results"].append(result_data)

        with open(output_path, 'w', encoding='utf-8') as f:
            json.dump(report_data, f, indent=2, ensure_ascii=False)

        print(f"JSON报告已保存到: {output_path}")
        return report_data


def compute_test_data(golden_dir: str = "golden") -> Dict:
    """
    在参考输入点上重新计算本实现的输出

    未提供外部测试数据时使用，用于确认参考数据与当前代码一致。
    """
    loader = RefMathLoader(golden_dir)
    reference_curves = loader.load_curves_csv()
    reference_data = loader.load_reference_json()

    x_samples = reference_curves["x"]
    curves = {
        "OETF": [RefMathHLG.oetf(x) for x in x_samples],
        "inverse_OETF": [RefMathHLG.inverse_oetf(x) for x in x_samples],
    }

    for preset_name, params in reference_data["presets"].items():
        environment = DisplayEnvironment(
            peak_luminance=params["peak_luminance"],
            black_luminance=params["black_luminance"],
            ambient_luminance=params["ambient_luminance"],
            reference_gamma=params["reference_gamma"]
        )
        curves[f"{preset_name}{EOTF_SUFFIX}"] = [
            float(RefMathConversion.rec2100_hlg_to_display_xyz([x, x, x], environment)[1])
            for x in x_samples
        ]

    conversions = reference_data["conversions"]
    beta = conversions["eotf_parameters"]["beta"]
    gamma = conversions["eotf_parameters"]["gamma"]

    transforms = {
        "srgb_to_hlg": [RefMathConversion.extended_srgb_to_rec2100_hlg(s).tolist()
                        for s in conversions["srgb_samples"]],
        "eotf": [RefMathHLG.eotf(s, beta, gamma).tolist() for s in conversions["signal_samples"]],
        "inverse_eotf": [RefMathHLG.inverse_eotf(d, beta, gamma).tolist()
                         for d in conversions["display_linear"]],
    }

    return {"curves": curves, "conversions": transforms}


def run_regression(golden_dir: str, test_data: Dict, output_dir: str,
                   tolerance: float = 1e-6, strict: bool = False,
                   generate_plots: bool = False) -> List[ComparisonResult]:
    """运行全部对比并写出报告"""
    output_path = Path(output_dir)
    output_path.mkdir(parents=True, exist_ok=True)

    print("对比曲线实现...")
    curve_comparator = CurveComparator(golden_dir)
    results = curve_comparator.compare_curve_implementation(
        test_data.get("curves", {}), tolerance, strict
    )

    print("对比转换样本...")
    conversion_comparator = ConversionComparator(golden_dir)
    results += conversion_comparator.compare_conversions(
        test_data.get("conversions", {}), tolerance, strict
    )

    if generate_plots:
        heatmap_path = output_path / "error_heatmap.png"
        curve_comparator.generate_error_heatmap(test_data.get("curves", {}), str(heatmap_path))

    print("生成测试报告...")
    ReportGenerator.generate_text_report(results, str(output_path / "regression_test_report.md"))
    ReportGenerator.generate_json_report(results, str(output_path / "regression_test_report.json"))

    return results


def main():
    """主函数"""
    parser = argparse.ArgumentParser(description="HLG RefMath CI回归测试")
    parser.add_argument("--golden-dir", default="golden", help="RefMath数据目录")
    parser.add_argument("--test-data", help="测试数据文件 (JSON格式)")
    parser.add_argument("--tolerance", type=float, default=1e-6, help="允许的最大误差")
    parser.add_argument("--strict", action="store_true", help="使用严格模式")
    parser.add_argument("--output-dir", default="test_results", help="输出目录")
    parser.add_argument("--generate-plots", action="store_true", help="生成可视化图表")

    args = parser.parse_args()

    print("开始CI回归测试...")

    if args.test_data:
        with open(args.test_data, 'r', encoding='utf-8') as f:
            test_data = json.load(f)
    else:
        print("未提供测试数据，使用当前RefMath实现重新计算")
        test_data = compute_test_data(args.golden_dir)

    results = run_regression(args.golden_dir, test_data, args.output_dir,
                             args.tolerance, args.strict, args.generate_plots)

    total_tests = len(results)
    passed_tests = sum(1 for r in results if r.passed)

    print("\n测试完成!")
    print(f"总测试数: {total_tests}")
    print(f"通过: {passed_tests}")
    print(f"失败: {total_tests - passed_tests}")

    # 如果有失败的测试，返回非零退出码
    if passed_tests < total_tests:
        print("\n有测试失败，请检查报告!")
        sys.exit(1)
    else:
        print("\n所有测试通过!")
        sys.exit(0)


if __name__ == "__main__":
    main()
