#!/usr/bin/env python3
"""
HLG 高精度参考数学数据生成 (RefMath)

用于生成64位精度的参考曲线和转换样本，作为CI对比的黄金标准。
包含HLG OETF/逆OETF曲线、各显示预设下的EOTF亮度曲线、
sRGB→HLG转换样本以及EOTF往返误差统计。

目的：
- 提供数值精确的参考实现
- 生成稠密采样表用于CI对比
- 一键定位GPU/着色器/插件输出与RefMath的差异
"""

import argparse
import csv
import json
from pathlib import Path
from typing import Dict, Optional

import matplotlib.pyplot as plt
import numpy as np

from hlg_refmath.environment import DISPLAY_PRESETS, DisplayEnvironment
from hlg_refmath.refmath import SRGB_TO_HLG_SCALER, RefMathConversion, RefMathHLG

GENERATOR_NAME = "HLG RefMath"
GENERATOR_VERSION = "1.0"

# 参考EOTF样本使用的显示预设
EOTF_REFERENCE_PRESET = "DisplayHDR-1000"

# 拼接点连续性容差
CONTINUITY_TOLERANCE = 1e-9


def eotf_column(preset_name: str) -> str:
    return f"{preset_name}_EOTF_Y"


def breakpoint_gaps() -> Dict[str, float]:
    """两条分段曲线在拼接点两侧的跳变"""
    scene_bp = RefMathHLG.SCENE_BREAKPOINT
    signal_bp = RefMathHLG.SIGNAL_BREAKPOINT

    oetf_gap = abs(RefMathHLG.oetf(np.nextafter(scene_bp, 1.0)) - RefMathHLG.oetf(scene_bp))
    inverse_gap = abs(RefMathHLG.inverse_oetf(np.nextafter(signal_bp, 1.0)) -
                      RefMathHLG.inverse_oetf(signal_bp))

    return {"oetf": float(oetf_gap), "inverse_oetf": float(inverse_gap)}


class RefMathGenerator:
    """参考数学数据生成器"""

    def __init__(self, output_dir: str = "golden",
                 presets: Optional[Dict[str, DisplayEnvironment]] = None):
        self.output_dir = Path(output_dir)
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.presets = presets if presets is not None else DISPLAY_PRESETS

    def generate_curve_tables(self, num_samples: int = 16384) -> Dict:
        """生成稠密采样的曲线表"""

        x_samples = np.linspace(0.0, 1.0, num_samples, dtype=np.float64)

        print("生成 OETF/逆OETF 曲线数据...")
        oetf_y = np.array([RefMathHLG.oetf(x) for x in x_samples])
        inverse_oetf_y = np.array([RefMathHLG.inverse_oetf(x) for x in x_samples])

        curve_data = {
            "x_samples": x_samples.tolist(),
            "oetf_y": oetf_y.tolist(),
            "inverse_oetf_y": inverse_oetf_y.tolist(),
            "eotf_y": {}
        }

        for preset_name, environment in self.presets.items():
            print(f"生成 {preset_name} EOTF亮度曲线...")

            # 灰阶信号 (R=G=B) 在显示器上的绝对亮度
            luminance = np.array([
                RefMathConversion.rec2100_hlg_to_display_xyz([x, x, x], environment)[1]
                for x in x_samples
            ])
            curve_data["eotf_y"][preset_name] = luminance.tolist()

        return curve_data

    def generate_conversion_tables(self, num_samples: int = 1000) -> Dict:
        """生成转换样本表"""

        print("生成转换样本数据...")

        rng = np.random.default_rng(42)  # 确保可重现

        # sRGB → rec2100-HLG
        srgb_samples = rng.random((num_samples, 3))
        hlg_converted = np.array([
            RefMathConversion.extended_srgb_to_rec2100_hlg(srgb) for srgb in srgb_samples
        ])

        # EOTF / 逆EOTF
        environment = self.presets.get(EOTF_REFERENCE_PRESET, DisplayEnvironment())
        beta = environment.black_level_lift()
        gamma = environment.system_gamma()

        signal_samples = rng.random((num_samples, 3))
        display_linear = np.array([RefMathHLG.eotf(s, beta, gamma) for s in signal_samples])
        signal_roundtrip = np.array([RefMathHLG.inverse_eotf(d, beta, gamma) for d in display_linear])

        # OETF往返与OOTF恒等
        scene_samples = np.linspace(0.0, 10.0, num_samples, dtype=np.float64)
        scene_roundtrip = np.array([RefMathHLG.inverse_oetf(RefMathHLG.oetf(e)) for e in scene_samples])
        ootf_identity = np.array([RefMathHLG.apply_system_gamma(s, 1.0) for s in signal_samples])

        return {
            "srgb_samples": srgb_samples.tolist(),
            "hlg_converted": hlg_converted.tolist(),
            "signal_samples": signal_samples.tolist(),
            "display_linear": display_linear.tolist(),
            "signal_roundtrip": signal_roundtrip.tolist(),
            "eotf_parameters": {
                "preset": EOTF_REFERENCE_PRESET,
                "beta": beta,
                "gamma": gamma
            },
            "srgb_to_hlg_scaler": SRGB_TO_HLG_SCALER,
            "conversion_errors": {
                "oetf_roundtrip_max_error": float(np.max(np.abs(scene_samples - scene_roundtrip) /
                                                         np.maximum(scene_samples, 1e-12))),
                "eotf_roundtrip_max_error": float(np.max(np.abs(signal_samples - signal_roundtrip))),
                "ootf_identity_max_error": float(np.max(np.abs(signal_samples - ootf_identity)))
            }
        }

    def generate_validation(self, curve_data: Dict) -> Dict:
        """曲线单调性与拼接点连续性"""
        oetf_monotonic = bool(np.all(np.diff(curve_data["oetf_y"]) >= 0))
        inverse_monotonic = bool(np.all(np.diff(curve_data["inverse_oetf_y"]) >= 0))
        gaps = breakpoint_gaps()

        return {
            "oetf_monotonic": oetf_monotonic,
            "inverse_oetf_monotonic": inverse_monotonic,
            "all_monotonic": oetf_monotonic and inverse_monotonic,
            "breakpoint_gaps": gaps,
            "breakpoints_continuous": all(gap <= CONTINUITY_TOLERANCE for gap in gaps.values())
        }

    def save_reference_data(self, num_samples: int = 16384, color_samples: int = 1000,
                            plot: bool = False) -> Dict:
        """保存所有参考数据"""

        print("开始生成HLG RefMath参考数据...")

        with np.errstate(divide='raise', over='raise', invalid='raise'):
            curve_data = self.generate_curve_tables(num_samples)
            conversion_data = self.generate_conversion_tables(color_samples)
        validation = self.generate_validation(curve_data)

        # 保存为CSV格式 (便于CI脚本读取)
        curves_csv_path = self.output_dir / "curves.csv"
        with open(curves_csv_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)

            preset_names = list(curve_data["eotf_y"].keys())
            writer.writerow(["x", "OETF", "inverse_OETF"] + [eotf_column(p) for p in preset_names])

            for i, x in enumerate(curve_data["x_samples"]):
                row = [x, curve_data["oetf_y"][i], curve_data["inverse_oetf_y"][i]]
                for preset_name in preset_names:
                    row.append(curve_data["eotf_y"][preset_name][i])
                writer.writerow(row)

        print(f"曲线数据已保存到: {curves_csv_path}")

        reference_data = {
            "metadata": {
                "generator": GENERATOR_NAME,
                "version": GENERATOR_VERSION,
                "precision": "float64",
                "samples_per_curve": num_samples,
                "color_samples": color_samples,
                "generated_at": str(np.datetime64('now'))
            },
            "presets": {name: env.to_dict() for name, env in self.presets.items()},
            "curves": curve_data,
            "conversions": conversion_data,
            "validation": validation
        }

        json_path = self.output_dir / "reference_data.json"
        with open(json_path, 'w', encoding='utf-8') as f:
            json.dump(reference_data, f, indent=2, ensure_ascii=False)

        print(f"完整参考数据已保存到: {json_path}")

        self._generate_validation_report(reference_data)

        if plot:
            self.generate_plots(curve_data)

        return reference_data

    def generate_plots(self, curve_data: Dict) -> Path:
        """生成曲线可视化图表"""
        x = np.array(curve_data["x_samples"])

        fig, axes = plt.subplots(1, 3, figsize=(18, 5))
        fig.suptitle('HLG RefMath 参考曲线', fontsize=16)

        axes[0].plot(x, curve_data["oetf_y"])
        axes[0].axvline(RefMathHLG.SCENE_BREAKPOINT, color='gray', linestyle='--')
        axes[0].set_title("OETF")
        axes[0].set_xlabel("E (场景线性光)")
        axes[0].set_ylabel("E'")

        axes[1].plot(x, curve_data["inverse_oetf_y"])
        axes[1].axvline(RefMathHLG.SIGNAL_BREAKPOINT, color='gray', linestyle='--')
        axes[1].set_title("逆OETF")
        axes[1].set_xlabel("E'")
        axes[1].set_ylabel("E")

        for preset_name, luminance in curve_data["eotf_y"].items():
            axes[2].semilogy(x[1:], np.maximum(luminance[1:], 1e-4), label=preset_name)
        axes[2].set_title("EOTF 灰阶亮度")
        axes[2].set_xlabel("E'")
        axes[2].set_ylabel("cd/m²")
        axes[2].legend()

        plt.tight_layout()
        plot_path = self.output_dir / "curves.png"
        plt.savefig(plot_path, dpi=150, bbox_inches='tight')
        plt.close(fig)

        print(f"曲线图表已保存到: {plot_path}")
        return plot_path

    def _generate_validation_report(self, reference_data: Dict):
        """生成验证报告"""

        report_path = self.output_dir / "validation_report.md"

        with open(report_path, 'w', encoding='utf-8') as f:
            f.write("# HLG RefMath 验证报告\n\n")
            f.write(f"生成时间: {reference_data['metadata']['generated_at']}\n")
            f.write(f"精度: {reference_data['metadata']['precision']}\n\n")

            f.write("## 显示预设\n\n")
            for preset_name, params in reference_data['presets'].items():
                f.write(f"- {preset_name}: Lw={params['peak_luminance']} cd/m², "
                        f"Lb={params['black_luminance']} cd/m², "
                        f"γ={params['system_gamma']:.6f}, β={params['black_level_lift']:.6f}\n")
            f.write("\n")

            f.write("## 曲线数据统计\n\n")
            curves = reference_data['curves']
            validation = reference_data['validation']
            f.write(f"- OETF范围: [{np.min(curves['oetf_y']):.6f}, {np.max(curves['oetf_y']):.6f}]\n")
            f.write(f"- 逆OETF范围: [{np.min(curves['inverse_oetf_y']):.6f}, "
                    f"{np.max(curves['inverse_oetf_y']):.6f}]\n")
            f.write(f"- OETF单调性: {'✓' if validation['oetf_monotonic'] else '✗'}\n")
            f.write(f"- 逆OETF单调性: {'✓' if validation['inverse_oetf_monotonic'] else '✗'}\n")
            f.write(f"- 拼接点连续性: {'✓' if validation['breakpoints_continuous'] else '✗'}\n\n")

            f.write("## 转换精度\n\n")
            errors = reference_data['conversions']['conversion_errors']
            f.write(f"- OETF 最大往返相对误差: {errors['oetf_roundtrip_max_error']:.2e}\n")
            f.write(f"- EOTF/逆EOTF 最大往返误差: {errors['eotf_roundtrip_max_error']:.2e}\n")
            f.write(f"- OOTF (γ=1) 最大恒等误差: {errors['ootf_identity_max_error']:.2e}\n\n")

            f.write("## 使用说明\n\n")
            f.write("此参考数据用于CI中对比其他HLG实现的数值精度：\n\n")
            f.write(f"1. `curves.csv`: 包含{reference_data['metadata']['samples_per_curve']}点的稠密曲线采样\n")
            f.write("2. `reference_data.json`: 完整的参考数据集\n")
            f.write("3. 对比时允许的最大误差: 1 LSB (10/12bit量化后)\n")

        print(f"验证报告已保存到: {report_path}")


def main():
    """主函数"""
    parser = argparse.ArgumentParser(description="生成HLG高精度参考数学数据")
    parser.add_argument("--output-dir", default="golden", help="输出目录")
    parser.add_argument("--samples", type=int, default=16384, help="曲线采样点数")
    parser.add_argument("--color-samples", type=int, default=1000, help="转换样本数")
    parser.add_argument("--plot", action="store_true", help="生成可视化图表")

    args = parser.parse_args()

    generator = RefMathGenerator(args.output_dir)
    generator.save_reference_data(args.samples, args.color_samples, plot=args.plot)

    print("HLG RefMath参考数据生成完成!")


if __name__ == "__main__":
    main()
