#!/usr/bin/env python3
"""
HLG RefMath 资产验证脚本
验证生成的参考数据的完整性和正确性
"""

import argparse
import json
import sys
from pathlib import Path
from typing import Optional

import numpy as np
import pandas as pd

from hlg_refmath.refmath import RefMathHLG


def validate_curves(curves_path: Path, expected_samples: Optional[int] = None) -> bool:
    """验证RefMath曲线数据"""
    print(f"🔍 验证RefMath曲线: {curves_path}")

    try:
        curves_df = pd.read_csv(curves_path)
    except Exception as e:
        print(f"❌ 无法读取曲线数据: {e}")
        return False

    # 检查必需列
    required_columns = ['x', 'OETF', 'inverse_OETF']
    for col in required_columns:
        if col not in curves_df.columns:
            print(f"❌ 缺少必需列: {col}")
            return False

    eotf_columns = [col for col in curves_df.columns if col.endswith('_EOTF_Y')]
    if not eotf_columns:
        print("❌ 缺少EOTF亮度曲线列")
        return False

    if expected_samples is not None and len(curves_df) != expected_samples:
        print(f"❌ 采样点数错误: 期望{expected_samples}个，实际{len(curves_df)}个")
        return False

    # 检查x值范围和单调性
    x_values = curves_df['x'].values
    if not (np.allclose(x_values[0], 0.0) and np.allclose(x_values[-1], 1.0)):
        print(f"❌ x值范围错误: 期望[0,1]，实际[{x_values[0]:.6f},{x_values[-1]:.6f}]")
        return False

    if not np.all(np.diff(x_values) > 0):
        print("❌ x值不是严格递增")
        return False

    # OETF在 [0,1] 上的输出范围为 [0,1]
    oetf_values = curves_df['OETF'].values
    if np.any(oetf_values < 0) or np.any(oetf_values > 1.0 + 1e-9):
        print(f"❌ OETF值超出合理范围: [{oetf_values.min():.6f},{oetf_values.max():.6f}]")
        return False

    for col in ['OETF', 'inverse_OETF']:
        if not np.all(np.diff(curves_df[col].values) >= -1e-12):  # 允许数值误差
            print(f"❌ {col} 不是单调递增")
            return False

    # 逆OETF应与OETF互逆
    roundtrip = np.array([RefMathHLG.oetf(e) for e in curves_df['inverse_OETF'].values])
    max_roundtrip_error = float(np.max(np.abs(roundtrip - x_values)))
    if max_roundtrip_error > 1e-9:
        print(f"❌ OETF/逆OETF 往返误差过大: {max_roundtrip_error:.2e}")
        return False

    for col in eotf_columns:
        luminance = curves_df[col].values
        if np.any(luminance < 0) or not np.all(np.isfinite(luminance)):
            print(f"❌ {col} 包含负值或非有限值")
            return False

    print(f"✅ RefMath曲线验证通过: {len(curves_df)}条记录，{len(eotf_columns)}条EOTF曲线")
    return True


def validate_reference_data(reference_path: Path) -> bool:
    """验证参考数据JSON"""
    print(f"🔍 验证参考数据: {reference_path}")

    try:
        with open(reference_path, 'r', encoding='utf-8') as f:
            ref_data = json.load(f)
    except Exception as e:
        print(f"❌ 无法读取参考数据: {e}")
        return False

    # 检查顶层字段
    required_fields = ['metadata', 'presets', 'curves', 'conversions', 'validation']
    for field in required_fields:
        if field not in ref_data:
            print(f"❌ 缺少必需字段: {field}")
            return False

    metadata = ref_data['metadata']
    if metadata.get('precision') != 'float64':
        print(f"❌ 精度错误: 期望float64，实际{metadata.get('precision')}")
        return False

    sample_count = metadata.get('samples_per_curve')
    if len(ref_data['curves'].get('x_samples', [])) != sample_count:
        print(f"❌ 采样数错误: 期望{sample_count}")
        return False

    # 检查每个预设的参数
    presets = ref_data['presets']
    if not presets:
        print("❌ 预设为空")
        return False

    for preset_name, preset_data in presets.items():
        required_preset_fields = ['peak_luminance', 'black_luminance', 'system_gamma', 'black_level_lift']
        for field in required_preset_fields:
            if field not in preset_data:
                print(f"❌ 预设 {preset_name} 缺少字段: {field}")
                return False

        if preset_data['peak_luminance'] <= 0:
            print(f"❌ 预设 {preset_name} 峰值亮度非正: {preset_data['peak_luminance']}")
            return False

        if not (0.0 <= preset_data['black_level_lift'] < 1.0):
            print(f"❌ 预设 {preset_name} β超出范围: {preset_data['black_level_lift']}")
            return False

        if preset_name not in ref_data['curves'].get('eotf_y', {}):
            print(f"❌ 预设 {preset_name} 缺少EOTF曲线")
            return False

    # 检查转换样本形状
    conversions = ref_data['conversions']
    for key in ['srgb_samples', 'hlg_converted', 'signal_samples', 'display_linear', 'signal_roundtrip']:
        samples = np.asarray(conversions.get(key, []))
        if samples.ndim != 2 or samples.shape[1] != 3:
            print(f"❌ 转换样本 {key} 形状错误: {samples.shape}")
            return False

    # 检查验证结果
    validation = ref_data['validation']
    if not validation.get('all_monotonic', False):
        print("❌ 存在非单调曲线")
        return False

    if not validation.get('breakpoints_continuous', False):
        print("❌ 拼接点不连续")
        return False

    print(f"✅ 参考数据验证通过: {len(presets)}个预设，验证通过")
    return True


def validate_golden_dir(golden_dir: Path) -> bool:
    """验证整个参考数据目录"""
    all_passed = True

    # 曲线采样数以 reference_data.json 的元数据为准
    expected_samples = None
    reference_path = golden_dir / 'reference_data.json'
    if reference_path.exists():
        try:
            with open(reference_path, 'r', encoding='utf-8') as f:
                expected_samples = json.load(f).get('metadata', {}).get('samples_per_curve')
        except (OSError, ValueError, AttributeError):
            # 读取失败由 validate_reference_data 报告
            expected_samples = None

    curves_path = golden_dir / 'curves.csv'
    if curves_path.exists():
        all_passed &= validate_curves(curves_path, expected_samples)
    else:
        print(f"❌ RefMath曲线不存在: {curves_path}")
        all_passed = False

    print()

    if reference_path.exists():
        all_passed &= validate_reference_data(reference_path)
    else:
        print(f"❌ 参考数据不存在: {reference_path}")
        all_passed = False

    return all_passed


def main():
    parser = argparse.ArgumentParser(description='验证HLG RefMath参考数据')
    parser.add_argument('--golden-dir', default='golden', help='参考数据目录')
    args = parser.parse_args()

    golden_dir = Path(args.golden_dir)

    print("🚀 开始验证HLG RefMath参考数据...")
    print(f"📁 数据目录: {golden_dir.absolute()}")
    print()

    all_passed = validate_golden_dir(golden_dir)

    print()
    print("=" * 60)

    if all_passed:
        print("🎉 所有资产验证通过！")
        sys.exit(0)
    else:
        print("💥 资产验证失败！")
        print("❌ 请修复上述问题后重新验证")
        sys.exit(1)


if __name__ == '__main__':
    main()
