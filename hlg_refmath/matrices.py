#!/usr/bin/env python3
"""
从原色色度坐标推导 RGB→XYZ 归一化原色矩阵 (SMPTE RP 177)

用于核对 colorspace 中固定的 BT.709 / BT.2020 矩阵常数。
"""

import argparse
from typing import Dict, Tuple

import numpy as np

from hlg_refmath.colorspace import RefMathColorSpace

# 原色色度坐标 (x, y)
PRIMARIES: Dict[str, Tuple[Tuple[float, float], ...]] = {
    "bt709": ((0.640, 0.330), (0.300, 0.600), (0.150, 0.060)),
    "bt2020": ((0.708, 0.292), (0.170, 0.797), (0.131, 0.046)),
}

# D65 白点
D65_WHITE = (0.3127, 0.3290)


def xy_to_xyz(x: float, y: float) -> np.ndarray:
    """色度坐标 → Y=1 的 XYZ"""
    return np.array([x / y, 1.0, (1.0 - x - y) / y], dtype=np.float64)


def compute_rgb_to_xyz(primaries: Tuple[Tuple[float, float], ...],
                       white: Tuple[float, float] = D65_WHITE) -> np.ndarray:
    """计算归一化原色矩阵 NPM"""
    # 每列为一个原色的 XYZ (未缩放)
    primaries_xyz = np.column_stack([xy_to_xyz(x, y) for x, y in primaries])
    white_xyz = xy_to_xyz(*white)

    # 求解各原色缩放系数，使 R=G=B=1 映射到白点
    scale = np.linalg.solve(primaries_xyz, white_xyz)

    return primaries_xyz * scale


def compute_bt709_to_bt2020_matrix() -> np.ndarray:
    """BT.709 → BT.2020 = inv(BT2020_TO_XYZ) * BT709_TO_XYZ"""
    bt709_to_xyz = compute_rgb_to_xyz(PRIMARIES["bt709"])
    bt2020_to_xyz = compute_rgb_to_xyz(PRIMARIES["bt2020"])
    return np.linalg.inv(bt2020_to_xyz) @ bt709_to_xyz


def max_constant_deviation() -> Dict[str, float]:
    """推导矩阵与固定常数之间的最大偏差"""
    bt709 = compute_rgb_to_xyz(PRIMARIES["bt709"])
    bt2020 = compute_rgb_to_xyz(PRIMARIES["bt2020"])

    return {
        "bt709_to_xyz": float(np.max(np.abs(bt709 - RefMathColorSpace.BT709_TO_XYZ))),
        "xyz_to_bt709": float(np.max(np.abs(np.linalg.inv(bt709) - RefMathColorSpace.XYZ_TO_BT709))),
        "bt2020_to_xyz": float(np.max(np.abs(bt2020 - RefMathColorSpace.BT2020_TO_XYZ))),
        "xyz_to_bt2020": float(np.max(np.abs(np.linalg.inv(bt2020) - RefMathColorSpace.XYZ_TO_BT2020))),
    }


def print_matrix(name: str, matrix: np.ndarray):
    print(f"{name}:")
    for i in range(3):
        print(f"    {matrix[i, 0]:.16f}, {matrix[i, 1]:.16f}, {matrix[i, 2]:.16f},")


def main():
    """主函数"""
    parser = argparse.ArgumentParser(description="推导并核对HLG RefMath色彩矩阵")
    parser.add_argument("--tolerance", type=float, default=1e-9, help="与固定常数的允许偏差")
    args = parser.parse_args()

    for name in ("bt709", "bt2020"):
        npm = compute_rgb_to_xyz(PRIMARIES[name])
        print_matrix(f"{name.upper()}_TO_XYZ", npm)
        print_matrix(f"XYZ_TO_{name.upper()}", np.linalg.inv(npm))
        print()

    bt709_to_bt2020 = compute_bt709_to_bt2020_matrix()
    print_matrix("BT709_TO_BT2020", bt709_to_bt2020)

    # 往返测试
    identity = RefMathColorSpace.XYZ_TO_BT2020 @ RefMathColorSpace.BT2020_TO_XYZ
    print(f"\n往返误差 (应接近单位矩阵): {np.max(np.abs(identity - np.eye(3))):.2e}")

    deviations = max_constant_deviation()
    failed = False
    for name, deviation in deviations.items():
        status = "✓" if deviation <= args.tolerance else "✗"
        failed |= deviation > args.tolerance
        print(f"{status} {name} 最大偏差: {deviation:.2e}")

    if failed:
        raise SystemExit(1)


if __name__ == "__main__":
    main()
