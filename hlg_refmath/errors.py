"""HLG RefMath 异常定义"""


class HLGDomainError(ValueError):
    """数值定义域错误 (负的场景线性光、Lw ≤ 0 等)"""
