"""错误类型

- ValidationError: 输入不合法（缺少用户 ID、评分越界、未知情绪）
- StoreError: 图存储连接或查询失败

"没有推荐"不是错误，统一返回空列表或 None。
"""
from typing import Optional


class PlaymoodError(Exception):
    """所有业务错误的基类"""


class ValidationError(PlaymoodError):
    """输入校验失败"""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class StoreError(PlaymoodError):
    """图存储操作失败，保留失败的操作名便于排查"""

    def __init__(self, operation: str, message: str):
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
