"""Playmood - 情绪 + 社交混合游戏推荐引擎"""

__version__ = "0.1.0"
